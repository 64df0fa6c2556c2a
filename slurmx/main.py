#!/usr/bin/env python
import shlex
import signal
from subprocess import Popen
import sys
import time
from typing import List

import slurmx.logging

from .argparse import baseOptionsFromEnv
from .binutils import binDescriptionWithStandardFooter
from .config import COLOR, Config, ConfigError
from .errors import (
    EX_OK,
    INTERRUPT_BASE,
    FatalError,
    ProtocolError,
    WaitTimeoutError,
)
from .output import Output, Style
from .preflight import checkTools, installDir, requiredTools, resolveHelpers
from .scheduler import JobGuard, JobStatus, Scheduler, jobGuard
from .session import sessionName
from .utils import interruptsRaise, sprint

_DEBUG_LOG_FILE_NAME = "slurmx-debug"
PROG = "slurmx"
HELP_FLAGS = ("-h", "--help")

LOG = slurmx.logging.getLogger(__name__)

DESC = binDescriptionWithStandardFooter("""
slurmx - Interactive X11-forwarded tmux session on a SLURM node

Usage:
    slurmx [SBATCH OPTIONS...]
    slurmx -h | --help

Submits a batch job that starts a tmux session on the allocated node, waits
for the job to start, then connects with `ssh -X -t` and attaches to the
session. The job is cancelled when the connection ends, when waiting fails,
or when slurmx is interrupted.

Every argument except a lone -h/--help is passed to sbatch unchanged, after
the defaults, so sbatch options override them.

Exit codes:
    0   success
    1   usage error, or a required tool is missing
    75  the job did not start within the configured wait
    76  missing helper program, or unexpected answer from the scheduler
    78  malformed rc file
    128+N  interrupted by signal N
    Otherwise, the exit code of the remote session.

Examples:
    # One CPU, default time and memory
    $ slurmx

    # Four CPUs and 16G of memory for two hours
    $ slurmx --cpus-per-task=4 --mem=16G --time=2:00:00

    # Pick a partition
    $ slurmx -p gpu --gres=gpu:1
""")


def isHelpRequest(args: List[str]) -> bool:
    return len(args) == 1 and args[0] in HELP_FLAGS


def waitForRunning(
        scheduler: Scheduler,
        guard: JobGuard,
        config: Config,
        output: Output,
) -> int:
    """
    Poll the job until it is running and return the seconds spent waiting.

    A job that is neither pending nor running is cancelled and reported as a
    ProtocolError. A job still pending after config.maxWait seconds raises
    WaitTimeoutError; its cancellation is left to the guard.
    """
    jobId = guard.jobId
    elapsed = 0
    try:
        while True:
            status = scheduler.status(jobId)
            LOG.debug("job %s status %s after %ds", jobId, status, elapsed)
            if status is JobStatus.RUNNING:
                return elapsed
            if status is not JobStatus.PENDING:
                guard.release()
                raise ProtocolError(
                    "job {} is neither pending nor running".format(jobId))
            if elapsed >= config.maxWait:
                raise WaitTimeoutError(
                    "job {} is still pending after {} seconds".format(
                        jobId, elapsed))
            output.progress()
            time.sleep(config.pollInterval)
            elapsed += config.pollInterval
    finally:
        output.endProgress()


def connectCmd(config: Config, node: str, connectHelper: str,
               session: str) -> List[str]:
    # ssh joins the remote command into a single shell string
    remote = [shlex.quote(connectHelper), shlex.quote(session)]
    return [config.sshProgram] + config.sshOptions + ["-t", node] + remote


def connect(config: Config, node: str, connectHelper: str,
            session: str) -> int:
    cmd = connectCmd(config, node, connectHelper, session)
    LOG.info("connect: %r", cmd)
    with Popen(cmd) as proc:
        try:
            rc = proc.wait()
        except KeyboardInterrupt:
            LOG.debug("KeyboardInterrupt, terminate %r", cmd, exc_info=True)
            proc.terminate()
            raise
    LOG.debug("connection closed rc=%d", rc)
    if rc < 0:
        # killed by signal -rc
        rc = INTERRUPT_BASE - rc
    return rc


def impl_main(args: List[str], config: Config, output: Output) -> int:
    checkTools(requiredTools(config))
    helpers = resolveHelpers(installDir())
    scheduler = Scheduler(config)

    with interruptsRaise():
        with jobGuard(scheduler) as guard:
            jobId = scheduler.submit(args, helpers.sessionStart, guard)
            output.info("submitted job {}, waiting for it to start".format(jobId))
            waitForRunning(scheduler, guard, config, output)
            node = scheduler.firstNode(jobId)
            output.info("job {} is running on {}".format(jobId, node))
            time.sleep(config.settleDelay)
            session = sessionName(config.sessionPrefix, jobId)
            return connect(config, node, helpers.connect, session)


def main(args=None):
    if args is None:
        args = sys.argv[1:]
    if isHelpRequest(args):
        sprint(DESC)
        sys.exit(EX_OK)

    options = baseOptionsFromEnv()
    try:
        config = Config(options)
    except ConfigError as error:
        Output(Style.resolve(COLOR.defaultVal), prog=PROG).error(error)
        sys.exit(error.rc)

    slurmx.logging.setupFromConfig(config, _DEBUG_LOG_FILE_NAME)
    LOG.debug("starting with args %r", args)
    LOG.debug("python: %s", sys.version)

    output = Output(Style.resolve(config.color), prog=PROG)
    try:
        rc = impl_main(args, config, output)
    except FatalError as error:
        LOG.debug("fatal error", exc_info=True)
        output.error(error)
        rc = error.rc
    except KeyboardInterrupt as error:
        LOG.debug("interrupted", exc_info=True)
        output.warning(str(error) or "interrupted")
        rc = getattr(error, "rc", INTERRUPT_BASE + signal.SIGINT)
    LOG.debug("exit rc=%d", rc)
    sys.exit(rc)


if __name__ == "__main__":
    main()
