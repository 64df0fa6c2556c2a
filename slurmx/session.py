"""
The two programs slurmx runs on the compute node.

slurmx-session is the batch job's command: it starts a detached tmux session
named after the job and keeps the job alive until that session ends.

slurmx-connect runs through the forwarded ssh connection and attaches to the
session, handing it the forwarded DISPLAY first.
"""
import argparse
import os
from subprocess import DEVNULL, CalledProcessError, call, check_call
import sys
import time

import slurmx.logging

from .argparse import addArgumentParserBaseFlags
from .binutils import binDescriptionWithStandardFooter
from .config import COLOR, Config, ConfigError
from .errors import EX_OK, FatalError, UsageError
from .output import Output, Style
from .utils import interruptsRaise

_DEBUG_LOG_FILE_NAME = "slurmx-session-debug"
TMUX = "tmux"

LOG = slurmx.logging.getLogger(__name__)


def sessionName(prefix, jobId):
    return "{}-{}".format(prefix, jobId)


def sessionAlive(name):
    return call([TMUX, "has-session", "-t", name],
                stdout=DEVNULL, stderr=DEVNULL) == 0


def startSession(name):
    LOG.info("start tmux session %s", name)
    check_call([TMUX, "new-session", "-d", "-s", name])


def killSession(name):
    LOG.info("kill tmux session %s", name)
    call([TMUX, "kill-session", "-t", name], stdout=DEVNULL, stderr=DEVNULL)


def holdSession(name, interval):
    """Block while the session exists, killing it if we are interrupted."""
    try:
        while sessionAlive(name):
            time.sleep(interval)
        LOG.info("session %s ended", name)
    except KeyboardInterrupt:
        LOG.debug("interrupted while holding %s", name, exc_info=True)
        killSession(name)
        raise


def attachSession(name, display=None):
    """
    tmux hands its session environment only to processes it starts later, so
    `display` reaches new windows and panes while shells already running in
    the session keep their old DISPLAY.
    """
    if display:
        call([TMUX, "set-environment", "-t", name, "DISPLAY", display])
    return call([TMUX, "attach-session", "-t", name])


def _parseArgs(prog, desc, args, addArgs=None):
    op = argparse.ArgumentParser(
        prog=prog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description=binDescriptionWithStandardFooter(desc))
    addArgumentParserBaseFlags(op, _DEBUG_LOG_FILE_NAME)
    if addArgs:
        addArgs(op)
    return op.parse_args(args)


def _runHelper(prog, options, body):
    try:
        config = Config(options)
    except ConfigError as error:
        Output(Style.resolve(COLOR.defaultVal), prog=prog).error(error)
        sys.exit(error.rc)
    slurmx.logging.setupFromConfig(config, _DEBUG_LOG_FILE_NAME)
    LOG.debug("%s starting with %s", prog, options)
    output = Output(Style.resolve(config.color), prog=prog)
    try:
        rc = body(config, output)
    except FatalError as error:
        LOG.debug("fatal error", exc_info=True)
        output.error(error)
        rc = error.rc
    except KeyboardInterrupt as error:
        rc = getattr(error, "rc", 1)
    sys.exit(rc)


SESSION_DESC = """
slurmx-session - Hold a tmux session open for the running SLURM job

This is the command of the batch job submitted by slurmx. It starts a detached
tmux session named <prefix>-$SLURM_JOB_ID and exits when that session ends.
"""

CONNECT_DESC = """
slurmx-connect - Attach to a slurmx tmux session

Runs on the compute node through the X11-forwarded ssh connection opened by
slurmx, and attaches to SESSION.

The forwarded DISPLAY is stored in the session environment before attaching.
Only windows and panes created after that see it; shells already open in the
session keep the DISPLAY they started with. Open a new window (C-b c) to run
X11 programs after reconnecting.
"""


def sessionMain(args=None):
    options = _parseArgs("slurmx-session", SESSION_DESC, args)

    def _hold(config, _output):
        jobId = os.environ.get("SLURM_JOB_ID")
        if not jobId:
            raise UsageError("SLURM_JOB_ID is not set; run this as a batch job")
        name = sessionName(config.sessionPrefix, jobId)
        with interruptsRaise():
            try:
                startSession(name)
            except CalledProcessError as error:
                raise FatalError(
                    "unable to start tmux session {}: {}".format(name, error)
                ) from error
            holdSession(name, config.pollInterval)
        return EX_OK

    _runHelper("slurmx-session", options, _hold)


def connectMain(args=None):
    def _addArgs(op):
        op.add_argument("session", help="tmux session to attach to")

    options = _parseArgs("slurmx-connect", CONNECT_DESC, args, _addArgs)

    def _attach(_config, output):
        display = os.environ.get("DISPLAY")
        if not display:
            output.warning("DISPLAY is not set, X11 forwarding is not active")
        rc = attachSession(options.session, display)
        LOG.debug("attach %s => rc=%d", options.session, rc)
        return rc

    _runHelper("slurmx-connect", options, _attach)
