"""
Thin wrappers around the SLURM command line tools.

Every call goes through _run(), which returns the exit status together with the
decoded stdout (and stderr, unless asked otherwise).
"""
from contextlib import contextmanager
import enum
import re
from subprocess import DEVNULL, PIPE, STDOUT, Popen

import slurmx.logging

from .errors import ProtocolError
from .utils import autoDecode, signalsBlocked

SBATCH = "sbatch"
SQUEUE = "squeue"
SCANCEL = "scancel"

DISCARD = "/dev/null"

_JOB_ID_RE = re.compile(r"(\d+)\s*$")

LOG = slurmx.logging.getLogger(__name__)


class JobStatus(enum.Enum):
    PENDING = "PD"
    RUNNING = "R"
    OTHER = "?"

    @classmethod
    def fromCode(cls, code):
        code = code.strip()
        for status in (cls.PENDING, cls.RUNNING):
            if code == status.value:
                return status
        return cls.OTHER


def _run(cmd, stderr=STDOUT):
    LOG.debug("run %r", cmd)
    with Popen(cmd, stdin=DEVNULL, stdout=PIPE, stderr=stderr) as proc:
        out, _ = proc.communicate()
    text = autoDecode(out)
    LOG.debug("%r => rc=%d, output %r", cmd, proc.returncode, text)
    return proc.returncode, text


def parseJobId(output):
    """The job id is the run of digits that ends the sbatch output."""
    match = _JOB_ID_RE.search(output)
    if not match:
        raise ProtocolError(
            "unable to find a job id in the submission output: {!r}".format(
                output.strip()))
    return match.group(1)


class Scheduler(object):
    def __init__(self, config):
        self.config = config

    def submitCmd(self, args, command):
        # Defaults come first so that forwarded options override them.
        return [
            SBATCH,
            "--cpus-per-task={}".format(self.config.cpus),
            "--time={}".format(self.config.time),
            "--mem={}".format(self.config.mem),
            "--job-name={}".format(self.config.jobName),
            "--output={}".format(DISCARD),
            "--error={}".format(DISCARD),
        ] + list(args) + [command]

    def submit(self, args, command, guard):
        """
        Submit the job and hand its id to `guard`.

        Signals are held back until the id is on the guard, so an interrupt
        that lands while sbatch runs still finds a job to cancel.
        """
        cmd = self.submitCmd(args, command)
        LOG.info("submit: %r", cmd)
        with signalsBlocked():
            rc, out = _run(cmd)
            if rc != 0:
                raise ProtocolError(
                    "job submission failed (rc={}): {}".format(rc, out.strip()))
            guard.jobId = parseJobId(out)
        LOG.info("submitted job %s", guard.jobId)
        return guard.jobId

    def status(self, jobId):
        rc, out = _run(
            [SQUEUE, "--noheader", "--jobs", jobId, "--states", "PD,R",
             "--format", "%t"],
            stderr=DEVNULL)
        if rc != 0:
            LOG.debug("status query for %s failed rc=%d", jobId, rc)
            return JobStatus.OTHER
        lines = out.splitlines()
        return JobStatus.fromCode(lines[0] if lines else "")

    def firstNode(self, jobId):
        rc, out = _run(
            [SQUEUE, "--noheader", "--jobs", jobId, "--format", "%B"],
            stderr=DEVNULL)
        lines = out.split()
        if rc != 0 or not lines:
            raise ProtocolError(
                "unable to find the node allocated to job {}".format(jobId))
        return lines[0]

    def cancel(self, jobId):
        rc, _ = _run([SCANCEL, "--quiet", jobId])
        if rc != 0:
            LOG.info("scancel %s => rc=%d (ignored)", jobId, rc)
        return rc == 0


class JobGuard(object):
    """Cancels the job on release, at most once. Without a job id it does nothing."""

    def __init__(self, scheduler, jobId=None):
        self.scheduler = scheduler
        self.jobId = jobId
        self.released = False

    def release(self):
        if self.released:
            return
        if not self.jobId:
            LOG.debug("release: no job was submitted")
            return
        self.released = True
        LOG.debug("release job %s", self.jobId)
        with signalsBlocked():
            try:
                self.scheduler.cancel(self.jobId)
            except OSError:
                LOG.warning("unable to cancel job %s", self.jobId, exc_info=True)


@contextmanager
def jobGuard(scheduler, jobId=None):
    guard = JobGuard(scheduler, jobId)
    try:
        yield guard
    except BaseException:
        LOG.debug("jobGuard exception", exc_info=1)
        raise
    finally:
        guard.release()
