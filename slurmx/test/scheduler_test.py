import os
import signal
import time
import unittest
from unittest import mock

import pytest

from slurmx import scheduler
from slurmx.errors import EX_PROTOCOL, ProtocolError
from slurmx.scheduler import JobGuard, JobStatus, Scheduler, jobGuard, parseJobId
from slurmx.utils import Interrupted, interruptsRaise

from .helpers import JOB_ID, NODE, FakeSlurm


@pytest.mark.parametrize("output, jobId", [
    ("Submitted batch job 123456", "123456"),
    ("Submitted batch job 123456\n", "123456"),
    ("sbatch: warning: job 7 ignored\nSubmitted batch job 98\n", "98"),
    ("987", "987"),
])
def testParseJobId(output, jobId):
    assert jobId == parseJobId(output)


@pytest.mark.parametrize("output", [
    "",
    "\n",
    "sbatch: error: Batch job submission failed: Invalid account",
    "Submitted batch job 12 on cluster x",
])
def testParseJobIdMissing(output):
    with pytest.raises(ProtocolError) as excinfo:
        parseJobId(output)
    assert excinfo.value.rc == EX_PROTOCOL


@pytest.mark.parametrize("code, status", [
    ("PD", JobStatus.PENDING),
    ("R\n", JobStatus.RUNNING),
    ("CG", JobStatus.OTHER),
    ("F", JobStatus.OTHER),
    ("", JobStatus.OTHER),
])
def testStatusFromCode(code, status):
    assert status is JobStatus.fromCode(code)


class FakeConfig(object):
    cpus = 1
    time = "4:00:00"
    mem = "4G"
    jobName = "slurmx"


class SchedulerTestCase(unittest.TestCase):
    def setUp(self):
        self.fake = FakeSlurm()
        patcher = mock.patch.object(scheduler, "_run", self.fake)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.scheduler = Scheduler(FakeConfig())
        self.guard = JobGuard(self.scheduler)


class TestSubmit(SchedulerTestCase):
    def testDefaultsBeforeForwardedArgs(self):
        cmd = self.scheduler.submitCmd(["--mem=16G", "-p", "gpu"], "/bin/helper")
        self.assertEqual([
            "sbatch",
            "--cpus-per-task=1",
            "--time=4:00:00",
            "--mem=4G",
            "--job-name=slurmx",
            "--output=/dev/null",
            "--error=/dev/null",
            "--mem=16G",
            "-p",
            "gpu",
            "/bin/helper",
        ], cmd)

    def testSubmit(self):
        guard = JobGuard(self.scheduler)
        self.assertEqual(JOB_ID, self.scheduler.submit([], "/bin/helper", guard))
        self.assertEqual(JOB_ID, guard.jobId)
        self.assertEqual(1, len(self.fake.commands("sbatch")))
        self.assertEqual("/bin/helper", self.fake.calls[0][-1])

    def testSubmitFailed(self):
        self.fake.submitRc = 1
        self.fake.submitOutput = "sbatch: error: invalid partition specified: x\n"
        with self.assertRaisesRegex(ProtocolError, "invalid partition"):
            self.scheduler.submit(["-p", "x"], "/bin/helper", self.guard)

    def testNoJobId(self):
        self.fake.submitOutput = "something odd\n"
        with self.assertRaisesRegex(ProtocolError, "something odd"):
            self.scheduler.submit([], "/bin/helper", self.guard)
        self.assertIsNone(self.guard.jobId)


class TestQueries(SchedulerTestCase):
    def testStatus(self):
        self.fake.statuses = ["PD", "R", ""]
        self.assertIs(JobStatus.PENDING, self.scheduler.status(JOB_ID))
        self.assertIs(JobStatus.RUNNING, self.scheduler.status(JOB_ID))
        self.assertIs(JobStatus.OTHER, self.scheduler.status(JOB_ID))
        self.assertEqual(
            ["squeue", "--noheader", "--jobs", JOB_ID, "--states", "PD,R",
             "--format", "%t"],
            self.fake.calls[0])

    def testStatusQueryFailed(self):
        with mock.patch.object(scheduler, "_run", return_value=(1, "")):
            self.assertIs(JobStatus.OTHER, self.scheduler.status(JOB_ID))

    def testFirstNode(self):
        self.assertEqual(NODE, self.scheduler.firstNode(JOB_ID))
        self.assertEqual(
            ["squeue", "--noheader", "--jobs", JOB_ID, "--format", "%B"],
            self.fake.calls[0])

    def testNoNode(self):
        self.fake.node = ""
        with self.assertRaises(ProtocolError):
            self.scheduler.firstNode(JOB_ID)

    def testCancel(self):
        self.assertTrue(self.scheduler.cancel(JOB_ID))
        self.assertEqual([["scancel", "--quiet", JOB_ID]], self.fake.calls)

    def testCancelFinishedJobIsQuiet(self):
        self.fake.cancelRc = 1
        self.assertFalse(self.scheduler.cancel(JOB_ID))


class TestJobGuard(SchedulerTestCase):
    def testNothingToReleaseWithoutJob(self):
        with jobGuard(self.scheduler) as guard:
            pass
        self.assertEqual([], self.fake.commands("scancel"))
        self.assertFalse(guard.released)

    def testSignalDuringSubmissionCancelsJob(self):
        self.fake.onSubmit = lambda: os.kill(os.getpid(), signal.SIGTERM)
        with self.assertRaises(Interrupted):
            with interruptsRaise():
                with jobGuard(self.scheduler) as guard:
                    self.scheduler.submit([], "/bin/helper", guard)
                    time.sleep(5)
        self.assertEqual(JOB_ID, guard.jobId)
        self.assertEqual([["scancel", "--quiet", JOB_ID]],
                         self.fake.commands("scancel"))

    def testReleasedOnce(self):
        guard = JobGuard(self.scheduler, JOB_ID)
        guard.release()
        guard.release()
        self.assertEqual(1, len(self.fake.commands("scancel")))
        self.assertTrue(guard.released)

    def testReleasedOnSuccess(self):
        with jobGuard(self.scheduler, JOB_ID) as guard:
            self.assertFalse(guard.released)
        self.assertEqual(1, len(self.fake.commands("scancel")))

    def testReleasedOnError(self):
        with self.assertRaises(ProtocolError):
            with jobGuard(self.scheduler, JOB_ID):
                raise ProtocolError("bad")
        self.assertEqual(1, len(self.fake.commands("scancel")))

    def testReleasedOnInterrupt(self):
        with self.assertRaises(Interrupted):
            with jobGuard(self.scheduler, JOB_ID):
                raise Interrupted(signal.SIGINT)
        self.assertEqual(1, len(self.fake.commands("scancel")))

    def testExplicitReleaseInsideGuard(self):
        with jobGuard(self.scheduler, JOB_ID) as guard:
            guard.release()
        self.assertEqual(1, len(self.fake.commands("scancel")))

    def testCancelErrorDoesNotMaskExit(self):
        with mock.patch.object(self.scheduler, "cancel",
                               side_effect=OSError("scancel vanished")):
            with jobGuard(self.scheduler, JOB_ID) as guard:
                pass
        self.assertTrue(guard.released)


class TestRun(unittest.TestCase):
    @mock.patch("slurmx.scheduler.Popen")
    def testDecodesOutput(self, mockPopen):
        proc = mockPopen.return_value.__enter__.return_value
        proc.communicate.return_value = (b"Submitted batch job 5\n", None)
        proc.returncode = 0
        self.assertEqual((0, "Submitted batch job 5\n"), scheduler._run(["sbatch"]))
