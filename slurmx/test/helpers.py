from argparse import Namespace
from contextlib import contextmanager
from io import StringIO
import os
import sys

HOME = '/home/me'
JOB_ID = '123456'
NODE = 'node042'


def resetEnv():
    os.environ['HOME'] = HOME
    os.environ['SLURMX_STATE_DIR'] = '/tmp/BADDIR'
    for name in ('SLURMX_RC_FILE', 'SLURMX_DEBUG', 'SLURMX_VERBOSE',
                 'NO_COLOR'):
        if name in os.environ:
            del os.environ[name]


@contextmanager
def capturedOutput():
    ''' Used to capture stdout or stderr.
    eg.
    with capturedOutput() as (out, err):
        print("foo")

    self.assertEqual(out.getvalue(), "foo")
    '''
    newOut, newErr = StringIO(), StringIO()
    oldOut, oldErr = sys.stdout, sys.stderr
    try:
        sys.stdout, sys.stderr = newOut, newErr
        yield sys.stdout, sys.stderr
    finally:
        sys.stdout, sys.stderr = oldOut, oldErr


def options(stateDir, rcFile='/dev/null', debug=False, verbose=None):
    return Namespace(
        verbose=verbose,
        stateDir=stateDir,
        rcFile=rcFile,
        debug=debug,
    )


def writeRcFile(dirName, text):
    path = os.path.join(dirName, 'slurmxrc')
    with open(path, 'w') as rcFp:
        rcFp.write(text)
    return path


def makeExecutable(dirName, name, mode=0o755):
    path = os.path.join(dirName, name)
    with open(path, 'w') as fp:
        fp.write('#!/bin/sh\n')
    os.chmod(path, mode)
    return path


def makeHelpers(dirName):
    return [makeExecutable(dirName, name)
            for name in ('slurmx-session', 'slurmx-connect')]


class FakeSlurm(object):
    """
    Stands in for slurmx.scheduler._run, answering sbatch, squeue and scancel.

    `statuses` lists the squeue state codes in the order they are returned;
    an exception instance in the list is raised instead. `onSubmit` is called
    while sbatch "runs".
    """

    def __init__(self, statuses=('R',), submitOutput='Submitted batch job 123456\n',
                 submitRc=0, node=NODE, cancelRc=0, onSubmit=None):
        self.statuses = list(statuses)
        self.submitOutput = submitOutput
        self.submitRc = submitRc
        self.onSubmit = onSubmit
        self.node = node
        self.cancelRc = cancelRc
        self.calls = []

    def __call__(self, cmd, stderr=None):
        # pylint: disable=unused-argument
        self.calls.append(list(cmd))
        prog = cmd[0]
        if prog == 'sbatch':
            if self.onSubmit:
                self.onSubmit()
            return self.submitRc, self.submitOutput
        if prog == 'squeue' and '%t' in cmd:
            status = self.statuses.pop(0)
            if isinstance(status, BaseException):
                raise status
            return 0, status + '\n' if status else ''
        if prog == 'squeue' and '%B' in cmd:
            return 0, self.node + '\n' if self.node else ''
        if prog == 'scancel':
            return self.cancelRc, ''
        raise AssertionError('unexpected command {!r}'.format(cmd))

    def commands(self, prog):
        return [cmd for cmd in self.calls if cmd[0] == prog]

    @property
    def statusQueries(self):
        return [cmd for cmd in self.commands('squeue') if '%t' in cmd]
