from contextlib import contextmanager
import logging
import signal

import chardet

from .errors import INTERRUPT_BASE

# Signals that end the run; each one still releases the scheduler job.
INTERRUPT_SIGNALS = (
    signal.SIGINT,
    signal.SIGTERM,
    signal.SIGHUP,
    signal.SIGQUIT,
    signal.SIGABRT,
)

LOG = logging.getLogger(__name__)


def strForEach(value):
    try:
        return str(value)
    except (UnicodeDecodeError, UnicodeEncodeError):
        LOG.debug("%r", value, exc_info=1)
        return '{!r}'.format(value)


def sprint(*args, **kwargs):
    """sprint: "safe" print - ignore IOError"""
    try:
        print(*list(map(strForEach, args)), **kwargs)
    except IOError:
        LOG.debug("sprint ignore IOError", exc_info=1)
    except (UnicodeEncodeError, UnicodeDecodeError):
        print('codec error', repr(args))
        LOG.debug("%r", args, exc_info=1)
    except BaseException:
        LOG.debug("sprint caught error", exc_info=1)
        raise


def autoDecode(byteArray):
    if not byteArray:
        return ""
    detected = chardet.detect(byteArray)
    encoding = detected['encoding']
    if detected['confidence'] < 0.5:  # very arbitrary
        encoding = 'utf-8'
    return byteArray.decode(encoding, errors='replace')


class Interrupted(KeyboardInterrupt):
    def __init__(self, signum):
        super(Interrupted, self).__init__(signum)
        self.signum = signum
        self.rc = INTERRUPT_BASE + signum

    def __str__(self):
        return "interrupted by {}".format(signal.Signals(self.signum).name)


def _raiseInterrupted(signum, _frame):
    raise Interrupted(signum)


@contextmanager
def interruptsRaise(signals=INTERRUPT_SIGNALS):
    """
    Turn each of `signals` into an Interrupted exception for the duration of
    the block, so `finally` clauses run on termination requests as well as on
    Ctrl-C. The previous handlers are restored on exit.
    """
    previous = {}
    for signum in signals:
        previous[signum] = signal.signal(signum, _raiseInterrupted)
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


@contextmanager
def signalsBlocked(signals=INTERRUPT_SIGNALS):
    """Hold back delivery of `signals` until the block is done."""
    oldMask = signal.pthread_sigmask(signal.SIG_BLOCK, signals)
    try:
        yield
    finally:
        signal.pthread_sigmask(signal.SIG_SETMASK, oldMask)
