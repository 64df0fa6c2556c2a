"""
Fatal error conditions and the exit codes they map to.

The numbering follows sysexits(3) where one applies. Every fatal condition is a
FatalError carrying the return code the process should exit with.
"""

EX_OK = 0
EX_FAILURE = 1
EX_TEMPFAIL = 75
EX_PROTOCOL = 76
EX_CONFIG = 78

INTERRUPT_BASE = 128


class FatalError(Exception):
    rc = EX_FAILURE

    def __init__(self, message, rc=None):
        super(FatalError, self).__init__(message)
        if rc is not None:
            self.rc = rc


class UsageError(FatalError):
    rc = EX_FAILURE


class ToolMissingError(FatalError):
    rc = EX_FAILURE


class WaitTimeoutError(FatalError):
    rc = EX_TEMPFAIL


class ProtocolError(FatalError):
    """Unexpected answer from the scheduler, or a broken installation."""
    rc = EX_PROTOCOL
