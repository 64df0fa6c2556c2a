import logging
import os
import sys

# stderr level for 0, 1, 2 and 3 or more -v flags
_VERBOSE_LEVELS = (logging.ERROR, logging.WARNING, logging.INFO, logging.DEBUG)


def getLogger(name):
    return logging.getLogger(name)


def setup(logDir, debugLogFileName, debug=False, verbose=0):
    """
    With `debug` unset, records go to stderr: errors only, lowered one level
    per `verbose` step. `debug=True` writes DEBUG records to
    <logDir>/<debugLogFileName>.log, and a string value is taken as the log
    file path instead.
    """
    fmt = (
        '+%(process)-6d %(levelname)-9s '
        '%(name)-20s %(filename)20s:%(lineno)-5d '
        '[%(asctime)s] %(message)s')
    if debug:
        if isinstance(debug, str):
            logFileName = os.path.expanduser(debug)
        else:
            logFileName = os.path.join(logDir, debugLogFileName + ".log")
        logging.basicConfig(
            filename=logFileName,
            level=logging.DEBUG,
            format=fmt)
    else:
        level = _VERBOSE_LEVELS[min(verbose, len(_VERBOSE_LEVELS) - 1)]
        logging.basicConfig(stream=sys.stderr, level=level, format=fmt)


def setupFromConfig(config, debugLogFileName):
    # The state directory is only touched when the debug log goes there.
    logDir = config.logDir if config.debug is True else None
    setup(logDir, debugLogFileName, debug=config.debug,
          verbose=config.verbosity)
