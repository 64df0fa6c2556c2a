import collections
import os
from shutil import which
import sys

import slurmx.logging

from .errors import ProtocolError, ToolMissingError
from .scheduler import SBATCH, SCANCEL, SQUEUE
from .session import TMUX

SESSION_HELPER = "slurmx-session"
CONNECT_HELPER = "slurmx-connect"

LOG = slurmx.logging.getLogger(__name__)

Helpers = collections.namedtuple('Helpers', 'sessionStart, connect')


def requiredTools(config):
    return [SQUEUE, SBATCH, SCANCEL, config.sshProgram, TMUX]


def checkTools(tools):
    for tool in tools:
        path = which(tool)
        LOG.debug("which %s => %r", tool, path)
        if not path:
            raise ToolMissingError(
                "required tool {!r} was not found in PATH".format(tool))


def installDir(argv0=None):
    """The directory the running program was installed into."""
    if argv0 is None:
        argv0 = sys.argv[0]
    return os.path.dirname(os.path.realpath(argv0))


def resolveHelpers(binDir):
    paths = []
    for name in (SESSION_HELPER, CONNECT_HELPER):
        path = os.path.join(binDir, name)
        if not (os.path.isfile(path) and os.access(path, os.X_OK)):
            raise ProtocolError(
                "helper {} is missing or not executable".format(path))
        paths.append(path)
    helpers = Helpers(*paths)
    LOG.debug("helpers %r", helpers)
    return helpers
