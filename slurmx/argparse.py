from argparse import Namespace
import os

DEFAULT_STATE_DIR = "~/.local/share/slurmx"
DEFAULT_RC_FILE = "~/.config/slurmxrc"


def addArgumentParserBaseFlags(parser, logfileName):
    '''
    Adds the flags shared by the slurmx helper programs.

    Provides ALL flags required by the Config class.
    '''
    parser.add_argument(
        "-v",
        dest="verbose",
        help="Log warnings to stderr, then info, then debug records "
        "(repeat for more)",
        action="append_const",
        const=1)
    parser.add_argument(
        "-d",
        "--state-dir",
        dest='stateDir',
        metavar="DIR",
        help="Specify state directory (default='%(default)s')",
        default=os.getenv('SLURMX_STATE_DIR', DEFAULT_STATE_DIR))
    parser.add_argument("--rc-file", dest="rcFile",
                        help="Specify path to rc-file (default=\"%(default)s\")",
                        default=os.getenv('SLURMX_RC_FILE', DEFAULT_RC_FILE))
    parser.add_argument(
        "--debug",
        nargs="?",
        const=True,
        default=False,
        metavar="FILE",
        help="enable debug output to <state-dir>/log/%s.log, or to FILE" %
        logfileName)


def baseOptionsFromEnv(environ=None):
    '''
    The orchestrator forwards its whole command line to sbatch, so it takes
    the same settings from the environment instead of from flags.
    '''
    if environ is None:
        environ = os.environ
    debug = environ.get('SLURMX_DEBUG', '')
    if debug.lower() in ('', '0', 'false', 'no'):
        debug = False
    elif debug.lower() in ('1', 'true', 'yes'):
        debug = True
    verbose = environ.get('SLURMX_VERBOSE', '')
    # same shape as repeated -v flags
    verbose = [1] * int(verbose) if verbose.isdigit() and int(verbose) else None
    return Namespace(
        verbose=verbose,
        stateDir=environ.get('SLURMX_STATE_DIR', DEFAULT_STATE_DIR),
        rcFile=environ.get('SLURMX_RC_FILE', DEFAULT_RC_FILE),
        debug=debug,
    )
