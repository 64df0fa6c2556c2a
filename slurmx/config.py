from configparser import RawConfigParser
import os
import shlex

from .errors import EX_CONFIG, FatalError

RC_FILE_HELP = """\
Sample rcfile:
    [job]
    cpus = 1
    time = 4:00:00
    mem = 4G
    name = slurmx
    [poll]
    interval = 1  # seconds between job status queries
    max wait = 300  # seconds to wait for the job to start
    settle delay = 1  # seconds between job start and connecting
    [session]
    prefix = slurmx  # tmux session is named <prefix>-<job id>
    [ssh]
    program = ssh
    options = -X
    [ui]
    color = auto|always|never  # default=auto
"""


class ConfigEnum(object):
    __slots__ = (
        'defaultName',
        '_enumVals',
    )

    def __init__(self, default, **enumVals):
        self._enumVals = enumVals
        assert default in enumVals
        self.defaultName = default
        for enumName in enumVals:
            assert enumName not in self.__slots__

    def values(self):
        return iter(self._enumVals.values())

    @property
    def defaultVal(self):
        return self._enumVals[self.defaultName]

    def __getattr__(self, attr):
        assert attr != '_enumVals'
        if attr in self._enumVals:
            return self._enumVals[attr]
        else:
            return object.__getattribute__(self, attr)


COLOR = ConfigEnum(
    'AUTO',  # default
    AUTO='auto',
    ALWAYS='always',
    NEVER='never',
)

DEFAULT_CPUS = 1
DEFAULT_TIME = "4:00:00"
DEFAULT_MEM = "4G"
DEFAULT_JOB_NAME = "slurmx"
DEFAULT_POLL_INTERVAL = 1
DEFAULT_MAX_WAIT = 300
DEFAULT_SETTLE_DELAY = 1
DEFAULT_SESSION_PREFIX = "slurmx"
DEFAULT_SSH_PROGRAM = "ssh"
DEFAULT_SSH_OPTIONS = "-X"


class ConfigError(FatalError):
    rc = EX_CONFIG


def _getConfig(cfgParser, section, option, defaultValue=None):
    if not cfgParser.has_section(section):
        return defaultValue
    if not cfgParser.has_option(section, option):
        return defaultValue
    return cfgParser.get(section, option)


def _getEnumConfig(cfgParser, section, option, enum):
    optionVal = _getConfig(
        cfgParser, section, option, enum.defaultVal)
    if optionVal not in list(enum.values()):
        raise ConfigError(
            "RC file has invalid \"{section}.{option}\" setting {optionVal}.  Valid "
            "options: {allowedVals}".format(
                section=section,
                option=option,
                optionVal=optionVal,
                allowedVals=", ".join(list(enum.values()))))

    return optionVal


def _getIntConfig(cfgParser, section, option, default, minimum=0):
    val = _getConfig(cfgParser, section, option, None)
    if val is None:
        return default
    try:
        intVal = int(val)
    except ValueError:
        intVal = None
    if intVal is None or intVal < minimum:
        raise ConfigError(
            "RC file has invalid \"{section}.{option}\" setting {optionVal}.  "
            "Expected an integer >= {minimum}".format(
                section=section,
                option=option,
                optionVal=val,
                minimum=minimum))
    return intVal


class Config(object):
    # pylint: disable=too-many-instance-attributes
    validConfig = {
        'job': {'cpus', 'time', 'mem', 'name'},
        'poll': {'interval', 'max wait', 'settle delay'},
        'session': {'prefix'},
        'ssh': {'program', 'options'},
        'ui': {'color'},
    }

    def _validateConfigParser(self, cfgParser):
        cfgSections = set(cfgParser.sections())
        unknownSections = cfgSections - set(self.validConfig.keys())
        if unknownSections:
            raise ConfigError(
                "RC file has unknown configuration sections: {}".format(
                    ", ".join(sorted(unknownSections))))
        for section in cfgSections:
            cfgValues = set(cfgParser.options(section))
            unknownOptions = cfgValues - self.validConfig[section]
            if unknownOptions:
                raise ConfigError(
                    "RC file has unknown configuration options in "
                    "section \"{}\": {}".format(
                        section, ", ".join(sorted(unknownOptions))))

    def __init__(self, options):
        stateDir = options.stateDir
        self.options = options
        self._logDir = os.path.expanduser(stateDir) + "/log/"

        rcFile = os.path.expanduser(options.rcFile)
        cfgParser = RawConfigParser()
        cfgParser.read(rcFile)
        self._validateConfigParser(cfgParser)

        self._cpus = _getIntConfig(cfgParser, 'job', 'cpus', DEFAULT_CPUS, 1)
        self._time = _getConfig(cfgParser, 'job', 'time', DEFAULT_TIME)
        self._mem = _getConfig(cfgParser, 'job', 'mem', DEFAULT_MEM)
        self._jobName = _getConfig(cfgParser, 'job', 'name', DEFAULT_JOB_NAME)

        self._pollInterval = _getIntConfig(
            cfgParser, 'poll', 'interval', DEFAULT_POLL_INTERVAL, 1)
        self._maxWait = _getIntConfig(
            cfgParser, 'poll', 'max wait', DEFAULT_MAX_WAIT)
        self._settleDelay = _getIntConfig(
            cfgParser, 'poll', 'settle delay', DEFAULT_SETTLE_DELAY)

        self._sessionPrefix = _getConfig(
            cfgParser, 'session', 'prefix', DEFAULT_SESSION_PREFIX)

        self._sshProgram = _getConfig(
            cfgParser, 'ssh', 'program', DEFAULT_SSH_PROGRAM)
        self._sshOptions = shlex.split(
            _getConfig(cfgParser, 'ssh', 'options', DEFAULT_SSH_OPTIONS))

        self._color = _getEnumConfig(cfgParser, 'ui', 'color', COLOR)

    @property
    def verbosity(self):
        return len(self.options.verbose or [])

    @property
    def debug(self):
        return self.options.debug

    @staticmethod
    def checkDir(dirName):
        if not os.access(dirName, os.W_OK | os.X_OK | os.R_OK):
            os.makedirs(dirName, exist_ok=True)
        return dirName

    @property
    def logDir(self):
        return self.checkDir(self._logDir)

    @property
    def cpus(self):
        return self._cpus

    @property
    def time(self):
        return self._time

    @property
    def mem(self):
        return self._mem

    @property
    def jobName(self):
        return self._jobName

    @property
    def pollInterval(self):
        return self._pollInterval

    @property
    def maxWait(self):
        return self._maxWait

    @property
    def settleDelay(self):
        return self._settleDelay

    @property
    def sessionPrefix(self):
        return self._sessionPrefix

    @property
    def sshProgram(self):
        return self._sshProgram

    @property
    def sshOptions(self):
        return list(self._sshOptions)

    @property
    def color(self):
        return self._color
