from .config import RC_FILE_HELP


def binDescriptionWithStandardFooter(desc):
    return """{desc}


Configuration:
    The default configuration file location is `~/.config/slurmxrc`. Set
    SLURMX_RC_FILE (or pass --rc-file to the helper programs) to use another
    file. SLURMX_STATE_DIR moves the state directory, and SLURMX_DEBUG=1
    writes a debug log to <state-dir>/log/. SLURMX_VERBOSE=N (or -v given N
    times to the helper programs) logs warnings, info, then debug records to
    stderr.

{rcfile}
""".format(desc=desc.strip(), rcfile=RC_FILE_HELP)
