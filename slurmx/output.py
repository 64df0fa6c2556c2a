"""
User-facing messages on stderr.

Whether colour is used is decided once, when the Style is resolved at startup;
Output only reads it.
"""
from dataclasses import dataclass
import os
import sys

from colorama import Fore
from colorama import Style as AnsiStyle

from .config import COLOR
from .utils import sprint


@dataclass(frozen=True)
class Style:
    color: bool = False

    @classmethod
    def resolve(cls, setting, stream=None, environ=None):
        if environ is None:
            environ = os.environ
        if stream is None:
            stream = sys.stderr
        if setting == COLOR.ALWAYS:
            return cls(color=True)
        if setting == COLOR.NEVER or 'NO_COLOR' in environ:
            return cls(color=False)
        isTty = hasattr(stream, "isatty") and stream.isatty()
        return cls(color=isTty and environ.get('TERM', 'dumb') != 'dumb')


class Output(object):
    def __init__(self, style, prog="slurmx", stream=None):
        self.style = style
        self.prog = prog
        self._stream = stream
        self._inProgress = False

    @property
    def stream(self):
        return self._stream if self._stream is not None else sys.stderr

    def _paint(self, text, *codes):
        if not self.style.color:
            return text
        return "".join(codes) + text + AnsiStyle.RESET_ALL

    def _emit(self, text):
        self.endProgress()
        sprint(text, file=self.stream)

    def error(self, message):
        self._emit(self._paint(
            "{}: error: {}".format(self.prog, message),
            AnsiStyle.BRIGHT, Fore.RED))

    def warning(self, message):
        self._emit(self._paint(
            "{}: warning: {}".format(self.prog, message),
            AnsiStyle.BRIGHT, Fore.YELLOW))

    def info(self, message):
        self._emit("{}: {}".format(self.prog, message))

    def progress(self, char="."):
        self._inProgress = True
        sprint(char, end="", file=self.stream, flush=True)

    def endProgress(self):
        if self._inProgress:
            self._inProgress = False
            sprint("", file=self.stream)
