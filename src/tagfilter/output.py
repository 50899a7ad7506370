"""Output buffering, echo forwarding and the rejection log."""

from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

from .tokens import FilterError


class _StrEnum(str, Enum):
    """Backport of enum.StrEnum (Python 3.11+)."""

    def __str__(self) -> str:
        return str(self.value)


class RejectReason(_StrEnum):
    TAG = "tag"
    ATTRIBUTE = "attribute"
    URL = "url"


@dataclass(frozen=True, slots=True)
class Rejection:
    """One tag or attribute the filter removed."""

    tag: str
    reason: RejectReason
    attribute: str | None = None
    value: str | None = None


REPORT_HEADER = "the following tags and attributes have been stripped:"


def _escape_report(text: str | None) -> str:
    # Reports quote untrusted input and are often shown in a browser.
    if not text:
        return ""
    return str(text).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")


def format_report(rejections: list[Rejection]) -> str:
    lines = [REPORT_HEADER]
    for rejection in rejections:
        tag = f"&lt;{_escape_report(rejection.tag)}&gt;"
        if rejection.attribute:
            line = f'{_escape_report(rejection.attribute)}="{_escape_report(rejection.value)}" from the tag {tag}'
            if rejection.reason is RejectReason.URL:
                line += "(url disallowed)"
            lines.append(line)
        else:
            lines.append(tag)
    return "\n".join(lines) + "\n"


EchoTarget = Callable[[str], object]


def _write_stdout(text: str) -> None:
    sys.stdout.write(text)


def _echo_target(echo: bool | TextIO | EchoTarget | None) -> EchoTarget | None:
    if not echo:
        return None
    if isinstance(echo, (bool, int)):
        return _write_stdout
    write = getattr(echo, "write", None)
    if callable(write):
        return write
    if callable(echo):
        return echo
    raise TypeError(f"echo must be a bool, a writable stream or a callable, not {type(echo).__name__}")


class OutputSink:
    """Collects sanitized text and rejection records for one document.

    In echo mode text is handed to the echo target as soon as it is produced
    and nothing is buffered.
    """

    __slots__ = ("_chunks", "_echo", "_rejections", "errors", "input_seen", "log_rejects")

    def __init__(
        self,
        *,
        echo: bool | TextIO | EchoTarget | None = None,
        log_rejects: bool = False,
        errors: list[FilterError] | None = None,
    ) -> None:
        self._chunks: list[str] = []
        self._rejections: list[Rejection] = []
        self._echo = _echo_target(echo)
        self.log_rejects = bool(log_rejects)
        self.errors = errors if errors is not None else []
        self.input_seen = False

    @property
    def echoing(self) -> bool:
        return self._echo is not None

    def append(self, text: str) -> None:
        if not text:
            return
        if self._echo is not None:
            self._echo(text)
        else:
            self._chunks.append(text)

    def take_output(self) -> str:
        output = "".join(self._chunks)
        self._chunks.clear()
        if not output and self.input_seen and self._echo is None:
            self.errors.append(FilterError("no-output", "no output from filter"))
        self.input_seen = False
        return output

    def reset(self) -> None:
        self._chunks.clear()
        self._rejections.clear()
        self.input_seen = False

    def log_rejection(self, rejection: Rejection) -> None:
        if self.log_rejects:
            self._rejections.append(rejection)

    def drain_report(self, structured: bool = False) -> list[Rejection] | str | None:
        """Return and clear the rejection log.

        Structured: the list of `Rejection` records (empty when there is
        nothing to report). Otherwise a readable summary, or None.
        """
        rejections = list(self._rejections)
        self._rejections.clear()
        if structured:
            return rejections
        if not self.log_rejects or not rejections:
            return None
        return format_report(rejections)
