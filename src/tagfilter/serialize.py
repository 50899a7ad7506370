"""Rendering of the tags and comments that survive filtering.

Attribute values arrive here already cleaned by `XssGuard`; nothing is
escaped a second time, so switching XSS protection off really does emit the
values as they were decoded.
"""

from __future__ import annotations


def serialize_start_tag(name: str, attrs: list[tuple[str, str]], *, self_closing: bool = False) -> str:
    parts: list[str] = ["<", name]
    for key, value in attrs:
        parts.extend([" ", key, '="', value, '"'])
    parts.append(" />" if self_closing else ">")
    return "".join(parts)


def serialize_end_tag(name: str) -> str:
    return f"</{name}>"


def serialize_comment(data: str) -> str:
    return f"<!--{data}-->"
