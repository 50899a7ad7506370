"""HTML character reference decoding.

Named references come from Python's HTML5 entity table; numeric references
follow the HTML5 replacement rules for the C1 control range.
"""

import html.entities
import re

# Keys without the trailing semicolon; html5 lists the legacy (semicolon-less)
# forms separately, so those keep their own entries.
NAMED_ENTITIES = {}
LEGACY_ENTITIES = set()
for _key, _value in html.entities.html5.items():
    if _key.endswith(";"):
        NAMED_ENTITIES[_key[:-1]] = _value
    else:
        LEGACY_ENTITIES.add(_key)
        NAMED_ENTITIES.setdefault(_key, _value)

_LONGEST_LEGACY = max(len(name) for name in LEGACY_ENTITIES)

# Windows-1252 code points that numeric references in 0x80-0x9F map to.
NUMERIC_REPLACEMENTS = {
    0x00: "\ufffd", 0x80: "\u20ac", 0x82: "\u201a", 0x83: "\u0192", 0x84: "\u201e",
    0x85: "\u2026", 0x86: "\u2020", 0x87: "\u2021", 0x88: "\u02c6", 0x89: "\u2030",
    0x8a: "\u0160", 0x8b: "\u2039", 0x8c: "\u0152", 0x8e: "\u017d", 0x91: "\u2018",
    0x92: "\u2019", 0x93: "\u201c", 0x94: "\u201d", 0x95: "\u2022", 0x96: "\u2013",
    0x97: "\u2014", 0x98: "\u02dc", 0x99: "\u2122", 0x9a: "\u0161", 0x9b: "\u203a",
    0x9c: "\u0153", 0x9e: "\u017e", 0x9f: "\u0178",
}

_REFERENCE_PATTERN = re.compile(r"&(?:#([xX][0-9a-fA-F]+|[0-9]+);?|([A-Za-z][A-Za-z0-9]*)(;?))")

# A reference that may still be completed by the next chunk of input.
_TRAILING_PARTIAL_PATTERN = re.compile(r"&(?:#[xX]?[0-9a-fA-F]*|[A-Za-z][A-Za-z0-9]*)?$")


def decode_numeric_entity(digits):
    """Decode the digits of `&#NNN;` / `&#xHHH;` (without `&#` and `;`)."""
    if digits[:1] in ("x", "X"):
        codepoint = int(digits[1:], 16)
    else:
        codepoint = int(digits, 10)
    if codepoint in NUMERIC_REPLACEMENTS:
        return NUMERIC_REPLACEMENTS[codepoint]
    if codepoint > 0x10FFFF or 0xD800 <= codepoint <= 0xDFFF:
        return "\ufffd"
    return chr(codepoint)


def _decode_named(name, has_semicolon, following, in_attribute):
    if has_semicolon and name in NAMED_ENTITIES:
        return NAMED_ENTITIES[name], len(name) + 1
    # Without a semicolon only the legacy names decode, longest prefix first.
    for k in range(min(len(name), _LONGEST_LEGACY), 0, -1):
        prefix = name[:k]
        if prefix not in LEGACY_ENTITIES:
            continue
        next_char = name[k] if k < len(name) else (";" if has_semicolon else following)
        if in_attribute and next_char and (next_char.isalnum() or next_char == "="):
            return None, 0
        return NAMED_ENTITIES[prefix], k
    return None, 0


def decode_entities_in_text(text, in_attribute=False):
    """Decode every character reference in `text`.

    Unknown references are left as written. In attribute values a legacy
    reference followed by an alphanumeric or `=` is not decoded, so query
    strings like `?a=1&copy=2` survive.
    """
    if "&" not in text:
        return text

    result = []
    pos = 0
    length = len(text)
    for match in _REFERENCE_PATTERN.finditer(text):
        start = match.start()
        result.append(text[pos:start])
        digits, name, semicolon = match.groups()
        if digits is not None:
            result.append(decode_numeric_entity(digits))
            pos = match.end()
            continue
        end = match.end()
        following = text[end] if end < length else ""
        decoded, consumed = _decode_named(name, bool(semicolon), following, in_attribute)
        if decoded is None:
            result.append(match.group(0))
            pos = match.end()
            continue
        result.append(decoded)
        pos = start + 1 + consumed
    result.append(text[pos:])
    return "".join(result)


def split_trailing_reference(text):
    """Split `text` into (complete, held_back) at an unfinished trailing reference.

    Used while streaming so that `&am` + `p;` decodes the same as `&amp;`.
    """
    match = _TRAILING_PARTIAL_PATTERN.search(text)
    if match is None:
        return text, ""
    return text[: match.start()], text[match.start() :]
