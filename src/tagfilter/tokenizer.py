"""Push-based HTML tokenizer.

The tokenizer turns markup into a stream of tokens delivered, in document
order, to `sink.process_token(token)`:

- `Tag` (start tags with an ordered, flat attribute list; end tags)
- `CharacterTokens` (character references already decoded)
- `CommentToken` (raw comment body)
- `EOFToken` (once, when `finish()` or `run()` completes)

Input may arrive in chunks through `feed()`. Anything that could still be
completed by the next chunk (an open tag, a comment, a trailing character
reference) is held back until more input or end of input arrives.
"""

import re
import sys

from .entities import decode_entities_in_text, split_trailing_reference
from .tokens import CharacterTokens, CommentToken, EOFToken, Tag

_ASCII_LOWER_TABLE = str.maketrans({chr(code): chr(code + 32) for code in range(65, 91)})

_SPACE_PATTERN = re.compile(r"[\t\n\f\r ]*")
_TAG_NAME_PATTERN = re.compile(r"[^\t\n\f\r />]*")
_ATTR_NAME_PATTERN = re.compile(r"[^\t\n\f\r />][^\t\n\f\r />=]*")
_ATTR_VALUE_UNQUOTED_PATTERN = re.compile(r"[^\t\n\f\r >]*")
_END_TAG_PATTERN = re.compile(r"</([A-Za-z][^\t\n\f\r />]*)[^>]*>")

# Elements whose content is not markup. Character references are decoded only
# inside the RCDATA ones.
RAWTEXT_ELEMENTS = frozenset({"script", "style", "xmp", "iframe", "noembed", "noframes", "textarea", "title"})
_RCDATA_ELEMENTS = frozenset({"textarea", "title"})


class TokenizerOpts:
    __slots__ = ("discard_bom", "rawtext_elements")

    def __init__(self, discard_bom=True, rawtext_elements=None):
        self.discard_bom = bool(discard_bom)
        self.rawtext_elements = RAWTEXT_ELEMENTS if rawtext_elements is None else frozenset(rawtext_elements)


class Tokenizer:
    DATA = 0
    TAG_OPEN = 1
    RAWTEXT = 2

    __slots__ = (
        "buffer",
        "opts",
        "pos",
        "rawtext_end_pattern",
        "rawtext_tag_name",
        "sink",
        "started",
        "state",
    )

    def __init__(self, sink, opts=None):
        self.sink = sink
        self.opts = opts or TokenizerOpts()
        self.reset()

    def reset(self):
        self.state = self.DATA
        self.buffer = ""
        self.pos = 0
        self.started = False
        self.rawtext_tag_name = None
        self.rawtext_end_pattern = None

    def run(self, html):
        """Tokenize a complete document in one call."""
        self.reset()
        self.feed(html)
        self.finish()

    def feed(self, chunk):
        if not chunk:
            return
        if not self.started:
            self.started = True
            if chunk[0] == "\ufeff" and self.opts.discard_bom:
                chunk = chunk[1:]
        self.buffer = self.buffer[self.pos :] + chunk
        self.pos = 0
        self._pump(at_eof=False)

    def finish(self):
        """Flush everything held back and signal end of input."""
        self._pump(at_eof=True)
        self.reset()
        self.sink.process_token(EOFToken())

    # ---------------------
    # Driver
    # ---------------------

    def _pump(self, at_eof):
        while True:
            state = self.state
            if state == self.DATA:
                if self._state_data(at_eof):
                    break
            elif state == self.TAG_OPEN:
                if self._state_tag_open(at_eof):
                    break
            elif state == self.RAWTEXT:
                if self._state_rawtext(at_eof):
                    break
            else:
                self.state = self.DATA
        if self.pos:
            self.buffer = self.buffer[self.pos :]
            self.pos = 0

    # ---------------------
    # State handlers
    # ---------------------
    # Each handler returns True when it cannot make progress without more
    # input (or has consumed everything at end of input).

    def _state_data(self, at_eof):
        buffer = self.buffer
        pos = self.pos
        lt = buffer.find("<", pos)
        if lt == -1:
            chunk = buffer[pos:]
            held = ""
            if not at_eof:
                chunk, held = split_trailing_reference(chunk)
            self._emit_text(chunk, decode=True)
            self.pos = len(buffer) - len(held)
            return True
        self._emit_text(buffer[pos:lt], decode=True)
        self.pos = lt
        self.state = self.TAG_OPEN
        return False

    def _state_tag_open(self, at_eof):
        buffer = self.buffer
        pos = self.pos
        if pos + 1 >= len(buffer):
            if not at_eof:
                return True
            self._emit_literal("<", 1)
            return False
        c = buffer[pos + 1]
        if c == "!":
            if buffer.startswith("<!--", pos):
                return self._consume_comment(at_eof)
            if not at_eof and "<!--".startswith(buffer[pos:]):
                return True
            return self._consume_declaration(at_eof)
        if c == "?":
            return self._consume_declaration(at_eof)
        if c == "/":
            return self._consume_end_tag(at_eof)
        if ("a" <= c <= "z") or ("A" <= c <= "Z"):
            return self._consume_start_tag(at_eof)
        # A '<' that does not start markup is plain text.
        self._emit_literal("<", 1)
        return False

    def _state_rawtext(self, at_eof):
        buffer = self.buffer
        pos = self.pos
        decode = self.rawtext_tag_name in _RCDATA_ELEMENTS
        match = self.rawtext_end_pattern.search(buffer, pos)
        if match is not None:
            self._emit_text(buffer[pos : match.start()], decode=decode)
            self.pos = match.start()
            self.rawtext_tag_name = None
            self.rawtext_end_pattern = None
            self.state = self.TAG_OPEN
            return False
        end = len(buffer)
        if not at_eof:
            # Keep a possible partial "</name" for the next chunk.
            lt = buffer.rfind("<", pos)
            if lt != -1 and end - lt <= len(self.rawtext_tag_name) + 2:
                end = lt
            chunk = buffer[pos:end]
            if decode:
                chunk, held = split_trailing_reference(chunk)
                end -= len(held)
            self._emit_text(chunk, decode=decode)
        else:
            self._emit_text(buffer[pos:], decode=decode)
        self.pos = end
        return True

    # ---------------------
    # Markup constructs
    # ---------------------

    def _consume_comment(self, at_eof):
        buffer = self.buffer
        start = self.pos + 4
        # "<!-->" and "<!--->" are abruptly closed empty comments.
        if buffer.startswith(">", start):
            return self._finish_comment("", start + 1)
        if buffer.startswith("->", start):
            return self._finish_comment("", start + 2)
        end = buffer.find("-->", start)
        if end == -1:
            if not at_eof:
                return True
            return self._finish_comment(buffer[start:], len(buffer))
        return self._finish_comment(buffer[start:end], end + 3)

    def _finish_comment(self, data, end):
        self.pos = end
        self.state = self.DATA
        self.sink.process_token(CommentToken(data))
        return False

    def _consume_declaration(self, at_eof):
        # <!DOCTYPE ...>, <!ELEMENT ...>, <?php ... ?> and friends are passed
        # through as raw text.
        buffer = self.buffer
        end = buffer.find(">", self.pos + 2)
        if end == -1:
            if not at_eof:
                return True
            end = len(buffer) - 1
        self._emit_literal(buffer[self.pos : end + 1], end + 1 - self.pos)
        return False

    def _consume_end_tag(self, at_eof):
        buffer = self.buffer
        pos = self.pos
        if pos + 2 >= len(buffer):
            if not at_eof:
                return True
            self._emit_literal(buffer[pos:], len(buffer) - pos)
            return False
        c = buffer[pos + 2]
        if c == ">":
            # "</>" is dropped entirely.
            self.pos = pos + 3
            self.state = self.DATA
            return False
        if not (("a" <= c <= "z") or ("A" <= c <= "Z")):
            return self._consume_declaration(at_eof)
        match = _END_TAG_PATTERN.match(buffer, pos)
        if match is None:
            return self._incomplete_tag(at_eof)
        self.pos = match.end()
        self.state = self.DATA
        name = sys.intern(match.group(1).translate(_ASCII_LOWER_TABLE))
        self.sink.process_token(Tag(Tag.END, name))
        return False

    def _consume_start_tag(self, at_eof):
        buffer = self.buffer
        length = len(buffer)
        match = _TAG_NAME_PATTERN.match(buffer, self.pos + 1)
        name = sys.intern(match.group(0).translate(_ASCII_LOWER_TABLE))
        i = match.end()
        attrs = []
        seen = set()
        self_closing = False
        while True:
            i = _SPACE_PATTERN.match(buffer, i).end()
            if i >= length:
                return self._incomplete_tag(at_eof)
            c = buffer[i]
            if c == ">":
                i += 1
                break
            if c == "/":
                i += 1
                if i < length and buffer[i] == ">":
                    self_closing = True
                    i += 1
                    break
                continue

            match = _ATTR_NAME_PATTERN.match(buffer, i)
            attr_name = match.group(0).translate(_ASCII_LOWER_TABLE)
            i = _SPACE_PATTERN.match(buffer, match.end()).end()
            if i >= length:
                return self._incomplete_tag(at_eof)
            value = ""
            if buffer[i] == "=":
                i = _SPACE_PATTERN.match(buffer, i + 1).end()
                if i >= length:
                    return self._incomplete_tag(at_eof)
                quote = buffer[i]
                if quote == '"' or quote == "'":
                    end = buffer.find(quote, i + 1)
                    if end == -1:
                        return self._incomplete_tag(at_eof)
                    value = buffer[i + 1 : end]
                    i = end + 1
                else:
                    match = _ATTR_VALUE_UNQUOTED_PATTERN.match(buffer, i)
                    value = match.group(0)
                    i = match.end()
                    if i >= length:
                        return self._incomplete_tag(at_eof)
                if "&" in value:
                    value = decode_entities_in_text(value, in_attribute=True)

            # Duplicate attributes: the first occurrence wins.
            if attr_name not in seen:
                seen.add(attr_name)
                attrs.append(attr_name)
                attrs.append(value)

        self.pos = i
        self.state = self.DATA
        if name in self.opts.rawtext_elements:
            self.state = self.RAWTEXT
            self.rawtext_tag_name = name
            self.rawtext_end_pattern = re.compile(r"</" + re.escape(name) + r"(?=[\t\n\f\r />])", re.IGNORECASE)
        self.sink.process_token(Tag(Tag.START, name, attrs, self_closing))
        return False

    def _incomplete_tag(self, at_eof):
        if at_eof:
            # A tag cut off by end of input is dropped.
            self.pos = len(self.buffer)
            self.state = self.DATA
        return True

    # ---------------------
    # Helper methods
    # ---------------------

    def _emit_literal(self, text, consumed):
        self.pos += consumed
        self.state = self.DATA
        self._emit_text(text, decode=False)

    def _emit_text(self, data, decode):
        if not data:
            return
        if decode and "&" in data:
            data = decode_entities_in_text(data)
        self.sink.process_token(CharacterTokens(data))
