class Tag:
    __slots__ = ("attrs", "kind", "name", "self_closing")

    START = 0
    END = 1

    def __init__(self, kind, name, attrs=None, self_closing=False):
        self.kind = kind
        self.name = name
        # Flat list [name1, value1, name2, value2, ...] in source order.
        self.attrs = attrs if attrs is not None else []
        self.self_closing = bool(self_closing)

    def __repr__(self):
        parts = []
        attrs = self.attrs
        for index in range(0, len(attrs), 2):
            parts.append(f"{attrs[index]}={attrs[index + 1]!r}")
        closing = " /" if self.self_closing else ""
        kind_str = "start" if self.kind == self.START else "end"
        return f"<{kind_str}:{self.name}{closing} {' '.join(parts)}>"


class CharacterTokens:
    __slots__ = ("data",)

    def __init__(self, data):
        self.data = data

    def __repr__(self):
        return f"CharacterTokens({self.data!r})"


class CommentToken:
    __slots__ = ("data",)

    def __init__(self, data):
        self.data = data

    def __repr__(self):
        return f"CommentToken({self.data!r})"


class EOFToken:
    __slots__ = ()

    def __repr__(self):
        return "EOFToken()"


class FilterError:
    """A non-fatal problem recorded while configuring or running a filter."""

    __slots__ = ("code", "level", "message")

    WARNING = "warning"
    ERROR = "error"

    def __init__(self, code, message=None, level=WARNING):
        self.code = code
        self.message = message or code
        self.level = level

    def __repr__(self):
        return f"FilterError({self.code!r}, level={self.level!r})"

    def __str__(self):
        return f"[{self.level}] {self.message}"

    def __eq__(self, other):
        if not isinstance(other, FilterError):
            return NotImplemented
        return self.code == other.code and self.level == other.level and self.message == other.message

    __hash__ = None  # Unhashable since we define __eq__
