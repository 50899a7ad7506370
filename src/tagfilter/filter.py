"""The tag filter.

`TagFilter` is the sink the tokenizer pushes tokens into. Every token is
decided on its own, in document order:

- a start tag survives only if the rules permit the tag; its attributes
  survive only if the rules permit them and, for URL-valued attributes, the
  URL has a permitted scheme;
- an end tag survives if the tag is permitted at the moment it is seen;
- text is escaped;
- comments are escaped like text, or dropped with `strip_comments`.

Nothing is remembered between tokens, so a rule change in the middle of a
document can leave a start tag without its end tag or the other way round.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Collection
from typing import Any, TextIO

from .output import EchoTarget, OutputSink, RejectReason, Rejection
from .rules import DEFAULT_ALLOW_RULES, DEFAULT_DENY_RULES, RuleStore
from .serialize import serialize_comment, serialize_end_tag, serialize_start_tag
from .settings import FilterSettings
from .tokenizer import Tokenizer, TokenizerOpts
from .tokens import CharacterTokens, CommentToken, FilterError, Tag
from .xss import XssGuard

__version__ = "1.0.0"

TextFilter = Callable[[str], str]

# attribute_filter(tag, attr, value) returns the value to keep (possibly
# rewritten) or None to drop the attribute.
AttributeFilter = Callable[[str, str, str], str | None]


class TagFilter:
    __slots__ = (
        "attribute_filter",
        "errors",
        "rules",
        "settings",
        "sink",
        "text_filter",
        "tokenizer",
        "xss",
    )

    def __init__(
        self,
        *,
        allow: Any = None,
        deny: Any = None,
        log_rejects: bool = False,
        strip_comments: bool = False,
        echo: bool | TextIO | EchoTarget = False,
        skip_xss_protection: bool = False,
        skip_ltgt_entification: bool = False,
        skip_mailto_entification: bool = False,
        xss_risky_attributes: Collection[str] | None = None,
        xss_permitted_protocols: Collection[str] | None = None,
        xss_allow_local_links: bool | None = None,
        text_filter: TextFilter | None = None,
        attribute_filter: AttributeFilter | None = None,
        tokenizer_opts: TokenizerOpts | None = None,
        **options: Any,
    ) -> None:
        self.errors: list[FilterError] = []

        # The built-in rules apply only when the caller supplies neither set.
        if allow is None and deny is None:
            self.rules = RuleStore(DEFAULT_ALLOW_RULES, DEFAULT_DENY_RULES, errors=self.errors)
        else:
            self.rules = RuleStore(errors=self.errors)
            self.rules.allow(allow)
            self.rules.deny(deny)

        overrides: dict[str, Any] = {}
        if xss_risky_attributes is not None:
            overrides["risky_attributes"] = xss_risky_attributes
        if xss_permitted_protocols is not None:
            overrides["permitted_protocols"] = xss_permitted_protocols
        if xss_allow_local_links is not None:
            overrides["allow_local_links"] = bool(xss_allow_local_links)
        self.settings = FilterSettings(
            log_rejects=bool(log_rejects),
            echo=bool(echo),
            strip_comments=bool(strip_comments),
            xss_protection=not skip_xss_protection,
            ltgt_entification=not skip_ltgt_entification,
            mailto_entification=not skip_mailto_entification,
            **overrides,
        )

        self.xss = XssGuard(self.settings)
        self.sink = OutputSink(echo=echo, log_rejects=self.settings.log_rejects, errors=self.errors)
        self.text_filter = text_filter
        self.attribute_filter = attribute_filter
        self.tokenizer = Tokenizer(self, tokenizer_opts)

        for key in options:
            self.errors.append(FilterError("unknown-option", f"ignored unknown config field: {key}"))

    # ---------------------
    # Public API
    # ---------------------

    def filter(self, text: str) -> str:
        """Filter a complete document and return the result.

        Any output still waiting from `parse()` is discarded first. In echo
        mode the result has already been written and "" is returned.
        """
        self.sink.reset()
        self.tokenizer.reset()
        self.parse(text)
        if self.sink.echoing:
            self.tokenizer.finish()
            return ""
        return self.output()

    def parse(self, text: str) -> TagFilter:
        """Feed one chunk of a document; call `output()` after the last one."""
        if text:
            self.sink.input_seen = True
            self.tokenizer.feed(text)
        return self

    def output(self) -> str:
        """Finish the current document and return (and clear) its output."""
        self.tokenizer.finish()
        return self.sink.take_output()

    def allow(self, tree: Any = None) -> None:
        self.rules.allow(tree)

    def deny(self, tree: Any = None) -> None:
        self.rules.deny(tree)

    def clear_rules(self) -> None:
        self.rules.clear()

    @property
    def allows(self) -> dict[str, dict[str, list[str]]]:
        return self.rules.allows

    @property
    def denies(self) -> dict[str, dict[str, list[str]]]:
        return self.rules.denies

    def report(self, structured: bool = False) -> list[Rejection] | str | None:
        """Return and clear the log of removed tags and attributes.

        Requires `log_rejects`. With `structured=True` a list of `Rejection`
        records is returned, otherwise a summary string (None if there is
        nothing to report).
        """
        return self.sink.drain_report(structured)

    def error_log(self) -> str:
        if not self.errors:
            return ""
        return "TagFilter errors:\n" + "\n".join(str(error) for error in self.errors)

    def logging(self, enabled: bool | None = None) -> bool:
        """Get, or set, whether rejections are logged."""
        if enabled is not None:
            self._update_settings(log_rejects=bool(enabled))
        return self.settings.log_rejects

    def xss_risky_attributes(self, *names: str) -> frozenset[str]:
        """Get, or replace, the attributes whose values are checked as URLs."""
        if names:
            self._update_settings(risky_attributes=names)
        return frozenset(self.settings.risky_attributes)

    def xss_permitted_protocols(self, *schemes: str) -> frozenset[str]:
        """Get, or replace, the URL schemes allowed in risky attributes."""
        if schemes:
            self._update_settings(permitted_protocols=schemes)
        return frozenset(self.settings.permitted_protocols)

    def xss_allow_local_links(self, enabled: bool | None = None) -> bool:
        """Get, or set, whether `/...` and `../...` links pass the URL check."""
        if enabled is not None:
            self._update_settings(allow_local_links=bool(enabled))
        return self.settings.allow_local_links

    @staticmethod
    def version() -> str:
        return __version__

    def _update_settings(self, **changes: Any) -> None:
        self.settings = dataclasses.replace(self.settings, **changes)
        self.xss.settings = self.settings
        self.sink.log_rejects = self.settings.log_rejects

    # ---------------------
    # Token sink
    # ---------------------

    def process_token(self, token: Any) -> None:
        if isinstance(token, CharacterTokens):
            self._handle_text(token.data)
        elif isinstance(token, Tag):
            if token.kind == Tag.START:
                self._handle_start_tag(token)
            else:
                self._handle_end_tag(token.name)
        elif isinstance(token, CommentToken):
            self._handle_comment(token.data)
        # EOFToken: nothing is held here, so there is nothing to flush.

    def _handle_start_tag(self, tag: Tag) -> None:
        name = tag.name
        if not self.rules.tag_permitted(name):
            self.sink.log_rejection(Rejection(name, RejectReason.TAG))
            return

        kept: list[tuple[str, str]] = []
        attrs = tag.attrs
        for index in range(0, len(attrs), 2):
            attr = attrs[index]
            value = attrs[index + 1]
            if not self.rules.attribute_permitted(name, attr, value):
                self.sink.log_rejection(Rejection(name, RejectReason.ATTRIBUTE, attr, value))
                continue
            if self.attribute_filter is not None:
                value = self.attribute_filter(name, attr, value)
                if value is None:
                    continue
            if not self.xss.url_permitted(attr, value):
                self.sink.log_rejection(Rejection(name, RejectReason.URL, attr, value))
                continue
            kept.append((attr, self.xss.clean_attribute(value, attr)))

        self.sink.append(serialize_start_tag(name, kept, self_closing=tag.self_closing))

    def _handle_end_tag(self, name: str) -> None:
        # Re-derived from the rules, not from whether the start tag survived.
        if self.rules.tag_permitted(name):
            self.sink.append(serialize_end_tag(name))

    def _handle_text(self, text: str) -> None:
        if self.text_filter is not None:
            text = self.text_filter(text)
        self.sink.append(self.xss.clean_text(text))

    def _handle_comment(self, text: str) -> None:
        if self.settings.strip_comments:
            return
        self.sink.append(serialize_comment(self.xss.clean_text(text)))


def filter_html(text: str, **options: Any) -> str:
    """One-shot helper: `TagFilter(**options).filter(text)`."""
    return TagFilter(**options).filter(text)
