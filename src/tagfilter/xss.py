"""Cross-site scripting defences applied to everything the filter emits."""

from __future__ import annotations

import re

from .entities import decode_entities_in_text
from .settings import FilterSettings

MAILTO_PREFIX = "mailto:"

# The attribute that holds a link destination, and so may hold a mailto: URL.
LINK_ATTRIBUTE = "href"

# Local links: absolute paths and parent-relative paths.
_LOCAL_LINK_PREFIXES = ("/", "../")

# Browsers drop these anywhere in a URL before reading the scheme.
_URL_IGNORED_CHARS = re.compile(r"[\t\n\r]")
_URL_LEADING_JUNK = "".join(chr(code) for code in range(0x21))


def obfuscate_mailto(value: str, enabled: bool = True) -> str:
    """Percent-encode every byte of a mailto: address.

    `mailto:will@x.org` becomes `mailto:%77%69%6C%6C%40%78%2E%6F%72%67`. The
    scheme stays readable so the link still works; the address no longer
    matches naive harvesting patterns.
    """
    if not enabled or not value.startswith(MAILTO_PREFIX):
        return value
    address = value[len(MAILTO_PREFIX) :]
    return MAILTO_PREFIX + "".join(f"%{byte:02X}" for byte in address.encode("utf-8"))


def _escape_attr_value(value: str) -> str:
    # Order matters: quotes first, then angle brackets.
    value = value.replace('"', "&quot;")
    value = value.replace("'", "&rsquot;")
    value = value.replace("<", "&lt;")
    return value.replace(">", "&gt;")


def _escape_text(text: str) -> str:
    return text.replace(">", "&gt;").replace("<", "&lt;")


def _url_as_browser_reads_it(value: str) -> str:
    # Only <>"' are escaped on output, so the browser still decodes "&#58;".
    while "&" in value:
        decoded = decode_entities_in_text(value, in_attribute=True)
        if decoded == value:
            break
        value = decoded
    return _URL_IGNORED_CHARS.sub("", value).lstrip(_URL_LEADING_JUNK)


class XssGuard:
    __slots__ = ("settings",)

    def __init__(self, settings: FilterSettings) -> None:
        self.settings = settings

    def clean_attribute(self, value: str, attribute: str) -> str:
        """Escape an attribute value so it cannot break out of its quotes."""
        settings = self.settings
        if not settings.xss_protection:
            return value
        value = _escape_attr_value(value)
        if attribute == LINK_ATTRIBUTE:
            return obfuscate_mailto(value, settings.mailto_entification)
        return value

    def clean_text(self, text: str) -> str:
        settings = self.settings
        if not settings.xss_protection or not settings.ltgt_entification:
            return text
        return _escape_text(text)

    def is_risky(self, attribute: str) -> bool:
        return attribute.lower() in self.settings.risky_attributes

    def url_permitted(self, attribute: str, value: str | None) -> bool:
        """Check a URL-valued attribute for a permitted scheme.

        Relative references (no colon at all) always pass. Local links pass
        when `allow_local_links` is on. Anything else needs its scheme in
        `permitted_protocols`.
        """
        settings = self.settings
        if not settings.xss_protection or not self.is_risky(attribute):
            return True
        value = _url_as_browser_reads_it(value or "")
        if settings.allow_local_links and value.startswith(_LOCAL_LINK_PREFIXES):
            return True
        scheme, colon, _ = value.partition(":")
        if not colon:
            return True
        return scheme.lower() in settings.permitted_protocols
