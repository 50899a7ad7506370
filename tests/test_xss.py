from __future__ import annotations

import dataclasses
import unittest
from urllib.parse import unquote

from tagfilter.settings import DEFAULT_PERMITTED_PROTOCOLS, DEFAULT_RISKY_ATTRIBUTES, FilterSettings
from tagfilter.xss import XssGuard, obfuscate_mailto


class TestMailtoObfuscation(unittest.TestCase):
    def test_every_byte_is_percent_encoded(self) -> None:
        assert obfuscate_mailto("mailto:will@x.org") == "mailto:%77%69%6C%6C%40%78%2E%6F%72%67"

    def test_encoded_address_still_decodes(self) -> None:
        address = "mailto:someone.else+tag@example.co.uk"
        assert unquote(obfuscate_mailto(address)) == address

    def test_non_ascii_is_encoded_as_utf8(self) -> None:
        assert obfuscate_mailto("mailto:\u00e9@x") == "mailto:%C3%A9%40%78"

    def test_other_values_and_disabled(self) -> None:
        assert obfuscate_mailto("http://x.org/") == "http://x.org/"
        assert obfuscate_mailto("mailto:a@b", enabled=False) == "mailto:a@b"


class TestSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = FilterSettings()
        assert settings.xss_protection
        assert settings.risky_attributes == DEFAULT_RISKY_ATTRIBUTES
        assert settings.permitted_protocols == DEFAULT_PERMITTED_PROTOCOLS
        assert settings.allow_local_links

    def test_names_are_normalized(self) -> None:
        settings = FilterSettings(risky_attributes=["SRC ", "Data"], permitted_protocols="HTTPS:")
        assert settings.risky_attributes == frozenset({"src", "data"})
        assert settings.permitted_protocols == frozenset({"https"})

    def test_frozen(self) -> None:
        with self.assertRaises(dataclasses.FrozenInstanceError):
            FilterSettings().echo = True  # type: ignore[misc]


class TestXssGuard(unittest.TestCase):
    def setUp(self) -> None:
        self.guard = XssGuard(FilterSettings())

    def test_attribute_values_cannot_break_out(self) -> None:
        assert self.guard.clean_attribute("a\"b'c<d>", "title") == "a&quot;b&rsquot;c&lt;d&gt;"

    def test_mailto_links_are_obfuscated(self) -> None:
        assert self.guard.clean_attribute("mailto:a@b", "href") == "mailto:%61%40%62"
        assert self.guard.clean_attribute("mailto:a@b", "title") == "mailto:a@b"

    def test_text_angle_brackets_are_escaped(self) -> None:
        assert self.guard.clean_text("<script>&") == "&lt;script&gt;&"

    def test_skip_flags(self) -> None:
        off = XssGuard(FilterSettings(xss_protection=False))
        assert off.clean_attribute('"><x', "href") == '"><x'
        assert off.clean_attribute("mailto:a@b", "href") == "mailto:a@b"
        assert off.clean_text("<x>") == "<x>"
        assert off.url_permitted("href", "javascript:x")

        no_ltgt = XssGuard(FilterSettings(ltgt_entification=False))
        assert no_ltgt.clean_text("<x>") == "<x>"
        assert no_ltgt.clean_attribute("<x>", "title") == "&lt;x&gt;"

        no_mailto = XssGuard(FilterSettings(mailto_entification=False))
        assert no_mailto.clean_attribute("mailto:a@b", "href") == "mailto:a@b"

    def test_url_schemes(self) -> None:
        guard = self.guard
        assert not guard.url_permitted("href", "javascript:alert(1)")
        assert not guard.url_permitted("SRC", "JavaScript:alert(1)")
        assert not guard.url_permitted("src", "data:image/png;base64,AAAA")
        assert guard.url_permitted("href", "HTTPS://x.org/")
        assert guard.url_permitted("href", "mailto:a@b")
        assert guard.url_permitted("href", "page.html")
        assert guard.url_permitted("title", "javascript:alert(1)")

    def test_scheme_hidden_behind_references_or_whitespace(self) -> None:
        guard = self.guard
        assert not guard.url_permitted("href", "javascript&#58;alert(1)")
        assert not guard.url_permitted("href", "javascript&amp;#58;alert(1)")
        assert not guard.url_permitted("href", "java&#x09;script:alert(1)")
        assert not guard.url_permitted("href", "java\nscript:alert(1)")
        assert not guard.url_permitted("href", " \x01javascript:alert(1)")
        assert guard.url_permitted("href", "http://x.org/?a=1&amp;b=2")

    def test_local_links(self) -> None:
        assert self.guard.url_permitted("href", "/cgi:bin")
        assert self.guard.url_permitted("href", "../up:one")
        strict = XssGuard(FilterSettings(allow_local_links=False))
        assert not strict.url_permitted("href", "/cgi:bin")
        assert strict.url_permitted("href", "/plain/path")

    def test_custom_lists_replace_defaults(self) -> None:
        guard = XssGuard(FilterSettings(risky_attributes=["data"], permitted_protocols=["gopher"]))
        assert guard.url_permitted("href", "javascript:x")
        assert not guard.url_permitted("data", "http://x.org/")
        assert guard.url_permitted("data", "gopher://x.org/")


if __name__ == "__main__":
    unittest.main()
