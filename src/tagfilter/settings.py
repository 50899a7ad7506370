"""Filter settings.

A `FilterSettings` value is fixed for the lifetime of a filter pass. The
setters on `TagFilter` replace it wholesale with `dataclasses.replace()`.
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass, field

# Attributes whose values are URLs and get checked for a permitted scheme.
DEFAULT_RISKY_ATTRIBUTES: frozenset[str] = frozenset({"src", "href", "cite", "lowsrc", "background"})

DEFAULT_PERMITTED_PROTOCOLS: frozenset[str] = frozenset({"http", "https", "mailto", "ftp"})


@dataclass(frozen=True, slots=True)
class FilterSettings:
    log_rejects: bool = False
    echo: bool = False
    strip_comments: bool = False

    xss_protection: bool = True
    ltgt_entification: bool = True
    mailto_entification: bool = True

    # Replacements, never extensions, of the defaults above.
    risky_attributes: Collection[str] = field(default_factory=lambda: DEFAULT_RISKY_ATTRIBUTES)
    permitted_protocols: Collection[str] = field(default_factory=lambda: DEFAULT_PERMITTED_PROTOCOLS)
    allow_local_links: bool = True

    def __post_init__(self) -> None:
        # Attribute names and schemes are matched in lowercase; normalize once here.
        object.__setattr__(self, "risky_attributes", _lowered(self.risky_attributes))
        object.__setattr__(self, "permitted_protocols", _lowered(self.permitted_protocols, strip=":"))


def _lowered(names: Collection[str] | str, strip: str = "") -> frozenset[str]:
    if isinstance(names, str):
        names = [names]
    return frozenset(str(name).strip().lower().rstrip(strip) for name in names)
