"""Allow/deny rule trees and the permission queries built on them.

Rules arrive as nested mappings, tag -> attribute -> list of values::

    {
        "p": {"class": ["lurid", "sombre", "plain"]},
        "a": {"href": [], "target": ["_blank"]},
        "img": "none",
        "any": {"align": ["left", "right", "center"]},
    }

Three words are reserved:

- `any`: as a tag, its attribute rules apply to every tag; as an attribute,
  it matches every attribute; as a value (or an empty value list), it
  matches every value.
- `none`: the tag is listed but has no attributes. As the only entry of a
  value list it means that no value matches.
- `all`: deny rules only. The whole tag is removed, not just its attributes.

Allow and deny are asymmetric: an allow entry for a tag permits
the tag, but a deny entry only removes the listed attributes unless it says
`all`.

A caller-supplied tree is compiled once into a frozen `RuleTree`.
Malformed branches are recorded as `FilterError`s and skipped.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .tokens import FilterError

ANY = "any"
NONE = "none"
ALL = "all"


@dataclass(frozen=True, slots=True)
class TagRule:
    """Compiled rules for one tag key.

    `attributes` maps an attribute name to its permitted (or denied) values,
    or to None when every value matches.
    """

    attributes: Mapping[str, frozenset[str] | None] = field(default_factory=dict)
    any_attribute: bool = False
    whole_tag: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.attributes, dict):
            object.__setattr__(self, "attributes", dict(self.attributes))

    def matches(self, attribute: str, value: str) -> bool:
        if self.any_attribute:
            return True
        if attribute not in self.attributes:
            return False
        values = self.attributes[attribute]
        return values is None or value in values

    def to_dict(self) -> dict[str, list[str]]:
        out: dict[str, list[str]] = {}
        if self.whole_tag:
            out[ALL] = []
        if self.any_attribute:
            out[ANY] = []
        for attribute, values in self.attributes.items():
            if values is None:
                out[attribute] = []
            else:
                out[attribute] = sorted(values) or [NONE]
        return out or {NONE: []}


@dataclass(frozen=True, slots=True)
class RuleTree:
    tags: Mapping[str, TagRule] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.tags, dict):
            object.__setattr__(self, "tags", dict(self.tags))

    def __bool__(self) -> bool:
        return bool(self.tags)

    def __len__(self) -> int:
        return len(self.tags)

    def applicable(self, tag: str) -> tuple[TagRule, ...]:
        """Rules that apply to `tag`: its own entry first, then the wildcard."""
        rules = []
        if tag != ANY:
            own = self.tags.get(tag)
            if own is not None:
                rules.append(own)
        wildcard = self.tags.get(ANY)
        if wildcard is not None:
            rules.append(wildcard)
        return tuple(rules)

    def merged(self, other: RuleTree) -> RuleTree:
        # Tag granularity: a tag in `other` replaces the whole entry here.
        return RuleTree({**self.tags, **other.tags})

    def to_dict(self) -> dict[str, dict[str, list[str]]]:
        return {tag: rule.to_dict() for tag, rule in self.tags.items()}


EMPTY_RULES = RuleTree()

# Marks a value list that failed to compile.
_SKIP: Any = object()


def compile_rules(tree: Any, *, deny: bool = False, errors: list[FilterError] | None = None) -> RuleTree:
    """Compile a nested rule mapping into a `RuleTree`.

    Problems are appended to `errors` (when given) and the offending tag,
    attribute or value is left out; the rest of the tree still compiles.
    """

    if errors is None:
        errors = []
    kind = "deny" if deny else "allow"
    if not isinstance(tree, Mapping):
        errors.append(
            FilterError(
                "rules-not-a-mapping",
                f"supplied {kind} rules are not a mapping: {type(tree).__name__}",
                FilterError.ERROR,
            )
        )
        return EMPTY_RULES

    compiled: dict[str, TagRule] = {}
    for tag, entry in tree.items():
        if not isinstance(tag, str) or not tag.strip():
            errors.append(FilterError("invalid-tag-name", f"{kind} rules: ignored invalid tag name {tag!r}"))
            continue
        rule = _compile_tag(tag.strip().lower(), entry, deny, errors)
        if rule is not None:
            compiled[tag.strip().lower()] = rule
    return RuleTree(compiled)


def _compile_tag(tag: str, entry: Any, deny: bool, errors: list[FilterError]) -> TagRule | None:
    if entry is None:
        return TagRule()
    if isinstance(entry, str):
        pairs = [(entry, None)]
    elif isinstance(entry, Mapping):
        pairs = list(entry.items())
    else:
        if not isinstance(entry, Iterable):
            errors.append(
                FilterError(
                    "invalid-attribute-rules",
                    f"rules for <{tag}> must be a mapping of attributes, got {type(entry).__name__}",
                    FilterError.ERROR,
                )
            )
            return None
        # A bare list of attribute names permits any value for each.
        pairs = [(name, None) for name in entry]

    attributes: dict[str, frozenset[str] | None] = {}
    any_attribute = False
    whole_tag = False
    for attribute, values in pairs:
        if not isinstance(attribute, str) or not attribute.strip():
            errors.append(FilterError("invalid-attribute-name", f"rules for <{tag}>: ignored attribute {attribute!r}"))
            continue
        attribute = attribute.strip().lower()
        if attribute == NONE:
            return TagRule()
        if attribute == ANY:
            any_attribute = True
            continue
        if attribute == ALL:
            if deny:
                whole_tag = True
            else:
                errors.append(
                    FilterError("all-in-allow-rules", f"rules for <{tag}>: 'all' only has a meaning in deny rules")
                )
            continue
        compiled = _compile_values(tag, attribute, values, errors)
        if compiled is not _SKIP:
            attributes[attribute] = compiled

    return TagRule(attributes, any_attribute=any_attribute, whole_tag=whole_tag)


def _compile_values(tag: str, attribute: str, values: Any, errors: list[FilterError]) -> Any:
    if values is None:
        return None
    if isinstance(values, (str, int, float)):
        values = [values]
    elif not isinstance(values, Iterable) or isinstance(values, Mapping):
        errors.append(
            FilterError(
                "invalid-value-rules",
                f"rules for <{tag} {attribute}>: values must be a list, got {type(values).__name__}",
                FilterError.ERROR,
            )
        )
        return _SKIP

    normalized = set()
    for value in values:
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            errors.append(FilterError("invalid-value", f"rules for <{tag} {attribute}>: ignored value {value!r}"))
            continue
        normalized.add(str(value).lower())
    if not normalized or ANY in normalized:
        return None
    if normalized == {NONE}:
        return frozenset()
    return frozenset(normalized)


class RuleStore:
    """The current allow and deny trees of a filter."""

    __slots__ = ("allow_rules", "deny_rules", "errors")

    def __init__(
        self,
        allow_rules: RuleTree = EMPTY_RULES,
        deny_rules: RuleTree = EMPTY_RULES,
        *,
        errors: list[FilterError] | None = None,
    ) -> None:
        self.allow_rules = allow_rules
        self.deny_rules = deny_rules
        self.errors = errors if errors is not None else []

    def allow(self, tree: Any) -> None:
        """Merge allow rules in at tag granularity; an empty tree clears them."""
        updated = self._merge(self.allow_rules, tree, deny=False)
        if updated is not None:
            self.allow_rules = updated

    def deny(self, tree: Any) -> None:
        """Merge deny rules in at tag granularity; an empty tree clears them."""
        updated = self._merge(self.deny_rules, tree, deny=True)
        if updated is not None:
            self.deny_rules = updated

    def _merge(self, current: RuleTree, tree: Any, *, deny: bool) -> RuleTree | None:
        if tree is None or (isinstance(tree, Mapping) and not tree):
            return EMPTY_RULES
        if not isinstance(tree, Mapping):
            kind = "deny" if deny else "allow"
            self.errors.append(
                FilterError(
                    "rules-not-a-mapping",
                    f"supplied {kind} rules are not a mapping: {type(tree).__name__}",
                    FilterError.ERROR,
                )
            )
            return None
        return current.merged(compile_rules(tree, deny=deny, errors=self.errors))

    def clear(self) -> None:
        self.allow_rules = EMPTY_RULES
        self.deny_rules = EMPTY_RULES

    def has_allow_rules(self) -> bool:
        return bool(self.allow_rules)

    def has_deny_rules(self) -> bool:
        return bool(self.deny_rules)

    def has_rules(self) -> bool:
        return self.has_allow_rules() or self.has_deny_rules()

    @property
    def allows(self) -> dict[str, dict[str, list[str]]]:
        return self.allow_rules.to_dict()

    @property
    def denies(self) -> dict[str, dict[str, list[str]]]:
        return self.deny_rules.to_dict()

    def tag_permitted(self, tag: str) -> bool:
        # No rules at all means nothing gets through.
        if not tag or not self.has_rules():
            return False
        for rule in self.deny_rules.applicable(tag):
            if rule.whole_tag:
                return False
        if not self.has_allow_rules():
            return True
        if tag != ANY and tag in self.allow_rules.tags:
            return True
        wildcard = self.allow_rules.tags.get(ANY)
        return wildcard is not None and wildcard.any_attribute

    def attribute_permitted(self, tag: str, attribute: str, value: str | None) -> bool:
        if not tag or not attribute or not self.has_rules():
            return False
        attribute = attribute.lower()
        value = (value or "").lower()
        for rule in self.deny_rules.applicable(tag):
            if rule.any_attribute or rule.whole_tag:
                return False
            if attribute in rule.attributes:
                denied = rule.attributes[attribute]
                if denied is None or value in denied:
                    return False
        if not self.has_allow_rules():
            return True
        for rule in self.allow_rules.applicable(tag):
            if rule.matches(attribute, value):
                return True
        return False


# Built-in rule set: safe inline formatting, links and images.
DEFAULT_ALLOW: dict[str, dict[str, list[str]]] = {
    "h1": {NONE: []},
    "h2": {NONE: []},
    "h3": {NONE: []},
    "h4": {NONE: []},
    "h5": {NONE: []},
    "h6": {NONE: []},
    "p": {NONE: []},
    "a": {"href": [], "name": [], "target": []},
    "br": {"clear": ["left", "right", "all"]},
    "ul": {"type": []},
    "li": {"type": []},
    "ol": {NONE: []},
    "em": {NONE: []},
    "i": {NONE: []},
    "b": {NONE: []},
    "tt": {NONE: []},
    "pre": {NONE: []},
    "code": {NONE: []},
    "hr": {NONE: []},
    "blockquote": {NONE: []},
    "img": {"src": [], "height": [], "width": [], "alt": [], "align": []},
    ANY: {"align": ["left", "right", "center"]},
}

DEFAULT_DENY: dict[str, dict[str, list[str]]] = {
    "blink": {ALL: []},
    "marquee": {ALL: []},
    ANY: {"style": [], "onmouseover": [], "onclick": [], "onmouseout": []},
}

DEFAULT_ALLOW_RULES: RuleTree = compile_rules(DEFAULT_ALLOW)
DEFAULT_DENY_RULES: RuleTree = compile_rules(DEFAULT_DENY, deny=True)
