from .filter import TagFilter, __version__, filter_html
from .output import RejectReason, Rejection
from .rules import DEFAULT_ALLOW, DEFAULT_DENY, RuleStore, RuleTree, TagRule, compile_rules
from .settings import DEFAULT_PERMITTED_PROTOCOLS, DEFAULT_RISKY_ATTRIBUTES, FilterSettings
from .tokenizer import Tokenizer, TokenizerOpts
from .tokens import FilterError
from .xss import XssGuard, obfuscate_mailto

__all__ = [
    "DEFAULT_ALLOW",
    "DEFAULT_DENY",
    "DEFAULT_PERMITTED_PROTOCOLS",
    "DEFAULT_RISKY_ATTRIBUTES",
    "FilterError",
    "FilterSettings",
    "RejectReason",
    "Rejection",
    "RuleStore",
    "RuleTree",
    "TagFilter",
    "TagRule",
    "Tokenizer",
    "TokenizerOpts",
    "XssGuard",
    "__version__",
    "compile_rules",
    "filter_html",
    "obfuscate_mailto",
]
