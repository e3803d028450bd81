from .exceptions import (
    CompileError,
    DuplicateRuleError,
    RuleError,
    RuleLoadError,
    RuleNotFoundError,
    RuleValidationError,
)
from .rule_schema import (
    KEYWORD_PLACEHOLDER,
    CompiledSelector,
    RuleSelectors,
    SiteRule,
)

__all__ = [
    "KEYWORD_PLACEHOLDER",
    "CompileError",
    "CompiledSelector",
    "DuplicateRuleError",
    "RuleError",
    "RuleLoadError",
    "RuleNotFoundError",
    "RuleSelectors",
    "RuleValidationError",
    "SiteRule",
]
