"""Rule system exceptions."""

from __future__ import annotations


class RuleError(Exception):
    """Base class for all rule-related errors."""


class RuleValidationError(RuleError):
    """Raised when a rule file fails schema validation."""


class RuleLoadError(RuleError):
    """Raised when a rule file cannot be read."""


class RuleNotFoundError(RuleError):
    """Raised when a rule name is not known to the registry."""


class DuplicateRuleError(RuleError):
    """Raised when two rule files resolve to the same name."""


class CompileError(RuleError):
    """Raised when a selector uses XPath outside the supported subset.

    Fatal for the rule that carries the selector; the rule is not admitted
    into the registry.
    """

    def __init__(self, xpath: str, reason: str) -> None:
        super().__init__(f"cannot compile {xpath!r}: {reason}")
        self.xpath = xpath
        self.reason = reason
