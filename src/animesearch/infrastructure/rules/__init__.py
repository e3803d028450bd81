from .loader import load_rule_file, parse_rule
from .registry import RuleRegistry, RuleSnapshot
from .updater import RuleUpdater, UpdateDetail, UpdateResult

__all__ = [
    "RuleRegistry",
    "RuleSnapshot",
    "RuleUpdater",
    "UpdateDetail",
    "UpdateResult",
    "load_rule_file",
    "parse_rule",
]
