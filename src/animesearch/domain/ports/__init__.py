from .concurrency import ConcurrencyBudgetPort, ConcurrencyPoolPort
from .rule_registry import RuleRegistryPort
from .site_searcher import SiteSearcherPort

__all__ = [
    "ConcurrencyBudgetPort",
    "ConcurrencyPoolPort",
    "RuleRegistryPort",
    "SiteSearcherPort",
]
