"""Named text rewrites (rules as code) and the catalog that holds them."""

from .base import Catalog, Rule, RuleContext
from .catalog import DEFERRED_PHASE, ENDING_CHUNKS_RULE, build_catalog
from .payloads import Payloads

__all__ = [
    "Catalog",
    "Rule",
    "RuleContext",
    "DEFERRED_PHASE",
    "ENDING_CHUNKS_RULE",
    "build_catalog",
    "Payloads",
]
