"""
Partner rule table and configuration management.
"""

from .resolvers import RESOLVER_REGISTRY, ResolveContext, resolve_first
from .rule_config import PartnerRuleBuilder, PartnerRuleLoader
from .rule_set import DEFAULT_RULES_PATH, PartnerRuleSet

__all__ = [
    "PartnerRuleSet",
    "PartnerRuleLoader",
    "PartnerRuleBuilder",
    "DEFAULT_RULES_PATH",
    "RESOLVER_REGISTRY",
    "ResolveContext",
    "resolve_first",
]
