"""Semantic roles: rule-based classification and the role index."""

from foliokit.roles.classifier import RoleClassifier, RoleRule, default_rules
from foliokit.roles.index import RoleIndex

__all__ = ["RoleClassifier", "RoleIndex", "RoleRule", "default_rules"]
