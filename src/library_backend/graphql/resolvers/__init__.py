"""Resolver engine and the operation groups it implements."""

from .engine import ResolverEngine
from .operations import MutationOps, QueryOps, SubscriptionOps

__all__ = ["MutationOps", "QueryOps", "ResolverEngine", "SubscriptionOps"]
