# src/core/providers/__init__.py
"""
Домен исполнителей.
Модели, реестр видов и доступ к хранилищу.
"""

from src.core.providers.capabilities import Capability, has_capability, require_capability
from src.core.providers.kinds import PROVIDER_KINDS, ProviderKindSpec, get_kind_spec
from src.core.providers.models import (
    ProviderAggregates,
    ProviderRecord,
    ProviderRef,
    RatingAggregate,
    StatsAggregate,
)
from src.core.providers.store import ProviderQueryFilters, ProviderStore, call_store
from src.core.providers.repository import ProviderRepository

__all__ = [
    "Capability",
    "has_capability",
    "require_capability",
    "PROVIDER_KINDS",
    "ProviderKindSpec",
    "get_kind_spec",
    "ProviderAggregates",
    "ProviderRecord",
    "ProviderRef",
    "RatingAggregate",
    "StatsAggregate",
    "ProviderQueryFilters",
    "ProviderStore",
    "call_store",
    "ProviderRepository",
]
