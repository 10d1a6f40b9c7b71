# src/core/providers/capabilities.py
"""
Объявленные возможности сущностей.

Сущность явно перечисляет свои возможности в CAPABILITIES;
выбор поведения идёт по этому объявлению, а не по наличию методов.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Optional, Protocol


class Capability(str, Enum):
    """Возможности, которые может объявить сущность."""
    NAMEABLE = "nameable"
    PRICEABLE = "priceable"
    AVAILABLE = "available"


class Nameable(Protocol):
    """Имеет отображаемое имя."""

    def get_display_name(self) -> str: ...


class Priceable(Protocol):
    """Имеет цену."""

    def get_price(self) -> Decimal: ...


class Available(Protocol):
    """Может быть доступен или недоступен для подбора."""

    def is_matchable(self) -> bool: ...


class DeclaresCapabilities:
    """Примесь для сущностей с объявленными возможностями."""

    CAPABILITIES: ClassVar[frozenset[Capability]] = frozenset()


def has_capability(entity: Any, capability: Capability) -> bool:
    """Объявлена ли возможность у класса сущности."""
    return isinstance(entity, DeclaresCapabilities) and capability in type(entity).CAPABILITIES


def require_capability(entity: Any, capability: Capability) -> Any:
    """
    Возвращает сущность, если возможность объявлена.

    Raises:
        TypeError: возможность не объявлена (ошибка программиста)
    """
    if not has_capability(entity, capability):
        raise TypeError(f"{type(entity).__name__} не объявляет возможность {capability.value}")
    return entity


def display_name(entity: Any, default: str = "") -> str:
    """Имя сущности, если она объявляет Nameable."""
    if has_capability(entity, Capability.NAMEABLE):
        nameable: Nameable = entity
        return nameable.get_display_name()
    return default


def price_of(entity: Any) -> Optional[Decimal]:
    """Цена сущности, если она объявляет Priceable."""
    if has_capability(entity, Capability.PRICEABLE):
        priceable: Priceable = entity
        return priceable.get_price()
    return None


def is_available(entity: Any) -> bool:
    """Доступность для подбора; сущность без Available недоступна."""
    if has_capability(entity, Capability.AVAILABLE):
        available: Available = entity
        return available.is_matchable()
    return False
