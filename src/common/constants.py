# src/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ProviderKind(str, Enum):
    """Виды исполнителей, участвующих в подборе."""
    DRIVER = "driver"
    TECHNICIAN = "technician"


class EntityKind(str, Enum):
    """Сущности, изменения которых влияют на кэш."""
    DRIVER = "driver"
    TECHNICIAN = "technician"
    SHOP = "shop"
    PRODUCT = "product"
    REVIEW = "review"
    ORDER = "order"
    APPOINTMENT = "appointment"


class OrderStatus(str, Enum):
    """Статусы заказа (доставки)."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class AppointmentStatus(str, Enum):
    """Статусы записи к техническому специалисту."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class ComponentMode(str, Enum):
    """Режимы запуска приложения."""
    API = "api"
    WORKER = "worker"
    ALL = "all"
