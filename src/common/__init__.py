"""
Общие утилиты, константы, ошибки и логгер.
"""

from src.common.logger import get_logger, log_info, log_error, log_warning, log_debug
from src.common.constants import TypeMsg, ProviderKind, EntityKind
from src.common.exceptions import (
    MatchingError,
    InvalidCoordinate,
    InvalidRadius,
    InvalidConfiguration,
    ProviderNotFound,
    ReviewableNotFound,
    StoreUnavailable,
)

__all__ = [
    "get_logger",
    "log_info",
    "log_error",
    "log_warning",
    "log_debug",
    "TypeMsg",
    "ProviderKind",
    "EntityKind",
    "MatchingError",
    "InvalidCoordinate",
    "InvalidRadius",
    "InvalidConfiguration",
    "ProviderNotFound",
    "ReviewableNotFound",
    "StoreUnavailable",
]
