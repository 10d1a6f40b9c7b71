# src/common/exceptions.py
"""
Иерархия ошибок ядра подбора исполнителей.

Каждая ошибка несёт error_kind (для конверта {error_kind, message}),
человекочитаемое сообщение и контекст (ID исполнителя, неверное значение),
достаточный для воспроизведения.
"""

from __future__ import annotations

from typing import Any


class MatchingError(Exception):
    """Базовая ошибка ядра."""

    error_kind: str = "MatchingError"
    http_status: int = 500
    retryable: bool = False

    def __init__(self, message: str, **context: Any) -> None:
        """
        Args:
            message: Описание ошибки
            **context: Данные для воспроизведения (provider, value, field...)
        """
        self.message = message
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.error_kind}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, context={self.context!r})"

    def to_envelope(self) -> dict[str, str]:
        """Конверт ошибки для внешних клиентов."""
        return {"error_kind": self.error_kind, "message": self.message}


class InvalidCoordinate(MatchingError):
    """Широта вне [-90, 90] или долгота вне [-180, 180]."""

    error_kind = "InvalidCoordinate"
    http_status = 400


class InvalidRadius(MatchingError):
    """Радиус поиска <= 0 или больше системного максимума."""

    error_kind = "InvalidRadius"
    http_status = 400


class InvalidConfiguration(MatchingError):
    """Некорректные веса ранжирования или параметры запроса."""

    error_kind = "InvalidConfiguration"
    http_status = 400


class ProviderNotFound(MatchingError):
    """Исполнитель, для которого пересчитываются агрегаты, не найден."""

    error_kind = "ProviderNotFound"
    http_status = 404


class StoreUnavailable(MatchingError):
    """Хранилище не ответило или ответило ошибкой. Можно повторить."""

    error_kind = "StoreUnavailable"
    http_status = 503
    retryable = True


class ReviewableNotFound(MatchingError):
    """Магазин или товар, для которого запрошены отзывы, не найден."""

    error_kind = "ReviewableNotFound"
    http_status = 404
