# src/services/__init__.py
"""
Сервисы приложения.

- matching_service: HTTP-интерфейс подбора исполнителей, чтения агрегатов
  и инвалидации кэша (FastAPI)
"""

__all__: list[str] = []
