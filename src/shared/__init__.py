# src/shared/__init__.py
"""
Общий код между сервисом и воркером.

Модули:
- models: DTO HTTP-интерфейса
"""

__all__: list[str] = []
