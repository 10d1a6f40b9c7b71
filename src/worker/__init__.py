"""
Фоновые воркеры для обработки событий из RabbitMQ.
"""

from src.worker.base import BaseWorker
from src.worker.aggregates import AggregatesWorker

__all__ = ["BaseWorker", "AggregatesWorker"]
