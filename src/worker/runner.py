# src/worker/runner.py
"""
Запуск воркеров.
"""

from __future__ import annotations

import asyncio
from typing import List

from src.common.constants import TypeMsg
from src.common.logger import log_error, log_info
from src.core.aggregates.service import AggregateService
from src.core.cache.coordinator import CacheCoordinator
from src.core.providers.repository import ProviderRepository
from src.infra.database import close_db, get_db, init_db
from src.infra.event_bus import close_event_bus, get_event_bus, init_event_bus
from src.infra.redis_client import close_redis, get_redis, init_redis
from src.worker.aggregates import AggregatesWorker
from src.worker.base import BaseWorker


def build_workers() -> List[BaseWorker]:
    """Создаёт воркеры поверх глобальных клиентов инфраструктуры."""
    store = ProviderRepository(get_db())
    cache = CacheCoordinator(get_redis(), store)
    aggregates = AggregateService(store, cache)
    return [AggregatesWorker(aggregates, cache, event_bus=get_event_bus())]


async def run_workers(init_infra: bool = True) -> None:
    """
    Запускает воркеры и ждёт отмены.

    Args:
        init_infra: Если True, инициализирует инфраструктуру (БД, Redis, RabbitMQ).
                    В режиме all инфраструктуру уже поднял main.py.

    Note:
        WORKER_INSTANCES_COUNT используется для горизонтального масштабирования
        (количество контейнеров), внутри процесса воркер один.
    """
    await log_info("Запуск воркеров агрегатов...", type_msg=TypeMsg.INFO)

    if init_infra:
        await init_db()
        await init_redis()
        await init_event_bus()

    workers = build_workers()

    try:
        for worker in workers:
            await worker.start()

        await log_info(f"Запущено {len(workers)} воркеров", type_msg=TypeMsg.INFO)

        # Ждём отмены (Ctrl+C / остановка контейнера)
        await asyncio.Event().wait()
    except asyncio.CancelledError:
        await log_info("Получен сигнал остановки", type_msg=TypeMsg.INFO)
        raise
    except Exception as e:
        await log_error(f"Критическая ошибка воркеров: {e}", exc_info=True)
        raise
    finally:
        for worker in workers:
            await worker.stop()

        if init_infra:
            await close_event_bus()
            await close_redis()
            await close_db()

        await log_info("Воркеры остановлены", type_msg=TypeMsg.INFO)


def main() -> None:
    """Точка входа."""
    try:
        asyncio.run(run_workers())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
