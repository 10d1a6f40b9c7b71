#!/usr/bin/env python3
# main.py
"""
Главная точка входа сервиса подбора исполнителей.
Запускает HTTP API, воркер агрегатов или оба компонента.
"""

from __future__ import annotations

import asyncio
import signal
import sys

from src.common.constants import ComponentMode, TypeMsg
from src.common.logger import log_error, log_info, setup_logging
from src.config import settings
from src.infra.database import close_db, init_db
from src.infra.event_bus import close_event_bus, init_event_bus
from src.infra.redis_client import close_redis, init_redis

_running_tasks: list[asyncio.Task] = []


def setup_signal_handlers() -> None:
    """Настраивает обработчики SIGINT и SIGTERM для graceful shutdown."""
    def signal_handler(sig: int) -> None:
        print(f"\nПолучен сигнал остановки (sig={sig}), завершаем работу...")
        for task in _running_tasks:
            if not task.done():
                task.cancel()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: signal_handler(s))
        signal.signal(signal.SIGTERM, lambda s, f: signal_handler(s))


async def init_infrastructure() -> None:
    """Инициализирует PostgreSQL, Redis и RabbitMQ."""
    await log_info("Инициализация инфраструктуры...", type_msg=TypeMsg.INFO)
    await init_db()
    await init_redis()
    await init_event_bus()
    await log_info("Инфраструктура инициализирована", type_msg=TypeMsg.INFO)


async def close_infrastructure() -> None:
    """Закрывает все подключения."""
    await close_event_bus()
    await close_redis()
    await close_db()
    await log_info("Подключения закрыты", type_msg=TypeMsg.INFO)


async def run_api() -> None:
    """Запускает HTTP API подбора исполнителей."""
    import uvicorn

    await log_info(
        f"Запуск Matching Service на порту {settings.deployment.MATCHING_SERVICE_PORT}...",
        type_msg=TypeMsg.INFO,
    )

    config = uvicorn.Config(
        "src.services.matching_service.app:app",
        host=settings.deployment.MATCHING_SERVICE_HOST,
        port=settings.deployment.MATCHING_SERVICE_PORT,
        log_level="debug" if settings.system.DEBUG else "info",
    )
    server = uvicorn.Server(config)
    try:
        await server.serve()
    except asyncio.CancelledError:
        await log_info("Matching Service: graceful shutdown", type_msg=TypeMsg.DEBUG)
        await server.shutdown()
        raise


async def run_worker() -> None:
    """Запускает воркер агрегатов (инфраструктура уже инициализирована)."""
    from src.worker.runner import run_workers

    await run_workers(init_infra=False)


async def main(mode: str | None = None) -> None:
    """
    Главная функция запуска.

    Args:
        mode: api, worker или all (по умолчанию system.COMPONENT_MODE)
    """
    setup_logging()
    setup_signal_handlers()

    component = ComponentMode(mode or settings.system.COMPONENT_MODE)
    await log_info(
        f"{settings.system.PROJECT_NAME} v{settings.system.VERSION}: запуск в режиме '{component.value}'",
        type_msg=TypeMsg.INFO,
    )

    try:
        if component == ComponentMode.API:
            # Подключения открывает lifespan приложения
            _running_tasks.append(asyncio.create_task(run_api()))
        else:
            await init_infrastructure()
            _running_tasks.append(asyncio.create_task(run_worker()))
            if component == ComponentMode.ALL:
                _running_tasks.append(asyncio.create_task(run_api()))

        await asyncio.gather(*_running_tasks)
    except asyncio.CancelledError:
        await log_info("Задача отменена, выполняется graceful shutdown", type_msg=TypeMsg.INFO)
    except Exception as e:
        await log_error(f"Критическая ошибка: {e}", exc_info=True)
        raise
    finally:
        for task in _running_tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*_running_tasks, return_exceptions=True)
        _running_tasks.clear()

        if component != ComponentMode.API:
            await close_infrastructure()
        await log_info("Приложение остановлено", type_msg=TypeMsg.INFO)


def print_usage() -> None:
    """Выводит справку по использованию."""
    print("""
Сервис подбора исполнителей

Использование:
    python main.py [режим]

Режимы:
    api      — HTTP API (:8092 по умолчанию)
    worker   — воркер агрегатов (события RabbitMQ)
    all      — оба компонента в одном процессе

Без аргумента режим берётся из COMPONENT_MODE.
    """)


if __name__ == "__main__":
    mode = None

    if len(sys.argv) > 1:
        arg = sys.argv[1].lower()
        if arg in ("--help", "-h"):
            print_usage()
            sys.exit(0)
        if arg not in {m.value for m in ComponentMode}:
            print(f"Ошибка: неизвестный режим '{arg}'")
            print_usage()
            sys.exit(1)
        mode = arg

    try:
        asyncio.run(main(mode))
    except KeyboardInterrupt:
        pass
