#!/usr/bin/env python3
"""
Entrypoint для Matching Service.

Запуск:
    python entrypoints/entrypoint_matching_service.py

Порт по умолчанию: 8092
"""

import os
import sys

# Добавляем корень проекта в PYTHONPATH
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import uvicorn

from src.common.logger import setup_logging
from src.config import settings


def main() -> None:
    """Запустить Matching Service."""
    setup_logging()
    uvicorn.run(
        "src.services.matching_service.app:app",
        host=settings.deployment.MATCHING_SERVICE_HOST,
        port=settings.deployment.MATCHING_SERVICE_PORT,
        log_level=settings.logging.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
