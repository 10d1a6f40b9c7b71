# src/infra/redis_client.py
"""
Клиент Redis для кэша производных значений.
Все ключи получают префикс пространства имён из конфигурации.
"""

from __future__ import annotations

from typing import Iterable, Type, TypeVar

import redis.asyncio as redis
from redis.exceptions import WatchError
from pydantic import BaseModel

from src.common.constants import TypeMsg
from src.common.logger import get_logger, log_error, log_info

logger = get_logger("redis")

T = TypeVar("T", bound=BaseModel)

# Префикс счётчиков поколений: ключ инвалидирован, если его поколение выросло
GENERATION_PREFIX = "gen"


class RedisClient:
    """
    Асинхронный клиент Redis.
    Поддерживает:
    - поколения ключей для защиты кэша от устаревших записей
    - типизированные значения (Pydantic модели)
    - удаление набора ключей одной командой DEL
    """

    _instance: RedisClient | None = None
    _client: redis.Redis | None = None

    def __new__(cls) -> RedisClient:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        """Инициализация (вызывается только один раз благодаря Singleton)."""
        if hasattr(self, "_initialized"):
            return
        self._initialized = True
        self._client = None
        self._namespace = "marketplace"

    @property
    def client(self) -> redis.Redis:
        """Возвращает клиент Redis."""
        if self._client is None:
            raise RuntimeError("Redis клиент не инициализирован. Вызовите connect() сначала.")
        return self._client

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def namespace(self) -> str:
        return self._namespace

    def make_key(self, key: str) -> str:
        """Добавляет namespace к ключу."""
        return f"{self._namespace}:{key}"

    async def connect(
        self,
        url: str | None = None,
        max_connections: int = 50,
        namespace: str | None = None,
    ) -> None:
        """
        Подключается к Redis.

        Args:
            url: URL Redis (если None, берётся из конфига)
            max_connections: Максимальное количество соединений
            namespace: Префикс ключей (если None, берётся из конфига)
        """
        if self._client is not None:
            return

        if url is None or namespace is None:
            from src.config import settings
            if url is None:
                url = settings.redis.url
                max_connections = settings.redis.REDIS_MAX_CONNECTIONS
            if namespace is None:
                namespace = settings.redis.REDIS_NAMESPACE
        self._namespace = namespace

        await log_info("Подключение к Redis...", type_msg=TypeMsg.INFO)

        self._client = redis.from_url(
            url,
            max_connections=max_connections,
            decode_responses=True,
        )
        await self._client.ping()

        await log_info(f"Подключение к Redis установлено (namespace={self._namespace})", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает соединение с Redis."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            await log_info("Соединение с Redis закрыто", type_msg=TypeMsg.INFO)

    # =========================================================================
    # БАЗОВЫЕ ОПЕРАЦИИ
    # =========================================================================

    async def get(self, key: str) -> str | None:
        """Получает значение по ключу."""
        return await self.client.get(self.make_key(key))

    # =========================================================================
    # ПОКОЛЕНИЯ КЛЮЧЕЙ
    # =========================================================================

    def generation_key(self, key: str) -> str:
        """Ключ счётчика поколения (с namespace)."""
        return self.make_key(f"{GENERATION_PREFIX}:{key}")

    async def get_generation(self, key: str) -> int:
        """Текущее поколение ключа (0, если ключ ни разу не удалялся)."""
        value = await self.client.get(self.generation_key(key))
        return int(value) if value is not None else 0

    async def delete_many(self, keys: Iterable[str]) -> int:
        """
        Удаляет набор ключей одной командой DEL и увеличивает их поколения.
        Обе операции выполняются в одной транзакции MULTI/EXEC.

        Returns:
            Количество удалённых ключей
        """
        keys = list(keys)
        if not keys:
            return 0

        pipe = self.client.pipeline()
        pipe.delete(*[self.make_key(k) for k in keys])
        for key in keys:
            pipe.incr(self.generation_key(key))
        results = await pipe.execute()
        return results[0]

    # =========================================================================
    # PYDANTIC
    # =========================================================================

    async def get_model(self, key: str, model_class: Type[T]) -> T | None:
        """Получает и десериализует Pydantic модель."""
        data = await self.get(key)
        if data is None:
            return None
        try:
            return model_class.model_validate_json(data)
        except ValueError as e:
            await log_error(f"Ошибка десериализации модели {model_class.__name__}: {e}")
            return None

    async def set_model_if_generation(
        self,
        key: str,
        model: BaseModel,
        generation: int,
        ttl: int | None = None,
    ) -> bool:
        """
        Сохраняет модель, только если поколение ключа не изменилось.

        Args:
            key: Ключ без namespace
            model: Значение
            generation: Поколение, прочитанное до вычисления значения
            ttl: Время жизни в секундах

        Returns:
            False, если ключ был инвалидирован после чтения поколения
        """
        generation_key = self.generation_key(key)
        async with self.client.pipeline() as pipe:
            try:
                await pipe.watch(generation_key)
                current = await pipe.get(generation_key)
                if int(current or 0) != generation:
                    return False
                pipe.multi()
                pipe.set(self.make_key(key), model.model_dump_json(), ex=ttl)
                await pipe.execute()
            except WatchError:
                return False
        return True

    # =========================================================================
    # HEALTH CHECK
    # =========================================================================

    async def health_check(self) -> bool:
        """
        Проверяет здоровье подключения к Redis.

        Returns:
            True если подключение работает
        """
        try:
            return await self.client.ping()
        except (redis.RedisError, RuntimeError, OSError) as e:
            await log_error(f"Health check Redis failed: {e}")
            return False


def get_redis() -> RedisClient:
    """Возвращает глобальный экземпляр RedisClient."""
    return RedisClient()


async def init_redis() -> None:
    """
    Инициализирует подключение к Redis.
    Использует настройки из конфигурации.
    """
    from src.config import settings

    redis_client = get_redis()
    await redis_client.connect(
        url=settings.redis.url,
        max_connections=settings.redis.REDIS_MAX_CONNECTIONS,
        namespace=settings.redis.REDIS_NAMESPACE,
    )
    await log_info(
        f"Redis подключён: {settings.redis.REDIS_HOST}:{settings.redis.REDIS_PORT}/{settings.redis.REDIS_DB}",
        type_msg=TypeMsg.INFO,
    )


async def close_redis() -> None:
    """Закрывает подключение к Redis."""
    redis_client = get_redis()
    await redis_client.disconnect()
    await log_info("Redis отключён", type_msg=TypeMsg.INFO)
