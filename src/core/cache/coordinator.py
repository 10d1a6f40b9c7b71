# src/core/cache/coordinator.py
"""
Координатор кэша производных значений.

Запись в хранилище только инвалидирует кэш; значения пересчитываются
лениво при следующем чтении.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Iterable, Optional, TypeVar

from pydantic import BaseModel
from redis.exceptions import RedisError

from src.common.constants import EntityKind, TypeMsg
from src.common.logger import log_info, log_warning
from src.core.cache.dependencies import (
    CACHE_DEPENDENCIES,
    CachedValue,
    cache_key,
    keys_invalidated,
    values_owned_by,
)
from src.core.providers.store import ProviderStore, call_store
from src.infra.redis_client import RedisClient

T = TypeVar("T", bound=BaseModel)

RelatedOwner = tuple[EntityKind, int]


class CacheCoordinator:
    """Инвалидация и ленивое чтение кэша по карте зависимостей."""

    def __init__(
        self,
        redis: RedisClient,
        store: ProviderStore | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Args:
            redis: Клиент Redis
            store: Хранилище для поиска зависимых сущностей (необязательно)
            timeout: Таймаут обращения к хранилищу
        """
        if timeout is None:
            from src.config import settings
            timeout = settings.database.STORE_TIMEOUT
        self._redis = redis
        self._store = store
        self._timeout = timeout

    def keys_for(
        self,
        entity_kind: EntityKind,
        entity_id: int,
        related: Iterable[RelatedOwner] = (),
    ) -> list[str]:
        """
        Ключи, которые устаревают при изменении сущности.

        Собственные значения сущности удаляются все; у связанных владельцев
        только те, что объявили зависимость от entity_kind.
        """
        keys = [cache_key(v, entity_kind, entity_id) for v in values_owned_by(entity_kind)]
        for owner_kind, owner_id in related:
            keys.extend(keys_invalidated(entity_kind, owner_kind, owner_id))
        # Порядок сохраняется, дубликаты убираются
        return list(dict.fromkeys(keys))

    async def invalidate(
        self,
        entity_kind: EntityKind,
        entity_id: int,
        related: Iterable[RelatedOwner] = (),
    ) -> list[str]:
        """
        Удаляет все устаревшие значения одной командой DEL
        и сдвигает их поколения, чтобы незавершённые загрузки не вернули старое значение.

        Args:
            entity_kind: Вид изменившейся сущности
            entity_id: ID сущности
            related: Связанные владельцы, известные вызывающей стороне
                (для удалённых сущностей хранилище их уже не найдёт)

        Returns:
            Список удалённых ключей (без namespace)

        Raises:
            StoreUnavailable: хранилище не ответило при поиске зависимых
            RedisError: Redis недоступен
        """
        owners = list(related)
        if self._store is not None:
            resolved = await call_store(
                self._store.resolve_dependents(entity_kind, entity_id),
                self._timeout,
                "resolve_dependents",
                entity=f"{entity_kind.value}:{entity_id}",
            )
            owners.extend(resolved)

        keys = self.keys_for(entity_kind, entity_id, owners)
        if keys:
            await self._redis.delete_many(keys)

        await log_info(
            f"Кэш инвалидирован для {entity_kind.value}:{entity_id}: {len(keys)} ключей",
            type_msg=TypeMsg.DEBUG,
        )
        return keys

    async def get_or_load(
        self,
        value: CachedValue,
        owner_kind: EntityKind,
        owner_id: int,
        model_class: type[T],
        loader: Callable[[], Awaitable[Optional[T]]],
    ) -> Optional[T]:
        """
        Читает значение из кэша, при промахе вычисляет его через loader.

        Поколение ключа читается до вызова loader; если за время загрузки
        ключ был инвалидирован, вычисленное значение не сохраняется.
        Ошибка Redis не мешает чтению: значение вычисляется из хранилища.
        Пустой результат loader не кэшируется.
        """
        dependency = CACHE_DEPENDENCIES[value]
        if owner_kind not in dependency.owners:
            raise ValueError(f"{owner_kind.value} не владеет значением {value.value}")

        key = cache_key(value, owner_kind, owner_id)
        try:
            cached = await self._redis.get_model(key, model_class)
            if cached is not None:
                return cached
            generation = await self._redis.get_generation(key)
        except RedisError as e:
            await log_warning(f"Кэш недоступен при чтении {key}: {e}")
            return await loader()

        loaded = await loader()
        if loaded is None:
            return None

        try:
            stored = await self._redis.set_model_if_generation(
                key, loaded, generation, ttl=dependency.ttl()
            )
        except RedisError as e:
            await log_warning(f"Не удалось сохранить {key} в кэш: {e}")
            return loaded

        if not stored:
            await log_info(
                f"{key} инвалидирован во время загрузки, значение не сохранено",
                type_msg=TypeMsg.DEBUG,
            )
        return loaded
