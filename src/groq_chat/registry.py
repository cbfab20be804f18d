"""Time-bounded cache of the model identifiers the API accepts."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, FrozenSet, Iterable, Optional

from .config import DEFAULT_CACHE_DURATION
from .models import Model

logger = logging.getLogger(__name__)

FetchModels = Callable[[], Awaitable[Iterable[Model]]]


class ModelRegistry:
    """
    Mirror of the provider's model list, refreshed when older than
    ``cache_duration`` seconds.

    A registry is owned by the Client that creates it. Clients that should
    share one cache are given the same instance explicitly.

    Readers look at an immutable snapshot, so lookups never wait on a
    refresh that is in progress. Refreshes are serialised by a lock and a
    caller that waited on it reuses the result instead of fetching again.
    """

    def __init__(
        self,
        cache_duration: float = DEFAULT_CACHE_DURATION,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cache_duration = cache_duration
        self._clock = clock
        self._models: FrozenSet[str] = frozenset()
        self._last_refresh: Optional[float] = None
        self._refresh_lock = asyncio.Lock()

    @property
    def known_models(self) -> FrozenSet[str]:
        return self._models

    @property
    def last_refresh(self) -> Optional[float]:
        return self._last_refresh

    def is_stale(self) -> bool:
        if self._last_refresh is None:
            return True
        return self._clock() - self._last_refresh >= self.cache_duration

    def invalidate(self) -> None:
        """Force the next lookup to refresh; the current snapshot is kept."""
        self._last_refresh = None

    def replace(self, models: Iterable[Model]) -> None:
        """Swap in a complete model list, discarding the previous one."""
        self._models = frozenset(m.id for m in models)
        self._last_refresh = self._clock()
        logger.debug("Model registry now holds %d models", len(self._models))

    async def refresh(self, fetch: FetchModels, force: bool = True) -> FrozenSet[str]:
        """
        Fetch the model list and replace the cache.

        Args:
            fetch: Coroutine function returning the provider's model descriptors
            force: If False, skip the fetch when a concurrent refresh already
                made the cache fresh

        Returns:
            The model identifiers now cached

        Raises:
            Whatever ``fetch`` raises; the cache is left unchanged in that case
        """
        async with self._refresh_lock:
            if not force and not self.is_stale():
                return self._models
            logger.info("Refreshing model registry")
            models = await fetch()
            self.replace(models)
            return self._models

    async def is_valid_model(self, model_id: str, fetch: FetchModels) -> bool:
        """Answer from the cache when fresh, otherwise refresh first."""
        if self.is_stale():
            await self.refresh(fetch, force=False)
        return model_id in self._models
