"""
Cached Collection

Invalidate-and-refetch repository for reference-data lists. The upstream API
is the only source of truth: after every mutation the cached list is dropped
and fetched again, so callers never patch local state by hand.
"""

from typing import Awaitable
from typing import Callable
from typing import Generic
from typing import List
from typing import Optional
from typing import TypeVar

from loguru import logger

T = TypeVar("T")
R = TypeVar("R")


class CachedCollection(Generic[T]):
    """
    Lazily fetched list with an explicit invalidate/refresh contract.

    Parameters
    ----------
    name : str
        Collection name used in logs
    fetch : Callable[[], Awaitable[List[T]]]
        Coroutine factory returning the full list from upstream
    """

    def __init__(self, name: str, fetch: Callable[[], Awaitable[List[T]]]):
        self.name = name
        self._fetch = fetch
        self._items: Optional[List[T]] = None

    @property
    def is_loaded(self) -> bool:
        return self._items is not None

    async def list(self) -> List[T]:
        """Return the cached list, fetching it on first use."""
        if self._items is None:
            await self.refresh()
        return list(self._items)

    def invalidate(self) -> None:
        self._items = None

    async def refresh(self) -> List[T]:
        self._items = await self._fetch()
        logger.debug("Collection refreshed", collection=self.name, count=len(self._items))
        return list(self._items)

    async def mutate(self, action: Callable[[], Awaitable[R]]) -> R:
        """Run a mutating call, then invalidate and re-fetch from upstream."""
        result = await action()
        self.invalidate()
        await self.refresh()
        return result
