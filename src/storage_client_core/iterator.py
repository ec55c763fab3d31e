"""Lazy paginated sequences returned by listing operations."""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# fetch(page_token, page_size) -> (items, next_page_token)
PageFetcher = Callable[[str | None, int | None], Awaitable[tuple[list[T], str | None]]]


class PageIterator(Generic[T]):
    """Async iterator over the items of a paginated listing.

    Nothing is fetched until iteration starts, and only one page is held in
    memory at a time. Each pass over :meth:`pages` starts from ``page_token``,
    so setting it to a previously seen ``next_page_token`` resumes a listing.

    Example:
        ```python
        it = client.list_objects("bucket", query=Query(prefix="logs/"))
        async for attrs in it:
            print(attrs.name)

        # Resume later from a saved position
        it = client.list_objects("bucket", query=Query(prefix="logs/"))
        it.page_token = saved_token
        ```
    """

    def __init__(self, fetch: PageFetcher, *, page_token: str | None = None, page_size: int | None = None):
        self._fetch = fetch
        self.page_token = page_token
        self.page_size = page_size
        self.next_page_token: str | None = None

    async def pages(self) -> AsyncIterator[list[T]]:
        token = self.page_token
        while True:
            items, token = await self._fetch(token, self.page_size)
            self.next_page_token = token
            logger.debug(f"Fetched page of {len(items)} items (more: {bool(token)})")
            yield items
            if not token:
                return

    async def _items(self) -> AsyncIterator[T]:
        async for page in self.pages():
            for item in page:
                yield item

    def __aiter__(self) -> AsyncIterator[T]:
        return self._items()

    async def collect(self) -> list[T]:
        """Read every remaining item into a list."""
        return [item async for item in self]
