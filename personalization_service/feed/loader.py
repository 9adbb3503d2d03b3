"""
Cache-merge loader.

Implements the load protocol for one category rail:

1. Read the cache and render it immediately when it has items.
2. Fetch fresh items from the injected source.
3. Merge fresh and cached items by id (fresh wins, cached fills the rest),
   cap, apply the daily shuffle and persist the result.
4. Render the merged set.

A failed fetch keeps whatever was rendered from the cache; with nothing
cached the load ends in the empty state. Only one refresh per cache key may
be in flight at a time, across every loader sharing the same cache.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from pydantic import ValidationError

from ..models.items import CacheEntry, ContentItem
from ..models.utils import Clock, now_ms
from ..tracking.seen_store import SeenStore, item_id
from .cache import EventCache, make_key
from .shuffle import apply_daily_shuffle

logger = logging.getLogger(__name__)

Item = Dict[str, Any]
Location = Optional[Tuple[float, float]]
FetchFn = Callable[[str, Location, int], Sequence[Any]]
RenderFn = Callable[[List[Item], str], None]

# Values passed as the second argument of the render callback
RENDER_CACHED = "cached"
RENDER_FRESH = "fresh"
RENDER_EMPTY = "empty"


class LoadHandle:
    """Cancellation token for one load.

    Once cancelled, no further render callbacks fire for that load. The cache
    is still updated so the next load benefits from the fetch.
    """

    def __init__(self):
        self._cancelled = threading.Event()
        self.thread: Optional[threading.Thread] = None

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Join the background thread started by ``load_async``.

        Returns:
            True when the load has finished
        """
        if self.thread is None:
            return True
        self.thread.join(timeout)
        return not self.thread.is_alive()


def validate_items(raw_items: Iterable[Any]) -> List[Item]:
    """Keep only records that pass ``ContentItem`` validation."""
    items: List[Item] = []
    for raw in raw_items or []:
        if isinstance(raw, ContentItem):
            items.append(raw.model_dump(exclude_none=True))
            continue
        try:
            items.append(ContentItem.model_validate(raw).model_dump(exclude_none=True))
        except ValidationError as e:
            logger.debug(f"Skipping invalid item record: {e.error_count()} error(s)")
    return items


def merge_items(fresh: Sequence[Item], cached: Sequence[Item], cap: int) -> List[Item]:
    """Fresh items first, then cached items not already present, capped."""
    merged: List[Item] = []
    ids: Set[str] = set()
    for item in list(fresh) + list(cached):
        key = item_id(item)
        if key is None or key in ids:
            continue
        ids.add(key)
        merged.append(item)
        if len(merged) >= cap:
            break
    return merged


class CachedEventsLoader:
    """Loads category rails through the event cache."""

    def __init__(
        self,
        fetch: FetchFn,
        cache: EventCache,
        seen: Optional[SeenStore] = None,
        apply_seen: bool = False,
        exclude_ids: Optional[Callable[[], Iterable[str]]] = None,
        clock: Clock = now_ms,
    ):
        """
        Args:
            fetch: Item source, called as ``fetch(category, location, limit)``
            cache: Cache the merged results are persisted to
            seen: Seen store used when ``apply_seen`` is set
            apply_seen: Hide already-seen items from renders
            exclude_ids: Callable returning ids to hide (e.g. the veto set)
            clock: Epoch-ms clock; also picks the shuffle day
        """
        self.fetch = fetch
        self.cache = cache
        self.seen = seen
        self.apply_seen = apply_seen
        self.exclude_ids = exclude_ids
        self.clock = clock

    def is_loading(self, key: str) -> bool:
        return self.cache.is_loading(key)

    def load(
        self,
        category: str,
        location: Location = None,
        limit: Optional[int] = None,
        on_render: Optional[RenderFn] = None,
        handle: Optional[LoadHandle] = None,
    ) -> Optional[List[Item]]:
        """Run the cache-merge protocol for one category.

        Args:
            category: Upstream category id
            location: Optional ``(lat, lng)`` hint; also part of the cache key
            limit: Number of items requested from the source (defaults to the cache cap)
            on_render: Called as ``on_render(items, state)`` for each render
            handle: Cancellation token

        Returns:
            The last rendered item list, or None when a refresh for the same
            key was already running
        """
        key = make_key(category, *location) if location else make_key(category)
        if not self.cache.claim(key):
            logger.debug(f"Refresh already in flight for '{key}', skipping")
            return None

        handle = handle or LoadHandle()
        try:
            return self._load(key, category, location, limit, on_render, handle)
        finally:
            self.cache.release(key)

    def load_async(
        self,
        category: str,
        location: Location = None,
        limit: Optional[int] = None,
        on_render: Optional[RenderFn] = None,
    ) -> LoadHandle:
        """Run ``load`` on a daemon thread and return its handle."""
        handle = LoadHandle()
        thread = threading.Thread(
            target=self.load,
            args=(category, location, limit, on_render, handle),
            name=f"cache-load-{category}",
            daemon=True,
        )
        handle.thread = thread
        thread.start()
        return handle

    def _load(
        self,
        key: str,
        category: str,
        location: Location,
        limit: Optional[int],
        on_render: Optional[RenderFn],
        handle: LoadHandle,
    ) -> List[Item]:
        cap = self.cache.config.cap
        entry = self.cache.read(key)
        cached = list(entry.events) if entry else []
        rendered: List[Item] = []

        if cached:
            rendered = self._visible(cached)
            self._render(handle, on_render, rendered, RENDER_CACHED)

        try:
            raw = self.fetch(category, location, limit or cap)
        except Exception as e:
            logger.warning(f"Fetch failed for '{key}': {e}")
            if not cached:
                self._render(handle, on_render, [], RENDER_EMPTY)
            return rendered

        fresh = validate_items(raw)
        merged = merge_items(fresh, cached, cap)
        if self.cache.config.daily_shuffle:
            merged = apply_daily_shuffle(merged, self.cache.config.city, self._today())

        self.cache.write(CacheEntry(key=key, ts=self.clock(), events=merged), cap=cap)

        rendered = self._visible(merged)
        self._render(handle, on_render, rendered, RENDER_FRESH if rendered else RENDER_EMPTY)
        logger.debug(f"Loaded '{key}': {len(fresh)} fresh, {len(cached)} cached, {len(merged)} merged")
        return rendered

    def _visible(self, items: Sequence[Item]) -> List[Item]:
        hidden: Set[str] = set()
        if self.exclude_ids is not None:
            hidden.update(str(i) for i in self.exclude_ids())
        visible = [item for item in items if item_id(item) not in hidden]
        if self.apply_seen and self.seen is not None:
            visible = self.seen.filter_unseen(visible)
        return visible

    def _render(
        self,
        handle: LoadHandle,
        on_render: Optional[RenderFn],
        items: List[Item],
        state: str,
    ) -> None:
        if handle.cancelled:
            logger.debug(f"Load cancelled, dropping {state} render")
            return
        if on_render is not None:
            on_render(items, state)

    def _today(self):
        return datetime.fromtimestamp(self.clock() / 1000, tz=timezone.utc).date()
