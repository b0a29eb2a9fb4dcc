from __future__ import annotations

import math
from typing import Any, Callable, Generic, Sequence, TypeVar

T = TypeVar("T")

_UNCHANGED: Any = object()


class InfiniteScroll(Generic[T]):
    """Reveal a growing prefix of ``items`` one page at a time.

    The owner calls :meth:`update` with the current records whenever they
    change. The window resets to one page only when the number of records
    changes; a new list of the same length keeps the current window.
    """

    def __init__(
        self,
        items: Sequence[T] | None,
        items_per_page: int,
        has_more: bool = True,
        on_load_more: Callable[[], Any] | None = None,
        loading: bool = False,
    ) -> None:
        if items_per_page < 1:
            raise ValueError("items_per_page must be at least 1.")
        self.items_per_page = items_per_page
        self.current_page = 1
        self.has_more = has_more
        self.on_load_more = on_load_more
        self.loading = loading
        self.generation = 0
        self._items: Sequence[T] = ()
        self._previous_length = 0
        self.update(items)

    @property
    def items(self) -> Sequence[T]:
        return self._items

    def update(
        self,
        items: Sequence[T] | None,
        *,
        has_more: bool = _UNCHANGED,
        on_load_more: Callable[[], Any] | None = _UNCHANGED,
        loading: bool = _UNCHANGED,
    ) -> None:
        if has_more is not _UNCHANGED:
            self.has_more = has_more
        if on_load_more is not _UNCHANGED:
            self.on_load_more = on_load_more
        if loading is not _UNCHANGED:
            self.loading = loading

        incoming = items if items is not None else ()
        if incoming is self._items:
            return
        self._items = incoming
        length = len(incoming)
        if length != self._previous_length:
            self._previous_length = length
            self.current_page = 1
        self.generation += 1

    @property
    def visible_items(self) -> list[T]:
        return list(self._items[: self.current_page * self.items_per_page])

    @property
    def window_size(self) -> int:
        return min(self.current_page * self.items_per_page, len(self._items))

    @property
    def can_load_more(self) -> bool:
        if self.current_page * self.items_per_page < len(self._items):
            return True
        return bool(self.has_more and self.on_load_more is not None)

    def load_more(self) -> bool:
        """Grow the window by one page, or ask for more remote records.

        Returns ``True`` when the local window grew.
        """
        if self.loading:
            return False
        max_pages = math.ceil(len(self._items) / self.items_per_page)
        if self.current_page < max_pages:
            self.current_page += 1
            self.generation += 1
            return True
        if self.has_more and self.on_load_more is not None:
            self.on_load_more()
        return False

    def reset(self) -> None:
        self.current_page = 1
        self.generation += 1


class VisibilityTrigger:
    """Edge-triggered "near the end of the list" signal.

    ``observe`` receives the distance in pixels between the list sentinel and
    the bottom of the viewport (zero or negative once it is on screen). The
    trigger fires at most once per visibility event and engine state; it
    re-arms when the sentinel leaves the margin or the engine's records or
    window change.
    """

    def __init__(self, scroll: InfiniteScroll, root_margin: float = 100.0) -> None:
        self.scroll = scroll
        self.root_margin = root_margin
        self._fired_generation: int | None = None

    def observe(self, distance: float) -> bool:
        if distance > self.root_margin:
            self._fired_generation = None
            return False
        if self.scroll.loading or self._fired_generation == self.scroll.generation:
            return False
        self.scroll.load_more()
        self._fired_generation = self.scroll.generation
        return True
