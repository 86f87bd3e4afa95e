"""Outline manager: the single state machine behind the outline panel.

The manager owns the outline tree for one transcript. It pulls items from a
:class:`~outlinesync.adapter.SiteAdapter`, rebuilds the tree when the content
signature changes, carries UI flags across rebuilds, applies search and
level settings, and publishes immutable snapshots to subscribers.
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from .adapter import MutationSource, SiteAdapter
from .events import EventBus, GenerationCompleted, GenerationStarted, OutlineUpdated, TranscriptMutated, Unsubscribe
from .models import Element, OutlineItem, OutlineNode, OutlineSnapshot, TreeState
from .scheduler import SchedulerConfig, UpdateScheduler
from .scroll_sync import find_visible_item_index
from .search import clear_search_marks, perform_search
from .settings import OutlineSettings
from .timers import AsyncioTimers, TimerService
from .tree import (
    build_tree,
    capture_tree_state,
    compute_level_counts,
    iter_nodes,
    max_actual_level,
    min_heading_level,
    outline_key,
    restore_tree_state,
)
from .visibility import (
    SEARCH_DISPLAY_LEVEL,
    clear_force_expanded_state,
    clear_force_visible,
    initialize_collapsed_state,
    mark_reveal_path,
)

__all__ = ["OutlineManager"]

LOGGER = logging.getLogger(__name__)

Listener = Callable[[], None]


class OutlineManager:
    """Builds and maintains the outline of a chat transcript.

    All mutation is synchronous; timers only schedule later calls into the
    same methods. ``get_state()`` returns a frozen snapshot whose ``tree``
    tuple references live nodes, which consumers must not mutate.
    """

    def __init__(
        self,
        adapter: SiteAdapter,
        settings: OutlineSettings | None = None,
        *,
        on_expand_level_change: Callable[[int], None] | None = None,
        on_show_user_queries_change: Callable[[bool], None] | None = None,
        timers: TimerService | None = None,
        mutation_source: MutationSource | None = None,
        scheduler_config: SchedulerConfig | None = None,
    ) -> None:
        self._adapter = adapter
        self._settings = settings or OutlineSettings()
        self._on_expand_level_change = on_expand_level_change
        self._on_show_user_queries_change = on_show_user_queries_change

        self._tree: list[OutlineNode] = []
        self._min_level = 1
        self._tree_key = ""
        self._listeners: list[Listener] = []
        self._event_bus: EventBus | None = None
        self._bus_subscriptions: list[Unsubscribe] = []

        self._expand_level = self._settings.expand_level
        self._level_counts: dict[int, int] = {}
        self._is_all_expanded = False

        self._search_query = ""
        self._pre_search_state: dict[str, TreeState] | None = None
        self._pre_search_expand_level: int | None = None
        self._search_level_manual = False
        self._match_count = 0

        self._is_active = False
        self._scheduler = UpdateScheduler(
            refresh=self._auto_refresh,
            force_refresh=self.force_refresh,
            is_generating=self._adapter.is_generating,
            timers=timers or AsyncioTimers(),
            interval=self._settings.update_interval,
            mutation_source=mutation_source,
            config=scheduler_config,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def tree(self) -> list[OutlineNode]:
        return self._tree

    @property
    def settings(self) -> OutlineSettings:
        return self._settings

    @property
    def search_query(self) -> str:
        return self._search_query

    @property
    def scheduler(self) -> UpdateScheduler:
        return self._scheduler

    @property
    def is_active(self) -> bool:
        return self._is_active

    @property
    def min_relative_level(self) -> int:
        return 0 if self._settings.show_user_queries else 1

    def get_state(self) -> OutlineSnapshot:
        if self._search_query and not self._search_level_manual:
            display_level = SEARCH_DISPLAY_LEVEL
        else:
            display_level = self._expand_level
        display_level = max(display_level, self.min_relative_level)
        return OutlineSnapshot.build(
            tree=self._tree,
            level_counts=self._level_counts,
            expand_level=self._expand_level,
            is_all_expanded=self._is_all_expanded,
            include_user_queries=self._settings.show_user_queries,
            min_relative_level=self.min_relative_level,
            display_level=display_level,
            search_level_manual=self._search_level_manual,
            match_count=self._match_count,
            search_query=self._search_query,
        )

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            self._listeners = [existing for existing in self._listeners if existing is not listener]

        return _unsubscribe

    def attach_event_bus(self, bus: EventBus) -> None:
        """Route host events through ``bus`` and publish :class:`OutlineUpdated`."""

        if self._event_bus is bus:
            return
        self.detach_event_bus()
        self._event_bus = bus
        self._bus_subscriptions = [
            bus.subscribe(GenerationStarted, self._handle_generation_started),
            bus.subscribe(GenerationCompleted, self._handle_generation_completed),
            bus.subscribe(TranscriptMutated, self._handle_transcript_mutated),
        ]

    def detach_event_bus(self) -> None:
        self._event_bus = None
        subscriptions, self._bus_subscriptions = self._bus_subscriptions, []
        for unsubscribe in subscriptions:
            unsubscribe()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                LOGGER.exception("Outline listener %r failed", listener)
        bus = self._event_bus
        if bus is not None:
            bus.publish(OutlineUpdated(item_count=sum(1 for _ in iter_nodes(self._tree)), match_count=self._match_count))

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------
    def refresh(self, override_level: int | None = None) -> bool:
        """Re-extract the outline and rebuild the tree if its content changed.

        Returns ``True`` when a structural rebuild happened. ``override_level``
        forces a rebuild at that level and discards carried UI state.
        """

        if not self._settings.enabled:
            return False
        try:
            items = list(self._adapter.extract_outline(self._settings.max_level, self._settings.show_user_queries))
        except Exception:
            LOGGER.warning("Outline extraction failed; keeping previous tree", exc_info=True)
            return False

        if not items:
            self._level_counts = {}
            self._match_count = 0
            if self._tree:
                self._tree = []
                self._notify()
            return False

        self._level_counts = compute_level_counts(items)
        self._min_level = min_heading_level(items)

        key = outline_key(items)
        if key == self._tree_key and self._tree and override_level is None:
            return False
        state_map = capture_tree_state(self._tree) if self._tree else {}
        self._rebuild(items, key)

        if override_level is not None:
            self._expand_level = override_level
        effective_level = max(self._expand_level, self.min_relative_level)
        initialize_collapsed_state(self._tree, effective_level)
        if override_level is None and state_map:
            restore_tree_state(self._tree, state_map)
        if self._search_query:
            self._match_count = perform_search(self._tree, self._search_query)
        self._is_all_expanded = self._expand_level >= max_actual_level(self._level_counts)
        self._notify()
        return True

    def force_refresh(self) -> bool:
        """Rebuild even when the content signature is unchanged.

        Used after generation completes so nodes pick up fresh element
        references.
        """

        self._tree_key = ""
        return self.refresh()

    def _rebuild(self, items: Sequence[OutlineItem], key: str) -> None:
        self._tree = build_tree(items, self._min_level)
        self._tree_key = key
        LOGGER.debug("Outline rebuilt with %d item(s), min level %d", len(items), self._min_level)

    def _auto_refresh(self) -> bool:
        previous_key = self._tree_key
        self.refresh()
        return self._tree_key != previous_key

    # ------------------------------------------------------------------
    # Level and collapse control
    # ------------------------------------------------------------------
    def toggle_node(self, node: OutlineNode) -> None:
        node.collapsed = not node.collapsed
        if not node.collapsed:
            node.force_expanded = True
        self._notify()

    def set_level(self, level: int) -> None:
        self._expand_level = level
        if self._tree:
            clear_force_expanded_state(self._tree, level)
        self._is_all_expanded = level >= max_actual_level(self._level_counts)
        if self._search_query:
            self._search_level_manual = True
        if self._on_expand_level_change is not None:
            self._on_expand_level_change(level)
        self._notify()

    def collapse_all(self) -> None:
        target = 0 if self._settings.show_user_queries else (self._min_level or 1)
        self.set_level(target)

    def expand_all(self) -> None:
        self.set_level(max_actual_level(self._level_counts))

    def reveal_node(self, index: int) -> bool:
        """Pin the node at flat-list ``index`` and its ancestors visible."""

        if mark_reveal_path(self._tree, index):
            self._notify()
            return True
        return False

    def clear_force_visible(self) -> None:
        clear_force_visible(self._tree, self._expand_level)
        self._notify()

    def set_show_user_queries(self, show: bool) -> None:
        self._settings = self._settings.copy_with(show_user_queries=show)
        self.refresh()
        # refresh() stays silent when the content key is unchanged
        self._notify()
        if self._on_show_user_queries_change is not None:
            self._on_show_user_queries_change(show)

    def toggle_group_mode(self) -> None:
        self.set_show_user_queries(not self._settings.show_user_queries)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------
    def set_search_query(self, query: str) -> None:
        if not query:
            self._exit_search()
        else:
            if not self._search_query and self._tree:
                self._pre_search_state = capture_tree_state(self._tree)
                self._pre_search_expand_level = self._expand_level
            if self._tree:
                clear_force_expanded_state(self._tree, 0)
            self._search_query = query
            self._search_level_manual = False
            self._match_count = perform_search(self._tree, query)
        self._notify()

    def _exit_search(self) -> None:
        self._search_query = ""
        self._search_level_manual = False
        self._match_count = 0
        if self._pre_search_expand_level is not None:
            self._expand_level = self._pre_search_expand_level
            self._pre_search_expand_level = None
        if not self._tree:
            self._pre_search_state = None
            return
        clear_search_marks(self._tree)
        clear_force_expanded_state(self._tree, self._expand_level)
        if self._pre_search_state is not None:
            restore_tree_state(self._tree, self._pre_search_state)
            self._pre_search_state = None

    # ------------------------------------------------------------------
    # Scroll sync
    # ------------------------------------------------------------------
    def find_visible_item_index(self, viewport_top: float, viewport_bottom: float) -> int | None:
        """Flat-list index of the node in view, or ``None``.

        Only active when ``follow_mode`` is ``"current"``.
        """

        if self._settings.follow_mode != "current":
            return None
        return find_visible_item_index(
            lambda: self._tree,
            self._adapter,
            viewport_top,
            viewport_bottom,
            refresh=self.refresh,
        )

    # ------------------------------------------------------------------
    # Adapter pass-throughs
    # ------------------------------------------------------------------
    def get_scroll_container(self) -> Element | None:
        return self._adapter.get_scroll_container()

    def extract_user_query_text(self, element: Element) -> str:
        return self._adapter.extract_user_query_text(element)

    def find_element_by_heading(self, level: int, text: str) -> Element | None:
        return self._adapter.find_element_by_heading(level, text)

    def find_user_query_element(self, query_index: int, text: str) -> Element | None:
        return self._adapter.find_user_query_element(query_index, text)

    # ------------------------------------------------------------------
    # Auto-update lifecycle
    # ------------------------------------------------------------------
    def set_active(self, active: bool) -> None:
        """Mark whether a panel is displaying the outline."""

        self._is_active = bool(active)
        self._update_auto_update_state()

    def update_settings(self, settings: OutlineSettings) -> None:
        self._settings = settings
        self._expand_level = settings.expand_level
        self._scheduler.interval = settings.update_interval
        self.refresh()
        self._update_auto_update_state()

    def stop_auto_update(self) -> None:
        self._scheduler.stop()

    def notify_mutation(self) -> None:
        self._scheduler.notify_mutation()

    def notify_generation_start(self) -> None:
        self._scheduler.notify_generation_start()

    def notify_generation_complete(self) -> None:
        self._scheduler.notify_generation_complete()

    def _update_auto_update_state(self) -> None:
        should_enable = self._settings.enabled and self._settings.auto_update and self._is_active
        if should_enable and not self._scheduler.is_observing:
            self._scheduler.start()
        elif not should_enable and self._scheduler.is_observing:
            self._scheduler.stop()

    # ------------------------------------------------------------------
    # Event bus handlers
    # ------------------------------------------------------------------
    def _handle_generation_started(self, event: GenerationStarted) -> None:
        del event
        self.notify_generation_start()

    def _handle_generation_completed(self, event: GenerationCompleted) -> None:
        del event
        self.notify_generation_complete()

    def _handle_transcript_mutated(self, event: TranscriptMutated) -> None:
        del event
        self.notify_mutation()
