"""Outline synchronization engine for chat transcripts."""

from .adapter import MutationSource, SiteAdapter
from .events import EventBus, GenerationCompleted, GenerationStarted, OutlineUpdated, TranscriptMutated
from .manager import OutlineManager
from .models import USER_QUERY_LEVEL, Element, OutlineItem, OutlineNode, OutlineSnapshot, Rect, TreeState
from .scheduler import Idle, Observing, Pending, PostGeneration, SchedulerConfig, UpdateScheduler
from .search import highlight_segments
from .settings import OutlineSettings
from .timers import AsyncioTimers, VirtualTimers
from .visibility import is_node_visible, iter_visible_nodes

__all__ = [
    "OutlineManager",
    "OutlineSettings",
    "OutlineItem",
    "OutlineNode",
    "OutlineSnapshot",
    "TreeState",
    "Rect",
    "Element",
    "USER_QUERY_LEVEL",
    "SiteAdapter",
    "MutationSource",
    "UpdateScheduler",
    "SchedulerConfig",
    "Idle",
    "Observing",
    "Pending",
    "PostGeneration",
    "AsyncioTimers",
    "VirtualTimers",
    "EventBus",
    "GenerationStarted",
    "GenerationCompleted",
    "TranscriptMutated",
    "OutlineUpdated",
    "highlight_segments",
    "is_node_visible",
    "iter_visible_nodes",
]

__version__ = "0.1.0"
