"""pyinfoboard - Async data core for birthday and event info widgets."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyinfoboard")
except PackageNotFoundError:
    __version__ = "0+local"
from pyinfoboard._cache import CacheEntry, TTLCache
from pyinfoboard.client import InfoboardClient, fallback_message
from pyinfoboard.config import InfoboardConfig
from pyinfoboard.countdown import (
    CountdownRegistry,
    DisplayTarget,
    TimerHandle,
    TimerState,
    TimerWindow,
    evaluate_window,
    format_time_remaining,
)
from pyinfoboard.events import process_events, register_event_timers
from pyinfoboard.exceptions import (
    InfoboardConfigError,
    InfoboardDataError,
    InfoboardError,
    InfoboardHttpError,
    InfoboardTransportError,
    MergeReferenceError,
    TimerComputeError,
)
from pyinfoboard.fetch import CachedFetcher, cache_key
from pyinfoboard.indexer import build_index, parse_month_day
from pyinfoboard.merge import merge_records, parse_customs, parse_official
from pyinfoboard.models import (
    CurrentEvent,
    CustomRecord,
    DateBucketIndex,
    DisplayEntry,
    OfficialRecord,
    RawEvent,
    RecordSource,
    UnifiedRecord,
)

__all__ = [
    "__version__",
    "CacheEntry",
    "CachedFetcher",
    "CountdownRegistry",
    "CurrentEvent",
    "CustomRecord",
    "DateBucketIndex",
    "DisplayEntry",
    "DisplayTarget",
    "InfoboardClient",
    "InfoboardConfig",
    "InfoboardConfigError",
    "InfoboardDataError",
    "InfoboardError",
    "InfoboardHttpError",
    "InfoboardTransportError",
    "MergeReferenceError",
    "OfficialRecord",
    "RawEvent",
    "RecordSource",
    "TTLCache",
    "TimerComputeError",
    "TimerHandle",
    "TimerState",
    "TimerWindow",
    "UnifiedRecord",
    "build_index",
    "cache_key",
    "evaluate_window",
    "fallback_message",
    "format_time_remaining",
    "merge_records",
    "parse_customs",
    "parse_month_day",
    "parse_official",
    "process_events",
    "register_event_timers",
]
