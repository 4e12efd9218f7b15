from .runner import Fetcher, WatchRunner
from .scheduler import WatchScheduler

__all__ = ["Fetcher", "WatchRunner", "WatchScheduler"]
