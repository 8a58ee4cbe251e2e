"""Detect kernel OOM kills and report them with the killed process's full command line."""

__version__ = "0.1.0"

__all__ = [
    "CorrelationEngine",
    "KernelLogWatcher",
    "NotifierDispatcher",
    "OomEvent",
    "OomNotifierService",
    "ProcessTableCache",
    "ProcessTableRefresher",
    "ShutdownCoordinator",
    "__version__",
]

from .correlation import CorrelationEngine
from .event import OomEvent
from .kernel_log import KernelLogWatcher
from .notifiers import NotifierDispatcher
from .process_table import ProcessTableCache, ProcessTableRefresher
from .service import OomNotifierService
from .shutdown import ShutdownCoordinator
