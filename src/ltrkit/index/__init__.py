from ltrkit.index.stats import TermStatisticsProvider
from ltrkit.index.memory import MemoryIndex

__all__ = ["TermStatisticsProvider", "MemoryIndex"]
