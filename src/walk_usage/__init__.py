from __future__ import annotations

from .usageconfig import UsageConfig
from .usagereporter import UsageReporter
from .usagewalker import UsageWalker

__all__ = [
    "UsageConfig",
    "UsageReporter",
    "UsageWalker",
]
