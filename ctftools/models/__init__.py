"""
Data models for the ctf-tools manager.
"""

from .tool import Tool, LifecycleHook
from .action import (
    Action,
    ActionResult,
    ActionStatus,
    BatchResult,
    ErrorKind,
    ListFilter,
    UpgradeSummary,
    MAGIC_ALL,
)
from .installation import InstallState, ScriptResult, ValidationResult, ValidationStatus

__all__ = [
    "Tool",
    "LifecycleHook",
    "Action",
    "ActionResult",
    "ActionStatus",
    "BatchResult",
    "ErrorKind",
    "ListFilter",
    "UpgradeSummary",
    "MAGIC_ALL",
    "InstallState",
    "ScriptResult",
    "ValidationResult",
    "ValidationStatus"
]
