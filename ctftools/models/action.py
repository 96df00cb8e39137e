"""
Action and result models for the tool orchestrator.
"""

from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field


MAGIC_ALL = "all"


class Action(str, Enum):
    """Verbs understood by the orchestrator."""
    SETUP = "setup"
    LIST = "list"
    INSTALL = "install"
    UNINSTALL = "uninstall"
    REINSTALL = "reinstall"
    UPGRADE = "upgrade"
    BIN = "bin"
    SEARCH = "search"
    TEST = "test"


class ListFilter(str, Enum):
    """Filters accepted by the list action."""
    ALL = "all"
    INSTALLED_ONLY = "installed-only"
    UNINSTALLED_ONLY = "uninstalled-only"


class ErrorKind(str, Enum):
    """Why an action did not succeed."""
    MISSING_TOOL = "MissingTool"
    UNKNOWN_TOOL = "UnknownTool"
    INVALID_MAGIC_TOOL = "InvalidMagicTool"
    ACTION_NOT_BATCHABLE = "ActionNotBatchable"
    ALREADY_INSTALLED = "AlreadyInstalled"
    UNSAFE_SCRIPT_HEADER = "UnsafeScriptHeader"
    DEPENDENCY_INSTALL_FAILED = "DependencyInstallFailed"
    INSTALL_FAILED = "InstallFailed"
    UNINSTALL_FAILED = "UninstallFailed"
    LINK_FAILED = "LinkFailed"
    UPGRADE_FAILED = "UpgradeFailed"
    TEST_SCRIPT_FAILED = "TestScriptFailed"
    SETUP_FAILED = "SetupFailed"
    UNKNOWN_ACTION = "UnknownAction"


class ActionStatus(str, Enum):
    """Outcome of a single-tool action."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class ActionResult(BaseModel):
    """Result of running one action against one tool."""
    action: Optional[Action] = Field(..., description="Action that ran, None if it was not recognised")
    tool: Optional[str] = Field(None, description="Tool name, if any")
    status: ActionStatus = Field(..., description="Outcome")
    error: Optional[ErrorKind] = Field(None, description="Failure or skip reason")
    message: Optional[str] = Field(None, description="Human readable summary")
    log_path: Optional[Path] = Field(None, description="Captured log, if any")
    details: Dict[str, Any] = Field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return self.status == ActionStatus.FAILED

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    @classmethod
    def success(cls, action: Action, tool: Optional[str] = None,
                message: Optional[str] = None, **details: Any) -> "ActionResult":
        return cls(action=action, tool=tool, status=ActionStatus.SUCCEEDED,
                   message=message, details=details)

    @classmethod
    def failure(cls, action: Optional[Action], error: ErrorKind, tool: Optional[str] = None,
                message: Optional[str] = None, log_path: Optional[Path] = None,
                **details: Any) -> "ActionResult":
        return cls(action=action, tool=tool, status=ActionStatus.FAILED, error=error,
                   message=message, log_path=log_path, details=details)

    @classmethod
    def skipped(cls, action: Action, error: Optional[ErrorKind] = None,
                tool: Optional[str] = None, message: Optional[str] = None) -> "ActionResult":
        return cls(action=action, tool=tool, status=ActionStatus.SKIPPED, error=error,
                   message=message)


class BatchResult(BaseModel):
    """Aggregate of an action fanned out over many tools."""
    action: Action
    results: List[ActionResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if not r.failed)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.failed)

    @property
    def failed_tools(self) -> List[str]:
        return [r.tool for r in self.results if r.failed]

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0


class UpgradeSummary(BaseModel):
    """Tally of a best-effort upgrade of every installed tool."""
    succeeded: int = 0
    failed: int = 0
    failed_tools: List[str] = Field(default_factory=list)

    def record(self, result: ActionResult) -> None:
        if result.failed:
            self.failed += 1
            self.failed_tools.append(result.tool)
        else:
            self.succeeded += 1

    @property
    def exit_code(self) -> int:
        # upgrading everything never fails the run
        return 0
