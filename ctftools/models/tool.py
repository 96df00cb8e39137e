"""
Tool-related data models.
"""

import os
from enum import Enum
from pathlib import Path
from typing import List
from pydantic import BaseModel, Field


class LifecycleHook(str, Enum):
    """Lifecycle scripts a tool directory may provide."""
    INSTALL = "install"
    UNINSTALL = "uninstall"
    UPGRADE = "upgrade"
    TEST = "test"
    INSTALL_DEP = "install-dep"


class Tool(BaseModel):
    """A tool directory managed by the orchestrator."""
    name: str = Field(..., description="Tool name, same as the directory name")
    path: Path = Field(..., description="Absolute path to the tool directory")

    @property
    def is_valid(self) -> bool:
        """A directory is a tool only if it ships an install script."""
        return self.script(LifecycleHook.INSTALL).is_file()

    @property
    def bin_dir(self) -> Path:
        return self.path / "bin"

    def script(self, hook: LifecycleHook) -> Path:
        """Path of a lifecycle script, whether or not it exists."""
        return self.path / hook.value

    def has_hook(self, hook: LifecycleHook) -> bool:
        return self.script(hook).is_file()

    def is_executable(self, hook: LifecycleHook) -> bool:
        script = self.script(hook)
        return script.is_file() and os.access(script, os.X_OK)

    def log_path(self, name: str) -> Path:
        return self.path / f"{name}.log"

    def header_checked_scripts(self) -> List[Path]:
        """
        Scripts subject to the strict-mode header policy.

        Covers every ``install*`` and ``uninstall*`` file plus ``test``,
        leaving out the logs the lifecycle runs leave behind.
        """
        scripts = []
        for entry in sorted(self.path.iterdir()):
            if not entry.is_file() or entry.suffix == ".log":
                continue
            if entry.name.startswith(("install", "uninstall")) or entry.name == "test":
                scripts.append(entry)
        return scripts

