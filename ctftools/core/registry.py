"""
Tool discovery under the tools root.
"""

import logging
from pathlib import Path
from typing import List, Optional

from ..models.action import ListFilter
from ..models.tool import Tool
from .state import StateTracker


class ToolRegistry:
    """Finds tool directories and answers filtered listings."""

    def __init__(self, tools_root: Path, state: StateTracker):
        self.logger = logging.getLogger(__name__)
        self.tools_root = Path(tools_root)
        self.state = state

    def get(self, name: str) -> Optional[Tool]:
        """
        Look up a tool by directory name.

        Returns None if the directory is missing or is not a tool.
        """
        if not self._plain_name(name):
            return None
        path = self.tools_root / name
        if not path.is_dir():
            return None
        tool = Tool(name=name, path=path)
        return tool if tool.is_valid else None

    def _plain_name(self, name: str) -> bool:
        return bool(name) and "/" not in name and name not in (".", "..")

    def tools(self) -> List[Tool]:
        """Every directory with an install script, sorted by name."""
        if not self.tools_root.is_dir():
            self.logger.warning(f"Tools root not found: {self.tools_root}")
            return []

        tools = []
        for path in sorted(self.tools_root.iterdir()):
            if not path.is_dir():
                continue
            tool = Tool(name=path.name, path=path)
            if tool.is_valid:
                tools.append(tool)
        return tools

    def installed(self) -> List[Tool]:
        return [t for t in self.tools() if self.state.is_installed(t)]

    def list(self, list_filter: ListFilter = ListFilter.ALL) -> List[Tool]:
        if list_filter == ListFilter.INSTALLED_ONLY:
            return self.installed()
        if list_filter == ListFilter.UNINSTALLED_ONLY:
            return [t for t in self.tools() if not self.state.is_installed(t)]
        return self.tools()
