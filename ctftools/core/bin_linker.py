"""
Maintains the global bin directory of tool binaries.
"""

import logging
import os
from pathlib import Path
from typing import List

from ..models.tool import Tool


class BinLinker:
    """Links each tool's ``bin/`` entries into the global bin directory."""

    def __init__(self, bin_dir: Path):
        self.logger = logging.getLogger(__name__)
        self.bin_dir = Path(bin_dir)

    def link(self, tool: Tool) -> List[str]:
        """
        Create or refresh the links for one tool.

        Each entry ``<tool>/bin/<name>`` gets a relative link
        ``bin/<name> -> ../<tool>/bin/<name>``, replacing whatever link or
        file had that name before.

        Args:
            tool: Tool whose binaries are linked

        Returns:
            Names linked, sorted
        """
        if not tool.bin_dir.is_dir():
            return []

        self.bin_dir.mkdir(parents=True, exist_ok=True)
        linked = []
        for entry in sorted(tool.bin_dir.iterdir()):
            link = self.bin_dir / entry.name
            target = os.path.relpath(entry, self.bin_dir)
            if link.is_symlink() or link.is_file():
                link.unlink()
            link.symlink_to(target)
            linked.append(entry.name)

        self.logger.debug(f"Linked {len(linked)} binaries for {tool.name}")
        return linked

    def unlink(self, tool: Tool) -> List[str]:
        """Remove the links that point into a tool's bin directory."""
        if not self.bin_dir.is_dir():
            return []

        prefix = os.path.relpath(tool.bin_dir, self.bin_dir) + os.sep
        removed = []
        for link in sorted(self.bin_dir.iterdir()):
            if link.is_symlink() and os.readlink(link).startswith(prefix):
                link.unlink()
                removed.append(link.name)
        return removed
