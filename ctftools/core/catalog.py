"""
Catalog reader: the README table listing every tool.

Catalog rows are Markdown table lines tagged with an HTML comment marker,
for example::

    | exploit | [pwntools](https://github.com/Gallopsled/pwntools) | CTF framework. | <!--tool--><!--test-->
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional


TOOL_MARKER = "<!--tool-->"
TEST_MARKER = "<!--test-->"

COMMENT_RE = re.compile(r"<!--.*?-->")
LINK_RE = re.compile(r"\[([^\]]+)\]\(")


@dataclass
class CatalogEntry:
    """One tool row of the catalog."""
    name: Optional[str]
    line: str
    test_enabled: bool = False


class Catalog:
    """Reads tool rows from the catalog document."""

    def __init__(self, path: Path):
        self.logger = logging.getLogger(__name__)
        self.path = Path(path)

    def entries(self) -> List[CatalogEntry]:
        """
        Parse every marked row.

        Returns:
            Entries in document order, with the annotations stripped from
            ``line``; empty when the catalog is missing
        """
        if not self.path.exists():
            self.logger.warning(f"Catalog not found: {self.path}")
            return []

        entries = []
        for raw in self.path.read_text(errors="replace").splitlines():
            if TOOL_MARKER not in raw:
                continue
            line = COMMENT_RE.sub("", raw).strip()
            match = LINK_RE.search(line)
            entries.append(CatalogEntry(
                name=match.group(1) if match else None,
                line=line,
                test_enabled=TEST_MARKER in raw
            ))
        return entries

    def search(self, query: str) -> List[str]:
        """Rows containing ``query`` anywhere, ignoring case."""
        needle = query.lower()
        return [e.line for e in self.entries() if needle in e.line.lower()]

    def find(self, name: str) -> Optional[CatalogEntry]:
        for entry in self.entries():
            if entry.name == name:
                return entry
        return None

    def tests_enabled(self, name: str) -> bool:
        entry = self.find(name)
        return bool(entry and entry.test_enabled)
