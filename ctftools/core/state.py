"""
Installed-state tracking for tool directories.
"""

import logging
import os
import shutil
import subprocess
from pathlib import Path, PurePosixPath
from typing import List, Optional

from pydantic import ValidationError

from ..models.installation import InstallState
from ..models.tool import Tool


STATE_FILE = ".install-state.json"


class StateTracker:
    """Answers "is this tool installed?" and cleans build output away."""

    def is_installed(self, tool: Tool) -> bool:
        raise NotImplementedError

    def track(self, tool: Tool) -> None:
        """Called before a lifecycle action touches the tool directory."""

    def record(self, tool: Tool) -> None:
        """Called after a lifecycle script ran, whatever its exit code."""

    def mark_installed(self, tool: Tool) -> None:
        """Called after the install script succeeded."""

    def reset(self, tool: Tool) -> bool:
        """Remove everything the tool's lifecycle scripts produced."""
        raise NotImplementedError


class MarkerStateTracker(StateTracker):
    """
    Tracks state with a manifest file inside each tool directory.

    The manifest splits the directory into the tool's own files
    (``tracked_files``) and what lifecycle scripts left behind
    (``produced_files``). Files that show up between two lifecycle runs, such
    as a pulled update or a fixed script, are sources and get tracked before
    the next run, unless they sit inside a directory a script produced. ``reset`` deletes everything that is not tracked, the
    manifest included.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def _state_path(self, tool: Tool) -> Path:
        return tool.path / STATE_FILE

    def load(self, tool: Tool) -> Optional[InstallState]:
        path = self._state_path(tool)
        if not path.exists():
            return None
        try:
            return InstallState.model_validate_json(path.read_text())
        except ValidationError as exc:
            self.logger.warning(f"Ignoring unreadable state file {path}: {exc}")
            return None

    def save(self, tool: Tool, state: InstallState) -> Path:
        path = self._state_path(tool)
        path.write_text(state.model_dump_json(indent=2))
        return path

    def is_installed(self, tool: Tool) -> bool:
        state = self.load(tool)
        return bool(state and state.installed)

    def track(self, tool: Tool) -> None:
        state = self.load(tool)
        if state is None:
            self.save(tool, InstallState(tracked_files=self.snapshot(tool)))
            return

        produced = set(state.produced_files)
        # new files inside build output directories belong to the build
        added = [rel for rel in self.unknown_files(tool, state)
                 if not any(parent.as_posix() in produced for parent in PurePosixPath(rel).parents)]
        if added:
            self.logger.debug(f"Tracking new files in {tool.name}: {' '.join(added)}")
            state.tracked_files = sorted(set(state.tracked_files) | set(added))
            self.save(tool, state)

    def record(self, tool: Tool) -> None:
        state = self.load(tool)
        if state is None:
            return
        produced = self.unknown_files(tool, state)
        if produced:
            state.produced_files = sorted(set(state.produced_files) | set(produced))
            self.save(tool, state)

    def mark_installed(self, tool: Tool) -> None:
        state = self.load(tool) or InstallState(tracked_files=self.snapshot(tool))
        state.produced_files = sorted(set(state.produced_files) | set(self.unknown_files(tool, state)))
        state.mark_installed()
        self.save(tool, state)

    def snapshot(self, tool: Tool) -> List[str]:
        """Relative paths of every file and directory currently in the tool."""
        tracked = []
        for dirpath, dirnames, filenames in os.walk(tool.path):
            base = Path(dirpath)
            for name in dirnames + filenames:
                rel = (base / name).relative_to(tool.path).as_posix()
                if rel != STATE_FILE:
                    tracked.append(rel)
        return sorted(tracked)

    def unknown_files(self, tool: Tool, state: InstallState) -> List[str]:
        """Paths the manifest has not classified yet."""
        known = set(state.tracked_files) | set(state.produced_files)
        return [rel for rel in self.snapshot(tool) if rel not in known]

    def reset(self, tool: Tool) -> bool:
        state = self.load(tool)
        if state is None:
            self.logger.debug(f"No state file for {tool.name}, nothing to clean")
            return True

        tracked = set(state.tracked_files)
        # directories holding tracked files stay even if they were created by a build
        parents = {parent.as_posix() for rel in tracked for parent in PurePosixPath(rel).parents}
        removed = 0
        try:
            for dirpath, dirnames, filenames in os.walk(tool.path, topdown=False):
                base = Path(dirpath)
                for name in filenames + dirnames:
                    path = base / name
                    rel = path.relative_to(tool.path).as_posix()
                    if rel in tracked or rel in parents or rel == STATE_FILE:
                        continue
                    if path.is_symlink() or not path.is_dir():
                        path.unlink()
                    else:
                        shutil.rmtree(path)
                    removed += 1
            self._state_path(tool).unlink()
        except OSError as e:
            self.logger.error(f"Could not clean {tool.name}: {e}")
            return False

        self.logger.debug(f"Removed {removed} untracked paths from {tool.name}")
        return True


class GitStateTracker(StateTracker):
    """
    Tracks state through git: a tool is installed when its directory holds
    untracked or ignored files.
    """

    def __init__(self, tools_root: Path):
        self.logger = logging.getLogger(__name__)
        self.tools_root = Path(tools_root)

    def _git(self, *args: str) -> subprocess.CompletedProcess:
        return subprocess.run(
            ['git', '-C', str(self.tools_root), *args],
            capture_output=True,
            text=True
        )

    def is_installed(self, tool: Tool) -> bool:
        result = self._git('status', '--porcelain', '--ignored', '--', f"{tool.name}/")
        if result.returncode != 0:
            self.logger.warning(f"git status failed for {tool.name}: {result.stderr.strip()}")
            return False
        return any(line.startswith(("??", "!!")) for line in result.stdout.splitlines())

    def reset(self, tool: Tool) -> bool:
        result = self._git('clean', '-dffqx', '--', f"{tool.name}/")
        if result.returncode != 0:
            self.logger.error(f"git clean failed for {tool.name}: {result.stderr.strip()}")
            return False
        return True


def make_state_tracker(backend: str, tools_root: Path) -> StateTracker:
    """Build the tracker named by the state_backend setting."""
    if backend == "git":
        return GitStateTracker(tools_root)
    return MarkerStateTracker()
