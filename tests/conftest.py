"""
Shared test fixtures: throwaway tool workspaces with real bash lifecycle scripts.
"""

import io
import logging
from pathlib import Path
from typing import Callable, Optional

import pytest

from config.settings import Settings
from ctftools.core.orchestrator import ToolOrchestrator


STRICT_HEADER = "#!/bin/bash -ex\n"

DEFAULT_INSTALL = "mkdir -p build\necho built > build/artifact\n"

ENV_VARS = [
    "ALLOW_SUDO", "FORCE", "VERBOSE_OUTPUT", "NICE_LEVEL", "EXPECTFAIL",
    "CTF_TOOLS_ROOT", "CTF_TOOLS_CATALOG", "CTF_TOOLS_SETUP_SCRIPT", "CTF_TOOLS_PROFILE",
    "CTF_TOOLS_STATE", "CTF_TOOLS_STRICT_HEADERS", "CTF_TOOLS_SUDO",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path: Path):
    """Keep the caller's environment and any .env file out of the settings."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """main() reconfigures the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def tools_root(tmp_path: Path) -> Path:
    """Return an empty tools root with its global bin directory."""
    root = tmp_path / "tools"
    (root / "bin").mkdir(parents=True)
    return root


def write_script(path: Path, body: str, header: str = STRICT_HEADER) -> Path:
    path.write_text(header + body)
    path.chmod(0o755)
    return path


@pytest.fixture
def make_tool(tools_root: Path) -> Callable[..., Path]:
    """
    Factory creating a tool directory.

    Each keyword names a lifecycle script (``install_dep`` for install-dep)
    and gives its body; the strict header is prepended unless ``header`` is
    passed.
    """
    def _make_tool(name: str,
                   install: Optional[str] = DEFAULT_INSTALL,
                   header: str = STRICT_HEADER,
                   **scripts: str) -> Path:
        tool_dir = tools_root / name
        tool_dir.mkdir()
        if install is not None:
            write_script(tool_dir / "install", install, header)
        for hook, body in scripts.items():
            write_script(tool_dir / hook.replace("_", "-"), body, header)
        return tool_dir

    return _make_tool


@pytest.fixture
def settings(tools_root: Path, tmp_path: Path) -> Settings:
    """Settings pointing at the temporary tools root, with sudo disabled."""
    return Settings(
        tools_root=tools_root,
        shell_profile=tmp_path / "home" / ".bashrc",
        sudo_command=[],
    )


@pytest.fixture
def make_orchestrator(settings: Settings) -> Callable[..., ToolOrchestrator]:
    """Factory for orchestrators writing to in-memory streams."""
    def _make(**overrides) -> ToolOrchestrator:
        effective = settings.model_copy(update=overrides) if overrides else settings
        return ToolOrchestrator(effective, out=io.StringIO(), err=io.StringIO())

    return _make


@pytest.fixture
def orchestrator(make_orchestrator) -> ToolOrchestrator:
    return make_orchestrator()
