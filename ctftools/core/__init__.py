"""
Core modules for the ctf-tools manager.
"""

from .orchestrator import ToolOrchestrator
from .registry import ToolRegistry
from .script_validator import ScriptValidator
from .script_runner import ScriptRunner
from .state import StateTracker, MarkerStateTracker, GitStateTracker, make_state_tracker
from .catalog import Catalog, CatalogEntry
from .bin_linker import BinLinker
from .environment import EnvironmentSetup

__all__ = [
    "ToolOrchestrator",
    "ToolRegistry",
    "ScriptValidator",
    "ScriptRunner",
    "StateTracker",
    "MarkerStateTracker",
    "GitStateTracker",
    "make_state_tracker",
    "Catalog",
    "CatalogEntry",
    "BinLinker",
    "EnvironmentSetup"
]
