"""
Utility modules for the ctf-tools manager.
"""

from .logging import setup_root_logger, tool_logger, ToolLogAdapter

__all__ = ["setup_root_logger", "tool_logger", "ToolLogAdapter"]
