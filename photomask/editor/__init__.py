"""
Mask editing: state, history, tools and the save handshake.
"""

from .history import HistoryManager
from .mask_store import MaskStore
from .tools import Tool, ToolController, ToolSettings, Viewport
from .gateway import PersistenceGateway
from .session import EditorSession

__all__ = [
    "EditorSession",
    "HistoryManager",
    "MaskStore",
    "PersistenceGateway",
    "Tool",
    "ToolController",
    "ToolSettings",
    "Viewport",
]
