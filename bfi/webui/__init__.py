from .app import create_app
from .registry import DebuggerRegistry

__all__ = ["DebuggerRegistry", "create_app"]
