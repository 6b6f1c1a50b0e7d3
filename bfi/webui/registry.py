from __future__ import annotations

import threading
import uuid
from collections import OrderedDict
from typing import Tuple

from bfi.debugger import Debugger


class DebuggerRegistry:
    """Live debuggers keyed by id; the least recently used one is evicted past ``capacity``."""

    def __init__(self, capacity: int = 64) -> None:
        self.capacity = capacity
        self._debuggers: "OrderedDict[str, Debugger]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._debuggers)

    def add(self, debugger: Debugger) -> Tuple[str, Debugger]:
        debugger_id = uuid.uuid4().hex
        with self._lock:
            self._debuggers[debugger_id] = debugger
            while len(self._debuggers) > self.capacity:
                self._debuggers.popitem(last=False)
        return debugger_id, debugger

    def get(self, debugger_id: str) -> Debugger:
        with self._lock:
            debugger = self._debuggers.get(debugger_id)
            if debugger is None:
                raise KeyError(debugger_id)
            self._debuggers.move_to_end(debugger_id)
            return debugger

    def discard(self, debugger_id: str) -> bool:
        with self._lock:
            return self._debuggers.pop(debugger_id, None) is not None


__all__ = ["DebuggerRegistry"]
