from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional


class Instruction(str, Enum):
    INCREMENT = "+"
    DECREMENT = "-"
    MOVE_RIGHT = ">"
    MOVE_LEFT = "<"
    LOOP_OPEN = "["
    LOOP_CLOSE = "]"
    OUTPUT = "."
    INPUT = ","
    DIAGNOSTIC = "#"
    INERT = ""

    @property
    def symbol(self) -> Optional[str]:
        return self.value or None


_BY_BYTE: Dict[int, Instruction] = {
    ord(instruction.value): instruction
    for instruction in Instruction
    if instruction is not Instruction.INERT
}


def decode(byte: int) -> Instruction:
    """Map a single source byte to its instruction; unknown bytes are inert."""
    return _BY_BYTE.get(byte, Instruction.INERT)


def decode_program(source: bytes) -> List[Instruction]:
    return [decode(byte) for byte in source]


__all__ = ["Instruction", "decode", "decode_program"]
