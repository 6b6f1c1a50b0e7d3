from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .errors import Diagnostic, UnbalancedBracketError
from .instructions import Instruction, decode_program


@dataclass(frozen=True)
class PreparedProgram:
    """Source bytes plus the tables the engine needs to run them.

    ``lines[i]`` is the 1-based line of byte ``i``; a newline belongs to the
    line it terminates. ``jumps[i]`` is the offset of the partner bracket
    for every ``[`` and ``]`` and ``None`` everywhere else.
    """

    source: bytes
    instructions: List[Instruction]
    lines: List[int]
    jumps: List[Optional[int]]

    def __len__(self) -> int:
        return len(self.source)


def prepare(source: bytes) -> PreparedProgram:
    """Build the line map and jump table, reporting every unbalanced bracket.

    Raises :class:`UnbalancedBracketError` after the full scan when any
    bracket is left without a partner.
    """
    instructions = decode_program(source)
    lines: List[int] = []
    jumps: List[Optional[int]] = [None] * len(source)
    diagnostics: List[Diagnostic] = []
    stack: List[int] = []
    line = 1

    for index, instruction in enumerate(instructions):
        lines.append(line)
        if source[index] == 0x0A:
            line += 1
        if instruction is Instruction.LOOP_OPEN:
            stack.append(index)
        elif instruction is Instruction.LOOP_CLOSE:
            if not stack:
                diagnostics.append(Diagnostic(lines[index], "Unbalanced ']'"))
                continue
            start = stack.pop()
            jumps[start] = index
            jumps[index] = start

    for start in stack:
        diagnostics.append(Diagnostic(lines[start], "Unbalanced '['"))

    if diagnostics:
        raise UnbalancedBracketError(diagnostics)
    return PreparedProgram(source=bytes(source), instructions=instructions, lines=lines, jumps=jumps)


__all__ = ["PreparedProgram", "prepare"]
