from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import BinaryIO, Iterator, List, Optional, Tuple

from .errors import StepLimitExceeded, TapeBoundsError
from .instructions import Instruction
from .preprocessor import PreparedProgram

TAPE_LENGTH = 30000
DUMP_ROWS = 10
DUMP_LEAD = 2
DEFAULT_STEP_BUDGET = 1_000_000


@dataclass(frozen=True)
class ExecutionState:
    """Machine state after ``step`` instructions.

    ``pc`` and ``line`` describe the next instruction to run; ``line`` is
    ``None`` once the program counter has reached the end. ``cells`` is the
    same window the ``#`` dump shows, starting at ``cells_start``.
    """

    step: int
    pc: int
    line: Optional[int]
    command: Optional[Instruction]
    pointer: int
    cells_start: int
    cells: Tuple[int, ...]
    output: bytes

    @property
    def finished(self) -> bool:
        return self.line is None


def dump_window(pointer: int, tape_length: int = TAPE_LENGTH) -> range:
    begin = pointer - DUMP_LEAD if pointer >= DUMP_LEAD else 0
    return range(begin, min(begin + DUMP_ROWS, tape_length))


def format_tape_dump(tape: bytearray, pointer: int) -> str:
    lines = [f"{'CELL':>5}{'':<2}VALUE (dec|hex)"]
    for index in dump_window(pointer, len(tape)):
        value = tape[index]
        marker = " <" if index == pointer else ""
        lines.append(f"{index:05d}: {value:03d}|0x{value:02X}{marker}")
    return "\n".join(lines) + "\n"


@dataclass
class Interpreter:
    """Tape and pointer for one program run.

    Both :meth:`execute` and :meth:`step` start from a zeroed tape, so an
    instance can be reused for several runs without carrying state over.
    """

    tape_length: int = TAPE_LENGTH

    tape: bytearray = field(init=False, repr=False)
    pointer: int = field(init=False, repr=False)
    captured: io.BytesIO = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.tape = bytearray(self.tape_length)
        self.pointer = 0
        self.captured = io.BytesIO()

    def execute(
        self,
        program: PreparedProgram,
        *,
        stdin: BinaryIO,
        stdout: BinaryIO,
        debug: bool = False,
        max_steps: Optional[int] = None,
    ) -> None:
        """Run ``program`` to completion, writing output and dumps to ``stdout``."""
        self.reset()
        pc = 0
        steps = 0
        code_length = len(program)
        while pc < code_length:
            if max_steps is not None and steps >= max_steps:
                raise StepLimitExceeded(f"program exceeded its budget of {max_steps} steps")
            pc = self._execute_instruction(program, pc, stdin, stdout, debug)
            steps += 1

    def step(
        self,
        program: PreparedProgram,
        *,
        stdin: BinaryIO,
        debug: bool = False,
        max_steps: Optional[int] = None,
    ) -> Iterator[ExecutionState]:
        """Yield the initial state, then one state per executed instruction.

        Output is collected in ``captured`` and reported in every state.
        """
        self.reset()
        pc = 0
        steps = 0
        command: Optional[Instruction] = None
        yield self.snapshot(program, pc, steps, command)

        while pc < len(program):
            if max_steps is not None and steps >= max_steps:
                raise StepLimitExceeded(f"program exceeded its budget of {max_steps} steps")
            command = program.instructions[pc]
            pc = self._execute_instruction(program, pc, stdin, self.captured, debug)
            steps += 1
            yield self.snapshot(program, pc, steps, command)

    def _execute_instruction(
        self,
        program: PreparedProgram,
        pc: int,
        stdin: BinaryIO,
        stdout: BinaryIO,
        debug: bool,
    ) -> int:
        command = program.instructions[pc]
        if command is Instruction.INCREMENT:
            self.tape[self.pointer] = (self.tape[self.pointer] + 1) & 0xFF
        elif command is Instruction.DECREMENT:
            self.tape[self.pointer] = (self.tape[self.pointer] - 1) & 0xFF
        elif command is Instruction.MOVE_RIGHT:
            if self.pointer == self.tape_length - 1:
                raise TapeBoundsError(program.lines[pc], command.symbol)
            self.pointer += 1
        elif command is Instruction.MOVE_LEFT:
            if self.pointer == 0:
                raise TapeBoundsError(program.lines[pc], command.symbol)
            self.pointer -= 1
        elif command is Instruction.LOOP_OPEN:
            if self.tape[self.pointer] == 0:
                return program.jumps[pc] + 1
        elif command is Instruction.LOOP_CLOSE:
            return program.jumps[pc]
        elif command is Instruction.OUTPUT:
            stdout.write(bytes((self.tape[self.pointer],)))
        elif command is Instruction.INPUT:
            data = stdin.read(1)
            if data:
                self.tape[self.pointer] = data[0]
        elif command is Instruction.DIAGNOSTIC:
            if debug:
                stdout.write(format_tape_dump(self.tape, self.pointer).encode("ascii"))
        return pc + 1

    def snapshot(
        self,
        program: PreparedProgram,
        pc: int,
        step: int,
        command: Optional[Instruction],
    ) -> ExecutionState:
        window = dump_window(self.pointer, self.tape_length)
        return ExecutionState(
            step=step,
            pc=pc,
            line=program.lines[pc] if pc < len(program) else None,
            command=command,
            pointer=self.pointer,
            cells_start=window.start,
            cells=tuple(self.tape[window.start : window.stop]),
            output=self.captured.getvalue(),
        )


__all__ = [
    "DEFAULT_STEP_BUDGET",
    "DUMP_ROWS",
    "ExecutionState",
    "Interpreter",
    "TAPE_LENGTH",
    "dump_window",
    "format_tape_dump",
]
