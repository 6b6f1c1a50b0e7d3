from __future__ import annotations

import argparse
import io
import sys
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Set

from .driver import report
from .errors import BfiError, StepLimitExceeded, TapeBoundsError, UnbalancedBracketError
from .interpreter import DEFAULT_STEP_BUDGET, ExecutionState, Interpreter, format_tape_dump
from .preprocessor import prepare


class Status(str, Enum):
    PAUSED = "paused"
    BREAKPOINT = "breakpoint"
    FINISHED = "finished"
    FAILED = "failed"
    EXHAUSTED = "exhausted"


HALTED = frozenset({Status.FINISHED, Status.FAILED, Status.EXHAUSTED})


class Debugger:
    """Step through a program by instruction or by source line.

    A breakpoint is a source line number and fires whenever execution
    enters that line from a different one. Every run is bounded by
    ``max_steps``; running out leaves the debugger in ``EXHAUSTED``.
    """

    def __init__(
        self,
        source: bytes,
        *,
        input_data: bytes = b"",
        debug: bool = False,
        max_steps: int = DEFAULT_STEP_BUDGET,
    ) -> None:
        self.program = prepare(source)
        self.input_data = input_data
        self.debug = debug
        self.max_steps = max_steps
        self.breakpoints: Set[int] = set()
        self.line_count = self.program.lines[-1] if self.program.lines else 0
        self.restart()

    def restart(self) -> None:
        self.interpreter = Interpreter()
        self._states: Iterator[ExecutionState] = self.interpreter.step(
            self.program,
            stdin=io.BytesIO(self.input_data),
            debug=self.debug,
            max_steps=self.max_steps,
        )
        self.state = next(self._states)
        self.error: Optional[BfiError] = None
        self.status = Status.FINISHED if self.state.finished else Status.PAUSED

    @property
    def halted(self) -> bool:
        return self.status in HALTED

    def set_breakpoint(self, line: int) -> None:
        if not 1 <= line <= self.line_count:
            raise ValueError(f"line {line} is outside the program (1-{self.line_count})")
        self.breakpoints.add(line)

    def clear_breakpoint(self, line: int) -> bool:
        if line in self.breakpoints:
            self.breakpoints.discard(line)
            return True
        return False

    def step(self, count: int = 1) -> int:
        return self._advance(count, stop_at_breakpoints=False)

    def resume(self) -> int:
        return self._advance(None, stop_at_breakpoints=True)

    def _advance(self, count: Optional[int], *, stop_at_breakpoints: bool) -> int:
        """Run instructions and return how many were executed."""
        executed = 0
        if self.halted:
            return executed
        self.status = Status.PAUSED
        previous_line = self.state.line
        while count is None or executed < count:
            try:
                state = next(self._states)
            except (TapeBoundsError, StepLimitExceeded) as exc:
                self.error = exc
                self.status = Status.FAILED if isinstance(exc, TapeBoundsError) else Status.EXHAUSTED
                break
            self.state = state
            executed += 1
            if state.finished:
                self.status = Status.FINISHED
                break
            if stop_at_breakpoints and state.line != previous_line and state.line in self.breakpoints:
                self.status = Status.BREAKPOINT
                break
            previous_line = state.line
        return executed

    def dump(self) -> str:
        return format_tape_dump(self.interpreter.tape, self.interpreter.pointer)

    def source_line(self, line: int) -> str:
        return self.program.source.split(b"\n")[line - 1].decode("utf-8", errors="replace")


def describe(state: ExecutionState) -> str:
    where = f"line {state.line}" if state.line is not None else "end"
    cells = " ".join(
        f"[{value}]" if state.cells_start + offset == state.pointer else str(value)
        for offset, value in enumerate(state.cells)
    )
    return f"step {state.step} | {where} | pc {state.pc} | ptr {state.pointer} | cells@{state.cells_start}: {cells}"


class DebuggerShell:
    """Line-oriented front end for :class:`Debugger`; an empty line repeats the last command."""

    prompt = "(bfi) "

    def __init__(self, debugger: Debugger, *, stdout=None, stderr=None) -> None:
        self.debugger = debugger
        self.stdout = stdout or sys.stdout
        self.stderr = stderr or sys.stderr
        self.last_command = "step"
        self.handlers: Dict[str, Callable[[List[str]], bool]] = {
            "step": self.do_step,
            "continue": self.do_continue,
            "break": self.do_break,
            "delete": self.do_delete,
            "list": self.do_list,
            "dump": self.do_dump,
            "output": self.do_output,
            "restart": self.do_restart,
            "help": self.do_help,
            "quit": self.do_quit,
        }

    def _print(self, text: str) -> None:
        print(text, file=self.stdout)

    def loop(self, read_line: Callable[[str], str] = input) -> None:
        self._print(describe(self.debugger.state))
        while True:
            try:
                line = read_line(self.prompt).strip() or self.last_command
            except EOFError:
                break
            if not self.execute(line):
                break

    def execute(self, line: str) -> bool:
        """Run one command line; returns ``False`` when the shell should exit."""
        if not line.split():
            return True
        name, *args = line.split()
        name = name.lower()
        matches = [name] if name in self.handlers else [
            command for command in self.handlers if command.startswith(name)
        ]
        if len(matches) != 1:
            problem = "ambiguous" if matches else "unknown"
            self._print(f"{problem} command {name!r}; try 'help'")
            return True
        self.last_command = line
        try:
            return self.handlers[matches[0]](args)
        except ValueError as exc:
            print(f"error: {exc}", file=self.stderr)
            return True

    def _report_stop(self) -> None:
        debugger = self.debugger
        self._print(describe(debugger.state))
        if debugger.status is Status.BREAKPOINT:
            self._print(f"breakpoint at line {debugger.state.line}")
        elif debugger.status is Status.FINISHED:
            self._print("program finished")
        elif isinstance(debugger.error, TapeBoundsError):
            report(debugger.error.diagnostic, self.stderr)
        elif debugger.error is not None:
            print(f"error: {debugger.error}", file=self.stderr)

    def do_step(self, args: List[str]) -> bool:
        count = int(args[0]) if args else 1
        if count < 1:
            raise ValueError("step count must be positive")
        self.debugger.step(count)
        self._report_stop()
        return True

    def do_continue(self, args: List[str]) -> bool:
        self.debugger.resume()
        self._report_stop()
        return True

    def do_break(self, args: List[str]) -> bool:
        if not args:
            lines = sorted(self.debugger.breakpoints)
            self._print("breakpoints: " + (", ".join(map(str, lines)) if lines else "none"))
            return True
        line = int(args[0])
        self.debugger.set_breakpoint(line)
        self._print(f"breakpoint set at line {line}")
        return True

    def do_delete(self, args: List[str]) -> bool:
        if not args:
            self.debugger.breakpoints.clear()
            self._print("all breakpoints deleted")
        elif self.debugger.clear_breakpoint(int(args[0])):
            self._print(f"breakpoint at line {args[0]} deleted")
        else:
            self._print(f"no breakpoint at line {args[0]}")
        return True

    def do_list(self, args: List[str]) -> bool:
        debugger = self.debugger
        if not debugger.line_count:
            self._print("(empty program)")
            return True
        current = debugger.state.line or debugger.line_count
        first = max(1, current - 3)
        for number in range(first, min(debugger.line_count, current + 3) + 1):
            marker = "->" if number == debugger.state.line else "  "
            flag = "*" if number in debugger.breakpoints else " "
            self._print(f"{marker}{flag}{number:4d}  {debugger.source_line(number)}")
        return True

    def do_dump(self, args: List[str]) -> bool:
        self.stdout.write(self.debugger.dump())
        return True

    def do_output(self, args: List[str]) -> bool:
        self._print(repr(self.debugger.state.output))
        return True

    def do_restart(self, args: List[str]) -> bool:
        self.debugger.restart()
        self._print("restarted")
        self._print(describe(self.debugger.state))
        return True

    def do_help(self, args: List[str]) -> bool:
        self._print(
            "commands (any unique prefix works):\n"
            "  step [N]       run N instructions\n"
            "  continue       run until a breakpoint line or the end\n"
            "  break [LINE]   set a breakpoint, or list them\n"
            "  delete [LINE]  remove one breakpoint, or all\n"
            "  list           show source around the current line\n"
            "  dump           show the tape dump around the pointer\n"
            "  output         show program output so far\n"
            "  restart        start over with the same input\n"
            "  quit"
        )
        return True

    def do_quit(self, args: List[str]) -> bool:
        return False


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="bfi-dbg", description="Line-oriented debugger for bfi programs")
    parser.add_argument("file", help="Path to the program source")
    parser.add_argument("--input", default="", help="Text fed to the program's input, one byte per character")
    parser.add_argument("--debug", action="store_true", help="Enable the # instruction")
    parser.add_argument(
        "--max-steps",
        type=int,
        default=DEFAULT_STEP_BUDGET,
        help=f"Instructions allowed per run (default: {DEFAULT_STEP_BUDGET:,})",
    )
    args = parser.parse_args(argv)

    try:
        source = Path(args.file).read_bytes()
        input_data = args.input.encode("latin-1")
    except OSError as exc:
        print(f"error: {exc.strerror or exc}", file=sys.stderr)
        return 1
    except UnicodeEncodeError:
        print("error: --input must only contain characters U+0000..U+00FF", file=sys.stderr)
        return 1

    try:
        debugger = Debugger(source, input_data=input_data, debug=args.debug, max_steps=args.max_steps)
    except UnbalancedBracketError as exc:
        for diagnostic in exc.diagnostics:
            report(diagnostic, sys.stderr)
        return 1

    DebuggerShell(debugger).loop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
