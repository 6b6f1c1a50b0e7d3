from __future__ import annotations

import sys
from typing import BinaryIO, Optional, TextIO

from .errors import Diagnostic, TapeBoundsError, UnbalancedBracketError
from .interpreter import Interpreter
from .preprocessor import prepare


def report(diagnostic: Diagnostic, stream: TextIO) -> None:
    print(f"error: {diagnostic}", file=stream)


def interpret(
    source: bytes,
    *,
    debug: bool = False,
    stdin: Optional[BinaryIO] = None,
    stdout: Optional[BinaryIO] = None,
    stderr: Optional[TextIO] = None,
) -> bool:
    """Prepare and run ``source`` on a fresh tape.

    Every diagnostic is printed to ``stderr``; the return value tells the
    caller whether the program ran to its end.
    """
    stdin = stdin if stdin is not None else sys.stdin.buffer
    stdout = stdout if stdout is not None else sys.stdout.buffer
    stderr = stderr if stderr is not None else sys.stderr

    try:
        program = prepare(source)
    except UnbalancedBracketError as exc:
        for diagnostic in exc.diagnostics:
            report(diagnostic, stderr)
        return False

    interpreter = Interpreter()
    try:
        interpreter.execute(program, stdin=stdin, stdout=stdout, debug=debug)
    except TapeBoundsError as exc:
        report(exc.diagnostic, stderr)
        return False
    finally:
        stdout.flush()
    return True


__all__ = ["interpret", "report"]
