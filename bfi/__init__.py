__version__ = "0.2"

from .errors import (
    BfiError,
    Diagnostic,
    StepLimitExceeded,
    TapeBoundsError,
    UnbalancedBracketError,
)
from .instructions import Instruction, decode, decode_program
from .interpreter import ExecutionState, Interpreter, format_tape_dump
from .preprocessor import PreparedProgram, prepare
from .driver import interpret
from .debugger import Debugger, Status

__all__ = [
    "BfiError",
    "Debugger",
    "Diagnostic",
    "ExecutionState",
    "Instruction",
    "Interpreter",
    "PreparedProgram",
    "Status",
    "StepLimitExceeded",
    "TapeBoundsError",
    "UnbalancedBracketError",
    "decode",
    "decode_program",
    "format_tape_dump",
    "interpret",
    "prepare",
]
