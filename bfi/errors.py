from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence


@dataclass(frozen=True)
class Diagnostic:
    line: int
    message: str

    def __str__(self) -> str:
        return f"[line {self.line}] {self.message}"


class BfiError(Exception):
    """Base class for every error raised while preparing or running a program."""


class UnbalancedBracketError(BfiError):
    """Raised once the whole source has been scanned and brackets did not pair up."""

    def __init__(self, diagnostics: Sequence[Diagnostic]) -> None:
        self.diagnostics: List[Diagnostic] = list(diagnostics)
        super().__init__("; ".join(str(diagnostic) for diagnostic in self.diagnostics))


class TapeBoundsError(BfiError, IndexError):
    """Raised when the tape pointer would leave the tape."""

    def __init__(self, line: int, symbol: str) -> None:
        self.diagnostic = Diagnostic(line, f"'{symbol}' causes cell out of bounds")
        super().__init__(str(self.diagnostic))

    @property
    def line(self) -> int:
        return self.diagnostic.line


class StepLimitExceeded(BfiError, RuntimeError):
    """Raised when execution exceeds the configured step budget."""


__all__ = [
    "BfiError",
    "Diagnostic",
    "StepLimitExceeded",
    "TapeBoundsError",
    "UnbalancedBracketError",
]
