from __future__ import annotations

import io
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Response, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field, field_validator

from bfi import __version__
from bfi.debugger import Debugger
from bfi.errors import Diagnostic, StepLimitExceeded, TapeBoundsError, UnbalancedBracketError
from bfi.interpreter import DEFAULT_STEP_BUDGET, Interpreter
from bfi.preprocessor import prepare

from .registry import DebuggerRegistry

# Program text travels as UTF-8; program input and output map one latin-1
# character to one byte.


def _input_bytes(value: str) -> bytes:
    return value.encode("latin-1")


def _output_text(data: bytes) -> str:
    return data.decode("latin-1")


class DiagnosticModel(BaseModel):
    line: int
    message: str

    @classmethod
    def of(cls, diagnostic: Diagnostic) -> "DiagnosticModel":
        return cls(line=diagnostic.line, message=diagnostic.message)


class ProgramRequest(BaseModel):
    code: str = ""
    input: str = ""
    debug: bool = False
    max_steps: int = Field(default=DEFAULT_STEP_BUDGET, ge=1)

    @field_validator("input")
    @classmethod
    def input_fits_in_bytes(cls, value: str) -> str:
        try:
            _input_bytes(value)
        except UnicodeEncodeError as exc:
            raise ValueError("input must only contain characters U+0000..U+00FF") from exc
        return value


class RunResult(BaseModel):
    success: bool
    output: str
    diagnostics: List[DiagnosticModel]


class DebuggerRequest(ProgramRequest):
    breakpoints: List[int] = Field(default_factory=list)


class StepRequest(BaseModel):
    count: int = Field(default=1, ge=1)


class BreakpointsRequest(BaseModel):
    lines: List[int]


class HaltReason(BaseModel):
    message: str
    line: Optional[int] = None


class DebuggerView(BaseModel):
    id: str
    status: str
    step: int
    pc: int
    line: Optional[int]
    line_count: int
    pointer: int
    cells_start: int
    cells: List[int]
    output: str
    breakpoints: List[int]
    max_steps: int
    error: Optional[HaltReason] = None
    executed: int = 0


def _view(debugger_id: str, debugger: Debugger, executed: int = 0) -> DebuggerView:
    state = debugger.state
    error = None
    if isinstance(debugger.error, TapeBoundsError):
        error = HaltReason(message=debugger.error.diagnostic.message, line=debugger.error.line)
    elif debugger.error is not None:
        error = HaltReason(message=str(debugger.error))
    return DebuggerView(
        id=debugger_id,
        status=debugger.status.value,
        step=state.step,
        pc=state.pc,
        line=state.line,
        line_count=debugger.line_count,
        pointer=state.pointer,
        cells_start=state.cells_start,
        cells=list(state.cells),
        output=_output_text(state.output),
        breakpoints=sorted(debugger.breakpoints),
        max_steps=debugger.max_steps,
        error=error,
        executed=executed,
    )


def _unbalanced(exc: UnbalancedBracketError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=[DiagnosticModel.of(item).model_dump() for item in exc.diagnostics],
    )


def create_app(registry: Optional[DebuggerRegistry] = None) -> FastAPI:
    debuggers = registry if registry is not None else DebuggerRegistry()
    app = FastAPI(title="bfi", version=__version__)

    def lookup(debugger_id: str) -> Debugger:
        try:
            return debuggers.get(debugger_id)
        except KeyError as exc:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"no debugger with id {debugger_id}",
            ) from exc

    @app.post("/api/run", response_model=RunResult)
    def run_program(payload: ProgramRequest) -> RunResult:
        try:
            program = prepare(payload.code.encode("utf-8"))
        except UnbalancedBracketError as exc:
            return RunResult(
                success=False,
                output="",
                diagnostics=[DiagnosticModel.of(item) for item in exc.diagnostics],
            )

        stdout = io.BytesIO()
        diagnostics: List[DiagnosticModel] = []
        try:
            Interpreter().execute(
                program,
                stdin=io.BytesIO(_input_bytes(payload.input)),
                stdout=stdout,
                debug=payload.debug,
                max_steps=payload.max_steps,
            )
        except TapeBoundsError as exc:
            diagnostics.append(DiagnosticModel.of(exc.diagnostic))
        except StepLimitExceeded as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        return RunResult(
            success=not diagnostics,
            output=_output_text(stdout.getvalue()),
            diagnostics=diagnostics,
        )

    @app.post("/api/debuggers", response_model=DebuggerView, status_code=status.HTTP_201_CREATED)
    def open_debugger(payload: DebuggerRequest) -> DebuggerView:
        try:
            debugger = Debugger(
                payload.code.encode("utf-8"),
                input_data=_input_bytes(payload.input),
                debug=payload.debug,
                max_steps=payload.max_steps,
            )
            for line in payload.breakpoints:
                debugger.set_breakpoint(line)
        except UnbalancedBracketError as exc:
            raise _unbalanced(exc) from exc
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
        debugger_id, _ = debuggers.add(debugger)
        return _view(debugger_id, debugger)

    @app.get("/api/debuggers/{debugger_id}", response_model=DebuggerView)
    def show_debugger(debugger_id: str, debugger: Debugger = Depends(lookup)) -> DebuggerView:
        return _view(debugger_id, debugger)

    @app.post("/api/debuggers/{debugger_id}/step", response_model=DebuggerView)
    def step_debugger(
        debugger_id: str,
        payload: StepRequest,
        debugger: Debugger = Depends(lookup),
    ) -> DebuggerView:
        executed = debugger.step(payload.count)
        return _view(debugger_id, debugger, executed)

    @app.post("/api/debuggers/{debugger_id}/continue", response_model=DebuggerView)
    def continue_debugger(debugger_id: str, debugger: Debugger = Depends(lookup)) -> DebuggerView:
        executed = debugger.resume()
        return _view(debugger_id, debugger, executed)

    @app.post("/api/debuggers/{debugger_id}/restart", response_model=DebuggerView)
    def restart_debugger(debugger_id: str, debugger: Debugger = Depends(lookup)) -> DebuggerView:
        debugger.restart()
        return _view(debugger_id, debugger)

    @app.put("/api/debuggers/{debugger_id}/breakpoints", response_model=DebuggerView)
    def replace_breakpoints(
        debugger_id: str,
        payload: BreakpointsRequest,
        debugger: Debugger = Depends(lookup),
    ) -> DebuggerView:
        outside = [line for line in payload.lines if not 1 <= line <= debugger.line_count]
        if outside:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"lines outside the program (1-{debugger.line_count}): {outside}",
            )
        debugger.breakpoints = set(payload.lines)
        return _view(debugger_id, debugger)

    @app.get("/api/debuggers/{debugger_id}/dump", response_class=PlainTextResponse)
    def dump_tape(debugger: Debugger = Depends(lookup)) -> str:
        return debugger.dump()

    @app.delete("/api/debuggers/{debugger_id}", status_code=status.HTTP_204_NO_CONTENT)
    def close_debugger(debugger_id: str) -> Response:
        if not debuggers.discard(debugger_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"no debugger with id {debugger_id}",
            )
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app


__all__ = ["create_app"]
