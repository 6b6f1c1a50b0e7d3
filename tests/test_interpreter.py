import io
import unittest

from bfi import (
    Instruction,
    Interpreter,
    StepLimitExceeded,
    TapeBoundsError,
    format_tape_dump,
    interpret,
    prepare,
)
from bfi.interpreter import TAPE_LENGTH


def run_program(source: bytes, stdin: bytes = b"", debug: bool = False, interpreter=None):
    interpreter = interpreter or Interpreter()
    stdout = io.BytesIO()
    interpreter.execute(prepare(source), stdin=io.BytesIO(stdin), stdout=stdout, debug=debug)
    return interpreter, stdout.getvalue()


class ArithmeticTests(unittest.TestCase):
    def test_output_value(self) -> None:
        _, output = run_program(b"++.")
        self.assertEqual(output, bytes([2]))

    def test_increment_wraps(self) -> None:
        interpreter, _ = run_program(b"+++" + b"+" * 256)
        self.assertEqual(interpreter.tape[0], 3)

    def test_decrement_wraps(self) -> None:
        interpreter, output = run_program(b"-.")
        self.assertEqual(interpreter.tape[0], 255)
        self.assertEqual(output, b"\xff")

    def test_hello(self) -> None:
        _, output = run_program(b"+" * 72 + b"." + b"+" * 29 + b".")
        self.assertEqual(output, b"He")


class LoopTests(unittest.TestCase):
    def test_single_pass_loop(self) -> None:
        interpreter, output = run_program(b"+[-]")
        self.assertEqual(output, b"")
        self.assertEqual(interpreter.tape[0], 0)

    def test_loop_skipped_when_cell_is_zero(self) -> None:
        interpreter, output = run_program(b"[+.]>+")
        self.assertEqual(output, b"")
        self.assertEqual(interpreter.tape[0], 0)
        self.assertEqual(interpreter.tape[1], 1)

    def test_nested_multiplication(self) -> None:
        interpreter, _ = run_program(b"+++[>++++[>+<-]<-]")
        self.assertEqual(interpreter.tape[2], 12)
        self.assertEqual(interpreter.pointer, 0)

    def test_move_value(self) -> None:
        interpreter, output = run_program(b"+++++[->++<]>.")
        self.assertEqual(output, bytes([10]))
        self.assertEqual(interpreter.tape[0], 0)


class BoundsTests(unittest.TestCase):
    def test_left_from_origin_is_fatal(self) -> None:
        interpreter = Interpreter()
        stdout = io.BytesIO()
        with self.assertRaises(TapeBoundsError) as ctx:
            interpreter.execute(prepare(b"+\n<+."), stdin=io.BytesIO(), stdout=stdout)
        self.assertEqual(ctx.exception.line, 2)
        self.assertEqual(str(ctx.exception), "[line 2] '<' causes cell out of bounds")
        self.assertEqual(stdout.getvalue(), b"")
        self.assertEqual(interpreter.tape[0], 1)

    def test_right_from_last_cell_is_fatal(self) -> None:
        interpreter = Interpreter()
        program = prepare(b">" * (TAPE_LENGTH - 1) + b"\n>+")
        with self.assertRaises(TapeBoundsError) as ctx:
            interpreter.execute(program, stdin=io.BytesIO(), stdout=io.BytesIO())
        self.assertEqual(ctx.exception.line, 2)
        self.assertEqual(interpreter.pointer, TAPE_LENGTH - 1)
        self.assertEqual(interpreter.tape[TAPE_LENGTH - 1], 0)

    def test_last_cell_is_reachable(self) -> None:
        interpreter, _ = run_program(b">" * (TAPE_LENGTH - 1) + b"+")
        self.assertEqual(interpreter.tape[TAPE_LENGTH - 1], 1)


class InputTests(unittest.TestCase):
    def test_reads_bytes(self) -> None:
        _, output = run_program(b",.,.", stdin=b"hi")
        self.assertEqual(output, b"hi")

    def test_end_of_input_keeps_cell(self) -> None:
        interpreter, output = run_program(b"+++,.", stdin=b"")
        self.assertEqual(interpreter.tape[0], 3)
        self.assertEqual(output, b"\x03")

    def test_cat_until_end(self) -> None:
        _, output = run_program(b",[.[-],]", stdin=b"abc")
        self.assertEqual(output, b"abc")


class DiagnosticDumpTests(unittest.TestCase):
    def test_ignored_without_debug(self) -> None:
        _, output = run_program(b"+#")
        self.assertEqual(output, b"")

    def test_dump_at_origin(self) -> None:
        _, output = run_program(b"+++#", debug=True)
        lines = output.decode("ascii").splitlines()
        self.assertEqual(lines[0], " CELL  VALUE (dec|hex)")
        self.assertEqual(lines[1], "00000: 003|0x03 <")
        self.assertEqual(lines[2], "00001: 000|0x00")
        self.assertEqual(len(lines), 11)
        self.assertEqual(lines[-1], "00009: 000|0x00")

    def test_window_starts_two_cells_back(self) -> None:
        tape = bytearray(TAPE_LENGTH)
        tape[5] = 255
        lines = format_tape_dump(tape, 5).splitlines()
        self.assertEqual(lines[1], "00003: 000|0x00")
        self.assertEqual(lines[3], "00005: 255|0xFF <")
        self.assertEqual(lines[-1], "00012: 000|0x00")

    def test_window_clipped_at_tape_end(self) -> None:
        tape = bytearray(TAPE_LENGTH)
        lines = format_tape_dump(tape, TAPE_LENGTH - 1).splitlines()
        self.assertEqual(len(lines), 4)
        self.assertEqual(lines[-1], "29999: 000|0x00 <")


class StateIsolationTests(unittest.TestCase):
    def test_fresh_instances_do_not_share_tape(self) -> None:
        first, _ = run_program(b"+++>++")
        second = Interpreter()
        self.assertEqual(second.tape[0], 0)
        self.assertEqual(second.pointer, 0)
        self.assertEqual(first.tape[0], 3)

    def test_reset_zeroes_tape(self) -> None:
        interpreter, _ = run_program(b"+>+")
        interpreter.reset()
        self.assertEqual(interpreter.pointer, 0)
        self.assertFalse(any(interpreter.tape))

    def test_repeat_runs_are_identical(self) -> None:
        source = b"++++++++[>++++++++<-]>+.+.,."
        results = []
        for _ in range(2):
            stdout = io.BytesIO()
            ok = interpret(source, stdin=io.BytesIO(b"z"), stdout=stdout, stderr=io.StringIO())
            results.append((ok, stdout.getvalue()))
        self.assertEqual(results[0], results[1])
        self.assertEqual(results[0], (True, b"ABz"))


class StepTests(unittest.TestCase):
    def test_step_sequence_produces_states(self) -> None:
        interpreter = Interpreter()
        states = list(interpreter.step(prepare(b"+++\n."), stdin=io.BytesIO()))
        self.assertIsNone(states[0].command)
        self.assertEqual(states[0].step, 0)
        commands = [state.command for state in states[1:]]
        self.assertEqual(
            commands,
            [Instruction.INCREMENT] * 3 + [Instruction.INERT, Instruction.OUTPUT],
        )
        self.assertEqual([state.line for state in states], [1, 1, 1, 1, 2, None])
        self.assertTrue(states[-1].finished)
        self.assertEqual(states[-1].output, b"\x03")
        self.assertEqual(states[-1].pc, 5)

    def test_cells_follow_dump_window(self) -> None:
        interpreter = Interpreter()
        states = list(interpreter.step(prepare(b">>>+"), stdin=io.BytesIO()))
        self.assertEqual(states[0].cells_start, 0)
        self.assertEqual(states[-1].cells_start, 1)
        self.assertEqual(len(states[-1].cells), 10)
        self.assertEqual(states[-1].cells[2], 1)

    def test_loop_close_returns_to_open(self) -> None:
        interpreter = Interpreter()
        states = list(interpreter.step(prepare(b"++[-]"), stdin=io.BytesIO()))
        pcs = [state.pc for state in states]
        self.assertEqual(pcs, [0, 1, 2, 3, 4, 2, 3, 4, 2, 5])

    def test_step_limit(self) -> None:
        interpreter = Interpreter()
        stepper = interpreter.step(prepare(b"+[]"), stdin=io.BytesIO(), max_steps=4)
        with self.assertRaises(StepLimitExceeded):
            while True:
                next(stepper)

    def test_execute_step_limit(self) -> None:
        with self.assertRaises(StepLimitExceeded):
            Interpreter().execute(
                prepare(b"+[]"), stdin=io.BytesIO(), stdout=io.BytesIO(), max_steps=10
            )

    def test_reused_interpreter_starts_from_zeroed_tape(self) -> None:
        interpreter, _ = run_program(b"+++>+")
        _, output = run_program(b".", interpreter=interpreter)
        self.assertEqual(output, b"\x00")
        self.assertEqual(interpreter.pointer, 0)

        run_program(b"+++>+", interpreter=interpreter)
        states = list(interpreter.step(prepare(b"."), stdin=io.BytesIO()))
        self.assertEqual(states[-1].output, b"\x00")
        self.assertEqual(states[-1].pointer, 0)


class InterpretTests(unittest.TestCase):
    def _interpret(self, source: bytes, **kwargs):
        stdout = io.BytesIO()
        stderr = io.StringIO()
        ok = interpret(source, stdin=io.BytesIO(), stdout=stdout, stderr=stderr, **kwargs)
        return ok, stdout.getvalue(), stderr.getvalue()

    def test_empty_program(self) -> None:
        self.assertEqual(self._interpret(b""), (True, b"", ""))

    def test_unbalanced_close(self) -> None:
        ok, output, errors = self._interpret(b"]")
        self.assertFalse(ok)
        self.assertEqual(output, b"")
        self.assertEqual(errors, "error: [line 1] Unbalanced ']'\n")

    def test_structural_error_prevents_execution(self) -> None:
        ok, output, errors = self._interpret(b"+.\n[")
        self.assertFalse(ok)
        self.assertEqual(output, b"")
        self.assertEqual(errors, "error: [line 2] Unbalanced '['\n")

    def test_tape_end(self) -> None:
        ok, _, errors = self._interpret(b"\n" + b">" * TAPE_LENGTH)
        self.assertFalse(ok)
        self.assertEqual(errors, "error: [line 2] '>' causes cell out of bounds\n")

    def test_output_before_bounds_error_is_kept(self) -> None:
        ok, output, errors = self._interpret(b"+.<.")
        self.assertFalse(ok)
        self.assertEqual(output, b"\x01")
        self.assertIn("'<' causes cell out of bounds", errors)

    def test_debug_flag_enables_dump(self) -> None:
        ok, output, _ = self._interpret(b"#", debug=True)
        self.assertTrue(ok)
        self.assertTrue(output.startswith(b" CELL  VALUE (dec|hex)\n00000: 000|0x00 <\n"))


if __name__ == "__main__":
    unittest.main()
