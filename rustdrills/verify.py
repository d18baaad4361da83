"""Checking exercises one after another, with progress and completion prompts."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum, auto

from rich.console import Console
from rich.status import Status
from rich.text import Text

from .exercise import Exercise, ExerciseFailed, Mode
from .ui import emoji_enabled, success, warn

__all__ = ["RunMode", "VerificationError", "prompt_for_completion", "test", "verify"]

_SEPARATOR = "===================="
_BAR_WIDTH = 60


class RunMode(Enum):
    """Whether a passing exercise is followed by the completion prompt."""

    INTERACTIVE = auto()
    NON_INTERACTIVE = auto()


class VerificationError(Exception):
    """An exercise failed to compile, run or pass its tests."""

    def __init__(self, exercise: Exercise) -> None:
        super().__init__(f"verification of {exercise} failed")
        self.exercise = exercise


def _console() -> Console:
    return Console(highlight=False, soft_wrap=True)


def _spinner(message: str) -> Status:
    return Console(stderr=True).status(message)


class _ProgressBar:
    """A textual progress bar drawn on standard error."""

    def __init__(self, total: int, position: int) -> None:
        self.total = total
        self.position = position

    def show(self, percentage: float) -> None:
        if self.total:
            filled = min(_BAR_WIDTH * self.position // self.total, _BAR_WIDTH)
        else:
            filled = _BAR_WIDTH
        done = "#" * filled
        rest = "" if filled >= _BAR_WIDTH else ">" + "-" * (_BAR_WIDTH - filled - 1)
        line = Text("Progress: [")
        line.append(done, style="green")
        line.append(rest, style="red")
        line.append(f"] {self.position}/{self.total} ({percentage:.1f} %)")
        Console(stderr=True, highlight=False, soft_wrap=True).print(line)

    def advance(self, percentage: float) -> None:
        self.position += 1
        self.show(percentage)


def verify(
    exercises: Iterable[Exercise],
    progress: tuple[int, int],
    verbose: bool = False,
    success_hints: bool = False,
) -> None:
    """Check exercises in order; raise VerificationError naming the first that fails."""
    num_done, total = progress
    percentage = num_done / total * 100.0 if total else 100.0
    bar = _ProgressBar(total, num_done)
    bar.show(percentage)

    for exercise in exercises:
        try:
            match exercise.mode:
                case Mode.TEST | Mode.BUILD_SCRIPT:
                    passed = _compile_and_test(
                        exercise, RunMode.INTERACTIVE, verbose, success_hints
                    )
                case Mode.COMPILE:
                    passed = _compile_and_run_interactively(exercise, success_hints)
                case Mode.CLIPPY:
                    passed = _compile_only(exercise, success_hints)
                case _:
                    raise ValueError(f"unknown mode {exercise.mode!r}")
        except VerificationError:
            passed = False
        if not passed:
            raise VerificationError(exercise)
        if total:
            percentage += 100.0 / total
        bar.advance(percentage)


def test(exercise: Exercise, verbose: bool = False) -> None:
    """Compile and run an exercise's test harness; raise VerificationError on failure."""
    _compile_and_test(exercise, RunMode.NON_INTERACTIVE, verbose, False)


def _compile(exercise: Exercise, status: Status):
    try:
        return exercise.compile()
    except ExerciseFailed as failure:
        status.stop()
        warn(f"Compiling of {exercise} failed! Please try again. Here's the output:")
        print(failure.output.stderr)
        raise VerificationError(exercise) from failure


def _compile_only(exercise: Exercise, success_hints: bool) -> bool:
    with _spinner(f"Compiling {exercise}...") as status:
        _compile(exercise, status).close()
    return prompt_for_completion(exercise, None, success_hints)


def _compile_and_run_interactively(exercise: Exercise, success_hints: bool) -> bool:
    failure = None
    with _spinner(f"Compiling {exercise}...") as status:
        with _compile(exercise, status) as compiled:
            status.update(f"Running {exercise}...")
            try:
                output = compiled.run()
            except ExerciseFailed as exc:
                failure = exc
    if failure is not None:
        warn(f"Ran {exercise} with errors")
        print(failure.output.stdout)
        print(failure.output.stderr)
        raise VerificationError(exercise) from failure
    return prompt_for_completion(exercise, output.stdout, success_hints)


def _compile_and_test(
    exercise: Exercise, run_mode: RunMode, verbose: bool, success_hints: bool
) -> bool:
    failure = None
    with _spinner(f"Testing {exercise}...") as status:
        with _compile(exercise, status) as compiled:
            try:
                output = compiled.run()
            except ExerciseFailed as exc:
                failure = exc
    if failure is not None:
        warn(f"Testing of {exercise} failed! Please try again. Here's the output:")
        print(failure.output.stdout)
        raise VerificationError(exercise) from failure
    if verbose:
        print(output.stdout)
    if run_mode is RunMode.INTERACTIVE:
        return prompt_for_completion(exercise, None, success_hints)
    return True


def _print_separator(console: Console) -> None:
    console.print(Text(_SEPARATOR, style="bold"))


def prompt_for_completion(
    exercise: Exercise, prompt_output: str | None = None, success_hints: bool = False
) -> bool:
    """Return True if the exercise is done; otherwise show where its marker is and return False."""
    state = exercise.state()
    if state.done():
        return True

    verb = {
        Mode.COMPILE: "ran",
        Mode.TEST: "tested",
        Mode.CLIPPY: "compiled",
        Mode.BUILD_SCRIPT: "compiled",
    }[exercise.mode]
    success(f"Successfully {verb} {exercise}!")

    no_emoji = not emoji_enabled()
    if no_emoji:
        clippy_message = "The code is compiling, and Clippy is happy!"
    else:
        clippy_message = "The code is compiling, and 📎 Clippy 📎 is happy!"
    success_message = {
        Mode.COMPILE: "The code is compiling!",
        Mode.TEST: "The code is compiling, and the tests pass!",
        Mode.CLIPPY: clippy_message,
        Mode.BUILD_SCRIPT: "Build script works!",
    }[exercise.mode]

    console = _console()
    print()
    if no_emoji:
        print(f"~*~ {success_message} ~*~")
    else:
        print(f"🎉 🎉  {success_message} 🎉 🎉")
    print()

    if prompt_output is not None:
        print("Output:")
        _print_separator(console)
        print(prompt_output)
        _print_separator(console)
        print()
    if success_hints:
        print("Hints:")
        _print_separator(console)
        print(exercise.hint)
        _print_separator(console)
        print()

    print("You can keep working on this exercise,")
    line = Text("or jump into the next one by removing the ")
    line.append("`I AM NOT DONE`", style="bold")
    line.append(" comment:")
    console.print(line)
    print()
    for context_line in state.context:
        row = Text(f"{context_line.number:>2}", style="bold blue")
        row.append(" ")
        row.append("|", style="blue")
        row.append("  ")
        row.append(context_line.line, style="bold" if context_line.important else "")
        console.print(row)

    return False