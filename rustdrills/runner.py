"""Running a single exercise and resetting it."""

from __future__ import annotations

import subprocess

from rich.console import Console
from rich.status import Status

from .exercise import Exercise, ExerciseFailed, Mode
from .ui import success, warn
from .verify import VerificationError, test

__all__ = ["reset", "run"]


def _spinner(message: str) -> Status:
    return Console(stderr=True).status(message)


def run(exercise: Exercise, verbose: bool = False) -> None:
    """Compile and run (or test) one exercise; raise VerificationError on failure."""
    match exercise.mode:
        case Mode.TEST | Mode.BUILD_SCRIPT:
            test(exercise, verbose)
        case Mode.COMPILE | Mode.CLIPPY:
            _compile_and_run(exercise)
        case _:
            raise ValueError(f"unknown mode {exercise.mode!r}")


def reset(exercise: Exercise) -> subprocess.Popen:
    """Stash local changes to the exercise with git; raise OSError if git cannot start."""
    return subprocess.Popen(["git", "stash", "--", str(exercise.path)])


def _compile_and_run(exercise: Exercise) -> None:
    failure = None
    with _spinner(f"Compiling {exercise}...") as status:
        try:
            compiled = exercise.compile()
        except ExerciseFailed as exc:
            status.stop()
            warn(f"Compilation of {exercise} failed!, Compiler error message:\n")
            print(exc.output.stderr)
            raise VerificationError(exercise) from exc
        with compiled:
            status.update(f"Running {exercise}...")
            try:
                output = compiled.run()
            except ExerciseFailed as exc:
                failure = exc

    if failure is not None:
        print(failure.output.stdout)
        print(failure.output.stderr)
        warn(f"Ran {exercise} with errors")
        raise VerificationError(exercise) from failure

    print(output.stdout)
    success(f"Successfully ran {exercise}")