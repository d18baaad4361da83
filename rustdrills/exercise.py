"""Exercises: metadata, compilation, running and completion state."""

from __future__ import annotations

import os
import re
import subprocess
import threading
import tomllib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .ui import emoji_enabled

__all__ = [
    "CompiledExercise",
    "ContextLine",
    "Exercise",
    "ExerciseFailed",
    "ExerciseOutput",
    "Mode",
    "State",
    "clean",
    "load_exercises",
    "parse_exercise_list",
    "temp_file_path",
]

RUSTC_COLOR_ARGS = ("--color", "always")
RUSTC_EDITION_ARGS = ("--edition", "2021")
I_AM_DONE_REGEX = re.compile(r"^\s*///?\s*I\s+AM\s+NOT\s+DONE", re.MULTILINE)
CONTEXT = 2
CLIPPY_CARGO_TOML_PATH = "./exercises/clippy/Cargo.toml"
BUILD_SCRIPT_CARGO_TOML_PATH = "./exercises/tests/Cargo.toml"

_COMPILE_FAILURE = "Failed to run 'compile' command."


def temp_file_path() -> str:
    """Return a binary path unique to this process and thread."""
    return f"./temp_{os.getpid()}_{threading.get_ident()}"


def clean() -> None:
    """Remove the compiled binary, ignoring any error."""
    try:
        os.remove(temp_file_path())
    except OSError:
        pass


class Mode(Enum):
    """How an exercise is checked."""

    COMPILE = "compile"
    TEST = "test"
    CLIPPY = "clippy"
    BUILD_SCRIPT = "buildscript"


@dataclass(frozen=True)
class ContextLine:
    """A source line shown around the pending marker."""

    line: str
    number: int
    important: bool


@dataclass(frozen=True)
class State:
    """Completion state; a pending state carries the marker's context."""

    context: tuple[ContextLine, ...] | None = None

    def done(self) -> bool:
        return self.context is None


@dataclass(frozen=True)
class ExerciseOutput:
    """Captured output of a finished process."""

    stdout: str
    stderr: str


class ExerciseFailed(Exception):
    """Compiling or running an exercise failed."""

    def __init__(self, output: ExerciseOutput) -> None:
        super().__init__(output.stderr or output.stdout)
        self.output = output


def _spawn(args: list[str], failure: str) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(args, capture_output=True, check=False)
    except OSError as exc:
        raise RuntimeError(failure) from exc


def _output_of(result: subprocess.CompletedProcess) -> ExerciseOutput:
    return ExerciseOutput(
        stdout=(result.stdout or b"").decode("utf-8", errors="replace"),
        stderr=(result.stderr or b"").decode("utf-8", errors="replace"),
    )


def _source_lines(source: str) -> list[str]:
    lines = source.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line.removesuffix("\r") for line in lines]


@dataclass(frozen=True)
class Exercise:
    """One exercise as described in info.toml."""

    name: str
    path: Path
    mode: Mode
    hint: str

    def __post_init__(self) -> None:
        if not isinstance(self.path, Path):
            object.__setattr__(self, "path", Path(self.path))

    def __str__(self) -> str:
        return str(self.path)

    def _manifest(self) -> str:
        name = self.name
        return (
            "[package]\n"
            f'name = "{name}"\n'
            'version = "0.0.1"\n'
            'edition = "2021"\n'
            "[[bin]]\n"
            f'name = "{name}"\n'
            f'path = "{name}.rs"'
        )

    def _write_manifest(self, path: str) -> None:
        if emoji_enabled():
            message = "Failed to write 📎 Clippy 📎 Cargo.toml file."
        else:
            message = "Failed to write Clippy Cargo.toml file."
        try:
            Path(path).write_text(self._manifest(), encoding="utf-8")
        except OSError as exc:
            raise RuntimeError(message) from exc

    def _invoke_compiler(self) -> subprocess.CompletedProcess:
        source = str(self.path)
        target = temp_file_path()
        rustc = ["rustc", source, "-o", target, *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS]
        match self.mode:
            case Mode.COMPILE:
                return _spawn(rustc, _COMPILE_FAILURE)
            case Mode.TEST:
                return _spawn(
                    ["rustc", "--test", source, "-o", target,
                     *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS],
                    _COMPILE_FAILURE,
                )
            case Mode.CLIPPY:
                self._write_manifest(CLIPPY_CARGO_TOML_PATH)
                # Build a binary too so clippy exercises can be run afterwards.
                _spawn(rustc, "Failed to compile!")
                _spawn(
                    ["cargo", "clean", "--manifest-path", CLIPPY_CARGO_TOML_PATH,
                     *RUSTC_COLOR_ARGS],
                    "Failed to run 'cargo clean'",
                )
                return _spawn(
                    ["cargo", "clippy", "--manifest-path", CLIPPY_CARGO_TOML_PATH,
                     *RUSTC_COLOR_ARGS, "--", "-D", "warnings", "-D", "clippy::float_cmp"],
                    _COMPILE_FAILURE,
                )
            case Mode.BUILD_SCRIPT:
                self._write_manifest(BUILD_SCRIPT_CARGO_TOML_PATH)
                return _spawn(
                    ["cargo", "test", "--manifest-path", BUILD_SCRIPT_CARGO_TOML_PATH],
                    _COMPILE_FAILURE,
                )
        raise ValueError(f"unknown mode {self.mode!r}")

    def compile(self) -> CompiledExercise:
        """Compile the exercise; raise ExerciseFailed with the compiler output on failure."""
        result = self._invoke_compiler()
        if result.returncode == 0:
            return CompiledExercise(self)
        clean()
        raise ExerciseFailed(_output_of(result))

    def run(self) -> ExerciseOutput:
        """Run the compiled binary; raise ExerciseFailed if it exits unsuccessfully."""
        if self.mode is Mode.BUILD_SCRIPT:
            return ExerciseOutput(stdout="", stderr="")
        args = [temp_file_path()]
        if self.mode is Mode.TEST:
            args.append("--show-output")
        result = _spawn(args, "Failed to run 'run' command")
        output = _output_of(result)
        if result.returncode != 0:
            raise ExerciseFailed(output)
        return output

    def state(self) -> State:
        """Find the pending marker and the lines around it."""
        source = self.path.read_text(encoding="utf-8")
        if not I_AM_DONE_REGEX.search(source):
            return State()

        lines = _source_lines(source)
        matched = next(
            (index for index, line in enumerate(lines) if I_AM_DONE_REGEX.search(line)),
            None,
        )
        if matched is None:
            raise RuntimeError("pending marker spans several lines")

        low = max(matched - CONTEXT, 0)
        high = matched + CONTEXT
        context = tuple(
            ContextLine(line=line, number=index + 1, important=index == matched)
            for index, line in enumerate(lines)
            if low <= index <= high
        )
        return State(context=context)

    def looks_done(self) -> bool:
        """True when the pending marker has been removed."""
        return self.state().done()


class CompiledExercise:
    """A successfully compiled exercise; closing it removes the binary."""

    def __init__(self, exercise: Exercise) -> None:
        self.exercise = exercise
        self._closed = False

    def run(self) -> ExerciseOutput:
        return self.exercise.run()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            clean()

    def __enter__(self) -> CompiledExercise:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __del__(self) -> None:
        try:
            self.close()
        except Exception:
            pass


def _exercise_from_table(table: object) -> Exercise:
    if not isinstance(table, dict):
        raise ValueError("each exercise must be a table")
    try:
        name, path, mode, hint = (table[key] for key in ("name", "path", "mode", "hint"))
    except KeyError as exc:
        raise ValueError(f"exercise is missing field {exc.args[0]!r}") from exc
    for key, value in (("name", name), ("path", path), ("mode", mode), ("hint", hint)):
        if not isinstance(value, str):
            raise ValueError(f"exercise field {key!r} must be a string")
    return Exercise(name=name, path=Path(path), mode=Mode(mode), hint=hint)


def parse_exercise_list(text: str) -> list[Exercise]:
    """Parse the exercise list from info.toml text."""
    data = tomllib.loads(text)
    entries = data.get("exercises")
    if not isinstance(entries, list):
        raise ValueError("missing 'exercises' list")
    return [_exercise_from_table(entry) for entry in entries]


def load_exercises(path: str | os.PathLike = "info.toml") -> list[Exercise]:
    """Read and parse an info.toml file."""
    return parse_exercise_list(Path(path).read_text(encoding="utf-8"))