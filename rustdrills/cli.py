"""Command-line entry point."""

from __future__ import annotations

import argparse
import subprocess
import sys
from collections.abc import Sequence
from pathlib import Path

from .checklist import DEFAULT_RESULT_PATH, check_all
from .exercise import Exercise, load_exercises
from .project import RustAnalyzerProject
from .runner import reset, run
from .ui import emoji_enabled
from .verify import VerificationError, verify
from .watch import WatchStatus, watch

__all__ = [
    "NoExerciseFound",
    "build_parser",
    "find_exercise",
    "list_exercises",
    "main",
    "rustc_exists",
]

VERSION = "5.5.1"

WELCOME = """       welcome to...
          rustdrills"""

DEFAULT_OUT = """Thanks for installing rustdrills!

Is this your first time? Don't worry, these exercises are made for beginners.
Here's how things work:

1. The central concept is that you solve exercises. Each one usually contains
   an error that keeps it from compiling or passing its tests, and sometimes a
   logic error instead. Whatever the error, it's your job to find and fix it!
   Once the exercise compiles and passes, you can move on to the next one.
2. Watch mode (which we recommend) starts with the first exercise. The error
   message you see right away is part of the exercise: open the file in an
   editor and start your detective work!
3. If you're stuck on an exercise, type 'hint' in watch mode, or run
   `rustdrills hint exercise_name`.
4. To use rust-analyzer with the exercises, which gives you features like
   autocompletion, run `rustdrills lsp`.

Got all that? Great! To get started, run `rustdrills watch` in order to get the
first exercise. Make sure to have your editor open!"""

FINISH_LINE = """+----------------------------------------------------+
|          You made it to the finish line!           |
+----------------------------------------------------+

We hope you enjoyed learning about the various aspects of Rust!
If you noticed any issues, please don't hesitate to report them.
You can also contribute your own exercises to help the greater community!"""


class NoExerciseFound(LookupError):
    """No exercise matches the requested name."""


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = _Parser(
        prog="rustdrills",
        description="Small exercises to get you used to reading and writing Rust code",
    )
    parser.add_argument("--nocapture", action="store_true",
                        help="show outputs from the test exercises")
    parser.add_argument("-v", "--version", action="store_true",
                        help="show the executable version")
    commands = parser.add_subparsers(dest="command")

    commands.add_parser("verify", help="verifies all exercises according to the recommended order")
    watch_parser = commands.add_parser("watch", help="reruns `verify` when files were edited")
    watch_parser.add_argument("--success-hints", action="store_true",
                              help="show hints on success")
    for name, text in (
        ("run", "runs/tests a single exercise"),
        ("reset", 'resets a single exercise using "git stash -- <filename>"'),
        ("hint", "returns a hint for the given exercise"),
    ):
        sub = commands.add_parser(name, help=text)
        sub.add_argument("name", help="the name of the exercise")

    list_parser = commands.add_parser("list", help="lists the available exercises")
    list_parser.add_argument("-p", "--paths", action="store_true",
                             help="show only the paths of the exercises")
    list_parser.add_argument("-n", "--names", action="store_true",
                             help="show only the names of the exercises")
    list_parser.add_argument("-f", "--filter", default=None,
                             help="comma separated patterns to match exercise names")
    list_parser.add_argument("-u", "--unsolved", action="store_true",
                             help="display only exercises not yet solved")
    list_parser.add_argument("-s", "--solved", action="store_true",
                             help="display only exercises that have been solved")

    commands.add_parser("lsp", help="enable rust-analyzer for exercises")
    commands.add_parser("cicvverify", help="check all exercises and record the results")
    return parser


def find_exercise(name: str, exercises: Sequence[Exercise]) -> Exercise:
    """Return the named exercise, or the first unfinished one for "next"."""
    if name == "next":
        found = next((e for e in exercises if not e.looks_done()), None)
        if found is None:
            raise NoExerciseFound(
                "🎉 Congratulations! You have done all the exercises!\n"
                "🔚 There are no more exercises to do next!"
            )
        return found
    found = next((e for e in exercises if e.name == name), None)
    if found is None:
        raise NoExerciseFound(f"No exercise found for '{name}'!")
    return found


def list_exercises(
    exercises: Sequence[Exercise],
    paths: bool = False,
    names: bool = False,
    filter_text: str | None = None,
    unsolved: bool = False,
    solved: bool = False,
) -> None:
    """Print the exercises with their status, then the overall progress."""
    if not paths and not names:
        print(f"{'Name':<17}\t{'Path':<46}\t{'Status':<7}")
    filters = [f for f in (filter_text or "").lower().split(",") if f.strip()]
    exercises_done = 0
    for exercise in exercises:
        fname = str(exercise.path)
        matches = any(f in exercise.name or f in fname for f in filters)
        done = exercise.looks_done()
        if done:
            exercises_done += 1
        status = "Done" if done else "Pending"
        wanted = (done and solved) or (not done and unsolved) or (not solved and not unsolved)
        if wanted and (matches or filter_text is None):
            if paths:
                line = f"{fname}\n"
            elif names:
                line = f"{exercise.name}\n"
            else:
                line = f"{exercise.name:<17}\t{fname:<46}\t{status:<7}\n"
            sys.stdout.write(line)
    total = len(exercises)
    percentage = exercises_done / total * 100.0 if total else float("nan")
    print(
        f"Progress: You completed {exercises_done} / {total} exercises ({percentage:.1f} %)."
    )


def rustc_exists() -> bool:
    """True if `rustc --version` runs successfully."""
    try:
        result = subprocess.run(["rustc", "--version"], stdout=subprocess.DEVNULL, check=False)
    except OSError:
        return False
    return result.returncode == 0


def _lsp() -> None:
    project = RustAnalyzerProject()
    try:
        project.get_sysroot_src()
    except OSError as exc:
        raise RuntimeError("Couldn't find toolchain path, do you have `rustc` installed?") from exc
    try:
        project.exercises_to_json()
    except OSError as exc:
        raise RuntimeError("Couldn't parse the exercise files") from exc

    if not project.crates:
        print("Failed find any exercises, make sure you're in the exercises folder")
        return
    try:
        project.write_to_disk()
    except OSError:
        print("Failed to write rust-project.json to disk for rust-analyzer")
        return
    print("Successfully generated rust-project.json")
    print("rust-analyzer will now parse exercises, restart your language server or editor")


def _watch(exercises: list[Exercise], verbose: bool, success_hints: bool) -> int:
    try:
        status = watch(exercises, verbose, success_hints)
    except OSError as exc:
        print(f"Error: Could not watch your progress. Error message was {exc!r}.")
        print("Most likely you've run out of disk space or your 'inotify limit' has been reached.")
        return 1
    if status is WatchStatus.FINISHED:
        symbol = "🎉" if emoji_enabled() else "★"
        print(f"{symbol} All exercises completed! {symbol}")
        print(f"\n{FINISH_LINE}\n")
    else:
        print("We hope you're enjoying learning about Rust!")
        print(
            "If you want to continue working on the exercises at a later point, "
            "you can simply run `rustdrills watch` again"
        )
    return 0


def _dispatch(args: argparse.Namespace) -> int:
    if args.version:
        print(f"v{VERSION}")
        return 0

    if args.command is None:
        print(f"\n{WELCOME}\n")

    if not Path("info.toml").exists():
        print(f"{sys.argv[0]} must be run from the exercises directory")
        print("Try `cd` into the directory that holds info.toml!")
        return 1

    if not rustc_exists():
        print("We cannot find `rustc`.")
        print("Try running `rustc --version` to diagnose your problem.")
        print("For instructions on how to install Rust, check the README.")
        return 1

    exercises = load_exercises("info.toml")
    verbose = args.nocapture

    match args.command:
        case None:
            print(f"{DEFAULT_OUT}\n")
        case "list":
            list_exercises(exercises, args.paths, args.names, args.filter,
                           args.unsolved, args.solved)
        case "run" | "reset" | "hint":
            try:
                exercise = find_exercise(args.name, exercises)
            except NoExerciseFound as exc:
                print(exc)
                return 1
            if args.command == "hint":
                print(exercise.hint)
            elif args.command == "run":
                try:
                    run(exercise, verbose)
                except VerificationError:
                    return 1
            else:
                try:
                    reset(exercise).wait()
                except OSError:
                    return 1
        case "verify":
            try:
                verify(exercises, (0, len(exercises)), verbose, False)
            except VerificationError:
                return 1
        case "cicvverify":
            check_all(exercises, True).write(DEFAULT_RESULT_PATH)
        case "lsp":
            _lsp()
        case "watch":
            return _watch(exercises, verbose, args.success_hints)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; return the exit status."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code is None:
            return 0
        return exc.code if isinstance(exc.code, int) else 1
    try:
        return _dispatch(args)
    except BrokenPipeError:
        return 0


if __name__ == "__main__":
    sys.exit(main())