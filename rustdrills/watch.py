"""Watch mode: re-verify exercises whenever their files change."""

from __future__ import annotations

import errno
import os
import queue
import subprocess
import sys
import threading
from collections.abc import Iterable
from enum import Enum, auto
from itertools import chain
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .exercise import Exercise
from .verify import VerificationError, verify

__all__ = ["WatchShell", "WatchStatus", "watch"]

WATCH_ROOT = "./exercises"
_POLL_SECONDS = 1.0

HELP_TEXT = "\n".join(
    [
        "Commands available to you in watch mode:",
        "  hint   - prints the current exercise's hint",
        "  clear  - clears the screen",
        "  quit   - quits watch mode",
        "  !<cmd> - executes a command, like `!rustc --explain E0381`",
        "  help   - displays this help message",
        "",
        "Watch mode automatically re-evaluates the current exercise",
        "when you edit a file's contents.",
    ]
)


class WatchStatus(Enum):
    """How watch mode ended."""

    FINISHED = auto()
    UNFINISHED = auto()


class WatchShell:
    """Interprets the commands typed while watch mode is running."""

    def __init__(self, hint: str | None = None) -> None:
        self.hint = hint
        self.should_quit = threading.Event()

    def handle(self, line: str) -> None:
        """Carry out one command line."""
        command = line.strip()
        if command == "hint":
            hint = self.hint
            if hint is not None:
                print(hint)
        elif command == "clear":
            print("\x1b[2J\x1b[1;1H")
        elif command == "quit":
            self.should_quit.set()
            print("Bye!")
        elif command == "help":
            print(HELP_TEXT)
        elif command.startswith("!"):
            cmd = command[1:]
            parts = cmd.split()
            if not parts:
                print("no command provided")
            else:
                try:
                    subprocess.run(parts, check=False)
                except OSError as exc:
                    print(f"failed to execute command `{cmd}`: {exc}")
        else:
            print(f"unknown command: {command}")

    def start(self) -> threading.Thread:
        """Read commands from standard input on a background thread."""
        print(
            "Welcome to watch mode! You can type 'help' to get an overview "
            "of the commands you can use here."
        )
        thread = threading.Thread(target=self._read_loop, daemon=True)
        thread.start()
        return thread

    def _read_loop(self) -> None:
        while True:
            try:
                line = sys.stdin.readline()
            except (OSError, ValueError) as exc:
                print(f"error reading command: {exc}")
                return
            if not line:
                return
            self.handle(line)


class _ChangeCollector(FileSystemEventHandler):
    def __init__(self, changes: queue.Queue[Path]) -> None:
        super().__init__()
        self._changes = changes

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in ("created", "modified"):
            return
        self._changes.put(Path(os.fsdecode(event.src_path)))


def _clear_screen() -> None:
    print("\x1bc")


def _ends_with(path: Path, suffix: Path) -> bool:
    tail = suffix.parts
    start = len(path.parts) - len(tail)
    return start >= 0 and path.parts[start:] == tail


def _next_changes(changes: queue.Queue[Path]) -> list[Path]:
    try:
        first = changes.get(timeout=_POLL_SECONDS)
    except queue.Empty:
        return []
    seen = [first]
    while True:
        try:
            path = changes.get_nowait()
        except queue.Empty:
            return seen
        if path not in seen:
            seen.append(path)


def _watch_loop(
    exercises: list[Exercise],
    changes: queue.Queue[Path],
    verbose: bool,
    success_hints: bool,
) -> WatchStatus:
    _clear_screen()
    try:
        verify(exercises, (0, len(exercises)), verbose, success_hints)
    except VerificationError as failure:
        shell = WatchShell(failure.exercise.hint)
    else:
        return WatchStatus.FINISHED

    shell.start()
    while True:
        for changed in _next_changes(changes):
            if changed.suffix != ".rs" or not changed.exists():
                continue
            filepath = changed.resolve()
            current = next((e for e in exercises if _ends_with(filepath, e.path)), None)
            rest = (
                e
                for e in exercises
                if not e.looks_done() and not _ends_with(filepath, e.path)
            )
            pending = chain([current] if current is not None else [], rest)
            num_done = sum(1 for e in exercises if e.looks_done())
            _clear_screen()
            try:
                verify(pending, (num_done, len(exercises)), verbose, success_hints)
            except VerificationError as failure:
                shell.hint = failure.exercise.hint
            else:
                return WatchStatus.FINISHED
        if shell.should_quit.is_set():
            return WatchStatus.UNFINISHED


def watch(
    exercises: Iterable[Exercise], verbose: bool = False, success_hints: bool = False
) -> WatchStatus:
    """Verify the exercises, then re-verify on every change under ./exercises."""
    exercises = list(exercises)
    root = Path(WATCH_ROOT)
    if not root.is_dir():
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(root))
    changes: queue.Queue[Path] = queue.Queue()
    observer = Observer()
    observer.schedule(_ChangeCollector(changes), str(root), recursive=True)
    observer.start()
    try:
        return _watch_loop(exercises, changes, verbose, success_hints)
    finally:
        observer.stop()
        observer.join()