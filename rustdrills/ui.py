"""Coloured status lines printed to the terminal."""

from __future__ import annotations

import os

from rich.console import Console
from rich.text import Text

__all__ = ["emoji_enabled", "success", "warn"]


def emoji_enabled() -> bool:
    """Return False when the NO_EMOJI environment variable is set."""
    return "NO_EMOJI" not in os.environ


def _emit(symbol: str, fallback: str, message: str, style: str) -> None:
    prefix = symbol if emoji_enabled() else fallback
    line = Text(f"{prefix} ", style=style)
    line.append(message, style=style)
    Console(highlight=False, soft_wrap=True).print(line)


def warn(message: str) -> None:
    """Print a warning line in red."""
    _emit("⚠️ ", "!", message, "red")


def success(message: str) -> None:
    """Print a success line in green."""
    _emit("✅", "✓", message, "green")