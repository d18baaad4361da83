"""Command-line trainer that compiles, runs and tracks small Rust exercises."""

__version__ = "5.5.1"