# rustdrills

A command-line trainer that takes you through a set of small Rust exercises.
Each exercise is a Rust source file that does not compile or does not pass its
tests yet. You fix it, and rustdrills compiles it, runs it and moves you on to
the next exercise.

## Requirements

- Python 3.11 or later
- A Rust toolchain with `rustc` on your `PATH`, plus `cargo` for the Clippy and
  build-script exercises
- `git` for the `reset` command

## Installation

```
pip install .
```

## What you supply

rustdrills does not ship any exercises. You run it from a directory that holds
an `info.toml` file and the exercise sources, normally under `exercises/`.
`info.toml` lists the exercises in the order they are meant to be solved:

```toml
[[exercises]]
name = "intro1"
path = "exercises/intro/intro1.rs"
mode = "compile"
hint = "Remove the I AM NOT DONE comment."
```

Every entry needs `name`, `path`, `mode` and `hint`. `mode` is one of:

- `compile`: compiled with `rustc` and run as a program
- `test`: compiled with `rustc --test` and run as a test harness
- `clippy`: compiled, then linted with `cargo clippy`; a manifest is written to
  `exercises/clippy/Cargo.toml`
- `buildscript`: tested with `cargo test`; a manifest is written to
  `exercises/tests/Cargo.toml`

An exercise counts as pending as long as its file contains a line that starts
with an `// I AM NOT DONE` comment. Once it compiles and passes, delete that
line to move on.

If `info.toml` is missing or `rustc --version` cannot be run, every command
except `--version` prints an explanation and exits with status 1.

## Commands

```
rustdrills                     # welcome text and a short introduction
rustdrills --version           # print the version
rustdrills watch               # verify in order, re-check whenever a file changes
rustdrills watch --success-hints
rustdrills verify              # verify every exercise in order, stop at the first failure
rustdrills run intro1          # compile and run (or test) a single exercise
rustdrills run next            # run the first exercise that is not done yet
rustdrills hint intro1         # show the hint for an exercise
rustdrills reset intro1        # run "git stash -- <path>" for the exercise
rustdrills list                # table of exercises with their status and overall progress
rustdrills list --solved       # only exercises that are done
rustdrills list --unsolved     # only exercises still pending
rustdrills list --paths        # only paths
rustdrills list --names        # only names
rustdrills list --filter vec,string
rustdrills lsp                 # write rust-project.json for rust-analyzer
rustdrills cicvverify          # grade all exercises and write a JSON report
```

`--nocapture`, placed before the subcommand, shows the output of test
exercises. Failing commands and unknown exercise names exit with status 1.

### Watch mode

Watch mode verifies the exercises in order and then watches the `exercises/`
directory. When a `.rs` file is created or modified, the changed exercise and
every pending one after it are verified again. While it waits you can type:

- `hint`: show the hint of the exercise that failed last
- `clear`: clear the screen
- `quit`: leave watch mode
- `!<cmd>`: run a command, e.g. `!rustc --explain E0381`
- `help`: show this list

Watch mode ends by itself once every exercise passes.

### rust-analyzer

`rustdrills lsp` adds a crate for every `.rs` file under `exercises/` and
writes `rust-project.json` in the current directory. The library sources are
taken from `RUST_SRC_PATH` if it is set, otherwise from `rustc --print sysroot`.

### Grading

`rustdrills cicvverify` runs every exercise concurrently, prints progress for
each one and writes a report to `.github/result/check_result.json` (the
directory must already exist). The report holds the result of every exercise
in the order they finished, plus the totals of exercises, successes, failures
and the time taken in seconds.

### Output

Set the environment variable `NO_EMOJI` to replace emoji in the output with
plain characters.

## Using it from Python

The building blocks are importable:

- `rustdrills.exercise`: `load_exercises(path)` reads `info.toml`; an
  `Exercise` can `compile()`, `run()`, report its `state()` and `looks_done()`.
  Failures raise `ExerciseFailed` carrying the captured `ExerciseOutput`.
- `rustdrills.verify`: `verify(exercises, (done, total), verbose, success_hints)`
  raises `VerificationError` naming the first exercise that fails.
- `rustdrills.runner`: `run(exercise, verbose)` and `reset(exercise)`.
- `rustdrills.checklist`: `check_all(exercises)` returns an `ExerciseCheckList`
  with `to_json()` and `write(path)`.
- `rustdrills.cli`: `main(argv)` returns the exit status.