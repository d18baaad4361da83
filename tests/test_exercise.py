import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from rustdrills.exercise import (
    CompiledExercise,
    ContextLine,
    Exercise,
    ExerciseFailed,
    Mode,
    State,
    clean,
    load_exercises,
    parse_exercise_list,
    temp_file_path,
)

PENDING = "// fake_exercise\n\n// I AM NOT DONE\n\nfn main() {\n\n}\n"
FINISHED = "// fake_exercise\n\nfn main() {\n\n}\n"
TEST_SUCCESS = (
    "#[test]\nfn passing() {\n"
    '    println!("THIS TEST TOO SHALL PASS");\n    assert!(true);\n}\n'
)


def _completed(returncode=0, stdout=b"", stderr=b""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _write(directory: Path, name: str, text: str) -> Path:
    path = directory / name
    path.write_text(text)
    return path


def test_clean(workdir):
    Path(temp_file_path()).touch()
    source = _write(workdir, "pending_exercise.rs", PENDING)
    exercise = Exercise("example", source, Mode.COMPILE, "")
    with patch("rustdrills.exercise.subprocess.run", return_value=_completed()):
        compiled = exercise.compile()
    compiled.close()
    assert not Path(temp_file_path()).exists()


def test_pending_state(workdir):
    source = _write(workdir, "pending_exercise.rs", PENDING)
    exercise = Exercise("pending_exercise", source, Mode.COMPILE, "")
    expected = (
        ContextLine("// fake_exercise", 1, False),
        ContextLine("", 2, False),
        ContextLine("// I AM NOT DONE", 3, True),
        ContextLine("", 4, False),
        ContextLine("fn main() {", 5, False),
    )
    assert exercise.state() == State(context=expected)
    assert exercise.looks_done() is False


def test_finished_exercise(workdir):
    source = _write(workdir, "finished_exercise.rs", FINISHED)
    exercise = Exercise("finished_exercise", source, Mode.COMPILE, "")
    assert exercise.state() == State()
    assert exercise.state().done() is True
    assert exercise.looks_done() is True


def test_exercise_with_output(workdir):
    source = _write(workdir, "testSuccess.rs", TEST_SUCCESS)
    exercise = Exercise("exercise_with_output", source, Mode.TEST, "")
    results = [_completed(), _completed(stdout=b"THIS TEST TOO SHALL PASS\n")]
    with patch("rustdrills.exercise.subprocess.run", side_effect=results) as fake:
        with exercise.compile() as compiled:
            out = compiled.run()
    assert "THIS TEST TOO SHALL PASS" in out.stdout
    compile_args = fake.call_args_list[0].args[0]
    assert compile_args == [
        "rustc", "--test", str(source), "-o", temp_file_path(),
        "--color", "always", "--edition", "2021",
    ]
    assert fake.call_args_list[1].args[0] == [temp_file_path(), "--show-output"]


def test_compile_mode_arguments(workdir):
    source = _write(workdir, "compSuccess.rs", "fn main() {\n}\n")
    exercise = Exercise("compSuccess", source, Mode.COMPILE, "")
    with patch("rustdrills.exercise.subprocess.run", return_value=_completed()) as fake:
        compiled = exercise.compile()
        compiled.run()
    assert fake.call_args_list[0].args[0] == [
        "rustc", str(source), "-o", temp_file_path(),
        "--color", "always", "--edition", "2021",
    ]
    assert fake.call_args_list[1].args[0] == [temp_file_path()]
    compiled.close()


def test_compile_failure_raises_and_cleans(workdir):
    Path(temp_file_path()).touch()
    source = _write(workdir, "compFailure.rs", "fn main() {\n    let\n}\n")
    exercise = Exercise("compFailure", source, Mode.COMPILE, "")
    failed = _completed(returncode=1, stderr=b"error: expected pattern")
    with patch("rustdrills.exercise.subprocess.run", return_value=failed):
        with pytest.raises(ExerciseFailed) as info:
            exercise.compile()
    assert info.value.output.stderr == "error: expected pattern"
    assert not Path(temp_file_path()).exists()


def test_run_failure_raises_with_output(workdir):
    source = _write(workdir, "testNotPassed.rs", "#[test]\nfn not_passing() {\n    assert!(false);\n}\n")
    exercise = Exercise("testNotPassed", source, Mode.TEST, "")
    with patch(
        "rustdrills.exercise.subprocess.run",
        return_value=_completed(returncode=101, stdout=b"test failed"),
    ):
        with pytest.raises(ExerciseFailed) as info:
            exercise.run()
    assert info.value.output.stdout == "test failed"


def test_build_script_run_returns_empty_output(workdir):
    exercise = Exercise("build", workdir / "build.rs", Mode.BUILD_SCRIPT, "")
    with patch("rustdrills.exercise.subprocess.run") as fake:
        output = exercise.run()
    assert (output.stdout, output.stderr) == ("", "")
    assert fake.call_count == 0


def test_clippy_writes_manifest(workdir, monkeypatch):
    monkeypatch.setenv("NO_EMOJI", "1")
    (workdir / "exercises" / "clippy").mkdir(parents=True)
    exercise = Exercise("clippy1", Path("exercises/clippy/clippy1.rs"), Mode.CLIPPY, "")
    with patch(
        "rustdrills.exercise.subprocess.run",
        return_value=_completed(stdout=b"clippy ok"),
    ) as fake:
        with exercise.compile() as compiled:
            clippy_calls = list(fake.call_args_list)
            output = compiled.run()
    assert output.stdout == "clippy ok"
    manifest = (workdir / "exercises" / "clippy" / "Cargo.toml").read_text()
    assert manifest == (
        '[package]\nname = "clippy1"\nversion = "0.0.1"\nedition = "2021"\n'
        '[[bin]]\nname = "clippy1"\npath = "clippy1.rs"'
    )
    assert clippy_calls[-1].args[0][:2] == ["cargo", "clippy"]
    assert clippy_calls[-1].args[0][-4:] == ["-D", "warnings", "-D", "clippy::float_cmp"]


def test_clippy_manifest_write_failure(workdir, monkeypatch):
    monkeypatch.setenv("NO_EMOJI", "1")
    exercise = Exercise("clippy1", Path("clippy1.rs"), Mode.CLIPPY, "")
    with pytest.raises(RuntimeError, match="Failed to write Clippy Cargo.toml file."):
        exercise.compile()


def test_missing_compiler_raises(workdir):
    exercise = Exercise("x", workdir / "x.rs", Mode.COMPILE, "")
    with patch("rustdrills.exercise.subprocess.run", side_effect=FileNotFoundError):
        with pytest.raises(RuntimeError, match="Failed to run 'compile' command."):
            exercise.compile()


def test_state_accepts_triple_slash_and_crlf(workdir):
    source = _write(workdir, "a.rs", "fn a() {}\r\n   ///   I  AM NOT   DONE\r\n")
    state = Exercise("a", source, Mode.COMPILE, "").state()
    assert state.context == (
        ContextLine("fn a() {}", 1, False),
        ContextLine("   ///   I  AM NOT   DONE", 2, True),
    )


def test_str_is_path(workdir):
    exercise = Exercise("intro1", "exercises/intro/intro1.rs", Mode.COMPILE, "")
    assert str(exercise) == str(Path("exercises/intro/intro1.rs"))


def test_parse_exercise_list():
    text = (
        '[[exercises]]\nname = "intro1"\npath = "exercises/intro/intro1.rs"\n'
        'mode = "compile"\nhint = "Hello!"\n\n'
        '[[exercises]]\nname = "build"\npath = "exercises/tests/build.rs"\n'
        'mode = "buildscript"\nhint = ""\n'
    )
    exercises = parse_exercise_list(text)
    assert [e.name for e in exercises] == ["intro1", "build"]
    assert [e.mode for e in exercises] == [Mode.COMPILE, Mode.BUILD_SCRIPT]
    assert exercises[0].hint == "Hello!"
    assert exercises[0].path == Path("exercises/intro/intro1.rs")


def test_parse_rejects_unknown_mode():
    text = '[[exercises]]\nname = "a"\npath = "a.rs"\nmode = "bogus"\nhint = ""\n'
    with pytest.raises(ValueError):
        parse_exercise_list(text)


def test_parse_rejects_missing_field():
    with pytest.raises(ValueError, match="hint"):
        parse_exercise_list('[[exercises]]\nname = "a"\npath = "a.rs"\nmode = "test"\n')


def test_parse_rejects_missing_list():
    with pytest.raises(ValueError):
        parse_exercise_list('title = "nothing"\n')


def test_load_exercises(workdir):
    _write(workdir, "info.toml",
           '[[exercises]]\nname = "testFailure"\npath = "testFailure.rs"\nmode = "test"\nhint = "Hello!"\n')
    exercises = load_exercises("info.toml")
    assert exercises == [Exercise("testFailure", Path("testFailure.rs"), Mode.TEST, "Hello!")]


def test_context_manager_cleans(workdir):
    Path(temp_file_path()).touch()
    exercise = Exercise("x", workdir / "x.rs", Mode.COMPILE, "")
    with CompiledExercise(exercise):
        assert Path(temp_file_path()).exists()
    assert not Path(temp_file_path()).exists()


def test_clean_ignores_missing_file(workdir):
    clean()
    assert not Path(temp_file_path()).exists()