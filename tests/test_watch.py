import io
import sys

import pytest

from rustdrills.watch import WatchShell, WatchStatus, watch


def test_quit_sets_flag_and_says_bye(capsys):
    shell = WatchShell()
    shell.handle("quit\n")
    assert shell.should_quit.is_set()
    assert capsys.readouterr().out == "Bye!\n"


def test_hint_prints_current_hint(capsys):
    shell = WatchShell("Try harder")
    shell.handle("  hint  ")
    assert capsys.readouterr().out == "Try harder\n"


def test_hint_updates(capsys):
    shell = WatchShell("first")
    shell.hint = "second"
    shell.handle("hint")
    assert capsys.readouterr().out == "second\n"


def test_hint_without_hint_prints_nothing(capsys):
    shell = WatchShell()
    shell.handle("hint")
    assert capsys.readouterr().out == ""


def test_clear_prints_escape(capsys):
    WatchShell().handle("clear")
    assert capsys.readouterr().out == "\x1b[2J\x1b[1;1H\n"


def test_help_lists_commands(capsys):
    WatchShell().handle("help")
    out = capsys.readouterr().out
    assert "  hint   - prints the current exercise's hint" in out
    assert "  quit   - quits watch mode" in out


def test_unknown_command(capsys):
    shell = WatchShell()
    shell.handle("dance")
    assert capsys.readouterr().out == "unknown command: dance\n"
    assert not shell.should_quit.is_set()


@pytest.mark.parametrize("line", ["!", "!   ", "  !\n"])
def test_bang_without_command(capsys, line):
    WatchShell().handle(line)
    assert capsys.readouterr().out == "no command provided\n"


def test_bang_with_missing_program(capsys):
    WatchShell().handle("!no-such-program-here --flag")
    out = capsys.readouterr().out
    assert out.startswith("failed to execute command `no-such-program-here --flag`: ")


def test_start_reads_commands_from_stdin(monkeypatch, capsys):
    monkeypatch.setattr(sys, "stdin", io.StringIO("hint\nquit\n"))
    shell = WatchShell("a hint")
    thread = shell.start()
    thread.join(timeout=5)
    assert shell.should_quit.is_set()
    out = capsys.readouterr().out
    assert "a hint\n" in out
    assert "Bye!" in out


def test_watch_with_nothing_to_do_finishes(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "exercises").mkdir()
    assert watch([], False, False) is WatchStatus.FINISHED
    assert "\x1bc" in capsys.readouterr().out


def test_watch_without_exercise_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(FileNotFoundError):
        watch([], False, False)