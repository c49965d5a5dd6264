"""
Tests for command dispatch and exit codes of the CLI.
"""
import io
import re
import sys

import pytest

from geheim import cli


class FakeGit:
    def __init__(self, worktree, remotes=()):
        self.worktree = worktree
        self.staged = []
        self.removed = []

    def stage(self, path):
        self.staged.append(path)

    def remove(self, path):
        self.removed.append(path)

    def status(self):
        return "nothing to commit"


@pytest.fixture
def env(tmp_path, key_file, monkeypatch):
    monkeypatch.setenv("GEHEIM_CONFIG", str(tmp_path / "missing.yml"))
    monkeypatch.setenv("GEHEIM_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("GEHEIM_EXPORT_DIR", str(tmp_path / "export"))
    monkeypatch.setenv("GEHEIM_KEY_FILE", str(key_file))
    monkeypatch.setenv("GEHEIM_PIN", "1234")
    monkeypatch.setattr(cli, "Git", FakeGit)
    return tmp_path


def add(monkeypatch, description, payload):
    monkeypatch.setattr(sys, "stdin", io.StringIO(payload + "\n"))
    return cli.main(["add", description])


def test_add_then_cat(env, monkeypatch, capsys):
    assert add(monkeypatch, "notes.txt", "hello") == 0
    capsys.readouterr()

    assert cli.main(["cat", "notes"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("notes.txt; ...")
    assert "\thello\n" in out


def test_cat_refuses_binary(env, monkeypatch, capsys):
    add(monkeypatch, "photo.png", "not really a png")
    capsys.readouterr()

    assert cli.main(["cat", "photo"]) == cli.EXIT_BINARY
    assert "not really a png" not in capsys.readouterr().out


def test_bare_term_searches(env, monkeypatch, capsys):
    add(monkeypatch, "bank/login.txt", "alice:pw")
    capsys.readouterr()

    assert cli.main(["bank"]) == 0
    assert "bank/login.txt" in capsys.readouterr().out


def test_bare_term_after_config_option(env, monkeypatch, capsys):
    add(monkeypatch, "bank/login.txt", "alice:pw")
    capsys.readouterr()

    assert cli.main(["-c", str(env / "missing.yml"), "bank"]) == 0
    assert "bank/login.txt" in capsys.readouterr().out


def test_ls_empty_store(env):
    assert cli.main(["ls"]) == cli.EXIT_FAILURE


def test_add_existing_fails(env, monkeypatch, capsys):
    add(monkeypatch, "notes.txt", "one")
    assert add(monkeypatch, "notes.txt", "two") == cli.EXIT_FAILURE
    assert "already exists" in capsys.readouterr().err


def test_rm_with_yes(env, monkeypatch):
    add(monkeypatch, "notes.txt", "x")
    assert cli.main(["rm", "notes", "--yes"]) == 0
    assert cli.main(["ls"]) == cli.EXIT_FAILURE


def test_missing_key_file_is_fatal(env, monkeypatch):
    monkeypatch.setenv("GEHEIM_KEY_FILE", str(env / "missing.key"))
    with pytest.raises(SystemExit) as exc:
        add(monkeypatch, "notes.txt", "x")
    assert exc.value.code == cli.EXIT_FATAL


def test_status_does_not_need_pin(env, monkeypatch, capsys):
    monkeypatch.delenv("GEHEIM_PIN")
    assert cli.main(["status"]) == 0
    assert "nothing to commit" in capsys.readouterr().out


def test_shell_runs_commands_until_exit(env, monkeypatch, capsys):
    add(monkeypatch, "notes.txt", "hello")
    capsys.readouterr()

    monkeypatch.setattr(sys, "stdin", io.StringIO("notes\ncat\nexit\n"))
    assert cli.main([]) == 0

    out = capsys.readouterr().out
    assert "\thello\n" in out
    assert "Good bye" in out


def test_help(capsys):
    assert cli.main(["--help"]) == 0
    assert "COMMANDS" in capsys.readouterr().out


def test_first_positional_skips_option_values():
    assert cli.first_positional(["-c", "cfg.yml", "-v", "term"]) == 3
    assert cli.first_positional(["-v"]) is None


class TestPickedDescription:

    @pytest.fixture
    def picker(self, monkeypatch):
        chosen = []

        class FakePicker:
            def __init__(self, cmd):
                self.cmd = cmd

            def choose(self, candidates):
                candidates = list(candidates)
                chosen.extend(c for c in candidates if c.startswith("x(1).txt;"))
                return chosen[0] if chosen else None

        monkeypatch.setattr(cli, "Picker", FakePicker)
        return chosen

    def test_pick_is_matched_literally(self, env, monkeypatch, capsys, picker):
        add(monkeypatch, "x(1).txt", "first")
        add(monkeypatch, "old/x(1).txt", "second")
        capsys.readouterr()

        assert cli.main(["cat"]) == 0
        out = capsys.readouterr().out
        assert picker
        assert "\tfirst\n" in out
        assert "old/x(1).txt" not in out
        assert "second" not in out

    def test_exact_pattern_escapes_metacharacters(self):
        pattern = cli.exact_pattern("a+b (copy).txt")
        assert re.search(pattern, "a+b (copy).txt")
        assert not re.search(pattern, "old/a+b (copy).txt")
        assert not re.search(pattern, "aab (copy).txt")
