"""
Tests for settings loading and PIN / key material sources.
"""
import io
from pathlib import Path

import pytest

from geheim.config import DEFAULT_PLAINTEXT_EXTENSIONS, load_key_material, read_pin
from geheim.errors import ConfigError, KeyMaterialUnavailable, PassphraseUnavailable
from geheim.settings import Settings, default_clipboard_cmd, default_open_cmd


class TestSettings:

    def test_missing_file_gives_defaults(self, tmp_path):
        settings = Settings.load(tmp_path / "missing.yml")
        assert settings.data_dir == Path("~/git/geheimlager").expanduser()
        assert settings.export_dir == Path("~/.geheimlagerexport").expanduser()
        assert settings.key_file == Path("~/.geheimlager.key").expanduser()
        assert settings.picker_cmd == "fzf"
        assert settings.sync_remotes == []
        assert settings.plaintext_extensions == list(DEFAULT_PLAINTEXT_EXTENSIONS)

    def test_yaml_values(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text(
            "version: 1\n"
            f"data_dir: {tmp_path}/data\n"
            "edit_cmd: vi\n"
            "clipboard_cmd: xclip -selection clipboard\n"
            "sync_remotes: [git1, git2]\n"
            "plaintext_extensions: ['.txt', '.pem']\n",
            encoding="utf-8",
        )

        settings = Settings.load(path)

        assert settings.data_dir == tmp_path / "data"
        assert settings.edit_cmd == "vi"
        assert settings.clipboard_cmd == "xclip -selection clipboard"
        assert settings.sync_remotes == ["git1", "git2"]
        assert settings.plaintext_extensions == [".txt", ".pem"]

    def test_settings_path_from_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yml"
        path.write_text("picker_cmd: sk\n", encoding="utf-8")
        monkeypatch.setenv("GEHEIM_CONFIG", str(path))
        assert Settings.load().picker_cmd == "sk"

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yml"
        path.write_text(f"data_dir: {tmp_path}/from-file\n", encoding="utf-8")
        monkeypatch.setenv("GEHEIM_DATA_DIR", str(tmp_path / "from-env"))
        monkeypatch.setenv("GEHEIM_KEY_FILE", str(tmp_path / "k"))

        settings = Settings.load(path)

        assert settings.data_dir == tmp_path / "from-env"
        assert settings.key_file == tmp_path / "k"

    def test_unsupported_version(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("version: 2\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            Settings.load(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            Settings.load(path)

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("data_dir: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            Settings.load(path)

    def test_list_values_are_checked(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("sync_remotes: git1\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            Settings.load(path)

    @pytest.mark.parametrize("system, clipboard, opener", [
        ("Darwin", "pbcopy", "open -W"),
        ("Linux", "gpaste-client", "evince"),
        ("Android", None, "termux-open"),
    ])
    def test_platform_defaults(self, system, clipboard, opener):
        assert default_clipboard_cmd(system) == clipboard
        assert default_open_cmd(system) == opener


class TestPin:

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("GEHEIM_PIN", "9876")
        assert read_pin(io.StringIO("ignored\n")) == "9876"

    def test_reads_line_from_non_tty(self):
        assert read_pin(io.StringIO("1234\n")) == "1234"

    def test_empty_input(self):
        with pytest.raises(PassphraseUnavailable):
            read_pin(io.StringIO(""))


class TestKeyMaterial:

    def test_reads_raw_bytes(self, key_file):
        assert load_key_material(key_file) == b"not-so-random key material"

    def test_missing(self, tmp_path):
        with pytest.raises(KeyMaterialUnavailable):
            load_key_material(tmp_path / "missing")

    def test_empty(self, tmp_path):
        path = tmp_path / "empty.key"
        path.write_bytes(b"")
        with pytest.raises(KeyMaterialUnavailable):
            load_key_material(path)
