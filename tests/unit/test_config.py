"""Tests for cobot.core.config."""

import tomllib

from cobot.core import config


class TestApiKey:
    def test_precedence(self, monkeypatch):
        assert config.resolve_api_key() is None

        config.save_api_key("sk-file")
        assert config.resolve_api_key() == "sk-file"

        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert config.resolve_api_key() == "sk-env"
        assert config.resolve_api_key("sk-explicit") == "sk-explicit"

    def test_save_writes_private_file(self, isolated_env):
        path = config.save_api_key("sk-test")

        assert path == isolated_env / ".cobot" / "config.toml"
        assert tomllib.loads(path.read_text()) == {"openai": {"api_key": "sk-test"}}
        assert path.stat().st_mode & 0o777 == 0o600

    def test_clear_removes_empty_file(self):
        path = config.save_api_key("sk-test")
        config.clear_api_key()
        assert not path.exists()
        assert config.load_api_key() is None

    def test_clear_keeps_other_settings(self):
        config.save_api_key("sk-test")
        path = config.save_default_model("gpt-4o")

        config.clear_api_key()

        assert tomllib.loads(path.read_text()) == {"defaults": {"model": "gpt-4o"}}


class TestBaseUrl:
    def test_config_beats_environment(self, monkeypatch):
        monkeypatch.setenv("OPENAI_BASE_URL", "http://env:1/v1")
        assert config.resolve_base_url() == "http://env:1/v1"

        config.save_base_url("http://file:2/v1")
        assert config.resolve_base_url() == "http://file:2/v1"
        assert config.resolve_base_url("http://explicit/v1") == "http://explicit/v1"

        config.clear_base_url()
        assert config.resolve_base_url() == "http://env:1/v1"


class TestDefaultModel:
    def test_round_trip(self):
        assert config.load_default_model() is None
        config.save_default_model("gpt-4.1")
        assert config.load_default_model() == "gpt-4.1"

    def test_broken_file_is_ignored(self, isolated_env):
        path = isolated_env / ".cobot" / "config.toml"
        path.parent.mkdir(parents=True)
        path.write_text("this is [not toml")

        assert config.load_config() == {}
        assert config.load_default_model() is None

    def test_quotes_escaped(self):
        path = config.save_default_model('we"ird\\name')
        assert tomllib.loads(path.read_text())["defaults"]["model"] == 'we"ird\\name'


class TestProjectContext:
    def test_none_without_file(self, tmp_path):
        assert config.load_project_context(tmp_path) is None

    def test_cobot_file_preferred(self, tmp_path):
        (tmp_path / ".openai").mkdir()
        (tmp_path / ".openai" / "context.md").write_text("legacy")
        assert config.load_project_context(tmp_path) == (".openai/context.md", "legacy")

        (tmp_path / ".cobot").mkdir()
        (tmp_path / ".cobot" / "context.md").write_text("fresh")
        assert config.load_project_context(tmp_path) == (".cobot/context.md", "fresh")

    def test_explicit_file(self, tmp_path, monkeypatch):
        ctx_file = tmp_path / "notes.md"
        ctx_file.write_text("notes")
        monkeypatch.setenv("OPENAI_CONTEXT_FILE", str(ctx_file))

        assert config.load_project_context(tmp_path / "elsewhere") == (str(ctx_file), "notes")

    def test_context_dir_and_limit(self, tmp_path, monkeypatch):
        (tmp_path / ".cobot").mkdir()
        (tmp_path / ".cobot" / "context.md").write_text("abcdefghij")
        monkeypatch.setenv("OPENAI_CONTEXT_DIR", str(tmp_path))
        monkeypatch.setenv("OPENAI_CONTEXT_LIMIT", "4")

        source, text = config.load_project_context(tmp_path / "other")

        assert source == ".cobot/context.md"
        assert text == "abcd\n... [truncated]"

    def test_bad_limit_uses_default(self, tmp_path, monkeypatch):
        (tmp_path / ".cobot").mkdir()
        (tmp_path / ".cobot" / "context.md").write_text("short")
        monkeypatch.setenv("OPENAI_CONTEXT_LIMIT", "lots")

        assert config.load_project_context(tmp_path) == (".cobot/context.md", "short")
