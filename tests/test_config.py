"""Tests for configuration loading"""

from pathlib import Path

import pytest

from news_sync.core.config import BASE_URL_ENV, CONFIG_PATH_ENV, load_config
from news_sync.core.exceptions import ConfigError


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, temp_dir):
    """Keep environment overrides and stray .env files out of the tests"""
    monkeypatch.delenv(BASE_URL_ENV, raising=False)
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    monkeypatch.chdir(temp_dir)


class TestLoadConfig:
    """Test config.yaml parsing and validation"""

    def test_minimal_config_uses_defaults(self, write_config):
        path = write_config('remote:\n  base_url: "https://example.com/api/"\n')

        config = load_config(path)

        assert config.remote.base_url == "https://example.com/api/"
        assert config.remote.timeout == 30.0
        assert config.remote.demo_file is None
        assert config.storage.directory == (Path.home() / ".news-sync").resolve()
        assert config.sync.batch_size == 40
        assert config.sync.interval == 900

    def test_full_config(self, write_config, temp_dir):
        path = write_config(
            "remote:\n"
            "  base_url: https://example.com/api\n"
            "  timeout: 5\n"
            "storage:\n"
            f"  directory: {temp_dir / 'store'}\n"
            "sync:\n"
            "  batch_size: 10\n"
            "  interval: 60\n"
        )

        config = load_config(path)

        assert config.remote.timeout == 5.0
        assert config.storage.directory == (temp_dir / "store").resolve()
        assert config.storage.database_path.name == "database.db"
        assert config.storage.preferences_path.name == "preferences.json"
        assert config.sync.batch_size == 10
        assert config.sync.interval == 60

    def test_default_location_is_working_directory(self, write_config):
        write_config('remote:\n  base_url: "https://example.com/api/"\n')

        assert load_config().remote.base_url == "https://example.com/api/"

    def test_config_path_from_environment(self, write_config, monkeypatch):
        path = write_config('remote:\n  base_url: "https://env.example.com/"\n', name="other.yaml")
        monkeypatch.setenv(CONFIG_PATH_ENV, str(path))

        assert load_config().remote.base_url == "https://env.example.com/"

    def test_base_url_override(self, write_config, monkeypatch):
        path = write_config('remote:\n  base_url: "https://example.com/api/"\n')
        monkeypatch.setenv(BASE_URL_ENV, "https://override.example.com/")

        assert load_config(path).remote.base_url == "https://override.example.com/"

    def test_demo_file_resolved_against_config_directory(self, write_config, temp_dir):
        (temp_dir / "feeds").mkdir()
        (temp_dir / "feeds" / "demo.json").write_text("{}", encoding="utf-8")
        path = write_config("remote:\n  demo_file: feeds/demo.json\n")

        config = load_config(path)

        assert config.remote.base_url is None
        assert config.remote.demo_file == (temp_dir / "feeds" / "demo.json").resolve()

    def test_missing_file(self, temp_dir):
        with pytest.raises(ConfigError) as exc_info:
            load_config(temp_dir / "missing.yaml")

        assert "file_path" in exc_info.value.details

    @pytest.mark.parametrize("content", [
        "remote: [unclosed",
        "- just\n- a list\n",
        "storage:\n  directory: /tmp\n",
        "remote: https://example.com\n",
        "remote:\n  timeout: 5\n",
        "remote:\n  base_url: ''\n",
        "remote:\n  base_url: https://example.com\n  timeout: fast\n",
        "remote:\n  base_url: https://example.com\n  timeout: -1\n",
        "remote:\n  demo_file: missing.json\n",
        "remote:\n  base_url: https://example.com\nsync:\n  batch_size: 0\n",
        "remote:\n  base_url: https://example.com\nsync:\n  interval: true\n",
        "remote:\n  base_url: https://example.com\nstorage:\n  directory: 12\n",
    ])
    def test_invalid_configs(self, write_config, content):
        path = write_config(content)

        with pytest.raises(ConfigError):
            load_config(path)
