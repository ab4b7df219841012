"""Tests for configuration loading and the config commands."""

import pytest
from pydantic import ValidationError

from config import AppConfig, get_feed_secret, load_config, load_secrets
from config_utils import init_config, validate_config


def _write(path, text):
    path.write_text(text)
    return path


class TestLoadConfig:
    """Tests for YAML config loading."""

    def test_missing_files_give_defaults(self, tmp_path):
        """Test an empty directory loads default settings."""
        config = load_config(tmp_path)

        assert config.owner_id == "local"
        assert config.editor.grid_snap_size == 0.5
        assert config.projects.free_project_limit == 3
        assert load_secrets(tmp_path).feeds == {}

    def test_load_values(self, tmp_path):
        """Test values from config.yaml and secrets.yaml are read."""
        _write(tmp_path / "config.yaml", """
owner_id: builder-7
tier: pro
pricing:
  zwg_rate: 26.5
  feeds:
    - id: baines
      name: Baines
      url: https://baines.example.com/prices.json
""")
        _write(tmp_path / "secrets.yaml", "feeds:\n  baines:\n    token: abc\n")

        config = load_config(tmp_path)
        secrets = load_secrets(tmp_path)

        assert config.tier == "pro"
        assert config.pricing.zwg_rate == 26.5
        assert config.pricing.feeds[0].currency == "USD"
        assert get_feed_secret(secrets, "baines", "token") == "abc"
        assert get_feed_secret(secrets, "other", "token") is None

    def test_rejects_invalid_values(self, tmp_path):
        """Test out of range values fail validation."""
        _write(tmp_path / "config.yaml", "pricing:\n  zwg_rate: 0\n")
        with pytest.raises(ValidationError):
            load_config(tmp_path)

    def test_grid_must_be_positive(self):
        """Test the snap grid cannot be zero."""
        with pytest.raises(ValidationError):
            AppConfig.model_validate({"editor": {"grid_snap_size": 0}})


class TestConfigCommands:
    """Tests for config init and validate."""

    def test_init_then_validate(self, tmp_path, capsys):
        """Test generated example files validate."""
        config_dir = tmp_path / "config"

        init_config(str(config_dir))

        assert (config_dir / "config.yaml").exists()
        assert (config_dir / "secrets.yaml").exists()
        assert validate_config(str(config_dir)) is True
        assert "No price feeds defined" in capsys.readouterr().out

    def test_init_keeps_existing_files(self, tmp_path):
        """Test init never overwrites a config."""
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        _write(config_dir / "config.yaml", "owner_id: mine\n")

        init_config(str(config_dir))

        assert (config_dir / "config.yaml").read_text() == "owner_id: mine\n"

    def test_validate_missing_config(self, tmp_path):
        """Test a directory without config.yaml fails."""
        assert validate_config(str(tmp_path)) is False

    def test_validate_bad_feeds(self, tmp_path, capsys):
        """Test duplicate feed ids and non-http urls are errors."""
        _write(tmp_path / "config.yaml", """
pricing:
  feeds:
    - {id: a, name: A, url: "https://a.example.com"}
    - {id: a, name: A2, url: "https://a2.example.com"}
    - {id: b, name: B, url: "ftp://b.example.com"}
""")

        assert validate_config(str(tmp_path)) is False
        out = capsys.readouterr().out
        assert "'a' is defined more than once" in out
        assert "'b' url must start with" in out

    def test_validate_unknown_feed_secret(self, tmp_path, capsys):
        """Test secrets for an unknown feed are a warning only."""
        _write(tmp_path / "config.yaml", "owner_id: me\n")
        _write(tmp_path / "secrets.yaml", "feeds:\n  ghost:\n    token: x\n")

        assert validate_config(str(tmp_path)) is True
        assert "unknown price feed 'ghost'" in capsys.readouterr().out
