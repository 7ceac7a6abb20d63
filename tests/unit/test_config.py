"""Unit tests for config.py"""

import pytest
from pydantic import ValidationError

from epaper.config import load_config


def test_load_config_uses_env_db_url(monkeypatch):
    """EPAPER_DB_URL env var is picked up by load_config."""
    monkeypatch.setenv("EPAPER_DB_URL", "sqlite:///env.db")
    settings = load_config()
    assert settings.db_url == "sqlite:///env.db"


def test_load_config_env_overrides_config_yaml(tmp_path, monkeypatch):
    """EPAPER_DB_URL takes precedence over config.yaml db_url."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config.yaml").write_text("db_url: 'sqlite:///project.db'\n")
    monkeypatch.setenv("EPAPER_DB_URL", "sqlite:///override.db")
    settings = load_config()
    assert settings.db_url == "sqlite:///override.db"


def test_load_config_cli_overrides_env(monkeypatch):
    """A non-None CLI override beats the EPAPER_DB_URL env var."""
    monkeypatch.setenv("EPAPER_DB_URL", "sqlite:///env.db")
    settings = load_config(overrides={"db_url": "sqlite:///cli.db", "output_dir": None})
    assert settings.db_url == "sqlite:///cli.db"
    assert settings.output_dir == "dist"


def test_load_config_defaults(tmp_path, monkeypatch):
    """Settings defaults apply when no config.yaml, env var, or CLI override exists."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("EPAPER_DB_URL", raising=False)
    settings = load_config()
    assert settings.db_url == "sqlite:///epaper.db"
    assert settings.article_limit == 30
    assert settings.raster_scale == 2
    assert settings.locale == "bn"
    assert settings.duplicate_policy == "reject"


def test_load_config_invalid_yaml(tmp_path, monkeypatch):
    """load_config raises ValueError when config.yaml contains invalid YAML."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config.yaml").write_text("key: [unclosed\n")
    with pytest.raises(ValueError, match="Invalid config.yaml"):
        load_config()


# --- generalized env var pattern ---

def test_load_config_env_article_limit(monkeypatch):
    """EPAPER_ARTICLE_LIMIT env var is coerced to int and applied to settings."""
    monkeypatch.setenv("EPAPER_ARTICLE_LIMIT", "12")
    assert load_config().article_limit == 12


def test_load_config_env_thumbnail_bool(monkeypatch):
    monkeypatch.setenv("EPAPER_THUMBNAIL", "false")
    assert load_config().thumbnail is False


def test_load_config_env_overrides_config_yaml_locale(tmp_path, monkeypatch):
    """EPAPER_LOCALE env var takes precedence over config.yaml."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config.yaml").write_text("locale: bn\n")
    monkeypatch.setenv("EPAPER_LOCALE", "en")
    assert load_config().locale == "en"


# --- constraints ---

@pytest.mark.parametrize("field,value", [
    ("article_limit", 4),
    ("article_limit", 101),
    ("raster_scale", 1),
    ("jpeg_quality", 0),
    ("locale", "fr"),
    ("duplicate_policy", "replace"),
    ("image_timeout", 0),
])
def test_load_config_rejects_out_of_range(field, value):
    with pytest.raises(ValidationError):
        load_config(overrides={field: value})
