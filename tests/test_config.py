"""Tests for settings loading from the environment and app.yaml."""

import pytest

from deskpress.config import (
    clear_settings_cache,
    get_config_path,
    get_settings,
    interpolate_env_vars,
    set_config_path,
)


@pytest.fixture
def config_override():
    yield set_config_path
    set_config_path(None)
    clear_settings_cache()


def test_defaults_without_app_yaml():
    settings = get_settings()

    assert settings.secret_key == "test-secret-key"
    assert settings.github.is_configured is False
    assert settings.invites.default_expiry_days == 7
    assert settings.content.static_batch_size == 5


def test_sections_from_app_yaml(temp_app_yaml, monkeypatch):
    monkeypatch.setenv("SITE_GITHUB_TOKEN", "ghp_from_env")
    temp_app_yaml(
        {
            "debug": True,
            "github": {"owner": "acme", "repo": "site", "token": "$SITE_GITHUB_TOKEN"},
            "invites": {"origin": "https://admin.example.com"},
            "logging": {"level": "debug"},
        }
    )

    settings = get_settings()

    assert settings.debug is True
    assert settings.github.token == "ghp_from_env"
    assert settings.github.is_configured
    assert settings.github.posts_path == "public/posts"
    assert settings.invites.origin == "https://admin.example.com"
    assert settings.logging.level == "debug"


def test_missing_env_var_is_an_error(temp_app_yaml, monkeypatch):
    monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
    temp_app_yaml({"github": {"token": "$NOT_SET_ANYWHERE"}})

    with pytest.raises(ValueError, match="NOT_SET_ANYWHERE"):
        get_settings()


def test_interpolation_recurses(monkeypatch):
    monkeypatch.setenv("HOST", "db.internal")
    value = interpolate_env_vars({"url": "postgres://$HOST/app", "hosts": ["$HOST", 5]})
    assert value == {"url": "postgres://db.internal/app", "hosts": ["db.internal", 5]}


def test_environment_selects_file(tmp_path, monkeypatch):
    monkeypatch.setenv("DESKPRESS_ENV", "staging")
    assert get_config_path() == tmp_path / "app.staging.yaml"

    monkeypatch.setenv("DESKPRESS_ENV", "production")
    assert get_config_path() == tmp_path / "app.yaml"


def test_explicit_config_path(tmp_path, config_override):
    path = tmp_path / "elsewhere.yaml"
    path.write_text("build:\n  poll_interval: 2.5\n")

    config_override(path)
    clear_settings_cache()

    assert get_settings().build.poll_interval == 2.5
