from __future__ import annotations

import json
from pathlib import Path

import pytest

from starlib.config import ConfigError, load_config, resolve_config_path


def write_config(tmp_path: Path, body: str) -> Path:
    cfg = tmp_path / "config.yaml"
    cfg.write_text(body.strip())
    return cfg


def test_load_profiles_and_navigation(tmp_path, monkeypatch):
    monkeypatch.setenv("STARCTL_TOKEN", "secret")
    cfg_path = write_config(
        tmp_path,
        """
version: 1
default_profile: prod
profiles:
  prod:
    url: http://console.prod:8080/api/
    token: ${STARCTL_TOKEN}
    timeout: 5
  dev:
    url: http://localhost:8080/api
    verify_tls: false
navigation:
  max_depth: 3
        """,
    )

    cfg = load_config(cfg_path)

    prod = cfg.get_profile()
    assert prod.name == "prod"
    assert prod.token == "secret"
    assert prod.timeout == 5.0
    assert prod.base_url == "http://console.prod:8080/api"
    assert cfg.get_profile("dev").verify_tls is False
    assert cfg.get_profile("dev").token is None
    assert cfg.navigation.max_depth == 3
    assert cfg.navigation.category_limit == 4
    assert cfg.source_path == cfg_path


def test_category_limit_can_be_disabled(tmp_path):
    cfg = load_config(
        write_config(
            tmp_path,
            """
profiles:
  a: { url: 'http://x' }
navigation:
  category_limit: null
            """,
        )
    )
    assert cfg.navigation.category_limit is None
    assert cfg.navigation.max_depth is None


def test_profile_errors(tmp_path):
    cfg = load_config(write_config(tmp_path, "profiles:\n  a: { url: 'http://x' }"))

    with pytest.raises(ConfigError, match="No profile specified"):
        cfg.get_profile()
    with pytest.raises(ConfigError, match="Profile not found: b"):
        cfg.get_profile("b")


def test_profile_requires_url(tmp_path):
    with pytest.raises(ConfigError, match="missing 'url'"):
        load_config(write_config(tmp_path, "profiles:\n  a: { token: t }"))


@pytest.mark.parametrize("value", ["soon", "[1, 2]"])
def test_invalid_timeout(tmp_path, value):
    body = f"profiles:\n  a: {{ url: 'http://x', timeout: {value} }}"
    with pytest.raises(ConfigError, match="Profile 'a' timeout must be a number"):
        load_config(write_config(tmp_path, body))


@pytest.mark.parametrize("value", ["0", "abc"])
def test_invalid_max_depth(tmp_path, value):
    body = f"profiles:\n  a: {{ url: 'http://x' }}\nnavigation:\n  max_depth: {value}"
    with pytest.raises(ConfigError, match="max_depth"):
        load_config(write_config(tmp_path, body))


def test_invalid_yaml(tmp_path):
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(write_config(tmp_path, "profiles: [unclosed"))


def test_resolve_from_env(tmp_path, monkeypatch):
    cfg_path = write_config(tmp_path, "profiles: {}")
    monkeypatch.setenv("STARCTL_CONFIG", str(cfg_path))
    assert resolve_config_path() == cfg_path


def test_resolve_env_path_missing(tmp_path, monkeypatch):
    monkeypatch.setenv("STARCTL_CONFIG", str(tmp_path / "nope.yaml"))
    with pytest.raises(ConfigError, match="STARCTL_CONFIG path not found"):
        resolve_config_path()


def test_resolve_from_xdg_home(tmp_path, monkeypatch):
    monkeypatch.delenv("STARCTL_CONFIG", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    monkeypatch.setenv("XDG_CONFIG_DIRS", str(tmp_path / "none"))
    target = tmp_path / "starctl" / "config.yaml"
    target.parent.mkdir()
    target.write_text("profiles: {}")

    assert resolve_config_path() == target


def test_no_config_found(tmp_path, monkeypatch):
    monkeypatch.delenv("STARCTL_CONFIG", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    monkeypatch.setenv("XDG_CONFIG_DIRS", str(tmp_path / "none"))
    with pytest.raises(ConfigError, match="No config file found"):
        resolve_config_path()


def test_to_json_is_serializable(tmp_path):
    cfg = load_config(write_config(tmp_path, "default_profile: a\nprofiles:\n  a: { url: 'http://x' }"))
    data = json.loads(cfg.to_json())
    assert data["profiles"]["a"]["url"] == "http://x"
    assert data["navigation"]["category_limit"] == 4
