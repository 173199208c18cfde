from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


class ConfigError(RuntimeError):
    pass


@dataclass
class Profile:
    name: str
    url: str
    token: Optional[str] = None
    timeout: float = 30.0
    verify_tls: bool = True

    @property
    def base_url(self) -> str:
        return self.url.rstrip("/")


@dataclass
class NavigationSettings:
    max_depth: Optional[int] = None
    category_limit: Optional[int] = 4


@dataclass
class Config:
    version: int = 1
    default_profile: Optional[str] = None
    profiles: Dict[str, Profile] = field(default_factory=dict)
    navigation: NavigationSettings = field(default_factory=NavigationSettings)
    source_path: Optional[Path] = None

    def to_json(self) -> str:
        def _default(o: Any):
            if isinstance(o, Path):
                return str(o)
            if hasattr(o, "__dict__"):
                return o.__dict__
            return str(o)

        return json.dumps(self, default=_default, indent=2, sort_keys=True)

    def get_profile(self, name: Optional[str] = None) -> Profile:
        """Resolve a profile by name, falling back to ``default_profile``."""
        name = name or self.default_profile
        if not name:
            raise ConfigError("No profile specified and no default_profile set in config")
        profile = self.profiles.get(name)
        if profile is None:
            raise ConfigError(f"Profile not found: {name}")
        return profile


def _expand_env(value: Any) -> Any:
    if isinstance(value, str):
        # Expand ${VAR} style
        return os.path.expandvars(value)
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    return value


def _optional_int(raw: Any, key: str) -> Optional[int]:
    if raw is None:
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"navigation.{key} must be an integer, got {raw!r}") from e
    if value < 1:
        raise ConfigError(f"navigation.{key} must be >= 1, got {value}")
    return value


def _as_profile(name: str, raw: Dict[str, Any]) -> Profile:
    url = str(raw.get("url") or "").strip()
    if not url:
        raise ConfigError(f"Profile '{name}' is missing 'url'")
    token = raw.get("token") or None
    try:
        timeout = float(raw.get("timeout", 30))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Profile '{name}' timeout must be a number, got {raw.get('timeout')!r}") from e
    return Profile(
        name=name,
        url=url,
        token=str(token) if token else None,
        timeout=timeout,
        verify_tls=bool(raw.get("verify_tls", True)),
    )


def _as_navigation(raw: Dict[str, Any]) -> NavigationSettings:
    settings = NavigationSettings(max_depth=_optional_int(raw.get("max_depth"), "max_depth"))
    if "category_limit" in raw:
        settings.category_limit = _optional_int(raw.get("category_limit"), "category_limit")
    return settings


def resolve_config_path() -> Path:
    # Highest priority: explicit override
    override = os.environ.get("STARCTL_CONFIG")
    if override:
        p = Path(override).expanduser()
        if p.is_file():
            return p
        raise ConfigError(f"STARCTL_CONFIG path not found: {p}")

    # XDG base dirs
    xdg_home = Path(os.environ.get("XDG_CONFIG_HOME", "~/.config")).expanduser()
    candidates = [xdg_home / "starctl" / "config.yaml"]

    xdg_dirs = os.environ.get("XDG_CONFIG_DIRS", "/etc/xdg")
    for d in xdg_dirs.split(":"):
        candidates.append(Path(d) / "starctl" / "config.yaml")

    for c in candidates:
        if c.is_file():
            return c

    raise ConfigError(
        "No config file found. Set STARCTL_CONFIG or create ~/.config/starctl/config.yaml"
    )


def load_config(path: Optional[Path] = None) -> Config:
    cfg_path = path or resolve_config_path()
    try:
        data = yaml.safe_load(cfg_path.read_text()) or {}
    except FileNotFoundError as e:
        raise ConfigError(str(e)) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {cfg_path}: {e}") from e

    data = _expand_env(data)
    profiles_raw = data.get("profiles") or {}
    profiles: Dict[str, Profile] = {
        name: _as_profile(name, raw or {}) for name, raw in profiles_raw.items()
    }

    cfg = Config(
        version=int(data.get("version", 1)),
        default_profile=data.get("default_profile"),
        profiles=profiles,
        navigation=_as_navigation(data.get("navigation") or {}),
        source_path=cfg_path,
    )
    return cfg
