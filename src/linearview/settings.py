from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

import yaml

DEFAULT_API_URL = "https://api.linear.app/graphql"
DEFAULT_BRANCH_FORMAT = "{id}-{title}"
CONFIG_ENV_VAR = "LINEARVIEW_CONFIG"


class ConfigError(RuntimeError):
    pass


def default_settings_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "linearview" / "config.yaml"


@dataclass
class ViewerSettings:
    show_only_my_issues: bool = True
    branch_name_format: str = DEFAULT_BRANCH_FORMAT
    api_url: str = DEFAULT_API_URL
    request_timeout: float | None = None
    # Logging configuration
    logging_json_enabled: bool = False
    logging_level: str = "WARNING"
    # Environment authentication configuration
    env_load_dotenv: bool = True
    env_dotenv_path: str | None = None
    path: Path | None = field(default=None, compare=False)


def _resolve_env_var(value: Any) -> Any:
    """Resolve environment variable if value starts with $."""
    if isinstance(value, str) and value.startswith('$'):
        return os.getenv(value[1:], value)  # Fallback to original if not found
    return value


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")
    return cast(dict[str, Any], value)


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def load_settings(path: str | Path | None = None) -> ViewerSettings:
    """Load preferences; a missing file is a valid state and yields defaults."""
    p = Path(path).expanduser() if path is not None else default_settings_path()
    if not p.exists():
        settings = ViewerSettings(path=p)
    else:
        try:
            loaded = yaml.safe_load(p.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid settings file {p}: {exc}") from exc
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Settings file {p} must contain a mapping")
        raw = cast(dict[str, Any], loaded)
        display = _section(raw, 'display')
        branch = _section(raw, 'branch')
        api = _section(raw, 'api')
        logging_config = _section(raw, 'logging')
        env_auth = _section(raw, 'environment')

        timeout = _resolve_env_var(api.get('timeout'))
        try:
            request_timeout = float(timeout) if timeout is not None else None
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"api.timeout must be a number, got {timeout!r}") from exc

        settings = ViewerSettings(
            show_only_my_issues=_as_bool(display.get('show_only_my_issues'), True),
            # Blank formats fall back to the default template
            branch_name_format=str(branch.get('name_format') or DEFAULT_BRANCH_FORMAT),
            api_url=str(_resolve_env_var(api.get('url')) or DEFAULT_API_URL),
            request_timeout=request_timeout,
            logging_json_enabled=_as_bool(logging_config.get('json_enabled'), False),
            logging_level=str(logging_config.get('level') or 'WARNING'),
            env_load_dotenv=_as_bool(env_auth.get('load_dotenv'), True),
            env_dotenv_path=_resolve_env_var(env_auth.get('dotenv_path')),
            path=p,
        )
    url_override = os.environ.get("LINEARVIEW_API_URL")
    if url_override:
        settings.api_url = url_override
    return settings


def settings_to_dict(settings: ViewerSettings) -> dict[str, Any]:
    api: dict[str, Any] = {'url': settings.api_url}
    if settings.request_timeout is not None:
        api['timeout'] = settings.request_timeout
    environment: dict[str, Any] = {'load_dotenv': settings.env_load_dotenv}
    if settings.env_dotenv_path:
        environment['dotenv_path'] = settings.env_dotenv_path
    return {
        'display': {'show_only_my_issues': settings.show_only_my_issues},
        'branch': {'name_format': settings.branch_name_format},
        'api': api,
        'logging': {
            'json_enabled': settings.logging_json_enabled,
            'level': settings.logging_level,
        },
        'environment': environment,
    }


def save_settings(settings: ViewerSettings, path: str | Path | None = None) -> Path:
    target = Path(path).expanduser() if path is not None else (settings.path or default_settings_path())
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(
        yaml.safe_dump(settings_to_dict(settings), sort_keys=False), encoding="utf-8"
    )
    settings.path = target
    return target


__all__ = [
    "ConfigError",
    "DEFAULT_API_URL",
    "DEFAULT_BRANCH_FORMAT",
    "ViewerSettings",
    "default_settings_path",
    "load_settings",
    "save_settings",
    "settings_to_dict",
]
