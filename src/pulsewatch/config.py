"""Configuration loading, saving, and validation for pulsewatch."""

import copy
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")

CHANNELS = ("email", "ntfy")


DEFAULT_CONFIG: Dict[str, Any] = {
    "server": {
        "host": "0.0.0.0",
        "port": 8080,
        "status_template": "",
    },
    "sweeper": {
        "interval": 60,
        "threshold": 360,
        "hold_lock_during_dispatch": False,
        "evict_after": 0,
    },
    "alerts": {
        "channel": "email",
        "fatal_on_failure": False,
        "timeout": 10,
        "email": {
            "sender": "${SMTP_FROM_EMAIL}",
            "recipient": "${SMTP_TO_EMAIL}",
            "server": "${SMTP_SERVER}",
            "port": "${SMTP_PORT}",
            "password": "${SMTP_PASSWORD}",
            "starttls": True,
        },
        "ntfy": {
            "server": "https://ntfy.sh",
            "topic": "pulsewatch_alerts",
        },
    },
    "logging": {
        "file": "",
    },
}


def config_dir() -> Path:
    """Return the directory holding the config and log files."""
    if os.name == "nt":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return base / "pulsewatch"


def default_config_path() -> Path:
    """Return the default config file path."""
    return config_dir() / "config.yaml"


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base, returning a new dict."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _expand_env_vars(obj):
    """Recursively expand ${VAR} references in string values."""
    if isinstance(obj, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), m.group(0)), obj)
    if isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    return obj


def is_unset(value: Any) -> bool:
    """True for empty values and ``${VAR}`` references left unexpanded."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip() or bool(_ENV_VAR_RE.search(value))
    return False


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load config from YAML file, merged with defaults.

    String values containing ``${VAR}`` are expanded from environment
    variables.  Unset variables are left as-is.
    """
    path = path or default_config_path()
    if not path.exists():
        return _expand_env_vars(copy.deepcopy(DEFAULT_CONFIG))
    with open(path, "r") as f:
        user_config = yaml.safe_load(f) or {}
    merged = deep_merge(DEFAULT_CONFIG, user_config)
    return _expand_env_vars(merged)


def save_config(config: Dict[str, Any], path: Optional[Path] = None) -> Path:
    """Save config dict to YAML file."""
    path = path or default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)
    return path


def _is_number(val) -> bool:
    return isinstance(val, (int, float)) and not isinstance(val, bool)


def validate_config(config: Dict[str, Any]) -> list:
    """Validate config and return a list of error strings (empty = valid).

    Delivery credentials are not checked here: a missing SMTP setting only
    fails the alert that needs it.
    """
    errors = []

    server = config.get("server", {})
    port = server.get("port", 8080)
    if not isinstance(port, int) or isinstance(port, bool) or not (1 <= port <= 65535):
        errors.append(f"server.port must be 1-65535, got {port!r}")
    if not server.get("host"):
        errors.append("server.host is required")

    sweeper = config.get("sweeper", {})
    for key in ("interval", "threshold"):
        val = sweeper.get(key)
        if not _is_number(val) or val <= 0:
            errors.append(f"sweeper.{key} must be a positive number of seconds, got {val!r}")
    evict = sweeper.get("evict_after", 0)
    if not _is_number(evict) or evict < 0:
        errors.append(f"sweeper.evict_after must be 0 or a positive number, got {evict!r}")
    elif evict and _is_number(sweeper.get("threshold")) and evict <= sweeper["threshold"]:
        errors.append("sweeper.evict_after must be greater than sweeper.threshold")

    alerts = config.get("alerts", {})
    channel = alerts.get("channel", "email")
    if channel not in CHANNELS:
        errors.append(
            f"alerts.channel must be one of: {', '.join(CHANNELS)} - got '{channel}'"
        )
    timeout = alerts.get("timeout", 10)
    if not _is_number(timeout) or timeout <= 0:
        errors.append(f"alerts.timeout must be a positive number, got {timeout!r}")

    if channel == "ntfy":
        ntfy = alerts.get("ntfy", {})
        if not ntfy.get("server"):
            errors.append("alerts.ntfy.server is required when channel is ntfy")
        if not ntfy.get("topic"):
            errors.append("alerts.ntfy.topic is required when channel is ntfy")

    return errors
