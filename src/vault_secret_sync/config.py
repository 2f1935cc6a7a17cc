"""Operator settings.

This module provides the Settings class. Values are resolved in order of
precedence: explicit overrides (CLI flags), environment variables, an
optional YAML config file, then defaults.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

import yaml

from vault_secret_sync.annotations import parse_bool_annotation
from vault_secret_sync.exceptions import ConfigurationError

DEFAULT_POLLING_INTERVAL = 600
ALL_NAMESPACES = "all"

# Settings field -> environment variable
_ENV_VARS = {
    "vault_host": "VAULT_CONNECT_HOST",
    "vault_token": "VAULT_CONNECT_TOKEN",
    "polling_interval": "POLLING_INTERVAL",
    "namespaces": "WATCH_NAMESPACE",
    "auto_restart": "AUTO_RESTART",
    "workers": "SYNC_WORKERS",
    "request_timeout": "VAULT_REQUEST_TIMEOUT",
}


def parse_namespaces(value: str | list[str] | tuple[str, ...] | None) -> tuple[str, ...] | None:
    """Parse a namespace scope.

    Args:
        value: 'all', a comma-separated list, or a list of names.

    Returns:
        The namespaces, or None for the whole cluster.

    """
    if value is None:
        return None
    names = value.split(",") if isinstance(value, str) else [str(name) for name in value]
    names = [name.strip() for name in names if name.strip()]
    if not names or ALL_NAMESPACES in names:
        return None
    return tuple(dict.fromkeys(names))


def _positive_number(name: str, value: Any, kind: type) -> Any:
    try:
        number = kind(value)
    except (TypeError, ValueError) as err:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from err
    if number <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value!r}")
    return number


def _load_file(path: str) -> dict[str, Any]:
    try:
        with open(path) as stream:
            document = yaml.safe_load(stream)
    except FileNotFoundError as err:
        raise ConfigurationError(f"Config file '{path}' does not exist") from err
    except yaml.YAMLError as err:
        raise ConfigurationError(f"Config file '{path}' contains malformed YAML: {err}") from err

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ConfigurationError(f"Config file '{path}' must contain a YAML mapping")

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(document) - known)
    if unknown:
        raise ConfigurationError(f"Config file '{path}' has unknown keys: {', '.join(unknown)}")
    return document


@dataclass(frozen=True, slots=True)
class Settings:
    """Resolved operator settings.

    Attributes:
        vault_host: Base URL of the vault API.
        vault_token: Bearer token for the vault API.
        polling_interval: Seconds between sync cycles.
        namespaces: Namespaces to watch, or None for the whole cluster.
        auto_restart: Default for restart propagation.
        workers: Number of secrets synchronized in parallel.
        request_timeout: Per-request timeout for the vault API, in seconds.

    """

    vault_host: str
    vault_token: str
    polling_interval: int = DEFAULT_POLLING_INTERVAL
    namespaces: tuple[str, ...] | None = None
    auto_restart: bool = True
    workers: int = 4
    request_timeout: float = 30

    @classmethod
    def load(cls, config_file: str | None = None, environ: Mapping[str, str] | None = None, **overrides: Any) -> "Settings":
        """Resolve settings from overrides, environment and config file.

        Args:
            config_file: Optional path to a YAML file keyed by field name.
            environ: Environment to read, defaults to ``os.environ``.
            **overrides: Field values that win over everything else; None
                values are ignored.

        Returns:
            The validated settings.

        Raises:
            ConfigurationError: If a value is invalid or a required one is missing.

        """
        environ = os.environ if environ is None else environ
        raw: dict[str, Any] = _load_file(config_file) if config_file else {}

        for name, env_var in _ENV_VARS.items():
            if environ.get(env_var):
                raw[name] = environ[env_var]

        for name, value in overrides.items():
            if name not in _ENV_VARS:
                raise ConfigurationError(f"Unknown setting: {name}")
            if value is not None:
                raw[name] = value

        for required in ("vault_host", "vault_token"):
            if not raw.get(required):
                raise ConfigurationError(
                    f"Missing {required}: set {_ENV_VARS[required]} or add it to the config file"
                )

        auto_restart = raw.get("auto_restart", True)
        if not isinstance(auto_restart, bool):
            parsed = parse_bool_annotation(str(auto_restart))
            if parsed is None:
                raise ConfigurationError(f"auto_restart must be a boolean, got {auto_restart!r}")
            auto_restart = parsed

        return cls(
            vault_host=str(raw["vault_host"]),
            vault_token=str(raw["vault_token"]),
            polling_interval=_positive_number(
                "polling_interval", raw.get("polling_interval", DEFAULT_POLLING_INTERVAL), int
            ),
            namespaces=parse_namespaces(raw.get("namespaces")),
            auto_restart=auto_restart,
            workers=_positive_number("workers", raw.get("workers", 4), int),
            request_timeout=_positive_number("request_timeout", raw.get("request_timeout", 30), float),
        )

    def __repr__(self) -> str:
        """Return a string representation that hides the token."""
        return (
            f"Settings(vault_host={self.vault_host!r}, polling_interval={self.polling_interval!r}, "
            f"namespaces={self.namespaces!r}, auto_restart={self.auto_restart!r}, workers={self.workers!r})"
        )
