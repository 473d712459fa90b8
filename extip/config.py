from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from extip.http_providers import DEFAULT_TIMEOUT_SECONDS
from extip.nonblocking import DEFAULT_MAX_WORKERS
from extip.registry import default_registry
from extip.resolver import DEFAULT_MAX_CACHE_AGE


def _parse_bool(value: str | bool | None, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value: {value}")


def _split_names(value: str) -> list[str]:
    return [entry.strip() for entry in value.split(",") if entry.strip()]


@dataclass(frozen=True)
class AppConfig:
    max_cache_age_seconds: float
    verbose: bool
    providers: list[str]
    request_timeout_seconds: float
    max_workers: int
    log_level: str


def load_config_file(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise ValueError(f"Config file does not exist: {path}")
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ValueError(f"Failed parsing YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def load_config(argv: list[str] | None = None) -> AppConfig:
    parser = argparse.ArgumentParser(description="Print the external IP address of this host.")
    parser.add_argument("words", nargs="*", help=argparse.SUPPRESS)
    parser.add_argument("-v", "--verbose", action="store_true", help="Log resolution details to stderr.")
    parser.add_argument(
        "--max-cache-age",
        type=float,
        help="Maximum age in seconds of a cached address (default one day). Zero forces a refresh.",
    )
    parser.add_argument(
        "--provider",
        action="append",
        dest="providers",
        help="Provider to use; repeatable (default: all built-in providers).",
    )
    parser.add_argument("--timeout", type=float, help="Per-request timeout in seconds (default 10).")
    parser.add_argument("--config", help="Path to a YAML config file.")

    args = parser.parse_args(argv)

    # The bare word "verbose" is accepted for compatibility with older invocations.
    verbose_word = False
    for word in args.words:
        if word.lower() != "verbose":
            raise ValueError(f"Unexpected argument: {word}")
        verbose_word = True

    config_raw = args.config or os.getenv("EIP_CONFIG")
    file_values = load_config_file(Path(config_raw)) if config_raw else {}

    verbose = args.verbose or verbose_word or _parse_bool(os.getenv("EIP_VERBOSE"), default=False)

    max_cache_age = (
        args.max_cache_age if args.max_cache_age is not None else DEFAULT_MAX_CACHE_AGE.total_seconds()
    )

    if args.timeout is not None:
        timeout = args.timeout
    else:
        timeout = float(
            os.getenv("REQUEST_TIMEOUT_SECONDS", file_values.get("request_timeout_seconds", DEFAULT_TIMEOUT_SECONDS))
        )
    if timeout <= 0:
        raise ValueError(f"REQUEST_TIMEOUT_SECONDS/--timeout must be > 0, got {timeout}")

    max_workers = int(os.getenv("EIP_MAX_WORKERS", file_values.get("max_workers", DEFAULT_MAX_WORKERS)))
    if max_workers <= 0:
        raise ValueError(f"EIP_MAX_WORKERS must be > 0, got {max_workers}")

    registry = default_registry()
    providers_env = os.getenv("EIP_PROVIDERS", "")
    if args.providers:
        providers = [name.strip() for name in args.providers if name.strip()]
    elif providers_env.strip():
        providers = _split_names(providers_env)
    elif file_values.get("providers"):
        file_providers = file_values["providers"]
        if not isinstance(file_providers, list):
            raise ValueError("Config file 'providers' must be a list")
        providers = [str(name).strip() for name in file_providers if str(name).strip()]
    else:
        providers = registry.names
    unknown = [name for name in providers if name not in registry]
    if unknown:
        raise ValueError(f"Unknown provider(s) {unknown}. Available: {registry.names}")

    log_level = "DEBUG" if verbose else os.getenv("LOG_LEVEL", str(file_values.get("log_level", "WARNING")))
    if not isinstance(logging.getLevelName(log_level.strip().upper()), int):
        raise ValueError(f"Invalid log level: {log_level}")

    return AppConfig(
        max_cache_age_seconds=max_cache_age,
        verbose=verbose,
        providers=providers,
        request_timeout_seconds=timeout,
        max_workers=max_workers,
        log_level=log_level,
    )
