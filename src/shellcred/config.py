"""Configuration management with XDG paths, atomic writes, and env overrides.

This module handles all persistent configuration for shellcred:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.shellcred/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Global config** -- A single :class:`~shellcred.models.GlobalConfig`
  JSON file storing provisioning defaults and plugin allow/deny lists.
* **Precedence resolution** -- :func:`resolve_config` layers
  ``SHELLCRED_*`` environment variables over the global config file.

The provisioning cache directory is deliberately under the cache root: its
contents expire on their own and can be deleted at any time without losing
anything but the ability to clean up a still-running session.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from shellcred.exceptions import ConfigError
from shellcred.models import GlobalConfig

_APP_NAME = "shellcred"
_CONFIG_FILENAME = "config.json"

ENV_CACHE_DIR = "SHELLCRED_CACHE_DIR"
ENV_TTL_SECONDS = "SHELLCRED_TTL_SECONDS"
ENV_TIMEOUT = "SHELLCRED_TIMEOUT"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory layout (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/shellcred/`` (default ``~/.config/shellcred/``).
    On macOS/Windows: ``~/.shellcred/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds the provisioning cache shared by concurrent invocations.

    On Linux/BSD: ``$XDG_CACHE_HOME/shellcred/`` (default ``~/.cache/shellcred/``).
    On macOS/Windows: ``~/.shellcred/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/shellcred/`` (default ``~/.local/share/shellcred/``).
    On macOS/Windows: ``~/.shellcred/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~shellcred.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def _env_number(name: str, kind: type) -> Optional[float]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        value = kind(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


def resolve_config() -> GlobalConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. Environment variables (``SHELLCRED_CACHE_DIR``,
           ``SHELLCRED_TTL_SECONDS``, ``SHELLCRED_TIMEOUT``)
        2. User config (``~/.config/shellcred/config.json``)
        3. Defaults

    Raises:
        ConfigError: If the config file or an override is invalid.
    """
    config = load_global_config()

    cache_dir = os.environ.get(ENV_CACHE_DIR, "")
    if cache_dir:
        config.cache.directory = cache_dir

    ttl = _env_number(ENV_TTL_SECONDS, int)
    if ttl is not None:
        config.provisioning.ttl_seconds = int(ttl)

    timeout = _env_number(ENV_TIMEOUT, float)
    if timeout is not None:
        config.provisioning.network_timeout = timeout

    return config


def get_provision_cache_dir(config: GlobalConfig) -> Path:
    """Return the root directory of the provisioning cache for *config*."""
    if config.cache.directory:
        path = Path(config.cache.directory).expanduser()
        path.mkdir(parents=True, exist_ok=True)
        return path
    return get_cache_dir()
