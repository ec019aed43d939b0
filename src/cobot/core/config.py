"""Configuration: .env loading, ~/.cobot/config.toml, credentials and project context."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

# Load .env from current directory (and parents), won't override existing env vars
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
API_KEY_ENV = "OPENAI_API_KEY"
BASE_URL_ENV = "OPENAI_BASE_URL"

DEFAULT_CONTEXT_LIMIT = 20_000
# Searched in order below the context directory.
CONTEXT_FILE_CANDIDATES: tuple[str, ...] = (".cobot/context.md", ".openai/context.md")


def config_dir() -> Path:
    return Path.home() / ".cobot"


def config_path() -> Path:
    return config_dir() / "config.toml"


def load_config() -> dict[str, Any]:
    """Load ~/.cobot/config.toml, or an empty dict if missing or unreadable."""
    path = config_path()
    if not path.exists():
        return {}
    try:
        import tomllib

        with open(path, "rb") as f:
            return tomllib.load(f)
    except Exception:
        logger.warning("Failed to read config file %s", path, exc_info=True)
        return {}


def _update_config(section: str, key: str, value: Any) -> Path:
    """Set (or with *value* None, remove) ``[section] key`` and write the file back.

    Removes the file entirely once nothing is left in it.
    """
    data = load_config()
    entries = data.setdefault(section, {})
    if value is None:
        entries.pop(key, None)
        if not entries:
            data.pop(section, None)
    else:
        entries[key] = value

    path = config_path()
    if not any(data.values()):
        if path.exists():
            path.unlink()
        return path

    config_dir().mkdir(parents=True, exist_ok=True)
    _write_toml(path, data)
    return path


# ----------------------------------------------------------------------
# API key
# ----------------------------------------------------------------------


def load_api_key() -> str | None:
    return load_config().get("openai", {}).get("api_key") or None


def resolve_api_key(explicit_key: str | None = None) -> str | None:
    """Resolve the API key from explicit value, environment, or config file."""
    if explicit_key:
        return explicit_key
    if val := os.environ.get(API_KEY_ENV):
        return val
    return load_api_key()


def save_api_key(api_key: str) -> Path:
    """Persist *api_key* and return the config path written to."""
    return _update_config("openai", "api_key", api_key)


def clear_api_key() -> None:
    _update_config("openai", "api_key", None)


# ----------------------------------------------------------------------
# Base URL
# ----------------------------------------------------------------------


def load_base_url() -> str | None:
    return load_config().get("openai", {}).get("base_url") or None


def resolve_base_url(explicit_url: str | None = None) -> str | None:
    """Resolve the endpoint base URL: explicit, then config file, then environment."""
    return explicit_url or load_base_url() or os.environ.get(BASE_URL_ENV) or None


def save_base_url(base_url: str) -> Path:
    return _update_config("openai", "base_url", base_url)


def clear_base_url() -> None:
    _update_config("openai", "base_url", None)


# ----------------------------------------------------------------------
# Default model
# ----------------------------------------------------------------------


def load_default_model() -> str | None:
    model = load_config().get("defaults", {}).get("model")
    return model if isinstance(model, str) and model else None


def save_default_model(model: str) -> Path:
    return _update_config("defaults", "model", model)


# ----------------------------------------------------------------------
# Project context
# ----------------------------------------------------------------------


def load_project_context(cwd: Path | None = None) -> tuple[str, str] | None:
    """Load the project context file, if any.

    Honors ``OPENAI_CONTEXT_FILE`` (explicit path), ``OPENAI_CONTEXT_DIR``
    (directory searched instead of *cwd*) and ``OPENAI_CONTEXT_LIMIT``
    (character limit, default 20000).

    Returns ``(source, text)`` or None when no context file exists.
    """
    explicit = os.environ.get("OPENAI_CONTEXT_FILE")
    if explicit:
        candidates = [(Path(explicit), explicit)]
    else:
        base = Path(os.environ.get("OPENAI_CONTEXT_DIR") or cwd or Path.cwd())
        candidates = [(base / rel, rel) for rel in CONTEXT_FILE_CANDIDATES]

    try:
        limit = int(os.environ.get("OPENAI_CONTEXT_LIMIT", DEFAULT_CONTEXT_LIMIT))
    except ValueError:
        limit = DEFAULT_CONTEXT_LIMIT

    for path, source in candidates:
        if not path.is_file():
            continue
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            logger.debug("Failed to load project context from %s", path, exc_info=True)
            return None
        if len(text) > limit:
            text = text[:limit] + "\n... [truncated]"
        return source, text
    return None


# ----------------------------------------------------------------------
# TOML writing
# ----------------------------------------------------------------------


def _write_toml(path: Path, data: dict[str, Any]) -> None:
    """Write a dict as TOML to *path* (minimal writer, no external dependency)."""
    lines: list[str] = []
    for k, v in data.items():
        if not isinstance(v, dict):
            lines.append(f"{k} = {_toml_value(v)}")
    for k, v in data.items():
        if isinstance(v, dict):
            _write_toml_section(lines, [k], v)
    path.write_text("\n".join(lines).lstrip("\n") + "\n")
    # Config holds the API key.
    try:
        path.chmod(0o600)
    except OSError:
        pass


def _write_toml_section(lines: list[str], prefix: list[str], d: dict[str, Any]) -> None:
    simple: list[tuple[str, Any]] = []
    nested: list[tuple[str, dict[str, Any]]] = []
    for k, v in d.items():
        if isinstance(v, dict):
            nested.append((k, v))
        else:
            simple.append((k, v))
    if simple:
        lines.append(f"\n[{'.'.join(prefix)}]")
        for k, v in simple:
            lines.append(f"{k} = {_toml_value(v)}")
    for k, v in nested:
        _write_toml_section(lines, prefix + [k], v)


def _toml_value(v: Any) -> str:
    """Format a Python value as a TOML literal."""
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, (int, float)):
        return str(v)
    if isinstance(v, str):
        escaped = v.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(v, (list, tuple)):
        return "[" + ", ".join(_toml_value(item) for item in v) + "]"
    return repr(v)
