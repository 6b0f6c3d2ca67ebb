import json
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from iplookup.clients.ipinfo_client import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_SECONDS
from iplookup.errors import ConfigError
from iplookup.logger import logger
from iplookup.models.request_models import OutputFormat

APP_NAME = "iplookup"
TOKEN_ENV_VAR = "IPLOOKUP_TOKEN"
CONFIG_ENV_VAR = "IPLOOKUP_CONFIG"


def _xdg_dir(env_var: str, fallback: str) -> Path:
    return Path(os.getenv(env_var) or Path.home() / fallback) / APP_NAME


DEFAULT_CONFIG_PATH = _xdg_dir("XDG_CONFIG_HOME", ".config") / "config.json"
DEFAULT_CACHE_DIR = _xdg_dir("XDG_CACHE_HOME", ".cache")


class Settings(BaseModel):
    """Effective configuration of the tool.

    Values are layered: defaults, then the JSON config file, then the
    `IPLOOKUP_TOKEN` environment variable, then command-line flags.
    """

    model_config = ConfigDict(extra="forbid")

    token: str | None = Field(default=None, description="ipinfo.io API token, sent as a bearer token.")
    base_url: str = Field(default=DEFAULT_BASE_URL, description="Lookup API endpoint.")
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0, description="HTTP timeout.")
    cache_ttl_seconds: int = Field(
        default=86400,
        ge=0,
        description="How long a cached response stays valid; 0 disables the cache.",
    )
    cache_dir: Path = Field(default=DEFAULT_CACHE_DIR, description="Directory holding cached responses.")
    output_format: OutputFormat = Field(default=OutputFormat.human, description="Default rendering.")


def resolve_config_path(path: Path | None = None) -> Path:
    if path is not None:
        return path.expanduser()
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def read_config_file(path: Path) -> dict[str, Any]:
    """Return the raw key/value pairs stored in the config file (empty when it does not exist)."""
    if not path.exists():
        return {}
    try:
        raw = json.loads(path.read_text(encoding="utf-8") or "{}")
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object.")
    return raw


def write_config_file(path: Path, raw: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    # mkstemp creates the file as 0600; the config may hold an API token.
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp_file:
            tmp_file.write(json.dumps(raw, indent=2, sort_keys=True) + "\n")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _validate(raw: dict[str, Any], source: Path) -> Settings:
    try:
        return Settings.model_validate(raw)
    except ValidationError as exc:
        details = "; ".join(f"{'.'.join(map(str, err['loc'])) or 'config'}: {err['msg']}" for err in exc.errors())
        raise ConfigError(f"Invalid configuration in {source}: {details}") from exc


def load_settings(path: Path | None = None) -> Settings:
    """Load the config file and apply environment overrides."""
    config_path = resolve_config_path(path)
    raw = read_config_file(config_path)
    env_token = os.getenv(TOKEN_ENV_VAR)
    if env_token:
        raw = {**raw, "token": env_token}
    settings = _validate(raw, config_path)
    logger.debug(f"Loaded settings config_path={config_path} keys={sorted(raw)}")
    return settings


def set_value(key: str, value: str, path: Path | None = None) -> Settings:
    """Persist `key=value`, rejecting unknown keys and values that do not validate."""
    if key not in Settings.model_fields:
        raise ConfigError(f"Unknown configuration key '{key}'. Valid keys: {', '.join(Settings.model_fields)}")
    config_path = resolve_config_path(path)
    raw = read_config_file(config_path)
    raw[key] = value
    settings = _validate(raw, config_path)
    # Store the coerced value so the file keeps proper JSON types.
    raw[key] = settings.model_dump(mode="json")[key]
    write_config_file(config_path, raw)
    logger.info(f"Set configuration key={key} config_path={config_path}")
    return settings


def unset_value(key: str, path: Path | None = None) -> Settings:
    """Remove `key` from the config file so its default applies again."""
    if key not in Settings.model_fields:
        raise ConfigError(f"Unknown configuration key '{key}'. Valid keys: {', '.join(Settings.model_fields)}")
    config_path = resolve_config_path(path)
    raw = read_config_file(config_path)
    if key in raw:
        del raw[key]
        write_config_file(config_path, raw)
        logger.info(f"Unset configuration key={key} config_path={config_path}")
    return _validate(raw, config_path)


def masked(settings: Settings) -> dict[str, Any]:
    """Settings as a JSON-compatible dict with the token hidden."""
    data = settings.model_dump(mode="json")
    token = data.get("token")
    if token:
        data["token"] = f"{token[:4]}****" if len(token) > 8 else "****"
    return data
