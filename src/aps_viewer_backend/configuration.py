from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException
from pydantic import BaseModel, ValidationError

from .errors import ConfigurationError
from .utils import sanitize_bucket_key

# Load environment variables from .env file
load_dotenv()

DEFAULT_BASE_URL = "https://developer.api.autodesk.com"

# Every value can be overridden through the environment; explicit overrides win over both.
_DEFAULTS: Dict[str, Any] = {
    "client_id": "${oc.env:APS_CLIENT_ID,null}",
    "client_secret": "${oc.env:APS_CLIENT_SECRET,null}",
    "bucket": "${oc.env:APS_BUCKET,null}",
    "base_url": f'${{oc.env:APS_BASE_URL,"{DEFAULT_BASE_URL}"}}',
    "http_timeout": "${oc.env:APS_HTTP_TIMEOUT,30}",
    "static_dir": "${oc.env:APS_STATIC_DIR,wwwroot}",
}


class ApsSettings(BaseModel):
    client_id: str
    client_secret: str
    bucket: str
    base_url: str = DEFAULT_BASE_URL
    http_timeout: float = 30.0
    static_dir: Path = Path("wwwroot")


def default_bucket_name(client_id: str) -> str:
    return sanitize_bucket_key(f"{client_id.lower()}-basic-app")


def make_runtime_config(overrides: Optional[Dict[str, Any]] = None) -> DictConfig:
    base = OmegaConf.create(_DEFAULTS)
    OmegaConf.set_struct(base, True)

    cli_config = OmegaConf.create({k: v for k, v in (overrides or {}).items() if v is not None})
    merged = DictConfig(OmegaConf.merge(base, cli_config))
    return merged


def load_settings(overrides: Optional[Dict[str, Any]] = None) -> ApsSettings:
    """
    Resolve settings from defaults, the environment and explicit overrides.

    Args:
        overrides: Values taking precedence over the environment (keys as in ApsSettings)

    Returns:
        Validated settings; the bucket defaults to "<client id>-basic-app"

    Raises:
        ConfigurationError: If the client id or secret is missing, or a value is invalid
    """
    try:
        config = make_runtime_config(overrides)
    except OmegaConfBaseException as exc:
        raise ConfigurationError(f"Invalid configuration override: {exc}") from exc
    resolved: Dict[str, Any] = OmegaConf.to_container(config, resolve=True)  # type: ignore[assignment]

    if not resolved.get("client_id") or not resolved.get("client_secret"):
        raise ConfigurationError("Missing required environment variables APS_CLIENT_ID or APS_CLIENT_SECRET.")

    if not resolved.get("bucket"):
        resolved["bucket"] = default_bucket_name(str(resolved["client_id"]))

    try:
        return ApsSettings(**resolved)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings() -> ApsSettings:
    return load_settings()
