"""
Environment configuration.

Values come from the process environment, optionally seeded from a ``.env``
file (``config/.env`` next to the package, then ``.env`` or ``config/.env``
in the current directory).
"""

import json
import logging
import os
import pathlib
from typing import Optional

from dotenv import load_dotenv
from requests.auth import HTTPBasicAuth

from .models import AttributeMapping, ServerConfig
from .transport import HttpTransport

logger = logging.getLogger(__name__)

ENV_WEB_API_HOST = "PIAF_WEB_API_HOST"
ENV_SERVER_NAME = "PIAF_SERVER_NAME"
ENV_DATABASE_NAME = "PIAF_DATABASE_NAME"
ENV_PARENT_PATH = "PIAF_PARENT_PATH"
ENV_TEMPLATE_NAME = "PIAF_TEMPLATE_NAME"
ENV_ATTRIBUTE_MAPPING = "PIAF_ATTRIBUTE_MAPPING"
ENV_USERNAME = "PIAF_USERNAME"
ENV_PASSWORD = "PIAF_PASSWORD"
ENV_VERIFY_SSL = "PIAF_VERIFY_SSL"

_FALSE_VALUES = ("0", "false", "no", "off")


def _find_env_file() -> Optional[str]:
    """Find .env file in config/ folder or current directory."""
    module_dir = pathlib.Path(__file__).parent
    config_env = module_dir.parent / "config" / ".env"
    if config_env.exists():
        return str(config_env)
    cwd_env = pathlib.Path.cwd() / ".env"
    if cwd_env.exists():
        return str(cwd_env)
    cwd_config_env = pathlib.Path.cwd() / "config" / ".env"
    if cwd_config_env.exists():
        return str(cwd_config_env)
    return None


def load_env() -> None:
    load_dotenv(_find_env_file())


def _flag(value: Optional[str], default: bool = True) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in _FALSE_VALUES


def load_server_config(**overrides) -> ServerConfig:
    """
    Build a ServerConfig from the environment.

    Keyword overrides (``api_host_name``, ``server_name``, ``database_name``,
    ``parent_path``, ``template_filter``) win over environment values when
    they are not None.

    Raises:
        ValueError: If host, server or database name is missing
    """
    load_env()
    values = {
        "api_host_name": os.getenv(ENV_WEB_API_HOST, ""),
        "server_name": os.getenv(ENV_SERVER_NAME, ""),
        "database_name": os.getenv(ENV_DATABASE_NAME, ""),
        "parent_path": os.getenv(ENV_PARENT_PATH, ""),
        "template_filter": os.getenv(ENV_TEMPLATE_NAME) or None,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})

    required = (
        ("api_host_name", ENV_WEB_API_HOST),
        ("server_name", ENV_SERVER_NAME),
        ("database_name", ENV_DATABASE_NAME),
    )
    missing = [env for field_name, env in required if not values[field_name]]
    if missing:
        raise ValueError(f"{', '.join(missing)} required")

    config = ServerConfig(**values)
    logger.debug(f"Loaded configuration for {config.api_host_name} "
                 f"({config.server_name}/{config.database_name})")
    return config


def load_attribute_mapping() -> AttributeMapping:
    """Mapping from PIAF_ATTRIBUTE_MAPPING (a JSON object), or the default one."""
    load_env()
    raw = os.getenv(ENV_ATTRIBUTE_MAPPING)
    if not raw or not raw.strip():
        return AttributeMapping.default()
    try:
        entries = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"{ENV_ATTRIBUTE_MAPPING} is not valid JSON: {e}") from e
    if not isinstance(entries, dict):
        raise ValueError(f"{ENV_ATTRIBUTE_MAPPING} must be a JSON object")
    return AttributeMapping(entries)


def create_transport(verify_ssl: Optional[bool] = None, **kwargs) -> HttpTransport:
    """HttpTransport with basic auth from PIAF_USERNAME / PIAF_PASSWORD when set."""
    load_env()
    username = os.getenv(ENV_USERNAME)
    password = os.getenv(ENV_PASSWORD, "")
    auth = HTTPBasicAuth(username, password) if username else None
    if verify_ssl is None:
        verify_ssl = _flag(os.getenv(ENV_VERIFY_SSL))
    if not verify_ssl:
        logger.warning("SSL certificate verification is disabled")
    return HttpTransport(auth=auth, verify=verify_ssl, **kwargs)
