"""Configuration handling for the Groq chat client."""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import find_dotenv, load_dotenv

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_TIMEOUT = 30.0
DEFAULT_CACHE_DURATION = 3600.0
DEFAULT_STREAM_BUFFER_SIZE = 16

DEFAULT_CONFIG: Dict[str, Any] = {
    "api_key": "",
    "base_url": DEFAULT_BASE_URL,
    "default_model": "",
    "system_prompts": [],
    "settings": {
        "timeout": DEFAULT_TIMEOUT,
        "model_cache_ttl": DEFAULT_CACHE_DURATION,
        "stream_buffer_size": DEFAULT_STREAM_BUFFER_SIZE,
        "strict_stream_termination": False,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict):
            if value is None:
                continue
            if isinstance(value, dict):
                merged[key] = _merge(merged[key], value)
                continue
        merged[key] = value
    return merged


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from a YAML file, the environment and any .env file.

    The file is looked up at ``path``, then ``$GROQ_CONFIG``, then
    ``config.yaml`` in the working directory. A missing default file is not
    an error; an explicitly requested file that cannot be read is.

    Args:
        path: Optional explicit path to the YAML file

    Returns:
        Dictionary of settings merged over DEFAULT_CONFIG
    """
    load_dotenv(find_dotenv(usecwd=True))

    explicit = path is not None or bool(os.environ.get("GROQ_CONFIG"))
    config_path = Path(path or os.environ.get("GROQ_CONFIG") or "config.yaml")

    file_config: Dict[str, Any] = {}
    try:
        raw = config_path.read_text()
    except FileNotFoundError:
        if explicit:
            raise ConfigurationError(f"config file not found: {config_path}")
        logger.info("No %s found, using default configuration", config_path)
    else:
        try:
            file_config = yaml.safe_load(raw) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"error parsing {config_path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping")
        logger.info("Loaded configuration from %s", config_path)

    config = _merge(DEFAULT_CONFIG, file_config)

    api_key = os.environ.get("GROQ_API_KEY")
    if api_key:
        config["api_key"] = api_key
    base_url = os.environ.get("GROQ_BASE_URL")
    if base_url:
        config["base_url"] = base_url

    if not config["base_url"]:
        logger.warning("base_url not set in configuration, using default value")
        config["base_url"] = DEFAULT_BASE_URL

    return config
