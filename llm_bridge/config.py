"""Configuration management for llm-bridge."""

from __future__ import annotations

import logging
import os
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from llm_bridge.errors import ConfigurationError
from llm_bridge.http_client import HttpConfig, create_http_config_from_dict
from llm_bridge.models import ModelInfo, ProviderConfig, ProviderType

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "config.yaml")

# Map provider types to the environment variables holding their keys
PROVIDER_KEY_MAP: dict[ProviderType, tuple[str, ...]] = {
    ProviderType.OPENAI: ("OPENAI_API_KEY",),
    ProviderType.ANTHROPIC: ("ANTHROPIC_API_KEY",),
    ProviderType.GOOGLE: ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    ProviderType.GENERIC: (),
}


class Configuration:
    """Manages configuration and environment variables for llm-bridge."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables."""
        self.load_env()  # Load .env for API keys
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self._config = self._load_yaml_config(self.config_path)
        self._providers: list[ProviderConfig] | None = None

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    @staticmethod
    def _load_yaml_config(config_path: str) -> dict[str, Any]:
        """Load configuration from YAML file."""
        try:
            with open(config_path) as file:
                data = yaml.safe_load(file)
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file '{config_path}': {e}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in '{config_path}': {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file '{config_path}' must hold a mapping")
        return data

    def get_config_dict(self) -> dict[str, Any]:
        """Get the full configuration dictionary."""
        return self._config

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration from YAML."""
        return self._config.get("logging") or {}

    def get_http_config(self) -> HttpConfig:
        """Get the validated HTTP transport settings."""
        return create_http_config_from_dict(self._config)

    def get_generation_defaults(self) -> dict[str, Any]:
        """
        Defaults applied to model records that omit them.

        Returns:
            Mapping with default_max_input_tokens, default_max_output_tokens
            and default_model_version.
        """
        generation = self._config.get("generation") or {}
        return {
            "default_max_input_tokens": generation.get("default_max_input_tokens", 4096),
            "default_max_output_tokens": generation.get("default_max_output_tokens", 1024),
            "default_model_version": generation.get("default_model_version", "1.0.0"),
        }

    # ---------- provider repository ----------
    def get_providers(self) -> list[ProviderConfig]:
        """Provider records from the ``providers`` section, keys resolved."""
        if self._providers is None:
            self._providers = self._load_providers()
        return list(self._providers)

    def find_model(self, model_id: str) -> tuple[ProviderConfig, ModelInfo] | None:
        """Find a model by its id, optionally qualified as ``provider/model``."""
        provider_id, _, bare_id = model_id.rpartition("/")
        for provider in self.get_providers():
            if provider_id and provider.id != provider_id:
                continue
            model = provider.find_model(bare_id if provider_id else model_id)
            if model is not None:
                return provider, model
        # model ids may themselves contain a slash (e.g. "meta/llama-3")
        if provider_id:
            for provider in self.get_providers():
                model = provider.find_model(model_id)
                if model is not None:
                    return provider, model
        return None

    @staticmethod
    def resolve_api_key(record: dict[str, Any], provider_type: ProviderType) -> str | None:
        """
        Key from the record, else the variable named by ``api_key_env``, else
        the provider type's default variables.
        """
        api_key = record.get("api_key")
        if api_key:
            return str(api_key)
        env_names: tuple[str, ...] = ()
        if record.get("api_key_env"):
            env_names = (str(record["api_key_env"]),)
        env_names += PROVIDER_KEY_MAP.get(provider_type, ())
        for env_name in env_names:
            value = os.getenv(env_name)
            if value:
                return value
        return None

    def _load_providers(self) -> list[ProviderConfig]:
        defaults = self.get_generation_defaults()
        providers: list[ProviderConfig] = []
        for record in self._config.get("providers") or []:
            if not isinstance(record, dict):
                logger.warning("Skipping provider entry that is not a mapping: %r", record)
                continue
            data = {k: v for k, v in record.items() if k != "api_key_env"}
            data["models"] = [
                self._with_model_defaults(m, defaults) for m in record.get("models") or []
            ]
            try:
                provider = ProviderConfig.model_validate(data)
            except ValidationError as e:
                raise ConfigurationError(
                    f"Invalid provider record '{record.get('id', '?')}': {e}"
                ) from e
            provider.api_key = self.resolve_api_key(record, provider.provider_type)
            providers.append(provider)
        logger.debug("Loaded %d provider(s) from %s", len(providers), self.config_path)
        return providers

    @staticmethod
    def _with_model_defaults(model: Any, defaults: dict[str, Any]) -> dict[str, Any]:
        if isinstance(model, str):
            model = {"id": model}
        merged = dict(model)
        merged.setdefault("max_input_tokens", defaults["default_max_input_tokens"])
        merged.setdefault("max_output_tokens", defaults["default_max_output_tokens"])
        merged.setdefault("version", defaults["default_model_version"])
        return merged
