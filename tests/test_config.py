import textwrap

import pytest

from llm_bridge.config import Configuration
from llm_bridge.errors import ConfigurationError
from llm_bridge.models import ProviderType

CONFIG = textwrap.dedent(
    """
    logging:
      level: DEBUG
    http:
      timeout: 12.5
      max_connections: 5
    generation:
      default_max_input_tokens: 2000
      default_max_output_tokens: 300
    providers:
      - id: openai
        name: OpenAI
        api_endpoint: https://api.openai.com/v1
        models:
          - id: gpt-4o-mini
            max_output_tokens: 4096
      - id: local
        name: Local
        provider_type: generic
        api_endpoint: http://localhost:11434/v1
        api_key_env: TEST_LOCAL_KEY
        models:
          - llama3.1
          - id: meta/llama-3
      - id: claude
        api_endpoint: https://api.anthropic.com
        api_key: inline-key
        models: []
    """
)


@pytest.fixture
def config(tmp_path, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "env-openai")
    monkeypatch.setenv("TEST_LOCAL_KEY", "env-local")
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG)
    return Configuration(str(path))


def test_sections(config):
    assert config.get_logging_config() == {"level": "DEBUG"}
    http = config.get_http_config()
    assert http.timeout == 12.5
    assert http.max_connections == 5
    assert http.connect_timeout == 10.0


def test_providers_resolve_type_and_keys(config):
    providers = {p.id: p for p in config.get_providers()}

    assert providers["openai"].provider_type is ProviderType.OPENAI
    assert providers["openai"].api_key == "env-openai"
    assert providers["local"].provider_type is ProviderType.GENERIC
    assert providers["local"].api_key == "env-local"
    assert providers["claude"].provider_type is ProviderType.ANTHROPIC
    assert providers["claude"].api_key == "inline-key"


def test_model_defaults_from_generation_section(config):
    _, model = config.find_model("llama3.1")
    assert model.max_input_tokens == 2000
    assert model.max_output_tokens == 300

    _, explicit = config.find_model("gpt-4o-mini")
    assert explicit.max_output_tokens == 4096


def test_find_model_variants(config):
    provider, model = config.find_model("local/llama3.1")
    assert (provider.id, model.id) == ("local", "llama3.1")

    provider, model = config.find_model("meta/llama-3")
    assert (provider.id, model.id) == ("local", "meta/llama-3")

    assert config.find_model("nope") is None


def test_missing_key_stays_none(tmp_path, monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(
        "providers:\n"
        "  - id: g\n"
        "    provider_type: google\n"
        "    api_endpoint: https://generativelanguage.googleapis.com/v1beta\n"
    )
    [provider] = Configuration(str(path)).get_providers()
    assert provider.api_key is None


def test_google_key_fallback_variable(tmp_path, monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("GOOGLE_API_KEY", "g-key")
    path = tmp_path / "config.yaml"
    path.write_text("providers:\n  - id: g\n    provider_type: google\n")
    [provider] = Configuration(str(path)).get_providers()
    assert provider.api_key == "g-key"


def test_empty_file_is_an_empty_config(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    config = Configuration(str(path))
    assert config.get_providers() == []
    assert config.get_generation_defaults()["default_max_output_tokens"] == 1024


def test_unreadable_config_raises(tmp_path):
    with pytest.raises(ConfigurationError):
        Configuration(str(tmp_path / "missing.yaml"))


def test_invalid_yaml_raises(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("providers: [unclosed")
    with pytest.raises(ConfigurationError):
        Configuration(str(path))


def test_bundled_config_loads():
    config = Configuration()
    assert {p.id for p in config.get_providers()} >= {"openai", "anthropic", "google"}
