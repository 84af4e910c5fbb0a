"""Tests for YAML + environment configuration loading."""

from storefront.core.config import DEFAULT_CONFIG_PATH, SupportConfig, get_config, set_config


def test_default_yaml_values():
    config = SupportConfig.from_yaml(DEFAULT_CONFIG_PATH)
    assert config.max_local_history == 200
    assert config.server_max_history == 1000
    assert config.max_tool_rounds == 5


def test_yaml_overrides_and_env(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text("chat:\n  post_retries: 7\nmodels:\n  chat: gpt-4o\n")
    monkeypatch.setenv("SUPPORT_API_BASE_URL", "http://api.example")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-key")
    monkeypatch.delenv("OPENAI_MODEL", raising=False)

    config = SupportConfig.from_yaml(path)

    assert config.post_retries == 7
    assert config.openai_model == "gpt-4o"
    assert config.api_base_url == "http://api.example"
    assert config.supabase_key == "service-key"
    assert config.typing_interval_s == 0.02


def test_missing_file_uses_defaults(tmp_path):
    config = SupportConfig.from_yaml(tmp_path / "absent.yaml")
    assert config.search_limit == 10


def test_set_config_replaces_global():
    previous = get_config()
    custom = SupportConfig(search_limit=3)
    set_config(custom)
    try:
        assert get_config() is custom
    finally:
        set_config(previous)
