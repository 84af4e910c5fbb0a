"""
Configuration management for the Sm@rtz storefront and support chat.

Loads tunables from a YAML config file and secrets/endpoints from the
environment (.env is honoured), and provides typed access.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import yaml

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()


def _project_root() -> Path:
    """Return project root (parent of storefront package)."""
    return Path(__file__).resolve().parent.parent.parent


DEFAULT_CONFIG_PATH = _project_root() / "config" / "default.yaml"


@dataclass
class SupportConfig:
    """Configuration for the storefront backend and the support chat client."""

    # Endpoints and credentials (environment)
    supabase_url: str = ""
    supabase_key: str = ""
    api_base_url: str = "http://localhost:8000"

    # Model configuration
    openai_model: str = "gpt-4o-mini"
    temperature: float = 0.3
    max_output_tokens: int = 1024
    model_timeout_s: float = 20.0
    max_tool_rounds: int = 5              # Model turns that may request tools before giving up
    tool_result_limit: int = 6            # Rows a tool hands back to the model

    # Persistence / delivery
    post_retries: int = 3
    retry_base_delay_s: float = 0.5
    api_timeout_s: float = 15.0
    max_local_history: int = 200
    server_max_history: int = 1000
    search_limit: int = 10
    local_state_path: str = ".support_chat/state.json"

    # Rendering
    typing_interval_s: float = 0.02
    status_rotate_s: float = 1.5

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> "SupportConfig":
        """Load configuration from YAML file, then overlay environment values."""
        path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        data = {}
        if path.exists():
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}

        models_config = data.get('models', {})
        chat_config = data.get('chat', {})
        api_config = data.get('api', {})

        return cls(
            supabase_url=os.environ.get("SUPABASE_URL", ""),
            supabase_key=os.environ.get("SUPABASE_SERVICE_ROLE_KEY") or os.environ.get("SUPABASE_KEY", ""),
            api_base_url=os.environ.get("SUPPORT_API_BASE_URL", api_config.get('base_url', 'http://localhost:8000')),
            openai_model=os.environ.get("OPENAI_MODEL", models_config.get('chat', 'gpt-4o-mini')),
            temperature=models_config.get('temperature', 0.3),
            max_output_tokens=models_config.get('max_output_tokens', 1024),
            model_timeout_s=models_config.get('timeout_s', 20.0),
            max_tool_rounds=models_config.get('max_tool_rounds', 5),
            tool_result_limit=chat_config.get('tool_result_limit', 6),
            post_retries=chat_config.get('post_retries', 3),
            retry_base_delay_s=chat_config.get('retry_base_delay_s', 0.5),
            api_timeout_s=api_config.get('timeout_s', 15.0),
            max_local_history=chat_config.get('max_local_history', 200),
            server_max_history=api_config.get('server_max_history', 1000),
            search_limit=api_config.get('search_limit', 10),
            local_state_path=chat_config.get('local_state_path', '.support_chat/state.json'),
            typing_interval_s=chat_config.get('typing_interval_s', 0.02),
            status_rotate_s=chat_config.get('status_rotate_s', 1.5),
        )


# Global config instance
_config: Optional[SupportConfig] = None


def get_config() -> SupportConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = SupportConfig.from_yaml()
    return _config


def set_config(config: SupportConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
