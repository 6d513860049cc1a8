"""
Environment configuration - Load settings from .env files
"""

import os
import json
from pathlib import Path
from typing import Optional, Dict

from dotenv import load_dotenv


class EnvConfig:
    """
    Load and read configuration from environment variables and .env files.

    Priority:
    1. Variables already present in the process environment
    2. .env file in the current directory or up to three parents
    """

    @staticmethod
    def load_env_file(path: Optional[str] = None) -> bool:
        """
        Load environment variables from a .env file.

        Existing environment variables are never overwritten.

        Args:
            path: Path to .env file (default: search current dir and parents)

        Returns:
            True if a file was loaded, False otherwise
        """
        if path:
            env_path: Optional[Path] = Path(path)
        else:
            env_path = None
            current = Path.cwd()
            for _ in range(4):
                candidate = current / ".env"
                if candidate.exists():
                    env_path = candidate
                    break
                if current.parent == current:
                    break
                current = current.parent

        if env_path and env_path.exists():
            load_dotenv(env_path, override=False)
            return True

        return False

    @staticmethod
    def get(key: str, default: Optional[str] = None) -> Optional[str]:
        """Get environment variable with optional default."""
        return os.getenv(key, default)

    @staticmethod
    def get_bool(key: str, default: bool = False) -> bool:
        """Get boolean environment variable."""
        value = os.getenv(key, str(default)).lower()
        return value in ('true', '1', 'yes', 'on')

    @staticmethod
    def get_int(key: str, default: int = 0) -> int:
        """Get integer environment variable."""
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            return default

    @staticmethod
    def get_float(key: str, default: float = 0.0) -> float:
        """Get float environment variable."""
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            return default

    @staticmethod
    def get_json(key: str, default: Optional[Dict] = None) -> Optional[Dict]:
        """Get JSON environment variable."""
        value = os.getenv(key)
        if not value:
            return default
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return default

    @staticmethod
    def missing(*keys: str) -> list:
        """Return the subset of *keys* that are unset or empty."""
        return [key for key in keys if not os.getenv(key)]

    @staticmethod
    def show_config_template(llm_provider: str = "anthropic") -> str:
        """
        Show .env template for configuration.

        Args:
            llm_provider: LLM provider to show config for

        Returns:
            Template text
        """
        key_names = {
            "anthropic": "ANTHROPIC_API_KEY",
            "openai": "OPENAI_API_KEY",
            "google": "GOOGLE_API_KEY",
        }
        key_name = key_names.get(llm_provider, "LLM_API_KEY")
        return f"""# Mission Planner configuration
{key_name}=your-api-key
AGENT_LLM_PROVIDER={llm_provider}
AGENT_LLM_MODEL=
AGENT_LLM_TEMPERATURE=0.2

# Scheduler
AGENT_IDLE_POLL_INTERVAL=1.0
AGENT_MAX_IDLE_POLLS=30

# Planner / review loop
AGENT_PLAN_MIN_TASKS=1
AGENT_PLAN_MAX_TASKS=30
AGENT_MAX_RETRIES=3
AGENT_REVIEW_THRESHOLD=85
AGENT_REVIEW_MAX_ITERATIONS=3

# Logging
AGENT_LOG_LEVEL=INFO
AGENT_ENABLE_CONSOLE_LOGGING=true
AGENT_ENABLE_FILE_LOGGING=false
AGENT_LOG_FOLDER=./logs
"""
