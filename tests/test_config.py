"""
Tests for configuration loading and validation
"""

import unittest

import pytest

from mission_planner.config import (
    EngineConfig,
    EnvConfig,
    LLMConfig,
    SchedulerConfig,
    PlannerConfig,
    ReviewConfig,
    RateLimitConfig,
)


class TestEngineConfig(unittest.TestCase):
    """Tests for EngineConfig and its sections."""

    def test_defaults(self):
        config = EngineConfig()

        self.assertEqual(config.llm.provider, "anthropic")
        self.assertEqual(config.llm.model_name, "claude-sonnet-4-20250514")
        self.assertEqual(config.review.acceptance_threshold, 85)
        self.assertEqual(config.review.max_iterations, 3)
        self.assertEqual(config.review.neutral_score, 50)
        self.assertEqual(config.scheduler.max_idle_polls, 30)

    def test_provider_default_models(self):
        self.assertEqual(LLMConfig(provider="openai").model_name, "gpt-4o")
        self.assertEqual(LLMConfig(provider="google").model_name, "gemini-2.0-flash")
        self.assertEqual(LLMConfig(model_name="custom").model_name, "custom")

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            LLMConfig(provider="local")
        with self.assertRaises(ValueError):
            LLMConfig(temperature=3.0)
        with self.assertRaises(ValueError):
            SchedulerConfig(max_idle_polls=0)
        with self.assertRaises(ValueError):
            PlannerConfig(min_tasks=5, max_tasks=2)
        with self.assertRaises(ValueError):
            ReviewConfig(acceptance_threshold=101)
        with self.assertRaises(ValueError):
            RateLimitConfig(requests_per_minute=-1)
        with self.assertRaises(ValueError):
            EngineConfig(log_level="INVALID")

    def test_from_dict_nested(self):
        config = EngineConfig.from_dict({
            "llm": {"provider": "openai", "temperature": 0.7},
            "scheduler": {"max_idle_polls": 5},
            "log_level": "DEBUG",
        })

        self.assertEqual(config.llm.provider, "openai")
        self.assertEqual(config.llm.temperature, 0.7)
        self.assertEqual(config.scheduler.max_idle_polls, 5)
        self.assertEqual(config.planner.max_retries, 3)

    def test_to_dict_hides_secrets(self):
        config = EngineConfig(llm=LLMConfig(api_key="sk-secret"))

        self.assertNotIn("api_key", config.to_dict()["llm"])
        self.assertEqual(config.to_dict(include_secrets=True)["llm"]["api_key"], "sk-secret")


class TestFromEnv:

    def test_reads_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("MPTEST_LLM_PROVIDER", "google")
        monkeypatch.setenv("MPTEST_LLM_TEMPERATURE", "0.5")
        monkeypatch.setenv("MPTEST_MAX_IDLE_POLLS", "7")
        monkeypatch.setenv("MPTEST_REVIEW_THRESHOLD", "70")
        monkeypatch.setenv("MPTEST_PLAN_MAX_TASKS", "12")
        monkeypatch.setenv("MPTEST_DEBUG", "true")
        monkeypatch.setenv("LLM_RATE_LIMIT_RPM", "20")

        config = EngineConfig.from_env(prefix="MPTEST_")

        assert config.llm.provider == "google"
        assert config.llm.temperature == 0.5
        assert config.scheduler.max_idle_polls == 7
        assert config.review.acceptance_threshold == 70
        assert config.planner.max_tasks == 12
        assert config.rate_limit.requests_per_minute == 20
        assert config.debug is True

    def test_api_key_resolution(self, monkeypatch):
        monkeypatch.delenv("LLM_API_KEY", raising=False)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")

        assert LLMConfig(provider="openai").resolve_api_key() == "sk-openai"
        assert LLMConfig(provider="openai", api_key="explicit").resolve_api_key() == "explicit"

        monkeypatch.setenv("LLM_API_KEY", "sk-generic")
        assert LLMConfig(provider="openai").resolve_api_key() == "sk-generic"


class TestEnvConfig:

    def test_load_env_file_keeps_existing(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("MPTEST_FROM_FILE=file\nMPTEST_EXISTING=file\n")
        monkeypatch.setenv("MPTEST_EXISTING", "process")
        monkeypatch.delenv("MPTEST_FROM_FILE", raising=False)

        assert EnvConfig.load_env_file(str(env_file)) is True
        assert EnvConfig.get("MPTEST_FROM_FILE") == "file"
        assert EnvConfig.get("MPTEST_EXISTING") == "process"
        monkeypatch.delenv("MPTEST_FROM_FILE")

    def test_missing_file(self, tmp_path):
        assert EnvConfig.load_env_file(str(tmp_path / "nope.env")) is False

    def test_typed_getters(self, monkeypatch):
        monkeypatch.setenv("MPTEST_BOOL", "yes")
        monkeypatch.setenv("MPTEST_INT", "abc")
        monkeypatch.setenv("MPTEST_JSON", '{"a": 1}')

        assert EnvConfig.get_bool("MPTEST_BOOL") is True
        assert EnvConfig.get_int("MPTEST_INT", 4) == 4
        assert EnvConfig.get_json("MPTEST_JSON") == {"a": 1}
        assert EnvConfig.missing("MPTEST_BOOL", "MPTEST_UNSET") == ["MPTEST_UNSET"]

    def test_template_names_provider_key(self):
        assert "OPENAI_API_KEY=" in EnvConfig.show_config_template("openai")
