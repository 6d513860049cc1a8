"""
Engine configuration - Settings for the planner, scheduler and review loop
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
import os
from enum import Enum


class LLMProvider(str, Enum):
    """Supported LLM providers"""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GOOGLE = "google"


DEFAULT_MODELS = {
    "anthropic": "claude-sonnet-4-20250514",
    "openai": "gpt-4o",
    "google": "gemini-2.0-flash",
}


@dataclass
class LLMConfig:
    """
    Configuration for LLM provider and model.

    Attributes:
        provider: LLM provider (anthropic, openai, google)
        model_name: Model identifier for the provider (provider default if empty)
        api_key: API key; resolved from LLM_API_KEY or the provider variable by the client
        temperature: Temperature for response generation (0-2)
        max_tokens: Maximum tokens in response
        timeout: Request timeout in seconds
    """

    provider: str = "anthropic"
    model_name: str = ""
    api_key: Optional[str] = None
    temperature: float = 0.2
    max_tokens: Optional[int] = None
    timeout: int = 45

    def __post_init__(self):
        valid_providers = [p.value for p in LLMProvider]
        if self.provider not in valid_providers:
            raise ValueError(f"Provider must be one of {valid_providers}, got {self.provider}")

        if not 0 <= self.temperature <= 2:
            raise ValueError(f"Temperature must be between 0 and 2, got {self.temperature}")

        if self.timeout < 1:
            raise ValueError("timeout must be at least 1 second")

        if not self.model_name:
            self.model_name = DEFAULT_MODELS[self.provider]

    def provider_key_variable(self) -> str:
        """Environment variable holding the provider-specific API key."""
        return f"{self.provider.upper()}_API_KEY"

    def resolve_api_key(self) -> Optional[str]:
        """Return the explicit key, else LLM_API_KEY, else the provider variable."""
        return (
            self.api_key
            or os.getenv("LLM_API_KEY")
            or os.getenv(self.provider_key_variable())
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding API key for security."""
        return {
            "provider": self.provider,
            "model_name": self.model_name,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "timeout": self.timeout,
        }


@dataclass
class SchedulerConfig:
    """
    Configuration for the execution scheduler.

    Attributes:
        idle_poll_interval: Seconds to sleep when no task is eligible
        max_idle_polls: Consecutive empty polls before the run is declared stalled
        history_window: Characters of execution history quoted in executor prompts
    """
    idle_poll_interval: float = 1.0
    max_idle_polls: int = 30
    history_window: int = 800

    def __post_init__(self):
        if self.idle_poll_interval < 0:
            raise ValueError("idle_poll_interval cannot be negative")
        if self.max_idle_polls < 1:
            raise ValueError("max_idle_polls must be at least 1")
        if self.history_window < 0:
            raise ValueError("history_window cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "idle_poll_interval": self.idle_poll_interval,
            "max_idle_polls": self.max_idle_polls,
            "history_window": self.history_window,
        }


@dataclass
class PlannerConfig:
    """
    Quality gates and retry budget for plan generation.

    Attributes:
        min_tasks: Fewest tasks an acceptable plan may contain
        max_tasks: Most tasks an acceptable plan may contain
        max_retries: Generation attempts before giving up
    """
    min_tasks: int = 1
    max_tasks: int = 30
    max_retries: int = 3

    def __post_init__(self):
        if self.min_tasks < 1:
            raise ValueError("min_tasks must be at least 1")
        if self.max_tasks < self.min_tasks:
            raise ValueError("max_tasks cannot be smaller than min_tasks")
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_tasks": self.min_tasks,
            "max_tasks": self.max_tasks,
            "max_retries": self.max_retries,
        }


@dataclass
class ReviewConfig:
    """
    Settings for the Strategist / Critic / Analyst review loop.

    Attributes:
        acceptance_threshold: Critic score at or above which a proposal is accepted
        max_iterations: Critique rounds before the loop stops regardless of score
        feedback_items: Number of top feedback items fed back to the Strategist
        neutral_score: Score used when the Critic cannot evaluate a proposal
    """
    acceptance_threshold: int = 85
    max_iterations: int = 3
    feedback_items: int = 3
    neutral_score: int = 50

    def __post_init__(self):
        if not 0 <= self.acceptance_threshold <= 100:
            raise ValueError("acceptance_threshold must be between 0 and 100")
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if self.feedback_items < 1:
            raise ValueError("feedback_items must be at least 1")
        if not 0 <= self.neutral_score <= 100:
            raise ValueError("neutral_score must be between 0 and 100")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "acceptance_threshold": self.acceptance_threshold,
            "max_iterations": self.max_iterations,
            "feedback_items": self.feedback_items,
            "neutral_score": self.neutral_score,
        }


@dataclass
class RateLimitConfig:
    """
    Configuration for LLM rate limiting.

    Attributes:
        requests_per_minute: Maximum requests per minute (0 = unlimited)
        min_request_delay: Minimum delay between requests in seconds (0 = no delay)
    """
    requests_per_minute: int = 60
    min_request_delay: float = 0.0

    def __post_init__(self):
        if self.requests_per_minute < 0:
            raise ValueError("requests_per_minute cannot be negative")
        if self.min_request_delay < 0:
            raise ValueError("min_request_delay cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requests_per_minute": self.requests_per_minute,
            "min_request_delay": self.min_request_delay,
        }


@dataclass
class EngineConfig:
    """
    Top-level configuration for the Mission Planner engine.

    Attributes:
        llm: LLM configuration (default: Anthropic Claude Sonnet)
        scheduler: Execution scheduler settings
        planner: Plan generation quality gates and retries
        review: Multi-agent review loop settings
        rate_limit: Rate limiting configuration for LLM calls
        log_level: Logging level (default: 'INFO')
        debug: Enable debug mode with detailed logging (default: False)
    """

    llm: LLMConfig = field(default_factory=LLMConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    planner: PlannerConfig = field(default_factory=PlannerConfig)
    review: ReviewConfig = field(default_factory=ReviewConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    log_level: str = "INFO"
    debug: bool = False

    def __post_init__(self):
        if self.log_level not in ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']:
            raise ValueError(f"Invalid log_level: {self.log_level}")

        if isinstance(self.llm, dict):
            self.llm = LLMConfig(**self.llm)
        if isinstance(self.scheduler, dict):
            self.scheduler = SchedulerConfig(**self.scheduler)
        if isinstance(self.planner, dict):
            self.planner = PlannerConfig(**self.planner)
        if isinstance(self.review, dict):
            self.review = ReviewConfig(**self.review)
        if isinstance(self.rate_limit, dict):
            self.rate_limit = RateLimitConfig(**self.rate_limit)

    @classmethod
    def from_env(cls, prefix: str = "AGENT_") -> "EngineConfig":
        """
        Create configuration from environment variables.

        Example:
            export AGENT_LLM_PROVIDER=anthropic
            export AGENT_MAX_IDLE_POLLS=10
            export LLM_API_KEY=sk-...
            config = EngineConfig.from_env()
        """
        max_tokens = os.getenv(f"{prefix}LLM_MAX_TOKENS")
        return cls(
            llm=LLMConfig(
                provider=os.getenv(f"{prefix}LLM_PROVIDER", "anthropic"),
                model_name=os.getenv(f"{prefix}LLM_MODEL", ""),
                api_key=os.getenv("LLM_API_KEY"),
                temperature=float(os.getenv(f"{prefix}LLM_TEMPERATURE", "0.2")),
                max_tokens=int(max_tokens) if max_tokens else None,
                timeout=int(os.getenv(f"{prefix}TIMEOUT", "45")),
            ),
            scheduler=SchedulerConfig(
                idle_poll_interval=float(os.getenv(f"{prefix}IDLE_POLL_INTERVAL", "1.0")),
                max_idle_polls=int(os.getenv(f"{prefix}MAX_IDLE_POLLS", "30")),
                history_window=int(os.getenv(f"{prefix}HISTORY_WINDOW", "800")),
            ),
            planner=PlannerConfig(
                min_tasks=int(os.getenv(f"{prefix}PLAN_MIN_TASKS", "1")),
                max_tasks=int(os.getenv(f"{prefix}PLAN_MAX_TASKS", "30")),
                max_retries=int(os.getenv(f"{prefix}MAX_RETRIES", "3")),
            ),
            review=ReviewConfig(
                acceptance_threshold=int(os.getenv(f"{prefix}REVIEW_THRESHOLD", "85")),
                max_iterations=int(os.getenv(f"{prefix}REVIEW_MAX_ITERATIONS", "3")),
                feedback_items=int(os.getenv(f"{prefix}REVIEW_FEEDBACK_ITEMS", "3")),
            ),
            rate_limit=RateLimitConfig(
                requests_per_minute=int(os.getenv('LLM_RATE_LIMIT_RPM', '60')),
                min_request_delay=float(os.getenv('LLM_MIN_REQUEST_DELAY', '0.0')),
            ),
            log_level=os.getenv(f"{prefix}LOG_LEVEL", "INFO"),
            debug=os.getenv(f"{prefix}DEBUG", "false").lower() == "true",
        )

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "EngineConfig":
        """
        Create configuration from a (possibly nested) dictionary.

        Example:
            config = EngineConfig.from_dict({
                "llm": {"provider": "openai"},
                "scheduler": {"max_idle_polls": 5},
            })
        """
        return cls(**dict(config_dict))

    def to_dict(self, include_secrets: bool = False) -> Dict[str, Any]:
        """
        Convert to dictionary.

        Args:
            include_secrets: Whether to include API keys (default: False)
        """
        result = {
            "llm": self.llm.to_dict(),
            "scheduler": self.scheduler.to_dict(),
            "planner": self.planner.to_dict(),
            "review": self.review.to_dict(),
            "rate_limit": self.rate_limit.to_dict(),
            "log_level": self.log_level,
            "debug": self.debug,
        }

        if include_secrets and self.llm.api_key:
            result["llm"]["api_key"] = self.llm.api_key

        return result
