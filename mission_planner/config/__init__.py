"""
Configuration module - Settings and configuration management
"""

from .engine_config import (
    EngineConfig,
    LLMConfig,
    LLMProvider,
    SchedulerConfig,
    PlannerConfig,
    ReviewConfig,
    RateLimitConfig,
)
from .env_config import EnvConfig

__all__ = [
    'EngineConfig',
    'LLMConfig',
    'LLMProvider',
    'SchedulerConfig',
    'PlannerConfig',
    'ReviewConfig',
    'RateLimitConfig',
    'EnvConfig',
]
