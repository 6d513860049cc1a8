"""
Generic LLM Client Wrapper

This module provides a unified wrapper over LangChain chat models
(Anthropic, OpenAI, Google Gemini) configured from LLMConfig / environment.

Supports:
- Lazy provider imports with actionable MissingDependencyError messages
- Plain and streamed generation
- Global rate limiting for API calls
- Injecting any LangChain chat model (used by tests and custom setups)

Example usage:
    from mission_planner.utils.llm_client import LLMClient

    # Uses environment variables: LLM_API_KEY, AGENT_LLM_PROVIDER, etc.
    client = LLMClient()
    response = client.generate_content("Explain AI")
    print(response)
"""

from typing import Optional, Union, List, Dict, Any, Iterator, TYPE_CHECKING

from langchain_core.messages import SystemMessage, HumanMessage, BaseMessage

from ..config.engine_config import LLMConfig, EngineConfig
from .rate_limiter import RateLimiter, global_rate_limiter
from .exceptions import (
    ConfigurationError,
    MissingDependencyError,
    LLMError,
    ExecutionCancelledError,
)
from .logger import get_logger

if TYPE_CHECKING:
    from langchain_core.language_models.chat_models import BaseChatModel

logger = get_logger(__name__)


def content_to_text(content: Any) -> str:
    """
    Flatten a LangChain message/chunk ``content`` into plain text.

    Providers return either a string or a list of content blocks
    (``{"type": "text", "text": ...}`` dicts or strings).
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type", "text") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return str(content)


class LLMClient:
    """
    Generic LLM Client - works with any supported provider.

    Configuration is read from LLMConfig (built from environment variables
    by EngineConfig.from_env when not supplied):
    - LLM_API_KEY or <PROVIDER>_API_KEY: API key for the provider
    - AGENT_LLM_PROVIDER: Provider name (anthropic, openai, google)
    - AGENT_LLM_MODEL: Model name
    """

    PROVIDER_PACKAGES = {
        'anthropic': 'langchain-anthropic',
        'openai': 'langchain-openai',
        'google': 'langchain-google-genai',
    }

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        chat_model: Optional["BaseChatModel"] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        """
        Initialize LLM Client.

        Args:
            config: Provider/model settings (default: from environment)
            chat_model: Pre-built LangChain chat model; skips provider setup
            rate_limiter: Limiter applied before every call (default: global)

        Raises:
            ConfigurationError: No API key could be resolved
            MissingDependencyError: Provider package not installed
        """
        self.config = config or EngineConfig.from_env().llm
        self.provider = self.config.provider
        self.model = self.config.model_name
        self.rate_limiter = rate_limiter or global_rate_limiter

        if chat_model is not None:
            self.client = chat_model
            logger.debug(f"[LLM] Using injected chat model {chat_model.__class__.__name__}")
            return

        self.api_key = self.config.resolve_api_key()
        if not self.api_key:
            raise ConfigurationError(
                setting_name="LLM_API_KEY",
                message=(
                    "API key not found. Set LLM_API_KEY or "
                    f"{self.config.provider_key_variable()}, or pass api_key in LLMConfig."
                )
            )

        self.client = self._initialize_langchain_wrapper()
        logger.info(f"[LLM] Initialized {self.client.__class__.__name__} (model: {self.model})")

    def _initialize_langchain_wrapper(self):
        """Initialize the LangChain chat model for the configured provider."""
        if self.provider == 'anthropic':
            return self._init_langchain_anthropic()
        if self.provider == 'openai':
            return self._init_langchain_openai()
        return self._init_langchain_google()

    def _missing(self, purpose: str) -> MissingDependencyError:
        package = self.PROVIDER_PACKAGES[self.provider]
        return MissingDependencyError(
            package_name=package,
            install_command=f"pip install {package}",
            purpose=purpose
        )

    def _init_langchain_anthropic(self):
        try:
            from langchain_anthropic import ChatAnthropic
        except ImportError:
            raise self._missing("LangChain Anthropic wrapper")

        kwargs: Dict[str, Any] = {
            'model_name': self.model,
            'temperature': self.config.temperature,
            'api_key': self.api_key,
            'timeout': self.config.timeout,
        }
        if self.config.max_tokens:
            kwargs['max_tokens'] = self.config.max_tokens
        return ChatAnthropic(**kwargs)

    def _init_langchain_openai(self):
        try:
            from langchain_openai import ChatOpenAI
        except ImportError:
            raise self._missing("LangChain OpenAI wrapper")

        kwargs: Dict[str, Any] = {
            'model': self.model,
            'api_key': self.api_key,
            'temperature': self.config.temperature,
            'timeout': self.config.timeout,
        }
        if self.config.max_tokens:
            kwargs['max_tokens'] = self.config.max_tokens
        return ChatOpenAI(**kwargs)

    def _init_langchain_google(self):
        try:
            from langchain_google_genai import ChatGoogleGenerativeAI
        except ImportError:
            raise self._missing("LangChain Google wrapper")

        kwargs: Dict[str, Any] = {
            'model': self.model,
            'google_api_key': self.api_key,
            'temperature': self.config.temperature,
            'timeout': self.config.timeout,
        }
        if self.config.max_tokens:
            kwargs['max_output_tokens'] = self.config.max_tokens
        return ChatGoogleGenerativeAI(**kwargs)

    @staticmethod
    def build_messages(
        contents: Union[str, List[str]],
        system_prompt: Optional[str] = None
    ) -> List[BaseMessage]:
        """System + human message pair for a prompt (list prompts are joined)."""
        messages: List[BaseMessage] = []
        if system_prompt:
            messages.append(SystemMessage(content=system_prompt))
        if isinstance(contents, list):
            contents = '\n'.join(str(c) for c in contents)
        messages.append(HumanMessage(content=contents))
        return messages

    def invoke(self, messages: List[BaseMessage], **kwargs) -> str:
        """
        Invoke the chat model and return the response text.

        Raises:
            LLMError: The provider call failed
        """
        wait_time = self.rate_limiter.wait()
        if wait_time > 0:
            logger.debug(f"[LLM] Rate limiter delayed request by {wait_time:.2f}s")

        try:
            response = self.client.invoke(messages, **kwargs)
        except Exception as e:
            logger.error(f"[LLM] Error in invoke: {e}")
            raise LLMError(provider=self.provider, message="invoke failed", model=self.model, original_error=e) from e

        return content_to_text(getattr(response, 'content', response))

    def generate_content(
        self,
        contents: Union[str, List[str]],
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> str:
        """
        Generate content using the LLM.

        Args:
            contents: Prompt or list of prompts
            system_prompt: System message for context
            **kwargs: Additional generation parameters

        Returns:
            Generated text response
        """
        return self.invoke(self.build_messages(contents, system_prompt), **kwargs)

    def stream_content(
        self,
        contents: Union[str, List[str]],
        system_prompt: Optional[str] = None,
        cancel_token=None,
        **kwargs
    ) -> Iterator[str]:
        """
        Stream generated text chunk by chunk.

        Args:
            contents: Prompt or list of prompts
            system_prompt: System message for context
            cancel_token: Optional CancellationToken checked between chunks

        Yields:
            Non-empty text chunks

        Raises:
            LLMError: The provider call failed
            ExecutionCancelledError: cancel_token fired mid-stream
        """
        messages = self.build_messages(contents, system_prompt)
        self.rate_limiter.wait()

        try:
            for chunk in self.client.stream(messages, **kwargs):
                if cancel_token is not None and cancel_token.cancelled:
                    raise ExecutionCancelledError()
                text = content_to_text(getattr(chunk, 'content', chunk))
                if text:
                    yield text
        except ExecutionCancelledError:
            raise
        except Exception as e:
            logger.error(f"[LLM] Error while streaming: {e}")
            raise LLMError(provider=self.provider, message="stream failed", model=self.model, original_error=e) from e

    @classmethod
    def list_supported_providers(cls) -> List[str]:
        """List all supported providers."""
        return list(cls.PROVIDER_PACKAGES.keys())
