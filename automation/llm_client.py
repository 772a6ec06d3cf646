"""
LLM Client

Transport for the generative text service used to plan and generate
blueprints. Provides a unified interface over OpenAI, Anthropic and local
OpenAI-compatible servers.

Each call is a single attempt; timeouts, retries and response recovery are
handled by ``automation.resilient_client``.
"""

from dataclasses import dataclass
from typing import List, Dict, Any, Optional
from enum import Enum
import logging
import os

logger = logging.getLogger(__name__)


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    LOCAL = "local"  # OpenAI-compatible server


def _safe_int(value, default: int = 0) -> int:
    """
    Convert a usage field to int, returning default if None or invalid.

    SDK usage objects may report None for some counters.
    """
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class LLMConfig:
    """
    Configuration for the LLM transport.

    Attributes
    ----------
    provider : str
        One of "openai", "anthropic", "local"
    model : str
        Model name
    api_key : str, optional
        API key. Read from OPENAI_API_KEY / ANTHROPIC_API_KEY if not given.
    api_base : str, optional
        Base URL (required for the local provider)
    max_tokens : int
        Default completion budget
    temperature : float
        Default sampling temperature
    system_prompt : str, optional
        System prompt sent with every request
    timeout : float
        Transport-level timeout in seconds
    """
    provider: str = "openai"
    model: str = "gpt-4o"
    api_key: Optional[str] = None
    api_base: Optional[str] = None
    max_tokens: int = 4096
    temperature: float = 0.7
    system_prompt: Optional[str] = None
    timeout: float = 120.0

    def __post_init__(self):
        if self.api_key is None:
            provider = self.provider.lower()
            if provider == LLMProvider.OPENAI.value:
                self.api_key = os.environ.get("OPENAI_API_KEY")
            elif provider == LLMProvider.ANTHROPIC.value:
                self.api_key = os.environ.get("ANTHROPIC_API_KEY")


@dataclass
class Message:
    """A message in a conversation."""
    role: str  # "system", "user", "assistant"
    content: str


@dataclass
class LLMResponse:
    """Response from LLM API."""
    content: str
    model: str
    usage: Dict[str, int]
    finish_reason: str
    raw_response: Optional[Dict[str, Any]] = None

    @property
    def input_tokens(self) -> int:
        return _safe_int(self.usage.get("prompt_tokens"))

    @property
    def output_tokens(self) -> int:
        return _safe_int(self.usage.get("completion_tokens"))


class LLMClient:
    """
    Client for the generative text service.

    Parameters
    ----------
    config : LLMConfig, optional
        Client configuration. If not provided, uses defaults.
    provider : str, optional
        LLM provider (shortcut for config.provider)
    api_key : str, optional
        API key (shortcut for config.api_key)
    model : str, optional
        Model name (shortcut for config.model)

    Examples
    --------
    >>> from automation.llm_client import LLMClient
    >>>
    >>> client = LLMClient(provider="anthropic", model="claude-3-5-sonnet-latest")
    >>> response = client.chat("Design a small oak cabin")
    >>> print(response.content)
    """

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        provider: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        api_base: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        if config is None:
            config = LLMConfig(provider=provider or "openai", api_key=api_key)

        if provider is not None:
            config.provider = provider
        if api_key is not None:
            config.api_key = api_key
        if model is not None:
            config.model = model
        if api_base is not None:
            config.api_base = api_base
        if temperature is not None:
            config.temperature = temperature
        if max_tokens is not None:
            config.max_tokens = max_tokens

        self.config = config

    def chat(
        self,
        message: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """
        Send a message and get a response.

        Parameters
        ----------
        message : str
            User message to send
        system_prompt : str, optional
            Override system prompt for this request
        temperature : float, optional
            Override temperature for this request
        max_tokens : int, optional
            Override max_tokens for this request
        timeout : float, optional
            Override the transport timeout for this request

        Returns
        -------
        LLMResponse
            Response from the LLM
        """
        messages = []
        system = system_prompt or self.config.system_prompt
        if system:
            messages.append(Message(role="system", content=system))
        messages.append(Message(role="user", content=message))

        return self._call_api(
            messages=messages,
            temperature=self.config.temperature if temperature is None else temperature,
            max_tokens=max_tokens or self.config.max_tokens,
            timeout=timeout or self.config.timeout,
        )

    def _call_api(
        self,
        messages: List[Message],
        temperature: float,
        max_tokens: int,
        timeout: float,
    ) -> LLMResponse:
        """Dispatch to the provider method."""
        provider = self.config.provider.lower()

        provider_methods = {
            LLMProvider.OPENAI.value: self._call_openai,
            LLMProvider.ANTHROPIC.value: self._call_anthropic,
            LLMProvider.LOCAL.value: self._call_local,
        }

        if provider not in provider_methods:
            raise ValueError(f"Unsupported provider: {provider}")

        logger.debug(f"Calling {provider} model {self.config.model} (max_tokens={max_tokens})")
        return provider_methods[provider](messages, temperature, max_tokens, timeout)

    def _openai_chat(self, client, messages: List[Message], temperature: float, max_tokens: int) -> LLMResponse:
        response = client.chat.completions.create(
            model=self.config.model,
            messages=[{"role": m.role, "content": m.content} for m in messages],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        usage = response.usage
        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=response.model,
            usage={
                "prompt_tokens": _safe_int(getattr(usage, "prompt_tokens", 0)),
                "completion_tokens": _safe_int(getattr(usage, "completion_tokens", 0)),
                "total_tokens": _safe_int(getattr(usage, "total_tokens", 0)),
            },
            finish_reason=response.choices[0].finish_reason,
            raw_response=response.model_dump() if hasattr(response, "model_dump") else None,
        )

    def _call_openai(
        self,
        messages: List[Message],
        temperature: float,
        max_tokens: int,
        timeout: float,
    ) -> LLMResponse:
        """Call OpenAI API."""
        try:
            import openai
        except ImportError:
            raise ImportError("openai package not installed. Run: pip install openai")

        if self.config.api_key is None:
            raise ValueError("OpenAI API key not provided. Set OPENAI_API_KEY or pass api_key.")

        client = openai.OpenAI(
            api_key=self.config.api_key,
            base_url=self.config.api_base,
            timeout=timeout,
            max_retries=0,
        )
        return self._openai_chat(client, messages, temperature, max_tokens)

    def _call_anthropic(
        self,
        messages: List[Message],
        temperature: float,
        max_tokens: int,
        timeout: float,
    ) -> LLMResponse:
        """Call Anthropic API."""
        try:
            import anthropic
        except ImportError:
            raise ImportError("anthropic package not installed. Run: pip install anthropic")

        if self.config.api_key is None:
            raise ValueError("Anthropic API key not provided. Set ANTHROPIC_API_KEY or pass api_key.")

        client = anthropic.Anthropic(api_key=self.config.api_key, timeout=timeout, max_retries=0)

        # Anthropic takes the system prompt separately
        system_content = None
        api_messages = []
        for m in messages:
            if m.role == "system":
                system_content = m.content
            else:
                api_messages.append({"role": m.role, "content": m.content})

        kwargs = {
            "model": self.config.model,
            "messages": api_messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if system_content:
            kwargs["system"] = system_content

        response = client.messages.create(**kwargs)

        text = "".join(getattr(block, "text", "") for block in response.content)
        input_tokens = _safe_int(response.usage.input_tokens)
        output_tokens = _safe_int(response.usage.output_tokens)
        return LLMResponse(
            content=text,
            model=response.model,
            usage={
                "prompt_tokens": input_tokens,
                "completion_tokens": output_tokens,
                "total_tokens": input_tokens + output_tokens,
            },
            finish_reason=response.stop_reason,
            raw_response=response.model_dump(),
        )

    def _call_local(
        self,
        messages: List[Message],
        temperature: float,
        max_tokens: int,
        timeout: float,
    ) -> LLMResponse:
        """Call local model API (OpenAI-compatible)."""
        try:
            import openai
        except ImportError:
            raise ImportError("openai package not installed. Run: pip install openai")

        if self.config.api_base is None:
            raise ValueError("api_base must be set for local provider")

        client = openai.OpenAI(
            api_key=self.config.api_key or "not-needed",
            base_url=self.config.api_base,
            timeout=timeout,
            max_retries=0,
        )
        return self._openai_chat(client, messages, temperature, max_tokens)
