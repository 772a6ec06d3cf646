"""
Resilient Generation Client

Wraps the LLM transport with a per-attempt timeout, retry with exponential
backoff, and staged recovery of malformed JSON responses.

Retryable failures are timeouts, rate limits, transient network faults and
responses that cannot be recovered as JSON (a fresh model call is made, not
just a re-parse). Anything else is terminal and raised at once.
"""

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple, Union
import logging
import time

from asg_policies import GenerationPolicy
from automation.errors import GenerationError, JSONRecoveryError, classify_error
from automation.json_recovery import parse_json_response
from automation.llm_client import LLMResponse

logger = logging.getLogger(__name__)


@dataclass
class PromptPayload:
    """A prompt to send to the model."""
    user: str
    system: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    label: str = "response"


@dataclass(frozen=True)
class SchemaHint:
    """
    Expected shape of a structured response.

    Attributes
    ----------
    name : str
        Label used in logs and errors
    container : str
        "object" or "array"
    required_keys : tuple of str
        Keys an object response must carry
    """
    name: str = "response"
    container: str = "object"
    required_keys: Tuple[str, ...] = ()

    def check(self, data: Any) -> Optional[str]:
        """Return a mismatch description, or None if the data fits."""
        if self.container == "array":
            if not isinstance(data, list):
                return f"{self.name}: expected a JSON array, got {type(data).__name__}"
            return None
        if not isinstance(data, dict):
            return f"{self.name}: expected a JSON object, got {type(data).__name__}"
        missing = [k for k in self.required_keys if k not in data]
        if missing:
            return f"{self.name}: missing required keys {missing}"
        return None


@dataclass
class StructuredResult:
    """Parsed response of a successful invocation."""
    data: Any
    raw_text: str
    attempts: int
    model: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)


class ResilientGenerationClient:
    """
    Retrying, recovering front end for a chat transport.

    Parameters
    ----------
    transport : object
        Object with ``chat(message, system_prompt=, temperature=,
        max_tokens=, timeout=) -> LLMResponse`` (normally an LLMClient)
    policy : GenerationPolicy, optional
        Attempt budget, timeout and backoff settings
    sleep : callable, optional
        Sleep function used between attempts

    Examples
    --------
    >>> client = ResilientGenerationClient(LLMClient(provider="openai"))
    >>> result = client.invoke("Return {\\"ok\\": true}", SchemaHint(required_keys=("ok",)))
    >>> result.data["ok"]
    True
    """

    def __init__(
        self,
        transport,
        policy: Optional[GenerationPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.transport = transport
        self.policy = policy or GenerationPolicy()
        self._sleep = sleep
        self.total_input_tokens = 0
        self.total_output_tokens = 0
        self.total_calls = 0

    def usage(self) -> Dict[str, int]:
        return {
            "input_tokens": self.total_input_tokens,
            "output_tokens": self.total_output_tokens,
            "calls": self.total_calls,
        }

    def _call_once(self, payload: PromptPayload) -> LLMResponse:
        """Run one transport call under the per-attempt timeout."""
        kwargs = dict(
            system_prompt=payload.system,
            temperature=payload.temperature,
            max_tokens=payload.max_tokens,
            timeout=self.policy.timeout_s,
        )
        if not self.policy.timeout_s or self.policy.timeout_s <= 0:
            return self.transport.chat(payload.user, **kwargs)

        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(self.transport.chat, payload.user, **kwargs)
        try:
            return future.result(timeout=self.policy.timeout_s)
        except FutureTimeoutError:
            # The in-flight call is left to finish on its own
            raise TimeoutError(f"Model call exceeded {self.policy.timeout_s}s")
        finally:
            executor.shutdown(wait=False)

    def _record_usage(self, response: LLMResponse) -> None:
        self.total_calls += 1
        self.total_input_tokens += response.input_tokens
        self.total_output_tokens += response.output_tokens

    def invoke(
        self,
        prompt_payload: Union[str, PromptPayload],
        schema_hint: Optional[SchemaHint] = None,
    ) -> StructuredResult:
        """
        Invoke the model and return its parsed JSON response.

        Parameters
        ----------
        prompt_payload : str or PromptPayload
            Prompt to send; the same prompt is reused on every attempt
        schema_hint : SchemaHint, optional
            Expected shape of the response

        Returns
        -------
        StructuredResult
            Parsed data, raw text and usage of the successful attempt

        Raises
        ------
        GenerationError
            On a terminal failure, or with the last failure's kind once the
            attempt budget is spent
        """
        payload = prompt_payload if isinstance(prompt_payload, PromptPayload) else PromptPayload(user=prompt_payload)
        hint = schema_hint or SchemaHint(name=payload.label)
        max_attempts = max(int(self.policy.max_attempts), 1)
        delay = self.policy.retry_delay
        last_error: Optional[GenerationError] = None

        for attempt in range(1, max_attempts + 1):
            try:
                response = self._call_once(payload)
                self._record_usage(response)
                data = parse_json_response(response.content, label=hint.name)
                mismatch = hint.check(data)
                if mismatch:
                    raise JSONRecoveryError(mismatch, raw=response.content)
                logger.debug(f"{hint.name}: parsed on attempt {attempt}/{max_attempts}")
                return StructuredResult(
                    data=data,
                    raw_text=response.content,
                    attempts=attempt,
                    model=response.model,
                    input_tokens=response.input_tokens,
                    output_tokens=response.output_tokens,
                )
            except Exception as e:
                kind = classify_error(e)
                last_error = GenerationError(kind, f"{hint.name}: {e}", attempts=attempt, cause=e)
                if not kind.is_retryable:
                    logger.error(f"{hint.name}: terminal failure on attempt {attempt}: {e}")
                    raise last_error from e
                if attempt >= max_attempts:
                    break
                logger.warning(
                    f"{hint.name}: {kind.value} on attempt {attempt}/{max_attempts}, "
                    f"retrying in {delay:.2f}s"
                )
                self._sleep(delay)
                delay = min(delay * 2, self.policy.retry_max_delay)

        logger.error(f"{hint.name}: giving up after {max_attempts} attempts ({last_error.kind.value})")
        raise GenerationError(
            last_error.kind,
            f"{last_error.message} (after {max_attempts} attempts)",
            attempts=max_attempts,
            cause=last_error.cause,
        ) from last_error.cause


__all__ = [
    "PromptPayload",
    "SchemaHint",
    "StructuredResult",
    "ResilientGenerationClient",
]
