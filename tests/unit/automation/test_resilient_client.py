"""
Unit tests for the resilient generation client and error classification.
"""

import threading
from unittest.mock import patch

import pytest

from asg_policies import GenerationPolicy
from automation.errors import ErrorKind, GenerationError, JSONRecoveryError, classify_error
from automation.llm_client import LLMClient, LLMConfig, LLMResponse
from automation.resilient_client import PromptPayload, ResilientGenerationClient, SchemaHint


def _response(content, prompt_tokens=10, completion_tokens=5):
    return LLMResponse(
        content=content,
        model="fake-model",
        usage={"prompt_tokens": prompt_tokens, "completion_tokens": completion_tokens},
        finish_reason="stop",
    )


class FakeTransport:
    """Transport returning scripted responses or raising scripted errors."""

    def __init__(self, script):
        self.script = list(script)
        self.calls = []

    def chat(self, message, system_prompt=None, temperature=None, max_tokens=None, timeout=None):
        self.calls.append({"message": message, "system_prompt": system_prompt, "temperature": temperature})
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, BaseException):
            raise item
        return _response(item)


def _client(transport, max_attempts=3, timeout_s=0):
    sleeps = []
    policy = GenerationPolicy(max_attempts=max_attempts, timeout_s=timeout_s, retry_delay=0.5, retry_max_delay=1.0)
    client = ResilientGenerationClient(transport, policy=policy, sleep=sleeps.append)
    return client, sleeps


class TestClassifyError:
    """Tests for classify_error."""

    def test_timeout(self):
        assert classify_error(TimeoutError("slow")) == ErrorKind.TIMEOUT
        assert classify_error(RuntimeError("Request timed out")) == ErrorKind.TIMEOUT

    def test_rate_limit(self):
        assert classify_error(RuntimeError("Error 429: Too Many Requests")) == ErrorKind.RATE_LIMIT

    def test_network(self):
        assert classify_error(ConnectionError("reset by peer")) == ErrorKind.NETWORK
        assert classify_error(RuntimeError("503 service overloaded")) == ErrorKind.NETWORK

    def test_parse(self):
        assert classify_error(JSONRecoveryError("bad")) == ErrorKind.PARSE

    def test_fatal_terms_win(self):
        """Authentication faults are terminal even if they mention a connection."""
        assert classify_error(RuntimeError("401 Unauthorized on connection")) == ErrorKind.TERMINAL
        assert classify_error(RuntimeError("model not found")) == ErrorKind.TERMINAL

    def test_unknown_is_terminal(self):
        assert classify_error(KeyError("x")) == ErrorKind.TERMINAL

    def test_generation_error_keeps_kind(self):
        assert classify_error(GenerationError(ErrorKind.RATE_LIMIT, "quota")) == ErrorKind.RATE_LIMIT

    def test_retryable(self):
        assert ErrorKind.TIMEOUT.is_retryable
        assert not ErrorKind.TERMINAL.is_retryable


class TestInvoke:
    """Tests for ResilientGenerationClient.invoke."""

    def test_success_first_attempt(self):
        transport = FakeTransport(['{"ok": true}'])
        client, sleeps = _client(transport)

        result = client.invoke("go", SchemaHint(name="probe", required_keys=("ok",)))

        assert result.data == {"ok": True}
        assert result.attempts == 1
        assert result.model == "fake-model"
        assert sleeps == []

    def test_timeouts_exhaust_budget(self):
        """Three timeouts make exactly three calls and then give up."""
        transport = FakeTransport([TimeoutError("too slow")])
        client, sleeps = _client(transport, max_attempts=3)

        with pytest.raises(GenerationError) as exc_info:
            client.invoke("go")

        assert len(transport.calls) == 3
        assert exc_info.value.kind == ErrorKind.TIMEOUT
        assert exc_info.value.attempts == 3
        assert "after 3 attempts" in str(exc_info.value)
        assert sleeps == [0.5, 1.0]

    def test_terminal_error_not_retried(self):
        transport = FakeTransport([RuntimeError("401 invalid api key")])
        client, sleeps = _client(transport)

        with pytest.raises(GenerationError) as exc_info:
            client.invoke("go")

        assert len(transport.calls) == 1
        assert exc_info.value.kind == ErrorKind.TERMINAL
        assert sleeps == []

    def test_recovers_after_transient_failure(self):
        transport = FakeTransport([ConnectionError("reset"), '```json\n{"ok": 1,}\n```'])
        client, sleeps = _client(transport)

        result = client.invoke("go")

        assert result.data == {"ok": 1}
        assert result.attempts == 2
        assert len(sleeps) == 1

    def test_schema_mismatch_triggers_new_call(self):
        """A response missing required keys is retried with a fresh call."""
        transport = FakeTransport(['{"other": 1}', '{"steps": []}'])
        client, _ = _client(transport)

        result = client.invoke("go", SchemaHint(name="blueprint", required_keys=("steps",)))

        assert result.data == {"steps": []}
        assert len(transport.calls) == 2

    def test_unparseable_exhausts_as_parse(self):
        transport = FakeTransport(["I would rather not."])
        client, _ = _client(transport, max_attempts=2)

        with pytest.raises(GenerationError) as exc_info:
            client.invoke("go")

        assert exc_info.value.kind == ErrorKind.PARSE
        assert len(transport.calls) == 2

    def test_array_schema(self):
        transport = FakeTransport(['{"not": "array"}', '[{"name": "tower"}]'])
        client, _ = _client(transport)

        result = client.invoke("go", SchemaHint(name="layout", container="array"))

        assert result.data == [{"name": "tower"}]

    def test_payload_forwarded(self):
        transport = FakeTransport(['{"ok": true}'])
        client, _ = _client(transport)

        client.invoke(PromptPayload(user="plan it", system="be brief", temperature=0.2))

        assert transport.calls[0] == {"message": "plan it", "system_prompt": "be brief", "temperature": 0.2}

    def test_usage_counters(self):
        transport = FakeTransport(['{"other": 1}', '{"ok": true}'])
        client, _ = _client(transport)

        client.invoke("go", SchemaHint(required_keys=("ok",)))

        assert client.usage() == {"input_tokens": 20, "output_tokens": 10, "calls": 2}

    def test_per_attempt_timeout(self):
        """A hanging transport call is abandoned after the attempt timeout."""
        release = threading.Event()

        class HangingTransport:
            calls = 0

            def chat(self, message, **kwargs):
                HangingTransport.calls += 1
                release.wait(5)
                return _response('{"late": true}')

        client, _ = _client(HangingTransport(), max_attempts=2, timeout_s=0.05)
        try:
            with pytest.raises(GenerationError) as exc_info:
                client.invoke("go")
        finally:
            release.set()

        assert exc_info.value.kind == ErrorKind.TIMEOUT
        assert HangingTransport.calls == 2


class TestLLMClient:
    """Tests for the transport configuration and dispatch."""

    def test_config_reads_env_key(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
        assert LLMConfig(provider="anthropic").api_key == "sk-test"

    def test_explicit_key_wins(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "from-env")
        assert LLMConfig(provider="openai", api_key="explicit").api_key == "explicit"

    def test_shortcuts_override_config(self):
        client = LLMClient(provider="local", model="llama", api_base="http://localhost:8000/v1", temperature=0.1)
        assert client.config.provider == "local"
        assert client.config.model == "llama"
        assert client.config.temperature == 0.1

    def test_chat_builds_messages(self):
        client = LLMClient(provider="openai", api_key="k")
        with patch.object(LLMClient, "_call_api", return_value=_response("{}")) as call_api:
            client.chat("hello", system_prompt="sys", temperature=0.0)

        kwargs = call_api.call_args.kwargs
        assert [m.role for m in kwargs["messages"]] == ["system", "user"]
        assert kwargs["temperature"] == 0.0
        assert kwargs["max_tokens"] == client.config.max_tokens

    def test_unsupported_provider(self):
        client = LLMClient(provider="carrier-pigeon", api_key="k")
        with pytest.raises(ValueError, match="Unsupported provider"):
            client.chat("hello")

    def test_response_token_properties(self):
        response = LLMResponse(content="", model="m", usage={"prompt_tokens": "7"}, finish_reason="stop")
        assert response.input_tokens == 7
        assert response.output_tokens == 0
