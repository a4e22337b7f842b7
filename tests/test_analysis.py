import json

import pytest

from squirrly.core.analysis import AnalysisClient, OpenAIProvider, get_provider
from squirrly.core.errors import ProviderRequestFailed, UnsupportedProvider
from squirrly.core.executor import CommandResult
from squirrly.core.models import PodTarget

JM = PodTarget("squirrly", "jm-0")
PAYLOAD = "/tmp/profiler_api_1.json"


class _ApiExecutorStub:
    def __init__(self, result: CommandResult):
        self.result = result
        self.calls = []

    def execute(self, target, command, stdin=None):
        self.calls.append(list(command))
        return self.result


def _reply(code: int, body: str) -> CommandResult:
    return CommandResult(stdout=f"{body}\nHTTP_CODE:{code}", exit_code=0)


def _completion(text: str) -> str:
    return json.dumps({"choices": [{"message": {"role": "assistant", "content": text}}]})


def test_get_provider_is_case_insensitive():
    assert isinstance(get_provider("OpenAI"), OpenAIProvider)


def test_unknown_provider_is_rejected():
    with pytest.raises(UnsupportedProvider, match="openai"):
        get_provider("claude")


def test_openai_payload_filter_shapes_chat_request():
    program = OpenAIProvider().payload_filter()

    assert '"gpt-4o"' in program
    assert 'role: "user"' in program
    assert "content: ." in program
    assert "max_tokens: 2000" in program


def test_missing_credential_skips_without_calling_provider():
    executor = _ApiExecutorStub(_reply(200, _completion("unused")))

    result = AnalysisClient(executor, JM, OpenAIProvider()).submit(PAYLOAD, None)

    assert result is None
    assert executor.calls == []


def test_successful_request_returns_message_text():
    executor = _ApiExecutorStub(_reply(200, _completion("Hot path: serialization")))

    result = AnalysisClient(executor, JM, OpenAIProvider()).submit(PAYLOAD, "sk-test")

    assert result.response_text == "Hot path: serialization"
    assert result.provider_name == "openai"
    assert result.request_payload == PAYLOAD
    cmd = executor.calls[0]
    assert "Authorization: Bearer sk-test" in cmd
    assert f"@{PAYLOAD}" in cmd
    assert cmd[-1] == OpenAIProvider.endpoint


def test_non_200_status_fails_with_body():
    executor = _ApiExecutorStub(_reply(401, '{"error": "invalid key"}'))

    with pytest.raises(ProviderRequestFailed) as excinfo:
        AnalysisClient(executor, JM, OpenAIProvider()).submit(PAYLOAD, "sk-bad")

    assert excinfo.value.http_code == 401
    assert "invalid key" in excinfo.value.body


def test_unexpected_response_shape_fails():
    executor = _ApiExecutorStub(_reply(200, '{"choices": []}'))

    with pytest.raises(ProviderRequestFailed, match="response shape"):
        AnalysisClient(executor, JM, OpenAIProvider()).submit(PAYLOAD, "sk-test")


def test_transport_failure_has_no_status():
    executor = _ApiExecutorStub(CommandResult.transport_failure("exec timed out"))

    with pytest.raises(ProviderRequestFailed) as excinfo:
        AnalysisClient(executor, JM, OpenAIProvider()).submit(PAYLOAD, "sk-test")

    assert excinfo.value.http_code is None
