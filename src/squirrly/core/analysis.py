"""Analysis provider abstractions and implementations.

A provider knows three things: how to shape the request payload (as a `jq`
program run on the JobManager pod, where the artifact lives), where to send
it, and how to unwrap the answer from its response envelope. Requests are
sent with `curl` from the JobManager pod, the only process with egress.

Unknown provider names fail closed with UnsupportedProvider.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod

from squirrly.core.controlplane import HTTP_CODE_MARKER, parse_http_reply
from squirrly.core.errors import ProviderRequestFailed, UnsupportedProvider
from squirrly.core.executor import RemoteExecutor
from squirrly.core.models import AnalysisResult, PodTarget
from squirrly.core.reporting import NullReporter, Reporter

ARTIFACT_MARKER = "Flamegraph HTML content"


class AnalysisProvider(ABC):
    """
    Abstract base class for all analysis providers.

    Subclasses set `name` and `endpoint` and implement payload shaping and
    response unwrapping.
    """

    name: str = ""
    endpoint: str = ""

    @abstractmethod
    def payload_filter(self) -> str:
        """
        Return the jq program that turns the raw message text into a
        request body. The program receives the whole message as `.`
        (jq is run with `-Rs`).
        """
        ...

    @abstractmethod
    def extract_text(self, body: str) -> str:
        """
        Return the answer text from a successful response body.

        Raises:
            ValueError: If the body does not have the expected shape.
        """
        ...

    def request_command(self, payload_path: str, credential: str) -> list[str]:
        """Return the curl argv that submits `payload_path`."""
        return [
            "curl",
            "-s",
            "-w",
            f"\n{HTTP_CODE_MARKER}%{{http_code}}",
            "-X",
            "POST",
            "-H",
            "Content-Type: application/json",
            "-H",
            f"Authorization: Bearer {credential}",
            "-d",
            f"@{payload_path}",
            self.endpoint,
        ]


class OpenAIProvider(AnalysisProvider):
    """OpenAI chat completions."""

    name = "openai"
    endpoint = "https://api.openai.com/v1/chat/completions"
    model = "gpt-4o"
    temperature = 0.7
    max_tokens = 2000

    def payload_filter(self) -> str:
        return (
            f"{{model: {json.dumps(self.model)}, "
            "messages: [{role: \"user\", content: .}], "
            f"temperature: {self.temperature}, max_tokens: {self.max_tokens}}}"
        )

    def extract_text(self, body: str) -> str:
        try:
            payload = json.loads(body)
            content = payload["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ValueError(f"Unexpected OpenAI response shape: {exc}") from exc
        if not isinstance(content, str):
            raise ValueError("Unexpected OpenAI response shape: content is not text")
        return content


PROVIDERS: dict[str, type[AnalysisProvider]] = {
    OpenAIProvider.name: OpenAIProvider,
}


def get_provider(name: str) -> AnalysisProvider:
    """
    Return the provider registered under `name` (case-insensitive).

    Raises:
        UnsupportedProvider: If no provider has that name.
    """
    key = (name or "").strip().lower()
    provider_cls = PROVIDERS.get(key)
    if provider_cls is None:
        raise UnsupportedProvider(name, sorted(PROVIDERS))
    return provider_cls()


class AnalysisClient:
    """Submit a payload already staged on the JobManager pod to a provider."""

    def __init__(
        self,
        executor: RemoteExecutor,
        coordinator: PodTarget,
        provider: AnalysisProvider,
        *,
        reporter: Reporter | None = None,
    ):
        self.executor = executor
        self.coordinator = coordinator
        self.provider = provider
        self.reporter = reporter or NullReporter()

    def submit(self, payload_path: str, credential: str | None) -> AnalysisResult | None:
        """
        POST the payload and return the provider's answer.

        Returns:
            The analysis, or None when no credential is configured (analysis
            is optional, so this only warns).

        Raises:
            ProviderRequestFailed: On transport failure, a non-200 status, or
                                   a response that cannot be unwrapped.
        """
        if not credential:
            self.reporter.warn(
                f"No API key configured for {self.provider.name}, skipping analysis"
            )
            return None

        self.reporter.info(f"Sending request to {self.provider.name} API...")
        result = self.executor.execute(
            self.coordinator, self.provider.request_command(payload_path, credential)
        )
        reply = parse_http_reply(result.stdout)
        if result.transport_failed or reply.code is None:
            raise ProviderRequestFailed(
                self.provider.name, None, reply.body or result.describe()
            )

        self.reporter.info(f"HTTP Status Code: {reply.code}")
        if reply.code != 200:
            raise ProviderRequestFailed(self.provider.name, reply.code, reply.body)

        try:
            text = self.provider.extract_text(reply.body)
        except ValueError as exc:
            raise ProviderRequestFailed(self.provider.name, reply.code, str(exc)) from exc

        self.reporter.success("Analysis request submitted successfully")
        return AnalysisResult(
            provider_name=self.provider.name,
            request_payload=payload_path,
            response_text=text,
        )
