"""
Text generation provider protocol and the Groq implementation.

The provider only generates or raises; deciding what a failure means for
the request is the policy's job.
"""
from typing import Callable, Optional, Protocol
import logging

import groq

from studyforge.models.generation import GenerationParams

logger = logging.getLogger("studyforge")

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert educational content creator who specializes in creating "
    "high-quality, informative study material for students. You format your "
    "responses in clear, organized markdown."
)


class ProviderError(Exception):
    """Base class for text generation failures."""


class ProviderNotConfiguredError(ProviderError):
    """Raised when the provider has no credentials."""


class ProviderResponseError(ProviderError):
    """Raised when the provider answers with an empty or malformed payload."""


class TextGenerationProvider(Protocol):
    def generate(self, params: GenerationParams) -> str:
        """
        Return generated text for ``params``.

        Raises:
            ProviderNotConfiguredError: credentials missing
            ProviderResponseError: empty or malformed response
            Exception: transport or API errors from the underlying client
        """
        ...


class GroqProvider:
    """
    Groq chat-completions backed provider (non-streaming).

    One attempt per call: the SDK's own retries are disabled so a failure
    reaches the fallback immediately and an abandoned call stops after a
    single request.
    """

    def __init__(
        self,
        api_key: Optional[str],
        *,
        timeout: Optional[float] = None,
        client_factory: Callable[..., object] = groq.Groq,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self._client_factory = client_factory
        self._client = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self):
        if self._client is None:
            options = {"api_key": self.api_key, "max_retries": 0}
            if self.timeout is not None:
                options["timeout"] = self.timeout
            self._client = self._client_factory(**options)
        return self._client

    def generate(self, params: GenerationParams) -> str:
        if not self.configured:
            raise ProviderNotConfiguredError("GROQ_API_KEY is not configured")

        logger.info(f"[generation] calling Groq model={params.model} prompt={params.prompt[:50]}...")
        completion = self._get_client().chat.completions.create(
            messages=[
                {
                    "role": "system",
                    "content": params.system_prompt or DEFAULT_SYSTEM_PROMPT,
                },
                {
                    "role": "user",
                    "content": params.prompt,
                },
            ],
            model=params.model,
            temperature=params.temperature,
            max_tokens=params.max_tokens,
        )

        try:
            text = completion.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            raise ProviderResponseError(f"Malformed completion payload: {exc}") from exc
        if not text or not text.strip():
            raise ProviderResponseError("Provider returned empty content")
        return text
