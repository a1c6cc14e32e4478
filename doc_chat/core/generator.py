"""Text generation backends.

The core treats generation as an opaque capability: a prompt string in,
answer text out, GenerationError on any failure. Backends are built once
and injected; nothing here is a process-wide singleton.
"""

from typing import Optional, Protocol

from ..errors import GenerationError


class Generator(Protocol):
    """Protocol for text generation backends.

    This protocol defines the interface that all generation backends must implement.
    It allows switching between API-based services and test doubles.
    """

    def generate(self, prompt: str, timeout: Optional[float] = None) -> str:
        """Generate a response for a single prompt.

        Args:
            prompt: The full instruction string.
            timeout: Seconds to wait before giving up (backend default if None).

        Returns:
            Generated text response

        Raises:
            GenerationError: On network failure, quota exhaustion or a
                malformed response.
        """
        ...


class APIGenerator:
    """API-based backend for OpenAI-compatible chat completion services."""

    def __init__(
        self,
        client,
        model: str = "llama-3.1-8b-instant",
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout: float = 30.0,
    ):
        """Initialize with an API client.

        Args:
            client: An OpenAI-compatible client (OpenAI, Groq, etc.)
            model: Model identifier to use
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            timeout: Default request timeout in seconds
        """
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    def generate(self, prompt: str, timeout: Optional[float] = None) -> str:
        """Generate using a chat completion call.

        Args:
            prompt: The full instruction string, sent as one user message
            timeout: Per-call timeout override in seconds

        Returns:
            Generated text response

        Raises:
            GenerationError: If the call fails or returns no content
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except Exception as e:
            raise GenerationError(f"Failed to generate response: {e}") from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise GenerationError(f"Malformed response from {self.model}") from e

        if not content or not content.strip():
            raise GenerationError(f"Empty response from {self.model}")
        return content.strip()

    @classmethod
    def from_settings(
        cls,
        api_key: str,
        base_url: Optional[str] = None,
        model: str = "llama-3.1-8b-instant",
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout: float = 30.0,
    ) -> "APIGenerator":
        """Create a generator with an OpenAI-compatible client.

        Args:
            api_key: API key for the service
            base_url: Service endpoint (e.g. Groq's OpenAI-compatible URL)
            model: Model identifier
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            timeout: Default request timeout in seconds

        Returns:
            Configured APIGenerator instance
        """
        from openai import OpenAI

        # Retries are a caller-level policy
        client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)
        return cls(client, model=model, temperature=temperature, max_tokens=max_tokens, timeout=timeout)


class DummyGenerator:
    """Dummy generator for testing without a real model."""

    def __init__(self, response_prefix: str = "This is a test response"):
        """Initialize with a fixed response prefix.

        Args:
            response_prefix: Prefix for generated responses
        """
        self.response_prefix = response_prefix
        self.call_count = 0
        self.prompts: list[str] = []

    def generate(self, prompt: str, timeout: Optional[float] = None) -> str:
        """Generate a dummy response.

        Args:
            prompt: Recorded and echoed (truncated) in the response
            timeout: Ignored

        Returns:
            Dummy response string
        """
        self.call_count += 1
        self.prompts.append(prompt)
        first_line = prompt.strip().splitlines()[0] if prompt.strip() else "empty prompt"
        return f"{self.response_prefix} to: {first_line[:50]}... (call #{self.call_count})"
