"""Shared fixtures for doc_chat tests."""

from typing import Optional

import pytest

from doc_chat.errors import GenerationError


class ScriptedGenerator:
    """Generator double that replays a script of answers and failures.

    Each entry is either a string (returned) or an exception instance
    (raised). The last entry repeats once the script runs out.
    """

    def __init__(self, *script):
        self.script = list(script) or ["ok"]
        self.prompts: list[str] = []
        self.timeouts: list[Optional[float]] = []

    def generate(self, prompt: str, timeout: Optional[float] = None) -> str:
        self.prompts.append(prompt)
        self.timeouts.append(timeout)
        step = self.script[min(len(self.prompts), len(self.script)) - 1]
        if isinstance(step, Exception):
            raise step
        return step


@pytest.fixture
def scripted():
    """Factory for ScriptedGenerator instances."""
    return ScriptedGenerator


@pytest.fixture
def failing():
    """A GenerationError to place in generator scripts."""
    return GenerationError("quota exceeded")
