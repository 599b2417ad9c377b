from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from dslforge.generation.errors import CapabilityError


class GenerationBackend(Protocol):
    """Opaque text-generation capability.

    Implementations return the raw response text or raise
    :class:`CapabilityError`.
    """

    def generate(self, prompt: str, *, system: str = "") -> str: ...


class ScriptedBackend:
    """Backend that replays canned responses in order, for testing.

    Each scripted item is either the response text or an exception instance
    to raise for that call.
    """

    def __init__(self, responses: Iterable[str | Exception] = ()) -> None:
        self._responses = list(responses)
        self.calls: list[tuple[str, str]] = []

    def generate(self, prompt: str, *, system: str = "") -> str:
        self.calls.append((system, prompt))
        if not self._responses:
            raise CapabilityError("Scripted backend has no responses left")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def prompts(self) -> list[str]:
        return [prompt for _, prompt in self.calls]

    @property
    def remaining(self) -> int:
        return len(self._responses)
