"""Scripted generative backend for tests."""

from typing import Any


class FakeBackend:
    """
    Replays queued outputs in order and records every call.

    A queued ``Exception`` is raised instead of returned. A queued callable is
    called with the call record and its result is returned, which lets a test
    echo back what the backend was given.
    """

    def __init__(self, *outputs: Any):
        self.outputs: list[Any] = list(outputs)
        self.calls: list[dict[str, Any]] = []

    def queue(self, *outputs: Any) -> "FakeBackend":
        self.outputs.extend(outputs)
        return self

    def _next(self, call: dict[str, Any]) -> Any:
        self.calls.append(call)
        if not self.outputs:
            raise AssertionError(f"FakeBackend has no output queued for call #{len(self.calls)}")
        output = self.outputs.pop(0)
        if isinstance(output, Exception):
            raise output
        if callable(output):
            return output(call)
        return output

    async def complete_structured(
        self,
        system: str,
        prompt: str,
        tool: dict[str, Any],
        max_tokens: int = 4096,
        temperature: float = 0.3,
    ) -> dict[str, Any]:
        return self._next(
            {"kind": "structured", "system": system, "prompt": prompt, "tool": tool["name"]}
        )

    async def complete_text(
        self,
        system: str,
        prompt: str,
        max_tokens: int = 4096,
        temperature: float = 0.3,
    ) -> str:
        return self._next({"kind": "text", "system": system, "prompt": prompt})

    @property
    def tools_called(self) -> list[str]:
        return [c["tool"] for c in self.calls if c["kind"] == "structured"]
