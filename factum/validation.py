"""Error collection filled by entity validation hooks."""

from __future__ import annotations

from typing import Iterator


class Errors:
    """Ordered, per-attribute validation messages."""

    def __init__(self) -> None:
        self._messages: dict[str, list[str]] = {}

    def add(self, attribute: str, message: str) -> None:
        self._messages.setdefault(attribute, []).append(message)

    def get(self, attribute: str) -> list[str]:
        return list(self._messages.get(attribute, []))

    def clear(self) -> None:
        self._messages.clear()

    def full_messages(self) -> list[str]:
        """Messages prefixed with their attribute (``base`` messages stand alone)."""
        out: list[str] = []
        for attribute, message in self:
            out.append(message if attribute == "base" else f"{attribute} {message}")
        return out

    def to_dict(self) -> dict[str, list[str]]:
        return {k: list(v) for k, v in self._messages.items()}

    def __iter__(self) -> Iterator[tuple[str, str]]:
        for attribute, messages in self._messages.items():
            for message in messages:
                yield attribute, message

    def __len__(self) -> int:
        return sum(len(v) for v in self._messages.values())

    def __contains__(self, attribute: object) -> bool:
        return bool(self._messages.get(attribute))  # type: ignore[arg-type]

    def __repr__(self) -> str:
        return f"Errors({self.to_dict()!r})"
