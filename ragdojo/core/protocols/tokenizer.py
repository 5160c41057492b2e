"""Token counter protocol for dependency injection."""
from typing import Protocol, runtime_checkable


@runtime_checkable
class TokenCounterProtocol(Protocol):
    """Protocol for counting prompt tokens."""

    def count(self, text: str) -> int:
        ...
