"""
Boundary contract with the caller-owned correlation store.

The engine never stores correlation attributes itself. The caller saves them
with `put` before redirecting the user and reads them back exactly once with
`take` (get-and-delete) when the callback arrives; an absent value is reported
by the engine as CorrelationMissingError.
"""

from typing import Optional, Protocol

from .models import CorrelationAttributes


class CorrelationStore(Protocol):
    """Single-use storage for per-attempt correlation attributes."""

    def put(self, key: str, attributes: CorrelationAttributes) -> None:
        ...

    def take(self, key: str) -> Optional[CorrelationAttributes]:
        """Return and delete the attributes stored under key, if any."""
        ...


def correlation_key(provider: str) -> str:
    """Session key under which one provider's in-flight attempt is kept."""
    return f"{provider}-oauth-state"
