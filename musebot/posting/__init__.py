"""Rate-gated external posting."""

from musebot.posting.gate import EmitResult, RateGate
from musebot.posting.transport import (
    NullTransport,
    PostingTransport,
    PostResult,
    TwitterApiTransport,
)

__all__ = [
    "EmitResult",
    "NullTransport",
    "PostResult",
    "PostingTransport",
    "RateGate",
    "TwitterApiTransport",
]
