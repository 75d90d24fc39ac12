"""Shared error types for musebot.

Goal: every failure is caught by the component that detects it and turned
into a result value. These types name the failure classes at those seams.
"""


class MusebotError(Exception):
    """Base error for musebot."""


class ContainmentViolation(MusebotError):
    """Path, extension, size or command outside the sandbox policy."""


class TransportFailure(MusebotError):
    """An outbound call (oracle or posting) failed."""


class ProviderCallError(TransportFailure):
    """LLM/provider call failed (network/auth/model/etc.)."""


class DecodeFailure(MusebotError):
    """Oracle output could not be turned into an action directive."""


class PersistenceFailure(MusebotError):
    """Durable memory read or write failed."""


class BudgetExceeded(MusebotError):
    """Posting interval or daily quota not met."""
