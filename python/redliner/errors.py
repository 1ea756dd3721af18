"""
Typed errors raised by the generation pipeline.

Callers map InputError to a client-facing validation failure; the other two
mean the call failed and no byte buffer was produced.
"""


class RedlinerError(Exception):
    """Base class for every error raised by redliner."""


class InputError(RedlinerError, ValueError):
    """Original or edited text is missing, empty after trimming, or not a string."""


class ConsistencyError(RedlinerError, AssertionError):
    """
    The mapped runs do not replay to the inputs.
    Raised instead of emitting a silently corrupt document.
    """

    def __init__(self, view: str, expected: str, actual: str):
        self.view = view
        self.expected = expected
        self.actual = actual
        position = _first_mismatch(expected, actual)
        super().__init__(
            f"Reconstructed {view} text differs from input at offset {position} "
            f"(expected {len(expected)} chars, got {len(actual)})"
        )


class SerializationError(RedlinerError):
    """XML rendering or ZIP packaging failed."""


def _first_mismatch(a: str, b: str) -> int:
    limit = min(len(a), len(b))
    for i in range(limit):
        if a[i] != b[i]:
            return i
    return limit
