"""
Exceptions raised by the RefID subsystem.

Only the operations that cannot recover at this layer raise: explicit
assert-style validation, allocation exhaustion and strict base32
decoding. Everything else reports failure through return values.
"""


class RefIdError(ValueError):
    """Base class for RefID errors."""

    pass


class InvalidRefIdError(RefIdError):
    """Raised when an input that must be a valid RefID is not."""

    def __init__(self, value: str):
        super().__init__(f"Invalid RefID: {value}")
        self.value = value


class RefIdAllocationError(RefIdError):
    """Exception raised when no unique RefID could be reserved."""

    def __init__(self, kind: str, attempts: int = 0):
        super().__init__(
            f"Could not allocate a unique RefID for {kind} after {attempts} attempts"
        )
        self.kind = kind
        self.attempts = attempts


class Base32DecodeError(RefIdError):
    """Raised by strict base32 decoding on malformed input."""

    pass
