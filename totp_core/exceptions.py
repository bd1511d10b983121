"""Exceptions raised by the TOTP engine."""

from typing import Optional


class TotpError(Exception):
    """Base class for every failure of the code-generation pipeline."""


class DecodeError(TotpError, ValueError):
    """
    The secret is not valid base32.

    Carries the offending character and its index in the original input so
    that a malformed secret can be diagnosed without logging the secret.
    """

    def __init__(self, message: str, character: Optional[str] = None, position: Optional[int] = None):
        super().__init__(message)
        self.character = character
        self.position = position

    @classmethod
    def invalid_character(cls, character: str, position: int) -> "DecodeError":
        return cls(
            f"Invalid base32 character {character!r} at position {position}",
            character=character,
            position=position,
        )


class HmacProviderError(TotpError):
    """The HMAC provider raised, returned something other than bytes, or is async on the sync path."""


class ShortDigestError(TotpError):
    """The HMAC provider returned fewer bytes than a SHA-1 digest. Not retried."""

    def __init__(self, length: int, expected: int = 20):
        super().__init__(f"HMAC digest too short: got {length} bytes, need at least {expected}")
        self.length = length
        self.expected = expected
