"""
otp_core.py — TOTP engine for the dashboard second factor.

Goals:
- Pure functions / small immutable engine object, callable from the HTTP
  backend and the CLI alike.
- Built from primitives: base32 decoding, 8-byte counter encoding, HMAC-SHA1
  and RFC 4226 dynamic truncation. No OTP library is involved.
- Interoperable with Google Authenticator, Authy and Microsoft Authenticator
  (SHA-1, 6 digits, 30 second steps).

Security notes:
- The engine never stores, caches or logs a secret. Persistence belongs to
  the caller.
- Secrets come from the `secrets` CSPRNG.
- Submitted codes are compared with hmac.compare_digest.
"""

import base64
import hashlib
import hmac
import inspect
import logging
import secrets
import struct
import time
from enum import Enum
from typing import Awaitable, Callable, NamedTuple, Optional, Union
from urllib.parse import quote

from .exceptions import DecodeError, HmacProviderError, ShortDigestError, TotpError

logger = logging.getLogger(__name__)

# --- Config / constants ----------------------------------------------------
DEFAULT_DIGITS = 6          # authenticator apps expect 6 digits
DEFAULT_TIME_STEP = 30      # TOTP step (seconds)
DEFAULT_WINDOW = 2          # +/- 2 steps = +/- 60s at 30s steps
SECRET_LENGTH = 32          # base32 characters in a generated secret
SHA1_DIGEST_SIZE = 20

BASE32_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_BASE32_INDEX = {char: index for index, char in enumerate(BASE32_ALPHABET)}
_MAX_COUNTER = (1 << 64) - 1
_CODE_MODULUS = 10 ** DEFAULT_DIGITS
_URI_COMPONENT_SAFE = "!'()*~"

# (key, message) -> digest, or an awaitable resolving to the digest
HmacProvider = Callable[[bytes, bytes], Union[bytes, Awaitable[bytes]]]
Clock = Callable[[], float]


# --- Base32 ----------------------------------------------------------------
def decode(secret_b32: str) -> bytes:
    """
    Decode a base32 secret (RFC 4648 alphabet) into raw key bytes.

    - Whitespace anywhere is ignored, trailing '=' padding is stripped.
    - Case-insensitive.
    - 5 bits per character are pushed into a bit buffer; every time 8 bits or
      more are buffered the high 8 bits become an output byte.
    - Leftover bits (< 8) at the end are discarded, like any base32 decoder.

    Empty or all-padding input decodes to b"". Callers that need a key must
    reject that themselves (the engine does).

    Raises:
        DecodeError: a character outside A-Z / 2-7, with its position in the
            original input.
    """
    if not isinstance(secret_b32, str):
        raise DecodeError(f"Secret must be a string, not {type(secret_b32).__name__}")

    chars = [(pos, char) for pos, char in enumerate(secret_b32) if not char.isspace()]
    while chars and chars[-1][1] == "=":
        chars.pop()

    output = bytearray()
    buffer = 0
    bits = 0
    for pos, char in chars:
        value = _BASE32_INDEX.get(char.upper())
        if value is None:
            raise DecodeError.invalid_character(char, pos)
        buffer = (buffer << 5) | value
        bits += 5
        if bits >= 8:
            bits -= 8
            output.append((buffer >> bits) & 0xFF)
            buffer &= (1 << bits) - 1
    return bytes(output)


def encode(data: bytes) -> str:
    """Base32-encode bytes, uppercase, without '=' padding."""
    return base64.b32encode(data).decode("ascii").rstrip("=")


# --- RFC helpers -----------------------------------------------------------
def encode_counter(time_step: int) -> bytes:
    """
    Encode a time step as the 8-byte big-endian counter RFC 4226 hashes.

    Bytes 0-3 carry the high 32 bits (zero for any realistic date), bytes
    4-7 the low 32 bits.

    Example: encode_counter(1) -> b'\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x01'

    Raises:
        ValueError: negative counter or one that does not fit in 64 bits.
    """
    if time_step < 0 or time_step > _MAX_COUNTER:
        raise ValueError(f"Counter out of range for an unsigned 64-bit value: {time_step}")
    return struct.pack(">Q", time_step)


def hmac_sha1(key: bytes, message: bytes) -> bytes:
    """Default HmacProvider: RFC 2104 HMAC with SHA-1 from the standard library."""
    return hmac.new(key, message, hashlib.sha1).digest()


def truncate(digest: bytes) -> int:
    """
    RFC 4226 dynamic truncation, reduced to a 6-digit integer.

    - offset = low nibble of byte 19
    - 4 bytes from offset, MSB of the first byte cleared (31-bit value)
    - result = value mod 10^6

    Raises:
        ShortDigestError: digest shorter than a SHA-1 digest (20 bytes).
    """
    if len(digest) < SHA1_DIGEST_SIZE:
        raise ShortDigestError(len(digest), SHA1_DIGEST_SIZE)
    offset = digest[SHA1_DIGEST_SIZE - 1] & 0x0F
    value = (
        ((digest[offset] & 0x7F) << 24)
        | ((digest[offset + 1] & 0xFF) << 16)
        | ((digest[offset + 2] & 0xFF) << 8)
        | (digest[offset + 3] & 0xFF)
    )
    return value % _CODE_MODULUS


def format_code(value: int) -> str:
    return str(value).zfill(DEFAULT_DIGITS)


# --- Secrets / provisioning ------------------------------------------------
def generate_secret(length: int = SECRET_LENGTH) -> str:
    """
    Generate a random base32 secret of `length` characters.

    Every character is drawn uniformly from the base32 alphabet with
    secrets.choice (CSPRNG); 32 characters carry 160 bits.
    """
    if length <= 0:
        raise ValueError(f"Secret length must be positive: {length}")
    return "".join(secrets.choice(BASE32_ALPHABET) for _ in range(length))


def build_uri(secret_b32: str, account_name: str, issuer: str) -> str:
    """
    Build the otpauth:// URI an authenticator app imports (usually via QR).

    otpauth://totp/{issuer}:{account}?secret={secret}&issuer={issuer}

    Issuer and account are percent-encoded as URI components, leaving
    A-Z a-z 0-9 - _ . ! ~ * ' ( ) unescaped; the secret is base32 and goes
    in verbatim.
    """
    issuer_q = quote(issuer, safe=_URI_COMPONENT_SAFE)
    account_q = quote(account_name, safe=_URI_COMPONENT_SAFE)
    return f"otpauth://totp/{issuer_q}:{account_q}?secret={secret_b32}&issuer={issuer_q}"


# --- Results ---------------------------------------------------------------
class GenerateResult(NamedTuple):
    """Outcome of try_generate: exactly one of `code` / `error` is set."""

    code: Optional[str]
    error: Optional[TotpError]

    @property
    def ok(self) -> bool:
        return self.error is None


class VerificationOutcome(Enum):
    MATCH = "match"
    NO_MATCH = "no_match"
    # every candidate in the window failed to compute (bad secret, broken provider)
    UNAVAILABLE = "unavailable"


def _check_step(step: int) -> int:
    if step <= 0:
        raise ValueError(f"Step duration must be positive: {step}")
    return step


def _check_window(window: int) -> int:
    if window < 0:
        raise ValueError(f"Verification window must not be negative: {window}")
    return window


def _normalise_token(token) -> Optional[bytes]:
    if not isinstance(token, str):
        return None
    token = token.strip()
    if len(token) != DEFAULT_DIGITS:
        return None
    return token.encode("utf-8")


def _check_digest(digest) -> bytes:
    if not isinstance(digest, (bytes, bytearray, memoryview)):
        raise HmacProviderError(f"HMAC provider returned {type(digest).__name__}, expected bytes")
    return bytes(digest)


def _outcome(attempts: int, failures: int) -> VerificationOutcome:
    if attempts and failures == attempts:
        logger.warning("TOTP verification unavailable: all %d candidate computations failed", attempts)
        return VerificationOutcome.UNAVAILABLE
    return VerificationOutcome.NO_MATCH


# --- Engine ----------------------------------------------------------------
class TotpEngine:
    """
    TOTP generator / verifier bound to an HMAC provider.

    Holds configuration only (provider, default step, default window,
    clock); no call mutates it, so one instance can be shared between
    threads and tasks.

    Arguments:
        hmac_provider: callable(key, message) -> digest bytes, or an
            awaitable of them (use the a* methods for those)
        step: default step duration in seconds
        window: default verification window in steps
        clock: returns the current unix time in seconds
    """

    def __init__(
        self,
        hmac_provider: HmacProvider = hmac_sha1,
        step: int = DEFAULT_TIME_STEP,
        window: int = DEFAULT_WINDOW,
        clock: Clock = time.time,
    ):
        self.hmac_provider = hmac_provider
        self.step = _check_step(step)
        self.window = _check_window(window)
        self.clock = clock

    def __repr__(self) -> str:
        return f"{type(self).__name__}(step={self.step}, window={self.window})"

    # helpers
    def time_step(self, timestamp: Optional[float] = None, step: Optional[int] = None) -> int:
        """floor(timestamp / step); timestamp defaults to the clock."""
        step = self.step if step is None else _check_step(step)
        if timestamp is None:
            timestamp = self.clock()
        return int(timestamp // step)

    def remaining_seconds(self, timestamp: Optional[float] = None, step: Optional[int] = None) -> int:
        """Seconds until the code for `timestamp` rolls over."""
        step = self.step if step is None else _check_step(step)
        if timestamp is None:
            timestamp = self.clock()
        return step - (int(timestamp) % step)

    def _key(self, secret_b32: str) -> bytes:
        key = decode(secret_b32)
        if not key:
            raise DecodeError("Secret decodes to an empty key")
        return key

    def _call_provider(self, key: bytes, counter: bytes):
        try:
            return self.hmac_provider(key, counter)
        except Exception as exc:
            raise HmacProviderError(f"HMAC provider failed: {exc!r}") from exc

    def _digest(self, key: bytes, time_step: int) -> bytes:
        digest = self._call_provider(key, encode_counter(time_step))
        if inspect.isawaitable(digest):
            if inspect.iscoroutine(digest):
                digest.close()
            raise HmacProviderError("HMAC provider is asynchronous; use the agenerate/averify methods")
        return _check_digest(digest)

    async def _adigest(self, key: bytes, time_step: int) -> bytes:
        digest = self._call_provider(key, encode_counter(time_step))
        if inspect.isawaitable(digest):
            try:
                digest = await digest
            except Exception as exc:
                raise HmacProviderError(f"HMAC provider failed: {exc!r}") from exc
        return _check_digest(digest)

    # generation
    def generate_at_step(self, secret_b32: str, time_step: int) -> str:
        """Code for an explicit time step (the HOTP counter)."""
        key = self._key(secret_b32)
        return format_code(truncate(self._digest(key, time_step)))

    def generate(self, secret_b32: str, timestamp: Optional[float] = None, step: Optional[int] = None) -> str:
        """
        6-digit TOTP code for `secret_b32` at `timestamp` (default: now).

        Steps:
        1. base32-decode the secret
        2. time step = floor(timestamp / step)
        3. 8-byte big-endian counter
        4. HMAC-SHA1(key, counter) through the provider
        5. dynamic truncation mod 10^6
        6. zero-pad to 6 characters

        Raises:
            DecodeError: malformed or empty secret
            ShortDigestError: the provider returned < 20 bytes
            HmacProviderError: the provider raised, returned non-bytes, or
                is asynchronous
            ValueError: non-positive step, or a timestamp before the epoch
        """
        return self.generate_at_step(secret_b32, self.time_step(timestamp, step))

    def try_generate(
        self, secret_b32: str, timestamp: Optional[float] = None, step: Optional[int] = None
    ) -> GenerateResult:
        """Like generate(), but returns pipeline failures instead of raising them."""
        try:
            return GenerateResult(self.generate(secret_b32, timestamp, step), None)
        except TotpError as exc:
            return GenerateResult(None, exc)

    async def agenerate_at_step(self, secret_b32: str, time_step: int) -> str:
        key = self._key(secret_b32)
        return format_code(truncate(await self._adigest(key, time_step)))

    async def agenerate(self, secret_b32: str, timestamp: Optional[float] = None, step: Optional[int] = None) -> str:
        """generate() for providers that may return awaitables."""
        return await self.agenerate_at_step(secret_b32, self.time_step(timestamp, step))

    # verification
    def verify_detailed(
        self,
        token: str,
        secret_b32: str,
        window: Optional[int] = None,
        step: Optional[int] = None,
        timestamp: Optional[float] = None,
    ) -> VerificationOutcome:
        """
        Check `token` against the codes of the steps current-window..current+window.

        - A token that is not 6 characters after strip() is a NO_MATCH with
          no HMAC computed.
        - Steps before the epoch are skipped.
        - A TotpError for one step counts as a non-match for that step and
          the loop goes on. If every step failed the result is UNAVAILABLE.
        """
        window = self.window if window is None else _check_window(window)
        step = self.step if step is None else _check_step(step)
        candidate = _normalise_token(token)
        if candidate is None:
            return VerificationOutcome.NO_MATCH

        current = self.time_step(timestamp, step)
        attempts = failures = 0
        for offset in range(-window, window + 1):
            time_step = current + offset
            if time_step < 0:
                continue
            attempts += 1
            try:
                expected = self.generate_at_step(secret_b32, time_step)
            except TotpError as exc:
                failures += 1
                logger.debug("TOTP candidate at offset %+d failed: %s", offset, exc)
                continue
            if hmac.compare_digest(expected.encode("ascii"), candidate):
                logger.debug("TOTP matched at offset %+d", offset)
                return VerificationOutcome.MATCH
        return _outcome(attempts, failures)

    def verify(
        self,
        token: str,
        secret_b32: str,
        window: Optional[int] = None,
        step: Optional[int] = None,
        timestamp: Optional[float] = None,
    ) -> bool:
        """True when `token` matches a code inside the window. Never raises for a bad secret."""
        return self.verify_detailed(token, secret_b32, window, step, timestamp) is VerificationOutcome.MATCH

    async def averify_detailed(
        self,
        token: str,
        secret_b32: str,
        window: Optional[int] = None,
        step: Optional[int] = None,
        timestamp: Optional[float] = None,
    ) -> VerificationOutcome:
        window = self.window if window is None else _check_window(window)
        step = self.step if step is None else _check_step(step)
        candidate = _normalise_token(token)
        if candidate is None:
            return VerificationOutcome.NO_MATCH

        current = self.time_step(timestamp, step)
        attempts = failures = 0
        for offset in range(-window, window + 1):
            time_step = current + offset
            if time_step < 0:
                continue
            attempts += 1
            try:
                expected = await self.agenerate_at_step(secret_b32, time_step)
            except TotpError as exc:
                failures += 1
                logger.debug("TOTP candidate at offset %+d failed: %s", offset, exc)
                continue
            if hmac.compare_digest(expected.encode("ascii"), candidate):
                return VerificationOutcome.MATCH
        return _outcome(attempts, failures)

    async def averify(
        self,
        token: str,
        secret_b32: str,
        window: Optional[int] = None,
        step: Optional[int] = None,
        timestamp: Optional[float] = None,
    ) -> bool:
        outcome = await self.averify_detailed(token, secret_b32, window, step, timestamp)
        return outcome is VerificationOutcome.MATCH


# --- Module-level API ------------------------------------------------------
_default_engine = TotpEngine()


def generate(secret_b32: str, timestamp: Optional[float] = None, step: int = DEFAULT_TIME_STEP) -> str:
    """6-digit code for `secret_b32` at `timestamp` (default: now). See TotpEngine.generate."""
    return _default_engine.generate(secret_b32, timestamp, step)


def try_generate(secret_b32: str, timestamp: Optional[float] = None, step: int = DEFAULT_TIME_STEP) -> GenerateResult:
    return _default_engine.try_generate(secret_b32, timestamp, step)


def verify(
    token: str,
    secret_b32: str,
    window: int = DEFAULT_WINDOW,
    step: int = DEFAULT_TIME_STEP,
    timestamp: Optional[float] = None,
) -> bool:
    """True when `token` is valid for `secret_b32` within +/- `window` steps."""
    return _default_engine.verify(token, secret_b32, window, step, timestamp)


def verify_detailed(
    token: str,
    secret_b32: str,
    window: int = DEFAULT_WINDOW,
    step: int = DEFAULT_TIME_STEP,
    timestamp: Optional[float] = None,
) -> VerificationOutcome:
    return _default_engine.verify_detailed(token, secret_b32, window, step, timestamp)


def remaining_seconds(timestamp: Optional[float] = None, step: int = DEFAULT_TIME_STEP) -> int:
    return _default_engine.remaining_seconds(timestamp, step)
