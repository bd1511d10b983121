"""
totp_core package
=================

TOTP engine (RFC 6238, HMAC-SHA1, 6 digits, 30 s) guarding the dashboard
with a second authentication factor.

──────────────────────────────────────────────
Core algorithm
──────────────────────────────────────────────
- Base32: secret string -> key bytes (5 bits per character).
- Counter: floor(unix_time / step) as an 8-byte big-endian integer.
- HMAC-SHA1(key, counter) -> 20-byte digest (injected HmacProvider).
- Dynamic truncation: 4 bytes at offset (digest[19] & 0x0F), top bit
  cleared, mod 10^6, zero-padded to 6 digits.
- Verification tries steps -window..+window (default +/- 2) around now.

──────────────────────────────────────────────
Usage
──────────────────────────────────────────────
1. Login flow
        from totp_core import verify
        if verify(submitted_code, stored_secret):
            login_ok = True

2. Setup flow (render the URI as a QR code elsewhere)
        from totp_core import generate_secret, build_uri
        secret = generate_secret()
        uri = build_uri(secret, "alice@example.com", "Dashboard")

3. Custom / async HMAC provider
        from totp_core import TotpEngine
        engine = TotpEngine(hmac_provider=my_provider)
        ok = await engine.averify(code, secret)

The engine never stores secrets; persisting them is the caller's job.
"""

from .exceptions import DecodeError, HmacProviderError, ShortDigestError, TotpError
from .otp_core import (
    BASE32_ALPHABET,
    DEFAULT_DIGITS,
    DEFAULT_TIME_STEP,
    DEFAULT_WINDOW,
    SECRET_LENGTH,
    GenerateResult,
    HmacProvider,
    TotpEngine,
    VerificationOutcome,
    build_uri,
    decode,
    encode,
    encode_counter,
    generate,
    generate_secret,
    hmac_sha1,
    remaining_seconds,
    truncate,
    try_generate,
    verify,
    verify_detailed,
)

__all__ = [
    "BASE32_ALPHABET",
    "DEFAULT_DIGITS",
    "DEFAULT_TIME_STEP",
    "DEFAULT_WINDOW",
    "SECRET_LENGTH",
    "DecodeError",
    "GenerateResult",
    "HmacProviderError",
    "HmacProvider",
    "ShortDigestError",
    "TotpEngine",
    "TotpError",
    "VerificationOutcome",
    "build_uri",
    "decode",
    "encode",
    "encode_counter",
    "generate",
    "generate_secret",
    "hmac_sha1",
    "remaining_seconds",
    "truncate",
    "try_generate",
    "verify",
    "verify_detailed",
]
