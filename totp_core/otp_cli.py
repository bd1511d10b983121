#!/usr/bin/env python3
"""
otp_cli.py — CLI wrapper around otp_core.py

Subcommands:
- secret : print a fresh base32 secret
- code   : print the current TOTP code for a secret
- verify : check a code against a secret
- uri    : print the otpauth:// provisioning URI

The secret is never read from or written to disk: pass --secret or set
DASHOTP_SECRET.

eg..:
    dashotp secret
    dashotp code --secret JBSWY3DPEHPK3PXP
    DASHOTP_SECRET=JBSWY3DPEHPK3PXP dashotp verify --code 123456 --window 1
    dashotp uri --secret JBSWY3DPEHPK3PXP --account alice@example.com --issuer Dashboard
"""

import argparse
import logging
import os
import sys

from . import otp_core
from .exceptions import TotpError

logger = logging.getLogger(__name__)

SECRET_ENV = "DASHOTP_SECRET"

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_ERROR = 2


def _secret(args) -> str:
    secret = args.secret or os.environ.get(SECRET_ENV, "")
    if not secret:
        raise ValueError(f"No secret given; use --secret or set {SECRET_ENV}")
    return secret


# --- CLI command handlers ---
def cmd_secret(args) -> int:
    print(otp_core.generate_secret(args.length))
    return EXIT_OK


def cmd_code(args) -> int:
    secret = _secret(args)
    code = otp_core.generate(secret, args.timestamp, args.period)
    remaining = otp_core.remaining_seconds(args.timestamp, args.period)
    logger.debug("TOTP: period=%ds, remaining=%ds", args.period, remaining)
    print(f"{code}  (valid ~{remaining:2d}s)")
    return EXIT_OK


def cmd_verify(args) -> int:
    secret = _secret(args)
    outcome = otp_core.verify_detailed(
        args.code, secret, window=args.window, step=args.period, timestamp=args.timestamp
    )
    if outcome is otp_core.VerificationOutcome.MATCH:
        print("[+] TOTP code is VALID")
        return EXIT_OK
    if outcome is otp_core.VerificationOutcome.UNAVAILABLE:
        print("[!] TOTP code could not be checked (is the secret valid base32?)")
        return EXIT_ERROR
    print("[-] TOTP code is INVALID")
    return EXIT_INVALID


def cmd_uri(args) -> int:
    print(otp_core.build_uri(_secret(args), args.account, args.issuer))
    return EXIT_OK


def cmd_help(args) -> int:
    print("'dashotp -h' for help.")
    return EXIT_OK


# --- Argparse builder ---
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="dashotp", description="TOTP (HMAC-SHA1) generator and verifier")
    p.add_argument("--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="cmd")
    p.set_defaults(func=cmd_help)

    # secret
    ps = sub.add_parser("secret", help="Generate a random base32 secret")
    ps.add_argument("--length", type=int, default=otp_core.SECRET_LENGTH, help="Number of base32 characters")
    ps.set_defaults(func=cmd_secret)

    # code
    pc = sub.add_parser("code", help="Print the current TOTP code")
    pc.add_argument("--secret", help=f"Base32 secret (default: ${SECRET_ENV})")
    pc.add_argument("--period", type=int, default=otp_core.DEFAULT_TIME_STEP, help="TOTP time step (seconds)")
    pc.add_argument("--timestamp", type=int, help="Unix time to use instead of now")
    pc.set_defaults(func=cmd_code)

    # verify
    pv = sub.add_parser("verify", help="Verify a TOTP code")
    pv.add_argument("--secret", help=f"Base32 secret (default: ${SECRET_ENV})")
    pv.add_argument("--code", required=True, help="6-digit code to verify")
    pv.add_argument("--window", type=int, default=otp_core.DEFAULT_WINDOW, help="Allowed +/- step window")
    pv.add_argument("--period", type=int, default=otp_core.DEFAULT_TIME_STEP, help="TOTP time step (seconds)")
    pv.add_argument("--timestamp", type=int, help="Unix time to use instead of now")
    pv.set_defaults(func=cmd_verify)

    # uri
    pu = sub.add_parser("uri", help="Print the otpauth:// provisioning URI")
    pu.add_argument("--secret", help=f"Base32 secret (default: ${SECRET_ENV})")
    pu.add_argument("--account", default="user@example.com", help="Account label")
    pu.add_argument("--issuer", default="Dashboard", help="Issuer label")
    pu.set_defaults(func=cmd_uri)

    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except (TotpError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
