"""Command line access to the password, OTP and challenge steps."""
from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from typing import Any, List, Optional, Sequence

from .client import RelyingPartyClient
from .config import configure_logging, load_settings
from .encoding import encode
from .errors import RelyingPartyError
from .models import ChallengeType, Token

LOGGER = logging.getLogger("relying_party.cli")


def convert_bytes_for_json(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return encode(bytes(value))
    if isinstance(value, dict):
        return {key: convert_bytes_for_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [convert_bytes_for_json(item) for item in value]
    return value


def render_result(result: Any) -> str:
    if hasattr(result, "to_dict"):
        data = result.to_dict()
    elif dataclasses.is_dataclass(result):
        data = dataclasses.asdict(result)
    else:
        data = result
    return json.dumps(convert_bytes_for_json(data), indent=2, sort_keys=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="relying-party",
        description="Talk to a passkey relying party server.",
    )
    parser.add_argument(
        "--base-url",
        help="Relying party server address (defaults to RELYING_PARTY_BASE_URL).",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    authenticate = subcommands.add_parser("authenticate", help="Sign in with a password.")
    authenticate.add_argument("username")
    authenticate.add_argument("password")

    signup = subcommands.add_parser("signup", help="Start a sign-up and send an OTP.")
    signup.add_argument("name")
    signup.add_argument("email")

    validate = subcommands.add_parser("validate", help="Complete a sign-up with its OTP.")
    validate.add_argument("transaction_id")
    validate.add_argument("otp")

    challenge = subcommands.add_parser("challenge", help="Fetch FIDO2 credential options.")
    challenge.add_argument(
        "--type",
        dest="challenge_type",
        choices=[item.value for item in ChallengeType],
        default=ChallengeType.ASSERTION.value,
    )
    challenge.add_argument("--display-name")
    challenge.add_argument("--access-token", help="Bearer token authorizing the request.")
    challenge.add_argument("--token-type", default="Bearer")

    return parser


async def run_command(client: RelyingPartyClient, args: argparse.Namespace) -> Any:
    if args.command == "authenticate":
        return await client.authenticate(args.username, args.password)
    if args.command == "signup":
        return await client.signup(args.name, args.email)
    if args.command == "validate":
        return await client.validate(args.transaction_id, args.otp)
    if args.command == "challenge":
        token = None
        if args.access_token:
            token = Token(access_token=args.access_token, expires_in=0, token_type=args.token_type)
        return await client.challenge(
            args.challenge_type,
            display_name=args.display_name,
            token=token,
        )
    raise ValueError(f"unknown command {args.command!r}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        settings = load_settings()
    except ValueError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 1

    configure_logging(settings.log_level)

    if args.base_url:
        settings = dataclasses.replace(settings, base_url=args.base_url)

    try:
        client = RelyingPartyClient.from_settings(settings)
    except ValueError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 1

    try:
        result = asyncio.run(run_command(client, args))
    except RelyingPartyError as exc:
        LOGGER.error("%s failed (%s): %s", args.command, exc.kind.value, exc)
        return 1

    sys.stdout.write(render_result(result) + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
