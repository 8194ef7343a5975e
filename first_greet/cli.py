"""Command-line entry point: provision First Greet once and exit."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from pydantic import ValidationError

from first_greet.config import Settings, load_settings
from first_greet.dialogue import build_llm_document, check_state_machine
from first_greet.provisioning import ProvisioningError, ProvisioningResult, provision
from first_greet.retell_client import RetellClient

logger = logging.getLogger(__name__)

RULE = "═" * 59


def _build_client(settings: Settings) -> RetellClient:
    return RetellClient.from_settings(settings)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="first-greet-setup",
        description="Create the First Greet screening LLM, attach it to the agent and bind the phone number.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="build and check the dialogue document, print it, and make no API calls",
    )
    parser.add_argument("--env-file", help="read settings from this file instead of .env")
    return parser.parse_args(argv)


def _print_summary(result: ProvisioningResult, settings: Settings) -> None:
    owner = settings.owner_name
    phone = result.phone.pretty if result.phone else "Check dashboard"
    print(RULE)
    print("FIRST GREET SETUP COMPLETE!")
    print(RULE)
    print()
    print("Summary:")
    print(f"  • LLM ID:        {result.llm.llm_id}")
    print(f"  • Agent ID:      {result.agent.agent_id}")
    print(f"  • Phone Number:  {phone}")
    print()
    print("Call Flow:")
    print(f"  1. Caller reaches {settings.agent_name}")
    print(f"  2. AI screens → Legitimate? → Calls {owner} for approval")
    print(f'  3. {owner} says "take it" → Connects | "pass" → Takes message')
    print(f"  4. Spam detected → Voicemail mode ({owner} never rings)")
    print()
    print("Note: SMS notifications require additional webhook setup.")
    print(RULE)


def _dry_run(settings: Settings) -> int:
    document = build_llm_document(settings)
    print(json.dumps(document.to_payload(), indent=2))
    problems = check_state_machine(document)
    for problem in problems:
        print(f"✗ {problem}", file=sys.stderr)
    return 1 if problems else 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    try:
        settings = load_settings(args.env_file)
    except ValidationError as exc:
        print(f"✗ Invalid configuration:\n{exc}", file=sys.stderr)
        return 1

    logging.basicConfig(level=settings.log_level)

    if args.dry_run:
        return _dry_run(settings)

    print(f"Starting {settings.agent_name} setup...\n")
    try:
        result = asyncio.run(provision(settings, client=_build_client(settings), progress=print))
    except ProvisioningError as exc:
        logger.debug("Provisioning failed", exc_info=True)
        print(f"✗ Setup failed: {exc}", file=sys.stderr)
        print(f"  Full error: {json.dumps(exc.to_dict(), indent=2, default=str)}", file=sys.stderr)
        return 1

    _print_summary(result, settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
