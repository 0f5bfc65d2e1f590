#!/usr/bin/env python3
"""
Try the model gateway against the real provider.

Builds a ``ModelGateway`` from the configured settings (``.env`` or
environment) and asks a few typical support questions, one of them with a
prior conversation as context.  Failures print the user-safe message plus
the technical one, which is a quick way to check credentials and network
access before starting the server.

Usage:
    python scripts/demo_chat.py
    python scripts/demo_chat.py --question "Do you ship to Canada?"
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from support_chat.config import get_settings
from support_chat.domain.exceptions import ModelGatewayError
from support_chat.domain.models import ConversationTurn
from support_chat.infrastructure.model_gateway import ModelGateway
from support_chat.logging_config import setup_logging

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

EXAMPLES: list[tuple[list[ConversationTurn], str]] = [
    ([], "What are your shipping options?"),
    (
        [
            ConversationTurn(role="user", content="What are your business hours?"),
            ConversationTurn(
                role="assistant",
                content="We're open Monday-Friday 9 AM - 8 PM EST, Saturday 10 AM - 6 PM EST, "
                "and Sunday 12 PM - 5 PM EST.",
            ),
        ],
        "Are you open on holidays?",
    ),
    ([], "How do I return an item?"),
]

BOLD = "\033[1m"
GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"


async def run(examples: list[tuple[list[ConversationTurn], str]]) -> int:
    try:
        gateway = ModelGateway.from_settings(get_settings())
    except ModelGatewayError as exc:
        print(f"{RED}Gateway not configured:{RESET} {exc.user_message} ({exc.message})")
        return 1

    failures = 0
    for i, (history, question) in enumerate(examples, 1):
        print(f"{BOLD}[{i}/{len(examples)}]{RESET} {question}")
        for turn in history:
            print(f"  ({turn.role}) {turn.content}")
        try:
            reply = await gateway.generate_reply(history, question)
        except ModelGatewayError as exc:
            failures += 1
            print(f"  {RED}{exc.kind}:{RESET} {exc.user_message}")
            print(f"  technical: {exc.message}\n")
            continue
        print(f"  {GREEN}Agent:{RESET} {reply}\n")

    return 1 if failures else 0


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--question", help="Ask a single question instead of the built-in examples")
    args = parser.parse_args()

    setup_logging(level="WARNING")
    examples = [([], args.question)] if args.question else EXAMPLES
    sys.exit(asyncio.run(run(examples)))


if __name__ == "__main__":
    main()
