"""CLI entry point for the Grandeur Salon assistant.

A terminal chat for testing and development. For production, use the
FastAPI server (src/server.py).

Usage:
    uv run python -m src.main            # normal mode (quiet)
    uv run python -m src.main --debug    # debug mode (shows API calls)
"""

from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv

from src.conversation import Conversation, ConversationPool, create_conversation_pool
from src.models import Appointment
from src.prompts import KEYWORD_BUTTONS, SALON_NAME
from src.services.appointment_store import AppointmentStore

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    root_level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=root_level,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )

    if not debug:
        # Silence chatty HTTP loggers even if root is WARNING
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
        logging.getLogger("anthropic").setLevel(logging.WARNING)

    logging.getLogger("src").setLevel(logging.DEBUG if debug else logging.WARNING)


def format_dashboard(appointments: list[Appointment]) -> str:
    """Render the owner dashboard as a plain-text table."""
    if not appointments:
        return "  (no appointments)"
    header = f"  {'ID':<4}{'Customer':<16}{'Service':<20}{'Stylist':<9}{'Date':<12}Time"
    rows = [
        f"  {a.id:<4}{a.customer_name:<16}{a.service:<20}{a.stylist:<9}{a.date:<12}{a.time}"
        for a in appointments
    ]
    return "\n".join([header, "  " + "-" * (len(header) - 2), *rows])


def _new_conversation(pool: ConversationPool) -> Conversation:
    conversation = pool.create()
    for message in conversation.messages():
        print(f"\nAssistant: {message.text}\n")
    return conversation


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description=f"{SALON_NAME} assistant CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    print("\n" + "=" * 60)
    print(f"  {SALON_NAME} - AI Assistant")
    print("=" * 60)
    print("  Type your message and press Enter.")
    print("  Commands: 'quit' to exit, 'new' for a new session,")
    print("            'appointments' to show the owner dashboard.")
    print(f"  Try: {', '.join(KEYWORD_BUTTONS)}")
    print("=" * 60)

    store = AppointmentStore.with_seed_data()
    pool = create_conversation_pool(store)
    conversation = _new_conversation(pool)

    while True:
        try:
            user_input = input("You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nGoodbye!")
            break

        if not user_input:
            continue

        command = user_input.lower()
        if command in ("exit", "quit", "q"):
            print(f"\nThank you for visiting {SALON_NAME}!")
            break

        if command == "new":
            print("\n>> Starting a new session...")
            conversation = _new_conversation(pool)
            continue

        if command == "appointments":
            print("\n" + format_dashboard(store.all()) + "\n")
            continue

        try:
            reply = conversation.send(user_input)
        except KeyboardInterrupt:
            print("\n\nGoodbye!")
            break

        if reply is None:
            print("\nAssistant: The assistant is not available. Type 'new' to retry.\n")
            continue
        print(f"\nAssistant: {reply.text}\n")


if __name__ == "__main__":
    main()
