"""
Terminal chat with the Sm@rtz support bot.

Usage:
    python -m support_agent [--base-url URL] [--state-file PATH] [--user-id ID]

Commands inside the chat: /clear, /theme, /online, /quit
"""
import argparse
import asyncio
import logging
import sys
from dataclasses import replace

from storefront.core.config import SupportConfig
from storefront.utils.logger import set_level

from .chat import SupportChat
from .models import DeliveryStatus, Message, Sender


class TerminalPrinter:
    """Writes bot text to stdout as the renderer reveals it."""

    def __init__(self):
        self._shown = {}

    def __call__(self, message: Message) -> None:
        shown = self._shown.get(message.id, 0)
        if shown == 0:
            sys.stdout.write("bot> ")
        sys.stdout.write(message.text[shown:])
        sys.stdout.flush()
        self._shown[message.id] = len(message.text)


def _print_message(message: Message) -> None:
    prefix = "you> " if message.sender == Sender.USER else "bot> "
    marker = {DeliveryStatus.PENDING: " (pending)", DeliveryStatus.FAILED: " (failed)"}.get(message.status, "")
    print(f"{prefix}{message.text}{marker}")


async def run(args: argparse.Namespace) -> None:
    config = SupportConfig.from_yaml(args.config)
    overrides = {}
    if args.base_url:
        overrides["api_base_url"] = args.base_url
    if args.state_file:
        overrides["local_state_path"] = args.state_file
    if args.no_typing:
        overrides["typing_interval_s"] = 0.0
    config = replace(config, **overrides)

    chat = SupportChat(config=config, on_update=TerminalPrinter())
    loop = asyncio.get_running_loop()
    try:
        for message in await chat.open():
            _print_message(message)
        if args.user_id:
            token = await chat.set_user(args.user_id)
            if token:
                print(f"(signed in, session {token})")

        while True:
            try:
                line = await loop.run_in_executor(None, input, "you> ")
            except EOFError:
                break
            command = line.strip().lower()
            if command in ("/quit", "/exit"):
                break
            if command == "/clear":
                await chat.clear()
                print("(conversation cleared)")
                continue
            if command == "/theme":
                print(f"(theme: {chat.toggle_theme()})")
                continue
            if command == "/online":
                result = await chat.handle_online()
                print(f"(resent {len(result.confirmed)}, still pending {result.remaining})")
                continue

            reply = await chat.send(line)
            if reply is not None:
                sys.stdout.write("\n")
    except KeyboardInterrupt:
        pass
    finally:
        await chat.close()


def main():
    parser = argparse.ArgumentParser(description='Chat with the Sm@rtz customer-support bot')
    parser.add_argument('--config', help='Path to a YAML config file')
    parser.add_argument('--base-url', help='Support API base URL (overrides SUPPORT_API_BASE_URL)')
    parser.add_argument('--state-file', help='Where to keep local chat state')
    parser.add_argument('--user-id', help='Associate this chat with a signed-in user')
    parser.add_argument('--no-typing', action='store_true', help='Print replies at once')
    parser.add_argument('--verbose', action='store_true', help='Show chat event logs')

    args = parser.parse_args()
    set_level("INFO" if args.verbose else "WARNING")
    if not args.verbose:
        # keep JSON event lines out of the conversation
        for name in list(logging.root.manager.loggerDict):
            if name.startswith("events."):
                logging.getLogger(name).setLevel(logging.WARNING)
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
