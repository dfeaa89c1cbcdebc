"""Minimal terminal chat over a streaming ChatSession.

Usage: python examples/chat_demo.py [provider]
"""

import sys

from chat_core import ChatSession, PROVIDERS
from chat_core.config.credentials import get_api_key
from chat_core.config.settings import settings
from chat_core.domain.exceptions import BusinessError

SYSTEM = "You are a helpful assistant that loves to use emojis."


def main() -> None:
    provider = sys.argv[1] if len(sys.argv) > 1 else settings.default_provider
    if provider not in PROVIDERS:
        print(f"unknown provider {provider!r}, choose one of: {', '.join(PROVIDERS)}")
        sys.exit(1)
    chat = ChatSession(SYSTEM, provider=provider, key_source=get_api_key)
    print("System:", SYSTEM)
    while True:
        try:
            query = input("User: ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if not query:
            continue
        print("Assistant: ", end="", flush=True)
        try:
            with chat.stream(query) as deltas:
                for delta in deltas:
                    print(delta, end="", flush=True)
        except KeyboardInterrupt:
            print(" [cancelled]")
            continue
        except BusinessError as e:
            print(f"\n[{e.code}] {e.message}")
            continue
        print()


if __name__ == "__main__":
    main()
