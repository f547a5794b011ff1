"""
Console entry point: stream one reply from a configured model.

    python -m llm_bridge.main "Explain SSE in one line" --model gpt-4o-mini
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from llm_bridge.api_client import invoke_chat_completion
from llm_bridge.chat_provider import ChatProvider
from llm_bridge.config import Configuration
from llm_bridge.errors import LLMBridgeError
from llm_bridge.events import Done, Error, TextDelta, ToolCall
from llm_bridge.llm.client import LLMClient
from llm_bridge.logging_utils import configure_logging
from llm_bridge.models import ChatRequestOptions, Message

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="llm-bridge", description="Send one prompt to a configured model."
    )
    parser.add_argument("prompt", help="user prompt")
    parser.add_argument("--model", help="model id (default: first configured model)")
    parser.add_argument("--config", help="path to a YAML config file")
    parser.add_argument("--system", help="optional system message")
    parser.add_argument("--temperature", type=float)
    parser.add_argument("--max-tokens", type=float, dest="max_tokens")
    parser.add_argument(
        "--no-stream", action="store_true", help="wait for the whole reply"
    )
    parser.add_argument(
        "--list", action="store_true", dest="list_models", help="list models and exit"
    )
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """Main entry point. Returns the process exit code."""
    args = parse_args(argv)
    try:
        config = Configuration(args.config)
    except LLMBridgeError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    configure_logging(config.get_logging_config())

    async with LLMClient(config.get_http_config()) as client:
        provider = ChatProvider(config, client=client)

        if args.list_models:
            for info in provider.list_models(silent=False):
                print(f"{info.id}\t{info.name}\t{info.detail}")
            return 0

        model_id = args.model or next(
            (m.id for p in config.get_providers() for m in p.models), None
        )
        if model_id is None:
            print("error: no models configured", file=sys.stderr)
            return 2

        messages = []
        if args.system:
            messages.append(Message(role="system", content=args.system))
        options = ChatRequestOptions(
            temperature=args.temperature, max_output_tokens=args.max_tokens
        )

        if args.no_stream:
            found = config.find_model(model_id)
            if found is None:
                print(f"error: unknown model '{model_id}'", file=sys.stderr)
                return 2
            options.prompt = args.prompt
            options.conversation = messages
            try:
                response = await invoke_chat_completion(
                    *found, options, http=client.http
                )
            except LLMBridgeError as e:
                print(f"error: {e}", file=sys.stderr)
                return 1
            print(response.response_text)
            logger.info("Reply took %d ms", response.latency_ms)
            return 0

        messages.append(Message(role="user", content=args.prompt))
        async for event in provider.stream_response(model_id, messages, options):
            if isinstance(event, TextDelta):
                print(event.text, end="", flush=True)
            elif isinstance(event, ToolCall):
                print(f"\n[tool call] {event.name} {json.dumps(event.arguments)}")
            elif isinstance(event, Done):
                print()
            elif isinstance(event, Error):
                print(f"\nerror: {event.message}", file=sys.stderr)
                return 1
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
