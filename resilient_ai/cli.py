"""CLI entry point for the Resilient AI SDK."""

import argparse
import asyncio
import json
import logging
import sys

from .config.settings import ResilienceSettings
from .main import build_ai_service
from .providers.selector import get_available_models
from .reliability.cost_ledger import CostTracker
from .reliability.errors import AIError
from .storage.kv_store import JsonFileKeyValueStore, InMemoryKeyValueStore


async def generate_text(prompt: str, model: str = None, stream: bool = False,
                        skip_cache: bool = False) -> int:
    """Generate text through the resilient service."""
    service = build_ai_service()
    async with service:
        try:
            if stream:
                handle = await service.stream_ai_response(prompt, skip_cache=skip_cache, model_id=model)
                print(f"Streaming response from {handle.model} ({handle.provider}):\n")
                async for chunk in handle:
                    print(chunk, end='', flush=True)
                print()
            else:
                text = await service.generate_ai_response(prompt, skip_cache=skip_cache, model_id=model)
                print(text)
        except AIError as e:
            print(f"Error [{e.code}]: {e.message}", file=sys.stderr)
            return 1

        summary = service.cost_tracker.get_summary()
        print(
            f"\nToday's spend: ${summary['today_cost']:.4f} of ${summary['daily_limit']:.2f}",
            file=sys.stderr,
        )
    return 0


def show_cost() -> int:
    """Print today's cost ledger."""
    settings = ResilienceSettings.from_env()
    if settings.cost_ledger_path:
        store = JsonFileKeyValueStore(settings.cost_ledger_path)
    else:
        print("RESILIENT_AI_COST_LEDGER_PATH is not set; showing an empty in-memory ledger",
              file=sys.stderr)
        store = InMemoryKeyValueStore()
    tracker = CostTracker(
        store=store,
        daily_limit=settings.daily_cost_limit,
        near_limit_ratio=settings.near_limit_ratio,
    )
    print(json.dumps(tracker.get_summary(), indent=2))
    return 0


def list_models() -> int:
    """List all available models."""
    print("Available Models:")
    print("-" * 50)
    for model_id, config in get_available_models().items():
        print(f"{config.display_name} [{model_id}] ({config.provider.value}, {config.route.value})")
        if config.description:
            print(f"   {config.description}")
        print(
            f"   Cost: ${config.input_cost_per_1k_tokens}/1k input, "
            f"${config.output_cost_per_1k_tokens}/1k output"
        )
        print()
    return 0


def main(argv=None) -> int:
    """Main CLI function."""
    parser = argparse.ArgumentParser(description="Resilient AI SDK CLI")
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    generate_parser = subparsers.add_parser('generate', help='Generate text')
    generate_parser.add_argument('prompt', help='Text prompt')
    generate_parser.add_argument('--model', help='Model id or display name')
    generate_parser.add_argument('--stream', action='store_true', help='Stream the response')
    generate_parser.add_argument('--skip-cache', action='store_true', help='Bypass the response cache')

    subparsers.add_parser('cost', help="Show today's AI spend")
    subparsers.add_parser('list-models', help='List available models')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == 'generate':
        return asyncio.run(generate_text(args.prompt, args.model, args.stream, args.skip_cache))
    elif args.command == 'cost':
        return show_cost()
    elif args.command == 'list-models':
        return list_models()

    parser.print_help()
    return 1
