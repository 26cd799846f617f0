"""
Example: Resilient generation and streaming

Shows a plain generation (cached on repeat), a streaming call, and how to
inspect budget and breaker state afterwards.

Requires GROQ_API_KEY and OPENROUTER_API_KEY in the environment or a .env file.
"""

import asyncio

from resilient_ai import AIError, build_ai_service


async def example_generate(service):
    """Plain generation; the second call is served from the cache."""
    print("=== Generation ===\n")

    prompt = "Write a haiku about Python programming"
    text = await service.generate_ai_response(prompt)
    print(text)

    again = await service.generate_ai_response(prompt)
    print(f"\nSecond call identical (cache hit): {again == text}")


async def example_stream(service):
    """Streaming; chunks are printed as they arrive."""
    print("\n=== Streaming ===\n")

    handle = await service.stream_ai_response("Explain circuit breakers in two sentences")
    async for chunk in handle:
        print(chunk, end="", flush=True)
    print(f"\n\nServed by {handle.provider} ({handle.model})")


async def main():
    async with build_ai_service() as service:
        try:
            await example_generate(service)
            await example_stream(service)
        except AIError as e:
            print(f"\nAI call failed [{e.code}] retryable={e.is_retryable}: {e.message}")

        print("\n=== Status ===\n")
        status = service.get_status()
        print(f"Spend today: ${status['cost']['today_cost']:.4f} / ${status['cost']['daily_limit']:.2f}")
        for name, stats in status["circuit_breakers"].items():
            print(f"Breaker {name}: {stats['state']}")
        print(f"Cache hit rate: {status['cache']['hit_rate']:.0%}")


if __name__ == "__main__":
    asyncio.run(main())
