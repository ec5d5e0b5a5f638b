"""aios quickstart: route, preview and confirm one request."""

import asyncio

from aios import Session


def ask(request):
    print(request.description)
    print(request.plan.render())
    return input(f"Proceed ({request.risk_level.value})? [y/N] ").strip().lower() == "y"


async def main():
    async with Session(configure_logs=True) as session:
        result = await session.handle("check requirements for docker and then install nginx", confirm=ask)

    print(f"State: {result.state.value}")
    print(f"Completed: {', '.join(result.completed_tools) or 'none'}")
    print(f"\n{result.output}")


if __name__ == "__main__":
    asyncio.run(main())
