"""Prompt the operator during manual steps."""

import asyncio

import typer


async def instruct(title: str, steps: list[str]) -> None:
    """Print numbered instructions for the operator."""
    typer.echo(f"\n{title}")
    for number, step in enumerate(steps, start=1):
        typer.echo(f"  {number}. {step}")


async def confirm(question: str) -> bool:
    """Ask the operator a yes/no question without blocking the event loop."""
    answer: bool = await asyncio.to_thread(typer.confirm, question, default=False)
    return answer


async def wait_for_operator(message: str) -> None:
    """Block until the operator acknowledges a message."""
    await asyncio.to_thread(typer.prompt, message, default="", show_default=False)
