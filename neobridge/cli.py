from __future__ import annotations

import asyncio
import base64
import contextlib
import mimetypes
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import click

from neobridge.app import create_conversation_manager, init_bridge
from neobridge.config import get_config
from neobridge.errors import BridgeError
from neobridge.log import configure_logging
from neobridge.models.conversation import ConversationImage
from neobridge.orchestrator import TurnOrchestrator, replay_messages
from neobridge.sink import UISink

APPROVAL_CHOICES = ("accept", "always", "reject")

T = TypeVar("T")


class TerminalSink(UISink):
    """Prints the turn to the terminal and queues host tool calls that need an answer."""

    def __init__(self) -> None:
        self.approvals: asyncio.Queue[tuple[str, str, str]] | None = None

    def on_user_message(self, content: str, images: list[ConversationImage]) -> None:
        click.secho("You:", fg="green", bold=True)
        click.echo(content)
        for image in images:
            click.secho(f"[image {image.mime_type}]", dim=True)

    def on_assistant_start(self, agent: str, model: str) -> None:
        label = f"{agent} ({model})" if model else agent
        click.secho(f"\n{label}:", fg="blue", bold=True)

    def on_content_chunk(self, content: str) -> None:
        click.echo(content, nl=False)

    def on_reasoning_chunk(self, reasoning: str) -> None:
        click.secho(reasoning, nl=False, dim=True, italic=True)

    def on_tool_call(self, tool_name: str, args_json: str, call_id: str, requires_approval: bool) -> None:
        click.secho(f"\n[tool] {tool_name} {args_json} ({call_id})", fg="yellow")
        if requires_approval and self.approvals is not None:
            self.approvals.put_nowait((call_id, tool_name, args_json))

    def on_tool_result(self, call_id: str, result: str) -> None:
        click.secho(f"[result {call_id}] {result}", fg="cyan")

    def on_assistant_end(self) -> None:
        click.echo()

    def on_cost(self, cost: float) -> None:
        click.secho(f"[cost ${cost:.6f}]", dim=True)

    def on_error(self, message: str) -> None:
        click.secho(f"Error: {message}", fg="red", err=True)


async def run_in_daemon_thread(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Await a blocking call made on a daemon thread.

    The thread is not owned by the loop's executor, so cancelling the caller
    lets ``asyncio.run`` return while the call is still blocked (e.g. on a prompt).
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[T] = loop.create_future()

    def deliver(setter: Callable[[Any], None], value: Any) -> None:
        if not future.done():
            setter(value)

    def run() -> None:
        try:
            outcome = (future.set_result, func(*args, **kwargs))
        except Exception as e:
            outcome = (future.set_exception, e)
        # The loop may be closed by the time a late answer arrives.
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(deliver, *outcome)

    threading.Thread(target=run, daemon=True).start()
    return await future


async def answer_approvals(orchestrator: TurnOrchestrator, sink: TerminalSink, auto_accept: bool) -> None:
    while True:
        call_id, tool_name, args_json = await sink.approvals.get()
        if auto_accept or tool_name in orchestrator.gate.always_allowed:
            await orchestrator.approve(call_id)
            continue

        choice = await run_in_daemon_thread(
            click.prompt,
            f"Run {tool_name} {args_json}?",
            type=click.Choice(APPROVAL_CHOICES),
            default="reject",
        )
        if choice == "reject":
            await orchestrator.reject(call_id)
        else:
            await orchestrator.approve(call_id, always_allow=choice == "always")


def load_image(path: str) -> ConversationImage:
    mime_type, _ = mimetypes.guess_type(path)
    data = base64.b64encode(Path(path).read_bytes()).decode("ascii")
    return ConversationImage(data=data, mime_type=mime_type or "image/png")


async def run_chat(
    message: str,
    images: list[ConversationImage],
    context_files: tuple[str, ...],
    agent: str | None,
    model: str | None,
    conversation_id: int | None,
    auto_accept: bool,
) -> None:
    config = get_config()
    sink = TerminalSink()
    sink.approvals = asyncio.Queue()

    async with init_bridge(config, sink) as orchestrator:
        if conversation_id is not None:
            if orchestrator.conversations.get(conversation_id) is None:
                raise click.ClickException(f"Conversation {conversation_id} does not exist")
            orchestrator.conversations.set_current(conversation_id)

        approver = asyncio.create_task(answer_approvals(orchestrator, sink, auto_accept))
        try:
            await orchestrator.send_message(
                message, images=images, context_files=context_files, agent=agent, model=model
            )
        finally:
            approver.cancel()

        if orchestrator.conversations.current_id is not None:
            click.secho(f"[conversation {orchestrator.conversations.current_id}]", dim=True)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log at DEBUG level.")
def cli(verbose: bool) -> None:
    configure_logging("DEBUG" if verbose else get_config().log_level)


@cli.command()
@click.argument("message", default="")
@click.option("--image", "image_paths", multiple=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--context", "context_files", multiple=True, help="Project file to prepend to the message.")
@click.option("--agent", default=None)
@click.option("--model", default=None)
@click.option("--conversation", "conversation_id", type=int, default=None, help="Continue this conversation.")
@click.option("--yes", "-y", "auto_accept", is_flag=True, help="Accept every host tool call.")
def chat(
    message: str,
    image_paths: tuple[str, ...],
    context_files: tuple[str, ...],
    agent: str | None,
    model: str | None,
    conversation_id: int | None,
    auto_accept: bool,
) -> None:
    """Send MESSAGE to the agent backend and stream the answer."""
    images = [load_image(path) for path in image_paths]
    try:
        asyncio.run(run_chat(message, images, context_files, agent, model, conversation_id, auto_accept))
    except BridgeError as e:
        raise click.ClickException(str(e)) from e


@cli.group()
def conversations() -> None:
    """Manage saved conversations."""


@conversations.command("list")
def list_conversations() -> None:
    manager = create_conversation_manager(get_config())
    items = manager.list_conversations()
    if not items:
        click.echo("No conversations")
        return
    for meta in items:
        updated = meta.updated_at.strftime("%Y-%m-%d %H:%M")
        click.echo(f"{meta.id:>4}  {updated}  {meta.message_count:>3} msgs  {meta.title}")


@conversations.command()
@click.argument("conversation_id", type=int)
def show(conversation_id: int) -> None:
    manager = create_conversation_manager(get_config())
    if manager.get(conversation_id) is None:
        raise click.ClickException(f"Conversation {conversation_id} does not exist")
    replay_messages(manager.load_messages(conversation_id), TerminalSink())


@conversations.command()
@click.argument("conversation_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
def delete(conversation_id: int, yes: bool) -> None:
    manager = create_conversation_manager(get_config())
    meta = manager.get(conversation_id)
    if meta is None:
        raise click.ClickException(f"Conversation {conversation_id} does not exist")
    if not yes:
        click.confirm(f"Delete conversation {conversation_id} ({meta.title})?", abort=True)
    manager.delete(conversation_id)
    click.echo(f"Deleted conversation {conversation_id}")


@conversations.command()
@click.argument("conversation_id", type=int)
@click.argument("title")
def rename(conversation_id: int, title: str) -> None:
    manager = create_conversation_manager(get_config())
    if not manager.update_title(conversation_id, title):
        raise click.ClickException(f"Conversation {conversation_id} does not exist")
    click.echo(f"Renamed conversation {conversation_id}")


if __name__ == "__main__":
    cli()
