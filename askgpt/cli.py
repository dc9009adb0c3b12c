"""
Ask a chat model from the command line and render the streamed Markdown answer
with syntax coloring, or render local Markdown the same way.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import partial
from pathlib import Path

import click
import httpx

from .chat import ChatClient
from .config import AskConfig, ConfigError, build_config
from .constants import API_KEY_FILENAME, HISTORY_FILENAME, INITIAL_PROMPT_FILENAME
from .exceptions import AskGptError, ScannerInvariantError
from .filesystem import get_config_dir, get_width_override, load_initial_prompt, read_api_key
from .history import append_exchange, last_answers, load_history, recent_messages, save_history
from .models import Message
from .render import render_chunks, render_markdown

__all__ = ["cli"]


def _render_options(command):
    """Attach the rendering options shared by every subcommand."""
    command = click.option(
        "--color/--no-color",
        default=None,
        help="Force or disable ANSI styling (default: only on terminals)",
    )(command)
    command = click.option(
        "--show-markdown/--hide-markdown",
        default=None,
        help="Print Markdown markers dimmed instead of hiding them",
    )(command)
    command = click.option(
        "--width", type=click.IntRange(min=1), help="Wrap prose at this many columns"
    )(command)
    return command


def _load_config(**overrides: object) -> AskConfig:
    try:
        if overrides.get("width") is None:
            overrides["width"] = get_width_override()
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    try:
        return build_config(Path.cwd(), **overrides)
    except ConfigError as error:
        raise click.BadParameter(str(error)) from error


def create_client(api_key: str, config: AskConfig) -> ChatClient:
    return ChatClient.from_config(api_key, config)


@click.group()
@click.version_option(package_name="askgpt")
@click.option("--verbose", "-v", is_flag=True, help="Log debugging details to stderr")
def cli(verbose: bool = False):
    """Query a chat model and render Markdown answers in the terminal."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("prompt", nargs=-1)
@click.option("--model", "-m", help="Chat model identifier")
@click.option("--no-history", is_flag=True, help="Neither send nor record chat history")
@_render_options
def ask(
    prompt: tuple[str, ...],
    model: str | None = None,
    no_history: bool = False,
    width: int | None = None,
    show_markdown: bool | None = None,
    color: bool | None = None,
):
    """
    Send PROMPT to the chat model and stream the rendered answer.

    Messages from the last few minutes of history are sent along as context,
    and the exchange is appended to the history afterwards.

    Raises:
        click.UsageError: If the prompt is empty.
        click.BadParameter: If configuration values are invalid.
        click.ClickException: If the API key, initial prompt, or history cannot
            be loaded, or the request fails.

    Examples:
        askgpt ask How do I reverse a list in Python?
    """
    text = " ".join(prompt).strip()
    if not text:
        raise click.UsageError(
            "You didn't provide a prompt. Please provide a prompt as the arguments "
            "to this command.\n\nFor example:\n\n    askgpt ask Hello, how are you?"
        )

    config = _load_config(model=model, width=width, show_markdown=show_markdown)
    config_dir = get_config_dir()
    history_path = config_dir / HISTORY_FILENAME

    try:
        api_key = read_api_key(config_dir / API_KEY_FILENAME)
        initial_prompt = load_initial_prompt(config_dir / INITIAL_PROMPT_FILENAME)
        history = [] if no_history else load_history(history_path)
    except (AskGptError, IOError, ValueError) as error:
        raise click.ClickException(str(error)) from error

    prompt_time = datetime.now(timezone.utc)
    context = recent_messages(
        history, prompt_time, timedelta(minutes=config.history_window_minutes)
    )
    prompt_message = Message(role="user", content=text)
    messages = [*initial_prompt, *context, prompt_message]

    try:
        with create_client(api_key, config) as client:
            answer = render_chunks(client.stream_completion(messages), config=config, color=color)
    except (AskGptError, httpx.HTTPError) as error:
        raise click.ClickException(str(error)) from error

    if no_history:
        return
    append_exchange(history, prompt_message, prompt_time, answer, datetime.now(timezone.utc))
    try:
        save_history(history_path, history, config.max_history)
    except AskGptError as error:
        raise click.ClickException(str(error)) from error


@cli.command()
@click.argument("source", type=click.File("r", encoding="utf-8"), default="-")
@click.option(
    "--chunk-size",
    type=click.IntRange(min=1),
    default=64,
    show_default=True,
    help="Characters fed to the renderer per step",
)
@_render_options
def render(
    source,
    chunk_size: int = 64,
    width: int | None = None,
    show_markdown: bool | None = None,
    color: bool | None = None,
):
    """
    Render a Markdown SOURCE file (or standard input) incrementally.

    Examples:
        askgpt render notes.md --width 72
        cat answer.md | askgpt render --chunk-size 1
    """
    config = _load_config(width=width, show_markdown=show_markdown)
    try:
        render_chunks(iter(partial(source.read, chunk_size), ""), config=config, color=color)
    except ScannerInvariantError as error:
        raise click.ClickException(str(error)) from error


@cli.command()
@click.option(
    "--count", "-n", type=click.IntRange(min=1), default=1, show_default=True,
    help="Number of answers to show",
)
@_render_options
def replay(
    count: int = 1,
    width: int | None = None,
    show_markdown: bool | None = None,
    color: bool | None = None,
):
    """
    Render the most recent answers stored in the chat history.

    Examples:
        askgpt replay --count 3
    """
    config = _load_config(width=width, show_markdown=show_markdown)
    try:
        history = load_history(get_config_dir() / HISTORY_FILENAME)
    except AskGptError as error:
        raise click.ClickException(str(error)) from error

    answers = last_answers(history, count)
    if not answers:
        click.echo("No answers in history.", err=True)
        return
    for answer in answers:
        render_markdown(answer, config=config, color=color)


if __name__ == "__main__":
    cli()
