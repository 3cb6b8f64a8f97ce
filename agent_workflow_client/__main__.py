"""Entry point when the package is executed as a module."""

import asyncio
import contextlib
import signal
import sys

import click

from .conversation import ConversationStore, init_team_members, send_message
from .conversation.messages import Message, TextMessage, create_text_message
from .platform.clients.chat import CancellationToken, ChatClient, ChatTransportError
from .platform.observability import configure_logging
from .platform.preferences import (
    JsonFilePreferencesStore,
    load_input_preferences,
    save_input_preferences,
)
from .platform.settings import Settings


def render_message(message: Message) -> str:
    """Format one transcript entry for the terminal."""
    if isinstance(message, TextMessage):
        return f"[{message.role}] {message.content}"

    workflow = message.content.workflow
    lines = [f"[{message.role}] workflow {workflow.id}"]
    for index, step in enumerate(workflow.steps, start=1):
        lines.append(f"  {index}. {step.agent_name} ({step.status})")
        for call in step.tool_calls:
            state = "pending" if call.is_pending else "done"
            lines.append(f"     tool {call.name} ({state})")
        if step.output:
            lines.extend(f"     {line}" for line in step.output.splitlines())
    return "\n".join(lines)


async def _chat(
    settings: Settings,
    question: str,
    deep_thinking: bool | None,
    search_before_planning: bool | None,
    team_members: tuple[str, ...],
) -> int:
    preferences = JsonFilePreferencesStore(settings.preferences.path)
    input_preferences = load_input_preferences(preferences)
    if deep_thinking is not None or search_before_planning is not None:
        input_preferences = input_preferences.model_copy(
            update={
                key: value
                for key, value in (
                    ("deep_thinking_mode", deep_thinking),
                    ("search_before_planning", search_before_planning),
                )
                if value is not None
            }
        )
        save_input_preferences(preferences, input_preferences)

    store = ConversationStore(preferences)
    cancellation = CancellationToken()
    with contextlib.suppress(NotImplementedError):
        asyncio.get_running_loop().add_signal_handler(signal.SIGINT, cancellation.cancel)

    async with ChatClient(settings.api.url, config=settings.chat_client_config()) as client:
        await init_team_members(store, client, preferences)
        if team_members:
            store.set_enabled_team_members(team_members)

        try:
            sent = await send_message(
                store,
                client,
                create_text_message(question),
                deep_thinking_mode=input_preferences.deep_thinking_mode,
                search_before_planning=input_preferences.search_before_planning,
                cancellation=cancellation,
            )
        except ChatTransportError as e:
            for message in store.messages:
                click.echo(render_message(message))
            click.echo(f"error: {e}", err=True)
            return 1

    for message in store.messages:
        click.echo(render_message(message))
    if sent is None:
        click.echo("cancelled", err=True)
        return 130
    return 0


@click.command()
@click.argument("question")
@click.option("--deep-thinking/--no-deep-thinking", default=None, help="Saved for later turns.")
@click.option(
    "--search-before-planning/--no-search-before-planning",
    default=None,
    help="Saved for later turns.",
)
@click.option("--team-member", "team_members", multiple=True, help="Enable only these agents.")
@click.option("--json-logs", is_flag=True, help="Log JSON lines to stderr.")
def main(question, deep_thinking, search_before_planning, team_members, json_logs=False):
    settings = Settings()
    configure_logging(settings.logging.level, json_output=json_logs or settings.logging.json_output)
    sys.exit(asyncio.run(_chat(settings, question, deep_thinking, search_before_planning, team_members)))


if __name__ == "__main__":
    main()
