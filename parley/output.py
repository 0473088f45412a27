"""Rich console rendering and markdown transcript export for threads."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.columns import Columns
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.text import Text

from parley.catalog import ModelCatalog
from parley.models import (
    AssistantMessage,
    ComparisonMessage,
    ErrorMessage,
    Message,
    SystemMessage,
    Thread,
    UserMessage,
)

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _format_time(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp / 1000).strftime("%H:%M:%S")


def print_message(message: Message, catalog: ModelCatalog) -> None:
    """Print one message to the console, styled by role."""
    subtitle = _format_time(message.timestamp) if message.timestamp else None

    if isinstance(message, UserMessage):
        console.print(Panel(message.content, title="[bold]You[/bold]", subtitle=subtitle, border_style="cyan"))
    elif isinstance(message, AssistantMessage):
        console.print(
            Panel(
                Markdown(message.content),
                title=f"[bold]{catalog.display_name(message.model_id)}[/bold]",
                subtitle=subtitle,
                border_style="green",
            )
        )
    elif isinstance(message, ErrorMessage):
        title = "[bold red]Error[/bold red]"
        if message.model_id:
            title += f" ({catalog.display_name(message.model_id)})"
        console.print(Panel(message.content, title=title, subtitle=subtitle, border_style="red"))
    elif isinstance(message, SystemMessage):
        console.print(Text(message.content, style="dim italic"), justify="center")
    elif isinstance(message, ComparisonMessage):
        sides = [message.comparison.model1, message.comparison.model2]
        console.print(
            Text(f'Comparing responses for: "{message.comparison.prompt_text}"', style="dim")
        )
        console.print(
            Columns(
                [
                    Panel(
                        Markdown(side.response),
                        title=f"[bold]{catalog.display_name(side.id)}[/bold]",
                        border_style="magenta",
                    )
                    for side in sides
                ],
                equal=True,
                expand=True,
            )
        )


def _message_section(message: Message, catalog: ModelCatalog) -> list[str]:
    stamp = datetime.fromtimestamp(message.timestamp / 1000).strftime("%Y-%m-%d %H:%M:%S")

    if isinstance(message, UserMessage):
        return [f"### User ({stamp})", "", message.content, ""]
    if isinstance(message, AssistantMessage):
        name = catalog.display_name(message.model_id)
        return [f"### {name} ({stamp})", "", message.content, ""]
    if isinstance(message, ErrorMessage):
        label = f"Error from {catalog.display_name(message.model_id)}" if message.model_id else "Error"
        return [f"### {label} ({stamp})", "", f"> {message.content}", ""]
    if isinstance(message, SystemMessage):
        return [f"*{message.content}*", ""]

    lines = [f"### Comparison ({stamp})", ""]
    for side in (message.comparison.model1, message.comparison.model2):
        lines += [f"#### {catalog.display_name(side.id)}", "", side.response, ""]
    return lines


def save_transcript(
    thread: Thread,
    catalog: ModelCatalog,
    output_dir: Path,
    slug_override: str | None = None,
) -> Path:
    """Save a chat thread as a markdown file.

    Args:
        thread: The thread to export. Messages are written in timestamp order.
        catalog: Used to turn model ids into display names.
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the thread name.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(thread.name) or thread.id
    filepath = output_dir / f"{timestamp}_{slug}.md"

    messages = sorted(thread.messages, key=lambda m: m.timestamp)
    models_used = sorted(
        {catalog.display_name(m.model_id) for m in messages if isinstance(m, AssistantMessage)}
        | {
            catalog.display_name(side.id)
            for m in messages
            if isinstance(m, ComparisonMessage)
            for side in (m.comparison.model1, m.comparison.model2)
        }
    )

    lines: list[str] = [
        f"# {thread.name}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Thread:** {thread.id}",
        f"**Models:** {', '.join(models_used) if models_used else 'none'}",
        f"**Messages:** {len(messages)}",
        "",
        "---",
        "",
    ]
    for message in messages:
        lines += _message_section(message, catalog)

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Transcript saved to: %s", filepath)
    return filepath
