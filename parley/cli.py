"""Click CLI: loads config, builds providers, and drives the orchestrator."""

import asyncio
import dataclasses
import logging
import signal
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from config.config_loader import AppConfig, DiscussionConfig, load_config
from parley.catalog import ModelCatalog
from parley.errors import OrchestratorError
from parley.healthcheck import run_health_checks
from parley.message_log import MessageLog
from parley.models import FileAttachment, Message, Thread
from parley.orchestrator import ConversationOrchestrator
from parley.output import print_message, save_transcript
from parley.providers.router import ProviderRouter, build_providers

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_orchestrator(
    config: AppConfig,
    discussion: DiscussionConfig | None = None,
) -> tuple[ConversationOrchestrator, ProviderRouter]:
    catalog = ModelCatalog(config.models)
    router = ProviderRouter(build_providers(config))

    def on_append(thread: Thread, message: Message) -> None:
        print_message(message, catalog)

    orchestrator = ConversationOrchestrator(
        log=MessageLog(on_append=on_append),
        client=router,
        catalog=catalog,
        discussion=discussion or config.discussion,
    )
    return orchestrator, router


def _check_and_filter_providers(
    router: ProviderRouter,
    catalog: ModelCatalog,
    needed: list[str],
    confirm: bool = True,
) -> list[str]:
    """Ping the providers a command needs and ask the user what to do on failures.

    Returns the names of providers that failed.
    """
    console.print("\n[bold]Checking providers...[/bold]")
    results = asyncio.run(run_health_checks(router, catalog, sorted(set(needed))))

    failed_names: list[str] = []
    for name in sorted(results):
        ok, err = results[name]
        if ok:
            console.print(f"  [green]OK  [/green] {name}")
        else:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {name}: {short_err}")
            failed_names.append(name)

    console.print()
    if confirm and failed_names and not click.confirm("Continue anyway? Failed providers will answer with errors.", default=False):
        sys.exit(0)
    return failed_names


def _run_operation(
    orchestrator: ConversationOrchestrator,
    thread: Thread,
    operation: Callable[[], Awaitable[object]],
    stop_on_interrupt: bool = False,
) -> object:
    async def _runner() -> object:
        loop = asyncio.get_running_loop()
        handler_installed = False
        if stop_on_interrupt:
            try:
                loop.add_signal_handler(signal.SIGINT, orchestrator.stop, thread.id)
                handler_installed = True
            except (NotImplementedError, RuntimeError):
                logger.debug("SIGINT handler unavailable; Ctrl-C will abort without a stop message")
        try:
            return await operation()
        finally:
            if handler_installed:
                loop.remove_signal_handler(signal.SIGINT)

    try:
        return asyncio.run(_runner())
    except OrchestratorError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)


def _finish(ctx: click.Context, orchestrator: ConversationOrchestrator, thread: Thread, save: bool,
            output_path: str | None) -> None:
    if not save:
        return
    config: AppConfig = ctx.obj
    output_dir = Path(output_path) if output_path else config.defaults.output_dir
    saved = save_transcript(orchestrator.log.get_thread(thread.id), orchestrator.catalog, output_dir)
    console.print(f"\n[dim]Saved to: {saved}[/dim]")


def _thread_name(text: str, max_len: int = 40) -> str:
    """First line of the prompt, shortened; names the thread and its transcript."""
    first_line = text.strip().splitlines()[0] if text.strip() else ""
    return first_line[:max_len].rstrip() or "CLI session"


def _preflight(ctx: click.Context, text: str, model_ids: list[str], skip_health_check: bool,
               discussion: DiscussionConfig | None = None) -> tuple[ConversationOrchestrator, Thread]:
    config: AppConfig = ctx.obj
    orchestrator, router = _build_orchestrator(config, discussion)

    try:
        models = [orchestrator.catalog.get(m) for m in model_ids]
    except OrchestratorError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}. Run 'parley models' to list ids.")
        sys.exit(1)

    missing = sorted({m.provider_id for m in models if not router.has_provider(m.provider_id)})
    if missing:
        console.print(
            f"[bold red]Error:[/bold red] No API key for: {', '.join(missing)}. Check API keys in .env."
        )
        sys.exit(1)

    if not skip_health_check:
        _check_and_filter_providers(router, orchestrator.catalog, [m.provider_id for m in models])

    return orchestrator, orchestrator.log.create_thread(name=_thread_name(text))


_save_options = [
    click.option("--save/--no-save", default=False, help="Write a markdown transcript when done"),
    click.option("--output", "output_path", default=None, help="Transcript directory (default: from config)"),
    click.option("--skip-health-check", is_flag=True, default=False,
                 help="Skip the API connectivity check at startup"),
]


def _with_save_options(func):
    for option in reversed(_save_options):
        func = option(func)
    return func


@click.group()
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Parley -- chat with, compare, and pit language models against each other.

    \b
    Examples:
      parley send "Explain CRDTs briefly" --model gpt-4o
      parley compare "REST or GraphQL?" --model1 gpt-4o --model2 claude-3-5-sonnet-latest
      parley discuss "Is P = NP?" --model1 gpt-4o --model2 gemini-1.5-pro --rounds 3
      parley models
    """
    # Reconfigure stdout/stderr to UTF-8 on Windows so model responses containing
    # Unicode chars don't crash the ANSI render path.
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        ctx.obj = load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)


@main.command()
@click.argument("text")
@click.option("--model", "model_id", default=None, help="Model id (default: from config)")
@click.option("--file", "attach_file", type=click.Path(exists=True, dir_okay=False),
              help="Attach a text file to the message")
@_with_save_options
@click.pass_context
def send(
    ctx: click.Context,
    text: str,
    model_id: str | None,
    attach_file: str | None,
    save: bool,
    output_path: str | None,
    skip_health_check: bool,
) -> None:
    """Send TEXT to a single model."""
    config: AppConfig = ctx.obj
    model_id = model_id or config.defaults.model
    orchestrator, thread = _preflight(ctx, text, [model_id], skip_health_check)

    attachment = None
    if attach_file:
        path = Path(attach_file)
        attachment = FileAttachment(name=path.name, content=path.read_text(encoding="utf-8"))

    _run_operation(orchestrator, thread, lambda: orchestrator.send_single(thread.id, text, model_id, attachment))
    _finish(ctx, orchestrator, thread, save, output_path)


@main.command()
@click.argument("text")
@click.option("--model1", "model1_id", default=None, help="First model id (default: from config)")
@click.option("--model2", "model2_id", default=None, help="Second model id (default: from config)")
@_with_save_options
@click.pass_context
def compare(
    ctx: click.Context,
    text: str,
    model1_id: str | None,
    model2_id: str | None,
    save: bool,
    output_path: str | None,
    skip_health_check: bool,
) -> None:
    """Ask two models the same question side by side."""
    model1_id, model2_id = _resolve_pair(ctx.obj, model1_id, model2_id)
    orchestrator, thread = _preflight(ctx, text, [model1_id, model2_id], skip_health_check)
    _run_operation(orchestrator, thread, lambda: orchestrator.compare(thread.id, text, model1_id, model2_id))
    _finish(ctx, orchestrator, thread, save, output_path)


@main.command()
@click.argument("text")
@click.option("--model1", "model1_id", default=None, help="Model that opens each round")
@click.option("--model2", "model2_id", default=None, help="Model that replies to model1")
@click.option("--rounds", default=None, type=int, help="Number of rounds (default: from config)")
@click.option("--delay", "delay_sec", default=None, type=float,
              help="Seconds to wait between turns (default: from config)")
@_with_save_options
@click.pass_context
def discuss(
    ctx: click.Context,
    text: str,
    model1_id: str | None,
    model2_id: str | None,
    rounds: int | None,
    delay_sec: float | None,
    save: bool,
    output_path: str | None,
    skip_health_check: bool,
) -> None:
    """Let two models talk to each other, seeded with TEXT. Ctrl-C stops the discussion."""
    config: AppConfig = ctx.obj
    model1_id, model2_id = _resolve_pair(config, model1_id, model2_id)

    discussion = config.discussion
    if rounds is not None:
        if rounds < 1:
            raise click.BadParameter("must be >= 1", param_hint="--rounds")
        discussion = dataclasses.replace(discussion, max_rounds=rounds)
    if delay_sec is not None:
        if delay_sec < 0:
            raise click.BadParameter("must be >= 0", param_hint="--delay")
        discussion = dataclasses.replace(discussion, turn_delay_sec=delay_sec)

    orchestrator, thread = _preflight(ctx, text, [model1_id, model2_id], skip_health_check, discussion)
    console.print(
        f"\n[bold cyan]Discussion[/bold cyan]: {orchestrator.catalog.display_name(model1_id)} <-> "
        f"{orchestrator.catalog.display_name(model2_id)}, up to {discussion.max_rounds} rounds "
        f"[dim](Ctrl-C to stop)[/dim]\n"
    )
    session = _run_operation(
        orchestrator,
        thread,
        lambda: orchestrator.discuss(thread.id, text, model1_id, model2_id),
        stop_on_interrupt=True,
    )
    console.print(f"\n[dim]Discussion {session.status.value} after {session.round} round(s)[/dim]")
    _finish(ctx, orchestrator, thread, save, output_path)


def _resolve_pair(config: AppConfig, model1_id: str | None, model2_id: str | None) -> tuple[str, str]:
    defaults = list(config.defaults.compare_models) + [None, None]
    model1_id = model1_id or defaults[0]
    model2_id = model2_id or defaults[1]
    if not model1_id or not model2_id:
        console.print("[bold red]Error:[/bold red] Provide --model1 and --model2 (no defaults configured).")
        sys.exit(1)
    return model1_id, model2_id


@main.command()
@click.pass_context
def models(ctx: click.Context) -> None:
    """List the model catalog and which providers have API keys."""
    config: AppConfig = ctx.obj
    table = Table(title="Models")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Provider")
    table.add_column("Available")
    for model in ModelCatalog(config.models):
        available = model.provider_id in config.available_providers
        table.add_row(
            model.id,
            model.display_name,
            model.provider_id,
            "[green]yes[/green]" if available else "[red]no key[/red]",
        )
    console.print(table)


@main.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Ping every provider that has an API key."""
    config: AppConfig = ctx.obj
    orchestrator, router = _build_orchestrator(config)
    if not router.providers:
        console.print("[bold red]Error:[/bold red] No providers available. Check API keys in .env.")
        sys.exit(1)
    keyless = [p for p in orchestrator.catalog.providers() if not router.has_provider(p)]
    if keyless:
        console.print(f"[dim]Skipped (no API key): {', '.join(keyless)}[/dim]")
    if _check_and_filter_providers(router, orchestrator.catalog, router.providers, confirm=False):
        sys.exit(1)


if __name__ == "__main__":
    main()
