"""Command-line interface for mail-gate."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mail_gate import __version__
from mail_gate.config import ListenConfig, Settings, load_settings
from mail_gate.gate import MessageGate
from mail_gate.models import GateOutcome, InboundMessage, PolicyMode, Verdict
from mail_gate.transports.base import RecordingHandle

app = typer.Typer(
    name="mail-gate",
    help="Inbound email screening gate: forward allowed senders, reject the rest.",
    no_args_is_help=True,
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"mail-gate version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_dir: Annotated[
        Path | None,
        typer.Option("--config-dir", "-c", help="Directory containing config.yaml"),
    ] = None,
    version: Annotated[
        bool,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = False,
) -> None:
    """Inbound email screening gate."""
    ctx.obj = {"config_dir": config_dir}


def _load(ctx: typer.Context) -> Settings:
    """Load settings, exiting with a readable message if they are invalid."""
    config_dir = ctx.obj.get("config_dir") if ctx.obj else None
    try:
        return load_settings(config_dir)
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red]\n{escape(str(e))}")
        raise typer.Exit(1)


# ─── Decision Commands ──────────────────────────────────────────────────────


@app.command("check")
def check(
    ctx: typer.Context,
    sender: Annotated[str, typer.Argument(help="Envelope sender address")],
) -> None:
    """Show the policy verdict for a sender.

    Exits with status 0 when the sender is allowed and 1 when denied.
    """
    settings = _load(ctx)
    gate = MessageGate(settings.gate)

    verdict = gate.decide(sender)
    if verdict == Verdict.ALLOWED:
        console.print(f"[green]allowed[/green] {escape(sender)}")
        return

    console.print(f"[red]denied[/red] {escape(sender)} ({gate.policy.reject_reason})")
    raise typer.Exit(1)


@app.command("route")
def route(
    ctx: typer.Context,
    sender: Annotated[str, typer.Argument(help="Envelope sender address")],
    recipient: Annotated[
        list[str] | None,
        typer.Option("--to", help="Envelope recipient (repeatable)"),
    ] = None,
) -> None:
    """Dry-run a message through the gate and show the action it would take.

    Nothing is delivered; the reject/forward call is only recorded.
    """
    settings = _load(ctx)
    gate = MessageGate(settings.gate)
    handle = RecordingHandle()
    message = InboundMessage(sender=sender, recipients=recipient or [])

    result = asyncio.run(gate.handle(message, handle))

    table = Table(title="Gate Decision (dry run)")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Sender", sender)
    table.add_row("Verdict", result.verdict.value)
    table.add_row("Outcome", result.outcome.value)
    for action, argument in handle.calls:
        table.add_row("Call", f"{action}({argument!r})")
    console.print(table)

    if result.outcome == GateOutcome.REJECTED:
        console.print(f"[red]Rejected:[/red] {result.reason}")
    else:
        console.print(f"[green]Forwarded to[/green] {result.destination}")


# ─── Policy Commands ────────────────────────────────────────────────────────


policy_app = typer.Typer(help="Inspect the sender policy", no_args_is_help=True)
app.add_typer(policy_app, name="policy")


@policy_app.command("show")
def policy_show(ctx: typer.Context) -> None:
    """Show the configured policy and destination."""
    settings = _load(ctx)
    gate = MessageGate(settings.gate)
    policy = gate.policy

    console.print(f"[bold]Mode:[/bold] {policy.mode.value}")
    console.print(f"[bold]Destination:[/bold] {gate.destination}")
    console.print(f"[bold]Reject reason:[/bold] {policy.reject_reason}")

    if not policy.addresses:
        console.print("[yellow]No addresses configured.[/yellow]")
        return

    title = "Allowed Senders" if policy.mode == PolicyMode.ALLOW else "Blocked Senders"
    table = Table(title=title)
    table.add_column("Address", style="cyan")
    for address in sorted(policy.addresses):
        table.add_row(address)
    console.print(table)


# ─── Server Commands ────────────────────────────────────────────────────────


@app.command("serve")
def serve(
    ctx: typer.Context,
    host: Annotated[str | None, typer.Option(help="Listen address")] = None,
    port: Annotated[int | None, typer.Option(help="Listen port")] = None,
    log_level: Annotated[str | None, typer.Option(help="Logging level")] = None,
) -> None:
    """Run the inbound SMTP gate in the foreground."""
    settings = _load(ctx)

    if host is not None or port is not None:
        listen = ListenConfig(
            host=host if host is not None else settings.listen.host,
            port=port if port is not None else settings.listen.port,
        )
        settings = settings.model_copy(update={"listen": listen})

    level = (log_level or settings.log_level).upper()
    if level not in logging.getLevelNamesMapping():
        console.print(f"[red]Invalid log level: {escape(level)}[/red]")
        raise typer.Exit(1)

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from mail_gate.server import GateServer

    server = GateServer(settings)
    console.print(
        f"[cyan]Listening on {settings.listen.host}:{settings.listen.port}[/cyan]"
    )
    console.print("Press Ctrl+C to stop.\n")
    asyncio.run(server.start())


if __name__ == "__main__":
    app()
