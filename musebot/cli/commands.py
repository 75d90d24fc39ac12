"""CLI commands for musebot."""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from musebot import __logo__, __version__

app = typer.Typer(
    name="musebot",
    help=f"{__logo__} musebot - Autonomous creative agent",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} musebot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """musebot - Autonomous creative agent."""
    pass


# ============================================================================
# Shared helpers
# ============================================================================


def _validate_api_key(config):
    """Ensure config has an API key. Exits with rich error if not."""
    if not config.get_api_key():
        console.print("[red]Error: No API key configured.[/red]")
        console.print("Set one in ~/.musebot/config.json under providers section")
        raise typer.Exit(1)


def _make_transport(config):
    """Posting transport from config, or None when posting is off or unconfigured."""
    from musebot.posting.transport import TwitterApiTransport

    posting = config.posting
    if not posting.enabled:
        return None
    if not posting.has_credentials:
        console.print("[yellow]Posting enabled but credentials are incomplete; posting disabled[/yellow]")
        return None
    return TwitterApiTransport(
        api_key=posting.api_key,
        auth_session=posting.auth_session,
        proxy=posting.proxy,
        base_url=posting.base_url,
    )


def _show_creation(label: str, text: str) -> None:
    console.print(Panel(text, title=label.replace("_", " "), border_style="magenta"))


def _build_agent(config, transport=None):
    """Wire store, sandbox, gate, oracle and handlers into an AgentLoop."""
    from musebot.agent.handlers import ActionHandlers
    from musebot.agent.loop import AgentLoop
    from musebot.agent.oracle import DecisionOracle
    from musebot.memory.store import MemoryStore
    from musebot.posting.gate import RateGate
    from musebot.providers.litellm_provider import LiteLLMProvider
    from musebot.sandbox.filesystem import PathSandbox
    from musebot.sandbox.shell import SandboxCommandRunner

    memory = MemoryStore(config.memory_path, config.memory)
    memory.load()

    sandbox_root = config.sandbox_path.resolve()
    sandbox = PathSandbox(
        sandbox_root,
        max_file_size=config.sandbox.max_file_size,
        max_walk_depth=config.sandbox.max_walk_depth,
        command_runner=SandboxCommandRunner(
            sandbox_root,
            timeout=config.sandbox.command_timeout,
            max_output_bytes=config.sandbox.max_output_bytes,
        ),
    )

    gate = RateGate.from_config(config.posting, transport)
    oracle = DecisionOracle(
        LiteLLMProvider.from_config(config),
        model=config.agent.model,
        temperature=config.agent.temperature,
        max_tokens=config.agent.max_tokens,
    )
    handlers = ActionHandlers(memory, sandbox, gate, oracle, on_creation=_show_creation)
    return AgentLoop(memory, oracle, handlers, sandbox=sandbox, config=config.agent)


# ============================================================================
# Onboard / Setup
# ============================================================================


@app.command()
def onboard():
    """Initialize musebot configuration, sandbox and memory directories."""
    from musebot.config.loader import get_config_path, save_config
    from musebot.config.schema import Config

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    config = Config()
    save_config(config)
    console.print(f"[green]✓[/green] Created config at {config_path}")

    for label, path in (("sandbox", config.sandbox_path), ("memory", config.memory_path)):
        path.mkdir(parents=True, exist_ok=True)
        console.print(f"[green]✓[/green] Created {label} at {path}")

    console.print(f"\n{__logo__} musebot is ready!")
    console.print("\nNext steps:")
    console.print("  1. Add your API key to [cyan]~/.musebot/config.json[/cyan]")
    console.print("  2. Run: [cyan]musebot run --autonomous[/cyan]")


# ============================================================================
# Run
# ============================================================================


@app.command()
def run(
    autonomous: bool = typer.Option(
        None, "--autonomous/--manual", help="Run the loop, or only initialize and report"
    ),
    sleep: float = typer.Option(None, "--sleep", "-s", help="Seconds between cycles"),
    config_file: Path = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Start the agent loop."""
    from musebot.config.loader import load_config
    from musebot.logging_config import setup_logging

    setup_logging()
    config = load_config(config_file)
    if autonomous is not None:
        config.agent.autonomous_mode = autonomous
    if sleep is not None:
        config.agent.sleep_interval = sleep

    _validate_api_key(config)
    transport = _make_transport(config)
    agent_loop = _build_agent(config, transport)

    console.print(f"{__logo__} musebot starting (model: {config.agent.model})")
    if not config.agent.autonomous_mode:
        console.print("[dim]Manual mode: initializing only. Use --autonomous to run the loop.[/dim]")

    async def _run():
        try:
            await agent_loop.start()
        finally:
            await agent_loop.shutdown()
            if transport is not None:
                await transport.close()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("\nGoodbye!")


# ============================================================================
# Status
# ============================================================================


@app.command()
def status(
    config_file: Path = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Show memory, workspace and posting status."""
    from musebot.config.loader import get_config_path, load_config
    from musebot.memory.store import MemoryStore
    from musebot.sandbox.filesystem import PathSandbox

    config_path = config_file or get_config_path()
    config = load_config(config_path)

    console.print(f"{__logo__} musebot Status\n")
    console.print(
        f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}"
    )
    console.print(f"Model: {config.agent.model}")
    console.print(
        f"API key: {'[green]✓[/green]' if config.get_api_key() else '[dim]not set[/dim]'}"
    )

    memory = MemoryStore(config.memory_path, config.memory)
    memory.load()
    info = None
    if config.sandbox_path.is_dir():
        info = asyncio.run(PathSandbox(config.sandbox_path).get_stats())

    table = Table(title="musebot")
    table.add_column("Area", style="cyan")
    table.add_column("Metric")
    table.add_column("Value", justify="right")

    for key, value in memory.stats().items():
        table.add_row("memory", key, str(value))
    if info is None:
        table.add_row("workspace", "path", f"{config.sandbox_path} (not created)")
    elif info.success:
        for key in ("total_files", "directories", "total_size"):
            table.add_row("workspace", key, str(info.payload[key]))
    else:
        table.add_row("workspace", "error", info.message)
    table.add_row("posting", "configured", str(config.posting.enabled and config.posting.has_credentials))
    for key in ("min_interval", "daily_limit", "max_length"):
        table.add_row("posting", key, str(getattr(config.posting, key)))

    console.print(table)


if __name__ == "__main__":
    app()
