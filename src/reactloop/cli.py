"""
reactloop CLI

Command-line interface for the agent turn loop.

Commands:
    reactloop run "instruction"              — Run one task to completion
    reactloop run --tools pkg.mod:TOOLS "…"  — Run with tools from a module
    reactloop vendors                        — List known model vendors

Usage:
    pip install reactloop
    ANTHROPIC_API_KEY=... reactloop run --provider anthropic "What is in ~/Downloads?"
"""

from __future__ import annotations

import asyncio
import importlib
import json
import os
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from reactloop import __version__
from reactloop.config import ApprovalSettings, LoopOptions, ProviderSettings
from reactloop.core.events import AgentEvent, EventEmitter, EventType
from reactloop.credentials import EnvCredentials
from reactloop.engine.loop import TurnLoop
from reactloop.exceptions import ReactLoopError
from reactloop.logging import configure_logging
from reactloop.providers import VENDORS, create_adapter, get_vendor
from reactloop.safety.approval import ApprovalGate
from reactloop.tools.models import Tool
from reactloop.tools.registry import ToolRegistry

DEFAULT_SYSTEM_PROMPT = (
    "You are a capable assistant running on the user's computer. "
    "Use the available tools when they help; answer directly when they do not."
)


@click.group()
@click.version_option(version=__version__, prog_name="reactloop")
@click.option("--log-level", default="WARNING", help="Log level for reactloop loggers")
@click.option("--log-json", is_flag=True, help="Emit logs as JSON lines")
def cli(log_level: str, log_json: bool) -> None:
    """reactloop — provider-agnostic agent turn loop"""
    configure_logging(level=log_level, json_output=log_json)


@cli.command()
@click.argument("instruction")
@click.option("--provider", "vendor", default=None, help="Vendor name (see `reactloop vendors`)")
@click.option("--model", default=None, help="Model name; defaults to the vendor's default")
@click.option("--max-turns", default=50, type=int, show_default=True, help="Upper bound on model calls")
@click.option("--system", "system_prompt", default=None, help="System prompt")
@click.option("--tools", "tool_specs", multiple=True, help="module:attribute holding tools (repeatable)")
@click.option(
    "--approval-timeout",
    default=300.0,
    type=click.FloatRange(min=0, min_open=True),
    show_default=True,
    help="Seconds to wait for an approval answer before denying",
)
@click.option("--json-output", is_flag=True, help="Output the run result as JSON")
def run(
    instruction: str,
    vendor: str | None,
    model: str | None,
    max_turns: int,
    system_prompt: str | None,
    tool_specs: tuple[str, ...],
    approval_timeout: float,
    json_output: bool,
) -> None:
    """Run INSTRUCTION through the turn loop and print the answer."""
    try:
        settings = _resolve_settings(vendor, model)
        registry = ToolRegistry()
        for spec in tool_specs:
            registry.register_many(load_tools(spec))
        result = asyncio.run(_run_task(
            instruction,
            settings,
            registry,
            system_prompt or DEFAULT_SYSTEM_PROMPT,
            LoopOptions(max_turns=max_turns),
            ApprovalSettings(timeout_seconds=approval_timeout),
            json_output,
        ))
    except ReactLoopError as e:
        raise click.ClickException(str(e)) from e

    if json_output:
        click.echo(result.model_dump_json(indent=2))
    else:
        click.echo()
        click.echo(result.text)
        if result.cancelled:
            click.echo("\n  (cancelled)", err=True)


@cli.command()
def vendors() -> None:
    """List the model vendors and the wire protocol each speaks."""
    table = Table(title="Model vendors")
    table.add_column("Name", style="bold")
    table.add_column("Label")
    table.add_column("Protocol")
    table.add_column("Default model")
    table.add_column("Key")
    for spec in VENDORS.values():
        table.add_row(
            spec.name,
            spec.label,
            spec.protocol.value,
            spec.default_model,
            spec.env_var or "-",
        )
    Console().print(table)


def _resolve_settings(vendor: str | None, model: str | None) -> ProviderSettings:
    settings = ProviderSettings.from_env(vendor=vendor, model=model)
    if model or os.environ.get("REACTLOOP_MODEL"):
        return settings
    # No model named anywhere: use the vendor's own default.
    return settings.model_copy(update={"model": get_vendor(settings.vendor).default_model})


def load_tools(spec: str) -> list[Tool]:
    """Resolve ``module:attribute`` to a list of Tools.

    The attribute may be a ToolRegistry, an iterable of Tools, or a
    zero-argument callable returning either.
    """
    module_name, _, attr = spec.partition(":")
    if not module_name or not attr:
        raise click.BadParameter(f"expected module:attribute, got {spec!r}", param_hint="--tools")
    try:
        target: Any = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise click.BadParameter(f"cannot load {spec!r}: {e}", param_hint="--tools") from e

    if callable(target) and not isinstance(target, (Tool, ToolRegistry)):
        target = target()
    if isinstance(target, ToolRegistry):
        return target.list_tools()
    if isinstance(target, Tool):
        return [target]
    tools = list(target)
    if not all(isinstance(t, Tool) for t in tools):
        raise click.BadParameter(f"{spec!r} does not hold Tool objects", param_hint="--tools")
    return tools


async def _run_task(
    instruction: str,
    settings: ProviderSettings,
    registry: ToolRegistry,
    system_prompt: str,
    options: LoopOptions,
    approval: ApprovalSettings,
    json_output: bool,
):
    gate_ref: list[ApprovalGate] = []

    def on_event(event: AgentEvent):
        if event.type == EventType.APPROVAL_REQUEST:
            # Scheduled by the emitter, so the gate's timeout keeps running.
            return _prompt_approval(gate_ref[0], event)
        if not json_output:
            _print_event(event)
        return None

    events = EventEmitter(on_event)
    gate = ApprovalGate(events, timeout=approval.timeout_seconds)
    gate_ref.append(gate)

    adapter = create_adapter(settings, EnvCredentials())
    loop = TurnLoop(adapter, registry, gate=gate, events=events)

    if not json_output:
        click.echo(f"  Provider: {adapter.name} ({adapter.model})", err=True)
        click.echo(f"  Tools: {len(registry)}", err=True)

    return await loop.run(
        [{"role": "user", "content": instruction}],
        system_prompt,
        options,
    )


async def _prompt_approval(gate: ApprovalGate, event: AgentEvent) -> None:
    action = event.data.get("action") or {}
    click.echo(f"\n  Approval needed [{action.get('risk_level')}]: {action.get('tool_name')}", err=True)
    click.echo(f"  {json.dumps(action.get('arguments'), default=str)[:500]}", err=True)
    approved = await asyncio.to_thread(click.confirm, "  Allow?", default=False, err=True)
    # A no-op when the gate already timed out.
    gate.resolve(event.data["requestId"], approved)


def _print_event(event: AgentEvent) -> None:
    data = event.data
    if event.type == EventType.THINKING:
        click.echo(f"  [turn {data.get('turn')}] thinking…", err=True)
    elif event.type == EventType.TOOL_START:
        click.echo(f"  → {data.get('name')}", err=True)
    elif event.type == EventType.TOOL_END:
        status = "ok" if data.get("success") else f"failed: {data.get('error')}"
        click.echo(f"  ← {data.get('name')} ({status})", err=True)


if __name__ == "__main__":
    cli()
