"""CLI entry point for the strategy lab."""

from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import click
from pydantic import TypeAdapter, ValidationError

from .core.errors import StrategyLabError
from .core.models import EquityPoint, TradeRecord


@contextmanager
def _user_errors() -> Iterator[None]:
    """Turn domain errors into clean CLI failures (no traceback)."""
    try:
        yield
    except StrategyLabError as exc:
        raise click.ClickException(str(exc)) from exc


def _read_json(path: str) -> Any:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except ValueError as exc:
        raise click.ClickException(f"{path}: invalid JSON ({exc})") from exc


def _read_list(path: str, model: type) -> list:
    try:
        return TypeAdapter(list[model]).validate_python(_read_json(path))
    except ValidationError as exc:
        raise click.ClickException(f"{path}: {exc}") from exc


def _fmt(value: Any, spec: str = ".2f") -> str:
    if value is None:
        return "-"
    return format(value, spec)


@click.group()
@click.option("--config", default=None, help="Config file path (TOML)")
@click.option("--data-dir", default=None, help="Use the file store rooted here")
@click.pass_context
def main(ctx: click.Context, config: str | None, data_dir: str | None) -> None:
    """Strategy Lab pipeline and session analytics."""
    from .core.config import load_settings
    from .observability.logger import setup_logging

    overrides: dict[str, Any] = {}
    if data_dir:
        overrides["store"] = {"backend": "file", "data_dir": data_dir}

    with _user_errors():
        settings = load_settings(config_path=config, overrides=overrides)
    setup_logging(
        level=settings.observability.log_level,
        format=settings.observability.log_format,
    )
    ctx.obj = settings


def _controller(ctx: click.Context):
    from .pipeline import PipelineController, StepGate
    from .storage import build_session_store

    settings = ctx.obj
    with _user_errors():
        return PipelineController(build_session_store(settings), StepGate(settings.steps))


def _echo_state(state) -> None:
    click.echo(f"Session: {state.session_id}")
    for status in state.steps.values():
        step = status.step
        kind = "required" if step.required else "optional"
        if status.corrupted:
            mark = "CORRUPTED"
        elif status.usable:
            mark = f"imported {status.record.timestamp.isoformat()}"
        else:
            mark = "no data"
        click.echo(f"  {step.id:15s} {step.name:25s} {kind:9s} {mark}")
    ready = "yes" if state.all_required_satisfied else "no"
    click.echo(f"Ready for review: {ready}")


@main.command("new-session")
def new_session() -> None:
    """Print a fresh session id."""
    from .core.ids import new_session_id

    click.echo(new_session_id())


@main.command()
@click.argument("session_id")
@click.pass_context
def status(ctx: click.Context, session_id: str) -> None:
    """Show the pipeline state of a session."""
    from .observability.logger import bind_session

    bind_session(session_id)
    with _user_errors():
        state = _controller(ctx).load_state(session_id)
    _echo_state(state)


@main.command()
@click.argument("session_id")
@click.argument("step_id")
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def export(ctx: click.Context, session_id: str, step_id: str, payload_file: str) -> None:
    """Save a module's JSON output for a session."""
    from .observability.logger import bind_session

    bind_session(session_id)
    payload = _read_json(payload_file)
    with _user_errors():
        record = _controller(ctx).export_step(session_id, step_id, payload)
    click.echo(f"Saved {step_id} data for {session_id} at {record.timestamp.isoformat()}")


@main.command("import")
@click.argument("session_id")
@click.argument("step_id")
@click.pass_context
def import_(ctx: click.Context, session_id: str, step_id: str) -> None:
    """Import a step's exported data into the session pipeline."""
    from .observability.logger import bind_session

    bind_session(session_id)
    with _user_errors():
        result = _controller(ctx).import_step(session_id, step_id)
    click.echo(result.message)
    if not result.success:
        ctx.exit(1)


@main.command()
@click.argument("session_id")
@click.pass_context
def advance(ctx: click.Context, session_id: str) -> None:
    """Check whether a session may proceed to review."""
    from .observability.logger import bind_session

    bind_session(session_id)
    with _user_errors():
        decision = _controller(ctx).try_advance(session_id)
    click.echo(decision.message)
    if not decision.allowed:
        ctx.exit(1)


@main.command("trade-stats")
@click.argument("trades_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--equity", "equity_file", default=None,
              type=click.Path(exists=True, dir_okay=False), help="Equity curve JSON")
@click.option("--sort-by", default=None, help="Print the trade log sorted by this field")
@click.option("--desc", is_flag=True, help="Sort descending")
@click.option("--csv", "as_csv", is_flag=True, help="Print the trade log as CSV")
def trade_stats(
    trades_file: str, equity_file: str | None, sort_by: str | None, desc: bool, as_csv: bool,
) -> None:
    """Summarize a backtest trade log (and optional equity curve)."""
    from .analytics import (
        compute_drawdown_curve,
        compute_trade_statistics,
        sort_by_field,
        trades_to_csv,
    )

    trades = _read_list(trades_file, TradeRecord)
    stats = compute_trade_statistics(trades)

    click.echo(f"  Trades:          {stats.total_trades}")
    click.echo(f"  Avg Profit:      {_fmt(stats.avg_profit)}")
    click.echo(f"  Max Win:         {_fmt(stats.max_win)}")
    click.echo(f"  Max Loss:        {_fmt(stats.max_loss)}")
    click.echo(f"  Win Streak:      {stats.max_win_streak}")
    click.echo(f"  Loss Streak:     {stats.max_loss_streak}")
    click.echo(f"  Win Rate:        {_fmt(stats.win_rate, '.1%')}")

    if equity_file:
        points = _read_list(equity_file, EquityPoint)
        click.echo("\n  Drawdown:")
        for dd in compute_drawdown_curve(points):
            click.echo(f"    {dd.date:12s} {_fmt(dd.drawdown_pct)}%")

    if sort_by or as_csv:
        ordered = trades
        if sort_by:
            try:
                ordered = sort_by_field(trades, sort_by, ascending=not desc)
            except ValueError as exc:
                raise click.BadParameter(str(exc), param_hint="--sort-by") from exc
        if as_csv:
            click.echo("")
            click.echo(trades_to_csv(ordered), nl=False)
        else:
            click.echo("\n  Trade Log:")
            for t in ordered:
                click.echo(f"    {t.date:12s} {t.asset:8s} {t.pnl:+.2f}")


@main.command()
@click.argument("sessions_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("session_ids", nargs=-1)
def compare(sessions_file: str, session_ids: tuple[str, ...]) -> None:
    """Compare saved sessions side by side."""
    from .analytics import compare_by_ids
    from .sessions import JsonFileSessionRepository

    with _user_errors():
        repo = JsonFileSessionRepository(sessions_file)
        table = compare_by_ids(repo, list(session_ids))

    header = f"{'Metric':25s}" + "".join(f"{s.name[:20]:>22s}" for s in table.sessions)
    click.echo(header)
    click.echo("-" * len(header))
    for rec in table.to_records(missing="-"):
        cells = "".join(f"{str(rec[sid]):>22s}" for sid in table.session_ids)
        click.echo(f"{rec['label'][:25]:25s}{cells}")


@main.command()
@click.argument("sessions_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--module", default=None, help="Only sessions of this module")
@click.option("--search", default=None, help="Substring of session name or module")
def sessions(sessions_file: str, module: str | None, search: str | None) -> None:
    """List saved sessions and catalog analytics."""
    from .sessions import JsonFileSessionRepository, filter_sessions, usage_summary

    with _user_errors():
        repo = JsonFileSessionRepository(sessions_file)
    everything = repo.list_all()
    shown = filter_sessions(everything, module=module, search=search)

    if not shown:
        click.echo("No sessions found.")
    for s in shown:
        click.echo(f"  {s.id:10s} {s.name:30s} {s.module:25s} {s.timestamp.isoformat()}")

    usage = usage_summary(everything)
    click.echo(f"\nTotal Sessions:     {usage.total_sessions}")
    click.echo(f"Most Used Module:   {usage.most_used_module or '-'}")
    click.echo(f"Avg Sharpe Ratio:   {_fmt(usage.average_sharpe_ratio)}")
