"""frame-query CLI entrypoint."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click
import yaml

from frame_cli.shared.cli import CLIContext, common_cli_options, handle_cli_errors, pass_cli_context

from . import debug, render
from .cursor import RecordedCursor
from .executor import run_query
from .macros import expand_macros, plan_range
from .rangevector import decode_range_vector
from .spec import decode_query_spec
from .templates import templates_for
from .types import DeploymentVariant, FrameSet, QueryKind, QueryLanguage, QuerySpec
from .window import resolve_time_range


def window_options(func):
    """Attach --from/--to/--last/--step to a command."""

    func = click.option("--step", type=int, help="Step in seconds (defaults to query.step_seconds).")(func)
    func = click.option("--last", type=str, help="Lookback ending at --to, e.g. 15m, 6h, 2d. Default 1h.")(func)
    func = click.option("--to", "end", type=str, help="Window end (epoch seconds or ISO-8601). Default now.")(func)
    func = click.option("--from", "start", type=str, help="Window start (epoch seconds or ISO-8601).")(func)
    return func


def format_option(func):
    return click.option(
        "--format",
        "output_format",
        default="table",
        show_default=True,
        type=click.Choice(render.OUTPUT_FORMAT_CHOICES),
    )(func)


@click.group(help="Translate telemetry queries and assemble their results into frames.")
@common_cli_options
def cli(cli_ctx: CLIContext) -> None:
    """Primary Click group for frame-query commands."""
    cli_ctx.logger.debug(f"frame-query using config {cli_ctx.config.source_path}")


@cli.command("translate")
@click.argument("sql", type=str)
@window_options
@pass_cli_context
@handle_cli_errors
def translate(
    cli_ctx: CLIContext,
    sql: str,
    start: str | None,
    end: str | None,
    last: str | None,
    step: int | None,
) -> None:
    """Expand $__ time macros in SQL and bind :start_time/:end_time."""
    if not sql.strip():
        raise click.ClickException("SQL text must not be empty.")
    time_range = resolve_time_range(start=start, end=end, last=last)
    query_text = expand_macros(sql, time_range, _step(cli_ctx, step), logger=cli_ctx.logger)
    render.render_query_text(query_text)


@cli.command("promql")
@click.argument("expression", type=str)
@window_options
@pass_cli_context
@handle_cli_errors
def promql(
    cli_ctx: CLIContext,
    expression: str,
    start: str | None,
    end: str | None,
    last: str | None,
    step: int | None,
) -> None:
    """Render the range-query SQL for a PromQL expression."""
    time_range = resolve_time_range(start=start, end=end, last=last)
    window = plan_range(time_range.start_epoch, time_range.end_epoch, _step(cli_ctx, step))
    if window.downsampled:
        cli_ctx.logger.warning(
            f"Step raised from {window.requested_step}s to {window.step}s ({window.data_points} points)."
        )
    templates = templates_for(_variant(cli_ctx))
    render.render_query_text(templates.render_range(expression, window.start, window.end, window.step))


@cli.command("assemble")
@click.argument("result_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--query",
    "query_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Query payload (JSON or YAML) describing how to assemble the result.",
)
@click.option("--expr", "expression", default="", help="SQL or PromQL text the result came from.")
@click.option("--promql", "is_promql", is_flag=True, help="Result holds a range-vector JSON payload.")
@click.option("--time-series/--table", "time_series", default=True, show_default=True)
@click.option("--legend", default="", help="Legend template, e.g. '{{instance}}'.")
@window_options
@format_option
@pass_cli_context
@handle_cli_errors
def assemble(
    cli_ctx: CLIContext,
    result_file: Path,
    query_file: Path | None,
    expression: str,
    is_promql: bool,
    time_series: bool,
    legend: str,
    start: str | None,
    end: str | None,
    last: str | None,
    step: int | None,
    output_format: str,
) -> None:
    """Assemble a recorded result set into frames."""
    time_range = resolve_time_range(start=start, end=end, last=last)
    if query_file is not None:
        spec = decode_query_spec(
            _load_document(query_file),
            settings=cli_ctx.config.query,
            variant=_variant(cli_ctx),
        )
    else:
        spec = QuerySpec(
            ref_id="A",
            kind=QueryKind.DATA,
            language=QueryLanguage.PROMQL if is_promql else QueryLanguage.SQL,
            expression=expression,
            legend=legend,
            step_seconds=_step(cli_ctx, step),
            prefetch_rows=cli_ctx.config.query.prefetch_rows,
            convert_to_time_series=time_series,
            deployment_variant=_variant(cli_ctx),
        )
    cli_ctx.logger.debug(debug.describe_query_spec(spec))

    try:
        cursor = RecordedCursor.from_mapping(_load_document(result_file))
    except ValueError as exc:
        raise click.ClickException(f"Invalid result file {result_file}: {exc}") from exc
    cli_ctx.logger.debug(f"Columns: {debug.describe_columns(cursor.columns)}")

    response = run_query(
        spec,
        time_range,
        lambda _sql, _prefetch: cursor,
        label_lookback_seconds=cli_ctx.config.query.label_lookback_seconds,
        logger=cli_ctx.logger,
    )
    if response.error is not None:
        raise response.error
    _render(cli_ctx, FrameSet(frames=response.frames, rows_processed=response.rows_processed), output_format)


@cli.command("decode")
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--legend", default="", help="Legend template, e.g. '{{instance}}'.")
@format_option
@pass_cli_context
@handle_cli_errors
def decode(cli_ctx: CLIContext, payload_file: Path, legend: str, output_format: str) -> None:
    """Decode a range-vector JSON document into frames."""
    frame_set = decode_range_vector(payload_file.read_text(encoding="utf-8"), legend=legend)
    _render(cli_ctx, frame_set, output_format)


def _step(cli_ctx: CLIContext, step: int | None) -> int:
    return cli_ctx.config.query.step_seconds if step is None else step


def _variant(cli_ctx: CLIContext) -> DeploymentVariant:
    return DeploymentVariant.from_setting(cli_ctx.config.deployment.variant)


def _load_document(path: Path) -> Any:
    """Load a JSON or YAML document."""
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as exc:
        raise click.ClickException(f"Could not parse {path}: {exc}") from exc


def _render(cli_ctx: CLIContext, frame_set: FrameSet, output_format: str) -> None:
    cli_ctx.logger.debug(debug.describe_frame_set(frame_set))
    render.render_frame_set(frame_set, output_format=output_format, logger=cli_ctx.logger)


def main() -> None:
    """Entry point for console_scripts."""
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
