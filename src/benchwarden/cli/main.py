"""Main CLI entry point for benchwarden.

This module defines the Typer application and all CLI commands.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any, NoReturn

import typer
from pydantic import ValidationError

from benchwarden import __version__
from benchwarden.core.config import Settings, configure_logging
from benchwarden.core.exceptions import BenchwardenError
from benchwarden.core.gating import EmitConfig
from benchwarden.core.types import Commit
from benchwarden.history import FileStore, HistoryStore
from benchwarden.history.store import now_millis
from benchwarden.parsers import available_tools, get_parser, parse
from benchwarden.pipeline import RetryPolicy, run_pipeline
from benchwarden.regression.models import Direction, Method, RegressionConfig

if TYPE_CHECKING:
    from benchwarden.history.models import HistoryDocument
    from benchwarden.notify import NotificationSink
    from benchwarden.pipeline import PipelineResult

# Create the main Typer app
app = typer.Typer(
    name="benchwarden",
    help="benchwarden: Benchmark history and regression gating for CI.",
    add_completion=False,
    no_args_is_help=True,
)

# Global state for options
state: dict[str, bool] = {
    "json": False,
    "no_color": False,
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"benchwarden v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[  # noqa: ARG001
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
    no_color: Annotated[
        bool,
        typer.Option(
            "--no-color",
            help="Disable colored output.",
        ),
    ] = False,
) -> None:
    """benchwarden: Benchmark history and regression gating for CI.

    Records every benchmark run in a long-lived history and fails the
    build when a benchmark regresses against its recent past.
    """
    state["json"] = json_output
    state["no_color"] = no_color
    configure_logging(Settings().log_level)


@app.command()
def version() -> None:
    """Show the current version."""
    typer.echo(f"benchwarden v{__version__}")


def _fail(message: str) -> NoReturn:
    """Print an error and exit with status 1."""
    if state["json"]:
        typer.echo(json.dumps({"status": "error", "error": message}))
    else:
        typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def _split_list(raw: str | None) -> list[str] | None:
    """Split a comma separated option value."""
    if raw is None:
        return None
    return [item.strip() for item in raw.split(",") if item.strip()]


def _parse_directions(raw: str | None) -> dict[str, Direction] | None:
    """Parse ``name=lower,other=higher`` into a direction mapping."""
    if raw is None:
        return None
    directions: dict[str, Direction] = {}
    for item in _split_list(raw) or []:
        name, sep, value = item.rpartition("=")
        if not sep or not name:
            _fail(f"Invalid --direction entry {item!r}, expected NAME=lower|higher")
        try:
            directions[name.strip()] = Direction(value.strip().lower())
        except ValueError:
            _fail(f"Invalid direction {value!r} for {name!r}, expected lower or higher")
    return directions


def load_commit(path: Path) -> Commit:
    """Load a commit from a JSON file.

    The file holds either a bare commit object or a GitHub event payload,
    whose ``head_commit`` is used.

    Raises:
        BenchwardenError: If the file cannot be read or holds no valid commit.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        msg = f"Cannot read commit file {path}: {e}"
        raise BenchwardenError(msg) from e
    except json.JSONDecodeError as e:
        msg = f"Commit file {path} is not valid JSON: {e}"
        raise BenchwardenError(msg) from e

    if isinstance(data, dict) and isinstance(data.get("head_commit"), dict):
        data = data["head_commit"]
    try:
        return Commit.model_validate(data)
    except ValidationError as e:
        msg = f"Commit file {path} does not describe a commit: {e}"
        raise BenchwardenError(msg) from e


def _regression_config(
    tool: str,
    config_path: Path | None,
    threshold: float | None,
    window: int | None,
    method: Method | None,
    directions: dict[str, Direction] | None,
) -> RegressionConfig:
    """Build the detection configuration: file values, then flags."""
    base = RegressionConfig.from_yaml(config_path) if config_path else RegressionConfig()
    default_direction = None
    if "default_direction" not in base.model_fields_set:
        default_direction = Direction.HIGHER if get_parser(tool).bigger_is_better else Direction.LOWER
    return base.with_overrides(
        threshold=threshold,
        window_size=window,
        method=method,
        directions=directions,
        default_direction=default_direction,
    )


def _emit_config(config_path: Path | None, fail_on: list[str] | None, fail_on_any_regression: bool) -> EmitConfig:
    """Build the gating configuration: file values, then flags."""
    base = EmitConfig.from_yaml(config_path) if config_path else EmitConfig()
    update: dict[str, Any] = {}
    if fail_on is not None:
        update["fail_on"] = fail_on
    if fail_on_any_regression:
        update["fail_on_any_regression"] = True
    return base.model_validate({**base.model_dump(), **update})


@app.command()
def ingest(
    tool: Annotated[
        str,
        typer.Option(
            "--tool",
            "-t",
            help=f"Benchmark tool that produced the output ({', '.join(available_tools())}).",
        ),
    ],
    input_path: Annotated[
        Path,
        typer.Option(
            "--input",
            "-i",
            help="Path to the raw benchmark output.",
        ),
    ],
    commit_json: Annotated[
        Path,
        typer.Option(
            "--commit-json",
            "-c",
            help="Path to the commit JSON (a commit object or a GitHub event payload).",
        ),
    ],
    store_path: Annotated[
        Path,
        typer.Option(
            "--store",
            "-s",
            help="Path to the history file (data.js).",
        ),
    ],
    suite: Annotated[
        str | None,
        typer.Option(
            "--suite",
            help="History key of the run. Defaults to the tool name.",
        ),
    ] = None,
    threshold: Annotated[
        float | None,
        typer.Option(
            "--threshold",
            help="Detection threshold (deviations for zscore, factor for ratio).",
        ),
    ] = None,
    window: Annotated[
        int | None,
        typer.Option(
            "--window",
            help="Number of most recent runs forming the baseline.",
        ),
    ] = None,
    method: Annotated[
        Method | None,
        typer.Option(
            "--method",
            help="Detection method.",
        ),
    ] = None,
    fail_on: Annotated[
        str | None,
        typer.Option(
            "--fail-on",
            help="Comma separated benchmarks whose regression fails the build.",
        ),
    ] = None,
    fail_on_any_regression: Annotated[
        bool,
        typer.Option(
            "--fail-on-any-regression",
            help="Fail the build on any regression.",
        ),
    ] = False,
    direction: Annotated[
        str | None,
        typer.Option(
            "--direction",
            help="Comma separated NAME=lower|higher overrides.",
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            help="YAML file with 'regression' and 'emit' sections.",
        ),
    ] = None,
    max_items: Annotated[
        int | None,
        typer.Option(
            "--max-items",
            help="Keep only this many newest runs per suite.",
        ),
    ] = None,
    repo_url: Annotated[
        str,
        typer.Option(
            "--repo-url",
            help="Repository URL recorded in a new history.",
        ),
    ] = "",
    date: Annotated[
        int | None,
        typer.Option(
            "--date",
            help="Run date in epoch milliseconds. Defaults to now.",
        ),
    ] = None,
    webhook_url: Annotated[
        str | None,
        typer.Option(
            "--webhook-url",
            help="URL that receives the outcome as JSON.",
        ),
    ] = None,
    markdown_out: Annotated[
        Path | None,
        typer.Option(
            "--markdown-out",
            help="Write a Markdown report to this path.",
        ),
    ] = None,
) -> None:
    """Record a benchmark run and check it for regressions.

    Exits with status 1 when a failing regression is detected or the run
    cannot be recorded.

    Examples:
        benchwarden ingest --tool cargo --input output.txt --commit-json commit.json --store dev/bench/data.js
        benchwarden ingest ... --fail-on-any-regression --threshold 3
        benchwarden --json ingest ... --direction "throughput=higher"
    """
    settings = Settings()

    try:
        raw_output = input_path.read_bytes()
    except OSError as e:
        _fail(f"Cannot read benchmark output {input_path}: {e}")

    try:
        commit = load_commit(commit_json)
        batch = parse(tool, raw_output, commit, date if date is not None else now_millis(), suite=suite)
        regression_config = _regression_config(
            tool, config, threshold, window, method, _parse_directions(direction)
        )
        emit_config = _emit_config(config, _split_list(fail_on), fail_on_any_regression)
    except (BenchwardenError, FileNotFoundError, ValidationError) as e:
        _fail(str(e))

    store = HistoryStore(
        FileStore(store_path),
        repo_url=repo_url,
        max_items=max_items if max_items is not None else settings.max_items,
    )
    sink: NotificationSink | None = None
    url = webhook_url or settings.webhook_url
    if url:
        from benchwarden.notify import WebhookSink

        sink = WebhookSink(url)

    try:
        result = asyncio.run(
            run_pipeline(
                batch,
                store,
                regression_config=regression_config,
                emit_config=emit_config,
                retry=RetryPolicy.from_settings(settings),
                sink=sink,
            )
        )
    except BenchwardenError as e:
        _fail(str(e))

    if markdown_out is not None:
        from benchwarden.reporters.markdown import MarkdownReporter

        MarkdownReporter().write(result.report, markdown_out, result.outcome)

    _print_result(result)
    raise typer.Exit(result.outcome.exit_code)


def _print_result(result: PipelineResult) -> None:
    """Print the report and outcome of an ingested run."""
    if state["json"]:
        from benchwarden.reporters.json import JSONReporter

        metadata = {
            "attempts": result.attempts,
            "duplicate": result.duplicate,
            "revision": result.revision,
            "notification_error": result.notification_error,
        }
        typer.echo(JSONReporter().report(result.report, result.outcome, metadata))
        return

    from benchwarden.reporters.console import ConsoleReporter

    reporter = ConsoleReporter(use_colors=not state["no_color"])
    reporter.report(result.report, result.outcome)
    if result.appended is None:
        reporter.print_info(f"Commit {result.report.commit_id[:7]} is already recorded, history left unchanged.")
    elif result.appended.trimmed:
        reporter.print_info(f"Dropped {result.appended.trimmed} oldest runs to respect --max-items.")
    if result.notification_error:
        reporter.print_warning(f"Notification failed: {result.notification_error}")
    typer.echo()


@app.command()
def show(
    store_path: Annotated[
        Path,
        typer.Option(
            "--store",
            "-s",
            help="Path to the history file (data.js).",
        ),
    ],
    tool: Annotated[
        str | None,
        typer.Option(
            "--tool",
            "--suite",
            "-t",
            help="Suite to list the benchmarks of.",
        ),
    ] = None,
    name: Annotated[
        str | None,
        typer.Option(
            "--name",
            "-n",
            help="Benchmark to show the series of (requires --tool).",
        ),
    ] = None,
) -> None:
    """Show the suites, benchmarks or series recorded in a history.

    Examples:
        benchwarden show --store dev/bench/data.js
        benchwarden show --store dev/bench/data.js --tool "Rust Benchmark"
        benchwarden show --store dev/bench/data.js --tool "Rust Benchmark" --name "Node set"
    """
    if name is not None and tool is None:
        _fail("--name requires --tool")

    try:
        doc, _token = asyncio.run(HistoryStore(FileStore(store_path)).load())
    except BenchwardenError as e:
        _fail(str(e))

    if tool is None:
        _show_suites(doc)
    elif tool not in doc.entries:
        _fail(f"No suite named {tool!r} in {store_path}")
    elif name is None:
        _show_benchmarks(doc, tool)
    else:
        _show_series(doc, tool, name)


def _show_suites(doc: HistoryDocument) -> None:
    suites = {suite: len(doc.entries_for(suite)) for suite in doc.suites()}
    if state["json"]:
        typer.echo(json.dumps({"lastUpdate": doc.last_update, "repoUrl": doc.repo_url, "suites": suites}, indent=2))
        return
    if not suites:
        typer.echo("  No benchmark runs recorded yet.")
        return
    typer.echo(f"  Repository: {doc.repo_url or '-'}")
    for suite, count in suites.items():
        typer.echo(f"    {suite}: {count} runs")


def _show_benchmarks(doc: HistoryDocument, suite: str) -> None:
    rows = []
    for bench in doc.benchmark_names(suite):
        latest = doc.series(suite, bench).latest
        rows.append(
            {
                "name": bench,
                "points": len(doc.series(suite, bench)),
                "latest": latest.value if latest else None,
                "unit": latest.unit if latest else None,
            }
        )
    if state["json"]:
        typer.echo(json.dumps({"suite": suite, "benchmarks": rows}, indent=2, ensure_ascii=False))
        return
    typer.echo(f"  {suite}")
    for row in rows:
        typer.echo(f"    {row['name']}: {row['points']} points, latest {row['latest']} {row['unit']}")


def _show_series(doc: HistoryDocument, suite: str, name: str) -> None:
    series = doc.series(suite, name)
    if series.is_empty:
        _fail(f"No benchmark named {name!r} in suite {suite!r}")
    points = [
        {
            "commit": p.commit.id,
            "date": p.date,
            "value": p.value,
            "range": p.error_range,
            "unit": p.unit,
        }
        for p in series
    ]
    if state["json"]:
        typer.echo(json.dumps({"suite": suite, "name": name, "points": points}, indent=2, ensure_ascii=False))
        return
    typer.echo(f"  {suite} / {name}")
    for point in points:
        typer.echo(f"    {point['date']}  {point['commit'][:7]}  {point['value']} ± {point['range']} {point['unit']}")


if __name__ == "__main__":
    app()
