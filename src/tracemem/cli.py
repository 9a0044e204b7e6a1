"""
Command-line interface for tracemem.

Provides commands to replay and analyze recorded tool calls, inspect
tool scores and scoring profiles, and start the API server.
"""

import json
import os

import click
import uvicorn
import weave

from tracemem.analysis import AnalysisType
from tracemem.detector import TraceDetector
from tracemem.exceptions import TraceConfigError, TraceNotFoundError
from tracemem.ingestion import read_tool_calls_jsonl
from tracemem.scoring import ScoringFactors, WeightedToolScorer
from tracemem.utils.config import load_configs
from tracemem.utils.logger import set_global_log_level


def _load(ctx: click.Context):
    try:
        cfg = load_configs(ctx.obj["config"], ctx.obj["scoring_config"])
    except TraceConfigError as e:
        raise click.ClickException(str(e))
    set_global_log_level(cfg.logging_level)
    if cfg.weave_project:
        weave.init(cfg.weave_project)
    return cfg


def _replay(ctx: click.Context, path: str) -> TraceDetector:
    detector = TraceDetector.from_config(_load(ctx))
    try:
        detector.ingest(read_tool_calls_jsonl(path))
    except ValueError as e:
        raise click.ClickException(str(e))
    detector.flush()
    return detector


@click.group()
@click.option(
    "--config",
    default="config.toml",
    help="Path to trace configuration file",
)
@click.option(
    "--scoring-config",
    default="scoring_config.toml",
    help="Path to scoring registry file",
)
@click.pass_context
def main(ctx: click.Context, config: str, scoring_config: str):
    """Trace detection and scoring for coding-agent tool calls."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["scoring_config"] = scoring_config


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, default=False, help="Print traces as JSON")
@click.option(
    "--compress-age",
    type=float,
    default=None,
    help="Compress traces older than this many hours after replay",
)
@click.pass_context
def replay(ctx: click.Context, path: str, as_json: bool, compress_age: float | None):
    """
    Replay a JSONL file of tool calls and print the detected traces.

    Each line is a tool call record or an agent hook event.

    Example usage:
        tracemem replay session.jsonl
        tracemem --scoring-config prod.toml replay session.jsonl --json
    """
    detector = _replay(ctx, path)
    if compress_age is not None:
        detector.compress_old_traces(compress_age)

    if as_json:
        click.echo(detector.store.export_json())
        return

    for trace in detector.get_traces():
        marker = " [compressed]" if trace.compressed else ""
        click.echo(f"{trace.score:.3f}  {trace.type.value:<24} {trace.summary}{marker}")

    stats = detector.get_statistics()
    click.echo(
        f"\n{stats.total_traces} traces, average score {stats.average_score:.3f}, "
        f"{stats.high_importance_count} high importance"
    )


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--type",
    "analysis_type",
    type=click.Choice([t.value for t in AnalysisType]),
    default=AnalysisType.PERFORMANCE.value,
    help="Analysis view to print",
)
@click.option("--trace-id", default=None, help="Analyze only this trace")
@click.pass_context
def analyze(ctx: click.Context, path: str, analysis_type: str, trace_id: str | None):
    """
    Replay a JSONL file of tool calls and print an analysis as JSON.

    Example usage:
        tracemem analyze session.jsonl --type errors
    """
    detector = _replay(ctx, path)
    try:
        analysis = detector.analyze(analysis_type, trace_id)
    except TraceNotFoundError:
        raise click.ClickException(f"Trace '{trace_id}' not found")
    click.echo(json.dumps(analysis, indent=2))


@main.command()
@click.argument("tool")
@click.option("--files", default=0, type=int, help="Number of files affected")
@click.option("--permanent", is_flag=True, default=False, help="Call makes a permanent change")
@click.option("--references", default=0, type=int, help="Number of references")
@click.pass_context
def score(ctx: click.Context, tool: str, files: int, permanent: bool, references: int):
    """Show how a single tool call would be scored."""
    cfg = _load(ctx)
    scorer = WeightedToolScorer.from_config(cfg.scoring)
    factors = ScoringFactors(
        files_affected=files, is_permanent=permanent, reference_count=references
    )
    breakdown = scorer.explain(tool, factors)
    click.echo(json.dumps({"tool": tool, **breakdown}, indent=2))


@main.command()
@click.pass_context
def profiles(ctx: click.Context):
    """List the available scoring profiles."""
    cfg = _load(ctx)
    active = cfg.scoring.profile or "default"
    for name, profile in sorted(cfg.scoring.profiles.items()):
        marker = "*" if name == active else " "
        click.echo(f"{marker} {name}: {profile.description or ''}")


@main.command()
@click.option(
    "--host",
    default="127.0.0.1",
    help="Host to bind the server to",
)
@click.option(
    "--port",
    default=8000,
    type=int,
    help="Port to bind the server to",
)
@click.option(
    "--reload",
    is_flag=True,
    default=False,
    help="Enable auto-reload for development",
)
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, reload: bool):
    """
    Start the trace API server.

    Example usage:
        tracemem serve --port 8080
        tracemem --config config.toml serve --reload
    """
    # Set environment variables for the app factory to pick up
    os.environ["TRACEMEM_API_TRACE_CONFIG"] = ctx.obj["config"]
    os.environ["TRACEMEM_API_SCORING_CONFIG"] = ctx.obj["scoring_config"]

    uvicorn.run(
        "tracemem.api.server:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    main()
