"""Command-line interface for SieveText."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click
import structlog
from rich.console import Console
from rich.table import Table

from sievetext import __version__
from sievetext.config.config import ALL_LANGUAGES, Config, ExtractionConfig, load_config
from sievetext.exceptions import ConfigurationError, DecodeError, OutputShardError
from sievetext.observability import MetricsManager, configure_logging
from sievetext.pipeline import BatchDriver, BatchReport
from sievetext.sources import InputKind, discover_inputs, input_kind, iter_documents

console = Console()
err_console = Console(stderr=True)
logger = structlog.get_logger(__name__)


def _load(ctx: click.Context) -> Config:
    try:
        config = load_config(ctx.obj.get("config_path"))
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    log_level = ctx.obj.get("log_level")
    if log_level:
        monitoring = config.monitoring.model_copy(update={"log_level": log_level})
        config = config.model_copy(update={"monitoring": monitoring})
    return config


def _extraction_overrides(
    threads: Optional[int],
    timeout: Optional[float],
    languages: Optional[str],
    all_languages: bool,
    use_language: Optional[str],
    separator: Optional[str],
    no_separator: bool,
    min_paragraph_length: Optional[int],
    min_stop_words: Optional[int],
    min_stop_word_ratio: Optional[float],
    min_matching_words: Optional[int],
    min_matching_word_ratio: Optional[float],
) -> Dict[str, Any]:
    chosen = [name for name, given in (("-le", languages), ("-la", all_languages), ("-lu", use_language)) if given]
    if len(chosen) > 1:
        raise click.UsageError(f"Options {', '.join(chosen)} are mutually exclusive")
    if separator is not None and no_separator:
        raise click.UsageError("Options -pw and -pn are mutually exclusive")

    overrides: Dict[str, Any] = {
        "worker_count": threads,
        "timeout_seconds": timeout,
        "min_paragraph_length": min_paragraph_length,
        "min_stop_words": min_stop_words,
        "min_stop_word_ratio": min_stop_word_ratio,
        "min_matching_words": min_matching_words,
        "min_matching_word_ratio": min_matching_word_ratio,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}

    if all_languages:
        overrides.update(target_languages=ALL_LANGUAGES, language_override=None)
    elif languages:
        overrides.update(target_languages=languages, language_override=None)
    elif use_language:
        overrides["language_override"] = use_language

    if no_separator:
        overrides["paragraph_separator"] = None
    elif separator is not None:
        overrides["paragraph_separator"] = separator
    return overrides


def _summary_table(report: BatchReport) -> Table:
    counters = report.counters
    table = Table(title="Extraction Summary")
    table.add_column("Counter", style="cyan")
    table.add_column("Value", justify="right", style="green")
    table.add_row("Inputs", str(report.inputs))
    table.add_row("Valid documents", str(counters.valid_documents))
    table.add_row("Zero-sentence documents", str(counters.zero_sentence_documents))
    table.add_row("Decode errors", str(counters.decode_errors))
    table.add_row("Extraction errors", str(counters.extract_errors))
    table.add_row("Timeouts", str(counters.timeouts))
    table.add_row("Output sentences", str(counters.output_sentences))
    table.add_row("Duration (s)", f"{report.duration:.2f}")
    return table


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True, path_type=Path), help="Configuration file path")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level (overrides the configuration file)",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[Path], log_level: Optional[str]) -> None:
    """SieveText - extracts main-content sentences from HTML and WARC files."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["log_level"] = log_level


@cli.command()
@click.option(
    "--input",
    "-i",
    "inputs",
    multiple=True,
    required=True,
    type=click.Path(exists=True, path_type=Path),
    help="HTML or WARC file, or directory searched recursively (repeatable)",
)
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Output directory for the shards")
@click.option("--threads", "-t", type=click.IntRange(min=1), help="Number of parallel workers")
@click.option("--timeout-in-seconds", "-s", "timeout", type=click.FloatRange(min=0, min_open=True))
@click.option("--write-names", "-n", is_flag=True, help="Precede each document by its names")
@click.option("--language-extract", "-le", "languages", help="Comma-separated languages to extract, e.g. 'en,de'")
@click.option("--language-all", "-la", "all_languages", is_flag=True, help="Extract paragraphs of all languages")
@click.option("--language-use", "-lu", "use_language", help="Assume this language for every paragraph")
@click.option("--separate-paragraphs-with", "-pw", "separator", help="Line written between paragraphs")
@click.option("--separate-paragraphs-not", "-pn", "no_separator", is_flag=True, help="Do not separate paragraphs")
@click.option("--min-paragraph-length", "-l", type=click.IntRange(min=0))
@click.option("--min-stop-words", "-sw", type=click.IntRange(min=0))
@click.option("--min-stop-word-ratio", "-swr", type=click.FloatRange(0.0, 1.0))
@click.option("--min-matching-words", "-mw", type=click.IntRange(min=0))
@click.option("--min-matching-word-ratio", "-mwr", type=click.FloatRange(0.0, 1.0))
@click.pass_context
def extract(
    ctx: click.Context,
    inputs: Tuple[Path, ...],
    output: Optional[Path],
    threads: Optional[int],
    timeout: Optional[float],
    write_names: bool,
    languages: Optional[str],
    all_languages: bool,
    use_language: Optional[str],
    separator: Optional[str],
    no_separator: bool,
    min_paragraph_length: Optional[int],
    min_stop_words: Optional[int],
    min_stop_word_ratio: Optional[float],
    min_matching_words: Optional[int],
    min_matching_word_ratio: Optional[float],
) -> None:
    """Extract valid sentences from INPUT files into per-worker shards."""
    config = _load(ctx)
    overrides = _extraction_overrides(
        threads,
        timeout,
        languages,
        all_languages,
        use_language,
        separator,
        no_separator,
        min_paragraph_length,
        min_stop_words,
        min_stop_word_ratio,
        min_matching_words,
        min_matching_word_ratio,
    )
    try:
        extraction = ExtractionConfig.model_validate({**config.extraction.model_dump(), **overrides})
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    output_updates: Dict[str, Any] = {}
    if output is not None:
        output_updates["output_dir"] = output
    if write_names:
        output_updates["write_names"] = True
    config = config.model_copy(
        update={"extraction": extraction, "output": config.output.model_copy(update=output_updates)}
    )

    configure_logging(config.monitoring)
    MetricsManager(config.monitoring).start()

    paths = discover_inputs(inputs)
    if not paths:
        err_console.print("[yellow]No HTML or WARC inputs found[/yellow]")
        return

    driver = BatchDriver(config)
    try:
        report = driver.run_sync(paths)
    except OutputShardError as e:
        err_console.print(f"[red]{e}[/red]")
        sys.exit(1)

    console.print(_summary_table(report))
    if report.interrupted:
        err_console.print("[yellow]Interrupted, not all inputs were processed[/yellow]")
        sys.exit(130)


@cli.command()
@click.argument("warc_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--names-only", is_flag=True, help="Print only the names of the HTML documents")
@click.pass_context
def decode(ctx: click.Context, warc_file: Path, names_only: bool) -> None:
    """Print the HTML documents held by WARC_FILE."""
    config = _load(ctx)
    configure_logging(config.monitoring)
    if input_kind(warc_file) is not InputKind.WARC:
        raise click.BadParameter("expected a .warc or .warc.gz file", param_hint="WARC_FILE")

    errors: List[DecodeError] = []
    count = 0
    for document in iter_documents(warc_file, config.decoding, on_error=errors.append):
        count += 1
        if names_only:
            click.echo(document.annotation())
        else:
            console.rule(document.annotation())
            click.echo(document.html)

    err_console.print(f"[green]{count} HTML documents[/green], [red]{len(errors)} decode errors[/red]")
    for error in errors:
        err_console.print(f"  [red]{error}[/red]")


def main() -> None:
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
