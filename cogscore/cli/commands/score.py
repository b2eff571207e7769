"""Scoring commands for the cogscore CLI.

- score: Python files and directories
- tree: construct-tree documents from other front ends
"""

from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import typer

from cogscore.cli.utils.console import get_console, print_warning
from cogscore.cli.utils.decorators import handle_errors
from cogscore.models.construct import FunctionUnit, SkippedUnit
from cogscore.utils.config import ComplexityConfig
from cogscore.utils.logging import get_logger, setup_logging

logger = get_logger("cli.score")


def load_config(
    config_path: Optional[Path],
    search_dir: Path,
    fail_on_violation: Optional[bool] = None,
    nested_functions: Optional[str] = None,
    workers: Optional[int] = None,
) -> ComplexityConfig:
    """Load (or discover) configuration and apply command-line overrides."""
    if config_path is not None:
        config = ComplexityConfig.load(config_path)
    else:
        config = ComplexityConfig.discover(search_dir)

    if fail_on_violation is not None:
        config.fail_on_violation = fail_on_violation
    if nested_functions is not None:
        config.nested_functions = nested_functions.lower()
    if workers is not None:
        config.max_workers = workers
    config.validate()
    return config


def iter_python_files(path: Path, exclude_dirs: List[str]) -> Iterator[Tuple[Path, str]]:
    """Yield (file, dotted module name) pairs under ``path``."""
    if path.is_file():
        yield path, path.stem
        return

    excluded = set(exclude_dirs)
    for file_path in sorted(path.rglob("*.py")):
        relative = file_path.relative_to(path)
        if any(part in excluded for part in relative.parts[:-1]):
            continue
        parts = list(relative.with_suffix("").parts)
        if parts[-1] == "__init__":
            parts = parts[:-1] or [path.name]
        yield file_path, ".".join(parts)


def collect_python_units(
    paths: List[Path], config: ComplexityConfig
) -> Tuple[List[FunctionUnit], List[SkippedUnit]]:
    from cogscore.frontends.python_adapter import PythonFrontend

    frontend = PythonFrontend()
    units: List[FunctionUnit] = []
    skipped: List[SkippedUnit] = []

    for root in paths:
        if not root.exists():
            raise FileNotFoundError(f"Path not found: {root}")
        for file_path, module in iter_python_files(root, config.exclude_dirs):
            try:
                units.extend(frontend.parse_file(file_path, module=module))
            except (SyntaxError, UnicodeDecodeError) as e:
                print_warning(f"Could not parse {file_path}: {e}")
                skipped.append(SkippedUnit(str(file_path), f"parse error: {e}"))

    return units, skipped


def emit_report(
    units: List[FunctionUnit],
    skipped: List[SkippedUnit],
    config: ComplexityConfig,
    json_output: bool,
    sarif: bool,
    verbose: bool,
) -> None:
    """Score the units, print the report and exit non-zero on failure."""
    from cogscore.report import ReportAggregator, RichReportOutput
    from cogscore.scoring import BatchScorer

    result = BatchScorer(config).score(units)

    aggregator = ReportAggregator(config)
    aggregator.add_batch(result)
    for unit in skipped:
        aggregator.add_skipped(unit)
    report = aggregator.build()

    if sarif:
        typer.echo(report.to_sarif_json())
    elif json_output:
        typer.echo(report.to_json())
    else:
        RichReportOutput(console=get_console(), verbose=verbose).print_report(report)

    if report.exit_code:
        raise typer.Exit(report.exit_code)


def _configure_logging(config: ComplexityConfig, verbose: bool) -> None:
    setup_logging(level="DEBUG" if verbose else config.log_level)


@handle_errors
def score(
    paths: List[Path] = typer.Argument(
        ...,
        help="Python files or directories to score",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (default: discover .cogscore.yaml)",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output as JSON",
    ),
    sarif: bool = typer.Option(
        False,
        "--sarif",
        help="Output as SARIF 2.1.0",
    ),
    fail_on_violation: Optional[bool] = typer.Option(
        None,
        "--fail-on-violation/--no-fail-on-violation",
        help="Exit 1 when any function is in the violation or severe tier",
    ),
    nested_functions: Optional[str] = typer.Option(
        None,
        "--nested-functions",
        help="Score nested functions 'separate' or 'inline'",
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        "-w",
        help="Parallel scoring workers",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show every function and debug logging",
    ),
) -> None:
    """Score Python functions for cognitive and cyclomatic complexity.

    Examples:
      cogscore score src/                  # Score a package
      cogscore score app.py --json         # Machine-readable report
      cogscore score . --sarif > out.sarif # For code scanning
    """
    config = load_config(config_path, Path.cwd(), fail_on_violation, nested_functions, workers)
    _configure_logging(config, verbose)

    units, skipped = collect_python_units(paths, config)
    logger.debug(f"Collected {len(units)} functions from {len(paths)} path(s)")
    emit_report(units, skipped, config, json_output, sarif, verbose)


@handle_errors
def tree(
    document: Path = typer.Argument(
        ...,
        help="Construct-tree document (.yaml, .yml or .json)",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (default: discover .cogscore.yaml)",
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
    sarif: bool = typer.Option(False, "--sarif", help="Output as SARIF 2.1.0"),
    fail_on_violation: Optional[bool] = typer.Option(
        None,
        "--fail-on-violation/--no-fail-on-violation",
        help="Exit 1 when any function is in the violation or severe tier",
    ),
    nested_functions: Optional[str] = typer.Option(
        None,
        "--nested-functions",
        help="Score nested functions 'separate' or 'inline'",
    ),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Parallel scoring workers"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show every function"),
) -> None:
    """Score a construct-tree document produced by another front end."""
    from cogscore.frontends.tree_loader import load_tree_document

    config = load_config(config_path, Path.cwd(), fail_on_violation, nested_functions, workers)
    _configure_logging(config, verbose)

    if not document.exists():
        raise FileNotFoundError(f"Document not found: {document}")
    units, skipped = load_tree_document(document)
    emit_report(units, skipped, config, json_output, sarif, verbose)
