"""
Command-line interface for singlegen.
Parses options, sets up logging and runs the combine use case.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .. import __version__
from ..application.combine_files import CombineFilesUseCase
from ..domain.entities import DEFAULT_OUTPUT, CombinerSettings
from ..domain.errors import ConfigurationError, SinglegenError
from ..infrastructure.config_loader import load_settings


console = Console()
error_console = Console(stderr=True)


def configure_logging(verbose: bool) -> None:
    """Route the package loggers to stderr through rich."""
    logger = logging.getLogger("singlegen")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = RichHandler(
        console=error_console,
        show_path=False,
        show_time=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False


def _load_settings_or_exit(config_path: Optional[Path], **overrides) -> CombinerSettings:
    """Load settings or exit with a clean error."""
    try:
        return load_settings(config_path, **overrides)
    except ConfigurationError as e:
        error_console.print("[red]❌ Configuration Error:[/red]")
        error_console.print(str(e).replace("Configuration validation failed:\n", ""), markup=False)
        sys.exit(1)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option('--dir', '-d', 'directory',
              type=click.Path(file_okay=False, path_type=str),
              help='Directory to scan (default: current working directory)')
@click.option('--output', '-o',
              type=click.Path(dir_okay=False, path_type=str),
              help=f'Output file path (default: {DEFAULT_OUTPUT})')
@click.option('--workers', '-w',
              type=click.IntRange(min=1),
              help='Number of worker threads (default: number of CPUs)')
@click.option('--sequential', is_flag=True,
              help='Walk, read and write on a single thread in traversal order')
@click.option('--config', '-c', 'config_path',
              type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='YAML settings file')
@click.option('--dry-run', is_flag=True,
              help='List the files that would be combined without writing anything')
@click.option('--verbose', '-v', is_flag=True,
              help='Enable debug logging')
@click.version_option(__version__, prog_name="singlegen")
def cli(
    directory: Optional[str],
    output: Optional[str],
    workers: Optional[int],
    sequential: bool,
    config_path: Optional[Path],
    dry_run: bool,
    verbose: bool,
):
    """
    Combine every file under a directory into one annotated text file.

    Paths matched by the root .gitignore or .singlegenignore are skipped.
    """
    settings = _load_settings_or_exit(
        config_path,
        directory=directory,
        output=output,
        workers=workers,
        sequential=True if sequential else None,
        verbose=True if verbose else None,
    )
    configure_logging(settings.verbose)

    use_case = CombineFilesUseCase(settings)

    try:
        if dry_run:
            _preview(use_case)
            return

        result = use_case.execute()
    except SinglegenError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False, soft_wrap=True)
        if settings.verbose:
            error_console.print_exception()
        sys.exit(1)

    console.print(
        f"Successfully combined files into: {result.output_file}",
        markup=False,
        highlight=False,
        soft_wrap=True,
    )


def _preview(use_case: CombineFilesUseCase) -> None:
    """Print the files a run would include."""
    paths = use_case.preview()

    console.print(
        f"[yellow]DRY RUN:[/yellow] {len(paths)} files would be combined "
        f"from {escape(use_case.settings.directory)}",
        soft_wrap=True,
    )
    for path in paths:
        console.print(f"  {path}", markup=False, highlight=False, soft_wrap=True)


def main():
    """Main entry point for the CLI application."""
    try:
        cli()
    except KeyboardInterrupt:
        error_console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(1)


if __name__ == '__main__':
    main()
