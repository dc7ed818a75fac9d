"""Main CLI entry point for the Procore docs to OpenAPI converter."""

import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from procore_openapi.config import FileFormat, ProjectConfig, get_config_path, load_config
from procore_openapi.core.errors import to_json_pointer
from procore_openapi.core.loader import STDIN_NAME, load_document
from procore_openapi.core.writer import write_document
from procore_openapi.transformers.base import WarningHandler
from procore_openapi.transformers.endpoint_filter import make_endpoint_filter
from procore_openapi.transformers.manager import convert_documents

PROG_NAME = "procore-docs-to-openapi"

# Label for warnings from operations on the combined document
COMBINED_NAME = "<combined>"

app = typer.Typer(
    name=PROG_NAME,
    help="Convert Procore REST API documentation JSON to OpenAPI",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console(stderr=True, emoji=False, highlight=False)


def get_version() -> str:
    """Get the installed version of this package."""
    try:
        return version(PROG_NAME)
    except PackageNotFoundError:
        return "unknown"


def make_warning_printer(filename: str) -> WarningHandler:
    """
    Create a warning handler which prints warnings for an input to stderr.

    Args:
        filename: Name of the input, printed before the JSON Pointer

    Returns:
        Handler printing "<filename>:<json-pointer>: <message>" lines
    """

    def print_warning(transform_path: list[str], message: str) -> None:
        console.print(
            f"{filename}:{to_json_pointer(transform_path)}: {message}",
            markup=False,
            soft_wrap=True,
        )

    return print_warning


def print_error(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(message)}", soft_wrap=True)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(get_version())
        raise typer.Exit()


def _load_project_config(config_file: str | None) -> ProjectConfig:
    if config_file is None:
        return load_config(get_config_path(Path.cwd()))

    config_path = Path(config_file)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_file}")
    return load_config(config_path)


@app.command()
def convert(
    files: list[str] = typer.Argument(
        None,
        help="Procore API documentation JSON files (default: read stdin)",
        show_default=False,
    ),
    quiet: int = typer.Option(0, "--quiet", "-q", count=True, help="Print less output"),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Print more output"),
    min_support_level: str = typer.Option(
        None,
        "--min-support-level",
        metavar="LEVEL",
        help="Exclude endpoints below this support level (internal, alpha, beta, production)",
    ),
    beta_programs: list[str] = typer.Option(
        None,
        "--beta-program",
        metavar="NAME",
        help="Include endpoints in this beta program regardless of support level",
    ),
    openapi_30: bool = typer.Option(False, "--openapi-30", help="Output OpenAPI 3.0.3"),
    yaml_output: bool = typer.Option(False, "--yaml", help="Output YAML instead of JSON"),
    config_file: str = typer.Option(
        None,
        "--config",
        metavar="PATH",
        help="Configuration file (default: ./.procore-docs-to-openapi.yaml)",
    ),
    show_version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Print the version number and exit",
    ),
) -> None:
    """Convert Procore API documentation to an OpenAPI document on stdout.

    Multiple files are combined into a single document.
    """
    verbosity = verbose - quiet
    if verbosity >= 2:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )

    try:
        config = _load_project_config(config_file)
    except (OSError, ValidationError, yaml.YAMLError) as e:
        print_error(f"Failed to load configuration: {e}")
        raise typer.Exit(1)

    min_support_level = min_support_level or config.min_support_level
    beta_programs = list(beta_programs or config.beta_programs)
    output_format = FileFormat.YAML if yaml_output else config.output_format

    endpoint_filter = None
    if min_support_level is not None:
        try:
            endpoint_filter = make_endpoint_filter(min_support_level, beta_programs)
        except ValueError as e:
            print_error(str(e))
            raise typer.Exit(1)

    filenames = list(files or ())
    if not filenames:
        if sys.stdin.isatty():
            console.print(
                "Warning: No filename given.  Reading Procore API JSON from stdin.",
                markup=False,
            )
        filenames.append(STDIN_NAME)

    def source_warn(i: int) -> WarningHandler | None:
        return make_warning_printer(filenames[i]) if verbosity >= 0 else None

    try:
        docs = [load_document(filename) for filename in filenames]
        result = convert_documents(
            docs,
            endpoint_filter=endpoint_filter,
            source_warn=source_warn,
            warn=make_warning_printer(COMBINED_NAME) if verbosity >= 1 else None,
            openapi_30=openapi_30 or config.openapi_30,
        )
    except Exception as e:
        print_error(str(e))
        raise typer.Exit(1)

    write_document(result, sys.stdout, output_format)


def main(args: list[str] | None = None) -> int:
    """
    Run the command with `args` (default: sys.argv[1:]).

    Usage errors are reported by typer, which exits with status 2. They are
    returned as 1, like every other error.

    Returns:
        Exit code: 0 on success, 1 on any error (including usage errors)
    """
    try:
        app(args=args, prog_name=PROG_NAME)
    except SystemExit as e:
        return 0 if e.code in (0, None) else 1
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
