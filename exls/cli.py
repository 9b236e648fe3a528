"""CLI entrypoint for exls."""

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import DEFAULT_SETTINGS, ExampleSettings, load_settings_file

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _configure_logging(level: str, log_file: Path | None) -> None:
    """Log to stderr (or a file) so stdio transport stays clean."""
    if log_file is not None:
        logging.basicConfig(level=level.upper(), format=LOG_FORMAT, filename=str(log_file))
    else:
        logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stderr)


@click.group()
@click.version_option(__version__, prog_name="exls")
@click.option(
    "--settings",
    "-s",
    "settings_path",
    type=click.Path(exists=True, file_okay=True, dir_okay=False, path_type=Path),
    default=None,
    help="TOML file with fallback settings ([languageServerExample] table)",
)
@click.pass_context
def cli(ctx: click.Context, settings_path: Path | None) -> None:
    """exls - example language server.

    Flags all-uppercase words and offers a small completion list.
    """
    ctx.ensure_object(dict)

    settings = DEFAULT_SETTINGS
    if settings_path is not None:
        try:
            settings = load_settings_file(settings_path)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--settings / -s")

    ctx.obj["settings"] = settings


@cli.command("lsp")
@click.option(
    "--transport",
    type=click.Choice(["stdio", "tcp"]),
    default="stdio",
    show_default=True,
    help="Transport method",
)
@click.option("--host", type=str, default="localhost", show_default=True, help="Bind address for tcp")
@click.option("--port", type=int, default=2087, show_default=True, help="Port for tcp")
@click.option(
    "--push-diagnostics",
    is_flag=True,
    default=False,
    help="Also publish diagnostics when documents open or change",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default="warning",
    show_default=True,
    help="Logging level",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write logs to a file instead of stderr",
)
@click.pass_context
def lsp(
    ctx: click.Context,
    transport: str,
    host: str,
    port: int,
    push_diagnostics: bool,
    log_level: str,
    log_file: Path | None,
) -> None:
    """Start the LSP server.

    Clients pull diagnostics with textDocument/diagnostic. Settings are read
    per document from the languageServerExample configuration section.

    Examples:

        exls lsp

        exls lsp --transport tcp --log-level debug --log-file exls.log
    """
    from .lsp import start_server

    _configure_logging(log_level, log_file)

    start_server(
        transport=transport,
        host=host,
        port=port,
        global_settings=ctx.obj["settings"],
        push_diagnostics=push_diagnostics,
    )


@cli.command()
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--max-problems",
    type=click.IntRange(min=0),
    default=None,
    help="Override maxNumberOfProblems",
)
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@click.pass_context
def check(ctx: click.Context, files: tuple[Path, ...], max_problems: int | None, output_json: bool) -> None:
    """Run the diagnostics on files without an editor.

    Exits with status 1 if any file has findings.
    """
    from .lsp.diagnostics import validate

    settings: ExampleSettings = ctx.obj["settings"]
    if max_problems is not None:
        settings = ExampleSettings(max_number_of_problems=max_problems)

    results = []
    for path in files:
        text = path.read_text(encoding="utf-8")
        for diag in validate(text, settings, uri=path.resolve().as_uri()):
            results.append(
                {
                    "file": str(path),
                    "line": diag.range.start.line + 1,
                    "column": diag.range.start.character + 1,
                    "message": diag.message,
                    "source": diag.source,
                }
            )

    if output_json:
        click.echo(json.dumps(results, indent=2))
    else:
        console = Console()
        if results:
            table = Table(show_header=True, header_style="bold")
            table.add_column("Location")
            table.add_column("Message")
            for r in results:
                table.add_row(f"{r['file']}:{r['line']}:{r['column']}", f"[yellow]{r['message']}[/yellow]")
            console.print(table)
        console.print(f"[bold]{len(results)}[/bold] problem(s) in {len(files)} file(s)")

    if results:
        sys.exit(1)


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
