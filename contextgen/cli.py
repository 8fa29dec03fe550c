"""contextgen CLI — Typer + Rich terminal interface.

Commands: workspace, file, files, tokens, config.
The assembled document goes to stdout (or --output); every diagnostic is
printed to stderr so the document can be piped straight into another tool.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from contextgen import __version__
from contextgen.config_loader import DEFAULTS_FILE, load_context_config
from contextgen.context.builder import ContextAssembler
from contextgen.context.tokens import TokenEstimator
from contextgen.errors import PreconditionError
from contextgen.schemas.config import ContextConfig
from contextgen.schemas.context import ContextResult, SelectionRequest

console = Console(stderr=True)

# ── App and sub-apps ─────────────────────────────────────────────

app = typer.Typer(
    name="contextgen",
    help="Assemble LLM-ready context from a project tree.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(
    name="config",
    help="Show context configuration.",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"contextgen {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Log traversal decisions to stderr",
    ),
) -> None:
    """contextgen — assemble LLM-ready context from a project tree."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(levelname)s: %(name)s: %(message)s",
        stream=sys.stderr,
    )


# ── Helpers ──────────────────────────────────────────────────────


def _load_config(
    config_path: Path | None,
    extensions: list[str] | None = None,
    all_types: bool = False,
    manifest: bool = False,
) -> ContextConfig:
    """Load context config and apply CLI overrides, exit on error."""
    try:
        config = load_context_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None

    overrides: dict = {}
    if extensions:
        overrides["detected_file_extensions"] = extensions
    if all_types:
        overrides["enforce_file_types"] = False
    if manifest:
        overrides["include_manifest"] = True
    if overrides:
        config = ContextConfig(**{**config.model_dump(), **overrides})
    return config


def _run(
    request: SelectionRequest,
    root: Path | None,
    config: ContextConfig,
    output: Path | None,
) -> None:
    """Build the context for ``request`` and emit it, exit 1 on precondition failure."""
    try:
        assembler = ContextAssembler(root, config)
        result = assembler.build(request)
    except PreconditionError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")

    if not result.fragments:
        console.print("[yellow]No files were found to include in the context.[/yellow]")
        return

    if output:
        output.write_text(result.document, encoding="utf-8")
        console.print(
            f"[green]Wrote {len(result.fragments)} files to[/green] {output}"
        )
    else:
        sys.stdout.write(result.document)
        sys.stdout.flush()

    _report_tokens(result, config.token_warning_threshold)


def _report_tokens(result: ContextResult, threshold: int) -> None:
    message = f"The generated context is approximately {result.token_estimate} tokens"
    if result.over_threshold:
        console.print(
            f"[yellow]{message}, which is greater than {threshold} tokens.[/yellow]"
        )
    else:
        console.print(f"[dim]{message}.[/dim]")


_ROOT_OPTION = typer.Option(
    None, "--root", "-r",
    help="Workspace root (default: current directory)",
)
_CONFIG_OPTION = typer.Option(
    None, "--config", "-c",
    help="TOML file with a [context] section (default: bundled defaults)",
)
_OUTPUT_OPTION = typer.Option(
    None, "--output", "-o",
    help="Write the document to a file instead of stdout",
)
_MANIFEST_OPTION = typer.Option(
    False, "--manifest",
    help="Append the dependency manifest (e.g. package.json)",
)
_EXT_OPTION = typer.Option(
    None, "--ext", "-e",
    help="Extension to collect (repeatable; replaces the configured list)",
)
_ALL_TYPES_OPTION = typer.Option(
    False, "--all-types",
    help="Collect files of every extension, not only detected ones",
)


# ── contextgen workspace ─────────────────────────────────────────


@app.command()
def workspace(
    root: Path = typer.Argument(
        None, help="Workspace root (default: current directory)",
    ),
    config_path: Path = _CONFIG_OPTION,
    output: Path = _OUTPUT_OPTION,
    manifest: bool = _MANIFEST_OPTION,
    ext: list[str] = _EXT_OPTION,
    all_types: bool = _ALL_TYPES_OPTION,
) -> None:
    """Assemble every admitted file in the workspace."""
    config = _load_config(config_path, ext, all_types, manifest)
    _run(SelectionRequest.whole_tree(), root or Path.cwd(), config, output)


# ── contextgen file ──────────────────────────────────────────────


@app.command("file")
def open_file(
    path: Path = typer.Argument(..., help="File to include along with its imports"),
    root: Path = _ROOT_OPTION,
    config_path: Path = _CONFIG_OPTION,
    output: Path = _OUTPUT_OPTION,
    manifest: bool = _MANIFEST_OPTION,
    ext: list[str] = _EXT_OPTION,
) -> None:
    """Assemble one file plus the files it imports."""
    config = _load_config(config_path, ext, False, manifest)
    _run(
        SelectionRequest.open_file(str(path.resolve())),
        root or Path.cwd(), config, output,
    )


# ── contextgen files ─────────────────────────────────────────────


@app.command("files")
def explicit_files(
    paths: list[Path] = typer.Argument(..., help="Files to include, in order"),
    root: Path = _ROOT_OPTION,
    config_path: Path = _CONFIG_OPTION,
    output: Path = _OUTPUT_OPTION,
    manifest: bool = _MANIFEST_OPTION,
) -> None:
    """Assemble exactly the given files."""
    config = _load_config(config_path, None, False, manifest)
    _run(
        SelectionRequest.explicit_files([str(p.resolve()) for p in paths]),
        root or Path.cwd(), config, output,
    )


# ── contextgen tokens ────────────────────────────────────────────


@app.command()
def tokens(
    path: Path = typer.Argument(..., help="Text file to measure"),
    config_path: Path = _CONFIG_OPTION,
) -> None:
    """Estimate the token count of an existing text file."""
    config = _load_config(config_path)
    try:
        text = path.read_text(encoding="utf-8")
    except (UnicodeDecodeError, OSError) as e:
        console.print(f"[red]Error reading {path}:[/red] {e}")
        raise typer.Exit(1) from None

    estimator = TokenEstimator(config.tokenizer_model)
    count = estimator.estimate(text)
    console.print(f"{count} tokens [dim]({estimator.last_strategy})[/dim]")


# ── contextgen config ────────────────────────────────────────────


@config_app.command("show")
def config_show(config_path: Path = _CONFIG_OPTION) -> None:
    """Display the effective context configuration."""
    config = _load_config(config_path)

    table = Table(title="Context Configuration")
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    for key, value in config.model_dump().items():
        if isinstance(value, list):
            value = ", ".join(value) or "[dim]none[/dim]"
        table.add_row(key, str(value))

    console.print(table)


@config_app.command("path")
def config_path_cmd() -> None:
    """Show configuration file locations."""
    table = Table(title="Configuration Paths", show_header=False)
    table.add_column("Config", style="bold")
    table.add_column("Path")
    table.add_column("Status")

    exists = DEFAULTS_FILE.exists()
    status = "[green]found[/green]" if exists else "[red]missing[/red]"
    table.add_row("Defaults", str(DEFAULTS_FILE), status)

    console.print(table)
