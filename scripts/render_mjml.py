#!/usr/bin/env python3
"""
MJML Rendering CLI

Renders MJML files to HTML and reports which engine would be used.

Commands:
    render   - Render an .mjml file to HTML
    discover - Show the resolved rendering engine

Examples:\n

    render_mjml.py render templates/mailer/welcome.mjml                 # HTML to stdout

    render_mjml.py render welcome.mjml -o welcome.html --minify          # Write minified file

    render_mjml.py render welcome.mjml --validation-level soft          # Tolerate invalid markup

    render_mjml.py discover                                             # Show engine
"""

from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from mjml_render.contexts.discovery import get_locator, valid_engine
from mjml_render.contexts.rendering import RenderGateway
from mjml_render.exceptions import MjmlError
from mjml_render.utils.config import configure, get_config
from mjml_render.utils.logger import setup_logger

app = typer.Typer(
    help="Render MJML email templates to HTML",
    add_completion=False,
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command("render")
def render_command(
    mjml_file: Annotated[
        Path,
        typer.Argument(help="Path to the .mjml file", exists=True, dir_okay=False),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write HTML to this file instead of stdout"),
    ] = None,
    minify: Annotated[
        bool,
        typer.Option("--minify", help="Minify the HTML output"),
    ] = False,
    no_beautify: Annotated[
        bool,
        typer.Option("--no-beautify", help="Do not pretty-print the HTML output"),
    ] = False,
    validation_level: Annotated[
        Optional[str],
        typer.Option("--validation-level", help="'strict' or 'soft' (default: configured value)"),
    ] = None,
    native: Annotated[
        bool,
        typer.Option("--native", help="Render with the native mrml engine"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
):
    """
    Render an MJML file to HTML.

    The file is rendered directly (no cache). Engine warnings are logged to stderr.

    Examples:\n

        $ render_mjml.py render welcome.mjml                    # HTML to stdout

        $ render_mjml.py render welcome.mjml -o out.html        # HTML to file
    """
    setup_logger(context_name="render", console_level="DEBUG" if verbose else "WARNING")

    changes = {"minify": minify, "beautify": not no_beautify, "cache_enabled": False}
    if validation_level is not None:
        changes["validation_level"] = validation_level
    if native:
        changes["use_native"] = True

    try:
        configure(**changes)
        html = RenderGateway().render(str(mjml_file.resolve()), mjml_file.read_text(encoding="utf-8"))
    except (MjmlError, ValueError) as e:
        typer.secho(f"Error: {e}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if output is None:
        typer.echo(html)
    else:
        output.write_text(html, encoding="utf-8")
        typer.secho(f"✓ Rendered {mjml_file} -> {output}", fg=typer.colors.GREEN, err=True)


@app.command("discover")
def discover_command(
    native: Annotated[
        bool,
        typer.Option("--native", help="Allow the native mrml engine"),
    ] = False,
):
    """
    Show which rendering engine would be used.

    Examples:\n

        $ render_mjml.py discover
    """
    if native:
        configure(use_native=True)

    try:
        descriptor = valid_engine()
    except MjmlError as e:
        typer.secho(f"✗ {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if descriptor is None:
        typer.secho(f"✗ {get_locator().error_message}", fg=typer.colors.RED, bold=True)
        raise typer.Exit(code=1)

    typer.secho("✓ Engine found", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"  Kind: {descriptor.kind.value}")
    typer.echo(f"  Engine: {descriptor.path_or_handle}")
    typer.echo(f"  Version: {descriptor.validated_version}")
    typer.echo(f"  Supported prefix: {get_config().binary_version_supported}")


if __name__ == "__main__":
    app()
