"""Command-line interface for the Markdown Docs converter.

Provides CLI commands for running the server, inspecting configuration,
and previewing how local Markdown files would be classified and rebuilt.
"""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .config import settings
from .logger import setup_logging
from .pipeline import build_requests
from .server import ConverterServer
from .utils.classifier import SIGNALS, evaluate

app = typer.Typer(
    name="gdocs-md-converter",
    help="Markdown Docs Converter - rebuild Markdown-authored Google Docs as formatted documents"
)
console = Console()


def _read_text(path: Path) -> str:
    if not path.exists():
        console.print(f"[bold red]File not found:[/bold red] {path}")
        raise typer.Exit(code=1)
    return path.read_text(encoding="utf-8")


@app.command()
def serve(
    host: str = typer.Option(settings.http_host, "--host", "-h", help="Server host"),
    port: int = typer.Option(settings.http_port, "--port", "-p", help="Server port"),
    transport: str = typer.Option("http", "--transport", "-t", help="Transport protocol (http, sse, stdio)"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Start the converter server."""
    setup_logging("DEBUG" if debug or settings.debug else settings.log_level, settings.log_format)
    console.print("[bold green]Starting Markdown Docs Converter[/bold green]")
    console.print(f"Transport: {transport}")

    server = ConverterServer()

    if transport == "stdio":
        console.print("STDIO Transport: Ready for MCP client connection")
        server.run()
    else:
        console.print(f"HTTP Server: http://{host}:{port}")
        server.run(transport=transport, host=host, port=port)


@app.command()
def status() -> None:
    """Show current configuration status."""
    console.print("[bold blue]Markdown Docs Converter Status[/bold blue]")

    config_table = Table(title="Configuration")
    config_table.add_column("Setting", style="cyan")
    config_table.add_column("Value", style="green")

    config_table.add_row("App Version", settings.app_version)
    config_table.add_row("MCP Server Name", settings.mcp_server_name)
    config_table.add_row("OAuth Client", "✓ Configured" if settings.has_oauth_client() else "✗ Missing")
    config_table.add_row("Redirect URL", settings.google_redirect_url)
    config_table.add_row("Export Format", settings.export_format)
    config_table.add_row("Debug Mode", "✓" if settings.debug else "✗")

    console.print(config_table)


@app.command()
def validate() -> None:
    """Validate current setup and configuration."""
    console.print("[bold blue]Validating Markdown Docs Converter Setup[/bold blue]")

    issues = []
    warnings = []

    if not settings.google_client_id:
        issues.append("GOOGLE_CLIENT_ID is not set")
    if not settings.google_client_secret:
        issues.append("GOOGLE_CLIENT_SECRET is not set")
    if not settings.google_redirect_url.startswith(("http://", "https://")):
        issues.append(f"GOOGLE_REDIRECT_URL is not an HTTP URL: {settings.google_redirect_url}")

    if "*" in settings.http_cors_origins:
        warnings.append("CORS allows every origin - restrict HTTP_CORS_ORIGINS in production")
    if settings.debug:
        warnings.append("Debug mode is enabled - disable for production")

    if not issues and not warnings:
        console.print("[bold green]✓ All validations passed[/bold green]")
        return

    if issues:
        console.print("[bold red]Issues found:[/bold red]")
        for issue in issues:
            console.print(f"  ✗ {issue}")

    if warnings:
        console.print("[bold yellow]Warnings:[/bold yellow]")
        for warning in warnings:
            console.print(f"  ⚠ {warning}")

    if issues:
        raise typer.Exit(code=1)


@app.command()
def config(
    show_secrets: bool = typer.Option(False, "--show-secrets", help="Show OAuth client secret"),
) -> None:
    """Show current configuration."""
    console.print("[bold blue]Markdown Docs Converter Configuration[/bold blue]")

    table = Table(title="Settings")
    table.add_column("Setting", style="cyan", min_width=25)
    table.add_column("Value", style="green")

    table.add_row("App Name", settings.app_name)
    table.add_row("App Version", settings.app_version)
    table.add_row("Debug Mode", str(settings.debug))

    # Conversion
    table.add_row("Document Query", settings.document_query)
    table.add_row("Converted Folder", settings.converted_folder_name)
    table.add_row("Converted Prefix", settings.converted_prefix)
    table.add_row("Skip Converted", str(settings.skip_converted))
    table.add_row("Export Format", f"{settings.export_format} ({settings.export_mime_type})")
    table.add_row("Archive TTL", f"{settings.archive_ttl_seconds}s")

    # HTTP
    table.add_row("HTTP Address", f"{settings.http_host}:{settings.http_port}")
    table.add_row("CORS Origins", ", ".join(settings.http_cors_origins))

    # OAuth (masked unless show_secrets)
    table.add_row("Google Client ID", settings.google_client_id or "Not set")
    if show_secrets:
        table.add_row("Google Client Secret", settings.google_client_secret or "Not set")
    else:
        table.add_row("Google Client Secret", "***" if settings.google_client_secret else "Not set")

    console.print(table)


@app.command()
def classify(path: Path = typer.Argument(..., help="Text or Markdown file")) -> None:
    """Show which Markdown signals a file matches."""
    verdict = evaluate(_read_text(path))

    table = Table(title=f"Signals for {path.name}")
    table.add_column("Signal", style="cyan")
    table.add_column("Important", justify="center")
    table.add_column("Matched", justify="center")
    for signal in SIGNALS:
        table.add_row(signal.name, "★" if signal.important else "", "✓" if signal.name in verdict.signals else "")
    console.print(table)

    if verdict.is_markdown:
        console.print("[bold green]✓ Markdown-like[/bold green]")
    else:
        console.print("[bold yellow]✗ Not Markdown-like[/bold yellow]")


@app.command()
def preview(
    path: Path = typer.Argument(..., help="Markdown file"),
    as_json: bool = typer.Option(False, "--json", help="Print raw batchUpdate requests"),
) -> None:
    """Show the Google Docs requests a Markdown file would produce."""
    requests = build_requests(_read_text(path))

    if as_json:
        typer.echo(json.dumps(requests, indent=2, ensure_ascii=False))
        return

    table = Table(title=f"Requests for {path.name}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Request", style="cyan")
    table.add_column("Range", justify="right", style="magenta")
    table.add_column("Detail", style="green")
    for number, request in enumerate(requests, 1):
        kind, body = next(iter(request.items()))
        if kind == "insertText":
            span = str(body["location"]["index"])
            detail = repr(body["text"])
        else:
            span = f"{body['range']['startIndex']}-{body['range']['endIndex']}"
            detail = body["fields"]
        table.add_row(str(number), kind, span, detail)
    console.print(table)


def main() -> None:
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
