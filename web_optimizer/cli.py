"""CLI entry point: serve the web app or run a one-off audit from the terminal."""

import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.status import Status

from .config import configure_logging, load_settings
from .errors import AuditError
from .export import report_to_json, write_report_pdf
from .gateway import AnthropicGateway
from .pipeline import AcquisitionPipeline
from .urls import normalize_target_url


def _serve(args, settings):
    import uvicorn

    from .web import create_app

    uvicorn.run(
        create_app(settings),
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=settings.log_level.lower(),
    )


def _audit(args, settings) -> int:
    console = Console()
    status = Status("", console=console)

    def on_progress(msg: str):
        status.update(f"[bold cyan]{msg}[/]")

    try:
        url = normalize_target_url(args.url)
        status.start()
        pipeline = AcquisitionPipeline(AnthropicGateway(settings), settings)
        report = pipeline.acquire(url, on_progress=on_progress)

        if args.json:
            on_progress("Writing JSON...")
            args.json.write_text(report_to_json(report), encoding="utf-8")
        if args.pdf:
            on_progress("Rendering PDF...")
            write_report_pdf(report, args.pdf)
        status.stop()
    except KeyboardInterrupt:
        status.stop()
        console.print("\n[yellow]Cancelled.[/]")
        return 1
    except AuditError as e:
        status.stop()
        console.print(f"\n[bold red]Error:[/] {e.user_message}\n")
        return 1

    console.print(
        f"\n[bold green]Done![/] {report.target_url} scored [bold]{report.overall_score}/100[/] "
        f"with {report.finding_count} findings.\n"
    )
    console.print(report.executive_summary)
    for path in (args.json, args.pdf):
        if path:
            console.print(f"Saved [bold]{path}[/]")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="web-optimizer",
        description="AI-driven SEO and conversion audits for any website.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the web app")
    serve.add_argument("--host", default=None, help="Bind address (default: $HOST or 0.0.0.0)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: $PORT or 8080)")

    audit = sub.add_parser("audit", help="Audit one URL and print a summary")
    audit.add_argument("--url", required=True, help="Website URL to audit")
    audit.add_argument("--json", type=Path, default=None, help="Write the report JSON to this path")
    audit.add_argument("--pdf", type=Path, default=None, help="Write the report PDF to this path")

    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except AuditError as e:
        Console().print(f"[bold red]Error:[/] {e}")
        sys.exit(1)
    configure_logging(settings.log_level)

    if args.command == "serve":
        _serve(args, settings)
    else:
        sys.exit(_audit(args, settings))


if __name__ == "__main__":
    main()
