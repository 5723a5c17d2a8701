"""PDFStamp CLI — sign PDFs with an image from the command line.

Usage:
    pdfstamp upload <pdf>
    pdfstamp sign <document-id> --image sig.png --x 50 --y 80 --width 200 --height 60
    pdfstamp audit <document-id>
    pdfstamp verify <document-id>
    pdfstamp list [--status pending]
    pdfstamp serve [--port 5000]
"""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import Settings
from .engine import StampEngine
from .errors import StampError
from .imaging import encode_data_uri
from .models import AuditStatus, BoundingBox, ImageFormat
from .store import AuditStore, FileStore

console = Console()

_SUFFIX_FORMATS = {
    ".jpg": ImageFormat.JPEG,
    ".jpeg": ImageFormat.JPEG,
}


@click.group()
@click.option(
    "--data-dir",
    type=click.Path(),
    default=None,
    help="PDFStamp data directory (default: ~/.pdfstamp, or $PDFSTAMP_DATA_DIR)",
)
@click.pass_context
def main(ctx: click.Context, data_dir: Optional[str]) -> None:
    """PDFStamp — overlay signature images on PDFs with an audit trail."""
    ctx.ensure_object(dict)
    settings = Settings()
    if data_dir:
        settings.data_dir = Path(data_dir)
    ctx.obj["settings"] = settings
    ctx.obj["engine"] = StampEngine(
        FileStore(settings.data_dir),
        AuditStore(settings.data_dir),
        max_upload_bytes=settings.max_upload_bytes,
    )


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------

@main.command()
@click.argument("pdf", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def upload(ctx: click.Context, pdf: str) -> None:
    """Register a PDF for signing."""
    engine: StampEngine = ctx.obj["engine"]
    try:
        result = engine.upload(Path(pdf).read_bytes())
    except StampError as exc:
        console.print(f"[red]Upload failed: {exc}[/]")
        sys.exit(1)

    console.print(
        Panel(
            f"[bold green]PDF uploaded![/]\n\n"
            f"  File: {Path(pdf).name}\n"
            f"  ID:   {result.document_id}\n"
            f"  Hash: {result.original_hash}",
            title="PDFStamp",
            border_style="green",
        )
    )


# ---------------------------------------------------------------------------
# Sign
# ---------------------------------------------------------------------------

@main.command()
@click.argument("document_id")
@click.option("--image", required=True, type=click.Path(exists=True, dir_okay=False), help="Signature image (PNG or JPEG)")
@click.option("--x", "x", required=True, type=float, help="Box left edge (points)")
@click.option("--y", "y", required=True, type=float, help="Box bottom edge (points)")
@click.option("--width", required=True, type=float, help="Box width (points)")
@click.option("--height", required=True, type=float, help="Box height (points)")
@click.option("--output", "-o", default=None, type=click.Path(dir_okay=False), help="Also write the signed PDF here")
@click.pass_context
def sign(
    ctx: click.Context,
    document_id: str,
    image: str,
    x: float,
    y: float,
    width: float,
    height: float,
    output: Optional[str],
) -> None:
    """Overlay a signature image on page one of an uploaded PDF."""
    engine: StampEngine = ctx.obj["engine"]
    image_path = Path(image)
    fmt = _SUFFIX_FORMATS.get(image_path.suffix.lower(), ImageFormat.PNG)
    payload = encode_data_uri(image_path.read_bytes(), fmt)

    try:
        result = engine.sign(
            document_id,
            payload,
            {"x": x, "y": y, "width": width, "height": height},
        )
    except StampError as exc:
        details = getattr(exc, "details", None)
        console.print(f"[red]Signing failed: {exc}[/]")
        if details:
            console.print(f"[dim]{details}[/]")
        sys.exit(1)

    if output:
        Path(output).write_bytes(engine.get_signed_pdf(document_id))

    rect = result.draw_rect
    console.print(
        Panel(
            f"[bold green]PDF signed![/]\n\n"
            f"  ID:          {document_id}\n"
            f"  Signed file: {result.signed_filename}\n"
            f"  Drawn at:    ({rect.x:.1f}, {rect.y:.1f}) {rect.width:.1f}x{rect.height:.1f}\n"
            f"  Signed hash: {result.audit.signed_hash}",
            title="PDFStamp",
            border_style="green",
        )
    )


# ---------------------------------------------------------------------------
# Audit / verify / list
# ---------------------------------------------------------------------------

def _format_box(box: Optional[BoundingBox]) -> str:
    if box is None:
        return "[dim]—[/]"
    return f"({box.x:g}, {box.y:g}) {box.width:g}x{box.height:g}"


@main.command()
@click.argument("document_id")
@click.pass_context
def audit(ctx: click.Context, document_id: str) -> None:
    """Show the audit record for a document."""
    engine: StampEngine = ctx.obj["engine"]
    try:
        record = engine.get_audit(document_id)
    except StampError as exc:
        console.print(f"[red]{exc}[/]")
        sys.exit(1)

    status_color = "green" if record.is_signed else "yellow"
    console.print(
        Panel(
            f"  ID:            {record.document_id}\n"
            f"  Status:        [{status_color}]{record.status.value}[/]\n"
            f"  Created:       {record.timestamp:%Y-%m-%d %H:%M:%S %Z}\n"
            f"  Original hash: {record.original_hash}\n"
            f"  Signed hash:   {record.signed_hash or '—'}\n"
            f"  Placement:     {_format_box(record.placement)}",
            title="Audit Record",
            border_style="cyan",
        )
    )


@main.command()
@click.argument("document_id")
@click.pass_context
def verify(ctx: click.Context, document_id: str) -> None:
    """Re-hash stored files and compare them with the audit record."""
    engine: StampEngine = ctx.obj["engine"]
    try:
        report = engine.check_integrity(document_id)
    except StampError as exc:
        console.print(f"[red]{exc}[/]")
        sys.exit(1)

    def mark(ok: Optional[bool]) -> str:
        if ok is None:
            return "[dim]not signed[/]"
        return "[green]intact[/]" if ok else "[red]MODIFIED[/]"

    console.print(f"  Original: {mark(report.original_intact)}")
    console.print(f"  Signed:   {mark(report.signed_intact)}")
    if not report.intact:
        sys.exit(2)


@main.command("list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in AuditStatus]),
    default=None,
    help="Filter by status",
)
@click.pass_context
def list_records(ctx: click.Context, status: Optional[str]) -> None:
    """List audit records."""
    engine: StampEngine = ctx.obj["engine"]
    records = engine.list_audits(status=AuditStatus(status) if status else None)

    if not records:
        console.print("[dim]No documents found.[/]")
        return

    table = Table(title="Documents")
    table.add_column("ID", style="dim")
    table.add_column("Status")
    table.add_column("Created")
    table.add_column("Original Hash", style="dim")
    table.add_column("Placement")

    for r in records:
        status_style = "green" if r.is_signed else "yellow"
        table.add_row(
            r.document_id[:16],
            f"[{status_style}]{r.status.value}[/]",
            r.timestamp.strftime("%Y-%m-%d %H:%M"),
            r.original_hash[:16] + "...",
            _format_box(r.placement),
        )

    console.print(table)


# ---------------------------------------------------------------------------
# Serve
# ---------------------------------------------------------------------------

@main.command()
@click.option("--host", default=None, help="Bind address")
@click.option("--port", default=None, type=int, help="Port number")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int]) -> None:
    """Start the PDFStamp REST API server."""
    import uvicorn

    from .api import create_app

    settings: Settings = ctx.obj["settings"]
    host = host or settings.host
    port = port or settings.port

    console.print(f"[bold]Starting PDFStamp API on {host}:{port}[/]")
    uvicorn.run(create_app(settings), host=host, port=port, log_level=settings.log_level)


if __name__ == "__main__":
    main()
