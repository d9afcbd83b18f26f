"""
Saving composed documents: render to a temporary file, move it into the
export directory, then hand it to the share sheet.
"""

import os
import shutil
import tempfile
from datetime import date
from pathlib import Path
from typing import Optional, Protocol, Sequence

from db.models import Order, OrderView, User
from utils.config import settings
from utils.documents import (
    compose_invoice_html,
    compose_report_html,
    invoice_filename,
    report_filename,
)
from utils.errors import ServiceError
from utils.logger import get_logger

_logger = get_logger(__name__)

HTML_MIME = "text/html"


class DocumentRenderer(Protocol):
    async def render(self, html: str) -> Path: ...


class ShareSheet(Protocol):
    async def share(self, path: Path, mime_type: str) -> None: ...


class HtmlFileRenderer:
    """Writes the markup to a temporary file, as a print-to-file service would."""

    async def render(self, html: str) -> Path:
        fd, name = tempfile.mkstemp(prefix="storefront-", suffix=".html")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(html)
        return Path(name)


class LoggingShareSheet:
    async def share(self, path: Path, mime_type: str) -> None:
        _logger.info(f"Document ready to share: {path} ({mime_type})")


async def move_file(src: Path, dst: Path) -> Path:
    dst.parent.mkdir(parents=True, exist_ok=True)
    return Path(shutil.move(str(src), str(dst)))


class DocumentExporter:
    def __init__(
        self,
        renderer: Optional[DocumentRenderer] = None,
        share_sheet: Optional[ShareSheet] = None,
        export_dir: str = settings.export_dir,
    ) -> None:
        self.renderer = renderer or HtmlFileRenderer()
        self.share_sheet = share_sheet or LoggingShareSheet()
        self.export_dir = Path(export_dir)

    async def export(self, html: str, filename: str, mime_type: str = HTML_MIME) -> Path:
        try:
            tmp = await self.renderer.render(html)
            path = await move_file(tmp, self.export_dir / filename)
        except OSError as e:
            raise ServiceError(f"Could not write {filename}: {e}") from e
        await self.share_sheet.share(path, mime_type)
        _logger.info(f"Exported {path}")
        return path


async def export_invoice(
    exporter: DocumentExporter,
    orders: Sequence[Order],
    user: Optional[User],
    delivery_day: date,
    today: Optional[date] = None,
) -> Path:
    """Raises NothingToExport before any file is touched when orders is empty."""
    html = compose_invoice_html(orders, user, delivery_day, today or date.today())
    return await exporter.export(html, invoice_filename(delivery_day))


async def export_report(
    exporter: DocumentExporter,
    views: Sequence[OrderView],
    delivery_day: Optional[date] = None,
    today: Optional[date] = None,
) -> Path:
    today = today or date.today()
    html = compose_report_html(views, today, delivery_day)
    return await exporter.export(html, report_filename(today))
