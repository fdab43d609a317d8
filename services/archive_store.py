"""Append-only file archive for uploads, reports and their metadata.

Images are written under `uploads/`, PDF reports under `reports/` and one
flat JSON metadata record per image or report under `reports/meta/`. Nothing
is ever overwritten on purpose or deleted by the application.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles

from models.analysis_result import ReportRecord, UploadedImage
from utils.media_validation import sanitize_filename
from utils.storage_init import StorageConfig

LOGGER = logging.getLogger(__name__)


class ArchiveStore:
    """Async writer/reader for the on-disk archive described by a `StorageConfig`."""

    def __init__(self, config: StorageConfig) -> None:
        self.config = config

    async def _write_bytes(self, path: Path, data: bytes) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "wb") as f:
            await f.write(data)
        return path

    async def save_upload(self, image: UploadedImage) -> Path:
        """Write the uploaded image bytes and return the file path."""
        path = self.config.uploads_dir / image.stored_filename
        await self._write_bytes(path, image.content)
        LOGGER.info("Stored upload %s (%d bytes)", image.stored_filename, image.size)
        return path

    async def read_upload(self, filename: str) -> Optional[bytes]:
        """Return the bytes of an archived upload, or None when it does not exist."""
        path = self.config.uploads_dir / sanitize_filename(filename)
        if not path.is_file():
            return None
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def save_report(self, record: ReportRecord) -> Path:
        """Write the PDF report and return its path.

        The companion metadata record is written best-effort when the record
        carries an analysis.
        """
        path = self.config.reports_dir / f"{record.base_name}.pdf"
        await self._write_bytes(path, record.content)
        LOGGER.info("Stored report %s.pdf (%d bytes)", record.base_name, len(record.content))

        if record.analysis is not None:
            await self.try_save_metadata(
                record.base_name,
                {"analysis": record.analysis.to_dict(), "imageFilename": record.image_filename},
            )
        return path

    async def save_metadata(self, name: str, record: Dict[str, Any]) -> Path:
        """Write one flat JSON metadata record named `<name>.json`."""
        path = self.config.meta_dir / f"{sanitize_filename(name)}.json"
        payload = json.dumps(record, indent=2).encode("utf-8")
        return await self._write_bytes(path, payload)

    async def try_save_metadata(self, name: str, record: Dict[str, Any]) -> bool:
        """Write a metadata record, logging a warning instead of failing."""
        try:
            await self.save_metadata(name, record)
        except OSError as exc:
            LOGGER.warning("Metadata save failed for %s: %s", name, exc)
            return False
        return True
