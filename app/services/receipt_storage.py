import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from app.core.config import settings
from app.core.exceptions import ValidationException

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "application/pdf": ".pdf",
}


@dataclass
class UploadedReceipt:
    filename: Optional[str]
    content_type: Optional[str]
    content: bytes


class ReceiptStorage:
    """Stores bank-transfer receipts on local disk, one file per claim."""

    def __init__(self, base_dir: Optional[str] = None, max_bytes: Optional[int] = None):
        self.base_dir = Path(base_dir or settings.receipt_upload_dir)
        self.max_bytes = max_bytes or settings.receipt_max_bytes

    def validate(self, receipt: UploadedReceipt) -> str:
        """Returns the file extension to use."""
        extension = ALLOWED_CONTENT_TYPES.get((receipt.content_type or "").lower())
        if extension is None:
            raise ValidationException("Receipt must be a JPEG, PNG, WEBP image or a PDF")
        if not receipt.content:
            raise ValidationException("Receipt file is empty")
        if len(receipt.content) > self.max_bytes:
            raise ValidationException(
                f"Receipt is larger than {self.max_bytes // (1024 * 1024)} MB"
            )
        return extension

    def _write(self, path: Path, content: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)

    async def save(self, booking_number: str, receipt: UploadedReceipt) -> str:
        extension = self.validate(receipt)
        path = self.base_dir / f"{booking_number}-{int(time.time() * 1000)}{extension}"
        # Disk IO off the event loop
        await asyncio.to_thread(self._write, path, receipt.content)
        logger.info(f"Receipt stored for {booking_number}: {path.name}")
        return str(path)

    async def discard(self, path: str) -> None:
        await asyncio.to_thread(Path(path).unlink, True)
