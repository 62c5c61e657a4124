"""
Upload validation for incoming PDF files.

Reads a single multipart file into memory and rejects anything that is
missing, not a PDF, empty, or over the configured size ceiling.
"""

import logging

from fastapi import UploadFile

from ..config import Settings
from ..models import UploadedDocument
from .ai.exceptions import UploadValidationError

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
PDF_MAGIC = b"%PDF"


def format_size(num_bytes: int) -> str:
    """Human readable size, e.g. 10485760 -> "10 MB"."""
    size = float(num_bytes)
    for unit in ("bytes", "KB", "MB"):
        if size < 1024 or unit == "MB":
            text = f"{size:.2f}".rstrip("0").rstrip(".")
            return f"{text} {unit}"
        size /= 1024
    return f"{num_bytes} bytes"


class UploadService:
    """Validates uploads against the configured limits."""

    def __init__(self, max_upload_bytes: int, verify_pdf_header: bool = True):
        """
        Initialize the upload service.

        Args:
            max_upload_bytes: Largest accepted file, in bytes.
            verify_pdf_header: Also require the content to start with %PDF.
        """
        self.max_upload_bytes = max_upload_bytes
        self.verify_pdf_header = verify_pdf_header

    @classmethod
    def from_settings(cls, settings: Settings) -> "UploadService":
        return cls(
            max_upload_bytes=settings.max_upload_bytes,
            verify_pdf_header=settings.verify_pdf_header,
        )

    def _too_large(self) -> UploadValidationError:
        return UploadValidationError(
            f"File too large. Maximum size is {format_size(self.max_upload_bytes)}"
        )

    async def read_upload(self, file: UploadFile | None) -> UploadedDocument:
        """
        Validate and buffer an uploaded file.

        Args:
            file: The multipart file from the `pdf` form field.

        Returns:
            UploadedDocument with the full content in memory.

        Raises:
            UploadValidationError: If the file is missing, not a PDF, empty or too large.
        """
        if file is None:
            raise UploadValidationError("No file was uploaded")

        try:
            content_type = (file.content_type or "").split(";")[0].strip().lower()
            if content_type != PDF_MIME_TYPE:
                raise UploadValidationError("Only PDF files are allowed")

            if file.size is not None and file.size > self.max_upload_bytes:
                raise self._too_large()

            # Never buffer more than one byte past the limit
            content = await file.read(self.max_upload_bytes + 1)
            if len(content) > self.max_upload_bytes:
                raise self._too_large()

            if not content:
                raise UploadValidationError("Empty file provided")

            if self.verify_pdf_header and not content.startswith(PDF_MAGIC):
                raise UploadValidationError(
                    "Invalid PDF file: does not start with PDF header"
                )
        finally:
            await file.close()

        document = UploadedDocument(
            content=content,
            filename=file.filename or "document.pdf",
            size=len(content),
            mime_type=PDF_MIME_TYPE,
        )
        logger.info(
            "Accepted upload %s (%d bytes, sha256=%s)",
            document.filename,
            document.size,
            document.sha256[:12],
        )
        return document
