"""
Services package for the PDF analyzer.

Contains:
- upload_service: multipart upload validation and buffering
- ai: upstream request building, API client and response parsing
"""

from .ai import AnalysisService
from .upload_service import UploadService

__all__ = ["AnalysisService", "UploadService"]
