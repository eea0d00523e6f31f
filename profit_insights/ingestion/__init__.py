"""
File Ingestion Module
"""
from .file_ingestor import (
    FileIngestor,
    IngestedFile,
    detect_file_format,
    detect_platform,
)

__all__ = [
    "FileIngestor",
    "IngestedFile",
    "detect_file_format",
    "detect_platform",
]
