"""
Shared pipeline steps: provider setup, file loading and row validation.
"""

from typing import Any, List, Optional, Sequence, Union

from profit_insights.ai.client import ChatClient, UsageMeter
from profit_insights.config.settings import Settings
from profit_insights.errors import EmptyFileError
from profit_insights.ingestion.file_ingestor import FileIngestor, IngestedFile
from profit_insights.quality.validators import validate_rows


def resolve_client(
    client: Optional[Any],
    settings: Settings,
    logger: Optional[Any] = None,
) -> Optional[UsageMeter]:
    """
    Wrap the chat client for one run.

    Returns None when no client is passed and no API key is configured;
    every assistant step then takes its fallback path.
    """
    if client is None:
        chat = ChatClient(settings, logger=logger)
        if not chat.available:
            return None
        client = chat
    return UsageMeter(client)


def load_file(
    content: bytes,
    filename: str,
    mime_type: Optional[str],
    settings: Settings,
    logger: Optional[Any] = None,
) -> IngestedFile:
    return FileIngestor(settings, logger=logger).ingest(content, filename, mime_type)


def check_rows(
    ingested: IngestedFile,
    settings: Settings,
    required_keywords: Sequence[Union[str, Sequence[str]]] = (),
) -> List[str]:
    """
    Run row validation before mapping.

    Raises:
        EmptyFileError: file has no rows or no headers

    Returns:
        Validation warnings to carry into the quality report
    """
    result = validate_rows(
        ingested.rows,
        ingested.headers,
        required_keywords=required_keywords,
        settings=settings,
    )
    if not result.is_valid:
        raise EmptyFileError(result.errors[0])
    return list(ingested.warnings) + result.warnings
