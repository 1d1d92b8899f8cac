from pathlib import Path
from typing import Optional

from groupmatch.config import settings
from groupmatch.logging_config import get_logger

logger = get_logger("document_service")

MAX_DOCUMENT_CHARS = 20000


def lookup(agent) -> Optional[Path]:
    """Path of the grounding document registered for an agent, if it exists."""
    document_name = getattr(agent, "document_name", None)
    if not document_name:
        return None
    path = Path(settings.documents_dir) / document_name
    return path if path.is_file() else None


def read(path: Path) -> str:
    return path.read_text(encoding="utf-8")[:MAX_DOCUMENT_CHARS]


def load_context_document(agent) -> Optional[str]:
    path = lookup(agent)
    if path is None:
        return None
    try:
        return read(path)
    except OSError as e:
        logger.warning(f"Failed to read grounding document {path}: {e}")
        return None
