"""
generate(): original + edited text -> tracked-changes .docx bytes.

Each call is self-contained: the revision counter and timestamp live in the
call's Document, so concurrent calls never share state.
"""

import time
import unicodedata
from typing import Optional

import structlog

from redliner.config import DEFAULT_FILE_NAME, GenerationOptions
from redliner.diff import align
from redliner.errors import ConsistencyError, InputError, RedlinerError
from redliner.models import Document
from redliner.package import pack
from redliner.redline.engine import DocumentBuilder
from redliner.redline.mapper import edited_text, map_to_runs, original_text
from redliner.tokenize import split_paragraphs

logger = structlog.get_logger(__name__)


def validate_inputs(original, edited):
    for name, value in (("original", original), ("edited", edited)):
        if not isinstance(value, str):
            raise InputError(f"{name} text must be a string, got {type(value).__name__}")
        if not value.strip():
            raise InputError(f"{name} text is empty")


def resolve_file_name(file_name: Optional[str] = None, default: str = DEFAULT_FILE_NAME) -> str:
    """
    Download name for a generated document. The name only labels the
    download; it is never written into the package.
    """
    if not isinstance(file_name, str) or not file_name.strip():
        return default
    name = file_name.strip()
    if any(unicodedata.category(ch) == "Cc" for ch in name):
        logger.warning("Rejected file name with control characters", file_name=repr(name))
        return default
    if not name.lower().endswith(".docx"):
        name += ".docx"
    return name


def verify_reconstruction(document: Document, original: str, edited: str):
    rebuilt = original_text(document)
    if rebuilt != original:
        raise ConsistencyError("original", original, rebuilt)
    rebuilt = edited_text(document)
    if rebuilt != edited:
        raise ConsistencyError("edited", edited, rebuilt)


def generate_document(original: str, edited: str, options: Optional[GenerationOptions] = None) -> Document:
    """Runs tokenize -> diff -> map and checks the result replays to both inputs."""
    options = options or GenerationOptions()
    validate_inputs(original, edited)

    original_paras, original_seps = split_paragraphs(original)
    edited_paras, edited_seps = split_paragraphs(edited)

    alignments = align(
        original_paras,
        edited_paras,
        threshold=options.paragraph_similarity,
        cell_limit=options.lcs_cell_limit,
    )
    document = map_to_runs(alignments, author=options.author, separators=(original_seps, edited_seps))
    verify_reconstruction(document, original, edited)
    return document


def render_document(document: Document, options: Optional[GenerationOptions] = None) -> bytes:
    """Serializes a mapped document to .docx bytes."""
    return pack(DocumentBuilder(document, options).build())


def generate(
    original: str,
    edited: str,
    file_name: Optional[str] = None,
    options: Optional[GenerationOptions] = None,
) -> bytes:
    """
    Returns the bytes of a .docx in which every difference between original
    and edited is a native tracked change.

    Raises InputError for missing/blank input, ConsistencyError if the
    computed runs do not replay to the inputs, SerializationError if XML or
    ZIP writing fails.
    """
    options = options or GenerationOptions()
    started = time.perf_counter()
    log = logger.bind(file_name=resolve_file_name(file_name, options.default_file_name))
    log.info(
        "Generating tracked document",
        original_length=len(original) if isinstance(original, str) else None,
        edited_length=len(edited) if isinstance(edited, str) else None,
    )

    try:
        document = generate_document(original, edited, options)
        data = render_document(document, options)
    except RedlinerError as e:
        log.error(f"Document generation failed: {e}", error_type=type(e).__name__, exc_info=True)
        raise

    log.info(
        "Generated tracked document",
        paragraphs=len(document.paragraphs),
        revisions=document.revision_count,
        size=len(data),
        elapsed_ms=round((time.perf_counter() - started) * 1000, 1),
    )
    return data
