import io
from typing import List

import structlog
from docx import Document
from docx.text.paragraph import Paragraph
from docx.text.run import Run

from redliner.markup import critic_wrap
from redliner.models import RunKind
from redliner.redline.comments import SUMMARY_TITLE
from redliner.utils.docx import DocxEvent, get_paragraph_mark_revision, get_run_text, iter_paragraph_content

logger = structlog.get_logger(__name__)

VIEWS = ("original", "edited", "markup")

_EVENT_KINDS = {
    "ins_start": RunKind.INSERTED,
    "del_start": RunKind.DELETED,
}


def extract_text_from_stream(file_stream: io.BytesIO, view: str = "edited") -> str:
    """
    Reads a tracked-changes .docx back into text.

    Args:
        view: "original" simulates Reject All, "edited" simulates Accept All,
              "markup" keeps both sides as CriticMarkup.

    The leading summary paragraphs, when present, are not part of any view.
    """
    if view not in VIEWS:
        raise ValueError(f"Unknown view {view!r}, expected one of {', '.join(VIEWS)}")

    try:
        file_stream.seek(0)
        doc = Document(file_stream)

        paragraphs = _skip_summary(list(doc.paragraphs))
        texts = []
        pending = []
        for paragraph in paragraphs:
            pending.append(_paragraph_text(paragraph, view))
            # Rejecting an inserted mark or accepting a deleted one joins
            # the paragraph to the next, as Word does.
            if not _mark_removed(paragraph, view):
                texts.append("".join(pending))
                pending = []
        if pending:
            texts.append("".join(pending))
        return "\n\n".join(texts)

    except Exception as e:
        logger.error(f"Text extraction failed: {e}", exc_info=True)
        raise ValueError(f"Could not extract text: {str(e)}") from e


def _skip_summary(paragraphs: List[Paragraph]) -> List[Paragraph]:
    if not paragraphs:
        return paragraphs
    first = paragraphs[0]
    has_comment = any(isinstance(i, DocxEvent) and i.type == "ref" for i in iter_paragraph_content(first))
    if not has_comment or first.text != SUMMARY_TITLE:
        return paragraphs
    if len(paragraphs) > 1 and not paragraphs[1].text.strip():
        return paragraphs[2:]
    return paragraphs[1:]


def _mark_removed(paragraph: Paragraph, view: str) -> bool:
    mark = get_paragraph_mark_revision(paragraph)
    return (view == "original" and mark == "ins") or (view == "edited" and mark == "del")


def _paragraph_text(paragraph: Paragraph, view: str) -> str:
    parts = []
    state = RunKind.UNCHANGED
    for item in iter_paragraph_content(paragraph):
        if isinstance(item, DocxEvent):
            if item.type in _EVENT_KINDS:
                state = _EVENT_KINDS[item.type]
            elif item.type in ("ins_end", "del_end"):
                state = RunKind.UNCHANGED
            continue

        if isinstance(item, Run):
            if view == "original" and state == RunKind.INSERTED:
                continue
            if view == "edited" and state == RunKind.DELETED:
                continue
            text = get_run_text(item)
            parts.append(critic_wrap(state, text) if view == "markup" else text)

    return "".join(parts)
