"""
CriticMarkup rendering of a mapped document:
{--deleted--}, {++inserted++}, optional {>>metadata<<} blocks.
"""

from typing import List

from redliner.models import Document, Paragraph, Run, RunKind

_WRAPPERS = {
    RunKind.DELETED: ("{--", "--}"),
    RunKind.INSERTED: ("{++", "++}"),
}


def critic_wrap(kind: RunKind, text: str) -> str:
    if not text or kind == RunKind.UNCHANGED:
        return text
    start, end = _WRAPPERS[kind]
    return f"{start}{text}{end}"


def _meta_block(runs: List[Run]) -> str:
    lines = [f"[Chg:{r.revision_id}] {r.author or 'Unknown'}" for r in runs]
    return "{>>" + "\n".join(lines) + "<<}"


def render_paragraph(paragraph: Paragraph, include_meta: bool = False) -> str:
    """
    Renders one paragraph. A deletion immediately followed by an insertion
    is a substitution; its metadata block follows the pair.
    """
    parts = []
    pending: List[Run] = []

    for run in paragraph.runs:
        if run.kind == RunKind.UNCHANGED:
            if include_meta and pending:
                parts.append(_meta_block(pending))
                pending = []
            parts.append(run.text)
            continue

        if include_meta and pending and not (pending[-1].kind == RunKind.DELETED and run.kind == RunKind.INSERTED):
            parts.append(_meta_block(pending))
            pending = []
        parts.append(critic_wrap(run.kind, run.text))
        pending.append(run)

    if include_meta and pending:
        parts.append(_meta_block(pending))
    return "".join(parts)


def render_markup(document: Document, include_meta: bool = False) -> str:
    """Whole document as CriticMarkup, paragraphs separated by a blank line."""
    return "\n\n".join(render_paragraph(p, include_meta) for p in document.paragraphs)
