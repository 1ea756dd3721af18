import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

import structlog

from redliner.config import DEFAULT_AUTHOR
from redliner.models import (
    AlignmentKind,
    Document,
    EditOp,
    EditOperationType,
    Paragraph,
    ParagraphAlignment,
    Run,
    RunKind,
)

logger = structlog.get_logger(__name__)

_RUN_KINDS = {
    EditOperationType.RETAIN: RunKind.UNCHANGED,
    EditOperationType.INSERT: RunKind.INSERTED,
    EditOperationType.DELETE: RunKind.DELETED,
}


def revision_timestamp() -> str:
    return datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")


class RevisionCounter:
    """Hands out w:id values, starting at 1, for one document."""

    def __init__(self, start: int = 0):
        self.current = start

    def next(self) -> int:
        self.current += 1
        return self.current


def coalesce(ops: Iterable[EditOp]) -> List[Tuple[RunKind, str]]:
    """Merges consecutive ops of the same type into (kind, text) pieces."""
    pieces: List[Tuple[RunKind, str]] = []
    for op in ops:
        kind = _RUN_KINDS[op.op]
        if pieces and pieces[-1][0] == kind:
            pieces[-1] = (kind, pieces[-1][1] + op.token.text)
        else:
            pieces.append((kind, op.token.text))
    return pieces


Entry = Tuple[List[Tuple[RunKind, str]], bool, bool]


def _merge_trailing_pair(entries: List[Entry]) -> List[Entry]:
    """
    The last original and the last edited paragraph end on the document's
    final paragraph mark, which Word never deletes. When those are a deleted
    and an inserted paragraph, they become one final paragraph holding both.
    """
    last_original = max((i for i, e in enumerate(entries) if e[1]), default=None)
    last_edited = max((i for i, e in enumerate(entries) if e[2]), default=None)
    if last_original is None or last_edited is None or last_original == last_edited:
        return entries

    earlier = entries[min(last_original, last_edited)]
    if earlier[1] and earlier[2]:
        return entries

    merged = (entries[last_original][0] + entries[last_edited][0], True, True)
    rest = [e for i, e in enumerate(entries) if i not in (last_original, last_edited)]
    return rest + [merged]


def _mark_kinds(entries: List[Entry]) -> List[RunKind]:
    # A paragraph's mark is the break before the next paragraph of the same
    # side; a side with no later paragraph has no break here.
    kinds = []
    later_original = later_edited = False
    for _, in_original, in_edited in reversed(entries):
        breaks_original = in_original and later_original
        breaks_edited = in_edited and later_edited
        if breaks_original == breaks_edited:
            kinds.append(RunKind.UNCHANGED)
        elif breaks_original:
            kinds.append(RunKind.DELETED)
        else:
            kinds.append(RunKind.INSERTED)
        later_original = later_original or in_original
        later_edited = later_edited or in_edited
    kinds.reverse()
    return kinds


def map_to_runs(
    alignments: Sequence[ParagraphAlignment],
    author: str = DEFAULT_AUTHOR,
    date: Optional[str] = None,
    separators: Optional[Tuple[List[str], List[str]]] = None,
) -> Document:
    """
    Turns aligned paragraphs into the run model.

    A wholly inserted or deleted paragraph tracks the break that joins it to
    its neighbours. In the middle of the document that is its own mark; at
    the end it is the mark of the last paragraph that stays in place, and
    the final mark is never tracked.

    Ids are assigned in the order elements are written: a tracked paragraph
    mark lives in w:pPr, which precedes the runs, so it takes its id first.
    """
    date = date or revision_timestamp()
    counter = RevisionCounter()
    paragraphs: List[Paragraph] = []

    entries = _merge_trailing_pair(
        [
            (coalesce(a.ops), a.kind != AlignmentKind.INSERT, a.kind != AlignmentKind.DELETE)
            for a in alignments
        ]
    )

    for (pieces, in_original, in_edited), mark in zip(entries, _mark_kinds(entries)):
        mark_id = counter.next() if mark != RunKind.UNCHANGED else None

        runs = []
        for kind, text in pieces:
            if kind == RunKind.UNCHANGED:
                runs.append(Run(kind, text))
            else:
                runs.append(Run(kind, text, counter.next(), author, date))
        if not runs:
            runs.append(Run(RunKind.UNCHANGED, ""))

        paragraphs.append(
            Paragraph(
                runs=runs,
                mark=mark,
                mark_revision_id=mark_id,
                in_original=in_original,
                in_edited=in_edited,
            )
        )

    document = Document(
        paragraphs=paragraphs,
        author=author,
        date=date,
        last_revision_id=counter.current,
    )
    if separators is not None:
        document.original_separators = list(separators[0])
        document.edited_separators = list(separators[1])
    else:
        document.original_separators = ["\n\n"] * max(sum(p.in_original for p in paragraphs) - 1, 0)
        document.edited_separators = ["\n\n"] * max(sum(p.in_edited for p in paragraphs) - 1, 0)

    logger.debug(
        "Mapped revisions",
        paragraphs=len(paragraphs),
        revisions=document.revision_count,
    )
    return document


def _join(texts: List[str], separators: List[str]) -> str:
    if len(separators) != max(len(texts) - 1, 0):
        # Counts disagree only for hand-built documents; fall back to blank lines
        separators = ["\n\n"] * max(len(texts) - 1, 0)
    out = []
    for i, text in enumerate(texts):
        if i:
            out.append(separators[i - 1])
        out.append(text)
    return "".join(out)


def original_text(document: Document) -> str:
    """Reject-all view: retained plus deleted text of original paragraphs."""
    texts = [p.original_text() for p in document.paragraphs if p.in_original]
    return _join(texts, document.original_separators)


def edited_text(document: Document) -> str:
    """Accept-all view: retained plus inserted text of edited paragraphs."""
    texts = [p.edited_text() for p in document.paragraphs if p.in_edited]
    return _join(texts, document.edited_separators)
