from pydantic import BaseModel

from redliner.models import Document, RunKind


class ChangeStats(BaseModel):
    """Counts for one generated document. Insertions/deletions count w:ins/w:del elements."""

    insertions: int = 0
    deletions: int = 0
    paragraphs_added: int = 0
    paragraphs_removed: int = 0
    paragraphs_modified: int = 0
    words_inserted: int = 0
    words_deleted: int = 0

    @property
    def total_revisions(self) -> int:
        return self.insertions + self.deletions


def count_words(text: str) -> int:
    if not text:
        return 0
    return len(text.split())


def collect_stats(document: Document) -> ChangeStats:
    stats = ChangeStats()
    for paragraph in document.paragraphs:
        if paragraph.mark == RunKind.INSERTED:
            stats.insertions += 1
        elif paragraph.mark == RunKind.DELETED:
            stats.deletions += 1

        if not paragraph.in_original:
            stats.paragraphs_added += 1
        elif not paragraph.in_edited:
            stats.paragraphs_removed += 1
        elif any(r.is_revision for r in paragraph.runs):
            stats.paragraphs_modified += 1

        for run in paragraph.runs:
            if run.kind == RunKind.INSERTED:
                stats.insertions += 1
                stats.words_inserted += count_words(run.text)
            elif run.kind == RunKind.DELETED:
                stats.deletions += 1
                stats.words_deleted += count_words(run.text)
    return stats
