from typing import List, NamedTuple, Optional

import structlog
from docx.oxml import parse_xml
from docx.oxml.ns import nsdecls

from redliner.models import Paragraph, RunKind
from redliner.stats import ChangeStats, count_words
from redliner.utils.docx import create_attribute, create_element, set_text_content

logger = structlog.get_logger(__name__)

SUMMARY_TITLE = "AI Editor Summary"

# Changes of at least this many words get an inline comment.
SIGNIFICANT_CHANGE_WORDS = 3


def summary_lines(stats: ChangeStats, date: str) -> List[str]:
    edited_at = date.replace("T", " ").replace("Z", " UTC")
    return [
        "AI EDITOR SUMMARY",
        "-------------------------------",
        "",
        f"Edited: {edited_at}",
        "",
        "CHANGE STATISTICS:",
        f"- Total revisions: {stats.total_revisions}",
        f"- Insertions: {stats.insertions}",
        f"- Deletions: {stats.deletions}",
        "",
        "PARAGRAPH CHANGES:",
        f"- Paragraphs added: {stats.paragraphs_added}",
        f"- Paragraphs removed: {stats.paragraphs_removed}",
        f"- Paragraphs modified: {stats.paragraphs_modified}",
        "",
        "WORD-LEVEL CHANGES:",
        f"- Words inserted: {stats.words_inserted}",
        f"- Words deleted: {stats.words_deleted}",
        "",
        "Review each change using Word's",
        "Track Changes feature to accept",
        "or reject individual edits.",
    ]


class InlineComment(NamedTuple):
    start: int  # index of the first commented run
    end: int  # index of the last commented run, inclusive
    lines: List[str]


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def inline_comment_lines(change_type: str, original: Optional[str] = None, edited: Optional[str] = None) -> List[str]:
    """Comment body for one change: 'delete', 'insert' or 'change'."""
    if change_type == "delete":
        lines = ["REMOVED"]
        if count_words(original) > 3:
            lines += ["", f"Text removed ({count_words(original)} words):", f'"{_truncate(original, 80)}"']
        return lines
    if change_type == "insert":
        lines = ["ADDED"]
        if count_words(edited) > 3:
            lines += ["", f"Text added ({count_words(edited)} words):", f'"{_truncate(edited, 80)}"']
        return lines
    if change_type == "change":
        return [
            "MODIFIED",
            "",
            "BEFORE:",
            f'"{_truncate(original or "", 60)}"',
            "",
            "AFTER:",
            f'"{_truncate(edited or "", 60)}"',
        ]
    raise ValueError(f"Unknown change type: {change_type}")


def plan_inline_comments(paragraph: Paragraph) -> List[InlineComment]:
    """
    Picks the runs of one paragraph that get an inline comment.

    A paragraph present on one side only is commented as a whole. Otherwise
    every deletion or insertion of SIGNIFICANT_CHANGE_WORDS words or more is
    commented, and a significant deletion followed directly by an insertion
    gets a single before/after comment.
    """
    runs = paragraph.runs

    if not (paragraph.in_original and paragraph.in_edited):
        revisions = [i for i, r in enumerate(runs) if r.is_revision]
        if not revisions:
            return []
        text = "".join(runs[i].text for i in revisions)
        if paragraph.in_original:
            lines = inline_comment_lines("delete", original=text)
        else:
            lines = inline_comment_lines("insert", edited=text)
        return [InlineComment(revisions[0], revisions[-1], lines)]

    planned = []
    i = 0
    while i < len(runs):
        run = runs[i]
        if not run.is_revision or count_words(run.text) < SIGNIFICANT_CHANGE_WORDS:
            i += 1
            continue

        following = runs[i + 1] if i + 1 < len(runs) else None
        if run.kind == RunKind.DELETED and following is not None and following.kind == RunKind.INSERTED and following.text.strip():
            planned.append(InlineComment(i, i + 1, inline_comment_lines("change", run.text, following.text)))
            i += 2
            continue

        if run.kind == RunKind.DELETED:
            planned.append(InlineComment(i, i, inline_comment_lines("delete", original=run.text)))
        else:
            planned.append(InlineComment(i, i, inline_comment_lines("insert", edited=run.text)))
        i += 1
    return planned


class CommentsPart:
    """
    Builds the 'word/comments.xml' part.
    """

    def __init__(self, author: str, date: str):
        self.author = author
        self.date = date
        self.element = parse_xml(f"<w:comments {nsdecls('w')}></w:comments>")
        self.next_id = 0

    def add_comment(self, lines: List[str]) -> str:
        comment_id = str(self.next_id)
        self.next_id += 1

        comment = create_element("w:comment")
        create_attribute(comment, "w:id", comment_id)
        create_attribute(comment, "w:author", self.author)
        create_attribute(comment, "w:date", self.date)
        create_attribute(comment, "w:initials", "".join(w[0] for w in self.author.split()).upper())

        for line in lines:
            p = create_element("w:p")
            r = create_element("w:r")
            t = create_element("w:t")
            # Empty comment paragraphs collapse in Word
            set_text_content(t, line or " ")
            r.append(t)
            p.append(r)
            comment.append(p)

        self.element.append(comment)
        logger.debug("Added comment", comment_id=comment_id, lines=len(lines))
        return comment_id


def build_summary_paragraphs(comment_id: str) -> list:
    """
    Returns the bold summary title paragraph, anchored to the comment,
    followed by a spacer paragraph.
    """
    title = create_element("w:p")

    range_start = create_element("w:commentRangeStart")
    create_attribute(range_start, "w:id", comment_id)
    title.append(range_start)

    run = create_element("w:r")
    rPr = create_element("w:rPr")
    rPr.append(create_element("w:b"))
    run.append(rPr)
    t = create_element("w:t")
    set_text_content(t, SUMMARY_TITLE)
    run.append(t)
    title.append(run)

    range_end = create_element("w:commentRangeEnd")
    create_attribute(range_end, "w:id", comment_id)
    title.append(range_end)

    ref_run = create_element("w:r")
    ref = create_element("w:commentReference")
    create_attribute(ref, "w:id", comment_id)
    ref_run.append(ref)
    title.append(ref_run)

    spacer = create_element("w:p")
    spacer_run = create_element("w:r")
    t = create_element("w:t")
    set_text_content(t, " ")
    spacer_run.append(t)
    spacer.append(spacer_run)

    return [title, spacer]
