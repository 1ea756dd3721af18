from dataclasses import dataclass, field
from enum import Enum
from typing import List, NamedTuple, Optional, Tuple


class TokenKind(str, Enum):
    WORD = "word"
    SPACE = "space"
    PUNCT = "punct"
    BREAK = "break"  # soft line break inside a paragraph


class Token(NamedTuple):
    text: str
    kind: TokenKind
    paragraph: int = 0


class EditOperationType(str, Enum):
    """Token-level operations of the edit script."""

    RETAIN = "RETAIN"
    INSERT = "INSERT"
    DELETE = "DELETE"


class EditOp(NamedTuple):
    op: EditOperationType
    token: Token


class AlignmentKind(str, Enum):
    MATCH = "match"  # identical paragraph
    CHANGE = "change"  # same paragraph, word-level edits
    DELETE = "delete"  # paragraph only in original
    INSERT = "insert"  # paragraph only in edited


class ParagraphAlignment(NamedTuple):
    kind: AlignmentKind
    original: Optional[str]
    edited: Optional[str]
    ops: Tuple[EditOp, ...] = ()


class RunKind(str, Enum):
    UNCHANGED = "unchanged"
    INSERTED = "inserted"
    DELETED = "deleted"


@dataclass
class Run:
    kind: RunKind
    text: str
    revision_id: Optional[int] = None
    author: Optional[str] = None
    date: Optional[str] = None

    @property
    def is_revision(self) -> bool:
        return self.kind != RunKind.UNCHANGED


@dataclass
class Paragraph:
    runs: List[Run]
    # State of the paragraph mark (the break after this paragraph). A mark
    # missing from one side merges the paragraph into the next on that side.
    mark: RunKind = RunKind.UNCHANGED
    mark_revision_id: Optional[int] = None
    # Whether the paragraph is one of the original / edited paragraphs.
    in_original: bool = True
    in_edited: bool = True

    def original_text(self) -> str:
        return "".join(r.text for r in self.runs if r.kind != RunKind.INSERTED)

    def edited_text(self) -> str:
        return "".join(r.text for r in self.runs if r.kind != RunKind.DELETED)


@dataclass
class Document:
    paragraphs: List[Paragraph]
    author: str
    date: str
    last_revision_id: int = 0
    # Hard-break strings between consecutive paragraphs of each input.
    original_separators: List[str] = field(default_factory=list)
    edited_separators: List[str] = field(default_factory=list)

    def iter_runs(self):
        for paragraph in self.paragraphs:
            yield from paragraph.runs

    @property
    def revision_count(self) -> int:
        runs = sum(1 for r in self.iter_runs() if r.is_revision)
        marks = sum(1 for p in self.paragraphs if p.mark != RunKind.UNCHANGED)
        return runs + marks
