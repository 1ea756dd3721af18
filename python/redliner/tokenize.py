"""
Splits manuscript text into paragraphs and word-level tokens.

Tokens keep their exact source text, so joining them (and the paragraph
separators) rebuilds the input byte-for-byte.
"""

import re
from typing import List, Tuple

from redliner.errors import InputError
from redliner.models import Token, TokenKind

# Two or more newlines (CRLF counts as one) end a paragraph.
HARD_BREAK = re.compile(r"(?:\r?\n){2,}")

_TOKEN_PATTERN = re.compile(
    r"(?P<brk>\r?\n)"
    r"|(?P<space>(?:[^\S\r\n]|\r(?!\n))+)"
    r"|(?P<word>\w+)"
    r"|(?P<punct>.)",
    re.DOTALL,
)

_KINDS = {
    "brk": TokenKind.BREAK,
    "space": TokenKind.SPACE,
    "word": TokenKind.WORD,
    "punct": TokenKind.PUNCT,
}


def _require_str(text, name: str = "text") -> str:
    if not isinstance(text, str):
        raise InputError(f"{name} must be a string, got {type(text).__name__}")
    return text


def split_paragraphs(text: str) -> Tuple[List[str], List[str]]:
    """
    Returns (paragraphs, separators) with len(separators) == len(paragraphs) - 1.
    Leading or trailing hard breaks yield empty paragraphs; they are kept so
    blank-line structure survives.
    """
    _require_str(text)
    paragraphs = []
    separators = []
    last = 0
    for match in HARD_BREAK.finditer(text):
        paragraphs.append(text[last : match.start()])
        separators.append(match.group(0))
        last = match.end()
    paragraphs.append(text[last:])
    return paragraphs, separators


def tokenize_paragraph(text: str, index: int = 0) -> List[Token]:
    _require_str(text)
    return [Token(m.group(0), _KINDS[m.lastgroup], index) for m in _TOKEN_PATTERN.finditer(text)]


def tokenize(text: str) -> List[List[Token]]:
    paragraphs, _ = split_paragraphs(text)
    return [tokenize_paragraph(p, i) for i, p in enumerate(paragraphs)]


def detokenize(tokens) -> str:
    return "".join(t.text for t in tokens)
