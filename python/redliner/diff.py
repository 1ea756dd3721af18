"""
Two-level LCS diff: paragraphs first, then words inside matched paragraphs.

The full dynamic-programming table is used while len(a) * len(b) stays under
the cell limit. Above it, unique tokens shared by both sides are used as
anchors (patience style) and only the gaps between anchors are solved with
the table. Every path returns a valid common subsequence, so the edit script
always replays to both inputs.
"""

import re
from bisect import bisect_left
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import structlog

from redliner.config import DEFAULT_LCS_CELL_LIMIT
from redliner.models import (
    AlignmentKind,
    EditOp,
    EditOperationType,
    ParagraphAlignment,
    Token,
)
from redliner.tokenize import tokenize_paragraph

logger = structlog.get_logger(__name__)

Pairs = List[Tuple[int, int]]
EqualFn = Callable[[str, str], bool]

# Greedy matcher look-ahead window, used only when a gap has no unique anchor.
GREEDY_LOOKAHEAD = 100


def _exact(a, b) -> bool:
    return a == b


# --- LCS ---


def lcs_pairs(
    a: Sequence[str],
    b: Sequence[str],
    equal: Optional[EqualFn] = None,
    cell_limit: int = DEFAULT_LCS_CELL_LIMIT,
) -> Pairs:
    """
    Returns matched index pairs (i, j) of a longest common subsequence, in order.

    Ties are broken towards keeping a match as early as possible, so the
    longest possible shared prefix stays unchanged and early runs of
    matches are not fragmented.
    """
    equal = equal or _exact
    n, m = len(a), len(b)

    # 1. Common prefix / suffix never need the table
    start = 0
    while start < n and start < m and equal(a[start], b[start]):
        start += 1
    end_a, end_b = n, m
    while end_a > start and end_b > start and equal(a[end_a - 1], b[end_b - 1]):
        end_a -= 1
        end_b -= 1

    pairs: Pairs = [(i, i) for i in range(start)]
    if (end_a - start) * (end_b - start) > cell_limit:
        logger.debug(
            "LCS table over limit, using anchors",
            cells=(end_a - start) * (end_b - start),
            cell_limit=cell_limit,
        )
        middle = anchored_pairs(a[start:end_a], b[start:end_b], equal, cell_limit)
    else:
        middle = _dp_pairs(a[start:end_a], b[start:end_b], equal)
    pairs.extend((i + start, j + start) for i, j in middle)
    pairs.extend((end_a + k, end_b + k) for k in range(n - end_a))
    return pairs


def _dp_pairs(a: Sequence[str], b: Sequence[str], equal: EqualFn) -> Pairs:
    n, m = len(a), len(b)
    if n == 0 or m == 0:
        return []

    # table[i][j] = LCS length of a[i:] and b[j:]; filled over suffixes so the
    # walk below can go forward and take matches greedily.
    table = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(n - 1, -1, -1):
        row = table[i]
        below = table[i + 1]
        ai = a[i]
        for j in range(m - 1, -1, -1):
            if equal(ai, b[j]):
                row[j] = below[j + 1] + 1
            else:
                down = below[j]
                right = row[j + 1]
                row[j] = down if down >= right else right

    pairs: Pairs = []
    i = j = 0
    while i < n and j < m:
        if equal(a[i], b[j]):
            pairs.append((i, j))
            i += 1
            j += 1
        elif table[i + 1][j] >= table[i][j + 1]:
            # Deletion first keeps deletes ahead of inserts in each gap
            i += 1
        else:
            j += 1
    return pairs


def anchored_pairs(
    a: Sequence[str],
    b: Sequence[str],
    equal: Optional[EqualFn] = None,
    cell_limit: int = DEFAULT_LCS_CELL_LIMIT,
) -> Pairs:
    """
    Bounded alignment for inputs too large for the full table.
    Anchors are elements occurring exactly once on each side; the longest
    increasing chain of anchors is kept and the gaps are solved recursively.
    """
    equal = equal or _exact
    anchors = _unique_anchor_chain(a, b)
    if not anchors:
        return _greedy_pairs(a, b, equal)

    pairs: Pairs = []
    prev_i = prev_j = 0
    for ai, bj in anchors + [(len(a), len(b))]:
        gap_a = a[prev_i:ai]
        gap_b = b[prev_j:bj]
        if gap_a and gap_b:
            if len(gap_a) * len(gap_b) <= cell_limit:
                gap = _dp_pairs(gap_a, gap_b, equal)
            else:
                gap = lcs_pairs(gap_a, gap_b, equal, cell_limit)
            pairs.extend((i + prev_i, j + prev_j) for i, j in gap)
        if ai < len(a):
            pairs.append((ai, bj))
        prev_i, prev_j = ai + 1, bj + 1
    return pairs


def _unique_anchor_chain(a: Sequence[str], b: Sequence[str]) -> Pairs:
    counts_a: Dict[str, int] = {}
    for x in a:
        counts_a[x] = counts_a.get(x, 0) + 1
    counts_b: Dict[str, int] = {}
    index_b: Dict[str, int] = {}
    for j, x in enumerate(b):
        counts_b[x] = counts_b.get(x, 0) + 1
        index_b[x] = j

    candidates = [(i, index_b[x]) for i, x in enumerate(a) if counts_a[x] == 1 and counts_b.get(x) == 1]
    if not candidates:
        return []

    # Longest increasing subsequence on b-index (patience sorting)
    tails: List[int] = []
    tail_idx: List[int] = []
    parents: List[int] = [-1] * len(candidates)
    for k, (_, bj) in enumerate(candidates):
        pos = bisect_left(tails, bj)
        if pos == len(tails):
            tails.append(bj)
            tail_idx.append(k)
        else:
            tails[pos] = bj
            tail_idx[pos] = k
        parents[k] = tail_idx[pos - 1] if pos > 0 else -1

    chain = []
    k = tail_idx[-1]
    while k != -1:
        chain.append(candidates[k])
        k = parents[k]
    chain.reverse()
    return chain


def _greedy_pairs(a: Sequence[str], b: Sequence[str], equal: EqualFn) -> Pairs:
    """
    Linear-space approximation: on a mismatch look ahead a bounded window on
    each side and skip towards whichever side reaches a match sooner.
    """
    n, m = len(a), len(b)
    pairs: Pairs = []
    i = j = 0
    while i < n and j < m:
        if equal(a[i], b[j]):
            pairs.append((i, j))
            i += 1
            j += 1
            continue

        found_a = found_b = -1
        look_ahead = min(GREEDY_LOOKAHEAD, max(n - i, m - j))
        for k in range(1, look_ahead):
            if found_a == -1 and i + k < n and equal(a[i + k], b[j]):
                found_a = i + k
            if found_b == -1 and j + k < m and equal(a[i], b[j + k]):
                found_b = j + k
            if found_a != -1 and found_b != -1:
                break

        if found_a == -1:
            found_a = n
        if found_b == -1:
            found_b = m

        if found_a - i <= found_b - j:
            i += 1
        else:
            j += 1
    return pairs


# --- Paragraph level ---


def _normalize_paragraph(text: str) -> str:
    return re.sub(r"\s+", " ", text.strip())


def _normalize_word(word: str) -> str:
    return re.sub(r"[^\w]", "", word.lower())


def paragraph_similarity(a: str, b: str) -> float:
    """Jaccard similarity of normalized word sets, 0.0 to 1.0."""
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    # Quick rejection on very different lengths
    length_ratio = min(len(a), len(b)) / max(len(a), len(b))
    if length_ratio < 0.3:
        return length_ratio * 0.3

    words_a = {w for w in map(_normalize_word, a.split()) if w}
    words_b = {w for w in map(_normalize_word, b.split()) if w}
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def align_paragraphs(
    original_paras: Sequence[str],
    edited_paras: Sequence[str],
    threshold: float = 0.5,
    cell_limit: int = DEFAULT_LCS_CELL_LIMIT,
) -> List[ParagraphAlignment]:
    """
    Aligns paragraph lists. Paragraphs are the same paragraph when their
    whitespace-normalized text is equal or their similarity exceeds threshold.
    Unmatched paragraphs become whole-paragraph DELETE / INSERT entries.

    Two single-paragraph texts are always the same paragraph: with nothing
    else to align against, the edit is word-level.
    """
    original_paras = list(original_paras or [])
    edited_paras = list(edited_paras or [])

    if not original_paras:
        return [ParagraphAlignment(AlignmentKind.INSERT, None, p) for p in edited_paras]
    if not edited_paras:
        return [ParagraphAlignment(AlignmentKind.DELETE, p, None) for p in original_paras]
    if len(original_paras) == 1 and len(edited_paras) == 1:
        o, e = original_paras[0], edited_paras[0]
        return [ParagraphAlignment(AlignmentKind.MATCH if o == e else AlignmentKind.CHANGE, o, e)]

    norm_orig = [_normalize_paragraph(p) for p in original_paras]
    norm_edit = [_normalize_paragraph(p) for p in edited_paras]

    def same_paragraph(x: str, y: str) -> bool:
        return x == y or paragraph_similarity(x, y) > threshold

    matches = lcs_pairs(norm_orig, norm_edit, same_paragraph, cell_limit)

    aligned: List[ParagraphAlignment] = []
    orig_idx = edit_idx = 0
    for oi, ei in matches + [(len(original_paras), len(edited_paras))]:
        _emit_gap(aligned, original_paras[orig_idx:oi], edited_paras[edit_idx:ei])
        if oi < len(original_paras):
            o, e = original_paras[oi], edited_paras[ei]
            kind = AlignmentKind.MATCH if o == e else AlignmentKind.CHANGE
            aligned.append(ParagraphAlignment(kind, o, e))
        orig_idx, edit_idx = oi + 1, ei + 1
    return aligned


def _emit_gap(aligned: List[ParagraphAlignment], deleted: List[str], inserted: List[str]):
    # Unmatched paragraphs are whole-paragraph revisions: deletes first, then inserts.
    for p in deleted:
        aligned.append(ParagraphAlignment(AlignmentKind.DELETE, p, None))
    for p in inserted:
        aligned.append(ParagraphAlignment(AlignmentKind.INSERT, None, p))


# --- Token level ---


def diff_tokens(
    original_tokens: Sequence[Token],
    edited_tokens: Sequence[Token],
    cell_limit: int = DEFAULT_LCS_CELL_LIMIT,
) -> List[EditOp]:
    """
    Edit script between two token sequences. In every gap between retained
    tokens, deletions come before insertions.
    """
    a = [t.text for t in original_tokens]
    b = [t.text for t in edited_tokens]
    ops: List[EditOp] = []
    i = j = 0
    for mi, mj in lcs_pairs(a, b, cell_limit=cell_limit) + [(len(a), len(b))]:
        ops.extend(EditOp(EditOperationType.DELETE, t) for t in original_tokens[i:mi])
        ops.extend(EditOp(EditOperationType.INSERT, t) for t in edited_tokens[j:mj])
        if mi < len(a):
            ops.append(EditOp(EditOperationType.RETAIN, original_tokens[mi]))
        i, j = mi + 1, mj + 1
    return ops


def align(
    original_paras: Sequence[str],
    edited_paras: Sequence[str],
    threshold: float = 0.5,
    cell_limit: int = DEFAULT_LCS_CELL_LIMIT,
) -> List[ParagraphAlignment]:
    """
    Paragraph alignment plus the token edit script of every paragraph.
    Unchanged, deleted and inserted paragraphs carry a one-sided script too,
    so callers can treat every alignment uniformly.
    """
    result = []
    for index, pa in enumerate(align_paragraphs(original_paras, edited_paras, threshold, cell_limit)):
        if pa.kind == AlignmentKind.CHANGE:
            ops = diff_tokens(
                tokenize_paragraph(pa.original, index),
                tokenize_paragraph(pa.edited, index),
                cell_limit,
            )
        elif pa.kind == AlignmentKind.MATCH:
            ops = [EditOp(EditOperationType.RETAIN, t) for t in tokenize_paragraph(pa.original, index)]
        elif pa.kind == AlignmentKind.DELETE:
            ops = [EditOp(EditOperationType.DELETE, t) for t in tokenize_paragraph(pa.original, index)]
        else:
            ops = [EditOp(EditOperationType.INSERT, t) for t in tokenize_paragraph(pa.edited, index)]
        result.append(pa._replace(ops=tuple(ops)))

    logger.debug(
        "Aligned paragraphs",
        original=len(original_paras),
        edited=len(edited_paras),
        changed=sum(1 for pa in result if pa.kind == AlignmentKind.CHANGE),
    )
    return result
