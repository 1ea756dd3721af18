"""
Mini tests for redliner.redline.mapper (edit script -> runs with revision ids).

Run: python3 test_mapper.py
From: redliner/python/
"""

import re
import sys

sys.path.insert(0, '.')

from redliner.diff import align
from redliner.models import RunKind
from redliner.redline.mapper import edited_text, map_to_runs, original_text, revision_timestamp
from redliner.stats import collect_stats, count_words
from redliner.tokenize import split_paragraphs


def _map(original, edited, **kwargs):
    o_paras, o_seps = split_paragraphs(original)
    e_paras, e_seps = split_paragraphs(edited)
    return map_to_runs(align(o_paras, e_paras), separators=(o_seps, e_seps), **kwargs)


def _revision_ids(document):
    ids = []
    for paragraph in document.paragraphs:
        if paragraph.mark_revision_id is not None:
            ids.append(paragraph.mark_revision_id)
        ids.extend(r.revision_id for r in paragraph.runs if r.is_revision)
    return ids


def test_runs_are_coalesced():
    doc = _map("Hello world", "Hello there")
    runs = doc.paragraphs[0].runs
    assert [(r.kind, r.text) for r in runs] == [
        (RunKind.UNCHANGED, "Hello "),
        (RunKind.DELETED, "world"),
        (RunKind.INSERTED, "there"),
    ]
    print("PASS: runs are coalesced")


def test_author_and_date_stamped():
    doc = _map("One two three.", "One three four.", author="Copy Desk", date="2024-05-01T10:00:00Z")
    revisions = [r for r in doc.iter_runs() if r.is_revision]
    assert revisions
    assert {r.author for r in revisions} == {"Copy Desk"}
    assert {r.date for r in revisions} == {"2024-05-01T10:00:00Z"}
    assert doc.author == "Copy Desk"
    print("PASS: author and date stamped")


def test_default_author_and_timestamp_format():
    doc = _map("Alpha beta.", "Alpha gamma.")
    assert doc.author == "AI Editor"
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", doc.date)
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", revision_timestamp())
    print("PASS: default author and timestamp format")


def test_ids_start_at_one_and_increase():
    original = "First para stays.\n\nSecond para goes away entirely.\n\nThird para is edited here."
    edited = "First para stays.\n\nThird para was edited here.\n\nA completely fresh closing line."
    doc = _map(original, edited)
    ids = _revision_ids(doc)
    assert ids[0] == 1
    assert ids == sorted(set(ids)), ids
    assert doc.last_revision_id == ids[-1]
    assert doc.revision_count == len(ids)
    print("PASS: ids start at one and increase")


def test_middle_paragraph_tracks_its_own_mark():
    """A paragraph added or removed between two others flags its own mark; its id comes first."""
    doc = _map("Keep this.\n\nEnd here.", "Keep this.\n\nAdded paragraph text.\n\nEnd here.")
    added = doc.paragraphs[1]
    assert added.mark == RunKind.INSERTED
    assert not added.in_original and added.in_edited
    assert [(r.kind, r.text) for r in added.runs] == [(RunKind.INSERTED, "Added paragraph text.")]
    assert added.mark_revision_id < added.runs[0].revision_id
    assert doc.paragraphs[0].mark == RunKind.UNCHANGED

    doc = _map("Keep this.\n\nRemove this paragraph.\n\nEnd here.", "Keep this.\n\nEnd here.")
    removed = doc.paragraphs[1]
    assert removed.mark == RunKind.DELETED
    assert removed.in_original and not removed.in_edited
    assert removed.runs[0].kind == RunKind.DELETED
    print("PASS: middle paragraph tracks its own mark")


def test_trailing_paragraph_tracks_preceding_mark():
    """At the end of the document the added/removed break is the previous paragraph's mark."""
    doc = _map("Alpha.", "Alpha.\n\nBeta new.")
    alpha, beta = doc.paragraphs
    assert alpha.mark == RunKind.INSERTED
    assert beta.mark == RunKind.UNCHANGED and beta.mark_revision_id is None
    assert not beta.in_original
    assert [(r.kind, r.text) for r in beta.runs] == [(RunKind.INSERTED, "Beta new.")]
    assert alpha.mark_revision_id < beta.runs[0].revision_id
    assert original_text(doc) == "Alpha."
    assert edited_text(doc) == "Alpha.\n\nBeta new."

    doc = _map("Alpha.\n\nBeta old.", "Alpha.")
    alpha, beta = doc.paragraphs
    assert alpha.mark == RunKind.DELETED
    assert beta.mark == RunKind.UNCHANGED
    assert not beta.in_edited
    assert original_text(doc) == "Alpha.\n\nBeta old."
    assert edited_text(doc) == "Alpha."
    print("PASS: trailing paragraph tracks the preceding mark")


def test_trailing_replacement_shares_final_paragraph():
    """The last deleted and last inserted paragraph end on the same final mark."""
    doc = _map(
        "Intro.\n\nThe storm raged all night over the harbour.",
        "Intro.\n\nBreakfast is served at nine in the hall.",
    )
    assert len(doc.paragraphs) == 2
    last = doc.paragraphs[1]
    assert [(r.kind, r.text) for r in last.runs] == [
        (RunKind.DELETED, "The storm raged all night over the harbour."),
        (RunKind.INSERTED, "Breakfast is served at nine in the hall."),
    ]
    assert [p.mark for p in doc.paragraphs] == [RunKind.UNCHANGED, RunKind.UNCHANGED]

    original = "Intro.\n\nOld one here.\n\nOld two there."
    edited = "Intro.\n\nNew alpha text.\n\nNew beta words."
    doc = _map(original, edited)
    assert [p.mark for p in doc.paragraphs] == [
        RunKind.UNCHANGED,
        RunKind.DELETED,
        RunKind.INSERTED,
        RunKind.UNCHANGED,
    ]
    assert original_text(doc) == original
    assert edited_text(doc) == edited
    print("PASS: trailing replacement shares the final paragraph")


def test_whitespace_only_changes_stay_revisions():
    doc = _map("a b", "a  b")
    kinds = [r.kind for r in doc.iter_runs()]
    assert RunKind.DELETED in kinds and RunKind.INSERTED in kinds
    assert original_text(doc) == "a b"
    assert edited_text(doc) == "a  b"
    print("PASS: whitespace-only changes stay revisions")


def test_reconstruction_with_separators():
    original = "One.\n\n\nTwo.\n\nThree."
    edited = "One.\n\nTwo!\r\n\r\nThree.\n\nFour."
    doc = _map(original, edited)
    assert original_text(doc) == original
    assert edited_text(doc) == edited
    print("PASS: reconstruction with separators")


def test_empty_paragraph_has_one_run():
    doc = _map("\n\nBody.", "\n\nBody.")
    assert doc.paragraphs[0].runs[0].text == ""
    assert doc.paragraphs[0].runs[0].kind == RunKind.UNCHANGED
    print("PASS: empty paragraph has one run")


def test_collect_stats():
    original = "Keep this.\n\nDrop this one.\n\nEdit this line now."
    edited = "Keep this.\n\nEdit that line now.\n\nNew closing paragraph text."
    stats = collect_stats(_map(original, edited))
    assert stats.total_revisions == stats.insertions + stats.deletions
    assert stats.paragraphs_modified >= 1
    assert stats.words_inserted > 0 and stats.words_deleted > 0

    appended = collect_stats(_map("Alpha.", "Alpha.\n\nBeta new."))
    assert appended.paragraphs_added == 1
    assert appended.paragraphs_modified == 0
    # The inserted break on "Alpha." plus the inserted run
    assert appended.insertions == 2 and appended.deletions == 0

    assert count_words("  two   words ") == 2
    assert count_words("") == 0
    print("PASS: change statistics")


if __name__ == "__main__":
    tests = [
        test_runs_are_coalesced,
        test_author_and_date_stamped,
        test_default_author_and_timestamp_format,
        test_ids_start_at_one_and_increase,
        test_middle_paragraph_tracks_its_own_mark,
        test_trailing_paragraph_tracks_preceding_mark,
        test_trailing_replacement_shares_final_paragraph,
        test_whitespace_only_changes_stay_revisions,
        test_reconstruction_with_separators,
        test_empty_paragraph_has_one_run,
        test_collect_stats,
    ]

    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"FAIL: {test.__name__}: {e}")
            import traceback
            traceback.print_exc()
            failed += 1

    print(f"\n{'='*60}")
    print(f"Results: {passed} passed, {failed} failed out of {len(tests)} tests")
    if failed == 0:
        print("ALL TESTS PASSED")
    else:
        print("SOME TESTS FAILED")
