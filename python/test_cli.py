"""
Mini tests for the redliner CLI and MCP tool functions.

Run: python3 test_cli.py
From: redliner/python/
"""

import contextlib
import io
import json
import sys
import tempfile
import zipfile
from pathlib import Path

sys.path.insert(0, '.')

from docx import Document
from docx.oxml.ns import qn

from redliner.cli import main
from redliner.ingest import extract_text_from_stream


def _write(directory, name, text):
    path = Path(directory) / name
    path.write_text(text, encoding="utf-8")
    return path


def _run(argv):
    out = io.StringIO()
    err = io.StringIO()
    code = 0
    with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
        try:
            main(argv)
        except SystemExit as e:
            code = e.code
    return code, out.getvalue(), err.getvalue()


def test_generate_writes_docx():
    with tempfile.TemporaryDirectory() as tmp:
        original = _write(tmp, "original.txt", "Hello world")
        edited = _write(tmp, "edited.txt", "Hello there")
        output = Path(tmp) / "out.docx"

        code, _, err = _run(["generate", str(original), str(edited), "-o", str(output), "--author", "Desk"])
        assert code == 0, err
        data = output.read_bytes()
        assert data[:2] == b"PK"
        doc = Document(io.BytesIO(data))
        assert {el.get(qn("w:author")) for el in doc.element.body.iter(qn("w:ins"))} == {"Desk"}
        assert extract_text_from_stream(io.BytesIO(data), view="edited") == "Hello there"
    print("PASS: generate writes a docx")


def test_diff_prints_markup():
    with tempfile.TemporaryDirectory() as tmp:
        original = _write(tmp, "original.txt", "Hello world")
        edited = _write(tmp, "edited.txt", "Hello there")
        code, out, err = _run(["diff", str(original), str(edited)])
        assert code == 0, err
        assert out.strip() == "Hello {--world--}{++there++}"
        assert "2 revisions" in err
    print("PASS: diff prints CriticMarkup")


def test_diff_json():
    with tempfile.TemporaryDirectory() as tmp:
        original = _write(tmp, "original.txt", "Hello world")
        edited = _write(tmp, "edited.txt", "Hello there")
        code, out, _ = _run(["diff", str(original), str(edited), "--json"])
        assert code == 0
        data = json.loads(out)
        kinds = [r["kind"] for r in data[0]["runs"]]
        assert kinds == ["unchanged", "deleted", "inserted"]
        assert data[0]["runs"][1]["revision_id"] == 1
    print("PASS: diff --json")


def test_diff_meta():
    with tempfile.TemporaryDirectory() as tmp:
        original = _write(tmp, "original.txt", "Hello world")
        edited = _write(tmp, "edited.txt", "Hello there")
        code, out, err = _run(["diff", str(original), str(edited), "--meta"])
        assert code == 0, err
        assert out.rstrip("\n") == "Hello {--world--}{++there++}{>>[Chg:1] AI Editor\n[Chg:2] AI Editor<<}"
    print("PASS: diff --meta")


def test_generate_inline_comments():
    with tempfile.TemporaryDirectory() as tmp:
        original = _write(tmp, "original.txt", "We met today.")
        edited = _write(tmp, "edited.txt", "We met at the riverside office today.")
        output = Path(tmp) / "out.docx"

        code, _, err = _run(["generate", str(original), str(edited), "-o", str(output), "--inline-comments"])
        assert code == 0, err
        with zipfile.ZipFile(output) as zf:
            comments = zf.read("word/comments.xml").decode("utf-8")
        assert "ADDED" in comments
        data = output.read_bytes()
        assert extract_text_from_stream(io.BytesIO(data), view="original") == "We met today."
        assert extract_text_from_stream(io.BytesIO(data), view="edited") == "We met at the riverside office today."

        plain = Path(tmp) / "plain.docx"
        assert _run(["generate", str(original), str(edited), "-o", str(plain)])[0] == 0
        with zipfile.ZipFile(plain) as zf:
            assert "word/comments.xml" not in zf.namelist()
    print("PASS: generate --inline-comments")


def test_extract_views():
    with tempfile.TemporaryDirectory() as tmp:
        original = _write(tmp, "original.txt", "Keep.\n\nOld words stay here.")
        edited = _write(tmp, "edited.txt", "Keep.\n\nNew words stay here.")
        output = Path(tmp) / "out.docx"
        assert _run(["generate", str(original), str(edited), "-o", str(output)])[0] == 0

        code, out, _ = _run(["extract", str(output), "--view", "original"])
        assert code == 0
        assert out.rstrip("\n") == "Keep.\n\nOld words stay here."

        code, out, _ = _run(["extract", str(output), "--view", "markup"])
        assert "{--Old--}{++New++}" in out
    print("PASS: extract views")


def test_errors_exit_nonzero():
    with tempfile.TemporaryDirectory() as tmp:
        blank = _write(tmp, "blank.txt", "   ")
        edited = _write(tmp, "edited.txt", "Text")
        code, _, err = _run(["generate", str(blank), str(edited), "-o", str(Path(tmp) / "x.docx")])
        assert code == 1
        assert "Error: original text is empty" in err

        code, _, err = _run(["extract", str(Path(tmp) / "missing.docx")])
        assert code == 1
        assert "File not found" in err
    print("PASS: errors exit non-zero")


def test_mcp_tools():
    from redliner.server import diff_texts, generate_tracked_docx, read_tracked_docx

    assert diff_texts("Hello world", "Hello there") == "Hello {--world--}{++there++}"
    assert diff_texts("Same.", "Same.") == "No text differences found."
    assert diff_texts("", "x").startswith("Error comparing texts:")

    with tempfile.TemporaryDirectory() as tmp:
        original = _write(tmp, "original.txt", "Hello world")
        edited = _write(tmp, "edited.txt", "Hello there")
        output = str(Path(tmp) / "out.docx")

        result = generate_tracked_docx(str(original), str(edited), output)
        assert result.startswith("Saved to"), result
        assert "2 revisions" in result
        assert read_tracked_docx(output, "edited") == "Hello there"
        assert read_tracked_docx(output) == "Hello {--world--}{++there++}"
        assert read_tracked_docx(str(Path(tmp) / "nope.docx")).startswith("Error reading file:")
    print("PASS: MCP tool functions")


if __name__ == "__main__":
    tests = [
        test_generate_writes_docx,
        test_diff_prints_markup,
        test_diff_json,
        test_diff_meta,
        test_generate_inline_comments,
        test_extract_views,
        test_errors_exit_nonzero,
        test_mcp_tools,
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
