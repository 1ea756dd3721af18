from io import BytesIO
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from redliner.config import GenerationOptions
from redliner.ingest import extract_text_from_stream
from redliner.log import configure_logging
from redliner.markup import render_markup
from redliner.pipeline import generate_document, render_document
from redliner.stats import collect_stats

# MCP communicates over stdio.
# All logs must go to stderr; any print to stdout breaks the JSON-RPC protocol.
configure_logging(json_output=True)

mcp = FastMCP("Redliner Track Changes Service")


def _read_file_bytes(path: str) -> BytesIO:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File not found: {path}")
    with open(p, "rb") as f:
        return BytesIO(f.read())


def _read_text(path: str) -> str:
    if Path(path).suffix.lower() == ".docx":
        return extract_text_from_stream(_read_file_bytes(path), view="edited")
    return _read_file_bytes(path).getvalue().decode("utf-8")


@mcp.tool()
def generate_tracked_docx(
    original_path: str, edited_path: str, output_path: str, summary: bool = False, inline_comments: bool = False
) -> str:
    """
    Writes a DOCX in which every difference between two text versions is a
    native Track Change (w:ins / w:del) attributed to the AI Editor.

    Args:
        original_path: Path to the original text (plain text, or a DOCX whose accepted text is used).
        edited_path: Path to the edited text.
        output_path: Where to write the resulting .docx.
        summary: If True, prepend a reviewer comment summarising the changes.
        inline_comments: If True, comment every significant deletion, insertion or replacement.
    """
    try:
        overrides = {}
        if summary:
            overrides["summary_comment"] = True
        if inline_comments:
            overrides["inline_comments"] = True
        options = GenerationOptions.from_env(**overrides)
        document = generate_document(_read_text(original_path), _read_text(edited_path), options)
        with open(output_path, "wb") as f:
            f.write(render_document(document, options))

        stats = collect_stats(document)
        return (
            f"Saved to {output_path}. "
            f"{stats.total_revisions} revisions ({stats.insertions} insertions, {stats.deletions} deletions)."
        )
    except Exception as e:
        return f"Error generating document: {str(e)}"


@mcp.tool()
def diff_texts(original: str, edited: str) -> str:
    """
    Compares two texts and returns the changes as CriticMarkup:
    {--deleted--}{++inserted++}, paragraphs separated by blank lines.
    """
    try:
        document = generate_document(original, edited, GenerationOptions.from_env())
        if document.revision_count == 0:
            return "No text differences found."
        return render_markup(document)
    except Exception as e:
        return f"Error comparing texts: {str(e)}"


@mcp.tool()
def read_tracked_docx(file_path: str, view: str = "markup") -> str:
    """
    Reads a tracked-changes DOCX back into text.

    Args:
        file_path: Absolute path to the DOCX file.
        view: "markup" (default) shows changes inline as CriticMarkup,
              "edited" is the text with all changes accepted,
              "original" is the text with all changes rejected.
    """
    try:
        return extract_text_from_stream(_read_file_bytes(file_path), view=view)
    except Exception as e:
        return f"Error reading file: {str(e)}"


def main():
    mcp.run()


if __name__ == "__main__":
    main()
