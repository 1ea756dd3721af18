import argparse
import json
import sys
from dataclasses import asdict
from io import BytesIO
from pathlib import Path

from redliner import __version__
from redliner.config import GenerationOptions
from redliner.errors import RedlinerError
from redliner.ingest import VIEWS, extract_text_from_stream
from redliner.log import configure_logging
from redliner.markup import render_markup
from redliner.pipeline import generate, generate_document, resolve_file_name


def _read_text(path: Path) -> str:
    """Plain text as-is; a .docx contributes its accepted (edited) text."""
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        sys.exit(1)
    if path.suffix.lower() == ".docx":
        with open(path, "rb") as f:
            return extract_text_from_stream(BytesIO(f.read()), view="edited")
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _options(args) -> GenerationOptions:
    overrides = {}
    if getattr(args, "author", None):
        overrides["author"] = args.author
    if getattr(args, "inline_comments", False):
        overrides["inline_comments"] = True
    if getattr(args, "summary", False):
        overrides["summary_comment"] = True
    return GenerationOptions.from_env(**overrides)


def handle_generate(args):
    original = _read_text(args.original)
    edited = _read_text(args.edited)
    options = _options(args)

    output_path = args.output
    if not output_path:
        output_path = Path(resolve_file_name(f"{args.edited.stem}_tracked", options.default_file_name))

    data = generate(original, edited, file_name=output_path.name, options=options)
    with open(output_path, "wb") as f:
        f.write(data)
    print(f"Saved to {output_path}", file=sys.stderr)


def handle_diff(args):
    original = _read_text(args.original)
    edited = _read_text(args.edited)
    document = generate_document(original, edited, _options(args))

    if args.json:
        output = [
            {
                "paragraph": index,
                "mark": paragraph.mark,
                "in_original": paragraph.in_original,
                "in_edited": paragraph.in_edited,
                "runs": [asdict(r) for r in paragraph.runs],
            }
            for index, paragraph in enumerate(document.paragraphs)
        ]
        print(json.dumps(output, indent=2))
    else:
        print(f"Found {document.revision_count} revisions:", file=sys.stderr)
        print(render_markup(document, include_meta=args.meta))


def handle_extract(args):
    if not args.input.exists():
        print(f"Error: File not found: {args.input}", file=sys.stderr)
        sys.exit(1)
    with open(args.input, "rb") as f:
        text = extract_text_from_stream(BytesIO(f.read()), view=args.view)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(text)
        print(f"Extracted text to {args.output}", file=sys.stderr)
    else:
        print(text)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="redliner", description="Redliner: turn two text versions into a tracked-changes DOCX"
    )
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default="WARNING", help="Log level for stderr output (default: WARNING)")
    subparsers = parser.add_subparsers(dest="command", required=True, help="Subcommands")

    p_generate = subparsers.add_parser("generate", help="Write a DOCX with every change tracked")
    p_generate.add_argument("original", type=Path, help="Original text (or DOCX)")
    p_generate.add_argument("edited", type=Path, help="Edited text (or DOCX)")
    p_generate.add_argument("-o", "--output", type=Path, help="Output DOCX path (default: <edited>_tracked.docx)")
    p_generate.add_argument("--author", type=str, help="Author name for Track Changes (default: 'AI Editor')")
    p_generate.add_argument("--summary", action="store_true", help="Add a summary comment with change statistics")
    p_generate.add_argument(
        "--inline-comments", action="store_true", help="Comment every significant deletion, insertion or replacement"
    )
    p_generate.set_defaults(func=handle_generate)

    p_diff = subparsers.add_parser("diff", help="Show the tracked changes without writing a DOCX")
    p_diff.add_argument("original", type=Path, help="Original text (or DOCX)")
    p_diff.add_argument("edited", type=Path, help="Edited text (or DOCX)")
    p_diff.add_argument("--json", action="store_true", help="Output runs as JSON instead of CriticMarkup")
    p_diff.add_argument("--meta", action="store_true", help="Follow each change with a {>>[Chg:id] author<<} block")
    p_diff.set_defaults(func=handle_diff)

    p_extract = subparsers.add_parser("extract", help="Read text back from a tracked-changes DOCX")
    p_extract.add_argument("input", type=Path, help="Input DOCX file")
    p_extract.add_argument("--view", choices=VIEWS, default="edited", help="Which side to read (default: edited)")
    p_extract.add_argument("-o", "--output", type=Path, help="Output file (default: stdout)")
    p_extract.set_defaults(func=handle_extract)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(level=args.log_level)

    try:
        args.func(args)
    except (RedlinerError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
