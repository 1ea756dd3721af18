from importlib.metadata import PackageNotFoundError, version

from redliner.config import DOCX_MIME_TYPE, GenerationOptions
from redliner.errors import ConsistencyError, InputError, RedlinerError, SerializationError
from redliner.ingest import extract_text_from_stream
from redliner.pipeline import generate, generate_document, resolve_file_name

try:
    __version__ = version("redliner")
except PackageNotFoundError:
    # Running from a source checkout without an install
    __version__ = "0.0.0-dev"

__all__ = [
    "generate",
    "generate_document",
    "resolve_file_name",
    "extract_text_from_stream",
    "GenerationOptions",
    "DOCX_MIME_TYPE",
    "RedlinerError",
    "InputError",
    "ConsistencyError",
    "SerializationError",
    "__version__",
]
