import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

DEFAULT_AUTHOR = "AI Editor"
DEFAULT_FILE_NAME = "edited_document.docx"

# Beyond this many DP cells the diff switches to anchor-based alignment.
DEFAULT_LCS_CELL_LIMIT = 5_000_000

DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

_ENV_PREFIX = "REDLINER_"


class GenerationOptions(BaseModel):
    """
    Tunables for one generate() call.
    All fields have production defaults; from_env() overlays REDLINER_* variables.
    """

    author: str = Field(DEFAULT_AUTHOR, min_length=1, max_length=255, description="Author stamped on every revision mark.")
    lcs_cell_limit: int = Field(
        DEFAULT_LCS_CELL_LIMIT,
        gt=0,
        description="Maximum len(a) * len(b) solved with the full DP table before the anchor fallback.",
    )
    paragraph_similarity: float = Field(
        0.5,
        ge=0.0,
        le=1.0,
        description="Word-set similarity above which two paragraphs count as the same (edited) paragraph.",
    )
    summary_comment: bool = Field(False, description="Prepend a reviewer comment summarising the changes.")
    inline_comments: bool = Field(False, description="Comment every significant deletion, insertion or replacement.")
    default_file_name: str = Field(DEFAULT_FILE_NAME, min_length=1)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None, **overrides: Any) -> "GenerationOptions":
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for name in cls.model_fields:
            raw = env.get(_ENV_PREFIX + name.upper())
            if raw is not None and raw != "":
                values[name] = raw
        values.update(overrides)
        # pydantic coerces "true"/"1"/"5000" to the declared field types
        return cls(**values)
