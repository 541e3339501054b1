"""Analyzer configuration."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


DEFAULT_LIBRARY_DIR = Path.home() / ".pangylibs"
DEFAULT_EXTENSION = ".pgy"
DEFAULT_MAX_LINES = 100_000


class AnalyzerConfig(BaseModel):
    """Where modules live and how they are read."""

    library_dir: Path = Field(default=DEFAULT_LIBRARY_DIR)
    module_extension: str = Field(default=DEFAULT_EXTENSION)
    max_lines: int = Field(default=DEFAULT_MAX_LINES)

    @classmethod
    def from_env(cls) -> "AnalyzerConfig":
        """Load configuration from environment variables."""
        def _parse_int(value: Optional[str], fallback: int) -> int:
            try:
                return int(value) if value is not None else fallback
            except ValueError:
                return fallback

        library_dir = os.getenv("PANGY_LIBS_DIR")
        return cls(
            library_dir=Path(library_dir).expanduser() if library_dir else DEFAULT_LIBRARY_DIR,
            max_lines=_parse_int(os.getenv("PANGY_MAX_LINES"), DEFAULT_MAX_LINES),
        )
