"""Generation configuration loaded from an optional JSON file."""

import json
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gtsgen.kernel.composer import DRAFT_07

DEFAULT_AUTO_IGNORE_DIRS = ["compile_fail"]


class GenerateConfig(BaseModel):
    """Settings for one generate run. CLI flags extend or override these."""
    exclude: List[str] = Field(
        default_factory=list,
        description="Glob patterns for source paths to skip (* within a component, ** across components)"
    )
    auto_ignore_dirs: List[str] = Field(
        default_factory=lambda: list(DEFAULT_AUTO_IGNORE_DIRS),
        description="Directory names whose files are never scanned"
    )
    schema_draft: str = Field(DRAFT_07, description="Value written to $schema")
    indent: int = Field(2, description="JSON indent for written artifacts")

    model_config = ConfigDict(extra="forbid")

    @field_validator("indent")
    @classmethod
    def validate_indent(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"indent must be >= 0, got {v}")
        return v

    def with_excludes(self, patterns: List[str]) -> "GenerateConfig":
        """Copy with extra exclude patterns appended."""
        if not patterns:
            return self
        return self.model_copy(update={"exclude": self.exclude + list(patterns)})


def load_config(path: Optional[Union[str, Path]]) -> GenerateConfig:
    """Load config from a JSON file, or defaults when no path is given."""
    if path is None:
        return GenerateConfig()
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return GenerateConfig(**data)
