"""Public result models for the gtsgen package."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class DeclarationResult(BaseModel):
    """Outcome for one declaration, in discovery order."""
    name: str
    status: Literal["emitted", "failed"]
    schema_id: Optional[str] = None
    path: Optional[str] = None  # Set when emitted
    code: Optional[str] = None  # ErrorCode value when failed
    message: Optional[str] = None
    source_file: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "emitted"


class GenerateResult(BaseModel):
    """Aggregate outcome of a generate/compile run."""
    ok: bool
    files_scanned: int = 0
    files_skipped: int = 0
    schemas_generated: int = 0
    results: List[DeclarationResult] = Field(default_factory=list)
    fatal_error: Optional[str] = None  # Registry error that stopped the run
    fatal_code: Optional[str] = None

    @property
    def failures(self) -> List[DeclarationResult]:
        return [r for r in self.results if r.status == "failed"]


class IdValidationResult(BaseModel):
    id: str
    valid: bool
    error: Optional[str] = None


class SegmentInfo(BaseModel):
    vendor: str
    package: str
    namespace: str
    type: str
    ver_major: int
    ver_minor: Optional[int] = None


class IdParseResult(BaseModel):
    id: str
    ok: bool
    segments: List[SegmentInfo] = Field(default_factory=list)
    uri: Optional[str] = None
    error: Optional[str] = None


class InstanceIdResult(BaseModel):
    id: str
    ok: bool
    schema_id: Optional[str] = None
    instance_segment: Optional[str] = None
    error: Optional[str] = None
