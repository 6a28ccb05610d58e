"""Pydantic model for a schema declaration.

A declaration is what the extraction step hands to the compiler: one typed
entity with its attributes already parsed. Attributes may be missing here;
the validator reports each gap as a named error.
"""

from pathlib import Path
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .field_types import FieldType, is_generic_slot, parse_type_expr

# Field the child nests under when its parent has no generic slot
RESERVED_NESTING_FIELD = "payload"


class SchemaDeclaration(BaseModel):
    """A declared GTS schema type."""
    name: str
    generic_param: Optional[str] = None
    base: Union[bool, str, None] = Field(
        None,
        description="True for a root type, the parent declaration name for an inheriting type"
    )
    schema_id: Optional[str] = None
    description: Optional[str] = None
    properties: List[str] = Field(default_factory=list)
    fields: Dict[str, FieldType] = Field(default_factory=dict)
    shape: Literal["struct", "tuple", "unit", "enum"] = "struct"
    output_location: Optional[str] = None
    source_file: Optional[Path] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("properties", mode="before")
    @classmethod
    def split_properties(cls, v):
        """Accept the comma-separated form: ``"id,email,name"``."""
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()]
        return v

    @field_validator("fields", mode="before")
    @classmethod
    def parse_field_text(cls, v, info):
        """Field types may be given as annotation text."""
        if not isinstance(v, dict):
            return v
        generic_params = ()
        if info.data.get("generic_param"):
            generic_params = (info.data["generic_param"],)
        return {
            name: parse_type_expr(t, generic_params) if isinstance(t, str) else t
            for name, t in v.items()
        }

    @property
    def is_root(self) -> bool:
        return self.base is True

    @property
    def parent_name(self) -> Optional[str]:
        if isinstance(self.base, str):
            return self.base
        return None

    def generic_fields(self) -> List[str]:
        """Names of fields typed as the generic slot, in field order."""
        return [name for name, ft in self.fields.items() if is_generic_slot(ft)]

    @property
    def generic_field(self) -> Optional[str]:
        slots = self.generic_fields()
        return slots[0] if slots else None

    @property
    def nesting_field(self) -> str:
        """Field a child of this declaration nests under."""
        return self.generic_field or RESERVED_NESTING_FIELD
