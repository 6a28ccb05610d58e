"""Class decorator declaring a GTS schema type at runtime.

The declaration is built from the class annotations and validated when the
class is defined, so a malformed declaration fails at import time::

    @gts_schema(
        schema_id="gts.x.core.events.type.v1~",
        description="Base event type",
        properties="id,payload",
        base=True,
        dir_path="schemas",
    )
    class BaseEventV1(BaseModel, Generic[P]):
        id: UUID
        payload: P
"""

import inspect
import typing
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

from gtsgen._internal.emitter import ARTIFACT_SUFFIX, InvalidExtensionError
from gtsgen._internal.extract import output_location_for
from gtsgen.kernel.composer import (
    DRAFT_07,
    compose_chain,
    compose_one,
    render_inline,
    render_with_refs,
)
from gtsgen.kernel.declaration import SchemaDeclaration
from gtsgen.kernel.errors import UnresolvedParentError
from gtsgen.kernel.field_types import field_type_from_annotation
from gtsgen.kernel.gts_id import compose_instance_id
from gtsgen.kernel.validator import validate_declaration

DECLARATION_ATTR = "__gts_declaration__"
PARENT_ATTR = "__gts_parent__"


def _generic_params(cls: type) -> Sequence[str]:
    params = getattr(cls, "__parameters__", None)
    if not params:
        metadata = getattr(cls, "__pydantic_generic_metadata__", None) or {}
        params = metadata.get("parameters", ())
    return [p.__name__ for p in params if isinstance(p, typing.TypeVar)]


def _is_classvar(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return annotation.startswith(("ClassVar", "typing.ClassVar"))
    return typing.get_origin(annotation) is typing.ClassVar or annotation is typing.ClassVar


def _shape(cls: type, has_fields: bool) -> str:
    if issubclass(cls, Enum):
        return "enum"
    if issubclass(cls, tuple):
        return "tuple"
    if not has_fields:
        return "unit"
    return "struct"


def declaration_of(cls: type) -> SchemaDeclaration:
    """The declaration attached by ``@gts_schema``.

    Raises:
        TypeError: if ``cls`` is not a decorated class
    """
    decl = cls.__dict__.get(DECLARATION_ATTR)
    if decl is None:
        raise TypeError(f"{cls.__name__} is not declared with @gts_schema")
    return decl


def _ancestors(parent: Optional[type]) -> Dict[str, SchemaDeclaration]:
    found: Dict[str, SchemaDeclaration] = {}
    while parent is not None:
        decl = declaration_of(parent)
        found[decl.name] = decl
        parent = parent.__dict__.get(PARENT_ATTR)
    return found


def gts_schema(
    *,
    schema_id: Optional[str] = None,
    description: Optional[str] = None,
    properties: Union[str, Sequence[str], None] = None,
    base: Union[bool, type, None] = None,
    file_path: Optional[str] = None,
    dir_path: Optional[str] = None,
):
    """Declare the decorated class as a GTS schema type.

    Args:
        schema_id: GTS type id, ending in ``~``
        description: Schema description
        properties: Fields to publish, as a list or ``"a,b,c"``
        base: ``True`` for a root type, or the parent class for an inheriting type
        file_path: Output location of the schema file (must end in ``.json``)
        dir_path: Output directory; the file is named ``<schema_id>.schema.json``

    Raises:
        DeclarationError: the declaration is inconsistent (raised at class definition)
        GtsIdError: ``schema_id`` is malformed
        InvalidExtensionError: the output location does not end in ``.json``
    """
    def wrap(cls: type) -> type:
        parent_cls = base if isinstance(base, type) else None
        if parent_cls is not None and DECLARATION_ATTR not in parent_cls.__dict__:
            raise UnresolvedParentError(
                cls.__name__, parent_cls.__name__, "is not declared with @gts_schema"
            )

        params = _generic_params(cls)
        fields = {
            name: field_type_from_annotation(annotation, params)
            for name, annotation in inspect.get_annotations(cls).items()
            if not _is_classvar(annotation)
        }
        decl = SchemaDeclaration(
            name=cls.__name__,
            generic_param=params[0] if params else None,
            base=parent_cls.__name__ if parent_cls is not None else base,
            schema_id=schema_id,
            description=description,
            properties=list(properties) if isinstance(properties, (list, tuple)) else properties or [],
            fields=fields,
            shape=_shape(cls, bool(fields)),
            output_location=output_location_for(schema_id, file_path, dir_path),
        )

        registry = _ancestors(parent_cls)
        validate_declaration(decl, registry)
        if not decl.output_location.endswith(ARTIFACT_SUFFIX):
            raise InvalidExtensionError(Path(decl.output_location))

        setattr(cls, DECLARATION_ATTR, decl)
        setattr(cls, PARENT_ATTR, parent_cls)
        cls.GTS_SCHEMA_ID = decl.schema_id
        cls.GTS_SCHEMA_FILE_PATH = decl.output_location
        cls.GTS_SCHEMA_DESCRIPTION = decl.description
        cls.GTS_SCHEMA_PROPERTIES = ",".join(decl.properties)
        cls.gts_instance_id = classmethod(_gts_instance_id)
        cls.gts_schema_with_refs = classmethod(_gts_schema_with_refs)
        cls.gts_schema_inline = classmethod(_gts_schema_inline)
        cls.gts_schema = classmethod(_gts_schema_with_refs)
        return cls

    return wrap


def _gts_instance_id(cls, segment: str) -> str:
    """Instance id of this type for ``segment``."""
    return str(compose_instance_id(cls.GTS_SCHEMA_ID, segment))


def _gts_schema_with_refs(cls, draft: str = DRAFT_07) -> Dict[str, Any]:
    """Schema document of this type, the parent referenced through ``allOf``."""
    decl = declaration_of(cls)
    registry = _ancestors(cls.__dict__.get(PARENT_ATTR))
    return render_with_refs(compose_one(decl, registry), draft)


def _gts_schema_inline(cls, draft: str = DRAFT_07) -> Dict[str, Any]:
    """Inlined schema document of this type."""
    decl = declaration_of(cls)
    registry = _ancestors(cls.__dict__.get(PARENT_ATTR))
    return render_inline(compose_one(decl, registry), draft)


def gts_schema_for(*classes: type, draft: str = DRAFT_07) -> Dict[str, Any]:
    """Self-contained schema for a nesting chain given outermost first.

    ``gts_schema_for(BaseEventV1, AuditPayloadV1)`` resolves the base
    event's slot with the audit payload's properties.
    """
    return render_with_refs(compose_chain([declaration_of(c) for c in classes]), draft)
