"""Declaration validator: internal consistency and consistency with the parent.

Checks run in a fixed order and the first failure wins for a declaration:

1. Required attributes (description, properties, output location, schema id, base)
2. Every listed property exists in the fields
3. Struct shape (named fields only)
4. At most one generic slot
5. Base consistency (segment count and prefix against the parent's id)
6. Version suffix in the name, when present, matches the id's last segment
"""

import logging
import re
from typing import Mapping, Optional, Union

from .declaration import SchemaDeclaration
from .errors import (
    BaseMismatchError,
    InvalidStructShapeError,
    MissingAttributeError,
    MultipleGenericSlotsError,
    UnknownPropertyError,
    UnresolvedParentError,
    VersionMismatchError,
)
from .gts_id import GtsId, GtsIdError, parse_gts_id
from .registry import DeclarationRegistry

logger = logging.getLogger(__name__)

_NAME_VERSION_RE = re.compile(r"V(\d+)(?:_(\d+))?$")

Registry = Union[DeclarationRegistry, Mapping[str, SchemaDeclaration]]


def _check_required(decl: SchemaDeclaration) -> GtsId:
    if not decl.description:
        raise MissingAttributeError(decl.name, "description")
    if not decl.properties:
        raise MissingAttributeError(decl.name, "properties")
    if not decl.output_location:
        raise MissingAttributeError(decl.name, "output_location")
    if not decl.schema_id:
        raise MissingAttributeError(decl.name, "schema_id")
    if decl.base is None or decl.base is False:
        raise MissingAttributeError(decl.name, "base")
    return parse_gts_id(decl.schema_id)


def _check_base(decl: SchemaDeclaration, gts_id: GtsId, registry: Registry) -> None:
    if decl.is_root:
        if len(gts_id.segments) != 1:
            raise BaseMismatchError(
                decl.name, None, decl.schema_id,
                f"a root declaration must have exactly one segment, got {len(gts_id.segments)}"
            )
        return

    parent = registry.get(decl.parent_name)
    if parent is None:
        raise UnresolvedParentError(decl.name, decl.parent_name)
    if not parent.schema_id:
        raise UnresolvedParentError(decl.name, decl.parent_name, "has no schema_id")
    try:
        parent_id = parse_gts_id(parent.schema_id)
    except GtsIdError as e:
        raise UnresolvedParentError(
            decl.name, decl.parent_name, f"has a malformed schema_id ({e.reason})"
        ) from e

    expected = len(parent_id.segments) + 1
    if len(gts_id.segments) != expected:
        raise BaseMismatchError(
            decl.name, str(parent_id), decl.schema_id,
            f"expected {expected} segments (parent has {len(parent_id.segments)}), "
            f"got {len(gts_id.segments)}"
        )
    if not gts_id.has_prefix(parent_id):
        raise BaseMismatchError(
            decl.name, str(parent_id), decl.schema_id,
            f"segment prefix must equal parent id '{parent_id}'"
        )


def _check_name_version(decl: SchemaDeclaration, gts_id: GtsId) -> None:
    match = _NAME_VERSION_RE.search(decl.name)
    if not match:
        return
    last = gts_id.segments[-1]
    major = int(match.group(1))
    minor = int(match.group(2)) if match.group(2) is not None else None
    if (major, minor) != (last.ver_major, last.ver_minor):
        id_version = f"v{last.ver_major}" + (f".{last.ver_minor}" if last.ver_minor is not None else "")
        raise VersionMismatchError(decl.name, match.group(0), id_version)


def validate_declaration(decl: SchemaDeclaration, registry: Optional[Registry] = None) -> GtsId:
    """Validate one declaration against its registry.

    Returns:
        The parsed schema id.

    Raises:
        DeclarationError: the first failed check (see module docstring).
        GtsIdError: if the schema id text is malformed.
    """
    if registry is None:
        registry = {}

    gts_id = _check_required(decl)

    # Property membership only applies to named-field structs
    if decl.shape == "struct" and decl.fields:
        available = list(decl.fields)
        for prop in decl.properties:
            if prop not in decl.fields:
                raise UnknownPropertyError(decl.name, prop, available)

    if decl.shape != "struct" or not decl.fields:
        raise InvalidStructShapeError(
            decl.name, decl.shape if decl.shape != "struct" else "fieldless struct"
        )

    slots = decl.generic_fields()
    if len(slots) > 1:
        raise MultipleGenericSlotsError(decl.name, slots)

    _check_base(decl, gts_id, registry)
    _check_name_version(decl, gts_id)

    logger.debug("Declaration %s validated as %s", decl.name, gts_id)
    return gts_id
