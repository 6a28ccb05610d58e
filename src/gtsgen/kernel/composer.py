"""Schema composer: declaration -> JSON Schema artifact.

``compose_one`` builds the artifact for a single declaration. A root
declaration gets a flat ``properties``/``required`` body; an inheriting
declaration gets exactly one top-level property (its ancestors' nesting
field) holding its own properties, plus a reference to the parent id.

``compose_chain`` resolves a whole nesting chain (outermost -> innermost)
into one self-contained artifact: every generic slot embeds the next
level, the innermost slot closes with the terminal type ``{}``.

Composition is a pure function of the declarations involved.
"""

import copy
import logging
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict

from .declaration import SchemaDeclaration
from .errors import BaseMismatchError
from .field_types import Terminal, map_type
from .gts_id import GtsId, parse_gts_id
from .registry import DeclarationRegistry, lineage

logger = logging.getLogger(__name__)

DRAFT_07 = "http://json-schema.org/draft-07/schema#"

Registry = Union[DeclarationRegistry, Mapping[str, SchemaDeclaration]]
ChainCache = MutableMapping[Tuple[str, ...], Tuple[Dict[str, Any], List[str]]]


class SchemaArtifact(BaseModel):
    """The generated schema for one declaration (or one composed chain)."""
    id: GtsId
    title: str
    description: Optional[str] = None
    properties: Dict[str, Any]
    required: List[str]
    parent_ref: Optional[GtsId] = None

    model_config = ConfigDict(frozen=True)


def _own_body(
    decl: SchemaDeclaration,
    slot_fragment: Optional[Dict[str, Any]] = None,
    slot_required: bool = True,
) -> Tuple[Dict[str, Any], List[str]]:
    """Map the declaration's listed properties.

    When ``slot_fragment`` is given, the generic slot is always present and
    rendered as that fragment instead of its own mapping.
    """
    names = list(decl.properties)
    slot = decl.generic_field
    if slot_fragment is not None:
        slot = slot or decl.nesting_field
        if slot not in names:
            names.append(slot)

    properties: Dict[str, Any] = {}
    required: List[str] = []
    for prop in names:
        if slot_fragment is not None and prop == slot:
            properties[prop] = slot_fragment
            if slot_required:
                required.append(prop)
            continue
        mapping = map_type(decl.fields[prop])
        properties[prop] = mapping.to_fragment()
        if mapping.required:
            required.append(prop)
    return properties, required


def _closed_object(properties: Dict[str, Any], required: List[str]) -> Dict[str, Any]:
    obj: Dict[str, Any] = {
        "type": "object",
        "additionalProperties": False,
        "properties": properties,
    }
    if required:
        obj["required"] = required
    return obj


def compose_one(decl: SchemaDeclaration, registry: Optional[Registry] = None) -> SchemaArtifact:
    """Build the artifact for one (already validated) declaration.

    Raises:
        UnresolvedParentError: if an ancestor is missing from ``registry``.
        UnsupportedTypeError: if a listed property has no JSON mapping.
    """
    gts_id = parse_gts_id(decl.schema_id)
    properties, required = _own_body(decl)

    if decl.is_root:
        return SchemaArtifact(
            id=gts_id,
            title=decl.name,
            description=decl.description,
            properties=properties,
            required=required,
        )

    ancestors = lineage(decl, registry if registry is not None else {})[:-1]
    parent = ancestors[-1]
    path = [a.nesting_field for a in ancestors]

    # Only the object holding this declaration's own fields is closed
    current = _closed_object(properties, required)
    for field in reversed(path[1:]):
        current = {"type": "object", "properties": {field: current}}

    logger.debug("Composed %s nested under %s", decl.name, ".".join(path))
    return SchemaArtifact(
        id=gts_id,
        title=f"{decl.name} (extends {parent.name})",
        description=decl.description,
        properties={path[0]: current},
        required=[],
        parent_ref=parse_gts_id(parent.schema_id),
    )


def _chain_body(
    decls: Sequence[SchemaDeclaration],
    index: int,
    cache: Optional[ChainCache],
) -> Tuple[Dict[str, Any], List[str]]:
    key = tuple(d.name for d in decls[index:])
    if cache is not None and key in cache:
        properties, required = cache[key]
        return copy.deepcopy(properties), list(required)

    decl = decls[index]
    if index == len(decls) - 1:
        if decl.generic_field is not None:
            body = _own_body(decl, map_type(Terminal()).to_fragment(), slot_required=False)
        else:
            body = _own_body(decl)
    else:
        inner_properties, inner_required = _chain_body(decls, index + 1, cache)
        body = _own_body(decl, _closed_object(inner_properties, inner_required))

    if cache is not None:
        cache[key] = (copy.deepcopy(body[0]), list(body[1]))
    return body


def compose_chain(
    decls: Sequence[SchemaDeclaration],
    cache: Optional[ChainCache] = None,
) -> SchemaArtifact:
    """Compose a nesting chain, outermost first, into one artifact.

    The result carries the innermost declaration's id and title and the
    outermost declaration's properties with every slot resolved. Passing
    the same ``cache`` across calls reuses already composed sub-chains;
    the output is identical either way.
    """
    if not decls:
        raise ValueError("compose_chain needs at least one declaration")
    for outer, inner in zip(decls, decls[1:]):
        if inner.parent_name != outer.name:
            raise BaseMismatchError(
                inner.name, outer.schema_id, inner.schema_id or "",
                f"chain link broken: '{inner.name}' does not inherit from '{outer.name}'"
            )

    properties, required = _chain_body(decls, 0, cache)
    innermost = decls[-1]
    return SchemaArtifact(
        id=parse_gts_id(innermost.schema_id),
        title=innermost.name,
        description=innermost.description,
        properties=properties,
        required=required,
    )


def render_with_refs(artifact: SchemaArtifact, draft: str = DRAFT_07) -> Dict[str, Any]:
    """Render the artifact with the parent as a ``$ref`` inside ``allOf``."""
    doc: Dict[str, Any] = {
        "$id": artifact.id.uri,
        "$schema": draft,
        "title": artifact.title,
        "type": "object",
    }
    if artifact.description is not None:
        doc["description"] = artifact.description

    properties = copy.deepcopy(artifact.properties)
    if artifact.parent_ref is None:
        doc["properties"] = properties
        if artifact.required:
            doc["required"] = list(artifact.required)
    else:
        doc["allOf"] = [
            {"$ref": artifact.parent_ref.uri},
            {"properties": properties},
        ]
    return doc


def render_inline(artifact: SchemaArtifact, draft: str = DRAFT_07) -> Dict[str, Any]:
    """Inlined rendering of the artifact.

    Parent bodies are not substituted yet: the output is identical to
    ``render_with_refs``.
    """
    return render_with_refs(artifact, draft)
