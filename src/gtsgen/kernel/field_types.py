"""Field type descriptors and the FieldType -> JSON Schema type mapper.

FieldType is a closed tagged variant (discriminator ``kind``):

- primitive(name): a named scalar such as ``str``, ``int``, ``UUID``
- optional(inner): value may be absent; never required
- collection(item): array of ``item``
- map(key, value): object keyed by ``key``
- generic: the declaration's generic slot, filled by a nested declaration
- terminal: the empty type closing a nesting chain

Descriptors can be written as annotation text (``"Optional[list[int]]"``)
and are parsed with ``parse_type_expr``; runtime typing objects go through
``field_type_from_annotation``.
"""

import ast
import collections.abc
import datetime
import decimal
import typing
import uuid
from dataclasses import dataclass
from typing import Annotated, Any, Dict, Iterable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from gtsgen.codes import ErrorCode
from .gts_id import GtsId, InstanceId


class UnsupportedTypeError(ValueError):
    """Raised when a field type has no JSON Schema mapping."""
    code = ErrorCode.UNSUPPORTED_TYPE

    def __init__(self, type_name: str):
        self.type_name = type_name
        super().__init__(f"Unsupported field type: '{type_name}'")


class PrimitiveType(BaseModel):
    kind: Literal["primitive"] = "primitive"
    name: str

    model_config = ConfigDict(frozen=True, extra="forbid")


class OptionalType(BaseModel):
    kind: Literal["optional"] = "optional"
    inner: "FieldType"

    model_config = ConfigDict(frozen=True, extra="forbid")


class CollectionType(BaseModel):
    kind: Literal["collection"] = "collection"
    item: "FieldType"

    model_config = ConfigDict(frozen=True, extra="forbid")


class MapType(BaseModel):
    kind: Literal["map"] = "map"
    key: "FieldType"
    value: "FieldType"

    model_config = ConfigDict(frozen=True, extra="forbid")


class GenericSlot(BaseModel):
    kind: Literal["generic"] = "generic"

    model_config = ConfigDict(frozen=True, extra="forbid")


class Terminal(BaseModel):
    kind: Literal["terminal"] = "terminal"

    model_config = ConfigDict(frozen=True, extra="forbid")


FieldType = Annotated[
    Union[PrimitiveType, OptionalType, CollectionType, MapType, GenericSlot, Terminal],
    Field(discriminator="kind"),
]

for _model in (OptionalType, CollectionType, MapType):
    _model.model_rebuild()


GTS_INSTANCE_ID_FORMAT = "gts-instance-id"
GTS_SCHEMA_ID_FORMAT = "gts-schema-id"

# Primitive name table: name -> (json type, format)
_PRIMITIVES: Dict[str, tuple] = {}


def _register(names: Iterable[str], json_type: str, fmt: Optional[str] = None) -> None:
    for name in names:
        _PRIMITIVES[name] = (json_type, fmt)


_register(("str", "string", "text", "String"), "string")
_register(
    ("int", "integer",
     "int8", "int16", "int32", "int64", "uint8", "uint16", "uint32", "uint64",
     "i8", "i16", "i32", "i64", "i128", "isize",
     "u8", "u16", "u32", "u64", "u128", "usize"),
    "integer",
)
_register(
    ("float", "double", "number", "float32", "float64", "f32", "f64", "Decimal", "decimal"),
    "number",
)
_register(("bool", "boolean"), "boolean")
_register(("UUID", "uuid", "Uuid"), "string", "uuid")
_register(("datetime", "date-time", "DateTime"), "string", "date-time")
_register(("date",), "string", "date")
_register(("GtsInstanceId",), "string", GTS_INSTANCE_ID_FORMAT)
_register(("GtsSchemaId", "GtsId"), "string", GTS_SCHEMA_ID_FORMAT)

# Runtime classes that map onto primitive names
_CLASS_NAMES = {
    str: "str",
    int: "int",
    float: "float",
    bool: "bool",
    decimal.Decimal: "Decimal",
    uuid.UUID: "UUID",
    datetime.datetime: "datetime",
    datetime.date: "date",
    GtsId: "GtsSchemaId",
    InstanceId: "GtsInstanceId",
}

_OPTIONAL_NAMES = {"Optional"}
_UNION_NAMES = {"Union"}
_COLLECTION_NAMES = {
    "list", "List", "set", "Set", "frozenset", "FrozenSet", "tuple", "Tuple",
    "Sequence", "MutableSequence", "Iterable", "Collection", "AbstractSet",
}
_MAP_NAMES = {"dict", "Dict", "Mapping", "MutableMapping", "OrderedDict", "defaultdict"}
_ANNOTATED_NAMES = {"Annotated"}

_COLLECTION_ORIGINS = (
    list, set, frozenset, tuple,
    collections.abc.Sequence, collections.abc.MutableSequence,
    collections.abc.Iterable, collections.abc.Collection, collections.abc.Set,
)
_MAP_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


@dataclass(frozen=True)
class TypeMapping:
    """Result of mapping one FieldType.

    ``json_type`` is None only for the terminal type.
    """
    json_type: Optional[str]
    format: Optional[str]
    required: bool
    items: Optional["TypeMapping"] = None
    closed: bool = False

    def to_fragment(self) -> Dict[str, Any]:
        """Render as a JSON Schema fragment."""
        if self.json_type is None:
            return {}
        fragment: Dict[str, Any] = {"type": self.json_type}
        if self.format is not None:
            fragment["format"] = self.format
        if self.items is not None:
            fragment["items"] = self.items.to_fragment()
        if self.closed:
            fragment["additionalProperties"] = False
        return fragment


def map_type(field_type) -> TypeMapping:
    """Map a FieldType to its JSON Schema type, format and required flag.

    Raises:
        UnsupportedTypeError: for primitive names outside the table.
    """
    if isinstance(field_type, PrimitiveType):
        try:
            json_type, fmt = _PRIMITIVES[field_type.name]
        except KeyError:
            raise UnsupportedTypeError(field_type.name) from None
        return TypeMapping(json_type=json_type, format=fmt, required=True)
    if isinstance(field_type, OptionalType):
        inner = map_type(field_type.inner)
        return TypeMapping(
            json_type=inner.json_type,
            format=inner.format,
            required=False,
            items=inner.items,
            closed=inner.closed,
        )
    if isinstance(field_type, CollectionType):
        return TypeMapping(
            json_type="array", format=None, required=True, items=map_type(field_type.item)
        )
    if isinstance(field_type, MapType):
        return TypeMapping(json_type="object", format=None, required=True)
    if isinstance(field_type, GenericSlot):
        return TypeMapping(json_type="object", format=None, required=True, closed=True)
    if isinstance(field_type, Terminal):
        return TypeMapping(json_type=None, format=None, required=False)
    raise UnsupportedTypeError(type(field_type).__name__)


def is_generic_slot(field_type) -> bool:
    return isinstance(field_type, GenericSlot)


# ---------------------------------------------------------------------------
# Annotation text -> FieldType
# ---------------------------------------------------------------------------

def _dotted_name(node: ast.AST) -> Optional[str]:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        base = _dotted_name(node.value)
        return f"{base}.{node.attr}" if base else None
    return None


def _is_none(node: ast.AST) -> bool:
    return isinstance(node, ast.Constant) and node.value is None


def _flatten_union(node: ast.AST) -> list:
    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        return _flatten_union(node.left) + _flatten_union(node.right)
    return [node]


def _union_from_nodes(members: list, text: str, generic_params) -> Any:
    non_none = [m for m in members if not _is_none(m)]
    if len(non_none) == 1 and len(non_none) < len(members):
        return OptionalType(inner=_from_node(non_none[0], text, generic_params))
    # Real unions have no single JSON type
    return PrimitiveType(name=text)


def _primitive_name(dotted: str) -> str:
    # "uuid.UUID" -> "UUID", "datetime.datetime" -> "datetime", "datetime.date" -> "date"
    return dotted.rsplit(".", 1)[-1]


def _from_node(node: ast.AST, text: str, generic_params) -> Any:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return parse_type_expr(node.value, generic_params)

    if isinstance(node, (ast.Name, ast.Attribute)):
        dotted = _dotted_name(node)
        if dotted is None:
            return PrimitiveType(name=ast.unparse(node))
        if dotted in generic_params:
            return GenericSlot()
        return PrimitiveType(name=_primitive_name(dotted))

    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        return _union_from_nodes(_flatten_union(node), ast.unparse(node), generic_params)

    if isinstance(node, ast.Subscript):
        dotted = _dotted_name(node.value)
        origin = _primitive_name(dotted) if dotted else None
        args = list(node.slice.elts) if isinstance(node.slice, ast.Tuple) else [node.slice]

        if origin in _OPTIONAL_NAMES and len(args) == 1:
            return OptionalType(inner=_from_node(args[0], text, generic_params))
        if origin in _UNION_NAMES:
            return _union_from_nodes(args, ast.unparse(node), generic_params)
        if origin in _ANNOTATED_NAMES:
            return _from_node(args[0], text, generic_params)
        if origin in _COLLECTION_NAMES:
            # tuple[T, ...] is homogeneous; tuple[A, B] is not
            if len(args) == 2 and isinstance(args[1], ast.Constant) and args[1].value is Ellipsis:
                args = args[:1]
            if len(args) == 1:
                return CollectionType(item=_from_node(args[0], text, generic_params))
        if origin in _MAP_NAMES and len(args) == 2:
            return MapType(
                key=_from_node(args[0], text, generic_params),
                value=_from_node(args[1], text, generic_params),
            )

    if isinstance(node, ast.Tuple) and not node.elts:
        return Terminal()

    return PrimitiveType(name=ast.unparse(node))


def parse_type_expr(text: str, generic_params: Iterable[str] = ()) -> Any:
    """Parse Python annotation text into a FieldType.

    Unknown or unparseable names become primitives carrying the raw text,
    so the failure surfaces when the type is mapped.
    """
    generic_params = frozenset(generic_params)
    stripped = text.strip()
    try:
        tree = ast.parse(stripped, mode="eval")
    except SyntaxError:
        return PrimitiveType(name=stripped)
    return _from_node(tree.body, stripped, generic_params)


def field_type_from_annotation(annotation: Any, generic_params: Iterable[str] = ()) -> Any:
    """Convert a runtime annotation object into a FieldType."""
    generic_params = frozenset(generic_params)

    if isinstance(annotation, str):
        return parse_type_expr(annotation, generic_params)
    if isinstance(annotation, typing.ForwardRef):
        return parse_type_expr(annotation.__forward_arg__, generic_params)
    if isinstance(annotation, typing.TypeVar):
        return GenericSlot()
    if annotation is None or annotation is type(None):
        return PrimitiveType(name="None")

    origin = typing.get_origin(annotation)
    args = typing.get_args(annotation)

    if origin is Annotated:
        return field_type_from_annotation(args[0], generic_params)
    if origin is Union or (origin is not None and getattr(origin, "__name__", "") == "UnionType"):
        non_none = [a for a in args if a is not type(None)]
        if len(non_none) == 1 and len(non_none) < len(args):
            return OptionalType(inner=field_type_from_annotation(non_none[0], generic_params))
        return PrimitiveType(name=repr(annotation))
    if origin is not None and isinstance(origin, type):
        if issubclass(origin, _MAP_ORIGINS) and len(args) == 2:
            return MapType(
                key=field_type_from_annotation(args[0], generic_params),
                value=field_type_from_annotation(args[1], generic_params),
            )
        if issubclass(origin, _COLLECTION_ORIGINS):
            if len(args) == 2 and args[1] is Ellipsis:
                args = args[:1]
            if len(args) == 1:
                return CollectionType(item=field_type_from_annotation(args[0], generic_params))
        return PrimitiveType(name=repr(annotation))

    if isinstance(annotation, type):
        if annotation in _CLASS_NAMES:
            return PrimitiveType(name=_CLASS_NAMES[annotation])
        return PrimitiveType(name=annotation.__name__)

    return PrimitiveType(name=repr(annotation))
