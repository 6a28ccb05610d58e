"""Declaration extraction from Python sources and JSON manifests.

Source files are parsed with ``ast`` and never imported: a class is a
declaration when it carries a ``@gts_schema(...)`` decorator. Only literal
decorator arguments are understood (strings, ``True``, a parent class name).
"""

import ast
import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from gtsgen.config import DEFAULT_AUTO_IGNORE_DIRS
from gtsgen.kernel.declaration import SchemaDeclaration
from gtsgen.kernel.field_types import parse_type_expr

logger = logging.getLogger(__name__)

DECORATOR_NAME = "gts_schema"
IGNORE_DIRECTIVE = "# gts:ignore"
SCHEMA_FILE_SUFFIX = ".schema.json"
DECORATOR_ARGS = frozenset(
    {"schema_id", "description", "properties", "base", "file_path", "dir_path"}
)

# Leading lines inspected for the ignore directive
_DIRECTIVE_SCAN_LINES = 10

_ENUM_BASES = {"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag"}
_TUPLE_BASES = {"NamedTuple"}
_CLASSVAR_NAMES = {"ClassVar", "typing.ClassVar"}


class SkipReason(str, Enum):
    EXCLUDE_PATTERN = "matched exclude pattern"
    AUTO_IGNORED_DIR = "in auto-ignored directory"
    IGNORE_DIRECTIVE = "has # gts:ignore directive"
    SYNTAX_ERROR = "could not be parsed"


@dataclass
class ScanResult:
    declarations: List[SchemaDeclaration] = field(default_factory=list)
    files_scanned: int = 0
    files_skipped: int = 0


def glob_to_regex(pattern: str) -> "re.Pattern[str]":
    """Compile an exclude glob: ``*`` stays within a component, ``**`` spans components."""
    parts = re.split(r"(\*\*|\*)", pattern)
    body = "".join(
        ".*" if part == "**" else "[^/]*" if part == "*" else re.escape(part)
        for part in parts
    )
    return re.compile(f"(^|/){body}($|/)")


def is_excluded(path: Path, patterns: Sequence[str]) -> bool:
    text = path.as_posix()
    return any(glob_to_regex(p).search(text) for p in patterns)


def in_auto_ignored_dir(path: Path, auto_ignore_dirs: Iterable[str]) -> bool:
    ignored = set(auto_ignore_dirs)
    return any(part in ignored for part in path.parts)


def has_ignore_directive(content: str) -> bool:
    """True when the leading comment block carries ``# gts:ignore`` (any case)."""
    for line in content.splitlines()[:_DIRECTIVE_SCAN_LINES]:
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.lower().startswith(IGNORE_DIRECTIVE):
            return True
        if not stripped.startswith("#"):
            break
    return False


def _dotted(node: ast.AST) -> Optional[str]:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        base = _dotted(node.value)
        return f"{base}.{node.attr}" if base else None
    return None


def _short(node: ast.AST) -> Optional[str]:
    dotted = _dotted(node)
    return dotted.rsplit(".", 1)[-1] if dotted else None


def _find_decorator(cls: ast.ClassDef) -> Optional[ast.Call]:
    for deco in cls.decorator_list:
        if isinstance(deco, ast.Call) and _short(deco.func) == DECORATOR_NAME:
            return deco
    return None


def _literal(node: ast.AST) -> Any:
    """Value of a decorator argument; a bare class name comes back as its text."""
    if isinstance(node, (ast.Name, ast.Attribute)):
        return _short(node)
    try:
        return ast.literal_eval(node)
    except ValueError:
        return None


def _generic_params(cls: ast.ClassDef) -> List[str]:
    params: List[str] = []
    for base in cls.bases:
        if isinstance(base, ast.Subscript) and _short(base.value) == "Generic":
            args = base.slice.elts if isinstance(base.slice, ast.Tuple) else [base.slice]
            params.extend(a.id for a in args if isinstance(a, ast.Name))
    return params


def _shape(cls: ast.ClassDef, has_fields: bool) -> str:
    base_names = {_short(b.value if isinstance(b, ast.Subscript) else b) for b in cls.bases}
    if base_names & _ENUM_BASES:
        return "enum"
    if base_names & _TUPLE_BASES:
        return "tuple"
    if not has_fields:
        return "unit"
    return "struct"


def _is_classvar(annotation: ast.AST) -> bool:
    target = annotation.value if isinstance(annotation, ast.Subscript) else annotation
    return _dotted(target) in _CLASSVAR_NAMES


def _class_fields(cls: ast.ClassDef, generic_params: Sequence[str]) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for stmt in cls.body:
        if not isinstance(stmt, ast.AnnAssign) or not isinstance(stmt.target, ast.Name):
            continue
        if _is_classvar(stmt.annotation):
            continue
        fields[stmt.target.id] = parse_type_expr(ast.unparse(stmt.annotation), generic_params)
    return fields


def output_location_for(
    schema_id: Optional[str], file_path: Optional[str], dir_path: Optional[str]
) -> Optional[str]:
    """``file_path`` wins; ``dir_path`` becomes ``<dir>/<schema_id>.schema.json``."""
    if file_path:
        return file_path
    if dir_path and schema_id:
        return f"{dir_path.rstrip('/')}/{schema_id}{SCHEMA_FILE_SUFFIX}"
    return None


def declaration_from_class(cls: ast.ClassDef, source_file: Optional[Path] = None) -> Optional[SchemaDeclaration]:
    """Build the declaration for one decorated class, or None if undecorated."""
    deco = _find_decorator(cls)
    if deco is None:
        return None

    attrs = {kw.arg: _literal(kw.value) for kw in deco.keywords if kw.arg is not None}
    for unknown in sorted(set(attrs) - DECORATOR_ARGS):
        logger.warning("%s: ignoring unknown gts_schema argument '%s'", cls.name, unknown)

    params = _generic_params(cls)
    fields = _class_fields(cls, params)
    properties = attrs.get("properties")
    if isinstance(properties, (list, tuple)):
        properties = list(properties)

    return SchemaDeclaration(
        name=cls.name,
        generic_param=params[0] if params else None,
        base=attrs.get("base"),
        schema_id=attrs.get("schema_id"),
        description=attrs.get("description"),
        properties=properties or [],
        fields=fields,
        shape=_shape(cls, bool(fields)),
        output_location=output_location_for(
            attrs.get("schema_id"), attrs.get("file_path"), attrs.get("dir_path")
        ),
        source_file=source_file,
    )


def extract_declarations(content: str, source_file: Optional[Path] = None) -> List[SchemaDeclaration]:
    """Declarations of one module's text, in source order.

    Raises:
        SyntaxError: if the text is not valid Python
    """
    tree = ast.parse(content, filename=str(source_file) if source_file else "<string>")
    found = []
    for node in ast.walk(tree):
        if isinstance(node, ast.ClassDef):
            decl = declaration_from_class(node, source_file)
            if decl is not None:
                found.append((node.lineno, decl))
    # ast.walk is breadth-first; report in source order
    found.sort(key=lambda pair: pair[0])
    return [decl for _, decl in found]


def _iter_python_files(source: Path) -> Iterator[Path]:
    if source.is_file():
        yield source
        return
    yield from sorted(source.rglob("*.py"))


def scan_source_tree(
    source: Union[str, Path],
    excludes: Sequence[str] = (),
    auto_ignore_dirs: Sequence[str] = tuple(DEFAULT_AUTO_IGNORE_DIRS),
) -> ScanResult:
    """Collect declarations from every eligible ``*.py`` file under ``source``.

    Raises:
        FileNotFoundError: if ``source`` does not exist
    """
    source = Path(source)
    if not source.exists():
        raise FileNotFoundError(f"Source path does not exist: {source}")

    result = ScanResult()
    for path in _iter_python_files(source):
        if is_excluded(path, excludes):
            _skip(result, path, SkipReason.EXCLUDE_PATTERN)
            continue
        if in_auto_ignored_dir(path, auto_ignore_dirs):
            _skip(result, path, SkipReason.AUTO_IGNORED_DIR)
            continue

        result.files_scanned += 1
        content = path.read_text(encoding="utf-8")
        if has_ignore_directive(content):
            _skip(result, path, SkipReason.IGNORE_DIRECTIVE)
            continue
        try:
            result.declarations.extend(extract_declarations(content, path))
        except SyntaxError:
            _skip(result, path, SkipReason.SYNTAX_ERROR)

    logger.info(
        "Scanned %d files (%d skipped), found %d declarations",
        result.files_scanned, result.files_skipped, len(result.declarations),
    )
    return result


def _skip(result: ScanResult, path: Path, reason: SkipReason) -> None:
    result.files_skipped += 1
    logger.info("Skipped: %s (%s)", path, reason.value)


def load_declarations(path: Union[str, Path]) -> Tuple[List[SchemaDeclaration], Path]:
    """Read a JSON manifest: a list of declarations, or ``{"declarations": [...]}``.

    Declarations without a ``source_file`` are attributed to the manifest,
    so relative output locations resolve next to it.

    Returns:
        (declarations, manifest path)

    Raises:
        FileNotFoundError: if the manifest does not exist
        ValueError: if the manifest is not valid JSON or a declaration is malformed
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("declarations", [])
    if not isinstance(data, list):
        raise ValueError(f"Manifest {path} must hold a list of declarations")

    declarations = []
    for item in data:
        decl = SchemaDeclaration(**item)
        if decl.source_file is None:
            decl = decl.model_copy(update={"source_file": path.resolve()})
        declarations.append(decl)
    return declarations, path
