"""Public API for the gtsgen package.

High-level functions that return complete, structured results. The CLI is
a thin layer over these.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

from gtsgen._internal.batch import run_batch
from gtsgen._internal.extract import scan_source_tree
from gtsgen.config import GenerateConfig
from gtsgen.contracts import (
    GenerateResult,
    IdParseResult,
    IdValidationResult,
    InstanceIdResult,
    SegmentInfo,
)
from gtsgen.kernel.declaration import SchemaDeclaration
from gtsgen.kernel.errors import RegistryError
from gtsgen.kernel.gts_id import GtsIdError, parse_gts_id
from gtsgen.kernel import gts_id as _gts_id

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike, Path]


def _normalize_path(path: PathLike) -> Path:
    """Normalize path input to Path object."""
    return Path(path) if not isinstance(path, Path) else path


def _fatal(error: RegistryError, **counts: int) -> GenerateResult:
    logger.error("%s", error)
    return GenerateResult(ok=False, fatal_error=str(error), fatal_code=error.code.value, **counts)


def compile_declarations(
    declarations: Sequence[SchemaDeclaration],
    source_root: PathLike,
    output: Optional[PathLike] = None,
    config: Optional[GenerateConfig] = None,
) -> GenerateResult:
    """Validate, compose and write already extracted declarations.

    Registry errors are reported as a fatal result (nothing written);
    per-declaration failures are listed in ``results``.
    """
    source_root = _normalize_path(source_root)
    output = _normalize_path(output) if output is not None else None
    try:
        return run_batch(declarations, source_root, output, config)
    except RegistryError as e:
        return _fatal(e)


def generate(
    source: PathLike,
    output: Optional[PathLike] = None,
    exclude: Sequence[str] = (),
    config: Optional[GenerateConfig] = None,
) -> GenerateResult:
    """Scan a source tree for ``@gts_schema`` classes and write their schemas.

    Args:
        source: Source directory (or a single ``.py`` file)
        output: Optional override root for every output location
        exclude: Extra exclude globs, added to ``config.exclude``
        config: Generation settings (defaults when None)

    Raises:
        FileNotFoundError: if ``source`` does not exist
    """
    config = (config or GenerateConfig()).with_excludes(list(exclude))
    source = _normalize_path(source)
    scan = scan_source_tree(source, config.exclude, config.auto_ignore_dirs)
    counts = {"files_scanned": scan.files_scanned, "files_skipped": scan.files_skipped}

    source_root = source.parent if source.is_file() else source
    result = compile_declarations(scan.declarations, source_root, output, config)
    return result.model_copy(update=counts)


def validate_id(text: str) -> IdValidationResult:
    try:
        parse_gts_id(text)
    except GtsIdError as e:
        return IdValidationResult(id=text, valid=False, error=str(e))
    return IdValidationResult(id=text, valid=True)


def parse_id(text: str) -> IdParseResult:
    """Parse a type id into its segments."""
    try:
        gid = parse_gts_id(text)
    except GtsIdError as e:
        return IdParseResult(id=text, ok=False, error=str(e))
    segments = [
        SegmentInfo(
            vendor=s.vendor,
            package=s.package,
            namespace=s.namespace,
            type=s.type_name,
            ver_major=s.ver_major,
            ver_minor=s.ver_minor,
        )
        for s in gid.segments
    ]
    return IdParseResult(id=str(gid), ok=True, segments=segments, uri=gid.uri)


def compose_instance_id(schema_id: str, segment: str) -> InstanceIdResult:
    """Build an instance id from a schema id and an instance segment."""
    try:
        instance = _gts_id.compose_instance_id(schema_id, segment)
    except GtsIdError as e:
        return InstanceIdResult(id=f"{schema_id}{segment}", ok=False, error=str(e))
    return InstanceIdResult(
        id=str(instance),
        ok=True,
        schema_id=str(instance.schema_id),
        instance_segment=instance.instance_segment,
    )


def parse_instance_id(text: str) -> InstanceIdResult:
    try:
        instance = _gts_id.parse_instance_id(text)
    except GtsIdError as e:
        return InstanceIdResult(id=text, ok=False, error=str(e))
    return InstanceIdResult(
        id=str(instance),
        ok=True,
        schema_id=str(instance.schema_id),
        instance_segment=instance.instance_segment,
    )


def id_to_uuid(text: str) -> str:
    """Deterministic UUIDv5 of a type id.

    Raises:
        GtsIdError: if ``text`` is not a valid type id
    """
    return str(parse_gts_id(text).to_uuid())


def declaration_json_schema() -> Dict[str, Any]:
    """JSON Schema of the declaration manifest entries accepted by ``compile``."""
    return SchemaDeclaration.model_json_schema()
