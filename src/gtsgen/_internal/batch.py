"""Batch driver: registry -> validate -> compose -> emit, per declaration.

Registry errors (duplicate names, unresolved parents, inheritance cycles)
stop the run before anything is written. Every other failure is recorded
against its declaration and the run continues with the next one. Results
come back in discovery order.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

from gtsgen.config import GenerateConfig
from gtsgen.contracts import DeclarationResult, GenerateResult
from gtsgen.kernel.composer import compose_one, render_with_refs
from gtsgen.kernel.declaration import SchemaDeclaration
from gtsgen.kernel.errors import DeclarationError
from gtsgen.kernel.field_types import UnsupportedTypeError
from gtsgen.kernel.gts_id import GtsIdError
from gtsgen.kernel.registry import DeclarationRegistry
from gtsgen.kernel.validator import validate_declaration

from .emitter import ArtifactEmitter, EmitError

logger = logging.getLogger(__name__)

# Failures recovered per declaration
RECOVERABLE_ERRORS = (DeclarationError, GtsIdError, UnsupportedTypeError, EmitError)


def _failed(decl: SchemaDeclaration, error: Exception) -> DeclarationResult:
    return DeclarationResult(
        name=decl.name,
        status="failed",
        schema_id=decl.schema_id,
        code=error.code.value,
        message=str(error),
        source_file=str(decl.source_file) if decl.source_file is not None else None,
    )


def run_batch(
    declarations: Sequence[SchemaDeclaration],
    source_root: Union[str, Path],
    output_root: Optional[Union[str, Path]] = None,
    config: Optional[GenerateConfig] = None,
) -> GenerateResult:
    """Compile and write every declaration of one batch.

    Raises:
        RegistryError: the batch itself is inconsistent; nothing was written
    """
    if config is None:
        config = GenerateConfig()

    registry = DeclarationRegistry(declarations)
    emitter = ArtifactEmitter(source_root, output_root, indent=config.indent)

    results = []
    for decl in registry:
        try:
            validate_declaration(decl, registry)
            artifact = compose_one(decl, registry)
            document = render_with_refs(artifact, config.schema_draft)
            path = emitter.emit(decl, document)
        except RECOVERABLE_ERRORS as e:
            logger.warning("Skipping %s: %s", decl.name, e)
            results.append(_failed(decl, e))
            continue

        logger.info("Generated schema: %s @ %s", artifact.id, path)
        results.append(DeclarationResult(
            name=decl.name,
            status="emitted",
            schema_id=str(artifact.id),
            path=str(path),
            source_file=str(decl.source_file) if decl.source_file is not None else None,
        ))

    generated = sum(1 for r in results if r.status == "emitted")
    return GenerateResult(
        ok=generated == len(results),
        schemas_generated=generated,
        results=results,
    )
