"""Path-safety emitter: resolve artifact destinations and write them atomically.

A destination is ``<source file dir>/<output_location>`` (or
``<output_root>/<output_location>`` when an override root is given). The
canonical path must stay under the applicable root and end in ``.json``.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Set, Union

from gtsgen.codes import ErrorCode
from gtsgen.kernel.declaration import SchemaDeclaration

logger = logging.getLogger(__name__)

ARTIFACT_SUFFIX = ".json"


class EmitError(Exception):
    """Base exception for emission failures. Every subclass carries a code."""
    code: ErrorCode


class SecurityError(EmitError):
    """A destination that violates the path-safety rules."""

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(message)


class PathTraversalError(SecurityError):
    code = ErrorCode.PATH_TRAVERSAL

    def __init__(self, path: Path, root: Path):
        self.root = root
        super().__init__(
            path, f"Security error: output path '{path}' escapes the root directory '{root}'"
        )


class InvalidExtensionError(SecurityError):
    code = ErrorCode.INVALID_EXTENSION

    def __init__(self, path: Path):
        super().__init__(
            path, f"Security error: output path '{path}' must end with '{ARTIFACT_SUFFIX}'"
        )


class OutputConflictError(EmitError):
    code = ErrorCode.OUTPUT_CONFLICT

    def __init__(self, path: Path, owner: str):
        self.path = path
        self.owner = owner
        super().__init__(f"Output path '{path}' was already written by '{owner}' in this run")


class ArtifactWriteError(EmitError):
    code = ErrorCode.IO_ERROR

    def __init__(self, path: Path, cause: OSError):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to write '{path}': {cause}")


def resolve_output_path(
    decl: SchemaDeclaration,
    source_root: Union[str, Path],
    output_root: Optional[Union[str, Path]] = None,
) -> Path:
    """Resolve and check the destination for ``decl``.

    Args:
        decl: Declaration carrying ``output_location`` (and usually ``source_file``)
        source_root: Root of the scanned source tree
        output_root: Optional override root; relative locations resolve under it

    Returns:
        Canonical destination path

    Raises:
        PathTraversalError: if the canonical path is not under the root
        InvalidExtensionError: if the file name does not end in ``.json``
    """
    location = decl.output_location or ""
    if output_root is not None:
        root = Path(output_root).resolve()
        base = root
    else:
        root = Path(source_root).resolve()
        if decl.source_file is not None:
            base = Path(decl.source_file).parent
        else:
            base = root

    # resolve() follows any symlinks that already exist along the way
    candidate = (base / location).resolve()
    if not candidate.is_relative_to(root):
        raise PathTraversalError(candidate, root)
    if not candidate.name.endswith(ARTIFACT_SUFFIX):
        raise InvalidExtensionError(candidate)
    return candidate


def serialize_artifact(document: Dict[str, Any], indent: int = 2) -> str:
    """Pretty JSON with a trailing newline, as written to disk."""
    return json.dumps(document, indent=indent, ensure_ascii=False) + "\n"


def _default_file_mode() -> int:
    """Mode a plain ``open(path, "w")`` would create under the current umask."""
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def write_atomic(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` through a temp file in the same directory.

    The written file carries the umask-derived mode of a plain write.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
        os.chmod(tmp_name, _default_file_mode())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


class ArtifactEmitter:
    """Writes artifacts for one run, each destination at most once."""

    def __init__(
        self,
        source_root: Union[str, Path],
        output_root: Optional[Union[str, Path]] = None,
        indent: int = 2,
    ):
        self.source_root = Path(source_root)
        self.output_root = Path(output_root) if output_root is not None else None
        self.indent = indent
        self._claimed: Dict[Path, str] = {}

    @property
    def written(self) -> Set[Path]:
        return set(self._claimed)

    def emit(self, decl: SchemaDeclaration, document: Dict[str, Any]) -> Path:
        """Resolve, claim and write the artifact for ``decl``.

        Raises:
            SecurityError: destination rejected by the path-safety rules
            OutputConflictError: another declaration already wrote this path
            ArtifactWriteError: the write itself failed
        """
        path = resolve_output_path(decl, self.source_root, self.output_root)
        owner = self._claimed.get(path)
        if owner is not None:
            raise OutputConflictError(path, owner)
        try:
            write_atomic(path, serialize_artifact(document, self.indent))
        except OSError as e:
            raise ArtifactWriteError(path, e) from e
        self._claimed[path] = decl.name
        logger.debug("Wrote %s for %s", path, decl.name)
        return path
