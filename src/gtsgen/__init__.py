"""gtsgen: JSON Schema generation for GTS-identified types."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("gtsgen")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
# Note: the generate command lives in gtsgen.cli; gtsgen.generate is the API function
from gtsgen.api import generate, compile_declarations, validate_id, parse_id
from gtsgen.codes import ErrorCode
from gtsgen.contracts import DeclarationResult, GenerateResult
from gtsgen.decorator import gts_schema, gts_schema_for
from gtsgen.kernel.declaration import SchemaDeclaration
from gtsgen.kernel.gts_id import GtsId, GtsIdError, InstanceId

__all__ = [
    "__version__",
    "generate",
    "compile_declarations",
    "validate_id",
    "parse_id",
    "gts_schema",
    "gts_schema_for",
    "ErrorCode",
    "DeclarationResult",
    "GenerateResult",
    "SchemaDeclaration",
    "GtsId",
    "GtsIdError",
    "InstanceId",
]
