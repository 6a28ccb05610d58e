"""Error code constants for gtsgen results.

These constants prevent stringly-typed error codes and ensure
client code uses the correct failure kinds.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Failure kinds reported per declaration or per run."""

    # Identifier grammar
    MALFORMED_ID = "MALFORMED_ID"

    # Declaration validation (recovered per declaration)
    MISSING_ATTRIBUTE = "MISSING_ATTRIBUTE"
    UNKNOWN_PROPERTY = "UNKNOWN_PROPERTY"
    INVALID_STRUCT_SHAPE = "INVALID_STRUCT_SHAPE"
    MULTIPLE_GENERIC_SLOTS = "MULTIPLE_GENERIC_SLOTS"
    BASE_MISMATCH = "BASE_MISMATCH"
    UNRESOLVED_PARENT = "UNRESOLVED_PARENT"
    VERSION_MISMATCH = "VERSION_MISMATCH"

    # Type mapping
    UNSUPPORTED_TYPE = "UNSUPPORTED_TYPE"

    # Emission (recovered per declaration)
    PATH_TRAVERSAL = "PATH_TRAVERSAL"
    INVALID_EXTENSION = "INVALID_EXTENSION"
    OUTPUT_CONFLICT = "OUTPUT_CONFLICT"
    IO_ERROR = "IO_ERROR"

    # Registry construction (fatal for the whole run)
    DUPLICATE_DECLARATION = "DUPLICATE_DECLARATION"
    INHERITANCE_CYCLE = "INHERITANCE_CYCLE"
