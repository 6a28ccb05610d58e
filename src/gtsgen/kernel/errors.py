"""Exception hierarchy for declaration validation and registry construction.

Declaration errors are recovered per declaration by the batch driver.
Registry errors stop the whole run.
"""

from typing import List, Optional

from gtsgen.codes import ErrorCode


class KernelError(Exception):
    """Base exception for kernel errors. Every subclass carries a code."""
    code: ErrorCode


class DeclarationError(KernelError):
    """Base exception for a single declaration failing validation."""

    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(f"{name}: {message}")


class MissingAttributeError(DeclarationError):
    code = ErrorCode.MISSING_ATTRIBUTE

    def __init__(self, name: str, attribute: str):
        self.attribute = attribute
        super().__init__(name, f"missing required attribute: {attribute}")


class UnknownPropertyError(DeclarationError):
    code = ErrorCode.UNKNOWN_PROPERTY

    def __init__(self, name: str, prop: str, available: List[str]):
        self.prop = prop
        self.available = available
        super().__init__(
            name, f"property '{prop}' not found in fields. Available fields: {available}"
        )


class InvalidStructShapeError(DeclarationError):
    code = ErrorCode.INVALID_STRUCT_SHAPE

    def __init__(self, name: str, shape: str):
        self.shape = shape
        super().__init__(
            name, f"only structs with named fields are supported (got {shape})"
        )


class MultipleGenericSlotsError(DeclarationError):
    code = ErrorCode.MULTIPLE_GENERIC_SLOTS

    def __init__(self, name: str, fields: List[str]):
        self.fields = fields
        super().__init__(
            name, f"at most one generic field is allowed, found {len(fields)}: {fields}"
        )


class BaseMismatchError(DeclarationError):
    code = ErrorCode.BASE_MISMATCH

    def __init__(self, name: str, expected_prefix: Optional[str], actual: str, reason: str):
        self.expected_prefix = expected_prefix
        self.actual = actual
        self.reason = reason
        super().__init__(name, f"schema_id '{actual}' does not match base: {reason}")


class VersionMismatchError(DeclarationError):
    code = ErrorCode.VERSION_MISMATCH

    def __init__(self, name: str, name_version: str, id_version: str):
        self.name_version = name_version
        self.id_version = id_version
        super().__init__(
            name,
            f"version suffix '{name_version}' in the name does not match "
            f"schema_id version '{id_version}'"
        )


class RegistryError(KernelError):
    """Base exception for registry construction errors (fatal for a run)."""


class DuplicateDeclarationError(RegistryError):
    code = ErrorCode.DUPLICATE_DECLARATION

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Declaration name '{name}' is declared more than once")


class UnresolvedParentError(RegistryError, DeclarationError):
    """A parent name that cannot be resolved.

    Fatal when raised while building a registry, recovered per declaration
    when raised by the validator.
    """
    code = ErrorCode.UNRESOLVED_PARENT

    def __init__(self, name: str, parent: str, reason: Optional[str] = None):
        self.parent = parent
        DeclarationError.__init__(
            self, name, f"parent '{parent}' " + (reason or "is not declared")
        )


class InheritanceCycleError(RegistryError):
    code = ErrorCode.INHERITANCE_CYCLE

    def __init__(self, cycle: List[str]):
        self.cycle = cycle
        # Close the cycle for display
        cycle_str = " -> ".join(cycle) + f" -> {cycle[0]}"
        super().__init__(f"Inheritance cycle detected:\n  Cycle: {cycle_str}")
