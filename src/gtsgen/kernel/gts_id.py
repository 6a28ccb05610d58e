"""GTS identifier grammar: schema ids, instance ids, and their canonical text.

A schema id is one or more versioned segments, each closed by ``~``:

    gts.<vendor>.<package>.<namespace>.<type>.v<major>[.<minor>]~[<next segment>~...]

Only the first segment carries the ``gts.`` prefix. An instance id is a
schema id followed directly by an opaque instance segment.

Round-trip law: ``format_gts_id(parse_gts_id(text)) == text`` for every
valid text, and ``parse_gts_id(format_gts_id(gid)) == gid`` for every
programmatically built id.
"""

import re
import uuid
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from gtsgen.codes import ErrorCode

GTS_PREFIX = "gts."
GTS_URI_PREFIX = "gts://"
SEGMENT_TERMINATOR = "~"
ATTRIBUTE_SEPARATOR = "@"

# Fixed namespace for deterministic id -> UUID mapping
GTS_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "gts")

_COMPONENT_RE = re.compile(r"[a-z0-9_]+")
_MAJOR_RE = re.compile(r"v(0|[1-9][0-9]*)")
_MINOR_RE = re.compile(r"(0|[1-9][0-9]*)")

_INSTANCE_FORBIDDEN = (SEGMENT_TERMINATOR, "/")


class GtsIdError(ValueError):
    """Raised when identifier text is malformed.

    Carries the offending token and a short reason so callers can report
    exactly which segment failed.
    """
    code = ErrorCode.MALFORMED_ID

    def __init__(self, text: str, token: str, reason: str):
        self.text = text
        self.token = token
        self.reason = reason
        super().__init__(f"Malformed GTS id '{text}': token '{token}': {reason}")


class GtsSegment(BaseModel):
    """One versioned type component of a GTS identifier."""
    vendor: str
    package: str
    namespace: str
    type_name: str
    ver_major: int
    ver_minor: Optional[int] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("vendor", "package", "namespace", "type_name")
    @classmethod
    def validate_component(cls, v: str) -> str:
        if not _COMPONENT_RE.fullmatch(v):
            raise ValueError(
                f"Component '{v}' must be non-empty lowercase alphanumerics or underscores"
            )
        return v

    @field_validator("ver_major", "ver_minor")
    @classmethod
    def validate_version(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError(f"Version numbers must be non-negative, got {v}")
        return v

    def format(self) -> str:
        """Render the segment body followed by its ``~`` terminator."""
        version = f"v{self.ver_major}"
        if self.ver_minor is not None:
            version += f".{self.ver_minor}"
        return (
            f"{self.vendor}.{self.package}.{self.namespace}.{self.type_name}."
            f"{version}{SEGMENT_TERMINATOR}"
        )


class GtsId(BaseModel):
    """A schema identifier: a non-empty ordered sequence of segments."""
    segments: Tuple[GtsSegment, ...]

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("segments")
    @classmethod
    def validate_segments(cls, v: Tuple[GtsSegment, ...]) -> Tuple[GtsSegment, ...]:
        if len(v) == 0:
            raise ValueError("A GTS id needs at least one segment")
        return v

    @classmethod
    def parse(cls, text: str) -> "GtsId":
        return parse_gts_id(text)

    def __str__(self) -> str:
        return format_gts_id(self)

    @property
    def uri(self) -> str:
        """The ``gts://`` form used for ``$id`` and ``$ref``."""
        return GTS_URI_PREFIX + str(self)

    @property
    def is_chained(self) -> bool:
        return len(self.segments) > 1

    def parent(self) -> Optional["GtsId"]:
        """Id with the last segment removed, or None for a single-segment id."""
        if not self.is_chained:
            return None
        return GtsId(segments=self.segments[:-1])

    def base_type(self) -> Optional["GtsId"]:
        """First segment of a chained id (the base type), None for a single segment."""
        if not self.is_chained:
            return None
        return GtsId(segments=self.segments[:1])

    def has_prefix(self, other: "GtsId") -> bool:
        """True when ``other``'s segments are a leading run of this id's segments."""
        n = len(other.segments)
        return n <= len(self.segments) and self.segments[:n] == other.segments

    def to_uuid(self) -> uuid.UUID:
        """Deterministic UUIDv5 for this id."""
        return uuid.uuid5(GTS_NAMESPACE, str(self))


class InstanceId(BaseModel):
    """A schema id plus an opaque instance segment."""
    schema_id: GtsId
    instance_segment: str

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("instance_segment")
    @classmethod
    def validate_instance_segment(cls, v: str) -> str:
        _check_instance_segment(v)
        return v

    def __str__(self) -> str:
        return format_instance_id(self)


def _check_instance_segment(segment: str) -> None:
    if not segment:
        raise ValueError("Instance segment must not be empty")
    for ch in _INSTANCE_FORBIDDEN:
        if ch in segment:
            raise ValueError(f"Instance segment '{segment}' must not contain '{ch}'")


def _parse_segment(text: str, token: str, first: bool) -> GtsSegment:
    body = token
    if first:
        if not body.startswith(GTS_PREFIX):
            raise GtsIdError(text, token, f"first segment must start with '{GTS_PREFIX}'")
        body = body[len(GTS_PREFIX):]

    parts = body.split(".")
    if len(parts) not in (5, 6):
        raise GtsIdError(
            text, token,
            f"expected vendor.package.namespace.type.v<major>[.<minor>], got {len(parts)} parts"
        )

    for name, part in zip(("vendor", "package", "namespace", "type"), parts[:4]):
        if not part:
            raise GtsIdError(text, token, f"empty {name} component")
        if not _COMPONENT_RE.fullmatch(part):
            raise GtsIdError(
                text, token,
                f"{name} '{part}' must be lowercase alphanumerics or underscores"
            )

    major_match = _MAJOR_RE.fullmatch(parts[4])
    if not major_match:
        raise GtsIdError(text, token, f"bad version '{parts[4]}' (expected v<major>)")
    ver_minor = None
    if len(parts) == 6:
        if not _MINOR_RE.fullmatch(parts[5]):
            raise GtsIdError(text, token, f"bad minor version '{parts[5]}'")
        ver_minor = int(parts[5])

    return GtsSegment(
        vendor=parts[0],
        package=parts[1],
        namespace=parts[2],
        type_name=parts[3],
        ver_major=int(major_match.group(1)),
        ver_minor=ver_minor,
    )


def parse_gts_id(text: str) -> GtsId:
    """Parse schema id text into a GtsId.

    Raises:
        GtsIdError: naming the offending token and the reason.
    """
    if not isinstance(text, str) or not text:
        raise GtsIdError(str(text), "", "empty id")
    if not text.endswith(SEGMENT_TERMINATOR):
        raise GtsIdError(text, text, f"schema id must end with '{SEGMENT_TERMINATOR}'")

    tokens = text.split(SEGMENT_TERMINATOR)
    # Final '~' leaves one trailing empty token
    tokens = tokens[:-1]

    segments = []
    for index, token in enumerate(tokens):
        if not token:
            raise GtsIdError(text, token, "empty segment")
        segments.append(_parse_segment(text, token, first=(index == 0)))
    return GtsId(segments=tuple(segments))


def format_gts_id(gid: GtsId) -> str:
    """Canonical text of a GtsId (exact inverse of parse_gts_id)."""
    return GTS_PREFIX + "".join(seg.format() for seg in gid.segments)


def is_valid_gts_id(text: str) -> bool:
    try:
        parse_gts_id(text)
    except GtsIdError:
        return False
    return True


def parse_instance_id(text: str) -> InstanceId:
    """Parse ``<schema id><instance segment>``.

    The schema id is the longest prefix ending in ``~`` that parses; the
    remainder is the instance segment, taken verbatim.
    """
    if not isinstance(text, str) or not text:
        raise GtsIdError(str(text), "", "empty instance id")

    positions = [i for i, ch in enumerate(text) if ch == SEGMENT_TERMINATOR]
    last_error: Optional[GtsIdError] = None
    for pos in reversed(positions):
        try:
            schema_id = parse_gts_id(text[:pos + 1])
        except GtsIdError as e:
            last_error = e
            continue
        segment = text[pos + 1:]
        try:
            _check_instance_segment(segment)
        except ValueError as e:
            raise GtsIdError(text, segment, str(e)) from None
        return InstanceId(schema_id=schema_id, instance_segment=segment)

    if last_error is not None:
        raise last_error
    raise GtsIdError(text, text, "no schema id prefix ending in '~'")


def format_instance_id(instance: InstanceId) -> str:
    return format_gts_id(instance.schema_id) + instance.instance_segment


def compose_instance_id(schema_id, segment: str) -> InstanceId:
    """Build an instance id from a schema id (text or GtsId) and a segment."""
    if isinstance(schema_id, str):
        schema_id = parse_gts_id(schema_id)
    try:
        _check_instance_segment(segment)
    except ValueError as e:
        raise GtsIdError(str(schema_id) + segment, segment, str(e)) from None
    return InstanceId(schema_id=schema_id, instance_segment=segment)


def split_at_path(text: str) -> Tuple[str, Optional[str]]:
    """Split ``<id>@<attribute.path>`` into the id text and the path.

    The id part is validated as a schema id or an instance id.
    """
    if ATTRIBUTE_SEPARATOR in text:
        id_text, path = text.split(ATTRIBUTE_SEPARATOR, 1)
        if not path:
            raise GtsIdError(text, ATTRIBUTE_SEPARATOR, "attribute path must not be empty")
    else:
        id_text, path = text, None

    if id_text.endswith(SEGMENT_TERMINATOR):
        parse_gts_id(id_text)
    else:
        parse_instance_id(id_text)
    return id_text, path
