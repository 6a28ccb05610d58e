"""Tests for the @gts_schema class decorator."""

from typing import ClassVar, Generic, Optional, TypeVar
from uuid import UUID

import pytest
from pydantic import BaseModel

from gtsgen._internal.emitter import InvalidExtensionError
from gtsgen.decorator import declaration_of, gts_schema, gts_schema_for
from gtsgen.kernel.errors import (
    BaseMismatchError,
    InvalidStructShapeError,
    MissingAttributeError,
    UnknownPropertyError,
    UnresolvedParentError,
    VersionMismatchError,
)

P = TypeVar("P")
D = TypeVar("D")


@gts_schema(
    schema_id="gts.x.core.events.type.v1~",
    description="Base event",
    properties="id,tenant_id,payload",
    base=True,
    dir_path="schemas",
)
class BaseEventV1(BaseModel, Generic[P]):
    id: UUID
    tenant_id: str
    payload: P


@gts_schema(
    schema_id="gts.x.core.events.type.v1~x.core.audit.event.v1~",
    description="Audit payload",
    properties="user_id,action,data",
    base=BaseEventV1,
    file_path="schemas/audit.json",
)
class AuditPayloadV1(BaseModel, Generic[D]):
    user_id: UUID
    action: str
    data: D


@gts_schema(
    schema_id="gts.x.core.events.type.v1~x.core.audit.event.v1~x.core.login.event.v1~",
    description="Login data",
    properties=["ip", "success"],
    base=AuditPayloadV1,
    file_path="schemas/login.json",
)
class LoginDataV1:
    KIND: ClassVar[str] = "login"
    ip: str
    success: bool
    agent: Optional[str]


def test_constants_attached():
    assert BaseEventV1.GTS_SCHEMA_ID == "gts.x.core.events.type.v1~"
    assert BaseEventV1.GTS_SCHEMA_FILE_PATH == "schemas/gts.x.core.events.type.v1~.schema.json"
    assert BaseEventV1.GTS_SCHEMA_DESCRIPTION == "Base event"
    assert BaseEventV1.GTS_SCHEMA_PROPERTIES == "id,tenant_id,payload"
    assert LoginDataV1.GTS_SCHEMA_PROPERTIES == "ip,success"


def test_declaration_from_annotations():
    decl = declaration_of(LoginDataV1)
    assert decl.parent_name == "AuditPayloadV1"
    assert list(decl.fields) == ["ip", "success", "agent"]
    assert declaration_of(BaseEventV1).generic_field == "payload"


def test_instance_id():
    assert BaseEventV1.gts_instance_id("a1b2") == "gts.x.core.events.type.v1~a1b2"


def test_schema_with_refs():
    doc = AuditPayloadV1.gts_schema_with_refs()
    assert doc["$id"] == "gts://gts.x.core.events.type.v1~x.core.audit.event.v1~"
    assert doc["allOf"][0] == {"$ref": "gts://gts.x.core.events.type.v1~"}
    assert AuditPayloadV1.gts_schema() == doc


def test_schema_inline():
    doc = AuditPayloadV1.gts_schema_inline()
    assert doc == AuditPayloadV1.gts_schema_with_refs()
    assert doc["$id"] == "gts://" + AuditPayloadV1.GTS_SCHEMA_ID
    assert LoginDataV1.gts_schema_inline()["title"] == "LoginDataV1 (extends AuditPayloadV1)"


def test_root_schema():
    doc = BaseEventV1.gts_schema()
    assert doc["required"] == ["id", "tenant_id", "payload"]
    assert doc["properties"]["payload"] == {"type": "object", "additionalProperties": False}


def test_schema_for_chain():
    doc = gts_schema_for(BaseEventV1, AuditPayloadV1, LoginDataV1)
    assert doc["$id"] == "gts://" + LoginDataV1.GTS_SCHEMA_ID
    data = doc["properties"]["payload"]["properties"]["data"]
    assert data["required"] == ["ip", "success"]
    assert data["additionalProperties"] is False


def test_undecorated_class_rejected():
    class Plain:
        x: int

    with pytest.raises(TypeError):
        declaration_of(Plain)


class TestDefinitionTimeErrors:
    def test_missing_description(self):
        with pytest.raises(MissingAttributeError):
            @gts_schema(schema_id="gts.x.a.b.c.v1~", properties="a", base=True, file_path="c.json")
            class C:
                a: int

    def test_unknown_property(self):
        with pytest.raises(UnknownPropertyError):
            @gts_schema(schema_id="gts.x.a.b.c.v1~", description="d", properties="a,b",
                        base=True, file_path="c.json")
            class C:
                a: int

    def test_fieldless_class(self):
        with pytest.raises(InvalidStructShapeError):
            @gts_schema(schema_id="gts.x.a.b.c.v1~", description="d", properties="a",
                        base=True, file_path="c.json")
            class C:
                pass

    def test_root_with_chained_id(self):
        with pytest.raises(BaseMismatchError):
            @gts_schema(schema_id="gts.x.a.b.c.v1~x.a.b.d.v1~", description="d", properties="a",
                        base=True, file_path="c.json")
            class C:
                a: int

    def test_version_mismatch(self):
        with pytest.raises(VersionMismatchError):
            @gts_schema(schema_id="gts.x.a.b.c.v1~", description="d", properties="a",
                        base=True, file_path="c.json")
            class CV2:
                a: int

    def test_parent_must_be_declared(self):
        class Plain:
            a: int

        with pytest.raises(UnresolvedParentError):
            @gts_schema(schema_id="gts.x.a.b.c.v1~x.a.b.d.v1~", description="d", properties="a",
                        base=Plain, file_path="c.json")
            class C:
                a: int

    def test_extension_checked(self):
        with pytest.raises(InvalidExtensionError):
            @gts_schema(schema_id="gts.x.a.b.c.v1~", description="d", properties="a",
                        base=True, file_path="c.yaml")
            class C:
                a: int
