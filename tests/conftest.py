"""Pytest configuration and shared declaration fixtures.

No sys.path hacks - tests should import from the installed gtsgen package.
"""

import pytest

from gtsgen.kernel.declaration import SchemaDeclaration

EVENT_ID = "gts.x.core.events.type.v1~"
AUDIT_ID = "gts.x.core.events.type.v1~x.core.audit.event.v1~"
LOGIN_ID = "gts.x.core.events.type.v1~x.core.audit.event.v1~x.core.login.event.v1~"


def make_decl(**overrides) -> SchemaDeclaration:
    """A valid root declaration, with any attribute overridden."""
    data = {
        "name": "User",
        "base": True,
        "schema_id": "gts.x.test.entities.user.v1~",
        "description": "A user",
        "properties": "id,email,name,age",
        "fields": {
            "id": "UUID",
            "email": "str",
            "name": "str",
            "age": "int",
            "internal_data": "Optional[str]",
        },
        "output_location": "schemas/user.json",
    }
    data.update(overrides)
    return SchemaDeclaration(**data)


@pytest.fixture
def user_decl():
    return make_decl()


@pytest.fixture
def event_decl():
    return SchemaDeclaration(
        name="BaseEventV1",
        generic_param="P",
        base=True,
        schema_id=EVENT_ID,
        description="Base event",
        properties="id,tenant_id,payload",
        fields={"id": "UUID", "tenant_id": "str", "payload": "P"},
        output_location="schemas/event.json",
    )


@pytest.fixture
def audit_decl():
    return SchemaDeclaration(
        name="AuditPayloadV1",
        generic_param="D",
        base="BaseEventV1",
        schema_id=AUDIT_ID,
        description="Audit payload",
        properties="user_id,action,data",
        fields={"user_id": "UUID", "action": "str", "data": "D"},
        output_location="schemas/audit.json",
    )


@pytest.fixture
def login_decl():
    return SchemaDeclaration(
        name="LoginDataV1",
        base="AuditPayloadV1",
        schema_id=LOGIN_ID,
        description="Login data",
        properties="ip,success",
        fields={"ip": "str", "success": "bool"},
        output_location="schemas/login.json",
    )


@pytest.fixture
def event_chain(event_decl, audit_decl, login_decl):
    return [event_decl, audit_decl, login_decl]


@pytest.fixture
def decl_factory():
    return make_decl
