"""Tests for the GTS identifier grammar."""

import uuid

import pytest

from gtsgen.kernel.gts_id import (
    GTS_NAMESPACE,
    GtsId,
    GtsIdError,
    GtsSegment,
    compose_instance_id,
    format_gts_id,
    is_valid_gts_id,
    parse_gts_id,
    parse_instance_id,
    split_at_path,
)

VALID_IDS = [
    "gts.x.core.events.type.v1~",
    "gts.x.core.events.type.v1.0~",
    "gts.x.core.events.type.v10.25~",
    "gts.x.core.events.type.v1~x.core.audit.event.v1~",
    "gts.x.core.events.type.v1~x.core.audit.event.v1~x.core.login.event.v2.3~",
    "gts.acme_co.pkg_1.ns.my_type.v0~",
]


@pytest.mark.parametrize("text", VALID_IDS)
def test_parse_format_round_trip(text):
    assert format_gts_id(parse_gts_id(text)) == text
    assert str(GtsId.parse(text)) == text


def test_programmatic_id_round_trip():
    gid = GtsId(segments=(
        GtsSegment(vendor="x", package="core", namespace="events", type_name="type", ver_major=1),
        GtsSegment(vendor="x", package="core", namespace="audit", type_name="event",
                   ver_major=2, ver_minor=0),
    ))
    assert parse_gts_id(format_gts_id(gid)) == gid


def test_segment_fields():
    gid = parse_gts_id("gts.x.core.events.type.v1.2~")
    (seg,) = gid.segments
    assert (seg.vendor, seg.package, seg.namespace, seg.type_name) == ("x", "core", "events", "type")
    assert seg.ver_major == 1
    assert seg.ver_minor == 2


@pytest.mark.parametrize("text,token_fragment", [
    ("gts.x.core.events.type.v1", "gts.x.core.events.type.v1"),  # no trailing ~
    ("x.core.events.type.v1~", "x.core.events.type.v1"),  # missing gts. prefix
    ("gts.x.core.events.v1~", "gts.x.core.events.v1"),  # too few components
    ("gts.X.core.events.type.v1~", "gts.X.core.events.type.v1"),  # uppercase
    ("gts.x.core-lib.events.type.v1~", "gts.x.core-lib.events.type.v1"),
    ("gts.x.core.events.type.1~", "gts.x.core.events.type.1"),  # no v
    ("gts.x.core.events.type.v01~", "gts.x.core.events.type.v01"),  # leading zero
    ("gts.x.core.events.type.v1.a~", "gts.x.core.events.type.v1.a"),
    ("gts.x.core.events.type.v1~~", ""),  # empty segment
    ("gts.x..events.type.v1~", "gts.x..events.type.v1"),
])
def test_malformed_ids_name_the_token(text, token_fragment):
    with pytest.raises(GtsIdError) as exc_info:
        parse_gts_id(text)
    assert exc_info.value.token == token_fragment
    assert exc_info.value.reason
    assert exc_info.value.code.value == "MALFORMED_ID"


def test_empty_id_rejected():
    with pytest.raises(GtsIdError):
        parse_gts_id("")
    assert not is_valid_gts_id("")


@pytest.mark.parametrize("text", [
    "gts.x.test.entities.user.v1\n~",
    "gts.x.test.entities.user\n.v1~",
    "gts.x.test.entities.user.v1.0\n~",
    "gts.x.test.entities.user.v1~x.test.entities.admin.v1\n~",
])
def test_newlines_rejected(text):
    assert not is_valid_gts_id(text)
    with pytest.raises(GtsIdError):
        parse_gts_id(text)


def test_segment_component_rejects_trailing_newline():
    with pytest.raises(ValueError):
        GtsSegment(vendor="x", package="test", namespace="entities", type_name="user\n", ver_major=1)


def test_chained_id_relations():
    gid = parse_gts_id("gts.x.core.events.type.v1~x.core.audit.event.v1~x.core.login.event.v1~")
    assert gid.is_chained
    assert str(gid.parent()) == "gts.x.core.events.type.v1~x.core.audit.event.v1~"
    assert str(gid.base_type()) == "gts.x.core.events.type.v1~"
    assert gid.has_prefix(gid.parent())
    assert not gid.parent().has_prefix(gid)


def test_single_segment_has_no_parent():
    gid = parse_gts_id("gts.x.core.events.type.v1~")
    assert not gid.is_chained
    assert gid.parent() is None


def test_uri_form():
    assert parse_gts_id("gts.x.core.events.type.v1~").uri == "gts://gts.x.core.events.type.v1~"


def test_uuid_is_deterministic():
    gid = parse_gts_id("gts.x.core.events.type.v1~")
    assert gid.to_uuid() == uuid.uuid5(GTS_NAMESPACE, "gts.x.core.events.type.v1~")
    assert gid.to_uuid() == parse_gts_id("gts.x.core.events.type.v1~").to_uuid()
    assert gid.to_uuid() != parse_gts_id("gts.x.core.events.type.v2~").to_uuid()


class TestInstanceIds:
    def test_compose_and_parse(self):
        instance = compose_instance_id("gts.x.myapp.entities.user.v1~", "123.v1")
        assert str(instance) == "gts.x.myapp.entities.user.v1~123.v1"

        parsed = parse_instance_id("gts.x.myapp.entities.user.v1~123.v1")
        assert str(parsed.schema_id) == "gts.x.myapp.entities.user.v1~"
        assert parsed.instance_segment == "123.v1"

    def test_parse_chained_schema_prefix(self):
        parsed = parse_instance_id(
            "gts.x.core.events.type.v1~x.core.audit.event.v1~7a1d2f34-0001"
        )
        assert len(parsed.schema_id.segments) == 2
        assert parsed.instance_segment == "7a1d2f34-0001"

    @pytest.mark.parametrize("segment", ["", "a~b", "a/b"])
    def test_compose_rejects_bad_segment(self, segment):
        with pytest.raises(GtsIdError):
            compose_instance_id("gts.x.myapp.entities.user.v1~", segment)

    def test_parse_rejects_missing_segment(self):
        with pytest.raises(GtsIdError):
            parse_instance_id("gts.x.myapp.entities.user.v1~")

    def test_parse_rejects_text_without_schema_prefix(self):
        with pytest.raises(GtsIdError):
            parse_instance_id("not-an-id")


class TestSplitAtPath:
    def test_without_path(self):
        assert split_at_path("gts.x.core.events.type.v1~") == ("gts.x.core.events.type.v1~", None)

    def test_with_path(self):
        id_text, path = split_at_path("gts.x.core.events.type.v1~@payload.user_id")
        assert id_text == "gts.x.core.events.type.v1~"
        assert path == "payload.user_id"

    def test_empty_path_rejected(self):
        with pytest.raises(GtsIdError):
            split_at_path("gts.x.core.events.type.v1~@")
