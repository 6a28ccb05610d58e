"""Tests for the batch driver."""

import json
import logging

import pytest

from gtsgen._internal.batch import run_batch
from gtsgen.config import GenerateConfig
from gtsgen.kernel.errors import DuplicateDeclarationError, UnresolvedParentError


def _with_source(decls, tmp_path):
    source_file = tmp_path / "events.py"
    return [d.model_copy(update={"source_file": source_file}) for d in decls]


def test_chain_is_emitted_in_discovery_order(event_chain, tmp_path):
    result = run_batch(_with_source(event_chain, tmp_path), tmp_path)
    assert result.ok
    assert result.schemas_generated == 3
    assert [r.name for r in result.results] == ["BaseEventV1", "AuditPayloadV1", "LoginDataV1"]

    audit = json.loads((tmp_path / "schemas" / "audit.json").read_text(encoding="utf-8"))
    assert audit["$id"] == "gts://gts.x.core.events.type.v1~x.core.audit.event.v1~"
    assert audit["allOf"][0] == {"$ref": "gts://gts.x.core.events.type.v1~"}


def test_failures_do_not_stop_the_run(event_decl, decl_factory, tmp_path, caplog):
    broken = decl_factory(name="Broken", description=None, output_location="schemas/broken.json")
    bad_path = decl_factory(name="Escaping", output_location="../../escape.json")
    good = decl_factory(name="Good", output_location="schemas/good.json")
    decls = _with_source([broken, bad_path, event_decl, good], tmp_path)

    with caplog.at_level(logging.WARNING, logger="gtsgen._internal.batch"):
        result = run_batch(decls, tmp_path)

    assert not result.ok
    assert result.schemas_generated == 2
    statuses = [(r.name, r.status, r.code) for r in result.results]
    assert statuses == [
        ("Broken", "failed", "MISSING_ATTRIBUTE"),
        ("Escaping", "failed", "PATH_TRAVERSAL"),
        ("BaseEventV1", "emitted", None),
        ("Good", "emitted", None),
    ]
    assert "Skipping Broken" in caplog.text
    assert (tmp_path / "schemas" / "good.json").exists()


def test_unsupported_type_fails_only_that_declaration(decl_factory, tmp_path):
    blob = decl_factory(
        name="Blob", properties="data", fields={"data": "bytes"}, output_location="blob.json"
    )
    ok = decl_factory(name="Ok", output_location="ok.json")
    result = run_batch(_with_source([blob, ok], tmp_path), tmp_path)
    assert [r.code for r in result.results] == ["UNSUPPORTED_TYPE", None]


def test_output_conflict(decl_factory, tmp_path):
    first = decl_factory(name="First", description="first", output_location="same.json")
    second = decl_factory(name="Second", description="second", output_location="same.json")
    result = run_batch(_with_source([first, second], tmp_path), tmp_path)

    assert [r.status for r in result.results] == ["emitted", "failed"]
    assert result.results[1].code == "OUTPUT_CONFLICT"
    written = json.loads((tmp_path / "same.json").read_text(encoding="utf-8"))
    assert written["title"] == "First"


def test_output_override_root(user_decl, tmp_path):
    out = tmp_path / "out"
    result = run_batch(_with_source([user_decl], tmp_path), tmp_path, output_root=out)
    assert result.ok
    assert (out / "schemas" / "user.json").exists()


def test_config_controls_rendering(user_decl, tmp_path):
    config = GenerateConfig(indent=4, schema_draft="https://json-schema.org/draft/2020-12/schema")
    run_batch(_with_source([user_decl], tmp_path), tmp_path, config=config)
    text = (tmp_path / "schemas" / "user.json").read_text(encoding="utf-8")
    assert text.startswith('{\n    "$id"')
    assert json.loads(text)["$schema"] == "https://json-schema.org/draft/2020-12/schema"


def test_registry_errors_are_fatal(user_decl, audit_decl, tmp_path):
    with pytest.raises(DuplicateDeclarationError):
        run_batch([user_decl, user_decl], tmp_path)
    with pytest.raises(UnresolvedParentError):
        run_batch(_with_source([user_decl, audit_decl], tmp_path), tmp_path)
    assert not (tmp_path / "schemas").exists()
