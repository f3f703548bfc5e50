import json

import pytest

from orthanc_cli.commands.transform import TransformEngine
from orthanc_cli.errors import (
    ConfigurationError,
    NotFoundError,
    ServerError,
    ValidationError,
)
from orthanc_cli.models import NewResource, RawPayload, ResourceKind

from conftest import FakeResponse


def _new_resource(new_id, kind="Patient"):
    return FakeResponse(
        200,
        {"ID": new_id, "Path": f"/{kind.lower()}s/{new_id}", "PatientID": "ANON-1", "Type": kind},
    )


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "modify.json"
    path.write_text(json.dumps({"Replace": {"PatientName": "ANON"}}))
    return path


# --------------------------------------------------------------------- #
# anonymize                                                             #
# --------------------------------------------------------------------- #
def test_anonymize_patient_without_config_uses_default_profile(archive, conn):
    archive.route("POST", "patients/p1/anonymize", _new_resource("p9"))

    result = TransformEngine(conn).anonymize(ResourceKind.PATIENT, "p1")

    assert isinstance(result, NewResource)
    assert result.resource.id == "p9"
    assert result.resource.id != "p1"
    kwargs = archive.calls[0][2]
    assert kwargs["data"] == b"{}"
    assert kwargs["headers"] == {"Content-Type": "application/json"}


def test_anonymize_forwards_config_verbatim(archive, conn, config_file):
    archive.route("POST", "studies/st1/anonymize", _new_resource("st9", "Study"))

    TransformEngine(conn).anonymize(ResourceKind.STUDY, "st1", config_file)

    assert archive.calls[0][2]["data"] == config_file.read_bytes()


def test_anonymize_instance_writes_returned_file(archive, conn, tmp_path):
    body = b"\x00" * 128 + b"DICM" + b"transformed"
    archive.route("POST", "instances/i1/anonymize", FakeResponse(200, content=body))
    target = tmp_path / "anon.dcm"

    result = TransformEngine(conn).anonymize(ResourceKind.INSTANCE, "i1", output_path=target)

    assert isinstance(result, RawPayload)
    assert result.size == len(body)
    assert result.path == target
    assert target.read_bytes() == body


def test_instance_transform_requires_output_before_any_request(archive, conn):
    with pytest.raises(ValidationError):
        TransformEngine(conn).anonymize(ResourceKind.INSTANCE, "i1")
    assert archive.calls == []


def test_anonymize_unknown_resource(archive, conn):
    with pytest.raises(NotFoundError):
        TransformEngine(conn).anonymize(ResourceKind.SERIES, "ghost")


def test_rejected_config_keeps_archive_detail(archive, conn, config_file):
    archive.route(
        "POST",
        "series/se1/anonymize",
        FakeResponse(400, {"Message": "Bad request", "Details": "Unknown tag: Foo"}),
    )
    with pytest.raises(ServerError) as info:
        TransformEngine(conn).anonymize(ResourceKind.SERIES, "se1", config_file)
    assert "Unknown tag: Foo" in info.value.diagnostic.detail


def test_response_without_new_id_is_server_error(archive, conn):
    archive.route("POST", "patients/p1/anonymize", FakeResponse(200, {"Type": "Patient"}))
    with pytest.raises(ServerError):
        TransformEngine(conn).anonymize(ResourceKind.PATIENT, "p1")


def test_response_echoing_source_id_is_server_error(archive, conn):
    archive.route("POST", "patients/p1/anonymize", _new_resource("p1"))
    with pytest.raises(ServerError):
        TransformEngine(conn).anonymize(ResourceKind.PATIENT, "p1")


# --------------------------------------------------------------------- #
# modify                                                                #
# --------------------------------------------------------------------- #
def test_modify_without_config_sends_nothing(archive, conn):
    with pytest.raises(ConfigurationError):
        TransformEngine(conn).modify(ResourceKind.STUDY, "st1", None)
    assert archive.calls == []


def test_modify_with_missing_config_file_sends_nothing(archive, conn, tmp_path):
    with pytest.raises(ConfigurationError):
        TransformEngine(conn).modify(ResourceKind.STUDY, "st1", tmp_path / "nope.json")
    assert archive.calls == []


def test_modify_series(archive, conn, config_file):
    archive.route("POST", "series/se1/modify", _new_resource("se2", "Series"))

    result = TransformEngine(conn).modify(ResourceKind.SERIES, "se1", config_file)

    assert isinstance(result, NewResource)
    assert result.resource.kind is ResourceKind.SERIES
    assert result.resource.id == "se2"
    assert archive.paths() == ["series/se1/modify"]


def test_modify_instance_to_file(archive, conn, config_file, tmp_path):
    archive.route("POST", "instances/i1/modify", FakeResponse(200, content=b"DICM-modified"))
    target = tmp_path / "modified.dcm"

    result = TransformEngine(conn).modify(ResourceKind.INSTANCE, "i1", config_file, target)

    assert result == RawPayload(path=target, size=len(b"DICM-modified"))
    assert target.read_bytes() == b"DICM-modified"
