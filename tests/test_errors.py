import pytest
import requests

from orthanc_cli.errors import (
    AuthError,
    Diagnostic,
    LocalIOError,
    NetworkError,
    NotFoundError,
    ServerError,
    ValidationError,
    from_os_error,
    from_response,
    from_transport_error,
)

from conftest import FakeResponse


def test_diagnostic_message_skips_empty_parts():
    assert Diagnostic("Not found").message() == "Not found"
    assert Diagnostic("Not found", "Patient x not found").message() == (
        "Not found: Patient x not found"
    )
    assert Diagnostic("Server error", None, "boom").message() == "Server error: boom"


def test_error_carries_diagnostic_with_class_title():
    err = ValidationError("Invalid port 'abc'", "not a number")
    assert err.diagnostic == Diagnostic("Validation error", "Invalid port 'abc'", "not a number")
    assert str(err) == "Validation error: Invalid port 'abc': not a number"


@pytest.mark.parametrize("status", [401, 403])
def test_auth_statuses_map_to_auth_error(status):
    err = from_response(FakeResponse(status, content=b"denied"))
    assert isinstance(err, AuthError)
    assert err.diagnostic.detail == "denied"


def test_not_found_uses_entity_label():
    err = from_response(FakeResponse(404, {"Message": "Unknown resource"}), "Study abc")
    assert isinstance(err, NotFoundError)
    assert err.diagnostic.reason == "Study abc not found"


def test_not_found_without_label_uses_archive_message():
    err = from_response(FakeResponse(404, {"Message": "Unknown resource"}))
    assert err.diagnostic.reason == "Unknown resource"


def test_other_status_keeps_archive_text_as_detail():
    body = {"Message": "Bad file format", "Details": "Cannot parse JSON body"}
    err = from_response(FakeResponse(400, body))
    assert isinstance(err, ServerError)
    assert err.diagnostic.reason == "Bad file format"
    assert "Cannot parse JSON body" in err.diagnostic.detail


def test_non_json_error_body_falls_back_to_status():
    err = from_response(FakeResponse(502, content=b"<html>gateway</html>"))
    assert err.diagnostic.reason == "Unexpected HTTP status 502"
    assert err.diagnostic.detail == "<html>gateway</html>"


@pytest.mark.parametrize(
    "exc, fragment",
    [
        (requests.exceptions.ConnectTimeout("slow"), "timed out"),
        (requests.exceptions.SSLError("bad cert"), "TLS handshake"),
        (requests.exceptions.ConnectionError("refused"), "Could not connect"),
        (requests.exceptions.InvalidURL("bad url"), "failed"),
    ],
)
def test_transport_errors_map_to_network_error(exc, fragment):
    err = from_transport_error(exc, "http://orthanc.test:8042/patients")
    assert isinstance(err, NetworkError)
    assert fragment in err.diagnostic.reason
    assert err.diagnostic.detail == str(exc)


def test_os_error_maps_to_local_io_error(tmp_path):
    err = from_os_error(PermissionError("denied"), tmp_path / "out.zip")
    assert isinstance(err, LocalIOError)
    assert err.diagnostic.title == "IO error"
    assert "out.zip" in err.diagnostic.reason
