"""Tests for the data models."""

from unittest.mock import patch
import pytest
from pydantic import ValidationError
from restfile.config.settings import appsettings
from restfile.models.dataModel import (
    Expectation,
    ExpectationKind,
    FileBodyReference,
    HeaderDict,
    HttpRequest,
    ParseOptions,
    RequestFile,
    RequestMetadata,
    ResponseRecord,
    Token,
    TokenKind,
    ValidationErrorKind,
    ValidationIssue,
    ValidationResult,
    json_isMediaType,
)


def test_header_dict_is_case_insensitive():
    headers = HeaderDict({"Content-Type": "text/plain", "Accept": "*/*"})
    headers["CONTENT-TYPE"] = "application/json"

    assert list(headers) == ["CONTENT-TYPE", "Accept"]
    assert headers["content-type"] == "application/json"
    assert "accept" in headers
    assert headers == {"content-type": "application/json", "ACCEPT": "*/*"}
    del headers["ACCEPT"]
    assert len(headers) == 1


def test_header_dict_copy_is_independent():
    headers = HeaderDict(Accept="*/*")
    copy = headers.copy()
    copy["Accept"] = "text/html"

    assert headers["Accept"] == "*/*"
    assert 42 not in headers


def test_token_is_frozen():
    token = Token(kind=TokenKind.URL, value="/a", line=2, column=5)

    assert str(token) == "URL: /a (2:5)"
    with pytest.raises(ValidationError):
        token.value = "/b"


def test_file_body_reference():
    assert str(FileBodyReference.raw(" ./a.json ")) == "< ./a.json"
    assert str(FileBodyReference.with_variables("./t.json")) == "<@ ./t.json"
    assert str(FileBodyReference.with_encoding("./d.txt", "latin-1")) == "<@latin-1 ./d.txt"
    assert FileBodyReference.raw(" ./a.json ").file_path == "./a.json"

    with pytest.raises(ValidationError):
        FileBodyReference.raw("   ")


def test_request_body_exclusive():
    with pytest.raises(ValidationError):
        HttpRequest(name="x", body="inline", file_body=FileBodyReference.raw("./b"))


def test_request_headers():
    request = HttpRequest(name="x", url="/x", headers={"Accept": "*/*"})

    assert isinstance(request.headers, HeaderDict)
    assert request.header_get("ACCEPT") == "*/*"
    request.header_set("X-Id", "1")
    assert request.header_has("x-id")
    assert request.header_remove("X-ID")
    assert not request.header_remove("X-ID")
    assert request.model_dump()["headers"] == {"Accept": "*/*"}
    assert str(request) == "x: GET /x"


def test_request_file_lookups():
    first = HttpRequest(name="a", url="/1")
    request_file = RequestFile(
        requests=[first, HttpRequest(name="b", url="/2"), HttpRequest(name="a", url="/3")]
    )

    assert len(request_file) == 3
    assert request_file.names() == ["a", "b"]
    assert request_file.request_get("a") is first
    assert request_file.contains("b")
    assert request_file.request_find("") is None
    with pytest.raises(KeyError):
        request_file.request_get("missing")


def test_metadata_expectations():
    metadata = RequestMetadata(
        expectations=[
            Expectation(kind=ExpectationKind.STATUS_CODE, value="200"),
            Expectation(kind=ExpectationKind.HEADER, value="X: 1"),
            Expectation(kind=ExpectationKind.STATUS_CODE, value="201"),
        ]
    )

    assert metadata.has_expectations()
    assert [e.value for e in metadata.expectations_get(ExpectationKind.STATUS_CODE)] == [
        "200",
        "201",
    ]
    assert not RequestMetadata().has_expectations()


@pytest.mark.parametrize(
    "body,content_type,parsed",
    [
        ('{"a": 1}', None, {"a": 1}),
        ("  [1, 2]", "text/plain", [1, 2]),
        ("42", "application/json; charset=utf-8", 42),
        ("42", "text/plain", None),
        ("{broken", "application/json", None),
        (None, "application/json", None),
    ],
)
def test_response_record_from_body(body, content_type, parsed):
    record = ResponseRecord.from_body("r", 200, body, content_type=content_type)
    assert record.parsed_body == parsed


def test_response_record_header_get():
    record = ResponseRecord(headers={"X-Request-Id": "r1"})

    assert record.header_get("x-request-id") == "r1"
    assert record.header_get("missing") is None
    assert record.header_get("") is None


@pytest.mark.parametrize(
    "media_type,expected",
    [
        ("application/json", True),
        ("Application/JSON; charset=utf-8", True),
        ("text/json", True),
        ("application/problem+json", True),
        ("text/html", False),
        (None, False),
    ],
)
def test_json_media_type(media_type, expected):
    assert json_isMediaType(media_type) is expected


def test_parse_option_presets():
    strict = ParseOptions.strict()
    lenient = ParseOptions.lenient()

    assert ParseOptions.default() == ParseOptions()
    assert strict.strictMode and strict.requireRequestNames
    assert not lenient.validateRequestNames
    assert not lenient.requireRequestNames
    assert not lenient.strictMode


def test_parse_options_from_settings():
    with (
        patch.object(appsettings, "strictMode", True),
        patch.object(appsettings, "maxRequestNameLength", 10),
    ):
        options = ParseOptions.from_settings()

    assert options.strictMode
    assert options.maxRequestNameLength == 10


def test_validation_result():
    error = ValidationIssue(line=3, message="bad", kind=ValidationErrorKind.INVALID_VARIABLE)
    warning = ValidationIssue(line=0, message="odd")
    result = ValidationResult(errors=[error], warnings=[warning])

    assert str(error) == "Line 3: bad"
    assert str(warning) == "Line 0: odd (Warning)"
    assert not result.is_valid
    assert result.has_errors
    assert result.has_warnings
    assert ValidationResult().is_valid
