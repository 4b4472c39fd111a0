"""Tests for variable resolution and reference diagnostics."""

from unittest.mock import patch
import pytest
from restfile.config.settings import appsettings
from restfile.lib.parser.variables import (
    circularReferences_detect,
    references_extract,
    requestVariables_validate,
    resolveDepth_get,
    variableReferences_validate,
    variables_resolve,
)
from restfile.models.dataModel import HttpRequest

CHAIN = {"a": "{{b}}", "b": "{{c}}", "c": "end"}


def test_file_variable():
    assert variables_resolve("{{baseUrl}}/users", {"baseUrl": "https://x"}) == "https://x/users"


def test_nested_file_variables():
    variables = {"host": "example.com", "base": "https://{{host}}/api"}
    assert variables_resolve("{{base}}/v1", variables) == "https://example.com/api/v1"


def test_environment_overrides_file_variables():
    variables = {"host": "example.com", "base": "https://{{host}}/api"}
    environment = {"host": "localhost"}

    assert variables_resolve("{{host}}", variables, environment) == "localhost"
    assert variables_resolve("{{base}}", variables, environment) == "https://localhost/api"


def test_whitespace_inside_braces():
    assert variables_resolve("{{ base }}", {"base": "b"}) == "b"


def test_unknown_reference_is_kept():
    assert variables_resolve("{{missing}}/x", {"base": "b"}) == "{{missing}}/x"


def test_cycle_terminates():
    variables = {"a": "{{b}}", "b": "{{a}}"}
    assert variables_resolve("{{a}}", variables) == "{{a}}"
    assert variables_resolve("x{{self}}", {"self": "y{{self}}"}) == "xy{{self}}"


def test_resolution_is_idempotent():
    variables = {"host": "example.com", "base": "https://{{host}}", "path": "{{base}}/{{id}}"}
    once = variables_resolve("{{path}} ${NOT_SET_ANYWHERE_X}", variables)

    assert once == "https://example.com/{{id}} ${NOT_SET_ANYWHERE_X}"
    assert variables_resolve(once, variables) == once
    assert variables_resolve("https://example.com/a", variables) == "https://example.com/a"


def test_environment_references(monkeypatch):
    monkeypatch.setenv("RESTFILE_TEST_TOKEN", "from-process")
    monkeypatch.delenv("RESTFILE_TEST_MISSING", raising=False)

    assert variables_resolve("${TOKEN}", None, {"TOKEN": "t"}) == "t"
    assert variables_resolve("${RESTFILE_TEST_TOKEN}") == "from-process"
    assert variables_resolve("${RESTFILE_TEST_MISSING}") == "${RESTFILE_TEST_MISSING}"


def test_system_functions():
    assert variables_resolve("{{base}}/{{$randomInt 4 5}}", {"base": "b"}) == "b/4"


@pytest.mark.parametrize("text", ["", None])
def test_empty_text(text):
    assert variables_resolve(text, {"a": "b"}) == text


def test_resolve_depth_default():
    with patch.object(appsettings, "maxResolveDepth", 0):
        assert resolveDepth_get({}) == 1
        assert resolveDepth_get(CHAIN) == 4
        assert variables_resolve("{{a}}", CHAIN) == "end"


def test_resolve_depth_setting():
    with patch.object(appsettings, "maxResolveDepth", 1):
        assert resolveDepth_get(CHAIN) == 1
        assert variables_resolve("{{a}}", CHAIN) == "{{b}}"


def test_references_extract():
    refs = references_extract("{{a}} {{ b }} ${C} {{}} ${ } {{a}}")
    assert refs == {"a", "b", "${C}"}
    assert references_extract(None) == set()


def test_circular_references_detect():
    variables = {
        "a": "{{b}}",
        "b": "{{a}}",
        "c": "prefix {{a}}",
        "d": "plain",
        "e": "{{e}}",
        "f": "${f}",
    }
    assert circularReferences_detect(variables) == ["a", "b", "c", "e"]
    assert circularReferences_detect(CHAIN) == []
    assert circularReferences_detect(None) == []


def test_variable_references_validate(monkeypatch):
    monkeypatch.delenv("RESTFILE_TEST_HOME", raising=False)
    text = (
        "{{base}}/{{id}}/{{base}}/{{id}} ${TOKEN} {{$guid}} "
        "{{login.response.body}} ${RESTFILE_TEST_HOME}"
    )
    unresolved = variableReferences_validate(text, {"base": "b"}, {"TOKEN": "t"})

    assert unresolved == ["{{id}}", "${RESTFILE_TEST_HOME}"]
    assert variableReferences_validate(text, {"base": "b"}, {"TOKEN": "t", "id": "1"}) == [
        "${RESTFILE_TEST_HOME}"
    ]
    assert variableReferences_validate("") == []


def test_request_variables_validate():
    request = HttpRequest(
        name="r",
        url="{{base}}/u/{{id}}",
        body='{"t": "{{token}}"}',
        headers={"Authorization": "Bearer {{token}}", "Accept": "*/*", "{{hname}}": "x"},
    )
    problems = requestVariables_validate(request, {"base": "b"})

    assert problems == {
        "Url": ["{{id}}"],
        "Body": ["{{token}}"],
        "Header[Authorization]": ["{{token}}"],
        "Header[{{hname}}]": ["{{hname}}"],
    }
    assert requestVariables_validate(request, {"base": "b", "id": "1", "token": "t", "hname": "h"}) == {}
