"""
Reference resolvers for the substitution passes.

Implements specific resolution strategies for different reference kinds:
- File variables: environment override, then file variables, with recursion
  handling for values that reference other file variables
- Environment: caller-supplied environment, then the process environment
- System functions: delegated to the function library
- Response fields: lookups into previously captured responses
"""

import json
import os
import re
from collections.abc import Mapping
from typing import Any, Final, Self, Set
from jsonpath_ng.ext import parse as jsonpath_parse
from restfile.models.dataModel import ParseResult, ResponseRecord
from restfile.lib.parser.base import PatternTokenParser
from restfile.lib.parser.functions import function_apply
from restfile.lib.log import LOG

RESPONSE_FIELDS: Final[tuple[str, ...]] = (
    "path",
    "body",
    "header",
    "status",
    "contentType",
    "responseTime",
)


def _failure(msg: str) -> ParseResult:
    return ParseResult(text="", error=msg, success=False)


def _success(text: str) -> ParseResult:
    return ParseResult(text=text, error=None, success=True)


class FileVariableResolver:
    """Resolver for `{{name}}` references."""

    def __init__(
        self: Self,
        file_variables: Mapping[str, str],
        environment: Mapping[str, str] | None = None,
        max_depth: int | None = None,
    ) -> None:
        """Initialize resolver with the two variable maps and a recursion limit.

        The default limit is one more than the number of file variables,
        enough for any acyclic chain.
        """
        self.file_variables: Mapping[str, str] = file_variables
        self.environment: Mapping[str, str] = environment or {}
        self.max_depth: int = max_depth or len(file_variables) + 1
        self.current_depth: int = 0
        self.seen_vars: Set[str] = set()

    def resolve(self: Self, match: re.Match[str]) -> ParseResult:
        """Resolve a variable, preferring the environment over file variables.

        Args:
            match: Match whose first group is the variable name

        Returns:
            ParseResult containing resolved value or error details
        """
        name: str = match.group(1).strip()

        if name in self.environment:
            return _success(self.environment[name])
        if name not in self.file_variables:
            return _failure(f"Variable not found: {name}")

        if self.current_depth >= self.max_depth or name in self.seen_vars:
            msg: str = f"Max depth exceeded or circular reference: {name}"
            LOG(msg)
            return _failure(msg)

        try:
            self.seen_vars.add(name)
            self.current_depth += 1

            value: str = self.file_variables[name]
            # Nested references resolve against the same maps
            if "{{" in value:
                value = PatternTokenParser(match.re, self).parse(value).text
            return _success(value)
        finally:
            self.current_depth -= 1
            self.seen_vars.remove(name)


class EnvironmentResolver:
    """Resolver for `${name}` references."""

    def __init__(self: Self, environment: Mapping[str, str] | None = None) -> None:
        self.environment: Mapping[str, str] = environment or {}

    def resolve(self: Self, match: re.Match[str]) -> ParseResult:
        name: str = match.group(1).strip()
        if name in self.environment:
            return _success(self.environment[name])
        value: str | None = os.environ.get(name)
        if value is None:
            return _failure(f"Environment variable not found: {name}")
        return _success(value)


class SystemFunctionResolver:
    """Resolver for `{{$function args}}` references."""

    def resolve(self: Self, match: re.Match[str]) -> ParseResult:
        return function_apply(match.group(1), match.group(2))


def jsonValue_render(value: Any) -> str:
    """
    Render a JSONPath match as text.

    :param value: The matched value.
    :return: Strings verbatim, anything else as compact JSON.
    """
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"))


class ResponseFieldResolver:
    """Resolver for one `{{name.response.<field>}}` form.

    Attributes:
        responses: Captured responses keyed by request name
        field: Which response field this resolver reads, one of RESPONSE_FIELDS
    """

    def __init__(self: Self, responses: Mapping[str, ResponseRecord], field: str) -> None:
        if field not in RESPONSE_FIELDS:
            raise ValueError(f"Unknown response field: {field}")
        self.responses: Mapping[str, ResponseRecord] = responses
        self.field: str = field

    def resolve(self: Self, match: re.Match[str]) -> ParseResult:
        """Resolve a response reference.

        Args:
            match: Match whose first group is the request name and whose
                optional second group is the JSONPath or header name

        Returns:
            ParseResult containing the field value or error details
        """
        name: str = match.group(1)
        record: ResponseRecord | None = self.responses.get(name)
        if record is None:
            return _failure(f"No response captured for request: {name}")

        if self.field == "path":
            return self._bodyPath_query(record, match.group(2))
        if self.field == "body":
            if record.body is None:
                return _failure(f"Response of {name} has no body")
            return _success(record.body)
        if self.field == "header":
            value: str | None = record.header_get(match.group(2))
            if value is None:
                return _failure(f"Header not found in response of {name}: {match.group(2)}")
            return _success(value)
        if self.field == "status":
            return _success(str(record.status_code))
        if self.field == "contentType":
            if record.content_type is None:
                return _failure(f"Response of {name} has no content type")
            return _success(record.content_type)
        return _success(f"{record.response_time_ms:.2f}")

    def _bodyPath_query(self: Self, record: ResponseRecord, path: str) -> ParseResult:
        tree: Any = record.parsed_body
        if tree is None and record.body:
            try:
                tree = json.loads(record.body)
            except ValueError:
                tree = None
        if tree is None:
            return _failure(f"Response body of {record.name} is not JSON")

        expression: str = f"$.{path}"
        try:
            matches: list = jsonpath_parse(expression).find(tree)
        except Exception as e:
            msg: str = f"Invalid JSONPath '{expression}': {e}"
            LOG(msg)
            return _failure(msg)

        if not matches:
            return _failure(f"JSONPath '{expression}' matched nothing")
        return _success(jsonValue_render(matches[0].value))
