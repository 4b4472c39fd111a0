"""
dataModel.py

This module defines the data models and schemas used throughout the restfile
package. The models leverage Pydantic for validation and type safety.

Features:
- Token and token-kind definitions produced by the tokenizer.
- Request file, request, metadata, expectation and file-body descriptors
  produced by the syntax parser.
- Response records consumed by response chaining.
- Parse options, parse results and validation results.
- A case-insensitive, order-preserving header map.

Usage:
Import these models to validate and structure data used in the package.
"""

import json
from collections.abc import Iterator, Mapping, MutableMapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Final, Optional, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    field_serializer,
    field_validator,
    model_validator,
)

DEFAULT_ENCODING: Final[str] = "utf-8"


class TokenKind(Enum):
    """
    Enum for the classification of a single tokenizer output unit.
    """

    FILE_VARIABLE = "file-variable"
    REQUEST_SEPARATOR = "request-separator"
    METADATA = "metadata"
    METHOD = "method"
    URL = "url"
    HEADER_NAME = "header-name"
    HEADER_VALUE = "header-value"
    BODY = "body"
    FILE_BODY = "file-body"
    FILE_BODY_WITH_VARIABLES = "file-body-with-variables"
    FILE_BODY_WITH_ENCODING = "file-body-with-encoding"
    COMMENT = "comment"
    LINE_BREAK = "line-break"
    END_OF_STREAM = "end-of-stream"


FILE_BODY_KINDS: Final[frozenset[TokenKind]] = frozenset(
    {
        TokenKind.FILE_BODY,
        TokenKind.FILE_BODY_WITH_VARIABLES,
        TokenKind.FILE_BODY_WITH_ENCODING,
    }
)


class Token(BaseModel):
    """Immutable classified unit of a request definition file.

    Attributes:
        kind: The token classification
        value: Raw text of the token
        line: 1-based line number
        column: 1-based column number
    """

    model_config = ConfigDict(frozen=True)

    kind: TokenKind
    value: str
    line: int
    column: int = 1

    def __str__(self: Self) -> str:
        return f"{self.kind.name}: {self.value} ({self.line}:{self.column})"


class ExpectationKind(Enum):
    """
    Enum for the kinds of post-execution assertions a request may declare.
    """

    STATUS_CODE = "status"
    HEADER = "header"
    BODY_CONTAINS = "body-contains"
    BODY_PATH = "body-path"
    SCHEMA = "schema"
    MAX_TIME = "max-time"


class Expectation(BaseModel):
    """A single assertion declared through metadata.

    Attributes:
        kind: What the assertion checks
        value: Expected value, verbatim from the directive
        context: Optional free-form context
    """

    kind: ExpectationKind
    value: str
    context: str | None = None


class HeaderDict(MutableMapping[str, str]):
    """Case-insensitive, insertion-ordered header map.

    Keys compare case-insensitively. Assigning an existing header under a
    different casing keeps its position, replaces the value and adopts the
    new casing.
    """

    def __init__(self: Self, data: Mapping[str, str] | None = None, **kwargs: str) -> None:
        self._store: dict[str, tuple[str, str]] = {}
        if data:
            self.update(data)
        if kwargs:
            self.update(kwargs)

    def __setitem__(self: Self, key: str, value: str) -> None:
        self._store[key.lower()] = (key, value)

    def __getitem__(self: Self, key: str) -> str:
        if not isinstance(key, str):
            raise KeyError(key)
        return self._store[key.lower()][1]

    def __delitem__(self: Self, key: str) -> None:
        if not isinstance(key, str):
            raise KeyError(key)
        del self._store[key.lower()]

    def __iter__(self: Self) -> Iterator[str]:
        return (original for original, _ in self._store.values())

    def __len__(self: Self) -> int:
        return len(self._store)

    def __eq__(self: Self, other: object) -> bool:
        if isinstance(other, Mapping):
            other_lower = {str(k).lower(): v for k, v in other.items()}
            return {k: v for k, (_, v) in self._store.items()} == other_lower
        return NotImplemented

    def copy(self: Self) -> "HeaderDict":
        return HeaderDict(self)

    def __repr__(self: Self) -> str:
        return f"HeaderDict({dict(self.items())!r})"


class FileBodyReference(BaseModel):
    """Descriptor for a request body stored in an external file.

    Loading the file is left to the caller; this only records what the
    source asked for.

    Attributes:
        file_path: Path as written in the source, trimmed
        process_variables: Whether variables inside the file are resolved
        encoding: Python codec name used to read the file
        line: Line of the reference in the source
    """

    model_config = ConfigDict(frozen=True)

    file_path: str
    process_variables: bool = False
    encoding: str = DEFAULT_ENCODING
    line: int = 0

    @field_validator("file_path")
    @classmethod
    def path_check(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("File path cannot be empty or whitespace")
        return value.strip()

    @classmethod
    def raw(cls, file_path: str, line: int = 0) -> "FileBodyReference":
        """`< path`: file contents are sent untouched."""
        return cls(file_path=file_path, process_variables=False, line=line)

    @classmethod
    def with_variables(cls, file_path: str, line: int = 0) -> "FileBodyReference":
        """`<@ path`: UTF-8 file with variable processing."""
        return cls(file_path=file_path, process_variables=True, line=line)

    @classmethod
    def with_encoding(
        cls, file_path: str, encoding: str, line: int = 0
    ) -> "FileBodyReference":
        """`<@encoding path`: named encoding with variable processing."""
        return cls(
            file_path=file_path, process_variables=True, encoding=encoding, line=line
        )

    def __str__(self: Self) -> str:
        if not self.process_variables:
            prefix = "<"
        elif self.encoding == DEFAULT_ENCODING:
            prefix = "<@"
        else:
            prefix = f"<@{self.encoding}"
        return f"{prefix} {self.file_path}"


class RequestMetadata(BaseModel):
    """Metadata collected from `#@key value` directives.

    Attributes:
        name: Request name from `@name`
        note: Free text from `@note`
        no_redirect: `@no-redirect` flag
        no_cookie_jar: `@no-cookie-jar` flag
        custom: Any unrecognised directive, keyed by lower-cased name
        expectations: Ordered assertions from the `@expect*` family
    """

    name: str | None = None
    note: str | None = None
    no_redirect: bool = False
    no_cookie_jar: bool = False
    custom: dict[str, str] = Field(default_factory=dict)
    expectations: list[Expectation] = Field(default_factory=list)

    def expectations_get(self: Self, kind: ExpectationKind) -> list[Expectation]:
        return [e for e in self.expectations if e.kind == kind]

    def has_expectations(self: Self) -> bool:
        return len(self.expectations) > 0


class HttpRequest(BaseModel):
    """A single named request parsed from a request definition file.

    A request carries either inline `body` text or a `file_body` reference,
    never both.

    Attributes:
        name: Request name
        method: Upper-cased HTTP method
        url: Request target, possibly templated
        headers: Case-insensitive header map
        body: Inline body text, or None
        file_body: External body descriptor, or None
        metadata: Directives attached to the request
        line: Line the request starts on
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=True)

    name: str = ""
    method: str = "GET"
    url: str = ""
    headers: HeaderDict = Field(default_factory=HeaderDict)
    body: Optional[str] = None
    file_body: Optional[FileBodyReference] = None
    metadata: RequestMetadata = Field(default_factory=RequestMetadata)
    line: int = 0

    @field_validator("headers", mode="before")
    @classmethod
    def headers_coerce(cls, value: Any) -> HeaderDict:
        if isinstance(value, HeaderDict):
            return value
        return HeaderDict(value or {})

    @model_validator(mode="after")
    def body_exclusive(self: Self) -> Self:
        if self.body is not None and self.file_body is not None:
            raise ValueError("A request cannot have both an inline body and a file body")
        return self

    @field_serializer("headers")
    def headers_serialize(self: Self, headers: HeaderDict) -> dict[str, str]:
        return dict(headers.items())

    def header_get(self: Self, name: str) -> str | None:
        return self.headers.get(name)

    def header_set(self: Self, name: str, value: str) -> None:
        self.headers[name] = value

    def header_has(self: Self, name: str) -> bool:
        return name in self.headers

    def header_remove(self: Self, name: str) -> bool:
        if name in self.headers:
            del self.headers[name]
            return True
        return False

    def __str__(self: Self) -> str:
        return f"{self.name}: {self.method} {self.url}"


class RequestFile(BaseModel):
    """The parsed contents of one request definition file.

    `requests` keeps every request in source order, duplicates included.
    Name lookups return the first request declared under that name.

    Attributes:
        requests: Requests in declaration order
        variables: File variables in declaration order
        source_path: Where the text came from, if it was read from disk
    """

    requests: list[HttpRequest] = Field(default_factory=list)
    variables: dict[str, str] = Field(default_factory=dict)
    source_path: str | None = None

    _by_name: dict[str, HttpRequest] = PrivateAttr(default_factory=dict)

    def model_post_init(self: Self, __context: Any) -> None:
        for request in self.requests:
            if request.name and request.name not in self._by_name:
                self._by_name[request.name] = request

    def request_find(self: Self, name: str) -> HttpRequest | None:
        if not name:
            return None
        return self._by_name.get(name)

    def request_get(self: Self, name: str) -> HttpRequest:
        request = self.request_find(name)
        if request is None:
            raise KeyError(f"Request with name '{name}' not found")
        return request

    def names(self: Self) -> list[str]:
        return list(self._by_name)

    def contains(self: Self, name: str) -> bool:
        return name in self._by_name

    def __len__(self: Self) -> int:
        return len(self.requests)


class ResponseRecord(BaseModel):
    """A previously captured response, consumed by response chaining.

    Populated by whatever dispatched the request; the resolution layer only
    reads it.

    Attributes:
        name: Name of the request that produced the response
        status_code: Numeric HTTP status
        headers: Response headers
        body: Raw body text
        parsed_body: JSON tree of the body, when it parsed
        content_type: Media type of the body
        response_time_ms: Elapsed time in milliseconds
        timestamp: When the response was captured
    """

    name: str = ""
    status_code: int = 200
    headers: dict[str, str] = Field(default_factory=dict)
    body: str | None = None
    parsed_body: Any = None
    content_type: str | None = None
    response_time_ms: float = 0.0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_body(
        cls,
        name: str,
        status_code: int,
        body: str | None,
        headers: Mapping[str, str] | None = None,
        content_type: str | None = None,
        response_time_ms: float = 0.0,
    ) -> "ResponseRecord":
        """Build a record, parsing the body as JSON when it looks like JSON.

        The body is parsed when the content type is a JSON media type or the
        text starts with `{` or `[`. A body that fails to parse leaves
        `parsed_body` as None.
        """
        parsed: Any = None
        if body:
            stripped: str = body.lstrip()
            if json_isMediaType(content_type) or stripped.startswith(("{", "[")):
                try:
                    parsed = json.loads(body)
                except ValueError:
                    parsed = None
        return cls(
            name=name,
            status_code=status_code,
            headers=dict(headers or {}),
            body=body,
            parsed_body=parsed,
            content_type=content_type,
            response_time_ms=response_time_ms,
        )

    def header_get(self: Self, header: str) -> str | None:
        if not header:
            return None
        for key, value in self.headers.items():
            if key.lower() == header.lower():
                return value
        return None


def json_isMediaType(media_type: str | None) -> bool:
    """
    Check whether a media type denotes JSON content.

    :param media_type: The media type, possibly with parameters.
    :return: True for application/json, text/json and +json types.
    """
    if not media_type:
        return False
    lowered: str = media_type.lower().split(";")[0].strip()
    return (
        "application/json" in lowered
        or "text/json" in lowered
        or lowered.endswith("+json")
    )


class ParseOptions(BaseModel):
    """Options controlling eager enforcement during parsing.

    Attributes:
        validateRequestNames: Fail on duplicate names while parsing and run
            post-parse validation
        strictMode: Raise the first post-parse validation error
        requireRequestNames: Report requests without a name
        parseExpectations: Turn `@expect*` directives into expectations
        maxRequestNameLength: Longest accepted request name
    """

    validateRequestNames: bool = True
    strictMode: bool = False
    requireRequestNames: bool = True
    parseExpectations: bool = True
    maxRequestNameLength: int = 50

    @classmethod
    def default(cls) -> "ParseOptions":
        return cls()

    @classmethod
    def strict(cls) -> "ParseOptions":
        return cls(strictMode=True, requireRequestNames=True)

    @classmethod
    def lenient(cls) -> "ParseOptions":
        return cls(validateRequestNames=False, requireRequestNames=False, strictMode=False)

    @classmethod
    def from_settings(cls) -> "ParseOptions":
        """Build options from the application settings."""
        from restfile.config.settings import appsettings

        return cls(
            validateRequestNames=appsettings.validateRequestNames,
            strictMode=appsettings.strictMode,
            maxRequestNameLength=appsettings.maxRequestNameLength,
        )


class ParseResult(BaseModel):
    """Result of a single lenient resolution step.

    Attributes:
        text: The resolved text
        error: Optional error message if the step failed
        success: Whether the step succeeded
    """

    text: str
    error: str | None
    success: bool


class ValidationErrorKind(Enum):
    """
    Enum for the categories of validation errors.
    """

    INVALID_REQUEST_NAME = 1
    DUPLICATE_REQUEST_NAME = 2
    INVALID_HTTP_SYNTAX = 3
    INVALID_VARIABLE = 4
    MISSING_REQUEST_NAME = 5
    INVALID_EXPECTATION = 6


class ValidationIssue(BaseModel):
    """A single validation error or warning.

    Attributes:
        line: Line the issue refers to (0 for file-level issues)
        message: Human readable description
        kind: Error category; None for warnings
        context: Optional offending fragment
    """

    line: int
    message: str
    kind: ValidationErrorKind | None = None
    context: str | None = None

    def __str__(self: Self) -> str:
        suffix: str = "" if self.kind else " (Warning)"
        return f"Line {self.line}: {self.message}{suffix}"


class ValidationResult(BaseModel):
    """Outcome of a validation pass.

    Attributes:
        errors: Issues that make the file unusable
        warnings: Issues worth surfacing but not fatal
    """

    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self: Self) -> bool:
        return not self.errors

    @property
    def has_errors(self: Self) -> bool:
        return bool(self.errors)

    @property
    def has_warnings(self: Self) -> bool:
        return bool(self.warnings)
