"""
Semantic validation of parsed request files.

Runs after the syntax parser and never raises: problems are collected into a
ValidationResult. Errors make a file unusable (missing, malformed or
duplicate names, empty URLs, malformed expectations, self-referencing
variables); warnings flag things a human should look at (unknown methods,
odd URLs, suspicious headers).
"""

import re
from typing import Final
from restfile.models.dataModel import (
    ExpectationKind,
    HttpRequest,
    ParseOptions,
    RequestFile,
    ValidationErrorKind,
    ValidationIssue,
    ValidationResult,
)
from restfile.lib.tokenizer import HTTP_METHODS
from restfile.lib.log import LOG

REQUEST_NAME: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9_-]+$")
URL_SHAPE: Final[re.Pattern[str]] = re.compile(r"^https?://|^/|^\{\{", re.IGNORECASE)

NON_EMPTY_EXPECTATIONS: Final[dict[ExpectationKind, str]] = {
    ExpectationKind.BODY_PATH: "body-path",
    ExpectationKind.SCHEMA: "schema",
    ExpectationKind.HEADER: "header",
    ExpectationKind.BODY_CONTAINS: "body-contains",
}


def _error(
    errors: list[ValidationIssue],
    line: int,
    message: str,
    kind: ValidationErrorKind,
    context: str | None = None,
) -> None:
    errors.append(ValidationIssue(line=line, message=message, kind=kind, context=context))


def _warning(warnings: list[ValidationIssue], line: int, message: str) -> None:
    warnings.append(ValidationIssue(line=line, message=message))


def requestNames_validate(
    request_file: RequestFile, options: ParseOptions, errors: list[ValidationIssue]
) -> None:
    """
    Check each request name for presence, shape, length and uniqueness.

    Every occurrence after the first of a repeated name is reported.
    """
    seen: set[str] = set()
    for request in request_file.requests:
        name: str = request.name
        if not name or not name.strip():
            if options.requireRequestNames:
                _error(
                    errors,
                    request.line,
                    "Request is missing a required request name",
                    ValidationErrorKind.MISSING_REQUEST_NAME,
                )
            continue

        if not REQUEST_NAME.match(name):
            _error(
                errors,
                request.line,
                f"Invalid request name '{name}'. Request names must contain only "
                "alphanumeric characters, hyphens, and underscores",
                ValidationErrorKind.INVALID_REQUEST_NAME,
                name,
            )
            continue

        if len(name) > options.maxRequestNameLength:
            _error(
                errors,
                request.line,
                f"Request name '{name}' is too long. Maximum length is "
                f"{options.maxRequestNameLength} characters",
                ValidationErrorKind.INVALID_REQUEST_NAME,
                name,
            )
            continue

        if name in seen:
            _error(
                errors,
                request.line,
                f"Duplicate request name '{name}' found",
                ValidationErrorKind.DUPLICATE_REQUEST_NAME,
                name,
            )
        seen.add(name)


def method_validate(request: HttpRequest, warnings: list[ValidationIssue]) -> None:
    if not request.method or not request.method.strip():
        _warning(warnings, request.line, "HTTP method is empty, defaulting to GET")
    elif request.method.upper() not in HTTP_METHODS:
        _warning(warnings, request.line, f"Unknown HTTP method '{request.method}'")


def url_validate(
    request: HttpRequest, errors: list[ValidationIssue], warnings: list[ValidationIssue]
) -> None:
    if not request.url or not request.url.strip():
        _error(
            errors, request.line, "Request URL is required", ValidationErrorKind.INVALID_HTTP_SYNTAX
        )
        return

    if not URL_SHAPE.match(request.url):
        _warning(
            warnings,
            request.line,
            f"URL '{request.url}' may not be valid. Expected format: "
            "http://..., https://..., /path, or {{variable}}",
        )
    if " " in request.url and "{{" not in request.url:
        _warning(warnings, request.line, "URL contains spaces. Consider URL encoding")


def headers_validate(
    request: HttpRequest, errors: list[ValidationIssue], warnings: list[ValidationIssue]
) -> None:
    for name, value in request.headers.items():
        if not name or not name.strip():
            _error(
                errors,
                request.line,
                "Header name cannot be empty",
                ValidationErrorKind.INVALID_HTTP_SYNTAX,
            )
            continue
        if " " in name or "\t" in name:
            _warning(warnings, request.line, f"Header name '{name}' contains whitespace")

        lowered: str = name.lower()
        if lowered == "content-type" and not value.strip():
            _warning(warnings, request.line, "Content-Type header is empty")
        elif lowered == "authorization" and not value.strip():
            _warning(warnings, request.line, "Authorization header is empty")
        elif lowered == "content-length":
            _warning(
                warnings, request.line, "Content-Length header will be automatically calculated"
            )


def maxTime_check(value: str) -> bool:
    """
    Check a max-time expectation of the form `<positive int>ms`.

    :param value: The expectation value, e.g. "500ms".
    :return: True when well formed.
    """
    if not value.endswith("ms"):
        return False
    try:
        return int(value[:-2]) > 0
    except ValueError:
        return False


def statusCode_check(value: str) -> bool:
    try:
        return 100 <= int(value) < 600
    except ValueError:
        return False


def expectations_validate(request: HttpRequest, errors: list[ValidationIssue]) -> None:
    for expectation in request.metadata.expectations:
        value: str = expectation.value
        if expectation.kind == ExpectationKind.STATUS_CODE and not statusCode_check(value):
            _error(
                errors,
                request.line,
                f"Invalid status code expectation '{value}'. Must be a number between 100-599",
                ValidationErrorKind.INVALID_EXPECTATION,
                value,
            )
        elif expectation.kind == ExpectationKind.MAX_TIME and not maxTime_check(value):
            _error(
                errors,
                request.line,
                f"Invalid max-time expectation '{value}'. Must be a positive number "
                "followed by 'ms'",
                ValidationErrorKind.INVALID_EXPECTATION,
                value,
            )
        elif expectation.kind in NON_EMPTY_EXPECTATIONS and not value.strip():
            _error(
                errors,
                request.line,
                f"{NON_EMPTY_EXPECTATIONS[expectation.kind]} expectation cannot be empty",
                ValidationErrorKind.INVALID_EXPECTATION,
            )


def fileVariables_validate(
    request_file: RequestFile, errors: list[ValidationIssue], warnings: list[ValidationIssue]
) -> None:
    for name, value in request_file.variables.items():
        if not name or not name.strip():
            _error(errors, 0, "Variable name cannot be empty", ValidationErrorKind.INVALID_VARIABLE)
            continue
        if " " in name or "\t" in name:
            _warning(warnings, 0, f"Variable name '{name}' contains whitespace")
        if f"{{{{{name}}}}}" in value:
            _error(
                errors,
                0,
                f"Variable '{name}' has a circular reference to itself",
                ValidationErrorKind.INVALID_VARIABLE,
                name,
            )


def requestFile_validate(
    request_file: RequestFile, options: ParseOptions | None = None
) -> ValidationResult:
    """Validate a parsed request file.

    Args:
        request_file: Output of the syntax parser
        options: Parse options controlling name requirements and limits

    Returns:
        ValidationResult: Collected errors and warnings
    """
    options = options or ParseOptions.default()
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []

    requestNames_validate(request_file, options, errors)
    for request in request_file.requests:
        method_validate(request, warnings)
        url_validate(request, errors, warnings)
        headers_validate(request, errors, warnings)
        expectations_validate(request, errors)
    fileVariables_validate(request_file, errors, warnings)

    LOG(f"Validation found {len(errors)} error(s) and {len(warnings)} warning(s)")
    return ValidationResult(errors=errors, warnings=warnings)
