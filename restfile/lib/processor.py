"""
Request processing: parsed requests -> fully resolved requests.

Resolution never mutates its input; every call builds new HttpRequest and
RequestFile instances. Response references are substituted first so that
values pulled from earlier responses may themselves contain ordinary
variables.
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Self
from restfile.models.dataModel import (
    HeaderDict,
    HttpRequest,
    ParseOptions,
    RequestFile,
    ResponseRecord,
    ValidationIssue,
    ValidationErrorKind,
    ValidationResult,
)
from restfile.lib.fileparser import file_parse, text_parse
from restfile.lib.validator import requestFile_validate
from restfile.lib.parser.variables import (
    circularReferences_detect,
    requestVariables_validate,
    variables_resolve,
)
from restfile.lib.parser.responses import responses_resolve
from restfile.lib.log import LOG


def text_resolve(
    text: str | None,
    file_variables: Mapping[str, str] | None = None,
    environment: Mapping[str, str] | None = None,
    responses: Mapping[str, ResponseRecord] | None = None,
) -> str | None:
    """
    Resolve response references, then variables and system functions.

    :param text: Text to resolve.
    :param file_variables: Variables declared in the request file.
    :param environment: Caller-supplied environment.
    :param responses: Captured responses keyed by request name.
    :return: The resolved text.
    """
    if responses is not None:
        text = responses_resolve(text, responses)
    return variables_resolve(text, file_variables, environment)


def request_resolve(
    request: HttpRequest,
    file_variables: Mapping[str, str] | None = None,
    environment: Mapping[str, str] | None = None,
    responses: Mapping[str, ResponseRecord] | None = None,
) -> HttpRequest:
    """Build a resolved copy of a request.

    Method, URL, body and every header name and value are resolved. Headers
    whose names resolve to the same text collapse into one, last wins.
    Metadata and the file body reference are carried over unchanged.

    Args:
        request: The parsed request
        file_variables: Variables declared in the request file
        environment: Caller-supplied environment
        responses: Captured responses keyed by request name

    Returns:
        HttpRequest: A new, resolved request
    """
    headers: HeaderDict = HeaderDict()
    for name, value in request.headers.items():
        resolved_name: str = text_resolve(name, file_variables, environment, responses) or name
        headers[resolved_name] = text_resolve(value, file_variables, environment, responses) or ""

    return HttpRequest(
        name=request.name,
        method=text_resolve(request.method, file_variables, environment, responses) or "",
        url=text_resolve(request.url, file_variables, environment, responses) or "",
        headers=headers,
        body=text_resolve(request.body, file_variables, environment, responses),
        file_body=request.file_body,
        metadata=request.metadata.model_copy(deep=True),
        line=request.line,
    )


def requestFile_resolve(
    request_file: RequestFile,
    environment: Mapping[str, str] | None = None,
    responses: Mapping[str, ResponseRecord] | None = None,
) -> RequestFile:
    """
    Resolve every request of a file against its own file variables.

    :param request_file: The parsed file.
    :param environment: Caller-supplied environment.
    :param responses: Captured responses keyed by request name.
    :return: A new RequestFile holding resolved requests.
    """
    resolved: list[HttpRequest] = [
        request_resolve(request, request_file.variables, environment, responses)
        for request in request_file.requests
    ]
    return RequestFile(
        requests=resolved,
        variables=dict(request_file.variables),
        source_path=request_file.source_path,
    )


class HttpFileProcessor:
    """Facade bundling parsing, resolution and variable diagnostics.

    Attributes:
        options: Parse options used by parse_content and parse_path
    """

    def __init__(self: Self, options: ParseOptions | None = None) -> None:
        self.options: ParseOptions = options or ParseOptions.default()

    def parse_content(self: Self, content: str) -> RequestFile:
        return text_parse(content, self.options)

    def parse_path(self: Self, path: str | Path) -> RequestFile:
        return file_parse(path, self.options)

    def process_variables(
        self: Self,
        request_file: RequestFile,
        environment: Mapping[str, str] | None = None,
        responses: Mapping[str, ResponseRecord] | None = None,
    ) -> RequestFile:
        return requestFile_resolve(request_file, environment, responses)

    def validate_variable_references(
        self: Self,
        request_file: RequestFile,
        environment: Mapping[str, str] | None = None,
    ) -> ValidationResult:
        """Report circular and unresolved variable references.

        Args:
            request_file: The parsed file
            environment: Caller-supplied environment

        Returns:
            ValidationResult: Circular references as errors at line 0,
                unresolved references as warnings at the request's line
        """
        errors: list[ValidationIssue] = [
            ValidationIssue(
                line=0,
                message=f"Circular reference detected for variable '{name}'",
                kind=ValidationErrorKind.INVALID_VARIABLE,
                context=name,
            )
            for name in circularReferences_detect(request_file.variables)
        ]

        warnings: list[ValidationIssue] = []
        for request in request_file.requests:
            problems: dict[str, list[str]] = requestVariables_validate(
                request, request_file.variables, environment
            )
            for part, unresolved in problems.items():
                warnings.append(
                    ValidationIssue(
                        line=request.line,
                        message=f"Unresolved variables in {part} of request "
                        f"'{request.name}': {', '.join(unresolved)}",
                    )
                )
        return ValidationResult(errors=errors, warnings=warnings)

    def processed_request_get(
        self: Self,
        request_file: RequestFile,
        name: str,
        environment: Mapping[str, str] | None = None,
        responses: Mapping[str, ResponseRecord] | None = None,
    ) -> HttpRequest | None:
        """Resolve a single request by name; None when it does not exist."""
        request: HttpRequest | None = request_file.request_find(name)
        if request is None:
            LOG(f"Request '{name}' not found")
            return None
        return request_resolve(request, request_file.variables, environment, responses)

    def processed_requests_get(
        self: Self,
        request_file: RequestFile,
        environment: Mapping[str, str] | None = None,
        responses: Mapping[str, ResponseRecord] | None = None,
    ) -> list[HttpRequest]:
        return requestFile_resolve(request_file, environment, responses).requests

    def validate(self: Self, request_file: RequestFile) -> ValidationResult:
        return requestFile_validate(request_file, self.options)
