"""
Parsing pipeline: text -> tokens -> RequestFile -> (optional) validation.

Example:
    request_file = text_parse(Path("api.http").read_text())
    login = request_file.request_get("login")
"""

from pathlib import Path
from restfile.models.dataModel import (
    ParseOptions,
    RequestFile,
    Token,
    ValidationErrorKind,
    ValidationIssue,
    ValidationResult,
)
from restfile.lib.exceptions import (
    HttpParseError,
    InvalidRequestNameError,
    MissingRequestNameError,
)
from restfile.lib.tokenizer import text_tokenize
from restfile.lib.syntax import tokens_parse
from restfile.lib.validator import requestFile_validate
from restfile.lib.log import LOG


def validationError_raise(issue: ValidationIssue) -> None:
    """
    Escalate a validation error to an HttpParseError in strict mode.

    :param issue: The first validation error.
    :raises HttpParseError: Always; the subclass follows the error kind.
    """
    message: str = f"Validation failed: {issue.message}"
    if issue.kind == ValidationErrorKind.MISSING_REQUEST_NAME:
        raise MissingRequestNameError(issue.line)
    if issue.kind == ValidationErrorKind.INVALID_REQUEST_NAME:
        raise InvalidRequestNameError(issue.context or "", issue.line, message)
    raise HttpParseError(message, issue.line, content=issue.context)


def text_check(
    text: str, options: ParseOptions | None = None, validate: bool = True
) -> tuple[RequestFile, ValidationResult]:
    """
    Parse request definition text and validate the result once.

    :param text: Full file contents.
    :param options: Parse options; defaults to ParseOptions.default().
    :param validate: Run post-parse validation; an empty result is returned otherwise.
    :return: The parsed RequestFile and its validation result.
    :raises HttpParseError: On duplicate request names, on the first
        validation error in strict mode, or wrapping any unexpected failure.
    """
    if text is None:
        raise TypeError("text cannot be None")
    options = options or ParseOptions.default()

    try:
        tokens: list[Token] = text_tokenize(text)
        request_file: RequestFile = tokens_parse(tokens, options)

        result: ValidationResult = ValidationResult()
        if validate:
            result = requestFile_validate(request_file, options)
            if not result.is_valid:
                LOG(f"Validation failed with {len(result.errors)} error(s)")
                if options.strictMode:
                    validationError_raise(result.errors[0])
        return request_file, result
    except HttpParseError:
        raise
    except Exception as e:
        LOG(f"Unexpected error during parsing: {e}")
        raise HttpParseError("An unexpected error occurred during parsing") from e


def text_parse(text: str, options: ParseOptions | None = None) -> RequestFile:
    """
    Parse request definition text into a RequestFile.

    Validation runs only when request names are enforced or in strict mode.

    :param text: Full file contents.
    :param options: Parse options; defaults to ParseOptions.default().
    :return: The parsed RequestFile.
    :raises HttpParseError: As for `text_check`.
    """
    options = options or ParseOptions.default()
    request_file, _ = text_check(
        text, options, options.validateRequestNames or options.strictMode
    )
    return request_file


def file_parse(path: str | Path, options: ParseOptions | None = None) -> RequestFile:
    """
    Read and parse a request definition file.

    :param path: File to read as UTF-8.
    :param options: Parse options.
    :return: The parsed RequestFile with `source_path` set.
    :raises FileNotFoundError: If the file does not exist.
    """
    file_path: Path = Path(path)
    if not file_path.is_file():
        raise FileNotFoundError(f"HTTP file not found: {file_path}")

    LOG(f"Reading request file from {file_path}")
    request_file: RequestFile = text_parse(file_path.read_text(encoding="utf-8"), options)
    request_file.source_path = str(file_path)
    return request_file


def parseError_result(error: HttpParseError) -> ValidationResult:
    """Report a parse failure as a single INVALID_HTTP_SYNTAX error."""
    return ValidationResult(
        errors=[
            ValidationIssue(
                line=error.line,
                message=error.message,
                kind=ValidationErrorKind.INVALID_HTTP_SYNTAX,
                context=error.content,
            )
        ]
    )


def text_validate(text: str, options: ParseOptions | None = None) -> ValidationResult:
    """
    Parse and validate text without raising.

    A parse failure is reported as a single INVALID_HTTP_SYNTAX error.

    :param text: Full file contents.
    :param options: Parse options.
    :return: The validation result.
    """
    try:
        return text_check(text, options)[1]
    except HttpParseError as e:
        return parseError_result(e)
