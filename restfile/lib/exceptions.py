"""
Fatal parse errors for request definition files.

Only identity-affecting problems are raised: duplicate request names found
while parsing, and (in strict mode) the first post-parse validation error.
Everything else is handled leniently by the tokenizer, the syntax parser and
the resolution engine.
"""

from typing import Self


class HttpParseError(Exception):
    """Base error for request definition parsing.

    Attributes:
        line: 1-based line number of the offending construct (0 if unknown)
        column: 1-based column number (0 if unknown)
        content: Optional fragment of the parsed content
    """

    def __init__(
        self: Self,
        message: str,
        line: int = 0,
        column: int = 0,
        content: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message: str = message
        self.line: int = line
        self.column: int = column
        self.content: str | None = content

    def __str__(self: Self) -> str:
        location: str = f" at line {self.line}" if self.line > 0 else ""
        if self.column > 0:
            location += f", column {self.column}"
        return f"{self.message}{location}"


class DuplicateRequestNameError(HttpParseError):
    """A request name was introduced twice in the same file."""

    def __init__(self: Self, name: str, first_line: int, line: int) -> None:
        super().__init__(
            f"Duplicate request name '{name}' found at line {line} "
            f"(first defined at line {first_line})",
            line,
        )
        self.name: str = name
        self.first_line: int = first_line

    def __str__(self: Self) -> str:
        return self.message


class MissingRequestNameError(HttpParseError):
    """A request has no name where one is required."""

    def __init__(self: Self, line: int) -> None:
        super().__init__("Request is missing a required request name", line)


class InvalidRequestNameError(HttpParseError):
    """A request name does not match the allowed character set or length."""

    def __init__(self: Self, name: str, line: int, reason: str | None = None) -> None:
        super().__init__(
            reason
            or f"Invalid request name '{name}'. Request names must contain only "
            "alphanumeric characters, hyphens, and underscores",
            line,
        )
        self.name: str = name
