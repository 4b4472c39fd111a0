r"""
Base parser implementation for pattern-based substitution.

Provides a generic parsing engine that replaces every match of a compiled
pattern with the text produced by a resolver. Resolution is lenient: a match
the resolver cannot handle is left in the output exactly as written.

The parser handles:
- Pattern-based substitution over the whole input string
- Resolver strategy pattern for the different reference kinds
- Literal preservation when a resolver reports failure

Example:
    parser = PatternTokenParser(FILE_REFERENCE, FileVariableResolver(variables, env))
    result = parser.parse("GET {{baseUrl}}/users")
"""

import re
from typing import Protocol, runtime_checkable, Self
from restfile.models.dataModel import ParseResult
from restfile.lib.log import LOG


@runtime_checkable
class TokenResolver(Protocol):
    """Protocol defining the resolver interface for pattern substitution.

    Resolvers must implement the resolve method to handle one reference kind
    (e.g. file variables, system functions). They should return ParseResult
    objects containing either the substitution or error details.
    """

    def resolve(self: Self, match: re.Match[str]) -> ParseResult:
        """Resolve one pattern match to its substitution.

        Args:
            match: The regex match for the reference

        Returns:
            ParseResult containing:
                - text: Substitution if successful
                - error: Error message if resolution failed
                - success: Whether resolution succeeded
        """
        ...


class PatternTokenParser:
    """Generic substitution parser using a resolver strategy.

    Attributes:
        pattern: Compiled pattern matching one reference kind
        resolver: Strategy for resolving matches
    """

    def __init__(self: Self, pattern: re.Pattern[str], resolver: TokenResolver) -> None:
        """Initialize parser with pattern and resolver.

        Args:
            pattern: Compiled pattern matching one reference kind
            resolver: Strategy for resolving matches

        Raises:
            ValueError: If pattern is None
        """
        if pattern is None:
            raise ValueError("Pattern cannot be empty")

        self.pattern: re.Pattern[str] = pattern
        self.resolver: TokenResolver = resolver

    def parse(self: Self, input_text: str | None) -> ParseResult:
        """Parse input text and process all substitutions.

        Args:
            input_text: Raw input string containing references

        Returns:
            ParseResult with processed text; `error` carries the last resolver
            failure, if any, while `success` stays True because unresolved
            references are kept literally
        """
        if not input_text:
            return ParseResult(text=input_text or "", error=None, success=True)

        failures: list[str] = []

        def substitute(match: re.Match[str]) -> str:
            try:
                result: ParseResult = self.resolver.resolve(match)
            except Exception as e:
                LOG(f"Resolver error for '{match.group(0)}': {e}")
                failures.append(str(e))
                return match.group(0)
            if not result.success:
                if result.error:
                    failures.append(result.error)
                return match.group(0)
            return result.text

        text: str = self.pattern.sub(substitute, input_text)
        return ParseResult(
            text=text, error=failures[-1] if failures else None, success=True
        )
