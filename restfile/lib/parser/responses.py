"""
Response chaining: `{{name.response.*}}` references into captured responses.

Supported forms, applied in this order:
    {{name.response.body.$.<path>}}    JSONPath into the parsed JSON body
    {{name.response.body}}             raw body text
    {{name.response.header.<Header>}}  header value, case-insensitive
    {{name.response.status}}           numeric status code
    {{name.response.contentType}}      content type
    {{name.response.responseTime}}     elapsed milliseconds, two decimals

References to unknown requests, missing fields or non-matching paths are
left unchanged.
"""

import re
import threading
from collections.abc import Iterator, Mapping
from typing import Final, Self
from restfile.models.dataModel import ResponseRecord
from restfile.lib.parser.base import PatternTokenParser
from restfile.lib.parser.resolvers import ResponseFieldResolver
from restfile.lib.log import LOG

_NAME: Final[str] = r"\{\{([a-zA-Z0-9_-]+)\.response\."

RESPONSE_PATTERNS: Final[tuple[tuple[str, re.Pattern[str]], ...]] = (
    ("path", re.compile(_NAME + r"body\.\$\.([^}]+)\}\}", re.IGNORECASE)),
    ("body", re.compile(_NAME + r"body\}\}", re.IGNORECASE)),
    ("header", re.compile(_NAME + r"header\.([^}]+)\}\}", re.IGNORECASE)),
    ("status", re.compile(_NAME + r"status\}\}", re.IGNORECASE)),
    ("contentType", re.compile(_NAME + r"contentType\}\}", re.IGNORECASE)),
    ("responseTime", re.compile(_NAME + r"responseTime\}\}", re.IGNORECASE)),
)


class ResponseCache(Mapping[str, ResponseRecord]):
    """Captured responses keyed by request name.

    Reads are lock-free; writers are serialised so that parallel executions
    may record responses into one cache.
    """

    def __init__(self: Self, responses: Mapping[str, ResponseRecord] | None = None) -> None:
        self._responses: dict[str, ResponseRecord] = dict(responses or {})
        self._lock: threading.Lock = threading.Lock()

    def __getitem__(self: Self, name: str) -> ResponseRecord:
        return self._responses[name]

    def __iter__(self: Self) -> Iterator[str]:
        return iter(list(self._responses))

    def __len__(self: Self) -> int:
        return len(self._responses)

    def store(self: Self, name: str, record: ResponseRecord) -> None:
        """Record the response of the named request, replacing any previous one."""
        if not name:
            raise ValueError("Request name cannot be empty")
        with self._lock:
            self._responses[name] = record
        LOG(f"Stored response for '{name}' ({record.status_code})")

    def has(self: Self, name: str) -> bool:
        return name in self._responses

    def remove(self: Self, name: str) -> bool:
        with self._lock:
            return self._responses.pop(name, None) is not None

    def clear(self: Self) -> None:
        with self._lock:
            self._responses.clear()

    def names(self: Self) -> list[str]:
        return list(self._responses)

    def clone(self: Self) -> "ResponseCache":
        with self._lock:
            return ResponseCache(self._responses)


def responses_resolve(
    text: str | None, responses: Mapping[str, ResponseRecord] | None
) -> str | None:
    """
    Substitute every response reference in text.

    :param text: Text to process.
    :param responses: Captured responses keyed by request name.
    :return: The text with resolvable references replaced.
    """
    if not text or responses is None:
        return text

    result: str = text
    for field, pattern in RESPONSE_PATTERNS:
        result = PatternTokenParser(pattern, ResponseFieldResolver(responses, field)).parse(
            result
        ).text
    return result


def responseVariables_contains(text: str | None) -> bool:
    """
    Check whether text contains any response reference.
    """
    if not text:
        return False
    return any(pattern.search(text) for _, pattern in RESPONSE_PATTERNS)


def referencedRequests_extract(text: str | None) -> list[str]:
    """
    Names of the requests whose responses text refers to.

    Lets a scheduler run those requests first.

    :param text: Text to scan.
    :return: De-duplicated request names in order of discovery.
    """
    if not text:
        return []
    names: dict[str, None] = {}
    for _, pattern in RESPONSE_PATTERNS:
        for match in pattern.finditer(text):
            names.setdefault(match.group(1), None)
    return list(names)
