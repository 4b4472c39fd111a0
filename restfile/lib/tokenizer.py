"""
Line-oriented tokenizer for request definition files.

Splits text into logical lines and classifies each one by shape. The format
has no explicit header/body delimiter, so the tokenizer tracks a single
`in_body` flag and infers the boundary from line shapes, including a
peek past blank lines at the next non-blank line.

Classification order for a non-blank line:
1. `@name = value`                      -> FILE_VARIABLE
2. `###...`                             -> REQUEST_SEPARATOR   (leaves body)
3. `#@key value` / `//@key value`       -> METADATA            (leaves body)
4. other `#` / `//` line                -> COMMENT
5. `<VERB> <url>[ HTTP/x]`              -> METHOD + URL        (leaves body)
6. in body: `< path`, `<@ path`, `<@enc path` -> FILE_BODY*, else BODY
7. outside body: `Name: Value`          -> HEADER_NAME + HEADER_VALUE
                 URL-shaped line        -> URL
                 anything else          -> BODY (enters body)

Tokenizing never fails; unknown shapes degrade to body text. The stream always
ends with END_OF_STREAM.

Example:
    tokens = text_tokenize("# @name ping\\nGET https://example.com\\n")
"""

import re
from typing import Final, Iterator, Self
from restfile.models.dataModel import Token, TokenKind
from restfile.lib.log import LOG

HTTP_METHODS: Final[tuple[str, ...]] = (
    "GET",
    "POST",
    "PUT",
    "DELETE",
    "PATCH",
    "HEAD",
    "OPTIONS",
    "CONNECT",
    "TRACE",
    "LOCK",
    "UNLOCK",
    "PROPFIND",
    "PROPPATCH",
    "COPY",
    "MOVE",
    "MKCOL",
    "MKCALENDAR",
    "ACL",
    "SEARCH",
)

LINE_SPLIT: Final[re.Pattern[str]] = re.compile(r"\r\n|\r|\n")
FILE_VARIABLE: Final[re.Pattern[str]] = re.compile(r"^@([^\s=]+)\s*=\s*(.*?)\s*$")
METADATA: Final[re.Pattern[str]] = re.compile(r"^(?:#|//)\s*@([\w-]+)(?:\s+(.*?))?\s*$")
COMMENT: Final[re.Pattern[str]] = re.compile(r"^(?:#|//)(.*)$")
METHOD: Final[re.Pattern[str]] = re.compile(
    r"^(" + "|".join(HTTP_METHODS) + r")\s+", re.IGNORECASE
)
FILE_BODY: Final[re.Pattern[str]] = re.compile(r"^<(@([A-Za-z0-9_-]+)?)?\s+(\S.*)$")
HTTP_VERSION: Final[re.Pattern[str]] = re.compile(r"\s+HTTP/\S*$", re.IGNORECASE)

BODY_STARTS: Final[tuple[str, ...]] = ("{", "[", "<@", "<")


class Tokenizer:
    """Shape-based tokenizer for request definition text.

    A Tokenizer instance holds no state between calls; `tokenize` may be
    called repeatedly and from several threads.
    """

    def tokenize(self: Self, text: str | None) -> list[Token]:
        """Tokenize a complete request definition text.

        Args:
            text: The full file contents

        Returns:
            list[Token]: Classified tokens, terminated by END_OF_STREAM
        """
        if not text:
            return [Token(kind=TokenKind.END_OF_STREAM, value="", line=1)]

        lines: list[str] = LINE_SPLIT.split(text)
        tokens: list[Token] = list(self._lines_classify(lines))
        tokens.append(Token(kind=TokenKind.END_OF_STREAM, value="", line=len(lines) + 1))
        LOG(f"Tokenized {len(lines)} lines into {len(tokens)} tokens")
        return tokens

    def _lines_classify(self: Self, lines: list[str]) -> Iterator[Token]:
        in_body: bool = False

        for index, line in enumerate(lines):
            number: int = index + 1

            if not line.strip():
                yield Token(kind=TokenKind.LINE_BREAK, value=line, line=number)
                if not in_body and index > 0:
                    in_body = self._body_ahead(lines, index + 1)
                continue

            trimmed: str = line.strip()

            if FILE_VARIABLE.match(trimmed):
                yield Token(kind=TokenKind.FILE_VARIABLE, value=trimmed, line=number)
                continue

            if trimmed.startswith("###"):
                in_body = False
                yield Token(kind=TokenKind.REQUEST_SEPARATOR, value=trimmed, line=number)
                continue

            if METADATA.match(trimmed):
                in_body = False
                yield Token(kind=TokenKind.METADATA, value=trimmed, line=number)
                continue

            if COMMENT.match(trimmed):
                yield Token(kind=TokenKind.COMMENT, value=trimmed, line=number)
                continue

            method_match: re.Match[str] | None = METHOD.match(trimmed)
            if method_match:
                in_body = False
                yield from self._requestLine_split(trimmed, method_match, number)
                continue

            if in_body:
                yield self._bodyLine_classify(line, trimmed, number)
                continue

            colon: int = trimmed.find(":")
            if 0 < colon < len(trimmed) - 1:
                yield Token(
                    kind=TokenKind.HEADER_NAME, value=trimmed[:colon].strip(), line=number
                )
                yield Token(
                    kind=TokenKind.HEADER_VALUE,
                    value=trimmed[colon + 1 :].strip(),
                    line=number,
                    column=colon + 2,
                )
                continue

            if trimmed.lower().startswith("http") or trimmed.startswith(("/", "{{")):
                yield Token(kind=TokenKind.URL, value=trimmed, line=number)
                continue

            in_body = True
            yield Token(kind=TokenKind.BODY, value=line, line=number)

    def _body_ahead(self: Self, lines: list[str], start: int) -> bool:
        """Peek at the next non-blank line and decide whether it opens a body."""
        for candidate in lines[start:]:
            stripped: str = candidate.strip()
            if stripped:
                return stripped.startswith(BODY_STARTS) or ":" not in stripped
        return False

    def _requestLine_split(
        self: Self, trimmed: str, method_match: re.Match[str], number: int
    ) -> Iterator[Token]:
        """Emit METHOD and, if present, URL tokens for a request line."""
        yield Token(kind=TokenKind.METHOD, value=method_match.group(1), line=number)

        remainder: str = trimmed[method_match.end() :].strip()
        version: re.Match[str] | None = HTTP_VERSION.search(remainder)
        if version and version.start() > 0:
            remainder = remainder[: version.start()].strip()

        if remainder:
            yield Token(
                kind=TokenKind.URL,
                value=remainder,
                line=number,
                column=method_match.end() + 1,
            )

    def _bodyLine_classify(self: Self, line: str, trimmed: str, number: int) -> Token:
        """Classify a line inside a body as a file reference or body text."""
        file_match: re.Match[str] | None = FILE_BODY.match(trimmed)
        if not file_match:
            return Token(kind=TokenKind.BODY, value=line, line=number)

        at_part, encoding, path = file_match.group(1), file_match.group(2), file_match.group(3)
        path = path.strip()
        if not at_part:
            return Token(kind=TokenKind.FILE_BODY, value=path, line=number)
        if not encoding:
            return Token(kind=TokenKind.FILE_BODY_WITH_VARIABLES, value=path, line=number)
        return Token(
            kind=TokenKind.FILE_BODY_WITH_ENCODING, value=f"{encoding}|{path}", line=number
        )


tokenizer: Final[Tokenizer] = Tokenizer()


def text_tokenize(text: str | None) -> list[Token]:
    """
    Tokenize request definition text with the shared tokenizer.

    :param text: Full file contents.
    :return: Token list ending with END_OF_STREAM.
    """
    return tokenizer.tokenize(text)
