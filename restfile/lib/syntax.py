"""
Syntax parser turning a token stream into a RequestFile.

The parser runs a single pass over the tokens with a small state machine.
Two conventions open a request and may be mixed in one file:

- a separator line `### optional name words` (words joined with `-`, or an
  auto-generated `request-N` when absent)
- a metadata directive `# @name <name>`

Either opener closes the currently open request, emitting it when its name is
non-empty, and starts collecting tokens for the next one. File variables are
recorded wherever they appear; other tokens before the first opener are
dropped.

Each collected request is then materialised by re-deriving the header/body
boundary from the token kinds it actually holds.

Only duplicate request names (with name validation enabled) are fatal;
everything else degrades to a sensible default.
"""

import re
from dataclasses import dataclass, field
from typing import Final, Self
from restfile.models.dataModel import (
    DEFAULT_ENCODING,
    FILE_BODY_KINDS,
    Expectation,
    ExpectationKind,
    FileBodyReference,
    HeaderDict,
    HttpRequest,
    ParseOptions,
    RequestFile,
    RequestMetadata,
    Token,
    TokenKind,
)
from restfile.lib.exceptions import DuplicateRequestNameError
from restfile.lib.tokenizer import FILE_VARIABLE, METADATA
from restfile.lib.log import LOG

ENCODING_ALIASES: Final[dict[str, str]] = {
    "utf8": "utf-8",
    "utf16": "utf-16",
    "utf32": "utf-32",
    "ascii": "ascii",
    "usascii": "ascii",
    "latin1": "latin-1",
    "iso88591": "latin-1",
    "windows1252": "cp1252",
    "cp1252": "cp1252",
}

EXPECT_KEYWORDS: Final[dict[str, ExpectationKind]] = {
    "status": ExpectationKind.STATUS_CODE,
    "header": ExpectationKind.HEADER,
    "body-contains": ExpectationKind.BODY_CONTAINS,
    "body-path": ExpectationKind.BODY_PATH,
    "schema": ExpectationKind.SCHEMA,
    "max-time": ExpectationKind.MAX_TIME,
}

EXPECT_DIRECTIVES: Final[dict[str, ExpectationKind]] = {
    "expect-status-code": ExpectationKind.STATUS_CODE,
    "expect-header": ExpectationKind.HEADER,
    "expect-body-contains": ExpectationKind.BODY_CONTAINS,
    "expect-body-path": ExpectationKind.BODY_PATH,
    "expect-schema": ExpectationKind.SCHEMA,
    "expect-max-time": ExpectationKind.MAX_TIME,
}

HEAD_KINDS: Final[frozenset[TokenKind]] = frozenset(
    {TokenKind.METHOD, TokenKind.URL, TokenKind.HEADER_NAME}
)


def encoding_lookup(name: str) -> str | None:
    """
    Map an encoding alias from a file body reference to a Python codec name.

    :param name: Encoding as written, e.g. "utf8", "Latin-1", "cp1252".
    :return: Codec name, or None when the alias is not supported.
    """
    normalized: str = name.lower().replace("-", "").replace("_", "")
    return ENCODING_ALIASES.get(normalized)


def directive_split(raw: str) -> tuple[str, str] | None:
    """
    Split a metadata directive into its lower-cased key and trimmed value.

    :param raw: Trimmed directive line, e.g. "# @expect status 200".
    :return: (key, value) or None if the line is not a directive.
    """
    match: re.Match[str] | None = METADATA.match(raw)
    if not match:
        return None
    return match.group(1).lower(), (match.group(2) or "").strip()


def expectation_parse(value: str) -> Expectation | None:
    """
    Parse the argument of an `@expect` directive.

    Accepts both "status 200" and "status: 200". The first part must be one
    of the known expectation keywords.

    :param value: Directive argument.
    :return: The Expectation, or None when the argument is not understood.
    """
    if not value or not value.strip():
        return None

    separator: str = ":" if ":" in value else " "
    parts: list[str] = [p for p in value.split(separator, 1) if p.strip()]
    if len(parts) != 2:
        return None

    kind: ExpectationKind | None = EXPECT_KEYWORDS.get(parts[0].strip().lower())
    if kind is None:
        return None
    return Expectation(kind=kind, value=parts[1].strip())


def metadata_apply(
    raw: str, metadata: RequestMetadata, options: ParseOptions | None = None
) -> None:
    """
    Apply one metadata directive to a request's metadata.

    Unknown keys are kept verbatim in `metadata.custom`.

    :param raw: Trimmed directive line.
    :param metadata: Metadata to update in place.
    :param options: Parse options; expectations are skipped when disabled.
    """
    directive: tuple[str, str] | None = directive_split(raw)
    if directive is None:
        return
    key, value = directive
    parse_expectations: bool = options.parseExpectations if options else True

    if key == "name":
        metadata.name = value
    elif key == "note":
        metadata.note = value
    elif key == "no-redirect":
        metadata.no_redirect = True
    elif key == "no-cookie-jar":
        metadata.no_cookie_jar = True
    elif key == "expect":
        if parse_expectations:
            expectation: Expectation | None = expectation_parse(value)
            if expectation:
                metadata.expectations.append(expectation)
            else:
                LOG(f"Ignoring unrecognised expectation '{value}'")
    elif key in EXPECT_DIRECTIVES:
        if parse_expectations:
            metadata.expectations.append(
                Expectation(kind=EXPECT_DIRECTIVES[key], value=value)
            )
    else:
        metadata.custom[key] = value


def fileVariable_parse(raw: str) -> tuple[str, str] | None:
    """
    Split a `@name = value` declaration.

    :param raw: Trimmed declaration line.
    :return: (name, value) or None if the line is not a declaration.
    """
    match: re.Match[str] | None = FILE_VARIABLE.match(raw)
    if not match:
        return None
    return match.group(1), match.group(2)


@dataclass
class RequestBuilder:
    """Materialises one request from the tokens collected for it.

    Attributes:
        name: Request name
        tokens: Tokens collected between this request's opener and the next
        metadata: Metadata accumulated for the request
        line: Fallback line number (the opener's line)
    """

    name: str
    tokens: list[Token]
    metadata: RequestMetadata
    line: int = 0

    method: str = "GET"
    url: str = ""
    headers: HeaderDict = field(default_factory=HeaderDict)
    body_lines: list[str] = field(default_factory=list)
    file_body: FileBodyReference | None = None
    in_body: bool = False

    def build(self: Self) -> HttpRequest:
        index: int = 0
        while index < len(self.tokens):
            index = self._token_consume(index)

        body: str | None = None
        if self.body_lines:
            body = "\n".join(self.body_lines).strip() or None
        if self.file_body is not None:
            if body:
                LOG(f"Request '{self.name}': inline body ignored in favour of file body")
            body = None

        return HttpRequest(
            name=self.name,
            method=self.method,
            url=self.url,
            headers=self.headers,
            body=body,
            file_body=self.file_body,
            metadata=self.metadata,
            line=self._line_find(),
        )

    def _line_find(self: Self) -> int:
        for token in self.tokens:
            if token.kind in (TokenKind.METHOD, TokenKind.URL):
                return token.line
        return self.line

    def _token_consume(self: Self, index: int) -> int:
        """Handle the token at `index` and return the index of the next one."""
        token: Token = self.tokens[index]
        kind: TokenKind = token.kind

        if kind == TokenKind.METHOD:
            if self.in_body:
                self.body_lines.append(token.value)
            else:
                self.method = token.value.upper()
        elif kind == TokenKind.URL:
            if self.in_body:
                self.body_lines.append(token.value)
            else:
                self.url = token.value
        elif kind == TokenKind.HEADER_NAME:
            following: Token | None = (
                self.tokens[index + 1] if index + 1 < len(self.tokens) else None
            )
            paired: bool = following is not None and following.kind == TokenKind.HEADER_VALUE
            if self.in_body:
                self.body_lines.append(
                    f"{token.value}: {following.value}" if paired else token.value
                )
                return index + 2 if paired else index + 1
            if paired:
                self.headers[token.value] = following.value
                return index + 2
        elif kind == TokenKind.BODY:
            self.in_body = True
            self.body_lines.append(token.value)
        elif kind in FILE_BODY_KINDS:
            self.in_body = True
            self.file_body = fileBody_build(token)
        elif kind == TokenKind.LINE_BREAK:
            if self.in_body:
                self.body_lines.append("")
            else:
                upcoming: Token | None = self._significant_next(index + 1)
                if upcoming is not None and upcoming.kind not in HEAD_KINDS:
                    self.in_body = True
        return index + 1

    def _significant_next(self: Self, start: int) -> Token | None:
        for token in self.tokens[start:]:
            if token.kind != TokenKind.LINE_BREAK:
                return token
        return None


def fileBody_build(token: Token) -> FileBodyReference:
    """
    Build a FileBodyReference from a FILE_BODY* token.

    An encoding that is not in the alias table falls back to UTF-8.

    :param token: One of the file body token kinds.
    :return: The reference descriptor.
    """
    if token.kind == TokenKind.FILE_BODY:
        return FileBodyReference.raw(token.value, token.line)
    if token.kind == TokenKind.FILE_BODY_WITH_VARIABLES:
        return FileBodyReference.with_variables(token.value, token.line)

    encoding_name, _, path = token.value.partition("|")
    if not path:
        encoding_name, path = DEFAULT_ENCODING, token.value
    encoding: str | None = encoding_lookup(encoding_name)
    if encoding is None:
        LOG(f"Unsupported body encoding '{encoding_name}' at line {token.line}; using UTF-8")
        return FileBodyReference.with_variables(path, token.line)
    return FileBodyReference.with_encoding(path, encoding, token.line)


class SyntaxParser:
    """Request-boundary state machine over a token stream.

    State is reset on every `parse` call, so one instance may be reused
    sequentially. Use separate instances for concurrent parsing.
    """

    def __init__(self: Self) -> None:
        self._state_reset(ParseOptions.default())

    def _state_reset(self: Self, options: ParseOptions) -> None:
        self.options: ParseOptions = options
        self.requests: list[HttpRequest] = []
        self.variables: dict[str, str] = {}
        self.name_lines: dict[str, int] = {}
        self.current_name: str = ""
        self.current_line: int = 0
        self.pending: list[Token] = []
        self.metadata: RequestMetadata = RequestMetadata()
        self.is_open: bool = False

    def parse(self: Self, tokens: list[Token], options: ParseOptions | None = None) -> RequestFile:
        """Parse a token stream into a RequestFile.

        Args:
            tokens: Output of the tokenizer
            options: Parse options; defaults to ParseOptions.default()

        Returns:
            RequestFile: Requests in order plus file variables

        Raises:
            DuplicateRequestNameError: If name validation is enabled and a
                request name is introduced twice
        """
        self._state_reset(options or ParseOptions.default())

        for token in tokens:
            if token.kind == TokenKind.FILE_VARIABLE:
                declaration: tuple[str, str] | None = fileVariable_parse(token.value)
                if declaration:
                    self.variables[declaration[0]] = declaration[1]
            elif token.kind == TokenKind.REQUEST_SEPARATOR:
                self._separator_open(token)
            elif token.kind == TokenKind.METADATA:
                self._metadata_handle(token)
            elif token.kind == TokenKind.END_OF_STREAM:
                self._request_close()
                self.is_open = False
            elif self.is_open:
                self.pending.append(token)

        # Streams without END_OF_STREAM still emit their last request
        if self.is_open:
            self._request_close()

        LOG(
            f"Parsed {len(self.requests)} request(s) and {len(self.variables)} file variable(s)"
        )
        return RequestFile(requests=self.requests, variables=self.variables)

    def _separator_open(self: Self, token: Token) -> None:
        self._request_close()
        name: str = "-".join(token.value[3:].split())
        if not name:
            name = f"request-{len(self.requests) + 1}"
        self._request_open(name, token, RequestMetadata())

    def _metadata_handle(self: Self, token: Token) -> None:
        directive: tuple[str, str] | None = directive_split(token.value)
        if directive and directive[0] == "name":
            self._request_close()
            metadata: RequestMetadata = RequestMetadata()
            metadata_apply(token.value, metadata, self.options)
            self._request_open(directive[1], token, metadata)
            return
        metadata_apply(token.value, self.metadata, self.options)

    def _request_open(self: Self, name: str, token: Token, metadata: RequestMetadata) -> None:
        if self.options.validateRequestNames and name:
            if name in self.name_lines:
                raise DuplicateRequestNameError(name, self.name_lines[name], token.line)
            self.name_lines[name] = token.line

        self.current_name = name
        self.current_line = token.line
        self.pending = []
        self.metadata = metadata
        self.is_open = True

    def _request_close(self: Self) -> None:
        if not self.is_open or not self.current_name:
            return
        if self.metadata.name is None:
            self.metadata.name = self.current_name
        builder: RequestBuilder = RequestBuilder(
            name=self.current_name,
            tokens=self.pending,
            metadata=self.metadata,
            line=self.current_line,
        )
        self.requests.append(builder.build())
        self.is_open = False


def tokens_parse(tokens: list[Token], options: ParseOptions | None = None) -> RequestFile:
    """
    Parse a token stream with a fresh SyntaxParser.

    :param tokens: Tokenizer output.
    :param options: Parse options.
    :return: The parsed RequestFile.
    """
    return SyntaxParser().parse(tokens, options)
