"""Tests for the line-oriented tokenizer."""

from typing import Final
import pytest
from restfile.lib.tokenizer import Tokenizer, text_tokenize
from restfile.models.dataModel import Token, TokenKind

SIMPLE_FILE: Final[str] = "@base = https://x\n\n# @name t\nGET {{base}}/y HTTP/1.1\n"


def kinds(tokens: list[Token]) -> list[TokenKind]:
    return [token.kind for token in tokens]


def of_kind(tokens: list[Token], kind: TokenKind) -> list[Token]:
    return [token for token in tokens if token.kind == kind]


def test_simple_file_tokens() -> None:
    tokens = text_tokenize(SIMPLE_FILE)

    assert len(of_kind(tokens, TokenKind.FILE_VARIABLE)) == 1
    assert len(of_kind(tokens, TokenKind.METADATA)) == 1
    assert [t.value for t in of_kind(tokens, TokenKind.METHOD)] == ["GET"]
    assert [t.value for t in of_kind(tokens, TokenKind.URL)] == ["{{base}}/y"]
    assert tokens[-1].kind == TokenKind.END_OF_STREAM


def test_simple_file_positions() -> None:
    tokens = text_tokenize(SIMPLE_FILE)
    method = of_kind(tokens, TokenKind.METHOD)[0]
    url = of_kind(tokens, TokenKind.URL)[0]

    assert method.line == 4
    assert url.line == 4
    assert url.column == 5
    assert tokens[-1].line == 6


@pytest.mark.parametrize("text", ["", None])
def test_empty_input(text: str | None) -> None:
    tokens = text_tokenize(text)
    assert len(tokens) == 1
    assert tokens[0].kind == TokenKind.END_OF_STREAM
    assert tokens[0].line == 1


def test_headers_and_json_body() -> None:
    text = (
        "### create user\n"
        "POST https://x/api\n"
        "Content-Type: application/json\n"
        "\n"
        "{\n"
        '  "a": 1\n'
        "}\n"
    )
    tokens = text_tokenize(text)

    assert kinds(tokens) == [
        TokenKind.REQUEST_SEPARATOR,
        TokenKind.METHOD,
        TokenKind.URL,
        TokenKind.HEADER_NAME,
        TokenKind.HEADER_VALUE,
        TokenKind.LINE_BREAK,
        TokenKind.BODY,
        TokenKind.BODY,
        TokenKind.BODY,
        TokenKind.LINE_BREAK,
        TokenKind.END_OF_STREAM,
    ]
    header_name = of_kind(tokens, TokenKind.HEADER_NAME)[0]
    header_value = of_kind(tokens, TokenKind.HEADER_VALUE)[0]
    assert header_name.value == "Content-Type"
    assert header_value.value == "application/json"
    assert header_value.column == 14
    # Body lines keep their indentation
    assert of_kind(tokens, TokenKind.BODY)[1].value == '  "a": 1'


@pytest.mark.parametrize(
    "line,kind,value",
    [
        ("< ./body.xml", TokenKind.FILE_BODY, "./body.xml"),
        ("<@ ./template.json", TokenKind.FILE_BODY_WITH_VARIABLES, "./template.json"),
        ("<@latin1 ./data.txt", TokenKind.FILE_BODY_WITH_ENCODING, "latin1|./data.txt"),
        ("<root>value</root>", TokenKind.BODY, "<root>value</root>"),
    ],
)
def test_file_body_shapes(line: str, kind: TokenKind, value: str) -> None:
    text = f"# @name upload\nPOST https://x\n\n{line}\n"
    tokens = text_tokenize(text)
    body = [t for t in tokens if t.line == 4][0]

    assert body.kind == kind
    assert body.value == value


def test_comments_and_metadata() -> None:
    text = "# just a comment\n// another one\n#@note hello\n// @no-redirect\n"
    tokens = text_tokenize(text)

    assert kinds(tokens)[:4] == [
        TokenKind.COMMENT,
        TokenKind.COMMENT,
        TokenKind.METADATA,
        TokenKind.METADATA,
    ]


def test_http_version_is_stripped() -> None:
    tokens = text_tokenize("GET https://example.com/a HTTP/2\n")
    assert of_kind(tokens, TokenKind.URL)[0].value == "https://example.com/a"


def test_method_is_case_insensitive() -> None:
    tokens = text_tokenize("delete /items/1\n")
    assert of_kind(tokens, TokenKind.METHOD)[0].value == "delete"
    assert of_kind(tokens, TokenKind.URL)[0].value == "/items/1"


def test_method_without_url() -> None:
    tokens = text_tokenize("OPTIONS \n")
    assert kinds(tokens) == [TokenKind.BODY, TokenKind.LINE_BREAK, TokenKind.END_OF_STREAM]


@pytest.mark.parametrize("line", ["/users/1", "{{base}}/users"])
def test_url_shaped_lines(line: str) -> None:
    tokens = text_tokenize(f"### a\n{line}\n")
    assert tokens[1].kind == TokenKind.URL
    assert tokens[1].value == line


def test_unknown_line_enters_body() -> None:
    text = "### a\nPOST /x\nplain text body\nName: not a header\n"
    tokens = text_tokenize(text)

    assert kinds(tokens)[3:5] == [TokenKind.BODY, TokenKind.BODY]


def test_crlf_line_endings() -> None:
    tokens = text_tokenize("# @name a\r\nGET /a\r\nAccept: */*\r\n")

    assert of_kind(tokens, TokenKind.HEADER_VALUE)[0].value == "*/*"
    assert of_kind(tokens, TokenKind.URL)[0].line == 2


def test_blank_line_lookahead() -> None:
    text = "POST /x\n\nraw text without colon\n"
    tokens = text_tokenize(text)
    assert of_kind(tokens, TokenKind.BODY)[0].value == "raw text without colon"

    text = "POST /x\n\nX-Late: header\n"
    tokens = text_tokenize(text)
    assert of_kind(tokens, TokenKind.HEADER_NAME)[0].value == "X-Late"


def test_request_line_leaves_body() -> None:
    text = "POST /a\n\n{\n}\nGET /b\nAccept: text/plain\n"
    tokens = text_tokenize(text)

    assert [t.value for t in of_kind(tokens, TokenKind.URL)] == ["/a", "/b"]
    assert of_kind(tokens, TokenKind.HEADER_NAME)[0].value == "Accept"


def test_tokenizer_is_reusable() -> None:
    tokenizer = Tokenizer()
    first = tokenizer.tokenize(SIMPLE_FILE)
    second = tokenizer.tokenize(SIMPLE_FILE)
    assert first == second
