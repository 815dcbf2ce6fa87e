# Copyright (c) 2024 Jan Malakhovski <oxij@oxij.org>
#
# This file is a part of `hoardy-sanitize` project.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program. If not, see <http://www.gnu.org/licenses/>.

"""Serialization of CSS tokens.

Re-tokenizing the output of `serialize` with `css_tokenizer.tokenize`
produces the original tokens, modulo merging of consecutive `WHITESPACE`
tokens.
"""

import re as _re
import typing as _t

from kisstdlib.exceptions import *

from .css_tokens import *

string_unsafe_re = _re.compile(r"[^A-Za-z0-9_/. :,?=%;-]")
ident_unsafe_first_re = _re.compile(r"[^A-Za-z_]")
ident_unsafe_re = _re.compile(r"[^A-Za-z0-9_-]")
# units that would be parsed as exponents when glued to a number
exponent_like_re = _re.compile(r"[eE][+-]?[0-9]")

def escape_code_point(c : str) -> str:
    return "\\" + format(ord(c), "x") + " "

def _escape_match(m : _re.Match[str]) -> str:
    return escape_code_point(m.group(0))

def escape_string(value : str) -> str:
    # punctuation is mostly left as-is to keep the output readable
    return '"' + string_unsafe_re.sub(_escape_match, value) + '"'

def escape_ident(ident : str) -> str:
    """Escape an identifier.

    The first character is escaped more aggressively than the rest since,
    e.g., `123` would become a number token, while `\\31 23` is an identifier.
    """
    if ident == "":
        return ""
    first = ident[0]
    if ident_unsafe_first_re.match(first):
        first = escape_code_point(first)
    return first + ident_unsafe_re.sub(_escape_match, ident[1:])

def escape_dimension(dimension : str) -> str:
    res = escape_ident(dimension)
    if exponent_like_re.match(res):
        res = escape_code_point(res[0]) + res[1:]
    return res

simple_token_reprs : dict[TokenKind, str] = {
    TokenKind.CDC: "-->",
    TokenKind.CDO: "<!--",
    TokenKind.CLOSE_CURLY: "}",
    TokenKind.CLOSE_PAREN: ")",
    TokenKind.CLOSE_SQUARE: "]",
    TokenKind.COLON: ":",
    TokenKind.COMMA: ",",
    TokenKind.EOF: "",
    TokenKind.OPEN_CURLY: "{",
    TokenKind.OPEN_PAREN: "(",
    TokenKind.OPEN_SQUARE: "[",
    TokenKind.SEMICOLON: ";",
    TokenKind.WHITESPACE: " ",
}

def serialize_token(token : Token) -> str:
    if isinstance(token, SimpleToken):
        return simple_token_reprs[token.kind]
    elif isinstance(token, IdentToken):
        return escape_ident(token.ident)
    elif isinstance(token, FunctionToken):
        return escape_ident(token.lowercase_name) + "("
    elif isinstance(token, AtKeywordToken):
        return "@" + escape_ident(token.name)
    elif isinstance(token, HashToken):
        return "#" + escape_ident(token.value)
    elif isinstance(token, StringToken):
        return escape_string(token.value)
    elif isinstance(token, DelimToken):
        # the tokenizer only produces this one when followed by a newline
        if token.code_point == "\\":
            return "\\\n"
        return token.code_point
    elif isinstance(token, NumberToken):
        return token.representation
    elif isinstance(token, PercentageToken):
        return token.representation + "%"
    elif isinstance(token, DimensionToken):
        return token.representation + escape_dimension(token.dimension)
    raise CatastrophicFailure("can't serialize an unknown CSS token `%s`", repr(token))

def serialize(tokens : _t.Iterable[Token]) -> str:
    return "".join([serialize_token(t) for t in tokens])

def test_serialize_token() -> None:
    tests : list[tuple[Token, str]] = [
        (AtKeywordToken("foo"), "@foo"),
        (AtKeywordToken("foo@<>\n\0"), r"@foo\40 \3c \3e \a \0 "),
        (CDC, "-->"),
        (CDO, "<!--"),
        (CLOSE_CURLY, "}"),
        (COLON, ":"),
        (DelimToken("<"), "<"),
        (DelimToken("\\"), "\\\n"),
        (DimensionToken("123", "px"), "123px"),
        (DimensionToken(".123", "px"), ".123px"),
        (DimensionToken("123", "p<>x"), r"123p\3c \3e x"),
        (DimensionToken("1", "e5"), r"1\65 5"),
        (EOF, ""),
        (FunctionToken("foo<>"), r"foo\3c \3e ("),
        (HashToken("123"), r"#\31 23"),
        (HashToken("-123"), r"#\2d 123"),
        (IdentToken("foo<>\0"), r"foo\3c \3e \0 "),
        (IdentToken("-bar"), r"\2d bar"),
        (IdentToken("@foo"), r"\40 foo"),
        (NumberToken("123e456"), "123e456"),
        (PercentageToken("123"), "123%"),
        (StringToken(""), '""'),
        (StringToken("foo<>"), r'"foo\3c \3e "'),
        (StringToken("foo\0abc"), r'"foo\0 abc"'),
        (StringToken("https://example.org/?a=b;c"), '"https://example.org/?a=b;c"'),
        (WHITESPACE, " "),
    ]

    for token, expected in tests:
        assert serialize_token(token) == expected, (token, expected)

round_trip_examples = [
r"""
@import url(https://fonts.googleapis.com/css?family=Roboto);

div {
  font-family: Roboto;
}
span,p:has(div > span) {
  font-family: Roboto;
  font-size: 10px;
  color: red;
}
""",
r"""
@keyframes example002-2 {
  0% {
    color: red;
  }
  100% {
    color: blue;
  }
}

.abc {
  animation: example002 1s;
}

.\41bas {
  animation: example002 1s;
}
""",
r"""
[1aa*=abc] {
  flex: 1;
  display: flex;
  overflow-y: auto;
}

.a-view_expanded {
  vertical-align: top !important;
  font-size: 2.999em;
}
""",
r"""
@media (min-width: 100px) {
  div {
    color: blue;
  }
}

@property --foo {
  syntax: "<color>";
}

\@property syntax_error;

& {
  div {
    p {
      @keyframes abc {}
      @import'https://google.com';
    }
  }
}
""",
    ":ho/**/st { color: red }",
    "a\\\n b",
    "url(  x  ) url( 'y' ) URL(bad url) url(\\",
    "\"unterminated\nstring\" \"\\\n\" '\\",
    "#-a #\\31 23 @\\2d x 1\\65 5 1e-x 1e+ .5% +.5e-3px --x -\\31",
    "<!-- --> <!- -> ->> - + . @ # \\ \x7f \0",
    "\\110000 \\d800 \\0 é \U0001f600",
]

def test_round_trip() -> None:
    from .css_tokenizer import tokenize

    for css in round_trip_examples:
        tokens = tokenize(css)
        assert tokenize(serialize(tokens)) == tokens, css

round_trip_pieces = [
    "a", "x-y", "-", "--", "_", "1", "0.5", ".", "e", "E3", "+", "%", "px",
    "\\", "\\31 ", "\\\n", " ", "\t", "\n", "\r\n", "\f",
    "/*", "*/", "'", '"', "(", ")", "url(", "URL(", "u", "+U",
    "@", "#", "<!--", "-->", "<", ">", "{", "}", "[", "]", ":", ";", ",", "!",
    "é", "\U0001f600", "\0", "\x7f", "\\d800", "\\110000",
]

def test_round_trip_generated() -> None:
    import random
    from .css_tokenizer import tokenize

    rng = random.Random(0)
    for _ in range(3000):
        css = "".join([rng.choice(round_trip_pieces) for _ in range(rng.randint(1, 16))])
        tokens = tokenize(css)
        assert tokenize(serialize(tokens)) == tokens, (css, tokens)
