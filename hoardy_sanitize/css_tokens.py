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

"""CSS tokens, as produced by `css_tokenizer` and consumed by `css_serializer`.

Tokens are immutable values holding only what is needed to serialize them
back, e.g. numbers keep their textual representation, not their values.
"""

import dataclasses as _dc
import enum as _enum
import typing as _t

class TokenKind(_enum.Enum):
    AT_KEYWORD = 0
    CDC = 1
    CDO = 2
    CLOSE_CURLY = 3
    CLOSE_PAREN = 4
    CLOSE_SQUARE = 5
    COLON = 6
    COMMA = 7
    DELIM = 8
    DIMENSION = 9
    EOF = 10
    FUNCTION = 11
    HASH = 12
    IDENT = 13
    NUMBER = 14
    OPEN_CURLY = 15
    OPEN_PAREN = 16
    OPEN_SQUARE = 17
    PERCENTAGE = 18
    SEMICOLON = 19
    STRING = 20
    WHITESPACE = 21

simple_token_kinds = frozenset([
    TokenKind.CDC,
    TokenKind.CDO,
    TokenKind.CLOSE_CURLY,
    TokenKind.CLOSE_PAREN,
    TokenKind.CLOSE_SQUARE,
    TokenKind.COLON,
    TokenKind.COMMA,
    TokenKind.EOF,
    TokenKind.OPEN_CURLY,
    TokenKind.OPEN_PAREN,
    TokenKind.OPEN_SQUARE,
    TokenKind.SEMICOLON,
    TokenKind.WHITESPACE,
])

@_dc.dataclass(frozen=True)
class SimpleToken:
    """A token that carries no data besides its kind."""
    kind : TokenKind

    def __post_init__(self) -> None:
        if self.kind not in simple_token_kinds:
            raise ValueError(f"`{self.kind.name}` tokens carry data")

@_dc.dataclass(frozen=True)
class IdentToken:
    ident : str
    kind : _t.ClassVar[TokenKind] = TokenKind.IDENT

@_dc.dataclass(frozen=True)
class FunctionToken:
    # always lower-case
    lowercase_name : str
    kind : _t.ClassVar[TokenKind] = TokenKind.FUNCTION

@_dc.dataclass(frozen=True)
class AtKeywordToken:
    name : str
    kind : _t.ClassVar[TokenKind] = TokenKind.AT_KEYWORD

@_dc.dataclass(frozen=True)
class HashToken:
    value : str
    kind : _t.ClassVar[TokenKind] = TokenKind.HASH

@_dc.dataclass(frozen=True)
class StringToken:
    value : str
    kind : _t.ClassVar[TokenKind] = TokenKind.STRING

@_dc.dataclass(frozen=True)
class DelimToken:
    code_point : str
    kind : _t.ClassVar[TokenKind] = TokenKind.DELIM

@_dc.dataclass(frozen=True)
class NumberToken:
    representation : str
    kind : _t.ClassVar[TokenKind] = TokenKind.NUMBER

@_dc.dataclass(frozen=True)
class PercentageToken:
    # without the trailing `%`
    representation : str
    kind : _t.ClassVar[TokenKind] = TokenKind.PERCENTAGE

@_dc.dataclass(frozen=True)
class DimensionToken:
    representation : str
    dimension : str
    kind : _t.ClassVar[TokenKind] = TokenKind.DIMENSION

Token = _t.Union[
    SimpleToken,
    IdentToken,
    FunctionToken,
    AtKeywordToken,
    HashToken,
    StringToken,
    DelimToken,
    NumberToken,
    PercentageToken,
    DimensionToken,
]

CDC = SimpleToken(TokenKind.CDC)
CDO = SimpleToken(TokenKind.CDO)
CLOSE_CURLY = SimpleToken(TokenKind.CLOSE_CURLY)
CLOSE_PAREN = SimpleToken(TokenKind.CLOSE_PAREN)
CLOSE_SQUARE = SimpleToken(TokenKind.CLOSE_SQUARE)
COLON = SimpleToken(TokenKind.COLON)
COMMA = SimpleToken(TokenKind.COMMA)
EOF = SimpleToken(TokenKind.EOF)
OPEN_CURLY = SimpleToken(TokenKind.OPEN_CURLY)
OPEN_PAREN = SimpleToken(TokenKind.OPEN_PAREN)
OPEN_SQUARE = SimpleToken(TokenKind.OPEN_SQUARE)
SEMICOLON = SimpleToken(TokenKind.SEMICOLON)
WHITESPACE = SimpleToken(TokenKind.WHITESPACE)

def test_tokens() -> None:
    assert WHITESPACE == SimpleToken(TokenKind.WHITESPACE)
    assert IdentToken("a").kind == TokenKind.IDENT
    assert DimensionToken("1", "px") != DimensionToken("1.0", "px")
    assert len(TokenKind) == 22

    try:
        SimpleToken(TokenKind.IDENT)
    except ValueError:
        pass
    else:
        assert False
