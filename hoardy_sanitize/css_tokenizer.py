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

"""CSS tokenizer, following <https://www.w3.org/TR/css-syntax-3/#tokenization>,
with the following deviations:

- comments produce `WHITESPACE` tokens, since dropping them would allow
  `:ho/**/st` to become `:host` after serialization;

- consecutive `WHITESPACE` tokens are merged into one;

- there are no url-tokens, `url(...)` always produces `FUNCTION("url")`
  and its argument always produces a `STRING`;

- there are no bad-string and bad-url tokens, malformed strings and
  `url(...)`s produce empty `STRING` tokens instead;

- numeric tokens keep their textual representation instead of values;

- `FUNCTION` names are lower-cased.

The tokenizer never fails, any input produces a list of tokens ending with
`EOF`.
"""

import re as _re
import typing as _t

from .css_tokens import *

hex_digit_re = _re.compile(r"[0-9A-Fa-f]")
non_printable_re = _re.compile(r"[\x00-\x08\x0b\x0e-\x1f\x7f]")
preprocess_re = _re.compile(r"\r\n|[\r\f]")

def is_digit(c : str) -> bool:
    return c != "" and "0" <= c <= "9"

def is_hex_digit(c : str) -> bool:
    return c != "" and hex_digit_re.fullmatch(c) is not None

def is_newline(c : str) -> bool:
    return c == "\n"

def is_whitespace(c : str) -> bool:
    return c == " " or c == "\t" or c == "\n"

def is_ident_start(c : str) -> bool:
    return c != "" and (c == "_" or "a" <= c <= "z" or "A" <= c <= "Z" or ord(c) >= 0x80)

def is_ident_code_point(c : str) -> bool:
    return is_ident_start(c) or is_digit(c) or c == "-"

def is_non_printable(c : str) -> bool:
    return c != "" and non_printable_re.fullmatch(c) is not None

def is_valid_escape(c1 : str, c2 : str) -> bool:
    return c1 == "\\" and c2 != "\n"

def would_start_ident(c1 : str, c2 : str, c3 : str) -> bool:
    if c1 == "-":
        return is_ident_start(c2) or c2 == "-" or is_valid_escape(c2, c3)
    elif is_ident_start(c1):
        return True
    elif c1 == "\\":
        return is_valid_escape(c1, c2)
    return False

def would_start_number(c1 : str, c2 : str, c3 : str) -> bool:
    if c1 == "+" or c1 == "-":
        return is_digit(c2) or c2 == "." and is_digit(c3)
    elif c1 == ".":
        return is_digit(c2)
    return is_digit(c1)

def preprocess(css : str) -> str:
    return preprocess_re.sub("\n", css).replace("\0", "�")

class Tokenizer:
    """A cursor over a preprocessed CSS source.

    `peek` returns `""` past the end of input, `consume` advances even at
    EOF, so that `reconsume` can always step back by one.
    """

    def __init__(self, css : str) -> None:
        self.buffer = preprocess(css)
        self.pos = 0
        self.tokens : list[Token] = []

    def at_eof(self) -> bool:
        return self.pos >= len(self.buffer)

    def peek(self, n : int = 0) -> str:
        pos = self.pos + n
        if 0 <= pos < len(self.buffer):
            return self.buffer[pos]
        return ""

    def current(self) -> str:
        return self.peek(-1)

    def at_string(self, s : str) -> bool:
        return self.buffer.startswith(s, self.pos)

    def consume(self) -> str:
        c = self.peek()
        self.pos += 1
        return c

    def skip(self, n : int) -> None:
        self.pos += n

    def reconsume(self) -> None:
        self.pos -= 1

    def emit(self, token : Token) -> None:
        if token == WHITESPACE and len(self.tokens) > 0 and self.tokens[-1] == WHITESPACE:
            return
        self.tokens.append(token)

    def tokenize(self) -> list[Token]:
        while True:
            self.consume_token()
            if self.tokens[-1] == EOF:
                return self.tokens

    def consume_token(self) -> None:
        if self.consume_comments():
            self.emit(WHITESPACE)
            return

        c = self.consume()
        if c == "":
            self.emit(EOF)
        elif is_whitespace(c):
            self.consume_whitespace()
            self.emit(WHITESPACE)
        elif c == '"' or c == "'":
            self.emit(self.consume_string(c))
        elif c == "#":
            if is_ident_code_point(self.peek()) or is_valid_escape(self.peek(), self.peek(1)):
                self.emit(HashToken(self.consume_ident_sequence()))
            else:
                self.emit(DelimToken(c))
        elif c == "(":
            self.emit(OPEN_PAREN)
        elif c == ")":
            self.emit(CLOSE_PAREN)
        elif c == "[":
            self.emit(OPEN_SQUARE)
        elif c == "]":
            self.emit(CLOSE_SQUARE)
        elif c == "{":
            self.emit(OPEN_CURLY)
        elif c == "}":
            self.emit(CLOSE_CURLY)
        elif c == ",":
            self.emit(COMMA)
        elif c == ":":
            self.emit(COLON)
        elif c == ";":
            self.emit(SEMICOLON)
        elif c == "+" or c == ".":
            if would_start_number(c, self.peek(), self.peek(1)):
                self.reconsume()
                self.emit(self.consume_numeric())
            else:
                self.emit(DelimToken(c))
        elif c == "-":
            if would_start_number(c, self.peek(), self.peek(1)):
                self.reconsume()
                self.emit(self.consume_numeric())
            elif self.at_string("->"):
                self.skip(2)
                self.emit(CDC)
            elif would_start_ident(c, self.peek(), self.peek(1)):
                self.reconsume()
                self.consume_ident_like()
            else:
                self.emit(DelimToken(c))
        elif c == "<":
            if self.at_string("!--"):
                self.skip(3)
                self.emit(CDO)
            else:
                self.emit(DelimToken(c))
        elif c == "@":
            if would_start_ident(self.peek(), self.peek(1), self.peek(2)):
                self.emit(AtKeywordToken(self.consume_ident_sequence()))
            else:
                self.emit(DelimToken(c))
        elif c == "\\":
            if is_valid_escape(c, self.peek()):
                self.reconsume()
                self.consume_ident_like()
            else:
                self.emit(DelimToken(c))
        elif is_digit(c):
            self.reconsume()
            self.emit(self.consume_numeric())
        elif is_ident_start(c):
            self.reconsume()
            self.consume_ident_like()
        else:
            self.emit(DelimToken(c))

    def consume_comments(self) -> bool:
        res = False
        while self.at_string("/*"):
            res = True
            end = self.buffer.find("*/", self.pos + 2)
            if end == -1:
                # unterminated comment eats everything
                self.pos = len(self.buffer)
                break
            self.pos = end + 2
        return res

    def consume_whitespace(self) -> None:
        while is_whitespace(self.peek()):
            self.pos += 1

    def consume_string(self, quote : str) -> StringToken:
        value : list[str] = []
        while True:
            c = self.consume()
            if c == "" or c == quote:
                return StringToken("".join(value))
            elif is_newline(c):
                # a bad-string, reconsume the newline
                self.reconsume()
                return StringToken("")
            elif c == "\\":
                n = self.peek()
                if n == "":
                    continue
                elif is_newline(n):
                    # line continuation
                    self.pos += 1
                else:
                    value.append(self.consume_escaped_code_point())
            else:
                value.append(c)

    def consume_escaped_code_point(self) -> str:
        c = self.consume()
        if c == "":
            return "�"
        elif not is_hex_digit(c):
            return c

        digits = [c]
        while len(digits) < 6 and is_hex_digit(self.peek()):
            digits.append(self.consume())
        if is_whitespace(self.peek()):
            self.pos += 1

        num = int("".join(digits), 16)
        if num == 0 or 0xd800 <= num <= 0xdfff or num > 0x10ffff:
            return "�"
        return chr(num)

    def consume_ident_sequence(self) -> str:
        res : list[str] = []
        while True:
            c = self.consume()
            if is_ident_code_point(c):
                res.append(c)
            elif is_valid_escape(c, self.peek()):
                res.append(self.consume_escaped_code_point())
            else:
                self.reconsume()
                return "".join(res)

    def consume_ident_like(self) -> None:
        ident = self.consume_ident_sequence()
        if self.peek() != "(":
            self.emit(IdentToken(ident))
            return

        self.pos += 1
        name = ident.lower()
        if name != "url":
            self.emit(FunctionToken(name))
            return

        while is_whitespace(self.peek()) and is_whitespace(self.peek(1)):
            self.pos += 1

        n1, n2 = self.peek(), self.peek(1)
        if n1 == '"' or n1 == "'" or is_whitespace(n1) and (n2 == '"' or n2 == "'"):
            # the string will be consumed as a normal `STRING` token
            self.emit(FunctionToken("url"))
        else:
            url = self.consume_url()
            self.emit(FunctionToken("url"))
            self.emit(StringToken(url))
            self.emit(CLOSE_PAREN)

    def consume_url(self) -> str:
        """Consume an unquoted `url(...)` argument and its closing paren.
           Returns an empty string for a malformed one.
        """
        value : list[str] = []
        self.consume_whitespace()
        while True:
            c = self.consume()
            if c == ")" or c == "":
                return "".join(value)
            elif is_whitespace(c):
                self.consume_whitespace()
                n = self.peek()
                if n == ")" or n == "":
                    self.pos += 1
                    return "".join(value)
                self.consume_bad_url_remnants()
                return ""
            elif c == '"' or c == "'" or c == "(" or is_non_printable(c):
                self.consume_bad_url_remnants()
                return ""
            elif c == "\\":
                if is_valid_escape(c, self.peek()):
                    value.append(self.consume_escaped_code_point())
                else:
                    self.consume_bad_url_remnants()
                    return ""
            else:
                value.append(c)

    def consume_bad_url_remnants(self) -> None:
        while True:
            c = self.consume()
            if c == ")" or c == "":
                return
            elif is_valid_escape(c, self.peek()):
                self.consume_escaped_code_point()

    def consume_digits(self) -> str:
        start = self.pos
        while is_digit(self.peek()):
            self.pos += 1
        return self.buffer[start:self.pos]

    def consume_number(self) -> str:
        res = []
        c = self.peek()
        if c == "+" or c == "-":
            res.append(self.consume())
        res.append(self.consume_digits())

        if self.peek() == "." and is_digit(self.peek(1)):
            self.pos += 1
            res.append("." + self.consume_digits())

        e, s, d = self.peek(), self.peek(1), self.peek(2)
        if e == "e" or e == "E":
            if (s == "+" or s == "-") and is_digit(d):
                self.skip(2)
                res.append(e + s + self.consume_digits())
            elif is_digit(s):
                self.pos += 1
                res.append(e + self.consume_digits())

        return "".join(res)

    def consume_numeric(self) -> NumberToken | PercentageToken | DimensionToken:
        representation = self.consume_number()
        if would_start_ident(self.peek(), self.peek(1), self.peek(2)):
            return DimensionToken(representation, self.consume_ident_sequence())
        elif self.peek() == "%":
            self.pos += 1
            return PercentageToken(representation)
        return NumberToken(representation)

def tokenize(css : str) -> list[Token]:
    """Tokenize a given CSS string, see the module docstring for details."""
    return Tokenizer(css).tokenize()

def test_tokenize_basics() -> None:
    assert tokenize("") == [EOF]
    assert tokenize("a") == [IdentToken("a"), EOF]
    assert tokenize("color: red;") == [
        IdentToken("color"), COLON, WHITESPACE, IdentToken("red"), SEMICOLON, EOF]
    assert tokenize("a  \t\n b") == [IdentToken("a"), WHITESPACE, IdentToken("b"), EOF]
    assert tokenize("@media") == [AtKeywordToken("media"), EOF]
    assert tokenize("@ a") == [DelimToken("@"), WHITESPACE, IdentToken("a"), EOF]
    assert tokenize("#abc #1 #") == [
        HashToken("abc"), WHITESPACE, HashToken("1"), WHITESPACE, DelimToken("#"), EOF]
    assert tokenize("<!-- -->") == [CDO, WHITESPACE, CDC, EOF]
    assert tokenize("--custom") == [IdentToken("--custom"), EOF]
    assert tokenize("-x") == [IdentToken("-x"), EOF]
    assert tokenize("- x") == [DelimToken("-"), WHITESPACE, IdentToken("x"), EOF]

def test_tokenize_comments() -> None:
    assert tokenize(":ho/**/st") == [COLON, IdentToken("ho"), WHITESPACE, IdentToken("st"), EOF]
    assert tokenize("a /* x */ /* y */b") == [IdentToken("a"), WHITESPACE, IdentToken("b"), EOF]
    assert tokenize("a/* unterminated") == [IdentToken("a"), WHITESPACE, EOF]

def test_tokenize_numbers() -> None:
    assert tokenize("12") == [NumberToken("12"), EOF]
    assert tokenize("+.5") == [NumberToken("+.5"), EOF]
    assert tokenize("-1.5e+3") == [NumberToken("-1.5e+3"), EOF]
    assert tokenize("10%") == [PercentageToken("10"), EOF]
    assert tokenize("123e45px") == [DimensionToken("123e45", "px"), EOF]
    assert tokenize("123e45%") == [PercentageToken("123e45"), EOF]
    assert tokenize("1e") == [DimensionToken("1", "e"), EOF]
    assert tokenize("1.2.3") == [NumberToken("1.2"), NumberToken(".3"), EOF]
    assert tokenize(". 5") == [DelimToken("."), WHITESPACE, NumberToken("5"), EOF]

def test_tokenize_strings() -> None:
    assert tokenize('"abc"') == [StringToken("abc"), EOF]
    assert tokenize("'a\"b'") == [StringToken('a"b'), EOF]
    assert tokenize('"unterminated') == [StringToken("unterminated"), EOF]
    assert tokenize('"bad\nstring"') == [StringToken(""), WHITESPACE, IdentToken("string"), StringToken(""), EOF]
    assert tokenize('"line\\\ncontinued"') == [StringToken("linecontinued"), EOF]
    assert tokenize('"\\') == [StringToken(""), EOF]

def test_tokenize_escapes() -> None:
    assert tokenize("\\41 b") == [IdentToken("Ab"), EOF]
    assert tokenize("\\000041b") == [IdentToken("Ab"), EOF]
    assert tokenize("\\{") == [IdentToken("{"), EOF]
    assert tokenize("\\0 ") == [IdentToken("�"), EOF]
    assert tokenize("\\d800 ") == [IdentToken("�"), EOF]
    assert tokenize("\\110000 ") == [IdentToken("�"), EOF]
    assert tokenize("\\") == [IdentToken("�"), EOF]
    assert tokenize("\\\n") == [DelimToken("\\"), WHITESPACE, EOF]
    assert tokenize("a\0b") == [IdentToken("a�b"), EOF]

def test_tokenize_functions_and_urls() -> None:
    assert tokenize("RGB(1)") == [FunctionToken("rgb"), NumberToken("1"), CLOSE_PAREN, EOF]
    assert tokenize("url(a.png)") == [FunctionToken("url"), StringToken("a.png"), CLOSE_PAREN, EOF]
    assert tokenize("URL(  a.png  )") == [FunctionToken("url"), StringToken("a.png"), CLOSE_PAREN, EOF]
    assert tokenize('url("a.png")') == [FunctionToken("url"), StringToken("a.png"), CLOSE_PAREN, EOF]
    assert tokenize("url(  'a.png')") == [FunctionToken("url"), WHITESPACE, StringToken("a.png"), CLOSE_PAREN, EOF]
    assert tokenize("url(a b) c") == [FunctionToken("url"), StringToken(""), CLOSE_PAREN, WHITESPACE, IdentToken("c"), EOF]
    assert tokenize("url(a(b) c") == [FunctionToken("url"), StringToken(""), CLOSE_PAREN, WHITESPACE, IdentToken("c"), EOF]
    assert tokenize("url(a\x01)") == [FunctionToken("url"), StringToken(""), CLOSE_PAREN, EOF]
    assert tokenize("url(a\\)b)") == [FunctionToken("url"), StringToken("a)b"), CLOSE_PAREN, EOF]
    assert tokenize("url(unterminated") == [FunctionToken("url"), StringToken("unterminated"), CLOSE_PAREN, EOF]

def test_tokenize_preprocessing() -> None:
    assert tokenize("a\r\nb") == [IdentToken("a"), WHITESPACE, IdentToken("b"), EOF]
    assert tokenize('"a\rb"') == [StringToken(""), WHITESPACE, IdentToken("b"), StringToken(""), EOF]
    assert tokenize("a\fb") == [IdentToken("a"), WHITESPACE, IdentToken("b"), EOF]
