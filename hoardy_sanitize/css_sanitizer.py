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

"""Sanitization of CSS style sheets and `style` attributes.

`tinycss2` splits the input into rules and declarations, then every
selector and every property value gets re-tokenized with `css_tokenizer`,
checked token by token, and re-serialized with `css_serializer`. The
output is always re-built from scratch, nothing of the input is ever
copied into it verbatim.

Only style rules and, optionally, `@keyframes` rules survive, all other
at-rules (`@import`, `@media`, `@font-face`, etc) are dropped.
"""

import logging as _logging
import typing as _t

import tinycss2 as _tcss

from .css_tokens import *
from .css_tokenizer import tokenize
from .css_serializer import *
from .url import *

CSSNode : _t.TypeAlias = _tcss.ast.Node

# `True` result means "drop the property with this name"
PropertyDiscarder = _t.Callable[[str], bool]

# not valid as `@keyframes` names
keyframes_name_blacklist = frozenset(["none", "initial", "inherit", "unset", "revert", "revert-layer", "default"])

def is_unsafe_token(token : Token) -> bool:
    """Tokens that could be used to break out of a `<style>` element, or into
       an HTML comment, after serialization.
    """
    return token == CDO or token == CDC or \
        isinstance(token, DelimToken) and token.code_point == "<"

def escapes_shadow_root(token : Token, next_token : Token) -> bool:
    """`:host`, `:host(...)`, and `:host-context(...)` select elements outside
       of the shadow root the sanitized styles are put into.
    """
    if token != COLON:
        return False
    if isinstance(next_token, IdentToken):
        return next_token.ident.lower() == "host"
    if isinstance(next_token, FunctionToken):
        return next_token.lowercase_name in ["host", "host-context"]
    return False

def skip_whitespace(tokens : list[Token], i : int) -> int:
    while tokens[i] == WHITESPACE:
        i += 1
    return i

def collect_declarations(nodes : list[CSSNode]) -> dict[str, tuple[str, bool]]:
    """Compute the declared values of a block, i.e. `property name -> (value, is_important)`.

       The last declaration of a property wins, unless an earlier one is `!important`
       and the later one is not. Nested rules and parse errors are ignored.
    """
    res : dict[str, tuple[str, bool]] = {}
    for node in nodes:
        if not isinstance(node, _tcss.ast.Declaration):
            continue
        # custom properties are case-sensitive
        name = node.name if node.name.startswith("--") else node.lower_name
        prev = res.get(name, None)
        if prev is not None and prev[1] and not node.important:
            continue
        res[name] = (_tcss.serialize(node.value).strip(), node.important)
    return res

class StyleSanitizer:
    def __init__(self,
                 property_allowlist : _t.AbstractSet[str],
                 function_allowlist : _t.AbstractSet[str],
                 resource_url_policy : ResourceURLPolicy | None = None,
                 allow_keyframes : bool = False,
                 property_discarders : _t.Sequence[PropertyDiscarder] = (),
                 base_url : str = "") -> None:
        self.property_allowlist = property_allowlist
        self.function_allowlist = function_allowlist
        self.resource_url_policy = resource_url_policy
        self.allow_keyframes = allow_keyframes
        self.property_discarders = list(property_discarders)
        self.base_url = base_url

    def is_property_allowed(self, name : str) -> bool:
        if name not in self.property_allowlist:
            return False
        for discarder in self.property_discarders:
            if discarder(name):
                return False
        return True

    def sanitize_selector(self, prelude : list[CSSNode]) -> str | None:
        tokens = tokenize(_tcss.serialize(prelude).strip())
        for i in range(0, len(tokens) - 1):
            if escapes_shadow_root(tokens[i], tokens[i + 1]):
                _logging.debug("dropping a CSS rule with a shadow root escaping selector")
                return None
        for token in tokens:
            if is_unsafe_token(token):
                return None
        res = serialize(tokens)
        if res == "":
            return None
        return res

    def sanitize_value(self, hints_type : URLPolicyHintsType, name : str, value : str) -> str | None:
        """Sanitize a property value. `None` result means the whole property
           must be dropped.
        """
        tokens = tokenize(value)
        i = 0
        while i < len(tokens):
            token = tokens[i]
            if is_unsafe_token(token):
                return None
            elif isinstance(token, FunctionToken):
                if token.lowercase_name not in self.function_allowlist:
                    _logging.debug("dropping CSS property `%s` because it uses function `%s`", name, token.lowercase_name)
                    return None
                if token.lowercase_name == "url":
                    i = skip_whitespace(tokens, i + 1)
                    arg = tokens[i]
                    if not isinstance(arg, StringToken):
                        return None
                    url : ParsedURL | None = join_url(self.base_url, arg.value)
                    if self.resource_url_policy is not None:
                        url = self.resource_url_policy(url, CSSURLPolicyHints(hints_type, name))
                    if url is None:
                        _logging.debug("dropping CSS property `%s` because its URL `%s` was rejected", name, arg.value)
                        return None
                    tokens[i] = StringToken(url.url)
            i += 1

        res = serialize(tokens).strip()
        if res == "":
            return None
        return res

    def sanitize_declarations(self, hints_type : URLPolicyHintsType, nodes : list[CSSNode]) -> str:
        decls = collect_declarations(nodes)
        res = []
        for name in sorted(decls.keys()):
            if not self.is_property_allowed(name):
                _logging.debug("dropping CSS property `%s`", name)
                continue
            value, important = decls[name]
            svalue = self.sanitize_value(hints_type, name, value)
            if svalue is None:
                continue
            res.append(f"{escape_ident(name)}: {svalue}{' !important' if important else ''};")
        return "".join(res)

    def sanitize_keyframe_key(self, prelude : list[CSSNode]) -> str | None:
        keys = []
        for token in tokenize(_tcss.serialize(prelude)):
            if token == WHITESPACE or token == COMMA or token == EOF:
                continue
            elif isinstance(token, PercentageToken):
                keys.append(token.representation + "%")
            elif isinstance(token, IdentToken) and token.ident.lower() == "from":
                keys.append("0%")
            elif isinstance(token, IdentToken) and token.ident.lower() == "to":
                keys.append("100%")
            else:
                return None
        if len(keys) == 0:
            return None
        return ", ".join(keys)

    def sanitize_keyframes(self, rule : _tcss.ast.AtRule) -> str | None:
        if not self.allow_keyframes or rule.content is None:
            return None

        name_tokens = [t for t in tokenize(_tcss.serialize(rule.prelude)) if t != WHITESPACE and t != EOF]
        if len(name_tokens) != 1:
            return None
        name_token = name_tokens[0]
        if isinstance(name_token, IdentToken):
            name = name_token.ident
        elif isinstance(name_token, StringToken):
            name = name_token.value
        else:
            return None
        # string names get re-serialized as idents, so they get the same checks
        if name == "" or name.lower() in keyframes_name_blacklist:
            return None

        frames = []
        for node in _tcss.parse_rule_list(rule.content, skip_comments=True, skip_whitespace=True):
            if not isinstance(node, _tcss.ast.QualifiedRule):
                continue
            key = self.sanitize_keyframe_key(node.prelude)
            if key is None:
                continue
            props = self.sanitize_declarations(URLPolicyHintsType.STYLE_ELEMENT, _tcss.parse_blocks_contents(node.content))
            frames.append(f"{key} {{ {props} }}")

        return f"@keyframes {escape_ident(name)} {{ {' '.join(frames)} }}"

    def sanitize_style_element(self, css_text : str) -> str:
        """Sanitize the contents of a `<style>` element."""
        res = []
        for node in _tcss.parse_stylesheet(css_text, skip_comments=True, skip_whitespace=True):
            srule : str | None
            if isinstance(node, _tcss.ast.QualifiedRule):
                selector = self.sanitize_selector(node.prelude)
                if selector is None:
                    continue
                props = self.sanitize_declarations(URLPolicyHintsType.STYLE_ELEMENT, _tcss.parse_blocks_contents(node.content))
                srule = f"{selector} {{ {props} }}"
            elif isinstance(node, _tcss.ast.AtRule) and node.lower_at_keyword == "keyframes":
                srule = self.sanitize_keyframes(node)
            else:
                if isinstance(node, _tcss.ast.AtRule):
                    _logging.debug("dropping CSS at-rule `@%s`", node.lower_at_keyword)
                continue

            if srule is not None:
                res.append(srule)
        return "\n".join(res)

    def sanitize_style_attribute(self, css_text : str) -> str:
        """Sanitize the value of a `style` attribute."""
        return self.sanitize_declarations(URLPolicyHintsType.STYLE_ATTRIBUTE, _tcss.parse_blocks_contents(css_text))

def sanitize_style_element(css_text : str,
                           property_allowlist : _t.AbstractSet[str],
                           function_allowlist : _t.AbstractSet[str],
                           resource_url_policy : ResourceURLPolicy | None = None,
                           allow_keyframes : bool = False,
                           property_discarders : _t.Sequence[PropertyDiscarder] = (),
                           base_url : str = "") -> str:
    return StyleSanitizer(property_allowlist, function_allowlist, resource_url_policy,
                          allow_keyframes, property_discarders, base_url).sanitize_style_element(css_text)

def sanitize_style_attribute(css_text : str,
                             property_allowlist : _t.AbstractSet[str],
                             function_allowlist : _t.AbstractSet[str],
                             resource_url_policy : ResourceURLPolicy | None = None,
                             property_discarders : _t.Sequence[PropertyDiscarder] = (),
                             base_url : str = "") -> str:
    # keyframes can't appear in attributes
    return StyleSanitizer(property_allowlist, function_allowlist, resource_url_policy,
                          False, property_discarders, base_url).sanitize_style_attribute(css_text)

def test_sanitize_style_element() -> None:
    props = frozenset(["color", "background-color", "background-image"])
    funcs = frozenset(["rgb", "url"])

    def check(css : str, expected : str, **kwargs : _t.Any) -> None:
        res = sanitize_style_element(css, props, funcs, **kwargs)
        assert res == expected, (css, res, expected)

    check("body { background-color: red; }", "body { background-color: red; }")
    check("body { font-size: 10px; }", "body {  }")
    check("body { color: red; background-color: red }", "body { background-color: red;color: red; }")
    check("body { color: red; color: blue; }", "body { color: blue; }")
    check("body { color: red !important; color: blue; }", "body { color: red !important; }")
    check("body { COLOR: rgb(1, 2, 3) }", "body { color: rgb(1, 2, 3); }")
    check("body { color: hsl(1, 2%, 3%) }", "body {  }")
    check("body { color: ; }", "body {  }")
    check("a, p > span { color: red }", "a, p > span { color: red; }")

    # rules that are not style rules are dropped
    check("@import url(https://example.org/a.css); @media screen { a { color: red } } a { color: red }",
          "a { color: red; }")
    check("@font-face { font-family: x; src: url(x.woff) }", "")

    # selectors escaping the shadow root
    check(":host { color: red }", "")
    check(":HOST(div) { color: red }", "")
    check(":host-context(div) { color: red }", "")
    check("div :host { color: red }", "")
    check(":ho/**/st { color: red }", ":ho st { color: red; }")

    # can't break out of `<style>`
    check("a { color: red </style><script>alert(1)</script> }", "a {  }")
    check("a { color: <!-- red }", "a {  }")

def test_sanitize_style_element_urls() -> None:
    props = frozenset(["background-image"])
    funcs = frozenset(["url"])

    def check(css : str, expected : str, **kwargs : _t.Any) -> None:
        res = sanitize_style_element(css, props, funcs, **kwargs)
        assert res == expected, (css, res, expected)

    check('body { background-image: url("https://example.org/") }',
          'body { background-image: url("https://example.org/"); }')
    check('body { background-image: url(https://example.org/) }',
          'body { background-image: url("https://example.org/"); }')
    check('body { background-image: url( "https://example.org/" ) }',
          'body { background-image: url( "https://example.org/" ); }')
    check('body { background-image: url("img.png") }',
          'body { background-image: url("https://example.org/dir/img.png"); }',
          base_url="https://example.org/dir/")

    seen : list[tuple[str, URLPolicyHints]] = []
    def reject(url : ParsedURL, hints : URLPolicyHints) -> ParsedURL | None:
        seen.append((url.url, hints))
        return None

    check('body { background-image: url("https://example.org/") }', "body {  }", resource_url_policy=reject)
    assert seen == [("https://example.org/", CSSURLPolicyHints(URLPolicyHintsType.STYLE_ELEMENT, "background-image"))]

    def rewrite(url : ParsedURL, hints : URLPolicyHints) -> ParsedURL | None:
        return parse_url("https://from-policy.com/")

    check('body { background-image: url("https://example.org/") }',
          'body { background-image: url("https://from-policy.com/"); }',
          resource_url_policy=rewrite)

    # `url` not in the function allow-list
    res = sanitize_style_element('a { background-image: url("https://example.org/") }', props, frozenset())
    assert res == "a {  }"

def test_sanitize_style_element_keyframes() -> None:
    props = frozenset(["color"])
    funcs = frozenset()

    def check(css : str, expected : str) -> None:
        res = sanitize_style_element(css, props, funcs, allow_keyframes=True)
        assert res == expected, (css, res, expected)

    check("@keyframes foo { from { color: red } 50% { color: green; opacity: 0 } to { color: blue } }",
          "@keyframes foo { 0% { color: red; } 50% { color: green; } 100% { color: blue; } }")
    check("@keyframes foo { 0%, 100% { color: red } }", "@keyframes foo { 0%, 100% { color: red; } }")
    check('@keyframes "test{}@" {}', r"@keyframes test\7b \7d \40  {  }")
    check("@keyframes foo { bad { color: red } }", "@keyframes foo {  }")
    check("@keyframes none { 0% { color: red } }", "")
    check('@keyframes "none" { 0% { color: red } }', "")
    check('@keyframes "INHERIT" { 0% { color: red } }', "")
    check('@keyframes "" { 0% { color: red } }', "")
    check("@keyframes a b { 0% { color: red } }", "")

    # sanitized output sanitizes to itself
    for css in ['@keyframes "x y" { 0% { color: red } }', '@keyframes "-1" { to { color: red } }']:
        once = sanitize_style_element(css, props, funcs, allow_keyframes=True)
        assert once != ""
        assert sanitize_style_element(once, props, funcs, allow_keyframes=True) == once, css

    res = sanitize_style_element("@keyframes foo { 0% { color: red } }", props, funcs)
    assert res == ""

def test_sanitize_style_attribute() -> None:
    props = frozenset(["color", "background-color", "animation-name", "transition"])
    funcs = frozenset(["url"])

    def check(css : str, expected : str, **kwargs : _t.Any) -> None:
        res = sanitize_style_attribute(css, props, funcs, **kwargs)
        assert res == expected, (css, res, expected)

    check("color: red; background-color: red", "background-color: red;color: red;")
    check("color: red; font-size: 10px", "color: red;")
    check("color: red !important", "color: red !important;")
    check("", "")
    check("animation-name: x; transition: all 1s", "",
          property_discarders=[lambda n: n.startswith("animation"), lambda n: n.startswith("transition")])

    seen : list[URLPolicyHints] = []
    def policy(url : ParsedURL, hints : URLPolicyHints) -> ParsedURL | None:
        seen.append(hints)
        return url

    sanitize_style_attribute('color: url("x")', props, funcs, resource_url_policy=policy)
    assert seen == [CSSURLPolicyHints(URLPolicyHintsType.STYLE_ATTRIBUTE, "color")]
