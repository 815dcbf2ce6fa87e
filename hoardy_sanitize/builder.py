# Copyright (c) 2023-2024 Jan Malakhovski <oxij@oxij.org>
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

"""Builders for `HTMLSanitizer`s and `CSSSanitizer`s.

A builder starts from `DEFAULT_SANITIZER_TABLE` and every call replaces its
current table with a new one, so tables are never mutated.
"""

import dataclasses as _dc
import re as _re
import typing as _t

from kisstdlib.exceptions import *

from .exceptions import SanitizeError
from .url import *
from .table import *
from .default_table import DEFAULT_SANITIZER_TABLE
from .css_allowlists import CSS_FUNCTION_ALLOWLIST, CSS_PROPERTY_ALLOWLIST
from .css_sanitizer import PropertyDiscarder, StyleSanitizer
from .html_sanitizer import HTMLSanitizer, CSSSanitizer

class SanitizerBuilderError(SanitizeError): pass

id_reference_attributes = frozenset([
    "aria-activedescendant",
    "aria-controls",
    "aria-labelledby",
    "aria-owns",
    "for",
    "list",
])

animation_property_re = _re.compile(r"^(animation|offset)(-|$)")
transition_property_re = _re.compile(r"^transition(-|$)")

SanitizerBuilderType = _t.TypeVar("SanitizerBuilderType", bound="BaseSanitizerBuilder")

class BaseSanitizerBuilder:
    def __init__(self) -> None:
        self.table : SanitizerTable = DEFAULT_SANITIZER_TABLE
        self.called_build = False
        # controls 0-click exfiltration
        self.resource_url_policy : ResourceURLPolicy | None = None
        # controls 1-click exfiltration
        self.navigation_url_policy : NavigationURLPolicy | None = None
        self.base_url = ""

    def only_allow_elements(self : SanitizerBuilderType, names : _t.Iterable[str]) -> SanitizerBuilderType:
        """Narrow the set of allowed elements to `names`, each of which must be
           allowed by the current table.
        """
        allowed_elements : set[str] = set()
        element_policies : dict[str, ElementPolicy] = dict()
        for name in names:
            name = name.lower()
            if not self.table.is_allowed_element(name):
                raise SanitizerBuilderError("element `%s` is not allowed by the current sanitizer table", name)
            element_policy = self.table.element_policies.get(name, None)
            if element_policy is not None:
                element_policies[name] = element_policy
            else:
                allowed_elements.add(name)
        self.table = self.table.replace(allowed_elements = frozenset(allowed_elements),
                                        element_policies = readonly(element_policies))
        return self

    def allow_custom_element(self : SanitizerBuilderType, name : str, attributes : _t.Iterable[str] | None = None) -> SanitizerBuilderType:
        """Allow a custom element, with `attributes` on it kept as-is.
           Without `attributes`, only global attributes are kept.
        """
        name = name.lower()
        if not is_custom_element(name):
            raise SanitizerBuilderError("element `%s` is not a custom element", name)
        allowed_elements = set(self.table.allowed_elements)
        element_policies = dict(self.table.element_policies)
        if attributes is not None:
            element_policies[name] = readonly({an.lower(): KEEP_POLICY for an in attributes})
        else:
            allowed_elements.add(name)
        self.table = self.table.replace(allowed_elements = frozenset(allowed_elements),
                                        element_policies = readonly(element_policies))
        return self

    def only_allow_attributes(self : SanitizerBuilderType, names : _t.Iterable[str]) -> SanitizerBuilderType:
        """Narrow the sets of allowed global and per-element attributes to `names`,
           each of which must be allowed by the current table.
        """
        wanted = frozenset([name.lower() for name in names])
        for name in wanted:
            if not self.table.knows_attribute(name):
                raise SanitizerBuilderError("attribute `%s` is not allowed by the current sanitizer table", name)

        allowed_global_attributes = frozenset([an for an in self.table.allowed_global_attributes if an in wanted])
        global_attribute_policies = readonly({an: policy for an, policy in self.table.global_attribute_policies.items() if an in wanted})
        element_policies = readonly({en: readonly({an: policy for an, policy in element_policy.items() if an in wanted})
                                     for en, element_policy in self.table.element_policies.items()})
        self.table = self.table.replace(allowed_global_attributes = allowed_global_attributes,
                                        global_attribute_policies = global_attribute_policies,
                                        element_policies = element_policies)
        return self

    def allow_data_attributes(self : SanitizerBuilderType, names : _t.Iterable[str] | None = None) -> SanitizerBuilderType:
        """Allow all `data-*` attributes, or only the given ones."""
        if names is None:
            self.table = self.table.replace(globally_allowed_attribute_prefixes = self.table.globally_allowed_attribute_prefixes | {"data-"})
            return self

        allowed_global_attributes = set(self.table.allowed_global_attributes)
        for name in names:
            if not name.startswith("data-"):
                raise SanitizerBuilderError("data attribute `%s` does not begin with the prefix `data-`", name)
            allowed_global_attributes.add(name)
        self.table = self.table.replace(allowed_global_attributes = frozenset(allowed_global_attributes))
        return self

    def allow_global_attributes(self : SanitizerBuilderType, names : _t.Iterable[str]) -> SanitizerBuilderType:
        self.table = self.table.replace(allowed_global_attributes = self.table.allowed_global_attributes | frozenset(names))
        return self

    def allow_style_attributes(self : SanitizerBuilderType) -> SanitizerBuilderType:
        """Keep `style` attributes.

           `HTMLSanitizer`s keep their values as-is, so those can still
           `url(...)` things. `CSSSanitizer`s sanitize them.
        """
        global_attribute_policies = dict(self.table.global_attribute_policies)
        global_attribute_policies["style"] = AttributePolicy(AttributePolicyAction.KEEP_AND_SANITIZE_STYLE)
        self.table = self.table.replace(global_attribute_policies = readonly(global_attribute_policies))
        return self

    def allow_class_attributes(self : SanitizerBuilderType) -> SanitizerBuilderType:
        return self.allow_global_attributes(["class"])

    def allow_id_attributes(self : SanitizerBuilderType) -> SanitizerBuilderType:
        return self.allow_global_attributes(["id"])

    def allow_id_reference_attributes(self : SanitizerBuilderType) -> SanitizerBuilderType:
        return self.allow_global_attributes(id_reference_attributes)

    def with_resource_url_policy(self : SanitizerBuilderType, policy : ResourceURLPolicy) -> SanitizerBuilderType:
        self.resource_url_policy = policy
        return self

    def with_navigation_url_policy(self : SanitizerBuilderType, policy : NavigationURLPolicy) -> SanitizerBuilderType:
        self.navigation_url_policy = policy
        return self

    def with_base_url(self : SanitizerBuilderType, base_url : str) -> SanitizerBuilderType:
        """Resolve relative URLs against `base_url` before passing them to URL policies."""
        self.base_url = base_url
        return self

    def check_build(self) -> None:
        if self.called_build:
            raise SanitizerBuilderError("this builder has already built a sanitizer")
        self.called_build = True

class HTMLSanitizerBuilder(BaseSanitizerBuilder):
    def build(self) -> HTMLSanitizer:
        self.check_build()
        return HTMLSanitizer(self.table,
                             resource_url_policy = self.resource_url_policy,
                             navigation_url_policy = self.navigation_url_policy,
                             base_url = self.base_url)

class CSSSanitizerBuilder(BaseSanitizerBuilder):
    def __init__(self) -> None:
        super().__init__()
        self.animations_allowed = False
        self.transitions_allowed = False
        self.open_shadow = False

    def allow_animations(self) -> "CSSSanitizerBuilder":
        self.animations_allowed = True
        return self

    def allow_transitions(self) -> "CSSSanitizerBuilder":
        self.transitions_allowed = True
        return self

    def with_open_shadow(self) -> "CSSSanitizerBuilder":
        self.open_shadow = True
        return self

    def extend_table_for_css(self) -> None:
        global_attribute_policies = dict(self.table.global_attribute_policies)
        global_attribute_policies["style"] = AttributePolicy(AttributePolicyAction.KEEP_AND_SANITIZE_STYLE)
        self.table = self.table.replace(allowed_elements = self.table.allowed_elements | {"style"},
                                        allowed_global_attributes = self.table.allowed_global_attributes | {"id", "name", "class"},
                                        global_attribute_policies = readonly(global_attribute_policies))

    def build(self) -> CSSSanitizer:
        self.check_build()
        self.extend_table_for_css()

        property_discarders : list[PropertyDiscarder] = []
        if not self.animations_allowed:
            property_discarders.append(lambda name: animation_property_re.match(name) is not None)
        if not self.transitions_allowed:
            property_discarders.append(lambda name: transition_property_re.match(name) is not None)

        style_sanitizer = StyleSanitizer(CSS_PROPERTY_ALLOWLIST, CSS_FUNCTION_ALLOWLIST,
                                         self.resource_url_policy,
                                         self.animations_allowed,
                                         property_discarders,
                                         self.base_url)
        return CSSSanitizer(self.table,
                            style_sanitizer.sanitize_style_element,
                            style_sanitizer.sanitize_style_attribute,
                            resource_url_policy = self.resource_url_policy,
                            navigation_url_policy = self.navigation_url_policy,
                            base_url = self.base_url,
                            open_shadow = self.open_shadow)

@_dc.dataclass
class SanitizerOptions:
    css : bool = _dc.field(default=False)
    elements : list[str] | None = _dc.field(default=None)
    attributes : list[str] | None = _dc.field(default=None)
    # `[]` means "all `data-*` attributes"
    data_attributes : list[str] | None = _dc.field(default=None)
    style_attributes : bool = _dc.field(default=False)
    class_attributes : bool = _dc.field(default=False)
    id_attributes : bool = _dc.field(default=False)
    id_reference_attributes : bool = _dc.field(default=False)
    custom_elements : list[str] = _dc.field(default_factory=list)
    animations : bool = _dc.field(default=False)
    transitions : bool = _dc.field(default=False)
    open_shadow : bool = _dc.field(default=False)
    base_url : str = _dc.field(default="")

def make_sanitizer(opts : SanitizerOptions,
                   resource_url_policy : ResourceURLPolicy | None = None,
                   navigation_url_policy : NavigationURLPolicy | None = None) -> HTMLSanitizer:
    builder : HTMLSanitizerBuilder | CSSSanitizerBuilder
    if opts.css:
        cbuilder = CSSSanitizerBuilder()
        if opts.animations:
            cbuilder.allow_animations()
        if opts.transitions:
            cbuilder.allow_transitions()
        if opts.open_shadow:
            cbuilder.with_open_shadow()
        builder = cbuilder
    else:
        builder = HTMLSanitizerBuilder()

    for name in opts.custom_elements:
        builder.allow_custom_element(name)
    if opts.elements is not None:
        builder.only_allow_elements(opts.elements)
    if opts.data_attributes is not None:
        builder.allow_data_attributes(opts.data_attributes if len(opts.data_attributes) > 0 else None)
    if opts.style_attributes:
        builder.allow_style_attributes()
    if opts.class_attributes:
        builder.allow_class_attributes()
    if opts.id_attributes:
        builder.allow_id_attributes()
    if opts.id_reference_attributes:
        builder.allow_id_reference_attributes()
    if opts.attributes is not None:
        builder.only_allow_attributes(opts.attributes)

    if resource_url_policy is not None:
        builder.with_resource_url_policy(resource_url_policy)
    if navigation_url_policy is not None:
        builder.with_navigation_url_policy(navigation_url_policy)
    builder.with_base_url(opts.base_url)
    return builder.build()

def test_only_allow_elements() -> None:
    builder = HTMLSanitizerBuilder().only_allow_elements(["P", "a"])
    assert builder.table.allowed_elements == frozenset(["p"])
    assert set(builder.table.element_policies.keys()) == {"a"}
    assert builder.table.is_allowed_element("a")
    assert not builder.table.is_allowed_element("div")
    # the default table is never mutated
    assert DEFAULT_SANITIZER_TABLE.is_allowed_element("div")

    for bad in [["script"], ["form"], ["p", "div", "iframe"]]:
        try:
            HTMLSanitizerBuilder().only_allow_elements(bad)
        except SanitizerBuilderError:
            pass
        else:
            assert False, bad

    # can't widen after narrowing
    try:
        HTMLSanitizerBuilder().only_allow_elements(["p"]).only_allow_elements(["p", "div"])
    except SanitizerBuilderError:
        pass
    else:
        assert False

def test_only_allow_attributes() -> None:
    # names are case-insensitive, like the elements they are on
    builder = HTMLSanitizerBuilder().only_allow_attributes(["Title", "HREF", "dir"])
    table = builder.table
    assert table.allowed_global_attributes == frozenset(["title"])
    assert set(table.global_attribute_policies.keys()) == {"dir"}
    assert table.get_attribute_policy("href", "a").action == AttributePolicyAction.KEEP_AND_USE_NAVIGATION_URL_POLICY
    assert table.get_attribute_policy("src", "img").action == AttributePolicyAction.DROP
    assert table.get_attribute_policy("alt", "img").action == AttributePolicyAction.DROP

    for bad in [["onclick"], ["title", "style"]]:
        try:
            HTMLSanitizerBuilder().only_allow_attributes(bad)
        except SanitizerBuilderError:
            pass
        else:
            assert False, bad

def test_allow_attributes() -> None:
    table = HTMLSanitizerBuilder().allow_data_attributes().table
    assert table.get_attribute_policy("data-anything", "p") == KEEP_POLICY

    table = HTMLSanitizerBuilder().allow_data_attributes(["data-x"]).table
    assert table.get_attribute_policy("data-x", "p") == KEEP_POLICY
    assert table.get_attribute_policy("data-y", "p").action == AttributePolicyAction.DROP

    try:
        HTMLSanitizerBuilder().allow_data_attributes(["data-x", "x-data"])
    except SanitizerBuilderError:
        pass
    else:
        assert False

    table = HTMLSanitizerBuilder() \
        .allow_style_attributes() \
        .allow_class_attributes() \
        .allow_id_attributes() \
        .allow_id_reference_attributes() \
        .table
    assert table.get_attribute_policy("style", "p").action == AttributePolicyAction.KEEP_AND_SANITIZE_STYLE
    for name in ["class", "id", "for", "aria-owns", "list"]:
        assert table.get_attribute_policy(name, "p") == KEEP_POLICY, name

def test_allow_custom_element() -> None:
    table = HTMLSanitizerBuilder().allow_custom_element("my-Element").table
    assert table.is_allowed_element("my-element")
    assert table.get_attribute_policy("foo", "my-element").action == AttributePolicyAction.DROP

    table = HTMLSanitizerBuilder().allow_custom_element("my-element", ["Foo"]).table
    assert table.get_attribute_policy("foo", "my-element") == KEEP_POLICY

    for bad in ["div", "font-face", "my element"]:
        try:
            HTMLSanitizerBuilder().allow_custom_element(bad)
        except SanitizerBuilderError:
            pass
        else:
            assert False, bad

def test_build() -> None:
    builder = HTMLSanitizerBuilder()
    builder.build()
    try:
        builder.build()
    except SanitizerBuilderError:
        pass
    else:
        assert False

    cbuilder = CSSSanitizerBuilder()
    sanitizer = cbuilder.build()
    assert isinstance(sanitizer, CSSSanitizer)
    assert sanitizer.table.is_allowed_element("style")
    for name in ["id", "name", "class"]:
        assert sanitizer.table.get_attribute_policy(name, "div") == KEEP_POLICY, name
    try:
        cbuilder.build()
    except SanitizerBuilderError:
        pass
    else:
        assert False

def test_css_discarders() -> None:
    def styles(builder : CSSSanitizerBuilder) -> str:
        sanitizer = builder.build()
        assert sanitizer.style_attribute_sanitizer is not None
        return sanitizer.style_attribute_sanitizer("animation-name: x; offset-path: none; transition: all 1s; color: red")

    assert styles(CSSSanitizerBuilder()) == "color: red;"
    assert styles(CSSSanitizerBuilder().allow_animations()) == "animation-name: x;color: red;offset-path: none;"
    assert styles(CSSSanitizerBuilder().allow_transitions()) == "color: red;transition: all 1s;"

def test_make_sanitizer() -> None:
    sanitizer = make_sanitizer(SanitizerOptions(elements=["p", "a"], class_attributes=True))
    assert not isinstance(sanitizer, CSSSanitizer)
    assert sanitizer.sanitize('<p class="x"><b>b</b><a href="javascript:x">a</a></p>') == \
        '<p class="x"><a href="about:invalid#zClosurez">a</a></p>'

    sanitizer = make_sanitizer(SanitizerOptions(css=True, data_attributes=[]))
    assert isinstance(sanitizer, CSSSanitizer)
    assert sanitizer.table.get_attribute_policy("data-x", "p") == KEEP_POLICY
