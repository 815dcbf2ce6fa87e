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

"""Tables describing which elements and attributes survive sanitization, and
how the values of surviving attributes get sanitized.
"""

import dataclasses as _dc
import enum as _enum
import re as _re
import types as _types
import typing as _t

class AttributePolicyAction(_enum.Enum):
    DROP = 0
    KEEP = 1
    KEEP_AND_SANITIZE_URL = 2
    KEEP_AND_NORMALIZE = 3
    KEEP_AND_SANITIZE_STYLE = 4
    KEEP_AND_USE_RESOURCE_URL_POLICY = 5
    KEEP_AND_USE_RESOURCE_URL_POLICY_FOR_SRCSET = 6
    KEEP_AND_USE_NAVIGATION_URL_POLICY = 7

@_dc.dataclass(frozen=True)
class AttributePolicy:
    action : AttributePolicyAction
    # attribute name -> values it is allowed to have for this attribute to be kept
    conditions : _t.Mapping[str, frozenset[str]] | None = _dc.field(default=None)

    def satisfied_by(self, attrs : _t.Mapping[str, str]) -> bool:
        """Check `conditions` against the given attributes. Attributes that are
           missing or empty satisfy any condition.
        """
        if self.conditions is None:
            return True
        for name, expected in self.conditions.items():
            value = attrs.get(name, "")
            if value != "" and value not in expected:
                return False
        return True

DROP_POLICY = AttributePolicy(AttributePolicyAction.DROP)
KEEP_POLICY = AttributePolicy(AttributePolicyAction.KEEP)

ElementPolicy = _t.Mapping[str, AttributePolicy]

def readonly(mapping : dict[str, _t.Any]) -> _t.Mapping[str, _t.Any]:
    return _types.MappingProxyType(mapping)

@_dc.dataclass(frozen=True)
class SanitizerTable:
    """All element and attribute names in these tables are lower-case."""
    allowed_elements : frozenset[str]
    element_policies : _t.Mapping[str, ElementPolicy]
    allowed_global_attributes : frozenset[str]
    global_attribute_policies : _t.Mapping[str, AttributePolicy]
    globally_allowed_attribute_prefixes : frozenset[str] = _dc.field(default=frozenset())

    def is_allowed_element(self, name : str) -> bool:
        # `<form>` can be used to clobber DOM properties of the page it gets put into
        return name != "form" and \
            (name in self.allowed_elements or name in self.element_policies)

    def get_attribute_policy(self, attribute_name : str, element_name : str) -> AttributePolicy:
        element_policy = self.element_policies.get(element_name, None)
        if element_policy is not None:
            policy = element_policy.get(attribute_name, None)
            if policy is not None:
                return policy

        if attribute_name in self.allowed_global_attributes:
            return KEEP_POLICY

        policy = self.global_attribute_policies.get(attribute_name, None)
        if policy is not None:
            return policy

        for prefix in self.globally_allowed_attribute_prefixes:
            if attribute_name.startswith(prefix):
                return KEEP_POLICY

        return DROP_POLICY

    def knows_attribute(self, attribute_name : str) -> bool:
        """Is `attribute_name` kept on any element?"""
        if attribute_name in self.allowed_global_attributes or \
           attribute_name in self.global_attribute_policies:
            return True
        for element_policy in self.element_policies.values():
            if attribute_name in element_policy:
                return True
        for prefix in self.globally_allowed_attribute_prefixes:
            if attribute_name.startswith(prefix):
                return True
        return False

    def replace(self, **kwargs : _t.Any) -> "SanitizerTable":
        return _dc.replace(self, **kwargs)

forbidden_custom_element_names = frozenset([
    "annotation-xml",
    "color-profile",
    "font-face",
    "font-face-src",
    "font-face-uri",
    "font-face-format",
    "font-face-name",
    "missing-glyph",
])

custom_element_re = _re.compile(r"[a-z][-_.a-z0-9]*-[-_.a-z0-9]*", _re.IGNORECASE)

def is_custom_element(name : str) -> bool:
    return name.lower() not in forbidden_custom_element_names and \
        custom_element_re.fullmatch(name) is not None

def test_attribute_policy() -> None:
    policy = AttributePolicy(AttributePolicyAction.KEEP, readonly({"rel": frozenset(["icon", "next"])}))
    assert policy.satisfied_by({"rel": "icon"})
    assert policy.satisfied_by({"rel": ""})
    assert policy.satisfied_by({})
    assert not policy.satisfied_by({"rel": "stylesheet"})
    assert not policy.satisfied_by({"rel": "ICON"})
    assert KEEP_POLICY.satisfied_by({"rel": "stylesheet"})

def test_sanitizer_table() -> None:
    href = AttributePolicy(AttributePolicyAction.KEEP_AND_USE_NAVIGATION_URL_POLICY)
    dir_ = AttributePolicy(AttributePolicyAction.KEEP_AND_NORMALIZE, readonly({"dir": frozenset(["ltr", "rtl"])}))
    table = SanitizerTable(frozenset(["div", "form"]),
                           readonly({"a": readonly({"href": href})}),
                           frozenset(["title"]),
                           readonly({"dir": dir_}),
                           frozenset(["data-"]))

    assert table.is_allowed_element("div")
    assert table.is_allowed_element("a")
    assert not table.is_allowed_element("form")
    assert not table.is_allowed_element("script")

    assert table.get_attribute_policy("href", "a") is href
    assert table.get_attribute_policy("href", "div") == DROP_POLICY
    assert table.get_attribute_policy("title", "div") == KEEP_POLICY
    assert table.get_attribute_policy("dir", "span") is dir_
    assert table.get_attribute_policy("data-x", "div") == KEEP_POLICY
    assert table.get_attribute_policy("onclick", "div") == DROP_POLICY

    assert table.knows_attribute("href")
    assert table.knows_attribute("data-y")
    assert not table.knows_attribute("onclick")

    narrowed = table.replace(allowed_elements=frozenset())
    assert not narrowed.is_allowed_element("div")
    assert table.is_allowed_element("div")

def test_is_custom_element() -> None:
    for name in ["my-element", "x-", "a.b-c_d", "MY-ELEMENT"]:
        assert is_custom_element(name), name
    for name in ["div", "-x", "1-x", "my element-x", "font-face", "ANNOTATION-XML", ""]:
        assert not is_custom_element(name), name
