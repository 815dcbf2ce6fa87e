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

"""The default sanitizer table: plain text markup, tables, lists, media, and
links, without any scripting, styling, or forms.
"""

from .table import *

allowed_elements = frozenset([
    "article", "section", "nav", "aside",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "header", "footer", "address", "main",
    "p", "hr", "pre", "blockquote", "div",
    "ol", "ul", "lh", "li", "dl", "dt", "dd",
    "figure", "figcaption",
    "em", "strong", "small", "s", "cite", "q", "dfn", "abbr",
    "ruby", "rb", "rt", "rtc", "rp",
    "data", "time", "code", "var", "samp", "kbd",
    "sub", "sup", "i", "b", "u", "mark", "bdi", "bdo", "span",
    "br", "wbr", "nobr", "ins", "del",
    "picture", "param", "track", "map",
    "table", "caption", "colgroup", "col", "tbody", "thead", "tfoot", "tr", "td", "th",
    "select", "datalist", "optgroup", "option", "output", "progress", "meter",
    "fieldset", "legend", "details", "summary", "menu", "dialog", "slot", "canvas",
    # obsolete, but harmless
    "font", "center", "acronym", "basefont", "big", "dir", "hgroup", "strike", "tt",
])

navigation_url = AttributePolicy(AttributePolicyAction.KEEP_AND_USE_NAVIGATION_URL_POLICY)
resource_url = AttributePolicy(AttributePolicyAction.KEEP_AND_USE_RESOURCE_URL_POLICY)
resource_srcset = AttributePolicy(AttributePolicyAction.KEEP_AND_USE_RESOURCE_URL_POLICY_FOR_SRCSET)

# `<link rel=stylesheet>` and friends would load and execute stuff
link_rels = frozenset([
    "alternate", "author", "bookmark", "canonical", "cite", "help", "icon",
    "license", "next", "prefetch", "dns-prefetch", "prerender", "preconnect",
    "preload", "prev", "search", "subresource",
])

element_policies = readonly({
    "a": readonly({"href": navigation_url}),
    "area": readonly({"href": navigation_url}),
    "link": readonly({"href": AttributePolicy(AttributePolicyAction.KEEP_AND_USE_RESOURCE_URL_POLICY,
                                              readonly({"rel": link_rels}))}),
    "source": readonly({"src": resource_url, "srcset": resource_srcset}),
    "img": readonly({"src": resource_url, "srcset": resource_srcset}),
    "video": readonly({"src": resource_url}),
    "audio": readonly({"src": resource_url}),
})

allowed_global_attributes = frozenset([
    "title",
    "aria-atomic", "aria-autocomplete", "aria-busy", "aria-checked", "aria-current",
    "aria-disabled", "aria-dropeffect", "aria-expanded", "aria-haspopup", "aria-hidden",
    "aria-invalid", "aria-label", "aria-level", "aria-live", "aria-multiline",
    "aria-multiselectable", "aria-orientation", "aria-posinset", "aria-pressed",
    "aria-readonly", "aria-relevant", "aria-required", "aria-selected", "aria-setsize",
    "aria-sort", "aria-valuemax", "aria-valuemin", "aria-valuenow", "aria-valuetext",
    "alt", "align", "autocapitalize", "autocomplete", "autocorrect", "autofocus", "autoplay",
    "bgcolor", "border", "cellpadding", "cellspacing", "checked", "cite", "color",
    "cols", "colspan", "controls", "controlslist", "coords", "crossorigin",
    "datetime", "disabled", "download", "draggable", "enctype",
    "face", "formenctype", "frameborder", "height", "hreflang", "hidden", "inert", "ismap",
    "label", "lang", "loop", "max", "maxlength", "media", "minlength", "min", "multiple",
    "muted", "nonce", "open", "playsinline", "placeholder", "poster", "preload",
    "rel", "required", "reversed", "role", "rows", "rowspan", "selected", "shape",
    "size", "sizes", "slot", "span", "spellcheck", "start", "step", "summary",
    "translate", "type", "usemap", "valign", "value", "width", "wrap",
    "itemscope", "itemtype", "itemid", "itemprop", "itemref",
])

def normalized(name : str, values : list[str]) -> AttributePolicy:
    return AttributePolicy(AttributePolicyAction.KEEP_AND_NORMALIZE, readonly({name: frozenset(values)}))

global_attribute_policies = readonly({
    "dir": normalized("dir", ["auto", "ltr", "rtl"]),
    "async": normalized("async", ["async"]),
    "loading": normalized("loading", ["eager", "lazy"]),
    "target": normalized("target", ["_self", "_blank"]),
})

DEFAULT_SANITIZER_TABLE = SanitizerTable(
    allowed_elements,
    element_policies,
    allowed_global_attributes,
    global_attribute_policies,
)

def test_default_table() -> None:
    table = DEFAULT_SANITIZER_TABLE
    for name in ["p", "div", "a", "img", "table", "details", "video"]:
        assert table.is_allowed_element(name), name
    for name in ["script", "style", "iframe", "object", "embed", "form", "input", "svg", "math", "base", "meta"]:
        assert not table.is_allowed_element(name), name

    assert table.get_attribute_policy("href", "a").action == AttributePolicyAction.KEEP_AND_USE_NAVIGATION_URL_POLICY
    assert table.get_attribute_policy("src", "img").action == AttributePolicyAction.KEEP_AND_USE_RESOURCE_URL_POLICY
    assert table.get_attribute_policy("srcset", "img").action == AttributePolicyAction.KEEP_AND_USE_RESOURCE_URL_POLICY_FOR_SRCSET
    assert table.get_attribute_policy("href", "div").action == AttributePolicyAction.DROP
    assert table.get_attribute_policy("title", "div").action == AttributePolicyAction.KEEP
    assert table.get_attribute_policy("dir", "div").action == AttributePolicyAction.KEEP_AND_NORMALIZE
    for name in ["onclick", "style", "class", "id", "name", "data-x", "srcdoc", "formaction"]:
        assert table.get_attribute_policy(name, "div").action == AttributePolicyAction.DROP, name

    link_href = table.get_attribute_policy("href", "link")
    assert link_href.satisfied_by({"rel": "icon", "href": "x"})
    assert not link_href.satisfied_by({"rel": "stylesheet", "href": "x"})
