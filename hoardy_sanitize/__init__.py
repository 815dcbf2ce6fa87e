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

"""Sanitization of untrusted `HTML` and `CSS`.

`sanitize_html` keeps only the elements and attributes of
`DEFAULT_SANITIZER_TABLE`, `sanitize_html_with_css` additionally keeps
sanitized `<style>` elements and `style` attributes and isolates them in a
shadow root. Use `HTMLSanitizerBuilder` and `CSSSanitizerBuilder` to
customize either.
"""

from .exceptions import SanitizeError
from .url import ParsedURL, parse_url, URLPolicyHintsType, CSSURLPolicyHints, HTMLAttributeURLPolicyHints
from .table import AttributePolicyAction, AttributePolicy, SanitizerTable
from .default_table import DEFAULT_SANITIZER_TABLE
from .css_sanitizer import sanitize_style_element, sanitize_style_attribute
from .html_sanitizer import HTMLSanitizer, CSSSanitizer, UnexpectedChangeError, \
    sanitize_html, sanitize_html_to_fragment, sanitize_html_assert_unchanged, sanitize_html_with_css, \
    parse_inert_fragment, serialize_fragment
from .builder import SanitizerBuilderError, HTMLSanitizerBuilder, CSSSanitizerBuilder, SanitizerOptions, make_sanitizer
