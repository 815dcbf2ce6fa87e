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

import logging as _logging
import sys as _sys
import typing as _t
from gettext import gettext

from kisstdlib import argparse
from kisstdlib.exceptions import *
from kisstdlib.logging import CounterHandler

from .builder import SanitizerOptions, make_sanitizer

__prog__ = "hoardy-sanitize"

def die(code : int, pattern : str, *args : _t.Any) -> _t.NoReturn:
    _logging.error(pattern, *args)
    _sys.exit(code)

def split_names(value : str) -> list[str]:
    return [name.strip() for name in value.split(",") if name.strip() != ""]

def options_of(cargs : _t.Any) -> SanitizerOptions:
    return SanitizerOptions(css = cargs.css,
                            elements = split_names(cargs.elements) if cargs.elements is not None else None,
                            attributes = split_names(cargs.attributes) if cargs.attributes is not None else None,
                            data_attributes = split_names(cargs.data) if cargs.data is not None else None,
                            style_attributes = cargs.style,
                            class_attributes = cargs.class_,
                            id_attributes = cargs.id,
                            id_reference_attributes = cargs.id_refs,
                            custom_elements = cargs.custom_elements,
                            animations = cargs.animations,
                            transitions = cargs.transitions,
                            open_shadow = cargs.open_shadow,
                            base_url = cargs.base_url)

def cmd_sanitize(cargs : _t.Any) -> None:
    if cargs.path is None or cargs.path == "-":
        html = _sys.stdin.read()
    else:
        with open(cargs.path, "r", encoding="utf-8", errors="replace") as f:
            html = f.read()

    sanitizer = make_sanitizer(options_of(cargs))
    if cargs.strict:
        res = sanitizer.sanitize_assert_unchanged(html)
    else:
        res = sanitizer.sanitize(html)

    _sys.stdout.write(res)
    if not res.endswith("\n"):
        _sys.stdout.write("\n")

def add_doc(fmt : argparse.BetterHelpFormatter) -> None:
    _ : _t.Callable[[str], str] = gettext

    fmt.add_text(_("# Examples"))

    fmt.start_section(_("Sanitize `page.html` with the default allow-lists"))
    fmt.add_code(f"{__prog__} page.html")
    fmt.end_section()

    fmt.start_section(_("Keep only paragraphs and links, with their `class` attributes"))
    fmt.add_code(f"{__prog__} --elements p,a --class < page.html")
    fmt.end_section()

    fmt.start_section(_("Keep sanitized `CSS` too, and fail if anything had to be changed"))
    fmt.add_code(f"{__prog__} --css --strict page.html")
    fmt.end_section()

class ArgumentParser(argparse.BetterArgumentParser):
    def error(self, message : str) -> _t.NoReturn:
        self.print_usage(_sys.stderr)
        die(2, "%s", message)

def make_argparser() -> ArgumentParser:
    _ : _t.Callable[[str], str] = gettext

    parser = ArgumentParser(
        prog=__prog__,
        description=_("Sanitize untrusted `HTML` (and, optionally, `CSS` embedded in it) so that it can be safely inserted into a web page."),
        additional_sections = [add_doc],
        allow_abbrev = False,
        add_version = True,
        add_help = False)
    parser.add_argument("-h", "--help", action="store_true", help=_("show this help message and exit"))
    parser.add_argument("--markdown", action="store_true", help=_("show help messages formatted in Markdown"))

    parser.add_argument("--debug", action="store_true", help=_("log every change made by sanitization to stderr"))
    parser.add_argument("--strict", action="store_true", help=_("fail, listing all changes, if sanitization had to change anything in the input"))
    parser.add_argument("--base-url", metavar="URL", type=str, default="", help=_("resolve relative URLs against this `URL` before giving them to URL policies"))

    grp = parser.add_argument_group("allow-lists")
    grp.add_argument("--elements", metavar="NAMES", type=str, default=None, help=_("comma-separated list of the only elements to allow; must be a subset of the elements allowed by default"))
    grp.add_argument("--attributes", metavar="NAMES", type=str, default=None, help=_("comma-separated list of the only attributes to allow; must be a subset of the attributes allowed by other options"))
    grp.add_argument("--data", metavar="NAMES", nargs="?", const="", default=None, help=_("allow the given comma-separated `data-*` attributes, or all of them when no `NAMES` are given"))
    grp.add_argument("--style", action="store_true", help=_("allow `style` attributes"))
    grp.add_argument("--class", dest="class_", action="store_true", help=_("allow `class` attributes"))
    grp.add_argument("--id", action="store_true", help=_("allow `id` attributes"))
    grp.add_argument("--id-refs", action="store_true", help=_("allow attributes referencing `id`s, like `for` and `aria-labelledby`"))
    grp.add_argument("--custom-element", dest="custom_elements", metavar="NAME", action="append", default=[], help=_("allow a custom element with this `NAME`; can be specified multiple times"))

    grp = parser.add_argument_group("CSS")
    grp.add_argument("--css", action="store_true", help=_("also allow and sanitize `<style>` elements and `style` attributes, and put the output into a shadow root"))
    grp.add_argument("--animations", action="store_true", help=_("with `--css`, allow `@keyframes` rules and `animation-*` and `offset-*` properties"))
    grp.add_argument("--transitions", action="store_true", help=_("with `--css`, allow `transition-*` properties"))
    grp.add_argument("--open-shadow", action="store_true", help=_("with `--css`, use an open shadow root instead of a closed one"))

    parser.add_argument("path", metavar="PATH", nargs="?", default=None, help=_("input `HTML` file; default: read from stdin"))
    parser.set_defaults(func=cmd_sanitize)

    return parser

def main() -> None:
    _ : _t.Callable[[str], str] = gettext

    parser = make_argparser()

    try:
        cargs = parser.parse_args(_sys.argv[1:])
    except CatastrophicFailure as exc:
        die(1, "%s", str(exc))

    if cargs.help:
        if cargs.markdown:
            parser = make_argparser()
            parser.set_formatter_class(argparse.MarkdownBetterHelpFormatter)
            print(parser.format_help(8192))
        else:
            print(parser.format_help())
        _sys.exit(0)

    _logging.basicConfig(level=_logging.DEBUG if cargs.debug else _logging.WARNING,
                         stream = _sys.stderr)
    errorcnt = CounterHandler()
    logger = _logging.getLogger()
    logger.addHandler(errorcnt)

    try:
        cargs.func(cargs)
    except KeyboardInterrupt:
        _logging.error("%s", _("Interrupted!"))
    except CatastrophicFailure as exc:
        _logging.error("%s", str(exc))
    except OSError as exc:
        _logging.error("%s", str(exc))
    finally:
        logger.removeHandler(errorcnt)

    _sys.stdout.flush()

    if errorcnt.errors > 0:
        _sys.exit(1)
    _sys.exit(0)

def test_make_argparser() -> None:
    parser = make_argparser()
    cargs = parser.parse_args(["--css", "--elements", "p, a,", "--data", "--class", "--custom-element", "x-y", "in.html"])
    opts = options_of(cargs)
    assert opts.css
    assert opts.elements == ["p", "a"]
    assert opts.attributes is None
    assert opts.data_attributes == []
    assert opts.class_attributes
    assert not opts.style_attributes
    assert opts.custom_elements == ["x-y"]
    assert cargs.path == "in.html"
    assert not cargs.help

    opts = options_of(parser.parse_args(["--data", "data-a,data-b"]))
    assert opts.data_attributes == ["data-a", "data-b"]
    assert not opts.css

    assert "--open-shadow" in parser.format_help(120)

def test_main(monkeypatch : _t.Any, capsys : _t.Any, caplog : _t.Any) -> None:
    import io

    def run(argv : list[str], stdin : str) -> tuple[int, str]:
        monkeypatch.setattr(_sys, "argv", [__prog__] + argv)
        monkeypatch.setattr(_sys, "stdin", io.StringIO(stdin))
        try:
            main()
        except SystemExit as exc:
            code = exc.code
        else:
            assert False
        out, _ = capsys.readouterr()
        return code, out # type: ignore

    code, out = run([], '<p onclick="x">hi</p>')
    assert code == 0
    assert out == "<p>hi</p>\n"

    code, out = run(["--attributes", "Title"], '<p title="t" dir="rtl">hi</p>')
    assert code == 0
    assert out == '<p title="t">hi</p>\n'

    code, out = run(["--strict"], '<p onclick="x">hi</p>')
    assert code == 1
    assert out == ""
    assert "Attribute: onclick was dropped" in caplog.text

    caplog.clear()
    code, out = run(["--elements", "p,script"], "<p>hi</p>")
    assert code == 1
    assert "`script` is not allowed" in caplog.text

    code, out = run(["--help"], "")
    assert code == 0
    assert "# Examples" in out

if __name__ == "__main__":
    main()
