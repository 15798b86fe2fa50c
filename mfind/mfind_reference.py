"""
Parses textual method references into RefNode lists.

The grammar lives in reference.lark next to this module. Parsing never raises
for bad input: callers get a ParseResult whose status is 'error'.
"""

from pathlib import Path
from typing import List, Optional

from lark import Lark, Transformer
from lark.exceptions import LarkError

from mfind.mfind_datatypes import (
    Name, Lookup, CallSuffix, RefNode, ParseResult, dbg
)

# Call-suffixes spelled like a method step: `Foo.new.bar` constructs a Foo.
_CALL_SUFFIX_NAMES = ('new',)

_lark_parser: Optional[Lark] = None


class ReferenceTransformer(Transformer):
    """Turns the lark tree into Name / Lookup / CallSuffix nodes."""

    def start(self, items) -> List[RefNode]:
        return list(items)

    def head(self, items) -> Name:
        return Name(str(items[0]))

    def method_name(self, items) -> str:
        return str(items[0])

    def lookup(self, items) -> Lookup:
        sep, name = items
        return Lookup(str(sep), name)

    def index(self, items) -> CallSuffix:
        return CallSuffix('[]')


def _get_parser() -> Lark:
    """Get the singleton Lark parser instance."""
    global _lark_parser
    if _lark_parser is None:
        grammar_path = Path(__file__).parent / "reference.lark"
        _lark_parser = Lark(
            grammar_path.read_text(encoding="utf-8"),
            parser="lalr",
            transformer=ReferenceTransformer(),
        )
    return _lark_parser


def _mark_call_suffixes(nodes: List[RefNode]) -> List[RefNode]:
    # Only steps followed by something else apply to the prior result; a
    # trailing `.new` names the construction method itself.
    out = []
    last = len(nodes) - 1
    for i, node in enumerate(nodes):
        if (i < last and isinstance(node, Lookup) and node.sep in ('.', '::')
                and node.name in _CALL_SUFFIX_NAMES):
            out.append(CallSuffix(node.name, node.sep))
        else:
            out.append(node)
    return out


def parse_reference(text) -> ParseResult:
    """Parse a reference such as "Foo::Bar#baz" into its nodes."""
    if text is None:
        return ParseResult(status='error', text='', error_message="empty reference")
    text = str(text).strip()
    if not text:
        return ParseResult(status='error', text=text, error_message="empty reference")
    try:
        nodes = _get_parser().parse(text)
    except LarkError as e:
        dbg("parse_reference failed", repr(text), str(e).splitlines()[0] if str(e) else e)
        return ParseResult(status='error', text=text, error_message=str(e))
    return ParseResult(status='success', text=text, nodes=_mark_call_suffixes(nodes))
