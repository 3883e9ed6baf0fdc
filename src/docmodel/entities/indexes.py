"""
Index Expressions

Documents declare their indexes as a compact expression:

    __indexes__ = "{name},unique;{parent_id,created},background;"

Each `{...}` group lists the indexed fields (wire names, dotted paths allowed),
followed by comma separated options. Groups end with `;` (optional for the
last one). Unknown options are ignored.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Tuple, Union
import re

from ..errors import IndexSyntaxError

OPTION_KEYWORDS = ("index", "unique", "sparse", "background", "dropdups")

_TOKEN = re.compile(r"\{|\}|,|;|[A-Za-z_][A-Za-z0-9_.$]*")


@dataclass
class IndexSpec:
    """A parsed index: ordered fields plus options"""
    fields: List[str] = field(default_factory=list)
    options: List[str] = field(default_factory=list)

    @property
    def unique(self) -> bool:
        return "unique" in self.options

    @property
    def sparse(self) -> bool:
        return "sparse" in self.options

    @property
    def background(self) -> bool:
        return "background" in self.options

    @property
    def name(self) -> str:
        return "_".join(f"{f}_1" for f in self.fields)

    def keys(self) -> List[Tuple[str, int]]:
        """Key list in the shape driver create_index calls expect"""
        return [(f, 1) for f in self.fields]

    def _append_option(self, option: str) -> None:
        option = option.strip().lower()
        if option in OPTION_KEYWORDS:
            self.options.append(option)


def _tokens(expression: str) -> Iterable[str]:
    compact = "".join(expression.split())
    position = 0
    while position < len(compact):
        match = _TOKEN.match(compact, position)
        if not match:
            raise IndexSyntaxError(
                f"Syntax error in parsing index expression at {position}: {expression!r}"
            )
        yield match.group(0)
        position = match.end()


def parse_index_expression(expression: str) -> List[IndexSpec]:
    """
    Parse an index expression into IndexSpec entries.

    Raises:
        IndexSyntaxError: On unbalanced braces, empty field groups or stray characters
    """
    parsed: List[IndexSpec] = []
    current = IndexSpec()
    in_braces = False

    def fail() -> IndexSyntaxError:
        return IndexSyntaxError(f"Syntax error in parsing index expression: {expression!r}")

    for token in _tokens(expression or ""):
        if token == "{":
            if in_braces:
                raise fail()
            in_braces = True
        elif token == "}":
            if not in_braces or not current.fields:
                raise fail()
            in_braces = False
        elif token == ",":
            continue
        elif token == ";":
            if in_braces:
                raise fail()
            if current.fields:
                parsed.append(current)
            current = IndexSpec()
        elif in_braces:
            current.fields.append(token)
        else:
            current._append_option(token)

    if in_braces:
        raise fail()
    if current.fields:
        parsed.append(current)

    return parsed


def coerce_indexes(declared: Union[str, List[Any], None]) -> List[IndexSpec]:
    """Accept either an expression string or a list of IndexSpec / expressions"""
    if not declared:
        return []
    if isinstance(declared, str):
        return parse_index_expression(declared)

    specs: List[IndexSpec] = []
    for item in declared:
        if isinstance(item, IndexSpec):
            specs.append(item)
        else:
            specs.extend(parse_index_expression(str(item)))
    return specs


__all__ = ["IndexSpec", "parse_index_expression", "coerce_indexes", "OPTION_KEYWORDS"]
