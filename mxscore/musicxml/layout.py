"""Layout collaborator seam.

Page, system and staff layout, scaling and appearance do not affect musical
content. The assemblers hand those sub-trees to a :class:`LayoutParser` and
attach whatever it returns without inspecting it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Tuple

from lxml import etree

from mxscore.musicxml.xml_helpers import iter_children, line_of, local_name


class LayoutParser(Protocol):
    def parse(self, element: etree._Element) -> Any:
        ...


@dataclass(frozen=True)
class LayoutBlock:
    tag: str
    line: Optional[int]
    fields: Tuple[Tuple[str, str], ...] = ()

    def get(self, path: str) -> Optional[str]:
        for key, value in self.fields:
            if key == path:
                return value
        return None


class OpaqueLayoutParser:
    """Flatten a layout sub-tree into ``path -> text`` pairs.

    Paths are slash-joined local names relative to the block root; attributes
    appear as ``path@name``. Repeated children (for example odd/even page
    margins) keep their attribute entries, so callers can disambiguate them.
    """

    def parse(self, element: etree._Element) -> LayoutBlock:
        fields: List[Tuple[str, str]] = []
        _flatten(element, "", fields)
        return LayoutBlock(tag=local_name(element), line=line_of(element), fields=tuple(fields))


def _flatten(element: etree._Element, prefix: str, out: List[Tuple[str, str]]) -> None:
    for name, value in sorted(element.attrib.items()):
        out.append((f"{prefix}@{name}", value))
    children = list(iter_children(element))
    if not children:
        text = (element.text or "").strip()
        if text and prefix:
            out.append((prefix, text))
        return
    for child in children:
        path = f"{prefix}/{local_name(child)}" if prefix else local_name(child)
        _flatten(child, path, out)
