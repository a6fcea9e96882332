"""lxml helpers: hardened parsing, namespace-insensitive lookups and typed readers."""

from __future__ import annotations

from typing import Iterator, Optional

from lxml import etree

from mxscore.musicxml.errors import MusicXmlParseError, MusicXmlStructureError, SourceLocation


def new_parser(encoding: Optional[str] = None) -> etree.XMLParser:
    """Create a parser that never resolves entities or touches the network.

    Parsers are created per call; lxml parser objects must not be shared
    between threads that parse at the same time.
    """
    return etree.XMLParser(
        encoding=encoding,
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        remove_pis=True,
        huge_tree=False,
    )


def parse_xml(
    data: bytes, *, source: str = "document", encoding: Optional[str] = None
) -> etree._Element:
    """Parse ``data``; a given ``encoding`` overrides the XML declaration."""
    try:
        root = etree.fromstring(data, new_parser(encoding))
    except etree.XMLSyntaxError as exc:
        raise MusicXmlParseError(
            f"Malformed XML in {source}: {exc}",
            location=SourceLocation(line=exc.lineno),
            rule="xml_not_well_formed",
        ) from exc
    if root is None:
        raise MusicXmlParseError(f"Empty XML in {source}", rule="xml_not_well_formed")
    return root


def local_name(element: etree._Element) -> str:
    tag = element.tag
    if not isinstance(tag, str):
        return ""
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


def iter_children(element: etree._Element, name: Optional[str] = None) -> Iterator[etree._Element]:
    """Yield element children (skipping entities) optionally filtered by local name."""
    for child in element:
        if not isinstance(child.tag, str):
            continue
        if name is None or local_name(child) == name:
            yield child


def find_child(element: etree._Element, name: str) -> Optional[etree._Element]:
    return next(iter_children(element, name), None)


def has_child(element: etree._Element, name: str) -> bool:
    return find_child(element, name) is not None


def text_of(element: Optional[etree._Element]) -> str:
    if element is None:
        return ""
    return "".join(element.itertext()).strip()


def child_text(element: etree._Element, name: str) -> Optional[str]:
    """Stripped text of the first ``name`` child, or None when the child is absent."""
    child = find_child(element, name)
    if child is None:
        return None
    return text_of(child)


def get_attr(element: etree._Element, name: str) -> Optional[str]:
    value = element.get(name)
    if value is None:
        return None
    return value.strip()


def line_of(element: Optional[etree._Element]) -> Optional[int]:
    if element is None:
        return None
    return element.sourceline


def located(location: SourceLocation, element: Optional[etree._Element]) -> SourceLocation:
    return location.with_line(line_of(element))


def try_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def try_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value.strip())
    except ValueError:
        return None


def parse_int(value: str, *, what: str, location: SourceLocation) -> int:
    parsed = try_int(value)
    if parsed is None:
        raise MusicXmlParseError(
            f"Invalid {what} value {value!r}: expected an integer",
            location=location,
            rule="invalid_numeric_value",
        )
    return parsed


def parse_float(value: str, *, what: str, location: SourceLocation) -> float:
    parsed = try_float(value)
    if parsed is None:
        raise MusicXmlParseError(
            f"Invalid {what} value {value!r}: expected a number",
            location=location,
            rule="invalid_numeric_value",
        )
    return parsed


def require_child(
    element: etree._Element, name: str, location: SourceLocation
) -> etree._Element:
    child = find_child(element, name)
    if child is None:
        parent = local_name(element)
        raise MusicXmlStructureError(
            f"<{parent}> is missing required <{name}> element",
            location=located(location, element).with_extra(element=parent, required=name),
            rule="required_element_missing",
        )
    return child


def require_attr(element: etree._Element, name: str, location: SourceLocation) -> str:
    value = get_attr(element, name)
    if value is None or value == "":
        parent = local_name(element)
        raise MusicXmlStructureError(
            f"<{parent}> is missing required '{name}' attribute",
            location=located(location, element).with_extra(element=parent, attribute=name),
            rule="required_attribute_missing",
        )
    return value


def is_yes(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() == "yes"
