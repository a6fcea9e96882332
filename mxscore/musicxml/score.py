"""Top-level assembly: root checks, score metadata, part-list and parts."""

from __future__ import annotations

from typing import List, Optional, Set

from lxml import etree

from mxscore.config import Settings
from mxscore.logging_utils import get_logger
from mxscore.musicxml import validation
from mxscore.musicxml.diagnostics import DiagnosticsCollector
from mxscore.musicxml.errors import MusicXmlStructureError, SourceLocation, UnsupportedFormatError
from mxscore.musicxml.layout import LayoutParser
from mxscore.musicxml.models import (
    Credit,
    Encoding,
    Identification,
    MeasureContext,
    Part,
    Score,
    Work,
)
from mxscore.musicxml.part import PartAssembler
from mxscore.musicxml.xml_helpers import (
    child_text,
    find_child,
    get_attr,
    iter_children,
    local_name,
    text_of,
    try_int,
)

logger = get_logger(__name__)

PARTWISE_ROOT = "score-partwise"
TIMEWISE_ROOT = "score-timewise"


class ScoreAssembler:
    def __init__(
        self,
        diagnostics: DiagnosticsCollector,
        settings: Settings,
        layout_parser: LayoutParser,
    ) -> None:
        self.diagnostics = diagnostics
        self.layout_parser = layout_parser
        self.part_assembler = PartAssembler(diagnostics, settings, layout_parser)

    def assemble(self, root: etree._Element, seed: Optional[MeasureContext] = None) -> Score:
        root_name = local_name(root)
        location = SourceLocation(line=root.sourceline)
        if root_name == TIMEWISE_ROOT:
            raise UnsupportedFormatError(
                "score-timewise documents are not supported; convert to score-partwise",
                location=location,
                rule="score_timewise_unsupported",
            )
        if root_name != PARTWISE_ROOT:
            raise MusicXmlStructureError(
                f"Unrecognized root element <{root_name}>; expected <{PARTWISE_ROOT}>",
                location=location,
                rule="unrecognized_root",
            )

        part_list = find_child(root, "part-list")
        if part_list is None:
            self.diagnostics.warn(
                "part_list_missing", "Score has no <part-list>; part names are unknown", location
            )
        else:
            for group in iter_children(part_list, "part-group"):
                self.diagnostics.warn(
                    "part_group_unsupported",
                    f"<part-group type={get_attr(group, 'type')!r}> ignored",
                    location.with_line(group.sourceline),
                )

        parts = self._assemble_parts(root, part_list, seed)

        work = self._parse_work(root)
        identification = self._parse_identification(root)
        movement_title = child_text(root, "movement-title") or None
        title = (work.title if work is not None else None) or movement_title
        composer = identification.creator("composer") if identification is not None else None

        defaults = find_child(root, "defaults")
        layouts = self._parse_defaults(defaults)
        score = Score(
            parts=tuple(parts),
            version=get_attr(root, "version") or "1.0",
            title=title,
            composer=composer,
            work=work,
            movement_number=child_text(root, "movement-number") or None,
            movement_title=movement_title,
            identification=identification,
            credits=tuple(self._parse_credit(credit) for credit in iter_children(root, "credit")),
            **layouts,
        )
        logger.debug("score_assembled parts=%s version=%s", len(parts), score.version)
        return score

    def _assemble_parts(
        self,
        root: etree._Element,
        part_list: Optional[etree._Element],
        seed: Optional[MeasureContext],
    ) -> List[Part]:
        parts: List[Part] = []
        seen: Set[str] = set()
        for part_el in iter_children(root, "part"):
            part = self.part_assembler.assemble(part_el, part_list, seed)
            if part.id in seen:
                validation.enforce(
                    validation.RuleViolation.of(
                        "part_id_unique_validation",
                        f"Duplicate part id {part.id!r}",
                        part_id=part.id,
                    ),
                    SourceLocation(part=part.id, line=part_el.sourceline),
                )
            seen.add(part.id)
            parts.append(part)
        return parts

    def _parse_work(self, root: etree._Element) -> Optional[Work]:
        work_el = find_child(root, "work")
        if work_el is None:
            return None
        return Work(
            title=child_text(work_el, "work-title") or None,
            number=child_text(work_el, "work-number") or None,
        )

    def _parse_identification(self, root: etree._Element) -> Optional[Identification]:
        ident = find_child(root, "identification")
        if ident is None:
            return None
        creators = tuple(
            (get_attr(creator, "type") or "", text_of(creator))
            for creator in iter_children(ident, "creator")
        )
        rights = tuple(text_of(item) for item in iter_children(ident, "rights"))
        encoding = None
        encoding_el = find_child(ident, "encoding")
        if encoding_el is not None:
            encoding = Encoding(
                software=tuple(text_of(item) for item in iter_children(encoding_el, "software")),
                date=child_text(encoding_el, "encoding-date") or None,
                description=child_text(encoding_el, "encoding-description") or None,
            )
        return Identification(
            creators=creators,
            rights=rights,
            source=child_text(ident, "source") or None,
            encoding=encoding,
        )

    def _parse_credit(self, credit: etree._Element) -> Credit:
        return Credit(
            page=try_int(get_attr(credit, "page")),
            type=child_text(credit, "credit-type") or None,
            words=tuple(
                text_of(words)
                for words in iter_children(credit, "credit-words")
                if text_of(words)
            ),
        )

    def _parse_defaults(self, defaults: Optional[etree._Element]) -> dict:
        if defaults is None:
            return {}
        parse = self.layout_parser.parse
        scaling = find_child(defaults, "scaling")
        page_layout = find_child(defaults, "page-layout")
        system_layout = find_child(defaults, "system-layout")
        appearance = find_child(defaults, "appearance")
        return {
            "scaling": parse(scaling) if scaling is not None else None,
            "page_layout": parse(page_layout) if page_layout is not None else None,
            "system_layout": parse(system_layout) if system_layout is not None else None,
            "staff_layouts": tuple(parse(el) for el in iter_children(defaults, "staff-layout")),
            "appearance": parse(appearance) if appearance is not None else None,
        }
