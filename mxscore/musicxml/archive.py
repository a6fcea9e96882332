"""Locate the MusicXML payload inside compressed MXL containers."""

from __future__ import annotations

import io
import zipfile
import zlib
from typing import List, Optional

from mxscore.logging_utils import get_logger
from mxscore.musicxml.diagnostics import DiagnosticsCollector
from mxscore.musicxml.errors import MusicXmlError, MusicXmlParseError
from mxscore.musicxml.xml_helpers import get_attr, local_name, parse_xml

logger = get_logger(__name__)

ZIP_MAGIC = b"PK\x03\x04"
CONTAINER_PATH = "META-INF/container.xml"
DEFAULT_MAX_ENTRY_BYTES = 64 * 1024 * 1024


def is_zip_container(data: bytes) -> bool:
    return data[:4] == ZIP_MAGIC


def resolve_document(
    data: bytes,
    *,
    max_entry_bytes: int = DEFAULT_MAX_ENTRY_BYTES,
    diagnostics: Optional[DiagnosticsCollector] = None,
) -> bytes:
    """Return the XML bytes to parse: ``data`` itself, or the payload of an MXL archive."""
    if not is_zip_container(data):
        return data
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            entry = _find_mxl_entry(archive, diagnostics)
            info = archive.getinfo(entry)
            if info.file_size > max_entry_bytes:
                raise MusicXmlParseError(
                    f"Archive entry {entry!r} is {info.file_size} bytes; "
                    f"limit is {max_entry_bytes}",
                    rule="xml_not_well_formed",
                )
            logger.debug("mxl_entry_selected entry=%s size=%s", entry, info.file_size)
            return archive.read(entry)
    except (
        zipfile.BadZipFile,
        zipfile.LargeZipFile,
        zlib.error,
        EOFError,
        RuntimeError,  # encrypted entry
        NotImplementedError,  # unsupported compression method
    ) as exc:
        raise MusicXmlParseError(f"Corrupt MXL archive: {exc}", rule="xml_not_well_formed") from exc


def _find_mxl_entry(
    archive: zipfile.ZipFile, diagnostics: Optional[DiagnosticsCollector]
) -> str:
    names = archive.namelist()
    try:
        container_bytes = archive.read(CONTAINER_PATH)
    except KeyError:
        return _fallback_entry(names)
    try:
        root = parse_xml(container_bytes, source=CONTAINER_PATH)
    except MusicXmlError as exc:
        logger.warning("mxl_container_unreadable error=%s", exc)
        if diagnostics is not None:
            diagnostics.warn("container_unreadable", f"Unreadable {CONTAINER_PATH}: {exc.message}")
        return _fallback_entry(names)
    for elem in root.iter():
        if local_name(elem) != "rootfile":
            continue
        full_path = get_attr(elem, "full-path")
        if full_path and full_path in names:
            return full_path
        logger.warning("mxl_rootfile_missing full_path=%s", full_path)
        if diagnostics is not None:
            diagnostics.warn(
                "container_unreadable",
                f"{CONTAINER_PATH} points at missing entry {full_path!r}",
            )
        break
    return _fallback_entry(names)


def _fallback_entry(names: List[str]) -> str:
    """Pick a root-level .xml/.musicxml entry, then any .xml entry anywhere."""
    for name in names:
        lowered = name.lower()
        if name.startswith("META-INF/") or "/" in name:
            continue
        if lowered.endswith(".xml") or lowered.endswith(".musicxml"):
            return name
    for name in names:
        if name == CONTAINER_PATH:
            continue
        if name.lower().endswith(".xml"):
            return name
    raise MusicXmlParseError("No MusicXML content found in archive", rule="xml_not_well_formed")
