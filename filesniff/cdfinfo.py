"""Lookup tables and text for Composite Document File (CDFV2) documents.

These helpers turn what a compound document holds into a description or
a MIME subtype: the class id of the root storage, the name of the
creating application, the names of its directory entries, and the fixed
part of its summary information.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable

__all__ = [
    "DirType",
    "DirEntry",
    "clsid_mime",
    "clsid_description",
    "app_mime",
    "name_mime",
    "name_description",
    "dir_info",
    "summary_header_text",
]


class DirType(enum.IntEnum):
    """Kind of a directory entry in a compound document."""

    EMPTY = 0
    USER_STORAGE = 1
    USER_STREAM = 2
    LOCKBYTES = 3
    PROPERTY = 4
    ROOT_STORAGE = 5


@dataclass(frozen=True)
class DirEntry:
    """A directory entry: its name and its kind."""

    name: str
    type: DirType


_MSI_CLSID = (0x00000000000C1084, 0x46000000000000C0)

_CLSID_MIME = {_MSI_CLSID: "x-msi"}
_CLSID_DESC = {_MSI_CLSID: "MSI Installer"}

_APP_MIME = (
    ("Word", "msword"),
    ("Excel", "vnd.ms-excel"),
    ("Powerpoint", "vnd.ms-powerpoint"),
    ("Crystal Reports", "x-rpt"),
    ("Advanced Installer", "vnd.ms-msi"),
    ("InstallShield", "vnd.ms-msi"),
    ("Microsoft Patch Compiler", "vnd.ms-msi"),
    ("NAnt", "vnd.ms-msi"),
    ("Windows Installer", "vnd.ms-msi"),
)

_NAME_MIME = (
    ("Book", "vnd.ms-excel"),
    ("Workbook", "vnd.ms-excel"),
    ("WordDocument", "msword"),
    ("PowerPoint", "vnd.ms-powerpoint"),
    ("DigitalSignature", "vnd.ms-msi"),
)

_NAME_DESC = (
    ("Book", "Microsoft Excel"),
    ("Workbook", "Microsoft Excel"),
    ("WordDocument", "Microsoft Word"),
    ("PowerPoint", "Microsoft PowerPoint"),
    ("DigitalSignature", "Microsoft Installer"),
)


@dataclass(frozen=True)
class _SectionInfo:
    name: str
    mime: str
    sections: tuple[tuple[str, DirType], ...]


_SECTION_INFO = (
    _SectionInfo("Encrypted", "encrypted", (
        ("EncryptedPackage", DirType.USER_STREAM),
        ("EncryptedSummary", DirType.USER_STREAM),
    )),
    _SectionInfo("QuickBooks", "quickbooks", (
        ("mfbu_header", DirType.USER_STREAM),
    )),
    _SectionInfo("Microsoft Excel", "vnd.ms-excel", (
        ("Book", DirType.USER_STREAM),
        ("Workbook", DirType.USER_STREAM),
    )),
    _SectionInfo("Microsoft Word", "msword", (
        ("WordDocument", DirType.USER_STREAM),
    )),
    _SectionInfo("Microsoft PowerPoint", "vnd.ms-powerpoint", (
        ("PowerPoint", DirType.USER_STREAM),
    )),
    _SectionInfo("Microsoft Outlook Message", "vnd.ms-outlook", (
        ("__properties_version1.0", DirType.USER_STREAM),
        ("__recip_version1.0_#00000000", DirType.USER_STORAGE),
    )),
)


def _search(text: str, table: Iterable[tuple[str, str]]) -> str | None:
    folded = text.casefold()
    return next((value for pattern, value in table
                 if pattern.casefold() in folded), None)


def clsid_mime(clsid: tuple[int, int]) -> str | None:
    """Return the MIME subtype for a root storage class id, if known."""
    return _CLSID_MIME.get(tuple(clsid))


def clsid_description(clsid: tuple[int, int]) -> str | None:
    """Return the description for a root storage class id, if known."""
    return _CLSID_DESC.get(tuple(clsid))


def app_mime(text: str) -> str | None:
    """Return the MIME subtype for the name of the creating application.

    The first pattern found anywhere in *text*, ignoring case, wins.
    """
    return _search(text, _APP_MIME)


def name_mime(name: str) -> str | None:
    """Return the MIME subtype suggested by a directory entry name."""
    return _search(name, _NAME_MIME)


def name_description(name: str) -> str | None:
    """Return the description suggested by a directory entry name."""
    return _search(name, _NAME_DESC)


def dir_info(entries: Iterable[DirEntry], mime: bool = False) -> str | None:
    """Classify a document by the streams and storages it holds.

    Returns ``CDFV2 <kind>`` or, with *mime*, ``application/<subtype>``;
    None when no known entry is present.
    """
    present = {(entry.name, DirType(entry.type)) for entry in entries}
    for info in _SECTION_INFO:
        if any(section in present for section in info.sections):
            return f"application/{info.mime}" if mime else f"CDFV2 {info.name}"
    return None


def summary_header_text(byte_order: int, os: int, os_version: int) -> str:
    """Describe the byte order and operating system of a summary stream."""
    version = os_version & 0xFFFFFFFF
    low, high = version & 0xFF, version >> 8
    endian = "Little" if byte_order == 0xFFFE else "Big"
    text = f"Composite Document File V2 Document, {endian} Endian"
    if os == 2:
        text += f", Os: Windows, Version {low}.{high}"
    elif os == 1:
        text += f", Os: MacOS, Version {high}.{low}"
    else:
        text += f", Os {os}, Version: {low}.{high}"
    return text