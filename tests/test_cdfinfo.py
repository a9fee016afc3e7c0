import pytest

from filesniff.cdfinfo import (
    DirEntry,
    DirType,
    app_mime,
    clsid_description,
    clsid_mime,
    dir_info,
    name_description,
    name_mime,
    summary_header_text,
)

MSI = (0x00000000000C1084, 0x46000000000000C0)


def test_clsid_known():
    assert clsid_mime(MSI) == "x-msi"
    assert clsid_description(MSI) == "MSI Installer"


def test_clsid_unknown():
    assert clsid_mime((0, 0)) is None
    assert clsid_description((1, 2)) is None


@pytest.mark.parametrize("text, expected", [
    ("Microsoft Office Word", "msword"),
    ("microsoft excel", "vnd.ms-excel"),
    ("Microsoft Office PowerPoint", "vnd.ms-powerpoint"),
    ("Windows Installer XML", "vnd.ms-msi"),
    ("Crystal Reports", "x-rpt"),
])
def test_app_mime(text, expected):
    assert app_mime(text) == expected


def test_app_mime_first_pattern_wins():
    assert app_mime("Excel sheet inside Word") == "msword"


def test_app_mime_unknown():
    assert app_mime("Some Editor") is None


def test_name_tables():
    assert name_mime("Workbook") == "vnd.ms-excel"
    assert name_mime("WordDocument") == "msword"
    assert name_description("WordDocument") == "Microsoft Word"
    assert name_description("DigitalSignature") == "Microsoft Installer"
    assert name_mime("Root Entry") is None
    assert name_description("Root Entry") is None


def test_dir_info_word():
    entries = [DirEntry("Root Entry", DirType.ROOT_STORAGE),
               DirEntry("WordDocument", DirType.USER_STREAM)]
    assert dir_info(entries) == "CDFV2 Microsoft Word"
    assert dir_info(entries, mime=True) == "application/msword"


def test_dir_info_type_must_match():
    entries = [DirEntry("WordDocument", DirType.USER_STORAGE)]
    assert dir_info(entries) is None


def test_dir_info_outlook_storage():
    entries = [DirEntry("__recip_version1.0_#00000000", DirType.USER_STORAGE)]
    assert dir_info(entries) == "CDFV2 Microsoft Outlook Message"
    assert dir_info(entries, True) == "application/vnd.ms-outlook"


def test_dir_info_order_prefers_encrypted():
    entries = [DirEntry("Workbook", DirType.USER_STREAM),
               DirEntry("EncryptedPackage", DirType.USER_STREAM)]
    assert dir_info(entries) == "CDFV2 Encrypted"


def test_dir_info_empty():
    assert dir_info([]) is None


def test_summary_header_endianness():
    little = summary_header_text(0xFFFE, 2, 0)
    big = summary_header_text(0xFEFF, 2, 0)
    assert little.startswith("Composite Document File V2 Document, Little Endian")
    assert big.startswith("Composite Document File V2 Document, Big Endian")


def test_summary_header_windows_and_mac_swap_order():
    windows = summary_header_text(0xFFFE, 2, 0x0106)
    mac = summary_header_text(0xFFFE, 1, 0x0106)
    assert windows.endswith(", Os: Windows, Version 6.1")
    assert mac.endswith(", Os: MacOS, Version 1.6")


def test_summary_header_other_os():
    text = summary_header_text(0xFFFE, 7, 0x0106)
    assert text.endswith(", Os 7, Version: 6.1")