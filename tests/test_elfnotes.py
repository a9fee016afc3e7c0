import io
import struct

import pytest

from filesniff.elfdefs import (
    AT_LINUX_EXECFN,
    AT_LINUX_UID,
    ELFCLASS32,
    ELFCLASS64,
    NT_AUXV,
    NT_GNU_BUILD_ID,
    NT_GNU_VERSION,
    NT_GO_BUILD_ID,
    NT_NETBSD_MARCH,
    NT_NETBSD_PAX,
    NT_PRPSINFO,
    ElfLayout,
)
from filesniff.elfnotes import (
    CoreStyle,
    NoteContext,
    NoteFlags,
    freebsd_version_text,
    netbsd_version_text,
    process_note,
    process_notes,
)


def _pad4(raw: bytes) -> bytes:
    return raw + b"\0" * (-len(raw) % 4)


def make_note(name: bytes, ntype: int, desc: bytes, little: bool = True,
              namesz: int | None = None) -> bytes:
    order = "<" if little else ">"
    name_field = name + b"\0"
    if namesz is None:
        namesz = len(name_field)
    header = struct.pack(order + "III", namesz, len(desc), ntype)
    return header + _pad4(name_field) + _pad4(desc)


def context32(little: bool = True, **kwargs) -> NoteContext:
    return NoteContext(layout=ElfLayout(ELFCLASS32, little), **kwargs)


def test_gnu_abi_tag():
    ctx = context32()
    desc = struct.pack("<IIII", 0, 2, 6, 32)
    note = make_note(b"GNU", NT_GNU_VERSION, desc)
    assert process_note(ctx, note, 0) == len(note)
    assert ctx.text() == ", for GNU/Linux 2.6.32"
    assert ctx.flags & NoteFlags.DID_OS_NOTE


def test_gnu_abi_tag_big_endian_matches_little():
    little = context32(True)
    big = context32(False)
    process_notes(little, make_note(b"GNU", NT_GNU_VERSION,
                                    struct.pack("<IIII", 0, 3, 2, 0)))
    process_notes(big, make_note(b"GNU", NT_GNU_VERSION,
                                 struct.pack(">IIII", 0, 3, 2, 0), little=False))
    assert little.text() == big.text()
    assert little.text().startswith(", for GNU/Linux")


def test_sha1_build_id():
    ctx = context32()
    desc = bytes(range(1, 21))
    process_notes(ctx, make_note(b"GNU", NT_GNU_BUILD_ID, desc))
    assert ctx.text() == ", BuildID[sha1]=" + desc.hex()


def test_build_id_reported_once():
    ctx = context32()
    data = (make_note(b"GNU", NT_GNU_BUILD_ID, b"\x11" * 16)
            + make_note(b"GNU", NT_GNU_BUILD_ID, b"\x22" * 16))
    process_notes(ctx, data)
    assert ctx.text().count("BuildID") == 1
    assert "md5/uuid" in ctx.text()


def test_pax_flags():
    ctx = context32()
    process_notes(ctx, make_note(b"PaX", NT_NETBSD_PAX, struct.pack("<I", 0x11)))
    assert ctx.text() == ", PaX: +mprotect,+ASLR"


def test_netbsd_march_note():
    ctx = context32()
    process_notes(ctx, make_note(b"NetBSD", NT_NETBSD_MARCH, b"earmv7hf\0"))
    assert ctx.text() == ", compiled for: earmv7hf"
    assert ctx.flags & NoteFlags.DID_NETBSD_MARCH


def test_netbsd_old_version_has_no_number():
    assert netbsd_version_text(199905) == ", for NetBSD"


def test_netbsd_version_number():
    assert netbsd_version_text(701000000) == ", for NetBSD 7.1"


def test_freebsd_special_version():
    assert freebsd_version_text(460002) == ", for FreeBSD 4.6.2"


def test_freebsd_version_prefix():
    assert freebsd_version_text(1200086).startswith(", for FreeBSD 12.")


def test_exhausted_note_count_stops():
    ctx = context32(note_count=0)
    note = make_note(b"GNU", NT_GNU_BUILD_ID, b"\x11" * 20)
    assert process_note(ctx, note, 0) == 0
    assert ctx.text() == ""


def test_bad_name_size():
    ctx = context32()
    data = struct.pack("<III", 0x80000000, 0, 1) + b"\0" * 8
    assert process_note(ctx, data, 0) == 0
    assert ctx.text().startswith(", bad note name size")


def test_empty_note_ends_walk():
    ctx = context32()
    data = struct.pack("<III", 0, 0, 0) + b"\0" * 20
    assert process_note(ctx, data, 0) == len(data)


def test_truncated_header():
    ctx = context32()
    assert process_note(ctx, b"\0" * 4, 0) == 12


def test_svr4_core_program_name():
    ctx = context32(flags=NoteFlags.IS_CORE)
    desc = bytearray(60)
    desc[28:34] = b"myprog"
    process_notes(ctx, make_note(b"CORE", NT_PRPSINFO, bytes(desc)))
    assert ctx.text() == ", SVR4-style, from 'myprog'"
    assert ctx.core_style is CoreStyle.SVR4
    assert ctx.flags & NoteFlags.DID_CORE


def test_core_note_ignored_when_not_core():
    ctx = context32()
    desc = bytearray(60)
    desc[28:34] = b"myprog"
    process_notes(ctx, make_note(b"CORE", NT_PRPSINFO, bytes(desc)))
    assert "from" not in ctx.text()
    assert ctx.text() == ", SVR4-style"


def _auxv_context(**kwargs) -> NoteContext:
    return context32(
        flags=NoteFlags.IS_CORE | NoteFlags.DID_CORE_STYLE,
        core_style=CoreStyle.SVR4,
        **kwargs,
    )


def test_auxv_numeric_entry():
    ctx = _auxv_context()
    desc = struct.pack("<IIII", AT_LINUX_UID, 1000, 0, 0)
    process_notes(ctx, make_note(b"CORE", NT_AUXV, desc))
    assert ctx.text() == ", real uid: 1000"
    assert ctx.flags & NoteFlags.DID_AUXV


def test_auxv_string_entry_read_from_stream():
    phdr = struct.pack("<IIIIIIII", 1, 64, 0x1000, 0, 64, 64, 0, 4)
    image = phdr.ljust(64, b"\0") + b"/bin/prog\0".ljust(64, b"\0")
    stream = io.BytesIO(image)
    ctx = _auxv_context(stream=stream, ph_offset=0, ph_count=1,
                        file_size=len(image))
    desc = struct.pack("<II", AT_LINUX_EXECFN, 0x1000)
    process_notes(ctx, make_note(b"CORE", NT_AUXV, desc))
    assert ctx.text() == ", execfn: '/bin/prog'"
    assert stream.tell() == 0


def test_auxv_entry_limit_sets_error():
    ctx = _auxv_context()
    desc = struct.pack("<II", 0, 0) * 60
    process_notes(ctx, make_note(b"CORE", NT_AUXV, desc))
    assert ctx.error == "Too many ELF Auxv elements"


def test_64bit_layout_reads_build_id():
    ctx = NoteContext(layout=ElfLayout(ELFCLASS64, True))
    desc = b"\x01" * 8
    process_notes(ctx, make_note(b"GNU", NT_GNU_BUILD_ID, desc))
    assert ctx.text() == ", BuildID[xxHash]=" + desc.hex()


@pytest.mark.parametrize("value", [460002, 199905, 500000, 1300139])
def test_freebsd_text_starts_with_os(value):
    assert freebsd_version_text(value).startswith(", for FreeBSD ")