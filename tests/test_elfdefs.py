import struct

import pytest

from filesniff.elfdefs import (
    ELFCLASS32,
    ELFCLASS64,
    ElfLayout,
    NoteHeader,
    ProgramHeader,
    SectionHeader,
)


@pytest.fixture(params=[(ELFCLASS32, True), (ELFCLASS32, False),
                        (ELFCLASS64, True), (ELFCLASS64, False)])
def layout(request):
    return ElfLayout(*request.param)


def _order(layout):
    return "<" if layout.little_endian else ">"


def test_record_sizes_fixed_by_format():
    l32 = ElfLayout(ELFCLASS32, True)
    l64 = ElfLayout(ELFCLASS64, True)
    assert (l32.phdr_size, l32.shdr_size, l32.nhdr_size) == (32, 40, 12)
    assert (l64.phdr_size, l64.shdr_size, l64.nhdr_size) == (56, 64, 12)
    assert (l32.dyn_size, l64.dyn_size) == (8, 16)


def test_unknown_class_rejected():
    with pytest.raises(ValueError):
        ElfLayout(3, True)


def test_u32_byte_order():
    data = b"\x01\x02\x03\x04"
    assert ElfLayout(ELFCLASS32, True).u32(data) == 0x04030201
    assert ElfLayout(ELFCLASS32, False).u32(data) == 0x01020304


def test_phdr_round_trip(layout):
    if layout.elf_class == ELFCLASS32:
        raw = struct.pack(_order(layout) + "IIIIIIII", 4, 100, 200, 0, 300, 400, 5, 8)
    else:
        raw = struct.pack(_order(layout) + "IIQQQQQQ", 4, 5, 100, 200, 0, 300, 400, 8)
    header = layout.unpack_phdr(b"\xff" * 3 + raw, 3)
    assert header == ProgramHeader(type=4, offset=100, vaddr=200, filesz=300,
                                   memsz=400, flags=5, align=8)


def test_phdr_zero_align_and_vaddr_read_as_four(layout):
    raw = bytes(layout.phdr_size)
    header = layout.unpack_phdr(raw)
    assert header.align == 4
    assert header.vaddr == 4
    assert header.offset == 0


def test_shdr_round_trip(layout):
    values = (1, 7, 2, 3, 64, 128, 4, 5, 8, 16)
    fmt = "IIIIIIIIII" if layout.elf_class == ELFCLASS32 else "IIQQQQIIQQ"
    raw = struct.pack(_order(layout) + fmt, *values)
    assert layout.unpack_shdr(raw) == SectionHeader(*values)


def test_nhdr_round_trip(layout):
    raw = struct.pack(_order(layout) + "III", 4, 20, 3)
    assert layout.unpack_nhdr(raw) == NoteHeader(namesz=4, descsz=20, type=3)


def test_pairs_round_trip(layout):
    fmt = "II" if layout.elf_class == ELFCLASS32 else "QQ"
    raw = struct.pack(_order(layout) + fmt, 0x6FFFFFFB, 0x08000000)
    assert layout.unpack_dyn(raw) == (0x6FFFFFFB, 0x08000000)
    assert layout.unpack_cap(raw) == (0x6FFFFFFB, 0x08000000)
    assert layout.unpack_auxv(raw) == (0x6FFFFFFB, 0x08000000)


def test_short_data_raises(layout):
    with pytest.raises(ValueError):
        layout.unpack_phdr(bytes(layout.phdr_size - 1))
    with pytest.raises(ValueError):
        layout.unpack_nhdr(bytes(20), 10)
    with pytest.raises(ValueError):
        layout.u32(b"\x00\x00\x00")


def test_negative_offset_raises(layout):
    with pytest.raises(ValueError):
        layout.unpack_shdr(bytes(200), -1)


def test_layouts_compare_by_class_and_order():
    assert ElfLayout(ELFCLASS64, False) == ElfLayout(ELFCLASS64, False)
    assert ElfLayout(ELFCLASS64, False) != ElfLayout(ELFCLASS64, True)