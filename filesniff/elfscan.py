"""Walkers over the program and section headers of an ELF file.

Each walker appends its findings to a :class:`NoteContext`: how the file
is linked, whether it is stripped, its interpreter, its SunOS
capabilities and whatever its notes say.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import BinaryIO, Iterator

from filesniff.elfdefs import (
    AV_386_AHF,
    AV_386_AMD_3DNow,
    AV_386_AMD_3DNowx,
    AV_386_AMD_LZCNT,
    AV_386_AMD_MMX,
    AV_386_AMD_SSE4A,
    AV_386_AMD_SYSC,
    AV_386_CMOV,
    AV_386_CX8,
    AV_386_CX16,
    AV_386_FPU,
    AV_386_FXSR,
    AV_386_MMX,
    AV_386_MON,
    AV_386_PAUSE,
    AV_386_POPCNT,
    AV_386_SEP,
    AV_386_SSE,
    AV_386_SSE2,
    AV_386_SSE3,
    AV_386_SSE4_1,
    AV_386_SSE4_2,
    AV_386_SSSE3,
    AV_386_TSC,
    AV_386_TSCP,
    AV_SPARC_ASI_BLK_INIT,
    AV_SPARC_DIV32,
    AV_SPARC_FJFMAU,
    AV_SPARC_FMAF,
    AV_SPARC_FSMULD,
    AV_SPARC_IMA,
    AV_SPARC_MUL32,
    AV_SPARC_POPC,
    AV_SPARC_V8PLUS,
    AV_SPARC_VIS,
    AV_SPARC_VIS2,
    CA_SUNW_HW_1,
    CA_SUNW_NULL,
    CA_SUNW_SF_1,
    DF_1_PIE,
    DT_FLAGS_1,
    DT_NEEDED,
    EM_386,
    EM_AMD64,
    EM_IA_64,
    EM_SPARC,
    EM_SPARC32PLUS,
    EM_SPARCV9,
    PT_DYNAMIC,
    PT_INTERP,
    PT_NOTE,
    SF1_SUNW_FPKNWN,
    SF1_SUNW_FPUSED,
    SF1_SUNW_MASK,
    SHT_NOTE,
    SHT_SUNW_cap,
    SHT_SYMTAB,
    SectionHeader,
)
from filesniff.elfnotes import NoteContext, process_notes

__all__ = [
    "scan_dynamic",
    "scan_sections",
    "scan_program_exec",
    "scan_program_core",
]

_BUFSIZ = 8192
_NAME_READ = 49
_EXEC_BITS = 0o111

_CAP_MACHINES = frozenset({EM_SPARC, EM_SPARCV9, EM_IA_64, EM_386, EM_AMD64})

_CAP_SPARC = (
    (AV_SPARC_MUL32, "MUL32"),
    (AV_SPARC_DIV32, "DIV32"),
    (AV_SPARC_FSMULD, "FSMULD"),
    (AV_SPARC_V8PLUS, "V8PLUS"),
    (AV_SPARC_POPC, "POPC"),
    (AV_SPARC_VIS, "VIS"),
    (AV_SPARC_VIS2, "VIS2"),
    (AV_SPARC_ASI_BLK_INIT, "ASI_BLK_INIT"),
    (AV_SPARC_FMAF, "FMAF"),
    (AV_SPARC_FJFMAU, "FJFMAU"),
    (AV_SPARC_IMA, "IMA"),
)

_CAP_386 = (
    (AV_386_FPU, "FPU"),
    (AV_386_TSC, "TSC"),
    (AV_386_CX8, "CX8"),
    (AV_386_SEP, "SEP"),
    (AV_386_AMD_SYSC, "AMD_SYSC"),
    (AV_386_CMOV, "CMOV"),
    (AV_386_MMX, "MMX"),
    (AV_386_AMD_MMX, "AMD_MMX"),
    (AV_386_AMD_3DNow, "AMD_3DNow"),
    (AV_386_AMD_3DNowx, "AMD_3DNowx"),
    (AV_386_FXSR, "FXSR"),
    (AV_386_SSE, "SSE"),
    (AV_386_SSE2, "SSE2"),
    (AV_386_PAUSE, "PAUSE"),
    (AV_386_SSE3, "SSE3"),
    (AV_386_MON, "MON"),
    (AV_386_CX16, "CX16"),
    (AV_386_AHF, "AHF"),
    (AV_386_TSCP, "TSCP"),
    (AV_386_AMD_SSE4A, "AMD_SSE4A"),
    (AV_386_POPCNT, "POPCNT"),
    (AV_386_AMD_LZCNT, "AMD_LZCNT"),
    (AV_386_SSSE3, "SSSE3"),
    (AV_386_SSE4_1, "SSE4.1"),
    (AV_386_SSE4_2, "SSE4.2"),
)

_CAP_TABLES = {
    EM_SPARC: _CAP_SPARC,
    EM_SPARC32PLUS: _CAP_SPARC,
    EM_SPARCV9: _CAP_SPARC,
    EM_386: _CAP_386,
    EM_IA_64: _CAP_386,
    EM_AMD64: _CAP_386,
}


def _pread(stream: BinaryIO, offset: int, length: int) -> bytes:
    """Read at *offset* without moving the stream position."""
    if length <= 0:
        return b""
    saved = stream.tell()
    try:
        stream.seek(offset)
        return stream.read(length)
    finally:
        stream.seek(saved)


def _hex(value: int) -> str:
    return f"{value:#x}" if value else "0"


def _cstr(raw: bytes) -> bytes:
    nul = raw.find(b"\0")
    return raw if nul < 0 else raw[:nul]


def _printable(raw: bytes) -> str:
    return "".join(chr(b) if 0x20 <= b <= 0x7E else f"\\{b:03o}"
                   for b in _cstr(raw))


@contextmanager
def _note_source(ctx: NoteContext, stream: BinaryIO, ph_offset: int,
                 ph_count: int, file_size: int | None) -> Iterator[None]:
    saved = (ctx.stream, ctx.ph_offset, ctx.ph_count, ctx.file_size)
    ctx.stream, ctx.ph_offset, ctx.ph_count, ctx.file_size = (
        stream, ph_offset, ph_count, file_size)
    try:
        yield
    finally:
        ctx.stream, ctx.ph_offset, ctx.ph_count, ctx.file_size = saved


def scan_dynamic(context: NoteContext, data: bytes) -> tuple[bool, int]:
    """Walk a dynamic section.

    Returns ``(pie, needed)``: whether a ``DT_FLAGS_1`` entry was seen and
    how many libraries are needed.  The execute bits of ``context.mode``
    follow the PIE flag of each ``DT_FLAGS_1`` entry.
    """
    layout = context.layout
    size = layout.dyn_size
    pie = False
    needed = 0
    for start in range(0, len(data) - size + 1, size):
        tag, value = layout.unpack_dyn(data, start)
        if tag == DT_FLAGS_1:
            pie = True
            if value & DF_1_PIE:
                context.mode |= _EXEC_BITS
            else:
                context.mode &= ~_EXEC_BITS
        elif tag == DT_NEEDED:
            needed += 1
    return pie, needed


def _read_caps(ctx: NoteContext, stream: BinaryIO, header: SectionHeader,
               bad: int) -> tuple[int, int, int]:
    layout = ctx.layout
    size = layout.cap_size
    position = header.offset
    consumed = 0
    hw = sf = 0
    while True:
        consumed += size
        if consumed > header.size:
            break
        raw = _pread(stream, position, size)
        position += size
        if len(raw) != size:
            raise OSError(f"short read of capabilities at {position - size}")
        if raw[0] == ord("A"):
            break
        tag, value = layout.unpack_cap(raw)
        if tag == CA_SUNW_NULL:
            continue
        if tag == CA_SUNW_HW_1:
            hw |= value
        elif tag == CA_SUNW_SF_1:
            sf |= value
        else:
            ctx.write(f", with unknown capability {_hex(tag)} = {_hex(value)}")
            if bad > 2:
                consumed = header.size
            bad += 1
    return hw, sf, bad


def _report_caps(ctx: NoteContext, machine: int, hw: int, sf: int) -> None:
    if hw:
        ctx.write(", uses")
        table = _CAP_TABLES.get(machine)
        if table is None:
            ctx.write(f" hardware capability {_hex(hw)}")
        else:
            for mask, name in table:
                if hw & mask:
                    ctx.write(f" {name}")
                    hw &= ~mask
            if hw:
                ctx.write(f" unknown hardware capability {_hex(hw)}")
    if sf:
        if sf & SF1_SUNW_FPUSED:
            ctx.write(", uses frame pointer" if sf & SF1_SUNW_FPKNWN
                      else ", not known to use frame pointer")
        sf &= ~SF1_SUNW_MASK
        if sf:
            ctx.write(f", with unknown software capability {_hex(sf)}")


def scan_sections(context: NoteContext, stream: BinaryIO, offset: int,
                  count: int, entry_size: int, file_size: int | None,
                  machine: int, strtab: int) -> None:
    """Walk the section headers: stripped state, notes and capabilities.

    *file_size* of None means the size is unknown.  Raises OSError when a
    capability section cannot be read whole.
    """
    ctx = context
    if ctx.mime:
        return
    layout = ctx.layout
    if count == 0:
        ctx.write(", no section header")
        return
    if entry_size != layout.shdr_size:
        ctx.write(", corrupted section header size")
        return

    where = offset + entry_size * strtab
    raw = _pread(stream, where, layout.shdr_size)
    if len(raw) < layout.shdr_size:
        ctx.write(f", missing section headers at {where}")
        return
    current = layout.unpack_shdr(raw)
    name_off = current.offset
    if file_size is not None and file_size < name_off:
        ctx.write(f", too large section header offset {name_off}")
        return

    stripped = True
    has_debug_info = False
    bad_caps = 0
    cap_hw = cap_sf = 0
    for _ in range(count):
        # The name looked up is that of the header read last, as before.
        name = _cstr(_pread(stream, name_off + current.name, _NAME_READ))
        if name == b".debug_info":
            has_debug_info = True
            stripped = False

        raw = _pread(stream, offset, layout.shdr_size)
        if len(raw) < layout.shdr_size:
            ctx.write(f", can't read elf section at {offset}")
            return
        offset += entry_size
        current = layout.unpack_shdr(raw)

        if current.type == SHT_SYMTAB:
            stripped = False
        elif file_size is not None and current.offset > file_size:
            continue

        if current.type == SHT_NOTE:
            if file_size is not None and current.size + current.offset > file_size:
                ctx.write(f", note offset/size {_hex(current.offset)}"
                          f"+{_hex(current.size)} exceeds file size "
                          f"{_hex(file_size)}")
                return
            notes = _pread(stream, current.offset, current.size)
            if len(notes) < current.size:
                ctx.write(f", can't read elf note at {current.offset}")
                return
            with _note_source(ctx, stream, 0, 0, 0):
                process_notes(ctx, notes, 4)
        elif (current.type == SHT_SUNW_cap and machine in _CAP_MACHINES
              and bad_caps <= 5):
            hw, sf, bad_caps = _read_caps(ctx, stream, current, bad_caps)
            cap_hw |= hw
            cap_sf |= sf

    if has_debug_info:
        ctx.write(", with debug_info")
    ctx.write(f", {'' if stripped else 'not '}stripped")
    _report_caps(ctx, machine, cap_hw, cap_sf)


def scan_program_exec(context: NoteContext, stream: BinaryIO, offset: int,
                      count: int, entry_size: int, file_size: int | None,
                      section_count: int) -> None:
    """Walk the program headers of an executable: linking and interpreter.

    Notes are read here only when there are no section headers.
    """
    ctx = context
    layout = ctx.layout
    if count == 0:
        ctx.write(", no program header")
        return
    if entry_size != layout.phdr_size:
        ctx.write(", corrupted program header size")
        return

    interp = b""
    pie = False
    needed = 0
    dynamic = False
    for _ in range(count):
        raw = _pread(stream, offset, layout.phdr_size)
        if len(raw) < layout.phdr_size:
            ctx.write(f", can't read elf program headers at {offset}")
            return
        offset += entry_size
        header = layout.unpack_phdr(raw)
        align = 4

        if header.type == PT_NOTE:
            if section_count:
                continue
            align = header.align
            if align & 0x80000000 or align < 4:
                ctx.write(f", invalid note alignment {_hex(align)}")
                align = 4
        elif header.type not in (PT_DYNAMIC, PT_INTERP):
            if file_size is not None and header.offset > file_size:
                continue
            continue

        try:
            data = _pread(stream, header.offset, min(header.filesz, _BUFSIZ))
        except OSError:
            ctx.write(f", can't read section at {header.offset}")
            return

        if header.type == PT_DYNAMIC:
            dynamic = True
            # Let DT_FLAGS_1 decide whether this is PIE.
            ctx.mode &= ~_EXEC_BITS
            found_pie, found_needed = scan_dynamic(ctx, data)
            pie = pie or found_pie
            needed += found_needed
        elif header.type == PT_INTERP:
            needed += 1
            if ctx.mime:
                continue
            interp = data[:-1] if data and data[0] else b"*empty*"
        else:
            if ctx.mime:
                return
            with _note_source(ctx, stream, 0, 0, 0):
                process_notes(ctx, data, align)

    if ctx.mime:
        return
    if dynamic:
        style = "static-pie" if pie and needed == 0 else "dynamically"
    else:
        style = "statically"
    ctx.write(f", {style} linked")
    if interp:
        ctx.write(f", interpreter {_printable(interp)}")


def scan_program_core(context: NoteContext, stream: BinaryIO, offset: int,
                      count: int, entry_size: int,
                      file_size: int | None) -> None:
    """Walk the program headers of a core file and interpret its notes."""
    ctx = context
    if ctx.mime:
        return
    layout = ctx.layout
    if count == 0:
        ctx.write(", no program header")
        return
    if entry_size != layout.phdr_size:
        ctx.write(", corrupted program header size")
        return

    ph_offset, ph_count = offset, count
    for _ in range(count):
        raw = _pread(stream, offset, layout.phdr_size)
        if len(raw) < layout.phdr_size:
            ctx.write(f", can't read elf program headers at {offset}")
            return
        offset += entry_size
        header = layout.unpack_phdr(raw)
        if file_size is not None and header.offset > file_size:
            continue
        if header.type != PT_NOTE:
            continue
        try:
            data = _pread(stream, header.offset, min(header.filesz, _BUFSIZ))
        except OSError:
            ctx.write(f" can't read note section at {header.offset}")
            return
        with _note_source(ctx, stream, ph_offset, ph_count, file_size):
            process_notes(ctx, data, 4)