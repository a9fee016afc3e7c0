"""Interpretation of ELF notes: OS tags, build ids, PaX flags and core info."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import BinaryIO

from filesniff.elfdefs import (
    AT_LINUX_EGID,
    AT_LINUX_EUID,
    AT_LINUX_EXECFN,
    AT_LINUX_GID,
    AT_LINUX_PLATFORM,
    AT_LINUX_UID,
    ELFCLASS32,
    GNU_OS_HURD,
    GNU_OS_KFREEBSD,
    GNU_OS_KNETBSD,
    GNU_OS_LINUX,
    GNU_OS_SOLARIS,
    NETBSD_PROCINFO_EGID,
    NETBSD_PROCINFO_EUID,
    NETBSD_PROCINFO_NAME,
    NETBSD_PROCINFO_NAME_SIZE,
    NETBSD_PROCINFO_NLWPS,
    NETBSD_PROCINFO_PID,
    NETBSD_PROCINFO_SIGCODE,
    NETBSD_PROCINFO_SIGLWP,
    NETBSD_PROCINFO_SIGNO,
    NETBSD_PROCINFO_SIZE,
    NT_AUXV,
    NT_DRAGONFLY_VERSION,
    NT_FREEBSD_VERSION,
    NT_GNU_BUILD_ID,
    NT_GNU_VERSION,
    NT_GO_BUILD_ID,
    NT_NETBSD_CMODEL,
    NT_NETBSD_CORE_PROCINFO,
    NT_NETBSD_EMULATION,
    NT_NETBSD_MARCH,
    NT_NETBSD_PAX,
    NT_NETBSD_VERSION,
    NT_OPENBSD_VERSION,
    NT_PRPSINFO,
    ElfLayout,
)

__all__ = [
    "NoteFlags",
    "CoreStyle",
    "NoteContext",
    "netbsd_version_text",
    "freebsd_version_text",
    "process_note",
    "process_notes",
]

DEFAULT_NOTE_COUNT = 256
_MAX_AUXV_ENTRIES = 50
_COPY_LIMIT = 255
_STRING_READ = 256


class NoteFlags(enum.IntFlag):
    """What has already been reported while walking the notes of a file."""

    NONE = 0
    DID_CORE = 0x0004
    DID_OS_NOTE = 0x0008
    DID_BUILD_ID = 0x0010
    DID_CORE_STYLE = 0x0020
    DID_NETBSD_PAX = 0x0040
    DID_NETBSD_MARCH = 0x0080
    DID_NETBSD_CMODEL = 0x0100
    DID_NETBSD_EMULATION = 0x0200
    DID_NETBSD_UNKNOWN = 0x0400
    IS_CORE = 0x0800
    DID_AUXV = 0x1000


class CoreStyle(enum.Enum):
    """Flavour of a core file, as told by its note names."""

    SVR4 = "SVR4"
    FREEBSD = "FreeBSD"
    NETBSD = "NetBSD"


@dataclass
class NoteContext:
    """State shared by the note walkers of one ELF file.

    *stream*, *ph_offset*, *ph_count* and *file_size* are used to look up
    strings that auxiliary vector entries point at.  A *file_size* of
    None means the size is unknown.
    """

    layout: ElfLayout
    flags: NoteFlags = NoteFlags.NONE
    note_count: int = DEFAULT_NOTE_COUNT
    core_style: CoreStyle | None = None
    stream: BinaryIO | None = None
    ph_offset: int = 0
    ph_count: int = 0
    file_size: int | None = None
    mime: bool = False
    mode: int = 0
    error: str | None = None
    parts: list[str] = field(default_factory=list)

    def write(self, piece: str) -> None:
        self.parts.append(piece)

    def text(self) -> str:
        """Return everything reported so far."""
        return "".join(self.parts)

    @property
    def is_32bit(self) -> bool:
        return self.layout.elf_class == ELFCLASS32


_PRPS_OFFSETS_32 = (100, 84, 44, 28, 48, 32, 8)
_PRPS_OFFSETS_64 = (136, 120, 56, 40, 16)

_PAX_NAMES = ("+mprotect", "-mprotect", "+segvguard", "-segvguard",
              "+ASLR", "-ASLR")

_GNU_OS_NAMES = {
    GNU_OS_LINUX: "Linux",
    GNU_OS_HURD: "Hurd",
    GNU_OS_SOLARIS: "Solaris",
    GNU_OS_KFREEBSD: "kFreeBSD",
    GNU_OS_KNETBSD: "kNetBSD",
}

_AUXV_TAGS = {
    AT_LINUX_EXECFN: ("execfn", True),
    AT_LINUX_PLATFORM: ("platform", True),
    AT_LINUX_UID: ("real uid", False),
    AT_LINUX_GID: ("real gid", False),
    AT_LINUX_EUID: ("effective uid", False),
    AT_LINUX_EGID: ("effective gid", False),
}

_QUOTES = frozenset(b"'\"`")
_C_SPACE = frozenset(b" \t\n\v\f\r")


def _isprint(byte: int) -> bool:
    return 0x20 <= byte <= 0x7E


def _int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value >= 1 << 31 else value


def _cstr(data: bytes, start: int) -> bytes:
    chunk = data[start:]
    nul = chunk.find(b"\0")
    return chunk if nul < 0 else chunk[:nul]


def _copystr(data: bytes, start: int, length: int) -> str:
    chunk = data[start:start + min(max(length, 0), _COPY_LIMIT)]
    nul = chunk.find(b"\0")
    if nul >= 0:
        chunk = chunk[:nul]
    return chunk.decode("latin-1")


def _printable(raw: bytes) -> str:
    nul = raw.find(b"\0")
    if nul >= 0:
        raw = raw[:nul]
    return "".join(chr(b) if _isprint(b) else f"\\{b:03o}" for b in raw)


def _align(value: int, align: int) -> int:
    return ((value + align - 1) // align) * align


def netbsd_version_text(desc: int) -> str:
    """Describe a NetBSD version note value."""
    desc &= 0xFFFFFFFF
    text = ", for NetBSD"
    if desc > 100000000:
        patch = (desc // 100) % 100
        release = (desc // 10000) % 100
        minor = (desc // 1000000) % 100
        major = desc // 100000000
        text += f" {major}.{minor}"
        if release == 0 and patch != 0:
            text += f".{patch}"
        elif release != 0:
            while release > 26:
                text += "Z"
                release -= 26
            text += chr(ord("A") + release - 1)
    return text


def freebsd_version_text(desc: int) -> str:
    """Describe a FreeBSD ``__FreeBSD_version`` note value."""
    desc &= 0xFFFFFFFF
    text = ", for FreeBSD"
    if desc == 460002:
        return text + " 4.6.2"
    if desc < 460100:
        text += f" {desc // 100000}.{desc // 10000 % 10}"
        if desc // 1000 % 10 > 0:
            text += f".{desc // 1000 % 10}"
        if desc % 1000 > 0 or desc % 100000 == 0:
            text += f" ({desc})"
    elif desc < 500000:
        text += f" {desc // 100000}.{desc // 10000 % 10 + desc // 1000 % 10}"
        if desc // 100 % 10 > 0:
            text += f" ({desc})"
        elif desc // 10 % 10 > 0:
            text += f".{desc // 10 % 10}"
    else:
        text += f" {desc // 100000}.{desc // 1000 % 100}"
        if desc // 100 % 10 > 0 or desc % 100000 // 100 == 0:
            text += f" ({desc})"
        elif desc // 10 % 10 > 0:
            text += f".{desc // 10 % 10}"
    return text


def _os_note(ctx: NoteContext, data: bytes, ntype: int, namesz: int,
             descsz: int, noff: int, doff: int) -> bool:
    name = _cstr(data, noff)
    layout = ctx.layout

    if namesz == 5 and name == b"SuSE" and ntype == NT_GNU_VERSION and descsz == 2:
        ctx.flags |= NoteFlags.DID_OS_NOTE
        ctx.write(f", for SuSE {data[doff]}.{data[doff + 1]}")
        return True

    if namesz == 4 and name == b"GNU" and ntype == NT_GNU_VERSION and descsz == 16:
        words = [layout.u32(data, doff + 4 * i) for i in range(4)]
        ctx.flags |= NoteFlags.DID_OS_NOTE
        os_name = _GNU_OS_NAMES.get(words[0], "<unknown>")
        ctx.write(f", for GNU/{os_name} "
                  f"{_int32(words[1])}.{_int32(words[2])}.{_int32(words[3])}")
        return True

    if namesz == 7 and name == b"NetBSD":
        if ntype == NT_NETBSD_VERSION and descsz == 4:
            ctx.flags |= NoteFlags.DID_OS_NOTE
            ctx.write(netbsd_version_text(layout.u32(data, doff)))
            return True

    if namesz == 8 and name == b"FreeBSD":
        if ntype == NT_FREEBSD_VERSION and descsz == 4:
            ctx.flags |= NoteFlags.DID_OS_NOTE
            ctx.write(freebsd_version_text(layout.u32(data, doff)))
            return True

    if (namesz == 8 and name == b"OpenBSD" and ntype == NT_OPENBSD_VERSION
            and descsz == 4):
        ctx.flags |= NoteFlags.DID_OS_NOTE
        ctx.write(", for OpenBSD")
        return True

    if (namesz == 10 and name == b"DragonFly" and ntype == NT_DRAGONFLY_VERSION
            and descsz == 4):
        ctx.flags |= NoteFlags.DID_OS_NOTE
        desc = layout.u32(data, doff)
        ctx.write(f", for DragonFly {desc // 100000}.{desc // 10000 % 10}."
                  f"{desc % 10000}")
        return True
    return False


def _build_id_note(ctx: NoteContext, data: bytes, ntype: int, namesz: int,
                   descsz: int, noff: int, doff: int) -> bool:
    name = _cstr(data, noff)
    if (namesz == 4 and name == b"GNU" and ntype == NT_GNU_BUILD_ID
            and 4 <= descsz <= 20):
        ctx.flags |= NoteFlags.DID_BUILD_ID
        kind = {8: "xxHash", 16: "md5/uuid", 20: "sha1"}.get(descsz, "unknown")
        ctx.write(f", BuildID[{kind}]={data[doff:doff + descsz].hex()}")
        return True
    if namesz == 4 and name == b"Go" and ntype == NT_GO_BUILD_ID and descsz < 128:
        ctx.write(f", Go BuildID={_copystr(data, doff, descsz)}")
        return True
    return False


def _pax_note(ctx: NoteContext, data: bytes, ntype: int, namesz: int,
              descsz: int, noff: int, doff: int) -> bool:
    if not (namesz == 4 and _cstr(data, noff) == b"PaX"
            and ntype == NT_NETBSD_PAX and descsz == 4):
        return False
    ctx.flags |= NoteFlags.DID_NETBSD_PAX
    desc = ctx.layout.u32(data, doff)
    if desc:
        ctx.write(", PaX: ")
    ctx.write(",".join(name for bit, name in enumerate(_PAX_NAMES)
                       if desc & (1 << bit)))
    return True


def _plausible_name(data: bytes, doff: int, rel: int, descsz: int) -> bool:
    for j in range(16):
        pos = doff + rel + j
        if pos >= len(data) or rel + j >= descsz:
            return False
        char = data[pos]
        if char == 0:
            return j != 0
        if not _isprint(char) or char in _QUOTES:
            return False
    return True


def _all_printable(data: bytes, start: int, end: int) -> bool:
    span = data[start:end]
    return len(span) == end - start and all(_isprint(b) for b in span)


def _core_note(ctx: NoteContext, data: bytes, ntype: int, namesz: int,
               descsz: int, noff: int, doff: int) -> bool:
    raw_name = data[noff:]
    name = _cstr(data, noff)
    style: CoreStyle | None = None
    if (namesz == 4 and raw_name[:4] == b"CORE") or (namesz == 5 and name == b"CORE"):
        style = CoreStyle.SVR4
    if namesz == 8 and name == b"FreeBSD":
        style = CoreStyle.FREEBSD
    if namesz >= 11 and raw_name[:11] == b"NetBSD-CORE":
        style = CoreStyle.NETBSD

    if style is not None and not ctx.flags & NoteFlags.DID_CORE_STYLE:
        ctx.write(f", {style.value}-style")
        ctx.flags |= NoteFlags.DID_CORE_STYLE
        ctx.core_style = style

    layout = ctx.layout
    size = len(data)
    is_core = bool(ctx.flags & NoteFlags.IS_CORE)

    if style is CoreStyle.NETBSD:
        if ntype != NT_NETBSD_CORE_PROCINFO:
            return False
        info = data[doff:doff + min(descsz, NETBSD_PROCINFO_SIZE)]
        info = info.ljust(NETBSD_PROCINFO_SIZE, b"\0")
        proc_name = _printable(
            info[NETBSD_PROCINFO_NAME:NETBSD_PROCINFO_NAME + NETBSD_PROCINFO_NAME_SIZE])
        ctx.write(
            f", from '{proc_name[:31]}', "
            f"pid={layout.u32(info, NETBSD_PROCINFO_PID)}, "
            f"uid={layout.u32(info, NETBSD_PROCINFO_EUID)}, "
            f"gid={layout.u32(info, NETBSD_PROCINFO_EGID)}, "
            f"nlwps={layout.u32(info, NETBSD_PROCINFO_NLWPS)}, "
            f"lwp={layout.u32(info, NETBSD_PROCINFO_SIGLWP)} "
            f"(signal {layout.u32(info, NETBSD_PROCINFO_SIGNO)}/"
            f"code {layout.u32(info, NETBSD_PROCINFO_SIGCODE)})"
        )
        ctx.flags |= NoteFlags.DID_CORE
        return True

    if style is CoreStyle.FREEBSD:
        if ntype == NT_PRPSINFO and is_core:
            argoff = 4 + 4 + 17 if ctx.is_32bit else 4 + 4 + 8 + 17
            args = _cstr(data, doff + argoff)[:80].decode("latin-1")
            ctx.write(f", from '{args}'")
            pidoff = argoff + 81 + 2
            if doff + pidoff + 4 <= size:
                ctx.write(f", pid={layout.u32(data, doff + pidoff)}")
            ctx.flags |= NoteFlags.DID_CORE
        return False

    if ntype != NT_PRPSINFO or not is_core:
        return False
    offsets = _PRPS_OFFSETS_32 if ctx.is_32bit else _PRPS_OFFSETS_64
    for index, rel in enumerate(offsets):
        if not _plausible_name(data, doff, rel, descsz):
            continue
        # A later, smaller offset may be the true start of the same string.
        best = index
        for k in range(index + 1, len(offsets)):
            if offsets[k] >= offsets[best]:
                continue
            if _all_printable(data, doff + offsets[k], doff + offsets[best]):
                best = k
        start = doff + offsets[best]
        end = start
        while end < size and data[end] and _isprint(data[end]):
            end += 1
        while end > start and data[end - 1] in _C_SPACE:
            end -= 1
        ctx.write(f", from '{_copystr(data, start, end - start)}'")
        ctx.flags |= NoteFlags.DID_CORE
        return True
    return False


def _pread(stream: BinaryIO | None, offset: int, length: int) -> bytes:
    if stream is None or offset < 0 or length <= 0:
        return b""
    saved = stream.tell()
    try:
        stream.seek(offset)
        return stream.read(length)
    finally:
        stream.seek(saved)


def _offset_from_virtaddr(ctx: NoteContext, virtaddr: int) -> int:
    layout = ctx.layout
    offset = ctx.ph_offset
    for _ in range(ctx.ph_count):
        raw = _pread(ctx.stream, offset, layout.phdr_size)
        if len(raw) < layout.phdr_size:
            ctx.write(f", can't read elf program header at {offset}")
            return 0
        offset += layout.phdr_size
        header = layout.unpack_phdr(raw)
        if ctx.file_size is not None and header.offset > ctx.file_size:
            continue
        if header.vaddr <= virtaddr < header.vaddr + header.filesz:
            return header.offset + (virtaddr - header.vaddr)
    return 0


def _string_at_virtaddr(ctx: NoteContext, virtaddr: int) -> str | None:
    offset = _offset_from_virtaddr(ctx, virtaddr)
    raw = _pread(ctx.stream, offset, _STRING_READ)
    if offset < 0 or not raw:
        ctx.write(f", can't read elf string at {offset}")
        return None
    raw = raw[:-1]
    end = 0
    while end < len(raw) and raw[end] and _isprint(raw[end]):
        end += 1
    if end < len(raw) and raw[end] != 0:
        return None
    if end == 0:
        return None
    return raw[:end].decode("latin-1")


def _auxv_note(ctx: NoteContext, data: bytes, ntype: int, descsz: int,
               doff: int) -> bool:
    needed = NoteFlags.IS_CORE | NoteFlags.DID_CORE_STYLE
    if ctx.flags & needed != needed:
        return False
    if ctx.core_style is not CoreStyle.SVR4 or ntype != NT_AUXV:
        return False
    ctx.flags |= NoteFlags.DID_AUXV

    layout = ctx.layout
    entry_size = layout.auxv_size
    count = 0
    offset = 0
    while offset + entry_size <= descsz:
        atype, value = layout.unpack_auxv(data, doff + offset)
        offset += entry_size
        if count >= _MAX_AUXV_ENTRIES:
            ctx.error = "Too many ELF Auxv elements"
            return True
        count += 1
        tag = _AUXV_TAGS.get(atype)
        if tag is None:
            continue
        label, is_string = tag
        if is_string:
            text = _string_at_virtaddr(ctx, value)
            if text is None:
                continue
            ctx.write(f", {label}: '{text}'")
        else:
            ctx.write(f", {label}: {_int32(value)}")
    return True


_NETBSD_TAGGED = {
    NT_NETBSD_MARCH: (NoteFlags.DID_NETBSD_MARCH, "compiled for"),
    NT_NETBSD_CMODEL: (NoteFlags.DID_NETBSD_CMODEL, "compiler model"),
    NT_NETBSD_EMULATION: (NoteFlags.DID_NETBSD_EMULATION, "emulation:"),
}


def _netbsd_note(ctx: NoteContext, data: bytes, ntype: int, descsz: int,
                 doff: int) -> None:
    descsz = min(descsz, 100)
    if ntype == NT_NETBSD_VERSION:
        return
    tagged = _NETBSD_TAGGED.get(ntype)
    if tagged is None:
        if ctx.flags & NoteFlags.DID_NETBSD_UNKNOWN:
            return
        ctx.flags |= NoteFlags.DID_NETBSD_UNKNOWN
        ctx.write(f", note={ntype}")
        return
    flag, label = tagged
    if ctx.flags & flag:
        return
    ctx.flags |= flag
    ctx.write(f", {label}: {_copystr(data, doff, descsz)}")


def process_note(context: NoteContext, data: bytes, offset: int,
                 align: int = 4) -> int:
    """Interpret the note at *offset* in *data*.

    Returns the offset of the next note, or 0 when the walk should stop.
    """
    ctx = context
    size = len(data)
    if ctx.note_count == 0:
        return 0
    ctx.note_count -= 1

    layout = ctx.layout
    header_size = layout.nhdr_size
    if offset + header_size > size:
        return offset + header_size
    header = layout.unpack_nhdr(data, offset)
    offset += header_size
    namesz, descsz, ntype = header.namesz, header.descsz, header.type

    if namesz == 0 and descsz == 0:
        return max(offset, size)
    if namesz & 0x80000000:
        ctx.write(f", bad note name size {namesz:#x}")
        return 0
    if descsz & 0x80000000:
        ctx.write(f", bad note description size {descsz:#x}")
        return 0

    noff = offset
    doff = _align(offset + namesz, align)
    if offset + namesz > size:
        return doff
    offset = _align(doff + descsz, align)
    if doff + descsz > size:
        return max(offset, size)

    if not ctx.flags & NoteFlags.DID_OS_NOTE:
        if _os_note(ctx, data, ntype, namesz, descsz, noff, doff):
            return offset
    if not ctx.flags & NoteFlags.DID_BUILD_ID:
        if _build_id_note(ctx, data, ntype, namesz, descsz, noff, doff):
            return offset
    if not ctx.flags & NoteFlags.DID_NETBSD_PAX:
        if _pax_note(ctx, data, ntype, namesz, descsz, noff, doff):
            return offset
    if not ctx.flags & NoteFlags.DID_CORE:
        if _core_note(ctx, data, ntype, namesz, descsz, noff, doff):
            return offset
    if not ctx.flags & NoteFlags.DID_AUXV:
        if _auxv_note(ctx, data, ntype, descsz, doff):
            return offset

    if namesz == 7 and _cstr(data, noff) == b"NetBSD":
        _netbsd_note(ctx, data, ntype, descsz, doff)
    return offset


def process_notes(context: NoteContext, data: bytes, align: int = 4) -> None:
    """Interpret every note in the note section *data*."""
    offset = 0
    while offset < len(data):
        offset = process_note(context, data, offset, align)
        if offset == 0:
            break