"""ELF constants and record layouts used by the ELF classifier.

Only the parts of the format needed to tell how a binary was linked,
whether it is stripped, and what its notes say are described here.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

__all__ = [
    "ProgramHeader",
    "SectionHeader",
    "NoteHeader",
    "ElfLayout",
]

# e_ident indexes and values
EI_NIDENT = 16
EI_MAG0, EI_MAG1, EI_MAG2, EI_MAG3 = 0, 1, 2, 3
EI_CLASS = 4
EI_DATA = 5
EI_VERSION = 6
EI_PAD = 7

ELFMAG = b"\x7fELF"
OLFMAG = b"\x7fOLF"

ELFCLASSNONE = 0
ELFCLASS32 = 1
ELFCLASS64 = 2

ELFDATANONE = 0
ELFDATA2LSB = 1
ELFDATA2MSB = 2

# e_type
ET_REL = 1
ET_EXEC = 2
ET_DYN = 3
ET_CORE = 4

# e_machine (only those that matter for SunOS hardware capabilities)
EM_SPARC = 2
EM_386 = 3
EM_SPARC32PLUS = 18
EM_SPARCV9 = 43
EM_IA_64 = 50
EM_AMD64 = 62

# sh_type
SHT_SYMTAB = 2
SHT_NOTE = 7
SHT_DYNSYM = 11
SHT_SUNW_cap = 0x6FFFFFF5

# p_type
PT_NULL = 0
PT_LOAD = 1
PT_DYNAMIC = 2
PT_INTERP = 3
PT_NOTE = 4
PT_SHLIB = 5
PT_PHDR = 6
PT_NUM = 7

# Auxiliary vector types
AT_NULL = 0
AT_IGNORE = 1
AT_EXECFD = 2
AT_PHDR = 3
AT_PHENT = 4
AT_PHNUM = 5
AT_PAGESZ = 6
AT_BASE = 7
AT_FLAGS = 8
AT_ENTRY = 9
AT_LINUX_NOTELF = 10
AT_LINUX_UID = 11
AT_LINUX_EUID = 12
AT_LINUX_GID = 13
AT_LINUX_EGID = 14
AT_LINUX_PLATFORM = 15
AT_LINUX_HWCAP = 16
AT_LINUX_CLKTCK = 17
AT_LINUX_SECURE = 23
AT_LINUX_BASE_PLATFORM = 24
AT_LINUX_RANDOM = 25
AT_LINUX_HWCAP2 = 26
AT_LINUX_EXECFN = 31

# Note types in core files
NT_PRSTATUS = 1
NT_PRFPREG = 2
NT_PRPSINFO = 3
NT_PRXREG = 4
NT_TASKSTRUCT = 4
NT_PLATFORM = 5
NT_AUXV = 6

NT_NETBSD_CORE_PROCINFO = 1
NT_NETBSD_CORE_AUXV = 2

# Note types in executables
NT_NETBSD_VERSION = 1
NT_NETBSD_EMULATION = 2
NT_FREEBSD_VERSION = 1
NT_OPENBSD_VERSION = 1
NT_DRAGONFLY_VERSION = 1
NT_GNU_VERSION = 1
NT_GNU_HWCAP = 2
NT_GNU_BUILD_ID = 3
NT_NETBSD_PAX = 3
NT_NETBSD_MARCH = 5
NT_NETBSD_CMODEL = 6
NT_GO_BUILD_ID = 4
NT_FREEBSD_PROCSTAT_AUXV = 16

NT_NETBSD_PAX_MPROTECT = 0x01
NT_NETBSD_PAX_NOMPROTECT = 0x02
NT_NETBSD_PAX_GUARD = 0x04
NT_NETBSD_PAX_NOGUARD = 0x08
NT_NETBSD_PAX_ASLR = 0x10
NT_NETBSD_PAX_NOASLR = 0x20

# GNU OS tags
GNU_OS_LINUX = 0
GNU_OS_HURD = 1
GNU_OS_SOLARIS = 2
GNU_OS_KFREEBSD = 3
GNU_OS_KNETBSD = 4

# SunOS capability tags
CA_SUNW_NULL = 0
CA_SUNW_HW_1 = 1
CA_SUNW_SF_1 = 2

SF1_SUNW_FPKNWN = 0x01
SF1_SUNW_FPUSED = 0x02
SF1_SUNW_MASK = 0x03

AV_SPARC_MUL32 = 0x0001
AV_SPARC_DIV32 = 0x0002
AV_SPARC_FSMULD = 0x0004
AV_SPARC_V8PLUS = 0x0008
AV_SPARC_POPC = 0x0010
AV_SPARC_VIS = 0x0020
AV_SPARC_VIS2 = 0x0040
AV_SPARC_ASI_BLK_INIT = 0x0080
AV_SPARC_FMAF = 0x0100
AV_SPARC_FJFMAU = 0x4000
AV_SPARC_IMA = 0x8000

AV_386_FPU = 0x00000001
AV_386_TSC = 0x00000002
AV_386_CX8 = 0x00000004
AV_386_SEP = 0x00000008
AV_386_AMD_SYSC = 0x00000010
AV_386_CMOV = 0x00000020
AV_386_MMX = 0x00000040
AV_386_AMD_MMX = 0x00000080
AV_386_AMD_3DNow = 0x00000100
AV_386_AMD_3DNowx = 0x00000200
AV_386_FXSR = 0x00000400
AV_386_SSE = 0x00000800
AV_386_SSE2 = 0x00001000
AV_386_PAUSE = 0x00002000
AV_386_SSE3 = 0x00004000
AV_386_MON = 0x00008000
AV_386_CX16 = 0x00010000
AV_386_AHF = 0x00020000
AV_386_TSCP = 0x00040000
AV_386_AMD_SSE4A = 0x00080000
AV_386_POPCNT = 0x00100000
AV_386_AMD_LZCNT = 0x00200000
AV_386_SSSE3 = 0x00400000
AV_386_SSE4_1 = 0x00800000
AV_386_SSE4_2 = 0x01000000

# Dynamic section tags
DT_NULL = 0
DT_NEEDED = 1
DT_PLTRELSZ = 2
DT_PLTGOT = 3
DT_HASH = 4
DT_STRTAB = 5
DT_SYMTAB = 6
DT_RELA = 7
DT_RELASZ = 8
DT_RELAENT = 9
DT_STRSZ = 10
DT_SYMENT = 11
DT_INIT = 12
DT_FINI = 13
DT_SONAME = 14
DT_RPATH = 15
DT_SYMBOLIC = 16
DT_REL = 17
DT_RELSZ = 18
DT_RELENT = 19
DT_PLTREL = 20
DT_DEBUG = 21
DT_TEXTREL = 22
DT_JMPREL = 23
DT_BIND_NOW = 24
DT_INIT_ARRAY = 25
DT_FINI_ARRAY = 26
DT_INIT_ARRAYSZ = 27
DT_FINI_ARRAYSZ = 28
DT_RUNPATH = 29
DT_FLAGS = 30
DT_ENCODING = 31
DT_PREINIT_ARRAY = 32
DT_PREINIT_ARRAYSZ = 33
DT_NUM = 34

DT_LOOS = 0x60000000
DT_VERSYM = 0x6FFFFFF0
DT_FLAGS_1 = 0x6FFFFFFB
DT_VERDEF = 0x6FFFFFFC
DT_VERDEFNUM = 0x6FFFFFFD
DT_VERNEED = 0x6FFFFFFE
DT_VERNEEDNUM = 0x6FFFFFFF
DT_HIOS = 0x6FFFFFFF
DT_LOPROC = 0x70000000
DT_HIPROC = 0x7FFFFFFF

DF_ORIGIN = 0x00000001
DF_SYMBOLIC = 0x00000002
DF_TEXTREL = 0x00000004
DF_BIND_NOW = 0x00000008
DF_STATIC_TLS = 0x00000010

DF_1_NOW = 0x00000001
DF_1_GLOBAL = 0x00000002
DF_1_GROUP = 0x00000004
DF_1_NODELETE = 0x00000008
DF_1_LOADFLTR = 0x00000010
DF_1_INITFIRST = 0x00000020
DF_1_NOOPEN = 0x00000040
DF_1_ORIGIN = 0x00000080
DF_1_DIRECT = 0x00000100
DF_1_INTERPOSE = 0x00000400
DF_1_NODEFLIB = 0x00000800
DF_1_NODUMP = 0x00001000
DF_1_CONFALT = 0x00002000
DF_1_ENDFILTEE = 0x00004000
DF_1_DISPRELDNE = 0x00008000
DF_1_DISPRELPND = 0x00010000
DF_1_NODIRECT = 0x00020000
DF_1_IGNMULDEF = 0x00040000
DF_1_NOKSYMS = 0x00080000
DF_1_NOHDR = 0x00100000
DF_1_EDITED = 0x00200000
DF_1_NORELOC = 0x00400000
DF_1_SYMINTPOSE = 0x00800000
DF_1_GLOBAUDIT = 0x01000000
DF_1_SINGLETON = 0x02000000
DF_1_STUB = 0x04000000
DF_1_PIE = 0x08000000

# Byte offsets of the fields of a NetBSD core procinfo note descriptor.
NETBSD_PROCINFO_SIZE = 160
NETBSD_PROCINFO_SIGNO = 8
NETBSD_PROCINFO_SIGCODE = 12
NETBSD_PROCINFO_PID = 80
NETBSD_PROCINFO_EUID = 100
NETBSD_PROCINFO_EGID = 112
NETBSD_PROCINFO_NLWPS = 120
NETBSD_PROCINFO_NAME = 124
NETBSD_PROCINFO_NAME_SIZE = 32
NETBSD_PROCINFO_SIGLWP = 156


@dataclass(frozen=True)
class ProgramHeader:
    """A program header entry.

    As the classifier reads it, a zero ``align`` or ``vaddr`` is reported
    as 4.
    """

    type: int
    offset: int
    vaddr: int
    filesz: int
    memsz: int
    flags: int
    align: int


@dataclass(frozen=True)
class SectionHeader:
    """A section header entry."""

    name: int
    type: int
    flags: int
    addr: int
    offset: int
    size: int
    link: int
    info: int
    addralign: int
    entsize: int


@dataclass(frozen=True)
class NoteHeader:
    """The fixed part of a note: name size, descriptor size and type."""

    namesz: int
    descsz: int
    type: int


_FORMATS = {
    ELFCLASS32: {
        "phdr": "IIIIIIII",
        "shdr": "IIIIIIIIII",
        "nhdr": "III",
        "pair": "II",
    },
    ELFCLASS64: {
        "phdr": "IIQQQQQQ",
        "shdr": "IIQQQQIIQQ",
        "nhdr": "III",
        "pair": "QQ",
    },
}


@dataclass(frozen=True)
class ElfLayout:
    """Record layouts for one ELF class and byte order."""

    elf_class: int
    little_endian: bool
    _structs: dict = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        formats = _FORMATS.get(self.elf_class)
        if formats is None:
            raise ValueError(f"unknown ELF class {self.elf_class}")
        order = "<" if self.little_endian else ">"
        structs = {key: struct.Struct(order + fmt) for key, fmt in formats.items()}
        structs["u32"] = struct.Struct(order + "I")
        object.__setattr__(self, "_structs", structs)

    @property
    def phdr_size(self) -> int:
        return self._structs["phdr"].size

    @property
    def shdr_size(self) -> int:
        return self._structs["shdr"].size

    @property
    def nhdr_size(self) -> int:
        return self._structs["nhdr"].size

    @property
    def dyn_size(self) -> int:
        return self._structs["pair"].size

    @property
    def cap_size(self) -> int:
        return self._structs["pair"].size

    @property
    def auxv_size(self) -> int:
        return self._structs["pair"].size

    def _unpack(self, key: str, data: bytes, offset: int) -> tuple:
        layout = self._structs[key]
        if offset < 0 or offset + layout.size > len(data):
            raise ValueError(
                f"need {layout.size} bytes at offset {offset}, "
                f"have {max(len(data) - offset, 0)}"
            )
        return layout.unpack_from(data, offset)

    def unpack_phdr(self, data: bytes, offset: int = 0) -> ProgramHeader:
        """Read a program header at *offset*."""
        fields = self._unpack("phdr", data, offset)
        if self.elf_class == ELFCLASS32:
            p_type, p_offset, vaddr, _paddr, filesz, memsz, flags, align = fields
        else:
            p_type, flags, p_offset, vaddr, _paddr, filesz, memsz, align = fields
        return ProgramHeader(
            type=p_type,
            offset=p_offset,
            vaddr=vaddr or 4,
            filesz=filesz,
            memsz=memsz,
            flags=flags,
            align=align or 4,
        )

    def unpack_shdr(self, data: bytes, offset: int = 0) -> SectionHeader:
        """Read a section header at *offset*."""
        return SectionHeader(*self._unpack("shdr", data, offset))

    def unpack_nhdr(self, data: bytes, offset: int = 0) -> NoteHeader:
        """Read a note header at *offset*."""
        return NoteHeader(*self._unpack("nhdr", data, offset))

    def unpack_dyn(self, data: bytes, offset: int = 0) -> tuple[int, int]:
        """Read a dynamic entry at *offset* as ``(tag, value)``."""
        return self._unpack("pair", data, offset)

    def unpack_cap(self, data: bytes, offset: int = 0) -> tuple[int, int]:
        """Read a capability entry at *offset* as ``(tag, value)``."""
        return self._unpack("pair", data, offset)

    def unpack_auxv(self, data: bytes, offset: int = 0) -> tuple[int, int]:
        """Read an auxiliary vector entry at *offset* as ``(type, value)``."""
        return self._unpack("pair", data, offset)

    def u32(self, data: bytes, offset: int = 0) -> int:
        """Read a 32-bit word in the file's byte order."""
        return self._unpack("u32", data, offset)[0]