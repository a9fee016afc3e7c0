# filesniff

Dependency-free building blocks for working out what a file is from its
contents. `filesniff` looks at raw bytes and produces the short pieces of
text that a file-type tool prints, such as `JSON text data`,
`, dynamically linked, interpreter /lib64/ld-linux-x86-64.so.2` or
`CDFV2 Microsoft Word`.

Requires Python 3.10 or later; nothing outside the standard library.

```
pip install filesniff
```

## Modules

- `filesniff.jsontext` – recognises JSON text. `scan_json` returns a
  `JsonCounts` (objects, arrays, strings, constants, numbers, array_ends)
  or `None`; `is_json` and `describe_json` build on it. The scanner is
  lenient in a few ways: a trailing comma in an array is accepted, text
  after the first value is ignored, and only the length of
  `true`/`false`/`null` is checked. Nesting deeper than 20 levels is
  rejected, and a document counts as JSON only if it holds an object or
  an array.
- `filesniff.timefmt` – `format_datetime` (Unix timestamps in asctime
  form, UTC or local time), `format_dos_date`, `format_dos_time`, and
  `magic_warning`, which writes a `Warning:` line to standard error.
- `filesniff.elfdefs` – ELF constants and `ElfLayout`, which unpacks
  program, section and note headers (`ProgramHeader`, `SectionHeader`,
  `NoteHeader`) and dynamic, capability and auxiliary-vector entries for
  32- or 64-bit files of either byte order.
- `filesniff.elfnotes` – `NoteContext` collects text while
  `process_note` / `process_notes` interpret notes: GNU, NetBSD, FreeBSD,
  OpenBSD, DragonFly and SuSE OS tags, GNU and Go build ids, PaX flags,
  core-file process names and auxiliary vectors.
  `netbsd_version_text` and `freebsd_version_text` format version values.
- `filesniff.elfscan` – walks over a seekable binary stream:
  `scan_program_exec` (linking style, interpreter, notes),
  `scan_program_core` (core notes), `scan_sections` (stripped,
  debug info, notes, SunOS capabilities) and `scan_dynamic`.
- `filesniff.cdfinfo` – lookup tables for Composite Document Files:
  `clsid_mime`, `clsid_description`, `app_mime`, `name_mime`,
  `name_description`, `dir_info` (classify by `DirEntry` names and
  `DirType`) and `summary_header_text`.

## Examples

```python
from filesniff.jsontext import is_json, scan_json, describe_json

is_json(b'{"name": "widget", "tags": [1, 2, 3]}')  # True
is_json(b'"just a string"')                         # False: no object or array
scan_json(b'[true, null, 1.5, "x"]')
# JsonCounts(objects=0, arrays=1, strings=1, constants=2, numbers=1, array_ends=1)
describe_json(b'{"a": 1}')             # 'JSON text data'
describe_json(b'{"a": 1}', mime=True)  # 'application/json'
```

```python
from filesniff.timefmt import format_datetime, format_dos_date, format_dos_time

format_datetime(0)        # 'Thu Jan  1 00:00:00 1970'
format_dos_date(0x5021)   # 'Sun, Jan 01 2020' (the weekday is never computed)
format_dos_time(0x6000)   # '12:00:00'
```

```python
import struct
from filesniff.elfdefs import ELFCLASS64, ElfLayout
from filesniff.elfnotes import NoteContext, process_notes, freebsd_version_text

layout = ElfLayout(ELFCLASS64, little_endian=True)
note = struct.pack("<III", 4, 20, 3) + b"GNU\0" + bytes(range(20))
context = NoteContext(layout)
process_notes(context, note)
context.text()  # ', BuildID[sha1]=000102030405060708090a0b0c0d0e0f10111213'

freebsd_version_text(460002)  # ', for FreeBSD 4.6.2'
```

```python
from filesniff.cdfinfo import DirEntry, DirType, app_mime, dir_info, summary_header_text

app_mime("Microsoft Office Word")                               # 'msword'
dir_info([DirEntry("WordDocument", DirType.USER_STREAM)])       # 'CDFV2 Microsoft Word'
dir_info([DirEntry("WordDocument", DirType.USER_STREAM)], True) # 'application/msword'
summary_header_text(0xFFFE, 2, 0x0106)
# 'Composite Document File V2 Document, Little Endian, Os: Windows, Version 6.1'
```

## What it does not do

There is no command-line tool and no single entry point that takes a
file and names its type. In particular:

- nothing reads the ELF file header itself; the caller finds the class,
  byte order, header offsets and counts and passes them to the
  `elfscan` walkers;
- there is no reader for the Composite Document File container (header,
  allocation tables, directory, streams); `cdfinfo` only classifies
  names, class ids and summary values the caller has already extracted;
- there is no magic-pattern database and no recognition of other
  formats.

## Running the tests

```
pip install "filesniff[test]"
pytest
```