"""ELF build-id and debug-id extraction from mapped module images.

A :class:`ModuleImage` describes how a module's file contents are laid out in
memory: a short list of :class:`MappedRegion` entries, each mapping a file
offset to an address. Bytes are read either from an in-memory copy of the file
(``image``), where addresses index into that copy, or through a ``reader``
callable that fetches live memory.
"""

from __future__ import annotations

import struct
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import NamedTuple, Optional

EI_NIDENT = 16
EI_CLASS = 4
ELFCLASS64 = 2
PT_NOTE = 4
SHT_PROGBITS = 1
NT_GNU_BUILD_ID = 3

MAX_MAPPINGS = 5
"""At most this many distinct regions are tracked per module."""

TEXT_FALLBACK_LIMIT = 4096
"""Only this many bytes of ``.text`` feed the fallback identifier."""

_NOTE_HEADER = struct.Struct("=III")

MemoryReader = Callable[[int, int], Optional[bytes]]


@dataclass
class MappedRegion:
    """One contiguous mapping of a file range into memory."""

    offset: int
    size: int
    addr: int


@dataclass
class ModuleImage:
    """A loaded module: its file name and the regions it is mapped at."""

    file: str | None = None
    mappings: list[MappedRegion] = field(default_factory=list)
    offset_in_inode: int = 0
    mappings_inode: int = 0
    image: bytes | None = None
    reader: MemoryReader | None = None

    def push_mapping(self, start: int, end: int, offset: int, inode: int) -> None:
        """Add the mapping ``start..end`` of file ``offset``.

        Mappings of a different inode are ignored, a mapping that continues the
        last one both in memory and in the file extends it, and otherwise a new
        region is added while there is room.
        """
        if self.mappings and self.mappings_inode != inode:
            return
        size = end - start
        if self.mappings:
            last = self.mappings[-1]
            if last.addr + last.size == start and last.offset + last.size == offset:
                last.size += size
                return
        if len(self.mappings) < MAX_MAPPINGS:
            self.mappings.append(MappedRegion(offset=offset, size=size, addr=start))
            if len(self.mappings) == 1:
                self.mappings_inode = inode
                self.offset_in_inode = offset

    def is_duplicated_mapping(self, offset: int, inode: int) -> bool:
        """Whether a mapping with this offset and inode starts this module again."""
        if not self.mappings:
            return False
        return self.mappings[0].offset == offset and self.mappings_inode == inode

    def get_addr(self, start_offset: int, size: int) -> int | None:
        """Translate a module offset to an address if ``size`` bytes fit in one region."""
        for mapping in self.mappings:
            mapping_offset = mapping.offset - self.offset_in_inode
            if mapping_offset <= start_offset < mapping_offset + mapping.size:
                addr = start_offset - mapping_offset + mapping.addr
                if addr + size <= mapping.addr + mapping.size:
                    return addr
        return None

    def read(self, start_offset: int, size: int) -> bytes | None:
        """Read ``size`` bytes at module offset ``start_offset``, or ``None``."""
        addr = self.get_addr(start_offset, size)
        if addr is None:
            return None
        if self.image is not None:
            if addr < 0 or addr + size > len(self.image):
                return None
            return bytes(self.image[addr : addr + size])
        if self.reader is None:
            return None
        data = self.reader(addr, size)
        if data is None or len(data) != size:
            return None
        return bytes(data)

    def image_addr(self) -> int:
        """Address of the first mapped region."""
        if not self.mappings:
            raise ValueError("module has no mappings")
        return self.mappings[0].addr

    def image_size(self) -> int:
        """Span from the first region's start to the last region's end."""
        if not self.mappings:
            raise ValueError("module has no mappings")
        first, last = self.mappings[0], self.mappings[-1]
        return last.addr + last.size - first.addr


@dataclass(frozen=True)
class _Layout:
    ehdr: struct.Struct
    phdr: struct.Struct
    shdr: struct.Struct
    ph_fields: tuple[int, int, int, int]  # p_type, p_offset, p_filesz, p_align


_ELF64 = _Layout(
    ehdr=struct.Struct("=16sHHIQQQIHHHHHH"),
    phdr=struct.Struct("=IIQQQQQQ"),
    shdr=struct.Struct("=IIQQQQIIQQ"),
    ph_fields=(0, 2, 5, 7),
)
_ELF32 = _Layout(
    ehdr=struct.Struct("=16sHHIIIIIHHHHHH"),
    phdr=struct.Struct("=8I"),
    shdr=struct.Struct("=10I"),
    ph_fields=(0, 1, 4, 7),
)


class _ElfHeader(NamedTuple):
    phoff: int
    shoff: int
    phentsize: int
    phnum: int
    shentsize: int
    shnum: int
    shstrndx: int


def _read_header(module: ModuleImage) -> tuple[_Layout, _ElfHeader] | None:
    ident = module.read(0, EI_NIDENT)
    if ident is None:
        return None
    layout = _ELF64 if ident[EI_CLASS] == ELFCLASS64 else _ELF32
    raw = module.read(0, layout.ehdr.size)
    if raw is None:
        return None
    fields = layout.ehdr.unpack(raw)
    header = _ElfHeader(
        phoff=fields[5],
        shoff=fields[6],
        phentsize=fields[9],
        phnum=fields[10],
        shentsize=fields[11],
        shnum=fields[12],
        shstrndx=fields[13],
    )
    return layout, header


def _align(offset: int, alignment: int) -> int:
    remainder = offset % alignment
    return offset + (alignment - remainder) if remainder else offset


def code_id_from_notes(data: bytes, alignment: int) -> bytes | None:
    """Find the GNU build-id note in a note segment and return its descriptor."""
    if alignment < 4:
        alignment = 4
    elif alignment not in (4, 8):
        return None
    offset = 0
    end = len(data)
    while offset < end:
        if offset + _NOTE_HEADER.size > end:
            return None
        namesz, descsz, note_type = _NOTE_HEADER.unpack_from(data, offset)
        offset = _align(offset + _NOTE_HEADER.size + namesz, alignment)
        if note_type == NT_GNU_BUILD_ID:
            desc = data[offset : offset + descsz]
            return bytes(desc) if len(desc) == descsz else None
        offset = _align(offset + descsz, alignment)
    return None


def code_id_from_elf(module: ModuleImage) -> bytes | None:
    """The GNU build id from the module's note segments, or ``None``."""
    parsed = _read_header(module)
    if parsed is None:
        return None
    layout, header = parsed
    type_idx, offset_idx, filesz_idx, align_idx = layout.ph_fields
    for index in range(header.phnum):
        raw = module.read(
            header.phoff + header.phentsize * index, layout.phdr.size
        )
        if raw is None:
            return None
        fields = layout.phdr.unpack(raw)
        if fields[type_idx] != PT_NOTE:
            continue
        segment = module.read(fields[offset_idx], fields[filesz_idx])
        if segment is None:
            return None
        code_id = code_id_from_notes(segment, fields[align_idx])
        if code_id is not None:
            return code_id
    return None


def text_fallback_id(module: ModuleImage) -> bytes:
    """A 16-byte identifier made by XOR-folding the start of ``.text``.

    Returns 16 zero bytes when the section cannot be found or read.
    """
    nil = bytes(16)
    parsed = _read_header(module)
    if parsed is None:
        return nil
    layout, header = parsed
    raw = module.read(
        header.shoff + header.shentsize * header.shstrndx, layout.shdr.size
    )
    if raw is None:
        return nil
    strtab_offset = layout.shdr.unpack(raw)[4]

    text = b""
    for index in range(header.shnum):
        raw = module.read(header.shoff + header.shentsize * index, layout.shdr.size)
        if raw is None:
            return nil
        fields = layout.shdr.unpack(raw)
        sh_name, sh_type, sh_offset, sh_size = fields[0], fields[1], fields[4], fields[5]
        name = module.read(strtab_offset + sh_name, 6)
        if name is None:
            return nil
        if sh_type == SHT_PROGBITS and name[:5] == b".text":
            if module.get_addr(sh_offset, sh_size) is None:
                return nil
            chunk = module.read(sh_offset, min(sh_size, TEXT_FALLBACK_LIMIT))
            if chunk is None:
                return nil
            text = chunk
            break

    folded = bytearray(16)
    for position, byte in enumerate(text):
        folded[position % 16] ^= byte
    return bytes(folded)


def debug_id_from_bytes(data: bytes) -> str:
    """Format up to 16 identifier bytes as a little-endian GUID string."""
    raw = bytes(data[:16]).ljust(16, b"\0")
    return str(uuid.UUID(bytes_le=raw))


def read_ids_from_elf(module: ModuleImage) -> dict[str, str]:
    """The ``code_id`` (when a build id exists) and ``debug_id`` of a module."""
    ids: dict[str, str] = {}
    code_id = code_id_from_elf(module)
    if code_id is not None:
        ids["code_id"] = code_id.hex()
        ids["debug_id"] = debug_id_from_bytes(code_id)
    else:
        ids["debug_id"] = debug_id_from_bytes(text_fallback_id(module))
    return ids