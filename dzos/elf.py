"""Loading of ELF executables into a user address space and the initial user stack."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar, Iterable, Optional, Sequence

from dzos.abi import MAX_ARGV, MAX_ENVP

ELF_MAGIC = 0x464C457F  # "\x7FELF" read as a little-endian word
ET_EXEC = 2
ET_DYN = 3
PT_LOAD = 1
PF_X = 1
PF_W = 2
PF_R = 4
USER_DEFAULT_LOAD_BASE = 0x00400000
DEFAULT_PAGE_SIZE = 4096

_MASK64 = (1 << 64) - 1
_WORD = struct.Struct("<Q")


class ExecError(Exception):
    """The executable cannot be loaded."""


@dataclass(frozen=True)
class Permissions:
    """Page permissions of a mapped segment; user pages are always user-accessible."""

    executable: bool = False
    writable: bool = False
    userspace: bool = True


_ELF_HEADER = struct.Struct("<I12sHHIQQQIHHHHHH")
_PROGRAM_HEADER = struct.Struct("<IIQQQQQQ")


@dataclass(frozen=True)
class ElfHeader:
    """The 64-byte ELF file header."""

    SIZE: ClassVar[int] = _ELF_HEADER.size

    magic: int
    ident: bytes
    type: int
    machine: int
    version: int
    entry: int
    phoff: int
    shoff: int
    flags: int
    ehsize: int
    phentsize: int
    phnum: int
    shentsize: int
    shnum: int
    shstrndx: int

    @classmethod
    def parse(cls, data: bytes) -> ElfHeader:
        """Decode the header at the start of data."""
        if len(data) < cls.SIZE:
            raise ExecError(f"ELF header needs {cls.SIZE} bytes, got {len(data)}")
        return cls(*_ELF_HEADER.unpack_from(data))


@dataclass(frozen=True)
class ProgramHeader:
    """A 56-byte ELF program header."""

    SIZE: ClassVar[int] = _PROGRAM_HEADER.size

    type: int
    flags: int
    offset: int
    vaddr: int
    paddr: int
    filesz: int
    memsz: int
    align: int

    @classmethod
    def parse(cls, data: bytes) -> ProgramHeader:
        """Decode the program header at the start of data."""
        if len(data) < cls.SIZE:
            raise ExecError(f"program header needs {cls.SIZE} bytes, got {len(data)}")
        return cls(*_PROGRAM_HEADER.unpack_from(data))


@dataclass(frozen=True)
class UserLayout:
    """Bounds of the user part of an address space."""

    va_min: int
    va_max: int
    page_size: int = DEFAULT_PAGE_SIZE
    default_load_base: int = USER_DEFAULT_LOAD_BASE

    def __post_init__(self) -> None:
        if self.page_size <= 0 or self.page_size & (self.page_size - 1):
            raise ValueError("page size must be a positive power of two")
        if self.va_min > self.va_max:
            raise ValueError("va_min must not exceed va_max")

    def page_round_down(self, address: int) -> int:
        return address & ~(self.page_size - 1)

    def page_round_up(self, address: int) -> int:
        return self.page_round_down(address + self.page_size - 1)


@dataclass(frozen=True)
class SegmentMapping:
    """Pages allocated for one loadable segment and what they hold."""

    start: int
    size: int
    permissions: Permissions
    contents: bytes

    @property
    def end(self) -> int:
        return self.start + self.size


@dataclass(frozen=True)
class LoadedImage:
    """An executable laid out in memory, ready to be entered."""

    entry: int
    load_bias: int
    segments: tuple[SegmentMapping, ...]
    initial_data_segment: int


def flags_to_permissions(flags: int) -> Permissions:
    """Map program header flags to page permissions; read access is implied."""
    return Permissions(executable=bool(flags & PF_X), writable=bool(flags & PF_W))


def load_bias(header: ElfHeader, layout: UserLayout) -> int:
    """Offset added to every address of the image."""
    if header.type == ET_DYN:
        return layout.default_load_base
    if header.type == ET_EXEC:
        entry = header.entry
        if entry == 0 or entry < layout.va_min or entry >= layout.va_max:
            return layout.default_load_base
        return 0
    raise ExecError(f"unsupported ELF type {header.type}")


def _map_segment(data: bytes, ph: ProgramHeader, bias: int, layout: UserLayout) -> SegmentMapping:
    if ph.memsz < ph.filesz:
        raise ExecError("segment memory size is smaller than its file size")
    mapped_va = (ph.vaddr + bias) & _MASK64
    map_start = layout.page_round_down(mapped_va)
    map_offset = mapped_va - map_start
    alloc_size = layout.page_round_up(map_offset + ph.memsz)
    if map_start < layout.va_min or map_start + alloc_size > layout.va_max:
        raise ExecError(f"segment at {mapped_va:#x} lies outside user space")
    contents = bytearray(alloc_size)
    if ph.filesz:
        chunk = data[ph.offset:ph.offset + ph.filesz]
        if len(chunk) != ph.filesz:
            raise ExecError("segment extends past the end of the file")
        contents[map_offset:map_offset + ph.filesz] = chunk
    return SegmentMapping(
        start=map_start,
        size=alloc_size,
        permissions=flags_to_permissions(ph.flags),
        contents=bytes(contents),
    )


def load_image(data: bytes, layout: UserLayout) -> LoadedImage:
    """Validate an ELF file and lay out its loadable segments."""
    data = bytes(data)
    header = ElfHeader.parse(data)
    if header.magic != ELF_MAGIC:
        raise ExecError("not an ELF file")
    bias = load_bias(header, layout)

    segments: list[SegmentMapping] = []
    data_end = 0
    for index in range(header.phnum):
        offset = header.phoff + index * ProgramHeader.SIZE
        ph = ProgramHeader.parse(data[offset:offset + ProgramHeader.SIZE])
        if ph.type != PT_LOAD:
            continue
        mapping = _map_segment(data, ph, bias, layout)
        segments.append(mapping)
        data_end = max(data_end, mapping.end)

    return LoadedImage(
        entry=(bias + header.entry) & _MASK64,
        load_bias=bias,
        segments=tuple(segments),
        initial_data_segment=layout.page_round_up(data_end),
    )


def _c_strings(values: Optional[Iterable[Optional[str]]], limit: int) -> list[bytes]:
    strings: list[bytes] = []
    for value in values or ():
        if value is None or len(strings) >= limit:
            break
        strings.append(value.encode("utf-8").split(b"\0", 1)[0] + b"\0")
    return strings


def build_user_stack(
    args: Optional[Sequence[Optional[str]]],
    envp: Optional[Sequence[Optional[str]]],
    top: int,
) -> tuple[int, bytes]:
    """Lay out argc, argv and envp below top as a program expects on entry.

    Returns the 16-byte aligned stack pointer and the bytes from it up to top.
    At most MAX_ARGV arguments and MAX_ENVP environment strings are used.
    """
    if top < 0:
        raise ValueError("stack top must not be negative")
    sp = top
    stack = bytearray()

    def push(chunk: bytes) -> int:
        nonlocal sp
        sp -= len(chunk)
        if sp < 0:
            raise ExecError("initial stack does not fit below the stack top")
        stack[0:0] = chunk
        return sp

    argv_ptrs = [push(s) for s in _c_strings(args, MAX_ARGV)]
    envp_ptrs = [push(s) for s in _c_strings(envp, MAX_ENVP)]

    push(_WORD.pack(0))
    for pointer in reversed(envp_ptrs):
        push(_WORD.pack(pointer))
    push(_WORD.pack(0))
    for pointer in reversed(argv_ptrs):
        push(_WORD.pack(pointer))
    push(_WORD.pack(len(argv_ptrs)))

    aligned = sp & ~0xF
    stack[0:0] = bytes(sp - aligned)
    return aligned, bytes(stack)