"""System call numbers, file flags and binary records shared by kernel and user space."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

MAX_ARGV = 32
MAX_ENVP = 16

DEFAULT_STDIN = 0
DEFAULT_STDOUT = 1
DEFAULT_STDERR = 2


class Syscall(enum.IntEnum):
    """Numbers passed to the kernel to select a system call."""

    READ = 0
    WRITE = 1
    OPEN = 2
    CLOSE = 3
    SBRK = 4
    EXEC = 5
    EXIT = 6
    WAIT = 7
    LSEEK = 8
    TIME = 9
    SLEEP = 10
    IOCTL = 11
    RENAME = 12
    UNLINK = 13
    MKDIR = 14
    CHDIR = 15
    READDIR = 16


class OpenFlag(enum.IntFlag):
    """Flags accepted by the open system call."""

    RDONLY = 0o0
    WRONLY = 0o1
    RDWR = 0o2
    CREAT = 0o100
    TRUNC = 0o1000
    APPEND = 0o2000
    DEVICE = 0o4000
    DIR = 0o10000


class Whence(enum.IntEnum):
    """Reference point for lseek."""

    SET = 0
    CUR = 1
    END = 2


class DirentType(enum.IntEnum):
    """Kind of a directory entry."""

    DIR = 1
    FILE = 2


class FramebufferCtl(enum.IntEnum):
    """ioctl commands understood by the framebuffer device."""

    GET_WIDTH = 0
    GET_MAX_WIDTH = 1
    SET_WIDTH = 2
    GET_HEIGHT = 3
    GET_MAX_HEIGHT = 4
    SET_HEIGHT = 5
    CLEAR = 6


_PIXEL = struct.Struct("4B")


@dataclass(frozen=True)
class FramebufferPixel:
    """One framebuffer pixel; four bytes on the wire."""

    red: int
    green: int
    blue: int
    padding: int = 0

    def __post_init__(self) -> None:
        for name in ("red", "green", "blue", "padding"):
            value = getattr(self, name)
            if not 0 <= value <= 255:
                raise ValueError(f"{name} must be in [0, 255], got {value}")

    def pack(self) -> bytes:
        return _PIXEL.pack(self.red, self.green, self.blue, self.padding)

    @classmethod
    def unpack(cls, data: bytes) -> FramebufferPixel:
        if len(data) != _PIXEL.size:
            raise ValueError(f"a pixel is {_PIXEL.size} bytes, got {len(data)}")
        return cls(*_PIXEL.unpack(data))


_DIRENT_HEAD = struct.Struct("<qIB")


@dataclass(frozen=True)
class Dirent:
    """A directory entry: fixed header followed by a NUL-terminated name."""

    creation_date: int
    size: int
    type: DirentType
    name: str

    def pack(self) -> bytes:
        encoded = self.name.encode("utf-8")
        if b"\0" in encoded:
            raise ValueError("directory entry name must not contain NUL")
        try:
            head = _DIRENT_HEAD.pack(self.creation_date, self.size, int(self.type))
        except struct.error as exc:
            raise ValueError(str(exc)) from exc
        return head + encoded + b"\0"

    @classmethod
    def unpack(cls, data: bytes) -> Dirent:
        data = bytes(data)
        if len(data) < _DIRENT_HEAD.size:
            raise ValueError("directory entry is truncated")
        end = data.find(b"\0", _DIRENT_HEAD.size)
        if end < 0:
            raise ValueError("directory entry name is not NUL-terminated")
        creation_date, size, kind = _DIRENT_HEAD.unpack_from(data)
        name = data[_DIRENT_HEAD.size:end].decode("utf-8")
        return cls(creation_date, size, DirentType(kind), name)