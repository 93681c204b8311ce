"""Minimal printf-style formatting and console line input."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Iterator, TextIO

_DIGITS = "0123456789abcdef"
_MASK64 = (1 << 64) - 1
# The digit buffer holds at most this many characters.
_MAX_PADDING = 20
_DEL = "\x7f"


class _Kind(enum.Enum):
    TEXT = enum.auto()
    INT = enum.auto()
    PTR = enum.auto()
    STR = enum.auto()
    CHAR = enum.auto()
    PERCENT = enum.auto()
    UNKNOWN = enum.auto()


@dataclass(frozen=True)
class _IntSpec:
    base: int
    signed: bool
    wide: bool
    padding: int = 0


def _signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    return value - (1 << bits) if value >> (bits - 1) else value


def _int_text(value: Any, spec: _IntSpec) -> str:
    if not isinstance(value, int):
        raise TypeError(f"integer conversion needs an int, got {type(value).__name__}")
    xx = _signed(value, 64 if spec.wide else 32)
    negative = spec.signed and xx < 0
    x = -xx if negative else xx & _MASK64
    digits = ""
    while True:
        digits = _DIGITS[x % spec.base] + digits
        x //= spec.base
        if not x:
            break
    digits = digits.rjust(min(spec.padding, _MAX_PADDING), "0")
    return "-" + digits if negative else digits


def _int_spec(c0: str, c1: str, c2: str) -> tuple[_IntSpec, int] | None:
    """Return the integer conversion at c0.. and the extra characters it spans."""
    conversions = {"d": (10, True), "i": (10, True), "u": (10, False), "x": (16, False)}
    if c0 in conversions:
        base, signed = conversions[c0]
        return _IntSpec(base, signed, wide=False), 0
    if c0 == "." and c2 == "d":
        return _IntSpec(10, True, wide=False, padding=ord(c1) - ord("0")), 2
    if c0 == "l" and c1 in ("d", "u", "x"):
        base, signed = conversions[c1]
        return _IntSpec(base, signed, wide=True), 1
    if c0 == "l" and c1 == "l" and c2 in ("d", "u", "x"):
        base, signed = conversions[c2]
        return _IntSpec(base, signed, wide=True), 2
    return None


def _rendered(fmt: str, args: tuple[Any, ...]) -> Iterator[tuple[_Kind, str]]:
    """Yield each output piece of fmt with its kind, consuming args lazily."""
    remaining = iter(args)

    def next_arg() -> Any:
        try:
            return next(remaining)
        except StopIteration:
            raise TypeError("not enough arguments for format string") from None

    text = fmt.split("\0", 1)[0]

    def at(k: int) -> str:
        return text[k] if k < len(text) else ""

    i = 0
    while i < len(text):
        ch = text[i]
        if ch != "%":
            yield _Kind.TEXT, ch
            i += 1
            continue
        i += 1
        c0 = at(i)
        c1 = at(i + 1) if c0 else ""
        c2 = at(i + 2) if c1 else ""
        if not c0:
            break
        int_spec = _int_spec(c0, c1, c2)
        if int_spec is not None:
            spec, extra = int_spec
            yield _Kind.INT, _int_text(next_arg(), spec)
            i += extra
        elif c0 == "p":
            yield _Kind.PTR, f"0x{next_arg() & _MASK64:016x}"
        elif c0 == "s":
            value = next_arg()
            yield _Kind.STR, "(null)" if value is None else str(value).split("\0", 1)[0]
        elif c0 == "%":
            yield _Kind.PERCENT, "%"
        elif c0 == "c":
            value = next_arg()
            yield _Kind.CHAR, chr(value & 0xFF) if isinstance(value, int) else value[:1]
        else:
            yield _Kind.UNKNOWN, "%" + c0
        i += 1


def format(fmt: str, *args: Any) -> str:
    """Format args per fmt; unknown conversions are echoed verbatim."""
    return "".join(piece for _, piece in _rendered(fmt, args))


def snformat(size: int, fmt: str, *args: Any) -> str:
    """Format into a buffer of size cells, returning the resulting string.

    Literal text, %s and %c may fill every cell; numeric conversions stop one
    cell short of the end.
    """
    if size < 0:
        raise ValueError("size must not be negative")
    end = size - 1
    out: list[str] = []
    pieces = _rendered(fmt, args)
    while len(out) <= end:
        piece = next(pieces, None)
        if piece is None:
            break
        kind, text = piece
        if kind in (_Kind.INT, _Kind.PTR):
            out.extend(text[: max(0, end - len(out))])
        elif kind is _Kind.STR:
            out.extend(text[: end - len(out) + 1])
        else:
            out.extend(text)
    return "".join(out)


def fprintf(stream: TextIO, fmt: str, *args: Any) -> None:
    stream.write(format(fmt, *args))


def puts(stream: TextIO, s: str) -> None:
    """Write s followed by a newline."""
    stream.write(s.split("\0", 1)[0] + "\n")


def read_line(instream: TextIO, outstream: TextIO, max_len: int) -> str:
    """Read at most max_len - 1 characters, up to and including a line end.

    DEL removes the last character and erases it on outstream.
    """
    line: list[str] = []
    while len(line) + 1 < max_len:
        c = instream.read(1)
        if not c:
            break
        if c == _DEL:
            if line:
                line.pop()
                outstream.write("\b \b")
            continue
        line.append(c)
        if c in ("\n", "\r"):
            break
    return "".join(line)


def hexdump(data: bytes) -> str:
    """Lower-case hex of data followed by a newline."""
    return bytes(data).hex() + "\n"