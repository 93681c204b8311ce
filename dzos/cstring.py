"""NUL-terminated string and character helpers with the C library's semantics.

Strings are Python ``str`` values; a NUL character, or the end of the value,
terminates them.
"""

from __future__ import annotations

from itertools import islice, takewhile, zip_longest

_NUL = "\0"


def _terminated(s: str) -> str:
    return s.split(_NUL, 1)[0]


def _single(c: str) -> str:
    if len(c) != 1:
        raise ValueError(f"expected a single character, got {c!r}")
    return c


def isspace(c: str | int) -> bool:
    """Only the plain space counts as whitespace."""
    return c == " " or c == ord(" ")


def toupper(c: str | int) -> str | int:
    """Upper-case an ASCII letter; anything else is returned unchanged."""
    if isinstance(c, str):
        return chr(toupper(ord(_single(c))))
    if ord("a") <= c <= ord("z"):
        return c + ord("A") - ord("a")
    return c


def memcmp(a: bytes, b: bytes, n: int) -> int:
    """Compare the first n bytes; returns -1, 0 or 1."""
    if n < 0 or n > len(a) or n > len(b):
        raise ValueError("n exceeds the length of an operand")
    for x, y in zip(a[:n], b[:n]):
        if x != y:
            return -1 if x < y else 1
    return 0


def strlen(s: str) -> int:
    return len(_terminated(s))


def _compare(p: str, q: str, limit: int | None, fold: bool) -> int:
    pairs = zip_longest(_terminated(p), _terminated(q), fillvalue=_NUL)
    for a, b in islice(pairs, limit):
        differ = toupper(a) != toupper(b) if fold else a != b
        if differ:
            return ord(a) - ord(b)
        if a == _NUL:
            break
    return 0


def strcmp(p: str, q: str) -> int:
    """Difference of the first differing characters, or 0."""
    return _compare(p, q, None, fold=False)


def strncmp(p: str, q: str, n: int) -> int:
    return _compare(p, q, n, fold=False)


def strcasecmp(p: str, q: str) -> int:
    """Compare ignoring ASCII case; the result uses the original characters."""
    return _compare(p, q, None, fold=True)


def strncasecmp(p: str, q: str, n: int) -> int:
    return _compare(p, q, n, fold=True)


def strchr(s: str, c: str) -> int | None:
    """Index of the first c in s, or None; the terminator is never matched."""
    index = _terminated(s).find(_single(c))
    return None if index < 0 else index


def strrchr(s: str, c: str) -> int | None:
    """Index of the last c in s, or None; searching for NUL finds the terminator."""
    s = _terminated(s)
    if _single(c) == _NUL:
        return len(s)
    index = s.rfind(c)
    return None if index < 0 else index


def strstr(haystack: str, needle: str) -> int | None:
    """Index of the first occurrence of needle, or None."""
    index = _terminated(haystack).find(_terminated(needle))
    return None if index < 0 else index


def strncpy(src: str, n: int) -> str:
    """Exactly n characters: src truncated, or padded with NULs."""
    copied = _terminated(src)[:n]
    return copied + _NUL * (n - len(copied))


def atoi(s: str) -> int:
    """Value of the leading decimal digits; no sign or whitespace is accepted."""
    digits = "".join(takewhile(lambda ch: "0" <= ch <= "9", s))
    if not digits:
        return 0
    value = int(digits) & 0xFFFFFFFF
    return value - (1 << 32) if value >> 31 else value


def absolute(a: int) -> int:
    return a if a > 0 else -a