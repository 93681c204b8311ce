"""First-fit free-list allocator over a simulated data segment."""

from __future__ import annotations

from dataclasses import dataclass

HEADER_SIZE = 16
MIN_GROWTH_UNITS = 4096
_BASE = -1


@dataclass
class _Header:
    ptr: int
    size: int


class Heap:
    """Circular free list of header-sized units, grown through sbrk.

    Addresses are byte offsets into the segment; the segment may grow up to
    ``limit`` bytes.
    """

    def __init__(self, limit: int) -> None:
        if limit < 0:
            raise ValueError("limit must not be negative")
        self._limit = limit
        self._memory = bytearray()
        self._headers: dict[int, _Header] = {}
        self._freep: int | None = None

    def sbrk(self, nbytes: int) -> int:
        """Move the break by nbytes and return the previous break."""
        old = len(self._memory)
        new = old + nbytes
        if new < 0 or new > self._limit:
            raise MemoryError(f"cannot move break to {new} (limit {self._limit})")
        if nbytes > 0:
            self._memory.extend(bytes(nbytes))
        else:
            del self._memory[new:]
        return old

    def _morecore(self, nunits: int) -> int:
        nunits = max(nunits, MIN_GROWTH_UNITS)
        misalign = -len(self._memory) % HEADER_SIZE
        start = self.sbrk(misalign + nunits * HEADER_SIZE) + misalign
        unit = start // HEADER_SIZE
        self._headers[unit] = _Header(ptr=_BASE, size=nunits)
        self.free((unit + 1) * HEADER_SIZE)
        assert self._freep is not None
        return self._freep

    def _block(self, address: int) -> int:
        if address % HEADER_SIZE:
            raise ValueError(f"address {address} is not a block address")
        unit = address // HEADER_SIZE - 1
        if unit < 0 or unit not in self._headers:
            raise ValueError(f"address {address} is not a block address")
        return unit

    def malloc(self, nbytes: int) -> int:
        """Allocate nbytes and return the block's address."""
        if nbytes < 0:
            raise ValueError("size must not be negative")
        h = self._headers
        nunits = (nbytes + HEADER_SIZE - 1) // HEADER_SIZE + 1
        if self._freep is None:
            h[_BASE] = _Header(ptr=_BASE, size=0)
            self._freep = _BASE
        prevp = self._freep
        p = h[prevp].ptr
        while True:
            block = h[p]
            if block.size >= nunits:
                if block.size == nunits:
                    h[prevp].ptr = block.ptr
                else:
                    block.size -= nunits
                    p += block.size
                    h[p] = _Header(ptr=_BASE, size=nunits)
                self._freep = prevp
                return (p + 1) * HEADER_SIZE
            if p == self._freep:
                p = self._morecore(nunits)
            prevp, p = p, h[p].ptr

    def free(self, address: int | None) -> None:
        """Return a block to the free list, merging it with its neighbours."""
        if not address:
            return
        bp = self._block(address)
        h = self._headers
        block = h[bp]
        p = self._freep
        assert p is not None
        while not (p < bp < h[p].ptr):
            if p >= h[p].ptr and (bp > p or bp < h[p].ptr):
                break
            p = h[p].ptr
        nxt = h[p].ptr
        if bp + block.size == nxt:
            block.size += h[nxt].size
            block.ptr = h[nxt].ptr
            del h[nxt]
        else:
            block.ptr = nxt
        if p + h[p].size == bp:
            h[p].size += block.size
            h[p].ptr = block.ptr
            del h[bp]
        else:
            h[p].ptr = bp
        self._freep = p

    def calloc(self, nmemb: int, size: int) -> int:
        """Allocate nmemb * size zeroed bytes."""
        total = nmemb * size
        address = self.malloc(total)
        self._memory[address:address + total] = bytes(total)
        return address

    def realloc(self, address: int | None, size: int) -> int | None:
        """Allocate a new block of size bytes and copy the old contents into it.

        The copy length is min(size, the old block's size in header units); the
        old block stays allocated.
        """
        if not address:
            return self.malloc(size)
        if size == 0:
            self.free(address)
            return None
        units = self._headers[self._block(address)].size
        if size == units:
            return address
        new = self.malloc(size)
        count = min(size, units)
        self._memory[new:new + count] = self._memory[address:address + count]
        return new

    def _check_range(self, address: int, size: int) -> None:
        if address < 0 or size < 0 or address + size > len(self._memory):
            raise IndexError(f"range [{address}, {address + size}) is outside the segment")

    def read(self, address: int, size: int) -> bytes:
        self._check_range(address, size)
        return bytes(self._memory[address:address + size])

    def write(self, address: int, data: bytes) -> None:
        self._check_range(address, len(data))
        self._memory[address:address + len(data)] = data