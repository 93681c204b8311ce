import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from dzos.heap import HEADER_SIZE, MIN_GROWTH_UNITS, Heap


@pytest.fixture
def heap():
    return Heap(1 << 22)


def test_malloc_returns_aligned_usable_block(heap):
    address = heap.malloc(100)
    assert address % HEADER_SIZE == 0
    heap.write(address, b"x" * 100)
    assert heap.read(address, 100) == b"x" * 100


def test_free_then_malloc_reuses_block(heap):
    address = heap.malloc(64)
    heap.free(address)
    assert heap.malloc(64) == address


def test_freed_blocks_coalesce(heap):
    addresses = [heap.malloc(100) for _ in range(10)]
    brk = heap.sbrk(0)
    for address in addresses:
        heap.free(address)
    whole = heap.malloc(MIN_GROWTH_UNITS * HEADER_SIZE - HEADER_SIZE)
    assert heap.sbrk(0) == brk
    assert whole == HEADER_SIZE


def test_calloc_zeroes(heap):
    address = heap.malloc(32)
    heap.write(address, b"\xff" * 32)
    heap.free(address)
    zeroed = heap.calloc(4, 8)
    assert heap.read(zeroed, 32) == bytes(32)


def test_malloc_beyond_limit_raises():
    with pytest.raises(MemoryError):
        Heap(1024).malloc(1)


def test_sbrk_moves_break():
    heap = Heap(100)
    start = heap.sbrk(10)
    assert heap.sbrk(0) == start + 10
    with pytest.raises(MemoryError):
        heap.sbrk(200)
    with pytest.raises(MemoryError):
        heap.sbrk(-(start + 20))


def test_realloc_null_allocates(heap):
    address = heap.realloc(None, 40)
    heap.write(address, b"y" * 40)
    assert heap.read(address, 40) == b"y" * 40


def test_realloc_zero_frees(heap):
    address = heap.malloc(48)
    assert heap.realloc(address, 0) is None
    assert heap.malloc(48) == address


def test_realloc_copies_prefix(heap):
    payload = bytes(range(16))
    address = heap.malloc(16)
    heap.write(address, payload)
    moved = heap.realloc(address, 32)
    assert moved != address
    assert heap.read(moved, 2) == payload[:2]


def test_free_rejects_bad_address(heap):
    address = heap.malloc(10)
    with pytest.raises(ValueError):
        heap.free(address + 1)
    with pytest.raises(ValueError):
        heap.free(address + HEADER_SIZE * 1000)


def test_read_outside_segment(heap):
    with pytest.raises(IndexError):
        heap.read(0, 1)


@settings(max_examples=50)
@given(st.lists(st.integers(0, 2000), min_size=1, max_size=20))
def test_allocations_do_not_overlap(sizes):
    heap = Heap(1 << 22)
    blocks = [(heap.malloc(size), size) for size in sizes]
    for index, (address, size) in enumerate(blocks):
        heap.write(address, bytes([index % 256]) * size)
    for index, (address, size) in enumerate(blocks):
        assert heap.read(address, size) == bytes([index % 256]) * size
    spans = sorted(blocks)
    for (a, a_size), (b, _) in zip(spans, spans[1:]):
        assert a + a_size <= b