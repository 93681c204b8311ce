import threading

import pytest

from dzos.process import (
    MAX_OPEN_FILES,
    CpuContext,
    OpenFile,
    Process,
    ProcessState,
    ProcessTable,
)


class _FakeInode:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


def test_allocate_assigns_increasing_pids_and_slots():
    table = ProcessTable(8)
    procs = [table.allocate() for _ in range(3)]
    assert [p.pid for p in procs] == [1, 2, 3]
    assert [p.index for p in procs] == [0, 1, 2]
    assert len(table) == 3
    assert list(table) == procs


def test_new_process_defaults():
    proc = ProcessTable(4).allocate()
    assert proc.state is ProcessState.USED
    assert proc.exit_status == -1
    assert proc.current_sbrk == 0
    assert proc.ctx == CpuContext()
    assert all(f.kind is OpenFile.Kind.EMPTY for f in proc.open_files)


def test_capacity_keeps_one_slot_in_reserve():
    table = ProcessTable(3)
    table.allocate()
    table.allocate()
    with pytest.raises(RuntimeError):
        table.allocate()
    assert len(table) == 2


def test_invalid_capacity():
    with pytest.raises(ValueError):
        ProcessTable(0)


def test_remove_shifts_later_processes_down():
    table = ProcessTable(8)
    a, b, c = (table.allocate() for _ in range(3))
    removed = table.remove(0)
    assert removed is a
    assert a.state is ProcessState.UNUSED and a.pid == 0
    assert list(table) == [b, c]
    assert (b.index, c.index) == (0, 1)
    assert (b.orig_index, c.orig_index) == (1, 2)
    assert len(table) == 2


def test_remove_empty_slot_raises():
    table = ProcessTable(4)
    with pytest.raises(IndexError):
        table.remove(0)


def test_allocate_after_remove_reuses_free_slot():
    table = ProcessTable(8)
    for _ in range(3):
        table.allocate()
    table.remove(1)
    fresh = table.allocate()
    assert fresh.index == 2
    assert fresh in list(table)
    assert len(table) == 3


def test_find_by_pid():
    table = ProcessTable(4)
    first = table.allocate()
    second = table.allocate()
    assert table.find(second.pid) is second
    assert table.find(first.pid) is first
    assert table.find(999) is None


def test_allocate_fd_returns_lowest_free():
    proc = ProcessTable(4).allocate()
    assert proc.allocate_fd() == 0
    proc.open_files[0] = OpenFile(kind=OpenFile.Kind.DEVICE, resource=1)
    proc.open_files[1] = OpenFile(kind=OpenFile.Kind.INODE, resource=_FakeInode())
    assert proc.allocate_fd() == 2


def test_allocate_fd_exhausted():
    proc = ProcessTable(4).allocate()
    for fd in range(MAX_OPEN_FILES):
        proc.open_files[fd] = OpenFile(kind=OpenFile.Kind.DEVICE)
    with pytest.raises(OSError):
        proc.allocate_fd()


def test_exit_closes_inode_files_only():
    proc = ProcessTable(4).allocate()
    inode = _FakeInode()
    device = _FakeInode()
    proc.open_files[0] = OpenFile(kind=OpenFile.Kind.DEVICE, resource=device)
    proc.open_files[3] = OpenFile(kind=OpenFile.Kind.INODE, resource=inode)
    proc.exit(7)
    assert inode.closed
    assert not device.closed
    assert proc.open_files[3].kind is OpenFile.Kind.EMPTY
    assert proc.open_files[0].kind is OpenFile.Kind.DEVICE
    assert proc.state is ProcessState.EXITED
    assert proc.exit_status == 7


def test_sbrk_grow_and_shrink():
    proc = Process(pid=1, index=0, orig_index=0, initial_data_segment=4096, current_sbrk=4096)
    assert proc.sbrk(100) == 4096
    assert proc.sbrk(0) == 4196
    assert proc.sbrk(-50) == 4196
    assert proc.current_sbrk == 4146


def test_sbrk_never_shrinks_below_initial_segment():
    proc = Process(pid=1, index=0, orig_index=0, initial_data_segment=4096, current_sbrk=4096)
    proc.sbrk(10)
    proc.sbrk(-1000)
    assert proc.current_sbrk == proc.initial_data_segment


def test_wakeup_one():
    table = ProcessTable(8)
    procs = [table.allocate() for _ in range(3)]
    for p in procs:
        p.state = ProcessState.SLEEPING
        p.waiting_channel = "disk"
    assert table.wakeup("disk", everyone=False) == 1
    assert [p.state for p in procs] == [
        ProcessState.RUNNABLE,
        ProcessState.SLEEPING,
        ProcessState.SLEEPING,
    ]


def test_wakeup_all_skips_current_and_other_channels():
    table = ProcessTable(8)
    a, b, c = (table.allocate() for _ in range(3))
    for p in (a, b):
        p.state = ProcessState.SLEEPING
        p.waiting_channel = "tty"
    c.state = ProcessState.SLEEPING
    c.waiting_channel = "disk"
    assert table.wakeup("tty", everyone=True, current=a) == 1
    assert a.state is ProcessState.SLEEPING
    assert b.state is ProcessState.RUNNABLE
    assert c.state is ProcessState.SLEEPING


def test_wait_returns_exit_status_of_exited_process():
    table = ProcessTable(4)
    proc = table.allocate()
    proc.exit(3)
    assert table.wait(proc.pid) == 3


def test_wait_blocks_until_exit():
    table = ProcessTable(4)
    proc = table.allocate()
    exiter = threading.Timer(0.05, proc.exit, args=(42,))
    exiter.start()
    try:
        status = table.wait(proc.pid)
    finally:
        exiter.join(timeout=5)
    assert status == 42
    assert proc.state is ProcessState.EXITED


def test_wait_unknown_pid():
    table = ProcessTable(4)
    with pytest.raises(ProcessLookupError):
        table.wait(12345)


def test_wait_after_remove_raises():
    table = ProcessTable(4)
    proc = table.allocate()
    pid = proc.pid
    proc.exit(0)
    table.remove(proc.index)
    with pytest.raises(ProcessLookupError):
        table.wait(pid)