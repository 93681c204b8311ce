"""Process records and the process table: slots, PIDs, file descriptors and waiting."""

from __future__ import annotations

import enum
import errno
import threading
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

MAX_OPEN_FILES = 8
MAX_PROCESSES = 64
DEFAULT_EXIT_STATUS = -1


class ProcessState(enum.Enum):
    """Lifecycle state of a process."""

    UNUSED = enum.auto()
    USED = enum.auto()
    SLEEPING = enum.auto()
    RUNNABLE = enum.auto()
    RUNNING = enum.auto()
    EXITED = enum.auto()


@dataclass
class CpuContext:
    """Registers saved when a process is switched out and restored when it resumes."""

    r15: int = 0
    r14: int = 0
    r13: int = 0
    r12: int = 0
    rbp: int = 0
    rbx: int = 0
    r11: int = 0
    r10: int = 0
    r9: int = 0
    r8: int = 0
    rsi: int = 0
    rdi: int = 0
    rdx: int = 0
    rcx: int = 0
    rax: int = 0
    rsp: int = 0
    rip: int = 0
    rflags: int = 0
    kernel_rip: int = 0


@dataclass
class OpenFile:
    """One entry of a process's file descriptor table."""

    class Kind(enum.Enum):
        EMPTY = enum.auto()
        INODE = enum.auto()
        DEVICE = enum.auto()

    kind: Kind = Kind.EMPTY
    resource: Any = None
    offset: int = 0
    readable: bool = False
    writable: bool = False


@dataclass(eq=False)
class Process:
    """A user process and the kernel's bookkeeping for it."""

    pid: int
    index: int
    orig_index: int
    state: ProcessState = ProcessState.USED
    exit_status: int = DEFAULT_EXIT_STATUS
    open_files: list[OpenFile] = field(
        default_factory=lambda: [OpenFile() for _ in range(MAX_OPEN_FILES)]
    )
    initial_data_segment: int = 0
    current_sbrk: int = 0
    working_directory: Any = None
    ctx: CpuContext = field(default_factory=CpuContext)
    kernel_stack_top: int = 0
    kernel_stack_base: int = 0
    waiting_channel: Any = None
    lock: threading.Condition = field(default_factory=threading.Condition, repr=False)

    def allocate_fd(self) -> int:
        """Return the lowest free file descriptor."""
        for fd, entry in enumerate(self.open_files):
            if entry.kind is OpenFile.Kind.EMPTY:
                return fd
        raise OSError(errno.EMFILE, "too many open files")

    def exit(self, code: int) -> None:
        """Close the open inode files, record the exit code and wake waiters."""
        for fd, entry in enumerate(self.open_files):
            if entry.kind is OpenFile.Kind.INODE:
                close = getattr(entry.resource, "close", None)
                if callable(close):
                    close()
                self.open_files[fd] = OpenFile()
        with self.lock:
            self.exit_status = code
            self.state = ProcessState.EXITED
            self.lock.notify_all()

    def sbrk(self, how_much: int) -> int:
        """Move the top of the data segment and return its previous value.

        Shrinking never goes below the initial data segment.
        """
        before = self.current_sbrk
        if how_much < 0 and self.current_sbrk + how_much < self.initial_data_segment:
            how_much = self.initial_data_segment - self.current_sbrk
        self.current_sbrk += how_much
        return before


class ProcessTable:
    """Fixed number of process slots kept packed at the front.

    The last free slot is never handed out: the table always keeps one slot
    in reserve.
    """

    def __init__(self, capacity: int = MAX_PROCESSES) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._slots: list[Optional[Process]] = [None] * capacity
        self._count = 0
        self._min_index = 0
        self._next_pid = 1
        self._pid_lock = threading.Lock()

    def _take_pid(self) -> int:
        with self._pid_lock:
            pid = self._next_pid
            self._next_pid += 1
            return pid

    def _first_free(self) -> Optional[int]:
        # Slot 0 is tried first; otherwise the search starts at the lowest
        # index known to be free.
        if self._slots[0] is None:
            return 0
        for index in range(self._min_index, len(self._slots)):
            if self._slots[index] is None:
                return index
        return None

    def allocate(self) -> Process:
        """Place a new process in a free slot and give it the next PID."""
        index = self._first_free()
        if index is None:
            raise RuntimeError("process table is full")
        proc = Process(pid=self._take_pid(), index=index, orig_index=index)
        self._slots[index] = proc
        grew = index == self._count
        if grew:
            self._count += 1
        following = next(
            (j for j in range(index + 1, len(self._slots)) if self._slots[j] is None),
            None,
        )
        if following is None:
            self._slots[index] = None
            if grew:
                self._count -= 1
            raise RuntimeError("hit process limit - 1")
        self._min_index = following
        return proc

    def remove(self, index: int) -> Process:
        """Free the process at index and shift the later ones down by one slot."""
        if not 0 <= index < len(self._slots) or self._slots[index] is None:
            raise IndexError(f"no process in slot {index}")
        proc = self._slots[index]
        assert proc is not None
        proc.state = ProcessState.UNUSED
        proc.pid = 0
        proc.current_sbrk = 0
        proc.initial_data_segment = 0
        self._slots[index] = None
        for j in range(index + 1, self._count):
            moved = self._slots[j]
            self._slots[j - 1] = moved
            if moved is not None:
                moved.index = j - 1
            self._slots[j] = None
        self._min_index = min(self._min_index, index)
        self._count -= 1
        return proc

    def find(self, pid: int) -> Optional[Process]:
        """The process with the given PID, or None."""
        return next((p for p in self._slots if p is not None and p.pid == pid), None)

    def wakeup(self, channel: Any, everyone: bool, current: Optional[Process] = None) -> int:
        """Make processes sleeping on channel runnable; returns how many woke."""
        woken = 0
        for proc in self._slots:
            if proc is None or proc is current:
                continue
            with proc.lock:
                matched = (
                    proc.state is ProcessState.SLEEPING
                    and proc.waiting_channel == channel
                )
                if matched:
                    proc.state = ProcessState.RUNNABLE
                    woken += 1
            if matched and not everyone:
                break
        return woken

    def wait(self, pid: int) -> int:
        """Block until the process exits and return its exit status."""
        proc = self.find(pid)
        if proc is None:
            raise ProcessLookupError(f"no process with pid {pid}")
        with proc.lock:
            proc.lock.wait_for(lambda: proc.state is ProcessState.EXITED)
            return proc.exit_status

    def __len__(self) -> int:
        return self._count

    def __iter__(self) -> Iterator[Process]:
        return (p for p in self._slots[: self._count] if p is not None)