# dzos

A pure-Python model of the user-facing runtime of a small x86-64 kernel:
its system call ABI, its string and `printf` routines, its free-list heap,
its ELF loader and its process table. Each piece follows the kernel's exact
rules, so it can be used to study them, or to test tools against them,
without booting anything.

## Modules

- `dzos.abi`: syscall numbers (`Syscall`), `open` flags (`OpenFlag`), seek
  modes (`Whence`), directory entry kinds (`DirentType`), framebuffer ioctl
  codes (`FramebufferCtl`), the limits `MAX_ARGV` and `MAX_ENVP`, and the
  binary records `FramebufferPixel` (four bytes) and `Dirent` (a fixed
  header followed by a NUL-terminated name), each with `pack()` and
  `unpack()`.
- `dzos.cstring`: NUL-terminated string helpers on Python `str` values with
  the same return values as the runtime's routines: `strlen`, `strcmp`,
  `strncmp`, `strcasecmp`, `strncasecmp`, `strchr`, `strrchr`, `strstr`
  (these return an index or `None`), `strncpy`, `memcmp`, `atoi`,
  `absolute`, `toupper` and `isspace` (which accepts only the plain space).
- `dzos.printf`: the small format dialect (`%d %i %u %x %p %s %c %%`, the
  `l` and `ll` modifiers, single-digit `%.Nd` zero padding; unknown
  conversions are echoed). `format` returns the text, `snformat` bounds it to
  a buffer size, `fprintf` and `puts` write to a text stream, `read_line`
  reads a line with DEL acting as backspace, and `hexdump` returns lower-case
  hex followed by a newline.
- `dzos.heap`: `Heap`, a first-fit circular free-list allocator over a
  simulated data segment grown through `sbrk` up to a byte limit, with
  `malloc`, `free`, `calloc`, `realloc`, `read` and `write`. Addresses are
  byte offsets into the segment; growing past the limit raises
  `MemoryError`.
- `dzos.elf`: `ElfHeader` and `ProgramHeader` parsing, `load_bias`,
  `flags_to_permissions`, `load_image` (which checks the magic, maps each
  loadable segment within a `UserLayout` and returns a `LoadedImage`), and
  `build_user_stack`, which lays out `argc`, `argv` and `envp` below a
  stack top. Failures raise `ExecError`.
- `dzos.process`: `ProcessState`, `CpuContext`, `OpenFile`, `Process`
  (`allocate_fd`, `exit`, `sbrk`) and `ProcessTable`, which hands out slots
  and increasing PIDs, keeps processes packed at the front on `remove`,
  always holds one slot in reserve, and offers `find`, `wakeup` and a
  blocking `wait`.

## Install

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Examples

```python
from dzos.printf import format, snformat
from dzos.cstring import strcmp, atoi
from dzos.heap import Heap

format("pid %d at %p\n", 7, 0x400000)  # 'pid 7 at 0x0000000000400000\n'
snformat(6, "%s", "overflowing")       # 'overfl'
snformat(4, "%d", 12345)               # '123'
strcmp("abc", "abd")                   # -1
atoi("42abc")                          # 42

heap = Heap(limit=1 << 20)
block = heap.malloc(16)
heap.write(block, b"hello")
heap.read(block, 5)                    # b'hello'
heap.free(block)
```

```python
from dzos.elf import UserLayout, build_user_stack, load_image

layout = UserLayout(va_min=0x1000, va_max=0x0000_8000_0000_0000)
with open("program.elf", "rb") as f:
    image = load_image(f.read(), layout)
print(hex(image.entry), [hex(s.start) for s in image.segments])

sp, stack = build_user_stack(["/init"], None, top=0x7FFF_F000)
```

```python
from dzos.process import ProcessTable

table = ProcessTable(capacity=64)
proc = table.allocate()
fd = proc.allocate_fd()                # 0
proc.exit(0)
table.wait(proc.pid)                   # 0
```

## What it does not do

This package models rules and data layouts; it runs nothing. There is no
command-line tool, no scheduler loop or context switching, no file system or
devices behind the file descriptors, and no dispatch of system call numbers
to handlers. `load_image` lays out segment contents in memory but does not
execute them, and `Process.sbrk` only moves the recorded break.