"""Model of a small kernel's user runtime: ABI, string and printf semantics, heap, ELF loading and processes."""

__version__ = "0.1.0"
__all__ = ["abi", "cstring", "printf", "heap", "elf", "process"]