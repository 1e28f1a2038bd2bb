"""Byte masks, Fx hashing, simulated allocators with a bump arena, and a group-probed hash map."""

__version__ = "0.200.0"
__all__ = ["alloc", "arena", "byte_mask", "fxhash", "group", "hash_map"]