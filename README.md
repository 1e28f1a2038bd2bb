# sti

Small building blocks in plain Python, with no dependencies:

- `sti.byte_mask`: `ByteMask4` and `ByteMask8`, masks over the bytes of a 32- or
  64-bit word. `find_zero_bytes`, `find_equal_bytes` and `find_high_bit_bytes` build
  them. Iterating a mask yields the indices of the marked bytes, lowest first.
  `splat_4` and `splat_8` repeat a byte across a word.
- `sti.fxhash`: the Fx hash. It provides `fxhash32` and `fxhash64`, the incremental
  hashers `FxHasher32` and `FxHasher64`, and `FxHashFn`, a callable hash-function
  object built on the abstract `HashFn`.
- `sti.alloc`: `Layout` (size and alignment), the `Alloc` interface with
  `default_realloc`, `GlobalAlloc`, and the helpers `ceil_to_multiple_pow2`,
  `cat_join`, `cat_next_bytes`, `dangling` and `alloc_array`. A failed allocation
  raises `AllocError`.
- `sti.arena`: `Arena`, a bump allocator that takes blocks from a backing allocator
  and grows them geometrically. It has `reset`, `reset_all` and `stats`, which
  returns an `ArenaStats`.
- `sti.group`: `Group`, the eight control bytes of a hash-map group, along with
  `SlotIdx`, `Hash32` and `num_groups_for_cap`.
- `sti.hash_map`: `HashMap`, an open-addressing hash map. It probes eight slots at a
  time, uses tombstones, keeps a 7/8 load factor and doubles when it grows.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Hashing

```python
from sti.fxhash import FxHasher64, fxhash32

h = FxHasher64()
h.write_bytes(b"hello")
print(h.finish())
print(fxhash32("hello"))
```

`write_value` and the `fxhash32` and `fxhash64` functions accept Python values as well
as raw bytes. Each type is encoded as follows:

- `bool`: one byte.
- `int`: 64 bits, or 128 bits when the value needs more.
- `str`: its UTF-8 bytes followed by `0xff`.
- `bytes` and `list`: prefixed with their length.
- `tuple`: hashed element by element.
- `None`: contributes nothing.
- Any other hashable object: contributes its built-in `hash()`.

## The hash map

```python
from sti.hash_map import HashMap

hm = HashMap(cap=69)
hm.insert("hi", 42)
hm.insert("ho", 69)
hm["ho"] = 70            # replaces an existing value; KeyError if absent
assert hm["hi"] == 42
assert "ho" in hm
assert hm.remove("hi") == ("hi", 42)
print(len(hm), hm.size(), hm.cap(), hm.resident())

for key, value in hm.items():
    print(key, value)
```

The main methods behave like this:

- `insert` returns the replaced `(key, value)` pair, or `None` if the key was new.
- `insert_new` raises `KeyError` if the key is already present.
- `get` returns a default for absent keys. `__getitem__` raises `KeyError` for them.
- `update_values(func)` replaces each value `v` of key `k` with `func(k, v)`.
- `copy` returns a shallow copy.
- `clear` removes every entry and keeps the capacity.

The hash function can be any callable that returns a 32-bit integer:
`HashMap(hash_fn=lambda k: 0)`.

Lower-level access works with `SlotIdx` and `Hash32` values, through these methods:

- `hash`
- `lookup`, `lookup_cmp` and `lookup_for_insert`
- `entry` and `entry_for_insert`
- `slot_present`, `slot` and `set_slot_value`
- `insert_at` and `remove_at`

## The arena

```python
from sti.arena import Arena

with Arena() as arena:          # reset_all() on exit
    first = arena.alloc_ptr(1, 1)
    text = arena.alloc_str("hi")
    print(arena.stats())
    arena.reset()               # keep the oldest block, release the rest
```

`Arena.alloc_ptr(size, align)` returns an integer address. Alignments above
`ALIGN_MAX` (512) raise `AllocError`. Freeing a single allocation does nothing.
`try_realloc` can resize the most recent allocation in place.

## What this package does not do

The allocators work over a simulated address space. `GlobalAlloc` and `Arena` hand
out integer addresses and track which ranges are in use, but they store no data.
`alloc_str` reserves room for the string's bytes and returns the address; it does
not keep the text. They are meant for studying allocation patterns and layout
arithmetic, not for holding real memory.