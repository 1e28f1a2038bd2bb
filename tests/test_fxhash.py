import pytest

from sti.fxhash import FxHasher32, FxHasher64, FxHashFn, HashFn, fxhash32, fxhash64


def test_default_seeds():
    assert FxHasher32().finish_u32() == 0x517CC1B7
    assert FxHasher64().finish() == 0x517CC1B727220A95


def test_zero_seed_single_step_is_multiplier():
    h32 = FxHasher32(seed=0)
    h32.write_u32(1)
    assert h32.hash == 0x9E3779B9
    h64 = FxHasher64(seed=0)
    h64.write_u64(1)
    assert h64.hash == 0x9E3779B97F4A7C15


def test_zero_stays_zero():
    h = FxHasher32(seed=0)
    h.write_u32(0)
    assert h.finish_u32() == 0


def test_small_ints_are_widened():
    a, b, c = FxHasher32(), FxHasher32(), FxHasher32()
    a.write_u8(200)
    b.write_u16(200)
    c.write_u32(200)
    assert a.hash == b.hash == c.hash


@pytest.mark.parametrize("data", [b"abcd", b"abc", b"ab", b"a"])
def test_write_bytes_32_reads_little_endian(data):
    a, b = FxHasher32(), FxHasher32()
    a.write_bytes(data)
    b.write_u32(int.from_bytes(data, "little"))
    assert a.hash == b.hash


def test_write_bytes_32_chunks():
    data = b"hello world!"
    a, b = FxHasher32(), FxHasher32()
    a.write_bytes(data)
    for start in (0, 4, 8):
        b.write_u32(int.from_bytes(data[start:start + 4], "little"))
    assert a.hash == b.hash


def test_write_bytes_64_chunks():
    data = b"0123456789ABCDE"
    a, b = FxHasher64(), FxHasher64()
    a.write_bytes(data)
    b.write_u64(int.from_bytes(data[:8], "little"))
    b.write_u32(int.from_bytes(data[8:12], "little"))
    b.write_u32(int.from_bytes(data[12:], "little"))
    assert a.hash == b.hash


def test_empty_bytes_leave_hash():
    h = FxHasher64()
    h.write_bytes(b"")
    assert h.hash == FxHasher64().hash


def test_u64_on_32_bit_hasher_is_two_halves():
    value = 0x1122334455667788
    a, b = FxHasher32(), FxHasher32()
    a.write_u64(value)
    b.write_u32(value & 0xFFFFFFFF)
    b.write_u32(value >> 32)
    assert a.hash == b.hash


def test_u128_halves():
    value = (0xDEADBEEF << 96) | 0x0102030405060708
    a, b = FxHasher64(), FxHasher64()
    a.write_u128(value)
    b.write_u64(value & ((1 << 64) - 1))
    b.write_u64(value >> 64)
    assert a.hash == b.hash

    c, d = FxHasher32(), FxHasher32()
    c.write_u128(value)
    d.write_u64(value & ((1 << 64) - 1))
    d.write_u64(value >> 64)
    assert c.hash == d.hash


def test_usize_is_u64():
    a, b = FxHasher32(), FxHasher32()
    a.write_usize(1 << 40)
    b.write_u64(1 << 40)
    assert a.hash == b.hash


def test_finish_u64_spreads_through_64_bit_hasher():
    h = FxHasher32()
    h.write_u32(7)
    wide = FxHasher64()
    wide.write_u32(h.hash)
    assert h.finish_u64() == wide.hash
    assert h.finish() == h.finish_u64()


def test_out_of_range_rejected():
    with pytest.raises(ValueError):
        FxHasher32().write_u32(1 << 32)
    with pytest.raises(ValueError):
        FxHasher64().write_u8(-1)
    with pytest.raises(ValueError):
        FxHasher32(seed=1 << 32)


def test_str_value_terminated():
    h = FxHasher32()
    h.write_bytes("hi".encode())
    h.write_u8(0xFF)
    assert fxhash32("hi") == h.hash


def test_int_values():
    h = FxHasher64()
    h.write_u64(42)
    assert fxhash64(42) == h.hash
    neg = FxHasher64()
    neg.write_u64((1 << 64) - 1)
    assert fxhash64(-1) == neg.hash
    big = FxHasher64()
    big.write_u128(1 << 100)
    assert fxhash64(1 << 100) == big.hash


def test_sequences():
    h = FxHasher32()
    h.write_usize(2)
    h.write_u64(1)
    h.write_u64(2)
    assert fxhash32([1, 2]) == h.hash

    t = FxHasher32()
    t.write_u64(1)
    t.write_u64(2)
    assert fxhash32((1, 2)) == t.hash

    b = FxHasher32()
    b.write_usize(3)
    b.write_bytes(b"abc")
    assert fxhash32(b"abc") == b.hash


def test_none_hashes_as_nothing():
    assert fxhash32(None) == FxHasher32().hash


def test_unhashable_rejected():
    with pytest.raises(TypeError):
        fxhash32({})


def test_too_large_int_rejected():
    with pytest.raises(OverflowError):
        fxhash64(1 << 200)


def test_results_fit_width():
    for value in ["", "abc", 0, 1 << 63, (1, "x"), b"\x00" * 17]:
        assert 0 <= fxhash32(value) < 1 << 32
        assert 0 <= fxhash64(value) < 1 << 64


def test_fx_hash_fn_matches_fxhash32():
    fn = FxHashFn()
    assert fn("key") == fxhash32("key")
    assert fn(17) == fxhash32(17)
    assert FxHashFn() == fn


def test_hash_fn_is_abstract():
    with pytest.raises(TypeError):
        HashFn()

    class Const(HashFn):
        def __call__(self, value):
            return 0

    assert Const()("anything") == 0