import pytest

from sti.group import (
    EMPTY_PER_GROUP,
    MAX_CAP,
    WIDTH,
    Group,
    Hash32,
    SlotIdx,
    num_groups_for_cap,
)


def _full_group():
    group = Group.fresh()
    for i in range(WIDTH):
        group.use_entry(SlotIdx(i), Hash32(i))
    return group


def test_fresh_group_masks():
    group = Group.fresh()
    assert group.bits == 0xFFFFFFFFFFFFFFFF
    assert list(group.match_fresh()) == list(range(WIDTH))
    assert list(group.match_tomb()) == []
    assert list(group.match_used()) == []
    assert all(group.is_fresh(SlotIdx(i)) for i in range(WIDTH))


def test_use_entry_marks_used_and_matches_hash():
    group = Group.fresh()
    idx = SlotIdx(3)
    group.use_entry(idx, Hash32(0x1234))
    assert group.is_used(idx)
    assert not group.is_fresh(idx)
    assert group.get(idx) == Group.mask_hash(Hash32(0x1234))
    assert 3 in list(group.match_hash(Hash32(0x1234)))
    assert list(group.match_used()) == [3]
    assert 3 not in list(group.match_fresh())


def test_mask_hash_keeps_low_seven_bits():
    assert Group.mask_hash(Hash32(0xFF)) == 0x7F
    assert Group.mask_hash(Hash32(0x80)) == 0
    assert Group.mask_hash(Hash32(0x12345601)) == 1


def test_slot_index_wraps_within_group():
    group = Group.fresh()
    group.use_entry(SlotIdx(WIDTH + 2), Hash32(5))
    assert group.is_used(SlotIdx(2))
    assert list(group.match_used()) == [2]


def test_free_entry_with_fresh_slot_becomes_fresh():
    group = Group.fresh()
    idx = SlotIdx(0)
    group.use_entry(idx, Hash32(7))
    assert group.free_entry(idx) == 1
    assert group.is_fresh(idx)
    assert group == Group.fresh()


def test_free_entry_in_full_group_leaves_tombstone():
    group = _full_group()
    assert list(group.match_fresh()) == []
    idx = SlotIdx(4)
    assert group.free_entry(idx) == 0
    assert group.get(idx) == Group.TOMBSTONE
    assert not group.is_used(idx)
    assert not group.is_fresh(idx)
    assert list(group.match_tomb()) == [4]
    assert 4 not in list(group.match_used())


def test_masks_partition_slots():
    group = _full_group()
    group.free_entry(SlotIdx(1))
    group.set(SlotIdx(6), Group.FRESH)
    used = set(group.match_used())
    tomb = set(group.match_tomb())
    fresh = set(group.match_fresh())
    assert used | tomb | fresh == set(range(WIDTH))
    assert not (used & tomb) and not (used & fresh) and not (tomb & fresh)
    assert tomb == {1}
    assert fresh == {6}


def test_get_set_round_trip():
    group = Group(0)
    for i in range(WIDTH):
        group.set(SlotIdx(i), i * 16 + 1)
    assert [group.get(SlotIdx(i)) for i in range(WIDTH)] == [i * 16 + 1 for i in range(WIDTH)]


def test_set_rejects_out_of_range_byte():
    with pytest.raises(ValueError):
        Group.fresh().set(SlotIdx(0), 256)


@pytest.mark.parametrize("groups_num", [1, 2, 10, 1000])
def test_first_idx_stays_in_range(groups_num):
    assert Group.first_idx(0, groups_num) == 0
    assert Group.first_idx(0xFFFFFFFF, groups_num) == groups_num - 1
    for h in (1, 0x7FFFFFFF, 0x80000000, 0xDEADBEEF):
        assert 0 <= Group.first_idx(h, groups_num) < groups_num


def test_num_groups_for_cap_matches_source_cases():
    assert num_groups_for_cap(0) == 0
    # hm_basic: size for cap 69.
    assert num_groups_for_cap(69) * WIDTH == (69 * 8 // 7 + WIDTH) // WIDTH * WIDTH
    # hm_tombstone: reserving WIDTH yields two groups.
    assert num_groups_for_cap(WIDTH) == 2


@pytest.mark.parametrize("cap", [1, 7, 8, 69, 1000, 123457])
def test_num_groups_for_cap_holds_capacity(cap):
    groups = num_groups_for_cap(cap)
    assert groups * EMPTY_PER_GROUP >= cap


def test_num_groups_for_cap_limits():
    assert num_groups_for_cap(MAX_CAP) * WIDTH <= 0xFFFFFFFF
    with pytest.raises(ValueError):
        num_groups_for_cap(MAX_CAP + 1)
    with pytest.raises(ValueError):
        num_groups_for_cap(-1)


def test_index_and_hash_bounds():
    with pytest.raises(ValueError):
        SlotIdx(1 << 32)
    with pytest.raises(ValueError):
        SlotIdx(-1)
    with pytest.raises(ValueError):
        Hash32(1 << 32)
    with pytest.raises(ValueError):
        Group(1 << 64)
    assert SlotIdx(3) == SlotIdx(3)
    assert SlotIdx(2) < SlotIdx(3)