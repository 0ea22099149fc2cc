import pytest
from hypothesis import given, strategies as st

from thundersnail.hashing import hash32, hash32_2, hash32_3, hash64, hash64_2

u32 = st.integers(min_value=0, max_value=0xFFFF_FFFF)
u64 = st.integers(min_value=0, max_value=0xFFFF_FFFF_FFFF_FFFF)


@given(u32)
def test_32_bit_hashes_stay_in_range(a):
    for fn in (hash32, hash32_2, hash32_3):
        assert 0 <= fn(a) <= 0xFFFF_FFFF


@given(u64)
def test_64_bit_hashes_stay_in_range(u):
    for fn in (hash64, hash64_2):
        assert 0 <= fn(u) <= 0xFFFF_FFFF_FFFF_FFFF


@pytest.mark.parametrize("fn", [hash32, hash32_3, hash64, hash64_2])
def test_bijective_hashes_have_no_collisions(fn):
    outputs = {fn(i) for i in range(5000)}
    assert len(outputs) == 5000


def test_splitmix_fixes_zero():
    assert hash64_2(0) == 0


@given(u32)
def test_32_bit_inputs_wrap(a):
    assert hash32(a) == hash32(a + (1 << 32))
    assert hash32_2(a) == hash32_2(a + (1 << 32))
    assert hash32_3(a) == hash32_3(a + (1 << 32))


@given(u64)
def test_64_bit_inputs_wrap(u):
    assert hash64(u) == hash64(u + (1 << 64))
    assert hash64_2(u) == hash64_2(u + (1 << 64))


def test_hashes_spread_nearby_inputs():
    assert len({hash32(i) for i in range(1000)}) > 990
    assert len({hash32_2(i) for i in range(1000)}) > 990