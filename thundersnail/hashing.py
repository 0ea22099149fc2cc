"""Integer hash functions on fixed-width unsigned values."""

_MASK32 = 0xFFFF_FFFF
_MASK64 = 0xFFFF_FFFF_FFFF_FFFF


def hash32(a: int) -> int:
    """32-bit integer mixing hash."""
    a &= _MASK32
    a = ((a + 0x7ED55D16) + (a << 12)) & _MASK32
    a = ((a ^ 0xC761C23C) ^ (a >> 19)) & _MASK32
    a = ((a + 0x165667B1) + (a << 5)) & _MASK32
    a = ((a + 0xD3A2646C) ^ (a << 9)) & _MASK32
    a = ((a + 0xFD7046C5) + (a << 3)) & _MASK32
    a = ((a ^ 0xB55A4F09) ^ (a >> 16)) & _MASK32
    return a


def hash32_2(a: int) -> int:
    """Alternative 32-bit mixing hash."""
    z = (a + 0x6D2B79F5) & _MASK32
    z = ((z ^ (z >> 15)) * (z | 1)) & _MASK32
    z ^= (z + (z ^ (z >> 7)) * (z | 61)) & _MASK32
    return z ^ (z >> 14)


def hash32_3(a: int) -> int:
    """Murmur3-style 32-bit finaliser with different constants."""
    z = (a + 0x9E3779B9) & _MASK32
    z ^= z >> 15
    z = (z * 0x85EBCA6B) & _MASK32
    z ^= z >> 13
    z = (z * 0xC2B2AE3D) & _MASK32
    return z ^ (z >> 16)


def hash64(u: int) -> int:
    """64-bit hash built from a linear step and xor-shifts."""
    v = (u * 3935559000370003845 + 2691343689449507681) & _MASK64
    v ^= v >> 21
    v ^= (v << 37) & _MASK64
    v ^= v >> 4
    v = (v * 4768777513237032717) & _MASK64
    v ^= (v << 20) & _MASK64
    v ^= v >> 41
    v ^= (v << 5) & _MASK64
    return v


def hash64_2(x: int) -> int:
    """SplitMix64 finaliser."""
    x &= _MASK64
    x = ((x ^ (x >> 30)) * 0xBF58476D1CE4E5B9) & _MASK64
    x = ((x ^ (x >> 27)) * 0x94D049BB133111EB) & _MASK64
    return x ^ (x >> 31)