import numpy as np

# -----------------------------
# Keccak-f[1600] Constants
# -----------------------------
# Lanes are stored flat, lane (x, y) at index x + 5*y.
ROUND_CONSTANTS = np.array([
    0x0000000000000001, 0x0000000000008082, 0x800000000000808A, 0x8000000080008000,
    0x000000000000808B, 0x0000000080000001, 0x8000000080008081, 0x8000000000008009,
    0x000000000000008A, 0x0000000000000088, 0x0000000080008009, 0x000000008000000A,
    0x000000008000808B, 0x800000000000008B, 0x8000000000008089, 0x8000000000008003,
    0x8000000000008002, 0x8000000000000080, 0x000000000000800A, 0x800000008000000A,
    0x8000000080008081, 0x8000000000008080, 0x0000000080000001, 0x8000000080008008,
], dtype=np.uint64)

RHO_OFFSETS = np.array([
    0, 1, 62, 28, 27,
    36, 44, 6, 55, 20,
    3, 10, 43, 25, 39,
    41, 45, 15, 21, 8,
    18, 2, 61, 56, 14,
], dtype=np.uint64)

# Gather table for the pi step: new[i] = old[PI_LANES[i]]
PI_LANES = np.array([
    0, 6, 12, 18, 24,
    3, 9, 10, 16, 22,
    1, 7, 13, 19, 20,
    4, 5, 11, 17, 23,
    2, 8, 14, 15, 21,
], dtype=np.intp)

_RHO_COMPLEMENT = (np.uint64(64) - RHO_OFFSETS) % np.uint64(64)
_ONE = np.uint64(1)
_SIXTY_THREE = np.uint64(63)

STATE_BYTES = 200
SHA3_SUFFIX = 0x06
SHAKE_SUFFIX = 0x1F

# -----------------------------
# Permutation
# -----------------------------
def keccak_f1600(lanes: np.ndarray) -> np.ndarray:
    """
    Keccak-f[1600] permutation over 25 uint64 lanes.

    Each of the 24 rounds applies:
    - theta: XOR every lane with the parities of two neighbouring columns
    - rho: rotate each lane by its fixed offset
    - pi: move lanes to new positions
    - chi: the only nonlinear step, a ^= ~b & c along rows
    - iota: XOR a round constant into lane (0, 0)

    Args:
        lanes: Flat array of 25 uint64 lanes

    Returns:
        New permuted lane array
    """
    a = lanes.astype(np.uint64, copy=True)
    for rc in ROUND_CONSTANTS:
        # theta
        rows = a.reshape(5, 5)
        c = np.bitwise_xor.reduce(rows, axis=0)
        c_next = np.roll(c, -1)
        d = np.roll(c, 1) ^ ((c_next << _ONE) | (c_next >> _SIXTY_THREE))
        a = (rows ^ d).reshape(25)

        # rho and pi
        a = (a << RHO_OFFSETS) | (a >> _RHO_COMPLEMENT)
        a = a[PI_LANES]

        # chi
        rows = a.reshape(5, 5)
        rows = rows ^ (~np.roll(rows, -1, axis=1) & np.roll(rows, -2, axis=1))
        a = rows.reshape(25).copy()

        # iota
        a[0] ^= rc
    return a

# -----------------------------
# Sponge
# -----------------------------
class KeccakState:
    """
    Keccak sponge state: 1600 bits as 25 little-endian 64-bit lanes.

    A fresh instance is created for every hash call; the capacity portion of
    the state is never exposed.
    """

    def __init__(self, rate: int):
        if rate <= 0 or rate >= STATE_BYTES or rate % 8:
            raise ValueError(f"Invalid sponge rate: {rate} bytes")
        self.rate = rate
        self.lanes = np.zeros(25, dtype=np.uint64)

    def absorb_block(self, block: bytes):
        words = np.frombuffer(block, dtype='<u8').astype(np.uint64)
        self.lanes[:self.rate // 8] ^= words
        self.lanes = keccak_f1600(self.lanes)

    def read_rate(self) -> bytes:
        return self.lanes.astype('<u8').tobytes()[:self.rate]

    def permute(self):
        self.lanes = keccak_f1600(self.lanes)


def pad(data: bytes, rate: int, suffix: int) -> bytes:
    """
    Multi-rate padding with the domain separation suffix folded in.

    The suffix byte starts the padding and 0x80 closes the last byte of the
    final block; both land in the same byte when only one byte is free. At
    least one byte of padding is always added, so an empty message is a
    single full block.
    """
    q = rate - (len(data) % rate)
    if q == 1:
        return data + bytes([suffix | 0x80])
    return data + bytes([suffix]) + bytes(q - 2) + b"\x80"


def sponge(data: bytes, capacity_bits: int, output_len: int, suffix: int) -> bytes:
    """
    Absorb ``data`` and squeeze ``output_len`` bytes.

    Args:
        data: Message bytes
        capacity_bits: Sponge capacity c; rate is 1600 - c bits
        output_len: Output length in bytes
        suffix: Domain separation bits (0x06 SHA3, 0x1F SHAKE)
    """
    rate = (1600 - capacity_bits) // 8
    state = KeccakState(rate)
    padded = pad(bytes(data), rate, suffix)
    for offset in range(0, len(padded), rate):
        state.absorb_block(padded[offset:offset + rate])

    out = bytearray()
    while True:
        out += state.read_rate()
        if len(out) >= output_len:
            return bytes(out[:output_len])
        state.permute()
