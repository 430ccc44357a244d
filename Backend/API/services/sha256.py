"""
SHA-256 (FIPS 180-4) written out in plain Python.

Round outcomes are published so players can recompute them with any stock
SHA-256 tool; this module is the reference the server itself hashes with.
Strings are hashed as their UTF-8 bytes.
"""
from services.errors import HashInputError

MASK = 0xFFFFFFFF
BLOCK_SIZE = 64
DIGEST_SIZE = 32

# first 32 bits of the fractional parts of the square roots of the first 8 primes
H0 = (
    0x6a09e667, 0xbb67ae85, 0x3c6ef372, 0xa54ff53a,
    0x510e527f, 0x9b05688c, 0x1f83d9ab, 0x5be0cd19,
)

# first 32 bits of the fractional parts of the cube roots of the first 64 primes
K = (
    0x428a2f98, 0x71374491, 0xb5c0fbcf, 0xe9b5dba5, 0x3956c25b, 0x59f111f1, 0x923f82a4, 0xab1c5ed5,
    0xd807aa98, 0x12835b01, 0x243185be, 0x550c7dc3, 0x72be5d74, 0x80deb1fe, 0x9bdc06a7, 0xc19bf174,
    0xe49b69c1, 0xefbe4786, 0x0fc19dc6, 0x240ca1cc, 0x2de92c6f, 0x4a7484aa, 0x5cb0a9dc, 0x76f988da,
    0x983e5152, 0xa831c66d, 0xb00327c8, 0xbf597fc7, 0xc6e00bf3, 0xd5a79147, 0x06ca6351, 0x14292967,
    0x27b70a85, 0x2e1b2138, 0x4d2c6dfc, 0x53380d13, 0x650a7354, 0x766a0abb, 0x81c2c92e, 0x92722c85,
    0xa2bfe8a1, 0xa81a664b, 0xc24b8b70, 0xc76c51a3, 0xd192e819, 0xd6990624, 0xf40e3585, 0x106aa070,
    0x19a4c116, 0x1e376c08, 0x2748774c, 0x34b0bcb5, 0x391c0cb3, 0x4ed8aa4a, 0x5b9cca4f, 0x682e6ff3,
    0x748f82ee, 0x78a5636f, 0x84c87814, 0x8cc70208, 0x90befffa, 0xa4506ceb, 0xbef9a3f7, 0xc67178f2,
)


def to_bytes(data) -> bytes:
    if isinstance(data, str):
        try:
            return data.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise HashInputError(f"string is not encodable as UTF-8: {exc.reason}") from exc
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise HashInputError(f"cannot hash object of type {type(data).__name__}")


def _rotr(x: int, n: int) -> int:
    return ((x >> n) | (x << (32 - n))) & MASK


def _big_sigma0(x):
    return _rotr(x, 2) ^ _rotr(x, 13) ^ _rotr(x, 22)


def _big_sigma1(x):
    return _rotr(x, 6) ^ _rotr(x, 11) ^ _rotr(x, 25)


def _small_sigma0(x):
    return _rotr(x, 7) ^ _rotr(x, 18) ^ (x >> 3)


def _small_sigma1(x):
    return _rotr(x, 17) ^ _rotr(x, 19) ^ (x >> 10)


def _ch(x, y, z):
    return (x & y) ^ (~x & z)


def _maj(x, y, z):
    return (x & y) ^ (x & z) ^ (y & z)


def pad(length: int) -> bytes:
    """Padding appended to a message of `length` bytes."""
    zeros = (55 - length) % BLOCK_SIZE
    return b"\x80" + b"\x00" * zeros + ((length * 8) & 0xFFFFFFFFFFFFFFFF).to_bytes(8, "big")


def compress(state: tuple, block: bytes) -> tuple:
    """Run the 64 rounds over one 64-byte block and fold into `state`."""
    w = [int.from_bytes(block[i:i + 4], "big") for i in range(0, BLOCK_SIZE, 4)]
    for t in range(16, 64):
        w.append((_small_sigma1(w[t - 2]) + w[t - 7] + _small_sigma0(w[t - 15]) + w[t - 16]) & MASK)

    a, b, c, d, e, f, g, h = state
    for t in range(64):
        t1 = (h + _big_sigma1(e) + _ch(e, f, g) + K[t] + w[t]) & MASK
        t2 = (_big_sigma0(a) + _maj(a, b, c)) & MASK
        h = g
        g = f
        f = e
        e = (d + t1) & MASK
        d = c
        c = b
        b = a
        a = (t1 + t2) & MASK

    return tuple((x + y) & MASK for x, y in zip(state, (a, b, c, d, e, f, g, h)))


class Sha256:
    """Incremental hasher with the hashlib object interface."""

    name = "sha256"
    digest_size = DIGEST_SIZE
    block_size = BLOCK_SIZE

    def __init__(self, data=b""):
        self._state = H0
        self._buffer = b""
        self._length = 0
        self.update(data)

    def update(self, data) -> None:
        data = to_bytes(data)
        self._length += len(data)
        buf = self._buffer + data
        full = len(buf) - len(buf) % BLOCK_SIZE
        for i in range(0, full, BLOCK_SIZE):
            self._state = compress(self._state, buf[i:i + BLOCK_SIZE])
        self._buffer = buf[full:]

    def digest(self) -> bytes:
        tail = self._buffer + pad(self._length)
        state = self._state
        for i in range(0, len(tail), BLOCK_SIZE):
            state = compress(state, tail[i:i + BLOCK_SIZE])
        return b"".join(word.to_bytes(4, "big") for word in state)

    def hexdigest(self) -> str:
        return self.digest().hex()

    def copy(self) -> "Sha256":
        other = Sha256()
        other._state = self._state
        other._buffer = self._buffer
        other._length = self._length
        return other


def digest(data) -> bytes:
    return Sha256(data).digest()


def hexdigest(data) -> str:
    return Sha256(data).hexdigest()
