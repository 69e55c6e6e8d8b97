from __future__ import annotations
import logging
import numbers
from typing import Iterable, Optional, Sequence, Union

import numpy as np  # To hold the fingerprints of every window of a sequence

from rkhash.large_primes import PrimeCache, is_prime

logger = logging.getLogger(__name__)

# One positional digit per possible byte value
RADIX = 256

# Anything bytes() accepts as a sequence: buffers, str (as UTF-8), or sequences of ints in 0..255
ByteSequence = Union[bytes, bytearray, memoryview, str, Sequence[int]]
Window = Union[range, slice, tuple, None]


class InvalidModulusError(ValueError):
    """Raised when a hasher is built with a modulus that is not a positive integer (or not prime, if strict)."""


def horner_hash(data: Iterable[int], q: int) -> int:
    """Hash a whole byte sequence from scratch with Horner's rule, most significant byte first.

    This is what `RollingHasher.value` must always agree with for the current window.
    """
    value = 0
    for byte in data:
        value = (RADIX * value + byte) % q
    return value


def _as_bytes(data: ByteSequence) -> bytes:
    """Immutable copy of data, so the caller stays free to modify or resize their own buffer.

    `bytes` input is already immutable and is kept as is.
    """
    if isinstance(data, bytes):
        return data
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, numbers.Integral):
        # bytes(n) would silently build n zero bytes
        raise TypeError(f"expected a byte sequence, got {type(data).__name__}")
    if isinstance(data, (bytearray, memoryview)):
        with memoryview(data) as view:
            return view.tobytes()
    # Raises ValueError for values outside 0..255
    return bytes(data)


def _resolve_window(window: Window, size: int) -> tuple[int, int]:
    """Turn the accepted window spellings into (lower_bound, length) and check that they fit.

    Slices follow the usual conventions for omitted and negative bounds, but unlike slicing they are not
    clamped: a slice that runs past the data is rejected just like a range or tuple would be.
    """
    if window is None:
        return 0, size

    if isinstance(window, slice):
        if window.step not in (None, 1):
            raise ValueError(f"window must be contiguous, got step {window.step}")
        start = 0 if window.start is None else window.start
        stop = size if window.stop is None else window.stop
        if start < 0:
            start += size
        if stop < 0:
            stop += size
        lower_bound, length = start, max(0, stop - start)
    elif isinstance(window, range):
        if window.step != 1:
            raise ValueError(f"window must be contiguous, got step {window.step}")
        lower_bound, length = window.start, max(0, window.stop - window.start)
    else:
        lower_bound, length = window

    if lower_bound < 0 or length < 0 or lower_bound + length > size:
        raise ValueError(f"window ({lower_bound}, {length}) does not fit in a sequence of {size} bytes")
    return lower_bound, length


def _check_modulus(q, strict: bool, cache: Optional[PrimeCache] = None) -> int:
    if isinstance(q, bool) or not isinstance(q, numbers.Integral):
        raise InvalidModulusError(f"q must be an integer, got {q!r}")
    q = int(q)
    if q <= 0:
        raise InvalidModulusError(f"q must be greater than 0, got {q}")
    # Trial division, so only practical for the 10-digit moduli of random_large_prime
    if strict and not is_prime(q, cache=cache):
        raise InvalidModulusError(f"q must be prime, got {q}")
    return q

class RollingHasher:
    """Rabin-Karp fingerprint of a fixed-length window sliding over a byte sequence.

    The window is the half-open span [lower_bound, lower_bound + length) of `data`. Only the lower bound ever
    moves: `advance` drops the leftmost byte and takes in the byte right after the window in O(1), whatever
    the window length. The value is the polynomial hash of the window in base `RADIX` modulo `q`:

        value = (data[lo] * r^(length-1) + ... + data[lo + length - 1] * r^0) mod q

    `rm` = r^(length-1) mod q is the weight of the outgoing byte and is computed once.

    Fingerprints of two hashers are only worth comparing when `comparable(a, b)` holds (same q and same window
    length). Equal fingerprints may still be a collision: callers check the bytes themselves afterwards.

    Not thread-safe: `advance` mutates the hasher in place. Distinct hashers share nothing.
    """

    def __init__(
        self,
        data: ByteSequence,
        q: int,
        window: Window = None,
        strict: bool = False,
        cache: Optional[PrimeCache] = None,
    ):
        """
        :param data:    the sequence to scan: bytes-like, `str` (hashed as its UTF-8 encoding), or any sequence
                        of ints in 0..255. Anything but `bytes` is copied, so the caller may keep modifying or
                        resizing their own buffer while the hasher is alive.
        :param q:       the modulus, a positive integer. It should be a large prime (see `random_large_prime`)
                        to keep accidental collisions rare; q = 1 is allowed but every value will be 0.
        :param window:  the initial window, as a `range` or `slice` with step 1, or a `(lower_bound, length)`
                        tuple. The whole of `data` if not given. May be empty. Negative slice bounds count
                        from the end, but a window that does not fit in `data` raises `ValueError` whatever
                        its spelling; slices are not clamped.
        :param strict:  also reject a q that is not prime.
        :param cache:   the `PrimeCache` used by the strict check, `DEFAULT_PRIME_CACHE` if not given.
        """
        self._q = _check_modulus(q, strict, cache=cache)
        self._data = _as_bytes(data)
        self._lower_bound, self._length = _resolve_window(window, len(self._data))

        self._rm = pow(RADIX, self._length - 1, self._q) if self._length > 0 else 0
        self._value = horner_hash(self.window_bytes(), self._q)
        assert 0 <= self._value < self._q

        logger.debug(
            "rolling hasher over %d bytes, window (%d, %d), q=%d",
            len(self._data), self._lower_bound, self._length, self._q,
        )

    @property
    def data(self) -> bytes:
        return self._data

    @property
    def q(self) -> int:
        return self._q

    @property
    def rm(self) -> int:
        return self._rm

    @property
    def value(self) -> int:
        return self._value

    @property
    def lower_bound(self) -> int:
        return self._lower_bound

    @property
    def length(self) -> int:
        return self._length

    @property
    def upper_bound(self) -> int:
        return self._lower_bound + self._length

    @property
    def window(self) -> range:
        return range(self._lower_bound, self.upper_bound)

    def window_bytes(self) -> bytes:
        return self._data[self._lower_bound : self.upper_bound]

    def can_advance(self) -> bool:
        return self._length > 0 and self.upper_bound < len(self._data)

    def advance(self) -> bool:
        """Slide the window one byte to the right and update the value in O(1).

        Returns False, and changes nothing, when the window is empty or already ends at the end of `data`.
        That is how a scan ends, not an error.
        """
        if not self.can_advance():
            return False

        q = self._q
        lo = self._data[self._lower_bound]
        hi = self._data[self.upper_bound]

        # 1. Take away the leftmost byte (+ q keeps the intermediate non-negative)
        self._value = (self._value + q - self._rm * lo % q) % q
        # 2. Shift everything up one power and add the new byte in
        self._value = (self._value * RADIX + hi) % q
        # 3. Move the window
        self._lower_bound += 1

        assert 0 <= self._value < q
        return True

    def is_comparable_with(self, other: RollingHasher) -> bool:
        return comparable(self, other)

    def same_fingerprint(self, other: RollingHasher) -> bool:
        """Comparable and with equal values. The windows may still differ (collision)."""
        return comparable(self, other) and self._value == other._value

    def __repr__(self) -> str:
        return (
            f"RollingHasher(window=({self._lower_bound}, {self._length}), "
            f"q={self._q}, rm={self._rm}, value={self._value})"
        )


def comparable(a: RollingHasher, b: RollingHasher) -> bool:
    """Whether the values of a and b can be compared at all: same modulus and same window length.

    Does not look at the values themselves. Equal lengths under the same q imply equal rm; the length is
    compared too because degenerate moduli (e.g. q = 2) give the same rm for different lengths.
    """
    return a.q == b.q and a.length == b.length and a.rm == b.rm


def window_fingerprints(data: ByteSequence, length: int, q: int) -> np.ndarray:
    """Fingerprint of every window of `length` bytes over `data`, in order of their lower bound.

    Element i is the hash of data[i : i + length]. Empty if there is no such window (length 0 or longer
    than the data). Uses `uint64` whenever q fits, plain Python ints otherwise.
    """
    q = _check_modulus(q, strict=False)
    data = _as_bytes(data)
    assert length >= 0, f"length must be non-negative, got {length}"
    dtype = np.uint64 if q <= 2**64 else object
    if length == 0 or length > len(data):
        return np.empty(0, dtype=dtype)

    hasher = RollingHasher(data, q, window=(0, length))
    fingerprints = np.empty(len(data) - length + 1, dtype=dtype)  # O(n)
    fingerprints[0] = hasher.value
    i = 1
    while hasher.advance():  # O(1) per roll => O(n) overall
        fingerprints[i] = hasher.value
        i += 1

    assert i == len(fingerprints)
    return fingerprints
