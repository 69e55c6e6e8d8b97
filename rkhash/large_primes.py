from __future__ import annotations
import math
import random
import logging
import threading
from typing import Dict, Optional

logger = logging.getLogger(__name__)

# Candidates for random_large_prime are drawn from [lo, hi)
LARGE_PRIME_RANGE = (10**9, 10**10)


class PrimeCache:
    """Memoized primality verdicts, keyed by the tested integer.

    Both outcomes are stored and nothing is ever evicted: the cache only grows, bounded by the finite range
    that candidates are drawn from. All access goes through a lock so that one instance can be shared
    between threads. Two threads caching the same integer write the same verdict, so the order does not matter.
    """

    def __init__(self):
        self._verdicts: Dict[int, bool] = {}
        self._lock = threading.Lock()

    def get(self, n: int) -> Optional[bool]:
        with self._lock:
            return self._verdicts.get(n)

    def set(self, n: int, verdict: bool) -> None:
        with self._lock:
            self._verdicts[n] = verdict

    def clear(self) -> None:
        with self._lock:
            self._verdicts.clear()

    def __contains__(self, n: int) -> bool:
        with self._lock:
            return n in self._verdicts

    def __len__(self) -> int:
        with self._lock:
            return len(self._verdicts)


# One long-lived cache per process, used whenever the caller does not pass its own
DEFAULT_PRIME_CACHE = PrimeCache()


def _trial_division(n: int) -> bool:
    for d in range(2, math.isqrt(n) + 1):
        if n % d == 0:
            return False
    return True


def is_prime(n: int, cache: Optional[PrimeCache] = None) -> bool:
    """Check whether n is prime by trial division up to floor(sqrt(n)).

    :param n:       any integer; everything below 2 is not prime.
    :param cache:   where to memoize the verdict, `DEFAULT_PRIME_CACHE` if not given.
    :return:        True if n is prime.

    O(sqrt(n)) on a cache miss, which is fine for the 10-digit moduli we generate.
    """
    if n < 2:
        return False
    cache = DEFAULT_PRIME_CACHE if cache is None else cache

    cached = cache.get(n)
    if cached is not None:
        return cached

    verdict = _trial_division(n)
    cache.set(n, verdict)
    return verdict


def random_large_prime(cache: Optional[PrimeCache] = None, rng=None) -> int:
    """Draw candidates uniformly from `LARGE_PRIME_RANGE` until one is prime and return it.

    Primes of this size show up about once every 22 integers so this terminates quickly in practice,
    but there is no cap on the number of draws. Every verdict, prime or not, ends up in the cache.

    :param cache:   the `PrimeCache` to consult and grow, `DEFAULT_PRIME_CACHE` if not given.
    :param rng:     anything with a `randrange(lo, hi)` method (e.g. a seeded `random.Random`), defaults
                    to the `random` module.
    """
    cache = DEFAULT_PRIME_CACHE if cache is None else cache
    rng = random if rng is None else rng
    lo, hi = LARGE_PRIME_RANGE

    draws = 0
    while True:
        q = rng.randrange(lo, hi)
        draws += 1
        cached = cache.get(q)
        if cached is not None:
            logger.debug("cache hit for %d (prime=%s)", q, cached)
            if cached:
                break
            continue
        if is_prime(q, cache=cache):
            break

    assert lo <= q < hi
    logger.debug("found large prime %d after %d draws", q, draws)
    return q
