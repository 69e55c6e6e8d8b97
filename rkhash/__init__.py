from rkhash.large_primes import (
    DEFAULT_PRIME_CACHE,
    LARGE_PRIME_RANGE,
    PrimeCache,
    is_prime,
    random_large_prime,
)
from rkhash.rolling_hashes import (
    RADIX,
    InvalidModulusError,
    RollingHasher,
    comparable,
    horner_hash,
    window_fingerprints,
)
