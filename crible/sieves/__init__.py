from crible.sieves.core import DeterministicCorefSieve, SieveOptions
from crible.sieves.registry import SIEVES, register_sieve, make_sieve, sieve_names
from crible.sieves.passes import (
    MarkRole,
    DiscourseMatch,
    ExactStringMatch,
    RelaxedExactStringMatch,
    PreciseConstructs,
    StrictHeadMatch1,
    StrictHeadMatch2,
    StrictHeadMatch3,
    StrictHeadMatch4,
    RelaxedHeadMatch,
    PronounMatch,
)

DEFAULT_SIEVES = [
    "MarkRole",
    "DiscourseMatch",
    "ExactStringMatch",
    "RelaxedExactStringMatch",
    "PreciseConstructs",
    "StrictHeadMatch1",
    "StrictHeadMatch2",
    "StrictHeadMatch3",
    "StrictHeadMatch4",
    "RelaxedHeadMatch",
    "PronounMatch",
]
