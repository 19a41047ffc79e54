from __future__ import annotations
from typing import Callable, Dict, List, Optional, Type, TypeVar
import logging
from crible.errors import UnknownSieveError
from crible.sieves.core import DeterministicCorefSieve


SieveFactory = Callable[[Optional[logging.Logger]], DeterministicCorefSieve]

#: sieve name -> sieve factory
SIEVES: Dict[str, SieveFactory] = {}


S = TypeVar("S", bound=Type[DeterministicCorefSieve])


def register_sieve(cls: S) -> S:
    """Register a sieve class under its class name.

    >>> @register_sieve
    ... class MySieve(DeterministicCorefSieve):
    ...     pass
    """
    SIEVES[cls.__name__] = cls
    return cls


def sieve_names() -> List[str]:
    return list(SIEVES.keys())


def make_sieve(
    name: str, logger: Optional[logging.Logger] = None
) -> DeterministicCorefSieve:
    """Instantiate a registered sieve.

    :param name: name of the sieve, such as ``"ExactStringMatch"``
    :raise UnknownSieveError: if no sieve is registered under this
        name
    """
    factory = SIEVES.get(name.strip())
    if factory is None:
        raise UnknownSieveError(
            f"unknown sieve: {name} (known sieves: {', '.join(SIEVES.keys())})"
        )
    return factory(logger)
