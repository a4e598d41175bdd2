"""Execution engines for the traversal kernels.

Every kernel is written once as a plain loop over ``prange``. The engine only
decides how that loop is run:

- "parallel": ``njit(parallel=True)``, one task per output element
- "serial":   ``njit``, same loop on one thread
- "python":   the un-jitted loop (``prange`` degrades to ``range``), the host
              reference path
"""

import logging
from functools import lru_cache

from numba import njit

from lduflow.config import ENGINES

log = logging.getLogger(__name__)

DEFAULT_ENGINE = "parallel"


def resolve_engine(engine):
    if engine is None:
        return DEFAULT_ENGINE
    if engine not in ENGINES:
        raise ValueError(f"Unknown engine '{engine}', expected one of {ENGINES}")
    return engine


@lru_cache(maxsize=None)
def jit_kernel(func, engine):
    """Compile a kernel loop for the given engine."""
    log.debug("Specialising %s for engine '%s'", func.__qualname__, engine)
    if engine == "parallel":
        return njit(parallel=True)(func)
    if engine == "serial":
        return njit(func)
    return func
