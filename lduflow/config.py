"""Kernel and agglomeration settings, loadable from YAML."""

from dataclasses import dataclass, field, fields

import yaml

from lduflow.addressing.valence import validate_unroll_width

ENGINES = ("parallel", "serial", "python")


@dataclass(frozen=True)
class KernelSettings:
    """
    engine : "parallel" (njit + prange), "serial" (njit) or "python" (no JIT).
    unroll_width : buffer width of the unrolled fast reduction.
    fast_path : allow the fast reduction when the mesh valence fits unroll_width.
    """

    engine: str = "parallel"
    unroll_width: int = 3
    fast_path: bool = True

    def __post_init__(self):
        if self.engine not in ENGINES:
            raise ValueError(f"Unknown engine '{self.engine}', expected one of {ENGINES}")
        validate_unroll_width(self.unroll_width)


@dataclass(frozen=True)
class AgglomerationSettings:
    strength_theta: float = 0.0
    n_coarsest_cells: int = 10
    max_levels: int = 25

    def __post_init__(self):
        if not 0.0 <= self.strength_theta <= 1.0:
            raise ValueError(f"strength_theta must lie in [0, 1], got {self.strength_theta}")
        if self.n_coarsest_cells < 1:
            raise ValueError(f"n_coarsest_cells must be >= 1, got {self.n_coarsest_cells}")
        if self.max_levels < 1:
            raise ValueError(f"max_levels must be >= 1, got {self.max_levels}")


@dataclass(frozen=True)
class Settings:
    kernels: KernelSettings = field(default_factory=KernelSettings)
    agglomeration: AgglomerationSettings = field(default_factory=AgglomerationSettings)


def _section(cls, raw, name):
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ValueError(f"Section '{name}' must be a mapping, got {type(raw).__name__}")
    known = {f.name for f in fields(cls)}
    unknown = set(raw) - known
    if unknown:
        raise ValueError(f"Unknown keys in '{name}': {sorted(unknown)}")
    return cls(**raw)


def load_settings(source=None):
    """
    Build Settings from None (defaults), a dict, or a path to a YAML file.

    The YAML layout mirrors the dataclasses::

        kernels:
          engine: parallel
          unroll_width: 3
        agglomeration:
          n_coarsest_cells: 10
    """
    if source is None:
        return Settings()
    if isinstance(source, Settings):
        return source
    if isinstance(source, dict):
        raw = source
    else:
        with open(source, "r") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Settings file {source} must contain a mapping")

    unknown = set(raw) - {"kernels", "agglomeration"}
    if unknown:
        raise ValueError(f"Unknown settings sections: {sorted(unknown)}")

    return Settings(
        kernels=_section(KernelSettings, raw.get("kernels"), "kernels"),
        agglomeration=_section(AgglomerationSettings, raw.get("agglomeration"), "agglomeration"),
    )
