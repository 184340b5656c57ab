from __future__ import annotations

import re
from dataclasses import dataclass

# Base units in OpenFOAM order: mass, length, time, temperature, moles, current, luminous intensity.
N_BASE = 7
_SMALL = 1e-12


@dataclass(frozen=True)
class DimensionSet:
    exponents: tuple[float, ...] = (0.0,) * N_BASE

    def __post_init__(self) -> None:
        exps = tuple(float(e) + 0.0 for e in self.exponents)
        if len(exps) == 5:
            # Legacy 5-entry form (no current / luminous intensity).
            exps = exps + (0.0, 0.0)
        if len(exps) != N_BASE:
            raise ValueError(f"Expected 5 or {N_BASE} dimension exponents, got {len(exps)}")
        object.__setattr__(self, "exponents", exps)

    @classmethod
    def of(cls, *exponents: float) -> "DimensionSet":
        exps = list(exponents) + [0.0] * (N_BASE - len(exponents))
        return cls(tuple(exps))

    def __mul__(self, other: "DimensionSet") -> "DimensionSet":
        return DimensionSet(tuple(a + b for a, b in zip(self.exponents, other.exponents)))

    def __truediv__(self, other: "DimensionSet") -> "DimensionSet":
        return DimensionSet(tuple(a - b for a, b in zip(self.exponents, other.exponents)))

    def __pow__(self, n: float) -> "DimensionSet":
        return DimensionSet(tuple(a * n for a in self.exponents))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DimensionSet):
            return NotImplemented
        return all(abs(a - b) < _SMALL for a, b in zip(self.exponents, other.exponents))

    def __hash__(self) -> int:
        return hash(tuple(round(e, 9) for e in self.exponents))

    def dimensionless(self) -> bool:
        return self == DIMLESS

    def __str__(self) -> str:
        return "[" + " ".join(f"{e:g}" for e in self.exponents) + "]"


DIMLESS = DimensionSet()
DIM_VELOCITY = DimensionSet.of(0, 1, -1)
DIM_DENSITY = DimensionSet.of(1, -3, 0)
DIM_VOLUME = DimensionSet.of(0, 3, 0)
DIM_ENERGY = DimensionSet.of(1, 2, -2)

_DIMS_RE = re.compile(r"\[([^\]]*)\]")


def parse_dimensions(text: str) -> DimensionSet:
    """
    Parse a bracketed exponent list such as "[0 1 -1 0 0 0 0]".
    """
    m = _DIMS_RE.search(text)
    if not m:
        raise ValueError(f"Could not find a dimension set in {text!r}")
    tokens = m.group(1).split()
    try:
        exps = tuple(float(t) for t in tokens)
    except ValueError as exc:
        raise ValueError(f"Only numeric dimension exponents are supported, got {m.group(0)!r}") from exc
    return DimensionSet(exps)


@dataclass(frozen=True)
class DimensionedScalar:
    name: str
    dimensions: DimensionSet
    value: float

    def __str__(self) -> str:
        return f"{self.name} {self.dimensions} {self.value:g}"
