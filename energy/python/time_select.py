from __future__ import annotations

import re
import sys
from dataclasses import dataclass

CONSTANT = "constant"


@dataclass(frozen=True)
class Instant:
    value: float
    name: str


@dataclass(frozen=True)
class TimeRange:
    lower: float | None
    upper: float | None
    exact: bool = False

    def contains(self, t: float) -> bool:
        if self.lower is not None and t < self.lower:
            return False
        if self.upper is not None and t > self.upper:
            return False
        return True


def parse_time_ranges(text: str) -> list[TimeRange]:
    """
    Parse a time selection such as "0.1,0.3:0.5, 1:" into ranges.

    Items: `a` (nearest time to a), `a:b` (inclusive), `:b` (up to b), `a:` (from a).
    """
    out: list[TimeRange] = []
    for item in (t for t in re.split(r"[,\s]+", text.strip()) if t):
        try:
            if ":" not in item:
                v = float(item)
                out.append(TimeRange(v, v, exact=True))
                continue
            lo, hi = item.split(":", 1)
            out.append(
                TimeRange(
                    float(lo) if lo.strip() else None,
                    float(hi) if hi.strip() else None,
                )
            )
        except ValueError as exc:
            raise ValueError(f"Invalid time selection item {item!r} in {text!r}") from exc
    return out


def _closest_index(times: list[Instant], t: float) -> int:
    best = -1
    best_diff = float("inf")
    for i, inst in enumerate(times):
        if inst.name == CONSTANT:
            continue
        diff = abs(inst.value - t)
        if diff < best_diff:
            best = i
            best_diff = diff
    return best


def available_times(time_dirs: list[tuple[float, str]], *, has_constant: bool) -> list[Instant]:
    """
    `constant` (when present) first, then numeric time directories ascending.
    """
    times = [Instant(0.0, CONSTANT)] if has_constant else []
    times += [Instant(v, name) for v, name in time_dirs]
    return times


def select_times(
    times: list[Instant],
    *,
    time: str | None = None,
    latest_time: bool = False,
    constant: bool = False,
    no_zero: bool = False,
) -> list[Instant]:
    if not times:
        return []
    selected = [True] * len(times)

    constant_idx = next((i for i, t in enumerate(times) if t.name == CONSTANT), -1)
    zero_idx = next((i for i, t in enumerate(times) if t.name != CONSTANT and t.value == 0.0), -1)

    latest_idx = -1
    if latest_time:
        selected = [False] * len(times)
        latest_idx = len(times) - 1
        if latest_idx == constant_idx:
            latest_idx = -1

    if time is not None:
        ranges = parse_time_ranges(time)
        selected = [
            t.name != CONSTANT and any(r.contains(t.value) for r in ranges if not r.exact)
            for t in times
        ]
        for r in ranges:
            if r.exact:
                i = _closest_index(times, r.lower if r.lower is not None else 0.0)
                if i >= 0:
                    selected[i] = True

    if latest_idx >= 0:
        selected[latest_idx] = True
    if constant_idx >= 0:
        selected[constant_idx] = constant
    if zero_idx >= 0 and no_zero:
        selected[zero_idx] = False

    return [t for t, keep in zip(times, selected) if keep]


def select0(times: list[Instant], **options: object) -> list[Instant]:
    """
    Like `select_times`, but fall back to `constant` when nothing is selected.
    """
    out = select_times(times, **options)  # type: ignore[arg-type]
    if not out:
        print("[total_kinetic_energy] WARNING: No time specified or available, selecting 'constant'", file=sys.stderr)
        out = [Instant(0.0, CONSTANT)]
    return out
