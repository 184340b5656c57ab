#!/usr/bin/env python3
"""
Total kinetic energy of a finite-volume case at selected times.

    totalKE = sum over cells of 0.5 * |U|^2 * V * rho

Compressible cases (-compressible) read a per-cell `rho` field at every time;
incompressible cases take the dimensioned constant `rho` from
constant/transportProperties. Optionally (-courant) the mean/max Courant
number is reported from `phi`.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Sequence

from config import load_yaml, merge_options
from courant import report_courant
from foam_case import DecomposedCase, FoamCase
from kinetic_energy import (
    ConstantDensity,
    DensitySource,
    DimensionMismatchError,
    FieldDensity,
    report_kinetic_energy,
)
from time_select import Instant, available_times, select0


def process_times(
    case: Any,
    times: Sequence[Instant],
    source: DensitySource,
    *,
    courant: bool = False,
) -> dict[str, float]:
    """
    Run the energy report for every time in order. Times without a `U` field
    are skipped after the "Time = ..." line. Returns {timeName: totalKE} for
    the times that produced a value.
    """
    results: dict[str, float] = {}
    compressible = isinstance(source, FieldDensity)
    for inst in times:
        time_name = inst.name
        print(f"Time = {time_name}")

        if not case.header_ok("U", time_name):
            continue
        print("Reading field U")
        U = case.read_field("U", time_name)

        total, density = report_kinetic_energy(case, time_name, U, source)
        if total is None:
            continue
        results[time_name] = total.value

        if courant:
            report_courant(case, time_name, density, compressible=compressible)
    return results


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Calculate the total kinetic energy of a case at the selected times.",
        allow_abbrev=False,
    )
    ap.add_argument("-case", "--case", dest="case", default=None, help="Case directory (default: current directory)")
    ap.add_argument("-region", "--region", dest="region", default=None, help="Operate on the named mesh region")
    ap.add_argument(
        "-compressible",
        "--compressible",
        dest="compressible",
        action="store_true",
        default=None,
        help="Calculate kinetic energy for compressible cases (per-cell rho field)",
    )
    ap.add_argument(
        "-courant",
        "--courant",
        dest="courant",
        action="store_true",
        default=None,
        help="Also report mean/max Courant number from phi",
    )
    ap.add_argument(
        "-parallel",
        "--parallel",
        dest="parallel",
        action="store_true",
        default=None,
        help="Read the decomposed case (processor* directories)",
    )
    ap.add_argument("-time", "--time", dest="time", default=None, help="Comma-separated time ranges, e.g. '0.1,0.5:1,2:'")
    ap.add_argument("-latestTime", "--latestTime", dest="latest_time", action="store_true", default=None, help="Select the latest time")
    ap.add_argument("-constant", "--constant", dest="constant", action="store_true", default=None, help="Include the 'constant' directory")
    ap.add_argument("-noZero", "--noZero", dest="no_zero", action="store_true", default=None, help="Exclude the '0' time")
    ap.add_argument("-config", "--config", dest="config", default=None, help="Optional YAML run config")
    return ap


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    cfg = load_yaml(args.config) if args.config else {}
    opts = merge_options(vars(args), cfg)

    case_dir = Path(opts["case"] or ".").resolve()
    region = opts["region"] or None
    case: FoamCase | DecomposedCase
    if opts["parallel"]:
        case = DecomposedCase(case_dir, region)
    else:
        case = FoamCase(case_dir, region)

    times = select0(
        available_times(case.time_dirs(), has_constant=case.has_constant()),
        time=opts["time"],
        latest_time=bool(opts["latest_time"]),
        constant=bool(opts["constant"]),
        no_zero=bool(opts["no_zero"]),
    )
    # Mesh problems are fatal before any time is processed.
    case.cell_volumes()

    source: DensitySource = FieldDensity() if opts["compressible"] else ConstantDensity()
    process_times(case, times, source, courant=bool(opts["courant"]))

    print("End\n")
    return 0


def cli(argv: Sequence[str] | None = None) -> None:
    try:
        code = main(argv)
    except DimensionMismatchError as exc:
        sys.stdout.flush()
        print(f"\n--> FOAM FATAL ERROR: \n{exc}\n\nFOAM exiting\n", file=sys.stderr)
        raise SystemExit(1) from None
    except Exception as exc:
        sys.stdout.flush()
        print(f"[total_kinetic_energy] FAIL: {exc}", file=sys.stderr)
        raise
    raise SystemExit(code)


if __name__ == "__main__":
    cli()
