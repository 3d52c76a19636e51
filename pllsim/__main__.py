"""Command-line entry point: ``python -m pllsim``."""

import argparse
import logging
from typing import Sequence

from pllsim.error import PllConfigError
from pllsim.pmu import compute_pll_config
from pllsim.simconfig import SimConfig
from pllsim.state import Verdict
from pllsim.top import SCENARIOS, run_system, scenario_program

logger = logging.getLogger("pllsim")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="pllsim",
        description="Simulate a PMU programming a PLL and waiting for lock",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    ap.add_argument("--target-mhz", type=float, default=800.0, help="output frequency to configure")
    ap.add_argument("--scenario", choices=SCENARIOS, default="lock", help="bus program to run")
    ap.add_argument("--clock-period", type=int, default=10, help="clock period in ns")
    ap.add_argument("--vcd", default=None, help="write a waveform to this file")
    ap.add_argument("--strict", action="store_true", help="exit with 1 when the PLL does not lock")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="more log output")
    return ap


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Run one simulation.

    Returns
    -------
    int
        0 when the run completed, whatever the verdict, unless `--strict`
        maps a failed verdict to 1.
    """
    ap = build_parser()
    args = ap.parse_args(argv)
    level = logging.DEBUG if args.verbose > 1 else logging.INFO if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        pll_config = compute_pll_config(args.target_mhz)
        sim_config = SimConfig(clock_period=args.clock_period)
    except (PllConfigError, ValueError) as exc:
        ap.error(str(exc))

    result = run_system(
        sim_config,
        vcd_path=args.vcd,
        program=scenario_program(args.scenario, pll_config=pll_config),
        pll_config=pll_config,
    )
    print(f"verdict={result.verdict.name} lock_time={result.lock_time} end_time={result.end_time}")
    if args.strict and result.verdict != Verdict.PASS:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
