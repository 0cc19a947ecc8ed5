"""
Command-line entry point: run one or more BioSim simulations.

    biosim world.sim [other.sim ...]

A broken input aborts only its own simulation; the exit status is the number
of simulations that failed.
"""
import argparse
import sys

from biosim.ecology.errors import ConfigError
from biosim.ecology.loader import run_sim_file


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(prog="biosim", description="Predator/prey simulation on a terrain grid.")
    ap.add_argument("sim_files", nargs="+", help="BioSim .sim run description(s)")
    ap.add_argument("--seed", type=int, default=None, help="override SlumptallFroe")
    ap.add_argument("--log-every", type=int, default=None, help="progress line every n years (0 = silent)")
    ap.add_argument("--debug", action="store_true", help="print every simulation event")
    args = ap.parse_args(argv)

    overrides = {}
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.log_every is not None:
        overrides["log_every"] = args.log_every
    if args.debug:
        overrides.update(
            debug_mode=True,
            verbose_setup=True,
            verbose_death=True,
            verbose_movement=True,
            verbose_reproduction=True,
            verbose_engagement=True,
        )

    failures = 0
    for sim_file in args.sim_files:
        if len(args.sim_files) > 1:
            print(f"{sim_file}:")
        try:
            run_sim_file(sim_file, overrides)
        except (ConfigError, OSError) as exc:
            print(f"Error in {sim_file}: {exc}", file=sys.stderr)
            failures += 1
    return failures


if __name__ == "__main__":
    sys.exit(main())
