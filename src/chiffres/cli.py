"""
CLI entrypoint for the Countdown solver.

Usage:
    chiffres 1 5 6 7 13 25 --target 200 [--approx] [--timeout 30]

Returns:
    0: solution found (exact, approximate or simulated)
    1: no solution within the bound
    2: solver could not decide (unknown or timeout)
    3: configuration error
"""
import argparse
import logging
import sys

from . import config
from .system import ChiffresTransitionSystem
from .verification import BMC, BMCStatus

logger = logging.getLogger("chiffres")

_EXIT_CODES = {
    BMCStatus.FOUND: 0,
    BMCStatus.EXHAUSTED: 1,
    BMCStatus.INCONCLUSIVE: 2,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chiffres",
        description="Solve the Countdown numbers game by bounded model checking",
    )
    parser.add_argument("nums", type=int, nargs="*", help="Starting numbers")
    parser.add_argument("-t", "--target", type=int, required=True, help="Number to reach")
    parser.add_argument("--bits", type=int, default=config.BV_BITS,
                        help=f"Bit-vector width (default: {config.BV_BITS})")
    parser.add_argument("--allow-overflows", action="store_true",
                        default=not config.NO_OVERFLOWS,
                        help="Let arithmetic wrap around instead of forbidding overflows")
    parser.add_argument("--max-steps", type=int, default=None,
                        help="Unrolling bound (default: 2 * len(nums) - 1)")
    parser.add_argument("--approx", action="store_true",
                        help="Search the closest value when no exact solution exists")
    parser.add_argument("--simulation", action="store_true",
                        help="Unroll without goal to observe the system")
    parser.add_argument("--timeout", type=float, default=config.TIMEOUT_S,
                        help="Time budget in seconds (default: unlimited)")
    parser.add_argument("--no-color", action="store_true", help="Plain trace output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every step")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else getattr(logging, config.LOG_LEVEL.upper(), logging.WARNING),
        format=config.LOG_FORMAT,
    )

    try:
        system = ChiffresTransitionSystem(args.nums, args.target, args.bits,
                                          no_overflows=not args.allow_overflows)
    except ValueError as e:  # ConfigurationError or bad bit width
        logger.error("invalid configuration: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 3

    max_steps = system.max_steps if args.max_steps is None else args.max_steps
    if max_steps < 0:
        print("Error: --max-steps must be non-negative", file=sys.stderr)
        return 3

    bmc = BMC(system, max_steps, use_approx=args.approx, simulation=args.simulation)
    result = bmc.solve(args.timeout)

    print(result)
    if result.trace is not None:
        print(result.trace.format_trace(color=not args.no_color))
        if not args.simulation and not result.trace.reached:
            print(f"Closest value: {result.trace.final_value} (target {result.trace.target})")

    return _EXIT_CODES[result.status]


if __name__ == "__main__":
    sys.exit(main())
