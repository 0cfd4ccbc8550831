"""
Command-line interface for WealthLab.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from wealthlab import __version__
from wealthlab.config import DEFAULT_CONFIG
from wealthlab.core import ConfigError, NumpyEncoder, calculate_succession, run, sanitize_profile
from wealthlab.fx import FXConverter, fx_exposure
from wealthlab.solver import solve_required_age, solve_required_contribution


def _load_json(path: str) -> dict:
    """Load a profile JSON object from file path."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ConfigError(f"{path} does not contain a JSON object")
    return data


class ResultEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy scalars/arrays and read-only mappings."""

    def default(self, obj):
        try:
            return NumpyEncoder.encode(obj)
        except TypeError:
            return super().default(obj)


def _emit(data: Any, output: str | None) -> None:
    """Write JSON to a file, or to stdout when no path is given."""
    if output:
        with open(output, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, cls=ResultEncoder)
        print(f"Results saved to {output}")
    else:
        json.dump(data, sys.stdout, indent=2, cls=ResultEncoder)
        sys.stdout.write("\n")


EXAMPLE_PROFILE = {
    "currentAge": 35,
    "retirementAge": 62,
    "lifeExpectancy": 92,
    "monthlyContribution": 3000,
    "monthlyCostNow": 9000,
    "monthlyCostRetirement": 12000,
    "inflation": 0.04,
    "profile": "moderate",
    "returnRates": {"conservative": 0.08, "moderate": 0.10, "bold": 0.12},
    "referenceYear": 2026,
    "assets": [
        {"id": "a1", "name": "Brokerage", "amount": 250000, "type": "financial"},
        {"id": "a2", "name": "Offshore ETF", "amount": 20000, "currency": "USD", "type": "financial"},
        {"id": "a3", "name": "VGBL", "amount": 150000, "type": "previdencia", "planType": "VGBL"},
        {"id": "a4", "name": "Apartment", "amount": 900000, "type": "real_estate"},
    ],
    "contributionTimeline": [
        {"id": "r1", "startAge": 40, "endAge": 45, "monthlyValue": -2000, "kind": "financing"},
    ],
    "cashInEvents": [
        {"id": "e1", "age": 50, "value": 200000, "label": "Inheritance"},
    ],
    "financialGoals": [
        {"id": "g1", "name": "New car", "type": "impact", "age": 45, "value": 150000},
    ],
    "fxRates": {"USD_BRL": 5.1},
    "succession": {
        "state": "SP",
        "previdenciaSuccession": {"excludeFromInventory": True, "applyITCMD": False},
    },
    "scenarios": [
        {"id": "early", "name": "Retire at 58", "policy": "base", "retirementAge": 58},
    ],
}


def cmd_example(_) -> int:
    """Print a complete example profile JSON."""
    json.dump(EXAMPLE_PROFILE, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


def cmd_run(args) -> int:
    """Analyze a profile JSON and export the results."""
    try:
        data = _load_json(args.input)
        result = run(data, stress=args.stress)

        profile, _ = sanitize_profile(data)
        fx = FXConverter.from_profile(profile, DEFAULT_CONFIG)
        output = result.to_dict()
        output["fxExposure"] = fx_exposure(profile.assets, fx).to_dict()

        if args.csv:
            frame = result.compare_frame()
            if args.currency:
                frame = fx.convert_frame(frame, fx.base_currency, args.currency.upper())
            frame.to_csv(args.csv, index=False)

        if not args.quiet:
            status = "OK" if result.assumptions_valid else "INVALID ASSUMPTIONS"
            print(
                f"{status}: {len(result.trajectories)} trajectories, "
                f"{len(result.diagnostics)} diagnostics",
                file=sys.stderr,
            )
        _emit(output, args.output)
        return 0

    except (OSError, ValueError, ConfigError) as e:
        print(f"Error running analysis: {e}", file=sys.stderr)
        return 1


def cmd_succession(args) -> int:
    """Estimate succession costs of a profile JSON."""
    try:
        data = _load_json(args.input)
        _emit(calculate_succession(data).to_dict(), args.output)
        return 0

    except (OSError, ValueError, ConfigError) as e:
        print(f"Error calculating succession: {e}", file=sys.stderr)
        return 1


def cmd_solve(args) -> int:
    """Solve the contribution or retirement age reaching a coverage target."""
    try:
        data = _load_json(args.input)
        if args.goal == "age":
            solution = solve_required_age(data, args.target, stress=args.stress)
        else:
            solution = solve_required_contribution(data, args.target, stress=args.stress)
        output = {"goal": args.goal, "target": args.target, **solution.to_dict()}
        _emit(output, args.output)
        return 0 if solution.status != "invalid" else 1

    except (OSError, ValueError, ConfigError) as e:
        print(f"Error solving goal: {e}", file=sys.stderr)
        return 1


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="wealthlab",
        description="WealthLab - Financial projection & succession engine",
    )

    # Version argument
    parser.add_argument(
        "--version", action="version", version=f"WealthLab {__version__}"
    )

    subparsers = parser.add_subparsers(
        dest="cmd", required=True, help="Available commands"
    )

    # Example command
    example_parser = subparsers.add_parser(
        "example", help="Print a complete example profile JSON"
    )
    example_parser.set_defaults(func=cmd_example)

    # Run command
    run_parser = subparsers.add_parser(
        "run", help="Analyze a profile JSON and export JSON results"
    )
    run_parser.add_argument(
        "-i", "--input", required=True, help="Input profile JSON file"
    )
    run_parser.add_argument(
        "-o", "--output", help="Output results JSON file (default: stdout)"
    )
    run_parser.add_argument(
        "--stress", action="store_true", help="Apply the stress return haircut"
    )
    run_parser.add_argument(
        "--csv", help="Also write all trajectories as a CSV table"
    )
    run_parser.add_argument(
        "--currency", help="Currency of the CSV table (default: BRL)"
    )
    run_parser.add_argument(
        "-q", "--quiet", action="store_true", help="Do not print the summary line"
    )
    run_parser.set_defaults(func=cmd_run)

    # Succession command
    succession_parser = subparsers.add_parser(
        "succession", help="Estimate succession costs of a profile JSON"
    )
    succession_parser.add_argument(
        "-i", "--input", required=True, help="Input profile JSON file"
    )
    succession_parser.add_argument(
        "-o", "--output", help="Output JSON file (default: stdout)"
    )
    succession_parser.set_defaults(func=cmd_succession)

    # Solve command
    solve_parser = subparsers.add_parser(
        "solve", help="Solve the contribution or age reaching a goal coverage"
    )
    solve_parser.add_argument(
        "-i", "--input", required=True, help="Input profile JSON file"
    )
    solve_parser.add_argument(
        "--goal",
        choices=["contribution", "age"],
        default="contribution",
        help="Variable to solve for (default: contribution)",
    )
    solve_parser.add_argument(
        "--target",
        type=float,
        default=100.0,
        help="Target goal coverage in percent (default: 100)",
    )
    solve_parser.add_argument(
        "--stress", action="store_true", help="Apply the stress return haircut"
    )
    solve_parser.add_argument(
        "-o", "--output", help="Output JSON file (default: stdout)"
    )
    solve_parser.set_defaults(func=cmd_solve)

    # Parse arguments and execute
    args = parser.parse_args(argv)
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
