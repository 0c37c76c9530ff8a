"""Command-line front end: ``optcalc <calculator> problem.json``.

Each calculator reads a JSON file; floats are parsed as Decimal so that they
convert to exact Fractions.
"""

import argparse
import json
import sys
from decimal import Decimal

from .errors import (InfeasibleError, InputError, NonConvergenceError, SolverError,
                     StructuralError, UnboundedError)
from .game import GAME_MAX_ITERATIONS, solve_game
from .gradient import GRADIENT_MAX_ITERATIONS, gradient_descent
from .lagrange import solve_geometry, solve_lagrange
from .rational import fmt_out
from .simplex import DEFAULT_BIG_M, LP, solve, solve_text
from .tableau import MAX_ITERATIONS
from .transport import solve_transport

STATUS = {
    InputError: "input error",
    UnboundedError: "unbounded",
    InfeasibleError: "infeasible",
    NonConvergenceError: "not converged",
    StructuralError: "internal error",
}


def _maximize(args, cfg) -> bool:
    # CLI (if provided) overrides JSON; else fallback to JSON->max
    sense = args.sense
    if sense is None:
        return bool(cfg.get("maximize", True))
    return sense == "max"


def run_lp(args, cfg):
    maximize = _maximize(args, cfg)
    max_iter = args.max_iter or MAX_ITERATIONS
    verbose = not args.no_verbose
    if "objective" in cfg:
        res = solve_text(cfg["objective"], cfg.get("constraints", []), maximize=maximize,
                         method=args.method, verbose=verbose, M=args.M, max_iter=max_iter)
        lp = None
    else:
        try:
            lp = LP(c=cfg["c"], A=cfg["A"], b=cfg["b"], senses=cfg["senses"], maximize=maximize,
                    var_names=cfg.get("var_names"))
        except KeyError as e:
            raise InputError(f"Missing LP field {e}") from e
        res = solve(lp, method=args.method, verbose=verbose, M=args.M, max_iter=max_iter)

    print("\n=== Result ===")
    print("Optimal value:", fmt_out(res.optimal_value))
    print("Solution:", ", ".join(f"{k} = {fmt_out(v)}" for k, v in res.solution.items()))
    print("Iterations:", res.iterations)
    print("Method:", res.method)
    if res.details.get("alternate_optimal"):
        print("Note: Infinite many optimal solutions (alternate optimal).")
        print("Zero reduced-cost nonbasic vars:", res.details["alt_zero_rc_vars"])
    if args.graph:
        if lp is None:
            from .expr import parse_lp
            lp = parse_lp(cfg["objective"], cfg.get("constraints", []), maximize=maximize)
        from .plot import plot_2d
        import matplotlib.pyplot as plt
        fig = plot_2d(lp, res)
        if fig is None:
            print("Graph only supports 2 variables with a feasible region.")
        else:
            plt.show()


def run_game(args, cfg):
    res = solve_game(cfg["payoff"], verbose=not args.no_verbose,
                     max_iter=args.max_iter or GAME_MAX_ITERATIONS)
    print("\n=== Result ===")
    print("alpha =", fmt_out(res.alpha), " beta =", fmt_out(res.beta))
    print("Method:", res.method)
    print("V =", fmt_out(res.value))
    print("P =", [fmt_out(v) for v in res.p])
    print("Q =", [fmt_out(v) for v in res.q])


def run_transport(args, cfg):
    res = solve_transport(cfg["supply"], cfg["demand"], cfg["cost"], verbose=not args.no_verbose,
                          max_iter=args.max_iter or MAX_ITERATIONS)
    print("\n=== Result ===")
    for row in res.allocation:
        print(" ".join(f"{fmt_out(v):>6}" for v in row))
    if res.problem.dummy:
        print("Dummy", "destination" if res.problem.dummy == "col" else "source", "added")
    print("Total cost F =", fmt_out(res.total_cost))
    print("Iterations:", res.iterations)


def run_gradient(args, cfg):
    res = gradient_descent(cfg["coeffs"], cfg.get("start", [0, 0]), epsilon=cfg.get("epsilon", "0.1"),
                           mode=cfg.get("mode", "steepest"), alpha=cfg.get("alpha", "1/2"),
                           verbose=not args.no_verbose,
                           max_iter=args.max_iter or GRADIENT_MAX_ITERATIONS)
    print("\n=== Result ===")
    print("x* = (" + "; ".join(fmt_out(v) for v in res.point) + ")")
    print("f(x*) =", fmt_out(res.value))
    print("Iterations:", len(res.iterations))


def _approx(x, exact):
    return fmt_out(x) if exact else f"{float(x):.6f}"


def run_lagrange(args, cfg):
    verbose = not args.no_verbose
    if "geometry" in cfg:
        geo = solve_geometry(cfg["geometry"], cfg.get("volume"), verbose=verbose)
        print("\n=== Result ===")
        print(", ".join(f"{k} = {_approx(v, geo.exact)}" for k, v in geo.point.items())
              + f", lambda = {_approx(geo.lam, geo.exact)}, S = {_approx(geo.value, geo.exact)}")
        print(geo.conclusion)
        return
    res = solve_lagrange(cfg["objective"], cfg["constraint"], verbose=verbose)
    print("\n=== Result ===")
    for p in res.points:
        mark = "" if p.exact else " (approx.)"
        print(f"{p.kind}: x1 = {_approx(p.x1, p.exact)}, x2 = {_approx(p.x2, p.exact)}, "
              f"lambda = {_approx(p.lam, p.exact)}, f = {_approx(p.f_value, p.exact)}{mark}")
    print(res.conclusion)


COMMANDS = {
    "lp": run_lp,
    "game": run_game,
    "transport": run_transport,
    "gradient": run_gradient,
    "lagrange": run_lagrange,
}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="optcalc", description="Exact-fraction optimisation calculators (shows iterations)")
    p.add_argument("calculator", choices=sorted(COMMANDS))
    p.add_argument("json", help="Path to JSON file describing the problem")
    p.add_argument("--method", choices=["auto", "simplex", "big_m", "two_phase"], default="auto",
                   help="LP method")
    p.add_argument("--sense", choices=["max", "min"], default=None, help="LP objective sense (default: JSON or max)")
    p.add_argument("--M", type=Decimal, default=DEFAULT_BIG_M, help="Big-M value when method=big_m")
    p.add_argument("--max-iter", type=int, default=None, help="Override the iteration cap")
    p.add_argument("--no-verbose", action="store_true", help="Hide iteration printouts")
    p.add_argument("--graph", action="store_true", help="Plot constraints and iso-profit (2-variable LP only)")
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    with open(args.json, "r") as f:
        cfg = json.load(f, parse_float=Decimal)
    try:
        COMMANDS[args.calculator](args, cfg)
    except KeyError as e:
        print(f"Status: input error\nMissing field {e}", file=sys.stderr)
        return 1
    except SolverError as e:
        status = next((v for k, v in STATUS.items() if isinstance(e, k)), "error")
        print(f"Status: {status}\n{e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
