import json
from decimal import Decimal
import io
from contextlib import redirect_stdout

import streamlit as st

from optcalc.errors import SolverError
from optcalc.expr import parse_lp
from optcalc.game import solve_game
from optcalc.gradient import gradient_descent
from optcalc.lagrange import solve_geometry, solve_lagrange
from optcalc.plot import plot_2d
from optcalc.rational import fmt_out, to_number
from optcalc.simplex import LP, solve
from optcalc.transport import solve_transport

st.set_page_config(page_title="Optimisation Calculators", layout="wide")
st.title("Optimisation calculators — exact fractions, every iteration shown")

# Sidebar options
with st.sidebar:
    st.header("Options")
    calculator = st.selectbox("Calculator", ["Linear programming", "Matrix game", "Transportation",
                                             "Gradient descent", "Lagrange multipliers"])
    method = st.selectbox("LP method", ["auto", "simplex", "big_m", "two_phase"], index=0)
    is_min = st.checkbox("Minimize (default: Maximize)", value=False)
    show_graph = st.checkbox("Show graph (2 variables only)", value=True)
    max_iter = st.number_input("Iteration cap", min_value=1, max_value=200, value=20)

# Default JSON templates
TEMPLATES = {
    "Linear programming": {
        "objective": "x1 + 2x2",
        "constraints": ["2x1 + 3x2 <= 12", "x1 + 5x2 <= 15"],
    },
    "Matrix game": {"payoff": [[1, 7, 8, 10], [9, 6, 0, 5], [0, 3, 4, 2]]},
    "Transportation": {
        "supply": [20, 50, 30],
        "demand": [30, 20, 40, 10],
        "cost": [[5, 7, 6, 2], [3, 2, 11, 3], [10, 3, 2, 4]],
    },
    "Gradient descent": {
        "coeffs": {"A": 1, "B": 1, "D": -4, "E": -2},
        "start": [0, 0],
        "epsilon": "0.1",
        "mode": "steepest",
        "alpha": "1/2",
    },
    "Lagrange multipliers": {
        "objective": {"D": -3, "E": -4, "F": 5},
        "constraint": {"a": 1, "b": 1, "f": -25},
    },
}

st.subheader("Model JSON")
json_text = st.text_area("Edit the problem JSON here", json.dumps(TEMPLATES[calculator], indent=2), height=260)

col_run, col_reset = st.columns([1, 1])
run = col_run.button("Solve")
if col_reset.button("Reset to template"):
    st.rerun()


def run_lp(cfg):
    maximize = not is_min and cfg.get("maximize", True)
    if "objective" in cfg:
        lp = parse_lp(cfg["objective"], cfg.get("constraints", []), maximize=maximize)
    else:
        lp = LP(c=cfg["c"], A=cfg["A"], b=cfg["b"], senses=cfg["senses"], maximize=maximize,
                var_names=cfg.get("var_names"))
    res = solve(lp, method=method, verbose=True, max_iter=int(max_iter))
    summary = {
        "optimal_value": fmt_out(res.optimal_value),
        "solution": {k: fmt_out(v) for k, v in res.solution.items()},
        "iterations": res.iterations,
        "method": res.method,
    }
    return summary, (lp, res)


def run_game(cfg):
    res = solve_game(cfg["payoff"], verbose=True, max_iter=int(max_iter))
    return {
        "alpha": fmt_out(res.alpha),
        "beta": fmt_out(res.beta),
        "method": res.method,
        "V": fmt_out(res.value),
        "P": [fmt_out(v) for v in res.p],
        "Q": [fmt_out(v) for v in res.q],
    }, None


def run_transport(cfg):
    res = solve_transport(cfg["supply"], cfg["demand"], cfg["cost"], verbose=True, max_iter=int(max_iter))
    return {
        "allocation": [[fmt_out(v) for v in row] for row in res.allocation],
        "dummy": res.problem.dummy,
        "total_cost": fmt_out(res.total_cost),
        "iterations": res.iterations,
    }, None


def run_gradient(cfg):
    res = gradient_descent(cfg["coeffs"], cfg.get("start", [0, 0]), epsilon=cfg.get("epsilon", "0.1"),
                           mode=cfg.get("mode", "steepest"), alpha=cfg.get("alpha", "1/2"),
                           verbose=True, max_iter=int(max_iter))
    return {
        "point": [fmt_out(v) for v in res.point],
        "value": fmt_out(res.value),
        "iterations": len(res.iterations),
    }, None


def run_lagrange(cfg):
    if "geometry" in cfg:
        geo = solve_geometry(cfg["geometry"], cfg.get("volume"), verbose=True)
        return {
            "point": {k: fmt_out(v) if geo.exact else to_number(v) for k, v in geo.point.items()},
            "lambda": fmt_out(geo.lam) if geo.exact else to_number(geo.lam),
            "S": fmt_out(geo.value) if geo.exact else to_number(geo.value),
            "kind": geo.kind,
            "conclusion": geo.conclusion,
        }, None
    res = solve_lagrange(cfg["objective"], cfg["constraint"], verbose=True)
    return {
        "points": [{"x1": fmt_out(p.x1), "x2": fmt_out(p.x2), "lambda": fmt_out(p.lam),
                    "f": fmt_out(p.f_value), "kind": p.kind,
                    "approx": None if p.exact else [to_number(p.x1), to_number(p.x2)]}
                   for p in res.points],
        "conclusion": res.conclusion,
    }, None


RUNNERS = {
    "Linear programming": run_lp,
    "Matrix game": run_game,
    "Transportation": run_transport,
    "Gradient descent": run_gradient,
    "Lagrange multipliers": run_lagrange,
}

if run:
    # Parse JSON
    try:
        cfg = json.loads(json_text, parse_float=Decimal)
    except ValueError as e:
        st.error(f"Invalid JSON: {e}")
    else:
        # Capture solver verbose output
        buf = io.StringIO()
        try:
            with redirect_stdout(buf):
                summary, lp_run = RUNNERS[calculator](cfg)
        except KeyError as e:
            st.error(f"Missing field {e}")
        except SolverError as e:
            st.code(buf.getvalue())
            st.error(f"{type(e).__name__}: {e}")
        else:
            # Single-column layout: Iterations -> Result -> Graph
            st.subheader("Iterations")
            st.code(buf.getvalue())
            st.subheader("Result")
            st.json(summary)

            if lp_run is not None:
                lp, res = lp_run
                # Infinite many solutions note
                if res.details.get('alternate_optimal'):
                    st.info("Infinite many optimal solutions along an edge (alternate optimal).")
                st.subheader("Graph")
                if show_graph and len(lp.c) == 2:
                    fig = plot_2d(lp, res)
                    if fig is not None:
                        st.pyplot(fig)
                    else:
                        st.info("No feasible region to plot.")
                else:
                    st.info("Graph available only for 2 variables.")
