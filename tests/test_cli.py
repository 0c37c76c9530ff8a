import json

import pytest

from optcalc.cli import main


def write(tmp_path, data):
    path = tmp_path / "problem.json"
    path.write_text(json.dumps(data))
    return str(path)


def test_lp_from_strings(tmp_path, capsys):
    path = write(tmp_path, {"objective": "x1 + 2x2", "constraints": ["2x1 + 3x2 <= 12", "x1 + 5x2 <= 15"]})
    assert main(["lp", path]) == 0
    out = capsys.readouterr().out
    assert "Optimal value: 51/7" in out
    assert "x1 = 15/7, x2 = 18/7" in out
    assert "RHS" in out


def test_lp_from_matrices_with_decimals(tmp_path, capsys):
    path = write(tmp_path, {"c": [0.5, 1], "A": [[1, 1]], "b": [2.5], "senses": ["<="]})
    assert main(["lp", path, "--no-verbose"]) == 0
    out = capsys.readouterr().out
    assert "Optimal value: 5/2" in out
    assert "RHS" not in out


def test_sense_flag_overrides_json(tmp_path, capsys):
    path = write(tmp_path, {"objective": "x1 + x2", "constraints": ["x1 + x2 >= 2"], "maximize": True})
    assert main(["lp", path, "--sense", "min", "--method", "big_m", "--no-verbose"]) == 0
    assert "Optimal value: 2" in capsys.readouterr().out


def test_unbounded_status(tmp_path, capsys):
    path = write(tmp_path, {"objective": "x1", "constraints": ["-x1 + x2 <= 1"]})
    assert main(["lp", path, "--no-verbose"]) == 1
    assert "Status: unbounded" in capsys.readouterr().err


def test_missing_field(tmp_path, capsys):
    path = write(tmp_path, {"supply": [1]})
    assert main(["transport", path]) == 1
    assert "Missing field" in capsys.readouterr().err


def test_game(tmp_path, capsys):
    path = write(tmp_path, {"payoff": [[1, 7, 8, 10], [9, 6, 0, 5], [0, 3, 4, 2]]})
    assert main(["game", path, "--no-verbose"]) == 0
    assert "V = 9/2" in capsys.readouterr().out


def test_transport(tmp_path, capsys):
    path = write(tmp_path, {"supply": [20, 50, 30], "demand": [20, 40, 10, 30],
                            "cost": [[5, 7, 6, 2], [3, 2, 11, 3], [10, 3, 2, 4]]})
    assert main(["transport", path, "--no-verbose"]) == 0
    assert "Total cost F = 250" in capsys.readouterr().out


def test_gradient_cap(tmp_path, capsys):
    path = write(tmp_path, {"coeffs": {"A": 1, "B": 1, "D": -4, "E": -2}, "mode": "const", "alpha": "1/100"})
    assert main(["gradient", path, "--max-iter", "2", "--no-verbose"]) == 1
    assert "Status: not converged" in capsys.readouterr().err


def test_lagrange(tmp_path, capsys):
    path = write(tmp_path, {"objective": {"D": -3, "E": -4, "F": 5}, "constraint": {"a": 1, "b": 1, "f": -25}})
    assert main(["lagrange", path, "--no-verbose"]) == 0
    out = capsys.readouterr().out
    assert "min: x1 = 3, x2 = 4" in out
    assert "max: x1 = -3, x2 = -4" in out


def test_unknown_calculator(tmp_path):
    path = write(tmp_path, {})
    with pytest.raises(SystemExit):
        main(["simplex", path])


def test_lagrange_geometry(tmp_path, capsys):
    path = write(tmp_path, {"geometry": "box", "volume": 32})
    assert main(["lagrange", path, "--no-verbose"]) == 0
    out = capsys.readouterr().out
    assert "x = 4, y = 4, z = 2, lambda = -1, S = 48" in out
    assert "min at x = 4" in out
