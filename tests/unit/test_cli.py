"""
Tests for the command line entry point.
"""
from chiffres.cli import main


def test_cli_found(capsys):
    code = main(["5", "7", "--target", "12", "--bits", "8", "--no-color"])
    out = capsys.readouterr().out

    assert code == 0
    assert "Found solution in 3 steps" in out
    assert "add" in out


def test_cli_exhausted(capsys):
    code = main(["1", "2", "-t", "10", "--bits", "8"])
    assert code == 1
    assert "No solution within 3 steps" in capsys.readouterr().out


def test_cli_approximate(capsys):
    code = main(["1", "2", "-t", "10", "--bits", "8", "--approx", "--no-color"])
    out = capsys.readouterr().out

    assert code == 0
    assert "approximate" in out
    assert "[3]" in out
    assert "Closest value: 3 (target 10)" in out


def test_cli_configuration_error(capsys):
    code = main(["200", "-t", "10", "--bits", "8"])
    assert code == 3
    assert "exceeds" in capsys.readouterr().err


def test_cli_allow_overflows(capsys):
    code = main(["200", "-t", "10", "--bits", "8", "--allow-overflows"])
    assert code == 1


def test_cli_simulation(capsys):
    code = main(["4", "4", "-t", "0", "--simulation", "--no-color"])
    out = capsys.readouterr().out

    assert code == 0
    assert out.count("push") == 2
