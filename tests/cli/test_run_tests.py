"""
Tests for the pytest command assembled by run_tests.py.
"""

import argparse
import importlib.util
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent.parent


@pytest.fixture(scope="module")
def runner():
    spec = importlib.util.spec_from_file_location("run_tests", PROJECT_ROOT / "run_tests.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _args(**overrides):
    defaults = dict(
        type="all",
        with_stan=False,
        markers=None,
        keyword=None,
        coverage=False,
        html=False,
        failfast=False,
        verbose=False,
    )
    defaults.update(overrides)
    return argparse.Namespace(**defaults)


def _marker(cmd):
    return cmd[cmd.index("-m", 3) + 1] if cmd.count("-m") > 1 else None


def test_default_skips_stan(runner):
    cmd = runner.build_pytest_command(_args())
    assert "tests/" in cmd
    assert _marker(cmd) == "not stan"


def test_stan_only(runner):
    cmd = runner.build_pytest_command(_args(type="stan"))
    assert _marker(cmd) == "stan"


def test_with_stan_and_extra_markers(runner):
    assert _marker(runner.build_pytest_command(_args(with_stan=True))) is None
    cmd = runner.build_pytest_command(_args(type="unit", markers="slow"))
    assert "tests/unit/" in cmd
    assert _marker(cmd) == "(not stan) and (slow)"


def test_coverage_and_flags(runner):
    cmd = runner.build_pytest_command(_args(html=True, failfast=True, keyword="loo"))
    assert "--cov=src/hntiming" in cmd
    assert "--cov-report=html:htmlcov" in cmd
    assert cmd[cmd.index("-k") + 1] == "loo"
    assert "-x" in cmd
