"""Tests for the harness-run command."""

import pytest
from click.testing import CliRunner
from unittest.mock import AsyncMock, patch

from harness.cli.app import main
from harness.execution.registry import default_registry
from harness.models.execution_models import AggregateResult, Outcome, OutcomeStatus

SUITE = '''
from harness.execution import acceptance_test


@acceptance_test(tags=["smoke"])
async def cli_suite_home(browser):
    await browser.visit("https://example.com")


@acceptance_test()
async def cli_suite_about(browser):
    await browser.visit("https://example.com/about")
'''


@pytest.fixture
def suite_file(tmp_path):
    default_registry.clear()
    path = tmp_path / "cli_suite.py"
    path.write_text(SUITE)
    yield path
    default_registry.clear()


@pytest.fixture
def env(monkeypatch):
    monkeypatch.setenv("HARNESS_EXECUTION_MODE", "LOCAL")
    monkeypatch.delenv("HARNESS_SEED", raising=False)
    return monkeypatch


def result_with(*statuses, fatal=None):
    outcomes = [
        Outcome(test_id=f"t{i}", status=status) for i, status in enumerate(statuses)
    ]
    return AggregateResult(
        seed=77,
        start_order=[o.test_id for o in outcomes],
        outcomes=outcomes,
        fatal_error=fatal,
    )


def test_passing_run_prints_replay_seed(suite_file, env):
    run_suite = AsyncMock(return_value=result_with(OutcomeStatus.PASS))
    with patch("harness.cli.app.run_suite", run_suite):
        result = CliRunner().invoke(main, [str(suite_file), "--seed", "77", "-n", "3"])

    assert result.exit_code == 0, result.output
    assert "--seed=77" in result.output
    config, registry, test_ids = run_suite.call_args.args
    assert config.seed == 77
    assert config.concurrency_limit == 3
    assert sorted(test_ids) == ["cli_suite_about", "cli_suite_home"]


def test_tag_filter(suite_file, env):
    run_suite = AsyncMock(return_value=result_with(OutcomeStatus.PASS))
    with patch("harness.cli.app.run_suite", run_suite):
        CliRunner().invoke(main, [str(suite_file), "--tag", "smoke"])

    assert run_suite.call_args.args[2] == ["cli_suite_home"]


def test_failed_run_exit_code(suite_file, env):
    run_suite = AsyncMock(
        return_value=result_with(OutcomeStatus.PASS, OutcomeStatus.FAIL)
    )
    with patch("harness.cli.app.run_suite", run_suite):
        result = CliRunner().invoke(main, [str(suite_file)])

    assert result.exit_code == 1


def test_fatal_run_exit_code(suite_file, env):
    run_suite = AsyncMock(return_value=result_with(fatal="Unknown test units: x"))
    with patch("harness.cli.app.run_suite", run_suite):
        result = CliRunner().invoke(main, [str(suite_file)])

    assert result.exit_code == 2
    assert "Run aborted" in result.output


def test_missing_mode_exits_before_running(suite_file, monkeypatch):
    monkeypatch.delenv("HARNESS_EXECUTION_MODE", raising=False)
    monkeypatch.delenv("SELENIUM_PLATFORM", raising=False)
    run_suite = AsyncMock()
    with patch("harness.cli.app.run_suite", run_suite):
        result = CliRunner().invoke(main, [str(suite_file)])

    assert result.exit_code == 2
    run_suite.assert_not_called()


def test_repeated_test_option_runs_unit_once(suite_file, env):
    run_suite = AsyncMock(return_value=result_with(OutcomeStatus.PASS))
    with patch("harness.cli.app.run_suite", run_suite):
        result = CliRunner().invoke(
            main,
            [str(suite_file), "--test", "cli_suite_home", "--test", "cli_suite_home"],
        )

    assert result.exit_code == 0, result.output
    assert run_suite.call_args.args[2] == ["cli_suite_home"]
