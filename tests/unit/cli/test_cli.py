"""Tests for the strategy-lab CLI."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from strategy_lab.cli import main


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch):
    """Leave global logging alone while the runner swaps stdio."""
    monkeypatch.setattr(
        "strategy_lab.observability.logger.setup_logging", lambda **kwargs: None,
    )


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def data_dir(tmp_path):
    return str(tmp_path / "store")


def _write(tmp_path, name, data):
    path = tmp_path / name
    path.write_text(json.dumps(data))
    return str(path)


class TestPipelineCommands:
    def test_new_session_id(self, runner, data_dir):
        result = runner.invoke(main, ["--data-dir", data_dir, "new-session"])
        assert result.exit_code == 0
        session_id = result.output.strip()
        assert session_id.startswith("session_")

        result = runner.invoke(main, ["--data-dir", data_dir, "status", session_id])
        assert result.exit_code == 0

    def test_status_of_new_session(self, runner, data_dir):
        result = runner.invoke(main, ["--data-dir", data_dir, "status", "session_1"])
        assert result.exit_code == 0
        assert "alphaSignal" in result.output
        assert "Ready for review: no" in result.output

    def test_import_without_export_fails(self, runner, data_dir):
        result = runner.invoke(main, ["--data-dir", data_dir, "import", "session_1", "backtesting"])
        assert result.exit_code == 1
        assert "No exported data found for Backtesting" in result.output

    def test_export_import_advance(self, runner, data_dir, tmp_path):
        payload = _write(tmp_path, "alpha.json", {"ic": 0.12})
        for step in ("alphaSignal", "backtesting"):
            result = runner.invoke(
                main, ["--data-dir", data_dir, "export", "session_1", step, payload],
            )
            assert result.exit_code == 0, result.output

        result = runner.invoke(main, ["--data-dir", data_dir, "import", "session_1", "alphaSignal"])
        assert result.exit_code == 0
        assert "imported successfully" in result.output

        result = runner.invoke(main, ["--data-dir", data_dir, "advance", "session_1"])
        assert result.exit_code == 0

        result = runner.invoke(main, ["--data-dir", data_dir, "status", "session_1"])
        assert "Ready for review: yes" in result.output

    def test_advance_blocked(self, runner, data_dir):
        result = runner.invoke(main, ["--data-dir", data_dir, "advance", "session_1"])
        assert result.exit_code == 1
        assert "Alpha Signal Discovery" in result.output

    def test_unknown_step_is_clean_error(self, runner, data_dir):
        result = runner.invoke(main, ["--data-dir", data_dir, "import", "session_1", "nope"])
        assert result.exit_code == 1
        assert "Unknown pipeline step" in result.output
        assert "Traceback" not in result.output

    def test_export_invalid_json(self, runner, data_dir, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{oops")
        result = runner.invoke(main, ["--data-dir", data_dir, "export", "session_1", "regime", str(path)])
        assert result.exit_code == 1
        assert "invalid JSON" in result.output


class TestTradeStats:
    TRADES = [
        {"date": "2023-01-15", "asset": "AAPL", "entry_price": 150, "exit_price": 157, "pnl": 700},
        {"date": "2023-02-10", "asset": "MSFT", "entry_price": 300, "exit_price": 290, "pnl": -500},
        {"date": "2023-03-22", "asset": "GOOG", "entry_price": 1300, "exit_price": 1350, "pnl": 1000},
        {"date": "2023-04-02", "asset": "TSLA", "entry_price": 800, "exit_price": 825, "pnl": 1250},
        {"date": "2023-04-15", "asset": "AMZN", "entry_price": 3500, "exit_price": 3400, "pnl": -1500},
    ]

    def test_summary(self, runner, tmp_path):
        trades = _write(tmp_path, "trades.json", self.TRADES)
        result = runner.invoke(main, ["trade-stats", trades])
        assert result.exit_code == 0
        assert "Avg Profit:      190.00" in result.output
        assert "Win Streak:      2" in result.output

    def test_with_equity_and_sorted_csv(self, runner, tmp_path):
        trades = _write(tmp_path, "trades.json", self.TRADES)
        equity = _write(tmp_path, "equity.json", [
            {"date": "2023-01", "equity": 100000},
            {"date": "2023-02", "equity": 90000},
        ])
        result = runner.invoke(
            main, ["trade-stats", trades, "--equity", equity, "--sort-by", "pnl", "--desc", "--csv"],
        )
        assert result.exit_code == 0
        assert "-10.00%" in result.output
        assert result.output.index("TSLA") < result.output.index("AMZN")

    def test_bad_sort_field(self, runner, tmp_path):
        trades = _write(tmp_path, "trades.json", self.TRADES)
        result = runner.invoke(main, ["trade-stats", trades, "--sort-by", "sharpe"])
        assert result.exit_code == 2

    def test_invalid_trade_file(self, runner, tmp_path):
        trades = _write(tmp_path, "trades.json", [{"asset": "AAPL"}])
        result = runner.invoke(main, ["trade-stats", trades])
        assert result.exit_code == 1


class TestSessionCommands:
    @pytest.fixture
    def sessions_file(self, tmp_path, sample_sessions):
        return _write(tmp_path, "sessions.json", [s.model_dump(mode="json") for s in sample_sessions])

    def test_compare(self, runner, sessions_file):
        result = runner.invoke(main, ["compare", sessions_file, "s1", "s2"])
        assert result.exit_code == 0
        assert "Sharpe Ratio" in result.output
        assert "Expected Return" in result.output

    def test_compare_needs_two(self, runner, sessions_file):
        result = runner.invoke(main, ["compare", sessions_file, "s1"])
        assert result.exit_code == 1
        assert "at least 2 sessions" in result.output

    def test_list_with_filter(self, runner, sessions_file):
        result = runner.invoke(main, ["sessions", sessions_file, "--module", "backtesting"])
        assert result.exit_code == 0
        assert "Momentum Strategy Test" in result.output
        assert "Tech Growth Portfolio" not in result.output
        assert "Total Sessions:     3" in result.output

    def test_list_no_match(self, runner, sessions_file):
        result = runner.invoke(main, ["sessions", sessions_file, "--search", "zzz"])
        assert "No sessions found." in result.output
