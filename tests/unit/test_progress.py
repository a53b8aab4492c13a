"""
Tests for progress reporting module.
"""

import io
import sys
from unittest.mock import MagicMock, call, patch

import pytest

from mcsim.progress import PrintReporter, ProgressReporter, TqdmReporter


class TestProgressReporter:
    """Throttled (current, total) counter."""

    def test_enter_reports_zero(self):
        cb = MagicMock()
        with ProgressReporter(100, cb):
            cb.assert_called_once_with(0, 100)

    def test_clean_exit_reports_total(self):
        cb = MagicMock()
        with ProgressReporter(100, cb) as progress:
            progress.advance(50)
        cb.assert_called_with(100, 100)

    def test_failed_run_stops_where_it_was(self):
        cb = MagicMock()
        with pytest.raises(KeyError):
            with ProgressReporter(100, cb, n_updates=100) as progress:
                progress.advance(30)
                raise KeyError("boom")
        cb.assert_called_with(30, 100)

    def test_no_duplicate_final_update(self):
        cb = MagicMock()
        with ProgressReporter(10, cb, n_updates=10) as progress:
            for _ in range(10):
                progress.advance()
        assert cb.call_args_list.count(call(10, 10)) == 1

    def test_throttled_by_step(self):
        cb = MagicMock()
        progress = ProgressReporter(100, cb, n_updates=10)
        assert progress.step == 10

        progress.advance(5)
        assert cb.call_count == 0
        progress.advance(5)
        cb.assert_called_once_with(10, 100)

    def test_chunk_crossing_a_step_fires(self):
        cb = MagicMock()
        progress = ProgressReporter(100, cb, n_updates=10)
        progress.advance(7)
        progress.advance(7)
        cb.assert_called_once_with(14, 100)

    def test_completion_always_fires(self):
        cb = MagicMock()
        progress = ProgressReporter(10, cb, n_updates=1)
        for _ in range(10):
            progress.advance()
        cb.assert_called_once_with(10, 10)

    def test_advance_clamped_to_total(self):
        cb = MagicMock()
        progress = ProgressReporter(10, cb)
        progress.advance(25)
        assert progress.current == 10
        assert progress.fraction == 1.0

    def test_fraction(self):
        progress = ProgressReporter(8, MagicMock())
        progress.advance(2)
        assert progress.fraction == 0.25

    @pytest.mark.parametrize("total, expected", [(1000, 5), (1001, 6), (50, 1)])
    def test_default_step(self, total, expected):
        assert ProgressReporter(total, MagicMock()).step == expected

    def test_invalid_arguments(self):
        with pytest.raises(ValueError, match="total"):
            ProgressReporter(-1, MagicMock())
        with pytest.raises(ValueError, match="n_updates"):
            ProgressReporter(10, MagicMock(), n_updates=0)


class TestPrintReporter:
    """Test PrintReporter console output."""

    def test_output_format(self):
        buf = io.StringIO()
        PrintReporter(stream=buf)(50, 100)
        output = buf.getvalue()
        assert output.startswith("\rProgress:  50.0%")
        assert "(50/100 rows, " in output
        assert not output.endswith("\n")

    def test_defaults_to_stderr(self):
        buf = io.StringIO()
        with patch.object(sys, "stderr", buf):
            PrintReporter()(1, 4)
        assert "25.0%" in buf.getvalue()

    def test_total_zero_prints_nothing(self):
        buf = io.StringIO()
        PrintReporter(stream=buf)(0, 0)
        assert buf.getvalue() == ""

    def test_completion_newline(self):
        buf = io.StringIO()
        PrintReporter(stream=buf)(100, 100)
        assert buf.getvalue().endswith("s)\n")


class TestTqdmReporter:
    """Test TqdmReporter with mock tqdm."""

    def test_tqdm_missing_raises(self):
        reporter = TqdmReporter()
        with patch.dict("sys.modules", {"tqdm": None}):
            with pytest.raises(ImportError, match="tqdm"):
                reporter(0, 100)

    def test_tqdm_basic_flow(self):
        mock_bar = MagicMock()
        mock_bar.n = 0
        mock_tqdm_cls = MagicMock(return_value=mock_bar)
        mock_tqdm_module = MagicMock()
        mock_tqdm_module.tqdm = mock_tqdm_cls

        reporter = TqdmReporter(leave=False)

        with patch.dict("sys.modules", {"tqdm": mock_tqdm_module}):
            reporter(0, 100)
            mock_tqdm_cls.assert_called_once_with(total=100, desc="Simulating", unit="row", leave=False)
            mock_bar.update.assert_not_called()

            reporter(50, 100)
            mock_bar.update.assert_called_with(50)

            mock_bar.n = 50
            reporter(100, 100)
            mock_bar.update.assert_called_with(50)
            mock_bar.close.assert_called_once()

    def test_close_is_idempotent(self):
        reporter = TqdmReporter()
        reporter.close()
        reporter.close()


class TestExperimentProgress:
    """Progress wiring through Experiment.run."""

    def test_custom_callback_reaches_total(self, suppress_output):
        from mcsim import Experiment
        from mcsim.stats import analyze_independent_t_test, generate_two_groups

        cb = MagicMock()
        exp = Experiment(generate_two_groups, analyze_independent_t_test)
        exp.set_parameters(
            {"n_per_condition": [10, 20], "mean_control": 0, "mean_intervention": 0.5, "sd_control": 1, "sd_intervention": 1}
        )
        exp.set_iterations(5)
        exp.run(print_results=False, progress_callback=cb)
        cb.assert_any_call(0, 10)
        cb.assert_called_with(10, 10)

    def test_progress_disabled(self, suppress_output):
        from mcsim import Experiment
        from mcsim.stats import analyze_independent_t_test, generate_two_groups

        exp = Experiment(generate_two_groups, analyze_independent_t_test)
        exp.set_parameters(
            {"n_per_condition": 10, "mean_control": 0, "mean_intervention": 0.5, "sd_control": 1, "sd_intervention": 1}
        )
        exp.set_iterations(3)
        buf = io.StringIO()
        with patch.object(sys, "stderr", buf):
            exp.run(print_results=True, progress_callback=False)
        assert "Progress" not in buf.getvalue()
