"""
MCSim - Monte Carlo simulation for statistical inference.

This module provides the main Experiment class: a condition grid, a data
generator and an analyzer, run over many iterations and summarised into a
table or plot.
"""

from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from .core import ConditionGrid, ExperimentResults, ExperimentRunner, Proportion, simulate_once
from .utils.formatters import _format_failures, _format_results
from .utils.validators import (
    ConfigurationError,
    _validate_alpha,
    _validate_error_mode,
    _validate_iterations,
    _validate_parallel_settings,
    _validate_row_timeout,
    _validate_seed,
)
from .utils.visualization import plot_multiverse, plot_outcome_curves


class Experiment:
    """Monte Carlo experiment.

    Runs ``generate`` then ``analyze`` for every row of a condition grid
    (each combination of parameter values times ``n_iterations``) and
    summarises the per-row results across iterations.

    Most ``set_*`` methods return ``self`` for method chaining.

    Attributes:
        seed: Random seed for reproducibility (default: 2137).
        n_iterations: Iterations per condition (default: 1000).
        alpha: Significance level used by the default summary (default: 0.05).
        parallel: Evaluate rows in worker processes (default: ``False``).
        n_cores: Number of worker processes.
        on_error: ``"raise"`` (default) or ``"record"`` (diagnostic mode).
        row_timeout: Optional analyzer time limit per row, in seconds.
        results: ``ExperimentResults`` of the last run.

    Example:
        >>> from mcsim import Experiment
        >>> from mcsim.stats import generate_two_groups, analyze_independent_t_test
        >>> exp = Experiment(generate_two_groups, analyze_independent_t_test)
        >>> exp.set_parameters("n_per_condition=(50, 100, 150), mean_control=0, "
        ...                    "mean_intervention=0.5, sd_control=1, sd_intervention=1")
        >>> exp.run()
        >>> exp.summarize()
    """

    def __init__(
        self,
        generate: Callable,
        analyze: Callable,
        parameters: Optional[Union[str, Mapping[str, Any]]] = None,
    ):
        if not callable(generate) or not callable(analyze):
            raise TypeError("generate and analyze must be callables")

        self.generate = generate
        self.analyze = analyze

        self.seed: Optional[int] = 2137
        self.n_iterations = 1000
        self.alpha = 0.05
        self.parallel = False
        self.n_cores = 1
        self.on_error = "raise"
        self.row_timeout: Optional[float] = None

        self._parameters: Optional[Union[str, Mapping[str, Any]]] = None
        self._variations: Optional[Mapping[str, Sequence[Any]]] = None
        self.results: Optional[ExperimentResults] = None

        if parameters is not None:
            self.set_parameters(parameters)

    # =========================================================================
    # Configuration
    # =========================================================================

    def set_parameters(self, parameters: Union[str, Mapping[str, Any]]):
        """Declare a fully crossed (factorial) condition grid.

        Args:
            parameters: Mapping of parameter name to a value or a list of
                candidate values, or an assignment string such as
                ``"n_per_condition=(50, 100), mean_control=0"``.

        Returns:
            self: For method chaining.
        """
        self._parameters = parameters
        self._variations = None
        self._grid()  # validate now
        return self

    def set_one_at_a_time(self, defaults: Mapping[str, Any], variations: Mapping[str, Sequence[Any]]):
        """Declare a one-at-a-time design: each parameter in *variations* is
        varied in turn while every other parameter stays at its default.

        Returns:
            self: For method chaining.
        """
        self._parameters = dict(defaults)
        self._variations = dict(variations)
        self._grid()
        return self

    def set_seed(self, seed: Optional[int] = None):
        """Set random seed for reproducibility.

        Args:
            seed: Non-negative integer. Pass ``None`` to draw fresh entropy
                on every run (results are then not reproducible).

        Returns:
            self: For method chaining.
        """
        result = _validate_seed(seed)
        for warning in result.warnings:
            print(f"Warning: {warning}")
        result.raise_if_invalid()

        self.seed = seed
        if seed is not None:
            print(f"Seed set to: {seed}")
        return self

    def set_iterations(self, n_iterations: int):
        """Set the number of iterations per condition.

        Returns:
            self: For method chaining.
        """
        n_iter, result = _validate_iterations(n_iterations)
        for warning in result.warnings:
            print(f"Warning: {warning}")
        result.raise_if_invalid()
        self.n_iterations = n_iter
        return self

    def set_alpha(self, alpha: float):
        """Set the significance level used by the default summary.

        Args:
            alpha: Type-I error rate (0-0.25). Default is 0.05.

        Returns:
            self: For method chaining.
        """
        _validate_alpha(alpha).raise_if_invalid()
        self.alpha = float(alpha)
        return self

    def set_parallel(self, enable: bool = True, n_cores: Optional[int] = None):
        """Enable or disable parallel row evaluation.

        Requires ``joblib``. Falls back to sequential processing with a
        warning if it is unavailable. Results are identical either way.

        Args:
            enable: ``True`` for parallel, ``False`` for sequential.
            n_cores: Worker processes. Defaults to ``cpu_count // 2``.

        Returns:
            self: For method chaining.
        """
        if enable is False:
            self.parallel, self.n_cores = False, 1
            return self

        try:
            import joblib  # noqa: F401
        except ImportError:
            print("Warning: joblib not available. Install with: pip install joblib")
            print("Warning: Continuing with sequential processing.")
            self.parallel = False
            return self

        settings, result = _validate_parallel_settings(enable, n_cores)
        result.raise_if_invalid()
        self.parallel, self.n_cores = settings
        return self

    def set_error_mode(self, on_error: str):
        """Choose what happens when a row fails.

        Args:
            on_error: ``"raise"`` aborts on the first failure (default);
                ``"record"`` records failing rows and continues.

        Returns:
            self: For method chaining.
        """
        _validate_error_mode(on_error).raise_if_invalid()
        self.on_error = on_error
        return self

    def set_row_timeout(self, seconds: Optional[float]):
        """Limit the time each analyzer call may take (``None`` for no limit).

        Returns:
            self: For method chaining.
        """
        _validate_row_timeout(seconds).raise_if_invalid()
        self.row_timeout = None if seconds is None else float(seconds)
        return self

    # =========================================================================
    # Grid
    # =========================================================================

    def _grid(self) -> ConditionGrid:
        if self._parameters is None:
            raise ConfigurationError("No parameters declared. Use set_parameters() first.")
        if self._variations is not None:
            return ConditionGrid.one_at_a_time(self._parameters, self._variations, self.n_iterations)
        return ConditionGrid(self._parameters, self.n_iterations)

    @property
    def grid(self) -> ConditionGrid:
        """Condition grid for the current settings."""
        return self._grid()

    # =========================================================================
    # Running
    # =========================================================================

    def run(
        self,
        print_results: bool = True,
        progress_callback=None,
        cancel_check: Optional[Callable[[], bool]] = None,
        keep_data: bool = False,
    ) -> ExperimentResults:
        """Run every condition row.

        Args:
            print_results: Print a run report.
            progress_callback: Progress reporting control:
                - ``None`` (default): auto-use ``PrintReporter`` when
                  *print_results* is ``True``.
                - ``False``: explicitly disable progress.
                - callable ``(current, total)``: custom callback.
            cancel_check: Optional callable returning ``True`` to abort.
            keep_data: Keep every generated dataset on the results.

        Returns:
            ``ExperimentResults`` (also stored as ``self.results``).
        """
        grid = self._grid()
        runner = ExperimentRunner(
            seed=self.seed,
            on_error=self.on_error,
            row_timeout=self.row_timeout,
            parallel=self.parallel,
            n_cores=self.n_cores,
        )
        runner.check(grid, self.generate, self.analyze)

        from .progress import PrintReporter, ProgressReporter, TqdmReporter

        if progress_callback is None:
            effective_cb = PrintReporter() if print_results else None
        elif progress_callback is False:
            effective_cb = None
        else:
            effective_cb = progress_callback

        reporter = ProgressReporter(len(grid), effective_cb) if effective_cb is not None else None

        if print_results:
            print(
                f"Running {len(grid)} condition rows ({grid.n_conditions} conditions x "
                f"{grid.n_iterations} iterations)"
            )

        try:
            self.results = runner.run(
                grid,
                self.generate,
                self.analyze,
                progress=reporter,
                cancel_check=cancel_check,
                keep_data=keep_data,
            )
        finally:
            # leave no half-drawn tqdm bar behind a failed run
            if isinstance(effective_cb, TqdmReporter):
                effective_cb.close()

        if print_results and self.results.n_rows_failed:
            print(
                _format_failures(
                    self.results.failure_reasons,
                    self.results.n_rows_failed,
                    len(self.results.rows),
                )
            )
        return self.results

    def _require_results(self) -> ExperimentResults:
        if self.results is None:
            raise RuntimeError("No results yet. Call run() first.")
        return self.results

    def summarize(
        self,
        by: Optional[Sequence[str]] = None,
        print_results: bool = False,
        digits: int = 3,
        **metrics: Callable[[pd.DataFrame], float],
    ) -> pd.DataFrame:
        """Summarise the last run across iterations.

        Without *metrics*, reports the proportion of rows with ``p`` below
        ``alpha`` as ``proportion_significant``.

        Args:
            by: Grouping parameters (default: every declared parameter).
            print_results: Print the table.
            digits: Decimal places when printing.
            **metrics: ``column_name=metric`` pairs.

        Returns:
            Summary DataFrame.
        """
        results = self._require_results()
        if not metrics:
            if "p" not in results.to_frame().columns:
                raise ConfigurationError("Analyzer results have no 'p' field; pass metrics explicitly")
            metrics = {"proportion_significant": Proportion("p", below=self.alpha)}

        summary = results.summarize(by=by, **metrics)
        if print_results:
            print(_format_results(summary, "Monte Carlo simulation results", digits=digits))
        return summary

    def simulate_once(self, parameters: Optional[Mapping[str, Any]] = None) -> Any:
        """Generate one dataset, for illustrating a single iteration.

        Args:
            parameters: Parameter values; defaults to the first condition of
                the grid.
        """
        if parameters is None:
            parameters = self._grid().conditions[0]
        return simulate_once(self.generate, parameters, seed=self.seed)

    # =========================================================================
    # Plotting
    # =========================================================================

    def plot_multiverse(
        self,
        outcome: str,
        summary: Optional[pd.DataFrame] = None,
        lower: Optional[str] = None,
        upper: Optional[str] = None,
        rank: Optional[str] = None,
        conditions: Optional[List[str]] = None,
        cutoff: Optional[float] = None,
        title: str = "Multiverse",
        show: bool = True,
    ):
        """Multiverse plot of a summary (default: ``self.summarize()``).

        Condition columns default to the varied parameters.
        """
        if summary is None:
            summary = self.summarize()
        if conditions is None:
            conditions = [c for c in self._require_results().grid.varied_parameters if c in summary.columns]
        return plot_multiverse(
            summary,
            outcome,
            lower=lower,
            upper=upper,
            rank=rank,
            conditions=conditions,
            cutoff=cutoff,
            title=title,
            show=show,
        )

    def plot_outcome_curves(
        self,
        x: str,
        outcome: str = "proportion_significant",
        line: Optional[str] = None,
        summary: Optional[pd.DataFrame] = None,
        reference: Optional[float] = None,
        title: str = "Simulation results",
        show: bool = True,
    ):
        """Outcome against parameter *x*, one line per value of *line*."""
        if summary is None:
            summary = self.summarize()
        return plot_outcome_curves(summary, x, outcome, line=line, reference=reference, title=title, show=show)

    def __repr__(self):
        generate = getattr(self.generate, "__name__", repr(self.generate))
        analyze = getattr(self.analyze, "__name__", repr(self.analyze))
        return f"Experiment(generate={generate}, analyze={analyze})"

