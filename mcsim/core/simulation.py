"""
Experiment execution for MCSim.

This module contains the Monte Carlo loop: every condition row of a grid is
passed to a data generator and the generated dataset to an analyzer. Each
row draws from its own random stream, spawned deterministically from the
experiment seed and the row index, so results are reproducible regardless
of whether rows run serially or in parallel.
"""

import contextlib
import warnings
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import numpy as np

from ..utils.validators import (
    ConfigurationError,
    _required_arguments,
    _validate_error_mode,
    _validate_function_parameters,
    _validate_row_timeout,
)
from .grid import ConditionGrid, ConditionRow
from .results import ExperimentResults


class RowTimeoutError(TimeoutError):
    """Raised when analysing a single condition row exceeds ``row_timeout``."""


class ExperimentCancelled(Exception):
    """Raised when ``cancel_check`` asks a running experiment to stop."""


@dataclass(frozen=True)
class RowFailure:
    """A condition row that failed in diagnostic (``on_error="record"``) mode.

    Attributes:
        index: Row index in the grid.
        iteration: Iteration number of the row.
        parameters: Parameter values of the row.
        stage: ``"generate"`` or ``"analyze"``.
        error_type: Exception class name.
        message: Exception message.
    """

    index: int
    iteration: int
    parameters: Mapping[str, Any]
    stage: str
    error_type: str
    message: str

    @property
    def reason(self) -> str:
        return f"{self.stage}: {self.error_type}: {self.message}"


@dataclass
class _RowOutcome:
    index: int
    record: Any = None
    dataset: Any = None
    failure: Optional[RowFailure] = None


def _check_cancel(cancel_check: Optional[Callable[[], bool]]):
    if cancel_check is not None and cancel_check():
        raise ExperimentCancelled("Experiment cancelled by user")


def spawn_row_seeds(seed: Optional[int], n_rows: int) -> List[np.random.SeedSequence]:
    """Derive one independent seed sequence per row from the experiment seed.

    Row *i* always receives the *i*-th spawned child, so a row's random
    stream depends only on ``(seed, i)``.
    """
    return np.random.SeedSequence(seed).spawn(n_rows)


def _bound_names(func: Callable, skip_first: bool) -> Optional[List[str]]:
    """Parameter names to pass to *func*, or ``None`` to pass everything
    (functions accepting ``**kwargs``)."""
    import inspect

    signature = inspect.signature(func)
    if any(p.kind == p.VAR_KEYWORD for p in signature.parameters.values()):
        return None
    required, optional = _required_arguments(func, skip_first=skip_first)
    return required + optional


def _bind(names: Optional[Sequence[str]], parameters: Mapping[str, Any]) -> Dict[str, Any]:
    if names is None:
        return dict(parameters)
    return {name: parameters[name] for name in names if name in parameters}


def _accepts_rng(func: Callable) -> bool:
    import inspect

    params = inspect.signature(func).parameters
    return "rng" in params or any(p.kind == p.VAR_KEYWORD for p in params.values())


class _RowEvaluator:
    """Generates and analyses one condition row.

    Instances are shipped to worker processes in parallel mode, so the
    timeout executor is created lazily and never pickled.
    """

    def __init__(
        self,
        generate: Callable,
        analyze: Callable,
        on_error: str = "raise",
        row_timeout: Optional[float] = None,
        keep_data: bool = False,
    ):
        self.generate = generate
        self.analyze = analyze
        self.on_error = on_error
        self.row_timeout = row_timeout
        self.keep_data = keep_data
        self._generate_names = _bound_names(generate, skip_first=False)
        self._analyze_names = _bound_names(analyze, skip_first=True)
        self._generate_takes_rng = _accepts_rng(generate)
        self._executor: Optional[ThreadPoolExecutor] = None

    def __getstate__(self):
        state = self.__dict__.copy()
        state["_executor"] = None
        return state

    def close(self):
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def _analyze_with_timeout(self, dataset, kwargs):
        if self.row_timeout is None:
            return self.analyze(dataset, **kwargs)

        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="mcsim-row")
        future = self._executor.submit(self.analyze, dataset, **kwargs)
        try:
            return future.result(timeout=self.row_timeout)
        except FutureTimeoutError:
            # The stuck worker thread cannot be interrupted; abandon it.
            self.close()
            raise RowTimeoutError(f"Analysis exceeded {self.row_timeout}s") from None

    def evaluate(self, row: ConditionRow, seed_seq: np.random.SeedSequence) -> _RowOutcome:
        rng = np.random.default_rng(seed_seq)
        stage = "generate"
        try:
            gen_kwargs = _bind(self._generate_names, row.parameters)
            if self._generate_takes_rng:
                gen_kwargs["rng"] = rng
            dataset = self.generate(**gen_kwargs)

            stage = "analyze"
            record = self._analyze_with_timeout(dataset, _bind(self._analyze_names, row.parameters))
        except ConfigurationError:
            # Misconfiguration fails fast in both error modes.
            raise
        except Exception as e:
            if self.on_error == "raise":
                raise
            failure = RowFailure(
                index=row.index,
                iteration=row.iteration,
                parameters=dict(row.parameters),
                stage=stage,
                error_type=type(e).__name__,
                message=str(e),
            )
            return _RowOutcome(index=row.index, failure=failure)

        return _RowOutcome(
            index=row.index,
            record=record,
            dataset=dataset if self.keep_data else None,
        )

    def evaluate_chunk(self, rows: Sequence[ConditionRow], seeds: Sequence[np.random.SeedSequence]) -> List[_RowOutcome]:
        try:
            return [self.evaluate(row, seed) for row, seed in zip(rows, seeds)]
        finally:
            self.close()


class ExperimentRunner:
    """Executes the generate → analyze loop over a condition grid.

    The default failure policy is to abort on the first error, letting the
    original exception propagate. With ``on_error="record"`` failing rows
    are recorded with their reason and the run continues; a warning reports
    how many rows failed.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        on_error: str = "raise",
        row_timeout: Optional[float] = None,
        parallel: bool = False,
        n_cores: int = 1,
    ):
        """Initialise the experiment runner.

        Args:
            seed: Experiment seed. Row *i* uses the *i*-th child of
                ``SeedSequence(seed)``.
            on_error: ``"raise"`` (abort on first failure) or ``"record"``
                (diagnostic mode).
            row_timeout: Optional limit in seconds on each analyzer call.
            parallel: Evaluate rows in worker processes via ``joblib``.
            n_cores: Number of worker processes when *parallel* is set.
        """
        _validate_error_mode(on_error).raise_if_invalid()
        _validate_row_timeout(row_timeout).raise_if_invalid()
        self.seed = seed
        self.on_error = on_error
        self.row_timeout = row_timeout
        self.parallel = parallel
        self.n_cores = n_cores

    def check(self, grid: ConditionGrid, generate: Callable, analyze: Callable):
        """Fail fast if either function needs a parameter the grid lacks."""
        declared = grid.parameter_names
        _validate_function_parameters(generate, declared, "Generator").raise_if_invalid()
        _validate_function_parameters(analyze, declared, "Analyzer", skip_first=True).raise_if_invalid()

    def run(
        self,
        grid: ConditionGrid,
        generate: Callable,
        analyze: Callable,
        progress=None,
        cancel_check: Optional[Callable[[], bool]] = None,
        keep_data: bool = False,
    ) -> ExperimentResults:
        """Run every condition row of *grid*.

        Args:
            grid: The condition grid.
            generate: Data generator, called with the row parameters named
                in its signature and ``rng``.
            analyze: Analyzer, called with the dataset and the row
                parameters named in its signature.
            progress: Optional ``ProgressReporter`` (advanced once per row).
            cancel_check: Optional callable returning ``True`` to abort.
            keep_data: Keep every generated dataset on the results.

        Returns:
            ``ExperimentResults`` holding rows, records and failures.

        Raises:
            ConfigurationError: Before any row runs, if a required parameter
                is missing from the grid.
            ExperimentCancelled: If *cancel_check* requests cancellation.
            RuntimeError: In diagnostic mode, if every row failed.
        """
        self.check(grid, generate, analyze)

        rows = grid.rows()
        seeds = spawn_row_seeds(self.seed, len(rows))
        evaluator = _RowEvaluator(generate, analyze, self.on_error, self.row_timeout, keep_data)

        with progress if progress is not None else contextlib.nullcontext():
            if self.parallel and self.n_cores > 1 and len(rows) > 1:
                outcomes = self._run_parallel(evaluator, rows, seeds, progress, cancel_check)
            else:
                outcomes = self._run_sequential(evaluator, rows, seeds, progress, cancel_check)

        return self._collect(grid, rows, outcomes, keep_data)

    def _run_sequential(self, evaluator, rows, seeds, progress, cancel_check) -> List[_RowOutcome]:
        outcomes = []
        try:
            for row, seed_seq in zip(rows, seeds):
                _check_cancel(cancel_check)
                outcomes.append(evaluator.evaluate(row, seed_seq))
                if progress is not None:
                    progress.advance(1)
        finally:
            evaluator.close()
        return outcomes

    def _run_parallel(self, evaluator, rows, seeds, progress, cancel_check) -> List[_RowOutcome]:
        from joblib import Parallel, delayed

        n_chunks = min(len(rows), self.n_cores * 4)
        bounds = np.linspace(0, len(rows), n_chunks + 1).astype(int)
        chunks = [(rows[a:b], seeds[a:b]) for a, b in zip(bounds[:-1], bounds[1:]) if b > a]

        results = Parallel(
            n_jobs=self.n_cores,
            backend="loky",
            verbose=0,
            return_as="generator",
        )(delayed(evaluator.evaluate_chunk)(chunk_rows, chunk_seeds) for chunk_rows, chunk_seeds in chunks)

        outcomes: List[_RowOutcome] = []
        for chunk_outcomes in results:
            _check_cancel(cancel_check)
            outcomes.extend(chunk_outcomes)
            if progress is not None:
                progress.advance(len(chunk_outcomes))
        return outcomes

    def _collect(
        self,
        grid: ConditionGrid,
        rows: List[ConditionRow],
        outcomes: List[_RowOutcome],
        keep_data: bool,
    ) -> ExperimentResults:
        records = [o.record for o in outcomes]
        failures = [o.failure for o in outcomes if o.failure is not None]
        datasets = {o.index: o.dataset for o in outcomes if o.dataset is not None} if keep_data else {}

        if rows and len(failures) == len(rows):
            reasons = _count_reasons(failures)
            raise RuntimeError(f"All simulation rows failed. Reasons: {reasons}")

        if failures:
            failed_pct = len(failures) / len(rows)
            warnings.warn(
                f"{len(failures)}/{len(rows)} condition rows failed ({failed_pct:.1%}) and were "
                "excluded from the results - check generator/analyzer inputs",
                stacklevel=3,
            )

        return ExperimentResults(
            grid=grid,
            rows=rows,
            records=records,
            failures=failures,
            seed=self.seed,
            datasets=datasets,
        )


def _count_reasons(failures: Sequence[RowFailure]) -> Dict[str, int]:
    reasons: Dict[str, int] = {}
    for failure in failures:
        reasons[failure.reason] = reasons.get(failure.reason, 0) + 1
    return reasons


def simulate_once(
    generate: Callable,
    parameters: Mapping[str, Any],
    seed: Optional[int] = None,
) -> Any:
    """Generate a single dataset, e.g. to illustrate one iteration in a plot.

    Uses the same seeding scheme as the runner, so the dataset equals the
    first row of a one-condition experiment with the same seed.
    """
    row = ConditionRow(index=0, iteration=1, parameters=parameters)
    grid_names = list(parameters.keys())
    _validate_function_parameters(generate, grid_names, "Generator").raise_if_invalid()
    seed_seq = spawn_row_seeds(seed, 1)[0]
    kwargs = _bind(_bound_names(generate, skip_first=False), row.parameters)
    if _accepts_rng(generate):
        kwargs["rng"] = np.random.default_rng(seed_seq)
    return generate(**kwargs)

