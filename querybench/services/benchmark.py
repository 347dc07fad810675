"""Benchmark runner.

Times the read strategies from ``querybench.services.queries`` against each
storage backend, serially and with concurrent workers.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Sequence

from pydantic import BaseModel, Field
from sqlalchemy import select

from querybench.db.sessions import StorageBackend
from querybench.models import User
from querybench.services.queries import STRATEGIES, QueryStrategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BenchmarkCase:
    """One timed run of a strategy against a backend."""

    strategy: str
    backend: str
    iterations: int = 1
    concurrency: int = 1

    @property
    def is_concurrent(self) -> bool:
        return self.concurrency > 1

    @property
    def label(self) -> str:
        if self.is_concurrent:
            return (
                f"{self.concurrency} concurrent {self.strategy} with {self.backend} "
                f"({self.iterations} iteration{'s' if self.iterations != 1 else ''} each)"
            )
        return f"{self.iterations}x {self.strategy} with {self.backend}"


@dataclass
class BenchmarkPlan:
    cases: List[BenchmarkCase]

    def __iter__(self) -> Iterator[BenchmarkCase]:
        return iter(self.cases)

    def __len__(self) -> int:
        return len(self.cases)


def default_benchmark_plan(backends: Sequence[str]) -> BenchmarkPlan:
    """Return the standard suite for the given backend names.

    Serial runs (1 and 10 iterations) for each strategy on each backend,
    followed by 5 workers x 1 iteration and 10 workers x 5 iterations for
    every strategy/backend pair.
    """
    cases: List[BenchmarkCase] = []
    for strategy in STRATEGIES:
        for backend in backends:
            for iterations in (1, 10):
                cases.append(BenchmarkCase(strategy=strategy, backend=backend, iterations=iterations))

    for concurrency, iterations in ((5, 1), (10, 5)):
        for strategy in STRATEGIES:
            for backend in backends:
                cases.append(
                    BenchmarkCase(
                        strategy=strategy,
                        backend=backend,
                        iterations=iterations,
                        concurrency=concurrency,
                    )
                )
    return BenchmarkPlan(cases=cases)


class CaseResult(BaseModel):
    label: str
    strategy: str
    backend: str
    iterations: int
    concurrency: int
    elapsed_ms: float


class BenchmarkReport(BaseModel):
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    emails: Dict[str, str] = Field(default_factory=dict)
    results: List[CaseResult] = Field(default_factory=list)


def resolve_target_email(backend: StorageBackend, configured: Optional[str] = None) -> str:
    """Return the email to look up: the configured one, or the first user's."""
    if configured:
        return configured
    with backend.session() as db:
        email = db.execute(select(User.email).order_by(User.id).limit(1)).scalar_one_or_none()
    if email is None:
        raise LookupError(f"No users found on {backend.name} backend; run the seeder first")
    return email


def run_test(
    strategy: QueryStrategy,
    backend: StorageBackend,
    email: str,
    iterations: int = 1,
) -> float:
    """Run ``strategy`` ``iterations`` times back to back; return elapsed milliseconds."""
    started = time.perf_counter()
    for _ in range(iterations):
        with backend.session() as db:
            strategy(db, email)
    return (time.perf_counter() - started) * 1000.0


def run_concurrent_test(
    strategy: QueryStrategy,
    backend: StorageBackend,
    email: str,
    concurrency: int,
    iterations: int = 1,
) -> float:
    """Run ``concurrency`` workers, each doing ``run_test``; return total elapsed milliseconds."""
    started = time.perf_counter()
    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        futures = [
            pool.submit(run_test, strategy, backend, email, iterations)
            for _ in range(concurrency)
        ]
        for future in futures:
            future.result()
    return (time.perf_counter() - started) * 1000.0


class BenchmarkRunner:
    """Execute a BenchmarkPlan against a set of named backends."""

    def __init__(self, backends: Dict[str, StorageBackend], email: Optional[str] = None):
        self.backends = backends
        self.email = email
        self._emails: Dict[str, str] = {}

    def email_for(self, backend: StorageBackend) -> str:
        if backend.name not in self._emails:
            self._emails[backend.name] = resolve_target_email(backend, self.email)
        return self._emails[backend.name]

    def run_case(self, case: BenchmarkCase) -> CaseResult:
        backend = self.backends[case.backend]
        strategy = STRATEGIES[case.strategy]
        email = self.email_for(backend)

        if case.is_concurrent:
            logger.info(
                "Running concurrent test - %s with %s, concurrency: %d...",
                case.strategy,
                case.backend,
                case.concurrency,
            )
            elapsed = run_concurrent_test(strategy, backend, email, case.concurrency, case.iterations)
        else:
            logger.info("Running test - %s with %s...", case.strategy, case.backend)
            elapsed = run_test(strategy, backend, email, case.iterations)

        logger.info("%s: %.2f milliseconds", case.label, elapsed)
        return CaseResult(
            label=case.label,
            strategy=case.strategy,
            backend=case.backend,
            iterations=case.iterations,
            concurrency=case.concurrency,
            elapsed_ms=elapsed,
        )

    def run(self, plan: BenchmarkPlan) -> BenchmarkReport:
        missing = sorted({case.backend for case in plan} - set(self.backends))
        if missing:
            raise ValueError(f"Plan references unconfigured backend(s): {', '.join(missing)}")

        report = BenchmarkReport()
        for case in plan:
            report.results.append(self.run_case(case))
        report.emails = dict(self._emails)
        return report
