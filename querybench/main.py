"""Command line entry point: migrate, seed and benchmark."""
import argparse
import logging
import random
import sys
from pathlib import Path
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from querybench.core.config import Settings, get_settings
from querybench.core.exceptions import QueryBenchError, classify_database_error
from querybench.db.schema import create_schema, drop_schema
from querybench.db.sessions import BACKEND_NAMES, backends_from_settings
from querybench.services.benchmark import BenchmarkRunner, default_benchmark_plan
from querybench.services.seeder import SeedPlan, seed_backend

logger = logging.getLogger("querybench")


def parse_args(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> argparse.Namespace:
    settings = settings or get_settings()
    parser = argparse.ArgumentParser(prog="querybench", description="Query strategy benchmark harness")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL, help="Logging level")

    backend_parent = argparse.ArgumentParser(add_help=False)
    backend_parent.add_argument(
        "--backend",
        choices=[*BACKEND_NAMES, "all"],
        default="all",
        help="Which database to operate on",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    migrate = sub.add_parser("migrate", parents=[backend_parent], help="Create (or drop) the schema")
    migrate.add_argument("--drop", action="store_true", help="Drop the tables instead of creating them")

    seed = sub.add_parser("seed", parents=[backend_parent], help="Clear and reseed all tables")
    seed.add_argument("--total-users", type=int, default=settings.TOTAL_USERS)
    seed.add_argument("--batch-size", type=int, default=settings.USER_BATCH_SIZE)
    seed.add_argument(
        "--random-seed",
        type=int,
        default=settings.SEED_RANDOM_SEED,
        help="Seed for visibility and answer draws",
    )

    bench = sub.add_parser("bench", parents=[backend_parent], help="Run the query benchmark")
    bench.add_argument(
        "--email",
        default=settings.BENCHMARK_EMAIL,
        help="User email to query (defaults to the first seeded user)",
    )
    bench.add_argument("--output", help="Write the JSON report to this path")
    bench.add_argument(
        "--dry-run",
        action="store_true",
        help="Only print the planned benchmark cases without executing them",
    )
    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _selected(backend: str) -> List[str]:
    return list(BACKEND_NAMES) if backend == "all" else [backend]


def cmd_migrate(args: argparse.Namespace, settings: Settings) -> int:
    backends = backends_from_settings(settings, _selected(args.backend))
    try:
        for backend in backends.values():
            if args.drop:
                drop_schema(backend)
            else:
                create_schema(backend)
    finally:
        for backend in backends.values():
            backend.dispose()
    return 0


def cmd_seed(args: argparse.Namespace, settings: Settings) -> int:
    plan = SeedPlan(total_users=args.total_users, batch_size=args.batch_size)
    backends = backends_from_settings(settings, _selected(args.backend))
    try:
        for backend in backends.values():
            rng = random.Random(args.random_seed)
            logger.info(
                "Seeding %s backend with %d users in %d batches",
                backend.name,
                plan.total_users,
                plan.batch_count,
            )
            seed_backend(backend, plan, rng=rng)
    finally:
        for backend in backends.values():
            backend.dispose()
    return 0


def cmd_bench(args: argparse.Namespace, settings: Settings) -> int:
    names = _selected(args.backend)
    plan = default_benchmark_plan(names)

    if args.dry_run:
        for case in plan:
            print(f"  - {case.label}")
        return 0

    backends = backends_from_settings(settings, names)
    try:
        report = BenchmarkRunner(backends, email=args.email).run(plan)
    finally:
        for backend in backends.values():
            backend.dispose()

    for result in report.results:
        print(f"{result.label}: {result.elapsed_ms:.2f} milliseconds")

    if args.output:
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(report.model_dump_json(indent=2), encoding="utf-8")
        logger.info("Benchmark report written to %s", output)
    return 0


COMMANDS = {
    "migrate": cmd_migrate,
    "seed": cmd_seed,
    "bench": cmd_bench,
}


def main(argv: Optional[List[str]] = None) -> int:
    settings = get_settings()
    args = parse_args(argv, settings)
    setup_logging(args.log_level)
    logger.info("%s v%s: %s", settings.APP_NAME, settings.APP_VERSION, args.command)

    try:
        return COMMANDS[args.command](args, settings)
    except (QueryBenchError, LookupError, ValueError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    except SQLAlchemyError as exc:
        logger.error("%s failed: %s", args.command, classify_database_error(exc, {"command": args.command}))
        return 1


if __name__ == "__main__":
    sys.exit(main())
