import argparse
import logging
import sys
from importlib.metadata import version

from .backends.gke import GKEBackend
from .backends.workload import ManifestDeployer
from .config import load_config
from .core import STRATEGIES
from .errors import PoolshiftError, StepFailed, UsageError
from .logger import console, logger
from .modes.base import Migration
from .modes.blue_green import BlueGreenMigration
from .modes.expand_contract import ExpandContractMigration
from .orchestrator import run_steps
from .preflight import run_preflight

MIGRATIONS: dict[str, type[Migration]] = {
    BlueGreenMigration.strategy: BlueGreenMigration,
    ExpandContractMigration.strategy: ExpandContractMigration,
}

ALL_ACTIONS = sorted({"auto"} | {a for m in MIGRATIONS.values() for a in m.ACTIONS})


class _ArgumentParser(argparse.ArgumentParser):
    # Usage problems exit 1 like every other operator error, not argparse's 2
    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="poolshift",
        description="poolshift: GKE control plane and node pool upgrade runbooks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Actions:
  both strategies   auto, create, install-app, upgrade-control,
                    wait-for-upgrade, delete
  blue-green        new-node-pool, cordon-default-pool,
                    drain-default-pool, delete-default-pool
  expand-contract   resize <N>, upgrade-nodes

Examples:
  # Create, upgrade, migrate and validate with no questions asked
  poolshift auto

  # Expand the default pool to 3 nodes per zone
  poolshift --strategy expand-contract resize 3

  # Drain the old pool without the confirmation prompt
  poolshift --quiet drain-default-pool
""",
    )
    try:
        ver = version("poolshift")
    except Exception:
        ver = "unknown"
    parser.add_argument("--version", action="version", version=f"poolshift v{ver}")

    parser.add_argument("action", choices=ALL_ACTIONS, metavar="action", help="What to run")
    parser.add_argument(
        "size",
        nargs="?",
        metavar="N",
        help="Nodes per zone for the default pool (resize only)",
    )
    parser.add_argument(
        "--strategy",
        choices=STRATEGIES,
        help="Upgrade runbook (default: UPGRADE_STRATEGY from the properties file, "
        "else blue-green)",
    )
    parser.add_argument(
        "--env-file",
        help="Properties file with GCLOUD_PROJECT, K8S_VER, ... (default: ./.env)",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Disable confirmation prompts (implied by auto)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    try:
        args = build_parser().parse_args(argv)
        if args.verbose:
            logger.setLevel(logging.DEBUG)

        config = load_config(
            env_file=args.env_file,
            strategy=args.strategy,
            disable_prompts=args.quiet or args.action == "auto",
        )
        migration_cls = MIGRATIONS[config.strategy]
        size = migration_cls.check_action(args.action, args.size)

        console.print(
            f"[bold green]poolshift[/bold green] {config.strategy} runbook for "
            f"cluster [cyan]{config.cluster_name}[/cyan] "
            f"({config.project}/{config.region})"
        )
        run_preflight(config)

        migration = migration_cls(config, GKEBackend(config), ManifestDeployer(config))
        result = run_steps(migration.steps_for(args.action, size))
        result.raise_for_failure()
    except StepFailed as e:
        # run_steps already reported which step failed and why
        return e.exit_code
    except PoolshiftError as e:
        logger.error(f"ERROR: {e}")
        return e.exit_code
    except Exception as e:
        logger.error(f"ERROR: {e}")
        logger.debug("Unexpected failure", exc_info=True)
        return 1

    logger.info(f"[green]✓[/green] {args.action} completed")
    return 0


def cli() -> None:
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        console.print("\n[bold red]Operation cancelled by user.[/bold red]")
        sys.exit(130)


if __name__ == "__main__":
    cli()
