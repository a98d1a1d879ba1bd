"""
Command-line interface implementation.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from ..analysis import summarize_executions
from ..config import ConfigurationManager
from ..dca_system import DCASystem
from ..exceptions import DCAEngineError
from ..plan_engine.models import ExecutionLog, Interval, Plan, PlanStatus
from ..plan_engine.pagination import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from ..price_cache.models import PriceSnapshot


def setup_logging(level: str = "INFO") -> None:
    """Set up logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def parse_interval(value: str) -> Interval:
    """Parse an interval name for argparse."""
    try:
        return Interval.parse(value)
    except ValueError:
        choices = ", ".join(i.value.lower() for i in Interval)
        raise argparse.ArgumentTypeError(f"Invalid interval: {value}. Choose from {choices}")


def parse_status(value: str) -> PlanStatus:
    """Parse a plan status name for argparse."""
    try:
        return PlanStatus(value.strip().upper())
    except ValueError:
        choices = ", ".join(s.value.lower() for s in PlanStatus)
        raise argparse.ArgumentTypeError(f"Invalid status: {value}. Choose from {choices}")


def format_plan(plan: Plan) -> str:
    """Format a single plan for display."""
    lines = []
    lines.append(f"\n📋 PLAN {plan.id}")
    lines.append("=" * 60)
    lines.append(f"Owner: {plan.owner}")
    lines.append(f"Status: {plan.status.value}")
    lines.append(f"Interval: {plan.interval.value.lower()}")
    lines.append(f"Amount Per Execution: {plan.amount_per_execution:f}")
    lines.append(f"Total Deposited: {plan.total_deposited:f}")
    lines.append(f"Executions: {plan.executions_completed}/{plan.total_executions}")
    lines.append(f"Next Execution: {plan.next_execution_at.isoformat()}")
    lines.append(f"Created: {plan.created_at.isoformat()}")
    return "\n".join(lines)


def format_plan_list(plans: List[Plan], owner: str) -> str:
    """Format an owner's plans as a table."""
    if not plans:
        return f"\n📋 PLANS - {owner}\n" + "=" * 80 + "\nNo plans found."

    lines = []
    lines.append(f"\n📋 PLANS - {owner}")
    lines.append("=" * 80)
    lines.append(f"{'Plan ID':<38} {'Status':<10} {'Interval':<9} {'Amount':<14} {'Progress':<8}")
    lines.append("-" * 80)

    for plan in plans:
        progress = f"{plan.executions_completed}/{plan.total_executions}"
        lines.append(f"{plan.id:<38} {plan.status.value:<10} {plan.interval.value.lower():<9} "
                     f"{format(plan.amount_per_execution, 'f'):<14} {progress:<8}")

    active = sum(1 for plan in plans if plan.status == PlanStatus.ACTIVE)
    lines.append("")
    lines.append(f"Summary: {active} of {len(plans)} plans active")
    return "\n".join(lines)


def format_execution_history(plan: Plan, logs: List[ExecutionLog], symbol: str) -> str:
    """Format a plan's execution ledger with summary totals."""
    lines = []
    lines.append(f"\n💰 EXECUTION HISTORY - {plan.id}")
    lines.append("=" * 60)

    if not logs:
        lines.append("No executions recorded.")
        return "\n".join(lines)

    summary = summarize_executions(logs)
    lines.append(f"Executions: {summary['executions']}/{plan.total_executions}")
    lines.append(f"Total Spent: {summary['total_in']:f}")
    lines.append(f"Total Acquired: {summary['total_out']:f} {symbol}")
    lines.append(f"Average Price: ${summary['average_price']:,.2f}")
    lines.append(f"Price Range: ${summary['min_price']:,.2f} - ${summary['max_price']:,.2f}")
    lines.append("")

    for log in logs:
        lines.append(f"#{log.execution_number} {log.executed_at.isoformat()}: "
                     f"{log.amount_in:f} -> {log.amount_out:f} {symbol} at ${log.price_at_execution:,.2f} "
                     f"({log.price_source})")

    return "\n".join(lines)


def format_price(snapshot: PriceSnapshot) -> str:
    """Format a price snapshot for display."""
    freshness = "⚠️  STALE" if snapshot.is_stale else "✅ LIVE"
    return (f"\n💲 {snapshot.symbol} PRICE\n" + "=" * 40 +
            f"\nPrice: ${snapshot.price:,.2f}"
            f"\nSource: {snapshot.source} ({freshness})"
            f"\nTimestamp: {snapshot.timestamp.isoformat()}")


def format_cache_info(info: Dict, stats: Dict[str, int]) -> str:
    """Format price cache state and request counters."""
    lines = []
    lines.append(f"\n🗄️  {info['symbol']} PRICE CACHE")
    lines.append("=" * 40)
    if info['cached']:
        lines.append(f"Cached Price: ${info['price']:,.2f} ({info['source']})")
        lines.append(f"Age: {info['age_seconds']:.0f}s ({'fresh' if info['fresh'] else 'expired'})")
    else:
        lines.append("Cache is empty.")
    lines.append(f"API Calls: {stats['api_calls_made']}")
    lines.append(f"Cache Hits: {stats['cache_hits']}")
    lines.append(f"Stale Served: {stats['stale_served']}")
    return "\n".join(lines)


def persist(system: DCASystem) -> None:
    """Save the plan store, exiting with status 1 if the write failed."""
    if not system.save():
        logging.getLogger(__name__).error("Failed to save plan state; changes were not persisted")
        sys.exit(1)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        description="Stark DCA - Recurring purchase plan bookkeeping engine"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file"
    )

    parser.add_argument(
        "--state-dir",
        type=str,
        help="Directory holding the persisted plan store"
    )

    # Plan operations
    parser.add_argument(
        "--create",
        action="store_true",
        help="Create a plan (requires --owner, --amount, --executions and --interval)"
    )

    parser.add_argument(
        "--cancel",
        type=str,
        metavar="PLAN_ID",
        help="Cancel a plan (requires --owner)"
    )

    parser.add_argument(
        "--execute",
        type=str,
        metavar="PLAN_ID",
        help="Execute a due plan once"
    )

    parser.add_argument(
        "--run-due",
        action="store_true",
        help="Execute every plan that is currently due"
    )

    parser.add_argument(
        "--list",
        action="store_true",
        help="List plans for --owner"
    )

    parser.add_argument(
        "--show",
        type=str,
        metavar="PLAN_ID",
        help="Show a single plan"
    )

    parser.add_argument(
        "--history",
        type=str,
        metavar="PLAN_ID",
        help="Show the execution history of a plan"
    )

    # Plan parameters
    parser.add_argument(
        "--owner",
        type=str,
        help="Wallet address of the plan owner"
    )

    parser.add_argument(
        "--amount",
        type=str,
        help="Amount spent per execution, in token base units (e.g., 100000000)"
    )

    parser.add_argument(
        "--executions",
        type=int,
        help="Total number of executions for a new plan"
    )

    parser.add_argument(
        "--interval",
        type=parse_interval,
        help="Execution cadence: daily, weekly, biweekly or monthly"
    )

    parser.add_argument(
        "--status",
        type=parse_status,
        help="Filter --list by plan status"
    )

    parser.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_PAGE_LIMIT,
        help=f"Page size for --list (1-{MAX_PAGE_LIMIT}, default: {DEFAULT_PAGE_LIMIT})"
    )

    parser.add_argument(
        "--cursor",
        type=str,
        help="Continue --list from the cursor printed with the previous page"
    )

    # Price options
    parser.add_argument(
        "--price",
        action="store_true",
        help="Fetch and show the current price"
    )

    parser.add_argument(
        "--cache-info",
        action="store_true",
        help="Show price cache state and API call counters (combine with --price)"
    )

    parser.add_argument(
        "--validate-config",
        action="store_true",
        help="Validate configuration file and exit"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set logging level"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    try:
        if args.config:
            config_path = Path(args.config)
            if not config_path.exists():
                logger.error(f"Configuration file not found: {args.config}")
                sys.exit(1)

        config_manager = ConfigurationManager()
        config = config_manager.load_config(args.config)

        logger.info(f"Loaded configuration for symbol: {config.symbol} (price source: {config.price_source})")

        if args.validate_config:
            logger.info("Configuration validation successful")
            return

        system = DCASystem(config, state_dir=args.state_dir)
        engine = system.engine

        if args.create:
            if not args.owner or args.amount is None or args.executions is None or args.interval is None:
                logger.error("--create requires --owner, --amount, --executions and --interval")
                sys.exit(1)

            plan = engine.create_plan(args.owner, args.amount, args.executions, args.interval)
            persist(system)
            print(format_plan(plan))

        elif args.cancel:
            if not args.owner:
                logger.error("--cancel requires --owner")
                sys.exit(1)

            plan = engine.cancel_plan(args.cancel, args.owner)
            persist(system)
            print(format_plan(plan))

        elif args.execute:
            log = engine.execute_plan(args.execute)
            persist(system)
            plan = engine.get_plan_by_id(args.execute)
            print(format_execution_history(plan, [log], config.symbol))

        elif args.run_due:
            logs = engine.process_due_plans()
            if logs:
                persist(system)
            print(f"\n🚀 Executed {len(logs)} due plan(s)")
            for log in logs:
                print(f"  {log.plan_id}: #{log.execution_number} bought {log.amount_out:f} {config.symbol} "
                      f"at ${log.price_at_execution:,.2f}")

        elif args.list:
            if not args.owner:
                logger.error("--list requires --owner")
                sys.exit(1)

            page = engine.list_plans(args.owner, status=args.status, cursor=args.cursor, limit=args.limit)
            print(format_plan_list(page.items, args.owner))
            if page.has_more:
                print(f"\nMore plans available: --cursor {page.next_cursor}")

        elif args.show:
            plan = engine.get_plan_by_id(args.show)
            if plan is None:
                logger.error(f"Plan {args.show} not found")
                sys.exit(1)
            print(format_plan(plan))

        elif args.history:
            plan = engine.get_plan_by_id(args.history)
            if plan is None:
                logger.error(f"Plan {args.history} not found")
                sys.exit(1)
            print(format_execution_history(plan, engine.get_execution_logs(args.history), config.symbol))

        elif args.price or args.cache_info:
            if args.price:
                snapshot = system.price_cache.get_price()
                print(format_price(snapshot))
            if args.cache_info:
                print(format_cache_info(system.price_cache.get_cache_info(),
                                        system.price_cache.get_api_stats()))

        else:
            parser.print_help()

    except DCAEngineError as e:
        logger.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
