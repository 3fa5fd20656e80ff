import sys
import signal
import logging
import argparse

from core.app_context import AppContext
from core.cancellation import CancellationToken
from core.config_loader import load_config
from database.database import build_engine, build_session_factory, init_db
from pipeline.runner import run_search_pipeline

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Cancelled on SIGINT/SIGTERM so an in-flight run stops at its next check
shutdown_token = CancellationToken()


def signal_handler(sig, frame):
    logger.info("Shutdown signal received")
    shutdown_token.cancel()


signal.signal(signal.SIGINT, signal_handler)
signal.signal(signal.SIGTERM, signal_handler)


def _build_context(config_path: str) -> AppContext:
    config = load_config(config_path)
    engine = build_engine(config.database.url)
    init_db(engine)
    return AppContext.build(config, session_factory=build_session_factory(engine))


def cmd_init_db(args) -> int:
    config = load_config(args.config)
    init_db(build_engine(config.database.url))
    return 0


def cmd_run(args) -> int:
    """Run one pending search in the foreground."""
    ctx = _build_context(args.config)
    token = CancellationToken(
        stop_event=shutdown_token.stop_event,
        timeout_seconds=ctx.config.pipeline.run_timeout_seconds
    )
    result = run_search_pipeline(
        ctx,
        args.search_id,
        token=token,
        status_callback=lambda stage: logger.info(f"Stage: {stage}")
    )
    logger.info(
        f"Search {result.search_id}: {result.status} - {result.candidates_count} candidates, "
        f"{result.scored_count} scored, {result.failed_enrichments} failed enrichments "
        f"in {result.execution_time:.2f}s"
    )
    if result.error:
        logger.error(f"Error: {result.error}")
    return 0 if result.success else 1


def cmd_grant_credits(args) -> int:
    ctx = _build_context(args.config)
    result = ctx.ledger.add_credits(
        organization_id=args.organization_id,
        amount=args.amount,
        transaction_type=args.transaction_type,
        credit_type=args.credit_type,
        description=args.description
    )
    if not result.success:
        logger.error(f"Grant failed: {result.error}")
        return 1
    logger.info(f"Organization {args.organization_id} balance: {result.balance}")
    return 0


def cmd_serve(args) -> int:
    from web.backend.app import main as serve
    serve()
    return 0


def main():
    parser = argparse.ArgumentParser(description="TalentScout Main Driver")
    parser.add_argument('--config', type=str, default='config.yaml', help='Path to config.yaml')
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('init-db', help='Create database tables').set_defaults(func=cmd_init_db)
    subparsers.add_parser('serve', help='Run the API server').set_defaults(func=cmd_serve)

    run_parser = subparsers.add_parser('run', help='Run a pending search in the foreground')
    run_parser.add_argument('search_id', type=str)
    run_parser.set_defaults(func=cmd_run)

    grant_parser = subparsers.add_parser('grant-credits', help='Add credits to an organization')
    grant_parser.add_argument('organization_id', type=str)
    grant_parser.add_argument('amount', type=int)
    grant_parser.add_argument('--transaction-type', choices=['subscription_grant', 'manual_grant', 'purchase'],
                              default='manual_grant')
    grant_parser.add_argument('--credit-type', default='general')
    grant_parser.add_argument('--description', default=None)
    grant_parser.set_defaults(func=cmd_grant_credits)

    args = parser.parse_args()
    logger.info(f"Main driver starting: {args.command}")
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
