import argparse
import asyncio
import logging

from sqlalchemy.future import select

from app import seeds as app_seeds
from app.core import security
from app.core.config import settings
from app.core.logging_config import configure_logging
from app.db.base import Base
from app.db.session import engine, session_scope
from app.models.user import User
from app.services import coupons as coupon_service

logger = logging.getLogger(__name__)


async def init_db() -> None:
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("Schema created")


async def seed_demo() -> None:
    async with session_scope() as session:
        await app_seeds.seed(session)
    print("Demo data seeded")


async def reconcile_coupons(limit: int) -> int:
    async with session_scope() as session:
        consumed = await coupon_service.reconcile_pending_coupons(session, limit=limit)
    logger.info("coupon_reconcile_finished", extra={"consumed": consumed})
    print(f"Coupons consumed: {consumed}")
    return consumed


async def issue_token(email: str) -> None:
    async with session_scope() as session:
        user = (await session.execute(select(User).where(User.email == email))).scalar_one_or_none()
    if user is None:
        raise SystemExit(f"User not found: {email}")
    print(security.create_access_token(user.id))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=f"{settings.app_name} operator utilities")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("init-db", help="Create all tables (local/dev; use alembic elsewhere)")
    subparsers.add_parser("seed-demo", help="Seed a demo catalog, promotion, coupon and user")

    reconcile = subparsers.add_parser(
        "reconcile-coupons", help="Mark coupons used for verified orders that missed the consumption step"
    )
    reconcile.add_argument("--limit", type=int, default=500, help="Maximum orders to process")

    token = subparsers.add_parser("issue-token", help="Print an access token for a user (local/dev)")
    token.add_argument("--email", required=True, help="User email")
    return parser


def _run_cli_command(args: argparse.Namespace) -> bool:
    if args.command == "init-db":
        asyncio.run(init_db())
        return True

    if args.command == "seed-demo":
        asyncio.run(seed_demo())
        return True

    if args.command == "reconcile-coupons":
        asyncio.run(reconcile_coupons(args.limit))
        return True

    if args.command == "issue-token":
        asyncio.run(issue_token(args.email))
        return True

    return False


def main():
    configure_logging(settings.log_json)
    parser = _build_parser()
    args = parser.parse_args()
    if not _run_cli_command(args):
        parser.print_help()


if __name__ == "__main__":
    main()
