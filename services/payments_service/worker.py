"""ARQ worker for manual payment reconciliation."""

from arq import cron
from libs.common.arq_config import get_redis_settings
from libs.common.logging import configure_logging, get_logger

logger = get_logger(__name__)


async def startup(ctx: dict):
    configure_logging()


async def task_reconcile_approved_payments(ctx: dict):
    from services.payments_service.tasks import reconcile_approved_payments

    logger.info("Running: reconcile_approved_payments")
    await reconcile_approved_payments()


class WorkerSettings:
    redis_settings = get_redis_settings()
    on_startup = startup

    functions = [task_reconcile_approved_payments]

    cron_jobs = [
        cron(
            task_reconcile_approved_payments,
            minute={0, 5, 10, 15, 20, 25, 30, 35, 40, 45, 50, 55},
            run_at_startup=True,
        ),
    ]
