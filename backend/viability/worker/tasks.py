import asyncio
import logging

from ..constants import INGESTION_TASK_NAME
from .celery_app import celery_app
from .ingestion_worker import run_ingestion_job

logger = logging.getLogger(__name__)


@celery_app.task(name=INGESTION_TASK_NAME, ignore_result=True, acks_late=False)
def run_job(event: dict) -> int:
    """Celery entry point: run one ingestion job to completion."""
    logger.info("Received ingestion job %s", event.get("jobId") or event.get("job_id"))
    return asyncio.run(run_ingestion_job(event))
