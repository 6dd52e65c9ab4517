"""Celery application shared by the API (dispatch) and the ingestion worker.

Run the worker with:

    celery -A viability.worker.celery_app worker --loglevel=info
"""

import logging
import os

from celery import Celery
from celery.signals import setup_logging
from dotenv import load_dotenv

load_dotenv()

CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")

celery_app = Celery(
    "viability",
    broker=CELERY_BROKER_URL,
    include=["viability.worker.tasks"],
)

# At-most-once delivery: a crashed job is left for the watchdog, never replayed.
celery_app.conf.update(
    task_ignore_result=True,
    task_acks_late=False,
    task_serializer="json",
    accept_content=["json"],
    worker_prefetch_multiplier=1,
)


@setup_logging.connect
def _configure_worker_logging(**kwargs):
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
