"""Hand ingestion payloads to the out-of-process worker via Celery."""

from __future__ import annotations

import logging
from typing import Any, Dict

from ..constants import INGESTION_TASK_NAME
from ..worker.celery_app import celery_app

logger = logging.getLogger(__name__)


def dispatch_ingestion(payload: Dict[str, Any]) -> str:
    """Submit *payload* to the ingestion queue and return the Celery task id.

    Fire-and-forget: only submission is awaited. Broker errors propagate so
    the orchestrator can fail the job.
    """
    result = celery_app.send_task(INGESTION_TASK_NAME, kwargs={"event": payload})
    print(f"🚚 [JOBS] Dispatched job {payload.get('jobId')} as task {result.id}")
    return result.id
