import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ..constants import JOB_PENDING
from ..database import Base
from .project import GUID


class IngestionJob(Base):
    """Durable record of one asynchronous ingestion run.

    Mutated only through the conditional transitions in
    ``services/ingestion_jobs.py`` so the status never moves backwards.
    """

    __tablename__ = "discovery_jobs"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    project_id = Column(
        GUID(),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = Column(String(32), nullable=False, default=JOB_PENDING)  # pending | processing | completed | failed
    url_count = Column(Integer, nullable=False)
    chunks_count = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)

    # Token of the worker that owns this job; NULL until a worker claims it.
    claimed_by = Column(String(64), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    project = relationship("Project", back_populates="discovery_jobs")
