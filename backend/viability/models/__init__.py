from .ingestion_job import IngestionJob
from .project import Project
from .user import User

__all__ = ["IngestionJob", "Project", "User"]
