from jobtracker.models.user import User
from jobtracker.models.job import Job
from jobtracker.models.resume import Resume
from jobtracker.models.cover_letter import CoverLetter

__all__ = ["User", "Job", "Resume", "CoverLetter"]
