# API endpoints
from . import auth, users, exams

__all__ = ["auth", "users", "exams"]
