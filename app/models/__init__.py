# Re-export all models for convenient imports
from app.models.user import User, UserRole
from app.models.archived_user import ArchivedUser
from app.models.exam import Exam, Question, Score, exam_students

__all__ = [
    # User
    "User",
    "UserRole",
    "ArchivedUser",
    # Exam
    "Exam",
    "Question",
    "Score",
    "exam_students",
]
