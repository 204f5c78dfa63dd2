from sqlalchemy import (
    Column, String, Boolean, DateTime, Integer, Float, Text, JSON,
    ForeignKey, Table, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.core.types import GUID, generate_uuid, utc_now


# Student <-> exam enrollment; the composite primary key rejects duplicates
exam_students = Table(
    "exam_students",
    Base.metadata,
    Column("exam_id", GUID, ForeignKey("exams.id", ondelete="CASCADE"), primary_key=True),
    Column("student_id", GUID, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("enrolled_at", DateTime, default=utc_now, nullable=False),
)


class Exam(Base):
    """Exam authored by a teacher, joined by students through its code"""
    __tablename__ = "exams"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    exam_code = Column(String(10), unique=True, index=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    time_limit = Column(Integer, nullable=True)  # minutes
    total_marks = Column(Integer, default=0, nullable=False)

    teacher_id = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships (load explicitly with selectinload in async code)
    teacher = relationship("User", foreign_keys=[teacher_id])
    students = relationship("User", secondary=exam_students)
    questions = relationship(
        "Question",
        back_populates="exam",
        cascade="all, delete-orphan",
        order_by="Question.position",
    )
    scores = relationship("Score", back_populates="exam", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Exam {self.exam_code}>"


class Question(Base):
    """Exam question"""
    __tablename__ = "questions"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    exam_id = Column(GUID, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    question = Column(Text, nullable=False)
    options = Column(JSON, nullable=True)
    correct_answer = Column(Text, nullable=False)
    marks = Column(Integer, default=1, nullable=False)
    type = Column(String(30), default="multiple_choice", nullable=False)
    position = Column(Integer, default=0, nullable=False)

    exam = relationship("Exam", back_populates="questions")


class Score(Base):
    """A student's result for one exam"""
    __tablename__ = "scores"
    __table_args__ = (
        UniqueConstraint("exam_id", "student_id", name="uq_scores_exam_student"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    exam_id = Column(GUID, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)
    score = Column(Float, default=0, nullable=False)
    percentage = Column(Float, default=0, nullable=False)
    completed_at = Column(DateTime, default=utc_now, nullable=False)

    exam = relationship("Exam", back_populates="scores")
    student = relationship("User")
