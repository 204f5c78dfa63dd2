from pydantic import Field, SerializeAsAny, field_validator
from typing import Optional, List, Any
from datetime import datetime

from app.schemas.common import CamelModel
from app.schemas.user import UserSummary


class QuestionCreate(CamelModel):
    question: str = Field(..., min_length=1)
    options: Optional[List[str]] = None
    correct_answer: str = Field(..., min_length=1)
    marks: int = Field(1, ge=0)
    type: str = Field("multiple_choice", max_length=30)


class QuestionResponse(CamelModel):
    id: str
    question: str
    options: Optional[List[Any]] = None
    type: str
    marks: int


class QuestionWithAnswer(QuestionResponse):
    correct_answer: str


class ExamCreate(CamelModel):
    title: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    time_limit: Optional[int] = Field(None, ge=1, le=480)
    total_marks: int = Field(0, ge=0)
    is_active: bool = True
    questions: List[QuestionCreate] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Exam title must be between 3 and 100 characters")
        return v


class ExamUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    time_limit: Optional[int] = Field(None, ge=1, le=480)
    total_marks: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class JoinExamRequest(CamelModel):
    exam_code: str = Field(..., min_length=1, max_length=20)


class ExamCounts(CamelModel):
    students: int = 0
    scores: int = 0
    questions: int = 0


class ExamResponse(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    exam_code: str
    is_active: bool
    time_limit: Optional[int] = None
    total_marks: int
    teacher_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class ExamListItem(ExamResponse):
    teacher: Optional[UserSummary] = None
    counts: ExamCounts


class ScoreResponse(CamelModel):
    id: str
    student_id: str
    score: float
    percentage: float
    completed_at: datetime
    student: Optional[UserSummary] = None


class ExamDetail(ExamResponse):
    teacher: Optional[UserSummary] = None
    students: List[UserSummary] = Field(default_factory=list)
    questions: List[SerializeAsAny[QuestionResponse]] = Field(default_factory=list)
    scores: List[ScoreResponse] = Field(default_factory=list)


class ExamPreview(CamelModel):
    """Public view of an active exam looked up by its code"""
    id: str
    title: str
    description: Optional[str] = None
    exam_code: str
    time_limit: Optional[int] = None
    total_marks: int
    teacher: Optional[UserSummary] = None
    question_count: int
    student_count: int


class ExamStatistics(CamelModel):
    total_students: int
    completed_attempts: int
    completion_rate: float
    average_score: float
    highest_score: float
    lowest_score: float
    question_count: int
