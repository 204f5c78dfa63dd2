"""
Exams: authoring, enrollment by code and result statistics.
"""
from typing import Dict, List, Optional

from sqlalchemy import select, func, or_, delete, insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, ExamNotFoundError, ValidationError
from app.core.logging_config import logger
from app.core.permissions import Action, authorize, is_allowed
from app.models.exam import Exam, Question, Score, exam_students
from app.models.user import User, UserRole
from app.schemas.exam import (
    ExamCounts,
    ExamCreate,
    ExamDetail,
    ExamListItem,
    ExamPreview,
    ExamResponse,
    ExamStatistics,
    ExamUpdate,
    QuestionResponse,
    QuestionWithAnswer,
    ScoreResponse,
)
from app.schemas.user import UserSummary
from app.utils.helpers import generate_exam_code
from app.utils.pagination import paginate

MAX_CODE_ATTEMPTS = 10
INACTIVE_CODE_MESSAGE = "Invalid exam code or exam is not active"


class ExamService:
    """Exam operations scoped to one database session"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== Helpers ====================

    async def _get_exam(self, exam_id: str, *options) -> Exam:
        result = await self.db.execute(
            select(Exam)
            .where(Exam.id == str(exam_id))
            .options(*options)
            .execution_options(populate_existing=True)
        )
        exam = result.scalar_one_or_none()
        if exam is None:
            raise ExamNotFoundError(str(exam_id))
        return exam

    async def _is_enrolled(self, exam_id: str, student_id: str) -> bool:
        result = await self.db.execute(
            select(exam_students.c.exam_id).where(
                exam_students.c.exam_id == exam_id,
                exam_students.c.student_id == student_id,
            )
        )
        return result.first() is not None

    async def _count_by_exam(self, column, exam_ids: List[str]) -> Dict[str, int]:
        if not exam_ids:
            return {}
        result = await self.db.execute(
            select(column, func.count()).where(column.in_(exam_ids)).group_by(column)
        )
        return {row[0]: row[1] for row in result.all()}

    async def _counts(self, exam_ids: List[str]) -> Dict[str, ExamCounts]:
        students = await self._count_by_exam(exam_students.c.exam_id, exam_ids)
        scores = await self._count_by_exam(Score.exam_id, exam_ids)
        questions = await self._count_by_exam(Question.exam_id, exam_ids)
        return {
            exam_id: ExamCounts(
                students=students.get(exam_id, 0),
                scores=scores.get(exam_id, 0),
                questions=questions.get(exam_id, 0),
            )
            for exam_id in exam_ids
        }

    async def _generate_unique_code(self) -> str:
        """Fast-path uniqueness check; the unique index on exam_code is authoritative"""
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_exam_code()
            existing = await self.db.scalar(select(Exam.id).where(Exam.exam_code == code))
            if existing is None:
                return code
        raise ConflictError("Could not generate a unique exam code, please retry")

    # ==================== Queries ====================

    async def list_exams(
        self,
        actor: User,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> dict:
        """Exams visible to `actor`, newest first, with per-exam counts"""
        query = select(Exam).options(selectinload(Exam.teacher)).execution_options(populate_existing=True)

        if actor.role == UserRole.TEACHER:
            query = query.where(Exam.teacher_id == actor.id)
        elif actor.role == UserRole.STUDENT:
            enrolled = select(exam_students.c.exam_id).where(exam_students.c.student_id == actor.id)
            query = query.where(Exam.id.in_(enrolled))

        if is_active is not None:
            query = query.where(Exam.is_active.is_(is_active))

        if search:
            term = f"%{search.strip()}%"
            query = query.where(
                or_(
                    Exam.title.ilike(term),
                    Exam.description.ilike(term),
                    Exam.exam_code.ilike(term),
                )
            )

        query = query.order_by(Exam.created_at.desc())
        page_data = await paginate(self.db, query, page, limit)

        exams = page_data["items"]
        counts = await self._counts([exam.id for exam in exams])
        items = [
            ExamListItem(
                **ExamResponse.model_validate(exam).model_dump(),
                teacher=UserSummary.model_validate(exam.teacher) if exam.teacher else None,
                counts=counts[exam.id],
            )
            for exam in exams
        ]

        return {"items": items, "pagination": page_data["pagination"]}

    async def get_exam(self, actor: User, exam_id: str) -> ExamDetail:
        exam = await self._get_exam(
            exam_id,
            selectinload(Exam.teacher),
            selectinload(Exam.students),
            selectinload(Exam.questions),
            selectinload(Exam.scores).selectinload(Score.student),
        )

        if actor.role == UserRole.STUDENT:
            exam.is_enrolled = any(student.id == actor.id for student in exam.students)
            authorize(Action.VIEW_EXAM, actor, exam, message="You are not enrolled in this exam")
        else:
            authorize(Action.VIEW_EXAM, actor, exam, message="You can only access your own exams")

        show_answers = is_allowed(Action.MANAGE_EXAM, actor, exam)
        question_schema = QuestionWithAnswer if show_answers else QuestionResponse

        return ExamDetail(
            **ExamResponse.model_validate(exam).model_dump(),
            teacher=UserSummary.model_validate(exam.teacher) if exam.teacher else None,
            students=[UserSummary.model_validate(s) for s in exam.students],
            questions=[question_schema.model_validate(q) for q in exam.questions],
            scores=[ScoreResponse.model_validate(s) for s in exam.scores],
        )

    async def get_preview_by_code(self, exam_code: str) -> ExamPreview:
        """Public lookup used before joining; only active exams resolve"""
        code = exam_code.strip().upper()
        result = await self.db.execute(
            select(Exam)
            .where(Exam.exam_code == code, Exam.is_active.is_(True))
            .options(selectinload(Exam.teacher))
            .execution_options(populate_existing=True)
        )
        exam = result.scalar_one_or_none()
        if exam is None:
            raise ExamNotFoundError(code, message=INACTIVE_CODE_MESSAGE)

        counts = (await self._counts([exam.id]))[exam.id]
        return ExamPreview(
            id=exam.id,
            title=exam.title,
            description=exam.description,
            exam_code=exam.exam_code,
            time_limit=exam.time_limit,
            total_marks=exam.total_marks,
            teacher=UserSummary.model_validate(exam.teacher) if exam.teacher else None,
            question_count=counts.questions,
            student_count=counts.students,
        )

    # ==================== Authoring ====================

    async def create_exam(self, actor: User, data: ExamCreate) -> Exam:
        authorize(Action.CREATE_EXAM, actor, message="Only teachers can create exams")

        exam = Exam(
            title=data.title,
            description=data.description,
            exam_code=await self._generate_unique_code(),
            is_active=data.is_active,
            time_limit=data.time_limit,
            total_marks=data.total_marks,
            teacher_id=actor.id,
        )
        exam.questions = [
            Question(
                question=q.question,
                options=q.options,
                correct_answer=q.correct_answer,
                marks=q.marks,
                type=q.type,
                position=index,
            )
            for index, q in enumerate(data.questions)
        ]
        self.db.add(exam)
        await self.db.commit()

        logger.info(f"[Exams] {actor.username} created exam {exam.exam_code}")
        return exam

    async def update_exam(self, actor: User, exam_id: str, data: ExamUpdate) -> Exam:
        exam = await self._get_exam(exam_id)
        authorize(Action.MANAGE_EXAM, actor, exam, message="You can only update your own exams")

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in ("title", "total_marks", "is_active"):
                continue
            setattr(exam, field, value)

        await self.db.commit()
        return exam

    async def delete_exam(self, actor: User, exam_id: str) -> None:
        exam = await self._get_exam(exam_id)
        authorize(Action.MANAGE_EXAM, actor, exam, message="You can only delete your own exams")

        score_count = await self.db.scalar(
            select(func.count()).select_from(Score).where(Score.exam_id == exam.id)
        )
        if score_count:
            raise ValidationError("Cannot delete exam with existing student scores")

        try:
            await self.db.execute(delete(Question).where(Question.exam_id == exam.id))
            await self.db.execute(delete(exam_students).where(exam_students.c.exam_id == exam.id))
            await self.db.execute(delete(Exam).where(Exam.id == exam.id))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"[Exams] {actor.username} deleted exam {exam.exam_code}")

    # ==================== Enrollment ====================

    async def join_exam(self, actor: User, exam_code: str) -> Exam:
        authorize(Action.JOIN_EXAM, actor, message="Only students can join exams")

        code = exam_code.strip().upper()
        result = await self.db.execute(
            select(Exam).where(Exam.exam_code == code, Exam.is_active.is_(True))
        )
        exam = result.scalar_one_or_none()
        if exam is None:
            raise ExamNotFoundError(code, message=INACTIVE_CODE_MESSAGE)

        # Fast path; the composite primary key rejects concurrent duplicates
        if await self._is_enrolled(exam.id, actor.id):
            raise ConflictError("You are already enrolled in this exam")

        # rollback expires loaded instances, so read attributes up front
        username = actor.username
        try:
            await self.db.execute(insert(exam_students).values(exam_id=exam.id, student_id=actor.id))
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.warning(f"[Exams] Concurrent duplicate join of {code} by {username}")
            raise ConflictError("You are already enrolled in this exam")

        logger.info(f"[Exams] {actor.username} joined exam {exam.exam_code}")
        return exam

    # ==================== Statistics ====================

    async def get_statistics(self, actor: User, exam_id: str) -> dict:
        exam = await self._get_exam(exam_id)
        authorize(
            Action.MANAGE_EXAM,
            actor,
            exam,
            message="You can only view statistics for your own exams",
        )

        result = await self.db.execute(
            select(Score)
            .where(Score.exam_id == exam.id)
            .options(selectinload(Score.student))
            .order_by(Score.percentage.desc())
        )
        scores = list(result.scalars().all())
        counts = (await self._counts([exam.id]))[exam.id]

        percentages = [score.percentage for score in scores]
        total_students = counts.students

        statistics = ExamStatistics(
            total_students=total_students,
            completed_attempts=len(scores),
            completion_rate=round(len(scores) / total_students * 100, 2) if total_students else 0,
            average_score=round(sum(percentages) / len(percentages), 2) if percentages else 0,
            highest_score=max(percentages) if percentages else 0,
            lowest_score=min(percentages) if percentages else 0,
            question_count=counts.questions,
        )

        return {
            "exam": {
                "id": exam.id,
                "title": exam.title,
                "examCode": exam.exam_code,
                "totalMarks": exam.total_marks,
            },
            "statistics": statistics,
            "scores": [ScoreResponse.model_validate(score) for score in scores],
        }
