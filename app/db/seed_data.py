"""
Database Seed Data Module

- ensure_super_admin: runs at startup, creates the configured super admin
  when no SUPER_ADMIN account exists yet
- seed_demo_data: demo accounts (one per role) and the EXAM101 sample exam

Run with: python -m app.db.seed_data
Clear the demo accounts with: python -m app.db.seed_data clear
"""
import asyncio

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import AsyncSessionLocal, init_db
from app.core.logging_config import logger
from app.core.security import get_password_hash
from app.models.exam import Exam, Question
from app.models.user import User, UserRole


# ==================== Sample Data Constants ====================

DEMO_PASSWORD = "Demo@1234"

DEMO_USERS = [
    {"email": "admin@itechs.com", "first_name": "Super", "last_name": "Admin", "role": UserRole.SUPER_ADMIN},
    {"email": "john@teacher.com", "first_name": "John", "last_name": "Doe", "role": UserRole.TEACHER},
    {"email": "jane@student.com", "first_name": "Jane", "last_name": "Smith", "role": UserRole.STUDENT},
]

DEMO_EXAM = {
    "title": "Introduction to Computer Science",
    "description": "Basic concepts of computing",
    "exam_code": "EXAM101",
    "is_active": True,
    "time_limit": 60,
    "total_marks": 100,
    "questions": [
        {
            "question": "What is the binary representation of 5?",
            "options": ["101", "110", "111", "100"],
            "correct_answer": "101",
            "marks": 10,
        },
        {
            "question": "What does CPU stand for?",
            "options": [
                "Central Process Unit",
                "Central Processing Unit",
                "Computer Personal Unit",
                "Central Processor Unit",
            ],
            "correct_answer": "Central Processing Unit",
            "marks": 10,
        },
    ],
}


async def ensure_super_admin(db: AsyncSession) -> User:
    """Create the configured super admin unless one already exists"""
    result = await db.execute(select(User).where(User.role == UserRole.SUPER_ADMIN).limit(1))
    existing = result.scalar_one_or_none()
    if existing is not None:
        return existing

    email = settings.SUPER_ADMIN_EMAIL.lower()
    admin = User(
        username=settings.SUPER_ADMIN_USERNAME or email,
        email=email,
        password_hash=get_password_hash(settings.SUPER_ADMIN_PASSWORD),
        role=UserRole.SUPER_ADMIN,
        first_name="Super",
        last_name="Admin",
        is_verified=True,
    )
    db.add(admin)
    await db.commit()

    logger.info(f"[Seed] Created default super admin {admin.username}")
    return admin


async def _get_or_create_user(db: AsyncSession, data: dict, teacher_id=None) -> User:
    result = await db.execute(select(User).where(User.email == data["email"]))
    user = result.scalar_one_or_none()
    if user is not None:
        return user

    user = User(
        username=data["email"],
        email=data["email"],
        password_hash=get_password_hash(DEMO_PASSWORD),
        role=data["role"],
        first_name=data["first_name"],
        last_name=data["last_name"],
        teacher_id=teacher_id,
        is_verified=True,
    )
    db.add(user)
    await db.flush()
    return user


async def seed_users(db: AsyncSession) -> dict:
    """Demo accounts keyed by role; the student belongs to the teacher"""
    admin_data, teacher_data, student_data = DEMO_USERS

    admin = await _get_or_create_user(db, admin_data)
    teacher = await _get_or_create_user(db, teacher_data)
    student = await _get_or_create_user(db, student_data, teacher_id=teacher.id)

    return {UserRole.SUPER_ADMIN: admin, UserRole.TEACHER: teacher, UserRole.STUDENT: student}


async def seed_exam(db: AsyncSession, teacher: User) -> Exam:
    result = await db.execute(select(Exam).where(Exam.exam_code == DEMO_EXAM["exam_code"]))
    exam = result.scalar_one_or_none()
    if exam is not None:
        return exam

    exam = Exam(
        title=DEMO_EXAM["title"],
        description=DEMO_EXAM["description"],
        exam_code=DEMO_EXAM["exam_code"],
        is_active=DEMO_EXAM["is_active"],
        time_limit=DEMO_EXAM["time_limit"],
        total_marks=DEMO_EXAM["total_marks"],
        teacher_id=teacher.id,
    )
    exam.questions = [
        Question(position=index, type="multiple_choice", **question)
        for index, question in enumerate(DEMO_EXAM["questions"])
    ]
    db.add(exam)
    await db.flush()
    return exam


async def seed_demo_data(db: AsyncSession) -> dict:
    """Idempotent: existing demo rows are reused, never duplicated"""
    users = await seed_users(db)
    exam = await seed_exam(db, users[UserRole.TEACHER])
    await db.commit()
    return {"users": users, "exam": exam}


async def seed_all():
    """Seed all sample data"""
    print("=" * 50)
    print("Starting database seeding...")
    print("=" * 50)

    await init_db()

    async with AsyncSessionLocal() as db:
        try:
            await seed_demo_data(db)

            print("Database seeding completed successfully!")
            print(f"Password for all demo accounts: {DEMO_PASSWORD}")
            for data in DEMO_USERS:
                print(f"  {data['role'].value}: {data['email']}")
            print("=" * 50)

        except Exception as e:
            await db.rollback()
            print(f"Error seeding database: {e}")
            raise


async def clear_all():
    """Remove the demo exam and demo accounts"""
    print("Clearing demo data...")
    async with AsyncSessionLocal() as db:
        exam_ids = select(Exam.id).where(Exam.exam_code == DEMO_EXAM["exam_code"])
        await db.execute(delete(Question).where(Question.exam_id.in_(exam_ids)))
        await db.execute(delete(Exam).where(Exam.exam_code == DEMO_EXAM["exam_code"]))
        # Students reference their teacher, so delete them first
        for data in reversed(DEMO_USERS):
            await db.execute(delete(User).where(User.email == data["email"]))
        await db.commit()
        print("Demo data cleared!")


if __name__ == "__main__":
    import sys

    if len(sys.argv) > 1 and sys.argv[1] == "clear":
        asyncio.run(clear_all())
    else:
        asyncio.run(seed_all())
