"""
iTECHS Learning Platform - Test Configuration and Fixtures
"""
import os
from itertools import count
from typing import AsyncGenerator, Callable, Optional
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from faker import Faker

# Set testing environment (before app.core.config is imported)
os.environ['TESTING'] = 'true'
os.environ['ENVIRONMENT'] = 'test'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['LOG_FILE'] = ''
os.environ['CREATE_DEFAULT_SUPER_ADMIN'] = 'false'
os.environ['SMTP_USER'] = ''
os.environ['SMTP_PASSWORD'] = ''

from app.main import app
from app.core.database import Base, get_db
from app.core.security import get_password_hash
from app.models.user import User, UserRole
from app.modules.auth.dependencies import get_email_service

fake = Faker()

DEFAULT_PASSWORD = 'Secret@123'

USERNAME_SUFFIX = {
    UserRole.STUDENT: '@student.com',
    UserRole.TEACHER: '@teacher.com',
}

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)

_sequence = count(1)


class FakeEmailService:
    """Records outgoing mail instead of talking to SMTP"""

    def __init__(self):
        self.send_otp_email = AsyncMock(return_value=True)
        self.send_welcome_email = AsyncMock(return_value=True)
        self.send_password_reset_email = AsyncMock(return_value=True)

    def last_otp(self) -> str:
        return self.send_otp_email.call_args.args[1]


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def email_service() -> FakeEmailService:
    return FakeEmailService()


@pytest.fixture
async def client(db_session: AsyncSession, email_service: FakeEmailService) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database and email overrides"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: email_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def create_user(db_session: AsyncSession) -> Callable:
    """Factory: persist a user with a role-appropriate username"""
    async def _create_user(
        role: UserRole = UserRole.STUDENT,
        teacher: Optional[User] = None,
        password: str = DEFAULT_PASSWORD,
        is_archived: bool = False,
        **overrides,
    ) -> User:
        n = next(_sequence)
        local_part = f"{fake.user_name()}{n}"
        email = overrides.pop('email', f"{local_part}@{fake.domain_name()}")
        username = overrides.pop('username', None)
        if username is None:
            username = email if role == UserRole.SUPER_ADMIN else f"{local_part}{USERNAME_SUFFIX[role]}"

        user = User(
            username=username,
            email=email.lower(),
            password_hash=get_password_hash(password),
            role=role,
            first_name=overrides.pop('first_name', fake.first_name()),
            last_name=overrides.pop('last_name', fake.last_name()),
            teacher_id=teacher.id if teacher else None,
            is_archived=is_archived,
            is_verified=True,
            **overrides,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _create_user


@pytest.fixture
async def super_admin(create_user) -> User:
    return await create_user(UserRole.SUPER_ADMIN)


@pytest.fixture
async def teacher(create_user) -> User:
    return await create_user(UserRole.TEACHER)


@pytest.fixture
async def other_teacher(create_user) -> User:
    return await create_user(UserRole.TEACHER)


@pytest.fixture
async def student(create_user, teacher: User) -> User:
    return await create_user(UserRole.STUDENT, teacher=teacher)


def auth_headers_for(user: User) -> dict:
    """Bearer header signed with the application's token service"""
    token = app.state.token_service.issue(user)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def auth_headers() -> Callable[[User], dict]:
    return auth_headers_for
