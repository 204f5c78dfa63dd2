"""
API Tests for /api/exams
"""
import pytest
from unittest.mock import AsyncMock, patch
from httpx import AsyncClient

from app.db.seed_data import seed_demo_data
from app.models.exam import Score
from app.models.user import UserRole
from app.services.exam_service import ExamService

EXAM_PAYLOAD = {
    "title": "World History",
    "description": "Ancient civilisations",
    "timeLimit": 45,
    "totalMarks": 10,
    "questions": [
        {"question": "Who built the pyramids?", "options": ["Egyptians", "Romans"], "correctAnswer": "Egyptians", "marks": 5},
        {"question": "Capital of the Roman Empire?", "options": ["Rome", "Athens"], "correctAnswer": "Rome", "marks": 5},
    ],
}


async def create_exam(client, headers, **overrides) -> dict:
    response = await client.post("/api/exams", headers=headers, json={**EXAM_PAYLOAD, **overrides})
    assert response.status_code == 201
    return response.json()["data"]["exam"]


@pytest.mark.asyncio
async def test_teacher_creates_exam(client: AsyncClient, teacher, auth_headers):
    exam = await create_exam(client, auth_headers(teacher))

    assert exam["title"] == "World History"
    assert exam["teacherId"] == teacher.id
    assert exam["isActive"] is True
    assert len(exam["examCode"]) == 6


@pytest.mark.asyncio
async def test_create_exam_validation(client: AsyncClient, teacher, auth_headers):
    response = await client.post("/api/exams", headers=auth_headers(teacher), json={"title": "ab"})

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "title"


@pytest.mark.asyncio
async def test_student_cannot_create_exam(client: AsyncClient, student, auth_headers):
    response = await client.post("/api/exams", headers=auth_headers(student), json=EXAM_PAYLOAD)

    assert response.status_code == 403
    assert response.json()["message"] == "Only teachers can create exams"


@pytest.mark.asyncio
async def test_public_preview_and_join(client: AsyncClient, teacher, student, auth_headers):
    exam = await create_exam(client, auth_headers(teacher))

    preview = await client.get(f"/api/exams/code/{exam['examCode'].lower()}")
    assert preview.status_code == 200
    data = preview.json()["data"]["exam"]
    assert data["questionCount"] == 2
    assert data["studentCount"] == 0
    assert data["teacher"]["id"] == teacher.id
    assert "questions" not in data

    joined = await client.post("/api/exams/join", headers=auth_headers(student), json={"examCode": exam["examCode"]})
    assert joined.status_code == 200
    assert joined.json()["message"] == "Successfully joined the exam"

    duplicate = await client.post("/api/exams/join", headers=auth_headers(student), json={"examCode": exam["examCode"]})
    assert duplicate.status_code == 409
    assert duplicate.json()["message"] == "You are already enrolled in this exam"

    preview = await client.get(f"/api/exams/code/{exam['examCode']}")
    assert preview.json()["data"]["exam"]["studentCount"] == 1


@pytest.mark.asyncio
async def test_join_race_reports_enrollment_conflict(client: AsyncClient, teacher, student, auth_headers):
    exam = await create_exam(client, auth_headers(teacher))
    headers = auth_headers(student)
    payload = {"examCode": exam["examCode"]}

    first = await client.post("/api/exams/join", headers=headers, json=payload)
    assert first.status_code == 200

    with patch.object(ExamService, "_is_enrolled", AsyncMock(return_value=False)):
        second = await client.post("/api/exams/join", headers=headers, json=payload)

    assert second.status_code == 409
    assert second.json() == {"status": "error", "message": "You are already enrolled in this exam"}


@pytest.mark.asyncio
async def test_inactive_seeded_exam_not_found(client: AsyncClient, db_session, auth_headers):
    seeded = await seed_demo_data(db_session)
    exam = seeded["exam"]
    jane = seeded["users"][UserRole.STUDENT]

    preview = await client.get("/api/exams/code/EXAM101")
    assert preview.status_code == 200

    exam.is_active = False
    await db_session.commit()

    preview = await client.get("/api/exams/code/EXAM101")
    assert preview.status_code == 404
    assert preview.json()["message"] == "Invalid exam code or exam is not active"

    joined = await client.post("/api/exams/join", headers=auth_headers(jane), json={"examCode": "EXAM101"})
    assert joined.status_code == 404


@pytest.mark.asyncio
async def test_exam_detail_hides_answers_from_students(client: AsyncClient, teacher, student, auth_headers):
    exam = await create_exam(client, auth_headers(teacher))

    denied = await client.get(f"/api/exams/{exam['id']}", headers=auth_headers(student))
    assert denied.status_code == 403

    await client.post("/api/exams/join", headers=auth_headers(student), json={"examCode": exam["examCode"]})

    student_view = await client.get(f"/api/exams/{exam['id']}", headers=auth_headers(student))
    assert student_view.status_code == 200
    questions = student_view.json()["data"]["exam"]["questions"]
    assert len(questions) == 2
    assert all("correctAnswer" not in q for q in questions)

    teacher_view = await client.get(f"/api/exams/{exam['id']}", headers=auth_headers(teacher))
    body = teacher_view.json()["data"]["exam"]
    assert [q["correctAnswer"] for q in body["questions"]] == ["Egyptians", "Rome"]
    assert [s["id"] for s in body["students"]] == [student.id]


@pytest.mark.asyncio
async def test_list_exams_scoped_by_role(client: AsyncClient, teacher, other_teacher, student, super_admin, auth_headers):
    mine = await create_exam(client, auth_headers(teacher))
    theirs = await create_exam(client, auth_headers(other_teacher), title="Chemistry")
    await client.post("/api/exams/join", headers=auth_headers(student), json={"examCode": mine["examCode"]})

    response = await client.get("/api/exams", headers=auth_headers(teacher))
    items = response.json()["data"]["exams"]
    assert [e["id"] for e in items] == [mine["id"]]
    assert items[0]["counts"] == {"students": 1, "scores": 0, "questions": 2}

    response = await client.get("/api/exams", headers=auth_headers(student))
    assert [e["id"] for e in response.json()["data"]["exams"]] == [mine["id"]]

    response = await client.get("/api/exams", headers=auth_headers(super_admin))
    assert {e["id"] for e in response.json()["data"]["exams"]} == {mine["id"], theirs["id"]}

    response = await client.get("/api/exams?search=chem", headers=auth_headers(super_admin))
    assert [e["id"] for e in response.json()["data"]["exams"]] == [theirs["id"]]


@pytest.mark.asyncio
async def test_update_and_delete_exam(client: AsyncClient, teacher, other_teacher, auth_headers):
    exam = await create_exam(client, auth_headers(teacher))

    forbidden = await client.put(f"/api/exams/{exam['id']}", headers=auth_headers(other_teacher), json={"isActive": False})
    assert forbidden.status_code == 403

    updated = await client.put(f"/api/exams/{exam['id']}", headers=auth_headers(teacher), json={"isActive": False})
    assert updated.status_code == 200
    assert updated.json()["data"]["exam"]["isActive"] is False

    deleted = await client.delete(f"/api/exams/{exam['id']}", headers=auth_headers(teacher))
    assert deleted.status_code == 200

    missing = await client.get(f"/api/exams/{exam['id']}", headers=auth_headers(teacher))
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_statistics_and_delete_with_scores(client: AsyncClient, db_session, create_user, teacher, auth_headers):
    exam = await create_exam(client, auth_headers(teacher))
    students = [await create_user(UserRole.STUDENT, teacher=teacher) for _ in range(2)]
    for s in students:
        await client.post("/api/exams/join", headers=auth_headers(s), json={"examCode": exam["examCode"]})

    db_session.add(Score(exam_id=exam["id"], student_id=students[0].id, score=4, percentage=40.0))
    db_session.add(Score(exam_id=exam["id"], student_id=students[1].id, score=9, percentage=90.0))
    await db_session.commit()

    response = await client.get(f"/api/exams/{exam['id']}/statistics", headers=auth_headers(teacher))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["exam"]["examCode"] == exam["examCode"]
    assert data["statistics"] == {
        "totalStudents": 2,
        "completedAttempts": 2,
        "completionRate": 100.0,
        "averageScore": 65.0,
        "highestScore": 90.0,
        "lowestScore": 40.0,
        "questionCount": 2,
    }
    assert [s["percentage"] for s in data["scores"]] == [90.0, 40.0]
    assert data["scores"][0]["student"]["id"] == students[1].id

    blocked = await client.delete(f"/api/exams/{exam['id']}", headers=auth_headers(teacher))
    assert blocked.status_code == 400
    assert blocked.json()["message"] == "Cannot delete exam with existing student scores"


@pytest.mark.asyncio
async def test_unknown_route(client: AsyncClient):
    response = await client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.json() == {"status": "error", "message": "Route /api/nothing-here not found"}


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert body["environment"] == "test"
    assert "timestamp" in body
