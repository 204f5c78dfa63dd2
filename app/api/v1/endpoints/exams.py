from fastapi import APIRouter, Depends, Query, status
from typing import Optional

from app.models.user import User
from app.modules.auth.dependencies import get_current_user, get_exam_service
from app.schemas.exam import ExamCreate, ExamResponse, ExamUpdate, JoinExamRequest
from app.services.exam_service import ExamService
from app.utils.pagination import MAX_PAGE_SIZE
from app.utils.responses import success_response

router = APIRouter()


@router.get("")
async def list_exams(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    search: Optional[str] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    current_user: User = Depends(get_current_user),
    exams: ExamService = Depends(get_exam_service),
):
    """
    List exams visible to the caller.

    Teachers see the exams they authored, students the exams they joined,
    super admins everything.
    """
    result = await exams.list_exams(current_user, page, limit, search, is_active)
    return success_response(
        {"exams": result["items"], "pagination": result["pagination"]},
        "Exams retrieved successfully",
    )


@router.get("/code/{exam_code}")
async def get_exam_by_code(
    exam_code: str,
    exams: ExamService = Depends(get_exam_service),
):
    """Public preview used before joining"""
    preview = await exams.get_preview_by_code(exam_code)
    return success_response({"exam": preview}, "Exam found")


@router.post("/join")
async def join_exam(
    payload: JoinExamRequest,
    current_user: User = Depends(get_current_user),
    exams: ExamService = Depends(get_exam_service),
):
    exam = await exams.join_exam(current_user, payload.exam_code)
    return success_response({"exam": ExamResponse.model_validate(exam)}, "Successfully joined the exam")


@router.get("/{exam_id}")
async def get_exam(
    exam_id: str,
    current_user: User = Depends(get_current_user),
    exams: ExamService = Depends(get_exam_service),
):
    exam = await exams.get_exam(current_user, exam_id)
    return success_response({"exam": exam}, "Exam retrieved successfully")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_exam(
    payload: ExamCreate,
    current_user: User = Depends(get_current_user),
    exams: ExamService = Depends(get_exam_service),
):
    exam = await exams.create_exam(current_user, payload)
    return success_response({"exam": ExamResponse.model_validate(exam)}, "Exam created successfully")


@router.put("/{exam_id}")
async def update_exam(
    exam_id: str,
    payload: ExamUpdate,
    current_user: User = Depends(get_current_user),
    exams: ExamService = Depends(get_exam_service),
):
    exam = await exams.update_exam(current_user, exam_id, payload)
    return success_response({"exam": ExamResponse.model_validate(exam)}, "Exam updated successfully")


@router.delete("/{exam_id}")
async def delete_exam(
    exam_id: str,
    current_user: User = Depends(get_current_user),
    exams: ExamService = Depends(get_exam_service),
):
    await exams.delete_exam(current_user, exam_id)
    return success_response(message="Exam deleted successfully")


@router.get("/{exam_id}/statistics")
async def get_exam_statistics(
    exam_id: str,
    current_user: User = Depends(get_current_user),
    exams: ExamService = Depends(get_exam_service),
):
    statistics = await exams.get_statistics(current_user, exam_id)
    return success_response(statistics, "Exam statistics retrieved successfully")
