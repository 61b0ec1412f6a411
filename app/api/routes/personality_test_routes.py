"""
Personality Test Routes

Question templates:
POST /personality-test/template - Create template question
GET /personality-test/template - List templates (optional ?type=)
GET /personality-test/template/{template_id} - Get template
PATCH /personality-test/template/{template_id} - Update (creator or administrator)
DELETE /personality-test/template/{template_id} - Delete (creator or administrator)

Test sessions:
POST /personality-test/start - Start own test
POST /personality-test/answer - Answer one question
POST /personality-test/stop - Stop own running test
GET /personality-test/me - Own test with answers
GET /personality-test/all - All tests (staff)
GET /personality-test/user/{user_id} - One applicant's test (staff)
PATCH /personality-test/{test_id}/result - Record score and risk level (staff)
DELETE /personality-test/user/{user_id} - Delete an applicant's test and answers (staff)
"""

import logging
from typing import Optional, List
from fastapi import APIRouter, HTTPException, Depends, Query

from app.core.auth import get_current_user, require_permission, ADMINISTRATOR
from app.services.mongo_service import ApplicationService, page_count
from app.services.notification_service import NotificationService, ActivityLogger
from app.services.personality_test_service import TemplateService, PersonalityTestService
from app.schemas.schemas import (
    TemplateCreate, TemplateUpdate, TemplateResponse, PersonalityQuestion,
    PersonalityTestStartResponse, AnswerRequest, AnswerResponse, PersonalityTestResponse,
    PersonalityTestListResponse, PersonalityTestResultUpdate, MessageResponse
)

router = APIRouter(prefix="/personality-test", tags=["Personality Test"])
logger = logging.getLogger(__name__)


# ============================================================
# TEMPLATES
# ============================================================

def _template_or_404(template_id: str) -> dict:
    template = TemplateService().get(template_id)
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    return template


def _ensure_template_owner(template: dict, user: dict):
    if template["created_by"] != user["user_id"] and ADMINISTRATOR not in user["permissions"]:
        raise HTTPException(status_code=403, detail="Only the creator can modify this template")


@router.post("/template", response_model=TemplateResponse, status_code=201)
async def create_template(data: TemplateCreate, user: dict = Depends(require_permission("personality.manage"))):
    return TemplateResponse(**TemplateService().create(data.type, data.question, user["user_id"]))


@router.get("/template", response_model=List[TemplateResponse])
async def list_templates(type: Optional[str] = None, user: dict = Depends(get_current_user)):
    return [TemplateResponse(**t) for t in TemplateService().list(type)]


@router.get("/template/{template_id}", response_model=TemplateResponse)
async def get_template(template_id: str, user: dict = Depends(get_current_user)):
    return TemplateResponse(**_template_or_404(template_id))


@router.patch("/template/{template_id}", response_model=TemplateResponse)
async def update_template(template_id: str, data: TemplateUpdate, user: dict = Depends(get_current_user)):
    _ensure_template_owner(_template_or_404(template_id), user)
    fields = data.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    return TemplateResponse(**TemplateService().update(template_id, fields))


@router.delete("/template/{template_id}", response_model=MessageResponse)
async def delete_template(template_id: str, user: dict = Depends(get_current_user)):
    _ensure_template_owner(_template_or_404(template_id), user)
    TemplateService().delete(template_id)
    return MessageResponse(message="Template deleted successfully")


# ============================================================
# TEST SESSIONS
# ============================================================

@router.post("/start", response_model=PersonalityTestStartResponse, status_code=201)
async def start_test(user: dict = Depends(require_permission("personality.take"))):
    """Start a timed test: one random question per category."""
    application = ApplicationService().get_by_user(user["user_id"])
    if not application:
        raise HTTPException(status_code=404, detail="No application found for user")

    test, questions = PersonalityTestService().start(application)
    ActivityLogger().log(
        user_id=user["user_id"],
        activity_type="personality_test_started",
        description="Started taking the personality assessment test",
        application_id=application["id"],
        status="In Progress",
        metadata={"test_id": test["id"], "questions": len(questions)}
    )
    return PersonalityTestStartResponse(
        test_id=test["id"],
        start_time=test["start_time"],
        time_limit_seconds=test["time_limit_seconds"],
        questions=[PersonalityQuestion(id=q["id"], type=q["type"], question=q["question"]) for q in questions]
    )


@router.post("/answer", response_model=AnswerResponse)
async def answer_question(data: AnswerRequest, user: dict = Depends(require_permission("personality.take"))):
    """Answer one question. The last answer completes the test."""
    result = PersonalityTestService().answer(user["user_id"], data.test_id, data.question_id, data.answer)
    test = result["test"]
    if result["completed"]:
        ActivityLogger().log(
            user_id=user["user_id"],
            activity_type="personality_test_completed",
            description="Completed the personality assessment test",
            application_id=test["application_id"],
            status="Completed",
            metadata={"test_id": test["id"], "answered": result["answered"]}
        )
        NotificationService().personality_test_completed(user["user_id"], test["application_id"])
    return AnswerResponse(
        message="Test completed" if result["completed"] else "Answer saved",
        answered=result["answered"],
        total_questions=result["total_questions"],
        completed=result["completed"]
    )


@router.post("/stop", response_model=MessageResponse)
async def stop_test(user: dict = Depends(require_permission("personality.take"))):
    test = PersonalityTestService().stop(user["user_id"])
    if not test:
        raise HTTPException(status_code=404, detail="No active personality test")
    ActivityLogger().log(
        user_id=user["user_id"],
        activity_type="personality_test_stopped",
        description="Personality test session was stopped",
        application_id=test["application_id"],
        status="Stopped",
        metadata={"test_id": test["id"], "answered": len(test["answers"])}
    )
    return MessageResponse(message="Personality test stopped")


@router.get("/me", response_model=PersonalityTestResponse)
async def get_my_test(user: dict = Depends(get_current_user)):
    service = PersonalityTestService()
    test = service.get_raw_for_user(user["user_id"])
    if not test:
        raise HTTPException(status_code=404, detail="No personality test found")
    return PersonalityTestResponse(**service.with_answers(test))


@router.get("/all", response_model=PersonalityTestListResponse)
async def list_tests(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=25),
    user: dict = Depends(require_permission("personality.manage"))
):
    tests, total = PersonalityTestService().list(page, limit)
    return PersonalityTestListResponse(
        tests=[PersonalityTestResponse(**t) for t in tests],
        total=total, page=page, limit=limit, pages=page_count(total, limit)
    )


@router.get("/user/{user_id}", response_model=PersonalityTestResponse)
async def get_user_test(user_id: int, user: dict = Depends(require_permission("personality.manage"))):
    service = PersonalityTestService()
    test = service.get_raw_for_user(user_id)
    if not test:
        raise HTTPException(status_code=404, detail="No personality test found")
    return PersonalityTestResponse(**service.with_answers(test))


@router.patch("/{test_id}/result", response_model=PersonalityTestResponse)
async def set_test_result(test_id: str, data: PersonalityTestResultUpdate,
                          user: dict = Depends(require_permission("personality.manage"))):
    fields = data.model_dump(mode="json", exclude_unset=True)
    test = PersonalityTestService().set_result(test_id, fields)
    if not test:
        raise HTTPException(status_code=404, detail="Personality test not found")
    return PersonalityTestResponse(**test)


@router.delete("/user/{user_id}", response_model=MessageResponse)
async def delete_user_test(user_id: int, user: dict = Depends(require_permission("personality.manage"))):
    if not PersonalityTestService().delete_for_user(user_id):
        raise HTTPException(status_code=404, detail="No personality test found")
    return MessageResponse(message="Personality test deleted successfully")
