"""
Document Upload Routes

PUT /documents/{application_id} - Upload files into named slots (multipart)
GET /documents/{application_id} - Get the document set
DELETE /documents/{application_id} - Delete the document set and its files
PATCH /documents/{application_id}/verify - Verify or reject one slot
GET /documents/files/{file_name} - Download a stored file

Slots: student_picture (1 file), certificates (10), every other slot (5).
"""

import logging
import os
from collections import defaultdict
from fastapi import APIRouter, HTTPException, Depends, Request
from fastapi.responses import FileResponse
from starlette.datastructures import UploadFile as StarletteUploadFile

from app.core.auth import get_current_user, require_permission, has_permission, ADMINISTRATOR
from app.api.routes.application_routes import load_application, ensure_can_read
from app.services.mongo_service import ApplicationService, DocumentService, DOCUMENT_SLOTS, SLOT_LIMITS
from app.services.notification_service import NotificationService, ActivityLogger
from app.utils.file_upload import save_upload, remove_files, resolve_stored_file
from app.schemas.schemas import DocumentSetResponse, DocumentVerifyRequest, MessageResponse

router = APIRouter(prefix="/documents", tags=["Documents"])
logger = logging.getLogger(__name__)


def ensure_can_view(application: dict, user: dict):
    """Owner with document.get, or staff holding document.get and application.read."""
    if not has_permission(user, "document.get"):
        raise HTTPException(status_code=403, detail="Not allowed to view documents")
    ensure_can_read(application, user)


@router.put("/{application_id}", response_model=DocumentSetResponse)
async def upload_documents(application_id: str, request: Request, user: dict = Depends(get_current_user)):
    """
    Upload documents. Each form field name is a slot; repeat the field for
    multiple files. Uploaded slots replace their previous files, other slots
    are kept.
    """
    application = load_application(application_id)
    is_owner = application["user_id"] == user["user_id"]
    if not (is_owner and has_permission(user, "document.set")) and ADMINISTRATOR not in user["permissions"]:
        raise HTTPException(status_code=403, detail="Only the applicant can upload documents")

    form = await request.form()
    files_by_slot = defaultdict(list)
    for field, value in form.multi_items():
        if field not in DOCUMENT_SLOTS:
            raise HTTPException(status_code=400, detail=f"Unknown document slot: {field}")
        if not isinstance(value, StarletteUploadFile):
            raise HTTPException(status_code=400, detail=f"Field '{field}' must be a file")
        files_by_slot[field].append(value)

    if not files_by_slot:
        raise HTTPException(status_code=400, detail="No files uploaded")

    for slot, files in files_by_slot.items():
        if len(files) > SLOT_LIMITS[slot]:
            raise HTTPException(
                status_code=400,
                detail=f"Too many files for {slot}: maximum {SLOT_LIMITS[slot]}"
            )

    stored = {}
    saved_paths = []
    try:
        for slot, files in files_by_slot.items():
            stored[slot] = []
            for upload in files:
                meta = await save_upload(upload)
                saved_paths.append(meta["file_path"])
                stored[slot].append(meta)
    except HTTPException:
        remove_files(saved_paths)
        raise

    documents, replaced = DocumentService().upsert_slots(application_id, stored, user["user_id"])
    remove_files(replaced)

    slots = sorted(stored)
    ActivityLogger().log(
        user_id=application["user_id"],
        activity_type="document_uploaded",
        description=f"Uploaded {', '.join(slots)}",
        application_id=application_id,
        status=application["status"],
        metadata={"slots": slots, "files": len(saved_paths)}
    )
    NotificationService().documents_uploaded(application["user_id"], application_id, slots)
    return DocumentSetResponse(**documents)


@router.get("/files/{file_name}")
async def download_file(file_name: str, user: dict = Depends(get_current_user)):
    """Download a stored file. Caller must be able to read the owning application."""
    path = resolve_stored_file(file_name)
    owner = DocumentService().find_by_file_path(file_name)
    if not owner or not os.path.exists(path):
        raise HTTPException(status_code=404, detail="File not found")
    application = ApplicationService().get_by_id(owner["application_id"])
    if not application:
        raise HTTPException(status_code=404, detail="File not found")
    ensure_can_view(application, user)
    return FileResponse(path)


@router.get("/{application_id}", response_model=DocumentSetResponse)
async def get_documents(application_id: str, user: dict = Depends(get_current_user)):
    application = load_application(application_id)
    ensure_can_view(application, user)
    documents = DocumentService().get_by_application(application_id)
    if not documents:
        raise HTTPException(status_code=404, detail="No documents uploaded")
    return DocumentSetResponse(**documents)


@router.delete("/{application_id}", response_model=MessageResponse)
async def delete_documents(application_id: str, user: dict = Depends(get_current_user)):
    application = load_application(application_id)
    ensure_can_read(application, user, "document.delete")
    service = DocumentService()
    if not service.get_raw(application_id):
        raise HTTPException(status_code=404, detail="No documents uploaded")
    remove_files(service.delete(application_id))
    ActivityLogger().log(
        user_id=application["user_id"],
        activity_type="document_deleted",
        description="All uploaded documents were deleted",
        application_id=application_id,
        status=application["status"],
        metadata={"deleted_by": user["user_id"]}
    )
    return MessageResponse(message="Documents deleted successfully")


@router.patch("/{application_id}/verify", response_model=DocumentSetResponse)
async def verify_documents(application_id: str, data: DocumentVerifyRequest,
                           user: dict = Depends(require_permission("document.verify"))):
    """Set one slot's verification status; all_verified turns true once every populated slot is verified."""
    application = load_application(application_id)
    service = DocumentService()
    existing = service.get_raw(application_id)
    if not existing:
        raise HTTPException(status_code=404, detail="No documents uploaded")
    slot = data.slot.value
    if not existing.get(slot):
        raise HTTPException(status_code=400, detail=f"No files uploaded for {slot}")

    documents = service.set_verification(application_id, slot, data.status.value, data.remarks, user["user_id"])
    ActivityLogger().log(
        user_id=application["user_id"],
        activity_type="document_verified",
        description=f"{slot} marked {data.status.value}",
        application_id=application_id,
        status=application["status"],
        metadata={"slot": slot, "status": data.status.value, "remarks": data.remarks,
                  "verified_by": user["user_id"]}
    )
    NotificationService().document_status(application["user_id"], application_id, slot, data.status.value)
    return DocumentSetResponse(**documents)
