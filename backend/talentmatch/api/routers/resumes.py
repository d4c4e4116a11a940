"""Resume upload endpoint: a multipart batch of files in, a processed/failed report out."""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from talentmatch.api.deps import get_batch_orchestrator, require
from talentmatch.schemas.match import BatchReportOut
from talentmatch.services.resumes.batch import BatchOrchestrator
from talentmatch.services.resumes.ingestion import UploadedFile

router = APIRouter(prefix="/resumes", tags=["resumes"])


@router.post("/batch", response_model=BatchReportOut)
def upload_batch(
    files: List[UploadFile] = File(...),
    model: Optional[str] = Form(default=None),
    user_id: Optional[str] = Depends(require("candidates:create")),
    orchestrator: BatchOrchestrator = Depends(get_batch_orchestrator),
):
    uploads = [
        UploadedFile(filename=f.filename or "upload", content=f.file.read(), mime_type=f.content_type)
        for f in files
    ]
    report = orchestrator.process_batch(uploads, user_id, model=model)
    return BatchReportOut(**report.to_dict())
