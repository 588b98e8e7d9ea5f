# photoflow/web/routes.py
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse

from photoflow.common.exceptions import UnknownTaskKind, ValidationFailure
from photoflow.common.job import DEFAULT_TASKS, parse_tasks
from photoflow.upload import PhotoUploadResponse, PhotoUploadService

router = APIRouter(prefix="/photos")


def get_upload_service(request: Request) -> PhotoUploadService:
    return request.app.state.upload_service


@router.post("/upload")
async def upload_photo(
    file: UploadFile = File(...),
    tasks: str = Form(DEFAULT_TASKS),
    upload_service: PhotoUploadService = Depends(get_upload_service),
) -> JSONResponse:
    data = await file.read()
    try:
        response = await run_in_threadpool(
            upload_service.upload_photo,
            file.filename,
            file.content_type,
            data,
            parse_tasks(tasks),
        )
    except (ValidationFailure, UnknownTaskKind) as e:
        response = PhotoUploadResponse.error(str(e))
    return JSONResponse(response.to_dict(), status_code=200 if response.success else 400)


@router.get("/health", response_class=PlainTextResponse)
async def health() -> str:
    return "OK"
