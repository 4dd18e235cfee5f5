"""
Documents Router - Handles batch upload, processing control and records.

This router is responsible for:
- Accepting a batch of uploaded files and starting background processing
- Stopping and resuming the batch
- Listing, retrieving and deleting document records
- Portfolio summary and spreadsheet export

Architecture:
- Router handles HTTP request/response only
- Business logic delegated to services
- Business exceptions mapped to HTTP errors by api.exceptions

Example Usage:
    POST /documents/upload - Upload files and start processing
    GET /documents/status - Batch state and progress
    POST /documents/stop - Stop after the document in flight
    GET /documents/export/invoice - Download Invoices.xlsx
"""
from typing import List

from fastapi import APIRouter, File, HTTPException, Request, UploadFile, status
from fastapi.responses import StreamingResponse

from ..api.dto import (
    BatchActionResponseDTO,
    DeleteResponseDTO,
    DocumentRecordDTO,
    UploadResponseDTO,
)
from ..api.exceptions import handle_business_exception
from ..api.mappers import DocumentMapper
from ..core.config import MAX_FILES_PER_BATCH
from ..core.exceptions import BatchInProgressError, DocumentNotFoundError
from ..core.logging_config import get_logger
from ..domain.entities import DocumentType
from ..middleware.rate_limit import rate_limit_per_minute
from ..services.batch_processor import UploadedFile
from ..services.export_service import SHEET_NAMES, export_file_name
from ..services.summary_service import build_summary
from ..utils.validators import validate_uploaded_file
from . import dependencies

logger = get_logger(__name__)

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _raise_http(e: Exception):
    http_exc = handle_business_exception(e)
    if http_exc is not None:
        raise http_exc from e
    raise e


def _status_payload() -> dict:
    payload = dependencies.get_batch_processor().status()
    payload["last_error"] = dependencies.last_batch_error
    return payload


@router.post("/documents/upload", response_model=UploadResponseDTO, status_code=status.HTTP_202_ACCEPTED)
@rate_limit_per_minute
async def upload_documents(request: Request, files: List[UploadFile] = File(...)):
    """
    Upload a batch of images or PDFs and start processing in the background.

    Every file gets a processing record immediately, in upload order; the
    records are then completed or failed one at a time.

    Status Codes:
        202: Batch accepted
        400: No files, or more than MAX_FILES_PER_BATCH
        409: A batch is already running
        413: A file is larger than MAX_FILE_SIZE_MB
        415: A file is not an image or PDF
    """
    if not files:
        raise HTTPException(status_code=400, detail="No files uploaded")
    if len(files) > MAX_FILES_PER_BATCH:
        raise HTTPException(
            status_code=400,
            detail=f"Too many files: {len(files)} (maximum {MAX_FILES_PER_BATCH} per batch)"
        )

    processor = dependencies.get_batch_processor()
    if processor.is_running:
        _raise_http(BatchInProgressError("A batch is already being processed"))

    uploaded: List[UploadedFile] = []
    try:
        for upload in files:
            content = await upload.read()
            file_type = upload.content_type or ""
            validate_uploaded_file(upload.filename or "", file_type, len(content))
            uploaded.append(UploadedFile(
                file_name=upload.filename,
                file_type=file_type,
                content=content,
            ))
        records = await processor.submit(uploaded)
    except Exception as e:
        _raise_http(e)

    dependencies.start_batch_run()
    logger.info(f"Upload accepted: {len(records)} file(s)")

    return UploadResponseDTO(
        total_files=len(records),
        document_ids=[record.id for record in records],
        documents=DocumentMapper.to_dto_list(records),
        message=f"Processing {len(records)} document(s)",
    )


@router.get("/documents", response_model=List[DocumentRecordDTO])
async def get_documents():
    """All records in insertion order."""
    records = await dependencies.get_record_store().list()
    return DocumentMapper.to_dto_list(records)


@router.get("/documents/status")
async def get_batch_status():
    """Batch state, queue size, provider and progress of the last run."""
    return _status_payload()


@router.post("/documents/stop", response_model=BatchActionResponseDTO)
async def stop_processing():
    """
    Stop the running batch.
    The document in flight finishes; the rest stay queued for resume.
    """
    accepted = dependencies.get_batch_processor().stop()
    message = "Stop requested" if accepted else "No batch is running"
    return BatchActionResponseDTO(accepted=accepted, message=message, status=_status_payload())


@router.post("/documents/resume", response_model=BatchActionResponseDTO)
@rate_limit_per_minute
async def resume_processing(request: Request):
    """Continue documents left queued by a stop or a quota halt."""
    processor = dependencies.get_batch_processor()
    if processor.is_running:
        _raise_http(BatchInProgressError("A batch is already being processed"))
    if processor.pending_count == 0:
        return BatchActionResponseDTO(accepted=False, message="Nothing to resume", status=_status_payload())

    dependencies.start_batch_run(resume=True)
    return BatchActionResponseDTO(
        accepted=True,
        message=f"Resuming {processor.pending_count} document(s)",
        status=_status_payload(),
    )


@router.get("/documents/summary")
async def get_summary():
    """Portfolio totals in CHF, vendors, categories and date range."""
    records = await dependencies.get_record_store().list()
    return build_summary(records)


@router.get("/documents/export")
async def export_all_documents():
    """Download one workbook with a sheet per document type."""
    records = await dependencies.get_record_store().list()
    try:
        output = dependencies.get_exporter().export_all(records)
    except Exception as e:
        _raise_http(e)

    return StreamingResponse(
        output,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{export_file_name()}"'}
    )


@router.get("/documents/export/{document_type}")
async def export_documents(document_type: str):
    """
    Download the completed records of one type.

    Status Codes:
        200: Workbook
        400: Unknown or non-exportable document type
        404: No completed records of that type
    """
    try:
        selected = DocumentType(document_type.lower())
    except ValueError:
        selected = None
    if selected not in SHEET_NAMES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid document type. Must be one of: {', '.join(t.value for t in SHEET_NAMES)}"
        )

    records = await dependencies.get_record_store().list()
    try:
        output = dependencies.get_exporter().export_type(records, selected)
    except Exception as e:
        _raise_http(e)

    return StreamingResponse(
        output,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{export_file_name(selected)}"'}
    )


@router.get("/documents/{doc_id}", response_model=DocumentRecordDTO)
async def get_document(doc_id: str):
    record = await dependencies.get_record_store().get(doc_id)
    if record is None:
        _raise_http(DocumentNotFoundError(f"Document {doc_id} not found"))
    return DocumentMapper.to_dto(record)


@router.delete("/documents/{doc_id}", response_model=DeleteResponseDTO)
async def delete_document(doc_id: str):
    """
    Delete one record.
    A document still being processed is dropped; its result is discarded.
    """
    try:
        removed = await dependencies.get_record_store().remove(doc_id)
    except Exception as e:
        _raise_http(e)
    if not removed:
        _raise_http(DocumentNotFoundError(f"Document {doc_id} not found"))
    return DeleteResponseDTO(deleted=1, message="Document deleted")


@router.delete("/documents", response_model=DeleteResponseDTO)
async def delete_all_documents():
    """Delete every record. Deleting an empty collection is not an error."""
    try:
        count = await dependencies.get_record_store().remove_all()
    except Exception as e:
        _raise_http(e)
    return DeleteResponseDTO(deleted=count, message=f"Deleted {count} document(s)")
