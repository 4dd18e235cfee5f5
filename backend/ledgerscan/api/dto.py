"""
Data Transfer Objects (DTOs) for API layer.
Separates API contracts from domain entities.
"""
from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class ExtractedDataDTO(BaseModel):
    """Extracted fields; amounts are plain numbers, None when not determined."""
    document_date: Optional[str] = None
    issuer: Optional[str] = None
    document_number: Optional[str] = None
    total_amount: Optional[float] = None
    vat_amount: Optional[float] = None
    net_amount: Optional[float] = None
    original_currency: Optional[str] = None
    total_amount_chf: Optional[float] = None
    vat_amount_chf: Optional[float] = None
    net_amount_chf: Optional[float] = None
    expense_category: Optional[str] = None


class DocumentRecordDTO(BaseModel):
    """Document record DTO for API responses."""
    id: str
    file_name: str
    file_type: str
    document_type: str
    status: str
    error_message: Optional[str] = None
    uploaded_at: str
    updated_at: Optional[str] = None
    extracted_data: ExtractedDataDTO

    class Config:
        from_attributes = True


class UploadResponseDTO(BaseModel):
    """Response DTO for a batch upload."""
    total_files: int
    document_ids: List[str]
    documents: List[DocumentRecordDTO]
    message: str


class BatchActionResponseDTO(BaseModel):
    """Response DTO for stop/resume."""
    accepted: bool
    message: str
    status: Dict[str, Any]


class DeleteResponseDTO(BaseModel):
    deleted: int
    message: str


class ConversionResponseDTO(BaseModel):
    amount: float
    from_currency: str
    to_currency: str
    converted: Optional[float]
    rate: Optional[float]
    rates_source: str


class ErrorResponseDTO(BaseModel):
    """Error response DTO."""
    error: Any
    status_code: int
    path: Optional[str] = None
    request_id: Optional[str] = None
