"""
Pydantic models for commission API requests and responses
"""

from pydantic import BaseModel, Field
from typing import Dict, Any, List, Optional


class CalculationRequest(BaseModel):
    scheme_id: str = Field(..., description="The scheme ID to calculate commissions for")


class CalculationSummary(BaseModel):
    total_commission: float = 0.0
    unique_distributors: int = 0
    unique_articles: int = 0
    total_records: int = 0


class ProcessingStats(BaseModel):
    original_count: int
    processed_count: int
    records_processed: int
    matched_records: int
    group_count: int
    batches_processed: int
    total_batches: int
    processed_ratio: float = Field(..., description="1.0 for a complete run, lower when the time budget ran out")
    timed_out: bool
    is_complete: bool
    elapsed_seconds: float


class CalculationResponse(BaseModel):
    success: bool
    message: str
    calculation_id: Optional[str] = None
    scheme_id: Optional[str] = None
    scheme_name: Optional[str] = None
    total_records: Optional[int] = None
    total_chunks: Optional[int] = None
    summary: Optional[CalculationSummary] = None
    processing: Optional[ProcessingStats] = None
    execution_time_seconds: Optional[float] = None


class StoredCalculationResponse(BaseModel):
    success: bool
    calculation_id: str
    calculations: List[Dict[str, Any]]
    total_records: int
    expected_records: int
    created_at: Optional[str] = None
    scheme_id: Optional[str] = None
    scheme_name: Optional[str] = None
    summary: Optional[CalculationSummary] = None
    missing_chunks: List[int] = Field(default_factory=list)
    is_complete: bool


class CalculationHistoryResponse(BaseModel):
    success: bool
    calculations: List[Dict[str, Any]]


class MigrationRequest(BaseModel):
    legacy_key: str = Field("distributors", description="Global key to move into the owner's namespace")
    delete_legacy: bool = True


class MigrationResponse(BaseModel):
    success: bool
    report: Dict[str, Any]
