"""Pydantic models for API requests and responses"""
from typing import Optional, Dict, Any, List, Literal
from pydantic import BaseModel, Field


# ============================================================================
# Request Models
# ============================================================================

class RawEntryModel(BaseModel):
    """One CSV cell with its original header"""
    header: str
    value: str
    columnIndex: int = Field(..., ge=0)


class ClassifyRowRequest(BaseModel):
    """Request to classify a single survey row"""
    rowIndex: int = Field(..., ge=1, description="1-based row number")
    rawData: Dict[str, str] = Field(..., description="Header -> cell value")
    rawEntries: Optional[List[RawEntryModel]] = None
    criteria: Optional[str] = Field(None, description="Additional user classification criteria")
    coreValue: Optional[str] = Field(None, description="Service core-value definition")
    abuserCriteria: Optional[str] = None
    discoveryCriteria: Optional[str] = None
    sampleCount: Optional[int] = Field(
        None,
        ge=1,
        le=7,
        description="Number of self-consistency samples (default 3)"
    )


# ============================================================================
# Response Models
# ============================================================================

class VoteModel(BaseModel):
    """One model sample's opinion"""
    label: str
    rationale: str
    warningSignals: List[str] = Field(default_factory=list)
    usedColumns: List[str] = Field(default_factory=list)
    isAbuser: Optional[bool] = None
    abuserReason: Optional[str] = None
    coreValueUnderstood: Optional[bool] = None
    coreValueReason: Optional[str] = None
    normalizedData: Dict[str, Any] = Field(default_factory=dict)


class RunMeta(BaseModel):
    """How a row was classified"""
    modelName: str
    promptVersion: str
    sampleCount: int
    rowConcurrency: Optional[int] = None
    temperature: float
    systemCriteria: str
    userCriteria: Optional[str] = None
    coreValue: Optional[str] = None
    abuserCriteria: Optional[str] = None
    discoveryCriteria: Optional[str] = None
    latencyMs: int


class ClassifiedRow(BaseModel):
    """Classification of one row, ready for review"""
    id: Optional[str] = None
    rowIndex: Optional[int] = None
    rawData: Optional[Dict[str, str]] = None
    rawEntries: Optional[List[RawEntryModel]] = None
    normalizedData: Dict[str, Any]
    modelLabel: str
    finalLabel: str
    confidence: float
    rationale: str
    warningSignals: List[str]
    isAbuser: bool
    isDiscoveryType: bool
    usedColumns: List[str]
    coreValueUnderstood: Optional[bool] = None
    coreValueReason: Optional[str] = None
    votes: List[VoteModel]
    runMeta: Optional[RunMeta] = None


class ClassifyRowResponse(BaseModel):
    """Response for a single-row classification"""
    row: ClassifiedRow
    runMeta: RunMeta


# ============================================================================
# Batch Stream Event Models (NDJSON)
# ============================================================================

class BatchStartEvent(BaseModel):
    type: Literal["start"] = "start"
    filename: str
    totalRows: int
    sampleCount: int
    rowConcurrency: int


class BatchProgressEvent(BaseModel):
    type: Literal["progress"] = "progress"
    processedRows: int
    totalRows: int
    percent: float
    rowIndex: int
    currentLabel: str


class BatchPayload(BaseModel):
    uploadId: str
    filename: str
    modelName: str
    rowConcurrency: int
    headers: List[str]
    totalRows: int
    processedRows: int
    rows: List[ClassifiedRow]


class BatchCompleteEvent(BaseModel):
    type: Literal["complete"] = "complete"
    payload: BatchPayload


class BatchErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str


# ============================================================================
# Health Check Models
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    version: str
    timestamp: str
    modelName: str
    promptVersion: str
    dependencies: Dict[str, str] = Field(
        default_factory=dict,
        description="Status of dependencies (gemini credential)"
    )
