"""Classification API routes"""
import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import StreamingResponse

from ..classifier.batch import BatchOptions
from ..classifier.engine import SelfConsistencyClassifier, get_classifier
from ..config import settings
from ..exceptions import ClassifierError
from ..models import ClassifyRowRequest, ClassifyRowResponse
from ..utils.csv_reader import SurveyCsvError, SurveyCsvLoader
from .service import classify_single_row, clamp, stream_batch_events

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Classification"])


def parse_bounded_int(text: Optional[str], default: int, low: int, high: int) -> int:
    """Lenient form-field parsing: floor, clamp, default on garbage"""
    try:
        value = float(text if text is not None else default)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(value):
        return default
    return clamp(math.floor(value), low, high)


@router.post("/classify-row", response_model=ClassifyRowResponse)
async def classify_row_endpoint(
    request: ClassifyRowRequest,
    classifier: SelfConsistencyClassifier = Depends(get_classifier)
):
    """
    Classify a single survey row with self-consistency sampling.

    Args:
        request: Row data, criteria and sample count

    Returns:
        Classified row with run metadata
    """
    try:
        return await classify_single_row(classifier, request)

    except ClassifierError as e:
        logger.exception(f"Row {request.rowIndex} classification failed")
        raise HTTPException(
            status_code=500,
            detail=e.message
        )
    except Exception as e:
        logger.exception(f"Row {request.rowIndex} classification failed")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to classify row: {str(e)}"
        )


@router.post("/classify")
async def classify_csv_endpoint(
    file: Optional[UploadFile] = File(None),
    criteria: str = Form(""),
    coreValue: str = Form(""),
    abuserCriteria: str = Form(""),
    discoveryCriteria: str = Form(""),
    sampleCount: Optional[str] = Form(None),
    rowConcurrency: Optional[str] = Form(None),
    classifier: SelfConsistencyClassifier = Depends(get_classifier)
):
    """
    Classify every row of an uploaded survey CSV.

    Streams NDJSON events: start, progress per row, then complete or error.
    """
    if file is None:
        raise HTTPException(status_code=400, detail="CSV file is required.")

    loader = SurveyCsvLoader()
    if not loader.can_load(file.filename or ""):
        raise HTTPException(status_code=400, detail="Only CSV files are supported.")

    try:
        table = loader.load(await file.read())
    except SurveyCsvError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if len(table.rows) > settings.MAX_SYNC_ROWS:
        raise HTTPException(
            status_code=400,
            detail=f"Sync mode max rows exceeded ({settings.MAX_SYNC_ROWS})."
        )

    options = BatchOptions(
        sample_count=parse_bounded_int(
            sampleCount, settings.DEFAULT_SAMPLE_COUNT, 1, settings.MAX_SAMPLE_COUNT
        ),
        row_concurrency=parse_bounded_int(
            rowConcurrency, settings.DEFAULT_ROW_CONCURRENCY, 1, settings.MAX_ROW_CONCURRENCY
        ),
        user_criteria=criteria.strip() or None,
        core_value=coreValue.strip() or None,
        abuser_criteria=abuserCriteria.strip() or None,
        discovery_criteria=discoveryCriteria.strip() or None,
    )

    logger.info(
        f"Received CSV {file.filename}: {len(table.rows)} rows, "
        f"sampleCount={options.sample_count}, rowConcurrency={options.row_concurrency}"
    )

    return StreamingResponse(
        stream_batch_events(classifier, table, file.filename, options),
        media_type="application/x-ndjson; charset=utf-8",
        headers={"Cache-Control": "no-cache, no-transform"}
    )
