"""Classification service utilities - shared by the row and batch endpoints"""
import logging
from typing import AsyncIterator, Optional
from uuid import uuid4

from ..classifier.batch import (
    BatchClassifier,
    BatchCompleted,
    BatchFailed,
    BatchOptions,
    BatchStarted,
    RowClassified,
)
from ..classifier.engine import (
    SelfConsistencyClassifier,
    get_model_name,
    get_prompt_version,
    get_system_criteria,
)
from ..classifier.models import ClassifierInput, ClassifierResult, RawEntry
from ..classifier.normalizer import normalize_survey_row
from ..config import settings
from ..models import (
    BatchCompleteEvent,
    BatchErrorEvent,
    BatchPayload,
    BatchProgressEvent,
    BatchStartEvent,
    ClassifiedRow,
    ClassifyRowRequest,
    ClassifyRowResponse,
    RawEntryModel,
    RunMeta,
    VoteModel,
)
from ..utils.csv_reader import SurveyRow, SurveyTable

logger = logging.getLogger(__name__)


def clamp(value: int, low: int, high: int) -> int:
    return min(max(value, low), high)


def build_run_meta(
    classifier: SelfConsistencyClassifier,
    sample_count: int,
    latency_ms: int,
    options: BatchOptions,
    row_concurrency: Optional[int] = None
) -> RunMeta:
    return RunMeta(
        modelName=get_model_name(),
        promptVersion=get_prompt_version(),
        sampleCount=sample_count,
        rowConcurrency=row_concurrency,
        temperature=classifier.get_base_temperature(sample_count),
        systemCriteria=get_system_criteria(),
        userCriteria=options.user_criteria or None,
        coreValue=options.core_value or None,
        abuserCriteria=options.abuser_criteria or None,
        discoveryCriteria=options.discovery_criteria or None,
        latencyMs=latency_ms,
    )


def result_to_row(
    result: ClassifierResult,
    run_meta: Optional[RunMeta] = None,
    row_index: Optional[int] = None,
    survey_row: Optional[SurveyRow] = None
) -> ClassifiedRow:
    """Convert a ClassifierResult into the review-table row shape"""
    source = {}
    if survey_row is not None:
        source = {
            "id": str(uuid4()),
            "rowIndex": row_index,
            "rawData": survey_row.raw_data,
            "rawEntries": [RawEntryModel(**entry.to_dict()) for entry in survey_row.raw_entries],
        }

    return ClassifiedRow(
        **source,
        normalizedData=result.normalized_data.to_dict(),
        modelLabel=result.final_label.value,
        finalLabel=result.final_label.value,
        confidence=result.confidence,
        rationale=result.rationale,
        warningSignals=result.warning_signals,
        isAbuser=result.is_abuser,
        isDiscoveryType=result.is_discovery_type,
        usedColumns=result.used_columns,
        coreValueUnderstood=result.core_value_understood.to_optional(),
        coreValueReason=result.core_value_reason,
        votes=[VoteModel(**vote.to_dict()) for vote in result.votes],
        runMeta=run_meta,
    )


async def classify_single_row(
    classifier: SelfConsistencyClassifier,
    request: ClassifyRowRequest
) -> ClassifyRowResponse:
    """
    Classify one row from an API request.

    Args:
        classifier: Classifier to use
        request: Validated row request

    Returns:
        Classified row with run metadata
    """
    sample_count = request.sampleCount or settings.DEFAULT_SAMPLE_COUNT
    options = BatchOptions(
        sample_count=sample_count,
        user_criteria=request.criteria,
        core_value=request.coreValue,
        abuser_criteria=request.abuserCriteria,
        discovery_criteria=request.discoveryCriteria,
    )
    raw_entries = [
        RawEntry(header=entry.header, value=entry.value, column_index=entry.columnIndex)
        for entry in request.rawEntries or []
    ]

    result = await classifier.classify(
        ClassifierInput(
            row_index=request.rowIndex,
            normalized=normalize_survey_row(request.rawData),
            raw_data=request.rawData,
            raw_entries=raw_entries,
            user_criteria=request.criteria or None,
            core_value=request.coreValue or None,
            abuser_criteria=request.abuserCriteria or None,
            discovery_criteria=request.discoveryCriteria or None,
        ),
        sample_count,
    )

    return ClassifyRowResponse(
        row=result_to_row(result),
        runMeta=build_run_meta(classifier, sample_count, result.latency_ms, options),
    )


async def stream_batch_events(
    classifier: SelfConsistencyClassifier,
    table: SurveyTable,
    filename: str,
    options: BatchOptions
) -> AsyncIterator[str]:
    """
    Run a batch and render every event as one NDJSON line.

    Args:
        classifier: Classifier to use
        table: Parsed survey CSV
        filename: Uploaded file name
        options: Batch settings (already clamped)

    Yields:
        JSON lines terminated by newline
    """
    runner = BatchClassifier(classifier)
    classified_rows = [None] * len(table.rows)

    try:
        async for event in runner.run(table.rows, options):
            if isinstance(event, BatchStarted):
                message = BatchStartEvent(
                    filename=filename,
                    totalRows=event.total_rows,
                    sampleCount=event.sample_count,
                    rowConcurrency=event.row_concurrency,
                )
            elif isinstance(event, RowClassified):
                run_meta = build_run_meta(
                    classifier,
                    options.sample_count,
                    event.result.latency_ms,
                    options,
                    row_concurrency=options.row_concurrency,
                )
                classified_rows[event.row_index - 1] = result_to_row(
                    event.result, run_meta, event.row_index, event.row
                )
                message = BatchProgressEvent(
                    processedRows=event.processed_rows,
                    totalRows=event.total_rows,
                    percent=event.percent,
                    rowIndex=event.row_index,
                    currentLabel=event.result.final_label.value,
                )
            elif isinstance(event, BatchCompleted):
                message = BatchCompleteEvent(payload=BatchPayload(
                    uploadId=str(uuid4()),
                    filename=filename,
                    modelName=get_model_name(),
                    rowConcurrency=options.row_concurrency,
                    headers=table.headers,
                    totalRows=len(table.rows),
                    processedRows=len(event.results),
                    rows=classified_rows,
                ))
            elif isinstance(event, BatchFailed):
                message = BatchErrorEvent(message=event.message)
            else:
                continue

            yield message.model_dump_json() + "\n"

    except Exception as e:
        logger.exception("Batch stream failed")
        yield BatchErrorEvent(message=str(e) or "Failed to classify CSV.").model_dump_json() + "\n"
