"""
Batch runner - classifies many survey rows with a pool of workers
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional, Sequence, Union

from ..utils.csv_reader import SurveyRow
from .engine import SelfConsistencyClassifier
from .models import ClassifierInput, ClassifierResult
from .normalizer import normalize_survey_row

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchOptions:
    sample_count: int = 3
    row_concurrency: int = 4
    user_criteria: Optional[str] = None
    core_value: Optional[str] = None
    abuser_criteria: Optional[str] = None
    discovery_criteria: Optional[str] = None


@dataclass(frozen=True)
class BatchStarted:
    total_rows: int
    sample_count: int
    row_concurrency: int


@dataclass(frozen=True)
class RowClassified:
    row_index: int          # 1-based
    row: SurveyRow
    result: ClassifierResult
    processed_rows: int
    total_rows: int

    @property
    def percent(self) -> float:
        return round(self.processed_rows / self.total_rows * 100, 1)


@dataclass(frozen=True)
class BatchCompleted:
    results: List[ClassifierResult]


@dataclass(frozen=True)
class BatchFailed:
    message: str


BatchEvent = Union[BatchStarted, RowClassified, BatchCompleted, BatchFailed]


def build_classifier_input(row: SurveyRow, row_index: int, options: BatchOptions) -> ClassifierInput:
    return ClassifierInput(
        row_index=row_index,
        normalized=normalize_survey_row(row.raw_data),
        raw_data=row.raw_data,
        raw_entries=row.raw_entries,
        user_criteria=options.user_criteria or None,
        core_value=options.core_value or None,
        abuser_criteria=options.abuser_criteria or None,
        discovery_criteria=options.discovery_criteria or None,
    )


class BatchClassifier:
    """Runs full self-consistency classification for every row"""

    def __init__(self, classifier: SelfConsistencyClassifier):
        self.classifier = classifier

    async def run(self, rows: Sequence[SurveyRow], options: BatchOptions) -> AsyncIterator[BatchEvent]:
        """
        Classify rows and stream progress.

        Each worker claims the next unclaimed row and classifies it to
        completion before claiming another. The first failure stops the
        batch and is reported as a single BatchFailed event.

        Args:
            rows: Survey rows in input order
            options: Sampling, concurrency and criteria settings

        Yields:
            BatchStarted, one RowClassified per row, then BatchCompleted
            (or BatchFailed)
        """
        total = len(rows)
        yield BatchStarted(
            total_rows=total,
            sample_count=options.sample_count,
            row_concurrency=options.row_concurrency,
        )

        results: List[Optional[ClassifierResult]] = [None] * total
        events: asyncio.Queue = asyncio.Queue()
        next_index = 0
        processed = 0

        async def worker():
            nonlocal next_index, processed
            while True:
                current = next_index
                next_index += 1
                if current >= total:
                    return

                classifier_input = build_classifier_input(rows[current], current + 1, options)
                result = await self.classifier.classify(classifier_input, options.sample_count)
                results[current] = result
                processed += 1
                await events.put(RowClassified(
                    row_index=current + 1,
                    row=rows[current],
                    result=result,
                    processed_rows=processed,
                    total_rows=total,
                ))

        worker_count = max(1, min(options.row_concurrency, total))
        workers = [asyncio.ensure_future(worker()) for _ in range(worker_count)]
        all_done = asyncio.ensure_future(asyncio.gather(*workers))
        logger.info(f"Batch started: {total} rows, {worker_count} workers")

        try:
            while True:
                next_event = asyncio.ensure_future(events.get())
                await asyncio.wait({next_event, all_done}, return_when=asyncio.FIRST_COMPLETED)
                if next_event.done():
                    yield next_event.result()
                    continue
                next_event.cancel()
                break

            while not events.empty():
                yield events.get_nowait()

            error = all_done.exception()
            if error is not None:
                logger.error(f"Batch failed after {processed}/{total} rows: {error}")
                yield BatchFailed(message=str(error) or "Failed to classify CSV.")
                return

            logger.info(f"Batch complete: {total} rows")
            yield BatchCompleted(results=list(results))
        finally:
            for task in workers:
                task.cancel()
            await asyncio.gather(*workers, all_done, return_exceptions=True)
