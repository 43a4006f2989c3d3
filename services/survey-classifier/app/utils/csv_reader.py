"""
Survey CSV reader
"""
import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, List

import pandas as pd

from ..classifier.models import RawEntry

logger = logging.getLogger(__name__)

DUPLICATE_HEADER_SEPARATOR = "\n---\n"


class SurveyCsvError(ValueError):
    """The uploaded CSV cannot be turned into survey rows"""
    pass


@dataclass
class SurveyRow:
    """One data row keyed by header, plus every cell in column order"""
    raw_data: Dict[str, str]
    raw_entries: List[RawEntry] = field(default_factory=list)


@dataclass
class SurveyTable:
    headers: List[str]
    rows: List[SurveyRow]


def _is_missing(value) -> bool:
    return value is None or (not isinstance(value, str) and pd.isna(value))


def _cell(value) -> str:
    if _is_missing(value):
        return ""
    return str(value).strip()


def _record_cells(record) -> List[str]:
    """Cells of one parsed record, without the padding added for wider rows"""
    values = list(record)
    while values and _is_missing(values[-1]):
        values.pop()
    return [_cell(value) for value in values]


def _max_field_count(text: str) -> int:
    return max((len(record) for record in csv.reader(io.StringIO(text))), default=0)


def build_row(headers: List[str], cells: List[str]) -> SurveyRow:
    """
    Pair cells with headers.

    Blank headers become column_N. Repeated headers are joined in raw_data
    while raw_entries keeps each cell separately.
    """
    raw_data: Dict[str, str] = {}
    raw_entries: List[RawEntry] = []

    for i in range(max(len(headers), len(cells))):
        header = (headers[i] if i < len(headers) else "") or f"column_{i + 1}"
        value = cells[i] if i < len(cells) else ""

        raw_entries.append(RawEntry(header=header, value=value, column_index=i))
        if header not in raw_data:
            raw_data[header] = value
        else:
            raw_data[header] = f"{raw_data[header]}{DUPLICATE_HEADER_SEPARATOR}{value}"

    return SurveyRow(raw_data=raw_data, raw_entries=raw_entries)


class SurveyCsvLoader:
    """CSV loader for survey uploads"""

    def can_load(self, file_name: str) -> bool:
        """Check if file is CSV"""
        return file_name.lower().endswith('.csv')

    def load(self, file_data: bytes) -> SurveyTable:
        """
        Parse survey CSV bytes.

        Args:
            file_data: Raw upload, UTF-8 with or without BOM

        Returns:
            SurveyTable with header row and non-empty data rows

        Raises:
            SurveyCsvError: Empty, unparseable or without valid rows
        """
        try:
            text = file_data.decode("utf-8-sig")
            # Rows may be wider than the header; extra cells become column_N
            width = _max_field_count(text)
            if width == 0:
                raise SurveyCsvError("CSV has no data.")

            df = pd.read_csv(
                io.StringIO(text),
                header=None,
                names=list(range(width)),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
            )
        except pd.errors.EmptyDataError as e:
            raise SurveyCsvError("CSV has no data.") from e
        except (pd.errors.ParserError, csv.Error, UnicodeDecodeError) as e:
            logger.error(f"Failed to parse CSV: {e}")
            raise SurveyCsvError(f"CSV parse error: {e}") from e

        records = [_record_cells(record) for record in df.itertuples(index=False)]
        if not records:
            raise SurveyCsvError("CSV has no data.")

        headers = records[0]
        rows = [build_row(headers, cells) for cells in records[1:]]
        rows = [row for row in rows if any(value for value in row.raw_data.values())]

        if not rows:
            raise SurveyCsvError("CSV has no valid rows.")

        logger.debug(f"Loaded survey CSV: {len(rows)} rows, {len(headers)} columns")
        return SurveyTable(headers=[h or f"column_{i + 1}" for i, h in enumerate(headers)], rows=rows)
