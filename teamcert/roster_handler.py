"""
Roster Handler Module
Reads registered participants from a spreadsheet or CSV export
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from openpyxl import load_workbook

from teamcert.errors import DataSourceError

logger = logging.getLogger(__name__)

PARTICIPANT_KEYS = ("participantName", "username", "Name", "Full Name", "Participant Name")
TEAM_KEYS = ("teamName", "Team", "Team Name")
ORGANIZATION_KEYS = (
    "organizationName",
    "collegeName",
    "College",
    "Organization",
    "Institution",
    "University",
)

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
CSV_SUFFIXES = {".csv"}


@dataclass(frozen=True)
class RosterRecord:
    """One registered participant row.

    Columns that are not participant, team or organization are kept verbatim
    in ``extra`` and never consulted for matching.
    """

    participant_name: str
    team_name: str
    organization_name: str = ""
    extra: Mapping[str, str] = field(default_factory=dict, compare=False)


def normalize_name(value: Optional[str]) -> str:
    # Collapse internal whitespace and normalize case.
    return " ".join((value or "").strip().lower().split())


def _normalize_key(key: Any) -> str:
    return "".join(ch for ch in str(key or "").strip().lower() if ch.isalnum() or ch == "_")


def _cell_to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        # Spreadsheets store numeric team names as floats.
        return str(int(value))
    return str(value).strip()


def _find_column(headers: Sequence[str], keys: Iterable[str]) -> Optional[int]:
    normalized = [_normalize_key(h) for h in headers]
    for key in keys:
        wanted = _normalize_key(key)
        if wanted in normalized:
            return normalized.index(wanted)
    return None


def records_from_rows(headers: Sequence[Any], rows: Iterable[Sequence[Any]], source: str = "roster") -> List[RosterRecord]:
    """
    Map raw table rows onto roster records

    Args:
        headers: Header row values, in column order
        rows: Data rows, each a sequence aligned with ``headers``
        source: Name used in error messages

    Returns:
        Records in table order; fully blank rows are skipped

    Raises:
        DataSourceError: If the participant or team column is missing
    """
    header_names = [_cell_to_str(h) for h in headers]
    participant_col = _find_column(header_names, PARTICIPANT_KEYS)
    team_col = _find_column(header_names, TEAM_KEYS)
    if participant_col is None or team_col is None:
        raise DataSourceError(
            f"{source} is missing required columns (participant and team name); found: {header_names}"
        )
    organization_col = _find_column(header_names, ORGANIZATION_KEYS)
    known = {participant_col, team_col, organization_col}

    records: List[RosterRecord] = []
    for row in rows:
        values = [_cell_to_str(v) for v in row]
        if not any(values):
            continue
        values += [""] * (len(header_names) - len(values))

        extra: Dict[str, str] = {
            name: values[i]
            for i, name in enumerate(header_names)
            if i not in known and name
        }
        records.append(
            RosterRecord(
                participant_name=values[participant_col],
                team_name=values[team_col],
                organization_name=values[organization_col] if organization_col is not None else "",
                extra=extra,
            )
        )
    return records


def _read_excel(path: Path) -> List[RosterRecord]:
    wb = load_workbook(path, read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        rows = ws.iter_rows(values_only=True)
        headers = next(rows, None)
        if headers is None:
            raise DataSourceError(f"Roster sheet is empty: {path}")
        return records_from_rows(headers, rows, source=str(path))
    finally:
        wb.close()


def _read_csv(path: Path) -> List[RosterRecord]:
    # Use utf-8-sig to tolerate CSVs saved with a BOM (common with Excel/Forms exports)
    with open(path, "r", encoding="utf-8-sig", newline="") as file:
        reader = csv.reader(file)
        headers = next(reader, None)
        if headers is None:
            raise DataSourceError(f"Roster CSV is empty: {path}")
        return records_from_rows(headers, reader, source=str(path))


def load_roster(path: str | Path) -> List[RosterRecord]:
    """
    Read every roster record from ``path``

    Only the first sheet of a workbook is read; the header row becomes the
    field names.

    Raises:
        DataSourceError: If the file is missing, unsupported or unparsable
    """
    roster_path = Path(path)
    if not roster_path.is_file():
        raise DataSourceError(f"Roster file not found: {roster_path}")

    suffix = roster_path.suffix.lower()
    try:
        if suffix in EXCEL_SUFFIXES:
            records = _read_excel(roster_path)
        elif suffix in CSV_SUFFIXES:
            records = _read_csv(roster_path)
        else:
            raise DataSourceError(f"Unsupported roster format: {roster_path.suffix or '(none)'}")
    except DataSourceError:
        raise
    except Exception as e:
        raise DataSourceError(f"Could not read roster {roster_path}: {e}") from e

    logger.info("Loaded %d roster records from %s", len(records), roster_path)
    return records
