from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

import pandas as pd
from tqdm import tqdm

from core.title_parser import extract_client_from_title, generate_event_id, is_session_event
from importers.base_importer import BaseAppointmentImporter
from models.appointment import Appointment

_TRUE_VALUES = {"true", "yes", "y", "1"}


def _text(row: pd.Series, column: str) -> str:
    value = row.get(column, "")
    if value is None or pd.isna(value):
        return ""
    return str(value).strip()


def _flag(row: pd.Series, column: str) -> bool:
    return _text(row, column).lower() in _TRUE_VALUES


def _split_attendees(value: str) -> List[str]:
    return [part.strip() for part in value.replace(";", ",").split(",") if part.strip()]


class CalendarCsvImporter(BaseAppointmentImporter):
    """Calendar export CSV importer."""

    required_columns = ['Subject', 'Start', 'End']

    def __init__(self,
                 config: Dict[str, Any],
                 matcher,
                 session_tracker=None,
                 start_date: Optional[date] = None,
                 end_date: Optional[date] = None):
        super().__init__(config, matcher, session_tracker)
        self.calendar_config = config.get("calendar", {})
        self.start_date = start_date
        self.end_date = end_date

    def _get_source_name(self) -> str:
        return "calendar"

    def validate_source(self, source_path: str) -> bool:
        """Validate calendar export CSV."""
        path = Path(source_path)
        if not path.exists():
            return False

        if not path.suffix.lower() in ['.csv']:
            return False

        try:
            df = pd.read_csv(source_path, nrows=1)
            return all(col in df.columns for col in self.required_columns)
        except Exception:
            return False

    def _in_range(self, start_time: datetime) -> bool:
        if self.start_date and start_time.date() < self.start_date:
            return False
        if self.end_date and start_time.date() > self.end_date:
            return False
        return True

    def extract_appointments(self, source_path: str) -> List[Appointment]:
        """Session appointments from the export, deduplicated and sorted by start time."""
        df = pd.read_csv(source_path, dtype=str, keep_default_na=False)
        appointments = []
        seen: Set[Tuple[datetime, str]] = set()
        skipped = 0

        for idx, row in tqdm(df.iterrows(), total=len(df), desc="Processing calendar events", unit="event"):
            try:
                title = _text(row, 'Subject')
                description = _text(row, 'Description')
                start_value = pd.to_datetime(_text(row, 'Start'))
                end_value = pd.to_datetime(_text(row, 'End'))
                if pd.isna(start_value) or pd.isna(end_value):
                    raise ValueError("missing start or end time")
                start_time = start_value.to_pydatetime()
                end_time = end_value.to_pydatetime()

                if not is_session_event(title, description, start_time, _flag(row, 'All Day'), self.calendar_config):
                    skipped += 1
                    continue

                if not self._in_range(start_time):
                    skipped += 1
                    continue

                # Recurring events can be exported more than once
                key = (start_time, title)
                if key in seen:
                    continue
                seen.add(key)

                extracted = extract_client_from_title(title)
                appointments.append(Appointment(
                    appointment_id=_text(row, 'Event ID') or generate_event_id(start_time, title),
                    title=title,
                    start_time=start_time,
                    end_time=end_time,
                    description=description,
                    location=_text(row, 'Location') or None,
                    attendees=_split_attendees(_text(row, 'Attendees')),
                    is_recurring=_flag(row, 'Recurring'),
                    extracted_client_id=extracted.client_id,
                    extracted_client_name=extracted.name,
                ))

            except Exception as e:
                # Log error but continue processing
                self.logger.warning(f"Error processing calendar row {idx + 2}: {e}")
                continue

        self.logger.info(f"Skipped {skipped} non-session events")
        return sorted(appointments, key=lambda appointment: appointment.start_time)
