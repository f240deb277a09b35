import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from core import delimited_list
from core.client_directory import ClientDirectory
from core.session_tracker import SessionTracker
from models.form_processing import FormProcessingEntry
from models.session_record import SessionStatus

logger = logging.getLogger(__name__)

# Form fields that identify the client, in lookup order
CLIENT_ID_FIELDS = ("Client_ID", "CLIENT_ID")
CLIENT_NAME_FIELDS = ("Client_Name", "CLIENT_NAME")
SESSION_ID_FIELDS = ("Session_ID", "SESSION_ID")
NOTES_FIELDS = ("Session_Notes", "SESSION_NOTES", "Notes", "NOTES")


class FormResponseProcessor:
    """Writes completed form answers back to the client sheet and closes the session."""

    def __init__(self,
                 config: Dict[str, Any],
                 client_directory: ClientDirectory,
                 session_tracker: Optional[SessionTracker] = None):
        self.config = config
        self.client_directory = client_directory
        self.session_tracker = session_tracker
        self.field_mappings: Dict[str, str] = config.get("field_mappings", {})
        self.persistent_fields: Dict[str, Dict[str, str]] = config.get("persistent_fields", {})
        self.processing_log: List[FormProcessingEntry] = []

    def _value(self, response: Dict[str, Any], field: str) -> Optional[str]:
        entry_id = self.field_mappings.get(field)
        if not entry_id:
            return None
        value = response.get(entry_id)
        if value is None or value == "":
            return None
        return str(value)

    def _first_value(self, response: Dict[str, Any], fields: Tuple[str, ...]) -> Optional[str]:
        for field in fields:
            value = self._value(response, field)
            if value:
                return value
        return None

    def extract_client_id(self, response: Dict[str, Any]) -> Optional[str]:
        """Client id field first, then the client name resolved through the directory."""
        client_id = self._first_value(response, CLIENT_ID_FIELDS)
        if client_id:
            client = self.client_directory.get_client_by_id(client_id)
            return client.client_id if client is not None else client_id

        for field in CLIENT_NAME_FIELDS:
            name = self._value(response, field)
            if not name:
                continue
            client = self.client_directory.get_client_by_name(name)
            if client is not None:
                return client.client_id
        return None

    def extract_session_id(self, response: Dict[str, Any]) -> Optional[str]:
        return self._first_value(response, SESSION_ID_FIELDS)

    def extract_session_notes(self, response: Dict[str, Any]) -> str:
        return self._first_value(response, NOTES_FIELDS) or ""

    def split_updates(self, response: Dict[str, Any]) -> Tuple[Dict[str, str], Dict[str, str]]:
        """Persistent field values grouped into (replace, append) by target column."""
        replace_data: Dict[str, str] = {}
        append_data: Dict[str, str] = {}

        for field, settings in self.persistent_fields.items():
            value = self._value(response, field)
            if value is None:
                continue
            column = settings.get("column", field)
            if settings.get("update_type") == "replace":
                replace_data[column] = value
            elif settings.get("update_type") == "append":
                append_data[column] = value

        return replace_data, append_data

    def append_to_client_data(self, client_id: str, append_data: Dict[str, str]) -> bool:
        """Add dated entries to accumulating columns; repeats are kept."""
        if not append_data:
            return True

        client = self.client_directory.get_client_by_id(client_id)
        if client is None:
            logger.warning(f"Cannot append form data: client {client_id} not found")
            return False

        stamp = datetime.now().strftime("%Y-%m-%d")
        updates = {}
        for column, value in append_data.items():
            entry = f"[{stamp}] {value}"
            updates[column] = delimited_list.add(client.field(column), entry, allow_duplicates=True)

        return self.client_directory.update_client(client_id, updates)

    def process_form_response(self, response: Any) -> bool:
        """Apply one submitted form response. Returns False instead of raising."""
        if not isinstance(response, dict) or not response:
            logger.warning("Invalid form response data")
            return False

        client_id = self.extract_client_id(response)
        if not client_id:
            logger.warning("Could not extract client ID from form response")
            self.log_form_processing(response, None, None, False, "Client not identified")
            return False

        session_id = self.extract_session_id(response)
        replace_data, append_data = self.split_updates(response)

        success = True
        if replace_data:
            success = self.client_directory.update_client(client_id, replace_data)
        if success and append_data:
            success = self.append_to_client_data(client_id, append_data)

        if success and session_id and self.session_tracker is not None:
            self.session_tracker.update_session_status(
                session_id,
                SessionStatus.COMPLETED,
                Form_Response_ID=response.get("id", ""),
                Notes=self.extract_session_notes(response),
            )

        self.log_form_processing(
            response, client_id, session_id, success,
            None if success else "Client update failed",
        )
        return success

    def process_responses(self, responses: List[Dict[str, Any]]) -> int:
        processed = 0
        for response in responses:
            if self.process_form_response(response):
                processed += 1
        return processed

    def log_form_processing(self,
                            response: Dict[str, Any],
                            client_id: Optional[str],
                            session_id: Optional[str],
                            success: bool,
                            error_message: Optional[str] = None) -> FormProcessingEntry:
        entry = FormProcessingEntry(
            timestamp=datetime.now(),
            form_response_id=str(response.get("id") or "unknown"),
            client_id=client_id or "unknown",
            session_id=session_id or "none",
            success=success,
            error_message=error_message,
        )
        self.processing_log.append(entry)
        logger.info(
            f"Form processing: response={entry.form_response_id} client={entry.client_id} "
            f"session={entry.session_id} success={entry.success}"
        )
        return entry

    def get_processing_statistics(self,
                                  start_date: Optional[datetime] = None,
                                  end_date: Optional[datetime] = None) -> Dict[str, Any]:
        entries = [
            entry for entry in self.processing_log
            if (start_date is None or entry.timestamp >= start_date)
            and (end_date is None or entry.timestamp <= end_date)
        ]
        total = len(entries)
        successful = sum(1 for entry in entries if entry.success)

        return {
            "total_processed": total,
            "successful_processed": successful,
            "failed_processed": total - successful,
            "success_rate": round(successful / total * 100) if total else 0,
        }
