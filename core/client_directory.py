import logging
import random
import re
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from core import delimited_list
from core.errors import ClientNotFoundError
from models.client import Client
from models.validation import ClientValidation

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_PATTERN = re.compile(r"^[\d\s\-()+]+$")


class ClientDirectory:
    """Client sheet loaded into memory, with lookups and row updates."""

    def __init__(self,
                 config: Dict[str, Any],
                 source_path: Optional[str] = None,
                 rows: Optional[List[Dict[str, Any]]] = None):
        self.config = config
        self.columns = config.get("spreadsheet", {})
        self.source_path = source_path
        self.id_column = self.columns.get("client_id_column", "ID")
        self.name_column = self.columns.get("client_name_column", "Name")
        self.goals_column = self.columns.get("client_goals_column", "Goals")
        self.email_column = self.columns.get("client_email_column", "Email")
        self.phone_column = self.columns.get("client_phone_column", "Phone")
        self.insurance_column = self.columns.get("insurance_column", "Insurance_Provider")

        self._rows: Optional[List[Dict[str, Any]]] = None
        self._headers: List[str] = []
        self._client_cache: Optional[List[Client]] = None
        self._id_index: Dict[str, Client] = {}
        self._name_index: Dict[str, Client] = {}

        if rows is not None:
            self._set_rows([dict(row) for row in rows])

    def load_clients(self) -> List[Client]:
        """Load and cache the client sheet."""
        if self._rows is None:
            self._set_rows(self._read_sheet())
        if self._client_cache is None:
            self._build_indices()
        return self._client_cache

    def _read_sheet(self) -> List[Dict[str, Any]]:
        if not self.source_path or not Path(self.source_path).exists():
            logger.warning(f"Client sheet not found: {self.source_path}")
            return []

        path = Path(self.source_path)
        if path.suffix.lower() in ['.xlsx', '.xls']:
            df = pd.read_excel(path, dtype=str).fillna("")
        else:
            df = pd.read_csv(path, dtype=str, keep_default_na=False)

        self._headers = [str(column) for column in df.columns]
        return df.to_dict(orient="records")

    def _set_rows(self, rows: List[Dict[str, Any]]) -> None:
        self._rows = rows
        for row in rows:
            for column in row:
                if column not in self._headers:
                    self._headers.append(column)
        for column in (self.id_column, self.name_column):
            if column not in self._headers:
                self._headers.append(column)
        self._client_cache = None

    def _build_indices(self) -> None:
        """Build lookup indices for id and name."""
        self._client_cache = []
        self._id_index = {}
        self._name_index = {}

        for position, row in enumerate(self._rows or []):
            client = self._row_to_client(row, position)
            self._client_cache.append(client)

            id_key = client.client_id.lower()
            if id_key and id_key not in self._id_index:
                self._id_index[id_key] = client

            name_key = client.name.lower()
            if name_key and name_key not in self._name_index:
                self._name_index[name_key] = client

    def _row_to_client(self, row: Dict[str, Any], position: int) -> Client:
        def text(column: str) -> str:
            value = row.get(column)
            return "" if value is None else str(value).strip()

        return Client(
            client_id=text(self.id_column),
            name=text(self.name_column),
            email=text(self.email_column) or None,
            phone=text(self.phone_column) or None,
            attributes=dict(row),
            row_number=position + 2,  # header is row 1
        )

    @property
    def headers(self) -> List[str]:
        self.load_clients()
        return list(self._headers)

    def list_clients(self) -> List[Client]:
        return list(self.load_clients())

    def get_client_by_id(self, client_id: Any) -> Optional[Client]:
        if client_id is None or str(client_id).strip() == "":
            return None
        self.load_clients()
        return self._id_index.get(str(client_id).strip().lower())

    def require_client(self, client_id: Any) -> Client:
        client = self.get_client_by_id(client_id)
        if client is None:
            raise ClientNotFoundError(client_id)
        return client

    def get_client_by_name(self, client_name: Any) -> Optional[Client]:
        if not client_name or not isinstance(client_name, str):
            return None
        self.load_clients()
        return self._name_index.get(client_name.strip().lower())

    def search_clients(self, search_term: Any, exact_match: bool = False) -> List[Client]:
        """Search by id or name, case-insensitively."""
        if not search_term or not isinstance(search_term, str):
            return []

        term = search_term.strip().lower()
        results = []
        for client in self.load_clients():
            client_id = client.client_id.lower()
            name = client.name.lower()
            if exact_match:
                hit = client_id == term or name == term
            else:
                hit = term in client_id or term in name
            if hit:
                results.append(client)
        return results

    def get_client_goals(self, client_id: str) -> List[str]:
        client = self.get_client_by_id(client_id)
        if client is None:
            return []
        return delimited_list.parse(client.field(self.goals_column))

    def update_client(self, client_id: Any, field_map: Dict[str, Any]) -> bool:
        """Write values into the client's row. Columns not in the sheet are ignored."""
        if not client_id or not isinstance(field_map, dict) or not field_map:
            return False

        client = self.get_client_by_id(client_id)
        if client is None:
            logger.warning(f"Cannot update client {client_id}: not found")
            return False

        row = self._rows[client.row_number - 2]
        updated = {}
        for column, value in field_map.items():
            if column in self._headers:
                row[column] = value
                updated[column] = value

        self._client_cache = None
        logger.info(f"Updated client {client_id}: {sorted(updated)}")
        return True

    def add_client(self, client_data: Dict[str, Any]) -> Optional[str]:
        """Append a client row and return its id (generated when missing)."""
        if not isinstance(client_data, dict):
            return None

        self.load_clients()
        data = dict(client_data)
        if not str(data.get(self.id_column, "")).strip():
            data[self.id_column] = self.generate_client_id()

        row = {header: data.get(header, "") for header in self._headers}
        self._rows.append(row)
        self._client_cache = None

        new_id = str(data[self.id_column])
        logger.info(f"Added new client: {new_id}")
        return new_id

    def generate_client_id(self, max_attempts: int = 100) -> str:
        """Generate an id in the form C-YYYYMMDD-NNN."""
        existing = {client.client_id.lower() for client in self.load_clients()}
        date_str = datetime.now().strftime("%Y%m%d")

        for _ in range(max_attempts):
            new_id = f"C-{date_str}-{random.randint(0, 999):03d}"
            if new_id.lower() not in existing:
                return new_id

        return f"C-{int(time.time() * 1000)}"

    def validate_client_data(self, client_data: Any) -> ClientValidation:
        errors = []
        warnings = []

        if not isinstance(client_data, dict):
            return ClientValidation(valid=False, errors=["Client data must be a mapping"])

        if not str(client_data.get(self.name_column, "") or "").strip():
            errors.append(f"{self.name_column} is required")

        email = client_data.get(self.email_column)
        if email and not _EMAIL_PATTERN.match(str(email)):
            errors.append("Invalid email format")

        phone = client_data.get(self.phone_column)
        if phone and not _PHONE_PATTERN.match(str(phone)):
            warnings.append("Phone number format may be invalid")

        goals = client_data.get(self.goals_column)
        if goals:
            goals_validation = delimited_list.validate(goals)
            if not goals_validation.valid:
                warnings.append("Goals format issues: " + ", ".join(goals_validation.issues))

        return ClientValidation(valid=not errors, errors=errors, warnings=warnings)

    def get_client_statistics(self) -> Dict[str, Any]:
        clients = self.load_clients()
        stats = {
            "total_clients": len(clients),
            "clients_with_email": 0,
            "clients_with_phone": 0,
            "clients_with_goals": 0,
            "total_goals": 0,
            "avg_goals_per_client": 0.0,
            "insurance_providers": {},
        }

        for client in clients:
            if client.email:
                stats["clients_with_email"] += 1
            if client.phone:
                stats["clients_with_phone"] += 1

            goals = delimited_list.parse(client.field(self.goals_column))
            if goals:
                stats["clients_with_goals"] += 1
                stats["total_goals"] += len(goals)

            insurance = client.field(self.insurance_column)
            if insurance:
                providers = stats["insurance_providers"]
                providers[insurance] = providers.get(insurance, 0) + 1

        if stats["clients_with_goals"]:
            stats["avg_goals_per_client"] = round(stats["total_goals"] / stats["clients_with_goals"], 2)

        return stats

    def to_dataframe(self) -> pd.DataFrame:
        self.load_clients()
        return pd.DataFrame(self._rows, columns=self._headers)

    def save(self, output_path: Optional[str] = None) -> str:
        """Write the sheet back to CSV or XLSX."""
        if not (output_path or self.source_path):
            raise ValueError("No output path for client sheet")
        target = Path(output_path or self.source_path)
        target.parent.mkdir(parents=True, exist_ok=True)

        df = self.to_dataframe()
        if target.suffix.lower() in ['.xlsx', '.xls']:
            df.to_excel(target, index=False)
        else:
            df.to_csv(target, index=False)

        logger.info(f"Saved {len(df)} clients to {target}")
        return str(target)
