import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
from tqdm import tqdm

logger = logging.getLogger(__name__)


class FormResponseImporter:
    """Form responses CSV importer.

    Each row becomes a flat mapping of ``id``, ``timestamp`` and the
    ``entry.*`` answer columns, which is the shape the form response
    processor reads.
    """

    required_columns = ['id', 'timestamp']

    def __init__(self, last_processed: Optional[datetime] = None):
        self.last_processed = last_processed
        self.latest_timestamp: Optional[datetime] = last_processed

    def validate_source(self, source_path: str) -> bool:
        path = Path(source_path)
        if not path.exists() or path.suffix.lower() != '.csv':
            return False

        try:
            df = pd.read_csv(source_path, nrows=1)
            return all(col in df.columns for col in self.required_columns)
        except Exception:
            return False

    def extract_responses(self, source_path: str) -> List[Dict[str, Any]]:
        """Responses newer than ``last_processed``, oldest first."""
        if not self.validate_source(source_path):
            raise ValueError(f"Invalid source: {source_path}")

        df = pd.read_csv(source_path, dtype=str, keep_default_na=False)
        entry_columns = [col for col in df.columns if col.startswith('entry.')]
        responses = []

        for idx, row in tqdm(df.iterrows(), total=len(df), desc="Processing form responses", unit="response"):
            try:
                parsed = pd.to_datetime(row['timestamp'])
            except (ValueError, TypeError) as e:
                logger.warning(f"Skipping response row {idx + 2}: {e}")
                continue
            if pd.isna(parsed):
                logger.warning(f"Skipping response row {idx + 2}: missing timestamp")
                continue
            timestamp = parsed.to_pydatetime()

            if self.last_processed is not None and timestamp <= self.last_processed:
                continue

            response: Dict[str, Any] = {'id': row['id'], 'timestamp': timestamp}
            for col in entry_columns:
                if row[col] != "":
                    response[col] = row[col]
            responses.append(response)

            if self.latest_timestamp is None or timestamp > self.latest_timestamp:
                self.latest_timestamp = timestamp

        logger.info(f"Extracted {len(responses)} new form responses from {source_path}")
        return sorted(responses, key=lambda response: response['timestamp'])
