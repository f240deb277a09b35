import csv
from pathlib import Path
from typing import List, Optional

import pandas as pd

from core.client_directory import ClientDirectory
from core.session_tracker import SessionTracker


def _write(df: pd.DataFrame, output_path: Optional[str]) -> str:
    """CSV text with every field quoted; also written to output_path when given."""
    if df.empty:
        return ""

    text = df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")
    if output_path:
        target = Path(output_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    return text


def export_clients_csv(client_directory: ClientDirectory,
                       client_ids: Optional[List[str]] = None,
                       output_path: Optional[str] = None) -> str:
    """Client sheet as CSV, optionally limited to client_ids. Columns starting with "_" are internal."""
    df = client_directory.to_dataframe()
    if client_ids is not None:
        df = df[df[client_directory.id_column].astype(str).isin([str(c) for c in client_ids])]

    df = df[[col for col in df.columns if not str(col).startswith("_")]].fillna("")
    return _write(df, output_path)


def export_sessions_csv(session_tracker: SessionTracker,
                        start_date=None,
                        end_date=None,
                        output_path: Optional[str] = None) -> str:
    if start_date and end_date:
        sessions = session_tracker.get_sessions_by_date_range(start_date, end_date)
    else:
        sessions = session_tracker.sessions

    return _write(session_tracker.to_dataframe(sessions), output_path)
