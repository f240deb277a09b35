from datetime import datetime, timedelta

import pytest

from core.client_directory import ClientDirectory
from core.config import default_config
from core.title_parser import extract_client_from_title
from models.appointment import Appointment


def _appointment(title: str,
                 start: datetime = datetime(2026, 3, 2, 9, 0),
                 minutes: int = 50,
                 **fields) -> Appointment:
    extracted = extract_client_from_title(title)
    fields.setdefault("appointment_id", f"evt-{start:%Y%m%d%H%M}")
    return Appointment(
        title=title,
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        extracted_client_id=extracted.client_id,
        extracted_client_name=extracted.name,
        **fields,
    )


@pytest.fixture
def make_appointment():
    return _appointment


@pytest.fixture
def config(tmp_path):
    config = default_config()
    config["paths"]["logs_dir"] = str(tmp_path / "logs")
    return config


@pytest.fixture
def client_rows():
    return [
        {
            "ID": "C001",
            "Name": "John Doe",
            "Email": "john@example.com",
            "Phone": "555-0101",
            "Goals": "Reduce anxiety|Improve sleep",
            "Insurance_Provider": "Aetna",
            "Medical_History": "",
            "Session_History": "",
        },
        {
            "ID": "C002",
            "Name": "Jane Smith",
            "Email": "",
            "Phone": "",
            "Goals": "",
            "Insurance_Provider": "",
            "Medical_History": "Asthma",
            "Session_History": "",
        },
    ]


@pytest.fixture
def directory(config, client_rows):
    return ClientDirectory(config, rows=client_rows)
