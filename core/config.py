import copy
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from core.title_parser import SESSION_KEYWORDS

DEFAULT_CONFIG: Dict[str, Any] = {
    "version": "1.0.0",
    "paths": {
        "clients_sheet": "data/clients.csv",
        "sessions_sheet": "data/sessions.csv",
        "output_base": "output",
        "reports_subdir": "appointment_reports",
        "logs_dir": "logs",
    },
    "data": {
        "calendar_export_path": "data/calendar_export.csv",
        "form_responses_path": "data/form_responses.csv",
    },
    # Column names of the client sheet
    "spreadsheet": {
        "client_id_column": "ID",
        "client_name_column": "Name",
        "client_goals_column": "Goals",
        "client_email_column": "Email",
        "client_phone_column": "Phone",
        "insurance_column": "Insurance_Provider",
    },
    "calendar": {
        "session_keywords": list(SESSION_KEYWORDS),
        "start_hour": 8,
        "end_hour": 18,
    },
    "matching": {
        "suggestion_threshold": 60,
        "max_suggestions": 5,
    },
    "form": {
        "form_id": "YOUR_GOOGLE_FORM_ID_HERE",
        "base_url": "https://docs.google.com/forms/d/{form_id}/formResponse",
        "therapist_email": "",
    },
    # Domain field name -> form entry id
    "field_mappings": {
        "Client_Name": "entry.123456789",
        "Client_ID": "entry.987654321",
        "Selected_Goal": "entry.456789123",
        "Client_Email": "entry.666666666",
        "Client_Phone": "entry.777777777",
        "Insurance_Provider": "entry.888888888",
        "Session_ID": "entry.202020202",
        "Session_Date": "entry.111111111",
        "Session_Start_Time": "entry.222222222",
        "Session_End_Time": "entry.333333333",
        "Session_Duration": "entry.444444444",
        "Session_Type": "entry.555555555",
        "Session_Location": "entry.999999999",
        "Appointment_Type": "entry.101010101",
        "Last_Session_Date": "entry.121212121",
        "Medical_History": "entry.131313131",
        "Emergency_Contact": "entry.141414141",
        "Session_Notes": "entry.987321654",
        "Therapist_Name": "entry.171717171",
        "Billing_Code": "entry.191919191",
    },
    # Domain field name -> target column and update policy
    "persistent_fields": {
        "Client_Email": {"column": "Email", "update_type": "replace"},
        "Client_Phone": {"column": "Phone", "update_type": "replace"},
        "Insurance_Provider": {"column": "Insurance_Provider", "update_type": "replace"},
        "Medical_History": {"column": "Medical_History", "update_type": "append"},
        "Emergency_Contact": {"column": "Emergency_Contact", "update_type": "replace"},
        "Session_Notes": {"column": "Session_History", "update_type": "append"},
    },
}

UPDATE_TYPES = ("replace", "append")

# Entry ids shipped in the sample configuration; a real form never uses them.
_PLACEHOLDER_PREFIXES = ("entry.123", "entry.456")


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def default_config() -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_CONFIG)


def load_config(config_path: Union[str, Path, None] = None) -> Dict[str, Any]:
    """Load configuration from YAML, layered over the defaults."""
    if config_path is None or not Path(config_path).exists():
        return default_config()

    with open(config_path, 'r') as f:
        loaded = yaml.safe_load(f) or {}

    if not isinstance(loaded, dict):
        raise ValueError(f"Invalid configuration file: {config_path}")

    return _deep_merge(DEFAULT_CONFIG, loaded)


def validate_form_configuration(config: Dict[str, Any]) -> Dict[str, Any]:
    """Check the form id and required entry ids are real values."""
    errors: List[str] = []
    form_id = config.get("form", {}).get("form_id")
    mappings = config.get("field_mappings", {})

    if not form_id or form_id == DEFAULT_CONFIG["form"]["form_id"]:
        errors.append("Form ID not configured")

    for field, label in (("Client_Name", "Client Name"), ("Selected_Goal", "Selected Goal")):
        entry_id = mappings.get(field)
        if not entry_id or entry_id.startswith(_PLACEHOLDER_PREFIXES):
            errors.append(f"{label} field mapping not configured")

    for field, settings in config.get("persistent_fields", {}).items():
        if settings.get("update_type") not in UPDATE_TYPES:
            errors.append(f"Unknown update type for {field}: {settings.get('update_type')}")

    return {"is_valid": not errors, "errors": errors}


def get_configuration_summary(config: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "status": "Configured" if validate_form_configuration(config)["is_valid"] else "Incomplete",
        "field_mappings": len(config.get("field_mappings", {})),
        "persistent_fields": len(config.get("persistent_fields", {})),
        "version": config.get("version", "1.0.0"),
    }
