from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from core.errors import FormDataError
from core.title_parser import format_clock
from models.appointment import Appointment
from models.client import Client
from models.session_context import SessionContext

_TELEHEALTH_WORDS = ("zoom", "teams", "telehealth", "video")
_PHONE_WORDS = ("phone", "call")

# Title keywords checked in order; first hit wins
_APPOINTMENT_TYPES = (
    (("initial", "intake", "first"), "Initial"),
    (("crisis", "emergency", "urgent"), "Crisis"),
    (("family", "couple"), "Family/Couple"),
    (("group",), "Group"),
)

# (max duration in minutes, billing code)
_BILLING_CODES = ((30, "90834"), (45, "90837"), (60, "90834"))
_EXTENDED_BILLING_CODE = "90837"


def validate_client(client: Any) -> bool:
    return (
        isinstance(client, Client)
        and client.client_id.strip() != ""
        and client.name.strip() != ""
    )


def determine_session_location(location: Optional[str]) -> str:
    if not location:
        return "In-Person"

    location_lower = location.lower()
    if any(word in location_lower for word in _TELEHEALTH_WORDS):
        return "Telehealth"
    if any(word in location_lower for word in _PHONE_WORDS):
        return "Phone"
    return "In-Person"


def infer_appointment_type(appointment: Appointment, last_session_date: Optional[str] = None) -> str:
    """Type from title keywords; otherwise Initial for a client with no history."""
    title = appointment.title.lower()
    for words, appointment_type in _APPOINTMENT_TYPES:
        if any(word in title for word in words):
            return appointment_type

    return "Follow-up" if last_session_date else "Initial"


def determine_billing_code(appointment: Appointment) -> str:
    duration = appointment.duration_minutes
    for max_minutes, code in _BILLING_CODES:
        if duration <= max_minutes:
            return code
    return _EXTENDED_BILLING_CODE


def therapist_name_from_email(email: str) -> str:
    """jane.smith@clinic.org -> Jane Smith"""
    if not email:
        return ""
    name_part = email.split("@")[0].replace(".", " ").replace("_", " ")
    return " ".join(word[:1].upper() + word[1:] for word in name_part.split(" "))


def form_base_url(config: Dict[str, Any]) -> str:
    form_config = config.get("form", {})
    return form_config.get("base_url", "").format(form_id=form_config.get("form_id", ""))


def prefilled_fields(context: SessionContext,
                     config: Dict[str, Any],
                     prefill: Optional[Dict[str, Any]] = None) -> List[Tuple[str, str]]:
    """Domain field name and value pairs to pre-populate, in form order."""
    prefill = prefill or {}
    client = context.client
    insurance_column = config.get("spreadsheet", {}).get("insurance_column", "Insurance_Provider")

    fields = [
        ("Client_Name", client.name),
        ("Client_ID", client.client_id),
        ("Selected_Goal", context.goal),
        ("Client_Email", client.email or ""),
        ("Client_Phone", client.phone or ""),
        ("Session_ID", context.session_id or ""),
    ]

    appointment = context.appointment
    if appointment is not None:
        fields.extend([
            ("Session_Date", appointment.start_time.date().isoformat()),
            ("Session_Start_Time", format_clock(appointment.start_time)),
            ("Session_End_Time", format_clock(appointment.end_time)),
            ("Session_Duration", f"{appointment.duration_minutes} minutes"),
            ("Session_Location", determine_session_location(appointment.location) if appointment.location else ""),
            ("Appointment_Type", infer_appointment_type(appointment, prefill.get("last_session_date"))),
        ])
    else:
        fields.append(("Session_Date", datetime.now().date().isoformat()))

    fields.extend([
        ("Last_Session_Date", prefill.get("last_session_date", "")),
        ("Insurance_Provider", client.field(insurance_column)),
        ("Therapist_Name", therapist_name_from_email(config.get("form", {}).get("therapist_email", ""))),
        ("Billing_Code", determine_billing_code(appointment) if appointment is not None else ""),
    ])

    return [(field, value) for field, value in fields if value]


def build_prefilled_url(context: Any,
                        config: Dict[str, Any],
                        prefill: Optional[Dict[str, Any]] = None) -> str:
    """Form URL with the session's known answers filled in. Unmapped fields are skipped."""
    if not isinstance(context, SessionContext) or not context.goal or not context.goal.strip():
        raise FormDataError("Invalid session data provided")
    if not validate_client(context.client):
        raise FormDataError("Invalid client data provided")

    mappings = config.get("field_mappings", {})
    params = [
        f"{mappings[field]}={quote(str(value), safe='')}"
        for field, value in prefilled_fields(context, config, prefill)
        if mappings.get(field)
    ]
    return f"{form_base_url(config)}?{'&'.join(params)}"
