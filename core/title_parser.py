import re
from datetime import datetime
from typing import Any, Dict, NamedTuple, Optional, Sequence

SESSION_KEYWORDS = (
    "therapy", "session", "counseling", "appointment",
    "meeting", "consultation", "treatment",
)

_CLIENT_ID = re.compile(r"\(([A-Z0-9]+)\)")
_PARENTHESES = re.compile(r"\([^)]*\)")


def _keyword_patterns(keywords: Sequence[str]):
    alternation = "|".join(re.escape(keyword) for keyword in keywords)
    dash_keyword = re.compile(rf"\s*-\s*({alternation})\s*", re.IGNORECASE)
    keyword_dash = re.compile(rf"\s*({alternation})\s*-?\s*", re.IGNORECASE)
    return dash_keyword, keyword_dash


_DEFAULT_PATTERNS = _keyword_patterns(SESSION_KEYWORDS)


class ExtractedClient(NamedTuple):
    name: str
    client_id: str


def extract_client_from_title(title: Any) -> ExtractedClient:
    """
    Best-effort client name and id from an appointment title.

    Handles titles such as "Therapy Session - John Doe", "John Doe - Therapy"
    and "John Doe (C001)". If stripping keywords leaves
    nothing, the untouched title is used as the name.
    """
    if not title or not isinstance(title, str):
        return ExtractedClient(name="", client_id="")

    id_match = _CLIENT_ID.search(title)
    client_id = id_match.group(1) if id_match else ""

    dash_keyword, keyword_dash = _DEFAULT_PATTERNS
    cleaned = dash_keyword.sub("", title)
    cleaned = keyword_dash.sub("", cleaned)
    cleaned = _PARENTHESES.sub("", cleaned).strip()

    return ExtractedClient(name=cleaned or title, client_id=client_id)


def is_session_event(title: Optional[str],
                     description: Optional[str],
                     start_time: Optional[datetime],
                     all_day: bool,
                     calendar_config: Dict[str, Any]) -> bool:
    """Keyword in title/description, starts inside business hours, not all-day."""
    if not title or start_time is None or all_day:
        return False

    keywords = calendar_config.get("session_keywords", SESSION_KEYWORDS)
    start_hour = calendar_config.get("start_hour", 8)
    end_hour = calendar_config.get("end_hour", 18)

    title_lower = title.lower()
    description_lower = (description or "").lower()
    has_keyword = any(
        keyword in title_lower or keyword in description_lower
        for keyword in keywords
    )

    return has_keyword and start_hour <= start_time.hour < end_hour


def format_clock(value: datetime) -> str:
    return value.strftime("%I:%M %p").lstrip("0")


def format_time_range(start_time: datetime, end_time: datetime) -> str:
    """Format as "9:00 AM - 9:50 AM"."""
    return f"{format_clock(start_time)} - {format_clock(end_time)}"


def generate_event_id(start_time: datetime, title: str) -> str:
    """Stable id for exports that carry no event id."""
    title_hash = 0
    for char in title:
        title_hash = ((title_hash << 5) - title_hash + ord(char)) & 0xFFFFFFFF
    timestamp = int(start_time.timestamp() * 1000)
    return f"generated_{timestamp}_{title_hash}"
