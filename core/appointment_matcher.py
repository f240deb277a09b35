from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence

from fuzzywuzzy import fuzz

from core.client_directory import ClientDirectory
from models.appointment import Appointment
from models.client import Client
from models.match_result import Confidence, MatchResult


def _normalize(value: Any) -> str:
    return value.strip().lower() if isinstance(value, str) else ""


def _client_id(client: Any) -> str:
    return _normalize(getattr(client, "client_id", None))


def _client_name(client: Any) -> str:
    return _normalize(getattr(client, "name", None))


def _names_overlap(extracted_name: str, client_name: str) -> bool:
    return extracted_name in client_name or client_name in extracted_name


def _by_client_id(appointment: Appointment, clients: Sequence[Client]) -> Optional[Client]:
    extracted_id = _normalize(getattr(appointment, "extracted_client_id", None))
    if not extracted_id:
        return None
    return next((c for c in clients if _client_id(c) == extracted_id), None)


def _by_exact_name(appointment: Appointment, clients: Sequence[Client]) -> Optional[Client]:
    extracted_name = _normalize(getattr(appointment, "extracted_client_name", None))
    if not extracted_name:
        return None
    return next((c for c in clients if _client_name(c) == extracted_name), None)


def _by_partial_name(appointment: Appointment, clients: Sequence[Client]) -> Optional[Client]:
    extracted_name = _normalize(getattr(appointment, "extracted_client_name", None))
    if not extracted_name:
        return None
    return next(
        (c for c in clients if _client_name(c) and _names_overlap(extracted_name, _client_name(c))),
        None,
    )


class MatchStrategy(NamedTuple):
    method: str
    find: Callable[[Appointment, Sequence[Client]], Optional[Client]]


# Priority cascade: first strategy that returns a client wins; ties inside a
# strategy go to the earliest client in list order.
MATCH_STRATEGIES: List[MatchStrategy] = [
    MatchStrategy("exact_client_id", _by_client_id),
    MatchStrategy("exact_name", _by_exact_name),
    MatchStrategy("partial_name", _by_partial_name),
]


def calculate_match_confidence(appointment: Any, client: Optional[Any]) -> Confidence:
    """
    Canonical confidence for an (appointment, client) pair.

    Identifier or exact name equality is high, name containment in either
    direction is medium, any other pairing is low, no client is none.
    """
    if client is None:
        return Confidence.NONE

    extracted_id = _normalize(getattr(appointment, "extracted_client_id", None))
    extracted_name = _normalize(getattr(appointment, "extracted_client_name", None))
    client_id = _client_id(client)
    client_name = _client_name(client)

    if extracted_id and client_id and extracted_id == client_id:
        return Confidence.HIGH

    if extracted_name and client_name:
        if extracted_name == client_name:
            return Confidence.HIGH
        if _names_overlap(extracted_name, client_name):
            return Confidence.MEDIUM

    return Confidence.LOW


def match_appointment(appointment: Any, clients: Any) -> MatchResult:
    """Resolve an appointment to at most one client. Never raises."""
    if not isinstance(clients, (list, tuple)):
        clients = []
    candidates = [c for c in clients if isinstance(c, Client)]
    source = appointment if isinstance(appointment, Appointment) else None

    if appointment is None or not candidates:
        return MatchResult(appointment=source)

    for strategy in MATCH_STRATEGIES:
        client = strategy.find(appointment, candidates)
        if client is not None:
            return MatchResult(
                appointment=source,
                client=client,
                confidence=calculate_match_confidence(appointment, client),
                match_method=strategy.method,
                match_details={
                    "extracted_client_id": getattr(appointment, "extracted_client_id", ""),
                    "extracted_client_name": getattr(appointment, "extracted_client_name", ""),
                },
            )

    return MatchResult(appointment=source)


class AppointmentMatcher:
    """Matches calendar appointments against the client directory."""

    def __init__(self, config: Dict[str, Any], client_directory: ClientDirectory):
        self.config = config
        self.client_directory = client_directory
        self.matching_config = config.get("matching", {})
        self.suggestion_threshold = self.matching_config.get("suggestion_threshold", 60)
        self.max_suggestions = self.matching_config.get("max_suggestions", 5)

    def match_appointment(self, appointment: Appointment) -> MatchResult:
        return match_appointment(appointment, self.client_directory.list_clients())

    def bulk_match_appointments(self, appointments: List[Appointment]) -> List[MatchResult]:
        """Match several appointments against one snapshot of the directory."""
        clients = self.client_directory.list_clients()
        return [match_appointment(appointment, clients) for appointment in appointments]

    def link_client(self, result: MatchResult, client: Client) -> MatchResult:
        """Manual link chosen by a person; confidence comes from the same rules."""
        return result.model_copy(update={
            "client": client,
            "confidence": calculate_match_confidence(result.appointment, client),
            "match_method": "manual",
            "match_details": {"selected_client_id": client.client_id},
        })

    def suggest_clients(self, appointment: Appointment, limit: Optional[int] = None) -> List[Client]:
        """Rank likely clients for a manual selection prompt, best first."""
        limit = limit or self.max_suggestions
        title = appointment.extracted_client_name or appointment.title
        if not title:
            return []

        title = title.lower()
        scored = []
        for position, client in enumerate(self.client_directory.list_clients()):
            if not client.name:
                continue
            score = fuzz.token_set_ratio(title, client.name.lower())
            if score >= self.suggestion_threshold:
                scored.append((-score, position, client))

        scored.sort(key=lambda entry: (entry[0], entry[1]))
        return [client for _, _, client in scored[:limit]]
