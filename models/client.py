from typing import Any, Dict, Optional

from pydantic import BaseModel


class Client(BaseModel):
    """A row of the client sheet."""
    
    client_id: str
    name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    attributes: Dict[str, Any] = {}  # every sheet column, keyed by header
    row_number: Optional[int] = None

    def field(self, column: str, default: Any = "") -> Any:
        value = self.attributes.get(column)
        return default if value is None else value
