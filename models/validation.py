from typing import List

from pydantic import BaseModel


class ListValidation(BaseModel):
    """Findings for a pipe-delimited field. Nothing is fixed, only reported."""
    
    valid: bool
    item_count: int = 0
    unique_item_count: int = 0
    issues: List[str] = []


class ClientValidation(BaseModel):
    valid: bool
    errors: List[str] = []
    warnings: List[str] = []
