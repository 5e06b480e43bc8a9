# src/renderer/model.py (Rendering Layer)
from pydantic import BaseModel

from reconciler.model import ReconciliationResult


class ConvertedDocument(BaseModel):
    """A fully assembled document plus the reconciliation that produced it."""
    html: str
    reconciliation: ReconciliationResult

    @property
    def token_count(self) -> int:
        return self.reconciliation.token_count
