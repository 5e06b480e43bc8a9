# src/reconciler/model.py (Reconciliation Layer)
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ReconcileState(str, Enum):
    """The states of the reconciliation state machine, in escalation order."""
    CHECK_STYLED_INTACT = "check_styled_intact"
    REPAIR_STYLED = "repair_styled"
    TRANSPLANT_EXTRACTOR = "transplant_extractor"
    FALLBACK_EXTRACTOR = "fallback_extractor"
    # Source document without placeholders: styling is the only goal.
    STYLED_DIRECT = "styled_direct"


class StyleRecord(BaseModel):
    """
    Visual attributes captured from one element of the styled fragment.
    Keyed by (tag, index) where index counts same-tag elements in document order.
    """
    tag: str
    index: int
    style: str = ""
    class_name: str = ""
    attrs: Dict[str, str] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.style or self.class_name or self.attrs)


class StyledFragment(BaseModel):
    """Output of the styled renderer: body markup plus the collected style sheet."""
    html: str = ""
    style_sheet: str = ""


class StateAttempt(BaseModel):
    """Diagnostic record for one visited state. Logged only."""
    state: ReconcileState
    token_count: int
    accepted: bool
    note: str = ""


class RepairResult(BaseModel):
    html: str
    tokens_before: int
    tokens_after: int
    passes_applied: List[str] = Field(default_factory=list)


class TransplantResult(BaseModel):
    html: str
    styled_elements: int = 0
    unstyled_elements: int = 0


class ReconciliationResult(BaseModel):
    """
    The single output of a reconciliation run, consumed once by the assembler.
    """
    html: str
    style_sheet: str = ""
    token_count: int = 0
    expected_token_count: int = 0
    state: ReconcileState
    attempts: List[StateAttempt] = Field(default_factory=list)

    @property
    def is_fallback(self) -> bool:
        return self.state == ReconcileState.FALLBACK_EXTRACTOR


class ConversionEnvelope(BaseModel):
    """JSON response shape shared by every endpoint."""
    success: bool
    html: Optional[str] = None
    pdf: Optional[str] = None
    error: Optional[str] = None
    details: Optional[str] = None

    def to_dict(self) -> dict:
        return self.model_dump(exclude_none=True)
