# src/reconciler/controllers/reconcile_controller.py
import logging
from typing import Callable, Dict, List, NamedTuple, Optional

from reconciler.model import ReconcileState, ReconciliationResult, StateAttempt, StyledFragment
from reconciler.services.style_match_service import StyleMatchService
from reconciler.services.token_repair_service import TokenRepairService
from reconciler.services.token_scan_service import count_tokens, has_text_content

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_STYLE_SHEET = """
body { font-family: Calibri, Arial, sans-serif; font-size: 11pt; line-height: 1.15; color: #000; margin: 2.5cm; }
h1 { font-size: 20pt; } h2 { font-size: 16pt; } h3 { font-size: 13pt; }
p { margin: 0 0 8pt 0; }
table { border-collapse: collapse; width: 100%; }
td, th { border: 1px solid #000; padding: 4pt; vertical-align: top; }
img { max-width: 100%; }
""".strip()

# Each state has exactly one successor. FALLBACK_EXTRACTOR is terminal.
NEXT_STATE = {
    ReconcileState.CHECK_STYLED_INTACT: ReconcileState.REPAIR_STYLED,
    ReconcileState.REPAIR_STYLED: ReconcileState.TRANSPLANT_EXTRACTOR,
    ReconcileState.TRANSPLANT_EXTRACTOR: ReconcileState.FALLBACK_EXTRACTOR,
}


class _Candidate(NamedTuple):
    html: str
    style_sheet: str
    token_count: int
    eligible: bool = True
    note: str = ""


class ReconcileController:
    """
    Produces one fragment with intact tokens and the best available styling
    from an extractor fragment and a styled fragment of the same document.

    The states are tried in a fixed order and the first candidate whose token
    count equals the extractor's count wins. The extractor fallback always
    succeeds, so tokens present in the extractor output are never lost.
    """

    def __init__(
            self,
            repair_service: Optional[TokenRepairService] = None,
            style_match_service: Optional[StyleMatchService] = None,
            fallback_style_sheet: Optional[str] = None,
    ):
        self.repair_service = repair_service or TokenRepairService()
        self.style_match_service = style_match_service or StyleMatchService()
        self.fallback_style_sheet = (
            fallback_style_sheet if fallback_style_sheet is not None else DEFAULT_FALLBACK_STYLE_SHEET
        )

        self._handlers: Dict[ReconcileState, Callable[[str, StyledFragment], _Candidate]] = {
            ReconcileState.CHECK_STYLED_INTACT: self._check_styled_intact,
            ReconcileState.REPAIR_STYLED: self._repair_styled,
            ReconcileState.TRANSPLANT_EXTRACTOR: self._transplant_extractor,
            ReconcileState.FALLBACK_EXTRACTOR: self._fallback_extractor,
        }

    def reconcile(self, extractor_html: str, styled: StyledFragment) -> ReconciliationResult:
        extractor_html = extractor_html or ""
        expected = count_tokens(extractor_html)
        attempts: List[StateAttempt] = []

        if expected == 0:
            # Nothing to preserve, styling fidelity is the only goal.
            if has_text_content(styled.html) or not has_text_content(extractor_html):
                candidate = _Candidate(styled.html, styled.style_sheet, count_tokens(styled.html))
                return self._finish(ReconcileState.STYLED_DIRECT, candidate, expected, attempts)
            logger.warning("Styled rendering produced no text; using the extractor output instead.")
            return self._finish(
                ReconcileState.FALLBACK_EXTRACTOR,
                self._fallback_extractor(extractor_html, styled),
                expected, attempts
            )

        state = ReconcileState.CHECK_STYLED_INTACT
        while True:
            candidate = self._handlers[state](extractor_html, styled)
            if state == ReconcileState.FALLBACK_EXTRACTOR:
                return self._finish(state, candidate, expected, attempts)

            accepted = candidate.eligible and candidate.token_count == expected
            attempts.append(StateAttempt(
                state=state, token_count=candidate.token_count, accepted=accepted, note=candidate.note
            ))
            logger.debug(
                "State %s: %d/%d tokens%s", state.value, candidate.token_count, expected,
                f" ({candidate.note})" if candidate.note else ""
            )
            if accepted:
                return self._finish(state, candidate, expected, attempts)
            state = NEXT_STATE[state]

    # --- States ---

    def _check_styled_intact(self, extractor_html: str, styled: StyledFragment) -> _Candidate:
        return _Candidate(styled.html, styled.style_sheet, count_tokens(styled.html))

    def _repair_styled(self, extractor_html: str, styled: StyledFragment) -> _Candidate:
        result = self.repair_service.repair(styled.html)
        note = f"passes: {', '.join(result.passes_applied)}" if result.passes_applied else "no pass matched"
        return _Candidate(result.html, styled.style_sheet, result.tokens_after, note=note)

    def _transplant_extractor(self, extractor_html: str, styled: StyledFragment) -> _Candidate:
        result = self.style_match_service.transplant(extractor_html, styled.html)
        return _Candidate(
            result.html,
            styled.style_sheet,
            count_tokens(result.html),
            eligible=result.styled_elements > 0,
            note=f"{result.styled_elements} styled, {result.unstyled_elements} unstyled",
        )

    def _fallback_extractor(self, extractor_html: str, styled: StyledFragment) -> _Candidate:
        return _Candidate(extractor_html, self.fallback_style_sheet, count_tokens(extractor_html))

    # --- Helpers ---

    @staticmethod
    def _finish(
            state: ReconcileState,
            candidate: _Candidate,
            expected: int,
            attempts: List[StateAttempt],
    ) -> ReconciliationResult:
        attempts.append(StateAttempt(
            state=state, token_count=candidate.token_count, accepted=True, note=candidate.note
        ))
        logger.info(
            "Reconciled via %s: %d tokens (extractor had %d) after %d state(s).",
            state.value, candidate.token_count, expected, len(attempts)
        )
        return ReconciliationResult(
            html=candidate.html,
            style_sheet=candidate.style_sheet,
            token_count=candidate.token_count,
            expected_token_count=expected,
            state=state,
            attempts=attempts,
        )
