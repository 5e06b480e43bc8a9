# src/reconciler/services/token_repair_service.py
import logging
import re
from typing import Callable, List, Sequence, Tuple

from reconciler.model import RepairResult
from reconciler.services.token_scan_service import GRAMMARS, TokenGrammar, count_tokens

logger = logging.getLogger(__name__)

# Leaf formatting tags a layout engine may open and close in the middle of a text run.
INLINE_TAGS = ("span", "b", "strong", "i", "em", "u", "font", "s", "strike", "mark", "small", "sub", "sup")

INLINE_TAG = r"</?(?:%s)(?:\s[^<>]*)?/?>" % "|".join(INLINE_TAGS)
BOUNDARY = rf"(?:{INLINE_TAG})+"
ANY_TAG = r"<[^<>]*>"

INLINE_TAG_RE = re.compile(INLINE_TAG, re.IGNORECASE)
ANY_TAG_RE = re.compile(ANY_TAG)

RepairPass = Callable[[str], str]


def _split_markup(body: str) -> Tuple[List[str], List[str]]:
    """Separates a markup snippet into its text segments and its tags."""
    tags = ANY_TAG_RE.findall(body)
    texts = [t for t in ANY_TAG_RE.split(body) if t]
    return texts, tags


def _is_inline(tag: str) -> bool:
    return INLINE_TAG_RE.fullmatch(tag) is not None


class _GrammarPasses:
    """The compiled repair patterns for a single token grammar."""

    def __init__(self, grammar: TokenGrammar):
        self.grammar = grammar
        o, c = re.escape(grammar.open), re.escape(grammar.close)
        text = f"{grammar.content}+"
        o1, o2 = re.escape(grammar.open[0]), re.escape(grammar.open[1])
        c1, c2 = re.escape(grammar.close[0]), re.escape(grammar.close[1])

        self.close_boundary = re.compile(
            rf"{o}(?P<text>{text})(?P<tags>{BOUNDARY}){c}", re.IGNORECASE
        )
        self.multi_run = re.compile(
            rf"{o}(?P<body>(?:{grammar.content}|{INLINE_TAG})+?){c}", re.IGNORECASE
        )
        self.open_boundary = re.compile(
            rf"{o}(?P<lead>{BOUNDARY})(?P<text>{text})(?P<trail>{BOUNDARY})?{c}", re.IGNORECASE
        )
        # Markers themselves may be split, e.g. '{</span><span>{'.
        self.permissive = re.compile(
            rf"{o1}(?:{ANY_TAG})*{o2}(?P<body>(?:{grammar.content}|{ANY_TAG})+?){c1}(?:{ANY_TAG})*{c2}"
        )

    def emit(self, text: str, tags: Sequence[str]) -> str:
        return f"{self.grammar.open}{text}{self.grammar.close}{''.join(tags)}"


class TokenRepairService:
    """
    Merges tokens that a styled renderer has split over several inline elements.

    Repair works on serialized markup through an ordered list of regex passes.
    Only inline leaf tags ever split a token, so a pass never needs the block
    structure. Each pass takes the text of a broken token back together and
    relocates the inline tags it found inside the token to directly after the
    closing marker, which keeps the open/close balance of the markup intact.
    """

    PASS_NAMES = ("close_boundary", "multi_run", "open_boundary", "permissive")

    def __init__(self, grammars: Sequence[TokenGrammar] = GRAMMARS):
        self._compiled = [_GrammarPasses(g) for g in grammars]

    @property
    def passes(self) -> List[Tuple[str, RepairPass]]:
        """The passes in their fixed execution order."""
        return [(name, getattr(self, f"pass_{name}")) for name in self.PASS_NAMES]

    def repair(self, html: str) -> RepairResult:
        before = count_tokens(html)
        applied: List[str] = []
        for name, repair_pass in self.passes:
            repaired = repair_pass(html)
            if repaired != html:
                applied.append(name)
                html = repaired

        after = count_tokens(html)
        logger.debug("Token repair: %d -> %d tokens (passes: %s)", before, after, applied or "none")
        return RepairResult(html=html, tokens_before=before, tokens_after=after, passes_applied=applied)

    def run_pass(self, name: str, html: str) -> str:
        if name not in self.PASS_NAMES:
            raise ValueError(f"Unknown repair pass: {name}")
        return getattr(self, f"pass_{name}")(html)

    # --- Passes ---

    def pass_close_boundary(self, html: str) -> str:
        """'{{Name</span><span>}}': one boundary between the content and the closing marker."""
        for g in self._compiled:
            html = g.close_boundary.sub(lambda m, g=g: g.emit(m["text"], [m["tags"]]), html)
        return html

    def pass_multi_run(self, html: str) -> str:
        """'{{Field</span><span>.</span><span>Name}}': content spread over several runs."""
        def merge(m: re.Match, g: _GrammarPasses) -> str:
            texts, tags = _split_markup(m["body"])
            if len(texts) < 2 or not tags:
                return m.group(0)
            return g.emit("".join(texts), tags)

        for g in self._compiled:
            html = g.multi_run.sub(lambda m, g=g: merge(m, g), html)
        return html

    def pass_open_boundary(self, html: str) -> str:
        """'{{</span><span>Name}}': the split sits before the first character of the field name."""
        for g in self._compiled:
            html = g.open_boundary.sub(
                lambda m, g=g: g.emit(m["text"], [m["lead"], m["trail"] or ""]), html
            )
        return html

    def pass_permissive(self, html: str) -> str:
        """
        Strips inline formatting from inside any remaining token span, markers included.
        Spans that contain a non-inline tag are block structure and are left alone.
        """
        def clean(m: re.Match, g: _GrammarPasses) -> str:
            tags = ANY_TAG_RE.findall(m.group(0))
            if not tags or not all(_is_inline(t) for t in tags):
                return m.group(0)
            text = ANY_TAG_RE.sub("", m["body"])
            if not text.strip():
                return m.group(0)
            return g.emit(text, tags)

        for g in self._compiled:
            html = g.permissive.sub(lambda m, g=g: clean(m, g), html)
        return html
