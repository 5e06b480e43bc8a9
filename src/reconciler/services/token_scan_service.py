# src/reconciler/services/token_scan_service.py
import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

logger = logging.getLogger(__name__)

# Text inside these elements is never document content.
SKIPPED_PARENTS = {"script", "style", "template"}


@dataclass(frozen=True)
class TokenGrammar:
    """
    Describes one placeholder bracket style, e.g. '{{Field.Name}}'.
    `content` is a regex character class for a single body character.
    """
    name: str
    open: str
    close: str
    content: str

    @property
    def pattern(self) -> str:
        return f"{re.escape(self.open)}{self.content}+{re.escape(self.close)}"


CURLY = TokenGrammar("curly", "{{", "}}", r"[^{}<>]")
SQUARE = TokenGrammar("square", "[[", "]]", r"[^\[\]<>]")
GRAMMARS = (CURLY, SQUARE)

TOKEN_RE = re.compile("|".join(g.pattern for g in GRAMMARS))

FragmentLike = Union[str, Tag, None]


def _text_nodes(fragment: FragmentLike) -> Iterator[NavigableString]:
    """Yields the content text nodes of a fragment in document order."""
    if fragment is None:
        return
    if isinstance(fragment, str):
        if not fragment.strip():
            return
        fragment = BeautifulSoup(fragment, "html.parser")

    for node in fragment.find_all(string=True):
        if isinstance(node, PreformattedString):
            continue  # comments, doctype, CDATA
        if node.parent is not None and node.parent.name in SKIPPED_PARENTS:
            continue
        yield node


def scan_tokens(fragment: FragmentLike) -> List[str]:
    """
    Returns the ordered list of literal tokens found in the text content of a fragment.

    Every text node is scanned on its own, so a token whose characters are spread
    over several elements does not count. Accepts markup text or a parsed tree.
    """
    tokens: List[str] = []
    for node in _text_nodes(fragment):
        tokens.extend(TOKEN_RE.findall(str(node)))
    return tokens


def count_tokens(fragment: FragmentLike) -> int:
    return len(scan_tokens(fragment))


def has_text_content(fragment: FragmentLike) -> bool:
    """True if the fragment renders any visible text at all."""
    return any(node.strip() for node in _text_nodes(fragment))
