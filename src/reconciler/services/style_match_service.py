# src/reconciler/services/style_match_service.py
import logging
from collections import Counter, defaultdict
from typing import Dict, List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from reconciler.model import StyleRecord, TransplantResult

logger = logging.getLogger(__name__)

STYLE_ATTRIBUTE_WHITELIST = ("align", "valign", "width", "height", "colspan", "rowspan", "bgcolor")

# Elements that carry no visual attributes worth transplanting.
IGNORED_TAGS = {"style", "script", "template", "meta", "link", "title"}

StyleMap = Dict[str, List[StyleRecord]]


class StyleMatchService:
    """
    Copies the visual attributes of the styled fragment onto the extractor fragment.

    The two trees come from independent producers and share no element identity,
    so elements are joined on (tag name, position among same-tag elements). This
    is a best-effort approximation: when the trees differ in structure, styles
    land on the wrong element rather than being dropped. When the extractor holds
    more elements of a tag than the styled tree, the first record of that tag is
    reused. Tags the styled tree does not contain at all stay unstyled.
    """

    def __init__(self, attribute_whitelist: Sequence[str] = STYLE_ATTRIBUTE_WHITELIST):
        self.attribute_whitelist = tuple(attribute_whitelist)

    def build_style_map(self, styled_html: str) -> StyleMap:
        """Captures a StyleRecord for every element of the styled fragment, grouped per tag."""
        style_map: StyleMap = defaultdict(list)
        soup = BeautifulSoup(styled_html or "", "html.parser")
        for el in soup.find_all(True):
            if el.name in IGNORED_TAGS:
                continue
            records = style_map[el.name]
            records.append(self._capture(el, len(records)))
        return dict(style_map)

    def transplant(self, extractor_html: str, styled_html: str) -> TransplantResult:
        """
        Returns the extractor markup carrying the styled fragment's style, class and
        whitelisted attributes. Text nodes are never touched.
        """
        style_map = self.build_style_map(styled_html)
        soup = BeautifulSoup(extractor_html or "", "html.parser")

        seen: Counter = Counter()
        styled = unstyled = 0
        for el in soup.find_all(True):
            if el.name in IGNORED_TAGS:
                continue
            record = self.lookup(style_map, el.name, seen[el.name])
            seen[el.name] += 1

            if record is None or record.is_empty:
                unstyled += 1
                continue
            self._apply(el, record)
            styled += 1

        logger.debug(
            "Style transplant: %d elements styled, %d left unstyled (%d styled tags available).",
            styled, unstyled, len(style_map)
        )
        return TransplantResult(html=str(soup), styled_elements=styled, unstyled_elements=unstyled)

    @staticmethod
    def lookup(style_map: StyleMap, tag: str, index: int) -> Optional[StyleRecord]:
        records = style_map.get(tag)
        if not records:
            return None
        if index < len(records):
            return records[index]
        return records[0]

    def _capture(self, el: Tag, index: int) -> StyleRecord:
        classes = el.get("class") or []
        if isinstance(classes, str):
            classes = classes.split()
        attrs = {
            name: str(el[name]) for name in self.attribute_whitelist if el.has_attr(name)
        }
        return StyleRecord(
            tag=el.name,
            index=index,
            style=(el.get("style") or "").strip(),
            class_name=" ".join(classes),
            attrs=attrs,
        )

    @staticmethod
    def _apply(el: Tag, record: StyleRecord) -> None:
        if record.style:
            el["style"] = record.style
        if record.class_name:
            el["class"] = record.class_name.split()
        for name, value in record.attrs.items():
            el[name] = value
