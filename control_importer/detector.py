"""Control-sheet detection and declared property name extraction"""
import logging
import re
from typing import List, Optional, Pattern, Sequence, Tuple

from .config import SERIES_FAMILIES
from .models import ControlFileDetectionResult, RawDocumentText

logger = logging.getLogger(__name__)

UNKNOWN_PROPERTY = "Unknown Property"
MAX_FIRST_LINE_LENGTH = 50

# Any one of these (case-folded) marks a control sheet
SIGNAL_PHRASES = (
    "controlo_",
    "controlo ",
    "mapa de reservas",
    "exciting lisbon",
)

# Both members of a pair anywhere in the text also mark a control sheet
HEADER_PAIRS = (
    ("check-in", "check-out"),
    ("checkin", "checkout"),
    ("data entrada", "data saída"),
    ("data de entrada", "data de saída"),
)

_ROMAN_OR_ARABIC = r'(?:IV|I{1,3}|[1-4])'


class ControlFileDetector:
    """Classifies document text as a control sheet and finds its property name"""

    def __init__(self, series_families: Sequence[str] = SERIES_FAMILIES):
        self.series_families = tuple(family.casefold() for family in series_families)
        self.name_patterns = self._build_name_patterns()

    def _build_name_patterns(self) -> List[Pattern]:
        """Ordered from most to least specific; the first match wins"""
        patterns = [
            re.compile(r'EXCITING\s+LISBON\s+([^\n]+)', re.IGNORECASE),
            re.compile(r'Controlo[_ ]+([^\n]+?)(?:\s*-\s*Copy)?(?:\.pdf)?\s*(?:\n|$)', re.IGNORECASE),
        ]
        for family in self.series_families:
            patterns.append(
                re.compile(rf'\b({re.escape(family)}\s+{_ROMAN_OR_ARABIC})\b', re.IGNORECASE)
            )
        patterns.append(
            re.compile(r'(?:Mapa de Reservas\s*-|Propriedade\s*:|Property\s*:|Alojamento\s*:)\s*([^\n]+)',
                       re.IGNORECASE)
        )
        return patterns

    def is_control_file(self, text: str) -> bool:
        folded = text.casefold()
        if any(phrase in folded for phrase in SIGNAL_PHRASES):
            return True
        return any(first in folded and second in folded for first, second in HEADER_PAIRS)

    def extract_property_name(self, text: str) -> str:
        name = self._match_patterns(text)
        if name is None:
            name = self._first_line_fallback(text)
        return self._prefer_qualified_series_name(name, text)

    def detect(self, document: RawDocumentText) -> ControlFileDetectionResult:
        if not self.is_control_file(document.text):
            logger.info("%s is not a control file", document.source_name or "document")
            return ControlFileDetectionResult(is_control_file=False)

        name = self.extract_property_name(document.text)
        logger.info("Control file detected, declared property: %s", name)
        return ControlFileDetectionResult(is_control_file=True, declared_property_name=name)

    def _match_patterns(self, text: str) -> Optional[str]:
        for pattern in self.name_patterns:
            match = pattern.search(text)
            if match:
                name = ' '.join(match.group(1).replace('_', ' ').split())
                if name:
                    return name
        return None

    def _first_line_fallback(self, text: str) -> str:
        for line in text.splitlines():
            line = line.strip()
            if line:
                return line if len(line) < MAX_FIRST_LINE_LENGTH else UNKNOWN_PROPERTY
        return UNKNOWN_PROPERTY

    def _prefer_qualified_series_name(self, name: str, text: str) -> str:
        """A bare family name ("Aroeira") yields to a numbered mention elsewhere ("Aroeira I")"""
        bare = name.strip().casefold()
        for family in self.series_families:
            if bare != family:
                continue
            match = re.search(rf'\b{re.escape(family)}\s+{_ROMAN_OR_ARABIC}\b', text, re.IGNORECASE)
            if match:
                return ' '.join(match.group(0).split())
        return name


def signal_report(text: str) -> List[Tuple[str, bool]]:
    """Which detection signals fired, for debugging misclassified sheets"""
    folded = text.casefold()
    report = [(phrase, phrase in folded) for phrase in SIGNAL_PHRASES]
    report.extend((f"{a} + {b}", a in folded and b in folded) for a, b in HEADER_PAIRS)
    return report
