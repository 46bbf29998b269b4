"""Fuzzy matching of a free-text property name against the property catalog

Scoring strategies, each returning a score in [0, 100] or None when it does
not apply:

1. exact      - normalized names are equal (100)
2. containment - one name contains the other (70 x shorter/longer length)
3. tokens     - shared words (40 x shared / max word count)
4. series     - numbered-family rule ("Aroeira I/II/III"), which replaces the
                generic score whenever query and catalog entry share a family

The resolver keeps the best candidate and accepts it only above
MIN_MATCH_SCORE.
"""
import logging
import re
import unicodedata
from typing import Callable, List, Optional, Sequence

from .config import MIN_MATCH_SCORE, SERIES_DEFAULT_SUFFIX, SERIES_FAMILIES
from .models import Property, PropertyCandidate

logger = logging.getLogger(__name__)

ARABIC_TO_ROMAN = {"1": "i", "2": "ii", "3": "iii", "4": "iv"}

Strategy = Callable[[str, str], Optional[float]]


def normalize_property_name(name: str) -> str:
    """Case-fold, strip diacritics and keep only [a-z0-9 ]

    Examples:
        >>> normalize_property_name("Nazaré T2")
        'nazare t2'
        >>> normalize_property_name("  Aroeira_II ")
        'aroeira ii'
    """
    if not name:
        return ""
    text = unicodedata.normalize("NFD", name.casefold())
    text = ''.join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r'[\s_]+', ' ', text)
    text = re.sub(r'[^a-z0-9 ]', '', text)
    return text.strip()


def exact_score(query: str, candidate: str) -> Optional[float]:
    return 100.0 if query and query == candidate else None


def containment_score(query: str, candidate: str) -> Optional[float]:
    if not query or not candidate:
        return None
    if query in candidate or candidate in query:
        shorter, longer = sorted((len(query), len(candidate)))
        return 70.0 * shorter / longer
    return None


def token_overlap_score(query: str, candidate: str) -> Optional[float]:
    query_tokens = query.split()
    candidate_tokens = candidate.split()
    if not query_tokens or not candidate_tokens:
        return None
    shared = len(set(query_tokens) & set(candidate_tokens))
    if not shared:
        return None
    return 40.0 * shared / max(len(query_tokens), len(candidate_tokens))


class SeriesScorer:
    """Scores names belonging to numbered property families"""

    def __init__(self, families: Sequence[str] = SERIES_FAMILIES,
                 default_suffix: str = SERIES_DEFAULT_SUFFIX):
        self.families = tuple(normalize_property_name(f) for f in families if f)
        self.default_suffix = ARABIC_TO_ROMAN.get(default_suffix, default_suffix)

    def family_of(self, name: str) -> Optional[str]:
        for family in self.families:
            if re.search(rf'\b{re.escape(family)}\b', name):
                return family
        return None

    def suffix_of(self, name: str, family: str) -> Optional[str]:
        match = re.search(rf'\b{re.escape(family)}\s*(iv|iii|ii|i|[1-4])\b', name)
        if not match:
            return None
        suffix = match.group(1)
        return ARABIC_TO_ROMAN.get(suffix, suffix)

    def __call__(self, query: str, candidate: str) -> Optional[float]:
        family = self.family_of(query)
        if family is None or self.family_of(candidate) != family:
            return None

        query_suffix = self.suffix_of(query, family)
        candidate_suffix = self.suffix_of(candidate, family)
        if query_suffix is not None and query_suffix == candidate_suffix:
            return 100.0
        if query_suffix is None and candidate_suffix == self.default_suffix:
            return 80.0
        return 60.0


class PropertyResolver:
    """Resolves a declared property name to the best catalog entry"""

    def __init__(self,
                 min_score: float = MIN_MATCH_SCORE,
                 series_families: Sequence[str] = SERIES_FAMILIES,
                 default_suffix: str = SERIES_DEFAULT_SUFFIX):
        self.min_score = min_score
        self.series = SeriesScorer(series_families, default_suffix)
        self.generic_strategies: List[Strategy] = [
            exact_score,
            containment_score,
            token_overlap_score,
        ]

    def score(self, query: str, candidate: str) -> float:
        """Score two already-normalized names"""
        series_score = self.series(query, candidate)
        if series_score is not None:
            return series_score
        scores = [s for s in (strategy(query, candidate) for strategy in self.generic_strategies)
                  if s is not None]
        return max(scores, default=0.0)

    def rank(self, name: str, catalog: Sequence[Property]) -> List[PropertyCandidate]:
        """All catalog entries with a positive score, best first (stable for ties)"""
        query = normalize_property_name(name)
        candidates = []
        for prop in catalog:
            score = self.score(query, normalize_property_name(prop.name))
            if score > 0:
                candidates.append(PropertyCandidate(prop.id, prop.name, round(score, 2)))
        return sorted(candidates, key=lambda c: c.match_score, reverse=True)

    def resolve(self, name: str, catalog: Sequence[Property]) -> Optional[PropertyCandidate]:
        """
        Pick the best catalog entry for a declared property name

        Returns:
            The best candidate scoring above min_score; failing that, any
            catalog entry of the same numbered family (last resort); else None
        """
        if not name or not catalog:
            return None

        ranked = self.rank(name, catalog)
        if ranked and ranked[0].match_score > self.min_score:
            best = ranked[0]
            logger.info("Property %r resolved to %r (score %.1f)", name, best.canonical_name, best.match_score)
            return best

        family = self.series.family_of(normalize_property_name(name))
        if family is not None:
            for prop in catalog:
                if self.series.family_of(normalize_property_name(prop.name)) == family:
                    logger.warning("Property %r resolved to %r by family fallback", name, prop.name)
                    return PropertyCandidate(prop.id, prop.name, 0.0)

        best_score = ranked[0].match_score if ranked else 0.0
        logger.warning("No property found for %r (best score %.1f)", name, best_score)
        return None
