# app/classify/classifier.py
"""
Free-text product -> ranked HS classifications.

Four passes feed one candidate pool:

  exact      first indexed keyword that is a substring of the text (0.95)
  fuzzy      token vs keyword Levenshtein similarity above a threshold (sim * 0.8)
  category   merchant category hint -> representative code (0.6)
  heuristic  keyword-family density rule, falling back to the misc code (0.3)

The pool keeps the best confidence per code, sorts by confidence (code breaks
ties) and is capped. Tables are built once; the custom-mapping path is the only
writer and takes the write side of a read/write lock.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from app.classify.hs_data import (
    CATEGORY_INDEX,
    CHAPTER_CATEGORIES,
    HEURISTIC_FAMILIES,
    HEURISTIC_MIN_DENSITY,
    MISC_CODE,
    RESIDUAL_CONFIDENCE,
    SEED_ENTRIES,
    VALID_CHAPTERS,
    HSEntry,
)
from app.classify.similarity import keyword_density, similarity
from app.config import settings
from app.core.domain import HS_CODE_RE, HSClassification, HSValidation, MatchSource, ProductDescriptor
from app.core.errors import QuoteValidationError
from app.ingest.hs_table import read_hs_table
from app.utils.rwlock import ReadWriteLock

logger = logging.getLogger(__name__)

EXACT_CONFIDENCE = 0.95
FUZZY_FACTOR = 0.8
CATEGORY_CONFIDENCE = 0.6


@dataclass(frozen=True)
class HeuristicFeatures:
    text_length: int
    electronics: float
    clothing: float
    home: float

    @classmethod
    def from_text(cls, text: str) -> "HeuristicFeatures":
        words = text.split()
        dens = {name: keyword_density(words, kws) for name, kws, _, _ in HEURISTIC_FAMILIES}
        return cls(
            text_length=len(text),
            electronics=dens["electronics"],
            clothing=dens["clothing"],
            home=dens["home"],
        )

    def density(self, family: str) -> float:
        return getattr(self, family)


def normalize_category(value: Optional[str]) -> str:
    return (value or "").strip().lower().replace("-", "_").replace(" ", "_")


class ProductClassifier:
    def __init__(
        self,
        entries: Iterable[HSEntry] = SEED_ENTRIES,
        *,
        fuzzy_threshold: Optional[float] = None,
        max_results: Optional[int] = None,
        misc_code: Optional[str] = None,
    ) -> None:
        self.fuzzy_threshold = settings.FUZZY_THRESHOLD if fuzzy_threshold is None else fuzzy_threshold
        self.max_results = settings.MAX_CLASSIFICATIONS if max_results is None else max_results
        self.misc_code = misc_code or settings.MISC_HS_CODE or MISC_CODE

        self._lock = ReadWriteLock()
        self._table: Dict[str, HSEntry] = {}
        self._keywords: Dict[str, List[str]] = {}
        self._custom_keywords: Dict[str, List[str]] = {}
        self._categories: Dict[str, str] = dict(CATEGORY_INDEX)
        self._custom_count = 0

        for entry in entries:
            self._add_entry(entry)
        if self.misc_code not in self._table:
            self._table[self.misc_code] = HSEntry(self.misc_code, "Unclassified goods")

        if settings.hs_table_path:
            self.load_hs_table(settings.hs_table_path)

    # ------------------------------------------------------------- build ---
    def _add_entry(self, entry: HSEntry) -> None:
        self._table[entry.code] = entry
        for kw in entry.keywords:
            codes = self._keywords.setdefault(kw.lower(), [])
            if entry.code not in codes:
                codes.append(entry.code)

    def load_hs_table(self, path: str) -> int:
        """Merge HS rows from a CSV/JSON file into the table. Returns rows added."""
        added = 0
        rows = read_hs_table(path)
        with self._lock.write():
            for entry in rows:
                if not HS_CODE_RE.match(entry.code):
                    logger.warning("skipping HS row with bad code %r", entry.code)
                    continue
                self._add_entry(entry)
                added += 1
        logger.info("HS table %s: %s entries merged", path, added)
        return added

    # ---------------------------------------------------------- helpers ---
    def _category_of(self, code: str) -> Optional[str]:
        entry = self._table.get(code)
        if entry is not None and entry.category:
            return entry.category
        return CHAPTER_CATEGORIES.get(code[:2])

    def _make(
        self,
        code: str,
        confidence: float,
        source: MatchSource,
        matched: Tuple[str, ...] = (),
    ) -> HSClassification:
        entry = self._table.get(code)
        return HSClassification(
            hs_code=code,
            description=entry.description if entry else f"HS {code}",
            confidence=round(min(max(confidence, 0.0), 1.0), 4),
            source=source,
            matched_keywords=matched,
            duty_rate=entry.duty_rate if entry else None,
            vat_rate=entry.vat_rate if entry else None,
            category=self._category_of(code),
        )

    def _iter_keywords(self):
        # merchant mappings first so they win over built-ins
        yield from self._custom_keywords.items()
        yield from self._keywords.items()

    # ----------------------------------------------------------- passes ---
    def _exact(self, text: str) -> Optional[HSClassification]:
        for kw, codes in self._iter_keywords():
            if codes and kw in text:
                return self._make(codes[0], EXACT_CONFIDENCE, "exact", (kw,))
        return None

    def _fuzzy(self, text: str) -> List[HSClassification]:
        best: Dict[str, Tuple[float, str]] = {}
        tokens = text.split()
        for token in tokens:
            for kw, codes in self._iter_keywords():
                if not codes:
                    continue
                sim = similarity(token, kw)
                if sim <= self.fuzzy_threshold:
                    continue
                conf = sim * FUZZY_FACTOR
                code = codes[0]
                if code not in best or conf > best[code][0]:
                    best[code] = (conf, kw)
        return [self._make(code, conf, "fuzzy", (kw,)) for code, (conf, kw) in best.items()]

    def _category(self, hint: Optional[str]) -> Optional[HSClassification]:
        key = normalize_category(hint)
        if not key:
            return None
        code = self._categories.get(key)
        if code is None:
            return None
        return self._make(code, CATEGORY_CONFIDENCE, "category")

    def _heuristic(self, text: str) -> HSClassification:
        features = HeuristicFeatures.from_text(text)
        winner = None
        top = 0.0
        for family, _, code, conf in HEURISTIC_FAMILIES:
            dens = features.density(family)
            if dens > top:
                top = dens
                winner = (family, code, conf)
        if winner is not None and top > HEURISTIC_MIN_DENSITY:
            family, code, conf = winner
            logger.debug("heuristic family %s density %.2f", family, top)
            return self._make(code, conf, "heuristic")
        return self._make(self.misc_code, RESIDUAL_CONFIDENCE, "heuristic")

    def _rank(self, candidates: Iterable[HSClassification]) -> List[HSClassification]:
        best: Dict[str, HSClassification] = {}
        for c in candidates:
            cur = best.get(c.hs_code)
            if cur is None or c.confidence > cur.confidence:
                best[c.hs_code] = c
        ranked = sorted(best.values(), key=lambda c: (-c.confidence, c.hs_code))
        return ranked[: self.max_results]

    # -------------------------------------------------------------- API ---
    def classify(self, descriptor: ProductDescriptor) -> List[HSClassification]:
        text = descriptor.search_text
        candidates: List[HSClassification] = []
        with self._lock.read():
            exact = self._exact(text)
            if exact is not None:
                candidates.append(exact)
            candidates.extend(self._fuzzy(text))
            cat = self._category(descriptor.category)
            if cat is not None:
                candidates.append(cat)
            candidates.append(self._heuristic(text))
        ranked = self._rank(candidates)
        logger.debug("classify %r -> %s", descriptor.name, [(c.hs_code, c.confidence) for c in ranked])
        return ranked

    def get_recommended_code(self, descriptor: ProductDescriptor) -> Optional[HSClassification]:
        ranked = self.classify(descriptor)
        return ranked[0] if ranked else None

    def classification_for(
        self,
        code: str,
        *,
        confidence: float = 1.0,
        source: MatchSource = "exact",
        matched: Tuple[str, ...] = (),
    ) -> HSClassification:
        """Wrap a known (or merchant-supplied) code as a classification."""
        with self._lock.read():
            return self._make(code, confidence, source, matched)

    def misc_classification(self, confidence: float = RESIDUAL_CONFIDENCE) -> HSClassification:
        return self.classification_for(self.misc_code, confidence=confidence, source="heuristic")

    def validate_format(self, code: str) -> HSValidation:
        code = (code or "").strip()
        with self._lock.read():
            known = code in self._table
        if not HS_CODE_RE.match(code):
            return HSValidation(False, "HS code must be 4 to 10 digits", known)
        chapter = code[:2]
        if chapter not in VALID_CHAPTERS:
            return HSValidation(False, f"Unknown HS chapter {chapter}", known)
        return HSValidation(True, None, known)

    def register_custom_mapping(self, descriptor: ProductDescriptor, hs_code: str) -> str:
        """
        Map a product name to an HS code. The lower-cased name becomes a keyword
        checked before the built-in ones. Returns the indexed phrase.
        """
        hs_code = (hs_code or "").strip()
        check = self.validate_format(hs_code)
        if not check.valid:
            raise QuoteValidationError(check.reason or "invalid HS code", field="hs_code")
        phrase = (descriptor.name or "").strip().lower()
        if not phrase:
            raise QuoteValidationError("product name is required", field="name")

        with self._lock.write():
            if hs_code not in self._table:
                self._table[hs_code] = HSEntry(
                    code=hs_code,
                    description=f"Custom: {descriptor.name.strip()}",
                    keywords=(phrase,),
                    category=normalize_category(descriptor.category) or None,
                )
            codes = self._custom_keywords.setdefault(phrase, [])
            if hs_code in codes:
                codes.remove(hs_code)
            codes.insert(0, hs_code)
            self._custom_count += 1
        logger.info("custom mapping %r -> %s", phrase, hs_code)
        return phrase

    def stats(self) -> Dict[str, int]:
        with self._lock.read():
            keywords = set(self._keywords) | set(self._custom_keywords)
            return {
                "hs_codes": len(self._table),
                "keywords": len(keywords),
                "categories": len(self._categories),
                "custom_mappings": self._custom_count,
            }
