"""
Category canonicalization.

Imported rows carry whatever category text the source used ("Arts & Culture",
"arts and culture", "cafe"). The feed compares on canonical ids, while the
catalog query needs every textual variant so an "is one of" filter still hits
rows that were never rewritten.
"""

from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence

from dayplay_feed.config.constants import CATEGORY_SYNONYMS, TAXONOMY_VERSION


class CategoryNormalizer:
    """
    Bidirectional canonical id <-> synonym table.

    normalize() is case-insensitive, never raises, and is idempotent:
    unknown input comes back unchanged so a listing with a brand-new
    category still shows up under its own label.
    """

    def __init__(
        self,
        synonyms: Optional[Mapping[str, Sequence[str]]] = None,
        version: str = TAXONOMY_VERSION,
    ):
        table = synonyms if synonyms is not None else CATEGORY_SYNONYMS
        self.version = version
        self._synonyms: Dict[str, FrozenSet[str]] = {}
        self._lookup: Dict[str, str] = {}

        for canonical, variants in table.items():
            canonical_id = canonical.strip().lower()
            self._synonyms[canonical_id] = frozenset([canonical_id, *variants])
            self._lookup[canonical_id] = canonical_id

        # Second pass so a canonical id always wins over a synonym of another entry
        for canonical_id, variants in self._synonyms.items():
            for variant in variants:
                self._lookup.setdefault(variant.strip().lower(), canonical_id)

    def normalize(self, raw: Optional[str]) -> Optional[str]:
        """
        Map a raw category string to its canonical id.

        >>> CategoryNormalizer().normalize("Arts & Culture")
        'arts-culture'
        >>> CategoryNormalizer().normalize("Axe Throwing")
        'Axe Throwing'
        """
        if not raw:
            return raw
        return self._lookup.get(raw.strip().lower(), raw)

    def expand(self, canonical: str) -> FrozenSet[str]:
        """
        All stored variants of a category, for storage-layer "in" queries.

        Always contains the argument itself and its canonical id, even when
        the table has no entry for it.
        """
        canonical_id = self.normalize(canonical)
        variants = self._synonyms.get(canonical_id, frozenset())
        return variants | {canonical, canonical_id}

    def expand_all(self, categories: Iterable[str]) -> List[str]:
        """Union of expand() over a filter list, sorted for stable query strings."""
        expanded = set()
        for category in categories:
            if category:
                expanded |= self.expand(category)
        return sorted(expanded)

    def normalize_all(self, categories: Iterable[str]) -> FrozenSet[str]:
        return frozenset(self.normalize(c) for c in categories if c)


_default_normalizer: Optional[CategoryNormalizer] = None


def get_category_normalizer() -> CategoryNormalizer:
    """Process-wide normalizer over the static taxonomy table."""
    global _default_normalizer
    if _default_normalizer is None:
        _default_normalizer = CategoryNormalizer()
    return _default_normalizer
