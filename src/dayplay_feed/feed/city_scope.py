"""
Display city -> set of raw catalog localities.

The client shows a handful of metro labels ("Northern Virginia",
"San Francisco") while imported rows carry the locality they were scraped
from ("Fairfax", "Oakland"). Queries scoped to a metro need every locality.
"""

from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence

from dayplay_feed.config.constants import METRO_AREA_CITIES, METRO_TABLE_VERSION


class CityScopeResolver:
    """
    Static metro table lookup.

    An unknown city is its own scope; a blank city means no city scoping
    (empty set).
    """

    def __init__(
        self,
        metros: Optional[Mapping[str, Sequence[str]]] = None,
        version: str = METRO_TABLE_VERSION,
    ):
        table = metros if metros is not None else METRO_AREA_CITIES
        self.version = version
        self._metros: Dict[str, FrozenSet[str]] = {
            label: frozenset([label, *cities]) for label, cities in table.items()
        }
        self._by_lower: Dict[str, str] = {label.lower(): label for label in self._metros}

        # Reverse index; a locality listed under two metros resolves to the first
        self._metro_of: Dict[str, str] = {}
        for label, cities in table.items():
            for city in (label, *cities):
                self._metro_of.setdefault(city.strip().lower(), label)

    def resolve(self, display_city: Optional[str]) -> FrozenSet[str]:
        """
        Resolve a display city to the localities it covers.

        >>> sorted(CityScopeResolver({"Bay": ["Oakland"]}).resolve("bay"))
        ['Bay', 'Oakland']
        >>> CityScopeResolver().resolve("Boise")
        frozenset({'Boise'})
        """
        if display_city is None or not display_city.strip():
            return frozenset()

        label = display_city if display_city in self._metros else self._by_lower.get(
            display_city.strip().lower()
        )
        if label is not None:
            return self._metros[label]
        return frozenset([display_city])

    def metro_for(self, city: Optional[str]) -> Optional[str]:
        """Metro label a raw locality belongs to, or None."""
        if not city:
            return None
        return self._metro_of.get(city.strip().lower())

    def known_metros(self) -> List[str]:
        return list(self._metros)

    def is_metro(self, display_city: Optional[str]) -> bool:
        return bool(display_city) and display_city.strip().lower() in self._by_lower


_default_resolver: Optional[CityScopeResolver] = None


def get_city_scope_resolver() -> CityScopeResolver:
    """Process-wide resolver over the static metro table."""
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = CityScopeResolver()
    return _default_resolver
