"""
Annotation reconciliation — merges search results, favorites and the user
marker into one de-duplicated annotation set per pass.

Order: results first (as ranked), then favorites not already present by
identity, then the user marker. Nothing is matched by name or position: a
favorite and a result built independently for the same place stay two pins.
"""

from typing import Iterable, List, Optional, Set
from uuid import UUID

from poi_finder.models.map import Annotation, AnnotationKind
from poi_finder.models.poi import FAVORITE_CATEGORY, POI, USER_CATEGORY


class AnnotationReconciler:
    def reconcile(
        self,
        results: Iterable[POI],
        favorites: Iterable[POI],
        user_marker: Optional[POI] = None,
    ) -> List[Annotation]:
        favorites = list(favorites)
        favorite_ids = {f.id for f in favorites}

        annotations: List[Annotation] = []
        seen: Set[UUID] = set()

        for poi in results:
            if poi.id in seen:
                continue
            seen.add(poi.id)
            annotations.append(Annotation(
                poi=poi,
                category=self.resolve_category(poi, favorite_ids),
                kind=AnnotationKind.RESULT,
            ))

        for fav in favorites:
            if fav.id in seen:
                continue
            seen.add(fav.id)
            annotations.append(Annotation(
                poi=fav,
                category=self.resolve_category(fav, favorite_ids),
                kind=AnnotationKind.FAVORITE,
            ))

        if user_marker is not None and user_marker.id not in seen:
            annotations.append(Annotation(
                poi=user_marker,
                category=USER_CATEGORY,
                kind=AnnotationKind.USER,
            ))

        return annotations

    @staticmethod
    def resolve_category(poi: POI, favorite_ids: Set[UUID]) -> str:
        """Rendered category: "User", else "Favorite" by identity, else raw."""
        if poi.is_user_marker:
            return USER_CATEGORY
        if poi.id in favorite_ids:
            return FAVORITE_CATEGORY
        return poi.category
