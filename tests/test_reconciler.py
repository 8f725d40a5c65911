"""Tests for annotation reconciliation."""

from poi_finder.models.map import AnnotationKind
from poi_finder.models.poi import FAVORITE_CATEGORY, POI, USER_CATEGORY, Coordinate
from poi_finder.reconciler.annotations import AnnotationReconciler


def _poi(name: str, category: str = "restaurant", lat: float = 6.52) -> POI:
    return POI(name=name, category=category, coordinate=Coordinate(latitude=lat, longitude=3.38))


class TestAnnotationReconciler:
    def setup_method(self):
        self.reconciler = AnnotationReconciler()
        self.user = POI.user_marker(Coordinate(latitude=6.5, longitude=3.3))

    def test_deduplicates_by_identity(self):
        """Results [A, B] + favorites [B, C] → [A, B, C] + user."""
        a, b, c = _poi("A"), _poi("B"), _poi("C")
        fav_b = b.with_favorite(True)
        annotations = self.reconciler.reconcile([a, b], [fav_b, c], self.user)

        assert [x.poi.name for x in annotations] == ["A", "B", "C", "You"]
        assert len({x.poi.id for x in annotations}) == 4

    def test_search_result_instance_wins(self):
        b = _poi("B")
        fav_b = b.with_favorite(True).with_note("from storage")
        annotations = self.reconciler.reconcile([b], [fav_b])

        assert annotations[0].poi.note is None
        assert annotations[0].kind == AnnotationKind.RESULT
        assert annotations[0].category == FAVORITE_CATEGORY

    def test_user_marker_last_with_sentinel_category(self):
        annotations = self.reconciler.reconcile([_poi("A")], [_poi("F")], self.user)
        assert annotations[-1].kind == AnnotationKind.USER
        assert annotations[-1].category == USER_CATEGORY

    def test_no_user_marker_without_location(self):
        annotations = self.reconciler.reconcile([_poi("A")], [])
        assert all(a.kind != AnnotationKind.USER for a in annotations)

    def test_category_resolution(self):
        a, f = _poi("A", category="cafe"), _poi("F", category="park")
        annotations = self.reconciler.reconcile([a], [f], self.user)
        assert [x.category for x in annotations] == ["cafe", FAVORITE_CATEGORY, USER_CATEGORY]

    def test_results_order_preserved(self):
        results = [_poi(n) for n in "DBCA"]
        annotations = self.reconciler.reconcile(results, [])
        assert [x.poi.name for x in annotations] == list("DBCA")

    def test_duplicate_results_collapse(self):
        a = _poi("A")
        annotations = self.reconciler.reconcile([a, a.with_note("x")], [])
        assert len(annotations) == 1

    def test_independent_instances_of_same_place_not_merged(self):
        """Same name and coordinate, different ids: two pins."""
        result = _poi("Cafe")
        favorite = _poi("Cafe").with_favorite(True)
        annotations = self.reconciler.reconcile([result], [favorite])

        assert len(annotations) == 2
        assert annotations[0].category == "restaurant"
        assert annotations[1].category == FAVORITE_CATEGORY

    def test_empty_inputs(self):
        assert self.reconciler.reconcile([], []) == []
