"""Tests for polygon helpers and the point containment tie-break."""

from heightmap.geometry import (
    Polygon,
    point_in_rings,
    remove_collinear,
    signed_area,
)

SQUARE = [(0, 0), (10, 0), (10, 10), (0, 10)]


class TestSignedArea:
    def test_screen_clockwise_is_positive(self):
        """Clockwise on screen (y down) is positive."""
        assert signed_area(SQUARE) == 100.0

    def test_reverse_is_negative(self):
        """Reversing the ring flips the sign."""
        assert signed_area(SQUARE[::-1]) == -100.0

    def test_degenerate(self):
        """Fewer than three points have no area."""
        assert signed_area([(0, 0), (1, 0)]) == 0.0


class TestPointInRings:
    def test_inside_and_outside(self):
        assert point_in_rings(5, 5, [SQUARE])
        assert not point_in_rings(15, 5, [SQUARE])
        assert not point_in_rings(5, -1, [SQUARE])

    def test_minimum_sides_inclusive(self):
        """Points on the top and left edges are inside."""
        assert point_in_rings(5, 0, [SQUARE])
        assert point_in_rings(0, 5, [SQUARE])
        assert point_in_rings(0, 0, [SQUARE])

    def test_maximum_sides_exclusive(self):
        """Points on the bottom and right edges are outside."""
        assert not point_in_rings(5, 10, [SQUARE])
        assert not point_in_rings(10, 5, [SQUARE])
        assert not point_in_rings(10, 10, [SQUARE])

    def test_shared_edge_belongs_to_one_side(self):
        """Adjacent squares never both claim an edge."""
        left = [(0, 0), (10, 0), (10, 10), (0, 10)]
        right = [(10, 0), (20, 0), (20, 10), (10, 10)]
        for y in [0.5, 5, 9.5]:
            inside = [point_in_rings(10, y, [r]) for r in (left, right)]
            assert inside == [False, True]

    def test_hole(self):
        """Points in a hole are outside."""
        hole = [(3, 3), (7, 3), (7, 7), (3, 7)]
        assert not point_in_rings(5, 5, [SQUARE, hole])
        assert point_in_rings(1, 1, [SQUARE, hole])

    def test_no_rings(self):
        """With no rings nothing is inside."""
        assert not point_in_rings(0, 0, [])


class TestRemoveCollinear:
    def test_drops_straight_vertices(self):
        """Vertices on a straight run are dropped."""
        ring = [(0, 0), (5, 0), (10, 0), (10, 10), (5, 10), (0, 10)]
        assert remove_collinear(ring) == [(0, 0), (10, 0), (10, 10), (0, 10)]

    def test_keeps_corners(self):
        """Real corners stay."""
        assert remove_collinear(SQUARE) == SQUARE


class TestPolygon:
    def test_bounding_box(self):
        poly = Polygon([(2, 3), (8, 1), (5, 9)])
        assert (poly.min_x, poly.min_y, poly.max_x, poly.max_y) == (
            2.0,
            1.0,
            8.0,
            9.0,
        )

    def test_value_equality(self):
        """Polygons with the same vertices are equal."""
        assert Polygon(SQUARE) == Polygon([(0.0, 0.0), *SQUARE[1:]])
        assert hash(Polygon(SQUARE)) == hash(Polygon(list(SQUARE)))

    def test_area_and_contains(self):
        poly = Polygon(SQUARE)
        assert poly.area == 100.0
        assert poly.contains_point(5, 5)
        assert len(poly.edges()) == 4
