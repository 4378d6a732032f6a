import pytest

from farmfence.utils import is_valid_number, normalize_points, polygon_area, to_point

SQUARE = [(0, 0), (4, 0), (4, 4), (0, 4)]


def test_polygon_area_unit_square():
    assert polygon_area([(0, 0), (1, 0), (1, 1), (0, 1)]) == pytest.approx(1.0)


def test_polygon_area_triangle():
    assert polygon_area([(0, 0), (4, 0), (0, 3)]) == pytest.approx(6.0)


@pytest.mark.parametrize("nodes", [[], [(1, 1)], [(0, 0), (5, 5)]])
def test_polygon_area_degenerate_is_zero(nodes):
    assert polygon_area(nodes) == 0.0


def test_polygon_area_ignores_starting_point():
    expected = polygon_area(SQUARE)
    for k in range(len(SQUARE)):
        rotated = SQUARE[k:] + SQUARE[:k]
        assert polygon_area(rotated) == pytest.approx(expected)


def test_polygon_area_ignores_winding_direction():
    concave = [(0, 0), (6, 0), (6, 6), (3, 2), (0, 6)]
    assert polygon_area(list(reversed(concave))) == pytest.approx(polygon_area(concave))
    assert polygon_area(concave) > 0


def test_polygon_area_accepts_lat_lng_mappings():
    nodes = [{"lat": 0, "lng": 0}, {"lat": 0, "lng": 2}, {"lat": 2, "lng": 2}, {"lat": 2, "lng": 0}]
    assert polygon_area(nodes) == pytest.approx(4.0)


def test_to_point_reads_pairs_and_mappings():
    assert to_point([19.8, 41.3]) == (19.8, 41.3)
    assert to_point({"lng": 19.8, "lat": 41.3}) == (19.8, 41.3)
    assert to_point({"lon": "1.5", "lat": "2"}) == (1.5, 2.0)


@pytest.mark.parametrize("bad", ["1,2", [1], {"lat": 1}, [None, 2], [float("nan"), 1], [True, 1]])
def test_to_point_rejects_malformed_nodes(bad):
    with pytest.raises(ValueError):
        to_point(bad)


def test_normalize_points_and_number_checks():
    assert normalize_points([(1, 2), [3, 4]]) == [(1.0, 2.0), (3.0, 4.0)]
    assert is_valid_number("3.5")
    assert not is_valid_number(None)
    assert not is_valid_number("abc")
