"""
Tests de la construction d'arbres KDGeo.
"""

import math

import numpy as np
import pytest

from kdgeo import build_tree, KDTree, Point, MissingDimension, InvalidConfiguration


def subtree_ids(node):
    return [n.id for n in node] if node is not None else []


def test_empty_input_gives_empty_tree():
    """Aucun point: arbre vide, sans erreur."""
    tree = build_tree([], ["Lat", "Long"])
    assert isinstance(tree, KDTree)
    assert tree.is_empty()
    assert tree.root is None
    assert len(tree) == 0
    assert tree.get_height() == 0
    assert tree.coordinates_array().shape == (0, 2)


def test_abc_layout(abc_points):
    """B est la médiane sur Lat; A à gauche et C à droite, séparés sur Long."""
    tree = build_tree(abc_points, ["Lat", "Long"], id_selector="id")

    root = tree.root
    assert root.id == "B"
    assert root.axis == "Lat"
    assert root.axis_index == 0
    assert root.left.id == "A"
    assert root.right.id == "C"
    assert root.left.axis == "Long"
    assert root.right.axis == "Long"
    assert root.left.is_leaf() and root.right.is_leaf()


def test_node_caches_all_coordinates_and_payload(abc_points):
    tree = build_tree(abc_points, ["Lat", "Long"], id_selector="id")
    assert tree.root.coordinates == (2.0, 2.0)
    assert tree.root.payload is abc_points[1]


def test_axis_rotation_follows_depth():
    """L'axe à la profondeur d est dimensions[d mod K]."""
    rng = np.random.default_rng(1)
    dims = ["x", "y", "z"]
    points = [dict(zip(dims, row)) for row in rng.uniform(-10, 10, size=(200, 3))]
    tree = build_tree(points, dims)

    def check(node, depth):
        if node is None:
            return
        assert node.axis == dims[depth % 3]
        check(node.left, depth + 1)
        check(node.right, depth + 1)

    check(tree.root, 0)


def test_split_invariant_on_random_points():
    rng = np.random.default_rng(7)
    # Valeurs arrondies pour provoquer beaucoup d'égalités
    coords = np.round(rng.uniform(0, 5, size=(500, 2)))
    points = [{"x": x, "y": y} for x, y in coords]
    tree = build_tree(points, ["x", "y"])

    tree.validate()
    assert len(tree) == 500


def test_duplicates_are_split_by_insertion_order():
    """Égalités sur l'axe: l'ordre d'insertion décide, la médiane est l'indice n // 2."""
    points = [{"id": i, "x": 5.0, "y": float(10 - i)} for i in range(5)]
    tree = build_tree(points, ["x", "y"], id_selector="id")

    assert tree.root.id == 2
    assert sorted(subtree_ids(tree.root.left)) == [0, 1]
    assert sorted(subtree_ids(tree.root.right)) == [3, 4]
    tree.validate()


def test_height_is_logarithmic_even_with_identical_points():
    points = [{"x": 1.0, "y": 1.0} for _ in range(1000)]
    tree = build_tree(points, ["x", "y"])
    assert tree.get_height() == math.ceil(math.log2(1001))


def test_id_selector_callable_and_point_objects():
    points = [Point((0.0, 1.0), id="p0", payload={"n": 0}), Point((2.0, 3.0), id="p1")]
    tree = build_tree(points, ["x", "y"])
    assert {node.id for node in tree} == {"p0", "p1"}
    assert tree.find("p0").payload == {"n": 0}
    # Sans payload, le Point lui-même est conservé
    assert tree.find("p1").payload is points[1]

    records = [{"key": "k0", "x": 0, "y": 0}, {"key": "k1", "x": 1, "y": 1}]
    tree = build_tree(records, ["x", "y"], id_selector=lambda r: r["key"].upper())
    assert {node.id for node in tree} == {"K0", "K1"}


def test_attribute_records():
    class Station:
        def __init__(self, code, Lat, Long):
            self.code = code
            self.Lat = Lat
            self.Long = Long

    stations = [Station("s1", 1.0, 2.0), Station("s2", 3.0, 4.0)]
    tree = build_tree(stations, ["Lat", "Long"], id_selector="code")
    assert tree.find("s2").payload is stations[1]


def test_without_id_selector_nodes_have_no_id(abc_points):
    tree = build_tree(abc_points, ["Lat", "Long"])
    assert all(node.id is None for node in tree)


def test_missing_dimension_fails():
    with pytest.raises(MissingDimension) as excinfo:
        build_tree([{"Lat": 1.0, "Long": 2.0}, {"Lat": 3.0}], ["Lat", "Long"])
    assert excinfo.value.dimension == "Long"
    assert isinstance(excinfo.value, KeyError)


@pytest.mark.parametrize("value", ["12.5", None, float("nan"), True])
def test_non_numeric_dimension_fails(value):
    with pytest.raises(MissingDimension):
        build_tree([{"Lat": value, "Long": 2.0}], ["Lat", "Long"])


@pytest.mark.parametrize("dimensions", [[], None, "Lat", ["Lat", "Lat"]])
def test_invalid_dimensions(dimensions):
    with pytest.raises(InvalidConfiguration):
        build_tree([{"Lat": 1.0, "Long": 2.0}], dimensions)


def test_node_value_by_dimension_name(abc_points):
    """Chaque nœud lit ses coordonnées par nom grâce aux dimensions de l'arbre."""
    points = [{"id": "P", "Lat": 33.7765, "Long": -84.3921}, *abc_points]
    tree = build_tree(points, ["Long", "Lat"], id_selector="id")

    node = tree.find("P")
    assert node.dimensions == tree.dimensions
    assert node.value("Lat") == 33.7765
    assert node.value("Long") == -84.3921
    assert all(n.value(n.axis) == n.coordinates[n.axis_index] for n in tree)

    with pytest.raises(InvalidConfiguration):
        node.value("Alt")


def test_statistics(abc_points, tmp_path):
    tree = build_tree(abc_points, ["Lat", "Long"], id_selector="id")
    stats = tree.get_statistics()

    assert stats["node_count"] == 3
    assert stats["leaf_count"] == 2
    assert stats["height"] == 2
    assert stats["axis_counts"] == {"Lat": 1, "Long": 2}
    assert stats["nodes_with_id"] == 3

    path = tmp_path / "stats.txt"
    tree.save_statistics(str(path))
    content = path.read_text(encoding="utf-8")
    assert "Nombre total de nœuds : 3" in content


def test_preorder_iteration_and_coordinates_array(abc_points):
    tree = build_tree(abc_points, ["Lat", "Long"], id_selector="id")
    assert [node.id for node in tree] == ["B", "A", "C"]
    np.testing.assert_array_equal(tree.coordinates_array(), [[2, 2], [1, 1], [3, 3]])
