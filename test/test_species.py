import xml.etree.ElementTree as ET

import networkx as nx
import numpy as np
import pytest

from cladogenesis.spatial import Point, grid_network
from cladogenesis.species import Species
from cladogenesis.sphere import GaussianNoise, in_sphere


def line_graph(*names):
    """Path graph a - b - c ... over the given location names."""
    graph = nx.Graph()
    graph.add_nodes_from(names)
    graph.add_edges_from(zip(names, names[1:]))
    return graph


def test_new_species_is_extinct():
    s = Species(0, ntraits=3)
    assert s.is_extinct()
    assert s.size == 0
    assert s.num_traits == 3
    np.testing.assert_array_equal(s.traits, [0.0, 0.0, 0.0])


def test_traits_are_copied():
    start = np.array([0.1, 0.2])
    s = Species(0, traits=start)
    start[0] = 9.0
    assert s[0] == pytest.approx(0.1)


def test_trait_indexing():
    s = Species(0, traits=[0.1, 0.2])
    s[1] = 0.3
    assert s.traits.tolist() == [0.1, 0.3]
    with pytest.raises(IndexError):
        s[5]


def test_occupy_is_idempotent():
    s = Species(0)
    s.occupy("a")
    s.occupy("a")
    s.occupy({"a", "b"})
    s.occupy(["c"])
    assert s.size == 3
    assert s.is_in("b")
    assert not s.is_extinct()


def test_occupy_point_is_single_location():
    s = Species(0)
    s.occupy(Point(1, 2))
    assert set(s.locations) == {Point(1, 2)}


def test_vacate_until_extinct():
    s = Species(0)
    s.occupy({"a", "b"})
    s.vacate("a")
    s.vacate("missing")
    assert not s.is_extinct()
    s.vacate("b")
    assert s.is_extinct()


def test_locations_view_is_read_only():
    s = Species(0)
    s.occupy("a")
    with pytest.raises(TypeError):
        s.locations["b"] = 0


def test_recompute_groups_counts_components():
    graph = line_graph("a", "b", "c", "d", "e")
    s = Species(0)
    s.occupy({"a", "b", "d", "e"})
    assert s.recompute_groups(graph) == 2
    assert s.num_groups == 2
    assert not s.groups_stale
    assert s.group_of("a") == s.group_of("b")
    assert s.group_of("d") == s.group_of("e")
    assert s.group_of("a") != s.group_of("d")


def test_recompute_groups_ids_are_dense():
    graph = grid_network(6, 6)
    s = Species(0)
    s.occupy([Point(0, 0), Point(0, 1), Point(3, 3), Point(5, 5), Point(5, 4), Point(2, 0)])
    groups = s.recompute_groups(graph)
    assert groups == 4
    assert set(s.locations.values()) == set(range(groups))


def test_recompute_groups_ignores_foreign_locations():
    # b is adjacent to both but not occupied, so a and c stay apart
    graph = line_graph("a", "b", "c")
    s = Species(0)
    s.occupy({"a", "c"})
    assert s.recompute_groups(graph) == 2


def test_recompute_groups_unknown_location_is_singleton():
    graph = line_graph("a", "b")
    s = Species(0)
    s.occupy({"a", "b", "elsewhere"})
    assert s.recompute_groups(graph) == 2
    assert s.group_of("elsewhere") not in (None, s.group_of("a"))


def test_recompute_groups_on_extinct_species():
    s = Species(0)
    assert s.recompute_groups(line_graph("a")) == 0


def test_recompute_groups_is_deterministic_partition():
    graph = grid_network(8, 8)
    cells = [Point(x, y) for x in range(8) for y in range(8) if (x + 2 * y) % 3]
    first, second = Species(0), Species(1)
    first.occupy(cells)
    second.occupy(list(reversed(cells)))
    assert first.recompute_groups(graph) == second.recompute_groups(graph)

    def partition(species):
        blocks = {}
        for loc, gid in species.locations.items():
            blocks.setdefault(gid, set()).add(loc)
        return {frozenset(b) for b in blocks.values()}

    assert partition(first) == partition(second)
    assert first.num_groups == nx.number_connected_components(graph.subgraph(cells))


def test_recompute_groups_handles_large_footprint():
    graph = grid_network(120, 120)
    s = Species(0)
    s.occupy(graph.nodes)
    assert s.recompute_groups(graph) == 1


def test_occupy_marks_groups_stale():
    graph = line_graph("a", "b")
    s = Species(0)
    s.occupy("a")
    s.recompute_groups(graph)
    s.occupy("b")
    assert s.groups_stale
    assert s.group_of("b") is None


def test_extract_group_removes_locations():
    graph = line_graph("a", "b", "c", "d")
    s = Species(0)
    s.occupy({"a", "b", "d"})
    s.recompute_groups(graph)
    g = s.group_of("d")
    assert s.extract_group(g) == {"d"}
    assert set(s.locations) == {"a", "b"}
    assert s.groups_stale
    # Second call without recomputation finds nothing
    assert s.extract_group(g) == set()


def test_extract_unknown_group_is_empty():
    s = Species(0)
    s.occupy("a")
    s.recompute_groups(line_graph("a"))
    assert s.extract_group(7) == set()
    assert s.extract_group(-1) == set()
    assert s.size == 1


def test_trait_difference_count():
    a = Species(0, traits=[1.0, 2.0, 3.0])
    b = Species(1, traits=[1.0, 5.0, 4.0])
    assert a.trait_difference_count(b) == 2
    assert not a.shares_traits_with(b)
    c = Species(2, traits=[1.0, 2.0, 3.0])
    assert a.shares_traits_with(c)


def test_trait_distance():
    a = Species(0, traits=[0.0, 0.0])
    b = Species(1, traits=[0.3, 0.4])
    assert a.trait_distance(b) == pytest.approx(0.5)


def test_co_occurring_locations():
    a, b = Species(0), Species(1)
    a.occupy({"x", "y", "z"})
    b.occupy({"y", "z", "w"})
    assert a.co_occurring_locations(b) == {"y", "z"}
    assert (a & b) == {"y", "z"}
    b.vacate("y")
    b.vacate("z")
    assert a.co_occurring_locations(b) == set()


def test_mutate_stays_in_ball(rng):
    s = Species(0, traits=[0.1, 0.1, 0.1])
    noise = GaussianNoise(0.1, rng)
    before = s.traits.copy()
    for _ in range(50):
        s.mutate(noise, radius=0.5)
        assert in_sphere(s.traits, 0.5)
    assert s.trait_difference_count(Species(1, traits=before)) > 0


def test_ordering_by_id_only():
    a = Species(1, traits=[0.4])
    b = Species(1, traits=[0.1])
    c = Species(2)
    a.occupy("x")
    assert a == b
    assert hash(a) == hash(b)
    assert a < c and c > b
    assert sorted([c, a]) == [a, c]
    assert len({a, b, c}) == 2


def test_name_and_label():
    s = Species(7, prefix="sp")
    assert s.name == "sp7"
    assert s.label() == "sp7"
    assert str(s) == "<species>sp7</species>"


def test_info_record():
    s = Species(3, traits=[0.25, -0.5])
    s.occupy({"a", "b", "c"})
    s.recompute_groups(line_graph("a", "b", "c"))
    record = ET.fromstring(s.info(42))
    assert record.tag == "species"
    assert record.get("id") == "3"
    assert record.get("date") == "42"
    assert record.findtext("name") == "s3"
    assert [float(t) for t in record.findtext("traits").split()] == [0.25, -0.5]
    assert record.findtext("locations") == "3"
    assert record.findtext("groups") == "1"


def test_occupy_accepts_views_and_iterables(grid):
    s = Species(0)
    s.occupy(grid.nodes)
    assert s.size == 25
    assert s.recompute_groups(grid) == 1

    other = Species(1)
    other.occupy({"a": 1, "b": 2}.keys())
    other.occupy(loc for loc in ("c", "d"))
    other.occupy(frozenset({"e"}))
    assert set(other.locations) == {"a", "b", "c", "d", "e"}


def test_occupy_string_is_single_location():
    s = Species(0)
    s.occupy("north")
    assert set(s.locations) == {"north"}


def test_info_flags_stale_group_count():
    s = Species(0)
    s.occupy({"a", "b"})
    s.recompute_groups(line_graph("a", "c", "b"))
    fresh = ET.fromstring(s.info(1)).find("groups")
    assert fresh.text == "2"
    assert fresh.get("stale") is None

    s.extract_group(s.group_of("a"))
    stale = ET.fromstring(s.info(2)).find("groups")
    assert stale.text == "2"
    assert stale.get("stale") == "true"
