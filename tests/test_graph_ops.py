"""Pruebas unitarias para test_graph_ops."""

import os
import sys
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from chemlayout.errors import LayoutContractError
from chemlayout.graph_ops import (
    adjacency_matrix,
    bridges,
    components_adjacency_matrix,
    connected_component_count,
    connected_components,
    distance_matrix,
    graph_components,
    shortest_path_edges,
    subgraph_size,
    traverse_tree,
    tree_depth,
)
from graph_fixtures import chain, ethanol_and_water, naphthalene, toluene


class GraphOpsTest(unittest.TestCase):
    """Casos de prueba para GraphOpsTest."""
    def test_distance_matrix_chain(self):
        """Verifica distance matrix chain.

        Returns:
            None.

        """
        dist = distance_matrix(adjacency_matrix(chain(4)))
        self.assertEqual(dist[0], [0, 1, 2, 3])
        self.assertEqual(dist[3][1], 2)

    def test_distance_matrix_unreachable(self):
        """Verifica distance matrix unreachable.

        Returns:
            None.

        """
        dist = distance_matrix(adjacency_matrix(ethanol_and_water()))
        self.assertIsNone(dist[0][3])
        self.assertEqual(dist[3][3], 0)

    def test_non_square_matrix_rejected(self):
        """Verifica non square matrix rejected.

        Returns:
            None.

        """
        with self.assertRaises(LayoutContractError):
            distance_matrix([[0, 1], [1]])
        with self.assertRaises(LayoutContractError):
            connected_components([[0, 1, 0], [1, 0]])

    def test_bridges_of_toluene(self):
        """Verifica bridges of toluene.

        Returns:
            None.

        """
        self.assertEqual(bridges(toluene()), [(0, 1)])

    def test_components_without_bridges(self):
        """Verifica components without bridges.

        Returns:
            None.

        """
        matrix = components_adjacency_matrix(toluene())
        self.assertEqual(connected_components(matrix), [[1, 2, 3, 4, 5, 6]])
        self.assertEqual(connected_component_count(matrix), 2)

    def test_graph_components_keep_isolated_atoms(self):
        """Verifica graph components keep isolated atoms.

        Returns:
            None.

        """
        self.assertEqual(graph_components(ethanol_and_water()), [[0, 1, 2], [3]])

    def test_tree_depth(self):
        """Verifica tree depth.

        Returns:
            None.

        """
        graph = chain(5)
        self.assertEqual(tree_depth(graph, 1, 0), 4)
        self.assertEqual(tree_depth(graph, 4, 3), 1)
        self.assertEqual(tree_depth(graph, None, 0), 0)

    def test_traverse_tree_skips_parent(self):
        """Verifica traverse tree skips parent.

        Returns:
            None.

        """
        graph = naphthalene()
        order = traverse_tree(graph, 1, 0)
        self.assertNotIn(0, order)
        self.assertEqual(order[0], 1)
        self.assertEqual(len(order), 9)
        self.assertEqual(traverse_tree(chain(5), 2, 1, max_depth=1), [2, 3])

    def test_subgraph_size(self):
        """Verifica subgraph size.

        Returns:
            None.

        """
        graph = toluene()
        self.assertEqual(subgraph_size(graph, 1, [0]), 6)
        self.assertEqual(subgraph_size(graph, 0, [1]), 1)

    def test_shortest_path_edges(self):
        """Verifica shortest path edges.

        Returns:
            None.

        """
        graph = chain(4)
        path = shortest_path_edges(graph, 0, 3)
        self.assertEqual(len(path), 3)
        self.assertEqual({path[0].source_id, path[0].target_id}, {0, 1})
        self.assertEqual(shortest_path_edges(ethanol_and_water(), 0, 3), [])


if __name__ == "__main__":
    unittest.main()
