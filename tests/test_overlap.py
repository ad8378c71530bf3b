"""Pruebas unitarias para test_overlap."""

import math
import os
import sys
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from PyQt6.QtCore import QPointF

from core.model import BondType
from chemlayout import overlap, positioning, ring_system
from chemlayout.options import LayoutOptions
from chemlayout.state import LayoutState
from graph_fixtures import build_graph, chain, di_tert_butyl_benzene, naphthalene, toluene


def _laid_out(graph, options=None):
    state = LayoutState(graph=graph, options=options or LayoutOptions())
    ring_system.init_rings(state)
    positioning.init_hydrogens(state)
    positioning.position(state)
    ring_system.restore_ring_information(state)
    return state


class OverlapScoreTest(unittest.TestCase):
    """Casos de prueba para OverlapScoreTest."""
    def test_close_pair_scores(self):
        """Verifica close pair scores.

        Returns:
            None.

        """
        graph = build_graph(["C", "C", "C"], [(0, 1), (1, 2)])
        graph.vertices[0].set_position(0.0, 0.0)
        graph.vertices[1].set_position(20.0, 0.0)
        graph.vertices[2].set_position(200.0, 0.0)
        score = overlap.overlap_score(LayoutState(graph=graph))
        self.assertAlmostEqual(score.total, 0.5)
        self.assertAlmostEqual(score.vertex_scores[0], 0.5)
        self.assertEqual(score.vertex_scores[2], 0.0)
        self.assertEqual([vid for vid, _ in score.ranked], [0, 1, 2])

    def test_separate_components_do_not_score(self):
        """Verifica separate components do not score.

        Returns:
            None.

        """
        graph = build_graph(["C", "C", "O"], [(0, 1)])
        graph.vertices[0].set_position(0.0, 0.0)
        graph.vertices[1].set_position(40.0, 0.0)
        graph.vertices[2].set_position(0.0, 0.0)
        state = LayoutState(graph=graph)
        self.assertEqual(overlap.overlap_score(state).total, 0.0)
        self.assertIs(overlap.closest_vertex(state, graph.vertices[0]), graph.vertices[1])

    def test_hidden_vertices_ignored(self):
        """Verifica hidden vertices ignored.

        Returns:
            None.

        """
        graph = build_graph(["C", "H"], [])
        graph.vertices[1].is_drawn = False
        score = overlap.overlap_score(LayoutState(graph=graph))
        self.assertEqual(score.total, 0.0)

    def test_regular_layout_has_no_overlap(self):
        """Verifica regular layout has no overlap.

        Returns:
            None.

        """
        state = _laid_out(naphthalene())
        self.assertAlmostEqual(overlap.overlap_score(state).total, 0.0)


class RotationTest(unittest.TestCase):
    """Casos de prueba para RotationTest."""
    def test_edge_rotatable(self):
        """Verifica edge rotatable.

        Returns:
            None.

        """
        state = _laid_out(chain(4))
        graph = state.graph
        self.assertTrue(overlap.is_edge_rotatable(state, graph.find_edge_between(1, 2)))
        self.assertFalse(overlap.is_edge_rotatable(state, graph.find_edge_between(0, 1)))

        ring_state = _laid_out(toluene())
        self.assertFalse(overlap.is_edge_rotatable(ring_state, ring_state.graph.find_edge_between(1, 2)))

        double = build_graph(["C"] * 4, [(0, 1), (1, 2, BondType.DOUBLE), (2, 3)])
        double_state = LayoutState(graph=double)
        self.assertFalse(overlap.is_edge_rotatable(double_state, double.find_edge_between(1, 2)))

    def test_rotate_subtree(self):
        """Verifica rotate subtree.

        Returns:
            None.

        """
        state = _laid_out(chain(4))
        graph = state.graph
        pivot = QPointF(graph.vertices[1].position)
        before = QPointF(graph.vertices[0].position)
        self.assertTrue(overlap.rotate_subtree(state, 2, 1, math.pi, pivot))
        self.assertEqual(graph.vertices[0].position, before)
        self.assertAlmostEqual(
            math.hypot(
                graph.vertices[2].position.x() - pivot.x(),
                graph.vertices[2].position.y() - pivot.y(),
            ),
            40.0,
        )

    def test_rotate_subtree_refuses_pinned(self):
        """Verifica rotate subtree refuses pinned.

        Returns:
            None.

        """
        state = _laid_out(chain(4))
        graph = state.graph
        graph.vertices[3].force_positioned = True
        before = QPointF(graph.vertices[2].position)
        self.assertFalse(overlap.rotate_subtree(state, 2, 1, 1.0, graph.vertices[1].position))
        self.assertEqual(graph.vertices[2].position, before)
        self.assertFalse(overlap.can_rotate_subtree(state, 2, 1))

    def test_choose_side_counts(self):
        """Verifica choose side counts.

        Returns:
            None.

        """
        graph = build_graph(["C"] * 4, [(0, 1), (0, 2), (1, 3)])
        graph.vertices[0].set_position(0.0, 0.0)
        graph.vertices[1].set_position(40.0, 0.0)
        graph.vertices[2].set_position(-20.0, 30.0)
        graph.vertices[3].set_position(60.0, 30.0)
        side = overlap.choose_side(LayoutState(graph=graph), 0, 1, [QPointF(0.0, 10.0)])
        self.assertEqual(side.side_count, (2, 0))
        self.assertEqual(side.position, 0)
        self.assertEqual((side.an_count, side.bn_count), (1, 1))


class ResolveOverlapsTest(unittest.TestCase):
    """Casos de prueba para ResolveOverlapsTest."""
    def test_resolution_never_increases_score(self):
        """Verifica resolution never increases score.

        Returns:
            None.

        """
        state = _laid_out(di_tert_butyl_benzene())
        report = overlap.resolve_overlaps(state)
        self.assertLessEqual(report.final_total, report.initial_total + 1e-9)
        self.assertAlmostEqual(report.final_total, overlap.overlap_score(state).total)

    def test_forced_clash_is_reduced(self):
        """Verifica forced clash is reduced.

        Returns:
            None.

        """
        # Hexano doblado sobre sí mismo: 0 y 4 quedan casi encima.
        graph = chain(6)
        state = _laid_out(graph)
        positions = [(0.0, 0.0), (40.0, 0.0), (60.0, 34.64), (20.0, 34.64), (0.0, 5.0), (-40.0, 5.0)]
        for vid, (x, y) in enumerate(positions):
            graph.vertices[vid].set_position(x, y)
        report = overlap.resolve_overlaps(state)
        self.assertGreater(report.initial_total, 0.0)
        self.assertLess(report.final_total, report.initial_total)

    def test_pinned_layout_untouched(self):
        """Verifica pinned layout untouched.

        Returns:
            None.

        """
        graph = di_tert_butyl_benzene()
        state = _laid_out(graph)
        graph.pin_all()
        before = {vid: QPointF(v.position) for vid, v in graph.vertices.items()}
        overlap.resolve_overlaps(state)
        for vid, vertex in graph.vertices.items():
            self.assertEqual(vertex.position, before[vid])


if __name__ == "__main__":
    unittest.main()
