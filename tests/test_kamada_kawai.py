"""Pruebas unitarias para test_kamada_kawai."""

import math
import os
import sys
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from PyQt6.QtCore import QPointF

from chemlayout.errors import LayoutContractError
from chemlayout.geom import is_finite_point
from chemlayout.kamada_kawai import kamada_kawai_layout
from chemlayout.options import LayoutOptions
from graph_fixtures import adamantane, cyclohexane


class KamadaKawaiTest(unittest.TestCase):
    """Casos de prueba para KamadaKawaiTest."""
    def test_empty_subset_rejected(self):
        """Verifica empty subset rejected.

        Returns:
            None.

        """
        with self.assertRaises(LayoutContractError):
            kamada_kawai_layout(cyclohexane(), [], QPointF(0.0, 0.0))

    def test_stops_on_threshold_or_iteration_cap(self):
        """Verifica stops on threshold or iteration cap.

        Returns:
            None.

        """
        graph = adamantane()
        options = LayoutOptions(kk_max_iteration=500)
        report = kamada_kawai_layout(graph, graph.vertex_ids(), QPointF(0.0, 0.0), options)
        self.assertTrue(report.converged or report.iterations == options.kk_max_iteration)
        self.assertLessEqual(report.iterations, options.kk_max_iteration)
        self.assertEqual(report.converged, report.max_residual <= options.kk_threshold)
        for vertex in graph.vertices.values():
            self.assertTrue(vertex.positioned)
            self.assertTrue(vertex.force_positioned)
            self.assertTrue(is_finite_point(vertex.position))

    def test_zero_iterations_keeps_initial_circle(self):
        """Verifica zero iterations keeps initial circle.

        Returns:
            None.

        """
        graph = cyclohexane()
        center = QPointF(10.0, -5.0)
        report = kamada_kawai_layout(graph, graph.vertex_ids(), center, LayoutOptions(kk_max_iteration=0))
        self.assertEqual(report.iterations, 0)
        radii = {round(math.hypot(v.position.x() - 10.0, v.position.y() + 5.0), 6) for v in graph.vertices.values()}
        self.assertEqual(len(radii), 1)

    def test_positioned_vertices_are_anchors(self):
        """Verifica positioned vertices are anchors.

        Returns:
            None.

        """
        graph = cyclohexane()
        anchor = graph.vertices[0]
        anchor.set_position(3.0, 4.0)
        anchor.positioned = True
        report = kamada_kawai_layout(graph, graph.vertex_ids(), QPointF(0.0, 0.0))
        self.assertEqual(anchor.position, QPointF(3.0, 4.0))
        self.assertNotIn(0, report.residuals)
        self.assertEqual(set(report.residuals), {1, 2, 3, 4, 5})


if __name__ == "__main__":
    unittest.main()
