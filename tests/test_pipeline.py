"""Pruebas unitarias para test_pipeline."""

import math
import os
import sys
import unittest

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from chemlayout import LayoutContractError, LayoutNotPossible, LayoutOptions, LayoutPipeline, compute_layout
from graph_fixtures import (
    adamantane,
    anthracene,
    bicyclo_nonane,
    build_graph,
    chain,
    di_tert_butyl_benzene,
    ethanol_and_water,
    naphthalene,
    spiro_nonane,
    toluene,
    two_hexanes,
)


class PipelineTest(unittest.TestCase):
    """Casos de prueba para PipelineTest."""
    def test_every_vertex_reported(self):
        """Verifica every vertex reported.

        Returns:
            None.

        """
        graph = toluene()
        result = compute_layout(graph)
        self.assertEqual([record.id for record in result.vertices], list(range(7)))
        for record in result.vertices:
            self.assertTrue(math.isfinite(record.x) and math.isfinite(record.y))
        self.assertEqual(result.vertex(0).rings, [])
        self.assertEqual(result.vertex(1).rings, [0])

    def test_ring_inventories(self):
        """Verifica ring inventories.

        Returns:
            None.

        """
        result = compute_layout(adamantane())
        self.assertEqual(len(result.rings), 1)
        self.assertTrue(result.rings[0].is_bridged)
        self.assertEqual(len(result.rings[0].subrings), 3)
        self.assertEqual(len(result.original_rings), 3)
        self.assertEqual(result.ring_connections, [])
        self.assertEqual(len(result.original_ring_connections), 3)
        bridged_id = result.rings[0].id
        self.assertTrue(all(record.rings == [bridged_id] for record in result.vertices))
        self.assertTrue(all(record.force_positioned for record in result.vertices))

    def test_restored_centers_follow_vertices(self):
        """Verifica restored centers follow vertices.

        Returns:
            None.

        """
        graph = bicyclo_nonane()
        result = compute_layout(graph)
        positions = result.positions()
        for ring in result.original_rings:
            xs = [positions[vid][0] for vid in ring.members]
            ys = [positions[vid][1] for vid in ring.members]
            self.assertAlmostEqual(ring.center[0], sum(xs) / len(xs), places=4)
            self.assertAlmostEqual(ring.center[1], sum(ys) / len(ys), places=4)

    def test_pin_all_is_idempotent(self):
        """Verifica pin all is idempotent.

        Returns:
            None.

        """
        for factory in (chain, toluene, naphthalene, adamantane, di_tert_butyl_benzene, ethanol_and_water):
            graph = factory(6) if factory is chain else factory()
            compute_layout(graph)
            first = {vid: (v.position.x(), v.position.y()) for vid, v in graph.vertices.items()}
            graph.pin_all()
            second = compute_layout(graph).positions()
            with self.subTest(factory.__name__):
                for vid, (x, y) in first.items():
                    self.assertAlmostEqual(second[vid][0], x, places=6)
                    self.assertAlmostEqual(second[vid][1], y, places=6)

    def test_components_do_not_overlap(self):
        """Verifica components do not overlap.

        Returns:
            None.

        """
        result = compute_layout(ethanol_and_water())
        ethanol_max = max(result.vertex(vid).x for vid in (0, 1, 2))
        self.assertGreater(result.vertex(3).x, ethanol_max)

    def test_identical_components_are_congruent(self):
        """Verifica identical components are congruent.

        Returns:
            None.

        """
        pipeline = LayoutPipeline(two_hexanes(), LayoutOptions(rotate_drawing=False))
        positions = pipeline.run().positions()
        self.assertEqual(pipeline.overlap_report.initial_total, 0.0)

        def pair_distances(ids):
            return [
                math.hypot(positions[a][0] - positions[b][0], positions[a][1] - positions[b][1])
                for i, a in enumerate(ids)
                for b in ids[i + 1:]
            ]

        first = pair_distances(list(range(6)))
        second = pair_distances(list(range(6, 12)))
        for d1, d2 in zip(first, second):
            self.assertAlmostEqual(d1, d2, places=4)
        # Zigzag extendido entre los extremos.
        self.assertAlmostEqual(first[4], math.hypot(5 * 40.0 * math.cos(math.radians(30.0)), 20.0), places=3)

    def test_hidden_hydrogens(self):
        """Verifica hidden hydrogens.

        Returns:
            None.

        """
        graph = build_graph(["C", "C", "O", "H", "H"], [(0, 1), (1, 2), (0, 3), (2, 4)])
        result = compute_layout(graph, LayoutOptions(explicit_hydrogens=False))
        self.assertFalse(result.vertex(3).is_drawn)
        self.assertFalse(result.vertex(4).is_drawn)
        self.assertTrue(result.vertex(0).is_drawn)

    def test_overlap_report(self):
        """Verifica overlap report.

        Returns:
            None.

        """
        pipeline = LayoutPipeline(di_tert_butyl_benzene())
        result = pipeline.run()
        report = pipeline.overlap_report
        self.assertIsNotNone(report)
        self.assertLessEqual(report.final_total, report.initial_total + 1e-9)
        self.assertGreaterEqual(result.overlap_score, 0.0)

    def test_rerun_recomputes(self):
        """Verifica rerun recomputes.

        Returns:
            None.

        """
        graph = anthracene()
        first = compute_layout(graph).positions()
        second = compute_layout(graph).positions()
        for vid in first:
            self.assertAlmostEqual(first[vid][0], second[vid][0], places=6)
            self.assertAlmostEqual(first[vid][1], second[vid][1], places=6)
        self.assertEqual(len(compute_layout(graph).original_rings), 3)

    def test_ring_info(self):
        """Verifica ring info.

        Returns:
            None.

        """
        pipeline = LayoutPipeline(spiro_nonane())
        pipeline.run()
        lines = pipeline.ring_info().splitlines()
        self.assertEqual(len(lines), 2)
        self.assertTrue(all(";true;false;false;0;" in line for line in lines))


def test_empty_graph():
    result = compute_layout(build_graph([], []))
    assert result.vertices == []
    assert result.overlap_score == 0.0


def test_invalid_options_rejected():
    with pytest.raises(LayoutContractError):
        compute_layout(chain(2), LayoutOptions(bond_length=0.0))


def test_non_finite_input_rejected():
    graph = build_graph(["C", "C"], [(0, 1)])
    graph.vertices[0].set_position(float("nan"), 0.0)
    graph.pin_all()
    with pytest.raises(LayoutNotPossible):
        compute_layout(graph)


def test_horizontal_alignment():
    result = compute_layout(chain(2))
    a = result.vertex(0)
    b = result.vertex(1)
    assert a.y == pytest.approx(b.y)


if __name__ == "__main__":
    unittest.main()
