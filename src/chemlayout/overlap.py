from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from PyQt6.QtCore import QPointF

from core.model import BondType, Edge, Ring, Vertex

from .geom import (
    distance,
    distance_sq,
    rotate_away_from,
    rotate_away_from_angle,
    rotated_around,
    same_side_as,
)
from .graph_ops import graph_components, shortest_path_edges, subgraph_size, traverse_tree, tree_depth
from .ring_system import are_vertices_in_same_ring, common_rings, ring_records
from .state import LayoutState

logger = logging.getLogger(__name__)

SWEEP_ANGLE = math.radians(120.0)
NUDGE_ANGLE = math.radians(20.0)
FINETUNE_STEP = math.radians(30.0)
FINETUNE_STEPS = 12
# Fracción de L² por debajo de la cual dos vértices no enlazados chocan.
CLASH_FACTOR = 0.8


@dataclass
class OverlapScore:
    total: float = 0.0
    vertex_scores: Dict[int, float] = field(default_factory=dict)
    # (vertex id, score), highest first; equal scores keep the lower id first.
    ranked: List[Tuple[int, float]] = field(default_factory=list)


@dataclass
class SideChoice:
    total_side_count: Tuple[int, int]
    total_position: int
    side_count: Tuple[int, int]
    position: int
    an_count: int
    bn_count: int


@dataclass
class OverlapReport:
    initial_total: float
    final_total: float


def component_index(state: LayoutState) -> Dict[int, int]:
    """Vertex id -> connected component index, cached on the state."""
    graph = state.graph
    if len(state.component_of) != len(graph.vertices):
        state.component_of = {
            vid: index for index, component in enumerate(graph_components(graph)) for vid in component
        }
    return state.component_of


def same_component(state: LayoutState, a_id: int, b_id: int) -> bool:
    components = component_index(state)
    return components[a_id] == components[b_id]


def overlap_score(state: LayoutState) -> OverlapScore:
    """Sum of (L - d) / L over drawn vertex pairs closer than one bond length.

    Only pairs within one connected component count.
    """
    graph = state.graph
    bond_length = state.options.bond_length
    components = component_index(state)
    ids = graph.vertex_ids()
    scores = {vid: 0.0 for vid in ids}
    total = 0.0
    drawn = [graph.vertices[vid] for vid in ids if graph.vertices[vid].is_drawn]
    for i, a in enumerate(drawn):
        for b in drawn[i + 1:]:
            if components[a.id] != components[b.id]:
                continue
            dist = distance(a.position, b.position)
            if dist < bond_length:
                weighted = (bond_length - dist) / bond_length
                total += weighted
                scores[a.id] += weighted
                scores[b.id] += weighted
    ranked = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
    return OverlapScore(total=total, vertex_scores=scores, ranked=ranked)


def subtree_overlap_score(
    state: LayoutState, vertex_id: int, parent_id: int, vertex_scores: Dict[int, float]
) -> Tuple[float, QPointF]:
    """Mean score of the overlapping drawn vertices of a subtree, and their weighted center."""
    graph = state.graph
    sensitivity = state.options.overlap_sensitivity
    score = 0.0
    count = 0
    cx = 0.0
    cy = 0.0
    for vid in traverse_tree(graph, vertex_id, parent_id):
        vertex = graph.vertices[vid]
        if not vertex.is_drawn:
            continue
        s = vertex_scores.get(vid, 0.0)
        if s > sensitivity:
            score += s
            count += 1
        cx += vertex.position.x() * s
        cy += vertex.position.y() * s
    if count == 0:
        return 0.0, QPointF(0.0, 0.0)
    return score / count, QPointF(cx / score, cy / score)


def can_rotate_subtree(state: LayoutState, vertex_id: int, parent_id: int) -> bool:
    graph = state.graph
    return not any(graph.vertices[vid].force_positioned for vid in traverse_tree(graph, vertex_id, parent_id))


def rotate_subtree(
    state: LayoutState, vertex_id: int, parent_id: int, angle: float, center: QPointF
) -> bool:
    """Rotate the subtree hanging from `vertex_id` (away from `parent_id`) around `center`.

    Anchored ring centers follow their vertex. Subtrees holding a pinned
    vertex are left untouched and `False` is returned.
    """
    graph = state.graph
    ids = traverse_tree(graph, vertex_id, parent_id)
    if any(graph.vertices[vid].force_positioned for vid in ids):
        return False
    pivot = QPointF(center)
    for vid in ids:
        vertex = graph.vertices[vid]
        vertex.position = rotated_around(vertex.position, angle, pivot)
        for ring_id in vertex.anchored_rings:
            for ring in ring_records(state, ring_id):
                ring.center = rotated_around(ring.center, angle, pivot)
    return True


def non_ring_neighbours(state: LayoutState, vertex_id: int) -> List[Vertex]:
    graph = state.graph
    result = []
    for nid in graph.vertices[vertex_id].neighbours:
        nbr = graph.vertices[nid]
        if not common_rings(state, vertex_id, nid) and not nbr.is_bridge:
            result.append(nbr)
    return result


def is_edge_rotatable(state: LayoutState, edge: Edge) -> bool:
    """Single bond, neither end terminal, ends not sharing a ring."""
    if edge.bond_type != BondType.SINGLE:
        return False
    graph = state.graph
    if graph.is_terminal(edge.source_id) or graph.is_terminal(edge.target_id):
        return False
    a = graph.vertices[edge.source_id]
    b = graph.vertices[edge.target_id]
    if a.rings and b.rings and are_vertices_in_same_ring(state, a.id, b.id):
        return False
    return True


def choose_side(state: LayoutState, vertex_a_id: int, vertex_b_id: int, sides: Sequence[QPointF]) -> SideChoice:
    """Count vertices on each side of the line AB; side 0 is the side of `sides[0]`."""
    graph = state.graph
    a = graph.vertices[vertex_a_id]
    b = graph.vertices[vertex_b_id]
    an = graph.neighbours(vertex_a_id, exclude=vertex_b_id)
    bn = graph.neighbours(vertex_b_id, exclude=vertex_a_id)

    side_count = [0, 0]
    for vid in list(dict.fromkeys(an + bn)):
        if same_side_as(graph.vertices[vid].position, a.position, b.position, sides[0]):
            side_count[0] += 1
        else:
            side_count[1] += 1

    total_side_count = [0, 0]
    for vid in graph.vertex_ids():
        if not same_component(state, vid, vertex_a_id):
            continue
        if same_side_as(graph.vertices[vid].position, a.position, b.position, sides[0]):
            total_side_count[0] += 1
        else:
            total_side_count[1] += 1

    return SideChoice(
        total_side_count=(total_side_count[0], total_side_count[1]),
        total_position=0 if total_side_count[0] > total_side_count[1] else 1,
        side_count=(side_count[0], side_count[1]),
        position=0 if side_count[0] > side_count[1] else 1,
        an_count=len(an),
        bn_count=len(bn),
    )


def _expired(deadline: Optional[float]) -> bool:
    return deadline is not None and time.monotonic() > deadline


def resolve_primary_overlaps(state: LayoutState, deadline: Optional[float] = None) -> None:
    """Split pairs of substituents that leave the same ring atom along the same direction."""
    graph = state.graph
    overlaps: List[Tuple[Vertex, List[int], List[Vertex]]] = []
    done = set()
    for ring in state.rings.values():
        for vid in ring.members:
            if vid in done:
                continue
            done.add(vid)
            substituents = non_ring_neighbours(state, vid)
            if len(substituents) > 1:
                vertex = graph.vertices[vid]
                overlaps.append((vertex, list(vertex.rings), substituents))

    for common, rings, substituents in overlaps:
        if _expired(deadline):
            return
        if len(substituents) != 2 or not rings:
            continue
        a, b = sorted(substituents, key=lambda v: v.id)
        if not a.is_drawn or not b.is_drawn:
            continue
        if not can_rotate_subtree(state, a.id, common.id) or not can_rotate_subtree(state, b.id, common.id):
            continue

        angle = (2.0 * math.pi - state.rings[rings[0]].angle) / 6.0
        pivot = QPointF(common.position)
        # El sustituyente de menor id va primero hacia el lado menos poblado.
        trial = rotated_around(a.position, angle, pivot)
        side = choose_side(state, common.id, a.id, [trial])
        sign = 1.0 if side.total_side_count[0] <= side.total_side_count[1] else -1.0

        initial_total = overlap_score(state).total
        rotate_subtree(state, a.id, common.id, sign * angle, pivot)
        rotate_subtree(state, b.id, common.id, -sign * angle, pivot)
        scores = overlap_score(state)
        first_value = (
            subtree_overlap_score(state, a.id, common.id, scores.vertex_scores)[0]
            + subtree_overlap_score(state, b.id, common.id, scores.vertex_scores)[0]
        )
        first_total = scores.total

        rotate_subtree(state, a.id, common.id, -2.0 * sign * angle, pivot)
        rotate_subtree(state, b.id, common.id, 2.0 * sign * angle, pivot)
        scores = overlap_score(state)
        second_value = (
            subtree_overlap_score(state, a.id, common.id, scores.vertex_scores)[0]
            + subtree_overlap_score(state, b.id, common.id, scores.vertex_scores)[0]
        )
        chosen_total = scores.total
        applied = -sign * angle
        if second_value >= first_value:
            rotate_subtree(state, a.id, common.id, 2.0 * sign * angle, pivot)
            rotate_subtree(state, b.id, common.id, -2.0 * sign * angle, pivot)
            chosen_total = first_total
            applied = sign * angle

        if chosen_total > initial_total:
            rotate_subtree(state, a.id, common.id, -applied, pivot)
            rotate_subtree(state, b.id, common.id, applied, pivot)


def resolve_rotatable_bonds(state: LayoutState, deadline: Optional[float] = None) -> None:
    """Rotate the shallower side of rotatable bonds away by 120° when it overlaps."""
    graph = state.graph
    options = state.options
    scores = overlap_score(state)
    total = scores.total
    edges = [graph.edges[eid] for eid in sorted(graph.edges)]
    for _ in range(options.overlap_resolution_iterations):
        for edge in edges:
            if _expired(deadline):
                return
            if not is_edge_rotatable(state, edge):
                continue
            depth_a = tree_depth(graph, edge.source_id, edge.target_id)
            depth_b = tree_depth(graph, edge.target_id, edge.source_id)
            a_id, b_id = edge.target_id, edge.source_id
            if depth_a > depth_b:
                a_id, b_id = edge.source_id, edge.target_id

            value, _ = subtree_overlap_score(state, b_id, a_id, scores.vertex_scores)
            if value <= options.overlap_sensitivity:
                continue
            vertex_a = graph.vertices[a_id]
            vertex_b = graph.vertices[b_id]
            neighbours_b = graph.neighbours(b_id, exclude=a_id)
            pivot = QPointF(vertex_b.position)

            if len(neighbours_b) == 1:
                nbr = graph.vertices[neighbours_b[0]]
                angle = rotate_away_from_angle(nbr.position, vertex_a.position, pivot, SWEEP_ANGLE)
                if rotate_subtree(state, nbr.id, b_id, angle, pivot):
                    new_total = overlap_score(state).total
                    if new_total > total:
                        rotate_subtree(state, nbr.id, b_id, -angle, pivot)
                    else:
                        total = new_total
            elif len(neighbours_b) == 2:
                if vertex_b.rings and vertex_a.rings:
                    continue
                nbr_a = graph.vertices[neighbours_b[0]]
                nbr_b = graph.vertices[neighbours_b[1]]
                if nbr_a.rings or nbr_b.rings:
                    continue
                if not can_rotate_subtree(state, nbr_a.id, b_id) or not can_rotate_subtree(state, nbr_b.id, b_id):
                    continue
                angle_a = rotate_away_from_angle(nbr_a.position, vertex_a.position, pivot, SWEEP_ANGLE)
                angle_b = rotate_away_from_angle(nbr_b.position, vertex_a.position, pivot, SWEEP_ANGLE)
                rotate_subtree(state, nbr_a.id, b_id, angle_a, pivot)
                rotate_subtree(state, nbr_b.id, b_id, angle_b, pivot)
                new_total = overlap_score(state).total
                if new_total > total:
                    rotate_subtree(state, nbr_a.id, b_id, -angle_a, pivot)
                    rotate_subtree(state, nbr_b.id, b_id, -angle_b, pivot)
                else:
                    total = new_total
            scores = overlap_score(state)


def closest_vertex(state: LayoutState, vertex: Vertex) -> Optional[Vertex]:
    best: Optional[Vertex] = None
    best_dist = math.inf
    for vid in state.graph.vertex_ids():
        if vid == vertex.id or not same_component(state, vid, vertex.id):
            continue
        other = state.graph.vertices[vid]
        dist = distance_sq(vertex.position, other.position)
        if dist < best_dist:
            best_dist = dist
            best = other
    return best


def resolve_secondary_overlaps(
    state: LayoutState, ranked: Sequence[Tuple[int, float]], deadline: Optional[float] = None
) -> None:
    """Nudge overlapping terminal vertices 20° away from their closest vertex."""
    graph = state.graph
    total = overlap_score(state).total
    for vid, score in ranked:
        if score <= state.options.overlap_sensitivity:
            break
        if _expired(deadline):
            return
        vertex = graph.vertices[vid]
        if vertex.force_positioned or len(vertex.neighbours) != 1:
            continue
        closest = closest_vertex(state, vertex)
        if closest is None:
            continue
        if graph.is_terminal(closest.id) and closest.neighbours:
            away = graph.vertices[closest.neighbours[0]].position
        else:
            away = closest.position
        pivot = graph.vertices[vertex.neighbours[0]].position
        old = QPointF(vertex.position)
        vertex.position = rotate_away_from(vertex.position, away, pivot, NUDGE_ANGLE)
        new_total = overlap_score(state).total
        if new_total > total:
            vertex.position = old
        else:
            total = new_total


def _clashing_pairs(state: LayoutState) -> List[Tuple[int, int]]:
    graph = state.graph
    limit = CLASH_FACTOR * state.options.bond_length_sq
    drawn = [vid for vid in graph.vertex_ids() if graph.vertices[vid].is_drawn]
    pairs = []
    for i, a in enumerate(drawn):
        for b in drawn[i + 1:]:
            if graph.has_edge(a, b) or not same_component(state, a, b):
                continue
            if distance_sq(graph.vertices[a].position, graph.vertices[b].position) < limit:
                pairs.append((a, b))
    return pairs


def _central_rotatable_edge(state: LayoutState, path: List[Edge]) -> Optional[Edge]:
    middle = (len(path) - 1) / 2.0
    best: Optional[Edge] = None
    best_offset = math.inf
    for idx, edge in enumerate(path):
        if not is_edge_rotatable(state, edge):
            continue
        offset = abs(idx - middle)
        if offset < best_offset:
            best_offset = offset
            best = edge
    return best


def resolve_finetune_overlaps(state: LayoutState, deadline: Optional[float] = None) -> None:
    """Try 30° steps around the most central rotatable bond between clashing vertices."""
    graph = state.graph
    limit = CLASH_FACTOR * state.options.bond_length_sq
    total = overlap_score(state).total
    for a_id, b_id in _clashing_pairs(state):
        if _expired(deadline):
            return
        if distance_sq(graph.vertices[a_id].position, graph.vertices[b_id].position) >= limit:
            continue
        edge = _central_rotatable_edge(state, shortest_path_edges(graph, a_id, b_id))
        if edge is None:
            continue
        size_source = subgraph_size(graph, edge.source_id, [edge.target_id])
        size_target = subgraph_size(graph, edge.target_id, [edge.source_id])
        root, pivot_id = edge.source_id, edge.target_id
        if size_target < size_source:
            root, pivot_id = edge.target_id, edge.source_id
        if not can_rotate_subtree(state, root, pivot_id):
            continue

        pivot = QPointF(graph.vertices[pivot_id].position)
        saved = _snapshot(state, traverse_tree(graph, root, pivot_id))
        best_step = 0
        best_total = total
        for step in range(1, FINETUNE_STEPS):
            _restore(state, saved)
            rotate_subtree(state, root, pivot_id, step * FINETUNE_STEP, pivot)
            candidate = overlap_score(state).total
            if candidate < best_total:
                best_total = candidate
                best_step = step
        _restore(state, saved)
        if best_step:
            rotate_subtree(state, root, pivot_id, best_step * FINETUNE_STEP, pivot)
            total = best_total


Snapshot = Tuple[Dict[int, QPointF], List[Tuple[Ring, QPointF]]]


def _snapshot(state: LayoutState, ids: Sequence[int]) -> Snapshot:
    graph = state.graph
    positions = {vid: QPointF(graph.vertices[vid].position) for vid in ids}
    centers = []
    for vid in ids:
        for ring_id in graph.vertices[vid].anchored_rings:
            for ring in ring_records(state, ring_id):
                centers.append((ring, QPointF(ring.center)))
    return positions, centers


def _restore(state: LayoutState, saved: Snapshot) -> None:
    positions, centers = saved
    for vid, pos in positions.items():
        state.graph.vertices[vid].position = QPointF(pos)
    for ring, center in centers:
        ring.center = QPointF(center)


def resolve_overlaps(state: LayoutState) -> OverlapReport:
    """Run every overlap pass within the configured time budget."""
    options = state.options
    deadline = time.monotonic() + options.overlap_time_budget_s
    initial = overlap_score(state).total
    resolve_primary_overlaps(state, deadline)
    resolve_rotatable_bonds(state, deadline)
    resolve_secondary_overlaps(state, overlap_score(state).ranked, deadline)
    if options.finetune_overlap:
        resolve_finetune_overlaps(state, deadline)
    final = overlap_score(state).total
    logger.debug("Overlap score: %.4f -> %.4f", initial, final)
    return OverlapReport(initial_total=initial, final_total=final)
