"""Post-placement correction of cis/trans double bonds.

A `/` or `\\` bond is read relative to its source atom. The two anchors of a
double bond are cis when their relative symbols match. Bonds drawn against
the encoded configuration get one side mirrored across the bond axis.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

from PyQt6.QtCore import QPointF

from core.model import DIRECTIONAL_BONDS, BondType, Edge, MolGraph

from .geom import mirrored_about_line, which_side
from .graph_ops import subgraph_size, subgraph_vertices
from .ring_system import are_vertices_in_same_ring, common_rings, ring_records
from .state import LayoutState

logger = logging.getLogger(__name__)

CIS = "cis"
TRANS = "trans"
# Cross products below this fraction of L² count as collinear.
COLLINEAR_EPS = 1e-6

# (neighbour of the source atom, neighbour of the target atom) -> CIS / TRANS
Orientation = Dict[Tuple[int, int], str]
# (central vertex, first line vertex, second line vertex)
FlipPlan = Tuple[int, int, int]


def opposite_direction(bond_type: Optional[BondType]) -> Optional[BondType]:
    if bond_type == BondType.UP:
        return BondType.DOWN
    if bond_type == BondType.DOWN:
        return BondType.UP
    return bond_type


def relative_symbol(graph: MolGraph, center_id: int, neighbour_id: int) -> Optional[BondType]:
    """Direction of the bond center-neighbour as seen from `center_id`."""
    edge = graph.find_edge_between(center_id, neighbour_id)
    if edge is None or edge.bond_type not in DIRECTIONAL_BONDS:
        return None
    if edge.source_id == center_id:
        return edge.bond_type
    return opposite_direction(edge.bond_type)


def _resolve_side(
    graph: MolGraph, center_id: int, opposite_id: int
) -> Optional[Tuple[int, Optional[int], BondType]]:
    neighbours = graph.neighbours(center_id, exclude=opposite_id)
    if not neighbours:
        return None
    anchor = neighbours[0]
    partner = neighbours[1] if len(neighbours) > 1 else None
    anchor_symbol = relative_symbol(graph, center_id, anchor)
    if anchor_symbol is None and partner is not None:
        partner_symbol = relative_symbol(graph, center_id, partner)
        if partner_symbol is not None:
            anchor, partner = partner, anchor
            anchor_symbol = partner_symbol
    if anchor_symbol is None:
        return None
    return anchor, partner, anchor_symbol


def _register(orientation: Orientation, left: Optional[int], right: Optional[int], value: str) -> None:
    if left is not None and right is not None:
        orientation[(left, right)] = value


def stereo_double_bonds(state: LayoutState) -> Dict[int, Orientation]:
    """Encoded cis/trans relation of the substituents of every directional double bond."""
    graph = state.graph
    result: Dict[int, Orientation] = {}
    for eid in sorted(graph.edges):
        edge = graph.edges[eid]
        if edge.bond_type != BondType.DOUBLE:
            continue
        side_a = _resolve_side(graph, edge.source_id, edge.target_id)
        side_b = _resolve_side(graph, edge.target_id, edge.source_id)
        if side_a is None or side_b is None:
            continue
        anchor_a, partner_a, symbol_a = side_a
        anchor_b, partner_b, symbol_b = side_b
        same, other = (CIS, TRANS) if symbol_a == symbol_b else (TRANS, CIS)
        orientation: Orientation = {}
        _register(orientation, anchor_a, anchor_b, same)
        _register(orientation, partner_a, partner_b, same)
        _register(orientation, anchor_a, partner_b, other)
        _register(orientation, partner_a, anchor_b, other)
        result[eid] = orientation
    return result


def _side(state: LayoutState, p: QPointF, a: QPointF, b: QPointF) -> int:
    cross = which_side(p, a, b)
    if abs(cross) < COLLINEAR_EPS * state.options.bond_length_sq:
        return 0
    return 1 if cross > 0 else -1


def drawn_orientation(state: LayoutState, edge: Edge, left_id: int, right_id: int) -> Optional[str]:
    """CIS or TRANS as currently drawn; None when a vertex is hidden or on the bond axis."""
    graph = state.graph
    left = graph.vertices[left_id]
    right = graph.vertices[right_id]
    if not left.is_drawn or not right.is_drawn:
        return None
    a = graph.vertices[edge.source_id].position
    b = graph.vertices[edge.target_id].position
    side_left = _side(state, left.position, a, b)
    side_right = _side(state, right.position, a, b)
    if side_left == 0 or side_right == 0:
        return None
    return CIS if side_left == side_right else TRANS


def is_bond_drawn_correctly(state: LayoutState, edge: Edge, orientation: Orientation) -> bool:
    graph = state.graph
    for (left_id, right_id), expected in orientation.items():
        if not graph.vertices[left_id].is_drawn or not graph.vertices[right_id].is_drawn:
            continue
        if drawn_orientation(state, edge, left_id, right_id) != expected:
            return False
    return True


def _adjacent_stereo_bond(
    graph: MolGraph, stereo: Dict[int, Orientation], vertex_id: int, exclude_id: int
) -> Optional[int]:
    for nid in graph.neighbours(vertex_id, exclude=exclude_id):
        edge = graph.find_edge_between(vertex_id, nid)
        if edge is not None and edge.id in stereo:
            return edge.id
    return None


def _merge(first: List[int], second: List[int]) -> Optional[List[int]]:
    if first[-1] == second[0]:
        return first + second[1:]
    if first[-1] == second[-1]:
        return first + list(reversed(second[:-1]))
    if first[0] == second[0]:
        return list(reversed(second[1:])) + first
    if first[0] == second[-1]:
        return second[:-1] + first
    return None


def double_bond_sequences(state: LayoutState, stereo: Dict[int, Orientation]) -> List[List[int]]:
    """Conjugated runs of stereo double bonds (edge ids), linked through single bonds."""
    graph = state.graph
    fragments: List[List[int]] = []
    for eid in sorted(graph.edges):
        edge = graph.edges[eid]
        if edge.bond_type != BondType.SINGLE and edge.bond_type not in DIRECTIONAL_BONDS:
            continue
        first = _adjacent_stereo_bond(graph, stereo, edge.source_id, edge.target_id)
        second = _adjacent_stereo_bond(graph, stereo, edge.target_id, edge.source_id)
        if first is not None and second is not None:
            fragments.append([first, second])

    merged = True
    while merged:
        merged = False
        for i in range(len(fragments)):
            for j in range(i + 1, len(fragments)):
                joined = _merge(fragments[i], fragments[j])
                if joined is None:
                    continue
                fragments = [f for k, f in enumerate(fragments) if k not in (i, j)]
                fragments.append(joined)
                merged = True
                break
            if merged:
                break
    return fragments


def flip_subtree(state: LayoutState, root_id: int, line_a_id: int, line_b_id: int) -> bool:
    """Mirror the vertices reachable from `root_id` across the line through both line vertices.

    The walk never crosses the two line vertices. Anchored ring centers
    follow. Subtrees holding a pinned vertex are left alone and `False` is
    returned.
    """
    graph = state.graph
    ids = subgraph_vertices(graph, root_id, [line_a_id, line_b_id])
    if any(graph.vertices[vid].force_positioned for vid in ids):
        return False
    a = QPointF(graph.vertices[line_a_id].position)
    b = QPointF(graph.vertices[line_b_id].position)
    for vid in ids:
        vertex = graph.vertices[vid]
        vertex.position = mirrored_about_line(vertex.position, a, b)
        for ring_id in vertex.anchored_rings:
            for ring in ring_records(state, ring_id):
                ring.center = mirrored_about_line(ring.center, a, b)
    return True


def _drawn_neighbours(graph: MolGraph, vertex_id: int, exclude: Set[int]) -> List[int]:
    return [
        nid
        for nid in graph.vertices[vertex_id].neighbours
        if nid not in exclude and graph.vertices[nid].is_drawn
    ]


def _flip_bond_outside_ring(state: LayoutState, edge: Edge) -> bool:
    graph = state.graph
    if graph.vertices[edge.source_id].rings:
        parent, root = edge.target_id, edge.source_id
    else:
        parent, root = edge.source_id, edge.target_id
    neighbours = _drawn_neighbours(graph, parent, {root})
    if not neighbours:
        return False
    if len(neighbours) == 2 and are_vertices_in_same_ring(state, neighbours[0], neighbours[1]):
        neighbours = neighbours[:1]
    for nid in neighbours:
        ids = subgraph_vertices(graph, nid, [root, parent])
        if any(graph.vertices[vid].force_positioned for vid in ids):
            return False
    for nid in neighbours:
        flip_subtree(state, nid, root, parent)
    return True


def _ring_neighbour(state: LayoutState, vertex_id: int, edge: Edge) -> Optional[int]:
    graph = state.graph
    shared = common_rings(state, edge.source_id, edge.target_id)
    for nid in graph.vertices[vertex_id].neighbours:
        if nid in (edge.source_id, edge.target_id):
            continue
        nbr = graph.vertices[nid]
        if nbr.is_drawn and any(rid in shared for rid in nbr.rings):
            return nid
    return None


def _ring_neighbour_plan(state: LayoutState, edge: Edge, central: int, other: int) -> Optional[FlipPlan]:
    ring_neighbour = _ring_neighbour(state, central, edge)
    if ring_neighbour is None:
        return None
    return central, other, ring_neighbour


def _branch_choice(
    state: LayoutState, neighbours: Sequence[int], center_id: int, shared: Set[int]
) -> Optional[Tuple[int, bool, int]]:
    graph = state.graph
    best: Optional[Tuple[int, bool, int]] = None
    for nid in neighbours:
        if any(rid in shared for rid in graph.vertices[nid].rings):
            continue
        size = subgraph_size(graph, nid, [center_id])
        if best is None or size < best[2]:
            best = (nid, False, size)
    if best is None and neighbours:
        best = (neighbours[0], True, 0)
    return best


def _ring_branch_plan(
    state: LayoutState, edge: Edge, neighbours1: List[int], neighbours2: List[int]
) -> Optional[FlipPlan]:
    atom1, atom2 = edge.source_id, edge.target_id
    if len(neighbours1) == 1:
        return atom1, neighbours1[0], atom2
    if len(neighbours2) == 1:
        return atom2, neighbours2[0], atom1
    shared = set(common_rings(state, atom1, atom2))
    choice1 = _branch_choice(state, neighbours1, atom1, shared)
    choice2 = _branch_choice(state, neighbours2, atom2, shared)
    if choice1 is None or choice2 is None:
        return None
    _, in_cycle1, size1 = choice1
    _, in_cycle2, size2 = choice2
    if not in_cycle1 and not in_cycle2:
        if size2 > size1:
            return _ring_neighbour_plan(state, edge, atom1, atom2)
        return _ring_neighbour_plan(state, edge, atom2, atom1)
    if in_cycle1 and not in_cycle2:
        return _ring_neighbour_plan(state, edge, atom2, atom1)
    if in_cycle2 and not in_cycle1:
        return _ring_neighbour_plan(state, edge, atom1, atom2)
    return None


def _touches_stereo_bond(
    graph: MolGraph,
    vertex_id: int,
    edge_id: int,
    stereo: Dict[int, Orientation],
    fixed: Optional[Set[int]] = None,
) -> bool:
    for nid in graph.vertices[vertex_id].neighbours:
        edge = graph.find_edge_between(vertex_id, nid)
        if edge is None or edge.id == edge_id or edge.id not in stereo:
            continue
        if fixed is None or edge.id in fixed:
            return True
    return False


def _primary_ring_plan(
    state: LayoutState,
    edge: Edge,
    neighbours1: List[int],
    neighbours2: List[int],
    stereo: Dict[int, Orientation],
    fixed: Set[int],
) -> Optional[FlipPlan]:
    graph = state.graph
    atom1, atom2 = edge.source_id, edge.target_id
    adjacent1 = any(_touches_stereo_bond(graph, nid, edge.id, stereo) for nid in neighbours1)
    adjacent2 = any(_touches_stereo_bond(graph, nid, edge.id, stereo) for nid in neighbours2)
    if not adjacent1 and not adjacent2:
        return _ring_branch_plan(state, edge, neighbours1, neighbours2)
    if adjacent1 and not adjacent2:
        return _ring_neighbour_plan(state, edge, atom2, atom1)
    if adjacent2 and not adjacent1:
        return _ring_neighbour_plan(state, edge, atom1, atom2)

    fixed1 = any(_touches_stereo_bond(graph, nid, edge.id, stereo, fixed) for nid in neighbours1)
    fixed2 = any(_touches_stereo_bond(graph, nid, edge.id, stereo, fixed) for nid in neighbours2)
    if fixed1 and not fixed2:
        return _ring_neighbour_plan(state, edge, atom2, atom1)
    if fixed2 and not fixed1:
        return _ring_neighbour_plan(state, edge, atom1, atom2)
    if not fixed1 and not fixed2:
        return _ring_branch_plan(state, edge, neighbours1, neighbours2)
    return None


def _same_plan(a: FlipPlan, b: FlipPlan) -> bool:
    return a[0] == b[0] and {a[1], a[2]} == {b[1], b[2]}


def _flip_bond_in_ring(
    state: LayoutState, edge: Edge, stereo: Dict[int, Orientation], fixed: Set[int]
) -> bool:
    graph = state.graph
    atom1, atom2 = edge.source_id, edge.target_id
    neighbours1 = _drawn_neighbours(graph, atom1, {atom2})
    neighbours2 = _drawn_neighbours(graph, atom2, {atom1})

    plans: List[FlipPlan] = []
    primary = _primary_ring_plan(state, edge, neighbours1, neighbours2, stereo, fixed)
    if primary is not None:
        plans.append(primary)
    for central, other in ((atom1, atom2), (atom2, atom1)):
        plan = _ring_neighbour_plan(state, edge, central, other)
        if plan is not None and not any(_same_plan(plan, known) for known in plans):
            plans.append(plan)

    for central, line_a, line_b in plans:
        if not flip_subtree(state, central, line_a, line_b):
            continue
        if is_bond_drawn_correctly(state, edge, stereo[edge.id]):
            return True
        flip_subtree(state, central, line_a, line_b)
    return False


def _fix_bond(state: LayoutState, edge: Edge, stereo: Dict[int, Orientation], fixed: Set[int]) -> bool:
    a, b = edge.source_id, edge.target_id
    graph = state.graph
    if graph.vertices[a].rings and graph.vertices[b].rings and are_vertices_in_same_ring(state, a, b):
        return _flip_bond_in_ring(state, edge, stereo, fixed)
    return _flip_bond_outside_ring(state, edge)


def correct_bond_orientations(state: LayoutState) -> List[int]:
    """Flip every stereo double bond drawn against its encoded configuration.

    Conjugated runs go first, in chain order, then the remaining bonds by
    edge id. Returns the ids of the bonds that could not be corrected.
    """
    graph = state.graph
    stereo = stereo_double_bonds(state)
    fixed: Set[int] = set()
    failed: List[int] = []
    order = [eid for sequence in double_bond_sequences(state, stereo) for eid in sequence]
    order.extend(sorted(stereo))
    for eid in order:
        if eid in fixed or eid in failed:
            continue
        edge = graph.edges[eid]
        orientation = stereo[eid]
        if is_bond_drawn_correctly(state, edge, orientation):
            fixed.add(eid)
            continue
        if _fix_bond(state, edge, stereo, fixed) and is_bond_drawn_correctly(state, edge, orientation):
            logger.debug("Doble enlace %d reorientado", eid)
            fixed.add(eid)
        else:
            logger.warning("Configuración cis/trans no resuelta para el enlace %d", eid)
            failed.append(eid)
    return failed
