"""Colocación angular de los vértices.

Recorre cada componente conectado con una pila explícita de tareas: enlaces
de cadena, anillos (polígonos regulares o Kamada-Kawai para sistemas con
puentes), anillos vecinos y sustituyentes. Las tareas se apilan en orden
inverso para conservar el orden de un recorrido en profundidad.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Tuple

from PyQt6.QtCore import QPointF

from core.model import BondType, DIRECTIONAL_BONDS, Ring, Vertex

from .cis_trans import opposite_direction
from .geom import (
    angle_deg,
    apothem,
    central_angle,
    choose_optimal_direction,
    clockwise,
    distance_sq,
    endpoint_from_angle_len,
    length,
    midpoint,
    normalized,
    normals,
    poly_circumradius,
    rotated,
    rotated_around,
    vector_angle,
)
from .graph_ops import graph_components, tree_depth
from .kamada_kawai import kamada_kawai_layout
from .ring_system import (
    all_ring_records,
    are_vertices_in_same_ring,
    ordered_neighbours,
    ring_connection_vertices,
    ring_member_walk,
    set_ring_center,
)
from .state import LayoutState

logger = logging.getLogger(__name__)

SIXTY = math.radians(60.0)
THIRTY = math.radians(30.0)
NINETY = math.radians(90.0)

Task = Tuple


def init_hydrogens(state: LayoutState) -> None:
    """Oculta los hidrógenos salvo los de estereocentros en dos o más anillos."""
    if state.options.explicit_hydrogens:
        return
    graph = state.graph
    for vertex in graph.vertices.values():
        if vertex.element != "H" or not vertex.neighbours:
            continue
        neighbour = graph.vertices[vertex.neighbours[0]]
        if (
            not neighbour.is_stereo_center
            or (len(neighbour.rings) < 2 and neighbour.bridged_ring is None)
            or (neighbour.bridged_ring is not None and len(neighbour.original_rings) < 2)
        ):
            vertex.is_drawn = False


def position(state: LayoutState) -> None:
    """Coloca todos los vértices, componente por componente, alrededor del origen.

    Side Effects:
        Modifica posiciones, ángulos y banderas de vértices y anillos.
    """
    graph = state.graph
    for component in graph_components(graph):
        state.active_component = set(component)
        start = _start_vertex(state, component)
        _walk(state, [("bond", start, None, 0.0, False)])
        place_hidden_hydrogens(state, component)
        _position_leftovers(state, component)
    state.active_component = None


def _start_vertex(state: LayoutState, component: Sequence[int]) -> int:
    members = set(component)
    start: Optional[int] = None
    for vid in component:
        if state.graph.vertices[vid].bridged_ring is not None:
            start = vid
            break
    for ring in state.rings.values():
        if ring.is_bridged and ring.members[0] in members:
            start = ring.members[0]
    if start is None:
        for ring in state.rings.values():
            if ring.members[0] in members:
                start = ring.members[0]
                break
    if start is None:
        start = component[0]
    return start


def _walk(state: LayoutState, stack: List[Task]) -> None:
    stack.reverse()
    while stack:
        task = stack.pop()
        kind = task[0]
        if kind == "bond":
            create_next_bond(state, stack, *task[1:])
        elif kind == "ring":
            create_ring(state, stack, *task[1:])
        elif kind == "ring_neighbour":
            _place_ring_neighbour(state, stack, task[1], task[2])
        elif kind == "substituent":
            _place_substituent(state, stack, task[1], task[2])


def _push(stack: List[Task], tasks: List[Task]) -> None:
    stack.extend(reversed(tasks))


def _needs_visit(state: LayoutState, vertex: Vertex) -> bool:
    if not vertex.positioned:
        return True
    return vertex.id in state.pinned_ids and vertex.id not in state.visited


def center_of_mass(state: LayoutState) -> QPointF:
    """Centro de masa de los vértices ya colocados del componente activo."""
    sx = 0.0
    sy = 0.0
    count = 0
    for vertex in state.graph.vertices.values():
        if not vertex.positioned:
            continue
        if state.active_component is not None and vertex.id not in state.active_component:
            continue
        sx += vertex.position.x()
        sy += vertex.position.y()
        count += 1
    if count == 0:
        return QPointF(0.0, 0.0)
    return QPointF(sx / count, sy / count)


def last_angle(state: LayoutState, vertex_id: Optional[int]) -> float:
    """Último ángulo relativo no nulo subiendo por los padres (0 si se cruza un anillo)."""
    seen = set()
    current = vertex_id
    while current is not None and current not in seen:
        seen.add(current)
        vertex = state.graph.vertices[current]
        if vertex.rings:
            return 0.0
        if vertex.angle:
            return vertex.angle
        current = vertex.parent_id
    return 0.0


def create_next_bond(
    state: LayoutState,
    stack: List[Task],
    vertex_id: int,
    previous_id: Optional[int],
    angle: float,
    origin_shortest: bool = False,
) -> None:
    """Coloca `vertex_id` respecto a `previous_id` y apila la continuación del recorrido."""
    graph = state.graph
    bond_length = state.options.bond_length
    vertex = graph.vertices[vertex_id]
    if not _needs_visit(state, vertex):
        return
    skip_positioning = vertex.positioned
    state.visited.add(vertex_id)

    previous = graph.vertices[previous_id] if previous_id is not None else None
    if previous is not None and vertex.parent_id is None:
        vertex.parent_id = previous_id

    double_bond_config_set = False
    if previous is not None:
        edge = graph.find_edge_between(vertex_id, previous_id)
        if edge is not None and edge.bond_type in DIRECTIONAL_BONDS:
            state.double_bond_config_count += 1
            if state.double_bond_config_count % 2 == 1 and state.double_bond_config is None:
                state.double_bond_config = edge.bond_type
                double_bond_config_set = True
                if previous.parent_id is None and vertex.branch_bond is not None:
                    state.double_bond_config = opposite_direction(state.double_bond_config)

    if not skip_positioning:
        if previous is None:
            vertex.previous_position = rotated(QPointF(bond_length, 0.0), -SIXTY)
            vertex.set_position(bond_length, 0.0)
            vertex.angle = -SIXTY
            # Los vértices de un anillo con puentes los coloca Kamada-Kawai.
            if vertex.bridged_ring is None:
                vertex.positioned = True
        elif previous.rings:
            vertex.previous_position = QPointF(previous.position)
            vertex.position = _away_from_ring(state, vertex_id, previous, angle)
            vertex.positioned = True
        else:
            vertex.previous_position = QPointF(previous.position)
            vertex.position = endpoint_from_angle_len(previous.position, angle, bond_length)
            vertex.positioned = True

    if vertex.bridged_ring is not None:
        ring = state.rings.get(vertex.bridged_ring)
        if ring is not None and not ring.positioned:
            stack.append(("ring", ring.id, _next_ring_center(state, vertex, ring), vertex_id, None))
        return
    if vertex.rings:
        ring = state.rings[vertex.rings[0]]
        if not ring.positioned:
            stack.append(("ring", ring.id, _next_ring_center(state, vertex, ring), vertex_id, None))
        return

    neighbours = [
        nid
        for nid in vertex.neighbours
        if graph.vertices[nid].is_drawn and nid != previous_id
    ]
    previous_angle = vertex.bond_angle()
    if len(neighbours) == 1:
        _single_branch(state, stack, vertex, previous, neighbours[0], previous_angle,
                       origin_shortest, double_bond_config_set)
    elif len(neighbours) == 2:
        _double_branch(state, stack, vertex, previous, neighbours, previous_angle)
    elif neighbours:
        _multi_branch(state, stack, vertex, previous, neighbours, previous_angle)


def _away_from_ring(state: LayoutState, vertex_id: int, previous: Vertex, angle: float) -> QPointF:
    graph = state.graph
    bond_length = state.options.bond_length
    joined: Optional[Vertex] = None
    if previous.bridged_ring is None and len(previous.rings) > 1:
        for nid in previous.neighbours:
            nbr = graph.vertices[nid]
            if nid != vertex_id and nbr.positioned and all(rid in nbr.rings for rid in previous.rings):
                joined = nbr
                break
    if joined is not None:
        return rotated_around(joined.position, math.pi, previous.position)

    acc = QPointF(0.0, 0.0)
    for nid in previous.neighbours:
        nbr = graph.vertices[nid]
        if nid != vertex_id and nbr.positioned and are_vertices_in_same_ring(state, nid, previous.id):
            acc += nbr.position - previous.position
    if length(acc) == 0:
        return endpoint_from_angle_len(previous.position, angle, bond_length)
    direction = normalized(QPointF(-acc.x(), -acc.y()))
    return direction * bond_length + previous.position


def _next_ring_center(state: LayoutState, vertex: Vertex, ring: Ring) -> QPointF:
    direction = normalized(vertex.position - vertex.previous_position)
    radius = poly_circumradius(state.options.bond_length, ring.size)
    return direction * radius + vertex.position


def _single_branch(
    state: LayoutState,
    stack: List[Task],
    vertex: Vertex,
    previous: Optional[Vertex],
    next_id: int,
    previous_angle: float,
    origin_shortest: bool,
    double_bond_config_set: bool,
) -> None:
    graph = state.graph
    bond_length = state.options.bond_length
    next_vertex = graph.vertices[next_id]
    prev_edge = graph.find_edge_between(vertex.id, previous.id) if previous is not None else None
    next_edge = graph.find_edge_between(vertex.id, next_id)

    if prev_edge is not None and prev_edge.weight + next_edge.weight >= 4:
        # Triple enlace o dobles acumulados: la cadena sigue recta.
        next_vertex.angle = 0.0
    elif previous is not None and previous.rings:
        proposed_a = endpoint_from_angle_len(vertex.position, SIXTY, bond_length)
        proposed_b = endpoint_from_angle_len(vertex.position, -SIXTY, bond_length)
        com = center_of_mass(state)
        if distance_sq(proposed_a, com) < distance_sq(proposed_b, com):
            next_vertex.angle = -SIXTY
        else:
            next_vertex.angle = SIXTY
    else:
        a = vertex.angle
        if previous is not None and len(previous.neighbours) > 3:
            if a > 0:
                a = min(SIXTY, a)
            elif a < 0:
                a = max(-SIXTY, a)
            else:
                a = SIXTY
        elif not a:
            a = last_angle(state, vertex.id) or SIXTY

        if previous is not None and not double_bond_config_set:
            bond_type = next_edge.bond_type
            if bond_type == BondType.UP:
                if state.double_bond_config == BondType.DOWN:
                    a = -a
                state.double_bond_config = None
            elif bond_type == BondType.DOWN:
                if state.double_bond_config == BondType.UP:
                    a = -a
                state.double_bond_config = None

        next_vertex.angle = a if origin_shortest else -a

    stack.append(("bond", next_id, vertex.id, previous_angle + next_vertex.angle, False))


def _double_branch(
    state: LayoutState,
    stack: List[Task],
    vertex: Vertex,
    previous: Optional[Vertex],
    neighbours: List[int],
    previous_angle: float,
) -> None:
    graph = state.graph
    a = vertex.angle or SIXTY
    depth_a = tree_depth(graph, neighbours[0], vertex.id)
    depth_b = tree_depth(graph, neighbours[1], vertex.id)
    left = graph.vertices[neighbours[0]]
    right = graph.vertices[neighbours[1]]
    left.subtree_depth = depth_a
    right.subtree_depth = depth_b

    depth_c = tree_depth(graph, previous.id if previous is not None else None, vertex.id)
    if previous is not None:
        previous.subtree_depth = depth_c

    cis, trans = 0, 1
    # Los carbonos van en cis.
    if right.element == "C" and left.element != "C" and depth_b > 1 and depth_a < 5:
        cis, trans = 1, 0
    elif right.element != "C" and left.element == "C" and depth_a > 1 and depth_b < 5:
        cis, trans = 0, 1
    elif depth_b > depth_a:
        cis, trans = 1, 0

    cis_vertex = graph.vertices[neighbours[cis]]
    trans_vertex = graph.vertices[neighbours[trans]]
    origin_shortest = depth_c < depth_a and depth_c < depth_b

    trans_vertex.angle = a
    cis_vertex.angle = -a
    config = state.double_bond_config
    if config is not None and trans_vertex.branch_bond == config:
        trans_vertex.angle = -a
        cis_vertex.angle = a

    _push(stack, [
        ("bond", trans_vertex.id, vertex.id, previous_angle + trans_vertex.angle, origin_shortest),
        ("bond", cis_vertex.id, vertex.id, previous_angle + cis_vertex.angle, origin_shortest),
    ])


def _multi_branch(
    state: LayoutState,
    stack: List[Task],
    vertex: Vertex,
    previous: Optional[Vertex],
    neighbours: List[int],
    previous_angle: float,
) -> None:
    graph = state.graph
    branches: List[Vertex] = []
    for nid in neighbours:
        nbr = graph.vertices[nid]
        nbr.subtree_depth = tree_depth(graph, nid, vertex.id)
        branches.append(nbr)
    branches.sort(key=lambda v: -v.subtree_depth)

    tasks: List[Task] = []
    pinched_cross = (
        len(branches) == 3
        and previous is not None
        and not previous.rings
        and all(not branch.rings for branch in branches)
        and branches[2].subtree_depth == 1
        and branches[1].subtree_depth == 1
        and branches[0].subtree_depth > 1
    )
    if pinched_cross:
        branches[0].angle = -vertex.angle
        if vertex.angle >= 0:
            branches[1].angle = THIRTY
            branches[2].angle = NINETY
        else:
            branches[1].angle = -THIRTY
            branches[2].angle = -NINETY
        for branch in branches:
            tasks.append(("bond", branch.id, vertex.id, previous_angle + branch.angle, False))
    else:
        total = len(branches) + (1 if previous is not None else 0)
        delta = 2.0 * math.pi / total
        step = delta
        index = 0
        if len(branches) % 2 != 0:
            # La rama más profunda sigue de frente.
            branches[0].angle = 0.0
            tasks.append(("bond", branches[0].id, vertex.id, previous_angle, False))
            index = 1
        else:
            step /= 2.0
        while index < len(branches):
            branches[index].angle = step
            branches[index + 1].angle = -step
            tasks.append(("bond", branches[index].id, vertex.id, previous_angle + step, False))
            tasks.append(("bond", branches[index + 1].id, vertex.id, previous_angle - step, False))
            step += delta
            index += 2
    _push(stack, tasks)


def create_ring(
    state: LayoutState,
    stack: List[Task],
    ring_id: int,
    center: Optional[QPointF] = None,
    start_id: Optional[int] = None,
    previous_id: Optional[int] = None,
) -> None:
    """Dibuja un anillo y apila sus anillos vecinos y sustituyentes."""
    graph = state.graph
    bond_length = state.options.bond_length
    ring = state.rings[ring_id]
    if ring.positioned:
        return
    center = QPointF(center) if center is not None else QPointF(0.0, 0.0)

    start = graph.vertices[start_id] if start_id is not None else None
    starting_angle = vector_angle(start.position - center) if start is not None else 0.0
    radius = poly_circumradius(bond_length, ring.size)
    step = central_angle(ring.size)
    ring.central_angle = step

    if start_id not in ring.members:
        if start is not None and start_id not in state.pinned_ids:
            start.positioned = False
        start_id = ring.members[0]

    if ring.is_bridged:
        kamada_kawai_layout(graph, list(ring.members), center, state.options)
        ring.positioned = True
        set_ring_center(state, ring)
        center = ring.center
        for sub in ring.subrings:
            set_ring_center(state, sub)
    else:
        a = starting_angle
        for vid in ring_member_walk(state, ring, start_id, previous_id):
            member = graph.vertices[vid]
            if not member.positioned:
                member.set_position(center.x() + math.cos(a) * radius, center.y() + math.sin(a) * radius)
            a += step
            member.angle = a
            member.positioned = True

    ring.positioned = True
    ring.center = center
    if any(vid in state.pinned_ids for vid in ring.members):
        set_ring_center(state, ring)

    tasks: List[Task] = [("ring_neighbour", ring.id, nid) for _, nid in ordered_neighbours(state, ring)]
    for vid in ring.members:
        for nid in graph.vertices[vid].neighbours:
            tasks.append(("substituent", vid, nid))
    _push(stack, tasks)


def _place_ring_neighbour(state: LayoutState, stack: List[Task], ring_id: int, neighbour_id: int) -> None:
    graph = state.graph
    bond_length = state.options.bond_length
    ring = state.rings[ring_id]
    neighbour = state.rings.get(neighbour_id)
    if neighbour is None or neighbour.positioned:
        return
    shared = ring_connection_vertices(state, ring_id, neighbour_id)
    radius = poly_circumradius(bond_length, neighbour.size)

    if len(shared) == 2:
        ring.is_fused = True
        neighbour.is_fused = True
        vertex_a = graph.vertices[shared[0]]
        vertex_b = graph.vertices[shared[1]]
        mid = midpoint(vertex_a.position, vertex_b.position)
        normal_a, normal_b = normals(vertex_a.position, vertex_b.position)
        dist = apothem(radius, neighbour.size)
        center_a = normalized(normal_a) * dist + mid
        center_b = normalized(normal_b) * dist + mid
        # El centro nuevo queda al otro lado del enlace compartido.
        next_center = center_a
        if distance_sq(ring.center, center_b) > distance_sq(ring.center, center_a):
            next_center = center_b
        pos_a = vertex_a.position - next_center
        pos_b = vertex_b.position - next_center
        if clockwise(pos_a, pos_b) == -1:
            stack.append(("ring", neighbour.id, next_center, vertex_a.id, vertex_b.id))
        else:
            stack.append(("ring", neighbour.id, next_center, vertex_b.id, vertex_a.id))
    elif len(shared) == 1:
        ring.is_spiro = True
        neighbour.is_spiro = True
        vertex_a = graph.vertices[shared[0]]
        direction = normalized(vertex_a.position - ring.center)
        next_center = direction * radius + vertex_a.position
        stack.append(("ring", neighbour.id, next_center, vertex_a.id, None))


def _place_substituent(state: LayoutState, stack: List[Task], member_id: int, vertex_id: int) -> None:
    vertex = state.graph.vertices[vertex_id]
    if not _needs_visit(state, vertex):
        return
    if not are_vertices_in_same_ring(state, member_id, vertex_id):
        vertex.is_connected_to_ring = True
    stack.append(("bond", vertex_id, member_id, 0.0, False))


def place_hidden_hydrogens(state: LayoutState, component: Sequence[int]) -> None:
    """Coloca los vértices ocultos pendientes en el mayor hueco angular de su vecino."""
    graph = state.graph
    bond_length = state.options.bond_length
    for vid in component:
        vertex = graph.vertices[vid]
        if vertex.positioned or vertex.is_drawn:
            continue
        anchor_id = next((nid for nid in vertex.neighbours if graph.vertices[nid].positioned), None)
        if anchor_id is None:
            continue
        anchor = graph.vertices[anchor_id]
        angles = [
            angle_deg(anchor.position, graph.vertices[nid].position)
            for nid in anchor.neighbours
            if nid != vid and graph.vertices[nid].positioned
        ]
        theta = math.radians(choose_optimal_direction(angles))
        vertex.previous_position = QPointF(anchor.position)
        vertex.position = endpoint_from_angle_len(anchor.position, theta, bond_length)
        vertex.positioned = True


def _position_leftovers(state: LayoutState, component: Sequence[int]) -> None:
    graph = state.graph
    remaining = [vid for vid in component if not graph.vertices[vid].positioned]
    while remaining:
        logger.debug("Posicionando %d vértices no alcanzados", len(remaining))
        task: Optional[Task] = None
        for vid in remaining:
            anchor_id = next((nid for nid in graph.vertices[vid].neighbours if graph.vertices[nid].positioned), None)
            if anchor_id is not None:
                anchor = graph.vertices[anchor_id]
                task = ("bond", vid, anchor_id, anchor.bond_angle() + SIXTY, False)
                break
        if task is None:
            task = ("bond", remaining[0], None, 0.0, False)
        _walk(state, [task])
        place_hidden_hydrogens(state, component)
        still = [vid for vid in component if not graph.vertices[vid].positioned]
        if len(still) >= len(remaining):
            break
        remaining = still


def pack_components(state: LayoutState) -> None:
    """Alinea los componentes desconectados de izquierda a derecha."""
    if state.input_pinned:
        return
    graph = state.graph
    components = graph_components(graph)
    if len(components) < 2:
        return
    gap = state.options.component_gap * state.options.bond_length
    records = all_ring_records(state)
    cursor: Optional[float] = None
    baseline = 0.0
    for component in components:
        xs = [graph.vertices[vid].position.x() for vid in component]
        ys = [graph.vertices[vid].position.y() for vid in component]
        mid_y = (min(ys) + max(ys)) / 2.0
        if cursor is None:
            cursor = max(xs) + gap
            baseline = mid_y
            continue
        shift = QPointF(cursor - min(xs), baseline - mid_y)
        members = set(component)
        for vid in component:
            vertex = graph.vertices[vid]
            vertex.position = vertex.position + shift
            vertex.previous_position = vertex.previous_position + shift
        for ring in records:
            if ring.members and ring.members[0] in members:
                ring.center = ring.center + shift
        cursor += max(xs) - min(xs) + gap


def rotate_drawing(state: LayoutState) -> None:
    """Gira el dibujo para que el par de vértices más alejado quede horizontal.

    El ángulo se redondea a pasos de 30°. No hace nada si el llamador fijó
    vértices o si la opción `rotate_drawing` está desactivada.
    """
    if not state.options.rotate_drawing or state.input_pinned:
        return
    graph = state.graph
    drawn = [graph.vertices[vid] for vid in graph.vertex_ids() if graph.vertices[vid].is_drawn]
    best = 0.0
    pair: Optional[Tuple[Vertex, Vertex]] = None
    for i, vertex_a in enumerate(drawn):
        for vertex_b in drawn[i + 1:]:
            dist = distance_sq(vertex_a.position, vertex_b.position)
            if dist > best:
                best = dist
                pair = (vertex_a, vertex_b)
    if pair is None:
        return
    vertex_a, vertex_b = pair
    angle = -vector_angle(vertex_a.position - vertex_b.position)
    remainder = math.fmod(angle, THIRTY)
    if remainder < THIRTY / 2.0:
        angle -= remainder
    else:
        angle += THIRTY - remainder
    if angle == 0.0:
        return

    pivot = QPointF(vertex_b.position)
    for vertex in graph.vertices.values():
        vertex.position = rotated_around(vertex.position, angle, pivot)
        vertex.previous_position = rotated_around(vertex.previous_position, angle, pivot)
    for ring in all_ring_records(state):
        ring.center = rotated_around(ring.center, angle, pivot)
    logger.debug("Dibujo girado %.1f grados", math.degrees(angle))
