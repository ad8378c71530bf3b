from __future__ import annotations

import logging
from itertools import chain
from typing import Dict, List, Optional, Sequence, Set, Tuple

from PyQt6.QtCore import QPointF

from core.model import Ring, RingConnection

from .geom import central_angle, centroid
from .sssr import find_sssr
from .state import LayoutState

logger = logging.getLogger(__name__)


def init_rings(state: LayoutState) -> None:
    """Perceive rings, connect them and collapse bridged systems.

    Side effects: fills `state.rings`, `state.ring_connections`, the vertex
    ring lists, the edge ring flags and the backup inventories.
    """
    graph = state.graph
    for members in find_sssr(graph):
        ring_id = add_ring(state, Ring(members=list(members)))
        for vid in members:
            graph.vertices[vid].rings.append(ring_id)
        for idx, vid in enumerate(members):
            edge = graph.find_edge_between(vid, members[(idx + 1) % len(members)])
            if edge is not None:
                edge.is_ring_bond = True

    rings = state.ring_list()
    for i in range(len(rings) - 1):
        for j in range(i + 1, len(rings)):
            connection = RingConnection.between(rings[i], rings[j])
            if connection.vertices:
                add_ring_connection(state, connection)

    for ring in rings:
        ring.neighbours = ring_neighbours(state, ring.id)
        graph.vertices[ring.members[0]].anchored_rings.append(ring.id)

    for connection in state.ring_connections.values():
        first = state.rings[connection.first_ring_id]
        second = state.rings[connection.second_ring_id]
        if len(connection.vertices) == 1:
            first.is_spiro = second.is_spiro = True
        elif len(connection.vertices) == 2:
            first.is_fused = second.is_fused = True

    backup_ring_information(state)
    process_bridged_rings(state)
    state.layout_rings = dict(state.rings)
    state.layout_ring_connections = dict(state.ring_connections)
    logger.debug(
        "Rings: %d perceived, %d active after bridged collapse",
        len(state.original_rings),
        len(state.rings),
    )


def add_ring(state: LayoutState, ring: Ring) -> int:
    ring.id = state.next_ring_id
    state.next_ring_id += 1
    ring.central_angle = central_angle(ring.size)
    state.rings[ring.id] = ring
    return ring.id


def remove_ring(state: LayoutState, ring_id: int) -> None:
    """Drop a ring, its connections, and its id from the other rings' neighbours."""
    state.rings.pop(ring_id, None)
    state.ring_connections = {
        cid: rc for cid, rc in state.ring_connections.items() if not rc.contains_ring(ring_id)
    }
    for ring in state.rings.values():
        ring.neighbours = [nid for nid in ring.neighbours if nid != ring_id]


def add_ring_connection(state: LayoutState, connection: RingConnection) -> int:
    connection.id = state.next_ring_connection_id
    state.next_ring_connection_id += 1
    state.ring_connections[connection.id] = connection
    return connection.id


def remove_ring_connections_between(state: LayoutState, ring_a: int, ring_b: int) -> None:
    doomed = [cid for cid, rc in state.ring_connections.items() if rc.joins(ring_a, ring_b)]
    for cid in doomed:
        del state.ring_connections[cid]


def ring_connections_between(state: LayoutState, ring_id: int, ring_ids: Sequence[int]) -> List[int]:
    """Ids of the connections joining `ring_id` to any ring in `ring_ids`."""
    found: List[int] = []
    for rc in state.ring_connections.values():
        for other in ring_ids:
            if rc.joins(ring_id, other):
                found.append(rc.id)
    return found


def find_ring_connection(state: LayoutState, ring_a: int, ring_b: int) -> Optional[RingConnection]:
    for rc in state.ring_connections.values():
        if rc.joins(ring_a, ring_b):
            return rc
    return None


def ring_neighbours(state: LayoutState, ring_id: int) -> List[int]:
    neighbours: List[int] = []
    for rc in state.ring_connections.values():
        if rc.first_ring_id == ring_id:
            neighbours.append(rc.second_ring_id)
        elif rc.second_ring_id == ring_id:
            neighbours.append(rc.first_ring_id)
    return neighbours


def ring_connection_vertices(state: LayoutState, ring_a: int, ring_b: int) -> List[int]:
    rc = find_ring_connection(state, ring_a, ring_b)
    if rc is None:
        return []
    return sorted(rc.vertices)


def ordered_neighbours(state: LayoutState, ring: Ring) -> List[Tuple[int, int]]:
    """(shared vertex count, neighbour id) pairs, most shared vertices first."""
    pairs = [
        (len(ring_connection_vertices(state, ring.id, nid)), nid) for nid in ring.neighbours
    ]
    return sorted(pairs, key=lambda pair: -pair[0])


def is_bridge_between(state: LayoutState, ring_a: int, ring_b: int) -> bool:
    rc = find_ring_connection(state, ring_a, ring_b)
    return rc is not None and rc.is_bridge(state.graph)


def is_part_of_bridged_ring(state: LayoutState, ring_id: int) -> bool:
    return any(
        rc.contains_ring(ring_id) and rc.is_bridge(state.graph)
        for rc in state.ring_connections.values()
    )


def bridged_ring_rings(state: LayoutState, ring_id: int) -> List[int]:
    """All rings reachable from `ring_id` through bridge connections."""
    involved: List[int] = []
    stack = [ring_id]
    while stack:
        current = stack.pop()
        if current in involved:
            continue
        involved.append(current)
        ring = state.rings[current]
        for nid in reversed(ring.neighbours):
            if nid not in involved and nid != current and is_bridge_between(state, current, nid):
                stack.append(nid)
    return involved


def edge_ring_count(state: LayoutState, edge_id: int) -> int:
    edge = state.graph.edges[edge_id]
    a = state.graph.vertices[edge.source_id]
    b = state.graph.vertices[edge.target_id]
    return min(len(a.rings), len(b.rings))


def create_bridged_ring(state: LayoutState, ring_ids: Sequence[int]) -> Ring:
    """Replace the rings in `ring_ids` by one synthetic bridged ring.

    The consumed rings stay registered; callers remove them afterwards.
    """
    graph = state.graph
    vertices: Dict[int, None] = {}
    neighbours: Dict[int, None] = {}
    for rid in ring_ids:
        ring = state.rings[rid]
        ring.is_part_of_bridged = True
        for vid in ring.members:
            vertices[vid] = None
        for nid in ring.neighbours:
            if nid not in ring_ids:
                neighbours[nid] = None

    members: Dict[int, None] = {}
    leftovers: List[int] = []
    for vid in vertices:
        vertex = graph.vertices[vid]
        shared = [rid for rid in ring_ids if rid in vertex.rings]
        if len(vertex.rings) == 1 or len(shared) == 1:
            members[vid] = None
        else:
            leftovers.append(vid)

    for vid in leftovers:
        vertex = graph.vertices[vid]
        if any(edge_ring_count(state, eid) == 1 for eid in vertex.edges):
            vertex.is_bridge_node = True
        else:
            vertex.is_bridge = True
        members[vid] = None

    ring = Ring(members=list(members))
    add_ring(state, ring)
    ring.is_bridged = True
    ring.can_flip = False
    ring.neighbours = list(neighbours)
    ring.subrings = [state.rings[rid].clone() for rid in ring_ids]

    graph.vertices[ring.members[0]].anchored_rings.append(ring.id)
    for vid in ring.members:
        vertex = graph.vertices[vid]
        vertex.bridged_ring = ring.id
        vertex.rings = [rid for rid in vertex.rings if rid not in ring_ids]
        vertex.rings.append(ring.id)

    for i in range(len(ring_ids)):
        for j in range(i + 1, len(ring_ids)):
            remove_ring_connections_between(state, ring_ids[i], ring_ids[j])

    for nid in neighbours:
        for cid in ring_connections_between(state, nid, ring_ids):
            state.ring_connections[cid].update_other(ring.id, nid)
        state.rings[nid].neighbours.append(ring.id)

    logger.debug("Bridged ring %d replaces rings %s", ring.id, list(ring_ids))
    return ring


def process_bridged_rings(state: LayoutState) -> None:
    """Collapse every maximal bridged cluster into a single synthetic ring."""
    while state.rings:
        target = -1
        for ring in state.rings.values():
            if is_part_of_bridged_ring(state, ring.id) and not ring.is_bridged:
                target = ring.id
        if target == -1:
            break
        involved = bridged_ring_rings(state, target)
        create_bridged_ring(state, involved)
        for rid in involved:
            remove_ring(state, rid)


def backup_ring_information(state: LayoutState) -> None:
    """Keep independent copies of the perceived rings and connections."""
    state.original_rings = {rid: ring.clone() for rid, ring in state.rings.items()}
    state.original_ring_connections = {
        cid: RingConnection(
            first_ring_id=rc.first_ring_id,
            second_ring_id=rc.second_ring_id,
            vertices=set(rc.vertices),
            id=rc.id,
        )
        for cid, rc in state.ring_connections.items()
    }
    for vertex in state.graph.vertices.values():
        vertex.backup_rings()


def restore_ring_information(state: LayoutState) -> None:
    """Make the perceived rings active again, carrying over layout centers."""
    for rid, original in state.original_rings.items():
        active = state.rings.get(rid)
        if active is None:
            continue
        original.center = QPointF(active.center)
        original.central_angle = active.central_angle
        original.positioned = active.positioned
        original.is_fused = original.is_fused or active.is_fused
        original.is_spiro = original.is_spiro or active.is_spiro

    for bridged in bridged_rings(state):
        for sub in bridged.subrings:
            original = state.original_rings.get(sub.id)
            if original is None:
                continue
            original.center = QPointF(sub.center)
            original.positioned = bridged.positioned
            original.is_part_of_bridged = True

    state.rings = dict(state.original_rings)
    state.ring_connections = dict(state.original_ring_connections)
    for vertex in state.graph.vertices.values():
        vertex.restore_rings()


def all_ring_records(state: LayoutState) -> List[Ring]:
    """Every ring object alive in the state (active, layout and subring copies)."""
    seen: Set[int] = set()
    records: List[Ring] = []
    for ring in chain(state.rings.values(), state.layout_rings.values()):
        for candidate in [ring, *ring.subrings]:
            if id(candidate) not in seen:
                seen.add(id(candidate))
                records.append(candidate)
    return records


def ring_records(state: LayoutState, ring_id: int) -> List[Ring]:
    return [ring for ring in all_ring_records(state) if ring.id == ring_id]


def set_ring_center(state: LayoutState, ring: Ring) -> None:
    ring.center = centroid(state.graph.vertices[vid].position for vid in ring.members)


def ring_member_walk(
    state: LayoutState,
    ring: Ring,
    start_id: Optional[int] = None,
    previous_id: Optional[int] = None,
) -> List[int]:
    """Members of `ring` in walking order from `start_id`, moving away from `previous_id`."""
    graph = state.graph
    start = ring.members[0] if start_id is None else start_id
    order: List[int] = []
    current: Optional[int] = start
    while current is not None and len(order) < ring.size:
        order.append(current)
        nxt = None
        for nbr in graph.vertices[current].neighbours:
            if ring.id in graph.vertices[nbr].rings and nbr != previous_id:
                nxt = nbr
                break
        previous_id = current
        current = None if nxt == start else nxt
    return order


def are_vertices_in_same_ring(state: LayoutState, a_id: int, b_id: int) -> bool:
    rings_b = state.graph.vertices[b_id].rings
    return any(rid in rings_b for rid in state.graph.vertices[a_id].rings)


def common_rings(state: LayoutState, a_id: int, b_id: int) -> List[int]:
    rings_b = state.graph.vertices[b_id].rings
    return [rid for rid in state.graph.vertices[a_id].rings if rid in rings_b]


def bridged_rings(state: LayoutState) -> List[Ring]:
    return [ring for ring in state.rings.values() if ring.is_bridged]


def fused_rings(state: LayoutState) -> List[Ring]:
    return [ring for ring in state.rings.values() if ring.is_fused]


def spiro_rings(state: LayoutState) -> List[Ring]:
    return [ring for ring in state.rings.values() if ring.is_spiro]


def ring_info_table(state: LayoutState) -> str:
    """One `id;size;neighbours;spiro;fused;bridged;subrings;` line per active ring."""
    lines = []
    for ring in state.rings.values():
        flags = ";".join(
            "true" if flag else "false" for flag in (ring.is_spiro, ring.is_fused, ring.is_bridged)
        )
        lines.append(f"{ring.id};{ring.size};{len(ring.neighbours)};{flags};{len(ring.subrings)};")
    return "\n".join(lines) + ("\n" if lines else "")
