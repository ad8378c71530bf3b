from __future__ import annotations

from collections import deque
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from core.model import Edge, MolGraph

from .errors import LayoutContractError

Matrix = List[List[int]]
DistanceMatrix = List[List[Optional[int]]]


def adjacency_matrix(graph: MolGraph) -> Matrix:
    """Adjacency matrix indexed by `graph.vertex_ids()` order."""
    return subgraph_adjacency_matrix(graph, graph.vertex_ids())


def subgraph_adjacency_matrix(graph: MolGraph, vertex_ids: Sequence[int]) -> Matrix:
    index = {vid: i for i, vid in enumerate(vertex_ids)}
    size = len(vertex_ids)
    matrix = [[0] * size for _ in range(size)]
    for edge in graph.edges.values():
        i = index.get(edge.source_id)
        j = index.get(edge.target_id)
        if i is None or j is None:
            continue
        matrix[i][j] = 1
        matrix[j][i] = 1
    return matrix


def components_adjacency_matrix(graph: MolGraph) -> Matrix:
    """Adjacency matrix with every bridge edge removed.

    Ring systems end up as separate components; chain atoms become isolated.
    """
    ids = graph.vertex_ids()
    index = {vid: i for i, vid in enumerate(ids)}
    matrix = adjacency_matrix(graph)
    for a, b in bridges(graph):
        i = index[a]
        j = index[b]
        matrix[i][j] = 0
        matrix[j][i] = 0
    return matrix


def _check_square(matrix: Sequence[Sequence[int]]) -> None:
    size = len(matrix)
    for row in matrix:
        if len(row) != size:
            raise LayoutContractError(
                f"Inconsistent adjacency matrix dimensions: {size} rows, row of {len(row)}"
            )


def distance_matrix(adjacency: Sequence[Sequence[int]]) -> DistanceMatrix:
    """All-pairs shortest path lengths (Floyd-Warshall); `None` marks unreachable."""
    _check_square(adjacency)
    size = len(adjacency)
    dist: DistanceMatrix = [[None] * size for _ in range(size)]
    for i in range(size):
        for j in range(size):
            if i == j:
                dist[i][j] = 0
            elif adjacency[i][j]:
                dist[i][j] = 1
    for k in range(size):
        row_k = dist[k]
        for i in range(size):
            d_ik = dist[i][k]
            if d_ik is None:
                continue
            row_i = dist[i]
            for j in range(size):
                d_kj = row_k[j]
                if d_kj is None:
                    continue
                current = row_i[j]
                if current is None or d_ik + d_kj < current:
                    row_i[j] = d_ik + d_kj
    return dist


def subgraph_distance_matrix(graph: MolGraph, vertex_ids: Sequence[int]) -> DistanceMatrix:
    return distance_matrix(subgraph_adjacency_matrix(graph, vertex_ids))


def connected_components(adjacency: Sequence[Sequence[int]]) -> List[List[int]]:
    """Connected components as index lists in DFS order.

    Components made of a single vertex are dropped.
    """
    _check_square(adjacency)
    size = len(adjacency)
    visited = [False] * size
    components: List[List[int]] = []
    for u in range(size):
        if visited[u]:
            continue
        visited[u] = True
        component = [u]
        _collect_dfs(u, adjacency, visited, component)
        if len(component) > 1:
            components.append(component)
    return components


def connected_component_count(adjacency: Sequence[Sequence[int]]) -> int:
    _check_square(adjacency)
    size = len(adjacency)
    visited = [False] * size
    count = 0
    for u in range(size):
        if visited[u]:
            continue
        visited[u] = True
        count += 1
        _collect_dfs(u, adjacency, visited, [u])
    return count


def _collect_dfs(root: int, adjacency: Sequence[Sequence[int]], visited: List[bool], out: List[int]) -> None:
    # Preorder identical to the recursive walk: lowest index first.
    stack: List[Tuple[int, int]] = [(root, 0)]
    size = len(adjacency)
    while stack:
        u, v = stack.pop()
        while v < size:
            if adjacency[u][v] and not visited[v] and u != v:
                visited[v] = True
                out.append(v)
                stack.append((u, v + 1))
                u, v = v, 0
                continue
            v += 1


def graph_components(graph: MolGraph) -> List[List[int]]:
    """Vertex-id components of the molecule, isolated atoms included."""
    seen: Set[int] = set()
    components: List[List[int]] = []
    for start in graph.vertex_ids():
        if start in seen:
            continue
        seen.add(start)
        component = [start]
        queue = deque([start])
        while queue:
            current = queue.popleft()
            for nbr in graph.vertices[current].neighbours:
                if nbr not in seen:
                    seen.add(nbr)
                    component.append(nbr)
                    queue.append(nbr)
        components.append(sorted(component))
    return components


def bridges(graph: MolGraph) -> List[Tuple[int, int]]:
    """Bridge edges (as vertex-id pairs) found with Tarjan's low-link."""
    ids = graph.vertex_ids()
    disc: Dict[int, int] = {}
    low: Dict[int, int] = {}
    out: List[Tuple[int, int]] = []
    time = 0
    for root in ids:
        if root in disc:
            continue
        time += 1
        disc[root] = low[root] = time
        stack: List[Tuple[int, Optional[int], int]] = [(root, None, 0)]
        while stack:
            u, parent, idx = stack[-1]
            nbrs = graph.vertices[u].neighbours
            if idx < len(nbrs):
                stack[-1] = (u, parent, idx + 1)
                v = nbrs[idx]
                if v not in disc:
                    time += 1
                    disc[v] = low[v] = time
                    stack.append((v, u, 0))
                elif v != parent:
                    low[u] = min(low[u], disc[v])
                continue
            stack.pop()
            if parent is not None:
                low[parent] = min(low[parent], low[u])
                if low[u] > disc[parent]:
                    out.append((parent, u))
    return out


def tree_depth(graph: MolGraph, vertex_id: Optional[int], parent_id: Optional[int]) -> int:
    """Depth of the branch rooted at `vertex_id` when coming from `parent_id`.

    A lone vertex has depth 1; `None` on either side gives 0.
    """
    if vertex_id is None or parent_id is None:
        return 0
    seen = {parent_id, vertex_id}
    frontier = [vertex_id]
    depth = 0
    while frontier:
        depth += 1
        nxt = []
        for current in frontier:
            for nbr in graph.vertices[current].neighbours:
                if nbr not in seen:
                    seen.add(nbr)
                    nxt.append(nbr)
        frontier = nxt
    return depth


def traverse_tree(
    graph: MolGraph,
    vertex_id: int,
    parent_id: Optional[int],
    max_depth: Optional[int] = None,
) -> List[int]:
    """Vertices reachable from `vertex_id` without stepping back onto `parent_id`.

    Preorder, neighbours in insertion order. The parent itself is never
    returned even when a cycle leads back to it.
    """
    visited: Set[int] = set()
    if parent_id is not None:
        visited.add(parent_id)
    order: List[int] = []
    stack: List[Tuple[int, int]] = [(vertex_id, 1)]
    while stack:
        current, depth = stack.pop()
        if current in visited:
            continue
        if max_depth is not None and depth > max_depth + 1:
            continue
        visited.add(current)
        order.append(current)
        for nbr in reversed(graph.vertices[current].neighbours):
            if nbr not in visited:
                stack.append((nbr, depth + 1))
    return order


def subgraph_vertices(graph: MolGraph, vertex_id: int, blocked: Iterable[int]) -> List[int]:
    """Vertices reachable from `vertex_id` avoiding `blocked`, `vertex_id` first."""
    seen = set(blocked)
    seen.add(vertex_id)
    stack = [vertex_id]
    found: List[int] = []
    while stack:
        current = stack.pop()
        found.append(current)
        for nbr in graph.vertices[current].neighbours:
            if nbr not in seen:
                seen.add(nbr)
                stack.append(nbr)
    return found


def subgraph_size(graph: MolGraph, vertex_id: int, blocked: Iterable[int]) -> int:
    """Number of vertices reachable from `vertex_id` avoiding `blocked`."""
    return len(subgraph_vertices(graph, vertex_id, blocked))


def shortest_path_edges(graph: MolGraph, start_id: int, target_id: int) -> List[Edge]:
    """Edges of one BFS shortest path from `start_id` to `target_id`."""
    if start_id == target_id:
        return []
    previous: Dict[int, Optional[int]] = {start_id: None}
    queue = deque([start_id])
    while queue:
        current = queue.popleft()
        if current == target_id:
            break
        for nbr in graph.vertices[current].neighbours:
            if nbr not in previous:
                previous[nbr] = current
                queue.append(nbr)
    if target_id not in previous:
        return []
    path: List[Edge] = []
    current = target_id
    while previous[current] is not None:
        parent = previous[current]
        edge = graph.find_edge_between(parent, current)
        if edge is not None:
            path.append(edge)
        current = parent
    path.reverse()
    return path
