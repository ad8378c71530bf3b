"""Smallest Set of Smallest Rings (PIDM method of Lee et al., 2009).

Works per ring system: bridges are cut first so every connected component of
what is left is one ring system, and each component gets exactly its cycle
rank worth of rings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

from core.model import MolGraph

from .graph_ops import Matrix, _check_square, components_adjacency_matrix, connected_components

logger = logging.getLogger(__name__)

Bond = Tuple[int, int]
Path = Tuple[Bond, ...]
PathMatrix = List[List[List[Path]]]
DistanceMatrix = List[List[Optional[int]]]


@dataclass(frozen=True)
class RingCandidate:
    size: int
    paths: Tuple[Path, ...]
    extended_paths: Tuple[Path, ...]


def bond_key(bond: Bond) -> Bond:
    a, b = bond
    return (a, b) if a < b else (b, a)


def path_key(path: Path) -> Tuple[Bond, ...]:
    return tuple(bond_key(bond) for bond in path)


def find_sssr(graph: MolGraph) -> List[List[int]]:
    """Rings of the graph as vertex-id lists in cycle order.

    Components are processed in order of their lowest vertex and the rings of
    each component are concatenated.
    """
    ids = graph.vertex_ids()
    if not ids:
        return []
    adjacency = components_adjacency_matrix(graph)
    rings: List[List[int]] = []
    for component in connected_components(adjacency):
        for local_ring in component_rings(subgraph_matrix(adjacency, component)):
            rings.append([ids[component[idx]] for idx in local_ring])
    logger.debug("SSSR: %d rings over %d vertices", len(rings), len(ids))
    return rings


def subgraph_matrix(adjacency: Sequence[Sequence[int]], indices: Sequence[int]) -> Matrix:
    return [[adjacency[i][j] for j in indices] for i in indices]


def theoretical_ring_count(adjacency: Sequence[Sequence[int]]) -> int:
    """Cycle rank of a connected component, or the Euler count if all degrees are 3."""
    size = len(adjacency)
    degrees = [sum(row) for row in adjacency]
    n_edges = sum(degrees) // 2
    if size and all(degree == 3 for degree in degrees):
        return 2 + n_edges - size
    return n_edges - size + 1


def component_rings(adjacency: Sequence[Sequence[int]]) -> List[List[int]]:
    """SSSR of one connected component, as local index lists in cycle order."""
    _check_square(adjacency)
    n_sssr = theoretical_ring_count(adjacency)
    if n_sssr < 1:
        return []
    if n_sssr == 1:
        return [order_ring_vertices(set(range(len(adjacency))), adjacency)]

    bond_counts = [sum(row) for row in adjacency]
    ring_counts = [0] * len(adjacency)
    d, pe, pe_prime = path_included_distance_matrices(adjacency)
    candidates = ring_candidates(d, pe, pe_prime)
    selected = select_rings(candidates, adjacency, bond_counts, ring_counts, n_sssr)
    if len(selected) > n_sssr:
        logger.debug("SSSR: dropping %d surplus ring(s)", len(selected) - n_sssr)
    return [order_ring_vertices(ring, adjacency) for ring in selected[:n_sssr]]


def _extend(target: List[Path], keys: Set[Tuple[Bond, ...]], lefts: List[Path], rights: List[Path]) -> None:
    for left in lefts:
        for right in rights:
            combined = left + right
            if not combined:
                continue
            key = path_key(combined)
            if key not in keys:
                keys.add(key)
                target.append(combined)


def path_included_distance_matrices(
    adjacency: Sequence[Sequence[int]],
) -> Tuple[DistanceMatrix, PathMatrix, PathMatrix]:
    """Distance matrix plus every shortest path (`pe`) and every path one bond
    longer (`pe_prime`) for each vertex pair."""
    size = len(adjacency)
    d: DistanceMatrix = [[None] * size for _ in range(size)]
    pe: PathMatrix = [[[] for _ in range(size)] for _ in range(size)]
    pe_keys = [[set() for _ in range(size)] for _ in range(size)]
    pe_prime: PathMatrix = [[[] for _ in range(size)] for _ in range(size)]
    pe_prime_keys = [[set() for _ in range(size)] for _ in range(size)]

    for i in range(size):
        for j in range(size):
            if i == j:
                d[i][j] = 0
            elif adjacency[i][j] == 1:
                d[i][j] = 1
                path: Path = ((i, j),)
                pe[i][j].append(path)
                pe_keys[i][j].add(path_key(path))

    empty: List[Path] = [()]

    for k in range(size):
        for i in range(size):
            if d[i][k] is None:
                continue
            for j in range(size):
                if d[k][j] is None:
                    continue
                lefts = pe[i][k] or (empty if i == k else [])
                rights = pe[k][j] or (empty if k == j else [])
                if not lefts or not rights:
                    continue
                through_k = d[i][k] + d[k][j]
                previous = d[i][j]
                if previous is None or through_k < previous:
                    d[i][j] = through_k
                    pe[i][j] = []
                    pe_keys[i][j] = set()
                    _extend(pe[i][j], pe_keys[i][j], lefts, rights)
                elif through_k == previous:
                    _extend(pe[i][j], pe_keys[i][j], lefts, rights)

    for k in range(size):
        for i in range(size):
            if d[i][k] is None:
                continue
            for j in range(size):
                if d[k][j] is None or d[i][j] is None:
                    continue
                if d[i][k] + d[k][j] - 1 != d[i][j]:
                    continue
                lefts = pe[i][k] or (empty if i == k else [])
                rights = pe[k][j] or (empty if k == j else [])
                if not lefts or not rights:
                    continue
                _extend(pe_prime[i][j], pe_prime_keys[i][j], lefts, rights)

    return d, pe, pe_prime


def ring_candidates(d: DistanceMatrix, pe: PathMatrix, pe_prime: PathMatrix) -> List[RingCandidate]:
    """Candidates sorted (stably) by ring size, smallest first."""
    size = len(d)
    candidates: List[RingCandidate] = []
    for i in range(size):
        for j in range(size):
            dist = d[i][j]
            if dist is None or dist == 0:
                continue
            if len(pe[i][j]) == 1 and not pe_prime[i][j]:
                continue
            if len(pe[i][j]) > 1:
                ring_size = 2 * dist
            elif pe_prime[i][j]:
                ring_size = 2 * dist + 1
            else:
                ring_size = 2 * dist
            candidates.append(RingCandidate(ring_size, tuple(pe[i][j]), tuple(pe_prime[i][j])))
    candidates.sort(key=lambda candidate: candidate.size)
    return candidates


def bonds_to_atoms(bonds: Sequence[Bond]) -> Set[int]:
    atoms: Set[int] = set()
    for a, b in bonds:
        atoms.add(a)
        atoms.add(b)
    return atoms


def bond_count(atoms: Set[int], adjacency: Sequence[Sequence[int]]) -> int:
    """Number of bonds induced by a set of atoms."""
    members = sorted(atoms)
    count = 0
    for idx, u in enumerate(members):
        for v in members[idx + 1:]:
            count += adjacency[u][v]
    return count


def select_rings(
    candidates: Sequence[RingCandidate],
    adjacency: Sequence[Sequence[int]],
    bond_counts: List[int],
    ring_counts: List[int],
    n_sssr: int,
) -> List[Set[int]]:
    """Greedy ring selection over the sorted candidates.

    Collection stops as soon as one ring more than `n_sssr` has been accepted;
    the surplus ring is returned too and callers truncate.
    `ring_counts` is updated in place.
    """
    accepted: List[Set[int]] = []
    all_bond_counts: Dict[Bond, int] = {}

    def consider(bonds: Path) -> bool:
        atoms = bonds_to_atoms(bonds)
        if bond_count(atoms, adjacency) == len(atoms) and not path_sets_contain(
            accepted, atoms, bonds, all_bond_counts, bond_counts, ring_counts
        ):
            accepted.append(atoms)
            for bond in bonds:
                key = bond_key(bond)
                all_bond_counts[key] = all_bond_counts.get(key, 0) + 1
        return len(accepted) > n_sssr

    for candidate in candidates:
        if candidate.size % 2 != 0:
            if not candidate.paths:
                continue
            base = candidate.paths[0]
            for extended in candidate.extended_paths:
                if consider(base + extended):
                    return accepted
        else:
            if len(candidate.paths) < 2:
                continue
            for j in range(len(candidate.paths) - 1):
                if consider(candidate.paths[j] + candidate.paths[j + 1]):
                    return accepted
    return accepted


def path_sets_contain(
    path_sets: Sequence[Set[int]],
    path_set: Set[int],
    bonds: Sequence[Bond],
    all_bond_counts: Dict[Bond, int],
    bond_counts: Sequence[int],
    ring_counts: List[int],
) -> bool:
    """Whether `path_set` is redundant with the rings accepted so far.

    Redundant means: a superset of, or equal to, an accepted ring; or every
    bond is already used often enough by accepted rings while each atom is
    already in as many rings as it has bonds. A non-redundant candidate bumps
    the ring count of its atoms.
    """
    for existing in reversed(path_sets):
        if path_set >= existing:
            return True
        if len(existing) == len(path_set) and existing == path_set:
            return True

    required: Dict[Bond, int] = {}
    for bond in bonds:
        key = bond_key(bond)
        required[key] = required.get(key, 0) + 1

    all_contained = all(all_bond_counts.get(key, 0) >= count for key, count in required.items())
    special_case = False
    if all_contained:
        special_case = any(ring_counts[atom] < bond_counts[atom] for atom in path_set)

    if all_contained and not special_case:
        return True

    for atom in path_set:
        ring_counts[atom] += 1
    return False


def order_ring_vertices(vertices: Set[int], adjacency: Sequence[Sequence[int]]) -> List[int]:
    """Walk the ring from its lowest index so consecutive members are bonded."""
    if not vertices:
        return []
    ordered: List[int] = []
    start = min(vertices)
    current = start
    previous = -1
    while True:
        ordered.append(current)
        neighbours = sorted(v for v in vertices if v != current and adjacency[current][v] == 1)
        nxt = next((n for n in neighbours if n != previous), None)
        if nxt is None:
            nxt = next((n for n in neighbours if n not in ordered), None)
        if nxt is None:
            break
        previous = current
        current = nxt
        if current == start or len(ordered) > len(vertices):
            break
    return ordered
