"""Grafos de prueba construidos a mano (IDs en el orden de escritura del SMILES)."""

import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from core.model import BondType, MolGraph


def build_graph(elements, edges):
    """Crea un `MolGraph` a partir de una lista de elementos y de aristas.

    Cada arista es `(a, b)` o `(a, b, tipo)`.
    """
    graph = MolGraph()
    for element in elements:
        graph.add_vertex(element)
    for edge in edges:
        if len(edge) == 3:
            graph.add_edge(edge[0], edge[1], edge[2])
        else:
            graph.add_edge(edge[0], edge[1])
    return graph


def ring_edges(ids, bond_type=BondType.SINGLE):
    return [(ids[i], ids[(i + 1) % len(ids)], bond_type) for i in range(len(ids))]


def chain(n, element="C"):
    return build_graph([element] * n, [(i, i + 1) for i in range(n - 1)])


def cyclohexane():
    # C1CCCCC1
    return build_graph(["C"] * 6, ring_edges(list(range(6))))


def toluene():
    # Cc1ccccc1
    edges = [(0, 1)] + ring_edges([1, 2, 3, 4, 5, 6], BondType.AROMATIC)
    return build_graph(["C"] * 7, edges)


def naphthalene():
    # C1=CC=C2C=CC=CC2=C1
    edges = [(0, 1), (1, 2), (2, 3), (3, 4), (4, 5), (5, 6), (6, 7), (7, 8), (8, 3), (8, 9), (9, 0)]
    return build_graph(["C"] * 10, edges)


def anthracene():
    # C1=CC=C2C=C3C=CC=CC3=CC2=C1
    edges = [
        (0, 1), (1, 2), (2, 3), (3, 4), (4, 5), (5, 6), (6, 7), (7, 8), (8, 9),
        (9, 10), (10, 5), (10, 11), (11, 12), (12, 3), (12, 13), (13, 0),
    ]
    return build_graph(["C"] * 14, edges)


def spiro_nonane():
    # C1CCC2(C1)CCCC2  (espiro[4.4]nonano)
    edges = [(0, 1), (1, 2), (2, 3), (3, 4), (4, 0), (3, 5), (5, 6), (6, 7), (7, 8), (8, 3)]
    return build_graph(["C"] * 9, edges)


def bicyclo_nonane():
    # C1CCC2CC1CCC2  (biciclo[3.3.1]nonano)
    edges = [(0, 1), (1, 2), (2, 3), (3, 4), (4, 5), (5, 0), (5, 6), (6, 7), (7, 8), (8, 3)]
    return build_graph(["C"] * 9, edges)


def adamantane():
    # C1C2CC3CC1CC(C2)C3
    edges = [
        (0, 1), (1, 2), (2, 3), (3, 4), (4, 5), (5, 0),
        (5, 6), (6, 7), (7, 8), (8, 1), (7, 9), (9, 3),
    ]
    return build_graph(["C"] * 10, edges)


def fused_seven_rings():
    # C1CCCC2CC1CCCC2: dos anillos de siete que comparten tres vértices
    edges = [
        (0, 1), (1, 2), (2, 3), (3, 4), (4, 5), (5, 6), (6, 0),
        (6, 7), (7, 8), (8, 9), (9, 10), (10, 4),
    ]
    return build_graph(["C"] * 11, edges)


def di_tert_butyl_benzene():
    # CC(C)(C)c1ccccc1C(C)(C)C con el anillo primero
    edges = ring_edges([0, 1, 2, 3, 4, 5], BondType.AROMATIC) + [
        (0, 6), (6, 7), (6, 8), (6, 9),
        (1, 10), (10, 11), (10, 12), (10, 13),
    ]
    return build_graph(["C"] * 14, edges)


def ethanol_and_water():
    # CCO.O
    return build_graph(["C", "C", "O", "O"], [(0, 1), (1, 2)])


def two_hexanes():
    # CCCCCC.CCCCCC
    edges = [(i, i + 1) for i in range(5)] + [(i, i + 1) for i in range(6, 11)]
    return build_graph(["C"] * 12, edges)


UP = BondType.UP
DOWN = BondType.DOWN
DOUBLE = BondType.DOUBLE


def difluoroethene(cis):
    # F/C=C/F (trans) o F/C=C\F (cis)
    return build_graph(["F", "C", "C", "F"], [(0, 1, UP), (1, 2, DOUBLE), (2, 3, DOWN if cis else UP)])


def octatriene():
    # C/C=C\C=C/C=C\C: los tres dobles enlaces en cis
    edges = [(0, 1, UP), (1, 2, DOUBLE), (2, 3, DOWN), (3, 4, DOUBLE), (4, 5, UP), (5, 6, DOUBLE), (6, 7, DOWN)]
    return build_graph(["C"] * 8, edges)


def geraniol():
    # OC/C=C(/C)CCC=C(C)C: 1 y 4 en trans sobre 2=3
    edges = [
        (0, 1), (1, 2, UP), (2, 3, DOUBLE), (3, 4, UP), (3, 5), (5, 6),
        (6, 7), (7, 8, DOUBLE), (8, 9), (8, 10),
    ]
    return build_graph(["O"] + ["C"] * 10, edges)


def dichlorobutadiene():
    # C(/C=C/Cl)=C\Cl: la rama se escribe antes que el doble enlace 0=4
    edges = [(0, 1, UP), (1, 2, DOUBLE), (2, 3, UP), (0, 4, DOUBLE), (4, 5, DOWN)]
    return build_graph(["C", "C", "C", "Cl", "C", "Cl"], edges)


def trans_cyclooctene():
    # Ciclo de ocho con el doble enlace 0=1 en trans
    edges = [(0, 1, DOUBLE), (1, 2, UP), (2, 3), (3, 4), (4, 5), (5, 6), (6, 7), (0, 7, DOWN)]
    return build_graph(["C"] * 8, edges)
