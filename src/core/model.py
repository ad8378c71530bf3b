"""Modelos de datos base del motor de disposición 2D de Chemuson.

Este módulo concentra las estructuras que representan el grafo molecular
(vértices y aristas) y los anillos que el motor de disposición detecta sobre
él. El resto del motor (percepción de anillos, posicionamiento, resolución de
solapamientos) trabaja sobre estas clases a través del arena `MolGraph`,
referenciando vértices y anillos siempre por su ID entero.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set

from PyQt6.QtCore import QPointF


class BondType(str, Enum):
    """Tipos de enlace reconocidos por el motor de disposición."""
    SINGLE = "-"
    DOUBLE = "="
    TRIPLE = "#"
    QUADRUPLE = "$"
    AROMATIC = ":"
    UP = "/"
    DOWN = "\\"


# Peso de cada tipo de enlace; se usa para decidir cadenas lineales
# (p. ej., triples o dobles acumulados).
BOND_WEIGHTS = {
    BondType.SINGLE: 1,
    BondType.UP: 1,
    BondType.DOWN: 1,
    BondType.AROMATIC: 1,
    BondType.DOUBLE: 2,
    BondType.TRIPLE: 3,
    BondType.QUADRUPLE: 4,
}

DIRECTIONAL_BONDS = (BondType.UP, BondType.DOWN)


@dataclass
class Vertex:
    """Representa un átomo dentro del arena de disposición."""
    id: int
    element: str
    position: QPointF = field(default_factory=QPointF)
    previous_position: QPointF = field(default_factory=QPointF)
    positioned: bool = False
    force_positioned: bool = False
    is_drawn: bool = True
    is_stereo_center: bool = False
    branch_bond: Optional[BondType] = None
    rings: List[int] = field(default_factory=list)
    original_rings: List[int] = field(default_factory=list)
    anchored_rings: List[int] = field(default_factory=list)
    bridged_ring: Optional[int] = None
    is_bridge: bool = False
    is_bridge_node: bool = False
    is_connected_to_ring: bool = False
    angle: float = 0.0
    subtree_depth: int = 1
    parent_id: Optional[int] = None
    neighbours: List[int] = field(default_factory=list)
    edges: List[int] = field(default_factory=list)

    def set_position(self, x: float, y: float) -> None:
        """Fija la posición sin tocar las banderas de posicionado."""
        self.position = QPointF(x, y)

    def bond_angle(self) -> float:
        """Ángulo (radianes) del vector que va de la posición previa a la actual."""
        dx = self.position.x() - self.previous_position.x()
        dy = self.position.y() - self.previous_position.y()
        return math.atan2(dy, dx)

    def backup_rings(self) -> None:
        self.original_rings = list(self.rings)

    def restore_rings(self) -> None:
        self.rings = list(self.original_rings)


@dataclass
class Edge:
    """Representa un enlace entre dos vértices del arena."""
    id: int
    source_id: int
    target_id: int
    bond_type: BondType = BondType.SINGLE
    is_ring_bond: bool = False

    @property
    def weight(self) -> int:
        return BOND_WEIGHTS[self.bond_type]

    def other(self, vertex_id: int) -> int:
        """Devuelve el extremo opuesto a `vertex_id`."""
        return self.target_id if vertex_id == self.source_id else self.source_id


@dataclass
class Ring:
    """Anillo detectado (o sintético, si agrupa un sistema con puentes)."""
    members: List[int]
    id: int = -1
    neighbours: List[int] = field(default_factory=list)
    center: QPointF = field(default_factory=QPointF)
    central_angle: float = 0.0
    is_bridged: bool = False
    is_fused: bool = False
    is_spiro: bool = False
    is_part_of_bridged: bool = False
    can_flip: bool = True
    positioned: bool = False
    subrings: List["Ring"] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def angle(self) -> float:
        """Ángulo interior del polígono regular asociado."""
        return math.pi - self.central_angle

    def clone(self) -> "Ring":
        """Copia independiente del anillo (miembros, vecinos y subanillos)."""
        return Ring(
            members=list(self.members),
            id=self.id,
            neighbours=list(self.neighbours),
            center=QPointF(self.center),
            central_angle=self.central_angle,
            is_bridged=self.is_bridged,
            is_fused=self.is_fused,
            is_spiro=self.is_spiro,
            is_part_of_bridged=self.is_part_of_bridged,
            can_flip=self.can_flip,
            positioned=self.positioned,
            subrings=[ring.clone() for ring in self.subrings],
        )


@dataclass
class RingConnection:
    """Conexión entre dos anillos que comparten al menos un vértice."""
    first_ring_id: int
    second_ring_id: int
    vertices: Set[int] = field(default_factory=set)
    id: int = -1

    @classmethod
    def between(cls, first: Ring, second: Ring) -> "RingConnection":
        shared = set(first.members) & set(second.members)
        return cls(first_ring_id=first.id, second_ring_id=second.id, vertices=shared)

    def contains_ring(self, ring_id: int) -> bool:
        return ring_id in (self.first_ring_id, self.second_ring_id)

    def joins(self, ring_a: int, ring_b: int) -> bool:
        return {self.first_ring_id, self.second_ring_id} == {ring_a, ring_b}

    def update_other(self, ring_id: int, other_ring_id: int) -> None:
        """Sustituye el extremo distinto de `other_ring_id` por `ring_id`."""
        if self.first_ring_id == other_ring_id:
            self.second_ring_id = ring_id
        else:
            self.first_ring_id = ring_id

    def is_bridge(self, graph: "MolGraph") -> bool:
        """Indica si la conexión forma parte de un sistema con puentes.

        Args:
            graph: Arena que contiene los vértices compartidos.

        Returns:
            `True` si hay más de dos vértices compartidos o alguno de ellos
            pertenece a más de dos anillos.
        """
        if len(self.vertices) > 2:
            return True
        return any(len(graph.vertices[vid].rings) > 2 for vid in self.vertices)


class MolGraph:
    """Arena de vértices y aristas sobre el que trabaja el motor de disposición."""

    def __init__(self) -> None:
        """Inicializa el grafo vacío y contadores internos de IDs."""
        self.vertices: Dict[int, Vertex] = {}
        self.edges: Dict[int, Edge] = {}
        self._edge_lookup: Dict[frozenset[int], int] = {}
        self._next_vertex_id = 0
        self._next_edge_id = 0

    def add_vertex(
        self,
        element: str,
        vertex_id: Optional[int] = None,
        x: Optional[float] = None,
        y: Optional[float] = None,
        is_stereo_center: bool = False,
        pinned: bool = False,
    ) -> Vertex:
        """Crea y registra un vértice en el grafo.

        Args:
            element: Símbolo del elemento químico (p. ej., "C", "O").
            vertex_id: ID explícito; si se omite se asigna el siguiente libre.
            x: Coordenada X inicial (opcional).
            y: Coordenada Y inicial (opcional).
            is_stereo_center: Marca de estereocentro (afecta a los hidrógenos).
            pinned: Si la posición dada debe respetarse durante la disposición.

        Returns:
            El vértice creado.

        Side Effects:
            Incrementa el contador de IDs y modifica `self.vertices`.
        """
        if vertex_id is None:
            vertex_id = self._next_vertex_id
            self._next_vertex_id += 1
        else:
            if vertex_id in self.vertices:
                raise ValueError(f"Vértice duplicado: {vertex_id}")
            self._next_vertex_id = max(self._next_vertex_id, vertex_id + 1)
        vertex = Vertex(id=vertex_id, element=element, is_stereo_center=is_stereo_center)
        if x is not None and y is not None:
            vertex.set_position(x, y)
            if pinned:
                vertex.positioned = True
                vertex.force_positioned = True
        elif pinned:
            raise ValueError(f"Un vértice fijado necesita coordenadas: {vertex_id}")
        self.vertices[vertex_id] = vertex
        return vertex

    def add_edge(
        self,
        source_id: int,
        target_id: int,
        bond_type: BondType = BondType.SINGLE,
        edge_id: Optional[int] = None,
    ) -> Edge:
        """Crea y registra una arista entre dos vértices existentes.

        Args:
            source_id: ID del vértice origen.
            target_id: ID del vértice destino.
            bond_type: Tipo de enlace.
            edge_id: ID explícito si se restaura desde otra fuente.

        Returns:
            La arista creada.

        Side Effects:
            Actualiza `self.edges` y las listas de vecinos de ambos extremos.
        """
        if source_id not in self.vertices or target_id not in self.vertices:
            raise ValueError(f"Arista con extremo desconocido: {source_id}-{target_id}")
        if source_id == target_id:
            raise ValueError(f"Arista en bucle sobre {source_id}")
        key = frozenset((source_id, target_id))
        if key in self._edge_lookup:
            raise ValueError(f"Arista duplicada: {source_id}-{target_id}")
        if edge_id is None:
            edge_id = self._next_edge_id
            self._next_edge_id += 1
        else:
            if edge_id in self.edges:
                raise ValueError(f"ID de arista duplicado: {edge_id}")
            self._next_edge_id = max(self._next_edge_id, edge_id + 1)
        edge = Edge(id=edge_id, source_id=source_id, target_id=target_id, bond_type=BondType(bond_type))
        self.edges[edge_id] = edge
        self._edge_lookup[key] = edge_id
        source = self.vertices[source_id]
        target = self.vertices[target_id]
        source.neighbours.append(target_id)
        source.edges.append(edge_id)
        target.neighbours.append(source_id)
        target.edges.append(edge_id)
        return edge

    def find_edge_between(self, a_id: int, b_id: int) -> Optional[Edge]:
        """Busca la arista entre dos vértices.

        Returns:
            La arista si existe, o `None` en caso contrario.
        """
        edge_id = self._edge_lookup.get(frozenset((a_id, b_id)))
        if edge_id is None:
            return None
        return self.edges[edge_id]

    def has_edge(self, a_id: int, b_id: int) -> bool:
        return frozenset((a_id, b_id)) in self._edge_lookup

    def neighbours(self, vertex_id: int, exclude: Optional[int] = None) -> List[int]:
        """Vecinos de un vértice en orden de inserción, omitiendo `exclude`."""
        return [nbr for nbr in self.vertices[vertex_id].neighbours if nbr != exclude]

    def degree(self, vertex_id: int) -> int:
        return len(self.vertices[vertex_id].neighbours)

    def is_terminal(self, vertex_id: int) -> bool:
        return self.degree(vertex_id) <= 1

    def vertex_ids(self) -> List[int]:
        """IDs ordenados; este orden define los índices de las matrices."""
        return sorted(self.vertices)

    def pin_all(self) -> None:
        """Fija todos los vértices en su posición actual.

        Side Effects:
            Marca `positioned` y `force_positioned` en cada vértice.
        """
        for vertex in self.vertices.values():
            vertex.positioned = True
            vertex.force_positioned = True

    def clear(self) -> None:
        """Elimina todos los vértices y aristas y reinicia contadores."""
        self.vertices.clear()
        self.edges.clear()
        self._edge_lookup.clear()
        self._next_vertex_id = 0
        self._next_edge_id = 0
