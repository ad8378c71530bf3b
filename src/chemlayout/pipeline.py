"""Tubería de disposición 2D: une las etapas sobre un único `LayoutState`.

Orden de las etapas:
    init_rings -> init_hydrogens -> position -> restore_rings
    -> correct_cis_trans -> resolve_overlaps -> correct_cis_trans -> arrange
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from PyQt6.QtCore import QPointF

from core.model import MolGraph, Ring, RingConnection

from . import cis_trans, overlap, positioning, ring_system
from .errors import LayoutNotPossible
from .geom import is_finite_point
from .options import LayoutOptions
from .state import LayoutState

logger = logging.getLogger(__name__)


@dataclass
class VertexRecord:
    id: int
    x: float
    y: float
    is_drawn: bool
    rings: List[int]
    force_positioned: bool


@dataclass
class RingRecord:
    id: int
    members: List[int]
    neighbours: List[int]
    is_bridged: bool
    is_fused: bool
    is_spiro: bool
    center: Tuple[float, float]
    subrings: List["RingRecord"] = field(default_factory=list)

    @classmethod
    def from_ring(cls, ring: Ring) -> "RingRecord":
        return cls(
            id=ring.id,
            members=list(ring.members),
            neighbours=list(ring.neighbours),
            is_bridged=ring.is_bridged,
            is_fused=ring.is_fused,
            is_spiro=ring.is_spiro,
            center=(ring.center.x(), ring.center.y()),
            subrings=[cls.from_ring(sub) for sub in ring.subrings],
        )


@dataclass
class RingConnectionRecord:
    id: int
    first_ring_id: int
    second_ring_id: int
    shared_vertices: List[int]

    @classmethod
    def from_connection(cls, connection: RingConnection) -> "RingConnectionRecord":
        return cls(
            id=connection.id,
            first_ring_id=connection.first_ring_id,
            second_ring_id=connection.second_ring_id,
            shared_vertices=sorted(connection.vertices),
        )


@dataclass
class LayoutResult:
    """Resultado de una pasada completa de disposición."""
    vertices: List[VertexRecord] = field(default_factory=list)
    # Anillos usados al posicionar (los sistemas con puentes aparecen colapsados).
    rings: List[RingRecord] = field(default_factory=list)
    original_rings: List[RingRecord] = field(default_factory=list)
    ring_connections: List[RingConnectionRecord] = field(default_factory=list)
    original_ring_connections: List[RingConnectionRecord] = field(default_factory=list)
    overlap_score: float = 0.0

    def positions(self) -> Dict[int, Tuple[float, float]]:
        return {record.id: (record.x, record.y) for record in self.vertices}

    def vertex(self, vertex_id: int) -> VertexRecord:
        for record in self.vertices:
            if record.id == vertex_id:
                return record
        raise KeyError(vertex_id)


class LayoutPipeline:
    """Ejecuta las etapas de disposición sobre un `MolGraph`.

    Cada etapa es una función libre sobre el arena compartido; la tubería
    solo fija el orden y produce el `LayoutResult`.
    """

    def __init__(self, graph: MolGraph, options: Optional[LayoutOptions] = None) -> None:
        self.options = options or LayoutOptions()
        self.options.validate()
        self.graph = graph
        self.state = LayoutState(graph=graph, options=self.options)
        self.overlap_report: Optional[overlap.OverlapReport] = None
        self.unresolved_stereo_bonds: List[int] = []

    def init_rings(self) -> None:
        """Reinicia los atributos de disposición, detecta anillos y colapsa puentes."""
        self._reset_layout_attributes()
        pinned = {vid for vid, vertex in self.graph.vertices.items() if vertex.force_positioned}
        self.state.pinned_ids = pinned
        self.state.input_pinned = bool(pinned)
        ring_system.init_rings(self.state)

    def init_hydrogens(self) -> None:
        positioning.init_hydrogens(self.state)

    def position(self) -> None:
        positioning.position(self.state)

    def restore_rings(self) -> None:
        ring_system.restore_ring_information(self.state)

    def correct_cis_trans(self) -> List[int]:
        """Corrige los dobles enlaces `/` `\\` dibujados al revés.

        Returns:
            IDs de los enlaces que no se pudieron corregir.
        """
        self.unresolved_stereo_bonds = cis_trans.correct_bond_orientations(self.state)
        return self.unresolved_stereo_bonds

    def resolve_overlaps(self) -> overlap.OverlapReport:
        self.overlap_report = overlap.resolve_overlaps(self.state)
        return self.overlap_report

    def arrange(self) -> None:
        """Alinea el dibujo en horizontal y separa los componentes desconectados."""
        positioning.rotate_drawing(self.state)
        positioning.pack_components(self.state)

    def ring_info(self) -> str:
        return ring_system.ring_info_table(self.state)

    def run(self) -> LayoutResult:
        """Ejecuta todas las etapas y devuelve el resultado.

        Raises:
            LayoutNotPossible: Si algún vértice queda sin posición finita.
        """
        self.init_rings()
        self.init_hydrogens()
        self.position()
        self.restore_rings()
        self.correct_cis_trans()
        self.resolve_overlaps()
        # Las rotaciones de solapamiento pueden deshacer una configuración.
        self.correct_cis_trans()
        self.arrange()
        self._check_positions()
        result = self._build_result()
        logger.debug(
            "Disposición: %d vértices, %d anillos, solapamiento %.4f",
            len(result.vertices),
            len(result.original_rings),
            result.overlap_score,
        )
        return result

    def _reset_layout_attributes(self) -> None:
        for vertex in self.graph.vertices.values():
            vertex.rings = []
            vertex.original_rings = []
            vertex.anchored_rings = []
            vertex.bridged_ring = None
            vertex.is_bridge = False
            vertex.is_bridge_node = False
            vertex.is_connected_to_ring = False
            vertex.is_drawn = True
            vertex.angle = 0.0
            vertex.subtree_depth = 1
            if not vertex.force_positioned:
                vertex.positioned = False
                vertex.previous_position = QPointF()
        for edge in self.graph.edges.values():
            edge.is_ring_bond = False
        self.state = LayoutState(graph=self.graph, options=self.options)

    def _check_positions(self) -> None:
        missing = [
            vid
            for vid, vertex in sorted(self.graph.vertices.items())
            if not vertex.positioned or not is_finite_point(vertex.position)
        ]
        if missing:
            raise LayoutNotPossible(f"Vértices sin posición válida: {missing}")

    def _build_result(self) -> LayoutResult:
        state = self.state
        layout_rings = list(state.layout_rings.values())
        vertices = []
        for vid in self.graph.vertex_ids():
            vertex = self.graph.vertices[vid]
            vertices.append(
                VertexRecord(
                    id=vid,
                    x=vertex.position.x(),
                    y=vertex.position.y(),
                    is_drawn=vertex.is_drawn,
                    rings=[ring.id for ring in layout_rings if vid in ring.members],
                    force_positioned=vertex.force_positioned,
                )
            )
        return LayoutResult(
            vertices=vertices,
            rings=[RingRecord.from_ring(ring) for ring in layout_rings],
            original_rings=[RingRecord.from_ring(ring) for ring in state.original_rings.values()],
            ring_connections=[
                RingConnectionRecord.from_connection(rc) for rc in state.layout_ring_connections.values()
            ],
            original_ring_connections=[
                RingConnectionRecord.from_connection(rc)
                for rc in state.original_ring_connections.values()
            ],
            overlap_score=overlap.overlap_score(state).total,
        )


def compute_layout(graph: MolGraph, options: Optional[LayoutOptions] = None) -> LayoutResult:
    """Calcula la disposición 2D completa de `graph` (lo modifica en su sitio)."""
    return LayoutPipeline(graph, options).run()
