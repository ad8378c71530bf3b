"""Estado compartido (arena) de una pasada de disposición.

`LayoutState` reúne el grafo, las opciones y el inventario de anillos. Cada
etapa del motor es una función libre que recibe este estado.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from core.model import BondType, MolGraph, Ring, RingConnection

from .options import LayoutOptions


@dataclass
class LayoutState:
    """Arena de anillos y vértices para una molécula."""
    graph: MolGraph
    options: LayoutOptions = field(default_factory=LayoutOptions)
    rings: Dict[int, Ring] = field(default_factory=dict)
    ring_connections: Dict[int, RingConnection] = field(default_factory=dict)
    original_rings: Dict[int, Ring] = field(default_factory=dict)
    original_ring_connections: Dict[int, RingConnection] = field(default_factory=dict)
    # Anillos activos durante el posicionamiento (incluye los sintéticos).
    layout_rings: Dict[int, Ring] = field(default_factory=dict)
    layout_ring_connections: Dict[int, RingConnection] = field(default_factory=dict)
    next_ring_id: int = 0
    next_ring_connection_id: int = 0
    # Configuración pendiente alrededor de un doble enlace ("/" o "\").
    double_bond_config: Optional[BondType] = None
    double_bond_config_count: int = 0
    # Vértices del componente que se está posicionando.
    active_component: Optional[Set[int]] = None
    # El llamador fijó vértices antes de empezar.
    input_pinned: bool = False
    pinned_ids: Set[int] = field(default_factory=set)
    # Vértices fijados que el recorrido ya atravesó.
    visited: Set[int] = field(default_factory=set)
    # Índice de componente conectado por vértice (lo rellena el cálculo de solapamiento).
    component_of: Dict[int, int] = field(default_factory=dict)

    def ring_list(self) -> List[Ring]:
        return list(self.rings.values())
