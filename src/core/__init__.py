"""API pública del núcleo de datos de Chemuson.

Reexpone las clases base del modelo para facilitar importaciones.
"""

from core.model import BondType, Edge, MolGraph, Ring, RingConnection, Vertex

__all__ = ["BondType", "Edge", "MolGraph", "Ring", "RingConnection", "Vertex"]
