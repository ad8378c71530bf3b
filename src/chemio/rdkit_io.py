from __future__ import annotations

from typing import Optional, Tuple

from core.model import BondType, MolGraph
from chemlayout.options import LayoutOptions
from chemlayout.pipeline import LayoutResult, compute_layout

try:
    from rdkit import Chem
except Exception:  # pragma: no cover - optional dependency at runtime
    Chem = None

# Longitud de enlace por defecto de los conformeros 2D de RDKit.
RDKIT_BOND_LENGTH = 1.5


def _require_rdkit():
    if Chem is None:
        raise RuntimeError("RDKit no disponible")


def _bond_type(bond) -> BondType:
    if bond.GetIsAromatic():
        return BondType.AROMATIC
    rd_type = bond.GetBondType()
    if rd_type == Chem.BondType.DOUBLE:
        return BondType.DOUBLE
    if rd_type == Chem.BondType.TRIPLE:
        return BondType.TRIPLE
    if rd_type == Chem.BondType.QUADRUPLE:
        return BondType.QUADRUPLE
    direction = bond.GetBondDir()
    if direction == Chem.BondDir.ENDUPRIGHT:
        return BondType.UP
    if direction == Chem.BondDir.ENDDOWNRIGHT:
        return BondType.DOWN
    return BondType.SINGLE


def smiles_to_molgraph(smiles: str, keep_hydrogens: bool = True) -> MolGraph:
    """Construye el grafo de disposición a partir de un SMILES.

    Con `keep_hydrogens` los hidrógenos escritos como átomos ([H]) se
    conservan como vértices; la disposición decide luego si se dibujan.
    """
    _require_rdkit()
    params = Chem.SmilesParserParams()
    params.removeHs = not keep_hydrogens
    mol = Chem.MolFromSmiles(smiles, params)
    if mol is None:
        raise ValueError(f"SMILES inválido: {smiles}")
    return rdkit_to_molgraph(mol)


def rdkit_to_molgraph(mol, use_coordinates: bool = False, bond_length: float = 40.0) -> MolGraph:
    """Convierte una molécula RDKit en un `MolGraph`.

    Los IDs de vértice coinciden con los índices de átomo de RDKit. Con
    `use_coordinates` el conformero existente se escala a `bond_length` y
    todos los vértices quedan fijados.
    """
    _require_rdkit()
    if mol is None:
        raise ValueError("Mol inválido")
    graph = MolGraph()
    for atom in mol.GetAtoms():
        graph.add_vertex(
            atom.GetSymbol(),
            vertex_id=atom.GetIdx(),
            is_stereo_center=atom.GetChiralTag() != Chem.ChiralType.CHI_UNSPECIFIED,
        )

    for bond in mol.GetBonds():
        graph.add_edge(bond.GetBeginAtomIdx(), bond.GetEndAtomIdx(), _bond_type(bond))

    if use_coordinates and mol.GetNumConformers() > 0:
        conf = mol.GetConformer()
        scale = bond_length / RDKIT_BOND_LENGTH
        for vid, vertex in graph.vertices.items():
            pos = conf.GetAtomPosition(vid)
            vertex.set_position(pos.x * scale, -pos.y * scale)
        graph.pin_all()
    return graph


def layout_smiles(
    smiles: str,
    options: Optional[LayoutOptions] = None,
    keep_hydrogens: bool = True,
) -> Tuple[MolGraph, LayoutResult]:
    graph = smiles_to_molgraph(smiles, keep_hydrogens=keep_hydrogens)
    return graph, compute_layout(graph, options)


def apply_layout_to_rdkit(mol, graph: MolGraph, bond_length: float = 40.0) -> int:
    """Copia las posiciones del grafo a un conformero nuevo de `mol`.

    Returns:
        ID del conformero añadido.

    Raises:
        ValueError: Si el número de átomos no coincide con el del grafo.
    """
    _require_rdkit()
    if mol.GetNumAtoms() != len(graph.vertices):
        raise ValueError(
            f"Átomos distintos: mol={mol.GetNumAtoms()} grafo={len(graph.vertices)}"
        )
    scale = RDKIT_BOND_LENGTH / bond_length
    conf = Chem.Conformer(mol.GetNumAtoms())
    for vid, vertex in graph.vertices.items():
        # El eje Y de la escena crece hacia abajo; RDKit lo espera hacia arriba.
        conf.SetAtomPosition(vid, (vertex.position.x() * scale, -vertex.position.y() * scale, 0.0))
    conf.Set3D(False)
    return mol.AddConformer(conf, assignId=True)
