"""Pruebas unitarias para test_rdkit_layout."""

import math
import os
import sys
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from core.model import BondType
from chemlayout.options import LayoutOptions
from chemlayout.sssr import find_sssr

try:
    from rdkit import Chem
    RDKit_AVAILABLE = True
except Exception:
    RDKit_AVAILABLE = False

if RDKit_AVAILABLE:
    from rdkit.Chem import AllChem
    from chemlayout import compute_layout
    from chemio.rdkit_io import apply_layout_to_rdkit, layout_smiles, rdkit_to_molgraph, smiles_to_molgraph


SAMPLES = [
    "CCO",
    "c1ccccc1",
    "C1=CC=C2C=CC=CC2=C1",
    "C1C2CC3CC1CC(C2)C3",
    "C1CCC2(CC1)CCCC2",
    "CC(C)(C)c1ccccc1C(C)(C)C",
    "OC(=O)C(N)Cc1ccc(O)cc1",
]

STEREO_SAMPLES = [
    "F/C=C/F",
    "F/C=C\\F",
    "C/C=C\\C=C/C=C\\C",
    "OC/C=C(/C)CCC=C(C)C",
    "C(/C=C/Cl)=C\\Cl",
    "CC/C=C/C=C/CC",
]


@unittest.skipIf(not RDKit_AVAILABLE, "RDKit no disponible")
class RdkitLayoutTest(unittest.TestCase):
    """Casos de prueba para RdkitLayoutTest."""
    def test_graph_from_smiles(self):
        """Verifica graph from smiles.

        Returns:
            None.

        """
        graph = smiles_to_molgraph("C/C=C/C#N")
        self.assertEqual(len(graph.vertices), 5)
        self.assertEqual(graph.find_edge_between(1, 2).bond_type, BondType.DOUBLE)
        self.assertEqual(graph.find_edge_between(3, 4).bond_type, BondType.TRIPLE)

    def test_aromatic_bonds(self):
        """Verifica aromatic bonds.

        Returns:
            None.

        """
        graph = smiles_to_molgraph("c1ccccc1")
        self.assertTrue(all(edge.bond_type == BondType.AROMATIC for edge in graph.edges.values()))

    def test_explicit_hydrogens_kept(self):
        """Verifica explicit hydrogens kept.

        Returns:
            None.

        """
        graph = smiles_to_molgraph("[H]C([H])([H])O")
        self.assertEqual(sum(1 for v in graph.vertices.values() if v.element == "H"), 3)
        graph = smiles_to_molgraph("[H]C([H])([H])O", keep_hydrogens=False)
        self.assertEqual(len(graph.vertices), 2)

    def test_invalid_smiles(self):
        """Verifica invalid smiles.

        Returns:
            None.

        """
        with self.assertRaises(ValueError):
            smiles_to_molgraph("C1CC")

    def test_ring_count_matches_cycle_rank(self):
        """Verifica ring count matches cycle rank.

        Returns:
            None.

        """
        for smiles in SAMPLES:
            mol = Chem.MolFromSmiles(smiles)
            graph = rdkit_to_molgraph(mol)
            rank = mol.GetNumBonds() - mol.GetNumAtoms() + len(Chem.GetMolFrags(mol))
            with self.subTest(smiles):
                self.assertEqual(len(find_sssr(graph)), rank)

    def test_layout_samples(self):
        """Verifica layout samples.

        Returns:
            None.

        """
        for smiles in SAMPLES:
            graph, result = layout_smiles(smiles, LayoutOptions(overlap_time_budget_s=0.5))
            with self.subTest(smiles):
                self.assertEqual(len(result.vertices), len(graph.vertices))
                for record in result.vertices:
                    self.assertTrue(math.isfinite(record.x) and math.isfinite(record.y))

    def test_apply_layout_to_rdkit(self):
        """Verifica apply layout to rdkit.

        Returns:
            None.

        """
        mol = Chem.MolFromSmiles("CCO")
        graph = rdkit_to_molgraph(mol)
        compute_layout(graph)
        conf_id = apply_layout_to_rdkit(mol, graph)
        conf = mol.GetConformer(conf_id)
        pos0 = conf.GetAtomPosition(0)
        pos1 = conf.GetAtomPosition(1)
        self.assertAlmostEqual(math.hypot(pos0.x - pos1.x, pos0.y - pos1.y), 1.5, places=4)

    def test_double_bond_directions_respected(self):
        """Verifica double bond directions respected.

        Returns:
            None.

        """
        for smiles in STEREO_SAMPLES:
            mol = Chem.MolFromSmiles(smiles)
            Chem.SetBondStereoFromDirections(mol)
            positions = compute_layout(rdkit_to_molgraph(mol)).positions()
            for bond in mol.GetBonds():
                stereo = bond.GetStereo()
                if stereo not in (Chem.BondStereo.STEREOCIS, Chem.BondStereo.STEREOTRANS):
                    continue
                ax, ay = positions[bond.GetBeginAtomIdx()]
                bx, by = positions[bond.GetEndAtomIdx()]
                sides = []
                for atom_idx in bond.GetStereoAtoms():
                    px, py = positions[atom_idx]
                    sides.append((bx - ax) * (py - ay) - (by - ay) * (px - ax) > 0)
                with self.subTest(smiles=smiles, bond=bond.GetIdx()):
                    self.assertEqual(sides[0] == sides[1], stereo == Chem.BondStereo.STEREOCIS)

    def test_existing_coordinates_are_pinned(self):
        """Verifica existing coordinates are pinned.

        Returns:
            None.

        """
        mol = Chem.MolFromSmiles("c1ccccc1O")
        AllChem.Compute2DCoords(mol)
        graph = rdkit_to_molgraph(mol, use_coordinates=True)
        self.assertTrue(all(v.force_positioned for v in graph.vertices.values()))
        with self.assertRaises(ValueError):
            apply_layout_to_rdkit(Chem.MolFromSmiles("CC"), graph)


if __name__ == "__main__":
    unittest.main()
