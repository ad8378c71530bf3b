"""Puente con RDKit para construir grafos de disposición."""
