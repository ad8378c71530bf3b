"""Opciones de configuración para el motor de disposición 2D."""

from dataclasses import dataclass

from .errors import LayoutContractError


@dataclass
class LayoutOptions:
    """Parámetros numéricos del motor de disposición."""

    # Longitud de enlace; unidad base de todas las distancias y resortes.
    bond_length: float = 40.0
    # Dibujar hidrógenos explícitos; si es False solo se dibujan los de
    # estereocentros compartidos por dos o más anillos.
    explicit_hydrogens: bool = True
    # Puntuación por vértice a partir de la cual se considera solapado.
    overlap_sensitivity: float = 0.42
    # Pasadas sobre los enlaces rotables.
    overlap_resolution_iterations: int = 1
    # Pasada fina: rotaciones de 30° sobre el enlace más central del choque.
    finetune_overlap: bool = True
    # Presupuesto de tiempo (segundos) para la resolución de solapamientos.
    overlap_time_budget_s: float = 1.0
    # Kamada-Kawai: umbrales de energía e iteraciones máximas.
    kk_threshold: float = 0.1
    kk_inner_threshold: float = 0.1
    kk_max_iteration: int = 20000
    kk_max_inner_iteration: int = 50
    kk_max_energy: float = 1e9
    # Alinear la molécula en horizontal (pasos de 30°) al terminar.
    rotate_drawing: bool = True
    # Separación entre componentes desconectados, en longitudes de enlace.
    component_gap: float = 2.0

    @property
    def bond_length_sq(self) -> float:
        return self.bond_length * self.bond_length

    def validate(self) -> None:
        """Comprueba que los parámetros sean utilizables.

        Raises:
            LayoutContractError: Si algún parámetro está fuera de rango.
        """
        if self.bond_length <= 0:
            raise LayoutContractError(f"bond_length debe ser positivo: {self.bond_length}")
        if self.overlap_resolution_iterations < 0:
            raise LayoutContractError("overlap_resolution_iterations no puede ser negativo")
        if self.overlap_time_budget_s < 0:
            raise LayoutContractError("overlap_time_budget_s no puede ser negativo")
        if self.kk_max_iteration < 0 or self.kk_max_inner_iteration < 0:
            raise LayoutContractError("Los límites de iteración de Kamada-Kawai no pueden ser negativos")
        if self.component_gap < 0:
            raise LayoutContractError("component_gap no puede ser negativo")
