"""Kamada-Kawai spring layout for a vertex subset (bridged ring systems).

Kamada, T.; Kawai, S. "An Algorithm for Drawing General Undirected Graphs",
Information Processing Letters 31(1), 1989.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from PyQt6.QtCore import QPointF

from core.model import MolGraph

from .errors import LayoutContractError
from .geom import central_angle, poly_circumradius
from .graph_ops import subgraph_distance_matrix
from .options import LayoutOptions

logger = logging.getLogger(__name__)

# Sustituye las entradas nulas del hessiano.
HESSIAN_CLAMP = 0.1
# Radio del círculo inicial expresado como lado de polígono.
INITIAL_CIRCLE_SIDE = 500.0


@dataclass
class KamadaKawaiReport:
    iterations: int = 0
    converged: bool = False
    max_residual: float = 0.0
    # Squared gradient magnitude per movable vertex id.
    residuals: Dict[int, float] = field(default_factory=dict)


def _pair_force(
    ux: float, uy: float, vx: float, vy: float, strength: float, desired: float
) -> Tuple[float, float]:
    if strength == 0.0:
        return 0.0, 0.0
    dx = ux - vx
    dy = uy - vy
    dist_sq = dx * dx + dy * dy
    if dist_sq == 0.0:
        return 0.0, 0.0
    inv = 1.0 / math.sqrt(dist_sq)
    return strength * (dx - desired * dx * inv), strength * (dy - desired * dy * inv)


def kamada_kawai_layout(
    graph: MolGraph,
    vertex_ids: Sequence[int],
    center: QPointF,
    options: Optional[LayoutOptions] = None,
) -> KamadaKawaiReport:
    """Position `vertex_ids` by minimising the spring energy around `center`.

    Already positioned vertices act as anchors: they keep their coordinates
    and are never selected for an update. Unreachable pairs get no spring.
    Stops when the largest squared residual drops below `kk_threshold` or
    after `kk_max_iteration` vertex selections. Every vertex of the subset
    ends `positioned` and `force_positioned`.

    Raises:
        LayoutContractError: If `vertex_ids` is empty.
    """
    opts = options or LayoutOptions()
    ids = list(vertex_ids)
    size = len(ids)
    if size == 0:
        raise LayoutContractError("Kamada-Kawai necesita al menos un vértice")

    bond_length = opts.bond_length
    dist = subgraph_distance_matrix(graph, ids)

    radius = poly_circumradius(INITIAL_CIRCLE_SIDE, size) if size > 1 else 0.0
    step = central_angle(size)
    xs = [0.0] * size
    ys = [0.0] * size
    anchored = [False] * size
    angle = 0.0
    for idx in range(size - 1, -1, -1):
        vertex = graph.vertices[ids[idx]]
        if vertex.positioned:
            xs[idx] = vertex.position.x()
            ys[idx] = vertex.position.y()
        else:
            xs[idx] = center.x() + math.cos(angle) * radius
            ys[idx] = center.y() + math.sin(angle) * radius
        anchored[idx] = vertex.positioned
        angle += step
    movable = [idx for idx in range(size) if not anchored[idx]]

    lengths: List[List[float]] = []
    strengths: List[List[float]] = []
    for row in dist:
        lengths.append([bond_length * d if d else 0.0 for d in row])
        strengths.append([bond_length / (d * d) if d else 0.0 for d in row])

    # energy[i][j] is the force on i from the spring towards j; energy[j][i] == -energy[i][j].
    energy_x = [[0.0] * size for _ in range(size)]
    energy_y = [[0.0] * size for _ in range(size)]
    sum_x = [0.0] * size
    sum_y = [0.0] * size
    for i in range(size):
        for j in range(size):
            if i == j:
                continue
            fx, fy = _pair_force(xs[i], ys[i], xs[j], ys[j], strengths[i][j], lengths[i][j])
            energy_x[i][j] = fx
            energy_y[i][j] = fy
            sum_x[i] += fx
            sum_y[i] += fy

    def residual(idx: int) -> float:
        return sum_x[idx] * sum_x[idx] + sum_y[idx] * sum_y[idx]

    def highest() -> Tuple[int, float]:
        best_idx = movable[0] if movable else 0
        best = residual(best_idx) if movable else 0.0
        for idx in movable[1:]:
            value = residual(idx)
            if value > best:
                best_idx = idx
                best = value
        return best_idx, best

    def newton_step(m: int) -> bool:
        ux = xs[m]
        uy = ys[m]
        dxx = dyy = dxy = 0.0
        for i in range(size):
            if i == m:
                continue
            dx = ux - xs[i]
            dy = uy - ys[i]
            dist_sq = dx * dx + dy * dy
            if dist_sq == 0.0:
                continue
            denom = 1.0 / (dist_sq * math.sqrt(dist_sq))
            k = strengths[m][i]
            l = lengths[m][i]
            dxx += k * (1.0 - l * dy * dy * denom)
            dyy += k * (1.0 - l * dx * dx * denom)
            dxy += k * (l * dx * dy * denom)
        dxx = dxx or HESSIAN_CLAMP
        dyy = dyy or HESSIAN_CLAMP
        dxy = dxy or HESSIAN_CLAMP

        det = dxx * dyy - dxy * dxy
        if det == 0.0:
            return False
        gx = sum_x[m]
        gy = sum_y[m]
        step_x = (-gx * dyy + gy * dxy) / det
        step_y = (-gy * dxx + gx * dxy) / det
        if not (math.isfinite(step_x) and math.isfinite(step_y)):
            return False

        xs[m] += step_x
        ys[m] += step_y
        total_x = 0.0
        total_y = 0.0
        for i in range(size):
            if i == m:
                continue
            fx, fy = _pair_force(xs[m], ys[m], xs[i], ys[i], strengths[m][i], lengths[m][i])
            sum_x[i] += energy_x[m][i] - fx
            sum_y[i] += energy_y[m][i] - fy
            energy_x[m][i] = fx
            energy_y[m][i] = fy
            energy_x[i][m] = -fx
            energy_y[i][m] = -fy
            total_x += fx
            total_y += fy
        sum_x[m] = total_x
        sum_y[m] = total_y
        return True

    iterations = 0
    max_energy = opts.kk_max_energy
    while max_energy > opts.kk_threshold and iterations < opts.kk_max_iteration:
        m, max_energy = highest()
        iterations += 1
        delta = max_energy
        inner = 0
        while delta > opts.kk_inner_threshold and inner < opts.kk_max_inner_iteration:
            if not newton_step(m):
                break
            delta = residual(m)
            inner += 1

    report = KamadaKawaiReport(iterations=iterations)
    report.residuals = {ids[idx]: residual(idx) for idx in movable}
    report.max_residual = max(report.residuals.values(), default=0.0)
    report.converged = report.max_residual <= opts.kk_threshold

    for idx, vid in enumerate(ids):
        vertex = graph.vertices[vid]
        vertex.set_position(xs[idx], ys[idx])
        vertex.positioned = True
        vertex.force_positioned = True

    logger.debug(
        "Kamada-Kawai: %d vertices, %d iterations, max residual %.4f, converged=%s",
        size,
        iterations,
        report.max_residual,
        report.converged,
    )
    return report
