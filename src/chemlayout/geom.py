"""
Utilidades geométricas para el motor de disposición.

Funciones puras sobre `QPointF` en coordenadas matemáticas (Y hacia arriba):
rotaciones, normales, polígonos regulares y huecos angulares.
"""
from __future__ import annotations

import math
from typing import Iterable, Tuple

from PyQt6.QtCore import QPointF


def poly_circumradius(side: float, n: int) -> float:
    """Radio circunscrito de un polígono regular de `n` lados de longitud `side`."""
    return side / (2.0 * math.sin(math.pi / n))


def apothem(radius: float, n: int) -> float:
    """Apotema de un polígono regular dado su radio circunscrito."""
    return radius * math.cos(math.pi / n)


def central_angle(n: int) -> float:
    return math.radians(360.0 / n)


def distance(a: QPointF, b: QPointF) -> float:
    return math.hypot(a.x() - b.x(), a.y() - b.y())


def distance_sq(a: QPointF, b: QPointF) -> float:
    dx = a.x() - b.x()
    dy = a.y() - b.y()
    return dx * dx + dy * dy


def length(p: QPointF) -> float:
    return math.hypot(p.x(), p.y())


def normalized(p: QPointF) -> QPointF:
    """Vector unitario; el vector nulo se devuelve sin cambios."""
    norm = length(p)
    if norm == 0:
        return QPointF(p)
    return QPointF(p.x() / norm, p.y() / norm)


def vector_angle(p: QPointF) -> float:
    """Ángulo (radianes) del vector respecto al eje X."""
    return math.atan2(p.y(), p.x())


def rotated(p: QPointF, angle: float) -> QPointF:
    c = math.cos(angle)
    s = math.sin(angle)
    return QPointF(p.x() * c - p.y() * s, p.x() * s + p.y() * c)


def rotated_around(p: QPointF, angle: float, center: QPointF) -> QPointF:
    """Rota `p` un ángulo (radianes) alrededor de `center`."""
    return rotated(p - center, angle) + center


def endpoint_from_angle_len(p0: QPointF, theta: float, bond_length: float) -> QPointF:
    """Calcula el punto final desde un origen, ángulo (radianes) y longitud."""
    return QPointF(p0.x() + math.cos(theta) * bond_length, p0.y() + math.sin(theta) * bond_length)


def midpoint(a: QPointF, b: QPointF) -> QPointF:
    return QPointF((a.x() + b.x()) / 2.0, (a.y() + b.y()) / 2.0)


def centroid(points: Iterable[QPointF]) -> QPointF:
    """Centro geométrico; una lista vacía devuelve el origen."""
    sx = 0.0
    sy = 0.0
    count = 0
    for p in points:
        sx += p.x()
        sy += p.y()
        count += 1
    if count == 0:
        return QPointF(0.0, 0.0)
    return QPointF(sx / count, sy / count)


def normals(a: QPointF, b: QPointF) -> Tuple[QPointF, QPointF]:
    """Las dos normales (sin normalizar) del segmento AB."""
    dx = b.x() - a.x()
    dy = b.y() - a.y()
    return QPointF(-dy, dx), QPointF(dy, -dx)


def clockwise(a: QPointF, b: QPointF) -> int:
    """-1 si `b` está en sentido horario respecto a `a`, 0 si colineales, 1 si no."""
    lhs = a.y() * b.x()
    rhs = a.x() * b.y()
    if lhs > rhs:
        return -1
    if lhs == rhs:
        return 0
    return 1


def which_side(p: QPointF, a: QPointF, b: QPointF) -> float:
    """Producto cruzado que indica a qué lado de la recta AB cae `p`."""
    return (p.x() - a.x()) * (b.y() - a.y()) - (p.y() - a.y()) * (b.x() - a.x())


def same_side_as(p: QPointF, a: QPointF, b: QPointF, reference: QPointF) -> bool:
    """Indica si `p` y `reference` quedan del mismo lado de la recta AB."""
    d = which_side(p, a, b)
    d_ref = which_side(reference, a, b)
    return (d < 0 and d_ref < 0) or (d == 0 and d_ref == 0) or (d > 0 and d_ref > 0)


def mirrored_about_line(p: QPointF, a: QPointF, b: QPointF) -> QPointF:
    """Reflejo de `p` sobre la recta que pasa por `a` y `b`."""
    dx = b.x() - a.x()
    dy = b.y() - a.y()
    den = dx * dx + dy * dy
    if den == 0:
        return QPointF(p)
    t = ((p.x() - a.x()) * dx + (p.y() - a.y()) * dy) / den
    foot_x = a.x() + t * dx
    foot_y = a.y() + t * dy
    return QPointF(2.0 * foot_x - p.x(), 2.0 * foot_y - p.y())


def rotate_away_from_angle(p: QPointF, away: QPointF, center: QPointF, angle: float) -> float:
    """Devuelve `angle` o `-angle`: el sentido de giro que aleja `p` de `away`."""
    dist_a = distance_sq(rotated_around(p, angle, center), away)
    dist_b = distance_sq(rotated_around(p, -angle, center), away)
    if dist_b < dist_a:
        return angle
    return -angle


def rotate_away_from(p: QPointF, away: QPointF, center: QPointF, angle: float) -> QPointF:
    """Gira `p` alrededor de `center` en el sentido que más lo aleja de `away`."""
    candidate_a = rotated_around(p, angle, center)
    candidate_b = rotated_around(p, -angle, center)
    if distance_sq(candidate_b, away) < distance_sq(candidate_a, away):
        return candidate_a
    return candidate_b


def normalize_angle_deg(theta_deg: float) -> float:
    """Normaliza un ángulo al rango [0, 360)."""
    return theta_deg % 360.0


def angle_deg(p0: QPointF, p1: QPointF) -> float:
    """Ángulo en grados (0-360) del vector p0->p1."""
    dx = p1.x() - p0.x()
    dy = p1.y() - p0.y()
    if dx == 0 and dy == 0:
        return 0.0
    return normalize_angle_deg(math.degrees(math.atan2(dy, dx)))


def choose_optimal_direction(angles_deg: Iterable[float]) -> float:
    """Devuelve el punto medio del mayor hueco angular."""
    angles = sorted(a % 360.0 for a in angles_deg)
    if not angles:
        return 0.0
    if len(angles) == 1:
        return (angles[0] + 180.0) % 360.0

    best_gap = -1.0
    best_angle = 0.0
    for i in range(len(angles)):
        a1 = angles[i]
        a2 = angles[(i + 1) % len(angles)]
        gap = (a2 - a1) % 360.0
        if gap > best_gap:
            best_gap = gap
            best_angle = (a1 + gap / 2.0) % 360.0
    return best_angle


def is_finite_point(p: QPointF) -> bool:
    return math.isfinite(p.x()) and math.isfinite(p.y())
