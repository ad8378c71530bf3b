"""Excepciones específicas del motor de disposición 2D."""


class LayoutError(Exception):
    """Base de los errores del motor de disposición."""


class LayoutContractError(LayoutError):
    """Se lanza cuando un colaborador viola el contrato de entrada (bug aguas arriba)."""


class LayoutNotPossible(LayoutError):
    """Se lanza cuando no se puede producir una disposición completa y finita."""
