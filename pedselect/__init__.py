"""
Отбор неродственных пробандов из родословной для полногеномного секвенирования.

Этапы: ремонт родословной → матрица родства → прунинг → стратифицированная выборка.
"""
from .errors import PedSelectException
from .kinship import compute_kinship
from .model import select_candidates
from .pedigree import Pedigree, repair_pedigree

__all__ = [
    "PedSelectException",
    "Pedigree",
    "compute_kinship",
    "repair_pedigree",
    "select_candidates",
]
