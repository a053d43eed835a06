"""Исключения конвейера: целостность данных, поиск, нарушение инвариантов."""
from __future__ import annotations

from typing import Iterable


class PedSelectException(Exception):
    pass


# --------------------------------------------------------------------------- #
# Целостность данных – фатально, этап прерывается
# --------------------------------------------------------------------------- #
class DataIntegrityError(PedSelectException, ValueError):
    def __init__(self, message: str, ids: Iterable = ()):
        self.ids = list(ids)
        if self.ids:
            message = f"{message}: {_preview(self.ids)}"
        super().__init__(message)


class InputDataError(DataIntegrityError):
    pass


class DuplicateIdError(DataIntegrityError):
    pass


class SexConflictError(DataIntegrityError):
    pass


class PedigreeCycleError(DataIntegrityError):
    pass


# --------------------------------------------------------------------------- #
# Ошибки поиска – перечисляются все пропущенные id
# --------------------------------------------------------------------------- #
class CohortLookupError(PedSelectException, LookupError):
    def __init__(self, ids: Iterable):
        self.ids = list(ids)
        super().__init__(
            f"{len(self.ids)} cohort id(s) not found in pedigree: {_preview(self.ids)}"
        )


class QuotaShortfallError(PedSelectException, LookupError):
    def __init__(self, shortfall: dict):
        # region → (quota, available)
        self.shortfall = dict(shortfall)
        details = ", ".join(
            f"region {r}: need {q}, have {a}" for r, (q, a) in self.shortfall.items()
        )
        super().__init__(f"Not enough eligible individuals ({details})")


# --------------------------------------------------------------------------- #
# Нарушение инвариантов – ошибка реализации, не входных данных
# --------------------------------------------------------------------------- #
class InvariantViolationError(PedSelectException, RuntimeError):
    pass


class RelatednessCheckError(InvariantViolationError):
    def __init__(self, pair: tuple, kinship: float, threshold: float):
        self.pair = pair
        self.kinship = kinship
        self.threshold = threshold
        super().__init__(
            f"Pair {pair[0]!r}–{pair[1]!r} has kinship {kinship:.6g} "
            f"> threshold {threshold:.6g} after pruning"
        )


class QuotaSumError(InvariantViolationError):
    pass


def _preview(ids: list, limit: int = 20) -> str:
    head = ", ".join(repr(i) for i in ids[:limit])
    if len(ids) > limit:
        head += f", … (+{len(ids) - limit} more)"
    return head
