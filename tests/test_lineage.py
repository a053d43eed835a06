import pandas as pd
import pytest

from pedselect.errors import CohortLookupError
from pedselect.lineage import ancestor_count, expected_ancestors, full_depth_filter
from pedselect.pedigree import Pedigree, repair_pedigree
from .fixtures import grandparents


def _pedigree(records):
    ped, _ = repair_pedigree(records)
    return Pedigree.from_frame(ped)


def test_all_grandparents_recorded():
    pedigree = _pedigree(grandparents)
    assert ancestor_count(pedigree, 7, 2) == 6
    assert ancestor_count(pedigree, 7, 1) == 2
    assert ancestor_count(pedigree, 1, 2) == 0
    assert expected_ancestors(2) == 6


def test_missing_grandparent():
    records = grandparents[grandparents["id"] != 1].copy()
    records["father_id"] = records["father_id"].where(records["father_id"] != 1, None)
    pedigree = _pedigree(records)
    # фиктивный дед не считается
    assert ancestor_count(pedigree, 7, 2) == 5
    assert ancestor_count(pedigree, 7, 2, include_placeholders=True) == 6


def test_converging_lineages_counted_once():
    # родители 7 – полусибсы от общего отца 1
    records = grandparents.copy()
    records.loc[records["id"] == 6, "father_id"] = 1
    records = records[records["id"] != 3]
    pedigree = _pedigree(records)
    assert ancestor_count(pedigree, 7, 2) == 5


def test_generations_beyond_recorded_depth():
    pedigree = _pedigree(grandparents)
    assert ancestor_count(pedigree, 7, 10) == 6


def test_full_depth_filter():
    records = pd.concat(
        [grandparents,
         pd.DataFrame([{"id": 8, "father_id": 5, "mother_id": 2, "sex": 2}])],
        ignore_index=True,
    )
    pedigree = _pedigree(records)
    assert full_depth_filter(pedigree, [7, 8, 5, 99], generations=2) == [7]
    assert full_depth_filter(pedigree, [7, 8, 5], generations=1) == [7, 8, 5]


def test_unknown_id():
    with pytest.raises(CohortLookupError):
        ancestor_count(_pedigree(grandparents), 42, 2)
