"""Tests for loading the versioned tax tables."""

import copy
import json
import math

import pytest

from withdrawal_planner.calculators import taxes
from withdrawal_planner.models import FilingStatus


def test_bundled_year_contents():
    tables = taxes.tax_year(2026)
    assert tables.standard_deduction(FilingStatus.SINGLE) == 16100
    assert tables.standard_deduction(FilingStatus.JOINT) == 32200
    assert tables.preferential_rate == 0.15
    assert math.isclose(tables.state_rate, 0.0455)
    assert math.isinf(tables.brackets(FilingStatus.JOINT)[-1].upper)
    assert tables.irmaa(FilingStatus.JOINT)[1].lower == 218000


def test_defaults_are_2026_utah():
    tables = taxes.tax_year()
    assert tables.year == taxes.DEFAULT_TAX_YEAR == 2026
    assert tables.state == "UT"


def test_legacy_married_alias():
    tables = taxes.tax_year(2026)
    assert tables.standard_deduction("married") == 32200


def test_unknown_year_raises():
    with pytest.raises(KeyError):
        taxes.build_tax_year(taxes.load_tax_tables(), 1999)


def test_unknown_state_has_no_state_tax():
    tables = taxes.build_tax_year(taxes.load_tax_tables(), 2026, state="TX")
    assert tables.state_rate == 0.0


def test_custom_table_file(tmp_path):
    """A second year can sit next to the first without code changes."""
    raw = taxes.load_tax_tables()
    raw["2027"] = copy.deepcopy(raw["2026"])
    raw["2027"]["preferential_rate"] = 0.20
    path = tmp_path / "tables.json"
    path.write_text(json.dumps(raw), encoding="utf-8")

    loaded = taxes.load_tax_tables(path)
    assert taxes.available_years(loaded) == (2026, 2027)
    assert taxes.build_tax_year(loaded, 2027).preferential_rate == 0.20


def test_gapped_table_is_rejected():
    raw = copy.deepcopy(taxes.load_tax_tables())
    raw["2026"]["federal"]["single"]["brackets"][1]["start"] = 13000
    with pytest.raises(ValueError):
        taxes.build_tax_year(raw, 2026)
