"""Tests for multi-strategy point resolution."""

import pytest

from route_network.network.models import MatchStrategy
from route_network.network.point_index import PointIndex, base_name, normalize_code, spelling_variant

from conftest import make_point


@pytest.fixture
def index():
    return PointIndex([
        make_point("Ramapur", 78.1, 17.4, "1001"),
        make_point("Rampur Khas", 78.2, 17.5, "1002"),
        make_point("Kothur (GP)", 78.3, 17.6, "1003"),
        make_point("Nandi-Gama", 78.4, 17.7, "1004"),
        make_point("Shadnagar BHQ", 78.5, 17.8, "1005"),
    ])


def test_helpers():
    assert base_name("Kothur (GP) (new)") == "Kothur"
    assert base_name("(GP)") == "(GP)"
    assert spelling_variant(" nandi_gama ") == "NANDI GAMA"
    assert normalize_code(1001.0) == "1001"
    assert normalize_code("1001.0") == "1001"
    assert normalize_code("NULL") == ""
    assert normalize_code(None) == ""


def test_code_match(index):
    result = index.resolve("Totally Different", "1003")
    assert result.strategy == MatchStrategy.CODE
    assert result.point.name == "Kothur (GP)"
    assert result.confidence == 1.0


def test_code_beats_substring(index):
    """A name that would substring-match one point loses to a code match on another."""
    result = index.resolve("Rama", "1002")
    assert result.strategy == MatchStrategy.CODE
    assert result.point.name == "Rampur Khas"

    without_code = index.resolve("Rama")
    assert without_code.strategy == MatchStrategy.SUBSTRING
    assert without_code.point.name == "Ramapur"


def test_null_code_is_ignored(index):
    result = index.resolve("Ramapur", "NULL")
    assert result.strategy == MatchStrategy.EXACT_NAME


def test_exact_then_upper(index):
    assert index.resolve("Ramapur").strategy == MatchStrategy.EXACT_NAME
    upper = index.resolve("RAMAPUR")
    assert upper.strategy == MatchStrategy.UPPER_NAME
    assert upper.point.name == "Ramapur"


def test_base_name(index):
    result = index.resolve("kothur (Gram Panchayat)")
    assert result.strategy == MatchStrategy.BASE_NAME
    assert result.point.name == "Kothur (GP)"


def test_spelling_variant(index):
    result = index.resolve("Nandi Gama")
    assert result.strategy == MatchStrategy.VARIANT
    assert result.point.name == "Nandi-Gama"


def test_substring_last_resort(index):
    result = index.resolve("Shadnagar")
    assert result.strategy == MatchStrategy.SUBSTRING
    assert result.point.name == "Shadnagar BHQ"


def test_unresolved_is_recorded(index):
    result = index.resolve("Nowhere")
    assert result.point is None
    assert not result.resolved
    assert result.strategy == MatchStrategy.UNRESOLVED
    assert result.reference == "Nowhere"
    assert result.name == "Nowhere"


def test_empty_reference(index):
    assert index.resolve("", None).strategy == MatchStrategy.UNRESOLVED
    assert index.resolve("NULL", "").strategy == MatchStrategy.UNRESOLVED


def test_resolution_is_idempotent(index):
    first = index.resolve("Nandi Gama")
    second = index.resolve("Nandi Gama")
    assert first.point is second.point
    assert first.strategy == second.strategy


def test_first_point_wins_on_collision():
    index = PointIndex([make_point("Alpha", 1.0, 1.0), make_point("ALPHA", 2.0, 2.0)])
    assert index.resolve("alpha").point.coordinates.lng == 1.0
    assert len(index) == 2
