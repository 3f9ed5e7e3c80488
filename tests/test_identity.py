"""Tests for length option identity."""
import pytest
from app.pricing.identity import make_length_id, strip_length_suffix


@pytest.mark.parametrize(
    "value", ["14", "14 inches", "14inches", " 14 Inches ", "14 inch", "14INCH"]
)
def test_surface_formats_collapse_to_one_id(value):
    assert make_length_id(value) == "length-14"


def test_distinct_lengths_get_distinct_ids():
    assert make_length_id("14") != make_length_id("16")


def test_strip_suffix_is_total():
    assert strip_length_suffix(None) == ""
    assert strip_length_suffix("") == ""
    assert make_length_id("") == "length-"


def test_suffix_only_stripped_at_end():
    assert strip_length_suffix("inches 14") == "inches 14"
