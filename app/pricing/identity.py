"""Canonical identity for length options.

Every place that builds or looks up a length id goes through
``make_length_id``. Price-matrix rows, cart line ids and admin form state
all key on it, so two spellings of the same length ("14", "14 inches",
"14inches") must always collapse to one id.
"""
import re

LENGTH_ID_PREFIX = "length-"

_SUFFIX_RE = re.compile(r"\s*inch(?:es)?\s*$", re.IGNORECASE)


def strip_length_suffix(value):
    """Drop surrounding whitespace and a trailing inch/inches unit."""
    if value is None:
        return ""
    return _SUFFIX_RE.sub("", str(value).strip()).strip()


def make_length_id(value):
    return f"{LENGTH_ID_PREFIX}{strip_length_suffix(value)}"
