"""
Record Filter Tests
"""

import re
import pytest

from bgpsimple.config import StartupConfigError
from bgpsimple.filters import FilterKey, FilterSet
from bgpsimple.records import RouteRecord


LINE = "TABLE_DUMP2|1367366400|B|96.4.0.55|11686|1.0.0.0/24|11686 4436 15169|IGP|96.4.0.55|0|0|11686:12 11686:80|NAG||"


class TestFilterKey:

    def test_closed_set(self):
        assert [key.name for key in FilterKey] == [
            "NEIG", "NLRI", "ASPT", "ORIG", "NXHP", "LOCP", "MED", "COMM", "ATOM", "AGG",
        ]

    def test_every_key_reads_a_record_field(self):
        record = RouteRecord.parse(LINE)
        for key in FilterKey:
            assert isinstance(getattr(record, key.value), str)

    def test_parse_case_insensitive(self):
        assert FilterKey.parse("nlri") is FilterKey.NLRI
        assert FilterKey.parse("Aspt") is FilterKey.ASPT

    def test_parse_unknown(self):
        with pytest.raises(StartupConfigError, match="Unknown filter key"):
            FilterKey.parse("PREFIX")


class TestFilterSetConstruction:

    def test_from_entries(self):
        filters = FilterSet.from_entries(["nlri=^10\\.", "COMM=3356:"])

        assert set(filters.patterns) == {FilterKey.NLRI, FilterKey.COMM}
        assert filters.patterns[FilterKey.NLRI].pattern == "^10\\."

    def test_pattern_may_contain_equals(self):
        filters = FilterSet.from_entries(["ASPT=a=b"])
        assert filters.patterns[FilterKey.ASPT].pattern == "a=b"

    def test_empty(self):
        filters = FilterSet.from_entries([])
        assert not filters
        assert filters.describe() == ""

    def test_unknown_key(self):
        with pytest.raises(StartupConfigError):
            FilterSet.from_entries(["NLRI=^10", "FOO=bar"])

    def test_missing_separator(self):
        with pytest.raises(StartupConfigError, match="KEY=REGEX"):
            FilterSet.from_entries(["NLRI"])

    def test_invalid_pattern(self):
        with pytest.raises(StartupConfigError, match="Invalid regular expression") as exc:
            FilterSet.from_entries(["ASPT=(3356"])
        assert isinstance(exc.value.__cause__, re.error)

    def test_describe(self):
        filters = FilterSet.from_entries(["NLRI=^10", "ORIG=IGP"])
        assert filters.describe() == "NLRI=^10, ORIG=IGP"


class TestFilterSetMatching:

    def test_unbound_key_matches(self):
        filters = FilterSet()
        assert filters.matches(FilterKey.NEIG, "anything")
        assert filters.matches(FilterKey.MED, "")

    def test_search_is_unanchored(self):
        filters = FilterSet.from_entries(["ASPT=4436"])
        assert filters.matches(FilterKey.ASPT, "11686 4436 15169")
        assert not filters.matches(FilterKey.ASPT, "11686 15169")

    def test_anchored_pattern(self):
        filters = FilterSet.from_entries(["NLRI=^1\\.0\\."])
        assert filters.matches(FilterKey.NLRI, "1.0.0.0/24")
        assert not filters.matches(FilterKey.NLRI, "11.0.0.0/24")

    def test_record_matches(self):
        record = RouteRecord.parse(LINE)
        filters = FilterSet.from_entries(["NEIG=^96\\.4\\.", "ATOM=^NAG$", "ORIG=EGP"])

        assert filters.record_matches(FilterKey.NEIG, record)
        assert filters.record_matches(FilterKey.ATOM, record)
        assert not filters.record_matches(FilterKey.ORIG, record)
        assert filters.record_matches(FilterKey.COMM, record)
