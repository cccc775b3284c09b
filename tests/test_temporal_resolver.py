"""
Tests for the temporal resolver - point-in-time provision lookup.
"""

from datetime import date, datetime

import pytest

from lagrum.core.exceptions import ValidationError
from lagrum.models.legal import ProvisionVersion, ResolutionStatus
from lagrum.services.temporal_resolver import TemporalResolver, coerce_as_of_date, select_version

pytestmark = pytest.mark.unit


def _v(seq, valid_from, valid_to, content="text"):
    return ProvisionVersion(
        document_id="2018:218",
        provision_ref="3:5",
        chapter="3",
        section="5",
        content=content,
        valid_from=valid_from,
        valid_to=valid_to,
        id=seq,
    )


class TestSelectVersion:
    def test_picks_covering_version(self):
        versions = [_v(1, date(2018, 5, 25), date(2021, 1, 1), "a"), _v(2, date(2021, 1, 1), None, "b")]
        assert select_version(versions, date(2019, 6, 1)).content == "a"
        assert select_version(versions, date(2022, 1, 1)).content == "b"

    def test_valid_to_is_exclusive(self):
        versions = [_v(1, date(2018, 5, 25), date(2021, 1, 1), "a"), _v(2, date(2021, 1, 1), None, "b")]
        assert select_version(versions, date(2021, 1, 1)).content == "b"
        assert select_version(versions, date(2020, 12, 31)).content == "a"

    def test_nothing_covers(self):
        versions = [_v(1, date(2018, 5, 25), None)]
        assert select_version(versions, date(2017, 1, 1)) is None
        assert select_version([], date(2017, 1, 1)) is None

    def test_null_valid_from_means_since_inception(self):
        assert select_version([_v(1, None, None, "a")], date(1900, 1, 1)).content == "a"

    def test_null_valid_from_ranks_lowest(self):
        versions = [_v(5, None, None, "inception"), _v(2, date(2020, 1, 1), None, "dated")]
        assert select_version(versions, date(2021, 1, 1)).content == "dated"

    def test_tie_goes_to_highest_id(self):
        versions = [_v(3, date(2020, 1, 1), None, "late"), _v(1, date(2020, 1, 1), None, "early")]
        assert select_version(versions, date(2021, 1, 1)).content == "late"


class TestCoerceAsOfDate:
    def test_none(self):
        assert coerce_as_of_date(None) is None

    def test_date_and_datetime(self):
        assert coerce_as_of_date(date(2019, 6, 1)) == date(2019, 6, 1)
        assert coerce_as_of_date(datetime(2019, 6, 1, 12, 30)) == date(2019, 6, 1)

    def test_iso_string(self):
        assert coerce_as_of_date(" 2019-06-01 ") == date(2019, 6, 1)

    @pytest.mark.parametrize("value", ["01/06/2019", "2019-6-1", "2019-02-30", "igår", 20190601])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            coerce_as_of_date(value)


class TestTemporalResolver:
    def test_historical_wording(self, memory_store):
        result = TemporalResolver(memory_store).resolve("2018:218", "3:5", "2019-06-01")
        assert result.status is ResolutionStatus.HISTORICAL
        assert result.content == "Lydelse 2018"
        assert result.valid_from == date(2018, 5, 25)
        assert result.valid_to == date(2021, 1, 1)
        assert result.found is True

    def test_current_wording(self, memory_store):
        result = TemporalResolver(memory_store).resolve("2018:218", "3:5", date(2022, 1, 1))
        assert result.status is ResolutionStatus.CURRENT
        assert result.content == "Lydelse 2021"
        assert result.valid_to is None
        assert result.version_id == 2

    def test_date_before_history(self, memory_store):
        result = TemporalResolver(memory_store).resolve("2018:218", "3:5", "2017-01-01")
        assert result.status is ResolutionStatus.NOT_FOUND
        assert result.earliest_valid_from == date(2018, 5, 25)
        assert result.content is None
        assert result.found is False

    def test_never_existed(self, memory_store):
        result = TemporalResolver(memory_store).resolve("2018:218", "9:9", "2019-06-01")
        assert result.status is ResolutionStatus.NEVER_EXISTED

    def test_without_date_uses_current_table(self, memory_store):
        result = TemporalResolver(memory_store).resolve("2018:218", "1:1")
        assert result.status is ResolutionStatus.CURRENT
        assert result.title == "Lagens syfte"
        assert result.as_of_date is None

    def test_without_date_unknown_provision(self, memory_store):
        result = TemporalResolver(memory_store).resolve("2018:218", "9:9")
        assert result.status is ResolutionStatus.NEVER_EXISTED

    def test_without_date_removed_provision_with_history(self, memory_store):
        memory_store.add_provision_version(
            ProvisionVersion(
                document_id="2018:218",
                provision_ref="2:1",
                chapter="2",
                section="1",
                content="Upphävd lydelse",
                valid_from=date(2018, 5, 25),
                valid_to=date(2020, 1, 1),
            )
        )
        result = TemporalResolver(memory_store).resolve("2018:218", "2:1")
        assert result.status is ResolutionStatus.NOT_FOUND

    @pytest.mark.parametrize("ref", ["3:5 a", "3:5a", "3:5 A", " 3:5  a "])
    def test_letter_section_spellings_resolve(self, memory_store, ref):
        memory_store.add_provision_version(
            ProvisionVersion(
                document_id="2018:218",
                provision_ref="3:5 a",
                chapter="3",
                section="5 a",
                content="Infogad paragraf",
                valid_from=date(2018, 5, 25),
            )
        )
        resolver = TemporalResolver(memory_store)

        dated = resolver.resolve("2018:218", ref, "2019-01-01")
        assert dated.status is ResolutionStatus.CURRENT
        assert dated.provision_ref == "3:5 a"
        assert dated.content == "Infogad paragraf"

        assert resolver.resolve("2018:218", ref).status is ResolutionStatus.CURRENT
        assert [v.content for v in resolver.all_versions("2018:218", ref)] == ["Infogad paragraf"]

    def test_date_after_closed_history(self, memory_store):
        memory_store.add_provision_version(
            ProvisionVersion(
                document_id="2018:218",
                provision_ref="2:1",
                chapter="2",
                section="1",
                content="Upphävd lydelse",
                valid_from=date(2018, 5, 25),
                valid_to=date(2020, 1, 1),
            )
        )
        result = TemporalResolver(memory_store).resolve("2018:218", "2:1", "2021-01-01")
        assert result.status is ResolutionStatus.NOT_FOUND
        assert result.earliest_valid_from is None

    def test_required_arguments(self, memory_store):
        resolver = TemporalResolver(memory_store)
        with pytest.raises(ValidationError):
            resolver.resolve("", "3:5")
        with pytest.raises(ValidationError):
            resolver.resolve("2018:218", "")
        with pytest.raises(ValidationError):
            resolver.resolve("2018:218", "3:5", "första maj")

    def test_store_required(self):
        with pytest.raises(ValidationError):
            TemporalResolver(None)

    def test_all_versions_oldest_first(self, memory_store):
        versions = TemporalResolver(memory_store).all_versions("2018:218", "3:5")
        assert [v.content for v in versions] == ["Lydelse 2018", "Lydelse 2021"]

    def test_diff(self, memory_store):
        resolver = TemporalResolver(memory_store)
        assert resolver.diff("2018:218", "3:5", "2019-06-01", "2022-01-01").changed is True
        assert resolver.diff("2018:218", "3:5", "2022-01-01", "2023-01-01").changed is False

    def test_diff_requires_both_dates(self, memory_store):
        with pytest.raises(ValidationError):
            TemporalResolver(memory_store).diff("2018:218", "3:5", "2019-06-01", None)


@pytest.mark.integration
class TestTemporalResolverSQLite:
    def test_scenario(self, seeded_sqlite_store):
        resolver = TemporalResolver(seeded_sqlite_store)
        assert resolver.resolve("2018:218", "3:5", "2019-06-01").content == "Lydelse 2018"
        assert resolver.resolve("2018:218", "3:5", "2022-01-01").status is ResolutionStatus.CURRENT
        assert resolver.resolve("2018:218", "3:5", "2017-01-01").status is ResolutionStatus.NOT_FOUND
