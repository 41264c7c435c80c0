import pytest
from unittest.mock import Mock
from datetime import date, datetime

from drilldown.core.enums import FieldType, TimeGranularity
from drilldown.domain.fields import FieldDescriptor
from drilldown.domain.filters import DrilldownContext, Filter
from drilldown.services.time_periods import (
    bucket_label, choose_granularity, decade_label, get_date_parts, month_to_string,
    select_granularity, time_period_bounds,
)

ORDER = [TimeGranularity.day, TimeGranularity.month, TimeGranularity.year, TimeGranularity.decade]


class TestGetDateParts:
    def test_given_date_object_when_getting_parts_then_reads_fields_directly(self):
        assert get_date_parts(date(1995, 6, 15)) == (1995, 6, 15)
        assert get_date_parts(datetime(2021, 11, 30, 8, 45)) == (2021, 11, 30)

    def test_given_iso_date_string_when_getting_parts_then_splits_on_dashes(self):
        assert get_date_parts("2024-03-07") == (2024, 3, 7)

    def test_given_datetime_string_when_getting_parts_then_ignores_time_of_day(self):
        assert get_date_parts("2024-03-07 10:15:00") == (2024, 3, 7)

    def test_given_year_only_string_when_getting_parts_then_month_and_day_are_zero(self):
        """
        Given: A stored date with fewer than three dash-separated parts
        When: Getting its parts
        Then: Degrades to year precision instead of failing
        """
        assert get_date_parts("1987") == (1987, 0, 0)
        assert get_date_parts("1987-05") == (1987, 0, 0)


class TestChooseGranularity:
    @pytest.mark.parametrize("min_value,max_value,expected", [
        ("1990-01-01", "2021-11-30", TimeGranularity.decade),   # 31 years
        ("1990-01-01", "2020-12-31", TimeGranularity.year),     # exactly 30 years
        ("2020-01-01", "2023-01-01", TimeGranularity.year),     # 3 years
        ("2020-01-01", "2022-12-31", TimeGranularity.month),    # exactly 2 years
        ("2024-01-05", "2024-03-02", TimeGranularity.month),    # 2 months
        ("2024-01-05", "2024-02-28", TimeGranularity.day),      # exactly 1 month
        ("2024-01-05", "2024-01-20", TimeGranularity.day),
    ])
    def test_given_date_extent_when_choosing_then_applies_strict_thresholds(self, min_value, max_value, expected):
        assert choose_granularity(min_value, max_value) == expected

    def test_given_year_boundary_when_choosing_then_month_difference_spans_years(self):
        """
        Given: Dates in December and the following February
        When: Choosing the granularity
        Then: The two-month spread across the year boundary selects months
        """
        assert choose_granularity("2023-12-15", "2024-02-01") == TimeGranularity.month

    def test_given_fixed_minimum_when_maximum_grows_then_granularity_never_gets_finer(self):
        """
        Given: A fixed earliest date
        When: The latest date moves further out, month by month
        Then: The chosen granularity only ever gets coarser
        """
        # Given
        previous = TimeGranularity.day

        for months in range(0, 12 * 45):
            year, month = 1980 + months // 12, months % 12 + 1

            # When
            current = choose_granularity(date(1980, 1, 1), date(year, month, 1))

            # Then
            assert ORDER.index(current) >= ORDER.index(previous)
            previous = current

        assert previous == TimeGranularity.decade


class TestSelectGranularity:
    def test_given_non_date_filter_when_selecting_then_returns_none_without_querying(self):
        # Given
        repo = Mock()
        flt = Filter("Status", "Events", FieldDescriptor(FieldType.string))

        # When
        result = select_granularity(DrilldownContext(repo=repo), flt, None, [])

        # Then
        assert result is None
        repo.select_one.assert_not_called()

    def test_given_no_rows_when_selecting_then_returns_none(self, events_catalog):
        """
        Given: A date facet whose MIN query comes back NULL
        When: Selecting the granularity
        Then: Returns None instead of a bucket size
        """
        # Given
        repo = Mock()
        repo.catalog = events_catalog
        repo.select_one.return_value = Mock(min_date=None, max_date=None)
        flt = Filter("when", "Events", FieldDescriptor(FieldType.date))

        # When/Then
        assert select_granularity(DrilldownContext(repo=repo), flt, None, []) is None

    def test_given_min_and_max_dates_when_selecting_then_chooses_from_extent(self, events_catalog):
        # Given
        repo = Mock()
        repo.catalog = events_catalog
        repo.select_one.return_value = Mock(min_date="1990-01-01", max_date="2021-11-30")
        flt = Filter("when", "Events", FieldDescriptor(FieldType.datetime))

        # When
        result = select_granularity(DrilldownContext(repo=repo), flt, None, [])

        # Then
        assert result == TimeGranularity.decade
        parts = repo.select_one.call_args.args[0]
        assert parts.tables == ["Events"]


class TestBucketLabels:
    def test_given_month_numbers_when_converting_then_returns_english_names(self):
        assert month_to_string(1) == "January"
        assert month_to_string("12") == "December"
        assert month_to_string(13) == "13"

    def test_given_years_when_labelling_decades_then_uses_inclusive_ranges(self):
        assert decade_label(1994) == "1990 - 1999"
        assert decade_label(1990) == "1990 - 1999"
        assert decade_label(2029) == "2020 - 2029"

    def test_given_each_granularity_when_labelling_then_formats_bucket(self):
        assert bucket_label(TimeGranularity.day, 2024, 3, 7) == "March 7, 2024"
        assert bucket_label(TimeGranularity.month, 2024, 1) == "January 2024"
        assert bucket_label(TimeGranularity.year, 1995) == "1995"
        assert bucket_label(TimeGranularity.decade, 1995) == "1990 - 1999"


class TestTimePeriodBounds:
    @pytest.mark.parametrize("label,expected", [
        ("1990 - 1999", (TimeGranularity.decade, date(1990, 1, 1), date(2000, 1, 1))),
        ("1995", (TimeGranularity.year, date(1995, 1, 1), date(1996, 1, 1))),
        ("December 2023", (TimeGranularity.month, date(2023, 12, 1), date(2024, 1, 1))),
        ("March 7, 2024", (TimeGranularity.day, date(2024, 3, 7), date(2024, 3, 8))),
    ])
    def test_given_bucket_label_when_parsing_then_returns_half_open_bounds(self, label, expected):
        assert time_period_bounds(label) == expected

    def test_given_unknown_label_when_parsing_then_raises_value_error(self):
        with pytest.raises(ValueError):
            time_period_bounds("sometime soon")
        with pytest.raises(ValueError):
            time_period_bounds("Brumaire 1799")

    @pytest.mark.parametrize("label", [
        "99999999999999999999",
        "99999999999999999990 - 99999999999999999999",
        "March 99999999999999999999",
        "December 31, 9999",
        "9999",
    ])
    def test_given_out_of_range_label_when_parsing_then_raises_value_error(self, label):
        """
        Given: A label whose year lies outside the representable dates
        When: Parsing it into bounds
        Then: Raises ValueError rather than an overflow
        """
        with pytest.raises(ValueError):
            time_period_bounds(label)
