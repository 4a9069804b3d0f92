from datetime import datetime, timezone

from bookswap.domain.chat.timefmt import (
	INVALID_DATE,
	INVALID_TIME,
	format_group_date,
	format_relative,
	format_time,
	group_label,
)

# Wednesday 2 April 2025, 10:00 UTC == 12:00 in Berlin (CEST).
NOW = datetime(2025, 4, 2, 10, 0, tzinfo=timezone.utc)


def test_format_relative_today_shows_local_time():
	assert format_relative(datetime(2025, 4, 2, 7, 5, tzinfo=timezone.utc), now=NOW) == "09:05"


def test_format_relative_yesterday():
	assert format_relative(datetime(2025, 4, 1, 12, 0, tzinfo=timezone.utc), now=NOW) == "Yesterday"


def test_format_relative_within_week_uses_weekday():
	# Saturday 29 March 2025
	assert format_relative(datetime(2025, 3, 29, 12, 0, tzinfo=timezone.utc), now=NOW) == "Sat"


def test_format_relative_older_uses_day_month():
	assert format_relative(datetime(2025, 3, 20, 12, 0, tzinfo=timezone.utc), now=NOW) == "20 Mar"


def test_format_relative_uses_berlin_day_boundary():
	# 22:30 UTC on 1 April is already 00:30 on 2 April in Berlin.
	assert format_relative(datetime(2025, 4, 1, 22, 30, tzinfo=timezone.utc), now=NOW) == "00:30"


def test_format_relative_empty_input():
	assert format_relative(None) == ""
	assert format_relative("") == ""


def test_format_time_and_group_date_accept_iso_strings():
	assert format_time("2025-03-28T14:05:00Z") == "15:05"
	assert format_group_date("2025-03-28T14:05:00Z") == "28 March 2025"


def test_group_label():
	assert group_label(datetime(2025, 4, 2, 6, 0, tzinfo=timezone.utc), now=NOW) == "Today"
	assert group_label(datetime(2025, 4, 1, 6, 0, tzinfo=timezone.utc), now=NOW) == "Yesterday"
	assert group_label(datetime(2025, 3, 28, 6, 0, tzinfo=timezone.utc), now=NOW) == "28 March 2025"
	assert group_label(None) == ""


def test_format_relative_future_date_shows_day_month():
	assert format_relative(datetime(2025, 4, 5, 12, 0, tzinfo=timezone.utc), now=NOW) == "5 Apr"


def test_malformed_strings_are_reported_not_raised():
	assert format_relative("not-a-date", now=NOW) == INVALID_DATE
	assert format_time("not-a-date") == INVALID_TIME
	assert format_group_date("not-a-date") == INVALID_DATE
	assert group_label("not-a-date", now=NOW) == INVALID_DATE
