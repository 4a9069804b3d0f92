"""Display formatting for message timestamps in Central European time."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import pytz

DISPLAY_TZ = pytz.timezone("Europe/Berlin")

INVALID_DATE = "Invalid Date"
INVALID_TIME = "Invalid Time"

DateInput = Union[datetime, str, None]


def _parse(value: DateInput) -> datetime:
	if isinstance(value, str):
		value = datetime.fromisoformat(value.replace("Z", "+00:00"))
	if value.tzinfo is None:
		value = value.replace(tzinfo=timezone.utc)
	return value.astimezone(DISPLAY_TZ)


def _local_now(now: Optional[datetime]) -> datetime:
	return (now or datetime.now(timezone.utc)).astimezone(DISPLAY_TZ)


def format_relative(value: DateInput, *, now: Optional[datetime] = None) -> str:
	"""Conversation-list timestamp: ``14:05``, ``Yesterday``, ``Mon`` or ``28 Mar``."""
	if not value:
		return ""
	try:
		local = _parse(value)
	except (TypeError, ValueError):
		return INVALID_DATE
	days = (_local_now(now).date() - local.date()).days
	if days == 0:
		return local.strftime("%H:%M")
	if days == 1:
		return "Yesterday"
	if 1 < days < 7:
		return local.strftime("%a")
	# Older than a week, or in the future.
	return f"{local.day} {local.strftime('%b')}"


def format_time(value: DateInput) -> str:
	if not value:
		return ""
	try:
		return _parse(value).strftime("%H:%M")
	except (TypeError, ValueError):
		return INVALID_TIME


def format_group_date(value: DateInput) -> str:
	"""Full date used to bucket messages, e.g. ``28 March 2025``."""
	if not value:
		return ""
	try:
		local = _parse(value)
	except (TypeError, ValueError):
		return INVALID_DATE
	return f"{local.day} {local.strftime('%B %Y')}"


def group_label(value: DateInput, *, now: Optional[datetime] = None) -> str:
	"""Header shown above a day's messages: ``Today``, ``Yesterday`` or the full date."""
	label = format_group_date(value)
	if not label or label == INVALID_DATE:
		return label
	today = _local_now(now)
	if label == format_group_date(today):
		return "Today"
	if label == format_group_date(today - timedelta(days=1)):
		return "Yesterday"
	return label
