"""In-process change feed for table row events.

Repositories publish INSERT/UPDATE events after a successful write; sessions
subscribe with equality filters on row columns. Delivery happens on the
publishing task, in subscription order.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from bookswap.obs import metrics as obs_metrics

LOGGER = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], Awaitable[None]]

INSERT = "INSERT"
UPDATE = "UPDATE"


@dataclass(slots=True, eq=False)
class Subscription:
	table: str
	event: str
	filters: Dict[str, str]
	handler: Handler
	_hub: Optional["RealtimeHub"] = field(default=None, repr=False)
	closed: bool = False

	def matches(self, table: str, event: str, row: Mapping[str, Any]) -> bool:
		if self.closed or table != self.table:
			return False
		if self.event != "*" and event != self.event:
			return False
		for column, expected in self.filters.items():
			if str(row.get(column)) != expected:
				return False
		return True

	def close(self) -> None:
		if self.closed:
			return
		self.closed = True
		if self._hub is not None:
			self._hub._discard(self)
			self._hub = None


class RealtimeHub:
	"""Fan row events out to matching subscriptions."""

	def __init__(self) -> None:
		self._subscriptions: list[Subscription] = []

	def subscribe(
		self,
		table: str,
		event: str,
		handler: Handler,
		*,
		filters: Optional[Mapping[str, Any]] = None,
	) -> Subscription:
		sub = Subscription(
			table=table,
			event=event,
			filters={key: str(value) for key, value in (filters or {}).items()},
			handler=handler,
			_hub=self,
		)
		self._subscriptions.append(sub)
		obs_metrics.realtime_subscribed(table)
		return sub

	def _discard(self, sub: Subscription) -> None:
		try:
			self._subscriptions.remove(sub)
		except ValueError:
			return
		obs_metrics.realtime_unsubscribed(sub.table)

	@property
	def subscription_count(self) -> int:
		return len(self._subscriptions)

	async def publish(self, table: str, event: str, row: Mapping[str, Any]) -> int:
		"""Deliver a row event; returns the number of handlers invoked."""
		delivered = 0
		payload = dict(row)
		for sub in list(self._subscriptions):
			# A handler earlier in this loop may have closed later subscriptions.
			if not sub.matches(table, event, payload):
				continue
			delivered += 1
			try:
				await sub.handler(payload)
			except asyncio.CancelledError:
				raise
			except Exception:
				LOGGER.exception(
					"realtime handler failed",
					extra={"table": table, "event": event},
				)
		if delivered:
			obs_metrics.realtime_delivered(table, event)
		return delivered

	def close(self) -> None:
		for sub in list(self._subscriptions):
			sub.close()


__all__ = ["INSERT", "UPDATE", "RealtimeHub", "Subscription"]
