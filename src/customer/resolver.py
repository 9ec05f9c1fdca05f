from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import ColumnElement, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.customer.models import Customer
from src.ingest.extraction import ExtractedFields

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchFilter:
    field: str
    value: str

    def criterion(self) -> ColumnElement[bool]:
        return getattr(Customer, self.field) == self.value


@dataclass(frozen=True)
class CustomerRef:
    """Outcome of resolution. ``customer is None`` means a new row must be created."""

    customer: Customer | None
    matched_on: MatchFilter | None = None

    @property
    def is_new(self) -> bool:
        return self.customer is None


def match_filters(fields: ExtractedFields) -> list[MatchFilter]:
    """
    Identity filters in trust order: upstream id, then email, then phone.

    The upstream primary key is trusted over contact details, which are
    trusted over nothing.
    """
    filters: list[MatchFilter] = []
    if fields.external_id:
        filters.append(MatchFilter("external_id", fields.external_id))
    if fields.email:
        filters.append(MatchFilter("email", fields.email))
    if fields.phone:
        filters.append(MatchFilter("phone", fields.phone))
    return filters


async def resolve_customer(
    session: AsyncSession, shop_id: UUID, fields: ExtractedFields
) -> CustomerRef:
    """
    Find the customer an event refers to.

    Filters are tried one at a time in priority order and the first hit wins,
    even if a lower-priority filter would match a different customer. That
    ambiguity is not detected or reported.
    """
    for match in match_filters(fields):
        stmt = (
            select(Customer)
            .where(Customer.shop_id == shop_id, match.criterion())
            .order_by(Customer.created_at)
            .limit(1)
        )
        customer = (await session.execute(stmt)).scalar_one_or_none()
        if customer is not None:
            logger.info("Resolved customer %s by %s", customer.id, match.field)
            return CustomerRef(customer=customer, matched_on=match)

    return CustomerRef(customer=None)
