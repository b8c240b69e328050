"""Code-tripwire catalog rows from the code_tripwires table."""

import logging

import mlflow
from mlflow.entities import SpanType
from sqlalchemy import or_, select

from entitle.core.types import TripwireRow
from entitle.storage import db
from entitle.storage.models import CodeTripwireRecord

logger = logging.getLogger(__name__)


def _to_row(record: CodeTripwireRecord) -> TripwireRow:
    return TripwireRow(
        check_name=str(record.check_name),
        requirement=str(record.requirement or ""),
        code_reference=str(record.code_reference or ""),
        common_issue=str(record.common_issue or ""),
        city=str(record.city) if record.city else None,
        check_logic=dict(record.check_logic or {}),
    )


@mlflow.trace(name="get_tripwires", span_type=SpanType.TOOL)
async def get_tripwires(city: str, occupancy_type: str) -> list[TripwireRow] | None:
    """One row per check name for an occupancy type.

    City-specific rows win over city-agnostic (city IS NULL) rows.
    Returns None when no store is configured.
    """
    if not db.is_configured():
        return None

    stmt = (
        select(CodeTripwireRecord)
        .distinct(CodeTripwireRecord.check_name)
        .where(CodeTripwireRecord.occupancy_type == occupancy_type)
        .where(or_(CodeTripwireRecord.city == city, CodeTripwireRecord.city.is_(None)))
        .order_by(CodeTripwireRecord.check_name, CodeTripwireRecord.city.is_(None).asc())
    )
    session = await db.get_session()
    try:
        records = (await session.execute(stmt)).scalars().all()
    finally:
        await session.close()

    logger.info("Loaded %d tripwire rows for %s", len(records), occupancy_type, extra={"city": city})
    return [_to_row(r) for r in records]
