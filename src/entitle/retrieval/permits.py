"""Historical permit-duration rows from the permit_stats table."""

import logging

import mlflow
from mlflow.entities import SpanType
from sqlalchemy import or_, select

from entitle.core.types import PermitStatRow
from entitle.retrieval.zoning import iso_date
from entitle.storage import db
from entitle.storage.models import PermitStatRecord

logger = logging.getLogger(__name__)

# Rows ingested without a project type carry this sentinel
UNKNOWN_PROJECT_TYPE = "unknown"


def _to_row(record: PermitStatRecord) -> PermitStatRow:
    return PermitStatRow(
        permit_type=str(record.permit_type),
        p50_days=float(record.p50_days),
        p90_days=float(record.p90_days),
        sample_size=int(record.sample_size or 0),
        common_delays=list(record.common_delays or []),
        last_calculated=iso_date(record.last_calculated),
    )


@mlflow.trace(name="get_permit_stats", span_type=SpanType.TOOL)
async def get_permit_stats(city: str, project_type: str) -> list[PermitStatRow] | None:
    """Permit rows for a project type, falling back to every row for the city.

    Primary: rows for (city, project_type) or the 'unknown' sentinel, with
    exact project-type matches first, then larger samples, then permit type.
    Fallback when the primary query is empty: all city rows by sample size.

    Returns None when no store is configured.
    """
    if not db.is_configured():
        return None

    primary = (
        select(PermitStatRecord)
        .where(PermitStatRecord.city == city)
        .where(or_(
            PermitStatRecord.project_type == project_type,
            PermitStatRecord.project_type == UNKNOWN_PROJECT_TYPE,
        ))
        .order_by(
            (PermitStatRecord.project_type == project_type).desc(),
            PermitStatRecord.sample_size.desc(),
            PermitStatRecord.permit_type.asc(),
        )
    )
    fallback = (
        select(PermitStatRecord)
        .where(PermitStatRecord.city == city)
        .order_by(PermitStatRecord.sample_size.desc(), PermitStatRecord.permit_type.asc())
    )

    session = await db.get_session()
    try:
        records = (await session.execute(primary)).scalars().all()
        if not records:
            logger.info(
                "No permit stats for project type %s — using all city rows", project_type,
                extra={"city": city},
            )
            records = (await session.execute(fallback)).scalars().all()
    finally:
        await session.close()

    return [_to_row(r) for r in records]
