"""Side tables written alongside artifacts: geocoded addresses and risk items.

Both writes are no-ops without a configured database.
"""

import logging
import uuid

from sqlalchemy.dialects.postgresql import insert

from entitle.core.types import RiskItem
from entitle.storage import db
from entitle.storage.models import AddressRecord, RiskItemRecord

logger = logging.getLogger(__name__)


async def insert_address_if_configured(
    input_address: str,
    normalized_address: str,
    lat: float,
    lng: float,
    city: str,
) -> str | None:
    """Record a geocoded address; returns its id, or None without a database."""
    if not db.is_configured():
        return None

    record = AddressRecord(
        id=uuid.uuid4(),
        input_address=input_address,
        normalized_address=normalized_address,
        lat=lat,
        lng=lng,
        city=city,
    )
    session = await db.get_session()
    try:
        session.add(record)
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()
    return str(record.id)


async def persist_risk_items_if_configured(artifact_id: str, items: list[RiskItem]) -> int:
    """Denormalize a register's items into risk_items. Returns rows written."""
    if not items or not db.is_configured():
        return 0

    values = [
        {
            "artifact_id": uuid.UUID(artifact_id),
            "risk_id": item.risk_id,
            "description": item.description,
            "source": item.source,
            "status": item.status,
            "consequence": item.consequence,
        }
        for item in items
    ]
    stmt = insert(RiskItemRecord).values(values).on_conflict_do_nothing(
        index_elements=["artifact_id", "risk_id"],
    )
    session = await db.get_session()
    try:
        await session.execute(stmt)
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()

    logger.info("Persisted %d risk items", len(values), extra={"artifact_id": artifact_id})
    return len(values)
