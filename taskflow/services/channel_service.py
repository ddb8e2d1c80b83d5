"""Channel service - persisted WhatsApp connection rows (one per owner)."""

from uuid import UUID

from sqlalchemy.orm import Session

from taskflow.db.models import ChannelConnection

_UNSET = object()


def get_connection(db: Session, owner_id: UUID) -> ChannelConnection | None:
    return db.query(ChannelConnection).filter(
        ChannelConnection.owner_id == owner_id
    ).first()


def save_connection(
    db: Session,
    owner_id: UUID,
    *,
    is_connected=_UNSET,
    qr_code=_UNSET,
    phone_number=_UNSET,
    last_connected_at=_UNSET,
    create: bool = True,
) -> ChannelConnection | None:
    """
    Upsert the owner's connection row.

    Only the keyword fields passed are written. With create=False a missing
    row is left missing and None is returned.
    """
    connection = get_connection(db, owner_id)
    if connection is None:
        if not create:
            return None
        connection = ChannelConnection(owner_id=owner_id, is_connected=False)
        db.add(connection)

    fields = {
        "is_connected": is_connected,
        "qr_code": qr_code,
        "phone_number": phone_number,
        "last_connected_at": last_connected_at,
    }
    for field, value in fields.items():
        if value is not _UNSET:
            setattr(connection, field, value)

    db.commit()
    db.refresh(connection)
    return connection
