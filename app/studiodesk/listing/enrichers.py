from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.studiodesk.db.models import Client, Quotation
from app.studiodesk.listing.config import Row


def attach_clients(db: Session, rows: list[Row]) -> list[Row]:
    client_ids = {row["client_id"] for row in rows if row.get("client_id")}
    if not client_ids:
        return [{**row, "client": None} for row in rows]
    clients = db.execute(
        select(Client.id, Client.name, Client.phone, Client.email).where(Client.id.in_(client_ids))
    ).all()
    by_id = {client.id: {"name": client.name, "phone": client.phone, "email": client.email} for client in clients}
    return [{**row, "client": by_id.get(row.get("client_id"))} for row in rows]


def attach_quotation_details(db: Session, rows: list[Row]) -> list[Row]:
    # Events created from a quotation carry the quotation's day plan.
    event_ids = [row["id"] for row in rows]
    if not event_ids:
        return rows
    sources = db.execute(
        select(Quotation.converted_to_event, Quotation.quotation_details)
        .where(Quotation.converted_to_event.in_(event_ids))
        .order_by(Quotation.created_at.asc())
    ).all()
    details_by_event: dict = {}
    for event_id, details in sources:
        details_by_event.setdefault(event_id, details)
    enriched = []
    for row in rows:
        source_details = details_by_event.get(row["id"])
        enriched.append({**row, "quotation_details": source_details or row.get("quotation_details")})
    return enriched


def enrich_events(db: Session, rows: list[Row]) -> list[Row]:
    return attach_quotation_details(db, attach_clients(db, rows))
