from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.studiodesk.db.models import (
    AccountingEntry,
    Client,
    Event,
    EventStaffAssignment,
    Expense,
    Firm,
    Freelancer,
    Profile,
    Quotation,
    Task,
)

DEMO_FIRM_NAME = "Demo Studio"


def run_seed(db: Session, *, today: date | None = None) -> Firm:
    existing = db.execute(select(Firm).where(Firm.name == DEMO_FIRM_NAME)).scalars().first()
    if existing is not None:
        return existing

    today = today or date.today()
    firm = Firm(name=DEMO_FIRM_NAME)
    db.add(firm)
    db.flush()

    admin = Profile(firm_id=firm.id, full_name="Studio Admin", email="admin@demo.studio", role="Admin")
    editor = Profile(firm_id=firm.id, full_name="Riya Editor", email="riya@demo.studio", role="Editor")
    shooter = Profile(firm_id=firm.id, full_name="Arjun Lens", email="arjun@demo.studio", role="Photographer")
    db.add_all([admin, editor, shooter])

    mehta = Client(firm_id=firm.id, name="Mehta Family", phone="9800000001", email="mehta@example.com")
    rao = Client(firm_id=firm.id, name="Rao & Sons", phone="9800000002", address="12 Lake Road")
    db.add_all([mehta, rao])
    db.flush()

    wedding = Event(
        firm_id=firm.id,
        client_id=mehta.id,
        title="Mehta Wedding",
        event_type="Wedding",
        event_date=today + timedelta(days=30),
        venue="Palace Grounds",
        total_amount=Decimal("250000.00"),
        advance_amount=Decimal("50000.00"),
        balance_amount=Decimal("200000.00"),
    )
    shoot = Event(
        firm_id=firm.id,
        client_id=rao.id,
        title="Rao Maternity Shoot",
        event_type="Maternity Photography",
        event_date=today - timedelta(days=10),
        venue="Studio A",
        total_amount=Decimal("30000.00"),
    )
    db.add_all([wedding, shoot])
    db.flush()

    db.add_all(
        [
            EventStaffAssignment(firm_id=firm.id, event_id=wedding.id, staff_id=shooter.id, role="Photographer"),
            EventStaffAssignment(firm_id=firm.id, event_id=wedding.id, staff_id=editor.id, role="Editor"),
            Task(
                firm_id=firm.id,
                title="Edit wedding highlights",
                status="In Progress",
                priority="Urgent",
                task_type="Video Editing",
                assigned_to=editor.id,
                event_id=wedding.id,
                due_date=today + timedelta(days=40),
            ),
            Task(
                firm_id=firm.id,
                title="Retouch maternity album",
                status="Pending",
                priority="Medium",
                task_type="Photo Editing",
                assigned_to=editor.id,
                event_id=shoot.id,
                due_date=today - timedelta(days=2),
            ),
            Quotation(
                firm_id=firm.id,
                client_id=mehta.id,
                title="Mehta Wedding Package",
                event_type="Wedding",
                amount=Decimal("250000.00"),
                valid_until=today + timedelta(days=5),
                converted_to_event=wedding.id,
                quotation_details={"days": [{"photographers": 2, "cinematographers": 1}]},
            ),
            Quotation(
                firm_id=firm.id,
                client_id=rao.id,
                title="Rao Pre-Wedding",
                event_type="Pre-Wedding",
                amount=Decimal("45000.00"),
                valid_until=today + timedelta(days=14),
            ),
            Freelancer(firm_id=firm.id, full_name="Kiran Sky", role="Drone Pilot", phone="9800000010"),
            AccountingEntry(
                firm_id=firm.id,
                title="Wedding advance",
                entry_type="Credit",
                category="Event Revenue",
                amount=Decimal("50000.00"),
                entry_date=today,
            ),
            Expense(
                firm_id=firm.id,
                description="Lens rental",
                category="Equipment",
                amount=Decimal("4000.00"),
                payment_method="Digital",
                expense_date=today,
            ),
        ]
    )
    db.commit()
    return firm
