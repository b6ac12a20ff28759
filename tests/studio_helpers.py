from __future__ import annotations

import asyncio
import uuid

from app.studiodesk.core.security import create_profile_access_token
from app.studiodesk.db.models import Client, Event, EventStaffAssignment, Firm, Profile
from app.studiodesk.listing.config import ListScope, PageResult


def create_firm_profile(db_session, *, suffix: str, role: str = "Admin"):
    firm = Firm(id=uuid.uuid4(), name=f"Firm {suffix}")
    profile = Profile(
        id=uuid.uuid4(),
        firm_id=firm.id,
        full_name=f"User {suffix}",
        email=f"user-{suffix}@example.com",
        role=role,
    )
    db_session.add(firm)
    db_session.flush()
    db_session.add(profile)
    db_session.commit()
    return firm, profile


def add_profile(db_session, firm, *, name: str, role: str):
    profile = Profile(id=uuid.uuid4(), firm_id=firm.id, full_name=name, role=role)
    db_session.add(profile)
    db_session.commit()
    return profile


def scope_for(profile, firm=None) -> ListScope:
    workspace = firm.id if firm is not None else profile.firm_id
    return ListScope(workspace_id=str(workspace), user_id=str(profile.id), role=profile.role)


def auth_headers(profile, firm_id=None) -> dict[str, str]:
    token = create_profile_access_token(profile, firm_id=firm_id)
    return {"Authorization": f"Bearer {token}"}


def add_clients(db_session, firm, *specs: dict):
    clients = [Client(id=uuid.uuid4(), firm_id=firm.id, **spec) for spec in specs]
    db_session.add_all(clients)
    db_session.commit()
    return clients


def add_event(db_session, firm, *, title: str, roles: tuple[str, ...] = (), **fields):
    event = Event(id=uuid.uuid4(), firm_id=firm.id, title=title, **fields)
    db_session.add(event)
    db_session.flush()
    for day, role in enumerate(roles, start=1):
        db_session.add(
            EventStaffAssignment(firm_id=firm.id, event_id=event.id, role=role, day_number=day)
        )
    db_session.commit()
    return event


class FakeBackend:
    """In-memory list backend; individual calls can be held open, overridden or failed."""

    def __init__(self, total: int = 0):
        self.rows = [{"id": f"row-{index}"} for index in range(total)]
        self.requests = []
        self.gates: dict[int, asyncio.Event] = {}
        self.results: dict[int, PageResult] = {}
        self.errors: dict[int, Exception] = {}
        self.error: Exception | None = None

    def gate(self, call_index: int) -> asyncio.Event:
        self.gates[call_index] = asyncio.Event()
        return self.gates[call_index]

    async def fetch_page(self, config, scope, request):
        index = len(self.requests)
        self.requests.append(request)
        gate = self.gates.get(index)
        if gate is not None:
            await gate.wait()
        error = self.errors.get(index, self.error)
        if error is not None:
            raise error
        if index in self.results:
            return self.results[index]
        start = request.page * request.page_size
        return PageResult(rows=self.rows[start : start + request.page_size], total_count=len(self.rows))
