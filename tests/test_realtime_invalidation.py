import asyncio
import uuid

from app.studiodesk.db.models import Client, Firm
from app.studiodesk.listing.config import ListScope
from app.studiodesk.listing.controller import ListController, ListOptions
from app.studiodesk.listing.entities import LIST_CONFIGS
from app.studiodesk.realtime.capture import install_change_capture
from app.studiodesk.realtime.hub import ChangeEvent, ChangeHub, ChangeOperation, normalize_workspace_id
from app.studiodesk.realtime.invalidator import RealtimeInvalidator
from tests.studio_helpers import FakeBackend

WORKSPACE = "firm-1"


def _insert(table: str, workspace_id: str = WORKSPACE) -> ChangeEvent:
    return ChangeEvent(table=table, operation=ChangeOperation.INSERT, workspace_id=workspace_id)


def test_hub_delivers_by_table_and_workspace():
    hub = ChangeHub()
    received = []
    hub.subscribe("clients", WORKSPACE, received.append)

    assert hub.publish(_insert("clients")) == 1
    assert hub.publish(_insert("clients", "firm-2")) == 0
    assert hub.publish(_insert("events")) == 0
    assert [change.table for change in received] == ["clients"]


def test_hub_matches_workspace_ids_in_any_uuid_spelling():
    hub = ChangeHub()
    workspace = uuid.uuid4()
    received = []
    hub.subscribe("clients", str(workspace).upper(), received.append)
    hub.subscribe("clients", workspace.hex, received.append)

    assert hub.publish(_insert("clients", str(workspace))) == 2
    assert normalize_workspace_id(workspace.hex) == str(workspace)
    assert normalize_workspace_id("firm-1") == "firm-1"
    assert normalize_workspace_id(None) is None


def test_hub_unsubscribe_and_failing_callback():
    hub = ChangeHub()
    received = []

    def broken(_change):
        raise RuntimeError("listener crashed")

    hub.subscribe("clients", WORKSPACE, broken)
    subscription = hub.subscribe("clients", WORKSPACE, received.append)

    assert hub.publish(_insert("clients")) == 1
    assert len(received) == 1

    subscription.unsubscribe()
    subscription.unsubscribe()
    assert hub.subscriber_count("clients") == 1
    hub.publish(_insert("clients"))
    assert len(received) == 1


def test_capture_publishes_only_committed_changes(session_factory):
    hub = ChangeHub()
    received = []
    firm_id = uuid.uuid4()
    hub.subscribe("clients", str(firm_id), received.append)
    capture = install_change_capture(session_factory, hub)
    try:
        db = session_factory()
        db.add(Firm(id=firm_id, name="Captured"))
        db.commit()

        client = Client(id=uuid.uuid4(), firm_id=firm_id, name="New Client")
        db.add(client)
        db.flush()
        assert received == []
        db.commit()
        assert [change.operation for change in received] == [ChangeOperation.INSERT]
        assert received[0].record_id == str(client.id)

        client.phone = "9800000009"
        db.commit()
        assert received[-1].operation is ChangeOperation.UPDATE

        db.add(Client(firm_id=firm_id, name="Rolled Back"))
        db.flush()
        db.rollback()
        assert len(received) == 2

        db.delete(db.get(Client, client.id))
        db.commit()
        assert received[-1].operation is ChangeOperation.DELETE
        db.close()
    finally:
        capture.remove()


def test_invalidator_subscribes_to_related_tables():
    hub = ChangeHub()
    invalidator = RealtimeInvalidator(LIST_CONFIGS["events"], hub, lambda _change: None)

    invalidator.attach(WORKSPACE)
    invalidator.attach(WORKSPACE)

    assert invalidator.tables == ("events", "payments", "event_closing_balances")
    assert hub.subscriber_count() == 3
    invalidator.detach()
    assert hub.subscriber_count() == 0
    assert not invalidator.attached


def test_invalidator_attaches_with_normalized_workspace_id():
    hub = ChangeHub()
    workspace = uuid.uuid4()
    changes = []
    invalidator = RealtimeInvalidator(LIST_CONFIGS["clients"], hub, changes.append)

    invalidator.attach(str(workspace).upper())

    assert invalidator.workspace_id == str(workspace)
    hub.publish(_insert("clients", str(workspace)))
    assert len(changes) == 1


def test_invalidator_survives_closed_hub():
    hub = ChangeHub()
    hub.close()
    invalidator = RealtimeInvalidator(LIST_CONFIGS["clients"], hub, lambda _change: None)

    invalidator.attach(WORKSPACE)

    assert not invalidator.attached


def _controller(backend, hub, entity="clients", workspace_id=WORKSPACE):
    return ListController(
        LIST_CONFIGS[entity],
        ListScope(workspace_id=workspace_id, user_id="user-1", role="Admin"),
        backend,
        options=ListOptions(page_size=50, debounce_ms=0),
        hub=hub,
    )


def test_change_notification_resets_to_first_page():
    async def scenario():
        hub = ChangeHub()
        backend = FakeBackend(total=500)
        async with _controller(backend, hub) as controller:
            assert controller.realtime_attached
            for _ in range(3):
                await controller.load_more()
            assert controller.current_page == 3
            assert len(controller.rows) == 200

            hub.publish(_insert("clients"))
            await asyncio.sleep(0)
            assert controller.current_page == 0
            await controller.wait_idle()

            assert backend.requests[-1].page == 0
            assert len(controller.rows) == 50
            assert not controller.loading

    asyncio.run(scenario())


def test_related_table_change_reloads_events():
    async def scenario():
        hub = ChangeHub()
        backend = FakeBackend(total=5)
        async with _controller(backend, hub, entity="events") as controller:
            hub.publish(_insert("payments"))
            await asyncio.sleep(0)
            await controller.wait_idle()
            hub.publish(_insert("payments", "firm-2"))
            await asyncio.sleep(0)
            await controller.wait_idle()
        assert len(backend.requests) == 2

    asyncio.run(scenario())


def test_scope_change_moves_subscription_and_close_detaches():
    async def scenario():
        hub = ChangeHub()
        backend = FakeBackend(total=5)
        controller = _controller(backend, hub)
        await controller.start()
        await controller.change_scope(ListScope(workspace_id="firm-2", user_id="user-1", role="Admin"))
        assert hub.subscriber_count("clients") == 1

        calls = len(backend.requests)
        hub.publish(_insert("clients", WORKSPACE))
        await asyncio.sleep(0)
        await controller.wait_idle()
        assert len(backend.requests) == calls

        controller.close()
        assert hub.subscriber_count() == 0
        hub.publish(_insert("clients", "firm-2"))
        await asyncio.sleep(0)
        assert len(backend.requests) == calls

    asyncio.run(scenario())


def test_realtime_can_be_disabled_per_controller():
    async def scenario():
        hub = ChangeHub()
        controller = ListController(
            LIST_CONFIGS["clients"],
            ListScope(workspace_id=WORKSPACE),
            FakeBackend(total=1),
            options=ListOptions(realtime=False, debounce_ms=0),
            hub=hub,
        )
        async with controller:
            assert not controller.realtime_attached
            assert hub.subscriber_count() == 0

    asyncio.run(scenario())
