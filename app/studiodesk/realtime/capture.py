from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.orm import Session

from app.studiodesk.realtime.hub import ChangeEvent, ChangeHub, ChangeOperation

_PENDING_KEY = "studiodesk.pending_changes"


def _change_for(instance, operation: ChangeOperation) -> ChangeEvent | None:
    table = getattr(type(instance), "__tablename__", None)
    if table is None:
        return None
    workspace_id = getattr(instance, "firm_id", None)
    record_id = getattr(instance, "id", None)
    return ChangeEvent(
        table=table,
        operation=operation,
        workspace_id=str(workspace_id) if workspace_id is not None else None,
        record_id=str(record_id) if record_id is not None else None,
    )


class ChangeCapture:
    """Publishes committed ORM inserts, updates and deletes to a ChangeHub.

    Changes are collected on flush and only published once the transaction
    commits; a rollback drops them. Bulk ``update()``/``delete()`` statements
    bypass the unit of work and are not captured.
    """

    def __init__(self, hub: ChangeHub):
        self.hub = hub
        self._targets: list = []

    def install(self, target) -> None:
        event.listen(target, "after_flush", self._after_flush)
        event.listen(target, "after_commit", self._after_commit)
        event.listen(target, "after_rollback", self._after_rollback)
        self._targets.append(target)

    def remove(self) -> None:
        for target in self._targets:
            event.remove(target, "after_flush", self._after_flush)
            event.remove(target, "after_commit", self._after_commit)
            event.remove(target, "after_rollback", self._after_rollback)
        self._targets.clear()

    def _after_flush(self, session: Session, _flush_context) -> None:
        pending = session.info.setdefault(_PENDING_KEY, [])
        for instance in session.new:
            pending.append(_change_for(instance, ChangeOperation.INSERT))
        for instance in session.dirty:
            if session.is_modified(instance, include_collections=False):
                pending.append(_change_for(instance, ChangeOperation.UPDATE))
        for instance in session.deleted:
            pending.append(_change_for(instance, ChangeOperation.DELETE))

    def _after_commit(self, session: Session) -> None:
        pending = session.info.pop(_PENDING_KEY, [])
        for change in pending:
            if change is not None:
                self.hub.publish(change)

    def _after_rollback(self, session: Session) -> None:
        session.info.pop(_PENDING_KEY, None)


def install_change_capture(target, hub: ChangeHub) -> ChangeCapture:
    capture = ChangeCapture(hub)
    capture.install(target)
    return capture
