#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
    tests.test_maintenance
    ~~~~~~~~~~~~~~~~~~~~~~

    This module tests taking items offline and the cascade it triggers.

    :copyright: (c) 2015 by Authors.
    :license: see LICENSE for more details.
"""

import threading
import pytest
from unittest.mock import patch
from gearshare.core.maintenance import MaintenanceGate
from gearshare.core.models import Item, ItemStatus, Reservation, ReservationStatus
from gearshare.core.workflow import SYSTEM, WorkflowEngine, ItemLocks
from gearshare.core.exceptions import Forbidden, ItemBusy, MaintenanceBlocked, NotFoundError, StaleWrite
from conftest import at

S = ReservationStatus


@pytest.fixture
def gate(workflow):
    return MaintenanceGate(workflow)

def statuses(session_factory, *ids):
    with session_factory() as session:
        return [Reservation.get(session, i).status for i in ids]

def test_cascade(gate, workflow, actors, item, clock, session_factory):
    admin = actors["admin"]
    in_use = workflow.create(item, "alice", at(1, month=12, year=2025), at(3, month=12, year=2025))
    in_use = workflow.transition(in_use.id, S.APPROVED, admin, in_use.version)
    in_use = workflow.transition(in_use.id, S.ACTIVE, SYSTEM, in_use.version)
    upcoming = workflow.create(item, "bob", at(1), at(5))
    upcoming = workflow.transition(upcoming.id, S.APPROVED, admin, upcoming.version)
    pending = [workflow.create(item, "alice", at(6), at(8)), workflow.create(item, "bob", at(7), at(9))]

    result = gate.set_maintenance(item, True, admin)

    assert result.status == ItemStatus.MAINTENANCE
    assert result.maintenance is True
    assert statuses(session_factory, in_use.id, upcoming.id, *[p.id for p in pending]) == [
        S.ACTIVE, S.CANCELLED, S.REJECTED, S.REJECTED]
    with session_factory() as session:
        rejected = Reservation.get(session, pending[0].id)
        assert rejected.rejection_reason == MaintenanceGate.REASON
    assert upcoming.id not in workflow.index
    assert in_use.id in workflow.index

def test_approved_already_started_is_left_for_the_sweep(gate, workflow, actors, item, clock, session_factory):
    r = workflow.create(item, "alice", at(1), at(5))
    r = workflow.transition(r.id, S.APPROVED, actors["admin"], r.version)
    clock.now = at(2)
    gate.set_maintenance(item, True, actors["admin"])
    assert statuses(session_factory, r.id) == [S.APPROVED]

def test_blocks_new_requests(gate, workflow, actors, item):
    gate.set_maintenance(item, True, actors["admin"])
    with pytest.raises(MaintenanceBlocked):
        workflow.create(item, "alice", at(1), at(5))

def test_only_admins(gate, actors, item):
    with pytest.raises(Forbidden):
        gate.set_maintenance(item, True, actors["alice"])
    with pytest.raises(Forbidden):
        gate.set_maintenance(item, True, SYSTEM)

def test_unknown_item(gate, actors):
    with pytest.raises(NotFoundError):
        gate.set_maintenance(404, True, actors["admin"])

def test_clearing_restores_derived_status_only(gate, workflow, actors, item, session_factory):
    admin = actors["admin"]
    active = workflow.create(item, "alice", at(1, month=12, year=2025), at(3, month=12, year=2025))
    active = workflow.transition(active.id, S.APPROVED, admin, active.version)
    active = workflow.transition(active.id, S.ACTIVE, SYSTEM, active.version)
    pending = workflow.create(item, "bob", at(1), at(5))

    gate.set_maintenance(item, True, admin)
    result = gate.set_maintenance(item, False, admin)

    assert result.maintenance is False
    assert result.status == ItemStatus.IN_USE
    assert statuses(session_factory, pending.id) == [S.REJECTED]
    again = workflow.create(item, "bob", at(1), at(5))
    assert again.status == S.PENDING

def test_active_completion_keeps_maintenance_status(gate, workflow, actors, item, session_factory):
    admin = actors["admin"]
    r = workflow.create(item, "alice", at(1, month=12, year=2025), at(3, month=12, year=2025))
    r = workflow.transition(r.id, S.APPROVED, admin, r.version)
    r = workflow.transition(r.id, S.ACTIVE, SYSTEM, r.version)
    gate.set_maintenance(item, True, admin)
    workflow.transition(r.id, S.COMPLETED, SYSTEM, r.version)
    with session_factory() as session:
        assert Item.get(session, item).status == ItemStatus.MAINTENANCE

def test_cascade_survives_notes_edited_midway(gate, workflow, actors, item, session_factory):
    admin = actors["admin"]
    first = workflow.create(item, "alice", at(6), at(8))
    second = workflow.create(item, "bob", at(7), at(9))
    upcoming = workflow.create(item, "alice", at(1), at(5))
    upcoming = workflow.transition(upcoming.id, S.APPROVED, admin, upcoming.version)
    read = gate._outstanding

    def edited_after_read(session, item_id):
        found = read(session, item_id)
        workflow.annotate(first.id, actors["alice"], "bring the spare battery")
        workflow.annotate(upcoming.id, actors["alice"], "pick up at 9")
        return found

    with patch.object(gate, "_outstanding", side_effect=edited_after_read):
        result = gate.set_maintenance(item, True, admin)

    assert result.status == ItemStatus.MAINTENANCE
    assert statuses(session_factory, first.id, second.id, upcoming.id) == [
        S.REJECTED, S.REJECTED, S.CANCELLED]
    with session_factory() as session:
        assert Reservation.get(session, first.id).notes == "bring the spare battery"
    assert upcoming.id not in workflow.index

def test_cascade_gives_up_after_repeated_stale_writes(gate, workflow, actors, item):
    workflow.create(item, "alice", at(6), at(8))
    with patch.object(workflow, "transition", side_effect=StaleWrite("raced")) as transition:
        with pytest.raises(StaleWrite):
            gate.set_maintenance(item, True, actors["admin"])
    assert transition.call_count == gate.RETRIES

def test_annotate_waits_for_the_item_lock(session_factory, dispatcher, actors, item):
    engine = WorkflowEngine(session_factory, dispatcher=dispatcher, locks=ItemLocks(timeout=0.05))
    r = engine.create(item, "alice", at(1), at(2))
    errors = []

    def edit():
        try:
            engine.annotate(r.id, actors["alice"], "late note")
        except ItemBusy as e:
            errors.append(e)

    with engine.locks.hold(item):
        worker = threading.Thread(target=edit)
        worker.start()
        worker.join(2)
    assert len(errors) == 1
    with session_factory() as session:
        stored = Reservation.get(session, r.id)
        assert stored.notes is None
        assert stored.version == r.version
