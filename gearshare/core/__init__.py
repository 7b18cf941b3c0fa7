#!/usr/bin/env python

"""
    Core module for GearShare: database wiring and the reservation engine

    :copyright: (c) 2015 by AUTHORS
    :license: see LICENSE for more details
"""

from gearshare.core import db as database
from gearshare.core.db import SessionLocal
from gearshare.core.intervals import IntervalIndex
from gearshare.core.activity import ActivityRecorder
from gearshare.core.notifications import NotificationDispatcher
from gearshare.core.workflow import WorkflowEngine
from gearshare.core.maintenance import MaintenanceGate
from gearshare.core.scheduler import SchedulerSweep
from gearshare.core.reports import DamageReports

index = IntervalIndex()
recorder = ActivityRecorder(SessionLocal)
dispatcher = NotificationDispatcher(SessionLocal)
workflow = WorkflowEngine(
    SessionLocal, index=index, recorder=recorder, dispatcher=dispatcher)
gate = MaintenanceGate(workflow)
sweep = SchedulerSweep(workflow)
reports = DamageReports(SessionLocal)

__all__ = [
    "database", "SessionLocal", "index", "recorder", "dispatcher",
    "workflow", "gate", "sweep", "reports",
]
