import logging
from gearshare.core.models import (
    DamageReport, Item, ReportStatus, ReportType, Severity
)
from gearshare.core.utils import utcnow
from gearshare.core.exceptions import Forbidden, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class DamageReports:
    """Damage reports filed against items.

    Users see and file their own reports; admins see all of them, file
    inspections and resolve reports with notes.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def file(self, item_id, actor, description, severity=Severity.MEDIUM,
             report_type=ReportType.USER_DAMAGE):
        if not description or not description.strip():
            raise ValidationError("A description is required.")
        report_type = ReportType(report_type)
        if report_type == ReportType.ADMIN_INSPECTION and not actor.is_admin:
            raise Forbidden("Only admins can file inspection reports.")
        with self.session_factory() as session:
            if not Item.get(session, item_id):
                raise NotFoundError(f"Item {item_id} not found.")
            report = DamageReport(
                item_id=item_id,
                reported_by=actor.id,
                report_type=report_type,
                severity=Severity(severity),
                description=description.strip(),
                status=ReportStatus.OPEN,
                created_at=utcnow(),
            )
            session.add(report)
            session.commit()
        logger.info(f"Damage report {report.id} ({report.severity.value}) filed on item {item_id}.")
        return report

    def _set_status(self, report_id, actor, status, notes=None):
        if not actor.is_admin:
            raise Forbidden(f"{actor.id} may not update damage reports.")
        with self.session_factory() as session:
            report = session.get(DamageReport, report_id)
            if not report:
                raise NotFoundError(f"Report {report_id} not found.")
            if report.status == ReportStatus.RESOLVED:
                raise ValidationError(f"Report {report_id} is already resolved.")
            report.status = status
            if status == ReportStatus.RESOLVED:
                report.resolution_notes = notes
                report.resolved_at = utcnow()
            session.commit()
        return report

    def start(self, report_id, actor):
        return self._set_status(report_id, actor, ReportStatus.IN_PROGRESS)

    def resolve(self, report_id, actor, notes):
        if not notes or not notes.strip():
            raise ValidationError("Resolution notes are required.")
        return self._set_status(report_id, actor, ReportStatus.RESOLVED, notes.strip())

    def list(self, actor, status=None, item_id=None):
        with self.session_factory() as session:
            q = session.query(DamageReport)
            if not actor.is_admin:
                q = q.filter(DamageReport.reported_by == actor.id)
            if status:
                q = q.filter(DamageReport.status == ReportStatus(status))
            if item_id is not None:
                q = q.filter(DamageReport.item_id == item_id)
            return q.order_by(DamageReport.created_at.desc(), DamageReport.id.desc()).all()
