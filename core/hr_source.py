# =============================================================================
# core/hr_source.py - HR system of record and job-access mapping queries
# =============================================================================

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import create_engine, text, bindparam, DateTime
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.errors import DataSourceError
from core.models import PersonRecord, JobMapping, AccessArtifact, TrainingTrack


PERSON_COLUMNS = """
    employee_id, first_name, middle_name, last_name, job_title, department,
    division, mailstop, supervisor_id, employment_status, contact_email,
    location, work_phone, created_date
"""

PEOPLE_CREATED_SINCE_SQL = text(f"""
    SELECT {PERSON_COLUMNS}
    FROM hr_employees
    WHERE created_date >= :since
    ORDER BY created_date, employee_id
""").bindparams(bindparam("since", type_=DateTime))

PERSON_BY_ID_SQL = text(f"""
    SELECT {PERSON_COLUMNS}
    FROM hr_employees
    WHERE employee_id = :employee_id
""")

JOB_MAPPINGS_SQL = text("""
    SELECT DISTINCT job_title, department, job_category, job_role
    FROM job_mappings
    WHERE job_title = :job_title AND department = :department
""")

TEMPLATES_SQL = text("""
    SELECT DISTINCT template_id AS artifact_id, template_name AS name
    FROM epic_templates
    WHERE job_title = :job_title AND job_role = :job_role
""")

SUB_TEMPLATES_SQL = text("""
    SELECT DISTINCT sub_template_id AS artifact_id, sub_template_name AS name
    FROM epic_sub_templates
    WHERE job_title = :job_title AND job_role = :job_role
""")

BLUEPRINTS_SQL = text("""
    SELECT DISTINCT blueprint_id AS artifact_id, blueprint_name AS name
    FROM epic_blueprints
    WHERE job_title = :job_title AND job_role = :job_role
""")

TRAINING_TRACKS_SQL = text("""
    SELECT DISTINCT track_id, track_name
    FROM training_tracks
    WHERE job_category = :job_category
    ORDER BY track_id
""")


def _clean(value: Any) -> str:
    return str(value).strip() if value is not None else ""


class HRDataSource:
    """Read-only access to the HR database"""

    def __init__(self, database_url: Optional[str] = None, engine: Optional[Engine] = None):
        if engine is None:
            if not database_url:
                raise DataSourceError("No HR database URL configured")
            engine = create_engine(database_url)
        self.engine = engine
        self.logger = logging.getLogger(__name__)

    def _fetch(self, statement, params: Dict[str, Any], description: str) -> List[Dict[str, Any]]:
        try:
            with self.engine.connect() as conn:
                rows = [dict(row) for row in conn.execute(statement, params).mappings()]
        except SQLAlchemyError as e:
            self.logger.error(f"HR query for {description} failed: {e}")
            raise DataSourceError(f"HR query for {description} failed: {e}") from e

        self.logger.debug(f"HR query for {description} returned {len(rows)} rows")
        return rows

    @staticmethod
    def _to_person(row: Dict[str, Any]) -> PersonRecord:
        contact_email = _clean(row.get('contact_email'))
        return PersonRecord(
            employee_id=_clean(row.get('employee_id')),
            first_name=_clean(row.get('first_name')),
            middle_name=_clean(row.get('middle_name')),
            last_name=_clean(row.get('last_name')),
            job_title=_clean(row.get('job_title')),
            department=_clean(row.get('department')),
            division=_clean(row.get('division')),
            mailstop=_clean(row.get('mailstop')),
            supervisor_id=_clean(row.get('supervisor_id')),
            employment_status=_clean(row.get('employment_status')),
            contact_email=contact_email or None,
            location=_clean(row.get('location')),
            work_phone=_clean(row.get('work_phone')),
            created_date=row.get('created_date'),
        )

    # -- People ------------------------------------------------------------

    def get_people_created_since(self, since: datetime) -> List[PersonRecord]:
        rows = self._fetch(PEOPLE_CREATED_SINCE_SQL, {'since': since}, f"people created since {since:%Y-%m-%d %H:%M}")
        return [self._to_person(row) for row in rows]

    def get_person(self, employee_id: str) -> Optional[PersonRecord]:
        rows = self._fetch(PERSON_BY_ID_SQL, {'employee_id': employee_id}, f"employee {employee_id}")
        return self._to_person(rows[0]) if rows else None

    # -- Job-access mapping ------------------------------------------------

    def get_job_mappings(self, job_title: str, department: str) -> List[JobMapping]:
        rows = self._fetch(JOB_MAPPINGS_SQL, {'job_title': job_title, 'department': department},
                           f"job mapping {job_title}/{department}")
        return [
            JobMapping(
                job_title=_clean(row['job_title']),
                department=_clean(row['department']),
                job_category=_clean(row['job_category']),
                job_role=_clean(row['job_role']),
            )
            for row in rows
        ]

    def _get_artifacts(self, statement, job_title: str, job_role: str, kind: str) -> List[AccessArtifact]:
        rows = self._fetch(statement, {'job_title': job_title, 'job_role': job_role},
                           f"{kind} {job_title}/{job_role}")
        return [AccessArtifact(_clean(row['artifact_id']), _clean(row['name'])) for row in rows]

    def get_templates(self, job_title: str, job_role: str) -> List[AccessArtifact]:
        return self._get_artifacts(TEMPLATES_SQL, job_title, job_role, "templates")

    def get_sub_templates(self, job_title: str, job_role: str) -> List[AccessArtifact]:
        return self._get_artifacts(SUB_TEMPLATES_SQL, job_title, job_role, "sub-templates")

    def get_blueprints(self, job_title: str, job_role: str) -> List[AccessArtifact]:
        return self._get_artifacts(BLUEPRINTS_SQL, job_title, job_role, "blueprints")

    def get_training_tracks(self, job_category: str) -> List[TrainingTrack]:
        rows = self._fetch(TRAINING_TRACKS_SQL, {'job_category': job_category},
                           f"training tracks {job_category}")
        return [TrainingTrack(_clean(row['track_id']), _clean(row['track_name'])) for row in rows]
