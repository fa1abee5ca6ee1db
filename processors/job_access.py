# =============================================================================
# processors/job_access.py - Resolve clinical-system access from the job mapping
# =============================================================================

import logging
from typing import List, TypeVar

from core.errors import DataSourceError
from core.hr_source import HRDataSource
from core.models import PersonRecord, JobAccessMap, TrainingTrack

T = TypeVar('T')


def _unique(items: List[T]) -> List[T]:
    """Drop exact duplicates, keeping first-seen order"""
    return list(dict.fromkeys(items))


class JobAccessResolver:
    """Chained lookup: job mapping -> templates, sub-templates, blueprints, training

    Mapping, template, sub-template and blueprint query failures propagate.
    Training-track failures are logged and leave the tracks empty.
    """

    def __init__(self, hr_source: HRDataSource):
        self.hr_source = hr_source
        self.logger = logging.getLogger(self.__class__.__name__)

    def resolve(self, person: PersonRecord) -> JobAccessMap:
        access = JobAccessMap()
        access.mappings = _unique(self.hr_source.get_job_mappings(person.job_title, person.department))

        if not access.mappings:
            self.logger.info(f"No job mapping for {person.employee_id} "
                             f"({person.job_title} / {person.department})")
            return access

        for mapping in access.mappings:
            access.templates.extend(self.hr_source.get_templates(person.job_title, mapping.job_role))
            access.sub_templates.extend(self.hr_source.get_sub_templates(person.job_title, mapping.job_role))
            access.blueprints.extend(self.hr_source.get_blueprints(person.job_title, mapping.job_role))

        access.templates = _unique(access.templates)
        access.sub_templates = _unique(access.sub_templates)
        access.blueprints = _unique(access.blueprints)
        access.training_tracks = self._resolve_training(person, access.job_categories)

        self.logger.info(
            f"Resolved access for {person.employee_id}: {len(access.mappings)} mappings, "
            f"{len(access.templates)} templates, {len(access.sub_templates)} sub-templates, "
            f"{len(access.blueprints)} blueprints, {len(access.training_tracks)} training tracks"
        )
        return access

    def _resolve_training(self, person: PersonRecord, job_categories: List[str]) -> List[TrainingTrack]:
        tracks: List[TrainingTrack] = []
        for category in job_categories:
            try:
                tracks.extend(self.hr_source.get_training_tracks(category))
            except DataSourceError as e:
                self.logger.warning(f"Training lookup failed for {person.employee_id} "
                                    f"(category {category}): {e}")
        return _unique(tracks)
