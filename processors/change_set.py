# =============================================================================
# processors/change_set.py - Select the people in scope for a run
# =============================================================================

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from core.hr_source import HRDataSource
from core.models import PersonRecord


class ChangeSetSelector:
    """Picks new-hire records by creation window or by a single employee ID"""

    def __init__(self, hr_source: HRDataSource, clock: Optional[Callable[[], datetime]] = None):
        self.hr_source = hr_source
        self.clock = clock or datetime.now
        self.logger = logging.getLogger(self.__class__.__name__)

    def select(self, days: Optional[int] = None, employee_id: Optional[str] = None) -> List[PersonRecord]:
        """Return the records in scope; HR errors propagate and end the run"""
        if employee_id:
            person = self.hr_source.get_person(employee_id)
            if person is None:
                self.logger.warning(f"Employee {employee_id} not found in HR source")
                return []
            self.logger.info(f"Selected employee {employee_id} for manual run")
            return [person]

        if days is None or days < 0:
            raise ValueError(f"Lookback window must be a non-negative number of days, got {days}")

        since = self.clock() - timedelta(days=days)
        people = self.hr_source.get_people_created_since(since)
        self.logger.info(f"Selected {len(people)} records created since {since:%Y-%m-%d %H:%M}")
        return people
