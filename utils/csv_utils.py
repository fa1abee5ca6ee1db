# =============================================================================
# utils/csv_utils.py - CSV utilities
# =============================================================================

import csv
from dataclasses import asdict, fields, is_dataclass
from typing import List, Dict, Any, Optional, Sequence
import logging


class CSVHandler:
    """Utilities for writing report rows to CSV files"""

    @staticmethod
    def rows_to_dicts(rows: Sequence[Any]) -> List[Dict[str, Any]]:
        """Turn dataclass report rows into plain dictionaries"""
        return [asdict(row) if is_dataclass(row) else dict(row) for row in rows]

    @staticmethod
    def fieldnames_for(row_type: Any) -> List[str]:
        return [f.name for f in fields(row_type)]

    @staticmethod
    def write_csv(data: List[Dict[str, Any]], output_path: str,
                  fieldnames: Optional[List[str]] = None) -> None:
        """Write data to CSV file"""
        logger = logging.getLogger(__name__)

        if not data:
            logger.warning("No data to write")
            return

        if fieldnames is None:
            fieldnames = list(data[0].keys())

        try:
            with open(output_path, 'w', newline='', encoding='utf-8') as file:
                writer = csv.DictWriter(file, fieldnames=fieldnames)
                writer.writeheader()
                writer.writerows(data)

            logger.info(f"Successfully wrote {len(data)} records to {output_path}")

        except Exception as e:
            logger.error(f"Error writing CSV: {e}")
            raise

    @classmethod
    def write_rows(cls, rows: Sequence[Any], output_path: str) -> None:
        """Write dataclass report rows, header taken from the row type"""
        if not rows:
            logging.getLogger(__name__).warning(f"No rows for {output_path}")
            return
        cls.write_csv(cls.rows_to_dicts(rows), output_path, cls.fieldnames_for(type(rows[0])))
