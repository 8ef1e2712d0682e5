"""
Sales Log Export with Concurrency Control

Writes the order history to an Excel workbook for the back office.
The file is rewritten on every export under a file lock so that two
exports (API + script) never interleave.

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional

import pandas as pd
from filelock import FileLock, Timeout

from bistro.core.config import get_settings
from bistro.schemas import OrderRecord

logger = logging.getLogger(__name__)


class HistoryExporter:
    """Lock-protected Excel export of order records."""

    HISTORY_COLUMNS = [
        "invoice_id",
        "date_time",
        "customer_name",
        "customer_contact",
        "items",
        "line_count",
        "payment_method",
        "total",
        "exported_at",
    ]

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        filename: Optional[str] = None,
        lock_timeout: Optional[int] = None,
    ):
        settings = get_settings()
        self.data_dir = Path(data_dir or settings.data_directory)
        self.file_path = self.data_dir / (filename or settings.history_filename)
        self.lock_path = self.data_dir / f"{self.file_path.name}.lock"
        self.lock_timeout = lock_timeout if lock_timeout is not None else settings.export_lock_timeout

    def _ensure_data_dir(self) -> None:
        """Create data directory if needed."""
        if not self.data_dir.exists():
            self.data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {self.data_dir}")

    def _to_row(self, record: OrderRecord, export_time: str) -> dict[str, Any]:
        return {
            "invoice_id": record.id,
            "date_time": record.timestamp.isoformat(),
            "customer_name": record.customer_name,
            "customer_contact": record.customer_contact,
            "items": record.items_summary,
            "line_count": len(record.cart_lines) if record.cart_lines is not None else None,
            "payment_method": record.payment_method,
            "total": record.total,
            "exported_at": export_time,
        }

    def export_history(self, records: Iterable[OrderRecord]) -> dict[str, Any]:
        """Write all records (newest first) to the workbook."""
        self._ensure_data_dir()

        records = list(records)
        result = {
            "success": False,
            "message": "",
            "path": str(self.file_path),
            "exported_at": None,
            "order_count": len(records),
        }

        try:
            lock = FileLock(str(self.lock_path), timeout=self.lock_timeout)

            with lock:
                logger.debug(f"Lock acquired for {self.file_path}")

                export_time = datetime.now().isoformat()
                df = pd.DataFrame(
                    [self._to_row(record, export_time) for record in records],
                    columns=self.HISTORY_COLUMNS,
                )
                df.to_excel(str(self.file_path), index=False, engine="openpyxl")

                logger.info(f"Exported {len(records)} order(s) to {self.file_path}")

                result["success"] = True
                result["message"] = f"{len(records)} order(s) exported"
                result["exported_at"] = export_time

            logger.debug(f"Lock released for {self.file_path}")

        except Timeout:
            result["message"] = f"Lock timeout ({self.lock_timeout}s)"
            logger.error(f"Lock timeout exporting {self.file_path}")

        except Exception as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting order history to {self.file_path}")

        return result

    def read_history(self) -> list[dict[str, Any]]:
        """Rows of the last export, or an empty list."""
        if not self.file_path.exists():
            return []

        try:
            df = pd.read_excel(self.file_path, engine="openpyxl")
            return df.to_dict("records")
        except Exception as e:
            logger.error(f"Error reading {self.file_path}: {e}")
            return []
