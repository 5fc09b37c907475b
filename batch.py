"""Batch deposits, exports and status changes over a selection of records."""

import json
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

import messages
from deposit import DepositOrchestrator
from metadata import export_metadata_json
from models.records import DepositStatus, LocalRecord, TenantSettings
from models.results import DepositError
from repository import RecordRepository

logger = logging.getLogger("zensync.batch")

EXPORT_CONTENT_TYPE = "application/json"

Exporter = Callable[[LocalRecord, TenantSettings], str]


@dataclass
class Notification:
    """A message shown to the operator after a batch action.

    Attributes:
        kind: Either "success" or "error".
        message_key: Message catalogue key.
        param: Optional message parameter.
    """

    kind: str
    message_key: str
    param: Optional[str] = None

    def text(self) -> str:
        return messages.render(self.message_key, self.param)


@dataclass
class RecordErrorReport:
    """The errors of one failed record."""

    local_id: str
    errors: List[DepositError]


@dataclass
class BatchReport:
    """Outcome of a batch deposit.

    Attributes:
        success_count: Number of records deposited successfully.
        deposited: Local IDs of the records deposited successfully.
        errors: Error reports of the failed records, in processing order.
    """

    success_count: int = 0
    deposited: List[str] = field(default_factory=list)
    errors: List[RecordErrorReport] = field(default_factory=list)

    @property
    def successful(self) -> bool:
        return not self.errors

    def notifications(self) -> List[Notification]:
        """One notification per error entry, or a single success notification."""
        if self.successful:
            return [Notification(kind="success", message_key=messages.DEPOSIT_SUCCESS)]

        return [
            Notification(kind="error", message_key=error.message_key, param=error.param)
            for report in self.errors
            for error in report.errors
        ]


class BatchRunner:
    """
    Applies the deposit orchestrator to a collection of records.

    Records are processed one after the other. A failing record never stops
    the batch, and is not retried within it.
    """

    def __init__(
        self,
        orchestrator: DepositOrchestrator,
        exporter: Optional[Exporter] = None,
    ):
        self.orchestrator = orchestrator
        self.exporter = exporter or self._export_with_award_check

    def _export_with_award_check(
        self, record: LocalRecord, settings: TenantSettings
    ) -> str:
        client = self.orchestrator.client_factory(settings)
        return export_metadata_json(record, settings, client.check_award_valid)

    def run_batch(
        self, records: Iterable[LocalRecord], settings: TenantSettings
    ) -> BatchReport:
        """
        Deposits every record.

        Args:
            records (Iterable[LocalRecord]): The records to deposit.
            settings (TenantSettings): Settings of the tenant owning the records.

        Returns:
            BatchReport: Success count and per-record error reports.
        """
        report = BatchReport()
        records = list(records)

        for index, record in enumerate(records, 1):
            logger.info("Processing %d/%d: record %s", index, len(records), record.local_id)

            try:
                metadata_json = self.exporter(record, settings)
            except ValueError as exc:
                logger.error("Could not export record %s: %s", record.local_id, exc)
                report.errors.append(
                    RecordErrorReport(
                        local_id=record.local_id,
                        errors=[DepositError(message_key=messages.MDS_ERROR, param=str(exc))],
                    )
                )
                continue

            result = self.orchestrator.deposit(record, settings, metadata_json)
            if result.ok:
                report.success_count += 1
                report.deposited.append(record.local_id)
            else:
                report.errors.append(
                    RecordErrorReport(local_id=record.local_id, errors=result.errors)
                )

        logger.info(
            "Batch finished: %d deposited, %d failed",
            report.success_count,
            len(report.errors),
        )
        return report


def export_records(
    records: Iterable[LocalRecord],
    settings: TenantSettings,
    exporter: Exporter = export_metadata_json,
) -> str:
    """
    Combines the Zenodo payloads of several records into one JSON array,
    served with ``EXPORT_CONTENT_TYPE``.
    """
    items = [json.loads(exporter(record, settings)) for record in records]
    return json.dumps(items, ensure_ascii=False)


def mark_registered(
    records: Iterable[LocalRecord], repository: RecordRepository
) -> int:
    """
    Marks records as registered without depositing them.

    Returns:
        int: The number of records marked.
    """
    count = 0
    for record in records:
        record.deposit_status = DepositStatus.MARKED_REGISTERED
        repository.save(record)
        count += 1
    return count
