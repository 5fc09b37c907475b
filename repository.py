"""Storage of local records and their version groups.

The deposit orchestrator writes remote identifiers and deposit statuses
through a ``RecordRepository``.  Two implementations are provided: an
in-memory store (tests, embedding in a host application) and a JSON file
store used by the flows and the command-line runner.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol

from models.records import DepositStatus, LocalRecord

logger = logging.getLogger("zensync.repository")

DEPOSITABLE_STATUSES = (DepositStatus.NONE.value, DepositStatus.ERROR.value)


class RecordRepository(Protocol):
    """Access to local records needed by deposits and batches."""

    def get(self, local_id: str) -> Optional[LocalRecord]: ...

    def save(self, record: LocalRecord) -> None: ...

    def find_version_group(
        self, submission_id: str, version_stage: str, version_major: int
    ) -> List[LocalRecord]: ...

    def find_depositable(
        self, tenant_id: str, publications: bool = True
    ) -> List[LocalRecord]: ...


class InMemoryRecordRepository:
    """Keeps records in a dictionary keyed by local ID."""

    def __init__(self, records: Optional[Iterable[LocalRecord]] = None):
        self._records: Dict[str, LocalRecord] = {}
        for record in records or []:
            self._records[record.local_id] = record

    def get(self, local_id: str) -> Optional[LocalRecord]:
        return self._records.get(local_id)

    def all(self) -> List[LocalRecord]:
        return list(self._records.values())

    def save(self, record: LocalRecord) -> None:
        self._records[record.local_id] = record

    def find_version_group(
        self, submission_id: str, version_stage: str, version_major: int
    ) -> List[LocalRecord]:
        key = (submission_id, version_stage, version_major)
        return [record for record in self._records.values() if record.group_key() == key]

    def find_depositable(
        self, tenant_id: str, publications: bool = True
    ) -> List[LocalRecord]:
        """
        Lists the tenant's records that have not been deposited yet, or whose
        last deposit failed.

        Args:
            tenant_id (str): The tenant whose records are listed.
            publications (bool): If ``True``, every publication version is a
                candidate. Otherwise only the current version of each
                submission is, as article-level deposits describe the article
                as a whole.

        Returns:
            List[LocalRecord]: The depositable records, in storage order.
        """
        return [
            record
            for record in self._records.values()
            if record.tenant_id == tenant_id
            and record.deposit_status in DEPOSITABLE_STATUSES
            and (publications or record.is_current)
        ]


class JsonFileRecordRepository(InMemoryRecordRepository):
    """
    In-memory store persisted to a JSON file after every write.

    The file holds a JSON array of records. It is created on the first save.
    """

    def __init__(self, file: str):
        if not file:
            raise ValueError("Invalid records file")

        self.file = Path(file)
        super().__init__(self._load())

    def _load(self) -> List[LocalRecord]:
        if not self.file.exists():
            logger.info("Records file %s does not exist yet", self.file)
            return []

        with open(self.file, "r", encoding="utf-8") as fh:
            data = json.load(fh)

        return [LocalRecord.model_validate(entry) for entry in data]

    def save(self, record: LocalRecord) -> None:
        super().save(record)
        self.file.parent.mkdir(exist_ok=True, parents=True)
        with open(self.file, "w", encoding="utf-8") as fh:
            json.dump(
                [entry.model_dump(mode="json") for entry in self.all()],
                fh,
                indent=2,
                ensure_ascii=False,
            )
