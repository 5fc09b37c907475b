"""Tasks to deposit local publications to Zenodo."""

import csv
from pathlib import Path
from typing import List, Optional

from prefect import task, get_run_logger

import messages
from batch import BatchReport, BatchRunner, export_records, mark_registered
from deposit import DepositOrchestrator
from models.records import LocalRecord, TenantSettings
from models.results import PersistedResult
from repository import JsonFileRecordRepository
from settings import DepositConfig, load_config, resolve_community_id
from zenodo_client import base_url_for


@task
def load_deposit_config(config_path: Optional[str] = None) -> DepositConfig:
    """
    Loads the tenants and storage locations from ``config.json``.

    Args:
        config_path (Optional[str]): The config file. Defaults to the
            ``config.json`` next to the scripts.

    Returns:
        DepositConfig: The parsed configuration.
    """
    logger = get_run_logger()

    config = load_config(config_path)
    logger.info(
        "Loaded %d tenant(s), records file: %s",
        len(config.tenants),
        config.records_file,
    )
    return config


@task
def resolve_tenant_community(settings: TenantSettings) -> TenantSettings:
    """
    Resolves the community slug of a tenant to its Zenodo community ID.

    Tenants without a community slug, or whose ID is already known, are
    returned unchanged.

    Args:
        settings (TenantSettings): The tenant settings.

    Raises:
        ValueError: If the community cannot be resolved.

    Returns:
        TenantSettings: The settings with ``community_id`` set.
    """
    if not settings.community or settings.community_id:
        return settings

    logger = get_run_logger()

    result = resolve_community_id(settings)
    if not result.ok:
        error = result.errors[0]
        raise ValueError(messages.render(error.message_key, error.param))

    logger.info(
        "Tenant %s deposits to community %s",
        settings.tenant_id,
        result.value.community_id,
    )
    return result.value


@task
def select_records(
    records_file: str,
    settings: TenantSettings,
    local_ids: Optional[List[str]] = None,
) -> List[str]:
    """
    Selects the records of a tenant to deposit.

    Args:
        records_file (str): The JSON file holding the local records.
        settings (TenantSettings): The tenant settings.
        local_ids (Optional[List[str]]): Explicitly selected records. If not
            provided, every depositable record of the tenant is selected.

    Raises:
        ValueError: If a selected record does not exist or belongs to
            another tenant.

    Returns:
        List[str]: The local IDs of the selected records.
    """
    logger = get_run_logger()

    repository = JsonFileRecordRepository(records_file)

    if local_ids:
        unknown = [
            local_id
            for local_id in local_ids
            if not repository.get(local_id)
            or repository.get(local_id).tenant_id != settings.tenant_id
        ]
        if unknown:
            raise ValueError(
                f"Unable to find records of tenant {settings.tenant_id}: {unknown}"
            )
        selected = list(local_ids)
    else:
        records = repository.find_depositable(
            settings.tenant_id, publications=settings.doi_versioning
        )
        selected = [record.local_id for record in records]

    logger.info("Selected %d record(s) of tenant %s", len(selected), settings.tenant_id)

    return selected


@task
def deposit_records_batch(
    records_file: str, settings: TenantSettings, local_ids: List[str]
) -> BatchReport:
    """
    Deposits the selected records of a tenant one after the other.

    Args:
        records_file (str): The JSON file holding the local records.
        settings (TenantSettings): The tenant settings.
        local_ids (List[str]): The records to deposit.

    Returns:
        BatchReport: The number of deposited records and the errors of the
            failed ones.
    """
    logger = get_run_logger()

    repository = JsonFileRecordRepository(records_file)
    records = [repository.get(local_id) for local_id in local_ids]

    runner = BatchRunner(DepositOrchestrator(repository))
    report = runner.run_batch([record for record in records if record], settings)

    logger.info(
        "Tenant %s: %d deposited, %d failed",
        settings.tenant_id,
        report.success_count,
        len(report.errors),
    )

    return report


@task
def save_result_csv(file: str, result: PersistedResult) -> None:
    """
    Saves a deposit result to a local CSV file.

    Args:
        file (str): The CSV file to add the result.
        result (PersistedResult): The deposit result.

    Returns:
        None
    """

    logger = get_run_logger()

    if not file:
        raise ValueError("Invalid file")

    output_file = Path(file)
    new_file = False

    if not output_file.exists():
        logger.info("Creating CSV file %s", file)
        new_file = True
        output_file.parent.mkdir(exist_ok=True, parents=True)

    result_dict = result.model_dump()
    headers = result_dict.keys()

    with open(file, mode="a", encoding="utf-8", newline="") as csv_file:
        writer = csv.DictWriter(csv_file, fieldnames=headers)
        if new_file:
            writer.writeheader()
        writer.writerow(result_dict)


@task
def build_persisted_results(
    records_file: str, settings: TenantSettings, report: BatchReport
) -> List[PersistedResult]:
    """
    Creates one result row per record of a batch, successful records first.

    Args:
        records_file (str): The JSON file holding the local records.
        settings (TenantSettings): The tenant settings.
        report (BatchReport): The batch outcome.

    Returns:
        List[PersistedResult]: The result rows.
    """
    repository = JsonFileRecordRepository(records_file)
    base_url = base_url_for(settings.test_mode)

    results = []
    for local_id in report.deposited:
        result = PersistedResult(local_id=local_id, tenant_id=settings.tenant_id)
        record = repository.get(local_id)
        if record:
            result.update(record, base_url)
        results.append(result)

    for error_report in report.errors:
        result = PersistedResult(
            local_id=error_report.local_id, tenant_id=settings.tenant_id
        )
        record = repository.get(error_report.local_id)
        if record:
            result.update(record, base_url)
        result.set_errors(error_report.errors)
        results.append(result)

    return results


@task
def log_notifications(report: BatchReport) -> None:
    """
    Logs the outcome of a batch: a warning per error entry, or a single
    success message.
    """
    logger = get_run_logger()

    for notification in report.notifications():
        if notification.kind == "error":
            logger.warning(notification.text())
        else:
            logger.info(notification.text())


@task
def export_records_json(
    records_file: str,
    settings: TenantSettings,
    local_ids: List[str],
    output_file: str,
) -> int:
    """
    Writes the Zenodo payloads of the selected records to a JSON file.

    Args:
        records_file (str): The JSON file holding the local records.
        settings (TenantSettings): The tenant settings.
        local_ids (List[str]): The records to export.
        output_file (str): The JSON file to write.

    Returns:
        int: The number of exported records.
    """
    logger = get_run_logger()

    repository = JsonFileRecordRepository(records_file)
    records: List[LocalRecord] = [
        repository.get(local_id) for local_id in local_ids if repository.get(local_id)
    ]

    output = Path(output_file)
    output.parent.mkdir(exist_ok=True, parents=True)
    output.write_text(export_records(records, settings), encoding="utf-8")

    logger.info("Exported %d record(s) to %s", len(records), output_file)

    return len(records)


@task
def mark_records_registered(records_file: str, local_ids: List[str]) -> int:
    """
    Marks the selected records as registered without depositing them.

    Returns:
        int: The number of records marked.
    """
    logger = get_run_logger()

    repository = JsonFileRecordRepository(records_file)
    records = [repository.get(local_id) for local_id in local_ids]
    count = mark_registered([record for record in records if record], repository)

    logger.info("Marked %d record(s) as registered", count)

    return count


@task
def withdraw_record_draft(
    records_file: str, settings: TenantSettings, local_id: str
) -> None:
    """
    Deletes the unpublished Zenodo draft of a record.

    Raises:
        ValueError: If the record does not exist or the draft cannot be deleted.
    """
    logger = get_run_logger()

    repository = JsonFileRecordRepository(records_file)
    record = repository.get(local_id)
    if not record:
        raise ValueError(f"Unknown record: {local_id}")

    result = DepositOrchestrator(repository).delete_draft(record, settings)
    if not result.ok:
        error = result.errors[0]
        raise ValueError(messages.render(error.message_key, error.param))

    logger.info("Withdrew the Zenodo draft of record %s", local_id)
