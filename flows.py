"""Flows to deposit local publications to Zenodo."""

from typing import List, Optional

from prefect import flow, get_run_logger

from batch import BatchReport
from models.records import TenantSettings
from settings import DepositConfig

from tasks import (
    load_deposit_config,
    resolve_tenant_community,
    select_records,
    deposit_records_batch,
    build_persisted_results,
    save_result_csv,
    log_notifications,
    export_records_json,
    mark_records_registered,
    withdraw_record_draft,
)


@flow(name="deposit-records")
def deposit_records(
    tenant_id: str,
    local_ids: Optional[List[str]] = None,
    config_path: Optional[str] = None,
) -> BatchReport:
    """
    Deposits records of a tenant to Zenodo.

    Args:
        tenant_id (str): The tenant owning the records.
        local_ids (Optional[List[str]]): The records to deposit. If not provided,
            every record of the tenant that was never deposited, or whose last
            deposit failed, is deposited.
        config_path (Optional[str]): The config file. Defaults to ``config.json``.

    Returns:
        BatchReport: The outcome of the batch.
    """
    config: DepositConfig = load_deposit_config(config_path=config_path)
    settings = config.get_tenant(tenant_id)

    return deposit_tenant(config=config, settings=settings, local_ids=local_ids)


@flow(name="send-deposits")
def send_deposits(config_path: Optional[str] = None) -> None:
    """
    Deposits the pending records of every tenant with an API key and
    automatic registration enabled.

    Args:
        config_path (Optional[str]): The config file. Defaults to ``config.json``.

    Returns:
        None
    """
    logger = get_run_logger()

    config: DepositConfig = load_deposit_config(config_path=config_path)
    tenants = config.registering_tenants()

    if not tenants:
        logger.info("No tenant has automatic registration enabled")
        return

    for settings in tenants:
        logger.info("Sending deposits of tenant %s", settings.tenant_id)
        try:
            deposit_tenant(config=config, settings=settings)
        except ValueError as exc:
            logger.error("Skipping tenant %s: %s", settings.tenant_id, exc)


@flow
def deposit_tenant(
    config: DepositConfig,
    settings: TenantSettings,
    local_ids: Optional[List[str]] = None,
) -> BatchReport:
    """
    Deposits the selected (or all pending) records of one tenant and saves
    the results.

    Args:
        config (DepositConfig): The deposit configuration.
        settings (TenantSettings): The tenant settings.
        local_ids (Optional[List[str]]): The records to deposit.

    Returns:
        BatchReport: The outcome of the batch.
    """
    logger = get_run_logger()

    settings = resolve_tenant_community(settings=settings)

    selected: List[str] = select_records(
        records_file=config.records_file, settings=settings, local_ids=local_ids
    )

    if not selected:
        logger.info("Nothing to deposit for tenant %s", settings.tenant_id)
        return BatchReport()

    report: BatchReport = deposit_records_batch(
        records_file=config.records_file, settings=settings, local_ids=selected
    )

    log_notifications(report=report)

    results = build_persisted_results(
        records_file=config.records_file, settings=settings, report=report
    )
    for result in results:
        results_file = (
            config.failure_results_file
            if result.error_type
            else config.successful_results_file
        )
        if results_file:
            save_result_csv(file=results_file, result=result)

    return report


@flow(name="export-records")
def export_deposit_metadata(
    tenant_id: str,
    output_file: str,
    local_ids: Optional[List[str]] = None,
    config_path: Optional[str] = None,
) -> int:
    """
    Exports the Zenodo payloads of a tenant's records to a JSON file.

    Args:
        tenant_id (str): The tenant owning the records.
        output_file (str): The JSON file to write.
        local_ids (Optional[List[str]]): The records to export. Defaults to
            the records that would be deposited.
        config_path (Optional[str]): The config file. Defaults to ``config.json``.

    Returns:
        int: The number of exported records.
    """
    config: DepositConfig = load_deposit_config(config_path=config_path)
    settings = config.get_tenant(tenant_id)

    selected: List[str] = select_records(
        records_file=config.records_file, settings=settings, local_ids=local_ids
    )

    return export_records_json(
        records_file=config.records_file,
        settings=settings,
        local_ids=selected,
        output_file=output_file,
    )


@flow(name="mark-registered")
def mark_records(
    tenant_id: str, local_ids: List[str], config_path: Optional[str] = None
) -> int:
    """
    Marks records as registered without depositing them, e.g. records that
    were deposited to Zenodo by hand.

    Args:
        tenant_id (str): The tenant owning the records.
        local_ids (List[str]): The records to mark.
        config_path (Optional[str]): The config file. Defaults to ``config.json``.

    Returns:
        int: The number of records marked.
    """
    if not local_ids:
        raise ValueError("No records selected")

    config: DepositConfig = load_deposit_config(config_path=config_path)
    settings = config.get_tenant(tenant_id)

    selected: List[str] = select_records(
        records_file=config.records_file, settings=settings, local_ids=local_ids
    )

    return mark_records_registered(records_file=config.records_file, local_ids=selected)


@flow(name="withdraw-draft")
def withdraw_draft(
    tenant_id: str, local_id: str, config_path: Optional[str] = None
) -> None:
    """
    Deletes the unpublished Zenodo draft of a record and clears its remote ID.

    Args:
        tenant_id (str): The tenant owning the record.
        local_id (str): The record whose draft is deleted.
        config_path (Optional[str]): The config file. Defaults to ``config.json``.

    Returns:
        None
    """
    config: DepositConfig = load_deposit_config(config_path=config_path)
    settings = config.get_tenant(tenant_id)

    withdraw_record_draft(
        records_file=config.records_file, settings=settings, local_id=local_id
    )
