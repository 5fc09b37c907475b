#!/usr/bin/env python3
"""Standalone deposit runner.

Deposits local publications to Zenodo without a Prefect server, using the
same configuration as the flows.

Usage:
    python standalone_deposit.py [--config config.json] deposit TENANT [--ids ID ...]
    python standalone_deposit.py send
    python standalone_deposit.py export TENANT OUTPUT [--ids ID ...]
    python standalone_deposit.py mark-registered TENANT --ids ID ...
    python standalone_deposit.py delete-draft TENANT ID
    python standalone_deposit.py resolve-community TENANT
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import messages
from batch import BatchReport, BatchRunner, export_records, mark_registered
from deposit import DepositOrchestrator
from models.records import LocalRecord, TenantSettings
from repository import JsonFileRecordRepository
from settings import DepositConfig, load_config, resolve_community_id

logger = logging.getLogger("zensync")


# ===================================================================
#  Commands
# ===================================================================


def _select(
    repository: JsonFileRecordRepository,
    settings: TenantSettings,
    local_ids: Optional[List[str]],
) -> List[LocalRecord]:
    if not local_ids:
        return repository.find_depositable(
            settings.tenant_id, publications=settings.doi_versioning
        )

    records = []
    for local_id in local_ids:
        record = repository.get(local_id)
        if not record or record.tenant_id != settings.tenant_id:
            logger.warning("Skipping unknown record %s", local_id)
            continue
        records.append(record)
    return records


def _resolve(settings: TenantSettings) -> Optional[TenantSettings]:
    if not settings.community or settings.community_id:
        return settings

    result = resolve_community_id(settings)
    if not result.ok:
        for error in result.errors:
            logger.error(messages.render(error.message_key, error.param))
        return None
    return result.value


def _log_report(report: BatchReport) -> None:
    for notification in report.notifications():
        if notification.kind == "error":
            logger.warning(notification.text())
        else:
            logger.info(notification.text())


def deposit_tenant(
    config: DepositConfig,
    settings: TenantSettings,
    local_ids: Optional[List[str]] = None,
) -> Optional[BatchReport]:
    """
    Deposits the selected (or all pending) records of a tenant.

    Returns:
        The batch report, or ``None`` if the tenant's community could not
        be resolved.
    """
    settings = _resolve(settings)
    if settings is None:
        return None

    repository = JsonFileRecordRepository(config.records_file)
    records = _select(repository, settings, local_ids)

    logger.info("=" * 70)
    logger.info("Tenant %s: %d record(s) to deposit", settings.tenant_id, len(records))
    logger.info("Sandbox: %s", settings.test_mode)
    logger.info("Auto-publish: %s", settings.automatic_publishing)
    logger.info("Community: %s", settings.community or "-")
    logger.info("=" * 70)

    report = BatchRunner(DepositOrchestrator(repository)).run_batch(records, settings)
    _log_report(report)
    return report


def send_all(config: DepositConfig) -> bool:
    """
    Deposits the pending records of every tenant with automatic registration.

    Returns:
        Whether every record was deposited.
    """
    successful = True
    for settings in config.registering_tenants():
        report = deposit_tenant(config, settings)
        if report is None or not report.successful:
            successful = False
    return successful


def export_tenant(
    config: DepositConfig,
    settings: TenantSettings,
    output_file: str,
    local_ids: Optional[List[str]] = None,
) -> int:
    """Writes the Zenodo payloads of a tenant's records to a JSON file."""
    repository = JsonFileRecordRepository(config.records_file)
    records = _select(repository, settings, local_ids)

    output = Path(output_file)
    output.parent.mkdir(exist_ok=True, parents=True)
    output.write_text(export_records(records, settings), encoding="utf-8")

    logger.info("Exported %d record(s) to %s", len(records), output_file)
    return len(records)


# ===================================================================
#  Entry point
# ===================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Zenodo deposit runner for local publications"
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to configuration file (default: config.json next to this script)",
    )
    parser.add_argument(
        "--log-file", type=str, default="zensync.log",
        help="Log file (default: zensync.log)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    deposit_cmd = commands.add_parser("deposit", help="Deposit records of a tenant")
    deposit_cmd.add_argument("tenant")
    deposit_cmd.add_argument("--ids", nargs="+", default=None)

    commands.add_parser(
        "send", help="Deposit pending records of every automatically registering tenant"
    )

    export_cmd = commands.add_parser("export", help="Export Zenodo payloads as JSON")
    export_cmd.add_argument("tenant")
    export_cmd.add_argument("output")
    export_cmd.add_argument("--ids", nargs="+", default=None)

    mark_cmd = commands.add_parser(
        "mark-registered", help="Mark records as registered without depositing"
    )
    mark_cmd.add_argument("tenant")
    mark_cmd.add_argument("--ids", nargs="+", required=True)

    delete_cmd = commands.add_parser(
        "delete-draft", help="Delete the unpublished Zenodo draft of a record"
    )
    delete_cmd.add_argument("tenant")
    delete_cmd.add_argument("local_id")

    resolve_cmd = commands.add_parser(
        "resolve-community", help="Look up the Zenodo community ID of a tenant"
    )
    resolve_cmd.add_argument("tenant")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point for standalone deposits."""
    args = build_parser().parse_args(argv)

    # --- Configure logging ---
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(args.log_file),
            logging.StreamHandler(sys.stdout),
        ],
    )

    # --- Load configuration ---
    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    if args.command == "send":
        return 0 if send_all(config) else 1

    try:
        settings = config.get_tenant(args.tenant)
    except ValueError as exc:
        logger.error("%s", exc)
        return 1

    if args.command == "deposit":
        report = deposit_tenant(config, settings, args.ids)
        return 0 if report is not None and report.successful else 1

    if args.command == "export":
        export_tenant(config, settings, args.output, args.ids)
        return 0

    repository = JsonFileRecordRepository(config.records_file)

    if args.command == "mark-registered":
        records = _select(repository, settings, args.ids)
        count = mark_registered(records, repository)
        logger.info("Marked %d record(s) as registered", count)
        return 0

    if args.command == "delete-draft":
        record = repository.get(args.local_id)
        if not record:
            logger.error("Unknown record: %s", args.local_id)
            return 1
        result = DepositOrchestrator(repository).delete_draft(record, settings)
        if not result.ok:
            for error in result.errors:
                logger.error(messages.render(error.message_key, error.param))
            return 1
        logger.info("Deleted the Zenodo draft of record %s", args.local_id)
        return 0

    # resolve-community
    resolved = _resolve(settings.model_copy(update={"community_id": None}))
    if resolved is None:
        return 1
    logger.info("Community %s: %s", settings.community, resolved.community_id)
    return 0


if __name__ == "__main__":
    sys.exit(main())
