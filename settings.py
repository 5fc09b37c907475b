"""Configuration loading for tenants and local storage.

``config.json`` layout::

    {
        "records_file": "Records/records.json",
        "successful_results_file": "Records/successful_results.csv",
        "failure_results_file": "Records/failed_results.csv",
        "tenants": [
            {"tenant_id": "journal-a", "api_key": "...", "test_mode": true, ...}
        ]
    }

A tenant without an ``api_key`` falls back to the
``INVENIO_RDM_ACCESS_TOKEN`` environment variable.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

import messages
from models.records import TenantSettings
from models.results import Err, Ok, Result
from zenodo_client import ZenodoClient

logger = logging.getLogger("zensync.settings")

ACCESS_TOKEN_ENV = "INVENIO_RDM_ACCESS_TOKEN"


class DepositConfig(BaseModel):
    """
    Parsed ``config.json``.

    Attributes:
        records_file (str): JSON file holding the local records.
        successful_results_file (Optional[str]): CSV file for successful deposits.
        failure_results_file (Optional[str]): CSV file for failed deposits.
        tenants (List[TenantSettings]): Settings of every tenant.
    """

    records_file: str = "Records/records.json"
    successful_results_file: Optional[str] = None
    failure_results_file: Optional[str] = None
    tenants: List[TenantSettings] = []

    def get_tenant(self, tenant_id: str) -> TenantSettings:
        """
        Looks up the settings of a tenant.

        Raises:
            ValueError: If the tenant is not configured.
        """
        for tenant in self.tenants:
            if tenant.tenant_id == tenant_id:
                return tenant
        raise ValueError(f"Unknown tenant: {tenant_id}")

    def registering_tenants(self) -> List[TenantSettings]:
        """
        Tenants whose records are deposited by the scheduled flow: those with
        an API key and automatic registration enabled.
        """
        return [
            tenant
            for tenant in self.tenants
            if tenant.api_key and tenant.automatic_registration
        ]


def default_config_path() -> Path:
    return Path(__file__).parent / "config.json"


def load_config(config_path: Optional[str] = None) -> DepositConfig:
    """Load the deposit configuration from a JSON file.

    Args:
        config_path: Path to the config JSON.  Defaults to ``config.json``
            next to this module.

    Returns:
        Parsed configuration, with API keys filled in from the environment
        where the file leaves them empty.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the file has no ``tenants`` section.
    """
    config_file = Path(config_path) if config_path else default_config_path()
    if not config_file.exists():
        raise FileNotFoundError(
            f"Config not found: {config_file}\n"
            f"Copy config.example.json to config.json and fill in your tenants."
        )

    with open(config_file, "r", encoding="utf-8") as fh:
        config_data: Dict[str, Any] = json.load(fh)

    if "tenants" not in config_data:
        raise ValueError("Running deposits without a valid configuration for tenants")

    config = DepositConfig.model_validate(config_data)

    env_token = os.getenv(ACCESS_TOKEN_ENV, "")
    for tenant in config.tenants:
        if not tenant.api_key and env_token:
            tenant.api_key = env_token

    logger.info("Loaded %d tenant(s) from %s", len(config.tenants), config_file.name)
    return config


def resolve_community_id(
    settings: TenantSettings, client: Optional[ZenodoClient] = None
) -> Result[TenantSettings]:
    """Resolve the tenant's community slug to the community UUID.

    An empty slug clears any previously resolved ID.

    Args:
        settings: The tenant settings; ``community`` holds the slug.
        client: API client. Defaults to one built from ``settings``.

    Returns:
        A copy of the settings with ``community_id`` set, or a
        ``communityIdError`` result if the community cannot be found.
    """
    if not settings.community:
        return Ok(settings.model_copy(update={"community_id": None}))

    client = client or ZenodoClient.from_settings(settings)
    found = client.check_community_exists(settings.community)
    if not found.ok:
        return found
    if found.value is False:
        return Err.of(
            messages.COMMUNITY_ID_ERROR, f"Community not found: {settings.community}"
        )

    logger.info("Community %s resolved to %s", settings.community, found.value)
    return Ok(settings.model_copy(update={"community_id": found.value}))
