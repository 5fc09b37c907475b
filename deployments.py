"""Creates the daily deployment sending pending deposits to Zenodo."""

# pylint: disable=invalid-name

import json
from pathlib import Path

from flows import send_deposits

# every day at 03:00
SEND_DEPOSITS_CRON = "0 3 * * *"

if __name__ == "__main__":
    current_dir = Path(__file__).parent
    config_path = current_dir / "config.json"

    with open(config_path, "r", encoding="utf-8") as file:
        config_data = json.load(file)

        if "tenants" not in config_data:
            raise ValueError(
                "Running deployment without a valid configuration for tenants"
            )

        send_deposits.serve(
            name="send-deposits-deployment",
            cron=config_data.get("send_deposits_cron", SEND_DEPOSITS_CRON),
            parameters={
                # the config file read on every run, so tenant changes apply
                # without recreating the deployment
                "config_path": str(config_path),
            },
        )
