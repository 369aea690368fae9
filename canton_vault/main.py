"""
Entry point wiring all components.

`build_service` is what an HTTP layer calls once at startup. Running the
module directly resolves the mode and logs a summary of every vault.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Optional

import httpx

from canton_vault.config.config import Settings
from canton_vault.config.seed import load_demo_seed
from canton_vault.core.errors import VaultError
from canton_vault.infra.ledger_gateway import LedgerGateway
from canton_vault.infra.logging_cfg import LOGGER_NAME, build_logger
from canton_vault.monitoring.metrics import VaultMetrics
from canton_vault.service.vault_service import VaultService
from canton_vault.state.demo_store import DemoStateStore


def build_service(
    cfg: Settings,
    client: Optional[httpx.AsyncClient] = None,
    metrics: Optional[VaultMetrics] = None,
) -> VaultService:
    gateway = LedgerGateway(
        cfg.ledger_api_url,
        access_token=cfg.ledger_access_token,
        timeout=cfg.ledger_http_timeout,
        submit_path=cfg.ledger_submit_path,
        client=client,
    )
    store = DemoStateStore(load_demo_seed(cfg.demo_seed_path))
    return VaultService(
        gateway,
        store,
        templates=cfg.templates,
        metrics=metrics,
        ledger_enabled=cfg.ledger_enabled,
    )


async def main() -> int:
    cfg = Settings.load()
    log = build_logger(LOGGER_NAME, level=cfg.log_level_value, file_path=cfg.log_file)
    log.debug(json.dumps({"event": "settings", **cfg.dump()}))

    service = build_service(cfg, metrics=VaultMetrics())
    try:
        vaults = await service.list_vaults()
        log.info(json.dumps({"event": "startup", "mode": service.mode, "vaults": len(vaults)}))
        for vault in vaults:
            log.info(json.dumps({"event": "vault_summary", **vault.to_dict()}))
    except VaultError as exc:
        log.error(json.dumps({"event": "startup_failed", **exc.to_dict()}))
        return 1
    finally:
        await service.gateway.close()
    return 0


def run() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logging.getLogger(LOGGER_NAME).info("Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    run()
