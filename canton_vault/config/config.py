"""
Environment-driven configuration with validation.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from canton_vault.infra.ledger_gateway import DEFAULT_BASE_URL, DEFAULT_SUBMIT_PATH, DEFAULT_TIMEOUT
from canton_vault.infra.logging_cfg import LOGGER_NAME
from canton_vault.ledger.contract_mapper import TemplateIds

load_dotenv()


def env_bool(key: str, default: bool) -> bool:
    val = os.getenv(key)
    if val is None or val == "":
        return default
    return val.lower() in {"1", "true", "yes", "y"}


def _float_env(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    return float(raw)


@dataclass(frozen=True)
class Settings:
    ledger_api_url: str
    ledger_access_token: Optional[str]
    ledger_submit_path: str
    ledger_http_timeout: float
    ledger_enabled: bool
    template_vault: str
    template_share_holding: str
    template_holding: str
    demo_seed_path: str
    log_level: str
    log_file: Optional[str]

    def dump(self) -> dict:
        """Settings dict for logging, with the access token redacted."""
        data = self.__dict__.copy()
        if data.get("ledger_access_token"):
            data["ledger_access_token"] = "***"
        return data

    @property
    def templates(self) -> TemplateIds:
        return TemplateIds(
            vault=self.template_vault,
            share_holding=self.template_share_holding,
            holding=self.template_holding,
        )

    @property
    def log_level_value(self) -> int:
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO

    @classmethod
    def load(cls) -> "Settings":
        defaults = TemplateIds()
        cfg = cls(
            ledger_api_url=os.getenv("LEDGER_API_URL", DEFAULT_BASE_URL),
            ledger_access_token=os.getenv("LEDGER_ACCESS_TOKEN") or None,
            ledger_submit_path=os.getenv("LEDGER_SUBMIT_PATH", DEFAULT_SUBMIT_PATH),
            ledger_http_timeout=_float_env("LEDGER_HTTP_TIMEOUT", DEFAULT_TIMEOUT),
            ledger_enabled=env_bool("VAULT_LEDGER_ENABLED", True),
            template_vault=os.getenv("VAULT_TEMPLATE_VAULT", defaults.vault),
            template_share_holding=os.getenv("VAULT_TEMPLATE_SHARE_HOLDING", defaults.share_holding),
            template_holding=os.getenv("VAULT_TEMPLATE_HOLDING", defaults.holding),
            demo_seed_path=os.getenv("VAULT_DEMO_SEED", "configs/demo_seed.yaml"),
            log_level=os.getenv("VAULT_LOG_LEVEL", "INFO"),
            log_file=os.getenv("VAULT_LOG_FILE") or None,
        )
        cfg._validate()
        _log_loaded(cfg)
        return cfg

    def _validate(self) -> None:
        if not self.ledger_api_url.strip():
            raise ValueError("LEDGER_API_URL must not be empty")
        if self.ledger_http_timeout <= 0:
            raise ValueError("LEDGER_HTTP_TIMEOUT must be > 0")
        if not self.ledger_submit_path.strip():
            raise ValueError("LEDGER_SUBMIT_PATH must not be empty")
        if not self.ledger_enabled:
            logging.getLogger(LOGGER_NAME).warning(
                "VAULT_LEDGER_ENABLED=false: running against the in-memory demo store only."
            )


def _log_loaded(cfg: Settings) -> None:
    """Log critical settings once at startup so overrides are obvious."""
    payload = {
        "event": "config_loaded",
        "ledger_api_url": cfg.ledger_api_url,
        "ledger_enabled": cfg.ledger_enabled,
        "ledger_http_timeout": cfg.ledger_http_timeout,
        "token_set": bool(cfg.ledger_access_token),
        "demo_seed_path": cfg.demo_seed_path,
    }
    logging.getLogger(LOGGER_NAME).info(json.dumps(payload))
