# ======================================================================
#  File......: settings.py
#  Purpose...: Probe configuration (SAP logon + batch table layout) from an ini file.
#  Version...: 0.1.0
#  Date......: 2026-10-19
#  Author....: Edwin Rodriguez (Arthrex IT SAP COE)
#
#  Lookup order for the ini file:
#    1. --config on the command line
#    2. $CHECK_ERP_BATCH_CONFIG
#    3. check_erp_batch.ini next to this module (optional)
# ======================================================================

from __future__ import annotations

import configparser
import logging
import os
from dataclasses import dataclass, field, fields
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------

HERE = os.path.abspath(os.path.dirname(__file__))
DEFAULT_CONFIG_PATH = os.path.join(HERE, "check_erp_batch.ini")
CONFIG_ENV_VAR = "CHECK_ERP_BATCH_CONFIG"

TIME_FORMATS = ("seconds", "hhmmss")


class SettingsError(RuntimeError):
    """Raised when the probe configuration can't be read or is invalid."""


@dataclass
class SapSettings:
    ashost: str = ""
    sysnr: str = "00"
    client: str = "100"
    lang: str = "EN"

    # Basic logon. Leave empty to use SNC single sign-on.
    user: str = ""
    passwd: str = ""

    snc_partnername: str = ""
    snc_myname: str = ""
    snc_lib: str = ""
    snc_qop: str = "9"

    @property
    def uses_password(self) -> bool:
        return bool(self.user and self.passwd)


@dataclass
class BatchTableSettings:
    classid_function: str = "Z_BATCH_CLASSNAME2ID"
    table: str = "ZBATCH"
    class_field: str = "CLASSNUM"
    status_field: str = "STATUS"
    start_date_field: str = "STARTDATE"
    start_time_field: str = "STARTTIME"
    end_date_field: str = "ENDDATE"
    end_time_field: str = "ENDTIME"
    # seconds since midnight, or SAP TIMS style HHMMSS
    time_format: str = "seconds"


@dataclass
class ProbeSettings:
    sap: SapSettings = field(default_factory=SapSettings)
    batch: BatchTableSettings = field(default_factory=BatchTableSettings)
    source_path: Optional[str] = None


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _resolve_path(path: Optional[str]) -> Tuple[str, bool]:
    """Return (path, required). Only the default location may be missing."""
    if path:
        return path, True
    env_path = (os.environ.get(CONFIG_ENV_VAR) or "").strip()
    if env_path:
        return env_path, True
    return DEFAULT_CONFIG_PATH, False


def _apply_section(cfg: configparser.ConfigParser, section: str, target) -> None:
    if section not in cfg:
        return
    known = {f.name for f in fields(target)}
    for key, value in cfg[section].items():
        if key not in known:
            logger.warning("Ignoring unknown setting [%s] %s", section, key)
            continue
        setattr(target, key, value.strip())


# ---------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------

def load_settings(path: Optional[str] = None) -> ProbeSettings:
    """
    Load probe settings.

    Missing sections/keys fall back to the dataclass defaults. A config file
    that was asked for explicitly (argument or env var) must exist.
    """
    path, required = _resolve_path(path)
    settings = ProbeSettings()

    if not os.path.exists(path):
        if required:
            raise SettingsError(f"Config file '{path}' not found")
        logger.debug("No config file at %s; using defaults", path)
        return settings

    cfg = configparser.ConfigParser(interpolation=None)
    try:
        cfg.read(path, encoding="utf-8")
    except configparser.Error as exc:
        raise SettingsError(f"Unable to parse config file '{path}'") from exc

    _apply_section(cfg, "SAP", settings.sap)
    _apply_section(cfg, "BATCH", settings.batch)
    settings.source_path = path

    settings.batch.time_format = settings.batch.time_format.lower()
    if settings.batch.time_format not in TIME_FORMATS:
        raise SettingsError(
            f"Invalid [BATCH] time_format '{settings.batch.time_format}' "
            f"(expected one of: {', '.join(TIME_FORMATS)})"
        )

    logger.debug("Loaded settings from %s", path)
    return settings
