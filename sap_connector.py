# ======================================================================
#  File......: sap_connector.py
#  Purpose...: SAP RFC connector for the batch probe (basic logon or SNC SSO)
#  Version...: 2.0.0
#  Date......: 2026-10-19
#  Author....: Edwin Rodriguez (Arthrex IT SAP COE)
#
#  Goals:
#    - All connection details come from settings.py (no hardcoded hosts)
#    - user/passwd in the ini -> plain logon, otherwise SNC SSO
#    - Auto-detect sapcrypto from common Secure Login Client installs
#    - Never print: stdout belongs to the Nagios status line
# ======================================================================

from __future__ import annotations

import getpass
import logging
import os
from typing import Any, Dict, List

from pyrfc import CommunicationError, Connection, LogonError

from settings import SapSettings

logger = logging.getLogger(__name__)


class SapConnectionError(RuntimeError):
    """Raised when no RFC connection could be opened."""


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _detect_user_snc() -> str:
    """
    Determine SNC myname for the current OS user.

    Keep this aligned with your SLC/SNC setup. If your environment
    requires a fully-qualified SNC subject, set snc_myname in the ini.
    """
    return f"p:CN={getpass.getuser()}"


def _candidate_crypto_libs() -> List[str]:
    """
    Return a prioritized list of candidate sapcrypto library paths.
    64-bit Windows installs first, then the usual Linux locations.
    """
    return [
        r"C:\Program Files\SAP\FrontEnd\SecureLogin\lib\sapcrypto.dll",
        r"C:\Program Files\SAP\FrontEnd\SecureLoginClient\lib\sapcrypto.dll",
        r"C:\Program Files\SAP\NW RFC SDK\lib\sapcrypto.dll",
        r"C:\Program Files (x86)\SAP\FrontEnd\SecureLogin\lib\sapcrypto.dll",
        r"C:\Program Files (x86)\SAP\FrontEnd\SecureLoginClient\lib\sapcrypto.dll",
        "/usr/sap/SecureLoginClient/lib/libsapcrypto.so",
        "/opt/sap/SecureLoginClient/lib/libsapcrypto.so",
        "/usr/local/sap/nwrfcsdk/lib/libsapcrypto.so",
    ]


def _find_crypto_libs(settings: SapSettings) -> List[str]:
    """An explicitly configured snc_lib wins; otherwise whatever exists on disk."""
    if settings.snc_lib:
        return [settings.snc_lib]
    return [p for p in _candidate_crypto_libs() if os.path.exists(p)]


def _base_params(settings: SapSettings) -> Dict[str, Any]:
    return dict(
        ashost=settings.ashost,
        sysnr=settings.sysnr,
        client=settings.client,
        lang=settings.lang,
    )


# ---------------------------------------------------------------------
# Public connector
# ---------------------------------------------------------------------

def connect(settings: SapSettings) -> Connection:
    """
    Open an RFC connection to the ERP system.

    Key behavior:
      - user + passwd configured -> one basic logon attempt
      - otherwise SNC SSO; each detected sapcrypto library is tried once,
        in order, until one initializes

    Returns:
      pyrfc.Connection

    Raises:
      SapConnectionError chained to the last RFC error
    """
    if not settings.ashost:
        raise SapConnectionError("No SAP application server configured ([SAP] ashost)")

    if settings.uses_password:
        logger.info("Connecting to %s (client %s) as %s ...",
                    settings.ashost, settings.client, settings.user)
        try:
            return Connection(user=settings.user, passwd=settings.passwd, **_base_params(settings))
        except (CommunicationError, LogonError) as e:
            raise SapConnectionError(f"Unable to log on to {settings.ashost}") from e

    if not settings.snc_partnername:
        raise SapConnectionError(
            "No user/passwd and no snc_partnername configured; cannot log on to SAP"
        )

    crypto_libs = _find_crypto_libs(settings)
    if not crypto_libs:
        raise SapConnectionError(
            "No sapcrypto library found in common Secure Login Client locations. "
            "Install SAP Secure Login Client or set [SAP] snc_lib."
        )

    snc_myname = settings.snc_myname or _detect_user_snc()
    last_error = None

    for snc_lib in crypto_libs:
        params = _base_params(settings)
        params.update(
            snc_mode="1",
            snc_qop=settings.snc_qop,
            snc_lib=snc_lib,
            snc_partnername=settings.snc_partnername,
            snc_myname=snc_myname,
        )

        logger.info("Connecting to %s (client %s) via SSO as %s ...",
                    settings.ashost, settings.client, snc_myname)
        logger.debug("Trying SNC library: %s", snc_lib)

        try:
            conn = Connection(**params)
            logger.info("SAP SSO connection established.")
            return conn

        except CommunicationError as e:
            last_error = e
            msg = str(e)
            if "SNCERR_INIT" in msg or "SncPDLInit" in msg:
                logger.warning("SNC init failed for %s; trying next candidate", snc_lib)
            else:
                logger.warning("RFC CommunicationError with %s; trying next candidate", snc_lib)

        except LogonError as e:
            last_error = e
            logger.warning("SAP LogonError with %s; trying next candidate", snc_lib)

    raise SapConnectionError(
        f"Unable to establish SAP SSO connection to {settings.ashost}"
    ) from last_error
