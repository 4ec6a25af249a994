"""
Activation gate for the lock screen.

The lock only runs for web builds in development mode. Everywhere else the
guarded content is shown unconditionally and no AuthSession is created.
"""

import logging
import os
import sys
from typing import Optional

from . import config
from .auth import AuthSession
from .storage import SecureStorage

logger = logging.getLogger(__name__)


def is_web_platform() -> bool:
    """True when the host platform is a web browser."""
    platform_name = os.environ.get(config.PLATFORM_ENV_VAR, "")
    return platform_name.strip().lower() == config.WEB_PLATFORM_NAME


def is_debug_build() -> bool:
    """True for development builds: HSS_LOCK_DEBUG is set or Python runs with -X dev."""
    flag = os.environ.get(config.DEBUG_ENV_VAR, "")
    return flag.strip().lower() in config.TRUTHY_FLAGS or sys.flags.dev_mode


def is_gate_active(is_web: Optional[bool] = None, debug: Optional[bool] = None) -> bool:
    if is_web is None:
        is_web = is_web_platform()
    if debug is None:
        debug = is_debug_build()
    return bool(is_web and debug)


async def open_session(password: str, secure_storage: Optional[SecureStorage] = None, *,
                       is_web: Optional[bool] = None,
                       debug: Optional[bool] = None) -> Optional[AuthSession]:
    """
    Create an AuthSession and run the startup status check.

    Returns:
        The checked session, or None when the gate is inactive
    """
    if not is_gate_active(is_web, debug):
        logger.debug("Lock screen gate inactive, content is not guarded")
        return None

    session = AuthSession(password, secure_storage)
    await session.check_auth_status()
    return session
