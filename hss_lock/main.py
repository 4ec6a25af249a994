"""
Console front end for the HSS lock screen.

Reads the credential from HSS_LOCK_PASSWORD and keeps prompting until the
session is unlocked. Only runs when the activation gate is active, unless
--force is given.
"""

import argparse
import asyncio
import getpass
import logging
import os
import sys
from typing import Callable, List, Optional

from . import config
from .auth import AuthSession, AuthState, AuthStatus
from .gate import is_gate_active
from .storage import EncryptedFileStorage, SecureStorage

logger = logging.getLogger(__name__)


class LockScreenApp:
    """Terminal lock screen driven by an AuthSession."""

    def __init__(self, password: str, storage: SecureStorage,
                 prompt: Optional[Callable[[str], str]] = None,
                 out=None):
        self.session = AuthSession(password, storage)
        self.prompt = prompt or getpass.getpass
        self.out = out or sys.stdout

    def render(self, state: AuthState) -> None:
        """Print what the user needs to know about a new state."""
        if state.status == AuthStatus.LOADING:
            print("Checking authentication...", file=self.out)
        elif state.status == AuthStatus.AUTHENTICATED:
            print("Unlocked.", file=self.out)
        elif state.status == AuthStatus.UNAUTHENTICATED and state.error_message:
            print(state.error_message, file=self.out)

    async def unlock(self) -> None:
        """Check the stored unlock, then prompt until the password is accepted."""
        await self.session.check_auth_status()
        while self.session.state.status != AuthStatus.AUTHENTICATED:
            # Prompt on the loop thread, the session is idle while waiting for input
            password = self.prompt(config.PASSWORD_PROMPT)
            await self.session.authenticate(password)

    async def logout(self) -> None:
        await self.session.clear_auth()
        print("Logged out.", file=self.out)

    async def run(self, logout: bool = False) -> int:
        unsubscribe = self.session.subscribe(self.render)
        try:
            if logout:
                await self.logout()
            else:
                await self.unlock()
            return 0
        finally:
            unsubscribe()
            self.session.close()


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="hss-lock", description=config.APP_NAME)
    parser.add_argument("--store", help="Path of the encrypted store file")
    parser.add_argument("--logout", action="store_true", help="Forget the stored unlock and exit")
    parser.add_argument("--force", action="store_true", help="Run even when the gate is inactive")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {config.APP_VERSION}")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format=config.LOG_FORMAT)

    if not args.force and not is_gate_active():
        print("Lock screen inactive: not a web development build.")
        return 0

    password = os.environ.get(config.PASSWORD_ENV_VAR)
    if not password:
        print(f"Set {config.PASSWORD_ENV_VAR} to the lock screen password.", file=sys.stderr)
        return config.EXIT_MISSING_PASSWORD

    print(config.APP_DISCLAIMER)
    storage = EncryptedFileStorage(args.store)
    logger.debug(f"Using secure store at {storage.filepath}")
    app = LockScreenApp(password, storage)
    try:
        return asyncio.run(app.run(logout=args.logout))
    except (KeyboardInterrupt, EOFError):
        print()
        return config.EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
