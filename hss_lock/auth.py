"""
Authentication state machine for the lock screen.

An AuthSession decides on startup whether a previous unlock is still fresh,
checks submitted passwords and remembers successful unlocks in a SecureStorage.
Consumers never see exceptions, only AuthState values, which they can read from
``AuthSession.state``, receive through ``subscribe`` callbacks or iterate with
``stream()``.
"""

import asyncio
import datetime
import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Callable, ClassVar, List, Optional, Union

from . import config
from .crypto import CryptoManager
from .storage import EncryptedFileStorage, SecureStorage

logger = logging.getLogger(__name__)


class AuthStatus(Enum):
    """Tag shared by every AuthState variant."""
    INITIAL = "initial"
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


@dataclass(frozen=True)
class Initial:
    """No status check has run yet."""
    status: ClassVar[AuthStatus] = AuthStatus.INITIAL


@dataclass(frozen=True)
class Loading:
    """A status check is in flight."""
    status: ClassVar[AuthStatus] = AuthStatus.LOADING


@dataclass(frozen=True)
class Authenticated:
    """The password was accepted, or a recent unlock was found."""
    status: ClassVar[AuthStatus] = AuthStatus.AUTHENTICATED


@dataclass(frozen=True)
class Unauthenticated:
    """
    The user has to enter the password.
    error_message is None for a plain prompt, set when something needs explaining.
    """
    error_message: Optional[str] = None
    status: ClassVar[AuthStatus] = AuthStatus.UNAUTHENTICATED


AuthState = Union[Initial, Loading, Authenticated, Unauthenticated]
StateListener = Callable[[AuthState], None]

_STREAM_END = object()


def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def parse_timestamp(value: str) -> Optional[datetime.datetime]:
    """
    Parse an ISO-8601 instant, returning None when it isn't one.
    Naive values are taken as local time.
    """
    if value.endswith(('Z', 'z')):
        value = value[:-1] + '+00:00'
    try:
        timestamp = datetime.datetime.fromisoformat(value)
    except ValueError:
        return None
    if timestamp.tzinfo is None:
        timestamp = timestamp.astimezone()
    return timestamp


class StateStream:
    """Async iterator over the states an AuthSession emits, see AuthSession.stream()."""

    def __init__(self, session: "AuthSession", queue: asyncio.Queue):
        self._session = session
        self._queue = queue
        self._done = False

    def __aiter__(self) -> AsyncIterator[AuthState]:
        return self

    async def __anext__(self) -> AuthState:
        if self._done:
            raise StopAsyncIteration
        state = await self._queue.get()
        if state is _STREAM_END:
            self.close()
            raise StopAsyncIteration
        return state

    def close(self) -> None:
        """Stop receiving states from the session."""
        self._done = True
        self._session._discard(self._queue)


class AuthSession:
    """Manages the lock screen authentication state and its persisted timestamp."""

    def __init__(self, password: str, secure_storage: Optional[SecureStorage] = None, *,
                 max_auth_days: int = config.MAX_AUTH_DAYS,
                 storage_key: str = config.AUTH_TIMESTAMP_KEY,
                 clock: Optional[Callable[[], datetime.datetime]] = None):
        """
        Args:
            password: The credential submitted passwords are compared against
            secure_storage: Store for the auth timestamp, EncryptedFileStorage() if omitted
            max_auth_days: Whole days a stored unlock stays valid
            storage_key: Key the timestamp is stored under
            clock: Returns the current timezone-aware instant
        """
        if max_auth_days < 0:
            raise ValueError("max_auth_days must be non-negative")
        self._password = password
        self._storage = secure_storage if secure_storage is not None else EncryptedFileStorage()
        self._max_auth_days = max_auth_days
        self._storage_key = storage_key
        self._clock = clock or _utc_now
        self.crypto = CryptoManager()

        self._state: AuthState = Initial()
        self._listeners: List[StateListener] = []
        self._queues: List[asyncio.Queue] = []
        self._closed = False

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def is_closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Call listener with every state emitted from now on.
        Returns a function that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def stream(self) -> "StateStream":
        """
        Async iterator over every state emitted after this call, ends on close().
        Iterate it to the end or call its close(), otherwise it keeps buffering states.
        """
        queue: asyncio.Queue = asyncio.Queue()
        if self._closed:
            queue.put_nowait(_STREAM_END)
        else:
            self._queues.append(queue)
        return StateStream(self, queue)

    def _discard(self, queue: asyncio.Queue) -> None:
        if queue in self._queues:
            self._queues.remove(queue)

    def close(self) -> None:
        """End all streams and drop listeners. Later operations emit nothing."""
        if self._closed:
            return
        self._closed = True
        self._listeners.clear()
        for queue in self._queues:
            queue.put_nowait(_STREAM_END)
        self._queues = []

    def _emit(self, state: AuthState) -> None:
        if self._closed:
            logger.warning(f"Ignoring {state} emitted after the session was closed")
            return

        logger.debug(f"Auth state: {self._state} -> {state}")
        self._state = state

        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"Auth state listener failed: {e}", exc_info=True)

        for queue in self._queues:
            queue.put_nowait(state)

    async def check_auth_status(self) -> None:
        """Authenticate from the stored timestamp if it isn't older than max_auth_days."""
        self._emit(Loading())

        try:
            timestamp_string = await self._storage.read(self._storage_key)

            if timestamp_string is None:
                self._emit(Unauthenticated())
                return

            timestamp = parse_timestamp(timestamp_string)
            if timestamp is None:
                logger.info("Stored auth timestamp is not a valid instant")
                self._emit(Unauthenticated())
                return

            # timedelta.days floors, so 20 days and some hours still counts as 20
            days_difference = (self._clock() - timestamp).days

            if days_difference > self._max_auth_days:
                logger.info(f"Auth timestamp is {days_difference} days old, expiring session")
                await self._storage.delete(self._storage_key)
                self._emit(Unauthenticated(error_message=config.MSG_SESSION_EXPIRED))
            else:
                self._emit(Authenticated())

        except Exception as e:
            logger.error(f"Error checking auth status: {e}", exc_info=True)
            self._emit(Unauthenticated(error_message=config.MSG_CHECK_FAILED))

    async def authenticate(self, input_password: str) -> None:
        """Check a submitted password and remember the unlock when it matches."""
        if not input_password:
            self._emit(Unauthenticated(error_message=config.MSG_EMPTY_PASSWORD))
            return

        if not self.crypto.secure_compare(input_password, self._password):
            self._emit(Unauthenticated(error_message=config.MSG_INCORRECT_PASSWORD))
            return

        try:
            await self._storage.write(self._storage_key, self._clock().isoformat())
        except Exception as e:
            logger.error(f"Error saving auth timestamp: {e}", exc_info=True)
            self._emit(Unauthenticated(error_message=config.MSG_SAVE_FAILED))
            return

        self._emit(Authenticated())

    async def clear_auth(self) -> None:
        """Forget the stored unlock."""
        try:
            await self._storage.delete(self._storage_key)
        except Exception as e:
            logger.error(f"Error clearing auth: {e}", exc_info=True)
        self._emit(Unauthenticated())
