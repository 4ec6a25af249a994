"""
Configuration constants for the HSS lock screen.
"""

# Application Metadata
APP_VERSION = "1.0.0"  # Use: Current version of the package. Type: str. Range: Semantic versioning string (e.g., "1.0.0")
APP_NAME = "HSS Lock Screen"  # Use: Display name used by the console front end. Type: str. Range: Any valid string.
# Use: Notice shown by the console front end. Type: str (multi-line). Range: Any valid string.
APP_DISCLAIMER = """\
This lock is a convenience gate for development builds only. The password ships
with the client and nothing is verified by a server. Do not rely on it to protect
anything sensitive.
"""

# Authentication Settings
AUTH_TIMESTAMP_KEY = "hss_lock_screen_auth_timestamp"  # Use: Storage key under which the last successful authentication instant is kept. Type: str. Range: Any non-empty string.
MAX_AUTH_DAYS = 20  # Use: Number of whole days a stored authentication stays valid. An age greater than this value expires the session. Type: int. Range: Non-negative integer.

# User-visible Messages
MSG_SESSION_EXPIRED = "Session expired. Please log in again."  # Use: Shown when the stored timestamp is older than MAX_AUTH_DAYS. Type: str.
MSG_CHECK_FAILED = "Authentication check failed."  # Use: Shown when the status check fails unexpectedly. Type: str.
MSG_EMPTY_PASSWORD = "Please enter a password."  # Use: Shown when an empty password is submitted. Type: str.
MSG_INCORRECT_PASSWORD = "Incorrect password. Please try again."  # Use: Shown when the submitted password does not match. Type: str.
MSG_SAVE_FAILED = "Failed to save authentication."  # Use: Shown when the password matched but the timestamp could not be persisted. Type: str.

# Security Settings
SALT_SIZE = 16  # Use: Size of the cryptographic salt in bytes for key derivation. Type: int. Range: At least 16 bytes (128 bits).
KEY_SIZE = 32  # Use: Size of the encryption key in bytes. Corresponds to AES-256. Type: int. Range: 16, 24 or 32 bytes.
NONCE_SIZE = 12  # Use: Size of the nonce in bytes for AES-GCM. Type: int. Range: 12 bytes (96 bits) is the recommended size for GCM.
TAG_SIZE = 16  # Use: Size of the authentication tag in bytes for AES-GCM. Type: int. Range: 16 bytes (128 bits).
ARGON2_TIME_COST = 2  # Use: Argon2id time cost parameter. Type: int. Range: Typically 1 to 10.
ARGON2_MEMORY_COST = 65536  # Use: Argon2id memory cost in KiB. Type: int. Range: At least 8 * ARGON2_PARALLELISM.
ARGON2_PARALLELISM = 4  # Use: Argon2id parallelism (lanes). Type: int. Range: Typically 1 to 8.

# Secure Store File Format
STORE_MAGIC_BYTES = b"HSSL"  # Use: Magic header identifying an encrypted store file. Type: bytes. Range: Exactly 4 bytes.
STORE_FORMAT_VERSION = 1  # Use: Version of the encrypted store file layout. Type: int. Range: Positive integer.
DEVICE_PASSPHRASE_PREFIX = "hss_lock_device:"  # Use: Prefix mixed into the device-bound passphrase when none is supplied. Type: str. Range: Any string.

# File and Directory Names
CONFIG_DIR_NAME = ".hss_lock"  # Use: Hidden directory within the user's home directory holding the secure store. Type: str. Range: Any valid directory name.
DEFAULT_STORE_FILE = "secure_store.enc"  # Use: Default filename for the encrypted key-value store. Type: str. Range: Any valid filename.

# Environment Variables
PASSWORD_ENV_VAR = "HSS_LOCK_PASSWORD"  # Use: Environment variable read by the console front end for the credential. Type: str.
PLATFORM_ENV_VAR = "HSS_LOCK_PLATFORM"  # Use: Environment variable naming the host platform; "web" activates the gate. Type: str.
DEBUG_ENV_VAR = "HSS_LOCK_DEBUG"  # Use: Environment variable flagging a development build. Type: str.
WEB_PLATFORM_NAME = "web"  # Use: Platform name that counts as a web browser host. Type: str.
TRUTHY_FLAGS = ("1", "true", "yes", "on")  # Use: Values of DEBUG_ENV_VAR treated as enabled (case-insensitive). Type: tuple[str, ...].

# Console Front End
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"  # Use: logging.basicConfig format for the console entry point. Type: str.
PASSWORD_PROMPT = "Enter your password to continue: "  # Use: Prompt shown by the console front end. Type: str.
EXIT_MISSING_PASSWORD = 2  # Use: Exit code when no credential is configured. Type: int.
EXIT_INTERRUPTED = 130  # Use: Exit code when the prompt is interrupted. Type: int.
