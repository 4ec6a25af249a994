import hashlib
import logging
import os
import platform
import stat
import uuid

from . import config

logger = logging.getLogger(__name__)

if platform.system() == "Windows":
    try:
        import win32security
        import win32api
        import win32con
        import win32file
        WINDOWS_SECURITY_AVAILABLE = True
    except ImportError:
        logger.warning("pywin32 not installed, cannot set Windows file permissions securely.")
        WINDOWS_SECURITY_AVAILABLE = False
else:
    WINDOWS_SECURITY_AVAILABLE = False


def get_config_dir() -> str:
    """Directory in the user's home holding the secure store."""
    return os.path.join(os.path.expanduser("~"), config.CONFIG_DIR_NAME)


def get_default_store_path() -> str:
    """Path of the default encrypted store file."""
    return os.path.join(get_config_dir(), config.DEFAULT_STORE_FILE)


def get_device_passphrase() -> str:
    """
    Passphrase bound to this device and user account.
    Mixes the host name, the hardware node id and the home directory.
    """
    identity = f"{platform.node()}:{uuid.getnode()}:{os.path.expanduser('~')}"
    digest = hashlib.sha256(identity.encode('utf-8')).hexdigest()
    return f"{config.DEVICE_PASSPHRASE_PREFIX}{digest}"


def set_owner_only_permissions(filepath: str) -> bool:
    """Make a file readable/writable by its owner only."""
    if platform.system() == 'Windows':
        return _set_windows_file_permissions(filepath)
    os.chmod(filepath, stat.S_IRUSR | stat.S_IWUSR)  # 600
    return True


def _set_windows_file_permissions(filepath: str) -> bool:
    """
    Replace the file's DACL with a single ACE granting the current user
    read/write access.
    """
    if not WINDOWS_SECURITY_AVAILABLE:
        logger.warning(f"Skipping Windows file permission setting for {filepath}: pywin32 not available.")
        return False

    try:
        user_sid, _, _ = win32security.LookupAccountName(None, win32api.GetUserName())
        dacl = win32security.ACL()
        dacl.AddAccessAllowedAce(
            win32security.ACL_REVISION,
            win32con.GENERIC_READ | win32con.GENERIC_WRITE,
            user_sid
        )
        handle = win32file.CreateFile(
            filepath,
            win32con.WRITE_DAC,
            win32file.FILE_SHARE_READ | win32file.FILE_SHARE_WRITE | win32file.FILE_SHARE_DELETE,
            None,
            win32con.OPEN_EXISTING,
            win32con.FILE_ATTRIBUTE_NORMAL,
            None
        )
        try:
            win32security.SetSecurityInfo(
                handle,
                win32security.SE_FILE_OBJECT,
                win32security.DACL_SECURITY_INFORMATION | win32security.PROTECTED_DACL_SECURITY_INFORMATION,
                None,
                None,
                dacl,
                None
            )
        finally:
            win32file.CloseHandle(handle)
    except Exception as e:
        logger.error(f"Failed to set Windows file permissions for {filepath}: {e}")
        return False
    return True
