from .auth import (
    verify_password,
    get_password_hash,
    create_access_token,
    decode_access_token,
    get_current_user,
    oauth2_scheme
)
from .email import (
    generate_reset_token,
    hash_reset_token,
    get_reset_token_expiry,
    send_password_reset_email
)
from .credentials import CredentialStore, ResetNotifier
from .validation import (
    validate_profile_input,
    validate_upload,
    raise_for_errors
)
from .normalizer import ProfileChanges, normalize_profile
from .profile_repository import ProfileRepository
from .storage import FileStore

__all__ = [
    # Auth
    "verify_password",
    "get_password_hash",
    "create_access_token",
    "decode_access_token",
    "get_current_user",
    "oauth2_scheme",
    # Email
    "generate_reset_token",
    "hash_reset_token",
    "get_reset_token_expiry",
    "send_password_reset_email",
    # Credentials
    "CredentialStore",
    "ResetNotifier",
    # Profile pipeline
    "validate_profile_input",
    "validate_upload",
    "raise_for_errors",
    "ProfileChanges",
    "normalize_profile",
    "ProfileRepository",
    "FileStore"
]
