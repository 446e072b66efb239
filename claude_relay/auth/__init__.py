from .capture import (
    CaptureState,
    LoginUrlCapture,
    capture_login_url,
    extract_url_from_text,
    strip_ansi_codes,
)
from .flow import (
    complete_auth,
    complete_oauth_flow,
    get_auth_instructions,
    get_auth_url,
    wait_for_authentication,
)

__all__ = [
    "CaptureState",
    "LoginUrlCapture",
    "capture_login_url",
    "complete_auth",
    "complete_oauth_flow",
    "extract_url_from_text",
    "get_auth_instructions",
    "get_auth_url",
    "strip_ansi_codes",
    "wait_for_authentication",
]
