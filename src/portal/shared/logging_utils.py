"""
Secure logging utilities to prevent log injection and sensitive data exposure.

Authorization code logs who was denied and why. This module keeps those
log lines safe:
- Log injection attacks (CWE-117, CWE-93) via user-controlled strings
- Sensitive data exposure (full user ids, exception messages)
- Stack trace leakage to external users

Security References:
- OWASP Logging Cheat Sheet: https://cheatsheetseries.owasp.org/cheatsheets/Logging_Cheat_Sheet.html
"""

import re
from typing import Any

# Maximum length for logged user input to prevent log flooding
MAX_LOG_INPUT_LENGTH = 200

# Characters of a user id kept in log lines
USER_ID_LOG_PREFIX = 8


def sanitize_for_log(value: Any, max_length: int = MAX_LOG_INPUT_LENGTH) -> str:
    """
    Sanitize a value for safe logging by removing CRLF and limiting length.

    Args:
        value: Value to sanitize (will be converted to string)
        max_length: Maximum length of output (default: 200)

    Returns:
        Sanitized string safe for logging

    Example:
        >>> sanitize_for_log("error\\n[FAKE] Admin logged in")
        'error [FAKE] Admin logged in'
    """
    text = str(value)

    # Remove CRLF characters to prevent log injection
    text = text.replace("\r", " ").replace("\n", " ").replace("\t", " ")

    # Remove other control characters
    text = re.sub(r"[\x00-\x1f\x7f-\x9f]", " ", text)

    if len(text) > max_length:
        text = text[:max_length] + "..."

    return text


def mask_user_id(user_id: Any) -> str:
    """
    Truncate a user id for log correlation without logging the full value.

    Example:
        >>> mask_user_id("3f2b9c1e-aaaa-bbbb-cccc-000000000000")
        '3f2b9c1e...'
    """
    if user_id is None:
        return "<none>"
    return f"{sanitize_for_log(user_id)[:USER_ID_LOG_PREFIX]}..."


def get_safe_error_info(exception: BaseException) -> dict[str, str]:
    """
    Extract safe information from an exception for logging.

    Returns only the exception type, NOT the message: messages may carry
    user input or internal details.

    Example:
        >>> try:
        ...     raise ValueError("user input here")
        ... except Exception as e:
        ...     get_safe_error_info(e)
        {'error_type': 'ValueError'}
    """
    return {"error_type": type(exception).__name__}
