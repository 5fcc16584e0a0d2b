"""
Option Validation Utilities

Field-level validators used to build the run configuration. Each returns a
tuple of (is_valid, normalized_value, error_message) so that the caller can
collect every failing field before giving up.
"""

import os
from urllib.parse import urlparse
from typing import Tuple, Any, Optional


CAPTURE_FORMATS = ('warc.gz', 'warc')


def validate_required_text(value: Any, field_name: str) -> Tuple[bool, str, str]:
    """
    Validate a mandatory, non-blank text option (ex: username, password).

    Args:
        value: Raw option value
        field_name: Name used in the error message

    Returns:
        Tuple of (is_valid, stripped_value, error_message)
    """
    if not isinstance(value, str) or not value.strip():
        return False, "", f'"{field_name}" must be provided'
    return True, value.strip(), ""


def validate_positive_int(value: Any, field_name: str) -> Tuple[bool, int, str]:
    """
    Validate an option that must be an integer greater than zero.

    Accepts ints and numeric strings ("12345"), rejects booleans and floats
    with a fractional part.
    """
    if isinstance(value, bool) or value is None:
        return False, 0, f'"{field_name}" must be a positive integer'
    try:
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError(value)
            number = int(value)
        else:
            number = int(str(value).strip())
    except (TypeError, ValueError):
        return False, 0, f'"{field_name}" must be a positive integer'
    if number <= 0:
        return False, 0, f'"{field_name}" must be a positive integer'
    return True, number, ""


def validate_output_path(value: Optional[str]) -> Tuple[bool, str, str]:
    """
    Validate the folder wacz-preparator works in.

    Defaults to the current working directory when no value is given.
    """
    path = value if value else os.getcwd()
    path = os.path.abspath(os.path.expanduser(str(path)))
    if not os.path.isdir(path):
        return False, "", f'"output_path" {path} is not a directory'
    if not os.access(path, os.W_OK):
        return False, "", f'"output_path" {path} is not writable'
    return True, path, ""


def validate_signing_url(value: Optional[str]) -> Tuple[bool, Optional[str], str]:
    """
    Validate an optional authsign-compatible signing endpoint.

    Returns (True, None, "") when no URL is given.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return True, None, ""
    if not isinstance(value, str):
        return False, None, '"signing_url" must be an http(s) URL'
    parsed = urlparse(value.strip())
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        return False, None, '"signing_url" must be an http(s) URL'
    return True, parsed.geturl(), ""


def validate_capture_format(value: Optional[str]) -> Tuple[bool, str, str]:
    fmt = (value or CAPTURE_FORMATS[0]).strip().lstrip('.').lower()
    if fmt not in CAPTURE_FORMATS:
        return False, "", '"capture_format" must be either "warc" or "warc.gz"'
    return True, fmt, ""


def validate_timeout(value: Any) -> Tuple[bool, Optional[float], str]:
    """None means no timeout: the transport decides."""
    if value is None:
        return True, None, ""
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        return False, None, '"request_timeout" must be a positive number of seconds'
    if timeout <= 0:
        return False, None, '"request_timeout" must be a positive number of seconds'
    return True, timeout, ""
