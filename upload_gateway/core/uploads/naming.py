"""Object name generation for uploads without an explicit file name."""

import secrets
import string
from typing import Optional

NAME_ALPHABET = string.digits + string.ascii_lowercase + string.ascii_uppercase
GENERATED_NAME_LENGTH = 21


def file_extension(file_name: str) -> str:
    """
    Extension of a file name including the dot, or "" if there is none.

    Dotfiles like ".env" have no extension; for "report.v2.tar.gz" only
    ".gz" counts.
    """
    last_dot = file_name.rfind(".")
    if last_dot < 1:
        return ""
    return file_name[last_dot:]


def generate_file_name(original_name: str) -> str:
    """Random 21-character name that keeps the original extension."""
    random_part = "".join(
        secrets.choice(NAME_ALPHABET) for _ in range(GENERATED_NAME_LENGTH)
    )
    return f"{random_part}{file_extension(original_name)}"


def name_for(original_name: str, supplied_file_name: Optional[str] = None) -> str:
    """Use the caller's file name verbatim if given, otherwise generate one."""
    if supplied_file_name:
        return supplied_file_name
    return generate_file_name(original_name or "")
