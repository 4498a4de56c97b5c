# src/dblocator/core/sql.py

import re
from typing import Optional

# Identifiers are concatenated into T-SQL batches (USE, CREATE LOGIN,
# sp_addrolemember, ...) which do not accept bind parameters for names.
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
# Linked server names are host names, so dots and hyphens are allowed inside the brackets.
LINKED_SERVER_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+$")

def sanitize_identifier(value: str) -> str:
    """
    Returns ``value`` unchanged if it only holds letters, digits and underscores.
    Raises:
        ValueError: For anything else, including empty and None values.
    """
    if isinstance(value, str) and IDENTIFIER_PATTERN.fullmatch(value):
        return value
    raise ValueError(f'Invalid SQL identifier: "{value}"')

def sanitize_linked_server(value: str) -> str:
    """Like sanitize_identifier, additionally accepting the dots and hyphens of a host name."""
    if isinstance(value, str) and LINKED_SERVER_PATTERN.fullmatch(value):
        return value
    raise ValueError(f'Invalid linked server name: "{value}"')

def escape_literal(value: str) -> str:
    """Doubles single quotes for a value placed inside a T-SQL string literal."""
    return value.replace("'", "''")

def build_command(command_text: str, is_linked_server: bool = False, linked_server_host: Optional[str] = None) -> str:
    """
    Produces the final batch for a target server.

    Direct servers run ``command_text`` as is. Linked servers receive it as a
    string literal forwarded by ``exec('...') at [host];``.
    """
    if not is_linked_server:
        return command_text

    if not linked_server_host or not linked_server_host.strip():
        raise ValueError("Linked server host name is required when is_linked_server is true")

    host = sanitize_linked_server(linked_server_host)
    return f"exec('{escape_literal(command_text)}') at [{host}];"
