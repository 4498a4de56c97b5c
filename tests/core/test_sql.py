# tests/core/test_sql.py

import pytest
from dblocator.core.sql import (
    sanitize_identifier, sanitize_linked_server, escape_literal, build_command
)

# ==============================================================================
# 1. Identifier Sanitizer
# ==============================================================================

@pytest.mark.parametrize("value", ["AcmeBilling", "acme_writer", "db_datareader", "X1", "_"])
def test_sanitize_identifier_accepts_word_characters(value):
    assert sanitize_identifier(value) == value

@pytest.mark.parametrize("value", [
    "", None, "acme writer", "acme;drop", "a]b", "a'b", "a-b", "a.b", "Ünïcode", "name\n",
])
def test_sanitize_identifier_rejects_everything_else(value):
    with pytest.raises(ValueError) as exc_info:
        sanitize_identifier(value)
    assert "Invalid SQL identifier" in str(exc_info.value)

def test_sanitize_linked_server_accepts_host_names():
    assert sanitize_linked_server("sql-02.corp.example.com") == "sql-02.corp.example.com"

@pytest.mark.parametrize("value", ["sql]02", "sql 02", "sql;02", ""])
def test_sanitize_linked_server_rejects_brackets_and_separators(value):
    with pytest.raises(ValueError):
        sanitize_linked_server(value)

def test_escape_literal_doubles_single_quotes():
    assert escape_literal("O'Reilly''s") == "O''Reilly''''s"

# ==============================================================================
# 2. Linked Server Wrapper
# ==============================================================================

def test_build_command_direct_server_is_unchanged():
    command = "use [AcmeBilling]; create user [u1] for login [u1]"
    assert build_command(command) == command

def test_build_command_wraps_for_linked_server():
    command = "use [AcmeBilling]; exec sp_addrolemember 'db_datareader', 'u1';"
    wrapped = build_command(command, is_linked_server=True, linked_server_host="sql02")
    assert wrapped == (
        "exec('use [AcmeBilling]; exec sp_addrolemember ''db_datareader'', ''u1'';') at [sql02];"
    )

def test_build_command_requires_linked_host():
    with pytest.raises(ValueError):
        build_command("select 1", is_linked_server=True, linked_server_host="  ")

def test_build_command_rejects_unsafe_linked_host():
    with pytest.raises(ValueError):
        build_command("select 1", is_linked_server=True, linked_server_host="sql02] exec('x')")
