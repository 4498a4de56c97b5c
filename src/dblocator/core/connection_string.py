# src/dblocator/core/connection_string.py

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from sqlalchemy.engine import URL

SERVER = "Server"
DATABASE = "Database"
INTEGRATED_SECURITY = "Integrated Security"
ENCRYPT = "Encrypt"
TRUST_SERVER_CERTIFICATE = "TrustServerCertificate"
CONNECT_TIMEOUT = "Connect Timeout"
USER_ID = "User Id"
PASSWORD = "Password"

# Keywords accepted by the SQL client grammar, mapped onto the names above.
_SYNONYMS = {
    "server": SERVER,
    "data source": SERVER,
    "address": SERVER,
    "addr": SERVER,
    "database": DATABASE,
    "initial catalog": DATABASE,
    "integrated security": INTEGRATED_SECURITY,
    "trusted_connection": INTEGRATED_SECURITY,
    "encrypt": ENCRYPT,
    "trustservercertificate": TRUST_SERVER_CERTIFICATE,
    "trust server certificate": TRUST_SERVER_CERTIFICATE,
    "connect timeout": CONNECT_TIMEOUT,
    "connection timeout": CONNECT_TIMEOUT,
    "timeout": CONNECT_TIMEOUT,
    "user id": USER_ID,
    "uid": USER_ID,
    "user": USER_ID,
    "password": PASSWORD,
    "pwd": PASSWORD,
}

def _format_value(value: str) -> str:
    if value == "":
        return value
    needs_quotes = (
        ";" in value or "=" in value or value[0].isspace() or value[-1].isspace()
        or value[0] in "'\"" or "\"" in value
    )
    if not needs_quotes:
        return value
    if "\"" not in value:
        return f"\"{value}\""
    if "'" not in value:
        return f"'{value}'"
    return "\"" + value.replace("\"", "\"\"") + "\""

def _format_bool(value: bool) -> str:
    return "True" if value else "False"

class SqlConnectionString:
    """
    Builds and parses ``Key=Value;`` SQL client connection strings.

    Output order is fixed: Server, Database, Integrated Security, Encrypt,
    TrustServerCertificate, Connect Timeout, then User Id and Password when
    SQL authentication is used. Every pair is terminated by ``;``.
    """
    def __init__(
        self,
        server: str,
        database: str,
        integrated_security: bool = False,
        user_id: Optional[str] = None,
        password: Optional[str] = None,
        encrypt: bool = True,
        trust_server_certificate: bool = True,
        connect_timeout: int = 30,
    ):
        self.server = server
        self.database = database
        self.integrated_security = integrated_security
        self.user_id = user_id
        self.password = password
        self.encrypt = encrypt
        self.trust_server_certificate = trust_server_certificate
        self.connect_timeout = connect_timeout

    def pairs(self) -> List[Tuple[str, str]]:
        items = [
            (SERVER, self.server),
            (DATABASE, self.database),
            (INTEGRATED_SECURITY, _format_bool(self.integrated_security)),
            (ENCRYPT, _format_bool(self.encrypt)),
            (TRUST_SERVER_CERTIFICATE, _format_bool(self.trust_server_certificate)),
            (CONNECT_TIMEOUT, str(self.connect_timeout)),
        ]
        if not self.integrated_security and self.user_id:
            items.append((USER_ID, self.user_id))
            items.append((PASSWORD, self.password or ""))
        return items

    def __str__(self) -> str:
        return "".join(f"{key}={_format_value(value)};" for key, value in self.pairs())

    @staticmethod
    def parse_pairs(connection_string: str) -> Dict[str, str]:
        """Splits a connection string into canonical keys. Unknown keys are kept as written."""
        result: Dict[str, str] = {}
        i, length = 0, len(connection_string)
        while i < length:
            while i < length and (connection_string[i].isspace() or connection_string[i] == ";"):
                i += 1
            if i >= length:
                break
            eq = connection_string.find("=", i)
            if eq == -1:
                raise ValueError(f"Malformed connection string near position {i}")
            key = connection_string[i:eq].strip()
            i = eq + 1
            while i < length and connection_string[i] == " ":
                i += 1
            if i < length and connection_string[i] in "'\"":
                quote = connection_string[i]
                i += 1
                chars = []
                while i < length:
                    if connection_string[i] == quote:
                        if i + 1 < length and connection_string[i + 1] == quote:
                            chars.append(quote)
                            i += 2
                            continue
                        i += 1
                        break
                    chars.append(connection_string[i])
                    i += 1
                else:
                    raise ValueError(f"Unterminated quoted value for '{key}'")
                value = "".join(chars)
                end = connection_string.find(";", i)
                i = length if end == -1 else end + 1
            else:
                end = connection_string.find(";", i)
                end = length if end == -1 else end
                value = connection_string[i:end].strip()
                i = end + 1
            result[_SYNONYMS.get(key.lower(), key)] = value
        return result

    @classmethod
    def parse(cls, connection_string: str) -> "SqlConnectionString":
        pairs = cls.parse_pairs(connection_string)
        if SERVER not in pairs:
            raise ValueError("Connection string has no server")

        def as_bool(key: str, default: bool) -> bool:
            raw = pairs.get(key)
            if raw is None:
                return default
            return raw.strip().lower() in ("true", "yes", "sspi")

        return cls(
            server=pairs[SERVER],
            database=pairs.get(DATABASE, ""),
            integrated_security=as_bool(INTEGRATED_SECURITY, False),
            user_id=pairs.get(USER_ID),
            password=pairs.get(PASSWORD),
            encrypt=as_bool(ENCRYPT, True),
            trust_server_certificate=as_bool(TRUST_SERVER_CERTIFICATE, False),
            connect_timeout=int(pairs.get(CONNECT_TIMEOUT, "15")),
        )

@dataclass(frozen=True)
class ConnectionHandle:
    """
    A resolved, not yet opened, connection. Opening it is left to the caller's driver.
    """
    connection_string: str
    server: str = field(init=False)
    database: str = field(init=False)
    user_name: Optional[str] = field(init=False)
    trusted: bool = field(init=False)

    def __post_init__(self):
        parsed = SqlConnectionString.parse(self.connection_string)
        object.__setattr__(self, "server", parsed.server)
        object.__setattr__(self, "database", parsed.database)
        object.__setattr__(self, "user_name", parsed.user_id)
        object.__setattr__(self, "trusted", parsed.integrated_security)

    def __str__(self) -> str:
        return self.connection_string

    def to_odbc(self, odbc_driver: str = "ODBC Driver 18 for SQL Server") -> str:
        """Translates the string into ODBC keywords for pyodbc/aioodbc."""
        parsed = SqlConnectionString.parse(self.connection_string)
        items = [
            ("Driver", "{" + odbc_driver + "}"),
            ("Server", parsed.server),
            ("Database", parsed.database),
            ("Encrypt", "yes" if parsed.encrypt else "no"),
            ("TrustServerCertificate", "yes" if parsed.trust_server_certificate else "no"),
            ("Connection Timeout", str(parsed.connect_timeout)),
        ]
        if parsed.integrated_security:
            items.append(("Trusted_Connection", "yes"))
        elif parsed.user_id:
            items.append(("UID", parsed.user_id))
            items.append(("PWD", "{" + (parsed.password or "").replace("}", "}}") + "}"))
        return ";".join(f"{key}={value}" for key, value in items) + ";"

    def to_sqlalchemy_url(self, drivername: str = "mssql+aioodbc", odbc_driver: str = "ODBC Driver 18 for SQL Server") -> URL:
        return URL.create(drivername, query={"odbc_connect": self.to_odbc(odbc_driver)})
