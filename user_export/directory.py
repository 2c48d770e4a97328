"""LDAP query for enabled user accounts (ldap3)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence

import ldap3
from ldap3.core.exceptions import LDAPException

from .errors import DirectoryQueryError

LOGGER = logging.getLogger(__name__)

# enabled person/user objects (bit 2 of userAccountControl = disabled)
ENABLED_USERS_FILTER = (
    "(&(objectCategory=person)(objectClass=user)"
    "(!(userAccountControl:1.2.840.113556.1.4.803:=2)))"
)

# failed operations (noSuchObject, insufficientAccessRights...) raise instead of
# returning an empty result
CONNECTION_OPTIONS: Dict[str, object] = {"read_only": True, "raise_exceptions": True}


@dataclass
class DirectorySettings:
    server: str = "localhost"
    port: int = 389
    use_ssl: bool = False
    bind_dn: Optional[str] = None
    password: Optional[str] = None
    page_size: int = 500
    connect_timeout: int = 10


def flatten_attributes(attributes: Mapping[str, object]) -> Dict[str, object]:
    """Reduce ldap3 attribute values to one text value per attribute."""

    flat: Dict[str, object] = {}
    for name, value in attributes.items():
        if isinstance(value, (list, tuple)):
            if not value:
                continue
            value = value[0]
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        if value is None:
            continue
        flat[name] = value if isinstance(value, str) else str(value)
    return flat


def open_connection(settings: DirectorySettings) -> ldap3.Connection:
    server = ldap3.Server(
        settings.server,
        port=settings.port,
        use_ssl=settings.use_ssl,
        get_info=ldap3.NONE,
        connect_timeout=settings.connect_timeout,
    )
    if settings.bind_dn:
        return ldap3.Connection(
            server,
            user=settings.bind_dn,
            password=settings.password,
            auto_bind=True,
            **CONNECTION_OPTIONS,
        )
    # no bind DN: integrated Windows authentication against AD
    return ldap3.Connection(
        server,
        authentication=ldap3.SASL,
        sasl_mechanism=ldap3.KERBEROS,
        auto_bind=True,
        **CONNECTION_OPTIONS,
    )


def search_users(
    settings: DirectorySettings,
    search_base: str,
    attributes: Sequence[str],
    connect: Callable[[DirectorySettings], ldap3.Connection] = open_connection,
) -> List[Dict[str, object]]:
    """
    Return every enabled user below ``search_base`` as a flat attribute dict.

    Any ldap3 failure (connect, bind, search) is raised as DirectoryQueryError
    with the original exception chained.
    """

    LOGGER.info("Querying %s:%s under %s", settings.server, settings.port, search_base)
    try:
        conn = connect(settings)
    except LDAPException as exc:
        raise DirectoryQueryError(f"Cannot connect to {settings.server}:{settings.port}: {exc}") from exc

    try:
        entries = conn.extend.standard.paged_search(
            search_base=search_base,
            search_filter=ENABLED_USERS_FILTER,
            search_scope=ldap3.SUBTREE,
            attributes=list(attributes),
            paged_size=settings.page_size,
            generator=False,
        )
        records = [
            flatten_attributes(entry.get("attributes") or {})
            for entry in entries
            if entry.get("type") == "searchResEntry"
        ]
    except LDAPException as exc:
        raise DirectoryQueryError(f"Search under '{search_base}' failed: {exc}") from exc
    finally:
        conn.unbind()

    LOGGER.info("Fetched %d user(s) from the directory", len(records))
    return records
