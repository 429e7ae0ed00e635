### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Tenant Resolver -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Tenant Resolver

Maps an inbound request to the tenant whose database it must use.

Resolution order:
1. Explicit tenant header (platform-admin impersonation, caller decides
   whether it may be honoured)
2. Subdomain of the Host header
3. Custom domain matching the full host
4. Default tenant (localhost, loopback/IP hosts, bare domains)

Identifiers are case-insensitive and pass through the configured alias
table. Unknown or non-ACTIVE tenants raise TenantNotFound.
"""

import ipaddress
from dataclasses import dataclass
from urllib.parse import quote, unquote

from fastapi import Request
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from vetcore.config_schema import TenancyConfig
from vetcore.errors import TenantNotFound
from vetcore.models import Tenant, TenantStatus

DEFAULT_TENANT_KEY = "__default__"


def normalize_connection_url(url: str) -> str:
    """
    Percent-encode the password segment of a connection URL.

    Passwords may hold characters that are not valid in a URI (`#`, `@`,
    `/`, `?`, spaces). Only the password is touched; scheme, user, host,
    port, path and query are returned as-is. Already-encoded passwords are
    left alone, so the function is idempotent.

    Example:
        postgresql://vet:p#ss@db:5432/tenant_acme
        -> postgresql://vet:p%23ss@db:5432/tenant_acme
    """
    scheme, sep, rest = url.partition("://")
    if not sep or "@" not in rest:
        return url

    # Hosts cannot contain '@', so the last one closes the credentials
    credentials, host_part = rest.rsplit("@", 1)
    user, has_password, password = credentials.partition(":")
    if not has_password or not password:
        return url

    if quote(unquote(password), safe="") == password:
        return url

    return f"{scheme}://{user}:{quote(password, safe='')}@{host_part}"


@dataclass(frozen=True)
class TenantDescriptor:
    """Everything needed to open a tenant's database; built once per lookup"""

    key: str
    url: str
    tenant_id: int | None = None

    @classmethod
    def from_tenant(cls, tenant: Tenant, url_template: str) -> "TenantDescriptor":
        raw_url = url_template.format(
            user=tenant.db_user,
            password=tenant.db_password,
            host=tenant.db_host or "localhost",
            port=tenant.db_port or 5432,
            name=tenant.db_name,
        )
        return cls(
            key=tenant.subdomain.lower(),
            url=normalize_connection_url(raw_url),
            tenant_id=tenant.id,
        )


@dataclass(frozen=True)
class TenantContext:
    """Result of resolving a request to a tenant"""

    subdomain: str | None
    name: str | None = None
    db_name: str | None = None
    tenant_id: int | None = None
    descriptor: TenantDescriptor | None = None

    @property
    def is_default(self) -> bool:
        return self.descriptor is None

    @property
    def key(self) -> str:
        return self.descriptor.key if self.descriptor else DEFAULT_TENANT_KEY

    @classmethod
    def default(cls) -> "TenantContext":
        return cls(subdomain=None)


def _strip_port(host: str) -> str:
    if host.startswith("["):
        # [::1]:8000
        return host[1:].split("]", 1)[0]
    if host.count(":") == 1:
        return host.split(":", 1)[0]
    return host


def _is_ip_address(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        return False


def normalize_host(host: str | None) -> str | None:
    """Lower-case, strip port, trailing dot and a leading 'www.'"""
    if not host:
        return None
    host = _strip_port(host.strip().lower()).rstrip(".")
    if host.startswith("www."):
        host = host[4:]
    return host or None


def is_default_host(host: str) -> bool:
    """localhost, loopback, private LAN and literal IP hosts carry no tenant"""
    if host in ("localhost", "0.0.0.0"):
        return True
    if host.startswith(("127.", "192.168.")):
        return True
    return _is_ip_address(host)


def extract_subdomain(host: str | None, base_domains: list[str] | tuple[str, ...] = ()) -> str | None:
    """
    Extract the tenant subdomain from a Host header value.

    Examples:
        acme.app.example.com   -> "acme"
        ACME.app.example.com:443 -> "acme"
        www.acme.example.com   -> "acme"
        acme.localhost:3000    -> "acme"
        example.com            -> None
        localhost, 127.0.0.1   -> None

    With base_domains=["example.com"], acme.example.com -> "acme".
    """
    host = normalize_host(host)
    if host is None or is_default_host(host):
        return None

    labels = host.split(".")

    if labels[-1] == "localhost":
        return labels[0] if len(labels) >= 2 else None

    for base in base_domains:
        if host == base:
            return None
        if host.endswith(f".{base}"):
            return host[: -len(base) - 1].split(".")[0]

    if len(labels) < 3:
        return None
    return labels[0]


def lookup_tenant(owner_db: Session, identifier: str) -> Tenant | None:
    """Find a tenant by subdomain or custom domain (case-insensitive), any status"""
    identifier = identifier.strip().lower()
    return (
        owner_db.query(Tenant)
        .filter(
            or_(
                func.lower(Tenant.subdomain) == identifier,
                func.lower(Tenant.custom_domain) == identifier,
            )
        )
        .first()
    )


def _context_for(tenant: Tenant, url_template: str) -> TenantContext:
    return TenantContext(
        subdomain=tenant.subdomain.lower(),
        name=tenant.name,
        db_name=tenant.db_name,
        tenant_id=tenant.id,
        descriptor=TenantDescriptor.from_tenant(tenant, url_template),
    )


def resolve_identifier(
    owner_db: Session,
    identifier: str,
    url_template: str,
    aliases: dict[str, str] | None = None,
) -> TenantContext:
    """
    Resolve an explicit tenant identifier.

    Raises:
        TenantNotFound: unknown identifier or tenant not ACTIVE
    """
    identifier = identifier.strip().lower()
    identifier = (aliases or {}).get(identifier, identifier)

    tenant = lookup_tenant(owner_db, identifier)
    if tenant is None:
        raise TenantNotFound(identifier)
    if tenant.status != TenantStatus.ACTIVE.value:
        raise TenantNotFound(identifier, reason=f"Tenant '{identifier}' is {tenant.status}")

    return _context_for(tenant, url_template)


def resolve_tenant_from_request(
    request: Request,
    owner_db: Session,
    tenancy: TenancyConfig,
    url_template: str,
    header_name: str = "X-Tenant-Identifier",
    allow_header: bool = False,
) -> TenantContext:
    """
    Resolve the tenant for a request.

    Args:
        request: Incoming request
        owner_db: Owner database session
        tenancy: Tenancy config (aliases, base domains)
        url_template: Template used to build tenant connection URLs
        header_name: Explicit tenant header
        allow_header: Whether the explicit header may be honoured

    Returns:
        TenantContext (TenantContext.default() when the host carries no tenant)

    Raises:
        TenantNotFound: when an identifier is present but unknown or inactive
    """
    explicit = request.headers.get(header_name)
    if explicit and allow_header:
        return resolve_identifier(owner_db, explicit, url_template, tenancy.aliases)

    raw_host = request.headers.get("host") or request.url.hostname
    host = normalize_host(raw_host)

    # Custom domains are matched on the full host before subdomain parsing
    if host and not is_default_host(host) and "." in host:
        tenant = (
            owner_db.query(Tenant)
            .filter(func.lower(Tenant.custom_domain) == host)
            .first()
        )
        if tenant is not None:
            if tenant.status != TenantStatus.ACTIVE.value:
                raise TenantNotFound(host, reason=f"Tenant '{host}' is {tenant.status}")
            return _context_for(tenant, url_template)

    subdomain = extract_subdomain(raw_host, tenancy.base_domains)
    if subdomain is not None:
        return resolve_identifier(owner_db, subdomain, url_template, tenancy.aliases)

    return TenantContext.default()
