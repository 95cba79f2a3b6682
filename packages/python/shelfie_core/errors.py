from __future__ import annotations

import httpx
from postgrest.exceptions import APIError as PostgrestAPIError


class DomainError(Exception):
    code: str = "domain_error"
    status: int = 400

    def __init__(self, message: str = "", *, code: str | None = None, status: int | None = None):
        super().__init__(message or self.__class__.__name__)
        if code: self.code = code
        if status: self.status = status

    @property
    def message(self) -> str:
        return str(self)


class NotAuthenticated(DomainError):
    code = "not_authenticated"
    status = 401


class NotFound(DomainError):
    code = "not_found"
    status = 404


class Conflict(DomainError):
    code = "conflict"
    status = 409


class DuplicateReport(Conflict):
    code = "duplicate_report"


class Forbidden(DomainError):
    code = "forbidden"
    status = 403


class RuleViolation(DomainError):
    code = "rule_violation"
    status = 422


class GatewayError(DomainError):
    code = "gateway_error"
    status = 502


def map_pgrest(e: PostgrestAPIError) -> DomainError:
    code = getattr(e, "code", None) or ""
    # Postgres / PostgREST error codes:
    # 23505 unique_violation, 42501 insufficient_privilege (RLS), 23503 foreign_key_violation
    if code == "23505":
        return Conflict("duplicate")
    if code == "42501":
        return Forbidden("permission denied")
    if code == "23503":
        return Conflict("foreign key violation")
    return GatewayError(getattr(e, "message", None) or str(e))


def map_transport(e: httpx.HTTPError) -> GatewayError:
    return GatewayError(f"remote store unreachable: {e}")
