"""Cloud DNS domains, records and asynchronous job statuses.

Every mutating DNS call is asynchronous: the API answers ``202`` with a job
``Status`` that is polled until it leaves ``RUNNING``/``INITIALIZED``.
"""

from __future__ import annotations

from typing import Any, Mapping

from raxcloud.catalog import Services
from raxcloud.errors import ArgumentError, MissingArgument
from raxcloud.resources.base import Resource, ServiceResource, pick, ref_id
from raxcloud.waiter import DEFAULT_INTERVAL_MS, DEFAULT_MAX_WAIT_S

PENDING_JOB_STATES = ("RUNNING", "INITIALIZED")
MIN_TTL = 300


class Status(Resource):
    """Asynchronous DNS job."""

    def _set_properties(self, details: Mapping[str, Any]) -> None:
        super()._set_properties(details)
        self.id = details.get("jobId") or details.get("id")
        self.status = details.get("status")
        self.response = details.get("response")
        self.error = details.get("error")
        self.callback_url = details.get("callbackUrl")

    def _fetch(self) -> Mapping[str, Any]:
        return self._service.fetch_status(self.id)

    @property
    def finished(self) -> bool:
        return self.status not in PENDING_JOB_STATES

    @property
    def failed(self) -> bool:
        return self.status == "ERROR"

    def wait_for_result(
        self,
        *,
        interval_ms: int = 5000,
        max_wait_s: float | None = DEFAULT_MAX_WAIT_S,
    ) -> "Status":
        """Block until the job is no longer pending.

        A non-positive interval falls back to five seconds.

        Returns:
            Status: ``self``, with ``response`` or ``error`` filled in.
        """
        if not interval_ms or interval_ms < 0:
            interval_ms = 5000
        handle = self.set_wait(
            matcher=lambda job: job.finished,
            interval_ms=interval_ms,
            max_wait_s=max_wait_s,
        )
        return handle.result()


class Domain(Resource):
    """DNS zone."""

    def _set_properties(self, details: Mapping[str, Any]) -> None:
        super()._set_properties(details)
        self.name = details.get("name")
        self.ttl = details.get("ttl")
        self.email_address = details.get("emailAddress")
        self.comment = details.get("comment")
        self.account_id = details.get("accountId")
        self.created = details.get("created")
        self.updated = details.get("updated")
        self.nameservers = details.get("nameservers") or []

    def _fetch(self) -> Mapping[str, Any]:
        return self._service.fetch(self.id)

    def list_records(self) -> list[dict[str, Any]]:
        response = self._service._request(f"/domains/{self.id}/records")
        return list(self._service._expect_key(response, "records", "records_list"))

    def add_records(self, records: list[Mapping[str, Any]]) -> Status:
        """Add records, e.g. ``[{"type": "A", "name": "www.example.com", "data": "1.2.3.4"}]``.

        Records missing ``type``, ``name`` or ``data`` are rejected.
        """
        payload = []
        for record in records or []:
            if not record.get("type") or not record.get("name") or not record.get("data"):
                raise ArgumentError("records need type, name and data")
            item = pick(record, "type", "name", "data", "comment")
            if record.get("type") in ("MX", "SRV"):
                if record.get("priority") is None:
                    raise ArgumentError(f"{record['type']} records need a priority")
                item["priority"] = record["priority"]
            if record.get("ttl"):
                item["ttl"] = max(int(record["ttl"]), MIN_TTL)
            payload.append(item)
        if not payload:
            raise MissingArgument("records is a required argument")
        response = self._service._request(
            f"/domains/{self.id}/records", "POST", body={"records": payload}
        )
        return Status(self._service, response.body)

    def add_records_with_wait(
        self,
        records: list[Mapping[str, Any]],
        *,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        max_wait_s: float | None = DEFAULT_MAX_WAIT_S,
    ) -> list[dict[str, Any]]:
        status = self.add_records(records).wait_for_result(
            interval_ms=interval_ms, max_wait_s=max_wait_s
        )
        return list((status.response or {}).get("records") or [])


class DnsResource(ServiceResource):
    """Cloud DNS operations."""

    service = Services.DNS

    def list(self, name: str | None = None) -> list[Domain]:
        response = self._request("/domains", query=pick({"name": name}, "name") or None)
        return [Domain(self, item) for item in self._expect_key(response, "domains", "domains_list")]

    def fetch(self, domain_id: Any) -> dict[str, Any]:
        response = self._request(f"/domains/{domain_id}")
        # the domain is the body itself, not wrapped in a key
        self._expect_key(response, "id", "domains_get")
        return response.body

    def get(self, domain_id: Any) -> Domain:
        return Domain(self, self.fetch(domain_id))

    def fetch_status(self, job_id: str) -> dict[str, Any]:
        response = self._request(f"/status/{job_id}", query={"showDetails": "true"})
        self._expect_key(response, "status", "status_get")
        return response.body

    def create(
        self,
        name: str,
        email_address: str,
        *,
        ttl: int | None = None,
        comment: str | None = None,
    ) -> Status:
        """Register a domain. Returns the creation job."""
        if not name or not email_address:
            raise MissingArgument("name and email_address are required arguments")
        domain: dict[str, Any] = {"name": name, "emailAddress": email_address}
        if isinstance(ttl, int) and ttl >= MIN_TTL:
            domain["ttl"] = ttl
        if comment:
            domain["comment"] = comment
        response = self._request("/domains", "POST", body={"domains": [domain]})
        return Status(self, response.body)

    def create_with_wait(
        self,
        name: str,
        email_address: str,
        *,
        ttl: int | None = None,
        comment: str | None = None,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        max_wait_s: float | None = DEFAULT_MAX_WAIT_S,
    ) -> list[Domain]:
        """Register a domain and block until the job finishes.

        Returns:
            list[Domain]: Domains reported by the finished job.
        """
        status = self.create(name, email_address, ttl=ttl, comment=comment).wait_for_result(
            interval_ms=interval_ms, max_wait_s=max_wait_s
        )
        domains = (status.response or {}).get("domains") or []
        return [Domain(self, item) for item in domains]

    def import_domain(self, contents: str, content_type: str = "BIND_9") -> Status:
        """Import a zone file. Only BIND 9 contents are accepted."""
        if not contents:
            raise MissingArgument("contents is a required argument")
        if content_type != "BIND_9":
            raise ArgumentError(f"unsupported content type {content_type!r}")
        response = self._request(
            "/domains/import",
            "POST",
            body={"domains": [{"contentType": content_type, "contents": contents}]},
        )
        return Status(self, response.body)

    def delete(self, domains: Any, *, delete_subdomains: bool = True) -> Status:
        """Delete one domain or a list of domains."""
        items = domains if isinstance(domains, (list, tuple)) else [domains]
        ids = [ref_id(item) for item in items if item]
        if not ids:
            raise MissingArgument("domains is a required argument")
        response = self._request(
            "/domains",
            "DELETE",
            query={"id": ids, "deleteSubdomains": str(delete_subdomains).lower()},
        )
        return Status(self, response.body)
