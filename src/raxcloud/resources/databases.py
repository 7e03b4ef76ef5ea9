"""Cloud databases instances."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from raxcloud.catalog import Services
from raxcloud.errors import MissingArgument
from raxcloud.resources.base import Resource, ServiceResource, ref_id
from raxcloud.waiter import DEFAULT_INTERVAL_MS, DEFAULT_MAX_WAIT_S


class DatabaseInstance(Resource):
    """Managed database instance."""

    case_insensitive_match = True

    def _set_properties(self, details: Mapping[str, Any]) -> None:
        super()._set_properties(details)
        self.name = details.get("name")
        self.status = details.get("status")
        self.hostname = details.get("hostname")
        self.flavor = details.get("flavor")
        self.volume = details.get("volume")
        self.created_at = details.get("created")
        self.updated = details.get("updated")

    def _fetch(self) -> Mapping[str, Any]:
        return self._service.fetch(self.id)

    def destroy(self) -> bool:
        return self._service.destroy(self)

    def list_databases(self) -> list[dict[str, Any]]:
        response = self._service._request(f"/instances/{self.id}/databases")
        return list(self._service._expect_key(response, "databases", "databases_list"))

    def create_databases(self, databases: list[dict[str, Any]]) -> None:
        """Create schemas on this instance, e.g. ``[{"name": "app"}]``."""
        if not databases:
            raise MissingArgument("databases is a required argument")
        self._service._request(
            f"/instances/{self.id}/databases", "POST", body={"databases": databases}
        )

    def delete_database(self, name: str) -> None:
        self._service._request(f"/instances/{self.id}/databases/{name}", "DELETE")

    def list_users(self) -> list[dict[str, Any]]:
        response = self._service._request(f"/instances/{self.id}/users")
        return list(self._service._expect_key(response, "users", "users_list"))

    def create_users(self, users: list[dict[str, Any]]) -> None:
        if not users:
            raise MissingArgument("users is a required argument")
        self._service._request(f"/instances/{self.id}/users", "POST", body={"users": users})

    def delete_user(self, name: str) -> None:
        self._service._request(f"/instances/{self.id}/users/{name}", "DELETE")


class DatabasesResource(ServiceResource):
    """Cloud databases operations."""

    service = Services.DATABASES

    def list(self) -> list[DatabaseInstance]:
        response = self._request("/instances")
        return [
            DatabaseInstance(self, item)
            for item in self._expect_key(response, "instances", "instances_list")
        ]

    def fetch(self, instance_id: str) -> dict[str, Any]:
        response = self._request(f"/instances/{instance_id}")
        return self._expect_key(response, "instance", "instances_get")

    def get(self, instance_id: str) -> DatabaseInstance:
        return DatabaseInstance(self, self.fetch(instance_id))

    def create(
        self,
        flavor: Any,
        size: int,
        *,
        name: str | None = None,
        databases: list[dict[str, Any]] | None = None,
        users: list[dict[str, Any]] | None = None,
    ) -> DatabaseInstance:
        """Create a database instance.

        Args:
            flavor: Flavor reference (URL or id).
            size: Volume size in GB.
            name: Instance name.
            databases: Schemas to create with the instance.
            users: Users to create with the instance.
        """
        if not flavor or not size:
            raise MissingArgument("flavor and size are required arguments")
        instance: dict[str, Any] = {"flavorRef": ref_id(flavor), "volume": {"size": size}}
        for key, value in (("name", name), ("databases", databases), ("users", users)):
            if value is not None:
                instance[key] = value
        response = self._request("/instances", "POST", body={"instance": instance})
        created = self._expect_key(response, "instance", "instances_create")
        return DatabaseInstance(self, {"name": name, **created})

    def create_with_wait(
        self,
        flavor: Any,
        size: int,
        *,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        max_wait_s: float | None = DEFAULT_MAX_WAIT_S,
        on_tick: Callable[[], None] | None = None,
        on_finish: Callable[[], None] | None = None,
        **kwargs: Any,
    ) -> DatabaseInstance:
        """Create an instance and block until it is ``ACTIVE`` (any case)."""
        instance = self.create(flavor, size, **kwargs)
        return self._wait(
            instance,
            attributes={"status": "ACTIVE"},
            interval_ms=interval_ms,
            max_wait_s=max_wait_s,
            on_tick=on_tick,
            on_finish=on_finish,
        )

    def destroy(self, instance: Any) -> bool:
        if not instance:
            raise MissingArgument("instance is a required argument")
        response = self._request(f"/instances/{ref_id(instance)}", "DELETE")
        return response.status_code == 202
