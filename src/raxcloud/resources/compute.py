"""Cloud servers: servers, flavors and images."""

from __future__ import annotations

import re
from typing import Any, Callable, Mapping

from raxcloud.catalog import Services
from raxcloud.client import Client
from raxcloud.errors import MissingArgument, RequestError
from raxcloud.resources.base import Resource, ServiceResource, pick, ref_id
from raxcloud.resources.blockstorage import Volume, VolumesResource
from raxcloud.scheduler import Scheduler
from raxcloud.waiter import DEFAULT_INTERVAL_MS, DEFAULT_MAX_WAIT_S


_IMAGE_LOCATION_RE = re.compile(r"images/([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})$")


class Flavor(Resource):
    """Server flavor (RAM, disk and vCPU sizing)."""

    def _set_properties(self, details: Mapping[str, Any]) -> None:
        super()._set_properties(details)
        self.name = details.get("name")
        self.ram = details.get("ram")
        self.disk = details.get("disk")
        self.vcpus = details.get("vcpus")

    def _fetch(self) -> Mapping[str, Any]:
        return self._service.fetch_flavor(self.id)


class Image(Resource):
    """Server image. Snapshots are created ``SAVING`` and become ``ACTIVE``."""

    def _set_properties(self, details: Mapping[str, Any]) -> None:
        super()._set_properties(details)
        self.name = details.get("name")
        self.status = details.get("status")
        self.progress = details.get("progress")
        self.min_disk = details.get("minDisk")
        self.min_ram = details.get("minRam")
        self.created = details.get("created")
        self.updated = details.get("updated")
        self.metadata = details.get("metadata") or {}

    def _fetch(self) -> Mapping[str, Any]:
        return self._service.fetch_image(self.id)

    def destroy(self) -> bool:
        return self._service.destroy_image(self)


class Server(Resource):
    """Cloud server.

    Fields absent from a response keep their previous value, since create and
    action responses carry only part of the server. Explicit nulls overwrite.
    """

    def _set_properties(self, details: Mapping[str, Any]) -> None:
        previous = getattr(self, "details", {}) or {}
        merged = {**previous, **details}
        super()._set_properties(merged)
        self.name = merged.get("name")
        self.status = merged.get("status")
        self.progress = merged.get("progress")
        self.admin_pass = merged.get("adminPass")
        self.host_id = merged.get("hostId")
        flavor = merged.get("flavor")
        self.flavor = flavor if isinstance(flavor, dict) else None
        image = merged.get("image")
        self.image = image if isinstance(image, dict) else None
        self.addresses = merged.get("addresses") or {}
        self.metadata = merged.get("metadata") or {}
        self.access_ipv4 = merged.get("accessIPv4")
        self.access_ipv6 = merged.get("accessIPv6")

    def _fetch(self) -> Mapping[str, Any]:
        return self._service.fetch(self.id)

    def _action(self, action: dict[str, Any], expected_status: int = 202) -> bool:
        response = self._service._request(f"/servers/{self.id}/action", "POST", body=action)
        return response.status_code == expected_status

    def destroy(self) -> bool:
        return self._service.destroy(self)

    def reboot(self, type: str = "soft") -> bool:
        """Reboot the server; ``type`` is ``soft`` or ``hard``."""
        return self._action({"reboot": {"type": type.upper()}})

    def resize(self, flavor: Any) -> bool:
        """Resize to another flavor. Confirm or revert once ``VERIFY_RESIZE``."""
        return self._action({"resize": {"flavorRef": ref_id(flavor)}})

    def confirm_resize(self) -> bool:
        return self._action({"confirmResize": None}, expected_status=204)

    def revert_resize(self) -> bool:
        return self._action({"revertResize": None})

    def rename(self, name: str) -> bool:
        """Change the server name. The hostname is left alone."""
        if not name:
            raise MissingArgument("name is a required argument")
        response = self._service._request(
            f"/servers/{self.id}", "PUT", body={"server": {"name": name}}
        )
        if isinstance(response.body, dict) and isinstance(response.body.get("server"), dict):
            self._set_properties(response.body["server"])
        else:
            self._set_properties({"name": name})
        return True

    def create_image(self, name: str, metadata: Mapping[str, Any] | None = None) -> str:
        return self._service.create_image(self, name, metadata=metadata)

    def get_volumes(self) -> list[dict[str, Any]]:
        """List the volume attachments of this server."""
        response = self._service._request(f"/servers/{self.id}/os-volume_attachments")
        return list(self._service._expect_key(response, "volumeAttachments", "get_volumes"))

    def attach_volume(
        self,
        volume: Any,
        device: str | None = None,
        *,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        max_wait_s: float | None = DEFAULT_MAX_WAIT_S,
    ) -> Volume:
        """Attach a block storage volume and wait until it is ``in-use``.

        Args:
            volume: ``Volume`` or volume id.
            device: Device name, e.g. ``/dev/xvdb``. Chosen by the API if unset.
            interval_ms: Polling interval of the wait.
            max_wait_s: Deadline of the wait.

        Returns:
            Volume: The attached volume.
        """
        volume_id = ref_id(volume)
        attachment = pick({"volumeId": volume_id, "device": device}, "volumeId", "device")
        response = self._service._request(
            f"/servers/{self.id}/os-volume_attachments",
            "POST",
            body={"volumeAttachment": attachment},
        )
        self._service._expect_key(response, "volumeAttachment", "attach_volume")
        attached = self._service.volumes.get(volume_id)
        return self._service._wait(
            attached,
            attributes={"status": "in-use"},
            interval_ms=interval_ms,
            max_wait_s=max_wait_s,
            on_tick=None,
            on_finish=None,
        )

    def detach_volume(
        self,
        attachment_id: str,
        *,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        max_wait_s: float | None = DEFAULT_MAX_WAIT_S,
    ) -> Volume:
        """Detach a volume and wait until it is ``available`` again."""
        self._service._request(
            f"/servers/{self.id}/os-volume_attachments/{attachment_id}", "DELETE"
        )
        detached = self._service.volumes.get(attachment_id)
        return self._service._wait(
            detached,
            attributes={"status": "available"},
            interval_ms=interval_ms,
            max_wait_s=max_wait_s,
            on_tick=None,
            on_finish=None,
        )


class ServersResource(ServiceResource):
    """Cloud servers operations."""

    service = Services.COMPUTE

    def __init__(
        self,
        client: Client,
        scheduler: Scheduler | None = None,
        volumes: VolumesResource | None = None,
    ) -> None:
        super().__init__(client, scheduler)
        self.volumes = volumes or VolumesResource(client, scheduler)

    def list(self, **filters: Any) -> list[Server]:
        """List servers with details.

        Args:
            **filters: ``image``, ``flavor``, ``name``, ``status``, ``marker``,
                ``limit`` or ``changes-since``.
        """
        query = pick(filters, "image", "flavor", "name", "status", "marker", "limit", "changes-since")
        response = self._request("/servers/detail", query=query or None)
        return [Server(self, item) for item in self._expect_key(response, "servers", "servers_list")]

    def fetch(self, server_id: str) -> dict[str, Any]:
        response = self._request(f"/servers/{server_id}")
        return self._expect_key(response, "server", "servers_get")

    def get(self, server_id: str) -> Server:
        return Server(self, self.fetch(server_id))

    def create(
        self,
        name: str,
        image: Any,
        flavor: Any,
        *,
        metadata: Mapping[str, Any] | None = None,
        personality: list[dict[str, Any]] | None = None,
        admin_pass: str | None = None,
    ) -> Server:
        """Create a server. Returns as soon as the API accepted the build.

        Args:
            name: Server name.
            image: ``Image`` or image id.
            flavor: ``Flavor`` or flavor id.
            metadata: Server metadata.
            personality: Files injected at build time.
            admin_pass: Root password. Generated by the API if unset.

        Returns:
            Server: Server in ``BUILD`` state.
        """
        for arg_name, value in (("name", name), ("image", image), ("flavor", flavor)):
            if not value:
                raise MissingArgument(f"{arg_name} is a required argument")
        server = {
            "name": name,
            "imageRef": ref_id(image),
            "flavorRef": ref_id(flavor),
            "metadata": dict(metadata) if metadata else None,
            "personality": personality or [],
        }
        if admin_pass:
            server["adminPass"] = admin_pass
        response = self._request("/servers", "POST", body={"server": server})
        created = self._expect_key(response, "server", "servers_create")
        return Server(self, {"name": name, "status": "BUILD", **created})

    def create_with_wait(
        self,
        name: str,
        image: Any,
        flavor: Any,
        *,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        max_wait_s: float | None = DEFAULT_MAX_WAIT_S,
        on_tick: Callable[[], None] | None = None,
        on_finish: Callable[[], None] | None = None,
        **kwargs: Any,
    ) -> Server:
        """Create a server and block until it is ``ACTIVE``.

        Raises:
            WaitTimeoutError: The server was not active within ``max_wait_s``.
        """
        server = self.create(name, image, flavor, **kwargs)
        return self._wait(
            server,
            attributes={"status": "ACTIVE"},
            interval_ms=interval_ms,
            max_wait_s=max_wait_s,
            on_tick=on_tick,
            on_finish=on_finish,
        )

    def destroy(self, server: Any) -> bool:
        if not server:
            raise MissingArgument("server is a required argument")
        response = self._request(f"/servers/{ref_id(server)}", "DELETE")
        return response.status_code == 204

    def list_flavors(self, **filters: Any) -> list[Flavor]:
        query = pick(filters, "minDisk", "minRam", "marker", "limit")
        response = self._request("/flavors/detail", query=query or None)
        return [Flavor(self, item) for item in self._expect_key(response, "flavors", "flavors_list")]

    def fetch_flavor(self, flavor_id: Any) -> dict[str, Any]:
        response = self._request(f"/flavors/{flavor_id}")
        return self._expect_key(response, "flavor", "flavors_get")

    def get_flavor(self, flavor_id: Any) -> Flavor:
        return Flavor(self, self.fetch_flavor(flavor_id))

    def list_images(self, **filters: Any) -> list[Image]:
        query = pick(filters, "server", "name", "status", "marker", "limit", "changes-since", "type")
        response = self._request("/images/detail", query=query or None)
        return [Image(self, item) for item in self._expect_key(response, "images", "images_list")]

    def fetch_image(self, image_id: str) -> dict[str, Any]:
        response = self._request(f"/images/{image_id}")
        return self._expect_key(response, "image", "images_get")

    def get_image(self, image_id: str) -> Image:
        return Image(self, self.fetch_image(image_id))

    def create_image(
        self,
        server: Any,
        name: str,
        *,
        metadata: Mapping[str, Any] | None = None,
    ) -> str:
        """Snapshot a server into a new image.

        Returns:
            str: Id of the new image, taken from the ``Location`` header.
        """
        if not server or not name:
            raise MissingArgument("server and name are required arguments")
        create_image: dict[str, Any] = {"name": name}
        if metadata:
            create_image["metadata"] = dict(metadata)
        response = self._request(
            f"/servers/{ref_id(server)}/action", "POST", body={"createImage": create_image}
        )
        location = response.headers.get("location") or response.headers.get("Location") or ""
        match = _IMAGE_LOCATION_RE.search(location)
        if match is None:
            raise RequestError(
                f"create_image response has no image location: {location!r}",
                status_code=response.status_code,
            )
        return match.group(1)

    def destroy_image(self, image: Any) -> bool:
        response = self._request(f"/images/{ref_id(image)}", "DELETE")
        return response.status_code == 204
