"""Cloud block storage volumes."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from raxcloud.catalog import Services
from raxcloud.errors import MissingArgument
from raxcloud.resources.base import Resource, ServiceResource, pick, ref_id
from raxcloud.waiter import DEFAULT_INTERVAL_MS, DEFAULT_MAX_WAIT_S


class VolumeType:
    SSD = "SSD"
    SATA = "SATA"


class Volume(Resource):
    """Block storage volume."""

    def _set_properties(self, details: Mapping[str, Any]) -> None:
        super()._set_properties(details)
        self.display_name = details.get("display_name")
        self.display_description = details.get("display_description")
        self.size = details.get("size")
        self.status = details.get("status")
        self.volume_type = details.get("volume_type")
        self.snapshot_id = details.get("snapshot_id")
        self.attachments = details.get("attachments") or []
        self.created_at = details.get("created_at")
        self.availability_zone = details.get("availability_zone")
        self.metadata = details.get("metadata") or {}

    def _fetch(self) -> Mapping[str, Any]:
        return self._service.fetch(self.id)

    def delete(self) -> None:
        self._service.delete(self)


class VolumesResource(ServiceResource):
    """Block storage operations."""

    service = Services.BLOCK_STORAGE

    def list(self) -> list[Volume]:
        response = self._request("/volumes")
        return [Volume(self, item) for item in self._expect_key(response, "volumes", "volumes_list")]

    def fetch(self, volume_id: str) -> dict[str, Any]:
        response = self._request(f"/volumes/{volume_id}")
        return self._expect_key(response, "volume", "volumes_get")

    def get(self, volume_id: str) -> Volume:
        return Volume(self, self.fetch(volume_id))

    def create(
        self,
        size: int,
        *,
        display_name: str | None = None,
        display_description: str | None = None,
        snapshot_id: str | None = None,
        volume_type: str | None = None,
    ) -> Volume:
        """Create a volume.

        Args:
            size: Size in GB.
            display_name: Volume name.
            display_description: Free text description.
            snapshot_id: Snapshot to build the volume from.
            volume_type: ``VolumeType.SSD`` or ``VolumeType.SATA``.

        Returns:
            Volume: Volume as accepted by the API, usually ``creating``.
        """
        if not size:
            raise MissingArgument("size is a required argument")
        volume = {"size": size}
        volume.update(
            pick(
                {
                    "display_name": display_name,
                    "display_description": display_description,
                    "snapshot_id": snapshot_id,
                    "volume_type": volume_type,
                },
                "display_name",
                "display_description",
                "snapshot_id",
                "volume_type",
            )
        )
        response = self._request("/volumes", "POST", body={"volume": volume})
        return Volume(self, self._expect_key(response, "volume", "volumes_create"))

    def create_with_wait(
        self,
        size: int,
        *,
        status: str = "available",
        interval_ms: int = DEFAULT_INTERVAL_MS,
        max_wait_s: float | None = DEFAULT_MAX_WAIT_S,
        on_tick: Callable[[], None] | None = None,
        on_finish: Callable[[], None] | None = None,
        **kwargs: Any,
    ) -> Volume:
        """Create a volume and block until it reaches ``status``."""
        volume = self.create(size, **kwargs)
        return self._wait(
            volume,
            attributes={"status": status},
            interval_ms=interval_ms,
            max_wait_s=max_wait_s,
            on_tick=on_tick,
            on_finish=on_finish,
        )

    def delete(self, volume: Any) -> None:
        if not volume:
            raise MissingArgument("volume is a required argument")
        self._request(f"/volumes/{ref_id(volume)}", "DELETE")
