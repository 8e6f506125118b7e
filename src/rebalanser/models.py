"""
Payload models for the rebalancing protocol.

The coordinator publishes JSON payloads on the coordination service. These
models parse them into immutable values:

- RebalancingStatus: Phase carried by the status node
- StatusSnapshot: Status phase plus the node version it was read at
- ResourceAssignment / ResourceAssignments: Assignment of resources to clients
- ActiveClients: Paths of the currently registered client nodes
- ClientIdentity: This client's id, rank and node path

Wire field names follow the coordinator's PascalCase convention; models
also accept the snake_case field names.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rebalanser.exceptions import InvalidClientPathError
from rebalanser.types import ClientId, ClientNumber, NodePath, ResourceId, Version

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_NUMBER_WIDTH = 10
"""Width of the zero-padded sequence suffix of a client node name."""


class RebalancingStatus(Enum):
    """
    Phase of a rebalancing barrier, as published by the coordinator.

    UNRECOGNIZED is the explicit arm for wire values this library does not
    know. Followers log it and take no action.
    """

    STOP_ACTIVITY = "StopActivity"
    RESOURCES_GRANTED = "ResourcesGranted"
    START_CONFIRMED = "StartConfirmed"
    UNRECOGNIZED = "Unrecognized"

    @classmethod
    def parse(cls, value: Any) -> RebalancingStatus:
        """
        Parse a wire value, mapping anything unknown to UNRECOGNIZED.

        Args:
            value: Wire value (member, name or value string)

        Returns:
            The matching member, or UNRECOGNIZED
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if value in (member.value, member.name):
                    return member
        logger.debug("Unrecognized rebalancing status value", extra={"value": repr(value)})
        return cls.UNRECOGNIZED


class StatusSnapshot(BaseModel):
    """
    Value of the status node at a given version.

    Read fresh on every status watch trigger and never cached.

    Attributes:
        version: Node data version assigned by the coordination service
        rebalancing_status: Phase carried by the node
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: Version = Field(default=0, ge=0)
    rebalancing_status: RebalancingStatus = Field(
        default=RebalancingStatus.UNRECOGNIZED,
        alias="RebalancingStatus",
    )

    @field_validator("rebalancing_status", mode="before")
    @classmethod
    def _parse_status(cls, value: Any) -> RebalancingStatus:
        return RebalancingStatus.parse(value)

    @classmethod
    def from_payload(cls, payload: bytes | str, version: Version) -> StatusSnapshot:
        """
        Build a snapshot from the status node's JSON payload and version.

        Args:
            payload: JSON document, e.g. ``{"RebalancingStatus": "StopActivity"}``
            version: Version of the node the payload was read at

        Returns:
            StatusSnapshot
        """
        parsed = cls.model_validate_json(payload)
        return parsed.model_copy(update={"version": version})


class ResourceAssignment(BaseModel):
    """A single resource assigned to a single client."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    client_id: ClientId = Field(alias="ClientId")
    resource: ResourceId = Field(alias="Resource")


class ResourceAssignments(BaseModel):
    """
    Current assignment of resources to clients.

    Assignment order is preserved, so each client sees its resources in the
    order the coordinator published them.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    assignments: list[ResourceAssignment] = Field(default_factory=list, alias="Assignments")

    def resources_for(self, client_id: ClientId) -> list[ResourceId]:
        """Get the ordered resources addressed to a client."""
        return [a.resource for a in self.assignments if a.client_id == client_id]

    def as_mapping(self) -> dict[ClientId, list[ResourceId]]:
        """Get the clientId -> resources view of the assignments."""
        mapping: dict[ClientId, list[ResourceId]] = {}
        for assignment in self.assignments:
            mapping.setdefault(assignment.client_id, []).append(assignment.resource)
        return mapping

    @classmethod
    def from_mapping(cls, mapping: dict[ClientId, list[ResourceId]]) -> ResourceAssignments:
        """Build assignments from a clientId -> resources mapping."""
        return cls(
            assignments=[
                ResourceAssignment(client_id=client_id, resource=resource)
                for client_id, resources in mapping.items()
                for resource in resources
            ]
        )


class ActiveClients(BaseModel):
    """Paths of the client nodes currently registered."""

    model_config = ConfigDict(frozen=True)

    client_paths: list[NodePath] = Field(default_factory=list)


def parse_client_number(path: NodePath, width: int = DEFAULT_CLIENT_NUMBER_WIDTH) -> ClientNumber:
    """
    Read the rank encoded in the trailing sequence suffix of a client path.

    Args:
        path: Client node path, e.g. ``/rebalanser/clients/c_0000000007``
        width: Number of digits in the suffix

    Returns:
        The integer rank

    Raises:
        InvalidClientPathError: If the path does not end in width digits
    """
    suffix = path[-width:]
    if len(suffix) != width or not (suffix.isascii() and suffix.isdigit()):
        raise InvalidClientPathError(path, width)
    return int(suffix)


def node_id(path: NodePath) -> str:
    """Get the last segment of a path, including its leading slash."""
    return path[path.rfind("/") :]


class ClientIdentity(BaseModel):
    """
    Identity of this client for the lifetime of its session.

    Attributes:
        client_id: Opaque client id
        client_number: Rank taken from the sequential node name
        own_path: Path of this client's node
    """

    model_config = ConfigDict(frozen=True)

    client_id: ClientId
    client_number: ClientNumber = Field(ge=0)
    own_path: NodePath

    @classmethod
    def from_path(
        cls,
        client_id: ClientId,
        own_path: NodePath,
        width: int = DEFAULT_CLIENT_NUMBER_WIDTH,
    ) -> ClientIdentity:
        """Create an identity whose rank is read from own_path."""
        return cls(
            client_id=client_id,
            client_number=parse_client_number(own_path, width),
            own_path=own_path,
        )


__all__ = [
    "DEFAULT_CLIENT_NUMBER_WIDTH",
    "RebalancingStatus",
    "StatusSnapshot",
    "ResourceAssignment",
    "ResourceAssignments",
    "ActiveClients",
    "ClientIdentity",
    "parse_client_number",
    "node_id",
]
