"""
Base lifecycle adapter for SFTPGo objects.

An adapter maps one kind of SFTPGo object onto the create, read, update,
delete and import operations driven by the reconciler. Adapters hold no
state: the API client is passed to every call and the persisted state
record is owned by the caller.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar

import pydantic

from sftpgo_operator.errors import SFTPGoAPIError, ValidationError
from sftpgo_operator.models.common import ResourceModel
from sftpgo_operator.utils.secrets import preserve_secrets
from sftpgo_operator.utils.sftpgo_client import SFTPGoClient, escape_path

logger = logging.getLogger(__name__)


def _format_validation_error(kind: str, error: pydantic.ValidationError) -> str:
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or kind}: {err['msg']}"
        for err in error.errors()
    )
    return f"Invalid {kind} configuration: {details}"


class ResourceAdapter(ABC):
    """
    Lifecycle operations for one kind of SFTPGo object.

    Subclasses provide the remote calls; this class implements the shared
    flow: validate, write, re-fetch, decode and restore secrets.
    """

    kind: ClassVar[str]
    plural: ClassVar[str]
    model: ClassVar[type[ResourceModel]]

    @property
    def identifier_field(self) -> str:
        return self.model.IDENTIFIER_FIELD

    def parse_config(self, config: Mapping[str, Any]) -> ResourceModel:
        """
        Validate a configuration record.

        Raises:
            ValidationError: If the record does not describe a valid object
        """
        try:
            return self.model.model_validate(dict(config))
        except pydantic.ValidationError as e:
            raise ValidationError(_format_validation_error(self.kind, e)) from e

    def identifier_of(self, record: Mapping[str, Any]) -> str:
        identifier = record.get(self.identifier_field)
        if not identifier:
            raise ValidationError(
                f"{self.kind} record has no identifier", field=self.identifier_field
            )
        return identifier

    @abstractmethod
    async def fetch(self, client: SFTPGoClient, identifier: str) -> ResourceModel | None:
        """Get an object by identifier, ``None`` when it does not exist."""

    @abstractmethod
    async def create_remote(self, client: SFTPGoClient, desired: ResourceModel) -> None:
        """Send the create request for a validated object."""

    @abstractmethod
    async def update_remote(self, client: SFTPGoClient, desired: ResourceModel) -> None:
        """Send the update request for a validated object."""

    @abstractmethod
    async def delete_remote(self, client: SFTPGoClient, identifier: str) -> None:
        """Send the delete request for an object."""

    async def _refetch(self, client: SFTPGoClient, identifier: str) -> ResourceModel:
        current = await self.fetch(client, identifier)
        if current is None:
            raise SFTPGoAPIError(
                f"{self.kind} {identifier} not found right after it was written",
                status_code=404,
            )
        return current

    @staticmethod
    def _to_state(
        current: ResourceModel, source: Mapping[str, Any] | None, paths: list[str]
    ) -> dict[str, Any]:
        return preserve_secrets(current.to_record(), dict(source or {}), paths)

    async def create(
        self, client: SFTPGoClient, config: Mapping[str, Any]
    ) -> dict[str, Any]:
        """
        Create the object described by a configuration record.

        Returns:
            The state record: the object as read back, with configured secrets
        """
        desired = self.parse_config(config)
        logger.debug(f"Creating {self.kind} {desired.identifier}")

        await self.create_remote(client, desired)
        current = await self._refetch(client, desired.identifier)
        return self._to_state(current, desired.to_record(), desired.secret_paths())

    async def read(
        self, client: SFTPGoClient, state: Mapping[str, Any]
    ) -> dict[str, Any] | None:
        """
        Refresh a state record from the server.

        Returns:
            The refreshed state, or ``None`` when the object no longer exists
        """
        identifier = self.identifier_of(state)
        current = await self.fetch(client, identifier)
        if current is None:
            logger.info(f"{self.kind} {identifier} no longer exists")
            return None
        return self._to_state(current, state, current.secret_paths())

    async def update(
        self, client: SFTPGoClient, config: Mapping[str, Any]
    ) -> dict[str, Any]:
        desired = self.parse_config(config)
        logger.debug(f"Updating {self.kind} {desired.identifier}")

        await self.update_remote(client, desired)
        current = await self._refetch(client, desired.identifier)
        return self._to_state(current, desired.to_record(), desired.secret_paths())

    async def delete(self, client: SFTPGoClient, state: Mapping[str, Any]) -> None:
        """Delete an object; an object that is already gone counts as deleted."""
        identifier = self.identifier_of(state)
        try:
            await self.delete_remote(client, identifier)
        except SFTPGoAPIError as e:
            if not e.is_not_found:
                raise
            logger.info(f"{self.kind} {identifier} already deleted")

    def import_state(self, identifier: str) -> dict[str, Any]:
        """Seed a state record that a following read fills in."""
        if not identifier:
            raise ValidationError(
                f"cannot import {self.kind} without an identifier",
                field=self.identifier_field,
            )
        return {self.identifier_field: identifier}


class RestResourceAdapter(ResourceAdapter):
    """Adapter for objects exposed as a REST collection under ``/api/v2``."""

    endpoint: ClassVar[str]
    # ask the server for secrets in their encrypted form
    confidential: ClassVar[bool] = False

    @property
    def collection(self) -> str:
        return self.endpoint

    def object_path(self, identifier: str) -> str:
        return f"{self.collection}/{escape_path(identifier)}"

    @property
    def params(self) -> dict[str, Any] | None:
        return {"confidential_data": 1} if self.confidential else None

    async def fetch(self, client: SFTPGoClient, identifier: str) -> ResourceModel | None:
        try:
            data = await client.get(self.object_path(identifier), params=self.params)
        except SFTPGoAPIError as e:
            if e.is_not_found:
                return None
            raise
        return self.model.from_wire(data)

    async def create_remote(self, client: SFTPGoClient, desired: ResourceModel) -> None:
        await client.create(self.collection, desired.to_wire(), params=self.params)

    async def update_remote(self, client: SFTPGoClient, desired: ResourceModel) -> None:
        await client.update(self.object_path(desired.identifier), desired.to_wire())

    async def delete_remote(self, client: SFTPGoClient, identifier: str) -> None:
        await client.delete(self.object_path(identifier))
