"""
Entity flag redirection with optional schema enforcement.

Flag scopes are canonicalized before reaching the entity. When a pydantic
model is registered for the canonical scope, set_flag() never persists the
caller's value wholesale: the dotted key is expanded into a change object,
merged against the prior flags in a dry run, validated, and only the fields
that actually changed are written. Sibling fields the caller did not touch
are left alone, and an invalid merge writes nothing.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, runtime_checkable

from pydantic import BaseModel, ValidationError

from ..errors import FlagValidationError
from ..identity import Identity
from ..objects import diff_object, expand_object, merge_object
from .base import Redirector

logger = logging.getLogger(__name__)


@runtime_checkable
class FlagEntity(Protocol):
    """Shape of an entity carrying a namespaced flag bag."""

    document_type: str
    flags: Mapping[str, Any]

    def get_flag(self, scope: str, key: str) -> Any: ...

    async def set_flag(self, scope: str, key: str, value: Any) -> Any: ...

    async def unset_flag(self, scope: str, key: str) -> Any: ...

    async def update(self, changes: dict[str, Any]) -> Any: ...


class EntityFlagRedirector(Redirector):
    """Flag accessor adapter: canonical scope, schema-checked diff writes."""

    def __init__(self, identity: Identity):
        super().__init__(identity)
        # (document_type or None, canonical scope) -> model
        self._schemas: dict[tuple[str | None, str], type[BaseModel]] = {}

    # -------------------------------------------------------------------------
    # Schema registry
    # -------------------------------------------------------------------------

    def register_schema(
        self,
        scope: str,
        model: type[BaseModel],
        *,
        document_type: str | None = None,
    ) -> None:
        """
        Register a validation model for a flag scope.

        document_type=None applies to every entity type without a more
        specific registration.
        """
        self._schemas[(document_type, self._canonical(scope))] = model

    def schema_for(self, entity: FlagEntity, scope: str) -> type[BaseModel] | None:
        scope = self._canonical(scope)
        document_type = getattr(entity, "document_type", None)
        return self._schemas.get((document_type, scope)) or self._schemas.get((None, scope))

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    def get_flag(self, entity: FlagEntity, scope: str, key: str) -> Any:
        return entity.get_flag(self._canonical(scope), key)

    async def set_flag(self, entity: FlagEntity, scope: str, key: str, value: Any) -> Any:
        scope = self._canonical(scope)
        schema = self.schema_for(entity, scope)
        if schema is None:
            return await entity.set_flag(scope, key, value)

        changes = expand_object({key: value})
        prior = entity.flags.get(scope)
        if prior is not None:
            source = _as_source(prior)
            validated = _validate(schema, merge_object(source, changes), scope, key)
            diff = diff_object(source, validated)
        else:
            diff = _validate(schema, changes, scope, key)

        if not diff:
            logger.debug("set_flag(%s, %s) produced no changes", scope, key)
            return entity
        return await entity.update({"flags": {scope: diff}})

    async def unset_flag(self, entity: FlagEntity, scope: str, key: str) -> Any:
        return await entity.unset_flag(self._canonical(scope), key)

    def typed_flags(self, entity: FlagEntity, scope: str | None = None) -> BaseModel | None:
        """
        Validated view of an entity's flags for one scope (canonical by default).

        Returns None when no schema is registered or the entity holds no flags
        for the scope. The entity is not modified.
        """
        scope = self._canonical(scope) if scope is not None else self.identity.canonical
        schema = self.schema_for(entity, scope)
        prior = entity.flags.get(scope)
        if schema is None or prior is None:
            return None
        try:
            return schema.model_validate(_as_source(prior))
        except ValidationError as e:
            raise FlagValidationError(scope, "", e.errors()) from e


def _as_source(value: Any) -> dict[str, Any]:
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, Mapping):
        return dict(value)
    return {}


def _validate(schema: type[BaseModel], data: dict[str, Any], scope: str, key: str) -> dict[str, Any]:
    try:
        return schema.model_validate(data).model_dump()
    except ValidationError as e:
        raise FlagValidationError(scope, key, e.errors()) from e
