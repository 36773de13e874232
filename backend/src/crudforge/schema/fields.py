"""Field-level flag enforcement.

Walks a record against the canonical schema's field table and applies each
field's flag for the current action, independently of structural checks:

    flag          create/replace/update        view
    true          keep                         keep
    false         reject (permission_denied)   omit
    Permission    reject unless granted        omit unless granted
    Transform     keep (ignored)               replace with fn(value, actor, record)

Virtual fields are always omitted from the output. Sibling keys of an
object are validated concurrently and their errors merged.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import BaseModel

from crudforge.auth.permissions import mayi
from crudforge.core.errors import ValidationFailed
from crudforge.core.types import Actor, FieldValidationError, Record, ValidateAction
from crudforge.schema.builder import ABSENT
from crudforge.schema.flags import FieldSpec, Permission, Transform, build_field_table

logger = logging.getLogger(__name__)


def _denied(action: ValidateAction, path: str) -> ValidationFailed:
    message = f'You not allowed to {action.value} "{path}".'
    return ValidationFailed.for_field(path, message, "permission_denied", 403)


class FieldFlagValidator:
    """Applies per-field flags for one canonical schema.

    The field table is computed once at construction and never re-read
    from the schema afterwards.
    """

    def __init__(self, schema: type[BaseModel]):
        self.schema = schema
        self.table: dict[str, FieldSpec] = build_field_table(schema)

    async def validate_flags_field(
        self,
        action: ValidateAction,
        path: str,
        value: Any,
        record: Record,
        actor: Actor | None,
    ) -> Any:
        """Decide one field. Returns the (possibly transformed) value or ABSENT."""
        spec = self.table.get(path)
        if spec is None:
            if action is ValidateAction.VIEW:
                return ABSENT
            message = f'Field "{path}" not found in schema.'
            raise ValidationFailed.for_field(path, message, "field_not_found", 400)

        flags = spec.flags
        if flags.virtual:
            return ABSENT

        flag = flags.for_action(action.flag_name)

        if flag is False:
            if action is ValidateAction.VIEW:
                return ABSENT
            raise _denied(action, path)

        if isinstance(flag, Permission) and not mayi(actor, flag.name):
            if action is ValidateAction.VIEW:
                return ABSENT
            raise _denied(action, path)

        if isinstance(flag, Transform) and action is ValidateAction.VIEW:
            return await flag(value, actor, record)

        if spec.model is not None and value is not None:
            return await self.validate_flags_object(action, path, value, record, actor)

        return value

    async def validate_flags_object(
        self,
        action: ValidateAction,
        path: str,
        value: Any,
        record: Record,
        actor: Actor | None,
    ) -> Record:
        """Validate every key of an object value and return the sanitized copy."""
        if not isinstance(value, dict):
            message = f'Field "{path}" must be an object.'
            raise ValidationFailed.for_field(path, message, "invalid_type", 400)

        names = list(value.keys())
        results = await asyncio.gather(
            *(
                self.validate_flags_field(
                    action,
                    f"{path}.{name}" if path else name,
                    value[name],
                    record,
                    actor,
                )
                for name in names
            ),
            return_exceptions=True,
        )

        output: Record = {}
        errors: dict[str, FieldValidationError] = {}
        status_code = 403

        for name, result in zip(names, results):
            if isinstance(result, ValidationFailed):
                errors.update(result.errors)
                if result.status_code == 400:
                    status_code = 400
            elif isinstance(result, BaseException):
                raise result
            elif result is not ABSENT:
                output[name] = result

        if errors:
            logger.debug("Field flag validation failed for %s: %s", action.value, errors)
            raise ValidationFailed(errors, status_code)

        return output
