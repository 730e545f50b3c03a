"""
Shared schema plumbing

Create models describe a full record; patch models list every mutable field
as optional and forbid unknown keys, so the set of patchable keys is fixed
per entity.
"""
from typing import Any, Dict, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from tripdesk.core.errors import ValidationError

M = TypeVar('M', bound=BaseModel)


class RecordModel(BaseModel):
    """Full record accepted on create"""
    model_config = ConfigDict(extra='forbid', use_enum_values=True)

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode='json', exclude_none=True)


class PatchModel(BaseModel):
    """Partial update; only explicitly set fields travel to the store"""
    model_config = ConfigDict(extra='forbid', use_enum_values=True)

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(mode='json', exclude_unset=True)


def coerce(model_cls: Type[M], data: Union[M, Dict[str, Any], None]) -> M:
    """Validate a dict (or pass through a model) raising our ValidationError"""
    if isinstance(data, model_cls):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return model_cls.model_validate(data or {})
    except PydanticValidationError as exc:
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = '.'.join(str(part) for part in first.get('loc', ())) or None
        message = first.get('msg', 'invalid input')
        raise ValidationError(
            f"{model_cls.__name__}: {field + ': ' if field else ''}{message}",
            field=field,
            errors=[{'loc': list(e.get('loc', ())), 'msg': e.get('msg')} for e in errors]
        ) from exc
