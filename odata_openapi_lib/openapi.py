"""
OpenAPI parameter and schema objects produced by the parameter generator.
"""

import copy
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel

from .constants import PARAMETER_REFERENCE_PREFIX

ParameterLocation = Literal["path", "query", "header"]


class OpenApiSchema(BaseModel):
    type: Optional[str] = None
    format: Optional[str] = None
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    enum: Optional[List[Any]] = None
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        return self.model_dump(exclude_none=True)


class ParameterDescriptor(BaseModel):
    """An inline OpenAPI Parameter Object."""
    name: str
    location: ParameterLocation
    required: bool = False
    description: Optional[str] = None
    value_schema: Optional[OpenApiSchema] = None
    style: Optional[str] = None
    example: Optional[Any] = None
    extensions: Dict[str, Any] = {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize into the OpenAPI document shape."""
        result: Dict[str, Any] = {'name': self.name, 'in': self.location}
        if self.description:
            result['description'] = self.description
        if self.required:
            result['required'] = True
        if self.style:
            result['style'] = self.style
        if self.value_schema is not None:
            result['schema'] = self.value_schema.to_dict()
        if self.example is not None:
            result['example'] = self.example
        result.update(copy.deepcopy(self.extensions))
        return result


class ParameterReference(BaseModel):
    """A reference to a reusable parameter in components/parameters."""
    ref_id: str

    @property
    def ref(self) -> str:
        return f"{PARAMETER_REFERENCE_PREFIX}{self.ref_id}"

    def to_dict(self) -> Dict[str, Any]:
        return {'$ref': self.ref}


Parameter = Union[ParameterDescriptor, ParameterReference]
