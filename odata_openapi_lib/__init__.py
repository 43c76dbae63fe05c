"""
OData OpenAPI Library - OpenAPI parameter generation from OData metadata and capability annotations.
"""

from .models import (
    EntityProperty,
    NavigationProperty,
    EntityType,
    ComplexType,
    EnumType,
    EntityContainer,
    EntitySet,
    Singleton,
    OperationParameter,
    Function,
    FunctionImport,
    KeySegment,
    ODataMetadata
)
from .capabilities import (
    TopSupported,
    SkipSupported,
    CountRestrictions,
    FilterRestrictions,
    SearchRestrictions,
    SortRestrictions,
    NavigationPropertyRestriction,
    NavigationRestrictions,
    ExpandRestrictions
)
from .openapi import OpenApiSchema, ParameterDescriptor, ParameterReference, Parameter
from .errors import InvalidArgumentError
from .settings import GenerationSettings
from .schema_mapper import PrimitiveSchemaMapper
from .context import ODataContext
from .parameter_generator import ParameterGenerator
from .metadata_parser import MetadataParser

__all__ = [
    'EntityProperty',
    'NavigationProperty',
    'EntityType',
    'ComplexType',
    'EnumType',
    'EntityContainer',
    'EntitySet',
    'Singleton',
    'OperationParameter',
    'Function',
    'FunctionImport',
    'KeySegment',
    'ODataMetadata',
    'TopSupported',
    'SkipSupported',
    'CountRestrictions',
    'FilterRestrictions',
    'SearchRestrictions',
    'SortRestrictions',
    'NavigationPropertyRestriction',
    'NavigationRestrictions',
    'ExpandRestrictions',
    'OpenApiSchema',
    'ParameterDescriptor',
    'ParameterReference',
    'Parameter',
    'InvalidArgumentError',
    'GenerationSettings',
    'PrimitiveSchemaMapper',
    'ODataContext',
    'ParameterGenerator',
    'MetadataParser'
]
