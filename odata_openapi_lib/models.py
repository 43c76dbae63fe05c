"""
Data models for OData metadata representation.
"""

from typing import Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel

from .capabilities import CapabilityRecord, get_capability
from .constants import EDM_PRIMITIVE_SCHEMAS
from .errors import InvalidArgumentError

RecordT = TypeVar("RecordT", bound=BaseModel)


def simple_name(qualified_name: str) -> str:
    """Strip the namespace from a qualified name (NS.Order -> Order)."""
    return qualified_name.split('.')[-1]


def element_type_name(type_name: str) -> str:
    """Return the element type of a collection type (Collection(NS.T) -> NS.T)."""
    if type_name.startswith("Collection(") and type_name.endswith(")"):
        return type_name[len("Collection("):-1]
    return type_name


def is_collection_type(type_name: str) -> bool:
    return type_name.startswith("Collection(")


class EntityProperty(BaseModel):
    name: str
    type: str  # OData type string (e.g., "Edm.String")
    nullable: bool = True
    is_key: bool = False
    description: Optional[str] = None

    @property
    def is_collection(self) -> bool:
        return is_collection_type(self.type)


class NavigationProperty(BaseModel):
    name: str
    type: str  # Target entity type, possibly Collection(NS.Type)
    declaring_type: str = ""
    nullable: bool = True
    description: Optional[str] = None

    @property
    def is_collection(self) -> bool:
        return is_collection_type(self.type)

    @property
    def target_path(self) -> str:
        return f"{self.declaring_type}/{self.name}"


class EntityType(BaseModel):
    name: str
    base_type: Optional[str] = None  # Qualified name of the base entity type
    properties: List[EntityProperty] = []
    navigation_properties: List[NavigationProperty] = []
    key_properties: List[str] = []
    description: Optional[str] = None

    def get_key_properties(self) -> List[EntityProperty]:
        """Key properties in declared key order."""
        by_name = {prop.name: prop for prop in self.properties}
        missing = [name for name in self.key_properties if name not in by_name]
        if missing:
            raise InvalidArgumentError(
                f"Key properties {missing} of entity type '{self.name}' are not declared properties")
        return [by_name[name] for name in self.key_properties]

    def get_navigation_property(self, name: str) -> Optional[NavigationProperty]:
        for nav in self.navigation_properties:
            if nav.name == name:
                return nav
        return None


class ComplexType(BaseModel):
    name: str
    properties: List[EntityProperty] = []
    description: Optional[str] = None


class EnumType(BaseModel):
    name: str
    members: List[str] = []
    is_flags: bool = False
    description: Optional[str] = None


class EntityContainer(BaseModel):
    name: str = "Container"
    description: Optional[str] = None

    @property
    def target_path(self) -> str:
        return self.name


class EntitySet(BaseModel):
    name: str
    entity_type: str
    container: str = "Container"
    description: Optional[str] = None

    @property
    def target_path(self) -> str:
        return f"{self.container}/{self.name}"


class Singleton(BaseModel):
    name: str
    entity_type: str
    container: str = "Container"
    description: Optional[str] = None

    @property
    def target_path(self) -> str:
        return f"{self.container}/{self.name}"


class OperationParameter(BaseModel):
    name: str
    type: str
    nullable: bool = True
    description: Optional[str] = None

    @property
    def is_collection(self) -> bool:
        return is_collection_type(self.type)


class Function(BaseModel):
    name: str
    is_bound: bool = False
    parameters: List[OperationParameter] = []
    return_type: Optional[str] = None
    description: Optional[str] = None


class FunctionImport(BaseModel):
    name: str
    function: str  # Name of the imported function
    container: str = "Container"
    description: Optional[str] = None

    @property
    def target_path(self) -> str:
        return f"{self.container}/{self.name}"


class KeySegment(BaseModel):
    """A key segment of a path template, produced by the path builder."""
    entity_type: EntityType
    key_index: int = 0

    @property
    def key_properties(self) -> List[EntityProperty]:
        return self.entity_type.get_key_properties()


class ODataMetadata(BaseModel):
    namespace: str = ""
    entity_container: EntityContainer = EntityContainer()
    entity_types: Dict[str, EntityType] = {}
    complex_types: Dict[str, ComplexType] = {}
    enum_types: Dict[str, EnumType] = {}
    entity_sets: Dict[str, EntitySet] = {}
    singletons: Dict[str, Singleton] = {}
    # Function overloads keyed by simple name
    functions: Dict[str, List[Function]] = {}
    function_imports: Dict[str, FunctionImport] = {}
    # Capability records keyed by annotation target path
    annotations: Dict[str, List[CapabilityRecord]] = {}
    service_description: Optional[str] = None

    def get_capability_annotation(self, target, record_type: Type[RecordT]) -> Optional[RecordT]:
        return get_capability(self, target, record_type)

    def get_description_annotation(self, element) -> Optional[str]:
        return getattr(element, "description", None)

    def resolve_entity_type(self, type_name: str) -> EntityType:
        name = simple_name(element_type_name(type_name))
        entity_type = self.entity_types.get(name)
        if entity_type is None:
            raise InvalidArgumentError(f"Entity type '{type_name}' is not defined in the model")
        return entity_type

    def is_structured_type(self, type_name: str) -> bool:
        name = simple_name(element_type_name(type_name))
        if element_type_name(type_name) in EDM_PRIMITIVE_SCHEMAS:
            return False
        return name in self.entity_types or name in self.complex_types

    def get_function(self, name: str) -> Function:
        """Return the unbound overload of a function, the only kind a function import may reference."""
        for function in self.functions.get(simple_name(name), []):
            if not function.is_bound:
                return function
        raise InvalidArgumentError(f"Unbound function '{name}' is not defined in the model")
