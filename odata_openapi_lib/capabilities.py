"""
Capability vocabulary records (Org.OData.Capabilities.V1) and their lookup.

A target without a record for a given term is fully permissive; a record,
when present, only ever narrows what the target allows.
"""

import re
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar, Union

from pydantic import BaseModel

from .constants import CAPABILITIES_NAMESPACE


class TopSupported(BaseModel):
    term: Literal["Org.OData.Capabilities.V1.TopSupported"] = "Org.OData.Capabilities.V1.TopSupported"
    is_supported: bool = True


class SkipSupported(BaseModel):
    term: Literal["Org.OData.Capabilities.V1.SkipSupported"] = "Org.OData.Capabilities.V1.SkipSupported"
    is_supported: bool = True


class CountRestrictions(BaseModel):
    term: Literal["Org.OData.Capabilities.V1.CountRestrictions"] = "Org.OData.Capabilities.V1.CountRestrictions"
    countable: bool = True
    non_countable_properties: List[str] = []
    non_countable_navigation_properties: List[str] = []

    @property
    def is_countable(self) -> bool:
        return self.countable


class FilterRestrictions(BaseModel):
    term: Literal["Org.OData.Capabilities.V1.FilterRestrictions"] = "Org.OData.Capabilities.V1.FilterRestrictions"
    filterable: bool = True
    requires_filter: bool = False
    required_properties: List[str] = []
    non_filterable_properties: List[str] = []

    @property
    def is_filterable(self) -> bool:
        return self.filterable


class SearchRestrictions(BaseModel):
    term: Literal["Org.OData.Capabilities.V1.SearchRestrictions"] = "Org.OData.Capabilities.V1.SearchRestrictions"
    searchable: bool = True
    unsupported_expressions: Optional[str] = None

    @property
    def is_searchable(self) -> bool:
        return self.searchable


class SortRestrictions(BaseModel):
    term: Literal["Org.OData.Capabilities.V1.SortRestrictions"] = "Org.OData.Capabilities.V1.SortRestrictions"
    sortable: bool = True
    ascending_only_properties: List[str] = []
    descending_only_properties: List[str] = []
    non_sortable_properties: List[str] = []

    @property
    def is_sortable(self) -> bool:
        return self.sortable

    def is_non_sortable_property(self, name: str) -> bool:
        return name in self.non_sortable_properties

    def is_ascending_only_property(self, name: str) -> bool:
        return name in self.ascending_only_properties

    def is_descending_only_property(self, name: str) -> bool:
        return name in self.descending_only_properties


class NavigationPropertyRestriction(BaseModel):
    navigation_property: str
    navigability: Optional[str] = None  # Recursive, Single or None


class NavigationRestrictions(BaseModel):
    term: Literal["Org.OData.Capabilities.V1.NavigationRestrictions"] = "Org.OData.Capabilities.V1.NavigationRestrictions"
    navigability: str = "Recursive"
    restricted_properties: List[NavigationPropertyRestriction] = []

    @property
    def is_navigable(self) -> bool:
        return self.navigability != "None"

    def is_restricted_property(self, name: str) -> bool:
        """A navigation property is restricted when an entry for it disables navigation."""
        return any(
            restriction.navigation_property == name and restriction.navigability == "None"
            for restriction in self.restricted_properties
        )


class ExpandRestrictions(BaseModel):
    term: Literal["Org.OData.Capabilities.V1.ExpandRestrictions"] = "Org.OData.Capabilities.V1.ExpandRestrictions"
    expandable: bool = True
    non_expandable_properties: List[str] = []

    @property
    def is_expandable(self) -> bool:
        return self.expandable

    def is_non_expandable_property(self, name: str) -> bool:
        return name in self.non_expandable_properties


CapabilityRecord = Union[
    TopSupported,
    SkipSupported,
    CountRestrictions,
    FilterRestrictions,
    SearchRestrictions,
    SortRestrictions,
    NavigationRestrictions,
    ExpandRestrictions,
]

CAPABILITY_RECORD_TYPES: Dict[str, Type[BaseModel]] = {
    f"{CAPABILITIES_NAMESPACE}.{cls.__name__}": cls
    for cls in (
        TopSupported,
        SkipSupported,
        CountRestrictions,
        FilterRestrictions,
        SearchRestrictions,
        SortRestrictions,
        NavigationRestrictions,
        ExpandRestrictions,
    )
}

# Tag-like terms whose annotation value is a single boolean
BOOLEAN_TERMS = {
    f"{CAPABILITIES_NAMESPACE}.TopSupported",
    f"{CAPABILITIES_NAMESPACE}.SkipSupported",
}

RecordT = TypeVar("RecordT", bound=BaseModel)


def _snake_case(name: str) -> str:
    """Convert a CSDL property name (NonSortableProperties) to a field name (non_sortable_properties)."""
    return re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()


def _normalize_values(values: Any) -> Any:
    if isinstance(values, dict):
        return {_snake_case(k): _normalize_values(v) for k, v in values.items()}
    if isinstance(values, list):
        return [_normalize_values(v) for v in values]
    return values


def record_from_term(term: str, values: Any = None) -> Optional[BaseModel]:
    """
    Build a capability record from an annotation term and its value.

    Args:
        term: Fully qualified term name, e.g. 'Org.OData.Capabilities.V1.SortRestrictions'
        values: A bool for the *Supported terms, or a dict of CSDL record
                property values (CamelCase keys) for the restriction terms

    Returns:
        The record, or None if the term is not a known capability term
    """
    record_type = CAPABILITY_RECORD_TYPES.get(term)
    if record_type is None:
        return None
    if term in BOOLEAN_TERMS:
        return record_type(is_supported=True if values is None else bool(values))
    if not isinstance(values, dict):
        return record_type()
    return record_type(**_normalize_values(values))


def get_capability(model, target, record_type: Type[RecordT]) -> Optional[RecordT]:
    """
    Look up the capability record of the given type declared for a target.

    Returns None when the target carries no such annotation, which callers
    treat as "fully permissive".
    """
    target_path = getattr(target, "target_path", None)
    if target_path is None:
        return None
    for record in model.annotations.get(target_path, []):
        if isinstance(record, record_type):
            return record
    return None
