"""
Builds OpenAPI parameters (query options, key and function parameters) from OData metadata.
"""

import sys
from datetime import datetime
from typing import Dict, List, Optional, Tuple, Union

from .capabilities import (
    CountRestrictions,
    ExpandRestrictions,
    FilterRestrictions,
    NavigationRestrictions,
    SearchRestrictions,
    SkipSupported,
    SortRestrictions,
    TopSupported,
)
from .constants import (
    COUNT_PARAMETER_ID,
    FILTER_PARAMETER_ID,
    KEY_TYPE_EXTENSION,
    SEARCH_PARAMETER_ID,
    SKIP_PARAMETER_ID,
    TOP_PARAMETER_ID,
)
from .context import ODataContext
from .errors import InvalidArgumentError, check_argument_null
from .models import (
    EntitySet,
    EntityType,
    Function,
    FunctionImport,
    KeySegment,
    NavigationProperty,
    Singleton,
)
from .openapi import OpenApiSchema, Parameter, ParameterDescriptor, ParameterReference

QueryTarget = Union[EntitySet, Singleton, NavigationProperty]


def resolve_query_target(context: ODataContext, target: QueryTarget) -> Tuple[QueryTarget, EntityType]:
    """Project an entity set, singleton or navigation property onto (annotation target, entity type)."""
    check_argument_null(target, "target")
    if isinstance(target, (EntitySet, Singleton)):
        return target, context.model.resolve_entity_type(target.entity_type)
    if isinstance(target, NavigationProperty):
        return target, context.model.resolve_entity_type(target.type)
    raise InvalidArgumentError(
        f"Unsupported query target type '{type(target).__name__}'"
    )


class ParameterGenerator:
    """Creates reusable and per-operation OpenAPI parameters for an OData model."""

    def __init__(self, context: ODataContext):
        self.context = check_argument_null(context, "context")
        self.model = context.model
        self.settings = context.settings
        self.verbose = context.verbose

    def _log_verbose(self, message: str):
        """Prints message to stderr only if verbose mode is enabled."""
        if self.verbose:
            timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
            print(f"[{timestamp} Generator VERBOSE] {message}", file=sys.stderr)

    # --- Reusable parameters (components/parameters) ---

    def create_parameters(self) -> Dict[str, ParameterDescriptor]:
        """
        Create the query options that can be reused across operations of the service.

        Returns:
            Map of parameter id ('top', 'skip', 'count', 'filter', 'search') to parameter
        """
        return {
            TOP_PARAMETER_ID: self._create_top_parameter(self.settings.top_example),
            SKIP_PARAMETER_ID: self._create_skip_parameter(),
            COUNT_PARAMETER_ID: self._create_count_parameter(),
            FILTER_PARAMETER_ID: self._create_filter_parameter(),
            SEARCH_PARAMETER_ID: self._create_search_parameter(),
        }

    @staticmethod
    def _create_top_parameter(top_example: int) -> ParameterDescriptor:
        return ParameterDescriptor(
            name="$top",
            location="query",
            description="Show only the first n items",
            value_schema=OpenApiSchema(type="integer", minimum=0),
            example=top_example,
        )

    @staticmethod
    def _create_skip_parameter() -> ParameterDescriptor:
        return ParameterDescriptor(
            name="$skip",
            location="query",
            description="Skip the first n items",
            value_schema=OpenApiSchema(type="integer", minimum=0),
        )

    @staticmethod
    def _create_count_parameter() -> ParameterDescriptor:
        return ParameterDescriptor(
            name="$count",
            location="query",
            description="Include count of items",
            value_schema=OpenApiSchema(type="boolean"),
        )

    @staticmethod
    def _create_filter_parameter() -> ParameterDescriptor:
        return ParameterDescriptor(
            name="$filter",
            location="query",
            description="Filter items by property values",
            value_schema=OpenApiSchema(type="string"),
        )

    @staticmethod
    def _create_search_parameter() -> ParameterDescriptor:
        return ParameterDescriptor(
            name="$search",
            location="query",
            description="Search items by search phrases",
            value_schema=OpenApiSchema(type="string"),
        )

    # --- References to the reusable parameters ---

    def create_top(self, target) -> Optional[ParameterReference]:
        """Reference to $top, or None if the target declares TopSupported false."""
        check_argument_null(target, "target")
        top = self.model.get_capability_annotation(target, TopSupported)
        if top is None or top.is_supported:
            return ParameterReference(ref_id=TOP_PARAMETER_ID)
        return None

    def create_skip(self, target) -> Optional[ParameterReference]:
        """Reference to $skip, or None if the target declares SkipSupported false."""
        check_argument_null(target, "target")
        skip = self.model.get_capability_annotation(target, SkipSupported)
        if skip is None or skip.is_supported:
            return ParameterReference(ref_id=SKIP_PARAMETER_ID)
        return None

    def create_search(self, target) -> Optional[ParameterReference]:
        check_argument_null(target, "target")
        search = self.model.get_capability_annotation(target, SearchRestrictions)
        if search is None or search.is_searchable:
            return ParameterReference(ref_id=SEARCH_PARAMETER_ID)
        return None

    def create_count(self, target) -> Optional[ParameterReference]:
        check_argument_null(target, "target")
        count = self.model.get_capability_annotation(target, CountRestrictions)
        if count is None or count.is_countable:
            return ParameterReference(ref_id=COUNT_PARAMETER_ID)
        return None

    def create_filter(self, target) -> Optional[ParameterReference]:
        check_argument_null(target, "target")
        filter_restrictions = self.model.get_capability_annotation(target, FilterRestrictions)
        if filter_restrictions is None or filter_restrictions.is_filterable:
            return ParameterReference(ref_id=FILTER_PARAMETER_ID)
        return None

    # --- Target specific query options ---

    def _target_and_type(self, target: QueryTarget,
                         entity_type: Optional[EntityType]) -> Tuple[QueryTarget, EntityType]:
        if entity_type is None:
            return resolve_query_target(self.context, target)
        check_argument_null(target, "target")
        return target, entity_type

    def create_orderby(self, target: QueryTarget,
                       entity_type: Optional[EntityType] = None) -> Optional[ParameterDescriptor]:
        """
        Create the $orderby parameter for an entity set, singleton or navigation property.

        Args:
            target: The annotation target
            entity_type: The entity type to sort; projected from the target if omitted

        Returns:
            The parameter, or None if the target is not sortable
        """
        target, entity_type = self._target_and_type(target, entity_type)

        sort = self.model.get_capability_annotation(target, SortRestrictions)
        if sort is not None and not sort.is_sortable:
            self._log_verbose(f"$orderby omitted for '{target.name}': not sortable.")
            return None

        order_by_items: List[str] = []
        for prop in entity_type.properties:
            if sort is not None and sort.is_non_sortable_property(prop.name):
                continue

            asc_only = sort is not None and sort.is_ascending_only_property(prop.name)
            desc_only = sort is not None and sort.is_descending_only_property(prop.name)
            # Ascending-only wins when both flags are set
            if asc_only:
                order_by_items.append(prop.name)
            elif desc_only:
                order_by_items.append(f"{prop.name} desc")
            else:
                order_by_items.append(prop.name)
                order_by_items.append(f"{prop.name} desc")

        return self._create_enum_parameter("$orderby", "Order items by property values", order_by_items)

    def create_select(self, target: QueryTarget,
                      entity_type: Optional[EntityType] = None) -> Optional[ParameterDescriptor]:
        """Create the $select parameter, or None if the target is not navigable."""
        target, entity_type = self._target_and_type(target, entity_type)

        navigation = self.model.get_capability_annotation(target, NavigationRestrictions)
        if navigation is not None and not navigation.is_navigable:
            self._log_verbose(f"$select omitted for '{target.name}': not navigable.")
            return None

        select_items = [prop.name for prop in entity_type.properties]
        for nav in entity_type.navigation_properties:
            if navigation is not None and navigation.is_restricted_property(nav.name):
                continue
            select_items.append(nav.name)

        return self._create_enum_parameter("$select", "Select properties to be returned", select_items)

    def create_expand(self, target: QueryTarget,
                      entity_type: Optional[EntityType] = None) -> Optional[ParameterDescriptor]:
        """Create the $expand parameter, or None if the target is not expandable."""
        target, entity_type = self._target_and_type(target, entity_type)

        expand = self.model.get_capability_annotation(target, ExpandRestrictions)
        if expand is not None and not expand.is_expandable:
            self._log_verbose(f"$expand omitted for '{target.name}': not expandable.")
            return None

        expand_items = ["*"]
        for nav in entity_type.navigation_properties:
            if expand is not None and expand.is_non_expandable_property(nav.name):
                continue
            expand_items.append(nav.name)

        return self._create_enum_parameter("$expand", "Expand related entities", expand_items)

    @staticmethod
    def _create_enum_parameter(name: str, description: str, items: List[str]) -> ParameterDescriptor:
        # A single string with an enum instead of an array schema, for PowerApps
        return ParameterDescriptor(
            name=name,
            location="query",
            description=description,
            value_schema=OpenApiSchema(type="string", enum=items),
            style="simple",
        )

    def create_query_parameters(self, target: QueryTarget) -> List[Parameter]:
        """All query options applicable to a GET on the target, in document order."""
        annotation_target, entity_type = resolve_query_target(self.context, target)
        candidates = [
            self.create_top(annotation_target),
            self.create_skip(annotation_target),
            self.create_search(annotation_target),
            self.create_filter(annotation_target),
            self.create_count(annotation_target),
            self.create_orderby(annotation_target, entity_type),
            self.create_select(annotation_target, entity_type),
            self.create_expand(annotation_target, entity_type),
        ]
        return [param for param in candidates if param is not None]

    # --- Path parameters ---

    def _key_parameter_name(self, entity_type: EntityType, property_name: str, key_index: int) -> str:
        key_name = f"{property_name}{key_index}"
        if self.settings.prefix_entity_type_name_before_key:
            key_name = f"{entity_type.name}-{key_name}"
        return key_name

    def create_key_parameters(self, key_segment: KeySegment) -> List[ParameterDescriptor]:
        """
        Create the path parameters for a key segment, one per key property.

        Args:
            key_segment: The key segment of the path template

        Returns:
            Key parameters in declared key order
        """
        check_argument_null(key_segment, "key_segment")
        entity_type = key_segment.entity_type

        parameters = []
        for key_property in key_segment.key_properties:
            key_name = self._key_parameter_name(entity_type, key_property.name, key_segment.key_index)
            parameters.append(ParameterDescriptor(
                name=key_name,
                location="path",
                required=True,
                description=f"key: {key_name}",
                value_schema=self.context.schema_mapper.map(key_property.type),
                extensions={KEY_TYPE_EXTENSION: entity_type.name},
            ))

        if not parameters:
            self._log_verbose(f"Entity type '{entity_type.name}' declares no key properties.")
        return parameters

    def create_function_import_parameters(self, function_import: FunctionImport) -> List[ParameterDescriptor]:
        check_argument_null(function_import, "function_import")
        return self.create_function_parameters(self.model.get_function(function_import.function))

    def create_function_parameters(self, function: Function) -> List[ParameterDescriptor]:
        """
        Create the parameters of a function, skipping the binding parameter of bound functions.

        Primitive parameters become path parameters. Structured or collection-valued
        parameters are passed as a parameter alias, i.e. a required string query option.
        """
        check_argument_null(function, "function")

        parameters = []
        skip = 1 if function.is_bound else 0
        for edm_parameter in function.parameters[skip:]:
            is_collection = edm_parameter.is_collection
            if is_collection or self.model.is_structured_type(edm_parameter.type):
                parameters.append(ParameterDescriptor(
                    name=edm_parameter.name,
                    location="query",
                    required=True,
                    description="The URL-encoded JSON " + ("array" if is_collection else "object"),
                    value_schema=OpenApiSchema(
                        type="string",
                        description=self.model.get_description_annotation(edm_parameter),
                    ),
                ))
            else:
                parameters.append(ParameterDescriptor(
                    name=edm_parameter.name,
                    location="path",
                    required=True,
                    value_schema=self.context.schema_mapper.map(edm_parameter.type),
                ))
        return parameters
