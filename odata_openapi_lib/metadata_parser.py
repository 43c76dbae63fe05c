"""
CSDL metadata parser for extracting entity types, sets, functions and capability annotations.
"""

import sys
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from lxml import etree

from .capabilities import (
    CountRestrictions,
    FilterRestrictions,
    SearchRestrictions,
    SkipSupported,
    SortRestrictions,
    TopSupported,
    record_from_term,
)
from .constants import CAPABILITIES_NAMESPACE, CORE_DESCRIPTION_TERM, SAP_NAMESPACE
from .models import (
    ComplexType,
    EntityContainer,
    EntityProperty,
    EntitySet,
    EntityType,
    EnumType,
    Function,
    FunctionImport,
    NavigationProperty,
    ODataMetadata,
    OperationParameter,
    Singleton,
    simple_name,
)


def _children(element, name: str) -> list:
    """Direct children with the given local name, regardless of CSDL version namespace."""
    return element.xpath(f"./*[local-name()='{name}']")


def _local_name(element) -> str:
    return etree.QName(element).localname


def _enum_member(value: str) -> str:
    """Org.OData.Capabilities.V1.NavigationType/None -> None"""
    members = value.split()
    return members[0].rsplit('/', 1)[-1] if members else ''


class MetadataParser:
    """Parses an OData CSDL document (v4, or v2 with SAP annotations) into ODataMetadata."""

    # Attributes on PropertyValue / Annotation elements holding a constant value
    _VALUE_ATTRIBUTES = ('Bool', 'String', 'EnumMember', 'PropertyPath',
                         'NavigationPropertyPath', 'Path', 'Int')

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self._annotations: Dict[str, list] = {}
        self._sap_non_sortable: Dict[str, List[str]] = {}
        self._sap_non_filterable: Dict[str, List[str]] = {}
        self._aliases: Dict[str, str] = {}

    def _log_verbose(self, message: str):
        """Prints message to stderr only if verbose mode is enabled."""
        if self.verbose:
            timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
            print(f"[{timestamp} Parser VERBOSE] {message}", file=sys.stderr)

    def _get_description(self, element) -> Optional[str]:
        """Helper to extract description from annotations."""
        # Check for SAP annotations first
        label = element.get(f'{{{SAP_NAMESPACE}}}label')
        if label:
            return label
        for annotation in _children(element, 'Annotation'):
            if self._qualified_term(annotation.get('Term', '')) == CORE_DESCRIPTION_TERM:
                value = self._read_annotation_value(annotation)
                if isinstance(value, str):
                    return value
        desc = element.xpath("./*[local-name()='Documentation']/*[local-name()='Summary']/text()")
        if desc: return desc[0]
        desc = element.xpath("./*[local-name()='Documentation']/*[local-name()='LongDescription']/text()")
        if desc: return desc[0]
        return None

    def parse(self, content: Union[bytes, str]) -> ODataMetadata:
        """Parse a CSDL metadata document."""
        self._annotations = {}
        self._sap_non_sortable = {}
        self._sap_non_filterable = {}
        self._aliases = {}

        if isinstance(content, str):
            content = content.encode('utf-8')

        parser = etree.XMLParser(resolve_entities=False, no_network=True)
        try:
            root = etree.fromstring(content, parser)
        except etree.XMLSyntaxError as parse_err:
            # This is an actual error, print regardless of verbosity
            print(f"ERROR: Error parsing XML metadata: {parse_err}", file=sys.stderr)
            raise ValueError("Metadata document is not valid XML") from parse_err

        schemas = root.xpath("//*[local-name()='Schema']")
        if not schemas:
            raise ValueError("Metadata document contains no Schema element")
        self._collect_aliases(root)

        namespace = schemas[0].get('Namespace', '')
        service_description = self._get_description(schemas[0])

        entity_types: Dict[str, EntityType] = {}
        complex_types: Dict[str, ComplexType] = {}
        enum_types: Dict[str, EnumType] = {}
        functions: Dict[str, List[Function]] = {}
        for schema in schemas:
            associations = self._parse_associations(schema)
            entity_types.update(self._parse_entity_types(schema, associations))
            complex_types.update(self._parse_complex_types(schema))
            enum_types.update(self._parse_enum_types(schema))
            for name, overloads in self._parse_functions(schema).items():
                functions.setdefault(name, []).extend(overloads)
        self._resolve_base_types(entity_types)

        container_elems = root.xpath("//*[local-name()='EntityContainer']")
        container = EntityContainer()
        entity_sets: Dict[str, EntitySet] = {}
        singletons: Dict[str, Singleton] = {}
        function_imports: Dict[str, FunctionImport] = {}
        if container_elems:
            container_elem = container_elems[0]
            container = EntityContainer(
                name=container_elem.get('Name', 'Container'),
                description=self._get_description(container_elem)
            )
            self._collect_inline_annotations(container_elem, container.target_path)
            entity_sets = self._parse_entity_sets(container_elem, container.name)
            singletons = self._parse_singletons(container_elem, container.name)
            function_imports = self._parse_function_imports(container_elem, container.name, functions)
        else:
            self._log_verbose("Warning: No EntityContainer found in metadata. Cannot parse entity sets.")

        for schema in schemas:
            self._parse_annotation_blocks(schema)
        self._apply_sap_property_restrictions(entity_sets, entity_types)

        self._log_verbose(f"Parsing complete. Found {len(entity_types)} types, {len(entity_sets)} sets, "
                          f"{len(singletons)} singletons, {len(function_imports)} function imports.")
        return ODataMetadata(
            namespace=namespace,
            entity_container=container,
            entity_types=entity_types,
            complex_types=complex_types,
            enum_types=enum_types,
            entity_sets=entity_sets,
            singletons=singletons,
            functions=functions,
            function_imports=function_imports,
            annotations=self._annotations,
            service_description=service_description
        )

    # --- Annotation values ---

    def _read_expression(self, element) -> Any:
        name = _local_name(element)
        if name == 'Record':
            return self._read_record(element)
        if name == 'Collection':
            return [self._read_expression(child) for child in element
                    if isinstance(child.tag, str)]
        text = (element.text or '').strip()
        if name == 'Bool':
            return text.lower() == 'true'
        if name == 'Int':
            return int(text)
        if name == 'EnumMember':
            return _enum_member(text)
        return text

    def _read_constant_attribute(self, element) -> Tuple[bool, Any]:
        for attr in self._VALUE_ATTRIBUTES:
            value = element.get(attr)
            if value is None:
                continue
            if attr == 'Bool':
                return True, value.lower() == 'true'
            if attr == 'Int':
                return True, int(value)
            if attr == 'EnumMember':
                return True, _enum_member(value)
            return True, value
        return False, None

    def _read_record(self, record) -> Dict[str, Any]:
        values = {}
        for prop_value in _children(record, 'PropertyValue'):
            prop_name = prop_value.get('Property')
            if not prop_name: continue
            found, value = self._read_constant_attribute(prop_value)
            if not found:
                children = [c for c in prop_value if isinstance(c.tag, str) and _local_name(c) != 'Annotation']
                value = self._read_expression(children[0]) if children else None
            values[prop_name] = value
        return values

    def _read_annotation_value(self, annotation) -> Any:
        found, value = self._read_constant_attribute(annotation)
        if found:
            return value
        children = [c for c in annotation if isinstance(c.tag, str) and _local_name(c) != 'Annotation']
        return self._read_expression(children[0]) if children else None

    def _collect_aliases(self, root):
        """Map namespace aliases declared by edmx:Include and Schema elements to their namespaces."""
        for element in root.xpath("//*[local-name()='Include' or local-name()='Schema'][@Alias]"):
            namespace = element.get('Namespace')
            if namespace:
                self._aliases[element.get('Alias')] = namespace
        if self._aliases:
            self._log_verbose(f"Namespace aliases: {self._aliases}")

    def _qualified_term(self, term: str) -> str:
        """Capabilities.TopSupported -> Org.OData.Capabilities.V1.TopSupported"""
        namespace, _, name = term.rpartition('.')
        if namespace in self._aliases:
            return f"{self._aliases[namespace]}.{name}"
        return term

    def _add_capability(self, target_path: str, record, override: bool = True):
        records = self._annotations.setdefault(target_path, [])
        existing = [r for r in records if type(r) is type(record)]
        if existing:
            if not override:
                return
            records.remove(existing[0])
        records.append(record)

    def _collect_inline_annotations(self, element, target_path: str):
        for annotation in _children(element, 'Annotation'):
            self._add_annotation(annotation, target_path)

    def _add_annotation(self, annotation, target_path: str):
        term = self._qualified_term(annotation.get('Term', ''))
        if not term.startswith(CAPABILITIES_NAMESPACE + '.'):
            return
        record = record_from_term(term, self._read_annotation_value(annotation))
        if record is None:
            self._log_verbose(f"Ignoring unsupported capability term '{term}' on '{target_path}'.")
            return
        self._add_capability(target_path, record)

    def _parse_annotation_blocks(self, schema):
        """Parse out-of-line <Annotations Target="..."> blocks."""
        for block in _children(schema, 'Annotations'):
            target = block.get('Target')
            if not target: continue
            segments = target.split('/')
            segments[0] = simple_name(segments[0])
            target_path = '/'.join(segments)
            for annotation in _children(block, 'Annotation'):
                self._add_annotation(annotation, target_path)

    # --- Types ---

    def _parse_associations(self, schema) -> Dict[str, Dict[str, Tuple[str, str]]]:
        """Map OData v2 association name -> role -> (entity type, multiplicity)."""
        associations = {}
        for assoc in _children(schema, 'Association'):
            name = assoc.get('Name')
            if not name: continue
            associations[name] = {
                end.get('Role'): (end.get('Type', ''), end.get('Multiplicity', '1'))
                for end in _children(assoc, 'End')
            }
        return associations

    def _navigation_type(self, nav_elem, associations) -> Optional[str]:
        nav_type = nav_elem.get('Type')
        if nav_type:
            return nav_type
        # OData v2: resolve the target role of the association
        assoc = associations.get(simple_name(nav_elem.get('Relationship', '')), {})
        end = assoc.get(nav_elem.get('ToRole'))
        if end is None:
            return None
        end_type, multiplicity = end
        return f"Collection({end_type})" if multiplicity == '*' else end_type

    def _parse_properties(self, type_elem, key_props_names: List[str]) -> List[EntityProperty]:
        properties = []
        for prop_elem in _children(type_elem, 'Property'):
            prop_name = prop_elem.get('Name')
            prop_type = prop_elem.get('Type')
            if not prop_name or not prop_type: continue

            properties.append(EntityProperty(
                name=prop_name,
                type=prop_type,
                nullable=prop_elem.get('Nullable', 'true').lower() == 'true',
                is_key=prop_name in key_props_names,
                description=self._get_description(prop_elem)
            ))
        return properties

    def _parse_entity_types(self, schema, associations) -> Dict[str, EntityType]:
        """Parse EntityType elements from a schema."""
        entity_types = {}
        for et_elem in _children(schema, 'EntityType'):
            name = et_elem.get('Name')
            if not name: continue

            # --- Key Properties ---
            key_props_names = []
            for key_elem in _children(et_elem, 'Key'):
                key_props_names.extend(
                    prop_ref.get('Name')
                    for prop_ref in _children(key_elem, 'PropertyRef')
                    if prop_ref.get('Name')
                )

            properties = self._parse_properties(et_elem, key_props_names)

            # --- Navigation Properties ---
            navigation_properties = []
            for nav_elem in _children(et_elem, 'NavigationProperty'):
                nav_name = nav_elem.get('Name')
                nav_type = self._navigation_type(nav_elem, associations)
                if not nav_name or not nav_type:
                    self._log_verbose(f"Warning: Skipping unresolved navigation property '{nav_name}' on '{name}'.")
                    continue
                nav = NavigationProperty(
                    name=nav_name,
                    type=nav_type,
                    declaring_type=name,
                    nullable=nav_elem.get('Nullable', 'true').lower() == 'true',
                    description=self._get_description(nav_elem)
                )
                self._collect_inline_annotations(nav_elem, nav.target_path)
                navigation_properties.append(nav)

            # SAP v2 property level restrictions
            for prop_elem in _children(et_elem, 'Property'):
                if prop_elem.get(f'{{{SAP_NAMESPACE}}}sortable', 'true').lower() == 'false':
                    self._sap_non_sortable.setdefault(name, []).append(prop_elem.get('Name'))
                if prop_elem.get(f'{{{SAP_NAMESPACE}}}filterable', 'true').lower() == 'false':
                    self._sap_non_filterable.setdefault(name, []).append(prop_elem.get('Name'))

            entity_types[name] = EntityType(
                name=name,
                base_type=et_elem.get('BaseType'),
                properties=properties,
                navigation_properties=navigation_properties,
                key_properties=key_props_names,
                description=self._get_description(et_elem)
            )
        return entity_types

    def _resolve_base_types(self, entity_types: Dict[str, EntityType]):
        """Copy inherited key, structural and navigation properties onto derived entity types, base first."""
        resolved = set()

        def resolve(name: str, chain: Tuple[str, ...]) -> EntityType:
            entity_type = entity_types[name]
            if name in resolved or not entity_type.base_type:
                resolved.add(name)
                return entity_type
            resolved.add(name)

            base_name = simple_name(entity_type.base_type)
            if base_name not in entity_types or base_name in chain:
                self._log_verbose(f"Warning: Cannot resolve base type '{entity_type.base_type}' of '{name}'.")
                return entity_type
            base = resolve(base_name, chain + (name,))

            own_names = {prop.name for prop in entity_type.properties}
            entity_type.properties = [
                prop for prop in base.properties if prop.name not in own_names
            ] + entity_type.properties
            own_navs = {nav.name for nav in entity_type.navigation_properties}
            entity_type.navigation_properties = [
                nav for nav in base.navigation_properties if nav.name not in own_navs
            ] + entity_type.navigation_properties
            # A derived type cannot redeclare the key
            if not entity_type.key_properties:
                entity_type.key_properties = list(base.key_properties)

            for restrictions in (self._sap_non_sortable, self._sap_non_filterable):
                inherited = restrictions.get(base_name, [])
                if inherited:
                    restrictions[name] = inherited + restrictions.get(name, [])
            return entity_type

        for name in entity_types:
            resolve(name, ())

    def _parse_complex_types(self, schema) -> Dict[str, ComplexType]:
        complex_types = {}
        for ct_elem in _children(schema, 'ComplexType'):
            name = ct_elem.get('Name')
            if not name: continue
            complex_types[name] = ComplexType(
                name=name,
                properties=self._parse_properties(ct_elem, []),
                description=self._get_description(ct_elem)
            )
        return complex_types

    def _parse_enum_types(self, schema) -> Dict[str, EnumType]:
        enum_types = {}
        for enum_elem in _children(schema, 'EnumType'):
            name = enum_elem.get('Name')
            if not name: continue
            enum_types[name] = EnumType(
                name=name,
                members=[m.get('Name') for m in _children(enum_elem, 'Member') if m.get('Name')],
                is_flags=enum_elem.get('IsFlags', 'false').lower() == 'true',
                description=self._get_description(enum_elem)
            )
        return enum_types

    def _parse_parameters(self, operation_elem) -> List[OperationParameter]:
        parameters = []
        for param_elem in _children(operation_elem, 'Parameter'):
            param_name = param_elem.get('Name')
            param_type = param_elem.get('Type')
            if not param_name or not param_type: continue

            # Mode attribute (v2): 'In', 'Out', 'InOut'. Treat 'In' and 'InOut' as input params.
            mode = param_elem.get('Mode') or param_elem.get(f'{{{SAP_NAMESPACE}}}Mode') or 'In'
            if mode.lower() not in ['in', 'inout']:
                continue  # Skip output-only parameters

            parameters.append(OperationParameter(
                name=param_name,
                type=param_type,
                nullable=param_elem.get('Nullable', 'true').lower() == 'true',
                description=self._get_description(param_elem)
            ))
        return parameters

    def _parse_functions(self, schema) -> Dict[str, List[Function]]:
        """Parse OData v4 Function elements, grouping overloads by name."""
        functions = {}
        for func_elem in _children(schema, 'Function'):
            name = func_elem.get('Name')
            if not name: continue
            return_types = _children(func_elem, 'ReturnType')
            functions.setdefault(name, []).append(Function(
                name=name,
                is_bound=func_elem.get('IsBound', 'false').lower() == 'true',
                parameters=self._parse_parameters(func_elem),
                return_type=return_types[0].get('Type') if return_types else None,
                description=self._get_description(func_elem)
            ))
        return functions

    # --- Container ---

    def _parse_entity_sets(self, container, container_name: str) -> Dict[str, EntitySet]:
        """Parse EntitySet elements and their capability annotations."""
        entity_sets = {}
        for es_elem in _children(container, 'EntitySet'):
            name = es_elem.get('Name')
            entity_type_fqn = es_elem.get('EntityType')  # Fully qualified name
            if not name or not entity_type_fqn: continue

            entity_set = EntitySet(
                name=name,
                entity_type=simple_name(entity_type_fqn),
                container=container_name,
                description=self._get_description(es_elem)
            )
            self._collect_inline_annotations(es_elem, entity_set.target_path)
            self._apply_sap_set_attributes(es_elem, entity_set.target_path)
            entity_sets[name] = entity_set
        return entity_sets

    def _parse_singletons(self, container, container_name: str) -> Dict[str, Singleton]:
        singletons = {}
        for sg_elem in _children(container, 'Singleton'):
            name = sg_elem.get('Name')
            type_fqn = sg_elem.get('Type')
            if not name or not type_fqn: continue

            singleton = Singleton(
                name=name,
                entity_type=simple_name(type_fqn),
                container=container_name,
                description=self._get_description(sg_elem)
            )
            self._collect_inline_annotations(sg_elem, singleton.target_path)
            singletons[name] = singleton
        return singletons

    def _parse_function_imports(self, container, container_name: str,
                                functions: Dict[str, List[Function]]) -> Dict[str, FunctionImport]:
        """Parse FunctionImport elements; v2 imports carry their parameters inline."""
        function_imports = {}
        for func_elem in _children(container, 'FunctionImport'):
            name = func_elem.get('Name')
            if not name: continue

            function_name = func_elem.get('Function')
            if function_name:
                function_name = simple_name(function_name)
                if not any(not f.is_bound for f in functions.get(function_name, [])):
                    self._log_verbose(f"Warning: Unbound function '{function_name}' for import '{name}' not found.")
            else:
                # OData v2: the import is the function
                function_name = name
                functions.setdefault(name, []).append(Function(
                    name=name,
                    parameters=self._parse_parameters(func_elem),
                    return_type=func_elem.get('ReturnType'),
                    description=self._get_description(func_elem)
                ))

            function_import = FunctionImport(
                name=name,
                function=function_name,
                container=container_name,
                description=self._get_description(func_elem)
            )
            self._collect_inline_annotations(func_elem, function_import.target_path)
            function_imports[name] = function_import
        return function_imports

    # --- SAP v2 annotations ---

    def _sap_flag(self, element, attribute: str) -> Optional[bool]:
        value = element.get(f'{{{SAP_NAMESPACE}}}{attribute}')
        if value is None:
            return None
        return value.lower() == 'true'

    def _apply_sap_set_attributes(self, es_elem, target_path: str):
        searchable = self._sap_flag(es_elem, 'searchable')
        if searchable is not None:
            self._add_capability(target_path, SearchRestrictions(searchable=searchable), override=False)
        pageable = self._sap_flag(es_elem, 'pageable')
        if pageable is not None:
            self._add_capability(target_path, TopSupported(is_supported=pageable), override=False)
            self._add_capability(target_path, SkipSupported(is_supported=pageable), override=False)
        countable = self._sap_flag(es_elem, 'countable')
        if countable is not None:
            self._add_capability(target_path, CountRestrictions(countable=countable), override=False)

    def _apply_sap_property_restrictions(self, entity_sets: Dict[str, EntitySet],
                                         entity_types: Dict[str, EntityType]):
        for entity_set in entity_sets.values():
            non_sortable = self._sap_non_sortable.get(entity_set.entity_type)
            if non_sortable:
                self._add_capability(entity_set.target_path,
                                     SortRestrictions(non_sortable_properties=non_sortable),
                                     override=False)
            non_filterable = self._sap_non_filterable.get(entity_set.entity_type)
            if non_filterable:
                self._add_capability(entity_set.target_path,
                                     FilterRestrictions(non_filterable_properties=non_filterable),
                                     override=False)
            if entity_set.entity_type not in entity_types:
                self._log_verbose(f"Warning: EntityType '{entity_set.entity_type}' for EntitySet "
                                  f"'{entity_set.name}' not found in parsed types.")
