#!/usr/bin/env python3
"""
Unit tests for key segment parameters, function parameters and primitive schema mapping.
"""

import unittest

from odata_openapi_lib import (
    ComplexType,
    EntityProperty,
    EntityType,
    EnumType,
    Function,
    FunctionImport,
    GenerationSettings,
    InvalidArgumentError,
    KeySegment,
    ODataContext,
    ODataMetadata,
    OperationParameter,
    ParameterGenerator,
    PrimitiveSchemaMapper,
)


ORDER = EntityType(
    name="Order",
    properties=[
        EntityProperty(name="Partition", type="Edm.String", nullable=False, is_key=True),
        EntityProperty(name="Id", type="Edm.Int64", nullable=False, is_key=True),
        EntityProperty(name="Total", type="Edm.Decimal"),
    ],
    key_properties=["Id", "Partition"],
)

CUSTOMER = EntityType(
    name="Customer",
    properties=[
        EntityProperty(name="Id", type="Edm.Guid", nullable=False, is_key=True),
        EntityProperty(name="Name", type="Edm.String"),
    ],
    key_properties=["Id"],
)


def make_generator(model=None, **settings) -> ParameterGenerator:
    model = model or ODataMetadata(entity_types={"Order": ORDER, "Customer": CUSTOMER})
    return ParameterGenerator(ODataContext(model, GenerationSettings(**settings)))


class TestKeyParameters(unittest.TestCase):
    """Tests for path parameters of key segments."""

    def test_single_key_without_prefix(self):
        params = make_generator().create_key_parameters(KeySegment(entity_type=CUSTOMER, key_index=2))
        self.assertEqual(len(params), 1)
        self.assertEqual(params[0].to_dict(), {
            'name': 'Id2',
            'in': 'path',
            'required': True,
            'description': 'key: Id2',
            'schema': {'type': 'string', 'format': 'uuid'},
            'x-ms-key-type': 'Customer',
        })

    def test_single_key_with_prefix(self):
        generator = make_generator(prefix_entity_type_name_before_key=True)
        params = generator.create_key_parameters(KeySegment(entity_type=CUSTOMER, key_index=0))
        self.assertEqual(params[0].name, "Customer-Id0")
        self.assertEqual(params[0].description, "key: Customer-Id0")

    def test_composite_key_with_prefix(self):
        generator = make_generator(prefix_entity_type_name_before_key=True)
        params = generator.create_key_parameters(KeySegment(entity_type=ORDER, key_index=1))
        self.assertEqual([p.name for p in params], ["Order-Id1", "Order-Partition1"])

    def test_composite_key_follows_declared_key_order(self):
        params = make_generator().create_key_parameters(KeySegment(entity_type=ORDER, key_index=3))
        self.assertEqual([p.name for p in params], ["Id3", "Partition3"])
        self.assertEqual(params[0].value_schema.format, "int64")
        self.assertEqual(params[1].value_schema.type, "string")
        for param in params:
            with self.subTest(name=param.name):
                self.assertEqual(param.location, "path")
                self.assertTrue(param.required)
                self.assertEqual(param.extensions, {"x-ms-key-type": "Order"})

    def test_keyless_entity_type(self):
        keyless = EntityType(name="Log", properties=[EntityProperty(name="Line", type="Edm.String")])
        self.assertEqual(make_generator().create_key_parameters(KeySegment(entity_type=keyless)), [])

    def test_undeclared_key_property_raises(self):
        broken = EntityType(name="Broken", properties=[EntityProperty(name="Id", type="Edm.Int32")],
                            key_properties=["Code"])
        with self.assertRaises(InvalidArgumentError):
            make_generator().create_key_parameters(KeySegment(entity_type=broken))

    def test_none_key_segment_raises(self):
        with self.assertRaises(InvalidArgumentError):
            make_generator().create_key_parameters(None)


class TestFunctionParameters(unittest.TestCase):
    """Tests for function and function import parameters."""

    def setUp(self):
        self.model = ODataMetadata(
            entity_types={"Order": ORDER},
            complex_types={"Address": ComplexType(name="Address", properties=[
                EntityProperty(name="City", type="Edm.String")
            ])},
            functions={
                "FindOrders": [Function(name="FindOrders", parameters=[
                    OperationParameter(name="minTotal", type="Edm.Decimal"),
                    OperationParameter(name="ids", type="Collection(Edm.Int32)", description="Order ids"),
                    OperationParameter(name="shipTo", type="NS.Address"),
                ])],
                "Recalculate": [Function(name="Recalculate", is_bound=True, parameters=[
                    OperationParameter(name="bindingParameter", type="NS.Order"),
                    OperationParameter(name="rate", type="Edm.Double"),
                ])],
                "GetScore": [
                    Function(name="GetScore", is_bound=True, parameters=[
                        OperationParameter(name="bindingParameter", type="NS.Order"),
                        OperationParameter(name="month", type="Edm.Int32"),
                    ]),
                    Function(name="GetScore", parameters=[
                        OperationParameter(name="year", type="Edm.Int32"),
                    ]),
                ],
            },
            function_imports={
                "FindOrders": FunctionImport(name="FindOrders", function="NS.FindOrders"),
                "GetScore": FunctionImport(name="GetScore", function="NS.GetScore"),
                "Missing": FunctionImport(name="Missing", function="NS.DoesNotExist"),
            },
        )
        self.generator = make_generator(self.model)

    def test_primitive_parameter_is_path_parameter(self):
        params = self.generator.create_function_parameters(self.model.functions["FindOrders"][0])
        self.assertEqual(params[0].to_dict(), {
            'name': 'minTotal',
            'in': 'path',
            'required': True,
            'schema': {'type': 'number', 'format': 'decimal'},
        })

    def test_collection_parameter_is_query_alias(self):
        params = self.generator.create_function_parameters(self.model.functions["FindOrders"][0])
        self.assertEqual(params[1].to_dict(), {
            'name': 'ids',
            'in': 'query',
            'required': True,
            'description': 'The URL-encoded JSON array',
            'schema': {'type': 'string', 'description': 'Order ids'},
        })

    def test_structured_parameter_is_query_alias(self):
        params = self.generator.create_function_parameters(self.model.functions["FindOrders"][0])
        self.assertEqual(params[2].location, "query")
        self.assertEqual(params[2].description, "The URL-encoded JSON object")
        self.assertEqual(params[2].value_schema.to_dict(), {'type': 'string'})

    def test_bound_function_skips_binding_parameter(self):
        params = self.generator.create_function_parameters(self.model.functions["Recalculate"][0])
        self.assertEqual([p.name for p in params], ["rate"])

    def test_collection_parameter_of_bound_function(self):
        function = Function(name="Tag", is_bound=True, parameters=[
            OperationParameter(name="bindingParameter", type="Collection(NS.Order)"),
            OperationParameter(name="tags", type="Collection(Edm.String)"),
        ])
        params = self.generator.create_function_parameters(function)
        self.assertEqual(len(params), 1)
        self.assertEqual(params[0].location, "query")

    def test_function_import_resolves_function(self):
        params = self.generator.create_function_import_parameters(self.model.function_imports["FindOrders"])
        self.assertEqual([p.name for p in params], ["minTotal", "ids", "shipTo"])

    def test_function_import_picks_unbound_overload(self):
        params = self.generator.create_function_import_parameters(self.model.function_imports["GetScore"])
        self.assertEqual([p.name for p in params], ["year"])

    def test_function_import_without_unbound_overload_raises(self):
        function_import = FunctionImport(name="Recalculate", function="NS.Recalculate")
        with self.assertRaises(InvalidArgumentError):
            self.generator.create_function_import_parameters(function_import)

    def test_function_import_with_unknown_function_raises(self):
        with self.assertRaises(InvalidArgumentError):
            self.generator.create_function_import_parameters(self.model.function_imports["Missing"])

    def test_none_function_raises(self):
        with self.assertRaises(InvalidArgumentError):
            self.generator.create_function_parameters(None)
        with self.assertRaises(InvalidArgumentError):
            self.generator.create_function_import_parameters(None)


class TestPrimitiveSchemaMapper(unittest.TestCase):
    """Tests for EDM type to schema mapping."""

    def setUp(self):
        model = ODataMetadata(enum_types={"Color": EnumType(name="Color", members=["Red", "Green"])})
        self.mapper = PrimitiveSchemaMapper(model)

    def test_primitive_types(self):
        cases = [
            ("Edm.String", {'type': 'string'}),
            ("Edm.Boolean", {'type': 'boolean'}),
            ("Edm.Int64", {'type': 'integer', 'format': 'int64'}),
            ("Edm.Int32", {'type': 'integer', 'format': 'int32',
                           'minimum': -2147483648, 'maximum': 2147483647}),
            ("Edm.DateTimeOffset", {'type': 'string', 'format': 'date-time'}),
            ("Edm.Guid", {'type': 'string', 'format': 'uuid'}),
        ]
        for edm_type, expected in cases:
            with self.subTest(edm_type=edm_type):
                self.assertEqual(self.mapper.map(edm_type).to_dict(), expected)

    def test_enum_type(self):
        self.assertEqual(self.mapper.map("NS.Color").to_dict(), {'type': 'string', 'enum': ['Red', 'Green']})

    def test_unknown_type_falls_back_to_string(self):
        self.assertEqual(self.mapper.map("NS.Unknown").to_dict(), {'type': 'string'})

    def test_serialized_enum_is_a_copy(self):
        schema = self.mapper.map("NS.Color")
        schema.to_dict()['enum'].append("Blue")
        self.assertEqual(schema.enum, ["Red", "Green"])

    def test_returns_fresh_objects(self):
        first = self.mapper.map("Edm.Int32")
        first.minimum = 0
        self.assertEqual(self.mapper.map("Edm.Int32").minimum, -2147483648)


if __name__ == "__main__":
    unittest.main()
