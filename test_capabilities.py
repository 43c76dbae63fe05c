#!/usr/bin/env python3
"""
Unit tests for capability records and their lookup.
"""

import unittest

from odata_openapi_lib import (
    EntitySet,
    ExpandRestrictions,
    NavigationRestrictions,
    ODataMetadata,
    SearchRestrictions,
    SortRestrictions,
    TopSupported,
)
from odata_openapi_lib.capabilities import get_capability, record_from_term


class TestRecordFromTerm(unittest.TestCase):
    """Tests for building records from annotation terms."""

    def test_boolean_terms(self):
        self.assertFalse(record_from_term("Org.OData.Capabilities.V1.TopSupported", False).is_supported)
        self.assertTrue(record_from_term("Org.OData.Capabilities.V1.SkipSupported").is_supported)

    def test_record_terms_map_camel_case_properties(self):
        sort = record_from_term("Org.OData.Capabilities.V1.SortRestrictions", {
            "Sortable": True,
            "AscendingOnlyProperties": ["Name"],
            "NonSortableProperties": ["Photo"],
        })
        self.assertIsInstance(sort, SortRestrictions)
        self.assertTrue(sort.is_ascending_only_property("Name"))
        self.assertTrue(sort.is_non_sortable_property("Photo"))
        self.assertFalse(sort.is_descending_only_property("Name"))

    def test_nested_navigation_restrictions(self):
        navigation = record_from_term("Org.OData.Capabilities.V1.NavigationRestrictions", {
            "Navigability": "Single",
            "RestrictedProperties": [
                {"NavigationProperty": "Trips", "Navigability": "None"},
                {"NavigationProperty": "Photo"},
            ],
        })
        self.assertIsInstance(navigation, NavigationRestrictions)
        self.assertTrue(navigation.is_navigable)
        self.assertTrue(navigation.is_restricted_property("Trips"))
        self.assertFalse(navigation.is_restricted_property("Photo"))

    def test_unknown_properties_are_ignored(self):
        search = record_from_term("Org.OData.Capabilities.V1.SearchRestrictions", {
            "Searchable": False,
            "SomethingNew": "value",
        })
        self.assertFalse(search.is_searchable)

    def test_record_term_without_record_uses_defaults(self):
        expand = record_from_term("Org.OData.Capabilities.V1.ExpandRestrictions")
        self.assertTrue(expand.is_expandable)
        self.assertFalse(expand.is_non_expandable_property("Anything"))

    def test_unknown_term(self):
        self.assertIsNone(record_from_term("Org.OData.Capabilities.V1.InsertRestrictions", {}))


class TestGetCapability(unittest.TestCase):
    """Tests for looking up records by target."""

    def setUp(self):
        self.people = EntitySet(name="People", entity_type="Person")
        self.model = ODataMetadata(
            entity_sets={"People": self.people},
            annotations={"Container/People": [TopSupported(is_supported=False), ExpandRestrictions()]},
        )

    def test_present_record(self):
        record = get_capability(self.model, self.people, TopSupported)
        self.assertIsInstance(record, TopSupported)
        self.assertIsInstance(self.model.get_capability_annotation(self.people, ExpandRestrictions),
                              ExpandRestrictions)

    def test_absent_record(self):
        self.assertIsNone(get_capability(self.model, self.people, SortRestrictions))

    def test_unannotated_target(self):
        other = EntitySet(name="Airlines", entity_type="Airline")
        self.assertIsNone(get_capability(self.model, other, TopSupported))

    def test_target_without_path(self):
        self.assertIsNone(get_capability(self.model, object(), TopSupported))

    def test_description_annotation(self):
        described = EntitySet(name="Airports", entity_type="Airport", description="All airports")
        self.assertEqual(self.model.get_description_annotation(described), "All airports")
        self.assertIsNone(self.model.get_description_annotation(self.people))


if __name__ == "__main__":
    unittest.main()
