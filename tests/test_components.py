"""
Unit tests for threatspec/components.py
"""

from threatspec.components import component_key, normalize, parse_component


class TestNormalize:
    """Tests for normalize"""

    def test_lowercases_and_strips_punctuation(self):
        """Test normalize keeps only lowercase alphanumerics"""
        assert normalize("Internal-Network") == "internalnetwork"
        assert normalize("  Web API v2! ") == "webapiv2"

    def test_empty_and_symbol_only_input(self):
        """Test normalize is total on empty and symbol-only strings"""
        assert normalize("") == ""
        assert normalize("::--") == ""


class TestComponentKey:
    """Tests for component_key"""

    def test_case_and_punctuation_insensitive(self):
        """Test equivalent spellings produce the same key"""
        expected = component_key("Web", "API")
        assert expected == "web-api"
        assert component_key("WEB", "api") == expected
        assert component_key("w e b", "a p i") == expected
        assert component_key("web ", " api") == expected

    def test_empty_parts(self):
        """Test empty zone and component still produce a key"""
        assert component_key("", "") == "-"


class TestParseComponent:
    """Tests for parse_component"""

    def test_zone_prefixed_reference(self):
        """Test 'Zone:Name' splits into component and zone"""
        assert parse_component("Web:API") == ("API", "Web")

    def test_spaced_reference_normalizes_like_compact_one(self):
        """Test 'web : api' keys the same as 'Web:API'"""
        name, zone = parse_component("web : api")
        assert (name, zone) == ("api", "web")
        assert component_key(zone, name) == component_key("Web", "API")

    def test_reference_without_zone(self):
        """Test a bare name is used for both zone and component"""
        assert parse_component("Database") == ("Database", "Database")

    def test_splits_at_first_colon(self):
        """Test only the first colon separates the zone"""
        assert parse_component("Cloud:S3:bucket") == ("S3:bucket", "Cloud")

    def test_empty_side_is_not_a_zone(self):
        """Test a dangling colon keeps the whole reference"""
        assert parse_component("Web:") == ("Web:", "Web:")
