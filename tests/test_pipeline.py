from pathlib import Path
from unittest.mock import patch

import pytest

from mcp_forge.diagnostics import Diagnostics
from mcp_forge.errors import DetectionFailure, ParseFailure
from mcp_forge.pipeline import import_definition

FIXTURES = Path(__file__).parent / "fixtures"


class TestImportDefinition:
    def test_petstore(self):
        content = (FIXTURES / "petstore.yaml").read_text(encoding="utf-8")
        result = import_definition(content, "petstore.yaml")
        assert result.format == "yaml"
        assert result.definition.flavor == "openapi3"
        assert [ep.operation_id for ep in result.endpoints] == ["listPets", "createPets", "showPetById"]
        assert result.warnings == []

    def test_detects_without_filename(self):
        content = (FIXTURES / "library.raml").read_text(encoding="utf-8")
        result = import_definition(content)
        assert result.format == "raml"
        assert result.endpoints

    def test_undetectable_stops_before_normalization(self):
        with patch("mcp_forge.pipeline.normalize") as normalize:
            with pytest.raises(DetectionFailure):
                import_definition("not valid: : :anything")
        normalize.assert_not_called()

    def test_unknown_explicit_format(self):
        with pytest.raises(DetectionFailure, match="Unknown format"):
            import_definition("{}", fmt="xml")

    def test_parse_failure_propagates(self):
        with patch("mcp_forge.pipeline.normalize") as normalize:
            with pytest.raises(ParseFailure):
                import_definition('{"openapi": "3.0.0", "info": {}}', "api.json")
        normalize.assert_not_called()

    def test_warnings_collected(self):
        content = (FIXTURES / "notes.md").read_text(encoding="utf-8")
        diagnostics = Diagnostics()
        result = import_definition(content, "notes.md", diagnostics=diagnostics)
        assert result.warnings == diagnostics.warnings
        assert any("no usable path" in w.message for w in result.warnings)

    def test_minimal_document_scenario(self):
        content = '{"openapi":"3.0.0","paths":{"/pets":{"get":{}},"/pets/{id}":{"get":{},"delete":{}}}}'
        result = import_definition(content)
        assert result.format == "json"
        assert [(ep.label, ep.mcp_type.value) for ep in result.endpoints] == [
            ("GET /pets", "resource"),
            ("GET /pets/{id}", "resource"),
            ("DELETE /pets/{id}", "tool"),
        ]
        assert len({ep.id for ep in result.endpoints}) == 3
