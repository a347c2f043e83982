"""
Unit tests for pipeline schemas
"""

from datetime import date

import pytest
from pydantic import ValidationError as PydanticValidationError

from core.exceptions import InvalidPathError
from schemas.enums import Destination, RunStatus
from schemas.etl import DocumentPath, ProcessingResult, RunOptions, ValidationResult


class TestDocumentPath:
    """Test structured store paths"""

    def test_parse_nested_path(self):
        path = DocumentPath.parse("congressoNacional/camaraDeputados/discursos/204554/dados", "abc")

        assert path.segments == (
            "congressoNacional", "camaraDeputados", "discursos", "204554", "dados", "abc",
        )
        assert path.collection == "congressoNacional/camaraDeputados/discursos/204554/dados"
        assert path.document_id == "abc"
        assert str(path) == "congressoNacional/camaraDeputados/discursos/204554/dados/abc"

    def test_surrounding_slashes_are_ignored(self):
        assert str(DocumentPath.parse("/col/", "/id/")) == "col/id"

    def test_numeric_document_id(self):
        assert DocumentPath.parse("col", 42).document_id == "42"

    @pytest.mark.parametrize("collection, doc_id", [
        ("", "id"),
        ("col", ""),
        ("col", None),
        ("a/b", "c"),
        ("a//b", "c"),
    ])
    def test_invalid_paths(self, collection, doc_id):
        with pytest.raises(InvalidPathError):
            DocumentPath.parse(collection, doc_id)


class TestRunOptions:
    """Test run option parsing"""

    def test_defaults(self):
        options = RunOptions()

        assert options.destino == Destination.PRIMARY_STORE
        assert options.concorrencia == 3
        assert options.dry_run is False

    def test_siglas_are_upper_cased(self):
        options = RunOptions(partido=" pt ", uf="sp")

        assert options.partido == "PT"
        assert options.uf == "SP"

    def test_dates_from_iso_strings(self):
        options = RunOptions(data_inicio="2023-02-01", data_fim="2023-12-31")

        assert options.data_inicio == date(2023, 2, 1)

    def test_concurrency_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            RunOptions(concorrencia=0)

    def test_options_are_immutable(self):
        options = RunOptions(legislatura=57)

        with pytest.raises(PydanticValidationError):
            options.legislatura = 56


def test_validation_result_merge():
    merged = ValidationResult(warnings=["old legislature"]).merge(
        ValidationResult(valid=False, errors=["bad uf"])
    )

    assert merged.valid is False
    assert merged.errors == ["bad uf"]
    assert merged.warnings == ["old legislature"]


@pytest.mark.parametrize("status, exit_code", [
    (RunStatus.SUCCESS, 0),
    (RunStatus.PARTIAL, 0),
    (RunStatus.ERROR, 1),
])
def test_result_exit_code(status, exit_code):
    assert ProcessingResult(status=status, destination="dry-run").exit_code == exit_code
