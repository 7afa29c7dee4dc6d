"""
Unit tests for ValidationPipeline: report assembly, suggestions, option
discovery and metrics.
"""

from prometheus_client import REGISTRY

from render_orchestrator.models.enums import Severity
from render_orchestrator.models.parameters import ParameterSet
from render_orchestrator.validation.pipeline import ValidationPipeline, validate_parameters


def _issue_count(field: str, severity: str) -> float:
    value = REGISTRY.get_sample_value("validation_issues_total", {"field": field, "severity": severity})
    return value or 0.0


def test_errors_and_warnings_are_split_by_severity(catalog, make_params):
    # Incompatible footwear (error) plus heavy/heavy visual balance (info)
    report = ValidationPipeline(catalog).validate(make_params(outfit="tshirt-shorts", footwear="jordan-11"))

    assert all(e.severity is Severity.ERROR for e in report.errors)
    assert all(w.severity is not Severity.ERROR for w in report.warnings)
    assert report.is_valid is (len(report.errors) == 0)


def test_suggestions_are_deduplicated_with_errors_first(catalog):
    pipeline = ValidationPipeline(catalog)

    report = pipeline.validate(
        ParameterSet(pose="holding-cave-map", outfit="hoodie-sweatpants", footwear="jordan-1", prop="glowing-hourglass")
    )

    assert len(report.suggestions) == len(set(report.suggestions))

    report = pipeline.validate(ParameterSet(pose="arms-crossed", outfit="hoodie-sweatpants", footwear="nope"))
    assert report.suggestions[0].startswith("Choose one of:")


def test_validate_parameters_function(catalog, valid_params):
    report = validate_parameters(valid_params, catalog, enable_quality_checks=False)

    assert report.is_valid is True
    assert report.warnings == []


def test_validation_issues_metric_incremented(catalog):
    before = _issue_count("pose", "error")

    ValidationPipeline(catalog).validate(ParameterSet(outfit="hoodie-sweatpants", footwear="jordan-1"))

    assert _issue_count("pose", "error") == before + 1


def test_compatible_options_for_pose(catalog):
    options = ValidationPipeline(catalog).get_compatible_options("arms-crossed")

    assert options.pose == "arms-crossed"
    assert options.outfits == ["hoodie-sweatpants", "tshirt-shorts", "windbreaker-shorts"]
    assert options.footwear == ["jordan-1", "jordan-11", "air-max-90", "ultraboost"]
    assert options.props == ["glowing-hourglass", "stone-totem"]


def test_compatible_options_only_include_mutual_footwear(catalog):
    options = ValidationPipeline(catalog).get_compatible_options("sitting-on-rock")

    assert options.outfits == ["hoodie-sweatpants", "tshirt-shorts"]
    assert "jordan-11" in options.footwear  # via hoodie-sweatpants
    assert options.props == ["stone-totem"]


def test_compatible_options_for_unknown_pose(catalog):
    options = ValidationPipeline(catalog).get_compatible_options("moonwalk")

    assert options.outfits == []
    assert options.footwear == []
    assert options.props == []
