import pytest

from dental_clinic.domain.patients import Tooth, ToothStatus
from dental_clinic.domain.treatments import TreatmentDefinition
from dental_clinic.services import dental_chart

KEYWORDS = (("filling", "FILLING"), ("crown", "CROWN"), ("extraction", "MISSING"))


def _definition(name, tooth_status=None):
    return TreatmentDefinition(id=1, name=name, base_price=100, doctor_percentage=0.5,
                               clinic_percentage=0.5, tooth_status=tooth_status)


def test_chart_has_32_teeth_in_display_order():
    assert len(dental_chart.ALL_TOOTH_IDS) == 32
    assert dental_chart.ALL_TOOTH_IDS[:2] == ["UR8", "UR7"]
    assert dental_chart.ALL_TOOTH_IDS[-1] == "LR1"


def test_merge_with_defaults_fills_missing_teeth_and_copies():
    chart = {"UL3": Tooth(ToothStatus.CROWN, "old crown")}
    merged = dental_chart.merge_with_defaults(chart)
    assert len(merged) == 32
    assert merged["UL3"].status == ToothStatus.CROWN
    assert merged["LL1"].status == ToothStatus.HEALTHY
    merged["UL3"].notes = "changed"
    assert chart["UL3"].notes == "old crown"


def test_update_tooth_rejects_unknown_id():
    with pytest.raises(ValueError):
        dental_chart.update_tooth({}, "XX1", ToothStatus.FILLING)


def test_bulk_update_sets_every_selected_tooth():
    chart = dental_chart.bulk_update({}, ["UR1", "UR2"], ToothStatus.CAVITY, "check")
    assert chart["UR1"] == Tooth(ToothStatus.CAVITY, "check")
    assert chart["UR2"] == Tooth(ToothStatus.CAVITY, "check")
    assert chart["UR3"].status == ToothStatus.HEALTHY


def test_bulk_update_needs_a_selection():
    with pytest.raises(ValueError):
        dental_chart.bulk_update({}, [], ToothStatus.FILLING)


def test_explicit_status_beats_keywords():
    definition = _definition("Crown after filling", ToothStatus.IMPLANT)
    assert dental_chart.resolve_status_for_treatment(definition, KEYWORDS) == ToothStatus.IMPLANT


def test_first_matching_keyword_wins():
    definition = _definition("Crown after filling")
    assert dental_chart.resolve_status_for_treatment(definition, KEYWORDS) == ToothStatus.FILLING


def test_unmatched_treatment_leaves_chart_alone():
    definition = _definition("Scaling and polishing")
    assert dental_chart.apply_treatment_to_chart({}, definition, ["UR1"], "2024-01-01", KEYWORDS) is None
    assert dental_chart.apply_treatment_to_chart({}, _definition("Extraction"), [], "2024-01-01", KEYWORDS) is None


def test_treatment_notes_carry_name_and_date():
    chart = dental_chart.apply_treatment_to_chart(
        {}, _definition("Simple extraction"), ["LR8"], "2024-05-02", KEYWORDS)
    assert chart["LR8"] == Tooth(ToothStatus.MISSING, "Simple extraction (2024-05-02)")


def test_chart_summary():
    chart = {"UR1": Tooth(ToothStatus.FILLING), "UR2": Tooth(ToothStatus.HEALTHY, "watch")}
    summary = dental_chart.chart_summary(chart)
    assert summary["counts"]["FILLING"] == 1
    assert summary["counts"]["HEALTHY"] == 31
    assert [t["tooth_id"] for t in summary["notable_teeth"]] == ["UR2", "UR1"]
    assert dental_chart.chart_to_dict(chart)["UR1"] == {"status": "FILLING", "notes": ""}
