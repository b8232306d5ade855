from collections import Counter
from typing import Dict, Iterable, List, Optional

from dental_clinic.domain.patients import DentalChartData, Tooth, ToothStatus
from dental_clinic.domain.treatments import TreatmentDefinition

# Quadrants in chart display order (patient's right on the viewer's left)
UPPER_RIGHT = [f'UR{n}' for n in range(8, 0, -1)]
UPPER_LEFT = [f'UL{n}' for n in range(1, 9)]
LOWER_LEFT = [f'LL{n}' for n in range(1, 9)]
LOWER_RIGHT = [f'LR{n}' for n in range(8, 0, -1)]

ALL_TOOTH_IDS = UPPER_RIGHT + UPPER_LEFT + LOWER_LEFT + LOWER_RIGHT
_VALID_IDS = frozenset(ALL_TOOTH_IDS)


def _check_tooth_id(tooth_id: str):
    if tooth_id not in _VALID_IDS:
        raise ValueError(f'Unknown tooth id: {tooth_id}')


def merge_with_defaults(chart: Optional[DentalChartData]) -> DentalChartData:
    """Full 32-tooth chart; teeth missing from ``chart`` come back healthy.

    Returns a new dict; the input is left untouched.
    """
    chart = chart or {}
    merged = {}
    for tooth_id in ALL_TOOTH_IDS:
        tooth = chart.get(tooth_id)
        merged[tooth_id] = Tooth(tooth.status, tooth.notes) if tooth else Tooth()
    return merged


def update_tooth(chart: DentalChartData, tooth_id: str, status: ToothStatus, notes: str = '') -> DentalChartData:
    _check_tooth_id(tooth_id)
    updated = merge_with_defaults(chart)
    updated[tooth_id] = Tooth(ToothStatus(status), notes or '')
    return updated


def bulk_update(chart: DentalChartData, tooth_ids: Iterable[str], status: ToothStatus,
                notes: str = '') -> DentalChartData:
    tooth_ids = list(tooth_ids)
    if not tooth_ids:
        raise ValueError('Select at least one tooth')
    for tooth_id in tooth_ids:
        _check_tooth_id(tooth_id)
    updated = merge_with_defaults(chart)
    for tooth_id in tooth_ids:
        updated[tooth_id] = Tooth(ToothStatus(status), notes or '')
    return updated


def resolve_status_for_treatment(definition: TreatmentDefinition, keyword_table=()) -> Optional[ToothStatus]:
    """Chart status implied by a treatment.

    An explicit status on the definition wins. Otherwise the first keyword
    found in the treatment name picks the status. No match means the chart
    is left alone.
    """
    if definition.tooth_status:
        return ToothStatus(definition.tooth_status)
    name = (definition.name or '').lower()
    for keyword, status in keyword_table:
        if keyword.lower() in name:
            return ToothStatus(status)
    return None


def apply_treatment_to_chart(chart: DentalChartData, definition: TreatmentDefinition,
                             affected_teeth: Iterable[str], treatment_date: str,
                             keyword_table=()) -> Optional[DentalChartData]:
    """Updated chart after a treatment, or None when nothing changes."""
    teeth = [t for t in affected_teeth if t]
    if not teeth:
        return None
    status = resolve_status_for_treatment(definition, keyword_table)
    if status is None:
        return None
    return bulk_update(chart, teeth, status, f'{definition.name} ({treatment_date})')


def chart_summary(chart: DentalChartData) -> Dict:
    merged = merge_with_defaults(chart)
    counts = Counter(tooth.status.value for tooth in merged.values())
    notable: List[Dict] = [
        {'tooth_id': tooth_id, 'status': tooth.status.value, 'notes': tooth.notes}
        for tooth_id, tooth in merged.items()
        if tooth.status != ToothStatus.HEALTHY or tooth.notes
    ]
    return {
        'counts': {status.value: counts.get(status.value, 0) for status in ToothStatus},
        'notable_teeth': notable,
    }


def chart_to_dict(chart: DentalChartData) -> Dict:
    return {tooth_id: tooth.to_dict() for tooth_id, tooth in merge_with_defaults(chart).items()}
