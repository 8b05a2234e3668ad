from backend.risk.model import InputVector
from backend.risk.resolver import SYSTEM_DEFAULT_INPUTS, InputOverrides, resolve_inputs

BASELINE = InputVector(coil_offset_deg=10.0, charge_rate_c=1.4, temp_c=38.0, load_ma=320.0)


def test_override_beats_baseline() -> None:
    resolved = resolve_inputs(InputOverrides(coil_offset_deg=15.0), BASELINE)
    assert resolved.coil_offset_deg == 15.0


def test_baseline_used_without_override() -> None:
    resolved = resolve_inputs(InputOverrides(), BASELINE)
    assert resolved.coil_offset_deg == 10.0
    assert resolved == BASELINE


def test_system_default_used_without_baseline_or_override() -> None:
    resolved = resolve_inputs(InputOverrides(), None)
    assert resolved.coil_offset_deg == 5.0
    assert resolved == SYSTEM_DEFAULT_INPUTS
    assert resolve_inputs() == InputVector(coil_offset_deg=5.0, charge_rate_c=1.0, temp_c=37.0, load_ma=200.0)


def test_each_field_resolves_independently() -> None:
    resolved = resolve_inputs(InputOverrides(temp_c=41.0), BASELINE)
    assert resolved == InputVector(coil_offset_deg=10.0, charge_rate_c=1.4, temp_c=41.0, load_ma=320.0)


def test_zero_override_is_an_explicit_value_not_a_missing_one() -> None:
    resolved = resolve_inputs(InputOverrides(coil_offset_deg=0.0, load_ma=0.0), BASELINE)
    assert resolved.coil_offset_deg == 0.0
    assert resolved.load_ma == 0.0


def test_overrides_apply_over_system_default() -> None:
    resolved = resolve_inputs(InputOverrides(charge_rate_c=1.8), None)
    assert resolved == InputVector(coil_offset_deg=5.0, charge_rate_c=1.8, temp_c=37.0, load_ma=200.0)
