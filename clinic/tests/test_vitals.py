from clinic.services.vitals import (
    NOT_EXAMINED, UnitSystem, VitalField, calculate_bmi, fill_not_examined,
    normalize_vital_signs, recompute_bmi, vital_value,
)


def test_bmi_imperial_and_metric_agree():
    assert calculate_bmi(70, 154) == 22.1
    assert calculate_bmi(70, 154, UnitSystem.METRIC) == 22.1
    assert calculate_bmi('70', '154', 'metric') == 22.1


def test_bmi_accepts_form_strings():
    assert calculate_bmi(' 65 ', '150') == 25.0


def test_bmi_missing_or_non_positive_inputs():
    assert calculate_bmi(0, 154) is None
    assert calculate_bmi(70, 0) is None
    assert calculate_bmi(70, '') is None
    assert calculate_bmi(None, 154) is None
    assert calculate_bmi(NOT_EXAMINED, 154) is None
    assert calculate_bmi('tall', 154) is None
    assert calculate_bmi(-70, 154) is None
    assert calculate_bmi('nan', 154) is None


def test_recompute_keeps_previous_bmi_when_not_computable():
    vitals = {'height': NOT_EXAMINED, 'weight': 154, 'bmi': 21.0}
    assert recompute_bmi(vitals)['bmi'] == 21.0
    assert recompute_bmi({'height': 70, 'weight': 154, 'bmi': 21.0})['bmi'] == 22.1


def test_recompute_does_not_mutate_input():
    vitals = {'height': 70, 'weight': 154}
    recompute_bmi(vitals)
    assert 'bmi' not in vitals


def test_fill_not_examined_marks_empty_fields():
    filled = fill_not_examined({'heart_rate': 72, 'temperature': '  '})
    assert filled['heart_rate'] == 72
    for field in (VitalField.TEMPERATURE, VitalField.BLOOD_PRESSURE, VitalField.WEIGHT,
                  VitalField.HEIGHT, VitalField.BMI):
        assert filled[field.value] == NOT_EXAMINED


def test_normalize_drops_unknown_keys_and_derives_bmi():
    vitals = normalize_vital_signs({'height': '70', 'weight': '154', 'mood': 'good'})
    assert 'mood' not in vitals
    assert vitals['bmi'] == 22.1
    assert vitals['heart_rate'] == NOT_EXAMINED


def test_normalize_keeps_supplied_bmi():
    vitals = normalize_vital_signs({'height': 70, 'weight': 154, 'bmi': 30.5})
    assert vitals['bmi'] == 30.5


def test_normalize_treats_non_mapping_as_empty():
    vitals = normalize_vital_signs('abc')
    assert set(vitals) == {f.value for f in VitalField}
    assert all(v == NOT_EXAMINED for v in vitals.values())


def test_vital_value():
    assert vital_value(None, VitalField.BMI) is None
    assert vital_value({'bmi': 22.1}, VitalField.BMI) == 22.1
    assert vital_value({'bmi': 22.1}, 'bmi') == 22.1
