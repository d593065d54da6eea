import bleach
from rest_framework import serializers

from clinic.models import Appointment, EmergencyCase


def _clean(v):
    return bleach.clean((v or '').strip(), tags=set(), strip=True)


class ListQuerySerializer(serializers.Serializer):
    q = serializers.CharField(max_length=64, required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    pageSize = serializers.IntegerField(min_value=1, max_value=200, required=False)


class DoctorListQuerySerializer(ListQuerySerializer):
    specialization = serializers.CharField(max_length=100, required=False)


class PrescriptionListQuerySerializer(ListQuerySerializer):
    patientId = serializers.IntegerField(min_value=1, required=False)
    doctorId = serializers.IntegerField(min_value=1, required=False)


class AppointmentListQuerySerializer(ListQuerySerializer):
    patientId = serializers.IntegerField(min_value=1, required=False)
    doctorId = serializers.IntegerField(min_value=1, required=False)
    status = serializers.ChoiceField(choices=[c for c, _ in Appointment.STATUS_CHOICES], required=False)


class EmergencyListQuerySerializer(ListQuerySerializer):
    status = serializers.ChoiceField(choices=[c for c, _ in EmergencyCase.STATUS_CHOICES], required=False)
    severity = serializers.ChoiceField(choices=[c for c, _ in EmergencyCase.SEVERITY_CHOICES], required=False)


class VitalsUpdateSerializer(serializers.Serializer):
    vital_signs = serializers.DictField()
    units = serializers.ChoiceField(choices=['imperial', 'metric'], required=False, default='imperial')


class AppointmentCreateSerializer(serializers.Serializer):
    patient_id = serializers.IntegerField(min_value=1)
    doctor_id = serializers.IntegerField(min_value=1)
    appointment_date = serializers.DateTimeField()
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=[c for c, _ in Appointment.STATUS_CHOICES], required=False, default='scheduled')

    def validate_reason(self, v):
        return _clean(v)


class PatientVitalsCreateSerializer(serializers.Serializer):
    doctor_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    heart_rate = serializers.IntegerField(min_value=0, max_value=400, required=False, allow_null=True)
    blood_pressure = serializers.RegexField(r'^\d{2,3}/\d{2,3}$', required=False, allow_blank=True)
    temperature = serializers.FloatField(required=False, allow_null=True)
    oxygen_saturation = serializers.IntegerField(min_value=0, max_value=100, required=False, allow_null=True)
    respiratory_rate = serializers.IntegerField(min_value=0, max_value=120, required=False, allow_null=True)


class LocationSerializer(serializers.Serializer):
    address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    coordinates = serializers.DictField(child=serializers.FloatField(), required=False)


class EmergencyCaseCreateSerializer(serializers.Serializer):
    patient_name = serializers.CharField(max_length=200)
    emergency_type = serializers.CharField(max_length=100)
    severity = serializers.ChoiceField(choices=[c for c, _ in EmergencyCase.SEVERITY_CHOICES], default='medium')
    location = LocationSerializer(required=False)
    estimated_arrival = serializers.DateTimeField(required=False, allow_null=True)
    ambulance_id = serializers.CharField(max_length=32, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)

    def validate_patient_name(self, v):
        v = _clean(v)
        if len(v) < 2:
            raise serializers.ValidationError('Patient name must be at least 2 characters')
        return v

    def validate_emergency_type(self, v):
        return _clean(v)

    def validate_description(self, v):
        return _clean(v)


class EmergencyStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in EmergencyCase.STATUS_CHOICES])


class ChatSerializer(serializers.Serializer):
    message = serializers.CharField(max_length=4000)


class RecommendationRequestSerializer(serializers.Serializer):
    symptoms = serializers.CharField(allow_blank=True, trim_whitespace=False)
    patient_id = serializers.IntegerField(min_value=1, required=False)
    diagnosis = serializers.CharField(required=False, allow_blank=True)
    severity = serializers.ChoiceField(choices=['mild', 'moderate', 'severe'], required=False)


class ConsultationListQuerySerializer(ListQuerySerializer):
    status = serializers.ChoiceField(choices=['active', 'closed'], required=False)
    patientId = serializers.IntegerField(min_value=1, required=False)


class ConsultationCreateSerializer(serializers.Serializer):
    patient_id = serializers.IntegerField(min_value=1)
    doctor_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class ConsultationSymptomsSerializer(serializers.Serializer):
    symptoms = serializers.ListField(child=serializers.CharField(max_length=500), min_length=1, max_length=50)

    def validate_symptoms(self, v):
        cleaned = [_clean(s) for s in v]
        if not any(cleaned):
            raise serializers.ValidationError('At least one symptom is required')
        return cleaned


class ConsultationDiagnosisSerializer(serializers.Serializer):
    diagnosis = serializers.CharField(max_length=255)

    def validate_diagnosis(self, v):
        cleaned = _clean(v)
        if not cleaned:
            raise serializers.ValidationError('Diagnosis is required')
        return cleaned
