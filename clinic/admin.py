"""
Django admin registrations for the clinic models.
"""

from django.contrib import admin

from .models import (
    Appointment,
    AuditEvent,
    ConsultationSession,
    Doctor,
    EmergencyCase,
    Patient,
    PatientVitals,
    Prescription,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'is_staff', 'is_superuser')
    list_filter = ('role',)
    search_fields = ('username', 'first_name', 'last_name')


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ('id', 'first_name', 'last_name', 'specialization', 'availability_status')
    list_filter = ('specialization', 'availability_status')
    search_fields = ('first_name', 'last_name', 'email', 'license_number')


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('id', 'first_name', 'last_name', 'email', 'date_of_birth', 'room_number')
    search_fields = ('first_name', 'last_name', 'email', 'phone')


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'medication', 'dosage', 'is_ai_generated', 'created_at')
    list_filter = ('is_ai_generated',)
    search_fields = ('medication', 'patient__last_name', 'doctor__last_name')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'appointment_date', 'status')
    list_filter = ('status',)


@admin.register(PatientVitals)
class PatientVitalsAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'heart_rate', 'blood_pressure', 'temperature', 'oxygen_saturation', 'last_updated')


@admin.register(EmergencyCase)
class EmergencyCaseAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient_name', 'emergency_type', 'severity', 'status', 'time_reported')
    list_filter = ('severity', 'status')


@admin.register(ConsultationSession)
class ConsultationSessionAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'status', 'confidence', 'created_at', 'closed_at')
    list_filter = ('status',)


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'action', 'object_type', 'object_id', 'user', 'created_at')
    list_filter = ('action', 'object_type')
