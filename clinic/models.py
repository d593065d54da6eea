"""
Database models for the MediOca dashboard.

These models mirror the tables of the hosted database the dashboard
was built against: patients, doctors, prescriptions, appointments,
patient vitals and emergency cases.  Free-form nested structures
(embedded vital signs, medication details, emergency locations) are
stored as JSON so that records can be replaced wholesale, matching the
read-modify-write style of the front-end.
"""
from __future__ import annotations

import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Dashboard operator account.

    Roles: 'admin' manages every record, 'doctor' and 'staff' work with
    patients and prescriptions.  Clinical doctors are modelled separately
    by :class:`Doctor`; a user account is only needed to call the API.
    """
    ROLE_CHOICES = [
        ('admin', 'Administrator'),
        ('doctor', 'Doctor'),
        ('staff', 'Staff'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='staff')

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Doctor(models.Model):
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    specialization = models.CharField(max_length=100, blank=True)
    license_number = models.CharField(max_length=64, blank=True)
    years_of_experience = models.PositiveIntegerField(null=True, blank=True)
    qualifications = models.CharField(max_length=255, blank=True)
    working_hours = models.CharField(max_length=64, blank=True)
    consultation_fee = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    bio = models.TextField(blank=True)
    availability_status = models.CharField(max_length=32, default='Available')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self) -> str:
        return f"Dr. {self.full_name} ({self.specialization or 'General'})"


class Patient(models.Model):
    """A patient record with embedded vital signs.

    ``vital_signs`` holds the keys listed in
    :class:`clinic.services.vitals.VitalField`; any of them may carry the
    ``"Not Examined"`` sentinel.  ``diagnosis``, ``allergies`` and
    ``current_medications`` are lists of strings.
    """
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=20, blank=True)
    address = models.CharField(max_length=255, blank=True)
    medical_history = models.TextField(blank=True)
    room_number = models.CharField(max_length=16, blank=True)
    vital_signs = models.JSONField(default=dict, blank=True)
    diagnosis = models.JSONField(default=list, blank=True)
    allergies = models.JSONField(default=list, blank=True)
    current_medications = models.JSONField(default=list, blank=True)
    emergency_contact = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self) -> str:
        return self.full_name


class Prescription(models.Model):
    """A medication order for a patient written by a doctor.

    ``medication_details`` is the optional safety metadata produced by the
    AI assistant or entered manually: generic_name, route, warnings,
    interactions, cost_estimate and confidence_score.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='prescriptions')
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='prescriptions')
    medication = models.CharField(max_length=255)
    dosage = models.CharField(max_length=100)
    frequency = models.CharField(max_length=100)
    duration = models.CharField(max_length=100)
    instructions = models.TextField(blank=True, null=True)
    medication_details = models.JSONField(blank=True, null=True)
    is_ai_generated = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['patient', 'created_at'], name='clinic_pres_patient_4b6f0e_idx'),
            models.Index(fields=['doctor', 'created_at'], name='clinic_pres_doctor__9a2c1d_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.medication} {self.dosage} for {self.patient_id}"


class Appointment(models.Model):
    STATUS_CHOICES = [
        ('scheduled', 'Scheduled'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='appointments')
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='appointments')
    appointment_date = models.DateTimeField()
    reason = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='scheduled', db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-appointment_date']

    def __str__(self) -> str:
        return f"{self.patient_id} with {self.doctor_id} @ {self.appointment_date:%F %H:%M}"


class PatientVitals(models.Model):
    """A timestamped vitals reading taken by the monitoring workflow."""
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='vitals_history')
    doctor = models.ForeignKey(Doctor, null=True, blank=True, on_delete=models.SET_NULL, related_name='vitals_taken')
    heart_rate = models.PositiveIntegerField(null=True, blank=True)
    blood_pressure = models.CharField(max_length=16, blank=True)
    temperature = models.FloatField(null=True, blank=True)
    oxygen_saturation = models.PositiveIntegerField(null=True, blank=True)
    respiratory_rate = models.PositiveIntegerField(null=True, blank=True)
    last_updated = models.DateTimeField()

    class Meta:
        ordering = ['-last_updated']
        indexes = [models.Index(fields=['patient', 'last_updated'], name='clinic_pati_patient_7e3d52_idx')]

    def __str__(self) -> str:
        return f"vitals p={self.patient_id} @ {self.last_updated:%F %T}"


class EmergencyCase(models.Model):
    SEVERITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('critical', 'Critical'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('dispatched', 'Dispatched'),
        ('en-route', 'En route'),
        ('arrived', 'Arrived'),
        ('completed', 'Completed'),
    ]
    patient_name = models.CharField(max_length=200)
    location = models.JSONField(default=dict, blank=True)
    emergency_type = models.CharField(max_length=100)
    severity = models.CharField(max_length=10, choices=SEVERITY_CHOICES, default='medium', db_index=True)
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default='pending', db_index=True)
    time_reported = models.DateTimeField()
    estimated_arrival = models.DateTimeField(null=True, blank=True)
    ambulance_id = models.CharField(max_length=32, blank=True)
    description = models.TextField(blank=True)

    class Meta:
        ordering = ['-time_reported']

    def __str__(self) -> str:
        return f"{self.emergency_type} ({self.severity}) for {self.patient_name}"


class ConsultationSession(models.Model):
    """A doctor's AI-assisted workup of one patient.

    Symptoms accumulate over the session; every AI step appends an entry
    to ``recommendations`` (id, type, content, confidence, timestamp,
    reasoning, warnings).  ``confidence`` is the mean of those entries.
    """
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('closed', 'Closed'),
    ]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='consultations')
    doctor = models.ForeignKey(Doctor, on_delete=models.SET_NULL, null=True, blank=True, related_name='consultations')
    started_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    symptoms = models.JSONField(default=list, blank=True)
    diagnosis = models.CharField(max_length=255, blank=True)
    recommendations = models.JSONField(default=list, blank=True)
    confidence = models.FloatField(default=0)
    ai_provider = models.CharField(max_length=32, default='gemini')
    status = models.CharField(max_length=8, choices=STATUS_CHOICES, default='active', db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    closed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['patient', 'created_at'], name='clinic_cons_patient_7e2a91_idx'),
        ]

    @property
    def is_active(self) -> bool:
        return self.status == 'active'

    def __str__(self) -> str:
        return f"Consultation {self.id} for {self.patient_id} ({self.status})"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='clinic_audi_action_0c8e4f_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='clinic_audi_object__5d1b7a_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.action}:{self.object_type}/{self.object_id}"
