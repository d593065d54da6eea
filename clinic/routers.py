"""
URL mappings for the MediOca dashboard API.

Paths carry no trailing slash; ``APPEND_SLASH`` is off.
"""
from django.urls import path, include

from .views import (
    admin_vitals, ai, analytics, appointments, auth, consultations, doctors, emergency,
    health, patients, prescriptions, schema,
)

urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Authentication
    path('api/auth/login', auth.login_view, name='login_view'),
    # Patients
    path('api/patients', patients.patients, name='patients'),
    path('api/patients/<int:pk>', patients.patient_detail, name='patient_detail'),
    path('api/patients/<int:pk>/vitals', patients.patient_vitals, name='patient_vitals'),
    path('api/patients/<int:pk>/prescriptions', patients.patient_prescriptions, name='patient_prescriptions'),
    path('api/patients/<int:pk>/vitals-history', patients.patient_vitals_history, name='patient_vitals_history'),
    # Doctors
    path('api/doctors', doctors.doctors, name='doctors'),
    path('api/doctors/<int:pk>', doctors.doctor_detail, name='doctor_detail'),
    # Prescriptions
    path('api/prescriptions', prescriptions.prescriptions, name='prescriptions'),
    path('api/prescriptions/<uuid:pk>', prescriptions.prescription_detail, name='prescription_detail'),
    path('api/prescriptions/<uuid:pk>/pdf', prescriptions.prescription_pdf, name='prescription_pdf'),
    path('api/prescriptions/<uuid:pk>/pdf-from-image', prescriptions.prescription_pdf_from_image,
         name='prescription_pdf_from_image'),
    # Appointments / emergencies
    path('api/appointments', appointments.appointments, name='appointments'),
    path('api/emergency-cases', emergency.emergency_cases, name='emergency_cases'),
    path('api/emergency-cases/<int:pk>/status', emergency.emergency_status, name='emergency_status'),
    # Dashboard
    path('api/analytics/summary', analytics.analytics_summary, name='analytics_summary'),
    # AI assistant
    path('api/ai/chat', ai.ai_chat, name='ai_chat'),
    path('api/ai/prescription-recommendations', ai.prescription_recommendations,
         name='prescription_recommendations'),
    # Consultation sessions
    path('api/consultations', consultations.consultations, name='consultations'),
    path('api/consultations/<uuid:pk>', consultations.consultation_detail, name='consultation_detail'),
    path('api/consultations/<uuid:pk>/symptoms', consultations.consultation_symptoms, name='consultation_symptoms'),
    path('api/consultations/<uuid:pk>/diagnosis', consultations.consultation_diagnosis, name='consultation_diagnosis'),
    path('api/consultations/<uuid:pk>/prescription', consultations.consultation_prescription,
         name='consultation_prescription'),
    path('api/consultations/<uuid:pk>/close', consultations.consultation_close, name='consultation_close'),
    path('api/consultations/<uuid:pk>/stats', consultations.consultation_stats, name='consultation_stats'),
    # Admin / diagnostics
    path('api/admin/update-vitals', admin_vitals.update_vitals, name='admin_update_vitals'),
    path('api/check-db-schema', schema.check_db_schema, name='check_db_schema'),
    path('api/check-prescriptions-table', schema.check_prescriptions_table, name='check_prescriptions_table'),
]
