"""
Management command to populate the database with demo data.
"""
import random

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.db import transaction

from clinic.models import (
    Appointment, Doctor, EmergencyCase, Patient, PatientVitals, Prescription, User,
)
from clinic.services.synthesizer import DemoDataFactory

DEMO_USERS = [
    ("admin1", "admin"),
    ("doctor1", "doctor"),
    ("staff1", "staff"),
]


class Command(BaseCommand):
    help = 'Populate the database with demo doctors, patients, prescriptions and more'

    def add_arguments(self, parser):
        parser.add_argument('--seed', type=int, default=None, help='random seed for reproducible data')
        parser.add_argument('--clear', action='store_true', help='delete existing clinic records first')
        parser.add_argument('--doctors', type=int, default=5)
        parser.add_argument('--patients', type=int, default=15)
        parser.add_argument('--appointments', type=int, default=40)
        parser.add_argument('--prescriptions', type=int, default=50)
        parser.add_argument('--emergencies', type=int, default=10)
        parser.add_argument('--password', default='123456', help='password for the demo accounts')

    @transaction.atomic
    def handle(self, *args, **options):
        factory = DemoDataFactory(random.Random(options['seed']))
        rng = factory.rng

        if options['clear']:
            self.clear()

        self.stdout.write('Creating demo data...')
        self.create_users(options['password'])
        doctors = [Doctor.objects.create(**factory.doctor()) for _ in range(options['doctors'])]
        self.stdout.write(f'doctors: {len(doctors)}')
        patients = [Patient.objects.create(**factory.patient()) for _ in range(options['patients'])]
        self.stdout.write(f'patients: {len(patients)}')

        if not doctors or not patients:
            self.stdout.write(self.style.WARNING('No doctors or patients; skipping dependent records'))
        else:
            for _ in range(options['appointments']):
                Appointment.objects.create(**factory.appointment(rng.choice(patients).id, rng.choice(doctors).id))
            for patient in patients:
                PatientVitals.objects.create(**factory.patient_vitals(patient.id, rng.choice(doctors).id))
            for _ in range(options['prescriptions']):
                Prescription.objects.create(**factory.prescription(rng.choice(patients).id, rng.choice(doctors).id))
            self.stdout.write(f"appointments: {options['appointments']}, prescriptions: {options['prescriptions']}")

        for _ in range(options['emergencies']):
            EmergencyCase.objects.create(**factory.emergency_case())
        self.stdout.write(f"emergency cases: {options['emergencies']}")

        self.stdout.write(self.style.SUCCESS('Demo data created.'))

    def clear(self):
        for model in (Prescription, Appointment, PatientVitals, EmergencyCase, Patient, Doctor):
            deleted, _ = model.objects.all().delete()
            self.stdout.write(f'cleared {model.__name__}: {deleted}')

    def create_users(self, password):
        for username, role in DEMO_USERS:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={"role": role, "password": make_password(password), "is_active": True},
            )
            if not created:
                u.password = make_password(password)
                u.role = role
                u.is_active = True
                u.save(update_fields=["password", "role", "is_active"])
            self.stdout.write(f'user: {username} ({role})')
