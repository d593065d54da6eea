import random

from django.core.management.base import BaseCommand

from clinic.models import Patient
from clinic.services.synthesizer import VitalSignSynthesizer


class Command(BaseCommand):
    help = "Overwrite every patient's vitals and clinical lists with synthesized demo values."

    def add_arguments(self, parser):
        parser.add_argument('--seed', type=int, default=None)

    def handle(self, *args, **opts):
        synth = VitalSignSynthesizer(random.Random(opts['seed']))
        count = 0
        for patient in Patient.objects.order_by('id'):
            Patient.objects.filter(pk=patient.pk).update(**synth.patient_update())
            count += 1
        self.stdout.write(self.style.SUCCESS(f"Updated {count} patients."))
