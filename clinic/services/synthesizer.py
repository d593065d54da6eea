"""
Randomised demo data for seeding and for the "update vitals" admin action.

Nothing here is clinical logic.  The catalogues and weights only make
the dashboard look populated; they are plain data so callers (and tests)
can pass their own tables and a seeded :class:`random.Random`.
"""
from __future__ import annotations

import random
import string
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Optional, Sequence, Tuple

from .vitals import UnitSystem, VitalField, calculate_bmi

# A list of (value, weight) pairs.  Weights need not sum to 1.
WeightedChoice = Sequence[Tuple[Any, float]]


def weighted_pick(table: WeightedChoice, rng: random.Random) -> Any:
    values = [v for v, _ in table]
    weights = [w for _, w in table]
    return rng.choices(values, weights=weights, k=1)[0]


# Default tiers: 40% / 42% / 18% reproduces "60% chance of the first
# option, otherwise 70% of the rest for the second, else the third".
DEFAULT_DIAGNOSIS: WeightedChoice = [
    (("Hypertension", "Type 2 Diabetes"), 40),
    (("Asthma",), 42),
    (("Routine checkup",), 18),
]
DEFAULT_MEDICATIONS: WeightedChoice = [
    (("Lisinopril", "Metformin"), 50),
    (("Atorvastatin",), 35),
    ((), 15),
]
DEFAULT_ALLERGIES: WeightedChoice = [
    (("Penicillin", "Shellfish"), 30),
    (("Peanuts",), 42),
    ((), 28),
]
DEFAULT_BLOOD_PRESSURE = ("120/80", "130/85", "140/90", "110/70", "125/82")

DEFAULT_EMERGENCY_CONTACT = {
    "name": "Emergency Contact",
    "relationship": "Spouse",
    "phone": "(555) 123-4567",
}


@dataclass(frozen=True)
class Catalogues:
    blood_pressure: Sequence[str] = DEFAULT_BLOOD_PRESSURE
    diagnosis: WeightedChoice = field(default_factory=lambda: list(DEFAULT_DIAGNOSIS))
    medications: WeightedChoice = field(default_factory=lambda: list(DEFAULT_MEDICATIONS))
    allergies: WeightedChoice = field(default_factory=lambda: list(DEFAULT_ALLERGIES))
    heart_rate: Tuple[int, int] = (60, 100)
    temperature: Tuple[float, float] = (97.6, 99.6)
    weight: Tuple[int, int] = (150, 200)
    height: Tuple[int, int] = (65, 80)


DEFAULT_CATALOGUES = Catalogues()


class VitalSignSynthesizer:
    """Produce plausible vital signs and clinical lists for demo patients."""

    def __init__(self, rng: Optional[random.Random] = None, catalogues: Catalogues = DEFAULT_CATALOGUES):
        self.rng = rng or random.Random()
        self.catalogues = catalogues

    def _int_in(self, bounds: Tuple[int, int]) -> int:
        # half-open [low, high)
        low, high = bounds
        return low + int(self.rng.random() * (high - low))

    def vital_signs(self) -> dict:
        c = self.catalogues
        weight = self._int_in(c.weight)
        height = self._int_in(c.height)
        # tenths of a degree, half-open like the other ranges
        low, high = (round(bound * 10) for bound in c.temperature)
        return {
            VitalField.BLOOD_PRESSURE.value: self.rng.choice(list(c.blood_pressure)),
            VitalField.HEART_RATE.value: self._int_in(c.heart_rate),
            VitalField.TEMPERATURE.value: self._int_in((low, high)) / 10,
            VitalField.WEIGHT.value: weight,
            VitalField.HEIGHT.value: height,
            VitalField.BMI.value: calculate_bmi(height, weight, UnitSystem.IMPERIAL),
        }

    def diagnosis(self) -> list[str]:
        return list(weighted_pick(self.catalogues.diagnosis, self.rng))

    def current_medications(self) -> list[str]:
        return list(weighted_pick(self.catalogues.medications, self.rng))

    def allergies(self) -> list[str]:
        return list(weighted_pick(self.catalogues.allergies, self.rng))

    def patient_update(self) -> dict:
        """Fields written onto an existing patient by the admin action."""
        return {
            "vital_signs": self.vital_signs(),
            "diagnosis": self.diagnosis(),
            "current_medications": self.current_medications(),
            "allergies": self.allergies(),
            "emergency_contact": dict(DEFAULT_EMERGENCY_CONTACT),
        }


# ---------------------------------------------------------------------------
# Demo records for the seeding command
# ---------------------------------------------------------------------------

FIRST_NAMES = [
    "James", "Mary", "Robert", "Patricia", "John", "Jennifer", "Michael", "Linda",
    "David", "Elizabeth", "William", "Barbara", "Richard", "Susan", "Joseph", "Jessica",
    "Thomas", "Sarah", "Charles", "Karen", "Daniel", "Nancy", "Matthew", "Lisa",
]
LAST_NAMES = [
    "Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis",
    "Rodriguez", "Martinez", "Hernandez", "Lopez", "Wilson", "Anderson", "Thomas", "Taylor",
]
STREETS = ["Oak St", "Maple Ave", "Cedar Ln", "Pine Rd", "Elm St", "Lakeview Dr", "Hillcrest Blvd"]
SPECIALIZATIONS = ["Cardiology", "Neurology", "Oncology", "Pediatrics", "Orthopedics", "General"]
QUALIFICATIONS = ["MD", "PhD", "MBBS", "DO"]
APPOINTMENT_REASONS = ["Routine Check-up", "Follow-up", "New Symptom", "Emergency", "Consultation"]
APPOINTMENT_STATUSES = ["scheduled", "completed", "cancelled"]
MEDICATIONS = ["Lisinopril", "Atorvastatin", "Metformin", "Amlodipine", "Metoprolol", "Ibuprofen", "Acetaminophen"]
DOSAGES = ["10mg", "20mg", "500mg", "5mg", "50mg", "200mg"]
FREQUENCIES = ["Once a day", "Twice a day", "As needed", "Every 4-6 hours"]
DURATIONS = ["30 days", "60 days", "Until next visit", "1 week", "10 days"]
EMERGENCY_TYPES = ["Cardiac Arrest", "Severe Injury", "Stroke", "Breathing Difficulty", "Allergic Reaction"]
SEVERITIES = ["low", "medium", "high", "critical"]
EMERGENCY_STATUSES = ["pending", "dispatched", "en-route", "arrived", "completed"]
STANDARD_INSTRUCTIONS = "Take with a full glass of water. Contact doctor if side effects occur."


class DemoDataFactory:
    """Build unsaved field dictionaries for every seeded table."""

    def __init__(self, rng: Optional[random.Random] = None, now: Optional[datetime] = None):
        self.rng = rng or random.Random()
        self.now = now or datetime.now().astimezone()
        self.vitals = VitalSignSynthesizer(self.rng)

    def _name(self) -> Tuple[str, str]:
        return self.rng.choice(FIRST_NAMES), self.rng.choice(LAST_NAMES)

    def _email(self, first: str, last: str) -> str:
        return f"{first}.{last}{self.rng.randint(1, 999)}@example.com".lower()

    def _phone(self) -> str:
        return str(self.rng.randint(1_000_000_000, 9_999_999_999))

    def _code(self, length: int) -> str:
        return "".join(self.rng.choice(string.ascii_uppercase + string.digits) for _ in range(length))

    def _recent(self, days: int) -> datetime:
        return self.now - timedelta(seconds=self.rng.randint(0, days * 86400))

    def doctor(self) -> dict:
        first, last = self._name()
        return {
            "first_name": first,
            "last_name": last,
            "email": self._email(first, last),
            "specialization": self.rng.choice(SPECIALIZATIONS),
            "phone": self._phone(),
            "license_number": f"LIC-{self._code(8)}",
            "years_of_experience": self.rng.randint(2, 30),
            "qualifications": f"{self.rng.choice(QUALIFICATIONS)}, {self.rng.choice(QUALIFICATIONS)}",
            "working_hours": "9AM-5PM",
            "consultation_fee": Decimal(self.rng.randint(5000, 30000)) / 100,
            "bio": f"Experienced {last} practice focused on patient-centred care.",
            "availability_status": "Available",
        }

    def patient(self) -> dict:
        first, last = self._name()
        born = date(2004, 1, 1) - timedelta(days=self.rng.randint(0, 50 * 365))
        data = {
            "first_name": first,
            "last_name": last,
            "email": self._email(first, last),
            "phone": self._phone(),
            "date_of_birth": born,
            "gender": self.rng.choice(["Male", "Female"]),
            "address": f"{self.rng.randint(1, 9999)} {self.rng.choice(STREETS)}",
            "medical_history": self.rng.choice(["No significant history.", "Seasonal allergies.", "Previous fracture."]),
            "room_number": f"{self.rng.choice('ABC')}-{self.rng.randint(101, 599)}",
        }
        data.update(self.vitals.patient_update())
        return data

    def appointment(self, patient_id: Any, doctor_id: Any) -> dict:
        return {
            "patient_id": patient_id,
            "doctor_id": doctor_id,
            "appointment_date": self._recent(90),
            "reason": self.rng.choice(APPOINTMENT_REASONS),
            "status": self.rng.choice(APPOINTMENT_STATUSES),
        }

    def patient_vitals(self, patient_id: Any, doctor_id: Any) -> dict:
        return {
            "patient_id": patient_id,
            "doctor_id": doctor_id,
            "heart_rate": self.rng.randint(55, 125),
            "blood_pressure": f"{self.rng.randint(90, 140)}/{self.rng.randint(60, 90)}",
            "temperature": round(self.rng.uniform(97.0, 102.0), 1),
            "oxygen_saturation": self.rng.randint(88, 100),
            "respiratory_rate": self.rng.randint(12, 26),
            "last_updated": self._recent(1),
        }

    def prescription(self, patient_id: Any, doctor_id: Any) -> dict:
        return {
            "patient_id": patient_id,
            "doctor_id": doctor_id,
            "medication": self.rng.choice(MEDICATIONS),
            "dosage": self.rng.choice(DOSAGES),
            "frequency": self.rng.choice(FREQUENCIES),
            "duration": self.rng.choice(DURATIONS),
            "instructions": STANDARD_INSTRUCTIONS,
            "is_ai_generated": self.rng.random() < 0.5,
            "medication_details": {
                "warnings": self.rng.sample(["May cause dizziness", "Avoid alcohol", "Take with food"], k=self.rng.randint(0, 2)),
                "interactions": [],
            },
        }

    def emergency_case(self) -> dict:
        first, last = self._name()
        return {
            "patient_name": f"{first} {last}",
            "location": {
                "address": f"{self.rng.randint(1, 9999)} {self.rng.choice(STREETS)}",
                "coordinates": {
                    "lat": round(self.rng.uniform(-90, 90), 6),
                    "lng": round(self.rng.uniform(-180, 180), 6),
                },
            },
            "emergency_type": self.rng.choice(EMERGENCY_TYPES),
            "severity": self.rng.choice(SEVERITIES),
            "status": self.rng.choice(EMERGENCY_STATUSES),
            "time_reported": self._recent(2),
            "estimated_arrival": self.now + timedelta(minutes=self.rng.randint(5, 24 * 60)),
            "ambulance_id": f"AMB-{self._code(3)}",
            "description": f"Reported {self.rng.choice(EMERGENCY_TYPES).lower()} symptoms.",
        }
