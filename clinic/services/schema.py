"""Developer diagnostics: which clinic tables and columns exist in the database."""
from django.db import connection

from clinic.models import (
    Appointment, Doctor, EmergencyCase, Patient, PatientVitals, Prescription,
)

CLINIC_MODELS = (Patient, Doctor, Prescription, Appointment, PatientVitals, EmergencyCase)
PRESCRIPTION_COLUMNS = (
    'id', 'patient_id', 'doctor_id', 'medication', 'dosage', 'frequency',
    'duration', 'instructions', 'medication_details', 'is_ai_generated',
)


def _column_types(cursor, table: str) -> dict[str, str]:
    columns = {}
    for info in connection.introspection.get_table_description(cursor, table):
        try:
            columns[info.name] = connection.introspection.get_field_type(info.type_code, info)
        except KeyError:
            columns[info.name] = str(info.type_code)
    return columns


def missing_column_sql(table: str, columns: dict) -> list[str]:
    json_type = 'JSONB' if connection.vendor == 'postgresql' else 'JSON'
    sql = []
    if 'medication_details' not in columns:
        sql.append(f'ALTER TABLE {table} ADD COLUMN medication_details {json_type};')
    if 'is_ai_generated' not in columns:
        sql.append(f'ALTER TABLE {table} ADD COLUMN is_ai_generated BOOLEAN DEFAULT FALSE;')
    return sql


def inspect_prescriptions_table() -> dict:
    table = Prescription._meta.db_table
    with connection.cursor() as cursor:
        exists = table in connection.introspection.table_names(cursor)
        columns = _column_types(cursor, table) if exists else {}
    return {
        'tableExists': exists,
        'table': table,
        'columns': columns,
        'requiredColumns': {c: c in columns for c in PRESCRIPTION_COLUMNS},
        'sqlNeeded': missing_column_sql(table, columns) if exists else [],
    }


def inspect_schema() -> dict:
    with connection.cursor() as cursor:
        existing = set(connection.introspection.table_names(cursor))
    tables = {m._meta.db_table: m._meta.db_table in existing for m in CLINIC_MODELS}
    prescriptions = inspect_prescriptions_table()
    return {
        'tableExists': all(tables.values()),
        'tables': tables,
        'columns': prescriptions['columns'],
        'sqlNeeded': prescriptions['sqlNeeded'],
    }
