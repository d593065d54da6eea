"""Clinic application for the MediOca dashboard backend.

Models, validation, vital-sign and PDF services and the REST views the
dashboard front-end calls.
"""
