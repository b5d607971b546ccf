"""Clinic application for the pharmacy and medical center backend.

This package contains models, services, serializers, views and route
registrations for the public site content and the medical center back
office (doctors, availability, appointments, iCal synchronisation).
"""
