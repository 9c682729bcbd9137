"""FMPA portal package.

Feature modules (sessions, registrations, attendance, payroll, ...) sit on top
of a unit-of-work persistence layer, with a thin Flask controller layer.
"""
