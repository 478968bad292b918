"""Attendance Tracker package.

Feature modules (subjects, students, attendance, reports, ...) sit on top of a
shared TTL data cache and a generic backing store, with a thin Flask
controller layer on the outside.
"""
