"""Smart Attendance package.

Organized by feature modules (students, identity, ratelimit, attendance)
with a thin Flask controller layer over service/repository layers.
"""
