"""QR Attendance package.

Organized by feature modules (users, subjects, attendance, qr, sessions, ...)
with a thin Flask controller layer over service/repository layers.
"""
