"""School management package.

Organized by feature modules (attendance, fees, devices, ...) with a thin
Flask controller layer over service/repository layers.
"""
