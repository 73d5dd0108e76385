"""Room Monitor package.

Room access and attendance engine for the lab monitoring front end. It is
organized by feature modules (access, attendance, realtime, ...) with a thin
Flask controller layer over async service and gateway layers.
"""
