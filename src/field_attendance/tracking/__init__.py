"""Attendance session lifecycle: check-in, periodic location sampling, check-out.

Everything in this package is asyncio code meant to run on a single event loop
(see ``runtime.TrackingRuntime``).
"""
