"""clinicbook - appointment scheduling and booking-lifecycle engine for dental clinics."""

__version__ = "0.1.0"
