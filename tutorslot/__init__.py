# tutorslot/__init__.py
# Tutoring session scheduling engine.
