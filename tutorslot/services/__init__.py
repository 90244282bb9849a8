# tutorslot/services/__init__.py
# Scheduling domain services. Import submodules directly, e.g.
# ``from tutorslot.services.scheduling_service import SchedulingService``.
