"""
Feature modules for the AlumniVerse auth flow.

Each module keeps its public surface in a few files:
- interfaces.py: Protocol definitions other modules depend on
- models.py: Pydantic models passed between modules
- service.py: the implementation
- exceptions.py / routes.py where the module needs them

Modules talk to each other through interfaces; the auth_flow factory and the
API's service container are the only places that pick implementations.
"""
