"""
Service layer abstraction.

Each service encapsulates the business logic for a resource.  Services
talk to storage only through the ``DocumentStore`` interface, so the
backend can be swapped without touching API handlers.
"""
