"""
Pydantic schema definitions for API payloads.

Schemas are kept separate from the store's document layout to decouple
the API representation from persistence.
"""
