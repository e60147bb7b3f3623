"""
HTTP layer of the service.

``router.py`` aggregates the resource routers defined in
``endpoints``; the application mounts it under ``/api``.
"""
