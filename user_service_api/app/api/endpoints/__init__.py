"""
Endpoint subpackage.

Each module in this package defines an APIRouter for one resource.
The routers are aggregated in ``api/router.py``.
"""
