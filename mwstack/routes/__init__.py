"""
mwstack: Routes Package
=========================

Route Inventory:
    - health.py:  GET /health   (liveness check)
"""
