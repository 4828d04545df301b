"""
mwstack: Package Initializer
==============================

A thin configuration layer over the Starlette/FastAPI middleware stack.

    ┌─────────────────────────────────────┐
    │     main (demo app, /health)        │  ← wiring
    ├─────────────────────────────────────┤
    │     middleware (constructors)       │  ← one Middleware entry each
    ├─────────────────────────────────────┤
    │     config (MiddlewareConfig)       │  ← defaults, validation
    ├─────────────────────────────────────┤
    │     units, exceptions               │  ← parsing helpers
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
