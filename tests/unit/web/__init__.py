"""Unit tests for bomcheck web route modules.

Testing pattern:
    - Use FastAPI's TestClient for route testing
    - Swap service objects with app.dependency_overrides
    - Patch database session helpers where a route touches storage
    - Test request validation and error bodies
"""
