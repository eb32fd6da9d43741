"""
API Routes
==========

FastAPI routers for the transport and health endpoints.
"""
