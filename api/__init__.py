"""
HTTP adapter

Thin FastAPI routers over the managers in core/. No business logic here.
"""
