"""
Service Tests

- test_api.py: FastAPI endpoints with a fake engine
"""
