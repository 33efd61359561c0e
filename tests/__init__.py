"""
LettuceSee - Test Suite

Test modules are organized by package:
- tests/lettucesee/: Tests for the library (processing, model, pipeline)
- tests/service/: Tests for the HTTP service
"""
