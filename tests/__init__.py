"""
Test suite for the catalog field mapper.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_field_mapping_service.py -v
"""
