"""
Test suite for mount_alignment

To run all tests:
    PYTHONPATH=. python -m pytest mount_alignment/tests/ -v

To run specific test file:
    PYTHONPATH=. python -m pytest mount_alignment/tests/test_sphere.py -v
"""
