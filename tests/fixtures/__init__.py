"""
Fixtures package for the conduit_qa test suite.

This package provides reusable fixtures to standardize the approach to
testing throughout the project.
"""
