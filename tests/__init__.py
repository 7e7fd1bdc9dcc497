"""
Tests package - Test suite for the SFTPGo operator.

Contains:
- unit/: Unit tests run against an in-memory SFTPGo API
"""
