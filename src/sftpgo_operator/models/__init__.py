"""
Models package - Pydantic models for type-safe resource handling.

Defines data models for:
- SFTPGo users, virtual folders and groups (with filesystems and filters)
- Event actions and event rules
- IP list entries, roles, admins and the license
- SFTPGo connection configuration
"""
