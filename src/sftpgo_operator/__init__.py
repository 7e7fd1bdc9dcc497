"""
SFTPGo Operator - Declarative management of SFTPGo server objects.

This operator reconciles Kubernetes custom resources into the SFTPGo
REST API, covering:
- Users, virtual folders and groups
- Event actions and event rules
- Defender, allow list and rate limiter safe list entries
- Roles, admins and the enterprise license
"""

__version__ = "0.1.0"
