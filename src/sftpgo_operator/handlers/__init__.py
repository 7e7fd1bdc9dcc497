"""
Handlers package - Contains all Kopf event handlers for SFTPGo resources.

Every supported kind shares the same handler set, registered by
resources.py:
- create/resume: create, import or refresh the SFTPGo object
- update: apply specification changes
- delete: remove the object from SFTPGo
- timer: periodic resync that recreates objects removed out of band
"""
