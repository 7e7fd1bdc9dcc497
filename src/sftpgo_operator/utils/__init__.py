"""
Utils package - Utility modules for SFTPGo operator functionality.

Contains helper modules for:
- SFTPGo REST API interactions
- SFTPGo secret encoding and secret preservation
- Kubernetes client configuration and Secret access
- Handler entry logging
"""

from sftpgo_operator.utils.secrets import (
    decode_secret,
    encode_secret,
    preserve_secrets,
)

__all__ = [
    "decode_secret",
    "encode_secret",
    "preserve_secrets",
]
