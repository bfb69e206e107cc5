"""TAPE 16 serial service: issuance, resend and refund revocation of license serials."""

__version__ = "1.0.0"
