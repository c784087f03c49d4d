"""
connectors — OAuth integration module for the scheduling providers.

Provides a generic connector framework that handles:
  • Signed OAuth state (employee_id + return path)
  • Callback handling (code → token exchange → identity lookup)
  • Per-employee credential storage & transparent refresh
  • Fernet encryption of tokens at rest

Each provider (Google, Zoom) is a subclass of BaseConnector.
"""
