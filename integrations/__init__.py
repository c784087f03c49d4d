"""
integrations — calendar / meeting calls made on an employee's behalf.

Each client asks ``connectors.token_manager.TokenManager`` for a valid
access token and then talks to the provider API; it never touches the
credential store directly.
"""
