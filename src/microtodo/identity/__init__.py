"""Identity service: user accounts and bearer token issuance."""
