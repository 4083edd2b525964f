"""Identity and access control: accounts, credentials, tokens, sessions, roles and audit."""
