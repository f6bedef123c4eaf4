"""Authentication, sessions and role-level authorization."""
