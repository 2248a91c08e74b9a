"""Application constants to avoid magic strings."""


class UserRole:
    """User role constants."""

    ADMIN = "admin"
    STUDENT = "student"

    ALL = (ADMIN, STUDENT)


class TwoFactorPolicy:
    """Two-factor policy constants (see Settings.two_factor_policy)."""

    MANDATORY = "mandatory"
    OPT_IN = "opt_in"


class GoogleCallbackMode:
    """How the Google OAuth callback hands the session to the client."""

    JSON = "json"
    REDIRECT = "redirect"
