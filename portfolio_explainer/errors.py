"""Exception types raised by the portfolio explainer."""


class PortfolioExplainerError(Exception):
    """Base class for all service errors."""


class InputError(PortfolioExplainerError):
    """Caller supplied data that cannot be processed."""


class EmptyPortfolioError(InputError):
    """Raised when statistics are requested for zero holdings."""

    def __init__(self, message: str = "No holdings provided"):
        super().__init__(message)


class ConfigurationError(PortfolioExplainerError):
    """Invalid parameters or missing prerequisites, rejected before computation."""


class NoPortfolioFoundError(PortfolioExplainerError):
    """The user has no persisted snapshot yet."""

    def __init__(self, user_id: str):
        super().__init__(f"No portfolio snapshot found for user {user_id}")
        self.user_id = user_id
